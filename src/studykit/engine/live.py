"""Live, scope-bound view over one store collection."""

import logging
from typing import Generic, Optional, TypeVar

from studykit.context import StudyContext
from studykit.errors import InvalidStateError
from studykit.models import BaseEntityModel, Document
from studykit.storage import Collection, Scope, Subscription

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", bound=BaseEntityModel)


class LiveCollection(Generic[EntityT]):
    """Keeps the latest snapshot of a (document, owner) partition.

    Use as `async with manager:` or call `start()`/`close()`. The snapshot
    may be stale by the time a write commits; writes never trust it.
    """

    collection: Collection

    def __init__(self, context: StudyContext, document: Document):
        self.context = context
        self.document = document
        self.scope: Scope = context.scope(document.id)
        self._items: list[EntityT] = []
        self._subscription: Optional[Subscription] = None

    @property
    def store(self):
        return self.context.store

    @property
    def is_live(self) -> bool:
        return self._subscription is not None and self._subscription.active

    async def start(self) -> None:
        if self.is_live:
            raise InvalidStateError(f"{type(self).__name__} is already subscribed")
        self._subscription = await self.store.subscribe(self.collection, self.scope, self._on_snapshot)

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()

    def _on_snapshot(self, snapshot: list[EntityT]) -> None:
        self._items = self._order(snapshot)
        logger.debug("%s snapshot: %d items", self.collection.value, len(self._items))

    def _order(self, snapshot: list[EntityT]) -> list[EntityT]:
        return list(snapshot)

    def _find(self, entity_id: str) -> Optional[EntityT]:
        for item in self._items:
            if item.id == entity_id:
                return item
        return None
