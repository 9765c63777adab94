"""Entity Store contract.

A store holds three keyed collections and pushes full snapshots to
subscribers after every mutation that touches their scope. Writes return
only once the store has accepted them. There are no cross-entity
transactions.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from studykit.errors import ValidationError
from studykit.models import Annotation, BaseEntityModel, Document, KnowledgeUnit

logger = logging.getLogger(__name__)


class Collection(str, Enum):
    """Named entity collections."""

    DOCUMENTS = "documents"
    ANNOTATIONS = "annotations"
    KNOWLEDGE_UNITS = "knowledge_units"

    @property
    def model(self) -> type[BaseEntityModel]:
        return _MODELS[self]


_MODELS: dict[Collection, type[BaseEntityModel]] = {
    Collection.DOCUMENTS: Document,
    Collection.ANNOTATIONS: Annotation,
    Collection.KNOWLEDGE_UNITS: KnowledgeUnit,
}


@dataclass(frozen=True)
class Scope:
    """Equality filter on (document, owner). `None` matches anything."""

    document_id: Optional[str] = None
    owner_id: Optional[str] = None

    def matches(self, entity: BaseEntityModel) -> bool:
        # A document is its own document scope.
        document_id = getattr(entity, "document_id", entity.id)
        if self.document_id is not None and document_id != self.document_id:
            return False
        if self.owner_id is not None and getattr(entity, "owner_id", None) != self.owner_id:
            return False
        return True


SnapshotCallback = Callable[[list[Any]], None]


class Subscription:
    """Handle for a live query. Close it to stop updates."""

    def __init__(
        self,
        collection: Collection,
        scope: Scope,
        callback: SnapshotCallback,
        on_close: Callable[["Subscription"], None],
    ):
        self.collection = collection
        self.scope = scope
        self._callback = callback
        self._on_close = on_close
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def deliver(self, snapshot: list[Any]) -> None:
        """Push a snapshot to the subscriber.

        A failing callback is logged and does not affect the writer.
        """
        if not self._active:
            return
        try:
            self._callback(snapshot)
        except Exception:
            logger.exception("Subscriber on %s raised while handling a snapshot", self.collection.value)

    def close(self) -> None:
        if not self._active:
            return
        self._active = False
        self._on_close(self)
        logger.debug("Closed subscription on %s %s", self.collection.value, self.scope)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class EntityStore(ABC):
    """Abstract keyed store with live subscriptions."""

    @abstractmethod
    async def create(self, collection: Collection, entity: BaseEntityModel) -> str:
        """Persist a new entity and return its id."""

    @abstractmethod
    async def get(
        self, collection: Collection, entity_id: str, scope: Optional[Scope] = None
    ) -> BaseEntityModel:
        """Fetch one entity. Raises NotFound."""

    @abstractmethod
    async def query(self, collection: Collection, scope: Scope) -> list[BaseEntityModel]:
        """Snapshot of all entities in scope, oldest first."""

    @abstractmethod
    async def update(
        self,
        collection: Collection,
        entity_id: str,
        fields: dict[str, Any],
        scope: Optional[Scope] = None,
    ) -> BaseEntityModel:
        """Set the given fields only. Raises NotFound."""

    @abstractmethod
    async def delete(
        self, collection: Collection, entity_id: str, scope: Optional[Scope] = None
    ) -> None:
        """Remove an entity for good. Raises NotFound."""

    @abstractmethod
    async def increment(
        self,
        collection: Collection,
        entity_id: str,
        counters: dict[str, int],
        fields: Optional[dict[str, Any]] = None,
        scope: Optional[Scope] = None,
    ) -> BaseEntityModel:
        """Atomically add to counters (and set `fields`). Raises NotFound."""

    @abstractmethod
    async def subscribe(
        self, collection: Collection, scope: Scope, callback: SnapshotCallback
    ) -> Subscription:
        """Open a live query. The current snapshot is delivered before returning."""

    @abstractmethod
    async def close(self) -> None:
        """Release all subscriptions and connections."""


class SubscriptionRegistry:
    """Bookkeeping shared by store implementations."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def open(self, collection: Collection, scope: Scope, callback: SnapshotCallback) -> Subscription:
        subscription = Subscription(collection, scope, callback, self._remove)
        self._subscriptions.append(subscription)
        logger.debug("Opened subscription on %s %s", collection.value, scope)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def interested(self, collection: Collection, entity: BaseEntityModel) -> list[Subscription]:
        """Active subscriptions whose scope covers `entity`."""
        return [
            s
            for s in self._subscriptions
            if s.collection == collection and s.scope.matches(entity)
        ]

    def close_all(self) -> None:
        for subscription in list(self._subscriptions):
            subscription.close()

    def __len__(self) -> int:
        return len(self._subscriptions)

    def __iter__(self):
        return iter(list(self._subscriptions))


def check_counters(model: type[BaseEntityModel], counters: dict[str, int]) -> None:
    """Reject unknown counter names and negative steps."""
    for name, step in counters.items():
        if name not in model.model_fields:
            raise ValidationError(f"{model.__name__} has no field {name!r}")
        if step < 0:
            raise ValidationError(f"Counter {name!r} may not decrease")


def order_oldest_first(entities: Sequence[BaseEntityModel]) -> list[BaseEntityModel]:
    return sorted(entities, key=lambda e: e.created_at)


def apply_fields(entity: BaseEntityModel, fields: dict[str, Any]) -> BaseEntityModel:
    """Validated copy of `entity` with `fields` replaced."""
    model = type(entity)
    bad = set(fields) - set(model.model_fields)
    if "id" in fields:
        bad.add("id")
    if bad:
        raise ValidationError(f"Cannot set fields {sorted(bad)} on {model.__name__}")
    data = entity.model_dump()
    data.update(fields)
    try:
        return model.model_validate(data)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
