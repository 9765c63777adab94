"""In-process entity store.

Holds entities in dictionaries and pushes snapshots synchronously. Used for
guest (unauthenticated) sessions, where nothing leaves the process, and as
the store in tests.
"""

import logging
from typing import Any, Optional

from studykit.errors import NotFound, ValidationError
from studykit.models import BaseEntityModel

from .base import (
    Collection,
    EntityStore,
    Scope,
    SnapshotCallback,
    Subscription,
    SubscriptionRegistry,
    apply_fields,
    check_counters,
    order_oldest_first,
)

logger = logging.getLogger(__name__)


def _detached(entity: BaseEntityModel) -> BaseEntityModel:
    """Copy handed to callers, so edits on it never reach the stored entity."""
    return entity.model_copy(deep=True)


class MemoryEntityStore(EntityStore):
    """Entity store backed by plain dictionaries.

    Every mutation completes without awaiting, so read-modify-write steps
    such as `increment` cannot interleave on one event loop.
    """

    def __init__(self) -> None:
        self._data: dict[Collection, dict[str, BaseEntityModel]] = {c: {} for c in Collection}
        self._retired: set[str] = set()
        self._subscriptions = SubscriptionRegistry()

    async def create(self, collection: Collection, entity: BaseEntityModel) -> str:
        if not isinstance(entity, collection.model):
            raise ValidationError(
                f"{collection.value} holds {collection.model.__name__}, got {type(entity).__name__}"
            )
        if entity.id in self._data[collection] or entity.id in self._retired:
            raise ValidationError(f"Id {entity.id} has already been used")

        self._data[collection][entity.id] = _detached(entity)
        logger.debug("Created %s/%s", collection.value, entity.id)
        self._publish(collection, entity)
        return entity.id

    async def get(
        self, collection: Collection, entity_id: str, scope: Optional[Scope] = None
    ) -> BaseEntityModel:
        return _detached(self._lookup(collection, entity_id, scope))

    async def query(self, collection: Collection, scope: Scope) -> list[BaseEntityModel]:
        return self._snapshot(collection, scope)

    async def update(
        self,
        collection: Collection,
        entity_id: str,
        fields: dict[str, Any],
        scope: Optional[Scope] = None,
    ) -> BaseEntityModel:
        current = self._lookup(collection, entity_id, scope)
        updated = apply_fields(current, fields)
        self._data[collection][entity_id] = updated
        logger.debug("Updated %s/%s fields=%s", collection.value, entity_id, sorted(fields))
        self._publish(collection, updated)
        return _detached(updated)

    async def delete(
        self, collection: Collection, entity_id: str, scope: Optional[Scope] = None
    ) -> None:
        entity = self._lookup(collection, entity_id, scope)
        del self._data[collection][entity_id]
        self._retired.add(entity_id)
        logger.debug("Deleted %s/%s", collection.value, entity_id)
        self._publish(collection, entity)

    async def increment(
        self,
        collection: Collection,
        entity_id: str,
        counters: dict[str, int],
        fields: Optional[dict[str, Any]] = None,
        scope: Optional[Scope] = None,
    ) -> BaseEntityModel:
        check_counters(collection.model, counters)
        current = self._lookup(collection, entity_id, scope)
        changes = dict(fields or {})
        for name, step in counters.items():
            changes[name] = getattr(current, name) + step
        updated = apply_fields(current, changes)
        self._data[collection][entity_id] = updated
        logger.debug("Incremented %s/%s %s", collection.value, entity_id, counters)
        self._publish(collection, updated)
        return _detached(updated)

    async def subscribe(
        self, collection: Collection, scope: Scope, callback: SnapshotCallback
    ) -> Subscription:
        subscription = self._subscriptions.open(collection, scope, callback)
        subscription.deliver(self._snapshot(collection, scope))
        return subscription

    async def close(self) -> None:
        self._subscriptions.close_all()

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    # ---------- internals ----------

    def _lookup(
        self, collection: Collection, entity_id: str, scope: Optional[Scope]
    ) -> BaseEntityModel:
        entity = self._data[collection].get(entity_id)
        if entity is None or (scope is not None and not scope.matches(entity)):
            raise NotFound(collection.value, entity_id)
        return entity

    def _snapshot(self, collection: Collection, scope: Scope) -> list[BaseEntityModel]:
        return order_oldest_first(
            [_detached(e) for e in self._data[collection].values() if scope.matches(e)]
        )

    def _publish(self, collection: Collection, entity: BaseEntityModel) -> None:
        for subscription in self._subscriptions.interested(collection, entity):
            subscription.deliver(self._snapshot(collection, subscription.scope))

