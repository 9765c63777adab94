"""Entity store backed by a relational database through SQLAlchemy.

Every mutation runs in its own transaction. Subscriptions are fanned out
in-process after commit: writers in other processes become visible on the
next local mutation in the same scope or on `refresh()`.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from studykit.errors import NotFound, StoreUnavailable, ValidationError
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
)
from .database import create_engine, create_session_factory, init_db, session_scope
from .repositories import REPOSITORIES, RetiredIdRepository

logger = logging.getLogger(__name__)


class SqlEntityStore(EntityStore):
    """Entity store over an async SQLAlchemy engine."""

    def __init__(self, engine: Optional[AsyncEngine] = None, database_url: Optional[str] = None):
        """Initialize store.

        Args:
            engine: Existing async engine (takes precedence)
            database_url: URL for a new engine (default from settings)
        """
        self.engine = engine or create_engine(database_url)
        self._session_factory = create_session_factory(self.engine)
        self._subscriptions = SubscriptionRegistry()

    async def init(self) -> None:
        """Create tables if they do not exist."""
        async with self._guard():
            await init_db(self.engine)

    async def create(self, collection: Collection, entity: BaseEntityModel) -> str:
        if not isinstance(entity, collection.model):
            raise ValidationError(
                f"{collection.value} holds {collection.model.__name__}, got {type(entity).__name__}"
            )
        async with self._session() as session:
            repo = REPOSITORIES[collection](session)
            if await RetiredIdRepository(session).is_retired(entity.id) or await repo.get_by_id(entity.id):
                raise ValidationError(f"Id {entity.id} has already been used")
            await repo.create(entity)

        logger.debug("Created %s/%s", collection.value, entity.id)
        await self._publish(collection, entity)
        return entity.id

    async def get(
        self, collection: Collection, entity_id: str, scope: Optional[Scope] = None
    ) -> BaseEntityModel:
        async with self._session() as session:
            entity = await REPOSITORIES[collection](session).get_by_id(entity_id, scope)
        if entity is None:
            raise NotFound(collection.value, entity_id)
        return entity

    async def query(self, collection: Collection, scope: Scope) -> list[BaseEntityModel]:
        async with self._session() as session:
            return await REPOSITORIES[collection](session).list_in_scope(scope)

    async def update(
        self,
        collection: Collection,
        entity_id: str,
        fields: dict[str, Any],
        scope: Optional[Scope] = None,
    ) -> BaseEntityModel:
        async with self._session() as session:
            repo = REPOSITORIES[collection](session)
            current = await repo.get_by_id(entity_id, scope)
            if current is None:
                raise NotFound(collection.value, entity_id)
            updated = apply_fields(current, fields)
            changed = updated.model_dump(include=set(fields))
            if not await repo.set_fields(entity_id, changed, scope):
                raise NotFound(collection.value, entity_id)

        logger.debug("Updated %s/%s fields=%s", collection.value, entity_id, sorted(fields))
        await self._publish(collection, updated)
        return updated

    async def delete(
        self, collection: Collection, entity_id: str, scope: Optional[Scope] = None
    ) -> None:
        async with self._session() as session:
            repo = REPOSITORIES[collection](session)
            entity = await repo.get_by_id(entity_id, scope)
            if entity is None or not await repo.remove(entity_id, scope):
                raise NotFound(collection.value, entity_id)
            await RetiredIdRepository(session).retire(collection, entity_id)

        logger.debug("Deleted %s/%s", collection.value, entity_id)
        await self._publish(collection, entity)

    async def increment(
        self,
        collection: Collection,
        entity_id: str,
        counters: dict[str, int],
        fields: Optional[dict[str, Any]] = None,
        scope: Optional[Scope] = None,
    ) -> BaseEntityModel:
        check_counters(collection.model, counters)
        async with self._session() as session:
            repo = REPOSITORIES[collection](session)
            if not await repo.add_to_counters(entity_id, counters, fields or {}, scope):
                raise NotFound(collection.value, entity_id)
            updated = await repo.get_by_id(entity_id, scope)

        logger.debug("Incremented %s/%s %s", collection.value, entity_id, counters)
        await self._publish(collection, updated)
        return updated

    async def subscribe(
        self, collection: Collection, scope: Scope, callback: SnapshotCallback
    ) -> Subscription:
        snapshot = await self.query(collection, scope)
        subscription = self._subscriptions.open(collection, scope, callback)
        subscription.deliver(snapshot)
        return subscription

    async def refresh(self) -> None:
        """Re-deliver current snapshots to every subscriber."""
        for subscription in list(self._subscriptions):
            subscription.deliver(await self.query(subscription.collection, subscription.scope))

    async def close(self) -> None:
        self._subscriptions.close_all()
        await self.engine.dispose()

    # ---------- internals ----------

    @asynccontextmanager
    async def _guard(self) -> AsyncGenerator[None, None]:
        try:
            yield
        except (OperationalError, InterfaceError, OSError) as exc:
            logger.warning("Store unavailable: %s", exc)
            raise StoreUnavailable(str(exc)) from exc

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self._guard():
            async with session_scope(self._session_factory) as session:
                yield session

    async def _publish(self, collection: Collection, entity: BaseEntityModel) -> None:
        for subscription in self._subscriptions.interested(collection, entity):
            subscription.deliver(await self.query(collection, subscription.scope))
