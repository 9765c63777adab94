"""Repository layer for database CRUD operations."""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studykit.models import Annotation, BaseEntityModel, Document, KnowledgeUnit, utcnow

from .base import Collection, Scope
from .database import Base
from .orm_models import AnnotationORM, DocumentORM, KnowledgeUnitORM, RetiredIdORM


class EntityRepository:
    """Repository for one collection.

    Converts between pydantic entities and ORM rows and applies scope
    filters to every statement.
    """

    orm: type[Base]
    model: type[BaseEntityModel]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, entity: BaseEntityModel) -> None:
        """Insert a new row."""
        self.session.add(self.orm(**entity.model_dump()))
        await self.session.flush()

    async def get_by_id(self, entity_id: str, scope: Optional[Scope] = None) -> Optional[BaseEntityModel]:
        """Get entity by ID, restricted to `scope`."""
        result = await self.session.execute(
            self._scoped(select(self.orm).where(self.orm.id == entity_id), scope)
        )
        row = result.scalar_one_or_none()
        return self._to_model(row) if row is not None else None

    async def list_in_scope(self, scope: Scope) -> list[BaseEntityModel]:
        """All entities in scope, oldest first."""
        result = await self.session.execute(
            self._scoped(select(self.orm), scope).order_by(self.orm.created_at, self.orm.id)
        )
        return [self._to_model(row) for row in result.scalars().all()]

    async def set_fields(
        self, entity_id: str, fields: dict[str, Any], scope: Optional[Scope] = None
    ) -> int:
        """Write only the given columns. Returns the number of rows touched."""
        result = await self.session.execute(
            self._scoped(update(self.orm).where(self.orm.id == entity_id), scope)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def add_to_counters(
        self,
        entity_id: str,
        counters: dict[str, int],
        fields: dict[str, Any],
        scope: Optional[Scope] = None,
    ) -> int:
        """Server-side `col = col + step` for each counter."""
        values: dict[str, Any] = {
            name: getattr(self.orm, name) + step for name, step in counters.items()
        }
        values.update(fields)
        result = await self.session.execute(
            self._scoped(update(self.orm).where(self.orm.id == entity_id), scope)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def remove(self, entity_id: str, scope: Optional[Scope] = None) -> int:
        result = await self.session.execute(
            self._scoped(delete(self.orm).where(self.orm.id == entity_id), scope)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    # ---------- conversion ----------

    def _scoped(self, statement, scope: Optional[Scope]):
        if scope is None:
            return statement
        if scope.document_id is not None:
            statement = statement.where(self._document_column() == scope.document_id)
        if scope.owner_id is not None:
            statement = statement.where(self.orm.owner_id == scope.owner_id)
        return statement

    def _document_column(self):
        return self.orm.document_id

    def _to_model(self, row: Base) -> BaseEntityModel:
        data = {}
        for column in row.__table__.columns:
            value = getattr(row, column.key)
            # SQLite hands back naive datetimes
            if isinstance(value, datetime) and value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            data[column.key] = value
        return self.model.model_validate(data)


class DocumentRepository(EntityRepository):
    """Repository for Document metadata."""

    orm = DocumentORM
    model = Document

    def _document_column(self):
        return DocumentORM.id


class AnnotationRepository(EntityRepository):
    """Repository for Annotation operations."""

    orm = AnnotationORM
    model = Annotation


class KnowledgeUnitRepository(EntityRepository):
    """Repository for KnowledgeUnit operations."""

    orm = KnowledgeUnitORM
    model = KnowledgeUnit


class RetiredIdRepository:
    """Tombstones for deleted ids."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def retire(self, collection: Collection, entity_id: str) -> None:
        self.session.add(
            RetiredIdORM(id=entity_id, collection=collection.value, retired_at=utcnow())
        )
        await self.session.flush()

    async def is_retired(self, entity_id: str) -> bool:
        result = await self.session.execute(
            select(RetiredIdORM.id).where(RetiredIdORM.id == entity_id)
        )
        return result.scalar_one_or_none() is not None


REPOSITORIES: dict[Collection, type[EntityRepository]] = {
    Collection.DOCUMENTS: DocumentRepository,
    Collection.ANNOTATIONS: AnnotationRepository,
    Collection.KNOWLEDGE_UNITS: KnowledgeUnitRepository,
}
