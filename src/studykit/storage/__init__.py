"""Storage layer for the study session engine.

Defines the Entity Store contract and two implementations: an in-process
store (guest mode, tests) and a SQLAlchemy-backed store (PostgreSQL via
asyncpg by default).
"""

from .base import (
    Collection,
    EntityStore,
    Scope,
    SnapshotCallback,
    Subscription,
)
from .database import Base, create_engine, init_db
from .memory import MemoryEntityStore
from .orm_models import AnnotationORM, DocumentORM, KnowledgeUnitORM, RetiredIdORM
from .repositories import (
    AnnotationRepository,
    DocumentRepository,
    KnowledgeUnitRepository,
)
from .sql import SqlEntityStore

__all__ = [
    # Contract
    "Collection",
    "EntityStore",
    "Scope",
    "SnapshotCallback",
    "Subscription",
    # Stores
    "MemoryEntityStore",
    "SqlEntityStore",
    # Database
    "Base",
    "create_engine",
    "init_db",
    # ORM Models
    "DocumentORM",
    "AnnotationORM",
    "KnowledgeUnitORM",
    "RetiredIdORM",
    # Repositories
    "DocumentRepository",
    "AnnotationRepository",
    "KnowledgeUnitRepository",
]
