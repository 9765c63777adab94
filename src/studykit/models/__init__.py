"""Domain models for the study session engine.

All models are pydantic models. Stored entities (documents, annotations,
knowledge units) derive from `BaseEntityModel` and load from ORM rows via
`from_attributes = True`. Review sessions are frozen and never stored.

Model Hierarchy:
- Document → Chapters
- Document → Annotations → (derived) KnowledgeUnits
- KnowledgeUnits → ReviewSession (ordered ids)
"""

from .annotation import Annotation, Position
from .base import (
    BaseEntityModel,
    Difficulty,
    SessionState,
    new_id,
    utcnow,
)
from .document import Chapter, Document
from .knowledge_unit import (
    CONTENT_FIELDS,
    STAT_FIELDS,
    KnowledgeUnit,
    KnowledgeUnitDraft,
    ReviewTotals,
    UnitStats,
    review_totals,
)
from .session import QuizSelector, QuizSummary, ReviewSession

__all__ = [
    # Base types
    "BaseEntityModel",
    "Difficulty",
    "SessionState",
    "new_id",
    "utcnow",
    # Document
    "Chapter",
    "Document",
    # Annotation
    "Annotation",
    "Position",
    # Knowledge unit
    "CONTENT_FIELDS",
    "STAT_FIELDS",
    "KnowledgeUnit",
    "KnowledgeUnitDraft",
    "ReviewTotals",
    "UnitStats",
    "review_totals",
    # Session
    "QuizSelector",
    "QuizSummary",
    "ReviewSession",
]
