"""Study session engine.

Components, leaf first:
1. chapters - page to chapter resolution
2. annotations - highlight lifecycle and knowledge unit derivation
3. knowledge_units - flashcard lifecycle, filters, review counters
4. quiz - review session state machine

Managers are bound to a StudyContext and one document, and keep a live
snapshot of their collection while open.
"""

from .annotations import AnnotationManager, derive_knowledge_unit
from .chapters import chapter_contains, resolve_chapter
from .knowledge_units import KnowledgeUnitManager, filter_by_chapter, filter_by_page
from .quiz import SessionEngine, percentage, select_pool

__all__ = [
    # Chapters
    "resolve_chapter",
    "chapter_contains",
    # Annotations
    "AnnotationManager",
    "derive_knowledge_unit",
    # Knowledge units
    "KnowledgeUnitManager",
    "filter_by_page",
    "filter_by_chapter",
    # Quiz
    "SessionEngine",
    "select_pool",
    "percentage",
]
