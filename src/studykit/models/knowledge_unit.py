"""Knowledge unit (flashcard) models."""

from datetime import datetime
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from .base import BaseEntityModel, Difficulty

# Fields only the session engine may write.
STAT_FIELDS = frozenset({"correct_count", "incorrect_count", "last_reviewed_at"})

# Fields a content edit may touch.
CONTENT_FIELDS = frozenset({"question", "answer", "page", "chapter", "difficulty"})


class KnowledgeUnit(BaseEntityModel):
    """
    Question/answer study artifact.

    `source_annotation_id` is a plain lookup key. Deleting the annotation
    leaves the unit in place.
    """

    document_id: str
    owner_id: str
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    page: int = Field(..., ge=1)
    chapter: Optional[str] = None
    difficulty: Difficulty = Difficulty.MEDIUM
    correct_count: int = Field(default=0, ge=0)
    incorrect_count: int = Field(default=0, ge=0)
    last_reviewed_at: Optional[datetime] = None
    source_annotation_id: Optional[str] = None

    @property
    def review_count(self) -> int:
        return self.correct_count + self.incorrect_count

    @property
    def accuracy(self) -> Optional[float]:
        """Share of correct answers, or None if never reviewed."""
        if not self.review_count:
            return None
        return self.correct_count / self.review_count

    @property
    def is_derived(self) -> bool:
        return self.source_annotation_id is not None

    @property
    def stats(self) -> "UnitStats":
        return UnitStats(
            unit_id=self.id,
            correct_count=self.correct_count,
            incorrect_count=self.incorrect_count,
            last_reviewed_at=self.last_reviewed_at,
        )


class UnitStats(BaseModel):
    """Performance counters of one unit after an answer was recorded."""

    unit_id: str
    correct_count: int = Field(..., ge=0)
    incorrect_count: int = Field(..., ge=0)
    last_reviewed_at: Optional[datetime] = None


class KnowledgeUnitDraft(BaseModel):
    """Unsaved knowledge unit content, e.g. derived from an annotation."""

    question: str
    answer: str
    page: int = Field(..., ge=1)
    chapter: Optional[str] = None
    difficulty: Difficulty = Difficulty.MEDIUM
    source_annotation_id: Optional[str] = None


class ReviewTotals(BaseModel):
    """Aggregate accuracy over a set of units."""

    units: int = 0
    reviewed_units: int = 0
    correct: int = 0
    incorrect: int = 0

    @property
    def accuracy(self) -> Optional[float]:
        answered = self.correct + self.incorrect
        if not answered:
            return None
        return self.correct / answered


def review_totals(units: Iterable[KnowledgeUnit]) -> ReviewTotals:
    """Sum the performance counters of `units`."""
    totals = ReviewTotals()
    for unit in units:
        totals.units += 1
        if unit.review_count:
            totals.reviewed_units += 1
        totals.correct += unit.correct_count
        totals.incorrect += unit.incorrect_count
    return totals
