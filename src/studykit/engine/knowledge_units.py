"""Knowledge unit lifecycle, filtering and performance counters."""

import logging
from typing import Any, Iterable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from studykit.errors import ValidationError
from studykit.models import (
    CONTENT_FIELDS,
    STAT_FIELDS,
    Difficulty,
    KnowledgeUnit,
    KnowledgeUnitDraft,
    ReviewTotals,
    UnitStats,
    review_totals,
    utcnow,
)
from studykit.storage import Collection

from .chapters import chapter_contains, resolve_chapter
from .live import LiveCollection

logger = logging.getLogger(__name__)


def filter_by_page(units: Iterable[KnowledgeUnit], page: int) -> list[KnowledgeUnit]:
    """Units on `page`, in input order."""
    return [u for u in units if u.page == page]


def filter_by_chapter(units: Iterable[KnowledgeUnit], chapter_title: str) -> list[KnowledgeUnit]:
    """Units tagged with `chapter_title`, in input order."""
    return [u for u in units if u.chapter == chapter_title]


class KnowledgeUnitManager(LiveCollection[KnowledgeUnit]):
    """Flashcards of one (document, owner).

    Content edits go through `update`. The review counters are written only
    by `record_outcome`, which the session engine calls once per answer.
    """

    collection = Collection.KNOWLEDGE_UNITS

    filter_by_page = staticmethod(filter_by_page)
    filter_by_chapter = staticmethod(filter_by_chapter)

    @property
    def units(self) -> list[KnowledgeUnit]:
        return list(self._items)

    def get(self, unit_id: str) -> Optional[KnowledgeUnit]:
        """Look up a unit in the latest snapshot."""
        return self._find(unit_id)

    def totals(self) -> ReviewTotals:
        return review_totals(self._items)

    def chapters_with_units(self) -> list[str]:
        """Chapter titles in document order that have at least one unit."""
        used = {u.chapter for u in self._items}
        return [title for title in self.document.chapter_titles if title in used]

    async def create(
        self,
        question: str,
        answer: str,
        page: int,
        difficulty: Union[Difficulty, str] = Difficulty.MEDIUM,
        chapter: Optional[str] = None,
        source_annotation_id: Optional[str] = None,
    ) -> KnowledgeUnit:
        """Store a new unit with zeroed counters.

        The chapter is resolved from the page when not given.
        """
        _require_text(question=question, answer=answer)
        chapter = self._checked_chapter(page, chapter)

        try:
            unit = KnowledgeUnit(
                document_id=self.document.id,
                owner_id=self.context.owner_id,
                question=question,
                answer=answer,
                page=page,
                chapter=chapter,
                difficulty=difficulty,
                source_annotation_id=source_annotation_id,
            )
        except PydanticValidationError as exc:
            raise ValidationError(str(exc)) from exc

        await self.store.create(self.collection, unit)
        logger.info("Knowledge unit %s created on page %d", unit.id, page)
        return unit

    async def create_from_draft(self, draft: KnowledgeUnitDraft) -> KnowledgeUnit:
        return await self.create(**draft.model_dump())

    async def update(self, unit_id: str, fields: dict[str, Any]) -> KnowledgeUnit:
        """Edit question, answer, page, chapter or difficulty."""
        stats = set(fields) & STAT_FIELDS
        if stats:
            raise ValidationError(f"Review counters {sorted(stats)} are not editable")
        unknown = set(fields) - CONTENT_FIELDS
        if unknown:
            raise ValidationError(f"Unknown knowledge unit fields {sorted(unknown)}")
        _require_text(**{k: v for k, v in fields.items() if k in ("question", "answer")})

        changes = dict(fields)
        if "page" in changes or "chapter" in changes:
            page = changes.get("page")
            if page is None:
                page = (await self.store.get(self.collection, unit_id, self.scope)).page
            changes["chapter"] = self._checked_chapter(page, changes.get("chapter"))

        return await self.store.update(self.collection, unit_id, changes, self.scope)

    async def delete(self, unit_id: str) -> None:
        await self.store.delete(self.collection, unit_id, self.scope)
        logger.info("Knowledge unit %s deleted", unit_id)

    async def record_outcome(self, unit_id: str, was_correct: bool) -> UnitStats:
        """Count one answer and stamp the review time.

        The increment happens inside the store, so concurrent answers on
        the same unit are never lost. Raises NotFound if the unit is gone.
        """
        counter = "correct_count" if was_correct else "incorrect_count"
        unit = await self.store.increment(
            self.collection,
            unit_id,
            {counter: 1},
            {"last_reviewed_at": utcnow()},
            self.scope,
        )
        return unit.stats

    def _checked_chapter(self, page: int, chapter: Optional[str]) -> Optional[str]:
        if not self.document.contains_page(page):
            raise ValidationError(
                f"Page {page} is outside document {self.document.id} (1-{self.document.total_pages})"
            )
        if chapter is None:
            return resolve_chapter(page, self.document.chapters)
        if not chapter_contains(self.document.chapters, chapter, page):
            raise ValidationError(f"Chapter {chapter!r} does not cover page {page}")
        return chapter


def _require_text(**values: str) -> None:
    for name, value in values.items():
        if value is None or not str(value).strip():
            raise ValidationError(f"{name} must not be empty")
