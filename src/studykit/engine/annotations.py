"""Annotation lifecycle and knowledge unit derivation."""

import logging
from typing import Iterable, Optional

from pydantic import ValidationError as PydanticValidationError

from studykit.config import settings
from studykit.errors import ValidationError
from studykit.models import (
    Annotation,
    Chapter,
    Difficulty,
    Document,
    KnowledgeUnitDraft,
    Position,
)
from studykit.storage import Collection

from .chapters import resolve_chapter
from .live import LiveCollection

logger = logging.getLogger(__name__)

QUESTION_TEMPLATE = 'What is the significance of: "{preview}"?'
NOTE_SEPARATOR = "\n\nNote: "


def derive_knowledge_unit(
    annotation: Annotation,
    chapters: Iterable[Chapter],
    preview_length: Optional[int] = None,
) -> KnowledgeUnitDraft:
    """Turn a highlight into an unsaved question/answer pair.

    The question quotes a preview of the highlighted text; the answer is
    the full text, followed by the note when there is one.
    """
    limit = settings.question_preview_length if preview_length is None else preview_length
    text = annotation.text
    preview = text[:limit] + "..." if len(text) > limit else text

    answer = text
    if annotation.note:
        answer += NOTE_SEPARATOR + annotation.note

    return KnowledgeUnitDraft(
        question=QUESTION_TEMPLATE.format(preview=preview),
        answer=answer,
        page=annotation.page,
        chapter=resolve_chapter(annotation.page, chapters),
        difficulty=Difficulty.MEDIUM,
        source_annotation_id=annotation.id,
    )


class AnnotationManager(LiveCollection[Annotation]):
    """Creates, annotates and deletes highlights for one (document, owner).

    `annotations` is the live list, most recent first.
    """

    collection = Collection.ANNOTATIONS

    @property
    def annotations(self) -> list[Annotation]:
        return list(self._items)

    def get(self, annotation_id: str) -> Optional[Annotation]:
        """Look up an annotation in the latest snapshot."""
        return self._find(annotation_id)

    def on_page(self, page: int) -> list[Annotation]:
        return [a for a in self._items if a.page == page]

    async def create(
        self,
        text: str,
        page: int,
        position: Optional[Position] = None,
        color: Optional[str] = None,
    ) -> Annotation:
        """Store a new highlight on `page`."""
        if not text or not text.strip():
            raise ValidationError("Annotation text must not be empty")
        if not self.document.contains_page(page):
            raise ValidationError(
                f"Page {page} is outside document {self.document.id} (1-{self.document.total_pages})"
            )

        try:
            annotation = Annotation(
                document_id=self.document.id,
                owner_id=self.context.owner_id,
                text=text,
                page=page,
                position=position or Position(),
                color=color or settings.default_highlight_color,
            )
        except PydanticValidationError as exc:
            raise ValidationError(str(exc)) from exc

        await self.store.create(self.collection, annotation)
        logger.info("Annotation %s created on page %d", annotation.id, page)
        return annotation

    async def set_note(self, annotation_id: str, note: Optional[str]) -> Annotation:
        """Attach, replace or (with None or blank text) clear the note."""
        cleaned = note.strip() if note else None
        return await self.store.update(
            self.collection, annotation_id, {"note": cleaned or None}, self.scope
        )

    async def delete(self, annotation_id: str) -> None:
        """Delete a highlight. Units derived from it are left alone."""
        await self.store.delete(self.collection, annotation_id, self.scope)
        logger.info("Annotation %s deleted", annotation_id)

    def derive_knowledge_unit(
        self, annotation: Annotation, document: Optional[Document] = None
    ) -> KnowledgeUnitDraft:
        """Derive a draft against this manager's document (or `document`)."""
        return derive_knowledge_unit(annotation, (document or self.document).chapters)

    def _order(self, snapshot: list[Annotation]) -> list[Annotation]:
        return sorted(snapshot, key=lambda a: a.created_at)[::-1]
