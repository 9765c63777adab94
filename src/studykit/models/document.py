"""Document metadata models."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from .base import BaseEntityModel, utcnow


class Chapter(BaseModel):
    """Named page range inside a document (inclusive on both ends)."""

    title: str = Field(..., min_length=1)
    start_page: int = Field(..., ge=1)
    end_page: int = Field(..., ge=1)

    @model_validator(mode="after")
    def _check_range(self) -> "Chapter":
        if self.end_page < self.start_page:
            raise ValueError(
                f"Chapter {self.title!r} ends ({self.end_page}) before it starts ({self.start_page})"
            )
        return self

    def contains(self, page: int) -> bool:
        return self.start_page <= page <= self.end_page


class Document(BaseEntityModel):
    """
    Uploaded document as seen by the engine.

    Read-only here: it supplies page bounds and chapter ranges. Overlapping
    chapter ranges are accepted; chapter resolution picks the first match.
    """

    owner_id: str
    title: str
    file_name: str
    total_pages: int = Field(..., ge=1)
    uploaded_at: datetime = Field(default_factory=utcnow)
    chapters: list[Chapter] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_chapters(self) -> "Document":
        previous_start = 0
        for chapter in self.chapters:
            if chapter.start_page < previous_start:
                raise ValueError("Chapters must be listed in non-decreasing page order")
            previous_start = chapter.start_page
        return self

    def contains_page(self, page: int) -> bool:
        """Check whether a page number lies within the document."""
        return 1 <= page <= self.total_pages

    @property
    def chapter_titles(self) -> list[str]:
        return [c.title for c in self.chapters]
