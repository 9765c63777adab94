"""Annotation (highlight) models."""

from typing import Optional

from pydantic import BaseModel, Field

from .base import BaseEntityModel


class Position(BaseModel):
    """Highlight rectangle on the rendered page."""

    x: float = 0.0
    y: float = 0.0
    width: float = Field(default=100.0, ge=0.0)
    height: float = Field(default=20.0, ge=0.0)


class Annotation(BaseEntityModel):
    """A highlighted span of document text with an optional note."""

    document_id: str
    owner_id: str
    text: str = Field(..., min_length=1)
    page: int = Field(..., ge=1)
    position: Position = Field(default_factory=Position)
    color: str
    note: Optional[str] = None

    @property
    def has_note(self) -> bool:
        return bool(self.note)
