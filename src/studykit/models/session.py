"""Review session models.

A ReviewSession is never stored. It is frozen: every step produces a new
instance, so a failed step leaves the caller's session untouched.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from .base import SessionState, new_id


class QuizSelector(BaseModel):
    """Which knowledge units a quiz draws from."""

    mode: Literal["all", "chapter", "page"] = "all"
    chapter: Optional[str] = None
    page: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _check_mode(self) -> "QuizSelector":
        if self.mode == "chapter" and not self.chapter:
            raise ValueError("chapter selector needs a chapter title")
        if self.mode == "page" and self.page is None:
            raise ValueError("page selector needs a page number")
        return self

    @classmethod
    def all(cls) -> "QuizSelector":
        return cls(mode="all")

    @classmethod
    def for_chapter(cls, title: str) -> "QuizSelector":
        return cls(mode="chapter", chapter=title)

    @classmethod
    def for_page(cls, page: int) -> "QuizSelector":
        return cls(mode="page", page=page)


class ReviewSession(BaseModel):
    """One linear pass over a shuffled pool of knowledge units."""

    id: str = Field(default_factory=new_id)
    unit_ids: tuple[str, ...] = Field(..., min_length=1)
    current_index: int = Field(default=0, ge=0)
    score: int = Field(default=0, ge=0)
    completed: bool = False

    class Config:
        frozen = True

    @model_validator(mode="after")
    def _check_invariants(self) -> "ReviewSession":
        total = len(self.unit_ids)
        if self.current_index > total:
            raise ValueError("current_index past the end of the session")
        if self.score > self.current_index:
            raise ValueError("score exceeds answered questions")
        if self.completed != (self.current_index == total):
            raise ValueError("completed must hold exactly when every question is answered")
        return self

    @property
    def total_questions(self) -> int:
        return len(self.unit_ids)

    @property
    def state(self) -> SessionState:
        return SessionState.COMPLETED if self.completed else SessionState.IN_PROGRESS

    @property
    def current_unit_id(self) -> Optional[str]:
        if self.completed:
            return None
        return self.unit_ids[self.current_index]

    @property
    def remaining(self) -> int:
        return self.total_questions - self.current_index

    @property
    def accuracy(self) -> Optional[float]:
        """Running share of correct answers so far."""
        if not self.current_index:
            return None
        return self.score / self.current_index

    def advance(self, scored: bool) -> "ReviewSession":
        """Return the session one step further along."""
        index = self.current_index + 1
        return self.model_copy(
            update={
                "current_index": index,
                "score": self.score + (1 if scored else 0),
                "completed": index == self.total_questions,
            }
        )


class QuizSummary(BaseModel):
    """Final result of a completed session."""

    score: int
    total_questions: int
    percentage: int = Field(..., ge=0, le=100)
