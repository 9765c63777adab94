"""Base models and common types for the study session engine."""

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid4().hex


class Difficulty(str, Enum):
    """Author-assigned difficulty of a knowledge unit."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class SessionState(str, Enum):
    """Review session lifecycle."""

    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class BaseEntityModel(BaseModel):
    """Base class for stored entities with common fields."""

    id: str = Field(default_factory=new_id)
    created_at: datetime = Field(default_factory=utcnow)

    class Config:
        from_attributes = True  # For SQLAlchemy compatibility
