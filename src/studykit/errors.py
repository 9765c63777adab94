"""Exception hierarchy for the study session engine.

Every failure is raised synchronously from the call that caused it. Nothing
is retried automatically: a retried stat mutation could count twice.
"""

from typing import Optional


class StudyKitError(Exception):
    """Base class for all engine errors."""


class ValidationError(StudyKitError):
    """Input has the wrong shape or is out of range."""


class NotFound(StudyKitError):
    """A referenced entity does not exist (or is outside the caller's scope)."""

    def __init__(self, collection: str, entity_id: str, message: Optional[str] = None):
        self.collection = collection
        self.entity_id = entity_id
        super().__init__(message or f"{collection}/{entity_id} not found")


class EmptyPoolError(StudyKitError):
    """A quiz selector matched no knowledge units."""


class InvalidStateError(StudyKitError):
    """Operation attempted on a session in the wrong state."""


class StoreUnavailable(StudyKitError):
    """The backing store failed or did not answer in time.

    The outcome of the mutation is unknown; re-read before retrying.
    """
