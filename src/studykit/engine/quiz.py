"""Quiz state machine.

A session moves Idle -> InProgress -> Completed and never back. Each step
returns a new ReviewSession; a step that fails leaves the old one valid.
"""

import asyncio
import logging
import random
from typing import Optional, Sequence

from studykit.config import settings
from studykit.errors import EmptyPoolError, InvalidStateError, StoreUnavailable
from studykit.models import (
    KnowledgeUnit,
    QuizSelector,
    QuizSummary,
    ReviewSession,
    SessionState,
    UnitStats,
)

from .knowledge_units import KnowledgeUnitManager, filter_by_chapter, filter_by_page

logger = logging.getLogger(__name__)


def select_pool(units: Sequence[KnowledgeUnit], selector: QuizSelector) -> list[KnowledgeUnit]:
    """Apply a selector to a snapshot of units."""
    if selector.mode == "chapter":
        return filter_by_chapter(units, selector.chapter)
    if selector.mode == "page":
        return filter_by_page(units, selector.page)
    return list(units)


def percentage(score: int, total: int) -> int:
    """100 * score / total, rounded half up."""
    return (200 * score + total) // (2 * total)


class SessionEngine:
    """Runs review sessions and records each answer on its unit."""

    def __init__(
        self,
        units: KnowledgeUnitManager,
        rng: Optional[random.Random] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize engine.

        Args:
            units: Manager used to record answers
            rng: Source of shuffles (seed it for reproducible order)
            timeout: Seconds to wait for one answer to be recorded
                (default from settings)
        """
        self.units = units
        self.rng = rng or random.Random()
        self.timeout = timeout if timeout is not None else settings.store_timeout_seconds

    @staticmethod
    def state(session: Optional[ReviewSession]) -> SessionState:
        if session is None:
            return SessionState.IDLE
        return session.state

    def start_quiz(
        self, pool: Sequence[KnowledgeUnit], selector: Optional[QuizSelector] = None
    ) -> ReviewSession:
        """Shuffle the selected units into a new session.

        Raises EmptyPoolError if the selector matches nothing.
        """
        selector = selector or QuizSelector.all()
        candidates = select_pool(pool, selector)
        if not candidates:
            raise EmptyPoolError(f"No knowledge units match selector {selector.mode}")

        unit_ids = [u.id for u in candidates]
        self.rng.shuffle(unit_ids)
        session = ReviewSession(unit_ids=tuple(unit_ids))
        logger.info("Quiz %s started with %d questions", session.id, session.total_questions)
        return session

    @staticmethod
    def current_question(
        session: ReviewSession, units: Sequence[KnowledgeUnit]
    ) -> Optional[KnowledgeUnit]:
        """The unit to ask now, or None if the session is over or the unit vanished."""
        unit_id = session.current_unit_id
        if unit_id is None:
            return None
        for unit in units:
            if unit.id == unit_id:
                return unit
        return None

    async def submit_answer(
        self, session: ReviewSession, was_correct: bool
    ) -> tuple[ReviewSession, UnitStats]:
        """Record the answer on the current unit, then advance.

        If recording fails or times out the session does not move. After a
        timeout the outcome is unknown: check the unit's counters before
        answering again.
        """
        if session.completed:
            raise InvalidStateError(f"Quiz {session.id} is already completed")

        unit_id = session.current_unit_id
        try:
            stats = await asyncio.wait_for(
                self.units.record_outcome(unit_id, was_correct), timeout=self.timeout
            )
        except asyncio.TimeoutError as exc:
            logger.warning("Recording answer for unit %s timed out after %ss", unit_id, self.timeout)
            raise StoreUnavailable(
                f"No confirmation for unit {unit_id} within {self.timeout}s"
            ) from exc

        updated = session.advance(scored=was_correct)
        if updated.completed:
            logger.info(
                "Quiz %s completed: %d/%d", updated.id, updated.score, updated.total_questions
            )
        return updated, stats

    @staticmethod
    def skip(session: ReviewSession) -> ReviewSession:
        """Move past the current unit without scoring it.

        For units deleted mid-quiz; no counters are touched.
        """
        if session.completed:
            raise InvalidStateError(f"Quiz {session.id} is already completed")
        logger.info("Quiz %s skipped unit %s", session.id, session.current_unit_id)
        return session.advance(scored=False)

    @staticmethod
    def summary(session: ReviewSession) -> QuizSummary:
        """Score and rounded percentage of a completed session."""
        if not session.completed:
            raise InvalidStateError(f"Quiz {session.id} is still in progress")
        total = session.total_questions
        return QuizSummary(
            score=session.score,
            total_questions=total,
            percentage=percentage(session.score, total),
        )
