"""Tests for domain models."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from studykit.models import (
    Chapter,
    Document,
    KnowledgeUnit,
    QuizSelector,
    ReviewSession,
    SessionState,
    review_totals,
)


class TestDocument:
    """Tests for document metadata validation."""

    def test_chapter_end_before_start(self):
        """A chapter cannot end before it starts."""
        with pytest.raises(PydanticValidationError):
            Chapter(title="Broken", start_page=5, end_page=2)

    def test_chapters_must_not_go_backwards(self):
        """Chapter starts must not decrease."""
        with pytest.raises(PydanticValidationError):
            Document(
                owner_id="u",
                title="t",
                file_name="t.pdf",
                total_pages=10,
                chapters=[
                    Chapter(title="Late", start_page=6, end_page=10),
                    Chapter(title="Early", start_page=1, end_page=5),
                ],
            )

    def test_empty_chapters_allowed(self):
        """A document may have no chapters."""
        doc = Document(owner_id="u", title="t", file_name="t.pdf", total_pages=3)
        assert doc.chapters == []
        assert doc.contains_page(3)
        assert not doc.contains_page(0)
        assert not doc.contains_page(4)


class TestReviewSession:
    """Tests for session invariants."""

    def test_new_session_in_progress(self):
        """A new session starts at the first unit."""
        session = ReviewSession(unit_ids=("a", "b"))
        assert session.state == SessionState.IN_PROGRESS
        assert session.total_questions == 2
        assert session.current_unit_id == "a"
        assert session.accuracy is None

    def test_empty_session_rejected(self):
        """A session needs at least one unit."""
        with pytest.raises(PydanticValidationError):
            ReviewSession(unit_ids=())

    def test_score_above_index_rejected(self):
        """Score cannot exceed answered questions."""
        with pytest.raises(PydanticValidationError):
            ReviewSession(unit_ids=("a", "b"), current_index=1, score=2)

    def test_completed_flag_must_match_index(self):
        """Completed is true only past the last unit."""
        with pytest.raises(PydanticValidationError):
            ReviewSession(unit_ids=("a",), current_index=1, score=0, completed=False)
        with pytest.raises(PydanticValidationError):
            ReviewSession(unit_ids=("a", "b"), current_index=1, completed=True)

    def test_advance_returns_new_session(self):
        """Advancing leaves the original session untouched."""
        session = ReviewSession(unit_ids=("a", "b"))
        after = session.advance(scored=True)

        assert session.current_index == 0
        assert after.current_index == 1
        assert after.score == 1
        assert after.current_unit_id == "b"
        assert after.id == session.id

    def test_session_is_frozen(self):
        """Sessions cannot be changed in place."""
        session = ReviewSession(unit_ids=("a",))
        with pytest.raises(PydanticValidationError):
            session.score = 1


class TestQuizSelector:
    def test_chapter_requires_title(self):
        """The chapter selector needs a title."""
        with pytest.raises(PydanticValidationError):
            QuizSelector(mode="chapter")

    def test_page_requires_number(self):
        """The page selector needs a page."""
        with pytest.raises(PydanticValidationError):
            QuizSelector(mode="page")

    def test_constructors(self):
        """Selector helpers build valid selectors."""
        assert QuizSelector.for_page(3).page == 3
        assert QuizSelector.for_chapter("Intro").chapter == "Intro"
        assert QuizSelector.all().mode == "all"


class TestReviewTotals:
    def test_accuracy_over_units(self):
        """Accuracy is correct over reviewed answers."""
        units = [
            KnowledgeUnit(document_id="d", owner_id="u", question="q", answer="a", page=1,
                          correct_count=3, incorrect_count=1),
            KnowledgeUnit(document_id="d", owner_id="u", question="q", answer="a", page=1),
        ]
        totals = review_totals(units)

        assert totals.units == 2
        assert totals.reviewed_units == 1
        assert totals.accuracy == pytest.approx(0.75)
        assert units[0].accuracy == pytest.approx(0.75)
        assert units[1].accuracy is None
