"""Tests for the annotation manager and derivation."""

import pytest

from studykit.engine import derive_knowledge_unit
from studykit.errors import NotFound, ValidationError
from studykit.models import Annotation, Difficulty, Position
from studykit.storage import Collection


class TestAnnotationManager:
    """Tests for highlight lifecycle."""

    async def test_create_appears_in_live_list(self, annotations):
        """A created highlight shows up in the live list."""
        annotation = await annotations.create("Cells divide by mitosis", page=4)

        assert annotations.get(annotation.id) == annotation
        assert annotation.color == "#ffff00"
        assert annotation.position == Position()

    async def test_live_list_most_recent_first(self, annotations):
        """Newest highlights come first."""
        first = await annotations.create("first", page=1)
        second = await annotations.create("second", page=1)

        assert [a.id for a in annotations.annotations] == [second.id, first.id]

    async def test_on_page(self, annotations):
        """Only highlights on the requested page are returned."""
        await annotations.create("p1", page=1)
        on_two = await annotations.create("p2", page=2, color="#ff0000")

        assert annotations.on_page(2) == [on_two]

    @pytest.mark.parametrize("text", ["", "   "])
    async def test_empty_text_rejected(self, annotations, store, text):
        """Blank highlight text is refused before anything is stored."""
        with pytest.raises(ValidationError):
            await annotations.create(text, page=1)
        assert annotations.annotations == []

    @pytest.mark.parametrize("page", [0, 21])
    async def test_page_outside_document_rejected(self, annotations, page):
        """Pages outside the document are refused."""
        with pytest.raises(ValidationError):
            await annotations.create("text", page=page)

    async def test_set_and_clear_note(self, annotations):
        """Notes are trimmed, and blank or None clears them."""
        annotation = await annotations.create("text", page=1)

        noted = await annotations.set_note(annotation.id, "  remember this ")
        assert noted.note == "remember this"
        assert annotations.get(annotation.id).note == "remember this"

        cleared = await annotations.set_note(annotation.id, None)
        again = await annotations.set_note(annotation.id, "")
        assert cleared.note is None
        assert again.note is None

    async def test_local_edit_does_not_reach_store(self, annotations, store):
        """Mutating a returned annotation changes nothing until set_note is called."""
        annotation = await annotations.create("text", page=1)

        annotation.note = "never saved"
        annotation.page = 9

        stored = await store.get(annotations.collection, annotation.id)
        assert (stored.note, stored.page) == (None, 1)
        assert annotations.get(annotation.id).note is None

    async def test_delete_leaves_derived_unit(self, annotations, units):
        """Deleting a highlight keeps units derived from it."""
        annotation = await annotations.create("Photosynthesis", page=8)
        unit = await units.create_from_draft(annotations.derive_knowledge_unit(annotation))

        await annotations.delete(annotation.id)

        assert annotations.get(annotation.id) is None
        assert units.get(unit.id).source_annotation_id == annotation.id

    async def test_delete_missing(self, annotations):
        """Deleting an unknown highlight raises NotFound."""
        with pytest.raises(NotFound):
            await annotations.delete("missing")

    async def test_cannot_touch_other_owners_annotation(self, annotations, store, document):
        """Another owner's highlight is invisible to this manager."""
        foreign = Annotation(document_id=document.id, owner_id="other", text="x", page=1, color="#fff")
        await store.create(Collection.ANNOTATIONS, foreign)

        assert annotations.get(foreign.id) is None
        with pytest.raises(NotFound):
            await annotations.set_note(foreign.id, "mine now")


class TestDeriveKnowledgeUnit:
    """Tests for turning highlights into question/answer drafts."""

    def _annotation(self, text, page=3, note=None):
        return Annotation(document_id="d", owner_id="u", text=text, page=page, color="#ff0", note=note)

    def test_short_text_quoted_whole(self, document):
        """Short text is quoted without an ellipsis."""
        draft = derive_knowledge_unit(self._annotation("Osmosis"), document.chapters)

        assert draft.question == 'What is the significance of: "Osmosis"?'
        assert draft.answer == "Osmosis"
        assert draft.chapter == "Intro"
        assert draft.difficulty == Difficulty.MEDIUM

    def test_long_text_truncated_with_ellipsis(self, document):
        """Long text is cut at the preview length and marked."""
        text = "x" * 150
        draft = derive_knowledge_unit(self._annotation(text), document.chapters)

        assert draft.question == f'What is the significance of: "{"x" * 100}..."?'
        assert draft.answer == text

    def test_preview_length_override(self, document):
        """An explicit preview length replaces the configured one."""
        draft = derive_knowledge_unit(self._annotation("abcdef"), document.chapters, preview_length=3)
        assert '"abc..."' in draft.question

    def test_zero_preview_length_is_honoured(self, document):
        """An explicit zero preview length is not replaced by the default."""
        draft = derive_knowledge_unit(self._annotation("abcdef"), document.chapters, preview_length=0)
        assert draft.question == 'What is the significance of: "..."?'

    def test_note_appended_on_new_line(self, document):
        """The note follows the text in the answer."""
        draft = derive_knowledge_unit(self._annotation("Ribosome", note="makes proteins"), document.chapters)
        assert draft.answer == "Ribosome\n\nNote: makes proteins"

    @pytest.mark.parametrize("text", ["a", "Mitosis " * 40, "line one\nline two"])
    def test_answer_contains_full_text(self, document, text):
        """The answer always starts with the full highlight text."""
        draft = derive_knowledge_unit(self._annotation(text, note="n"), document.chapters)
        assert text in draft.answer

    def test_links_back_to_source(self, document):
        """The draft records the highlight it came from."""
        annotation = self._annotation("Enzyme", page=12)
        draft = derive_knowledge_unit(annotation, document.chapters)

        assert draft.source_annotation_id == annotation.id
        assert draft.page == 12
        assert draft.chapter == "Body"

    def test_no_chapter_when_unmapped(self):
        """Without chapters the draft has no chapter."""
        draft = derive_knowledge_unit(self._annotation("Enzyme"), [])
        assert draft.chapter is None
