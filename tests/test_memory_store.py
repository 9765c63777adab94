"""Tests for the in-memory entity store."""

import pytest

from studykit.errors import NotFound, ValidationError
from studykit.models import Annotation, KnowledgeUnit
from studykit.storage import Collection, MemoryEntityStore, Scope


def _unit(**overrides):
    fields = dict(document_id="doc", owner_id="u1", question="q?", answer="a", page=1)
    fields.update(overrides)
    return KnowledgeUnit(**fields)


class TestMemoryEntityStore:
    """Tests for CRUD and subscriptions."""

    @pytest.fixture
    def memory(self):
        return MemoryEntityStore()

    async def test_create_and_get(self, memory):
        """Created entities can be read back."""
        unit = _unit()
        assert await memory.create(Collection.KNOWLEDGE_UNITS, unit) == unit.id
        assert await memory.get(Collection.KNOWLEDGE_UNITS, unit.id) == unit

    async def test_wrong_model_for_collection(self, memory):
        """Entities must match their collection's model."""
        with pytest.raises(ValidationError):
            await memory.create(Collection.ANNOTATIONS, _unit())

    async def test_deleted_id_never_reused(self, memory):
        """A deleted id cannot be created again."""
        unit = _unit()
        await memory.create(Collection.KNOWLEDGE_UNITS, unit)
        await memory.delete(Collection.KNOWLEDGE_UNITS, unit.id)

        with pytest.raises(ValidationError):
            await memory.create(Collection.KNOWLEDGE_UNITS, unit)

    async def test_update_missing_raises_not_found(self, memory):
        """Updating an unknown id raises NotFound."""
        with pytest.raises(NotFound) as info:
            await memory.update(Collection.KNOWLEDGE_UNITS, "nope", {"question": "x"})
        assert info.value.entity_id == "nope"

    async def test_update_rejects_unknown_field(self, memory):
        """Unknown fields are refused."""
        unit = _unit()
        await memory.create(Collection.KNOWLEDGE_UNITS, unit)
        with pytest.raises(ValidationError):
            await memory.update(Collection.KNOWLEDGE_UNITS, unit.id, {"colour": "red"})

    async def test_scope_hides_other_owners(self, memory):
        """Scoped calls cannot see another owner's entities."""
        unit = _unit(owner_id="someone-else")
        await memory.create(Collection.KNOWLEDGE_UNITS, unit)
        mine = Scope(document_id="doc", owner_id="u1")

        with pytest.raises(NotFound):
            await memory.get(Collection.KNOWLEDGE_UNITS, unit.id, mine)
        with pytest.raises(NotFound):
            await memory.delete(Collection.KNOWLEDGE_UNITS, unit.id, mine)
        assert await memory.query(Collection.KNOWLEDGE_UNITS, mine) == []

    async def test_increment_adds_to_current_value(self, memory):
        """Increments add to the stored value."""
        unit = _unit(correct_count=2)
        await memory.create(Collection.KNOWLEDGE_UNITS, unit)

        await memory.increment(Collection.KNOWLEDGE_UNITS, unit.id, {"correct_count": 1})
        updated = await memory.increment(Collection.KNOWLEDGE_UNITS, unit.id, {"correct_count": 1})

        assert updated.correct_count == 4

    async def test_increment_rejects_negative_step(self, memory):
        """Counters never go down."""
        unit = _unit()
        await memory.create(Collection.KNOWLEDGE_UNITS, unit)
        with pytest.raises(ValidationError):
            await memory.increment(Collection.KNOWLEDGE_UNITS, unit.id, {"correct_count": -1})

    async def test_subscription_receives_snapshots(self, memory):
        """Subscribers get a snapshot on every change in scope."""
        scope = Scope(document_id="doc", owner_id="u1")
        snapshots = []
        subscription = await memory.subscribe(Collection.KNOWLEDGE_UNITS, scope, snapshots.append)

        first = _unit()
        await memory.create(Collection.KNOWLEDGE_UNITS, first)
        await memory.create(Collection.KNOWLEDGE_UNITS, _unit(owner_id="other"))
        await memory.delete(Collection.KNOWLEDGE_UNITS, first.id)

        assert [len(s) for s in snapshots] == [0, 1, 0]
        subscription.close()

    async def test_closed_subscription_stops_updates(self, memory):
        """Closing a subscription detaches it."""
        scope = Scope(document_id="doc")
        snapshots = []
        with await memory.subscribe(Collection.KNOWLEDGE_UNITS, scope, snapshots.append):
            assert memory.subscription_count == 1

        await memory.create(Collection.KNOWLEDGE_UNITS, _unit())
        assert memory.subscription_count == 0
        assert len(snapshots) == 1

    async def test_failing_subscriber_does_not_break_writes(self, memory):
        """A raising callback does not fail the write."""
        def explode(snapshot):
            if snapshot:
                raise RuntimeError("boom")

        await memory.subscribe(Collection.ANNOTATIONS, Scope(), explode)
        annotation = Annotation(document_id="doc", owner_id="u1", text="t", page=1, color="#fff")
        await memory.create(Collection.ANNOTATIONS, annotation)

        assert await memory.get(Collection.ANNOTATIONS, annotation.id) == annotation

    async def test_close_releases_subscriptions(self, memory):
        """Closing the store drops every subscription."""
        await memory.subscribe(Collection.ANNOTATIONS, Scope(), lambda s: None)
        await memory.subscribe(Collection.KNOWLEDGE_UNITS, Scope(), lambda s: None)
        await memory.close()
        assert memory.subscription_count == 0


class TestStoredEntitiesAreIsolated:
    """Tests that callers never hold the store's own objects."""

    @pytest.fixture
    def memory(self):
        return MemoryEntityStore()

    async def test_editing_created_entity_leaves_store_alone(self, memory):
        """Changing the object passed to create does not change the stored copy."""
        unit = _unit()
        await memory.create(Collection.KNOWLEDGE_UNITS, unit)

        unit.correct_count = -5

        assert (await memory.get(Collection.KNOWLEDGE_UNITS, unit.id)).correct_count == 0

    async def test_editing_returned_entity_leaves_store_alone(self, memory):
        """Entities returned by get, query and update are detached copies."""
        unit = _unit()
        await memory.create(Collection.KNOWLEDGE_UNITS, unit)
        scope = Scope(document_id="doc", owner_id="u1")

        (await memory.get(Collection.KNOWLEDGE_UNITS, unit.id)).correct_count = 7
        (await memory.query(Collection.KNOWLEDGE_UNITS, scope))[0].question = "changed?"
        updated = await memory.update(Collection.KNOWLEDGE_UNITS, unit.id, {"answer": "b"})
        updated.incorrect_count = 9

        stored = await memory.get(Collection.KNOWLEDGE_UNITS, unit.id)
        assert (stored.correct_count, stored.incorrect_count) == (0, 0)
        assert stored.question == "q?"
        assert stored.answer == "b"

    async def test_editing_snapshot_leaves_store_alone(self, memory):
        """Subscription snapshots cannot be used to rewrite stored entities."""
        annotation = Annotation(document_id="doc", owner_id="u1", text="t", page=1, color="#fff")
        await memory.create(Collection.ANNOTATIONS, annotation)
        snapshots = []
        await memory.subscribe(Collection.ANNOTATIONS, Scope(document_id="doc"), snapshots.append)

        snapshots[0][0].note = "sneaky"
        snapshots[0][0].position.x = 999

        stored = await memory.get(Collection.ANNOTATIONS, annotation.id)
        assert stored.note is None
        assert stored.position.x == annotation.position.x
