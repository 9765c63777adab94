"""Pytest configuration and fixtures."""

import random

import pytest

from studykit.context import StudyContext
from studykit.engine import AnnotationManager, KnowledgeUnitManager, SessionEngine
from studykit.models import Chapter, Document
from studykit.storage import Collection, MemoryEntityStore, SqlEntityStore

OWNER = "user-1"


@pytest.fixture
def document():
    """A 20 page document with two chapters."""
    return Document(
        owner_id=OWNER,
        title="Biology Notes",
        file_name="biology.pdf",
        total_pages=20,
        chapters=[
            Chapter(title="Intro", start_page=1, end_page=5),
            Chapter(title="Body", start_page=6, end_page=20),
        ],
    )


@pytest.fixture
async def store(document):
    """In-memory store seeded with the document."""
    memory = MemoryEntityStore()
    await memory.create(Collection.DOCUMENTS, document)
    yield memory
    await memory.close()


@pytest.fixture
async def sql_store(tmp_path, document):
    """SQLite-backed store seeded with the document."""
    sql = SqlEntityStore(database_url=f"sqlite+aiosqlite:///{tmp_path / 'studykit.db'}")
    await sql.init()
    await sql.create(Collection.DOCUMENTS, document)
    yield sql
    await sql.close()


@pytest.fixture
def context(store):
    return StudyContext(owner_id=OWNER, store=store)


@pytest.fixture
async def annotations(context, document):
    """Open annotation manager."""
    async with AnnotationManager(context, document) as manager:
        yield manager


@pytest.fixture
async def units(context, document):
    """Open knowledge unit manager."""
    async with KnowledgeUnitManager(context, document) as manager:
        yield manager


@pytest.fixture
def engine(units):
    return SessionEngine(units, rng=random.Random(7))


@pytest.fixture
async def three_units(units):
    """Three units spread over both chapters."""
    return [
        await units.create("What is a cell?", "The basic unit of life.", page=2),
        await units.create("What is DNA?", "Genetic material.", page=4),
        await units.create("What is ATP?", "Energy currency.", page=9),
    ]
