"""Explicit caller context: who is acting and where writes go."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from studykit.models import Document, new_id
from studykit.storage import Collection, EntityStore, MemoryEntityStore, Scope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """What the identity provider reports about the current user."""

    owner_id: Optional[str]
    authenticated: bool

    @classmethod
    def guest(cls) -> "Identity":
        return cls(owner_id=None, authenticated=False)


@dataclass(frozen=True)
class StudyContext:
    """Owner and store handed to every manager at construction."""

    owner_id: str
    store: EntityStore = field(compare=False)
    authenticated: bool = True

    @classmethod
    def for_identity(cls, identity: Identity, remote_store: EntityStore) -> "StudyContext":
        """Route writes to the remote store, or to a local one for guests.

        Guest writes live only as long as the returned context.
        """
        if identity.authenticated and identity.owner_id:
            return cls(owner_id=identity.owner_id, store=remote_store, authenticated=True)

        owner_id = identity.owner_id or f"guest-{new_id()}"
        logger.info("Unauthenticated session for %s: keeping writes in memory", owner_id)
        return cls(owner_id=owner_id, store=MemoryEntityStore(), authenticated=False)

    def scope(self, document_id: str) -> Scope:
        return Scope(document_id=document_id, owner_id=self.owner_id)


async def load_document(context: StudyContext, document_id: str) -> Document:
    """Fetch document metadata owned by the context's user. Raises NotFound."""
    return await context.store.get(
        Collection.DOCUMENTS, document_id, Scope(owner_id=context.owner_id)
    )
