"""Document Store Factory for Persistence Layer.

Environment-based store selection with in-memory as the default.
Strategy:
- .env (runtime): REPOSITORY_BACKEND=mongodb (production persistence)
- .env.test (pytest): REPOSITORY_BACKEND=inmemory (fast, isolated tests)
- Default: inmemory (safe fallback if env vars not set)

Usage:
    from comensales.infrastructure.persistence.factory import (
        create_document_store,
        get_document_store,
    )

    store = create_document_store()  # inmemory or mongodb based on env
    store = get_document_store()     # Singleton instance
"""

from typing import Optional

from comensales.domain.shared.ports import IDocumentStore
from comensales.infrastructure.config import get_mongodb_uri, get_repository_backend
from comensales.infrastructure.persistence.in_memory.document_store import (
    InMemoryDocumentStore,
)
from comensales.infrastructure.persistence.mongodb.document_store import MongoDocumentStore


def create_document_store() -> IDocumentStore:
    """Create document store based on REPOSITORY_BACKEND env var.

    Environment variable: REPOSITORY_BACKEND
    Values:
        - "inmemory": In-memory store (default, fast, transient)
        - "mongodb": MongoDB store (persistent, requires MONGODB_URI)

    Returns:
        IDocumentStore: Store instance

    Raises:
        ValueError: If mongodb selected but MONGODB_URI not set, or the
            backend name is unknown
    """
    mode = get_repository_backend()

    if mode == "mongodb":
        if not get_mongodb_uri():
            raise ValueError(
                "REPOSITORY_BACKEND=mongodb but MONGODB_URI not set. "
                "Set MONGODB_URI in .env or use REPOSITORY_BACKEND=inmemory"
            )
        return MongoDocumentStore()

    if mode != "inmemory":
        raise ValueError(f"Unknown REPOSITORY_BACKEND: {mode!r}")

    return InMemoryDocumentStore()


# Singleton instance (lazy initialization)
_document_store: Optional[IDocumentStore] = None


def get_document_store() -> IDocumentStore:
    """Get singleton document store instance."""
    global _document_store
    if _document_store is None:
        _document_store = create_document_store()
    return _document_store


def reset_document_store() -> None:
    """Reset singleton store instance.

    Useful for testing to force re-creation with different env vars.
    """
    global _document_store
    _document_store = None
