"""
Ports (Interfaces) for external collaborators.

The engine consumes three collaborators it does not own: a session
verifier, a generic document/collection store and a clock. Adapters live
under ``comensales.infrastructure``.

Design Pattern: Ports & Adapters (Hexagonal Architecture)
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal, Optional, Protocol, Sequence, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

Document = dict[str, Any]

FilterOp = Literal["==", "<", "<=", ">", ">=", "in"]


class QueryFilter(BaseModel):
    """
    Single field predicate of a document query.

    Example:
        >>> QueryFilter(field="residenciaId", op="==", value="res-1")
        >>> QueryFilter(field="id", op="in", value=["a", "b"])
    """

    model_config = ConfigDict(frozen=True)

    field: str = Field(..., min_length=1)
    op: FilterOp = "=="
    value: Any = None


class WriteOperation(BaseModel):
    """
    One write of a batch.

    ``doc_id=None`` inserts with a store-generated id; otherwise the
    document is created or fully replaced.
    """

    model_config = ConfigDict(frozen=True)

    collection: str
    data: Document
    doc_id: Optional[str] = None


class UserSession(BaseModel):
    """Verified caller identity."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    roles: tuple[str, ...] = ()
    residence_id: str = Field(..., min_length=1)


@runtime_checkable
class IDocumentStore(Protocol):
    """
    Port for a document/collection store.

    Reads return plain dicts carrying their id under the ``id`` key.
    Retry policy, if any, belongs to the adapter.

    Example:
        >>> store = InMemoryDocumentStore()
        >>> doc_id = await store.add("semanarios", {"userId": "u1"})
        >>> await store.get("semanarios", doc_id)
        {'userId': 'u1', 'id': '...'}
    """

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """
        Fetch a document by id.

        Returns:
            Document dict, or None if not found

        Raises:
            DatabaseError: On storage failure
        """
        ...

    async def query(
        self,
        collection: str,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[str] = None,
    ) -> list[Document]:
        """
        Fetch every document matching all filters (AND).

        Args:
            collection: Collection name
            filters: Predicates; ``in`` takes a list value
            order_by: Optional field to sort ascending on

        Returns:
            Matching documents (unordered unless ``order_by`` is given)

        Raises:
            DatabaseError: On storage failure
        """
        ...

    async def add(self, collection: str, data: Document) -> str:
        """Insert a document and return its generated id."""
        ...

    async def set(self, collection: str, doc_id: str, data: Document) -> None:
        """Create or replace the document stored under ``doc_id``."""
        ...

    async def batch_write(self, operations: Sequence[WriteOperation]) -> list[str]:
        """
        Apply several writes.

        Not transactional: a failure may leave earlier writes applied.

        Returns:
            Ids of the written documents, in operation order
        """
        ...


@runtime_checkable
class IClock(Protocol):
    """Port for "now" and local calendar arithmetic."""

    def now(self) -> datetime:
        """Current instant as a timezone-aware datetime."""
        ...

    def today(self, timezone: str) -> date:
        """
        Local calendar date for an IANA timezone.

        Raises:
            ValidationError: If the timezone identifier is unknown
        """
        ...


@runtime_checkable
class ISessionVerifier(Protocol):
    """Port for session token verification."""

    async def verify(self, token: Optional[str]) -> UserSession:
        """
        Resolve a session token into the caller's identity.

        Raises:
            UnauthenticatedError: If no token is given
            InvalidSessionError: If the token is unknown or expired
        """
        ...
