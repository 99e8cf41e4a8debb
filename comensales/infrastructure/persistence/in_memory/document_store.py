"""In-memory document store implementation.

Provides an in-memory implementation of IDocumentStore port for testing
and local runs. Uses nested dictionaries for storage with no external
dependencies.
"""

import operator
from copy import deepcopy
from typing import Any, Callable, Dict, List, Optional, Sequence
from uuid import uuid4

from comensales.domain.shared.ports import Document, QueryFilter, WriteOperation

_COMPARATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda value, options: value in options,
}


def _matches(doc: Document, f: QueryFilter) -> bool:
    if f.field not in doc:
        return False
    try:
        return bool(_COMPARATORS[f.op](doc[f.field], f.value))
    except TypeError:
        return False


class InMemoryDocumentStore:
    """
    In-memory implementation of IDocumentStore port.

    Thread safety: NOT thread-safe (use locks if needed in production)
    Persistence: Data lost on process restart (in-memory only)

    Example:
        >>> store = InMemoryDocumentStore()
        >>> await store.set("tiemposComida", "tc-1", {"nombre": "Almuerzo"})
        >>> await store.query("tiemposComida", [QueryFilter(field="nombre", value="Almuerzo")])
        [{'nombre': 'Almuerzo', 'id': 'tc-1'}]
    """

    def __init__(self) -> None:
        """Initialize store with empty storage."""
        self._collections: Dict[str, Dict[str, Document]] = {}
        self.query_log: List[tuple[str, tuple[QueryFilter, ...]]] = []

    def _collection(self, name: str) -> Dict[str, Document]:
        return self._collections.setdefault(name, {})

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        doc = self._collection(collection).get(doc_id)
        return deepcopy(doc) if doc is not None else None

    async def query(
        self,
        collection: str,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[str] = None,
    ) -> List[Document]:
        """
        Return deep copies of every document matching all filters.

        Documents missing a filtered field never match.
        """
        self.query_log.append((collection, tuple(filters)))
        results = [
            deepcopy(doc)
            for doc in self._collection(collection).values()
            if all(_matches(doc, f) for f in filters)
        ]
        if order_by:
            results.sort(key=lambda d: (d.get(order_by) is None, d.get(order_by)))
        return results

    async def add(self, collection: str, data: Document) -> str:
        doc_id = uuid4().hex
        await self.set(collection, doc_id, data)
        return doc_id

    async def set(self, collection: str, doc_id: str, data: Document) -> None:
        # Store deep copy to prevent external modifications
        doc = deepcopy(data)
        doc["id"] = doc_id
        self._collection(collection)[doc_id] = doc

    async def batch_write(self, operations: Sequence[WriteOperation]) -> List[str]:
        ids: List[str] = []
        for op in operations:
            if op.doc_id is None:
                ids.append(await self.add(op.collection, op.data))
            else:
                await self.set(op.collection, op.doc_id, op.data)
                ids.append(op.doc_id)
        return ids

    def count(self, collection: str) -> int:
        """Number of documents in a collection (test helper)."""
        return len(self._collection(collection))

    def clear(self) -> None:
        self._collections.clear()
        self.query_log.clear()
