"""MongoDB document store.

Implements IDocumentStore on top of motor. Each store collection maps to
a MongoDB collection; the document id is kept in ``_id`` and exposed as
``id`` on reads.

Transient failures (lost primary, network timeouts) are retried with
exponential backoff; everything else surfaces as DatabaseError.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar
from uuid import uuid4

import structlog
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ReplaceOne
from pymongo.errors import (
    AutoReconnect,
    NetworkTimeout,
    PyMongoError,
    ServerSelectionTimeoutError,
)
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from comensales.domain.shared.errors import DatabaseError
from comensales.domain.shared.ports import Document, QueryFilter, WriteOperation
from comensales.infrastructure.config import (
    get_mongodb_database,
    get_mongodb_uri,
    get_store_retry_attempts,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS = (AutoReconnect, NetworkTimeout, ServerSelectionTimeoutError)

_MONGO_OPERATORS = {
    "<": "$lt",
    "<=": "$lte",
    ">": "$gt",
    ">=": "$gte",
    "in": "$in",
}


def to_mongo_filter(filters: Sequence[QueryFilter]) -> Dict[str, Any]:
    """
    Translate query filters into a MongoDB filter document.

    Example:
        >>> to_mongo_filter([
        ...     QueryFilter(field="fecha", op=">=", value="2025-01-06"),
        ...     QueryFilter(field="fecha", op="<=", value="2025-01-12"),
        ... ])
        {'fecha': {'$gte': '2025-01-06', '$lte': '2025-01-12'}}
    """
    mongo: Dict[str, Any] = {}
    for f in filters:
        field = "_id" if f.field == "id" else f.field
        if f.op == "==":
            if isinstance(mongo.get(field), dict):
                mongo[field]["$eq"] = f.value
            else:
                mongo[field] = f.value
            continue
        condition = {_MONGO_OPERATORS[f.op]: list(f.value) if f.op == "in" else f.value}
        existing = mongo.get(field)
        if isinstance(existing, dict):
            existing.update(condition)
        elif field in mongo:
            mongo[field] = {"$eq": existing, **condition}
        else:
            mongo[field] = condition
    return mongo


def from_mongo(doc: Dict[str, Any]) -> Document:
    result = {k: v for k, v in doc.items() if k != "_id"}
    result["id"] = str(doc["_id"])
    return result


def to_mongo(doc_id: str, data: Document) -> Dict[str, Any]:
    body = {k: v for k, v in data.items() if k != "id"}
    body["_id"] = doc_id
    return body


class MongoDocumentStore:
    """
    MongoDB implementation of IDocumentStore port.

    Example:
        >>> from motor.motor_asyncio import AsyncIOMotorClient
        >>> client = AsyncIOMotorClient("mongodb://localhost:27017")
        >>> store = MongoDocumentStore(client)
        >>> await store.query("tiemposComida", [QueryFilter(field="isActive", value=True)])
    """

    def __init__(
        self,
        client: Optional[AsyncIOMotorClient[Dict[str, Any]]] = None,
        database: Optional[str] = None,
        max_attempts: Optional[int] = None,
        wait: Optional[wait_base] = None,
    ):
        """
        Initialize store with optional client.

        Args:
            client: Motor client (if None, creates new one from config)
            database: Database name (defaults to MONGODB_DATABASE)
            max_attempts: Attempts for transient failures (defaults to STORE_RETRY_ATTEMPTS)
            wait: tenacity wait strategy between attempts
        """
        if client is None:
            uri = get_mongodb_uri()
            if not uri:
                raise ValueError(
                    "MONGODB_URI not configured. "
                    "Set MONGODB_URI, MONGODB_USER, "
                    "and MONGODB_PASSWORD environment variables."
                )
            client = AsyncIOMotorClient(uri)

        self._client = client
        self._db = client[database or get_mongodb_database()]
        self._max_attempts = max_attempts or get_store_retry_attempts()
        self._wait = wait or wait_exponential(multiplier=1, min=2, max=10)

        logger.info(
            "Initialized MongoDocumentStore",
            database=self._db.name,
            max_attempts=self._max_attempts,
        )

    async def _execute(
        self,
        operation: str,
        collection: str,
        action: Callable[[], Awaitable[T]],
    ) -> T:
        retrying = retry(
            stop=stop_after_attempt(self._max_attempts),
            wait=self._wait,
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            reraise=True,
        )(action)
        try:
            return await retrying()
        except PyMongoError as e:
            logger.error(
                "Document store operation failed",
                operation=operation,
                collection=collection,
                error=str(e),
            )
            raise DatabaseError(f"{operation} on {collection} failed: {e}") from e

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        async def find_one() -> Optional[Dict[str, Any]]:
            return await self._db[collection].find_one({"_id": doc_id})

        doc = await self._execute("find_one", collection, find_one)
        return from_mongo(doc) if doc is not None else None

    async def query(
        self,
        collection: str,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[str] = None,
    ) -> List[Document]:
        mongo_filter = to_mongo_filter(filters)

        async def find_many() -> List[Dict[str, Any]]:
            cursor = self._db[collection].find(mongo_filter)
            if order_by:
                cursor = cursor.sort(order_by, 1)
            return await cursor.to_list(length=None)

        docs = await self._execute("find", collection, find_many)
        return [from_mongo(d) for d in docs]

    async def add(self, collection: str, data: Document) -> str:
        doc_id = uuid4().hex

        async def insert_one() -> None:
            await self._db[collection].insert_one(to_mongo(doc_id, data))

        await self._execute("insert_one", collection, insert_one)
        return doc_id

    async def set(self, collection: str, doc_id: str, data: Document) -> None:
        async def replace_one() -> None:
            await self._db[collection].replace_one({"_id": doc_id}, to_mongo(doc_id, data), upsert=True)

        await self._execute("replace_one", collection, replace_one)

    async def batch_write(self, operations: Sequence[WriteOperation]) -> List[str]:
        """
        Apply writes grouped per collection with ordered bulk_write.

        Not transactional across collections.
        """
        ids: List[str] = []
        grouped: Dict[str, List[ReplaceOne]] = {}
        for op in operations:
            doc_id = op.doc_id or uuid4().hex
            ids.append(doc_id)
            grouped.setdefault(op.collection, []).append(
                ReplaceOne({"_id": doc_id}, to_mongo(doc_id, op.data), upsert=True)
            )

        for collection, requests in grouped.items():

            async def bulk_write(
                collection: str = collection, requests: List[ReplaceOne] = requests
            ) -> None:
                await self._db[collection].bulk_write(requests, ordered=True)

            await self._execute("bulk_write", collection, bulk_write)

        return ids
