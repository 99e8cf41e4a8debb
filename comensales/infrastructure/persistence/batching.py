"""Chunked "in" lookups.

Document stores cap the number of values an ``in`` filter may carry.
Bulk id lookups are split into chunks, issued concurrently, merged and
de-duplicated by document id.
"""

import asyncio
from typing import Awaitable, Callable, Iterator, List, Sequence, TypeVar

from comensales.domain.shared.ports import Document

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """
    Split ``items`` into consecutive lists of at most ``size``.

    Example:
        >>> list(chunked(["a", "b", "c"], 2))
        [['a', 'b'], ['c']]
    """
    if size < 1:
        raise ValueError(f"chunk size must be >= 1, got {size}")
    for i in range(0, len(items), size):
        yield list(items[i : i + size])


def unique_ids(ids: Sequence[str]) -> List[str]:
    """Drop empty and repeated ids, keeping first-seen order."""
    return list(dict.fromkeys(i for i in ids if i))


def dedupe_by_id(documents: Sequence[Document]) -> List[Document]:
    merged: dict[str, Document] = {}
    for doc in documents:
        merged.setdefault(doc["id"], doc)
    return list(merged.values())


async def gather_in_chunks(
    ids: Sequence[str],
    size: int,
    fetch: Callable[[List[str]], Awaitable[List[Document]]],
) -> List[Document]:
    """
    Run ``fetch`` once per chunk of ids, concurrently.

    Args:
        ids: Values for the ``in`` filter (blanks and repeats are dropped)
        size: Max values per query
        fetch: Coroutine issuing one query for a chunk

    Returns:
        Union of all chunk results, de-duplicated by id
    """
    values = unique_ids(ids)
    if not values:
        return []
    results = await asyncio.gather(*(fetch(chunk) for chunk in chunked(values, size)))
    return dedupe_by_id([doc for chunk in results for doc in chunk])
