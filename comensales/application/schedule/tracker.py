"""
Stale result guard.

Grid computations have no cancellation of their own. A caller that
re-triggers a computation (e.g. after switching the selected user)
uses a tracker so an older in-flight result never replaces a newer one.
"""

from typing import Awaitable, Optional, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class GridRequestTracker:
    """
    Monotonic request tokens per key.

    Example:
        >>> tracker = GridRequestTracker()
        >>> grid = await tracker.run("selected-user", engine.build_weekly_grid(user, config, period))
        >>> if grid is None:
        ...     pass  # superseded by a newer request
    """

    def __init__(self) -> None:
        self._latest: dict[str, int] = {}

    def begin(self, key: str) -> int:
        token = self._latest.get(key, 0) + 1
        self._latest[key] = token
        return token

    def is_current(self, key: str, token: int) -> bool:
        return self._latest.get(key) == token

    async def run(self, key: str, computation: Awaitable[T]) -> Optional[T]:
        """
        Await ``computation`` and return its result unless superseded.

        Returns:
            The result, or None when a newer request for ``key`` began
            while this one was in flight
        """
        token = self.begin(key)
        result = await computation
        if not self.is_current(key, token):
            logger.debug("Discarding stale result", key=key, token=token)
            return None
        return result
