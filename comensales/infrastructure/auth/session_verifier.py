"""
In-memory session verifier.

Resolves tokens registered up front. Stands in for the hosting
application's identity provider in tests and local runs.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog

from comensales.domain.shared.errors import InvalidSessionError, UnauthenticatedError
from comensales.domain.shared.ports import UserSession

logger = structlog.get_logger(__name__)


class InMemorySessionVerifier:
    """
    Token -> session map with optional expiry.

    Example:
        >>> verifier = InMemorySessionVerifier()
        >>> verifier.register("tok-1", UserSession(user_id="u1", residence_id="res-1"))
        >>> (await verifier.verify("tok-1")).user_id
        'u1'
    """

    def __init__(self) -> None:
        self._sessions: dict[str, tuple[UserSession, Optional[datetime]]] = {}

    def register(
        self,
        token: str,
        session: UserSession,
        expires_at: Optional[datetime] = None,
    ) -> None:
        self._sessions[token] = (session, expires_at)

    def revoke(self, token: str) -> None:
        self._sessions.pop(token, None)

    async def verify(self, token: Optional[str]) -> UserSession:
        """
        Resolve a session token.

        Raises:
            UnauthenticatedError: If no token is given
            InvalidSessionError: If the token is unknown or expired
        """
        if not token:
            raise UnauthenticatedError("No session token provided")

        entry = self._sessions.get(token)
        if entry is None:
            logger.warning("Unknown session token")
            raise InvalidSessionError("Unknown session token")

        session, expires_at = entry
        if expires_at is not None and expires_at <= datetime.now(timezone.utc):
            logger.info("Expired session token", user_id=session.user_id)
            raise InvalidSessionError("Session token expired")

        return session
