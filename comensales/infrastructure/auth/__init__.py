"""Session verification adapters."""

from comensales.infrastructure.auth.session_verifier import InMemorySessionVerifier

__all__ = ["InMemorySessionVerifier"]
