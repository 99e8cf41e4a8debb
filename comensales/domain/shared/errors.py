"""
Domain exceptions.

Typed exceptions for explicit error handling across the schedule engine.
Integrity and validation errors surface to the caller; lookup gaps and
unconfigured cells are isolated to a single grid cell.
"""

from __future__ import annotations

from typing import Optional


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """
    Base exception for all domain errors.

    All engine-specific exceptions inherit from this.
    """

    pass


# ═══════════════════════════════════════════════════════════
# VALIDATION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ValidationError(DomainError):
    """
    Input validation failed.

    Raised when:
    - Malformed HH:mm or YYYY-MM-DD strings
    - Unknown IANA timezone identifier
    - Persisted document that does not match its schema

    Example:
        >>> raise ValidationError("Invalid time string: '25:00'")
    """

    pass


# ═══════════════════════════════════════════════════════════
# INTEGRITY EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class IntegrityError(DomainError):
    """
    Persisted data violates a structural invariant.

    Never repaired automatically: callers must surface it.
    """

    pass


class DuplicateWeeklySelectionError(IntegrityError):
    """More than one weekly default selection exists for a user/residence pair."""

    def __init__(self, user_id: str, residence_id: str, count: int) -> None:
        super().__init__(
            f"User {user_id} has {count} weekly selection documents "
            f"for residence {residence_id}; expected exactly one"
        )
        self.user_id = user_id
        self.residence_id = residence_id
        self.count = count


class DuplicateSlotOverrideError(IntegrityError):
    """More than one meal slot override matches the same date and group."""

    def __init__(self, date_iso: str, group_name: str, override_ids: list[str]) -> None:
        super().__init__(
            f"Found {len(override_ids)} slot overrides for {group_name} "
            f"on {date_iso}: {override_ids}"
        )
        self.date_iso = date_iso
        self.group_name = group_name
        self.override_ids = override_ids


# ═══════════════════════════════════════════════════════════
# CELL-LEVEL (NON-FATAL) EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class NotConfiguredError(DomainError):
    """
    No base slot and no override exist for a date/group.

    Non-fatal: the grid renders an empty cell.
    """

    def __init__(self, date_iso: str, group_name: str) -> None:
        super().__init__(f"No meal slot configured for {group_name} on {date_iso}")
        self.date_iso = date_iso
        self.group_name = group_name


class LookupGapError(DomainError):
    """
    A referenced record was not found during a secondary lookup.

    Degrades only the affected cell.

    Example:
        >>> raise LookupGapError("activity", "act-42")
    """

    def __init__(self, entity: str, entity_id: Optional[str], detail: str = "") -> None:
        message = f"{entity} '{entity_id}' not found"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.entity = entity
        self.entity_id = entity_id


# ═══════════════════════════════════════════════════════════
# WRITE-PATH EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class UnknownMealSlotError(DomainError):
    """Weekly choice references a slot or alternative that is not configured."""

    pass


class RestrictedAlternativeError(DomainError):
    """User's group may not choose the given alternative."""

    def __init__(self, user_id: str, alternative_id: str) -> None:
        super().__init__(f"Alternative {alternative_id} is restricted for user {user_id}")
        self.user_id = user_id
        self.alternative_id = alternative_id


# ═══════════════════════════════════════════════════════════
# AUTHENTICATION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class AuthenticationError(DomainError):
    """Base class for session verification failures."""

    pass


class UnauthenticatedError(AuthenticationError):
    """No session token was provided."""

    pass


class InvalidSessionError(AuthenticationError):
    """Session token is unknown, expired or malformed."""

    pass


# ═══════════════════════════════════════════════════════════
# INFRASTRUCTURE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class InfrastructureError(DomainError):
    """
    Infrastructure layer error.

    Base class for document store errors.
    """

    pass


class DatabaseError(InfrastructureError):
    """
    Document store operation failed.

    Example:
        >>> raise DatabaseError("MongoDB connection lost")
    """

    pass
