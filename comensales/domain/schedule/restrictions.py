"""
Restriction flagging.

Restricted alternatives stay visible so the caller can explain why a
choice is disallowed; rejecting them is a write-time rule.
"""

from __future__ import annotations

from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict

from comensales.domain.residents.models import GroupMealRestriction


class RestrictionFlags(BaseModel):
    """Alternative ids annotated with the restricted subset."""

    model_config = ConfigDict(frozen=True)

    available_ids: tuple[str, ...] = ()
    restricted_ids: tuple[str, ...] = ()

    @property
    def has_restricted(self) -> bool:
        return bool(self.restricted_ids)

    def is_restricted(self, alternative_id: str) -> bool:
        return alternative_id in self.restricted_ids


def flag_restrictions(
    available_ids: Iterable[str],
    restriction: Optional[GroupMealRestriction],
) -> RestrictionFlags:
    """
    Flag which available alternatives the user's group may not choose.

    Args:
        available_ids: Effective alternatives of a cell
        restriction: User group's restriction, if any

    Returns:
        RestrictionFlags; ``restricted_ids`` is always a subset of
        ``available_ids``, in the same order

    Example:
        >>> flags = flag_restrictions(["alt-A", "alt-B"], no_takeaway)
        >>> flags.restricted_ids
        ('alt-B',)
    """
    available = tuple(available_ids)
    if restriction is None:
        return RestrictionFlags(available_ids=available)

    blocked = restriction.restricted_ids
    return RestrictionFlags(
        available_ids=available,
        restricted_ids=tuple(i for i in available if i in blocked),
    )
