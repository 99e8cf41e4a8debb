"""
Weekly default selection (semanario) rules.

Lifecycle of the per-(user, residence) document:

    absent -> creating -> present
    absent -> present(ambiguous)   terminal, more than one document

Creation is not transactional: two concurrent initializers can race
into the ambiguous state, which is reported, never repaired.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Sequence

import structlog

from comensales.domain.residents.models import WeeklyDefaultSelection
from comensales.domain.schedule.config import ResidenceConfig
from comensales.domain.shared.errors import DuplicateWeeklySelectionError

logger = structlog.get_logger(__name__)


class SelectionState(str, Enum):
    ABSENT = "absent"
    CREATING = "creating"
    PRESENT = "present"
    AMBIGUOUS = "ambiguous"


def selection_state(selections: Sequence[WeeklyDefaultSelection]) -> SelectionState:
    if not selections:
        return SelectionState.ABSENT
    if len(selections) > 1:
        return SelectionState.AMBIGUOUS
    return SelectionState.PRESENT


def single_selection(
    selections: Sequence[WeeklyDefaultSelection],
    user_id: str,
    residence_id: str,
) -> Optional[WeeklyDefaultSelection]:
    """
    The one selection of a pair, or None when absent.

    Raises:
        DuplicateWeeklySelectionError: If more than one document exists
    """
    state = selection_state(selections)
    if state is SelectionState.AMBIGUOUS:
        logger.error(
            "Duplicate weekly selections",
            user_id=user_id,
            residence_id=residence_id,
            selection_ids=[s.id for s in selections],
        )
        raise DuplicateWeeklySelectionError(user_id, residence_id, len(selections))
    if state is SelectionState.ABSENT:
        return None
    return selections[0]


def initial_choices(config: ResidenceConfig) -> dict[str, Optional[str]]:
    """
    Default mapping for a new weekly selection.

    Every active ordinary slot maps to its active principal alternative
    when exactly one exists; otherwise the slot is left unmapped.

    Example:
        >>> initial_choices(config)
        {'tc-almuerzo-lunes': 'alt-A'}
    """
    choices: dict[str, Optional[str]] = {}
    for slot in config.active_slots():
        if not slot.ordinary:
            continue
        principals = [a.id for a in config.alternatives_for_slot(slot.id) if a.principal]
        if len(principals) == 1:
            choices[slot.id] = principals[0]
        else:
            logger.warning(
                "Slot left unmapped in default selection",
                meal_slot_id=slot.id,
                principal_count=len(principals),
            )
    return choices


def new_weekly_selection(
    user_id: str,
    config: ResidenceConfig,
    now_ms: int,
) -> WeeklyDefaultSelection:
    """Unsaved weekly selection seeded with ``initial_choices``."""
    return WeeklyDefaultSelection(
        user_id=user_id,
        residence_id=config.residence_id,
        choices=initial_choices(config),
        last_updated=now_ms,
    )
