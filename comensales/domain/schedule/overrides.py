"""
Schedule override resolution.

Merges the recurring base schedule with the date-scoped overrides in
force on a given day. Alternative overrides are dispatched by kind
through ``ALTERNATIVE_STRATEGIES``.
"""

from __future__ import annotations

import datetime as dt
from datetime import date
from typing import Callable, Optional

import structlog
from pydantic import BaseModel, ConfigDict

from comensales.domain.schedule.config import ResidenceConfig
from comensales.domain.schedule.models import (
    AlterationKind,
    AlternativeOverride,
    MealSlot,
    MealSlotOverride,
)
from comensales.domain.shared.errors import DuplicateSlotOverrideError, NotConfiguredError
from comensales.domain.shared.value_objects import DayOfWeek

logger = structlog.get_logger(__name__)


class ResolvedSlot(BaseModel):
    """
    Effective meal slot of a (date, group) pair.

    Attributes:
        meal_slot_id: Base slot id (None for a slot added by an override)
        name: Display name after overrides
        altered: A slot override is in force for this cell
        available_alternative_ids: Effective alternatives, in configuration order
    """

    model_config = ConfigDict(frozen=True)

    date: dt.date
    group_name: str
    meal_slot_id: Optional[str] = None
    name: str
    altered: bool = False
    slot_override_id: Optional[str] = None
    alternative_override_ids: tuple[str, ...] = ()
    available_alternative_ids: tuple[str, ...] = ()


# ═══════════════════════════════════════════════════════════
# ALTERNATIVE OVERRIDE STRATEGIES
# ═══════════════════════════════════════════════════════════

AlternativeStrategy = Callable[[list[str], AlternativeOverride], list[str]]


def _remove_alternative(ids: list[str], mod: AlternativeOverride) -> list[str]:
    return [i for i in ids if i != mod.affected_alternative_id]


def _modify_alternative(ids: list[str], mod: AlternativeOverride) -> list[str]:
    # The alternative stays selectable; its replacement fields travel with mod.id
    return ids


def _add_alternative(ids: list[str], mod: AlternativeOverride) -> list[str]:
    if mod.id in ids:
        return ids
    return [*ids, mod.id]


ALTERNATIVE_STRATEGIES: dict[AlterationKind, AlternativeStrategy] = {
    AlterationKind.ELIMINAR: _remove_alternative,
    AlterationKind.MODIFICAR: _modify_alternative,
    AlterationKind.AGREGAR: _add_alternative,
}


def apply_alternative_overrides(
    base_ids: list[str],
    mods: list[AlternativeOverride],
) -> list[str]:
    """
    Fold alternative overrides over a base alternative id list.

    Example:
        >>> apply_alternative_overrides(["alt-A", "alt-B"], [remove_alt_b])
        ['alt-A']
    """
    ids = list(base_ids)
    for mod in mods:
        ids = ALTERNATIVE_STRATEGIES[mod.kind](ids, mod)
    return ids


# ═══════════════════════════════════════════════════════════
# SLOT RESOLUTION
# ═══════════════════════════════════════════════════════════


def _targets_cell(
    mod: MealSlotOverride,
    day: DayOfWeek,
    group_name: str,
    base: Optional[MealSlot],
    config: ResidenceConfig,
) -> bool:
    if base is not None and mod.affected_slot_id == base.id:
        # An every-day base slot still honors a weekday-scoped override
        return mod.day is None or mod.day == day

    affected = config.meal_slot(mod.affected_slot_id)
    mod_group = mod.group_name or (affected.group_name if affected else None)
    mod_day = mod.day or (affected.day if affected else None)
    return mod_group == group_name and (mod_day is None or mod_day == day)


def find_slot_override(
    day: date,
    group_name: str,
    config: ResidenceConfig,
    base: Optional[MealSlot] = None,
) -> Optional[MealSlotOverride]:
    """
    Slot override in force for a (date, group) pair.

    Raises:
        DuplicateSlotOverrideError: If more than one override matches
    """
    weekday = DayOfWeek.from_date(day)
    covering = {o.id for o in config.overrides_covering(day)}
    if not covering:
        return None

    matches = [
        m
        for m in config.slot_overrides_of(covering)
        if _targets_cell(m, weekday, group_name, base, config)
    ]
    if len(matches) > 1:
        ids = [m.id for m in matches]
        logger.error(
            "Duplicate slot overrides",
            date=day.isoformat(),
            group_name=group_name,
            slot_override_ids=ids,
        )
        raise DuplicateSlotOverrideError(day.isoformat(), group_name, ids)
    return matches[0] if matches else None


def resolve_slot(day: date, group_name: str, config: ResidenceConfig) -> ResolvedSlot:
    """
    Resolve the effective slot and alternatives of a grid cell.

    Args:
        day: Calendar date of the cell
        group_name: Meal group of the cell
        config: Residence schedule snapshot

    Returns:
        ResolvedSlot

    Raises:
        NotConfiguredError: If neither a base slot nor an override exists
        DuplicateSlotOverrideError: If several slot overrides match
    """
    base = config.base_slot_for(DayOfWeek.from_date(day), group_name)
    mod = find_slot_override(day, group_name, config, base)

    if base is None and mod is None:
        raise NotConfiguredError(day.isoformat(), group_name)

    ids = [a.id for a in config.alternatives_for_slot(base.id)] if base else []
    name = base.name if base else group_name

    if mod is None:
        return ResolvedSlot(
            date=day,
            group_name=group_name,
            meal_slot_id=base.id if base else None,
            name=name,
            available_alternative_ids=tuple(ids),
        )

    if mod.kind is AlterationKind.AGREGAR and base is not None:
        logger.warning(
            "Added slot override shadows a base slot",
            slot_override_id=mod.id,
            meal_slot_id=base.id,
        )

    alt_mods = config.alternative_overrides_of(mod.id)
    if mod.kind is AlterationKind.ELIMINAR:
        ids = []
    else:
        ids = apply_alternative_overrides(ids, alt_mods)

    if not ids:
        logger.info(
            "Slot override leaves no alternatives",
            date=day.isoformat(),
            group_name=group_name,
            slot_override_id=mod.id,
        )

    return ResolvedSlot(
        date=day,
        group_name=group_name,
        meal_slot_id=base.id if base else None,
        name=mod.name or name,
        altered=True,
        slot_override_id=mod.id,
        alternative_override_ids=tuple(m.id for m in alt_mods),
        available_alternative_ids=tuple(ids),
    )
