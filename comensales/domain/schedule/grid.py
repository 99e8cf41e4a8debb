"""
Weekly grid denormalization.

Builds the day x meal-group structure a resident sees and writes
against: effective slot and alternatives, restriction flags, activity
and absence coverage, and the resolved current choice.

Cell choice precedence:
1. Exception for the same date and slot
2. Activity substitution for the group and date
3. Weekly default selection entry
4. None
"""

from __future__ import annotations

import datetime as dt
from datetime import date, timedelta
from enum import Enum
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict

from comensales.domain.activity.models import Activity, ActivityEnrollment, ActivityStatus
from comensales.domain.residents.models import Absence, UserContext, UserMealData
from comensales.domain.schedule.config import ResidenceConfig
from comensales.domain.schedule.dates import IntervalPosition, position_in_interval, week_of
from comensales.domain.schedule.overrides import ResolvedSlot, resolve_slot
from comensales.domain.schedule.restrictions import flag_restrictions
from comensales.domain.shared.errors import LookupGapError, NotConfiguredError
from comensales.domain.shared.value_objects import DateRange, iso_week_label

logger = structlog.get_logger(__name__)

NOT_CONFIGURED_LABEL = "No configurada"


class ChoiceSource(str, Enum):
    EXCEPTION = "excepcion"
    ACTIVITY = "actividad"
    WEEKLY = "semanario"
    NONE = "ninguna"


class MealGroup(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    order: int


class Cell(BaseModel):
    """
    One (date, meal group) entry of the weekly grid.

    ``restricted_alternative_ids`` is always a subset of
    ``available_alternative_ids``. ``has_absence`` is independent of the
    choice precedence.
    """

    model_config = ConfigDict(frozen=True)

    date: dt.date
    group_name: str
    meal_slot_id: Optional[str] = None
    meal_slot_name: str = ""
    configured: bool = True
    altered: bool = False
    slot_override_id: Optional[str] = None
    alternative_override_ids: tuple[str, ...] = ()
    available_alternative_ids: tuple[str, ...] = ()
    restricted_alternative_ids: tuple[str, ...] = ()
    enrolled_activity_ids: tuple[str, ...] = ()
    activity_substitution_ids: tuple[str, ...] = ()
    available_activity_ids: tuple[str, ...] = ()
    has_absence: bool = False
    absence_id: Optional[str] = None
    weekly_choice_id: Optional[str] = None
    exception_id: Optional[str] = None
    current_choice_id: Optional[str] = None
    choice_source: ChoiceSource = ChoiceSource.NONE

    @property
    def has_restricted(self) -> bool:
        return bool(self.restricted_alternative_ids)

    @property
    def has_enrolled_activity(self) -> bool:
        return bool(self.enrolled_activity_ids)

    @property
    def has_activity_to_join(self) -> bool:
        return bool(self.available_activity_ids)


class WeeklyGrid(BaseModel):
    """
    Denormalized grid for one user over an affected period.

    ``week_start`` is the Monday of the week being planned; ``period`` may
    reach back to the Sunday before it or into the following week.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    residence_id: str
    period: DateRange
    week_start: dt.date
    groups: tuple[MealGroup, ...] = ()
    cells: tuple[Cell, ...] = ()

    @property
    def iso_week(self) -> str:
        return iso_week_label(self.week_start)

    def cell(self, day: date, group_name: str) -> Optional[Cell]:
        return next(
            (c for c in self.cells if c.date == day and c.group_name == group_name),
            None,
        )

    def by_group(self) -> dict[str, list[Cell]]:
        """Cells keyed by group name, each list ordered by date."""
        table: dict[str, list[Cell]] = {g.name: [] for g in self.groups}
        for c in self.cells:
            table[c.group_name].append(c)
        return table


# ═══════════════════════════════════════════════════════════
# GROUPS
# ═══════════════════════════════════════════════════════════


def build_groups(config: ResidenceConfig) -> list[MealGroup]:
    """
    De-duplicated meal groups, ordered by group order then name.

    Union of active base slot groups and slot override groups that carry
    both a name and an order. A group seen with several orders keeps the
    lowest.
    """
    orders: dict[str, int] = {}
    for slot in config.active_slots():
        orders[slot.group_name] = min(slot.group_order, orders.get(slot.group_name, slot.group_order))
    for mod in config.slot_overrides:
        if mod.group_name and mod.group_order is not None:
            orders[mod.group_name] = min(mod.group_order, orders.get(mod.group_name, mod.group_order))
    groups = [MealGroup(name=name, order=order) for name, order in orders.items()]
    return sorted(groups, key=lambda g: (g.order, g.name))


# ═══════════════════════════════════════════════════════════
# COVERAGE
# ═══════════════════════════════════════════════════════════


def _boundary_order(config: ResidenceConfig, slot_id: str, entity: str, entity_id: Optional[str]) -> int:
    slot = config.meal_slot(slot_id)
    if slot is None:
        raise LookupGapError("meal slot", slot_id, detail=f"boundary of {entity} {entity_id}")
    return slot.group_order


def covers_group(
    day: date,
    group: MealGroup,
    start: date,
    end: date,
    first_day_slot_id: Optional[str],
    last_day_slot_id: Optional[str],
    config: ResidenceConfig,
    entity: str,
    entity_id: Optional[str],
) -> bool:
    """
    Whether a dated range (activity, absence) covers a grid cell.

    Days strictly inside count fully. On the first day only groups
    ordered at or after ``first_day_slot_id``'s group count; on the last
    day only groups at or before ``last_day_slot_id``'s. A missing
    boundary id covers the whole day.

    Raises:
        LookupGapError: If a boundary slot id is not configured
    """
    position = position_in_interval(day, start, end)
    if not position.overlaps:
        return False
    if position is IntervalPosition.INSIDE:
        return True

    covered = True
    if position in (IntervalPosition.START, IntervalPosition.SINGLE_DAY) and first_day_slot_id:
        covered = covered and group.order >= _boundary_order(config, first_day_slot_id, entity, entity_id)
    if position in (IntervalPosition.END, IntervalPosition.SINGLE_DAY) and last_day_slot_id:
        covered = covered and group.order <= _boundary_order(config, last_day_slot_id, entity, entity_id)
    return covered


def _activity_covers(day: date, group: MealGroup, activity: Activity, config: ResidenceConfig) -> bool:
    try:
        return covers_group(
            day,
            group,
            activity.start_date,
            activity.end_date,
            activity.last_slot_before_id,
            activity.first_slot_after_id,
            config,
            "activity",
            activity.id,
        )
    except LookupGapError as e:
        logger.warning(
            "Activity boundary slot not found",
            activity_id=activity.id,
            date=day.isoformat(),
            group_name=group.name,
            error=str(e),
        )
        return False


# ═══════════════════════════════════════════════════════════
# CELL
# ═══════════════════════════════════════════════════════════


def _enrolled_activity(config: ResidenceConfig, enrollment: ActivityEnrollment) -> Activity:
    activity = config.activity(enrollment.activity_id)
    if activity is None:
        raise LookupGapError("activity", enrollment.activity_id, detail=f"enrollment {enrollment.id}")
    return activity


def _activity_fields(
    day: date,
    group: MealGroup,
    config: ResidenceConfig,
    user_data: UserMealData,
) -> tuple[list[str], list[str], list[str]]:
    enrolled: list[str] = []
    substitutions: list[str] = []
    enrolled_ids: set[str] = set()

    for enrollment in user_data.enrollments:
        if not enrollment.confirmed:
            continue
        enrolled_ids.add(enrollment.activity_id)
        try:
            activity = _enrolled_activity(config, enrollment)
        except LookupGapError as e:
            logger.warning(
                "Enrolled activity not found",
                enrollment_id=enrollment.id,
                activity_id=enrollment.activity_id,
                error=str(e),
            )
            continue

        if not position_in_interval(day, activity.start_date, activity.end_date).overlaps:
            continue

        for sub in config.substitutions_for(activity):
            if sub.group_name == group.name and sub.date == day and sub.id not in substitutions:
                substitutions.append(sub.id)
        if _activity_covers(day, group, activity, config) and activity.id not in enrolled:
            enrolled.append(activity.id)

    joinable = [
        a.id
        for a in config.activities
        if a.id not in enrolled_ids
        and a.status is ActivityStatus.ABIERTA_INSCRIPCION
        and _activity_covers(day, group, a, config)
    ]
    return enrolled, substitutions, joinable


def _covering_absence(
    day: date,
    group: MealGroup,
    config: ResidenceConfig,
    user_data: UserMealData,
) -> Optional[Absence]:
    for absence in user_data.absences:
        try:
            covered = covers_group(
                day,
                group,
                absence.start_date,
                absence.end_date,
                absence.last_slot_id,
                absence.first_slot_id,
                config,
                "absence",
                absence.id,
            )
        except LookupGapError as e:
            logger.warning(
                "Absence boundary slot not found",
                absence_id=absence.id,
                date=day.isoformat(),
                group_name=group.name,
                error=str(e),
            )
            continue
        if covered:
            return absence
    return None


def build_cell(
    day: date,
    group: MealGroup,
    config: ResidenceConfig,
    user: Optional[UserContext] = None,
    user_data: Optional[UserMealData] = None,
) -> Cell:
    """
    Build one grid cell.

    Args:
        day: Cell date
        group: Meal group of the cell
        config: Residence schedule snapshot
        user: Resident the cell is built for (None for a schedule-only cell)
        user_data: Resident records for the period

    Returns:
        Cell; ``configured=False`` when no slot exists for the pair

    Raises:
        DuplicateSlotOverrideError: If several slot overrides match
    """
    try:
        resolved: ResolvedSlot = resolve_slot(day, group.name, config)
    except NotConfiguredError:
        logger.debug("Cell not configured", date=day.isoformat(), group_name=group.name)
        return Cell(
            date=day,
            group_name=group.name,
            meal_slot_name=NOT_CONFIGURED_LABEL,
            configured=False,
        )

    flags = flag_restrictions(
        resolved.available_alternative_ids,
        user.restriction if user else None,
    )
    data = user_data or UserMealData()

    enrolled, substitutions, joinable = _activity_fields(day, group, config, data)
    absence = _covering_absence(day, group, config, data)

    slot_id = resolved.meal_slot_id
    weekly_choice = (
        data.weekly_selection.choice_for(slot_id) if data.weekly_selection and slot_id else None
    )

    exception = None
    if slot_id:
        matching = [e for e in data.exceptions if e.date == day and e.meal_slot_id == slot_id]
        if len(matching) > 1:
            logger.warning(
                "Several exceptions for one cell, using the first",
                date=day.isoformat(),
                meal_slot_id=slot_id,
                exception_ids=[e.id for e in matching],
            )
        exception = matching[0] if matching else None

    if exception is not None:
        current, source = exception.chosen_alternative_id, ChoiceSource.EXCEPTION
    elif substitutions:
        current, source = substitutions[0], ChoiceSource.ACTIVITY
    elif weekly_choice is not None:
        current, source = weekly_choice, ChoiceSource.WEEKLY
    else:
        current, source = None, ChoiceSource.NONE

    return Cell(
        date=day,
        group_name=group.name,
        meal_slot_id=slot_id,
        meal_slot_name=resolved.name,
        altered=resolved.altered,
        slot_override_id=resolved.slot_override_id,
        alternative_override_ids=resolved.alternative_override_ids,
        available_alternative_ids=flags.available_ids,
        restricted_alternative_ids=flags.restricted_ids,
        enrolled_activity_ids=tuple(enrolled),
        activity_substitution_ids=tuple(substitutions),
        available_activity_ids=tuple(joinable),
        has_absence=absence is not None,
        absence_id=absence.id if absence else None,
        weekly_choice_id=weekly_choice,
        exception_id=exception.id if exception else None,
        current_choice_id=current,
        choice_source=source,
    )


def planned_week_start(period: DateRange) -> date:
    """First Monday on or after ``period.start``."""
    return period.start + timedelta(days=(7 - period.start.weekday()) % 7)


def build_grid(
    user: UserContext,
    config: ResidenceConfig,
    period: DateRange,
    user_data: UserMealData,
    today: Optional[date] = None,
) -> WeeklyGrid:
    """
    Build the weekly grid of a resident.

    Pure: every input is explicit and the result is immutable.

    Args:
        user: Resident the grid is built for
        config: Residence schedule snapshot covering ``period``
        period: Affected period (one column per date)
        user_data: Resident records for the period
        today: Local date the period was computed from; labels the grid
            with its ISO week (defaults to the Monday the period plans)

    Returns:
        WeeklyGrid with one cell per (date, group)

    Raises:
        DuplicateSlotOverrideError: If several slot overrides match a cell

    Example:
        >>> grid = build_grid(user, config, period, UserMealData())
        >>> grid.cell(date(2025, 1, 6), "Comidas").meal_slot_name
        'Almuerzo'
    """
    groups = build_groups(config)
    cells = [
        build_cell(day, group, config, user, user_data)
        for day in period.days()
        for group in groups
    ]
    logger.debug(
        "Grid built",
        user_id=user.user_id,
        period=str(period),
        groups=len(groups),
        cells=len(cells),
    )
    return WeeklyGrid(
        user_id=user.user_id,
        residence_id=config.residence_id,
        period=period,
        week_start=week_of(today).start if today else planned_week_start(period),
        groups=tuple(groups),
        cells=tuple(cells),
    )
