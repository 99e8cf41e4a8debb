"""
Residence configuration snapshot.

Immutable bundle of everything the engine reads about one residence for
one affected period. Built by the loader, passed explicitly to every
pure computation.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from comensales.domain.activity.models import Activity, ActivityMealSubstitution
from comensales.domain.schedule.models import (
    Alternative,
    AlternativeOverride,
    MealSlot,
    MealSlotOverride,
    RequestSchedule,
    ScheduleOverride,
)
from comensales.domain.shared.value_objects import DayOfWeek, resolve_timezone


class ResidenceConfig(BaseModel):
    """
    Schedule snapshot of a residence.

    Example:
        >>> config = ResidenceConfig(
        ...     residence_id="res-1",
        ...     timezone="Europe/Madrid",
        ...     meal_slots=(almuerzo,),
        ...     alternatives=(alt_a, alt_b),
        ... )
        >>> [a.id for a in config.alternatives_for_slot("tc-almuerzo")]
        ['alt-A', 'alt-B']
    """

    model_config = ConfigDict(frozen=True)

    residence_id: str = Field(..., min_length=1)
    timezone: str = "UTC"
    meal_slots: tuple[MealSlot, ...] = ()
    alternatives: tuple[Alternative, ...] = ()
    request_schedules: tuple[RequestSchedule, ...] = ()
    overrides: tuple[ScheduleOverride, ...] = ()
    slot_overrides: tuple[MealSlotOverride, ...] = ()
    alternative_overrides: tuple[AlternativeOverride, ...] = ()
    activities: tuple[Activity, ...] = ()
    substitutions: tuple[ActivityMealSubstitution, ...] = ()

    @field_validator("timezone")
    @classmethod
    def _valid_timezone(cls, v: str) -> str:
        resolve_timezone(v)
        return v

    # ── base schedule ─────────────────────────────────────────

    def meal_slot(self, slot_id: Optional[str]) -> Optional[MealSlot]:
        if slot_id is None:
            return None
        return next((s for s in self.meal_slots if s.id == slot_id), None)

    def active_slots(self) -> list[MealSlot]:
        return [s for s in self.meal_slots if s.active]

    def base_slot_for(self, day: DayOfWeek, group_name: str) -> Optional[MealSlot]:
        """
        Active slot of ``group_name`` that applies on ``day``.

        A slot bound to that exact weekday wins over an every-day slot.
        """
        candidates = [
            s for s in self.active_slots() if s.group_name == group_name and s.applies_on(day)
        ]
        exact = [s for s in candidates if s.day == day]
        if exact:
            return exact[0]
        return candidates[0] if candidates else None

    def alternative(self, alternative_id: str) -> Optional[Alternative]:
        return next((a for a in self.alternatives if a.id == alternative_id), None)

    def alternatives_for_slot(self, slot_id: str) -> list[Alternative]:
        """Active alternatives of a slot, in configuration order."""
        return [a for a in self.alternatives if a.meal_slot_id == slot_id and a.active]

    def active_request_schedules(self) -> list[RequestSchedule]:
        return [r for r in self.request_schedules if r.active]

    # ── overrides ─────────────────────────────────────────────

    def overrides_covering(self, day: date) -> list[ScheduleOverride]:
        return [o for o in self.overrides if o.covers(day)]

    def slot_overrides_of(self, override_ids: set[str]) -> list[MealSlotOverride]:
        return [m for m in self.slot_overrides if m.override_id in override_ids]

    def alternative_overrides_of(self, slot_override_id: str) -> list[AlternativeOverride]:
        return [m for m in self.alternative_overrides if m.slot_override_id == slot_override_id]

    # ── activities ────────────────────────────────────────────

    def activity(self, activity_id: str) -> Optional[Activity]:
        return next((a for a in self.activities if a.id == activity_id), None)

    def substitutions_for(self, activity: Activity) -> list[ActivityMealSubstitution]:
        """Embedded meal plan plus standalone substitutions pointing at the activity."""
        merged = {s.id: s for s in activity.meal_plan}
        for s in self.substitutions:
            if s.activity_id == activity.id:
                merged.setdefault(s.id, s)
        return list(merged.values())
