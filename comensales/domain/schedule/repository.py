"""
Schedule repository interface.

Read access to a residence's schedule records.
"""

from typing import Protocol, Sequence, runtime_checkable

from comensales.domain.activity.models import Activity, ActivityMealSubstitution
from comensales.domain.schedule.models import (
    Alternative,
    AlternativeOverride,
    MealSlot,
    MealSlotOverride,
    RequestSchedule,
    ScheduleOverride,
)
from comensales.domain.shared.value_objects import DateRange


@runtime_checkable
class IScheduleRepository(Protocol):
    """
    Repository interface for residence schedule records.

    Implementations must:
    - Return only active base records (slots, alternatives, cutoffs)
    - Chunk bulk id lookups to the store's "in" limit
    - De-duplicate results by id

    Example:
        >>> repository = DocumentScheduleRepository(store)
        >>> slots = await repository.get_meal_slots("res-1")
    """

    async def get_meal_slots(self, residence_id: str) -> list[MealSlot]:
        """Active meal slots of the residence."""
        ...

    async def get_alternatives(self, residence_id: str) -> list[Alternative]:
        """Active alternatives of the residence."""
        ...

    async def get_request_schedules(self, residence_id: str) -> list[RequestSchedule]:
        """Active request cutoffs of the residence."""
        ...

    async def get_overrides(self, residence_id: str, period: DateRange) -> list[ScheduleOverride]:
        """
        Schedule overrides overlapping ``period``.

        Args:
            residence_id: Residence to query
            period: Affected period

        Returns:
            Overrides with ``start_date <= period.end`` and ``end_date >= period.start``
        """
        ...

    async def get_slot_overrides(
        self, residence_id: str, override_ids: Sequence[str]
    ) -> list[MealSlotOverride]:
        """Meal slot overrides belonging to the given schedule overrides."""
        ...

    async def get_alternative_overrides(
        self, residence_id: str, slot_override_ids: Sequence[str]
    ) -> list[AlternativeOverride]:
        """Alternative overrides belonging to the given slot overrides."""
        ...

    async def get_activities(self, residence_id: str, period: DateRange) -> list[Activity]:
        """
        Activities shown to residents that overlap ``period``.

        Only activities accepting residents whose status is open,
        closed for enrollment or confirmed.
        """
        ...

    async def get_activities_by_ids(
        self, residence_id: str, activity_ids: Sequence[str]
    ) -> list[Activity]:
        """Activities by id, regardless of status or dates."""
        ...

    async def get_substitutions(
        self, residence_id: str, period: DateRange
    ) -> list[ActivityMealSubstitution]:
        """Standalone activity meal substitutions dated within ``period``."""
        ...
