"""
Resident repository interface.

Per-user records: weekly selections, exceptions, absences, enrollments
and the group restriction.
"""

from typing import Optional, Protocol, Sequence, runtime_checkable

from comensales.domain.activity.models import ActivityEnrollment
from comensales.domain.residents.models import (
    Absence,
    GroupMealRestriction,
    MealException,
    WeeklyDefaultSelection,
)
from comensales.domain.shared.value_objects import DateRange


@runtime_checkable
class IResidentRepository(Protocol):
    """
    Repository interface for resident records.

    Example:
        >>> repository = DocumentResidentRepository(store)
        >>> selections = await repository.get_weekly_selections("u1", "res-1")
        >>> len(selections)
        1
    """

    async def get_weekly_selections(
        self, user_id: str, residence_id: str
    ) -> list[WeeklyDefaultSelection]:
        """
        Every weekly selection document of a (user, residence) pair.

        More than one is an integrity condition the caller must surface,
        so all are returned.
        """
        ...

    async def add_weekly_selection(
        self, selection: WeeklyDefaultSelection
    ) -> WeeklyDefaultSelection:
        """
        Persist a new weekly selection.

        Returns:
            The selection carrying its generated id
        """
        ...

    async def save_weekly_selection(self, selection: WeeklyDefaultSelection) -> None:
        """
        Replace an existing weekly selection.

        Raises:
            ValueError: If the selection has no id
        """
        ...

    async def get_exceptions(
        self, user_id: str, residence_id: str, period: DateRange
    ) -> list[MealException]:
        """Exceptions dated within ``period``."""
        ...

    async def get_absences(
        self, user_id: str, residence_id: str, period: DateRange
    ) -> list[Absence]:
        """Absences overlapping ``period``."""
        ...

    async def get_enrollments(
        self, user_id: str, residence_id: str, activity_ids: Sequence[str]
    ) -> list[ActivityEnrollment]:
        """Enrollments of the user in the given activities."""
        ...

    async def get_restriction(
        self, user_id: str, residence_id: str
    ) -> Optional[GroupMealRestriction]:
        """Meal restriction of the user's permission group, if any."""
        ...
