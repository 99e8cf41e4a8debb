"""
Schedule data loading.

Fetches the residence snapshot and the resident records an affected
period needs. Independent queries run concurrently; the results feed
the pure grid computations.
"""

import asyncio
from typing import Sequence

import structlog

from comensales.domain.residents.models import UserContext, UserMealData
from comensales.domain.residents.repository import IResidentRepository
from comensales.domain.residents.semanario import single_selection
from comensales.domain.schedule.config import ResidenceConfig
from comensales.domain.schedule.repository import IScheduleRepository
from comensales.domain.shared.value_objects import DateRange

logger = structlog.get_logger(__name__)


class ResidenceConfigLoader:
    """
    Builds ResidenceConfig snapshots.

    Loading is two-phase: the base schedule is needed to compute the
    affected period, and the period scopes everything else.

    Example:
        >>> loader = ResidenceConfigLoader(schedule_repository)
        >>> base = await loader.load_base("res-1", "Europe/Madrid")
        >>> period = calculate_affected_period(today, base)
        >>> config = await loader.extend_for_period(base, period)
    """

    def __init__(self, repository: IScheduleRepository):
        self._repository = repository

    async def load_base(self, residence_id: str, timezone: str) -> ResidenceConfig:
        """Active meal slots, alternatives and request cutoffs."""
        slots, alternatives, schedules = await asyncio.gather(
            self._repository.get_meal_slots(residence_id),
            self._repository.get_alternatives(residence_id),
            self._repository.get_request_schedules(residence_id),
        )
        logger.debug(
            "Base schedule loaded",
            residence_id=residence_id,
            meal_slots=len(slots),
            alternatives=len(alternatives),
            request_schedules=len(schedules),
        )
        return ResidenceConfig(
            residence_id=residence_id,
            timezone=timezone,
            meal_slots=tuple(slots),
            alternatives=tuple(alternatives),
            request_schedules=tuple(schedules),
        )

    async def extend_for_period(self, base: ResidenceConfig, period: DateRange) -> ResidenceConfig:
        """
        Add overrides and activities relevant to ``period``.

        Activities referenced by a substitution but missing from the
        period query are fetched by id.
        """
        residence_id = base.residence_id
        overrides, activities, substitutions = await asyncio.gather(
            self._repository.get_overrides(residence_id, period),
            self._repository.get_activities(residence_id, period),
            self._repository.get_substitutions(residence_id, period),
        )

        slot_overrides = await self._repository.get_slot_overrides(
            residence_id, [o.id for o in overrides]
        )
        alternative_overrides = await self._repository.get_alternative_overrides(
            residence_id, [m.id for m in slot_overrides]
        )

        fetched = {a.id for a in activities}
        missing = [
            s.activity_id for s in substitutions if s.activity_id and s.activity_id not in fetched
        ]
        if missing:
            extra = await self._repository.get_activities_by_ids(residence_id, missing)
            logger.debug(
                "Fetched activities referenced by substitutions",
                residence_id=residence_id,
                requested=len(set(missing)),
                found=len(extra),
            )
            activities = [*activities, *(a for a in extra if a.id not in fetched)]

        logger.info(
            "Residence config loaded",
            residence_id=residence_id,
            period=str(period),
            overrides=len(overrides),
            slot_overrides=len(slot_overrides),
            activities=len(activities),
        )
        return base.model_copy(
            update={
                "overrides": tuple(overrides),
                "slot_overrides": tuple(slot_overrides),
                "alternative_overrides": tuple(alternative_overrides),
                "activities": tuple(activities),
                "substitutions": tuple(substitutions),
            }
        )

    async def load(self, residence_id: str, timezone: str, period: DateRange) -> ResidenceConfig:
        base = await self.load_base(residence_id, timezone)
        return await self.extend_for_period(base, period)


class ResidentDataLoader:
    """Loads a resident's records for one affected period."""

    def __init__(self, repository: IResidentRepository):
        self._repository = repository

    async def load(
        self,
        user: UserContext,
        period: DateRange,
        activity_ids: Sequence[str],
    ) -> UserMealData:
        """
        Weekly selection, exceptions, absences and enrollments.

        Raises:
            DuplicateWeeklySelectionError: If the user has several weekly selections
        """
        selections, exceptions, absences, enrollments = await asyncio.gather(
            self._repository.get_weekly_selections(user.user_id, user.residence_id),
            self._repository.get_exceptions(user.user_id, user.residence_id, period),
            self._repository.get_absences(user.user_id, user.residence_id, period),
            self._repository.get_enrollments(user.user_id, user.residence_id, activity_ids),
        )
        return UserMealData(
            weekly_selection=single_selection(selections, user.user_id, user.residence_id),
            exceptions=tuple(exceptions),
            absences=tuple(absences),
            enrollments=tuple(enrollments),
        )
