"""
Weekly default selection service.

Lazily creates a resident's semanario and applies write-path rules when
a weekly choice changes.
"""

from typing import Optional

import structlog

from comensales.domain.residents.models import UserContext, WeeklyDefaultSelection
from comensales.domain.residents.repository import IResidentRepository
from comensales.domain.residents.semanario import (
    SelectionState,
    new_weekly_selection,
    single_selection,
)
from comensales.domain.schedule.config import ResidenceConfig
from comensales.domain.schedule.restrictions import flag_restrictions
from comensales.domain.shared.errors import RestrictedAlternativeError, UnknownMealSlotError
from comensales.domain.shared.ports import IClock

logger = structlog.get_logger(__name__)


class WeeklySelectionService:
    """
    Weekly default selection use cases.

    Dependencies (injected via Ports/Interfaces):
    - repository: IResidentRepository - semanario persistence
    - clock: IClock - timestamps for ``last_updated``

    Example:
        >>> service = WeeklySelectionService(resident_repository, SystemClock())
        >>> selection = await service.ensure(user, config)
        >>> selection.choices
        {'tc-almuerzo-lunes': 'alt-A'}
    """

    def __init__(self, repository: IResidentRepository, clock: IClock):
        self._repository = repository
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock.now().timestamp() * 1000)

    async def ensure(self, user: UserContext, config: ResidenceConfig) -> WeeklyDefaultSelection:
        """
        Return the user's weekly selection, creating it on first access.

        Idempotent once the document exists. Not transactional: a
        concurrent initializer can produce a second document, which later
        calls report as a duplicate.

        Args:
            user: Resident
            config: Residence snapshot (for default choices)

        Returns:
            Existing or newly created WeeklyDefaultSelection

        Raises:
            DuplicateWeeklySelectionError: If more than one document exists
        """
        selections = await self._repository.get_weekly_selections(
            user.user_id, config.residence_id
        )
        existing = single_selection(selections, user.user_id, config.residence_id)
        if existing is not None:
            return existing

        logger.info(
            "Initializing weekly selection",
            user_id=user.user_id,
            residence_id=config.residence_id,
            state=SelectionState.CREATING.value,
        )
        selection = new_weekly_selection(user.user_id, config, self._now_ms())
        return await self._repository.add_weekly_selection(selection)

    async def update_choice(
        self,
        user: UserContext,
        config: ResidenceConfig,
        meal_slot_id: str,
        alternative_id: Optional[str],
    ) -> WeeklyDefaultSelection:
        """
        Set (or clear, with ``None``) the weekly choice for one slot.

        Raises:
            UnknownMealSlotError: If the slot is not an active ordinary slot,
                or the alternative is not an active alternative of it
            RestrictedAlternativeError: If the user's group may not choose it
            DuplicateWeeklySelectionError: If more than one document exists
        """
        slot = config.meal_slot(meal_slot_id)
        if slot is None or not slot.active or not slot.ordinary:
            raise UnknownMealSlotError(f"Meal slot {meal_slot_id} is not selectable")

        if alternative_id is not None:
            valid = {a.id for a in config.alternatives_for_slot(slot.id)}
            if alternative_id not in valid:
                raise UnknownMealSlotError(
                    f"Alternative {alternative_id} does not belong to meal slot {meal_slot_id}"
                )
            if flag_restrictions([alternative_id], user.restriction).has_restricted:
                logger.info(
                    "Rejected restricted weekly choice",
                    user_id=user.user_id,
                    alternative_id=alternative_id,
                )
                raise RestrictedAlternativeError(user.user_id, alternative_id)

        selection = await self.ensure(user, config)
        updated = selection.model_copy(
            update={
                "choices": {**selection.choices, slot.id: alternative_id},
                "last_updated": self._now_ms(),
            }
        )
        await self._repository.save_weekly_selection(updated)
        logger.info(
            "Weekly choice updated",
            user_id=user.user_id,
            meal_slot_id=slot.id,
            alternative_id=alternative_id,
        )
        return updated
