"""
Meal Schedule Resolution Engine.

Facade over the pure schedule computations and the loaders that feed
them. Invoked by an enclosing request handler or UI data layer; it has
no network surface of its own.

Design Pattern: Service Layer + Dependency Injection
"""

from datetime import date, datetime
from typing import Optional

import structlog

from comensales.application.schedule.loader import ResidenceConfigLoader, ResidentDataLoader
from comensales.application.semanario.service import WeeklySelectionService
from comensales.domain.residents.models import UserContext, WeeklyDefaultSelection
from comensales.domain.residents.repository import IResidentRepository
from comensales.domain.schedule.config import ResidenceConfig
from comensales.domain.schedule.dates import local_date
from comensales.domain.schedule.grid import (
    Cell,
    MealGroup,
    WeeklyGrid,
    build_cell,
    build_grid,
    build_groups,
)
from comensales.domain.schedule.period import calculate_affected_period
from comensales.domain.schedule.repository import IScheduleRepository
from comensales.domain.shared.ports import IClock, ISessionVerifier
from comensales.domain.shared.value_objects import DateRange

logger = structlog.get_logger(__name__)


class WeekView:
    """Everything a resident's weekly screen needs."""

    def __init__(
        self,
        config: ResidenceConfig,
        period: DateRange,
        selection: WeeklyDefaultSelection,
        grid: WeeklyGrid,
    ) -> None:
        self.config = config
        self.period = period
        self.selection = selection
        self.grid = grid


class ScheduleEngine:
    """
    Resolves residence meal schedules into per-user weekly grids.

    Dependencies (injected via Ports/Interfaces):
    - schedule_repository: IScheduleRepository - residence schedule records
    - resident_repository: IResidentRepository - per-user records
    - clock: IClock - "now" and timezone arithmetic
    - session_verifier: ISessionVerifier - token verification (optional)

    Example:
        >>> engine = ScheduleEngine(schedule_repo, resident_repo, SystemClock())
        >>> view = await engine.load_week(user, "Europe/Madrid")
        >>> view.grid.cell(date(2025, 1, 6), "Comidas").current_choice_id
        'alt-A'
    """

    def __init__(
        self,
        schedule_repository: IScheduleRepository,
        resident_repository: IResidentRepository,
        clock: IClock,
        session_verifier: Optional[ISessionVerifier] = None,
    ):
        self._resident_repository = resident_repository
        self._clock = clock
        self._session_verifier = session_verifier
        self._config_loader = ResidenceConfigLoader(schedule_repository)
        self._resident_loader = ResidentDataLoader(resident_repository)
        self._selections = WeeklySelectionService(resident_repository, clock)

    # ── identity ─────────────────────────────────────────────

    async def load_user_context(self, token: Optional[str]) -> UserContext:
        """
        Verify a session token and resolve the caller's restriction.

        Raises:
            UnauthenticatedError: If no token is given
            InvalidSessionError: If the token is invalid
            ValueError: If the engine has no session verifier
        """
        if self._session_verifier is None:
            raise ValueError("ScheduleEngine was built without a session verifier")

        session = await self._session_verifier.verify(token)
        restriction = await self._resident_repository.get_restriction(
            session.user_id, session.residence_id
        )
        return UserContext(
            user_id=session.user_id,
            residence_id=session.residence_id,
            roles=session.roles,
            restriction=restriction,
        )

    # ── period ───────────────────────────────────────────────

    def compute_affected_period(
        self, config: ResidenceConfig, now: Optional[datetime] = None
    ) -> DateRange:
        """
        Affected period for the residence at ``now`` (defaults to the clock).

        "Today" is taken in the residence timezone.
        """
        today = local_date(now or self._clock.now(), config.timezone)
        period = calculate_affected_period(today, config)
        logger.debug(
            "Affected period computed",
            residence_id=config.residence_id,
            today=today.isoformat(),
            period=str(period),
        )
        return period

    async def load_residence_config(
        self, residence_id: str, timezone: str, now: Optional[datetime] = None
    ) -> tuple[ResidenceConfig, DateRange]:
        """Load the base schedule, compute the period, then load period data."""
        base = await self._config_loader.load_base(residence_id, timezone)
        period = self.compute_affected_period(base, now)
        config = await self._config_loader.extend_for_period(base, period)
        return config, period

    # ── grid ─────────────────────────────────────────────────

    def resolve_cell(
        self,
        day: date,
        group_name: str,
        config: ResidenceConfig,
        user: Optional[UserContext] = None,
    ) -> Cell:
        """
        Effective slot, alternatives and restriction flags of one cell.

        Raises:
            DuplicateSlotOverrideError: If several slot overrides match
        """
        group = next(
            (g for g in build_groups(config) if g.name == group_name),
            MealGroup(name=group_name, order=0),
        )
        return build_cell(day, group, config, user)

    async def build_weekly_grid(
        self,
        user: UserContext,
        config: ResidenceConfig,
        period: DateRange,
        today: Optional[date] = None,
    ) -> WeeklyGrid:
        """
        Load the user's records for ``period`` and build the grid.

        Raises:
            DuplicateWeeklySelectionError: If the user has several weekly selections
            DuplicateSlotOverrideError: If several slot overrides match a cell
        """
        user_data = await self._resident_loader.load(
            user, period, [a.id for a in config.activities]
        )
        return build_grid(user, config, period, user_data, today)

    # ── weekly selection ─────────────────────────────────────

    async def ensure_weekly_default_selection(
        self, user: UserContext, config: ResidenceConfig
    ) -> WeeklyDefaultSelection:
        """
        Return the user's weekly selection, creating it on first access.

        Raises:
            DuplicateWeeklySelectionError: If more than one document exists
        """
        return await self._selections.ensure(user, config)

    async def update_weekly_choice(
        self,
        user: UserContext,
        config: ResidenceConfig,
        meal_slot_id: str,
        alternative_id: Optional[str],
    ) -> WeeklyDefaultSelection:
        return await self._selections.update_choice(user, config, meal_slot_id, alternative_id)

    # ── end to end ───────────────────────────────────────────

    async def load_week(
        self,
        user: UserContext,
        timezone: str,
        now: Optional[datetime] = None,
    ) -> WeekView:
        """
        Full load for a resident's weekly screen.

        Loads the residence config for the affected period, makes sure
        the weekly selection exists, then builds the grid.
        """
        now = now or self._clock.now()
        config, period = await self.load_residence_config(user.residence_id, timezone, now)
        selection = await self.ensure_weekly_default_selection(user, config)
        today = local_date(now, config.timezone)
        grid = await self.build_weekly_grid(user, config, period, today)
        logger.info(
            "Week loaded",
            user_id=user.user_id,
            residence_id=user.residence_id,
            iso_week=grid.iso_week,
            cells=len(grid.cells),
        )
        return WeekView(config=config, period=period, selection=selection, grid=grid)
