"""
Shared fixtures for schedule engine tests.

Reference week: Monday 2025-01-06 .. Sunday 2025-01-12 (ISO 2025-W02),
residence ``res-1`` in Europe/Madrid.
"""

from datetime import date, datetime, timezone
from typing import Any, Callable, Optional

import pytest
import pytest_asyncio

from comensales.application.schedule.engine import ScheduleEngine
from comensales.domain.activity.models import (
    Activity,
    ActivityEnrollment,
    ActivityStatus,
    EnrollmentStatus,
)
from comensales.domain.residents.models import (
    Absence,
    GroupMealRestriction,
    RestrictedAlternative,
    UserContext,
)
from comensales.domain.schedule.config import ResidenceConfig
from comensales.domain.schedule.models import (
    AlterationKind,
    Alternative,
    AlternativeOverride,
    MealSlot,
    MealSlotOverride,
    RequestSchedule,
    ScheduleOverride,
    ServingType,
)
from comensales.domain.shared.ports import UserSession
from comensales.domain.shared.value_objects import DayOfWeek
from comensales.infrastructure.auth.session_verifier import InMemorySessionVerifier
from comensales.infrastructure.clock import FixedClock
from comensales.infrastructure.persistence.document_repositories import (
    Collections,
    DocumentResidentRepository,
    DocumentScheduleRepository,
)
from comensales.infrastructure.persistence.in_memory.document_store import (
    InMemoryDocumentStore,
)

RESIDENCE_ID = "res-1"
TIMEZONE = "Europe/Madrid"
USER_ID = "user-1"
MONDAY = date(2025, 1, 6)
TUESDAY = date(2025, 1, 7)
SUNDAY = date(2025, 1, 12)


# ═══════════════════════════════════════════════════════════
# RECORD FACTORIES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def make_slot() -> Callable[..., MealSlot]:
    """Factory for meal slots (defaults: Monday "Almuerzo" in "Comidas")."""

    def _make(
        id: str = "tc-almuerzo-lunes",
        name: str = "Almuerzo",
        group_name: str = "Comidas",
        group_order: int = 1,
        day: Optional[DayOfWeek] = DayOfWeek.LUNES,
        **kwargs: Any,
    ) -> MealSlot:
        return MealSlot(
            id=id,
            residence_id=RESIDENCE_ID,
            name=name,
            group_name=group_name,
            group_order=group_order,
            day=day,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_alternative() -> Callable[..., Alternative]:
    """Factory for alternatives (defaults: dining hall, 13:00-15:00)."""

    def _make(
        id: str,
        meal_slot_id: str = "tc-almuerzo-lunes",
        principal: bool = False,
        serving_type: ServingType = ServingType.COMEDOR,
        window_start: str = "13:00",
        window_end: str = "15:00",
        **kwargs: Any,
    ) -> Alternative:
        return Alternative(
            id=id,
            residence_id=RESIDENCE_ID,
            meal_slot_id=meal_slot_id,
            name=id,
            serving_type=serving_type,
            principal=principal,
            window_start=window_start,
            window_end=window_end,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_request_schedule() -> Callable[..., RequestSchedule]:
    def _make(
        id: str = "hs-lunes",
        day: DayOfWeek = DayOfWeek.LUNES,
        cutoff_time: str = "09:00",
        **kwargs: Any,
    ) -> RequestSchedule:
        return RequestSchedule(
            id=id,
            residence_id=RESIDENCE_ID,
            name=id,
            day=day,
            cutoff_time=cutoff_time,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_activity() -> Callable[..., Activity]:
    def _make(
        id: str = "act-1",
        start_date: date = MONDAY,
        end_date: date = TUESDAY,
        status: ActivityStatus = ActivityStatus.CONFIRMADA_FINALIZADA,
        **kwargs: Any,
    ) -> Activity:
        return Activity(
            id=id,
            residence_id=RESIDENCE_ID,
            name=id,
            status=status,
            start_date=start_date,
            end_date=end_date,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_enrollment() -> Callable[..., ActivityEnrollment]:
    def _make(
        activity_id: str = "act-1",
        status: EnrollmentStatus = EnrollmentStatus.INSCRITO_DIRECTO,
        id: Optional[str] = None,
    ) -> ActivityEnrollment:
        return ActivityEnrollment(
            id=id or f"ins-{activity_id}",
            activity_id=activity_id,
            user_id=USER_ID,
            residence_id=RESIDENCE_ID,
            status=status,
        )

    return _make


@pytest.fixture
def make_absence() -> Callable[..., Absence]:
    def _make(
        start_date: date = MONDAY,
        end_date: date = MONDAY,
        id: str = "aus-1",
        **kwargs: Any,
    ) -> Absence:
        return Absence(
            id=id,
            user_id=USER_ID,
            residence_id=RESIDENCE_ID,
            start_date=start_date,
            end_date=end_date,
            **kwargs,
        )

    return _make


# ═══════════════════════════════════════════════════════════
# SCHEDULE FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def almuerzo(make_slot: Callable[..., MealSlot]) -> MealSlot:
    """Monday "Almuerzo", group "Comidas", order 1."""
    return make_slot()


@pytest.fixture
def alt_a(make_alternative: Callable[..., Alternative]) -> Alternative:
    """Principal dining hall alternative of Almuerzo."""
    return make_alternative("alt-A", principal=True)


@pytest.fixture
def alt_b(make_alternative: Callable[..., Alternative]) -> Alternative:
    """Non-principal takeaway alternative of Almuerzo."""
    return make_alternative("alt-B", serving_type=ServingType.PARA_LLEVAR)


@pytest.fixture
def base_config(almuerzo: MealSlot, alt_a: Alternative, alt_b: Alternative) -> ResidenceConfig:
    return ResidenceConfig(
        residence_id=RESIDENCE_ID,
        timezone=TIMEZONE,
        meal_slots=(almuerzo,),
        alternatives=(alt_a, alt_b),
    )


@pytest.fixture
def schedule_override() -> ScheduleOverride:
    """Override covering Monday 2025-01-06 only."""
    return ScheduleOverride(
        id="ah-1",
        residence_id=RESIDENCE_ID,
        name="Fiesta",
        start_date=MONDAY,
        end_date=MONDAY,
    )


@pytest.fixture
def rename_almuerzo(schedule_override: ScheduleOverride) -> MealSlotOverride:
    return MealSlotOverride(
        id="tcm-1",
        override_id=schedule_override.id,
        kind=AlterationKind.MODIFICAR,
        affected_slot_id="tc-almuerzo-lunes",
        name="Almuerzo Especial",
    )


@pytest.fixture
def remove_alt_b(rename_almuerzo: MealSlotOverride) -> AlternativeOverride:
    return AlternativeOverride(
        id="atcm-1",
        slot_override_id=rename_almuerzo.id,
        kind=AlterationKind.ELIMINAR,
        affected_alternative_id="alt-B",
    )


@pytest.fixture
def override_config(
    base_config: ResidenceConfig,
    schedule_override: ScheduleOverride,
    rename_almuerzo: MealSlotOverride,
    remove_alt_b: AlternativeOverride,
) -> ResidenceConfig:
    """Almuerzo renamed to "Almuerzo Especial" with alt-B removed on Monday."""
    return base_config.model_copy(
        update={
            "overrides": (schedule_override,),
            "slot_overrides": (rename_almuerzo,),
            "alternative_overrides": (remove_alt_b,),
        }
    )


# ═══════════════════════════════════════════════════════════
# USER FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def user() -> UserContext:
    return UserContext(user_id=USER_ID, residence_id=RESIDENCE_ID, roles=("residente",))


@pytest.fixture
def no_takeaway() -> GroupMealRestriction:
    """Restriction blocking alt-B."""
    return GroupMealRestriction(
        id="perm-1",
        group_id="grupo-1",
        residence_id=RESIDENCE_ID,
        restrict_alternatives=True,
        restricted_alternatives=(RestrictedAlternative(alternative_id="alt-B"),),
    )


@pytest.fixture
def restricted_user(no_takeaway: GroupMealRestriction) -> UserContext:
    return UserContext(user_id=USER_ID, residence_id=RESIDENCE_ID, restriction=no_takeaway)


# ═══════════════════════════════════════════════════════════
# INFRASTRUCTURE FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def clock() -> FixedClock:
    """Monday 2025-01-06 08:00 UTC (09:00 in Madrid)."""
    return FixedClock(datetime(2025, 1, 6, 8, 0, tzinfo=timezone.utc))


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def schedule_repository(store: InMemoryDocumentStore) -> DocumentScheduleRepository:
    return DocumentScheduleRepository(store, in_query_limit=10)


@pytest.fixture
def resident_repository(store: InMemoryDocumentStore) -> DocumentResidentRepository:
    return DocumentResidentRepository(store, in_query_limit=10, enrollment_in_query_limit=30)


@pytest.fixture
def session_verifier() -> InMemorySessionVerifier:
    verifier = InMemorySessionVerifier()
    verifier.register("tok-1", UserSession(user_id=USER_ID, residence_id=RESIDENCE_ID))
    return verifier


@pytest.fixture
def engine(
    schedule_repository: DocumentScheduleRepository,
    resident_repository: DocumentResidentRepository,
    clock: FixedClock,
    session_verifier: InMemorySessionVerifier,
) -> ScheduleEngine:
    return ScheduleEngine(schedule_repository, resident_repository, clock, session_verifier)


@pytest_asyncio.fixture
async def seeded_store(
    store: InMemoryDocumentStore,
    almuerzo: MealSlot,
    alt_a: Alternative,
    alt_b: Alternative,
) -> InMemoryDocumentStore:
    """Store holding the Almuerzo slot and its two alternatives."""
    await store.set(Collections.MEAL_SLOTS, almuerzo.id, almuerzo.to_document())
    for alt in (alt_a, alt_b):
        await store.set(Collections.ALTERNATIVES, alt.id, alt.to_document())
    return store
