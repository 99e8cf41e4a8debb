"""Document-store backed repositories.

Implement IScheduleRepository and IResidentRepository on any
IDocumentStore. Collections are flat and scoped by ``residenciaId`` /
``userId`` fields; dates are stored as ``YYYY-MM-DD`` strings, so range
filters compare lexicographically.
"""

from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

import structlog

from comensales.domain.activity.models import (
    VISIBLE_ACTIVITY_STATUSES,
    Activity,
    ActivityEnrollment,
    ActivityMealSubstitution,
)
from comensales.domain.residents.models import (
    Absence,
    GroupMealRestriction,
    MealException,
    WeeklyDefaultSelection,
)
from comensales.domain.schedule.models import (
    Alternative,
    AlternativeOverride,
    MealSlot,
    MealSlotOverride,
    RequestSchedule,
    ScheduleOverride,
)
from comensales.domain.shared.errors import IntegrityError
from comensales.domain.shared.ports import Document, IDocumentStore, QueryFilter
from comensales.domain.shared.records import Record
from comensales.domain.shared.value_objects import DateRange
from comensales.infrastructure.config import (
    get_enrollment_in_query_limit,
    get_in_query_limit,
)
from comensales.infrastructure.persistence.batching import gather_in_chunks

logger = structlog.get_logger(__name__)

TRecord = TypeVar("TRecord", bound=Record)


class Collections:
    """Store collection names."""

    MEAL_SLOTS = "tiemposComida"
    ALTERNATIVES = "alternativasTiempoComida"
    REQUEST_SCHEDULES = "horariosSolicitudComida"
    OVERRIDES = "alteracionesHorario"
    SLOT_OVERRIDES = "tiemposComidaMod"
    ALTERNATIVE_OVERRIDES = "alternativasTiempoComidaMod"
    ACTIVITIES = "actividades"
    SUBSTITUTIONS = "tiemposComidaAlternativaUnicaActividad"
    WEEKLY_SELECTIONS = "semanarios"
    EXCEPTIONS = "excepciones"
    ABSENCES = "ausencias"
    ENROLLMENTS = "inscripcionesActividades"
    USER_GROUPS = "usuariosGrupos"
    GROUPS = "gruposUsuarios"
    MEAL_PERMISSIONS = "permisosComidaPorGrupo"


def _eq(field: str, value: Any) -> QueryFilter:
    return QueryFilter(field=field, op="==", value=value)


def _parse(model: Type[TRecord], docs: Sequence[Document]) -> List[TRecord]:
    return [model.from_document(d) for d in docs]


class DocumentScheduleRepository:
    """
    IScheduleRepository over a document store.

    Example:
        >>> repository = DocumentScheduleRepository(InMemoryDocumentStore())
        >>> await repository.get_meal_slots("res-1")
        []
    """

    def __init__(self, store: IDocumentStore, in_query_limit: Optional[int] = None) -> None:
        self._store = store
        self._in_limit = in_query_limit or get_in_query_limit()

    async def _active(self, collection: str, model: Type[TRecord], residence_id: str) -> List[TRecord]:
        docs = await self._store.query(
            collection,
            [_eq("residenciaId", residence_id), _eq("isActive", True)],
        )
        return _parse(model, docs)

    async def get_meal_slots(self, residence_id: str) -> List[MealSlot]:
        return await self._active(Collections.MEAL_SLOTS, MealSlot, residence_id)

    async def get_alternatives(self, residence_id: str) -> List[Alternative]:
        return await self._active(Collections.ALTERNATIVES, Alternative, residence_id)

    async def get_request_schedules(self, residence_id: str) -> List[RequestSchedule]:
        return await self._active(Collections.REQUEST_SCHEDULES, RequestSchedule, residence_id)

    async def get_overrides(self, residence_id: str, period: DateRange) -> List[ScheduleOverride]:
        docs = await self._store.query(
            Collections.OVERRIDES,
            [
                _eq("residenciaId", residence_id),
                QueryFilter(field="fechaInicio", op="<=", value=period.end.isoformat()),
                QueryFilter(field="fechaFin", op=">=", value=period.start.isoformat()),
            ],
        )
        return _parse(ScheduleOverride, docs)

    async def _in_chunks(
        self,
        collection: str,
        field: str,
        ids: Sequence[str],
        residence_id: str,
    ) -> List[Document]:
        async def fetch(chunk: List[str]) -> List[Document]:
            return await self._store.query(
                collection,
                [_eq("residenciaId", residence_id), QueryFilter(field=field, op="in", value=chunk)],
            )

        return await gather_in_chunks(ids, self._in_limit, fetch)

    async def get_slot_overrides(
        self, residence_id: str, override_ids: Sequence[str]
    ) -> List[MealSlotOverride]:
        docs = await self._in_chunks(
            Collections.SLOT_OVERRIDES, "alteracionId", override_ids, residence_id
        )
        return _parse(MealSlotOverride, docs)

    async def get_alternative_overrides(
        self, residence_id: str, slot_override_ids: Sequence[str]
    ) -> List[AlternativeOverride]:
        docs = await self._in_chunks(
            Collections.ALTERNATIVE_OVERRIDES, "tiempoComidaModId", slot_override_ids, residence_id
        )
        return _parse(AlternativeOverride, docs)

    async def get_activities(self, residence_id: str, period: DateRange) -> List[Activity]:
        docs = await self._store.query(
            Collections.ACTIVITIES,
            [
                _eq("residenciaId", residence_id),
                _eq("aceptaResidentes", True),
                QueryFilter(field="fechaFin", op=">=", value=period.start.isoformat()),
                QueryFilter(field="fechaInicio", op="<=", value=period.end.isoformat()),
                QueryFilter(
                    field="estado",
                    op="in",
                    value=[s.value for s in VISIBLE_ACTIVITY_STATUSES],
                ),
            ],
        )
        return _parse(Activity, docs)

    async def get_activities_by_ids(
        self, residence_id: str, activity_ids: Sequence[str]
    ) -> List[Activity]:
        docs = await self._in_chunks(Collections.ACTIVITIES, "id", activity_ids, residence_id)
        return _parse(Activity, docs)

    async def get_substitutions(
        self, residence_id: str, period: DateRange
    ) -> List[ActivityMealSubstitution]:
        docs = await self._store.query(
            Collections.SUBSTITUTIONS,
            [
                _eq("residenciaId", residence_id),
                QueryFilter(field="fecha", op=">=", value=period.start.isoformat()),
                QueryFilter(field="fecha", op="<=", value=period.end.isoformat()),
            ],
        )
        return _parse(ActivityMealSubstitution, docs)


class DocumentResidentRepository:
    """IResidentRepository over a document store."""

    def __init__(
        self,
        store: IDocumentStore,
        in_query_limit: Optional[int] = None,
        enrollment_in_query_limit: Optional[int] = None,
    ) -> None:
        self._store = store
        self._in_limit = in_query_limit or get_in_query_limit()
        self._enrollment_limit = enrollment_in_query_limit or get_enrollment_in_query_limit()

    async def get_weekly_selections(
        self, user_id: str, residence_id: str
    ) -> List[WeeklyDefaultSelection]:
        docs = await self._store.query(
            Collections.WEEKLY_SELECTIONS,
            [_eq("userId", user_id), _eq("residenciaId", residence_id)],
        )
        return _parse(WeeklyDefaultSelection, docs)

    async def add_weekly_selection(
        self, selection: WeeklyDefaultSelection
    ) -> WeeklyDefaultSelection:
        doc = selection.to_document()
        doc.pop("id", None)
        doc_id = await self._store.add(Collections.WEEKLY_SELECTIONS, doc)
        logger.info(
            "Weekly selection created",
            selection_id=doc_id,
            user_id=selection.user_id,
            residence_id=selection.residence_id,
        )
        return selection.model_copy(update={"id": doc_id})

    async def save_weekly_selection(self, selection: WeeklyDefaultSelection) -> None:
        if not selection.id:
            raise ValueError("Cannot save a weekly selection without id")
        await self._store.set(Collections.WEEKLY_SELECTIONS, selection.id, selection.to_document())

    async def get_exceptions(
        self, user_id: str, residence_id: str, period: DateRange
    ) -> List[MealException]:
        docs = await self._store.query(
            Collections.EXCEPTIONS,
            [
                _eq("usuarioId", user_id),
                _eq("residenciaId", residence_id),
                QueryFilter(field="fecha", op=">=", value=period.start.isoformat()),
                QueryFilter(field="fecha", op="<=", value=period.end.isoformat()),
            ],
        )
        return _parse(MealException, docs)

    async def get_absences(
        self, user_id: str, residence_id: str, period: DateRange
    ) -> List[Absence]:
        docs = await self._store.query(
            Collections.ABSENCES,
            [
                _eq("userId", user_id),
                _eq("residenciaId", residence_id),
                QueryFilter(field="fechaFin", op=">=", value=period.start.isoformat()),
                QueryFilter(field="fechaInicio", op="<=", value=period.end.isoformat()),
            ],
        )
        return _parse(Absence, docs)

    async def get_enrollments(
        self, user_id: str, residence_id: str, activity_ids: Sequence[str]
    ) -> List[ActivityEnrollment]:
        async def fetch(chunk: List[str]) -> List[Document]:
            return await self._store.query(
                Collections.ENROLLMENTS,
                [
                    _eq("userId", user_id),
                    _eq("residenciaId", residence_id),
                    QueryFilter(field="actividadId", op="in", value=chunk),
                ],
            )

        docs = await gather_in_chunks(activity_ids, self._enrollment_limit, fetch)
        return _parse(ActivityEnrollment, docs)

    async def get_restriction(
        self, user_id: str, residence_id: str
    ) -> Optional[GroupMealRestriction]:
        """
        Meal restriction of the user's meal-choice group.

        Raises:
            IntegrityError: If the user belongs to several meal-choice groups
        """
        memberships = await self._store.query(
            Collections.USER_GROUPS,
            [_eq("residenciaId", residence_id), _eq("userId", user_id)],
        )
        group_ids = [m.get("grupoUsuarioId") for m in memberships]

        async def fetch(chunk: List[str]) -> List[Document]:
            return await self._store.query(
                Collections.GROUPS,
                [
                    _eq("residenciaId", residence_id),
                    _eq("tipoGrupo", "eleccion-comidas"),
                    QueryFilter(field="id", op="in", value=chunk),
                ],
            )

        groups: List[Dict[str, Any]] = await gather_in_chunks(group_ids, self._in_limit, fetch)
        if not groups:
            return None
        if len(groups) > 1:
            logger.error(
                "User belongs to several meal-choice groups",
                user_id=user_id,
                residence_id=residence_id,
                group_ids=[g["id"] for g in groups],
            )
            raise IntegrityError(
                f"User {user_id} belongs to {len(groups)} meal-choice groups in {residence_id}"
            )

        permissions_id = groups[0].get("permisosComidaPorGrupoId")
        if not permissions_id:
            return None
        doc = await self._store.get(Collections.MEAL_PERMISSIONS, permissions_id)
        if doc is None:
            logger.warning(
                "Meal permissions not found",
                user_id=user_id,
                permissions_id=permissions_id,
            )
            return None
        return GroupMealRestriction.from_document(doc)
