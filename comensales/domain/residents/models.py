"""
Resident-side domain models.

Per-user records the grid folds in: the weekly default selection
(semanario), one-off exceptions, absences and the group-level
alternative restriction.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from comensales.domain.activity.models import ActivityEnrollment
from comensales.domain.shared.records import Record


class WeeklyDefaultSelection(Record):
    """
    A user's standing choice of alternative per meal slot (semanario).

    Exactly one document is expected per (user, residence).

    Attributes:
        choices: Meal slot id -> alternative id, or None when unchosen
        last_updated: Epoch milliseconds of the last write
    """

    id: Optional[str] = None
    user_id: str = Field(..., min_length=1, alias="userId")
    residence_id: str = Field(..., min_length=1, alias="residenciaId")
    choices: dict[str, Optional[str]] = Field(default_factory=dict, alias="elecciones")
    last_updated: int = Field(..., ge=0, alias="ultimaActualizacion")

    def choice_for(self, meal_slot_id: str) -> Optional[str]:
        return self.choices.get(meal_slot_id)


class ExceptionKind(str, Enum):
    CAMBIO_ALTERNATIVA = "cambio_alternativa"
    CANCELACION_COMIDA = "cancelacion_comida"
    CAMBIO_DIETA = "cambio_dieta"


class ExceptionOrigin(str, Enum):
    RESIDENTE = "residente"
    DIRECTOR = "director"
    ASISTENTE = "asistente"
    WIZARD_INVITADOS = "wizard_invitados"


class ApprovalStatus(str, Enum):
    NO_REQUIERE_APROBACION = "no_requiere_aprobacion"
    PENDIENTE = "pendiente"
    APROBADO = "aprobado"
    RECHAZADO = "rechazado"


class MealException(Record):
    """
    Date-scoped deviation from the weekly default for one meal slot.

    ``cambio_alternativa`` must name the replacement alternative;
    ``cancelacion_comida`` resolves the cell to no alternative.
    """

    id: Optional[str] = None
    user_id: str = Field(..., alias="usuarioId")
    residence_id: str = Field(..., alias="residenciaId")
    date: dt.date = Field(..., alias="fecha")
    meal_slot_id: str = Field(..., alias="tiempoComidaId")
    kind: ExceptionKind = Field(..., alias="tipo")
    alternative_id: Optional[str] = Field(default=None, alias="alternativaTiempoComidaId")
    reason: Optional[str] = Field(default=None, alias="motivo")
    origin: ExceptionOrigin = Field(default=ExceptionOrigin.RESIDENTE, alias="origen")
    approved_by: Optional[str] = Field(default=None, alias="autorizadoPor")
    approval_status: Optional[ApprovalStatus] = Field(default=None, alias="estadoAprobacion")

    @model_validator(mode="after")
    def _check_payload(self) -> MealException:
        if self.kind is ExceptionKind.CAMBIO_ALTERNATIVA and not self.alternative_id:
            raise ValueError("cambio_alternativa requires alternativaTiempoComidaId")
        return self

    @property
    def chosen_alternative_id(self) -> Optional[str]:
        """Alternative the exception resolves to (None for a cancellation)."""
        if self.kind is ExceptionKind.CANCELACION_COMIDA:
            return None
        return self.alternative_id


class Absence(Record):
    """
    Date range during which a user skips meals.

    Boundary slots narrow the first and last day the same way an
    activity's do.
    """

    id: Optional[str] = None
    user_id: str = Field(..., alias="userId")
    residence_id: str = Field(..., alias="residenciaId")
    start_date: dt.date = Field(..., alias="fechaInicio")
    end_date: dt.date = Field(..., alias="fechaFin")
    last_slot_id: Optional[str] = Field(default=None, alias="ultimoTiempoComidaId")
    first_slot_id: Optional[str] = Field(default=None, alias="primerTiempoComidaId")
    pending_return: bool = Field(default=False, alias="retornoPendienteConfirmacion")
    reason: Optional[str] = Field(default=None, alias="motivo")

    @model_validator(mode="after")
    def _check_range(self) -> Absence:
        if self.start_date > self.end_date:
            raise ValueError(
                f"fechaInicio {self.start_date} is after fechaFin {self.end_date}"
            )
        return self


class RestrictedAlternative(Record):
    alternative_id: str = Field(..., alias="alternativaRestringida")
    requires_approval: bool = Field(default=False, alias="requiereAprobacion")


class GroupMealRestriction(Record):
    """
    Alternatives the members of a user group may not choose.

    Only in force when ``restrict_alternatives`` is set.
    """

    id: str = Field(..., min_length=1)
    group_id: str = Field(..., alias="grupoPermisos")
    residence_id: str = Field(..., alias="residenciaId")
    restrict_alternatives: bool = Field(default=False, alias="restriccionAlternativas")
    restricted_alternatives: tuple[RestrictedAlternative, ...] = Field(
        default=(), alias="alternativasRestringidas"
    )

    @property
    def restricted_ids(self) -> frozenset[str]:
        if not self.restrict_alternatives:
            return frozenset()
        return frozenset(r.alternative_id for r in self.restricted_alternatives)


# ═══════════════════════════════════════════════════════════
# USER SNAPSHOTS
# ═══════════════════════════════════════════════════════════


class UserContext(BaseModel):
    """Resolved caller for whom a grid is built."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    residence_id: str = Field(..., min_length=1)
    roles: tuple[str, ...] = ()
    restriction: Optional[GroupMealRestriction] = None


class UserMealData(BaseModel):
    """Per-user records loaded for one affected period."""

    model_config = ConfigDict(frozen=True)

    weekly_selection: Optional[WeeklyDefaultSelection] = None
    exceptions: tuple[MealException, ...] = ()
    absences: tuple[Absence, ...] = ()
    enrollments: tuple[ActivityEnrollment, ...] = ()
