"""
Activity domain models.

An activity occupies a date range and may replace the ordinary meal of
its participants with a single substitute per meal group and date.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import Field, model_validator

from comensales.domain.shared.records import Record, TimeString


class ActivityStatus(str, Enum):
    BORRADOR = "borrador"
    ABIERTA_INSCRIPCION = "abierta_inscripcion"
    CERRADA_INSCRIPCION = "cerrada_inscripcion"
    CONFIRMADA_FINALIZADA = "confirmada_finalizada"
    CANCELADA = "cancelada"


# Statuses under which an activity shows up in a resident's grid
VISIBLE_ACTIVITY_STATUSES: tuple[ActivityStatus, ...] = (
    ActivityStatus.ABIERTA_INSCRIPCION,
    ActivityStatus.CERRADA_INSCRIPCION,
    ActivityStatus.CONFIRMADA_FINALIZADA,
)


class EnrollmentStatus(str, Enum):
    INVITADO_PENDIENTE = "invitado_pendiente"
    INVITADO_RECHAZADO = "invitado_rechazado"
    INVITADO_ACEPTADO = "invitado_aceptado"
    INSCRITO_DIRECTO = "inscrito_directo"
    CANCELADO_USUARIO = "cancelado_usuario"
    CANCELADO_ADMIN = "cancelado_admin"


CONFIRMED_ENROLLMENT_STATUSES: frozenset[EnrollmentStatus] = frozenset(
    {EnrollmentStatus.INSCRITO_DIRECTO, EnrollmentStatus.INVITADO_ACEPTADO}
)


class ActivityMealSubstitution(Record):
    """
    Single substitute meal served to activity participants.

    Replaces whatever the grid would show for ``group_name`` on ``date``.
    """

    id: str = Field(..., min_length=1)
    activity_id: Optional[str] = Field(default=None, alias="actividadId")
    name: str = Field(..., alias="nombreTiempoComida_AlternativaUnica")
    group_name: str = Field(..., alias="nombreGrupoTiempoComida")
    group_order: int = Field(..., alias="ordenGrupoTiempoComida")
    date: dt.date = Field(..., alias="fecha")
    estimated_time: Optional[TimeString] = Field(default=None, alias="horaEstimadaMeal")


class Activity(Record):
    """
    Special activity that takes participants out of the ordinary schedule.

    On ``start_date`` only meal groups ordered at or after the group of
    ``last_slot_before_id`` are covered; on ``end_date`` only those ordered
    at or before the group of ``first_slot_after_id``. A missing boundary
    covers the whole day.
    """

    id: str = Field(..., min_length=1)
    residence_id: str = Field(..., alias="residenciaId")
    name: str = Field(..., alias="nombre")
    status: ActivityStatus = Field(..., alias="estado")
    start_date: dt.date = Field(..., alias="fechaInicio")
    end_date: dt.date = Field(..., alias="fechaFin")
    last_slot_before_id: Optional[str] = Field(default=None, alias="ultimoTiempoComidaAntes")
    first_slot_after_id: Optional[str] = Field(default=None, alias="primerTiempoComidaDespues")
    meal_plan: tuple[ActivityMealSubstitution, ...] = Field(default=(), alias="planComidas")
    accepts_residents: bool = Field(default=True, alias="aceptaResidentes")

    @model_validator(mode="after")
    def _check_range(self) -> Activity:
        if self.start_date > self.end_date:
            raise ValueError(
                f"fechaInicio {self.start_date} is after fechaFin {self.end_date}"
            )
        return self

    @property
    def visible_to_residents(self) -> bool:
        return self.accepts_residents and self.status in VISIBLE_ACTIVITY_STATUSES


class ActivityEnrollment(Record):
    """Link between a user and an activity."""

    id: str = Field(..., min_length=1)
    activity_id: str = Field(..., alias="actividadId")
    user_id: str = Field(..., alias="userId")
    residence_id: str = Field(..., alias="residenciaId")
    status: EnrollmentStatus = Field(..., alias="estadoInscripcion")

    @property
    def confirmed(self) -> bool:
        return self.status in CONFIRMED_ENROLLMENT_STATUSES
