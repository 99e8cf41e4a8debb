"""
Schedule domain models.

Base weekly schedule (meal slots, alternatives, request cutoffs) and the
date-scoped overrides layered on top of it.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import Field, model_validator

from comensales.domain.shared.records import Record, TimeString
from comensales.domain.shared.value_objects import DateRange, DayOfWeek


class ServingType(str, Enum):
    """How an alternative is served."""

    COMEDOR = "comedor"
    PARA_LLEVAR = "paraLlevar"
    AYUNO = "ayuno"


class AccessType(str, Enum):
    """Who may pick an alternative."""

    ABIERTO = "abierto"
    AUTORIZADO = "autorizado"
    CERRADO = "cerrado"


class AlterationKind(str, Enum):
    """
    Kind of change an override applies to its target.

    Closed set; the override resolver dispatches on it through a
    strategy table.
    """

    AGREGAR = "agregar"
    MODIFICAR = "modificar"
    ELIMINAR = "eliminar"


# ═══════════════════════════════════════════════════════════
# BASE WEEKLY SCHEDULE
# ═══════════════════════════════════════════════════════════


class MealSlot(Record):
    """
    Recurring weekly meal slot (e.g. "Almuerzo lunes").

    Attributes:
        group_name: Display group shared by the same meal on every day
        group_order: Sort key of the group in the grid
        day: Weekday, or None when the slot applies to every day
        ordinary: Participates in the weekly default selection
    """

    id: str = Field(..., min_length=1)
    residence_id: str = Field(..., alias="residenciaId")
    name: str = Field(..., alias="nombre")
    group_name: str = Field(..., min_length=1, alias="nombreGrupo")
    group_order: int = Field(..., alias="ordenGrupo")
    day: Optional[DayOfWeek] = Field(default=None, alias="dia")
    estimated_time: Optional[TimeString] = Field(default=None, alias="horaEstimada")
    ordinary: bool = Field(default=True, alias="aplicacionOrdinaria")
    active: bool = Field(default=True, alias="isActive")

    def applies_on(self, day: DayOfWeek) -> bool:
        return self.day is None or self.day == day


class Alternative(Record):
    """
    Concrete way of taking a meal slot.

    The request window is expressed relative to the slot's nominal day:
    ``starts_day_before`` moves ``window_start`` to the previous day and
    ``ends_day_after`` moves ``window_end`` to the following one.
    """

    id: str = Field(..., min_length=1)
    residence_id: str = Field(..., alias="residenciaId")
    meal_slot_id: str = Field(..., alias="tiempoComidaId")
    name: str = Field(..., alias="nombre")
    serving_type: ServingType = Field(..., alias="tipo")
    access_type: AccessType = Field(default=AccessType.ABIERTO, alias="tipoAcceso")
    requires_approval: bool = Field(default=False, alias="requiereAprobacion")
    window_start: TimeString = Field(..., alias="ventanaInicio")
    window_end: TimeString = Field(..., alias="ventanaFin")
    starts_day_before: bool = Field(default=False, alias="iniciaDiaAnterior")
    ends_day_after: bool = Field(default=False, alias="terminaDiaSiguiente")
    request_schedule_id: Optional[str] = Field(default=None, alias="horarioSolicitudComidaId")
    dining_hall_id: Optional[str] = Field(default=None, alias="comedorId")
    principal: bool = Field(default=False, alias="esPrincipal")
    active: bool = Field(default=True, alias="isActive")


class RequestSchedule(Record):
    """Weekly cutoff by which meal requests must be submitted."""

    id: str = Field(..., min_length=1)
    residence_id: str = Field(..., alias="residenciaId")
    name: str = Field(..., alias="nombre")
    day: DayOfWeek = Field(..., alias="dia")
    cutoff_time: TimeString = Field(..., alias="horaSolicitud")
    primary: bool = Field(default=False, alias="isPrimary")
    active: bool = Field(default=True, alias="isActive")


# ═══════════════════════════════════════════════════════════
# DATE-SCOPED OVERRIDES
# ═══════════════════════════════════════════════════════════


class ScheduleOverride(Record):
    """Date range during which parts of the base schedule are replaced."""

    id: str = Field(..., min_length=1)
    residence_id: str = Field(..., alias="residenciaId")
    name: Optional[str] = Field(default=None, alias="nombre")
    description: Optional[str] = Field(default=None, alias="descripcion")
    start_date: date = Field(..., alias="fechaInicio")
    end_date: date = Field(..., alias="fechaFin")

    @model_validator(mode="after")
    def _check_range(self) -> ScheduleOverride:
        if self.start_date > self.end_date:
            raise ValueError(
                f"fechaInicio {self.start_date} is after fechaFin {self.end_date}"
            )
        return self

    @property
    def period(self) -> DateRange:
        return DateRange(start=self.start_date, end=self.end_date)

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class MealSlotOverride(Record):
    """
    Change to one meal slot while a schedule override is in force.

    ``agregar`` introduces a slot that has no base counterpart and must
    carry its own group; ``modificar`` and ``eliminar`` reference the
    affected base slot.
    """

    id: str = Field(..., min_length=1)
    override_id: str = Field(..., alias="alteracionId")
    residence_id: Optional[str] = Field(default=None, alias="residenciaId")
    kind: AlterationKind = Field(..., alias="tipoAlteracion")
    affected_slot_id: Optional[str] = Field(default=None, alias="tiempoAfectado")
    name: Optional[str] = Field(default=None, alias="nombre")
    group_name: Optional[str] = Field(default=None, alias="nombreGrupo")
    group_order: Optional[int] = Field(default=None, alias="ordenGrupo")
    day: Optional[DayOfWeek] = Field(default=None, alias="dia")
    estimated_time: Optional[TimeString] = Field(default=None, alias="horaEstimada")

    @model_validator(mode="after")
    def _check_target(self) -> MealSlotOverride:
        if self.kind is AlterationKind.AGREGAR and not self.group_name:
            raise ValueError("agregar slot override requires nombreGrupo")
        if self.kind is not AlterationKind.AGREGAR and not self.affected_slot_id:
            raise ValueError(f"{self.kind.value} slot override requires tiempoAfectado")
        return self


class AlternativeOverride(Record):
    """
    Change to one alternative under a meal slot override.

    Replacement fields are only meaningful for ``agregar`` and
    ``modificar``.
    """

    id: str = Field(..., min_length=1)
    residence_id: Optional[str] = Field(default=None, alias="residenciaId")
    slot_override_id: str = Field(..., alias="tiempoComidaModId")
    kind: AlterationKind = Field(..., alias="tipoAlteracion")
    affected_alternative_id: Optional[str] = Field(default=None, alias="alternativaAfectada")
    fallback_alternative_id: Optional[str] = Field(default=None, alias="alternativaDesborde")
    request_schedule_id: Optional[str] = Field(default=None, alias="horarioSolicitudComidaId")
    name: Optional[str] = Field(default=None, alias="nombre")
    serving_type: Optional[ServingType] = Field(default=None, alias="tipo")
    access_type: Optional[AccessType] = Field(default=None, alias="tipoAcceso")
    requires_approval: Optional[bool] = Field(default=None, alias="requiereAprobacion")
    window_start: Optional[TimeString] = Field(default=None, alias="ventanaInicio")
    starts_day_before: Optional[bool] = Field(default=None, alias="iniciaDiaAnterior")
    window_end: Optional[TimeString] = Field(default=None, alias="ventanaFin")
    ends_day_after: Optional[bool] = Field(default=None, alias="terminaDiaSiguiente")
    dining_hall_id: Optional[str] = Field(default=None, alias="comedorId")

    @model_validator(mode="after")
    def _check_target(self) -> AlternativeOverride:
        if self.kind is not AlterationKind.AGREGAR and not self.affected_alternative_id:
            raise ValueError(f"{self.kind.value} alternative override requires alternativaAfectada")
        return self
