"""Veterinarian schedule (horario) and availability models."""

from typing import Any, Optional

from pydantic import Field, field_validator

from models.base import ApiModel
from utils.datetime_utils import normalize_time


class Schedule(ApiModel):
    """Weekly working hours of a veterinarian."""

    id_horario: Optional[int] = Field(default=None, alias="idHorario")
    dia_semana: Optional[str] = Field(default=None, alias="diaSemana")
    hora_inicio: Optional[str] = Field(default=None, alias="horaInicio")
    hora_fin: Optional[str] = Field(default=None, alias="horaFin")
    duracion_cita_minutos: Optional[int] = Field(default=None, alias="duracionCitaMinutos")
    activo: Optional[bool] = None

    @field_validator("hora_inicio", "hora_fin", mode="before")
    @classmethod
    def _normalize_hours(cls, value: Any) -> Optional[str]:
        return normalize_time(value)


class AvailabilitySlot(ApiModel):
    """One bookable unit of a day's schedule."""

    hora: str
    disponible: bool = False
    motivo_no_disponible: Optional[str] = Field(default=None, alias="motivoNoDisponible")

    @field_validator("hora", mode="before")
    @classmethod
    def _normalize_hour(cls, value: Any) -> Optional[str]:
        return normalize_time(value)


class BookedAppointment(ApiModel):
    """An appointment already occupying the day."""

    id_cita: Optional[int] = Field(default=None, alias="idCita")
    hora: Optional[str] = None
    estado: Optional[str] = None
    nombre_mascota: Optional[str] = Field(default=None, alias="nombreMascota")
    nombre_servicio: Optional[str] = Field(default=None, alias="nombreServicio")

    @field_validator("hora", mode="before")
    @classmethod
    def _normalize_hour(cls, value: Any) -> Optional[str]:
        return normalize_time(value)


class Availability(ApiModel):
    """Availability of one veterinarian on one date, derived server-side."""

    id_veterinario: Optional[int] = Field(default=None, alias="idVeterinario")
    nombre_veterinario: Optional[str] = Field(default=None, alias="nombreVeterinario")
    fecha: Optional[str] = None
    dia_semana: Optional[str] = Field(default=None, alias="diaSemana")
    tiene_horarios: Optional[bool] = Field(default=None, alias="tieneHorarios")
    horarios: list[Schedule] = Field(default_factory=list)
    slots_disponibles: list[AvailabilitySlot] = Field(
        default_factory=list, alias="slotsDisponibles"
    )
    citas_ocupadas: list[BookedAppointment] = Field(
        default_factory=list, alias="citasOcupadas"
    )

    def find_slot(self, hour: str) -> Optional[AvailabilitySlot]:
        wanted = normalize_time(hour)
        for slot in self.slots_disponibles:
            if slot.hora == wanted:
                return slot
        return None

    @property
    def free_slots(self) -> list[AvailabilitySlot]:
        return [slot for slot in self.slots_disponibles if slot.disponible]
