"""Appointment (cita) models."""

from datetime import date
from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_validator

from models.base import ApiModel
from models.clinic_service import ClinicService
from models.pet import Pet
from models.veterinarian import Veterinarian
from utils.datetime_utils import normalize_time


class AppointmentStatus(str, Enum):
    """Appointment lifecycle status."""

    PROGRAMADA = "PROGRAMADA"
    CONFIRMADA = "CONFIRMADA"
    EN_ATENCION = "EN_ATENCION"
    ATENDIDA = "ATENDIDA"
    CANCELADA = "CANCELADA"
    NO_ASISTIO = "NO_ASISTIO"


ACTIVE_STATUSES = {AppointmentStatus.PROGRAMADA.value, AppointmentStatus.CONFIRMADA.value}


class Appointment(ApiModel):
    """Cita as returned by /citas."""

    id_cita: int = Field(..., alias="idCita")
    fecha_cita: Optional[str] = Field(default=None, alias="fechaCita")
    hora_cita: Optional[str] = Field(default=None, alias="horaCita")
    estado: Optional[str] = None
    motivo: Optional[str] = None
    motivo_consulta: Optional[str] = Field(default=None, alias="motivoConsulta")
    observaciones: Optional[str] = None
    mascota: Optional[Pet] = None
    veterinario: Optional[Veterinarian] = None
    servicio: Optional[ClinicService] = None
    id_mascota: Optional[int] = Field(default=None, alias="idMascota")
    id_veterinario: Optional[int] = Field(default=None, alias="idVeterinario")
    id_propietario: Optional[int] = Field(default=None, alias="idPropietario")
    nombre_mascota: Optional[str] = Field(default=None, alias="nombreMascota")
    nombre_servicio: Optional[str] = Field(default=None, alias="nombreServicio")

    @field_validator("hora_cita", mode="before")
    @classmethod
    def _normalize_hour(cls, value: Any) -> Optional[str]:
        return normalize_time(value)

    @property
    def day(self) -> Optional[date]:
        if not self.fecha_cita:
            return None
        try:
            return date.fromisoformat(self.fecha_cita[:10])
        except ValueError:
            return None

    @property
    def pet_id(self) -> Optional[int]:
        return self.mascota.id_mascota if self.mascota else self.id_mascota

    @property
    def pet_name(self) -> str:
        return (self.mascota.nombre if self.mascota else self.nombre_mascota) or "-"

    @property
    def service_name(self) -> str:
        return (self.servicio.nombre if self.servicio else self.nombre_servicio) or "-"

    @property
    def reason(self) -> str:
        return self.motivo or self.motivo_consulta or ""

    @property
    def is_active(self) -> bool:
        return self.estado in ACTIVE_STATUSES


class AppointmentCreate(ApiModel):
    """Body of POST /citas built by the booking wizard."""

    fecha_cita: date = Field(..., alias="fechaCita")
    hora_cita: str = Field(..., alias="horaCita")
    motivo: str
    id_mascota: int = Field(..., alias="idMascota")
    id_servicio: int = Field(..., alias="idServicio")
    id_veterinario: int = Field(..., alias="idVeterinario")
    id_propietario: Optional[int] = Field(default=None, alias="idPropietario")
    estado: Optional[str] = None
