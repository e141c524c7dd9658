"""Clinic service (servicio) model."""

from decimal import Decimal
from typing import Optional

from pydantic import Field

from models.base import ApiModel


class ClinicService(ApiModel):
    """Servicio offered by the clinic (consulta, vacunación, ...)."""

    id_servicio: int = Field(..., alias="idServicio")
    nombre: str
    descripcion: Optional[str] = None
    precio: Optional[Decimal] = None
    duracion_estimada: Optional[int] = Field(default=None, alias="duracionEstimada")
    tipo: Optional[str] = None
    categoria: Optional[str] = None
    activo: Optional[bool] = None

    @property
    def label(self) -> str:
        price = f" - ${self.precio}" if self.precio is not None else ""
        return f"{self.nombre}{price}"
