"""Pet owner (propietario) models."""

from typing import Optional

from pydantic import Field

from models.base import ApiModel


class Owner(ApiModel):
    """Propietario as returned by /propietarios."""

    id_propietario: int = Field(..., alias="idPropietario")
    documento: Optional[str] = None
    tipo_documento: Optional[str] = Field(default=None, alias="tipoDocumento")
    nombres: Optional[str] = None
    apellidos: Optional[str] = None
    email: Optional[str] = None
    telefono: Optional[str] = None
    direccion: Optional[str] = None
    activo: Optional[bool] = None

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.nombres, self.apellidos) if p) or f"#{self.id_propietario}"
