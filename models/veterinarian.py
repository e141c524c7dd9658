"""Veterinarian (veterinario) model."""

from typing import Optional

from pydantic import Field

from models.base import ApiModel


class Veterinarian(ApiModel):
    """Veterinario as returned by /veterinarios."""

    id_personal: int = Field(..., alias="idPersonal")
    nombres: Optional[str] = None
    apellidos: Optional[str] = None
    especialidad: Optional[str] = None
    registro_profesional: Optional[str] = Field(default=None, alias="registroProfesional")
    email: Optional[str] = None
    telefono: Optional[str] = None
    activo: Optional[bool] = None

    @property
    def display_name(self) -> str:
        name = " ".join(p for p in (self.nombres, self.apellidos) if p)
        return f"Dr(a). {name}" if name else f"Dr(a). #{self.id_personal}"
