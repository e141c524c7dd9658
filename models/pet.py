"""Pet (mascota), species and breed models."""

from typing import Optional

from pydantic import Field

from models.base import ApiModel


class Species(ApiModel):
    id_especie: Optional[int] = Field(default=None, alias="idEspecie")
    nombre: str
    descripcion: Optional[str] = None
    activo: Optional[bool] = None


class Breed(ApiModel):
    id_raza: Optional[int] = Field(default=None, alias="idRaza")
    nombre: str
    especie: Optional[Species] = None
    activo: Optional[bool] = None


class Pet(ApiModel):
    """Mascota as returned by /mascotas."""

    id_mascota: int = Field(..., alias="idMascota")
    nombre: str
    sexo: Optional[str] = None
    peso: Optional[float] = None
    fecha_nacimiento: Optional[str] = Field(default=None, alias="fechaNacimiento")
    color: Optional[str] = None
    raza: Optional[Breed] = None
    id_propietario: Optional[int] = Field(default=None, alias="idPropietario")
    activo: Optional[bool] = None

    @property
    def description(self) -> str:
        """Breed - species line used in lists."""
        breed = self.raza.nombre if self.raza else None
        species = self.raza.especie.nombre if self.raza and self.raza.especie else None
        return " - ".join(p for p in (breed, species) if p)
