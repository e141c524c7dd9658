"""Clinical models: records, evolutions and vaccinations."""

from datetime import date
from typing import Optional

from pydantic import Field

from models.base import ApiModel
from models.pet import Pet
from models.veterinarian import Veterinarian


class ClinicalRecord(ApiModel):
    """Historia clínica of one pet."""

    id_historia_clinica: int = Field(..., alias="idHistoriaClinica")
    numero_historia: Optional[str] = Field(default=None, alias="numeroHistoria")
    mascota: Optional[Pet] = None
    antecedentes_medicos: Optional[str] = Field(default=None, alias="antecedentesMedicos")
    antecedentes_quirurgicos: Optional[str] = Field(
        default=None, alias="antecedentesQuirurgicos"
    )
    alergias: Optional[str] = None
    enfermedades_cronicas: Optional[str] = Field(default=None, alias="enfermedadesCronicas")
    medicamentos_actuales: Optional[str] = Field(default=None, alias="medicamentosActuales")
    observaciones_generales: Optional[str] = Field(
        default=None, alias="observacionesGenerales"
    )
    activa: Optional[bool] = None

    @property
    def title(self) -> str:
        number = self.numero_historia or f"#{self.id_historia_clinica}"
        pet = self.mascota.nombre if self.mascota else None
        return f"{number} - {pet}" if pet else number


class ClinicalEvolution(ApiModel):
    """Progress note attached to a clinical record."""

    id_evolucion_clinica: Optional[int] = Field(default=None, alias="idEvolucionClinica")
    fecha: Optional[str] = None
    descripcion: Optional[str] = None
    signos_vitales: Optional[str] = Field(default=None, alias="signosVitales")
    diagnostico: Optional[str] = None
    tratamiento: Optional[str] = None
    observaciones: Optional[str] = None
    veterinario: Optional[Veterinarian] = None


class ClinicalEvolutionCreate(ApiModel):
    """Body of POST /evoluciones-clinicas."""

    fecha: date
    descripcion: str
    signos_vitales: Optional[str] = Field(default=None, alias="signosVitales")
    diagnostico: Optional[str] = None
    tratamiento: Optional[str] = None
    observaciones: Optional[str] = None


class Vaccination(ApiModel):
    id_vacunacion: Optional[int] = Field(default=None, alias="idVacunacion")
    id_historia_clinica: Optional[int] = Field(default=None, alias="idHistoriaClinica")
    nombre_vacuna: str = Field(..., alias="nombreVacuna")
    laboratorio: Optional[str] = None
    lote: Optional[str] = None
    fecha_aplicacion: Optional[str] = Field(default=None, alias="fechaAplicacion")
    fecha_proxima_dosis: Optional[str] = Field(default=None, alias="fechaProximaDosis")
    via_administracion: Optional[str] = Field(default=None, alias="viaAdministracion")
    observaciones: Optional[str] = None
    esquema_completo: Optional[bool] = Field(default=None, alias="esquemaCompleto")
