"""
Appointment booking wizard.

Pure state machine over an AppointmentDraft. It performs no I/O: BookingFlow
feeds it API results and the bot persists it between updates with
to_data()/from_data().

Steps: [SELECT_OWNER] -> SELECT_PET -> SELECT_SERVICE -> SELECT_DATE_TIME_VET
-> CONFIRMATION. SELECT_OWNER exists only for receptionists.
"""

import logging
from datetime import date
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from models.appointment import Appointment, AppointmentCreate, AppointmentStatus
from models.clinic_service import ClinicService
from models.owner import Owner
from models.pet import Pet
from models.schedule import Availability, Schedule
from models.user import Role
from models.veterinarian import Veterinarian
from utils.constants import DEFAULT_REASON_TEMPLATE, MAX_REASON_LENGTH, MIN_REASON_LENGTH
from utils.exceptions import BookingValidationError, SlotNotAvailableError
from utils.validation import sanitize_text

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Por favor completa todos los campos obligatorios"
PAST_DATE_MESSAGE = "No se pueden agendar citas en fechas pasadas."
SHORT_REASON_MESSAGE = f"El motivo debe tener al menos {MIN_REASON_LENGTH} caracteres"
SUCCESS_MESSAGE = "¡Cita agendada exitosamente!"


class WizardStep(str, Enum):
    """Wizard step identifiers."""

    SELECT_OWNER = "select_owner"
    SELECT_PET = "select_pet"
    SELECT_SERVICE = "select_service"
    SELECT_DATE_TIME_VET = "select_date_time_vet"
    CONFIRMATION = "confirmation"


OWNER_STEPS = [
    WizardStep.SELECT_PET,
    WizardStep.SELECT_SERVICE,
    WizardStep.SELECT_DATE_TIME_VET,
    WizardStep.CONFIRMATION,
]
RECEPTION_STEPS = [WizardStep.SELECT_OWNER] + OWNER_STEPS


class AppointmentDraft(BaseModel):
    """Partially filled appointment."""

    owner: Optional[Owner] = None
    pet: Optional[Pet] = None
    service: Optional[ClinicService] = None
    veterinarian: Optional[Veterinarian] = None
    day: Optional[date] = None
    time: Optional[str] = None
    reason: str = ""


class BookingCatalog(BaseModel):
    """Options loaded from the API for the current wizard session."""

    profile: Optional[Owner] = None
    owners: list[Owner] = Field(default_factory=list)
    pets: list[Pet] = Field(default_factory=list)
    services: list[ClinicService] = Field(default_factory=list)
    veterinarians: list[Veterinarian] = Field(default_factory=list)
    schedules: list[Schedule] = Field(default_factory=list)


class BookingWizard:
    """State of one booking session."""

    def __init__(
        self,
        role: Role,
        draft: Optional[AppointmentDraft] = None,
        catalog: Optional[BookingCatalog] = None,
        step: Optional[WizardStep] = None,
        availability: Optional[Availability] = None,
        availability_request: int = 0,
        error: Optional[str] = None,
        success: Optional[str] = None,
        appointment_id: Optional[int] = None,
    ):
        if role not in (Role.PROPIETARIO, Role.RECEPCIONISTA):
            raise ValueError(f"Role {role} cannot book appointments")

        self.role = role
        self.draft = draft or AppointmentDraft()
        self.catalog = catalog or BookingCatalog()
        self.step = step or self.steps[0]
        self.availability = availability
        self.availability_request = availability_request
        self.error = error
        self.success = success
        self.appointment_id = appointment_id

    @property
    def steps(self) -> list[WizardStep]:
        return RECEPTION_STEPS if self.role == Role.RECEPCIONISTA else OWNER_STEPS

    @property
    def step_number(self) -> int:
        return self.steps.index(self.step) + 1

    # ========== Selection ==========

    def select_owner(self, owner_id: int) -> Owner:
        """Choose the owner (receptionist only). Pets must be reloaded afterwards."""
        if self.role != Role.RECEPCIONISTA:
            raise BookingValidationError("Solo recepción puede elegir el propietario")

        owner = _find(self.catalog.owners, "id_propietario", owner_id)
        if owner is None:
            raise BookingValidationError("Propietario no encontrado")

        if self.draft.owner is None or self.draft.owner.id_propietario != owner_id:
            self.draft.pet = None
            self.catalog.pets = []

        self.draft.owner = owner
        self.error = None
        self.step = WizardStep.SELECT_PET
        return owner

    def set_pets(self, pets: list[Pet]) -> None:
        self.catalog.pets = pets

    def select_pet(self, pet_id: int) -> Pet:
        pet = _find(self.catalog.pets, "id_mascota", pet_id)
        if pet is None:
            raise BookingValidationError("Mascota no encontrada")

        self.draft.pet = pet
        self.error = None
        self.step = WizardStep.SELECT_SERVICE
        return pet

    def select_service(self, service_id: int) -> ClinicService:
        service = _find(self.catalog.services, "id_servicio", service_id)
        if service is None:
            raise BookingValidationError("Servicio no encontrado")

        self.draft.service = service
        self.error = None
        self.step = WizardStep.SELECT_DATE_TIME_VET
        return service

    def select_veterinarian(self, vet_id: int, today: date) -> Veterinarian:
        """
        Choose the veterinarian.

        Without a date yet, the date defaults to today. A different vet
        invalidates the loaded schedule, availability and chosen time.
        """
        vet = _find(self.catalog.veterinarians, "id_personal", vet_id)
        if vet is None:
            raise BookingValidationError("Veterinario no encontrado")

        previous = self.draft.veterinarian
        if previous is None or previous.id_personal != vet_id:
            self.catalog.schedules = []
            self._invalidate_availability()
            self.draft.time = None

        self.draft.veterinarian = vet
        if self.draft.day is None:
            self.draft.day = today
        self.error = None
        return vet

    def set_schedules(self, schedules: list[Schedule]) -> None:
        self.catalog.schedules = schedules

    def select_date(self, day: date, today: date) -> None:
        """Choose the date. Always clears the chosen time."""
        self.draft.time = None
        self._invalidate_availability()

        if day < today:
            self.draft.day = None
            self.error = PAST_DATE_MESSAGE
            raise BookingValidationError(PAST_DATE_MESSAGE)

        self.draft.day = day
        self.error = None

    def select_time(self, hour: str) -> str:
        """
        Choose a slot from the loaded availability.

        Raises:
            SlotNotAvailableError: If the slot is occupied or unknown; the draft is left untouched
        """
        if self.availability is None:
            raise BookingValidationError("Selecciona veterinario y fecha primero")

        slot = self.availability.find_slot(hour)
        if slot is None or not slot.disponible:
            reason = slot.motivo_no_disponible if slot else None
            raise SlotNotAvailableError(
                f"Horario no disponible ({reason})" if reason else "Horario no disponible"
            )

        self.draft.time = slot.hora
        self.error = None
        return slot.hora

    def set_reason(self, text: str) -> None:
        self.draft.reason = sanitize_text(text or "", MAX_REASON_LENGTH)

    def go_back(self, target: WizardStep) -> None:
        """Return to an earlier step. Nothing already chosen is discarded."""
        steps = self.steps
        if target not in steps or steps.index(target) >= steps.index(self.step):
            raise ValueError(f"Cannot go back from {self.step.value} to {target.value}")
        self.step = target
        self.error = None

    # ========== Availability sequencing ==========

    def begin_availability_request(self) -> Optional[tuple[int, int, date]]:
        """
        Start a new availability fetch for the current vet and date.

        Returns (request_id, vet_id, day), or None when either is missing.
        """
        if self.draft.veterinarian is None or self.draft.day is None:
            return None

        self._invalidate_availability()
        return (
            self.availability_request,
            self.draft.veterinarian.id_personal,
            self.draft.day,
        )

    def _invalidate_availability(self) -> None:
        """Drop the loaded slots and any fetch still in flight."""
        self.availability_request += 1
        self.availability = None

    def apply_availability(
        self, request_id: int, vet_id: int, day: date, availability: Optional[Availability]
    ) -> bool:
        """
        Store a fetch result for (vet_id, day).

        Dropped when a newer fetch has started since, or when the draft's
        vet or date no longer match what was asked for.
        """
        if request_id != self.availability_request:
            logger.debug(
                f"Dropping stale availability #{request_id} "
                f"(latest #{self.availability_request})"
            )
            return False

        vet = self.draft.veterinarian
        if vet is None or vet.id_personal != vet_id or self.draft.day != day:
            logger.debug(f"Dropping availability #{request_id} for vet {vet_id} on {day}")
            return False

        self.availability = availability
        return True

    # ========== Submission ==========

    def effective_reason(self) -> str:
        reason = self.draft.reason.strip()
        if reason:
            return reason
        if self.draft.service is None:
            return ""
        return DEFAULT_REASON_TEMPLATE.format(service=self.draft.service.nombre)

    def missing_fields(self) -> list[str]:
        draft = self.draft
        required = {
            "mascota": draft.pet,
            "servicio": draft.service,
            "veterinario": draft.veterinarian,
            "fecha": draft.day,
            "hora": draft.time,
        }
        if self.role == Role.RECEPCIONISTA:
            required = {"propietario": draft.owner, **required}
        return [name for name, value in required.items() if value is None]

    def can_submit(self, today: date) -> bool:
        try:
            self.build_request(today)
        except BookingValidationError:
            return False
        return True

    def build_request(self, today: date) -> AppointmentCreate:
        """
        Validate the draft and build the POST /citas body.

        Raises:
            BookingValidationError: On any missing field, past date or short reason
        """
        if self.missing_fields():
            raise BookingValidationError(MISSING_FIELDS_MESSAGE)

        draft = self.draft
        if draft.day < today:
            raise BookingValidationError(PAST_DATE_MESSAGE)

        reason = self.effective_reason()
        if len(reason) < MIN_REASON_LENGTH:
            raise BookingValidationError(SHORT_REASON_MESSAGE)

        request = AppointmentCreate(
            fecha_cita=draft.day,
            hora_cita=draft.time,
            motivo=reason,
            id_mascota=draft.pet.id_mascota,
            id_servicio=draft.service.id_servicio,
            id_veterinario=draft.veterinarian.id_personal,
        )
        if self.role == Role.PROPIETARIO and self.catalog.profile is not None:
            request.id_propietario = self.catalog.profile.id_propietario
            request.estado = AppointmentStatus.PROGRAMADA.value
        return request

    def confirm(self, appointment: Optional[Appointment]) -> None:
        self.step = WizardStep.CONFIRMATION
        self.appointment_id = appointment.id_cita if appointment else None
        self.error = None
        self.success = SUCCESS_MESSAGE

    def reset(self) -> None:
        """Discard the draft and start over. Loaded catalogs are kept."""
        self.draft = AppointmentDraft()
        if self.role == Role.RECEPCIONISTA:
            self.catalog.pets = []
        self.catalog.schedules = []
        self.step = self.steps[0]
        self._invalidate_availability()
        self.error = None
        self.success = None
        self.appointment_id = None

    # ========== Persistence ==========

    def to_data(self) -> dict:
        """Serialize for FSM storage."""
        return {
            "role": self.role.value,
            "step": self.step.value,
            "draft": self.draft.model_dump(mode="json", by_alias=True),
            "catalog": self.catalog.model_dump(mode="json", by_alias=True),
            "availability": (
                self.availability.model_dump(mode="json", by_alias=True)
                if self.availability
                else None
            ),
            "availability_request": self.availability_request,
            "error": self.error,
            "success": self.success,
            "appointment_id": self.appointment_id,
        }

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> "BookingWizard":
        availability = data.get("availability")
        return cls(
            role=Role(data["role"]),
            draft=AppointmentDraft.model_validate(data.get("draft") or {}),
            catalog=BookingCatalog.model_validate(data.get("catalog") or {}),
            step=WizardStep(data["step"]) if data.get("step") else None,
            availability=Availability.model_validate(availability) if availability else None,
            availability_request=data.get("availability_request", 0),
            error=data.get("error"),
            success=data.get("success"),
            appointment_id=data.get("appointment_id"),
        )


def _find(items: list, attribute: str, value: int):
    for item in items:
        if getattr(item, attribute) == value:
            return item
    return None
