"""Pydantic models for data exchanged with the clinic API."""

from .appointment import Appointment, AppointmentCreate, AppointmentStatus
from .clinic_service import ClinicService
from .clinical import ClinicalEvolution, ClinicalEvolutionCreate, ClinicalRecord, Vaccination
from .inventory import InventoryItem, Supply, SupplyType
from .notification import Notification
from .owner import Owner
from .pet import Breed, Pet, Species
from .schedule import Availability, AvailabilitySlot, BookedAppointment, Schedule
from .user import (
    LoginRequest,
    LoginResponse,
    OwnerRegistration,
    PasswordReset,
    Role,
    SessionUser,
)
from .veterinarian import Veterinarian

__all__ = [
    "Appointment",
    "AppointmentCreate",
    "AppointmentStatus",
    "Availability",
    "AvailabilitySlot",
    "BookedAppointment",
    "Breed",
    "ClinicService",
    "ClinicalEvolution",
    "ClinicalEvolutionCreate",
    "ClinicalRecord",
    "InventoryItem",
    "LoginRequest",
    "LoginResponse",
    "Notification",
    "Owner",
    "OwnerRegistration",
    "PasswordReset",
    "Pet",
    "Role",
    "Schedule",
    "SessionUser",
    "Species",
    "Supply",
    "SupplyType",
    "Vaccination",
    "Veterinarian",
]
