"""Appointment booking wizard and its API orchestration."""

from .flow import BookingFlow
from .wizard import AppointmentDraft, BookingCatalog, BookingWizard, WizardStep

__all__ = [
    "AppointmentDraft",
    "BookingCatalog",
    "BookingFlow",
    "BookingWizard",
    "WizardStep",
]
