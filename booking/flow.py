"""
Booking orchestration: loads wizard data from the clinic API and submits drafts.
"""

import asyncio
import logging
from datetime import date
from typing import Optional

from api import ClinicApi
from models.appointment import Appointment
from models.pet import Pet
from models.schedule import Availability, Schedule
from models.user import Role
from utils.error_messages import describe_error
from utils.exceptions import ApiError, BookingValidationError

from .wizard import BookingWizard

logger = logging.getLogger(__name__)


class BookingFlow:
    """Async operations behind the booking wizard."""

    def __init__(self, api: ClinicApi):
        self.api = api

    async def load_initial(self, wizard: BookingWizard) -> None:
        """
        Load the option lists for the wizard's role.

        Owners first resolve their own profile, then fetch their pets,
        services and vets concurrently. Receptionists fetch owners, services
        and vets concurrently.

        Raises:
            ApiError: If any request fails
            BookingValidationError: If the owner profile cannot be resolved
        """
        catalog = wizard.catalog

        if wizard.role == Role.PROPIETARIO:
            profile = await self.api.owners.get_or_create_my_profile()
            if profile is None:
                raise BookingValidationError(
                    "No se pudo cargar tu perfil de propietario"
                )
            pets, services, vets = await asyncio.gather(
                self.api.pets.get_by_owner(profile.id_propietario),
                self.api.services.get_active(),
                self.api.veterinarians.get_active(),
            )
            catalog.profile = profile
            catalog.pets = pets
        else:
            owners, services, vets = await asyncio.gather(
                self.api.owners.get_active(),
                self.api.services.get_active(),
                self.api.veterinarians.get_active(),
            )
            catalog.owners = owners

        catalog.services = services
        catalog.veterinarians = vets
        logger.info(
            f"Booking options loaded for {wizard.role.value}: "
            f"{len(catalog.owners)} owners, {len(catalog.pets)} pets, "
            f"{len(services)} services, {len(vets)} vets"
        )

    async def fetch_pets(self, owner_id: int) -> list[Pet]:
        return await self.api.pets.get_by_owner(owner_id)

    async def load_pets(self, wizard: BookingWizard, owner_id: int) -> None:
        wizard.set_pets(await self.fetch_pets(owner_id))

    async def fetch_schedule(self, vet_id: int) -> list[Schedule]:
        """A vet's weekly schedule. Failures yield an empty list."""
        try:
            return await self.api.schedules.get_by_veterinarian(vet_id)
        except ApiError as e:
            logger.warning(f"Could not load schedule of vet {vet_id}: {e}")
            return []

    async def load_schedule(self, wizard: BookingWizard) -> list[Schedule]:
        """Load the chosen vet's weekly schedule into the wizard."""
        vet = wizard.draft.veterinarian
        if vet is None:
            return []

        schedules = await self.fetch_schedule(vet.id_personal)
        wizard.set_schedules(schedules)
        return schedules

    async def load_availability(self, vet_id: int, day: date) -> Optional[Availability]:
        """Fetch availability. A failure yields None so the slot grid stays empty."""
        try:
            return await self.api.schedules.get_availability(vet_id, day)
        except ApiError as e:
            logger.warning(f"Availability of vet {vet_id} on {day} failed: {e}")
            return None

    async def refresh_availability(self, wizard: BookingWizard) -> bool:
        """
        Fetch and apply availability for the current vet and date.

        Returns False when there is nothing to fetch or the result went stale.
        """
        request = wizard.begin_availability_request()
        if request is None:
            return False

        request_id, vet_id, day = request
        availability = await self.load_availability(vet_id, day)
        return wizard.apply_availability(request_id, vet_id, day, availability)

    async def submit(self, wizard: BookingWizard, today: date) -> Optional[Appointment]:
        """
        Validate and create the appointment.

        Validation happens before any network call. On success the wizard
        moves to CONFIRMATION.

        Raises:
            BookingValidationError: If the draft is incomplete or invalid
            ApiError: If the server rejects the appointment (message already mapped)
        """
        try:
            request = wizard.build_request(today)
        except BookingValidationError as e:
            wizard.error = str(e)
            raise

        try:
            appointment = await self.api.appointments.create(request)
        except ApiError as e:
            wizard.error = f"Error al agendar cita: {describe_error(e)}"
            logger.info(f"Appointment rejected: {wizard.error}")
            raise

        wizard.confirm(appointment)
        logger.info(
            f"Appointment {wizard.appointment_id} booked for pet "
            f"{request.id_mascota} on {request.fecha_cita} {request.hora_cita}"
        )
        return appointment
