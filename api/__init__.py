"""Clinic REST API client and domain services."""

from typing import Optional

from .client import ClinicApiClient, TokenProvider, UnauthorizedHandler
from .services import (
    AppointmentFacadeService,
    AppointmentService,
    AuthService,
    BreedService,
    ClinicalEvolutionService,
    ClinicalRecordService,
    ClinicServiceService,
    DashboardService,
    InventoryService,
    NotificationService,
    OwnerService,
    PetFacadeService,
    PetService,
    ReportService,
    ScheduleService,
    SpeciesService,
    SupplyService,
    SupplyTypeService,
    VaccinationService,
    VeterinarianService,
)


class ClinicApi:
    """All domain services sharing one ClinicApiClient."""

    def __init__(self, client: ClinicApiClient):
        self.client = client
        self.auth = AuthService(client)
        self.owners = OwnerService(client)
        self.pets = PetService(client)
        self.appointments = AppointmentService(client)
        self.veterinarians = VeterinarianService(client)
        self.services = ClinicServiceService(client)
        self.schedules = ScheduleService(client)
        self.inventory = InventoryService(client)
        self.supplies = SupplyService(client)
        self.supply_types = SupplyTypeService(client)
        self.clinical_records = ClinicalRecordService(client)
        self.evolutions = ClinicalEvolutionService(client)
        self.vaccinations = VaccinationService(client)
        self.notifications = NotificationService(client)
        self.species = SpeciesService(client)
        self.breeds = BreedService(client)
        self.dashboard = DashboardService(client)
        self.appointment_facade = AppointmentFacadeService(client)
        self.pet_facade = PetFacadeService(client)
        self.reports = ReportService(client)

    async def close(self) -> None:
        await self.client.close()


def create_api(
    base_url: str,
    token_provider: Optional[TokenProvider] = None,
    on_unauthorized: Optional[UnauthorizedHandler] = None,
    timeout: float = 30.0,
) -> ClinicApi:
    """Build a ClinicApi bound to one session's token and 401 handler."""
    client = ClinicApiClient(
        base_url,
        token_provider=token_provider,
        on_unauthorized=on_unauthorized,
        timeout=timeout,
    )
    return ClinicApi(client)


__all__ = [
    "ClinicApi",
    "ClinicApiClient",
    "create_api",
]
