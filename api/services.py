"""
Domain services of the clinic API.

Each method issues exactly one HTTP call through ClinicApiClient and returns
the decoded body, parsed into a model where the response shape is known.
No caching, batching or retries happen here.
"""

from datetime import date
from typing import Any, Optional, Type, TypeVar

from api.client import ClinicApiClient
from models.appointment import Appointment, AppointmentCreate
from models.base import ApiModel
from models.clinic_service import ClinicService
from models.clinical import (
    ClinicalEvolution,
    ClinicalEvolutionCreate,
    ClinicalRecord,
    Vaccination,
)
from models.inventory import InventoryItem, Supply, SupplyType
from models.notification import Notification
from models.owner import Owner
from models.pet import Breed, Pet, Species
from models.schedule import Availability, Schedule
from models.user import LoginRequest, LoginResponse, OwnerRegistration, PasswordReset
from models.veterinarian import Veterinarian

M = TypeVar("M", bound=ApiModel)


def _one(model: Type[M], data: Any) -> Optional[M]:
    if not data:
        return None
    return model.model_validate(data)


def _many(model: Type[M], data: Any) -> list[M]:
    return [model.model_validate(item) for item in data or []]


def _body(data: Any) -> Any:
    return data.to_payload() if isinstance(data, ApiModel) else data


class _Service:
    def __init__(self, client: ClinicApiClient):
        self.client = client


class AuthService(_Service):
    async def login(self, credentials: LoginRequest) -> LoginResponse:
        data = await self.client.post("/auth/login", credentials.to_payload())
        return LoginResponse.model_validate(data)

    async def register(self, data: dict) -> Any:
        return await self.client.post("/auth/register", data)

    async def register_owner(self, registration: OwnerRegistration) -> Any:
        return await self.client.post("/auth/register-propietario", registration.to_payload())

    async def reset_password(self, reset: PasswordReset) -> Any:
        return await self.client.post("/auth/reset-password", reset.to_payload())

    async def verify(self) -> Any:
        return await self.client.get("/auth/verify")


class OwnerService(_Service):
    async def get_all(self) -> list[Owner]:
        return _many(Owner, await self.client.get("/propietarios"))

    async def get_active(self) -> list[Owner]:
        return _many(Owner, await self.client.get("/propietarios/activos"))

    async def get_by_id(self, owner_id: int) -> Optional[Owner]:
        return _one(Owner, await self.client.get(f"/propietarios/{owner_id}"))

    async def create(self, data: Any) -> Optional[Owner]:
        return _one(Owner, await self.client.post("/propietarios", _body(data)))

    async def update(self, owner_id: int, data: Any) -> Optional[Owner]:
        return _one(Owner, await self.client.put(f"/propietarios/{owner_id}", _body(data)))

    async def delete(self, owner_id: int) -> Any:
        return await self.client.delete(f"/propietarios/{owner_id}")

    async def get_by_document(self, document_type: str, document_number: str) -> Optional[Owner]:
        data = await self.client.get(
            "/propietarios/documento",
            params={"tipoDocumento": document_type, "numeroDocumento": document_number},
        )
        return _one(Owner, data)

    async def get_by_email(self, email: str) -> Optional[Owner]:
        return _one(Owner, await self.client.get("/propietarios/email", params={"email": email}))

    async def get_by_phone(self, phone: str) -> Optional[Owner]:
        data = await self.client.get("/propietarios/telefono", params={"telefono": phone})
        return _one(Owner, data)

    async def search_by_name(self, name: str) -> list[Owner]:
        return _many(Owner, await self.client.get("/propietarios/buscar", params={"nombre": name}))

    async def activate(self, owner_id: int) -> Any:
        return await self.client.patch(f"/propietarios/{owner_id}/activar")

    async def get_or_create_my_profile(self) -> Optional[Owner]:
        """Profile of the authenticated owner, created server-side on first use."""
        return _one(Owner, await self.client.get("/propietarios/mi-perfil"))


class PetService(_Service):
    async def get_all(self) -> list[Pet]:
        return _many(Pet, await self.client.get("/mascotas"))

    async def get_by_id(self, pet_id: int) -> Optional[Pet]:
        return _one(Pet, await self.client.get(f"/mascotas/{pet_id}"))

    async def create(self, data: Any) -> Optional[Pet]:
        return _one(Pet, await self.client.post("/mascotas", _body(data)))

    async def update(self, pet_id: int, data: Any) -> Optional[Pet]:
        return _one(Pet, await self.client.put(f"/mascotas/{pet_id}", _body(data)))

    async def delete(self, pet_id: int) -> Any:
        return await self.client.delete(f"/mascotas/{pet_id}")

    async def get_by_owner(self, owner_id: int) -> list[Pet]:
        return _many(Pet, await self.client.get(f"/mascotas/propietario/{owner_id}"))


class AppointmentService(_Service):
    async def get_all(self) -> list[Appointment]:
        return _many(Appointment, await self.client.get("/citas"))

    async def get_by_id(self, appointment_id: int) -> Optional[Appointment]:
        return _one(Appointment, await self.client.get(f"/citas/{appointment_id}"))

    async def create(self, data: AppointmentCreate) -> Optional[Appointment]:
        return _one(Appointment, await self.client.post("/citas", data.to_payload()))

    async def update(self, appointment_id: int, data: Any) -> Optional[Appointment]:
        return _one(Appointment, await self.client.put(f"/citas/{appointment_id}", _body(data)))

    async def delete(self, appointment_id: int) -> Any:
        return await self.client.delete(f"/citas/{appointment_id}")

    async def get_by_veterinarian(self, vet_id: int) -> list[Appointment]:
        return _many(Appointment, await self.client.get(f"/citas/veterinario/{vet_id}"))

    async def get_by_pet(self, pet_id: int) -> list[Appointment]:
        return _many(Appointment, await self.client.get(f"/citas/mascota/{pet_id}"))

    async def get_scheduled(self) -> list[Appointment]:
        return _many(Appointment, await self.client.get("/citas/programadas"))

    async def confirm(self, appointment_id: int) -> Any:
        return await self.client.put(f"/citas/{appointment_id}/confirmar")

    async def cancel(self, appointment_id: int, reason: str, user: str = "Sistema") -> Any:
        return await self.client.put(
            f"/citas/{appointment_id}/cancelar",
            params={"motivo": reason, "usuario": user},
        )

    async def attend(self, appointment_id: int) -> Any:
        return await self.client.put(f"/citas/{appointment_id}/atender")

    async def start_attention(self, appointment_id: int) -> Any:
        return await self.client.put(f"/citas/{appointment_id}/iniciar-atencion")

    async def finish_attention(self, appointment_id: int) -> Any:
        return await self.client.put(f"/citas/{appointment_id}/finalizar-atencion")


class VeterinarianService(_Service):
    async def get_all(self) -> list[Veterinarian]:
        return _many(Veterinarian, await self.client.get("/veterinarios"))

    async def get_active(self) -> list[Veterinarian]:
        return _many(Veterinarian, await self.client.get("/veterinarios/activos"))

    async def get_available(self) -> list[Veterinarian]:
        return _many(Veterinarian, await self.client.get("/veterinarios/disponibles"))

    async def get_by_id(self, vet_id: int) -> Optional[Veterinarian]:
        return _one(Veterinarian, await self.client.get(f"/veterinarios/{vet_id}"))

    async def get_by_registration(self, registration: str) -> Optional[Veterinarian]:
        return _one(Veterinarian, await self.client.get(f"/veterinarios/registro/{registration}"))

    async def create(self, data: Any) -> Optional[Veterinarian]:
        return _one(Veterinarian, await self.client.post("/veterinarios", _body(data)))

    async def update(self, vet_id: int, data: Any) -> Optional[Veterinarian]:
        return _one(Veterinarian, await self.client.put(f"/veterinarios/{vet_id}", _body(data)))

    async def delete(self, vet_id: int) -> Any:
        return await self.client.delete(f"/veterinarios/{vet_id}")

    async def get_by_specialty(self, specialty: str) -> list[Veterinarian]:
        data = await self.client.get(
            "/veterinarios/especialidad", params={"especialidad": specialty}
        )
        return _many(Veterinarian, data)

    async def search_by_name(self, name: str) -> list[Veterinarian]:
        data = await self.client.get("/veterinarios/buscar", params={"nombre": name})
        return _many(Veterinarian, data)

    async def activate(self, vet_id: int) -> Any:
        return await self.client.patch(f"/veterinarios/{vet_id}/activar")

    async def get_my_profile(self) -> Optional[Veterinarian]:
        return _one(Veterinarian, await self.client.get("/veterinarios/mi-perfil"))


class ClinicServiceService(_Service):
    async def get_all(self) -> list[ClinicService]:
        return _many(ClinicService, await self.client.get("/servicios"))

    async def get_by_id(self, service_id: int) -> Optional[ClinicService]:
        return _one(ClinicService, await self.client.get(f"/servicios/{service_id}"))

    async def create(self, data: Any) -> Optional[ClinicService]:
        return _one(ClinicService, await self.client.post("/servicios", _body(data)))

    async def update(self, service_id: int, data: Any) -> Optional[ClinicService]:
        return _one(ClinicService, await self.client.put(f"/servicios/{service_id}", _body(data)))

    async def delete(self, service_id: int) -> Any:
        return await self.client.delete(f"/servicios/{service_id}")

    async def get_active(self) -> list[ClinicService]:
        return _many(ClinicService, await self.client.get("/servicios/activos"))

    async def get_by_type(self, service_type: str) -> list[ClinicService]:
        return _many(ClinicService, await self.client.get(f"/servicios/tipo/{service_type}"))

    async def get_by_category(self, category: str) -> list[ClinicService]:
        return _many(ClinicService, await self.client.get(f"/servicios/categoria/{category}"))

    async def activate(self, service_id: int) -> Any:
        return await self.client.put(f"/servicios/{service_id}/activar")

    async def deactivate(self, service_id: int) -> Any:
        return await self.client.put(f"/servicios/{service_id}/desactivar")


class ScheduleService(_Service):
    async def get_all(self) -> list[Schedule]:
        return _many(Schedule, await self.client.get("/horarios"))

    async def get_active(self) -> list[Schedule]:
        return _many(Schedule, await self.client.get("/horarios/activos"))

    async def get_by_id(self, schedule_id: int) -> Optional[Schedule]:
        return _one(Schedule, await self.client.get(f"/horarios/{schedule_id}"))

    async def get_by_veterinarian(self, vet_id: int) -> list[Schedule]:
        return _many(Schedule, await self.client.get(f"/horarios/veterinario/{vet_id}"))

    async def get_by_day(self, weekday: str) -> list[Schedule]:
        return _many(Schedule, await self.client.get(f"/horarios/dia/{weekday}"))

    async def get_availability(self, vet_id: int, day: date) -> Optional[Availability]:
        data = await self.client.get(
            f"/horarios/disponibilidad/{vet_id}", params={"fecha": day.isoformat()}
        )
        return _one(Availability, data)

    async def create(self, data: Any) -> Optional[Schedule]:
        return _one(Schedule, await self.client.post("/horarios", _body(data)))

    async def update(self, schedule_id: int, data: Any) -> Optional[Schedule]:
        return _one(Schedule, await self.client.put(f"/horarios/{schedule_id}", _body(data)))

    async def delete(self, schedule_id: int) -> Any:
        return await self.client.delete(f"/horarios/{schedule_id}")

    async def activate(self, schedule_id: int) -> Any:
        return await self.client.put(f"/horarios/{schedule_id}/activar")

    async def deactivate(self, schedule_id: int) -> Any:
        return await self.client.put(f"/horarios/{schedule_id}/desactivar")


class InventoryService(_Service):
    async def get_all(self) -> list[InventoryItem]:
        return _many(InventoryItem, await self.client.get("/inventario"))

    async def get_low_stock(self) -> list[InventoryItem]:
        return _many(InventoryItem, await self.client.get("/inventario/stock-bajo"))

    async def get_out_of_stock(self) -> list[InventoryItem]:
        return _many(InventoryItem, await self.client.get("/inventario/agotados"))


class SupplyService(_Service):
    base = "/inventario/insumos"

    async def get_all(self) -> list[Supply]:
        return _many(Supply, await self.client.get(self.base))

    async def get_active(self) -> list[Supply]:
        return _many(Supply, await self.client.get(f"{self.base}/activos"))

    async def get_by_id(self, supply_id: int) -> Optional[Supply]:
        return _one(Supply, await self.client.get(f"{self.base}/{supply_id}"))

    async def get_by_code(self, code: str) -> Optional[Supply]:
        return _one(Supply, await self.client.get(f"{self.base}/codigo/{code}"))

    async def create(self, data: Any) -> Optional[Supply]:
        return _one(Supply, await self.client.post(self.base, _body(data)))

    async def update(self, supply_id: int, data: Any) -> Optional[Supply]:
        return _one(Supply, await self.client.put(f"{self.base}/{supply_id}", _body(data)))

    async def delete(self, supply_id: int) -> Any:
        return await self.client.delete(f"{self.base}/{supply_id}")

    async def get_low_stock(self) -> list[Supply]:
        return _many(Supply, await self.client.get(f"{self.base}/stock-bajo"))

    async def get_out_of_stock(self) -> list[Supply]:
        return _many(Supply, await self.client.get(f"{self.base}/agotados"))

    async def get_by_type(self, type_id: int) -> list[Supply]:
        return _many(Supply, await self.client.get(f"{self.base}/tipo/{type_id}"))

    async def search_by_name(self, name: str) -> list[Supply]:
        return _many(Supply, await self.client.get(f"{self.base}/buscar", params={"nombre": name}))

    async def activate(self, supply_id: int) -> Any:
        return await self.client.patch(f"{self.base}/{supply_id}/activar")

    async def deactivate(self, supply_id: int) -> Any:
        return await self.client.patch(f"{self.base}/{supply_id}/desactivar")


class SupplyTypeService(_Service):
    base = "/inventario/tipos-insumo"

    async def get_all(self) -> list[SupplyType]:
        return _many(SupplyType, await self.client.get(self.base))

    async def get_by_id(self, type_id: int) -> Optional[SupplyType]:
        return _one(SupplyType, await self.client.get(f"{self.base}/{type_id}"))

    async def create(self, data: Any) -> Optional[SupplyType]:
        return _one(SupplyType, await self.client.post(self.base, _body(data)))

    async def update(self, type_id: int, data: Any) -> Optional[SupplyType]:
        return _one(SupplyType, await self.client.put(f"{self.base}/{type_id}", _body(data)))

    async def delete(self, type_id: int) -> Any:
        return await self.client.delete(f"{self.base}/{type_id}")


class ClinicalRecordService(_Service):
    async def get_all(self) -> list[ClinicalRecord]:
        return _many(ClinicalRecord, await self.client.get("/historias-clinicas"))

    async def get_active(self) -> list[ClinicalRecord]:
        return _many(ClinicalRecord, await self.client.get("/historias-clinicas/activas"))

    async def get_by_id(self, record_id: int) -> Optional[ClinicalRecord]:
        return _one(ClinicalRecord, await self.client.get(f"/historias-clinicas/{record_id}"))

    async def get_by_pet(self, pet_id: int) -> Optional[ClinicalRecord]:
        data = await self.client.get(f"/historias-clinicas/mascota/{pet_id}")
        return _one(ClinicalRecord, data)

    async def create(self, data: Any) -> Optional[ClinicalRecord]:
        return _one(ClinicalRecord, await self.client.post("/historias-clinicas", _body(data)))

    async def update(self, record_id: int, data: Any) -> Optional[ClinicalRecord]:
        data = await self.client.put(f"/historias-clinicas/{record_id}", _body(data))
        return _one(ClinicalRecord, data)

    async def archive(self, record_id: int, reason: str) -> Any:
        return await self.client.put(
            f"/historias-clinicas/{record_id}/archivar", params={"motivo": reason}
        )

    async def reactivate(self, record_id: int) -> Any:
        return await self.client.put(f"/historias-clinicas/{record_id}/reactivar")


class ClinicalEvolutionService(_Service):
    async def create(self, record_id: int, data: ClinicalEvolutionCreate) -> Optional[ClinicalEvolution]:
        result = await self.client.post(
            "/evoluciones-clinicas",
            data.to_payload(),
            params={"idHistoriaClinica": record_id},
        )
        return _one(ClinicalEvolution, result)

    async def get_by_record(self, record_id: int) -> list[ClinicalEvolution]:
        data = await self.client.get(f"/evoluciones-clinicas/historia-clinica/{record_id}")
        return _many(ClinicalEvolution, data)


class VaccinationService(_Service):
    async def get_by_record(self, record_id: int) -> list[Vaccination]:
        data = await self.client.get(f"/vacunaciones/historia-clinica/{record_id}")
        return _many(Vaccination, data)

    async def create(self, data: Any) -> Optional[Vaccination]:
        return _one(Vaccination, await self.client.post("/vacunaciones", _body(data)))


class NotificationService(_Service):
    async def get_all(self) -> list[Notification]:
        return _many(Notification, await self.client.get("/notificaciones"))

    async def get_by_id(self, notification_id: int) -> Optional[Notification]:
        return _one(Notification, await self.client.get(f"/notificaciones/{notification_id}"))

    async def create(self, data: Any) -> Optional[Notification]:
        return _one(Notification, await self.client.post("/notificaciones", _body(data)))

    async def get_by_user(self, user_id: int) -> list[Notification]:
        return _many(Notification, await self.client.get(f"/notificaciones/usuario/{user_id}"))

    async def get_by_channel(self, channel: str) -> list[Notification]:
        return _many(Notification, await self.client.get(f"/notificaciones/canal/{channel}"))

    async def get_sent(self) -> list[Notification]:
        return _many(Notification, await self.client.get("/notificaciones/enviadas"))

    async def get_pending(self) -> list[Notification]:
        return _many(Notification, await self.client.get("/notificaciones/pendientes"))


class SpeciesService(_Service):
    async def get_all(self) -> list[Species]:
        return _many(Species, await self.client.get("/especies"))

    async def get_active(self) -> list[Species]:
        return _many(Species, await self.client.get("/especies/activas"))

    async def get_by_id(self, species_id: int) -> Optional[Species]:
        return _one(Species, await self.client.get(f"/especies/{species_id}"))

    async def create(self, data: Any) -> Optional[Species]:
        return _one(Species, await self.client.post("/especies", _body(data)))

    async def update(self, species_id: int, data: Any) -> Optional[Species]:
        return _one(Species, await self.client.put(f"/especies/{species_id}", _body(data)))

    async def delete(self, species_id: int) -> Any:
        return await self.client.delete(f"/especies/{species_id}")

    async def search_by_name(self, name: str) -> list[Species]:
        return _many(Species, await self.client.get("/especies/buscar", params={"nombre": name}))

    async def exists_by_name(self, name: str) -> Any:
        return await self.client.get("/especies/existe", params={"nombre": name})

    async def activate(self, species_id: int) -> Any:
        return await self.client.patch(f"/especies/{species_id}/activar")


class BreedService(_Service):
    async def get_all(self) -> list[Breed]:
        return _many(Breed, await self.client.get("/razas"))

    async def get_active(self) -> list[Breed]:
        return _many(Breed, await self.client.get("/razas/activas"))

    async def get_by_id(self, breed_id: int) -> Optional[Breed]:
        return _one(Breed, await self.client.get(f"/razas/{breed_id}"))

    async def create(self, data: Any) -> Optional[Breed]:
        return _one(Breed, await self.client.post("/razas", _body(data)))

    async def update(self, breed_id: int, data: Any) -> Optional[Breed]:
        return _one(Breed, await self.client.put(f"/razas/{breed_id}", _body(data)))

    async def delete(self, breed_id: int) -> Any:
        return await self.client.delete(f"/razas/{breed_id}")

    async def get_by_species(self, species_id: int) -> list[Breed]:
        return _many(Breed, await self.client.get(f"/razas/especie/{species_id}"))

    async def search_by_name(self, name: str) -> list[Breed]:
        return _many(Breed, await self.client.get("/razas/buscar", params={"nombre": name}))

    async def activate(self, breed_id: int) -> Any:
        return await self.client.patch(f"/razas/{breed_id}/activar")


# ========== Facades ==========


class DashboardService(_Service):
    async def get_dashboard(self) -> dict:
        return await self.client.get("/facade/dashboard") or {}


class AppointmentFacadeService(_Service):
    async def create_with_notification(self, data: AppointmentCreate) -> Any:
        return await self.client.post("/facade/citas/crear-con-notificacion", data.to_payload())

    async def get_calendar(self, day: date) -> Any:
        return await self.client.get("/facade/citas/calendario", params={"fecha": day.isoformat()})


class PetFacadeService(_Service):
    async def full_registration(self, data: dict) -> Any:
        return await self.client.post("/facade/mascotas/registro-completo", data)

    async def get_full(self, pet_id: int) -> Any:
        return await self.client.get(f"/facade/mascotas/{pet_id}/completa")


class ReportService(_Service):
    async def appointments(self, start: date, end: date) -> dict:
        data = await self.client.get(
            "/facade/reportes/citas",
            params={"fechaInicio": start.isoformat(), "fechaFin": end.isoformat()},
        )
        return data or {}

    async def inventory(self) -> dict:
        return await self.client.get("/facade/reportes/inventario") or {}

    async def veterinarians(self, start: date, end: date) -> Any:
        return await self.client.get(
            "/facade/reportes/veterinarios",
            params={"fechaInicio": start.isoformat(), "fechaFin": end.isoformat()},
        )
