"""
Unit tests for booking orchestration against a mocked ClinicApi.
"""

import asyncio
from datetime import date, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from booking import BookingFlow, BookingWizard, WizardStep
from models import (
    Appointment,
    Availability,
    ClinicService,
    Owner,
    Pet,
    Role,
    Schedule,
    Veterinarian,
)
from utils.exceptions import ApiError, BookingValidationError

TODAY = date(2026, 3, 2)
TOMORROW = TODAY + timedelta(days=1)

AVAILABILITY = Availability.model_validate(
    {"slotsDisponibles": [{"hora": "08:00:00", "disponible": True}]}
)


@pytest.fixture
def api():
    api = MagicMock()
    api.owners.get_or_create_my_profile = AsyncMock(return_value=Owner(id_propietario=11))
    api.owners.get_active = AsyncMock(return_value=[Owner(id_propietario=11), Owner(id_propietario=12)])
    api.pets.get_by_owner = AsyncMock(return_value=[Pet(id_mascota=3, nombre="Luna")])
    api.services.get_active = AsyncMock(
        return_value=[ClinicService(id_servicio=2, nombre="Consulta")]
    )
    api.veterinarians.get_active = AsyncMock(return_value=[Veterinarian(id_personal=5)])
    api.schedules.get_by_veterinarian = AsyncMock(
        return_value=[Schedule(dia_semana="LUNES", hora_inicio="08:00", hora_fin="12:00")]
    )
    api.schedules.get_availability = AsyncMock(return_value=AVAILABILITY)
    api.appointments.create = AsyncMock(return_value=Appointment(id_cita=42))
    return api


async def ready_wizard(api) -> BookingWizard:
    flow = BookingFlow(api)
    wizard = BookingWizard(Role.PROPIETARIO)
    await flow.load_initial(wizard)
    wizard.select_pet(3)
    wizard.select_service(2)
    wizard.select_veterinarian(5, TODAY)
    wizard.select_date(TOMORROW, TODAY)
    await flow.refresh_availability(wizard)
    wizard.select_time("08:00")
    return wizard


@pytest.mark.asyncio
async def test_load_initial_owner(api):
    wizard = BookingWizard(Role.PROPIETARIO)
    await BookingFlow(api).load_initial(wizard)

    api.pets.get_by_owner.assert_awaited_once_with(11)
    api.owners.get_active.assert_not_called()
    assert wizard.catalog.profile.id_propietario == 11
    assert [p.nombre for p in wizard.catalog.pets] == ["Luna"]
    assert len(wizard.catalog.services) == 1


@pytest.mark.asyncio
async def test_load_initial_owner_without_profile(api):
    api.owners.get_or_create_my_profile.return_value = None

    with pytest.raises(BookingValidationError):
        await BookingFlow(api).load_initial(BookingWizard(Role.PROPIETARIO))

    api.pets.get_by_owner.assert_not_called()


@pytest.mark.asyncio
async def test_load_initial_reception(api):
    wizard = BookingWizard(Role.RECEPCIONISTA)
    flow = BookingFlow(api)
    await flow.load_initial(wizard)

    assert len(wizard.catalog.owners) == 2
    assert wizard.catalog.pets == []
    api.owners.get_or_create_my_profile.assert_not_called()

    wizard.select_owner(12)
    await flow.load_pets(wizard, 12)
    api.pets.get_by_owner.assert_awaited_with(12)
    assert wizard.catalog.pets[0].id_mascota == 3


@pytest.mark.asyncio
async def test_schedule_failure_leaves_it_empty(api):
    api.schedules.get_by_veterinarian.side_effect = ApiError("boom", status_code=500)
    wizard = BookingWizard(Role.PROPIETARIO)
    flow = BookingFlow(api)
    await flow.load_initial(wizard)
    wizard.select_veterinarian(5, TODAY)

    assert await flow.load_schedule(wizard) == []
    assert wizard.catalog.schedules == []


@pytest.mark.asyncio
async def test_availability_failure_yields_none(api):
    api.schedules.get_availability.side_effect = ApiError("boom", status_code=500)
    assert await BookingFlow(api).load_availability(5, TOMORROW) is None


@pytest.mark.asyncio
async def test_overlapping_availability_keeps_latest(api):
    """A slow first response must not overwrite the second one."""
    first_release = asyncio.Event()
    late = Availability.model_validate(
        {"slotsDisponibles": [{"hora": "15:00:00", "disponible": True}]}
    )

    async def get_availability(vet_id, day):
        if day == TOMORROW:
            await first_release.wait()
            return late
        return AVAILABILITY

    api.schedules.get_availability = AsyncMock(side_effect=get_availability)
    flow = BookingFlow(api)
    wizard = BookingWizard(Role.PROPIETARIO)
    await flow.load_initial(wizard)
    wizard.select_veterinarian(5, TODAY)
    wizard.select_date(TOMORROW, TODAY)

    slow = asyncio.create_task(flow.refresh_availability(wizard))
    await asyncio.sleep(0)
    wizard.select_date(TOMORROW + timedelta(days=1), TODAY)
    assert await flow.refresh_availability(wizard)

    first_release.set()
    assert not await slow
    assert wizard.availability is AVAILABILITY


@pytest.mark.asyncio
async def test_submit_success(api):
    wizard = await ready_wizard(api)

    appointment = await BookingFlow(api).submit(wizard, TODAY)

    assert appointment.id_cita == 42
    assert wizard.step is WizardStep.CONFIRMATION
    assert wizard.success == "¡Cita agendada exitosamente!"
    request = api.appointments.create.call_args[0][0]
    assert request.motivo == "Cita para Consulta"
    assert request.id_propietario == 11


@pytest.mark.asyncio
async def test_submit_incomplete_makes_no_request(api):
    wizard = BookingWizard(Role.PROPIETARIO)
    await BookingFlow(api).load_initial(wizard)
    wizard.select_pet(3)

    with pytest.raises(BookingValidationError):
        await BookingFlow(api).submit(wizard, TODAY)

    api.appointments.create.assert_not_called()
    assert wizard.error == "Por favor completa todos los campos obligatorios"


@pytest.mark.asyncio
async def test_submit_server_error_is_mapped(api):
    api.appointments.create.side_effect = ApiError(
        "Error 409", status_code=409, payload={"message": "Horario ocupado"}
    )
    wizard = await ready_wizard(api)

    with pytest.raises(ApiError):
        await BookingFlow(api).submit(wizard, TODAY)

    assert wizard.error == "Error al agendar cita: Horario ocupado"
    assert wizard.step is WizardStep.SELECT_DATE_TIME_VET
