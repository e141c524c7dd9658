"""
Unit tests for bot handlers and middlewares.
"""

import asyncio
from datetime import date, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiogram.types import CallbackQuery

from booking import BookingCatalog, BookingWizard, WizardStep
from bot.booking_handlers import (
    _reset_after_delay,
    refresh_availability,
    save_wizard,
    select_date,
    select_time,
    select_veterinarian,
    submit_booking,
)
from bot.handlers import cmd_start, handle_login_password, handle_session_expired
from bot.keyboards import get_date_time_vet_keyboard
from bot.middlewares import RoleGuardMiddleware, SessionMiddleware
from bot.states import BookingStates, LoginStates
from models import Appointment, Availability, ClinicService, Owner, Pet, Role, Veterinarian
from utils.exceptions import ApiError, SessionExpiredError

TODAY = date(2026, 3, 2)


def booking_wizard() -> BookingWizard:
    wizard = BookingWizard(
        Role.PROPIETARIO,
        catalog=BookingCatalog(
            profile=Owner(id_propietario=11),
            pets=[Pet(id_mascota=3, nombre="Luna")],
            services=[ClinicService(id_servicio=2, nombre="Consulta")],
            veterinarians=[Veterinarian(id_personal=5, nombres="Laura")],
        ),
    )
    wizard.select_pet(3)
    wizard.select_service(2)
    wizard.select_veterinarian(5, TODAY)
    wizard.select_date(TODAY + timedelta(days=1), TODAY)
    request_id, vet_id, day = wizard.begin_availability_request()
    wizard.apply_availability(
        request_id,
        vet_id,
        day,
        Availability.model_validate(
            {
                "slotsDisponibles": [
                    {"hora": "08:00:00", "disponible": True},
                    {"hora": "08:30:00", "disponible": False, "motivoNoDisponible": "Ocupado"},
                ]
            }
        ),
    )
    wizard.select_time("08:00:00")
    return wizard


class TestRoleGuard:
    @pytest.mark.asyncio
    async def test_unauthenticated_redirected_to_login(self, mock_callback, session_storage, fsm_state):
        from auth import AuthContext

        handler = AsyncMock()
        auth = AuthContext(1, session_storage).hydrate()
        await fsm_state.set_state(BookingStates.in_wizard)

        result = await RoleGuardMiddleware([Role.PROPIETARIO])(
            handler, mock_callback, {"auth": auth, "state": fsm_state}
        )

        assert result is None
        handler.assert_not_called()
        assert await fsm_state.get_state() is None
        mock_callback.answer.assert_awaited_once()
        assert mock_callback.answer.call_args.kwargs["show_alert"] is True
        mock_callback.message.answer.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_wrong_role_denied(self, mock_message, login_as):
        handler = AsyncMock()

        await RoleGuardMiddleware([Role.ADMIN])(
            handler, mock_message, {"auth": login_as("PROPIETARIO")}
        )

        handler.assert_not_called()
        assert "No tienes permiso" in mock_message.answer.call_args[0][0]

    @pytest.mark.asyncio
    async def test_allowed_role_passes(self, mock_message, login_as):
        handler = AsyncMock(return_value="ok")
        data = {"auth": login_as("AUXILIAR")}

        result = await RoleGuardMiddleware([Role.AUXILIAR, Role.ADMIN])(handler, mock_message, data)

        assert result == "ok"
        handler.assert_awaited_once_with(mock_message, data)


@pytest.mark.asyncio
async def test_session_middleware_injects_and_closes(telegram_user, session_storage, login_as):
    login_as("VETERINARIO", user_id=telegram_user.id)
    api = MagicMock()
    api.close = AsyncMock()
    seen = {}

    async def handler(event, data):
        seen.update(data)

    middleware = SessionMiddleware(session_storage, api_factory=lambda auth: api)
    await middleware(handler, MagicMock(), {"event_from_user": telegram_user})

    assert seen["api"] is api
    assert seen["auth"].has_role(Role.VETERINARIO)
    api.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_session_expired_redirects_to_login(mock_callback, fsm_state):
    await fsm_state.set_state(BookingStates.in_wizard)
    event = MagicMock()
    event.update.callback_query = mock_callback
    event.exception = SessionExpiredError("Tu sesión ha expirado. Inicia sesión nuevamente.")

    assert await handle_session_expired(event, fsm_state) is True

    assert await fsm_state.get_state() is None
    text = mock_callback.message.answer.call_args[0][0]
    assert text.startswith("⏳ Tu sesión ha expirado")


@pytest.mark.asyncio
async def test_start_without_session_shows_login(mock_message, fsm_state, session_storage):
    from auth import AuthContext

    await cmd_start(mock_message, fsm_state, AuthContext(1, session_storage).hydrate())

    text = mock_message.answer.call_args[0][0]
    markup = mock_message.answer.call_args.kwargs["reply_markup"]
    assert "Inicia sesión" in text
    assert [b.callback_data for row in markup.inline_keyboard for b in row][0] == "login"


@pytest.mark.asyncio
async def test_login_failure_stays_logged_out(mock_message, fsm_state, session_storage):
    from auth import AuthContext

    auth = AuthContext(1, session_storage).hydrate()
    api = MagicMock()
    api.auth.login = AsyncMock(side_effect=ApiError("Error 401", status_code=401))
    await fsm_state.set_state(LoginStates.waiting_for_password)
    await fsm_state.update_data(username="ana")
    mock_message.text = "malaclave"

    await handle_login_password(mock_message, fsm_state, auth, api)

    mock_message.delete.assert_awaited_once()
    assert not auth.is_authenticated()
    assert "Verifica tus credenciales" in mock_message.answer.call_args[0][0]


class TestBookingHandlers:
    @pytest.mark.asyncio
    async def test_locked_slot_refused(self, mock_callback, fsm_state):
        await fsm_state.set_state(BookingStates.in_wizard)
        await save_wizard(fsm_state, booking_wizard())
        mock_callback.data = "bk_locked_08:30:00"

        await select_time(mock_callback, fsm_state)

        mock_callback.answer.assert_awaited_once()
        assert "Ocupado" in mock_callback.answer.call_args[0][0]
        stored = BookingWizard.from_data((await fsm_state.get_data())["wizard"])
        assert stored.draft.time == "08:00:00"

    @pytest.mark.asyncio
    async def test_submit_shows_confirmation(self, mock_callback, fsm_state):
        await fsm_state.set_state(BookingStates.in_wizard)
        await save_wizard(fsm_state, booking_wizard())
        api = MagicMock()
        api.appointments.create = AsyncMock(return_value=Appointment(id_cita=42))
        mock_callback.data = "bk_submit"

        with patch("bot.booking_handlers.clinic_today", return_value=TODAY), patch(
            "bot.booking_handlers.schedule_reset"
        ) as mock_reset:
            await submit_booking(mock_callback, fsm_state, api)

        data = await fsm_state.get_data()
        stored = BookingWizard.from_data(data["wizard"])
        assert stored.step is WizardStep.CONFIRMATION
        assert stored.appointment_id == 42
        assert data["submitting"] is False
        assert "Cita agendada exitosamente" in mock_callback.message.edit_text.call_args[0][0]
        mock_reset.assert_called_once_with(mock_callback, fsm_state, 42)

    @pytest.mark.asyncio
    async def test_submit_error_shown_inline(self, mock_callback, fsm_state):
        await fsm_state.set_state(BookingStates.in_wizard)
        await save_wizard(fsm_state, booking_wizard())
        api = MagicMock()
        api.appointments.create = AsyncMock(
            side_effect=ApiError("x", status_code=409, payload={"message": "Horario ocupado"})
        )

        with patch("bot.booking_handlers.clinic_today", return_value=TODAY):
            await submit_booking(mock_callback, fsm_state, api)

        stored = BookingWizard.from_data((await fsm_state.get_data())["wizard"])
        assert stored.error == "Error al agendar cita: Horario ocupado"
        assert "Horario ocupado" in mock_callback.message.edit_text.call_args[0][0]

    @pytest.mark.asyncio
    async def test_confirmation_resets_after_delay(self, mock_callback, fsm_state):
        wizard = booking_wizard()
        wizard.confirm(Appointment(id_cita=42))
        await fsm_state.set_state(BookingStates.in_wizard)
        await save_wizard(fsm_state, wizard)

        with patch("bot.booking_handlers.clinic_today", return_value=TODAY):
            await _reset_after_delay(mock_callback, fsm_state, 42, 0)

        stored = BookingWizard.from_data((await fsm_state.get_data())["wizard"])
        assert stored.step is WizardStep.SELECT_PET
        assert stored.draft.pet is None
        mock_callback.message.edit_text.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reset_skipped_after_leaving_wizard(self, mock_callback, fsm_state):
        wizard = booking_wizard()
        wizard.confirm(Appointment(id_cita=42))
        await save_wizard(fsm_state, wizard)
        await fsm_state.set_state(None)

        await _reset_after_delay(mock_callback, fsm_state, 42, 0)

        mock_callback.message.edit_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_stale_availability_not_shown(self, mock_callback, fsm_state):
        """A fetch overtaken by a newer one while in flight is dropped."""
        await fsm_state.set_state(BookingStates.in_wizard)
        wizard = booking_wizard()

        async def load_availability(vet_id, day):
            newer = BookingWizard.from_data((await fsm_state.get_data())["wizard"])
            newer.begin_availability_request()
            await save_wizard(fsm_state, newer)
            return Availability()

        flow = MagicMock()
        flow.load_availability = AsyncMock(side_effect=load_availability)

        await refresh_availability(mock_callback, fsm_state, wizard, flow)

        mock_callback.message.edit_text.assert_not_called()
        mock_callback.answer.assert_awaited_once_with()
        stored = BookingWizard.from_data((await fsm_state.get_data())["wizard"])
        assert stored.availability is None

    @pytest.mark.asyncio
    async def test_date_picked_while_vet_schedule_loads_is_kept(self, fsm_state, telegram_user):
        """Choosing a date while the vet's schedule loads keeps that date and its slots."""
        await fsm_state.set_state(BookingStates.in_wizard)
        await save_wizard(fsm_state, booking_wizard())
        later_day = TODAY + timedelta(days=2)

        schedule_loaded = asyncio.Event()
        slots_loaded = asyncio.Event()

        async def get_by_veterinarian(vet_id):
            await schedule_loaded.wait()
            return []

        async def get_availability(vet_id, day):
            await slots_loaded.wait()
            return Availability.model_validate(
                {"fecha": day.isoformat(), "slotsDisponibles": [{"hora": "10:00:00", "disponible": True}]}
            )

        api = MagicMock()
        api.schedules.get_by_veterinarian = AsyncMock(side_effect=get_by_veterinarian)
        api.schedules.get_availability = AsyncMock(side_effect=get_availability)

        def callback(data):
            event = MagicMock(spec=CallbackQuery)
            event.from_user = telegram_user
            event.data = data
            event.message = MagicMock()
            event.message.edit_text = AsyncMock()
            event.answer = AsyncMock()
            return event

        async def settle():
            for _ in range(10):
                await asyncio.sleep(0)

        with patch("bot.booking_handlers.clinic_today", return_value=TODAY):
            pick_vet = asyncio.create_task(select_veterinarian(callback("bk_vet_5"), fsm_state, api))
            await settle()
            pick_date = asyncio.create_task(
                select_date(callback(f"bk_date_{later_day.isoformat()}"), fsm_state, api)
            )
            await settle()
            schedule_loaded.set()
            await settle()
            slots_loaded.set()
            await asyncio.gather(pick_vet, pick_date)

        stored = BookingWizard.from_data((await fsm_state.get_data())["wizard"])
        assert stored.draft.day == later_day
        assert stored.availability is not None
        assert stored.availability.fecha == later_day.isoformat()


def test_date_time_vet_keyboard_locks_occupied_slots():
    wizard = booking_wizard()

    markup = get_date_time_vet_keyboard(
        vets=[(5, "Dr(a). Laura")],
        selected_vet=5,
        days=[TODAY],
        selected_day=TODAY,
        availability=wizard.availability,
        selected_time="08:00:00",
        can_submit=True,
        back="select_service",
    )

    buttons = {b.callback_data: b.text for row in markup.inline_keyboard for b in row}
    assert buttons["bk_time_08:00:00"] == "✅ 08:00"
    assert buttons["bk_locked_08:30:00"] == "🔒 08:30"
    assert "bk_submit" in buttons
    assert "bk_back_select_service" in buttons
