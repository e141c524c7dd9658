"""
Unit tests for scheduler functionality.
Tests reminder scheduling with mocked dependencies.
"""

from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from models import Appointment, Owner, Pet
from scheduler.reminders import (
    appointments_for_day,
    check_and_send_reminders,
    reminder_text,
    send_reminder,
    setup_scheduler,
)
from utils.exceptions import ApiError, SessionExpiredError

TOMORROW = date(2026, 3, 3)


@pytest.fixture
def mock_bot():
    """Mock Telegram bot."""
    bot = MagicMock()
    bot.send_message = AsyncMock()
    return bot


def appointment(id_cita, pet_id, day="2026-03-03", hora="09:00:00", estado="PROGRAMADA"):
    return Appointment(
        id_cita=id_cita,
        fecha_cita=day,
        hora_cita=hora,
        estado=estado,
        mascota=Pet(id_mascota=pet_id, nombre=f"Mascota {pet_id}"),
    )


def test_appointments_for_day_filters_and_sorts():
    appointments = [
        appointment(1, 3, hora="11:00:00"),
        appointment(2, 3, hora="08:00:00", estado="CONFIRMADA"),
        appointment(3, 3, estado="CANCELADA"),
        appointment(4, 9),
        appointment(5, 3, day="2026-03-04"),
    ]

    selected = appointments_for_day(appointments, {3}, TOMORROW)

    assert [a.id_cita for a in selected] == [2, 1]


def test_reminder_text_lists_appointments():
    text = reminder_text([appointment(1, 3)])
    assert "Recordatorio" in text
    assert "Mascota 3" in text
    assert "03.03.2026 09:00" in text


@pytest.mark.asyncio
async def test_send_reminder_success(mock_bot):
    with patch("scheduler.reminders._bot_instance", mock_bot):
        result = await send_reminder(123456789, [appointment(1, 3)])

    assert result is True
    mock_bot.send_message.assert_awaited_once()
    assert mock_bot.send_message.call_args[0][0] == 123456789


@pytest.mark.asyncio
async def test_send_reminder_no_bot_instance():
    with patch("scheduler.reminders._bot_instance", None):
        assert await send_reminder(123456789, [appointment(1, 3)]) is False


@pytest.mark.asyncio
async def test_send_reminder_bot_error(mock_bot):
    mock_bot.send_message.side_effect = Exception("Bot error")

    with patch("scheduler.reminders._bot_instance", mock_bot):
        assert await send_reminder(123456789, [appointment(1, 3)]) is False


def owner_api(appointments):
    api = MagicMock()
    api.owners.get_or_create_my_profile = AsyncMock(return_value=Owner(id_propietario=11))
    api.pets.get_by_owner = AsyncMock(return_value=[Pet(id_mascota=3, nombre="Luna")])
    api.appointments.get_all = AsyncMock(return_value=appointments)
    api.close = AsyncMock()
    return api


@pytest.mark.asyncio
async def test_only_logged_in_owners_are_reminded(mock_bot, login_as, session_storage):
    login_as("PROPIETARIO", user_id=1)
    login_as("VETERINARIO", user_id=2)
    api = owner_api([appointment(1, 3)])

    with patch("scheduler.reminders._bot_instance", mock_bot), patch(
        "scheduler.reminders.create_api", return_value=api
    ) as mock_create, patch("scheduler.reminders.local_today", return_value=date(2026, 3, 2)):
        await check_and_send_reminders(session_storage)

    mock_create.assert_called_once()
    mock_bot.send_message.assert_awaited_once()
    assert mock_bot.send_message.call_args[0][0] == 1
    api.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_no_appointments_no_message(mock_bot, login_as, session_storage):
    login_as("PROPIETARIO", user_id=1)
    api = owner_api([appointment(1, 3, day="2026-03-10")])

    with patch("scheduler.reminders._bot_instance", mock_bot), patch(
        "scheduler.reminders.create_api", return_value=api
    ), patch("scheduler.reminders.local_today", return_value=date(2026, 3, 2)):
        await check_and_send_reminders(session_storage)

    mock_bot.send_message.assert_not_called()


@pytest.mark.asyncio
async def test_api_failures_do_not_stop_the_run(mock_bot, login_as, session_storage):
    login_as("PROPIETARIO", user_id=1)
    login_as("PROPIETARIO", user_id=2)
    login_as("PROPIETARIO", user_id=3)

    expired = owner_api([])
    expired.owners.get_or_create_my_profile.side_effect = SessionExpiredError("expired")
    failing = owner_api([])
    failing.appointments.get_all.side_effect = ApiError("boom", status_code=500)
    healthy = owner_api([appointment(1, 3)])

    with patch("scheduler.reminders._bot_instance", mock_bot), patch(
        "scheduler.reminders.create_api", side_effect=[expired, failing, healthy]
    ), patch("scheduler.reminders.local_today", return_value=date(2026, 3, 2)):
        await check_and_send_reminders(session_storage)

    assert mock_bot.send_message.call_args[0][0] == 3
    for api in (expired, failing, healthy):
        api.close.assert_awaited_once()


def test_setup_scheduler(mock_bot):
    """Test scheduler setup."""
    with patch("scheduler.reminders.scheduler") as mock_scheduler:
        setup_scheduler(bot=mock_bot)

        mock_scheduler.add_job.assert_called_once()
        trigger = mock_scheduler.add_job.call_args.kwargs["trigger"]
        assert str(trigger.fields[5]) == "18"
        mock_scheduler.start.assert_called_once()
