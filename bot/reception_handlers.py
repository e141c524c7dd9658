"""
Reception (recepcionista) pages: today's agenda, confirmation and cancellation.
Booking on behalf of owners lives in booking_handlers.
"""

import logging
from typing import Optional

from aiogram import Router
from aiogram.filters import StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from api import ClinicApi
from auth import AuthContext
from bot.keyboards import get_appointment_actions_keyboard, get_back_to_menu_keyboard
from bot.middlewares import guard_router
from bot.states import CancelAppointmentStates
from bot.views import appointments_block, respond
from config import settings
from models.user import Role
from utils.datetime_utils import display_date, local_today
from utils.error_messages import describe_error
from utils.exceptions import ApiError
from utils.validation import sanitize_text

logger = logging.getLogger(__name__)

router = Router()
guard_router(router, Role.RECEPCIONISTA)


@router.callback_query(lambda c: c.data == "rec_dashboard")
async def show_dashboard(callback: CallbackQuery, api: ClinicApi):
    """All appointments of the day."""
    today = local_today(settings.timezone)
    try:
        appointments = await api.appointments.get_all()
    except ApiError as e:
        await respond(
            callback, f"❌ {describe_error(e)}", reply_markup=get_back_to_menu_keyboard()
        )
        return

    todays = sorted(
        (a for a in appointments if a.day == today), key=lambda a: a.hora_cita or ""
    )
    text = (
        f"📊 <b>Citas de hoy</b> ({display_date(today)}): {len(todays)}\n\n"
        + appointments_block(todays, "No hay citas para hoy.")
    )
    await respond(callback, text, reply_markup=get_back_to_menu_keyboard())


@router.callback_query(lambda c: c.data == "rec_appointments")
async def show_scheduled(callback: CallbackQuery, api: ClinicApi, notice: Optional[str] = None):
    """Scheduled appointments with confirm and cancel actions."""
    try:
        appointments = await api.appointments.get_scheduled()
    except ApiError as e:
        await respond(
            callback, f"❌ {describe_error(e)}", reply_markup=get_back_to_menu_keyboard()
        )
        return

    appointments.sort(key=lambda a: (a.fecha_cita or "", a.hora_cita or ""))
    text = "📋 <b>Citas programadas</b>\n\n" + appointments_block(
        appointments, "No hay citas programadas."
    )
    await respond(
        callback, text, reply_markup=get_appointment_actions_keyboard(appointments), notice=notice
    )


@router.callback_query(lambda c: c.data.startswith("rec_confirm_"))
async def confirm_appointment(callback: CallbackQuery, api: ClinicApi):
    appointment_id = int(callback.data.rsplit("_", 1)[1])
    try:
        await api.appointments.confirm(appointment_id)
    except ApiError as e:
        await callback.answer(f"❌ {describe_error(e)}", show_alert=True)
        return

    logger.info(f"Appointment {appointment_id} confirmed")
    await show_scheduled(callback, api, notice="✅ Cita confirmada")


@router.callback_query(lambda c: c.data.startswith("rec_cancel_"))
async def ask_cancel_reason(callback: CallbackQuery, state: FSMContext):
    appointment_id = int(callback.data.rsplit("_", 1)[1])
    await state.set_state(CancelAppointmentStates.waiting_for_reason)
    await state.update_data(appointment_id=appointment_id)
    await respond(
        callback,
        f"❌ Cancelar cita #{appointment_id}\n\nEscribe el motivo de la cancelación:",
        reply_markup=get_back_to_menu_keyboard(),
    )


@router.message(StateFilter(CancelAppointmentStates.waiting_for_reason))
async def handle_cancel_reason(
    message: Message, state: FSMContext, auth: AuthContext, api: ClinicApi
):
    reason = sanitize_text(message.text or "", 500)
    if not reason:
        await message.answer("Escribe el motivo de la cancelación:")
        return

    data = await state.get_data()
    await state.clear()
    appointment_id = data["appointment_id"]

    try:
        await api.appointments.cancel(appointment_id, reason, auth.user.username)
    except ApiError as e:
        await message.answer(
            f"❌ Error al cancelar: {describe_error(e)}", reply_markup=get_back_to_menu_keyboard()
        )
        return

    logger.info(f"Appointment {appointment_id} cancelled by {auth.user.username}")
    await message.answer("✅ Cita cancelada.", reply_markup=get_back_to_menu_keyboard())
