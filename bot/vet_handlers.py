"""
Veterinarian pages: dashboard, calendar and clinical evolutions.
"""

import logging
from datetime import date, timedelta
from html import escape
from typing import List, Optional

from aiogram import Router
from aiogram.filters import StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from api import ClinicApi
from auth import AuthContext
from bot.keyboards import (
    get_back_to_menu_keyboard,
    get_calendar_keyboard,
    get_records_keyboard,
    get_skip_keyboard,
)
from bot.middlewares import guard_router
from bot.states import EvolutionStates
from bot.views import appointments_block, record_text, respond
from config import settings
from models.appointment import Appointment
from models.clinical import ClinicalEvolutionCreate
from models.user import Role, SessionUser
from models.veterinarian import Veterinarian
from utils.datetime_utils import date_options, display_date, local_today
from utils.error_messages import describe_error
from utils.exceptions import ApiError
from utils.validation import sanitize_text

logger = logging.getLogger(__name__)

router = Router()
guard_router(router, Role.VETERINARIO)

CALENDAR_DAYS_BEFORE = 3
CALENDAR_DAYS_SHOWN = 10


async def resolve_vet_profile(api: ClinicApi, user: SessionUser) -> Optional[Veterinarian]:
    """
    The logged-in veterinarian's staff profile.

    Falls back to matching the user's email, then username, against all
    veterinarians when the profile endpoint fails.
    """
    try:
        profile = await api.veterinarians.get_my_profile()
        if profile is not None:
            return profile
    except ApiError as e:
        logger.info(f"Vet profile endpoint failed for {user.username}: {e}")

    vets = await api.veterinarians.get_all()
    email = (user.email or "").lower()
    for vet in vets:
        if email and (vet.email or "").lower() == email:
            return vet

    first_name = user.username.split(" ")[0].lower()
    for vet in vets:
        if first_name and first_name in (vet.nombres or "").lower():
            return vet
    return None


async def load_vet_appointments(api: ClinicApi, user: SessionUser) -> List[Appointment]:
    vet = await resolve_vet_profile(api, user)
    if vet is None:
        return []
    return await api.appointments.get_by_veterinarian(vet.id_personal)


def appointments_on(appointments: List[Appointment], day: date) -> List[Appointment]:
    selected = [a for a in appointments if a.day == day]
    selected.sort(key=lambda a: a.hora_cita or "")
    return selected


@router.callback_query(lambda c: c.data == "vet_dashboard")
async def show_dashboard(callback: CallbackQuery, auth: AuthContext, api: ClinicApi):
    """Today's active appointments and the pending ones after today."""
    today = local_today(settings.timezone)
    try:
        appointments = await load_vet_appointments(api, auth.user)
    except ApiError as e:
        await respond(
            callback, f"❌ {describe_error(e)}", reply_markup=get_back_to_menu_keyboard()
        )
        return

    todays = [a for a in appointments_on(appointments, today) if a.is_active]
    pending = [a for a in appointments if a.is_active and a.day and a.day > today]
    pending.sort(key=lambda a: (a.fecha_cita or "", a.hora_cita or ""))

    text = (
        f"📊 <b>Bienvenido, {escape(auth.user.display_name)}</b>\n\n"
        f"<b>Citas de hoy ({display_date(today)}):</b>\n"
        + appointments_block(todays, "No tienes citas para hoy.")
        + "\n\n<b>Próximas citas pendientes:</b>\n"
        + appointments_block(pending, "Sin citas pendientes.")
    )
    await respond(callback, text, reply_markup=get_back_to_menu_keyboard())


@router.callback_query(lambda c: c.data == "vet_calendar" or c.data.startswith("vet_cal_"))
async def show_calendar(callback: CallbackQuery, auth: AuthContext, api: ClinicApi):
    today = local_today(settings.timezone)
    selected = today
    if callback.data.startswith("vet_cal_"):
        try:
            selected = date.fromisoformat(callback.data[len("vet_cal_"):])
        except ValueError:
            await callback.answer("Fecha inválida", show_alert=True)
            return

    try:
        appointments = await load_vet_appointments(api, auth.user)
    except ApiError as e:
        await respond(
            callback, f"❌ {describe_error(e)}", reply_markup=get_back_to_menu_keyboard()
        )
        return

    text = (
        f"📅 <b>Calendario</b> · {display_date(selected)}\n\n"
        + appointments_block(appointments_on(appointments, selected), "Sin citas este día.")
    )
    days = date_options(today - timedelta(days=CALENDAR_DAYS_BEFORE), CALENDAR_DAYS_SHOWN)
    await respond(callback, text, reply_markup=get_calendar_keyboard(days, selected))


# ========== Evolutions ==========


@router.callback_query(lambda c: c.data == "vet_evolutions")
async def show_evolution_records(callback: CallbackQuery, state: FSMContext, api: ClinicApi):
    """Active clinical records a new evolution can be added to."""
    await state.clear()
    try:
        records = await api.clinical_records.get_active()
    except ApiError as e:
        await respond(
            callback, f"❌ {describe_error(e)}", reply_markup=get_back_to_menu_keyboard()
        )
        return

    text = (
        "📝 <b>Evoluciones</b>\n\nSelecciona la historia clínica:"
        if records
        else "📝 <b>Evoluciones</b>\n\nNo hay historias clínicas activas."
    )
    await respond(callback, text, reply_markup=get_records_keyboard(records, "vet_evo"))


@router.callback_query(lambda c: c.data.startswith("vet_evo_"))
async def start_evolution(callback: CallbackQuery, state: FSMContext, api: ClinicApi):
    record_id = int(callback.data.rsplit("_", 1)[1])
    try:
        record = await api.clinical_records.get_by_id(record_id)
        evolutions = await api.evolutions.get_by_record(record_id)
    except ApiError as e:
        await respond(
            callback, f"❌ {describe_error(e)}", reply_markup=get_back_to_menu_keyboard()
        )
        return

    if record is None:
        await callback.answer("Historia clínica no encontrada", show_alert=True)
        return

    await state.set_state(EvolutionStates.waiting_for_description)
    await state.update_data(record_id=record_id)
    await respond(
        callback,
        record_text(record, evolutions)
        + "\n\n➕ <b>Nueva evolución</b>\nEscribe la descripción:",
        reply_markup=get_back_to_menu_keyboard(),
    )


# (state, data key, next state, prompt for next state)
EVOLUTION_FIELDS = [
    (EvolutionStates.waiting_for_description, "descripcion",
     EvolutionStates.waiting_for_vital_signs, "Signos vitales (opcional):"),
    (EvolutionStates.waiting_for_vital_signs, "signos_vitales",
     EvolutionStates.waiting_for_diagnosis, "Diagnóstico (opcional):"),
    (EvolutionStates.waiting_for_diagnosis, "diagnostico",
     EvolutionStates.waiting_for_treatment, "Tratamiento (opcional):"),
    (EvolutionStates.waiting_for_treatment, "tratamiento",
     EvolutionStates.waiting_for_observations, "Observaciones (opcional):"),
    (EvolutionStates.waiting_for_observations, "observaciones", None, None),
]


async def _store_field(
    message: Message, state: FSMContext, api: ClinicApi, value: Optional[str]
) -> None:
    current = await state.get_state()
    for field_state, key, next_state, prompt in EVOLUTION_FIELDS:
        if field_state.state != current:
            continue
        await state.update_data(**{key: value})
        if next_state is None:
            await _save_evolution(message, state, api)
        else:
            await state.set_state(next_state)
            await message.answer(prompt, reply_markup=get_skip_keyboard("evo_skip"))
        return


@router.message(StateFilter(EvolutionStates.waiting_for_description))
async def handle_description(message: Message, state: FSMContext, api: ClinicApi):
    description = sanitize_text(message.text or "", 2000)
    if not description:
        await message.answer("La descripción es obligatoria. Escribe la descripción:")
        return
    await _store_field(message, state, api, description)


@router.message(
    StateFilter(
        EvolutionStates.waiting_for_vital_signs,
        EvolutionStates.waiting_for_diagnosis,
        EvolutionStates.waiting_for_treatment,
        EvolutionStates.waiting_for_observations,
    )
)
async def handle_optional_field(message: Message, state: FSMContext, api: ClinicApi):
    await _store_field(message, state, api, sanitize_text(message.text or "", 2000) or None)


@router.callback_query(
    lambda c: c.data == "evo_skip",
    StateFilter(
        EvolutionStates.waiting_for_vital_signs,
        EvolutionStates.waiting_for_diagnosis,
        EvolutionStates.waiting_for_treatment,
        EvolutionStates.waiting_for_observations,
    ),
)
async def skip_optional_field(callback: CallbackQuery, state: FSMContext, api: ClinicApi):
    await callback.answer()
    await _store_field(callback.message, state, api, None)


async def _save_evolution(message: Message, state: FSMContext, api: ClinicApi) -> None:
    data = await state.get_data()
    await state.clear()

    evolution = ClinicalEvolutionCreate(
        fecha=local_today(settings.timezone),
        descripcion=data["descripcion"],
        signos_vitales=data.get("signos_vitales"),
        diagnostico=data.get("diagnostico"),
        tratamiento=data.get("tratamiento"),
        observaciones=data.get("observaciones"),
    )
    try:
        await api.evolutions.create(data["record_id"], evolution)
    except ApiError as e:
        await message.answer(
            f"❌ Error al guardar la evolución: {describe_error(e)}",
            reply_markup=get_back_to_menu_keyboard(),
        )
        return

    logger.info(f"Evolution added to clinical record {data['record_id']}")
    await message.answer(
        "✅ Evolución registrada exitosamente.", reply_markup=get_back_to_menu_keyboard()
    )
