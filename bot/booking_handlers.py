"""
Appointment booking wizard handlers (owners and reception).

The wizard lives in FSM data under "wizard" and is rebuilt on every update.
Leaving the wizard (main menu, /cancel, /logout) clears it.
"""

import asyncio
import logging
from datetime import date
from html import escape
from typing import Optional, Set

from aiogram import Router
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, InlineKeyboardMarkup, Message

from api import ClinicApi
from auth import AuthContext
from booking import BookingFlow, BookingWizard, WizardStep
from bot.keyboards import (
    get_back_to_menu_keyboard,
    get_booking_done_keyboard,
    get_date_time_vet_keyboard,
    get_options_keyboard,
    get_skip_keyboard,
)
from bot.middlewares import guard_router
from bot.states import BookingStates
from bot.views import respond
from config import settings
from models.user import Role
from utils.datetime_utils import date_options, display_date, display_time, local_today, parse_user_date
from utils.error_messages import describe_error
from utils.exceptions import ApiError, BookingValidationError, SlotNotAvailableError

logger = logging.getLogger(__name__)

router = Router()
guard_router(router, Role.PROPIETARIO, Role.RECEPCIONISTA)

# Pending post-confirmation resets
_reset_tasks: Set[asyncio.Task] = set()


def clinic_today() -> date:
    return local_today(settings.timezone)


# ========== Wizard persistence ==========


async def load_wizard(state: FSMContext) -> Optional[BookingWizard]:
    data = await state.get_data()
    raw = data.get("wizard")
    return BookingWizard.from_data(raw) if raw else None


async def save_wizard(state: FSMContext, wizard: BookingWizard) -> None:
    await state.update_data(wizard=wizard.to_data())


async def _require_wizard(callback: CallbackQuery, state: FSMContext) -> Optional[BookingWizard]:
    wizard = await load_wizard(state)
    if wizard is None:
        await respond(
            callback,
            "⏳ La sesión de agendamiento expiró. Vuelve a empezar desde el menú.",
            reply_markup=get_back_to_menu_keyboard(),
        )
    return wizard


# ========== Rendering ==========


def _summary(wizard: BookingWizard) -> list[str]:
    draft = wizard.draft
    lines = []
    if draft.owner:
        lines.append(f"👤 Propietario: {escape(draft.owner.full_name)}")
    if draft.pet:
        lines.append(f"🐾 Mascota: {escape(draft.pet.nombre)}")
    if draft.service:
        lines.append(f"🩺 Servicio: {escape(draft.service.label)}")
    if draft.veterinarian:
        lines.append(f"👨‍⚕️ Veterinario: {escape(draft.veterinarian.display_name)}")
    if draft.day:
        lines.append(f"📆 Fecha: {display_date(draft.day)}")
    if draft.time:
        lines.append(f"🕒 Hora: {display_time(draft.time)}")
    return lines


def _previous_step(wizard: BookingWizard) -> Optional[str]:
    index = wizard.steps.index(wizard.step)
    return wizard.steps[index - 1].value if index > 0 else None


def render_wizard(wizard: BookingWizard, today: date) -> tuple[str, InlineKeyboardMarkup]:
    """Build the text and keyboard of the wizard's current step."""
    step = wizard.step
    header = f"📅 <b>Agendar Cita</b> · Paso {wizard.step_number}/{len(wizard.steps)}"
    lines = [header, ""]

    if step == WizardStep.CONFIRMATION:
        lines.append(f"✅ <b>{escape(wizard.success or '')}</b>")
        lines.append("")
        lines.extend(_summary(wizard))
        lines.append(f"📝 Motivo: {escape(wizard.effective_reason())}")
        return "\n".join(lines), get_booking_done_keyboard()

    summary = _summary(wizard)
    if summary:
        lines.extend(summary)
        lines.append("")

    catalog = wizard.catalog
    back = _previous_step(wizard)

    if step == WizardStep.SELECT_OWNER:
        lines.append("Selecciona el propietario:" if catalog.owners else "No hay propietarios activos.")
        options = [
            (f"👤 {o.full_name} ({o.documento or '-'})", f"bk_owner_{o.id_propietario}")
            for o in catalog.owners
        ]
        markup = get_options_keyboard(options, back)

    elif step == WizardStep.SELECT_PET:
        if catalog.pets:
            lines.append("Selecciona la mascota:")
        elif wizard.role == Role.PROPIETARIO:
            lines.append("No tienes mascotas registradas. Contacta a la clínica para registrarlas.")
        else:
            lines.append("Este propietario no tiene mascotas registradas.")
        options = [(f"🐾 {p.nombre}", f"bk_pet_{p.id_mascota}") for p in catalog.pets]
        markup = get_options_keyboard(options, back)

    elif step == WizardStep.SELECT_SERVICE:
        lines.append("Selecciona el servicio:" if catalog.services else "No hay servicios activos.")
        options = [(s.label, f"bk_service_{s.id_servicio}") for s in catalog.services]
        markup = get_options_keyboard(options, back)

    else:
        lines.extend(_date_time_vet_lines(wizard))
        markup = get_date_time_vet_keyboard(
            vets=[(v.id_personal, v.display_name) for v in catalog.veterinarians],
            selected_vet=wizard.draft.veterinarian.id_personal if wizard.draft.veterinarian else None,
            days=date_options(today, settings.booking_date_options_days),
            selected_day=wizard.draft.day,
            availability=wizard.availability,
            selected_time=wizard.draft.time,
            can_submit=wizard.can_submit(today),
            back=back,
        )

    if wizard.error:
        lines.append("")
        lines.append(f"❌ {escape(wizard.error)}")

    return "\n".join(lines), markup


def _date_time_vet_lines(wizard: BookingWizard) -> list[str]:
    draft = wizard.draft
    if draft.veterinarian is None:
        return ["Selecciona el veterinario:"]

    lines = []
    if wizard.catalog.schedules:
        lines.append("<b>Horario del veterinario:</b>")
        for schedule in wizard.catalog.schedules:
            lines.append(
                f"• {escape(schedule.dia_semana or '-')} "
                f"{display_time(schedule.hora_inicio)}-{display_time(schedule.hora_fin)}"
            )
        lines.append("")

    availability = wizard.availability
    if draft.day is None:
        lines.append("Selecciona la fecha:")
    elif availability is None:
        lines.append("No se pudo cargar la disponibilidad para esta fecha.")
    elif not availability.slots_disponibles:
        lines.append("El veterinario no tiene horarios disponibles este día.")
    else:
        free = len(availability.free_slots)
        lines.append(
            f"Disponibilidad {display_date(draft.day)}: {free} de "
            f"{len(availability.slots_disponibles)} horarios libres (🔒 ocupado)"
        )
        if draft.time is None:
            lines.append("Selecciona la hora:")

    reason = wizard.effective_reason()
    lines.append("")
    lines.append(f"📝 Motivo: {escape(reason) if reason else '-'}")
    return lines


async def show_wizard(event, state: FSMContext, wizard: BookingWizard) -> None:
    await save_wizard(state, wizard)
    text, markup = render_wizard(wizard, clinic_today())
    await respond(event, text, reply_markup=markup)


# ========== Entry ==========


@router.callback_query(lambda c: c.data == "book_start")
async def start_booking(callback: CallbackQuery, state: FSMContext, auth: AuthContext, api: ClinicApi):
    """Start booking flow."""
    await state.clear()
    wizard = BookingWizard(auth.user.role)

    try:
        await BookingFlow(api).load_initial(wizard)
    except (ApiError, BookingValidationError) as e:
        logger.warning(f"Booking options failed to load for user {auth.user_id}: {e}")
        await respond(
            callback,
            f"❌ Error al cargar los datos: {describe_error(e)}",
            reply_markup=get_back_to_menu_keyboard(),
        )
        return

    await state.set_state(BookingStates.in_wizard)
    await show_wizard(callback, state, wizard)


# ========== Selection steps ==========


@router.callback_query(lambda c: c.data.startswith("bk_owner_"), StateFilter(BookingStates.in_wizard))
async def select_owner(callback: CallbackQuery, state: FSMContext, api: ClinicApi):
    wizard = await _require_wizard(callback, state)
    if wizard is None:
        return

    try:
        owner_id = wizard.select_owner(int(callback.data.rsplit("_", 1)[1])).id_propietario
    except BookingValidationError as e:
        await callback.answer(str(e), show_alert=True)
        return
    await save_wizard(state, wizard)

    pets, error = None, None
    try:
        pets = await BookingFlow(api).fetch_pets(owner_id)
    except ApiError as e:
        error = f"Error al cargar mascotas: {describe_error(e)}"

    current = await load_wizard(state)
    owner = current.draft.owner if current else None
    if owner is None or owner.id_propietario != owner_id:
        await callback.answer()
        return

    if pets is not None:
        current.set_pets(pets)
    current.error = error
    await show_wizard(callback, state, current)


@router.callback_query(lambda c: c.data.startswith("bk_pet_"), StateFilter(BookingStates.in_wizard))
async def select_pet(callback: CallbackQuery, state: FSMContext):
    wizard = await _require_wizard(callback, state)
    if wizard is None:
        return

    try:
        wizard.select_pet(int(callback.data.rsplit("_", 1)[1]))
    except BookingValidationError as e:
        await callback.answer(str(e), show_alert=True)
        return

    await show_wizard(callback, state, wizard)


@router.callback_query(lambda c: c.data.startswith("bk_service_"), StateFilter(BookingStates.in_wizard))
async def select_service(callback: CallbackQuery, state: FSMContext):
    wizard = await _require_wizard(callback, state)
    if wizard is None:
        return

    try:
        wizard.select_service(int(callback.data.rsplit("_", 1)[1]))
    except BookingValidationError as e:
        await callback.answer(str(e), show_alert=True)
        return

    await show_wizard(callback, state, wizard)


@router.callback_query(lambda c: c.data.startswith("bk_back_"), StateFilter(BookingStates.in_wizard))
async def go_back(callback: CallbackQuery, state: FSMContext):
    wizard = await _require_wizard(callback, state)
    if wizard is None:
        return

    try:
        wizard.go_back(WizardStep(callback.data[len("bk_back_"):]))
    except ValueError:
        await callback.answer()
        return

    await show_wizard(callback, state, wizard)


# ========== Date, time and vet ==========


async def refresh_availability(
    event, state: FSMContext, wizard: BookingWizard, flow: BookingFlow
) -> None:
    """
    Fetch availability for the wizard's vet and date, then show the wizard.

    The wizard is re-read after the fetch: if another update started a newer
    fetch or changed the vet or date meanwhile, this result is dropped.
    """
    request = wizard.begin_availability_request()
    await save_wizard(state, wizard)
    if request is None:
        await show_wizard(event, state, wizard)
        return

    request_id, vet_id, day = request
    availability = await flow.load_availability(vet_id, day)

    current = await load_wizard(state)
    if current is None:
        return
    if not current.apply_availability(request_id, vet_id, day, availability):
        if isinstance(event, CallbackQuery):
            await event.answer()
        return

    await show_wizard(event, state, current)


@router.callback_query(lambda c: c.data.startswith("bk_vet_"), StateFilter(BookingStates.in_wizard))
async def select_veterinarian(callback: CallbackQuery, state: FSMContext, api: ClinicApi):
    wizard = await _require_wizard(callback, state)
    if wizard is None:
        return

    vet_id = int(callback.data.rsplit("_", 1)[1])
    try:
        wizard.select_veterinarian(vet_id, clinic_today())
    except BookingValidationError as e:
        await callback.answer(str(e), show_alert=True)
        return
    await save_wizard(state, wizard)

    flow = BookingFlow(api)
    schedules = await flow.fetch_schedule(vet_id)

    # Dates or vets picked while the schedule loaded win
    current = await load_wizard(state)
    vet = current.draft.veterinarian if current else None
    if vet is None or vet.id_personal != vet_id:
        await callback.answer()
        return

    current.set_schedules(schedules)
    await refresh_availability(callback, state, current, flow)


@router.callback_query(
    lambda c: c.data.startswith("bk_date_") and c.data != "bk_date_custom",
    StateFilter(BookingStates.in_wizard),
)
async def select_date(callback: CallbackQuery, state: FSMContext, api: ClinicApi):
    wizard = await _require_wizard(callback, state)
    if wizard is None:
        return

    try:
        day = date.fromisoformat(callback.data[len("bk_date_"):])
    except ValueError:
        await callback.answer("Fecha inválida", show_alert=True)
        return

    await _apply_date(callback, state, wizard, day, api)


async def _apply_date(event, state: FSMContext, wizard: BookingWizard, day: date, api: ClinicApi):
    try:
        wizard.select_date(day, clinic_today())
    except BookingValidationError:
        await show_wizard(event, state, wizard)
        return

    await refresh_availability(event, state, wizard, BookingFlow(api))


@router.callback_query(lambda c: c.data == "bk_date_custom", StateFilter(BookingStates.in_wizard))
async def ask_custom_date(callback: CallbackQuery, state: FSMContext):
    await state.set_state(BookingStates.entering_date)
    await respond(
        callback,
        "📆 Escribe la fecha de la cita (AAAA-MM-DD o DD/MM/AAAA):",
        reply_markup=get_back_to_menu_keyboard(),
    )


@router.message(StateFilter(BookingStates.entering_date))
async def handle_custom_date(message: Message, state: FSMContext, api: ClinicApi):
    try:
        day = parse_user_date(message.text or "")
    except ValueError:
        await message.answer("❌ Fecha inválida. Usa AAAA-MM-DD o DD/MM/AAAA:")
        return

    wizard = await load_wizard(state)
    await state.set_state(BookingStates.in_wizard)
    if wizard is None:
        await message.answer(
            "⏳ La sesión de agendamiento expiró.", reply_markup=get_back_to_menu_keyboard()
        )
        return

    await _apply_date(message, state, wizard, day, api)


@router.callback_query(
    lambda c: c.data.startswith(("bk_time_", "bk_locked_")),
    StateFilter(BookingStates.in_wizard),
)
async def select_time(callback: CallbackQuery, state: FSMContext):
    """Pick a slot. Occupied slots are refused and leave the draft unchanged."""
    wizard = await _require_wizard(callback, state)
    if wizard is None:
        return

    hour = callback.data.split("_", 2)[2]
    try:
        wizard.select_time(hour)
    except SlotNotAvailableError as e:
        await callback.answer(f"🔒 {e}", show_alert=True)
        return
    except BookingValidationError as e:
        await callback.answer(str(e), show_alert=True)
        return

    await show_wizard(callback, state, wizard)


# ========== Reason ==========


@router.callback_query(lambda c: c.data == "bk_reason", StateFilter(BookingStates.in_wizard))
async def ask_reason(callback: CallbackQuery, state: FSMContext):
    await state.set_state(BookingStates.entering_reason)
    await respond(
        callback,
        "📝 Describe el motivo de la consulta (mínimo 5 caracteres).\n\n"
        "Si lo omites se usará «Cita para &lt;servicio&gt;».",
        reply_markup=get_skip_keyboard("bk_reason_skip"),
    )


@router.message(StateFilter(BookingStates.entering_reason))
async def handle_reason(message: Message, state: FSMContext):
    wizard = await load_wizard(state)
    await state.set_state(BookingStates.in_wizard)
    if wizard is None:
        await message.answer(
            "⏳ La sesión de agendamiento expiró.", reply_markup=get_back_to_menu_keyboard()
        )
        return

    wizard.set_reason(message.text or "")
    await show_wizard(message, state, wizard)


@router.callback_query(lambda c: c.data == "bk_reason_skip", StateFilter(BookingStates.entering_reason))
async def skip_reason(callback: CallbackQuery, state: FSMContext):
    await state.set_state(BookingStates.in_wizard)
    wizard = await _require_wizard(callback, state)
    if wizard is None:
        return

    wizard.set_reason("")
    await show_wizard(callback, state, wizard)


# ========== Submission ==========


@router.callback_query(lambda c: c.data == "bk_submit", StateFilter(BookingStates.in_wizard))
async def submit_booking(callback: CallbackQuery, state: FSMContext, api: ClinicApi):
    """Create the appointment."""
    data = await state.get_data()
    if data.get("submitting"):
        await callback.answer("⏳ Procesando...")
        return

    wizard = await _require_wizard(callback, state)
    if wizard is None:
        return

    await state.update_data(submitting=True)
    try:
        await BookingFlow(api).submit(wizard, clinic_today())
    except (BookingValidationError, ApiError):
        await show_wizard(callback, state, wizard)
        return
    finally:
        await state.update_data(submitting=False)

    await show_wizard(callback, state, wizard)
    schedule_reset(callback, state, wizard.appointment_id)


def schedule_reset(callback: CallbackQuery, state: FSMContext, appointment_id: Optional[int]) -> None:
    """Reset the wizard once the confirmation has been visible for a while."""
    task = asyncio.create_task(
        _reset_after_delay(callback, state, appointment_id, settings.booking_reset_delay_seconds)
    )
    _reset_tasks.add(task)
    task.add_done_callback(_reset_tasks.discard)


async def _reset_after_delay(
    callback: CallbackQuery, state: FSMContext, appointment_id: Optional[int], delay: float
) -> None:
    await asyncio.sleep(delay)

    if await state.get_state() != BookingStates.in_wizard.state:
        return
    wizard = await load_wizard(state)
    if (
        wizard is None
        or wizard.step != WizardStep.CONFIRMATION
        or wizard.appointment_id != appointment_id
    ):
        return

    wizard.reset()
    await save_wizard(state, wizard)
    text, markup = render_wizard(wizard, clinic_today())
    try:
        await callback.message.edit_text(text, reply_markup=markup, parse_mode="HTML")
    except TelegramBadRequest as e:
        logger.debug(f"Could not refresh wizard after confirmation: {e}")
