"""
Inline keyboards for bot interactions.
"""

from datetime import date
from typing import List, Optional

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from models.appointment import Appointment
from models.clinical import ClinicalRecord
from models.schedule import Availability
from models.user import Role
from utils.constants import LIST_DISPLAY_LIMIT, SLOTS_PER_ROW
from utils.datetime_utils import display_date, display_time

# Main menu entries per role: (text, callback_data)
ROLE_MENUS = {
    Role.PROPIETARIO: [
        ("📊 Dashboard", "own_dashboard"),
        ("🐾 Mis Mascotas", "own_pets"),
        ("📅 Agendar Cita", "book_start"),
        ("💉 Vacunaciones", "own_vaccinations"),
    ],
    Role.VETERINARIO: [
        ("📊 Dashboard", "vet_dashboard"),
        ("📅 Calendario", "vet_calendar"),
        ("📋 Historias Clínicas", "records"),
        ("📝 Evoluciones", "vet_evolutions"),
    ],
    Role.RECEPCIONISTA: [
        ("📊 Dashboard", "rec_dashboard"),
        ("📅 Agendar Cita", "book_start"),
        ("📋 Citas Programadas", "rec_appointments"),
    ],
    Role.AUXILIAR: [
        ("⚠️ Alertas de Stock", "inv_low"),
        ("📦 Inventario", "inv_all"),
        ("📋 Historias Clínicas", "records"),
    ],
    Role.ADMIN: [
        ("📦 Inventario", "inv_all"),
        ("⚠️ Stock Bajo", "inv_low"),
        ("📈 Reportes", "adm_reports"),
    ],
}


def get_main_menu_keyboard(role: Optional[Role]) -> InlineKeyboardMarkup:
    """Get the main menu of a role."""
    builder = InlineKeyboardBuilder()

    for text, callback_data in ROLE_MENUS.get(role, []):
        builder.row(InlineKeyboardButton(text=text, callback_data=callback_data))

    builder.row(InlineKeyboardButton(text="🚪 Cerrar sesión", callback_data="logout"))

    return builder.as_markup()


def get_login_keyboard() -> InlineKeyboardMarkup:
    """Get the logged-out keyboard."""
    builder = InlineKeyboardBuilder()

    builder.row(InlineKeyboardButton(text="🔑 Iniciar sesión", callback_data="login"))
    builder.row(
        InlineKeyboardButton(text="📝 Registrarme", callback_data="register"),
        InlineKeyboardButton(text="🔁 Olvidé mi contraseña", callback_data="reset_password"),
    )

    return builder.as_markup()


def get_back_to_menu_keyboard() -> InlineKeyboardMarkup:
    """Get simple back to menu keyboard."""
    builder = InlineKeyboardBuilder()

    builder.row(InlineKeyboardButton(text="🔙 Menú principal", callback_data="main_menu"))

    return builder.as_markup()


def get_skip_keyboard(callback_data: str) -> InlineKeyboardMarkup:
    """Keyboard for optional form fields."""
    builder = InlineKeyboardBuilder()

    builder.row(InlineKeyboardButton(text="⏭ Omitir", callback_data=callback_data))
    builder.row(InlineKeyboardButton(text="❌ Cancelar", callback_data="main_menu"))

    return builder.as_markup()


# ========== Booking wizard ==========


def _wizard_footer(builder: InlineKeyboardBuilder, back: Optional[str]) -> None:
    buttons = []
    if back:
        buttons.append(InlineKeyboardButton(text="⬅️ Atrás", callback_data=f"bk_back_{back}"))
    buttons.append(InlineKeyboardButton(text="❌ Cancelar", callback_data="main_menu"))
    builder.row(*buttons)


def get_options_keyboard(
    options: List[tuple[str, str]], back: Optional[str] = None
) -> InlineKeyboardMarkup:
    """One button per (text, callback_data) option plus wizard navigation."""
    builder = InlineKeyboardBuilder()

    for text, callback_data in options:
        builder.row(InlineKeyboardButton(text=text, callback_data=callback_data))

    _wizard_footer(builder, back)

    return builder.as_markup()


def get_date_time_vet_keyboard(
    vets: List[tuple[int, str]],
    selected_vet: Optional[int],
    days: List[date],
    selected_day: Optional[date],
    availability: Optional[Availability],
    selected_time: Optional[str],
    can_submit: bool,
    back: Optional[str],
) -> InlineKeyboardMarkup:
    """
    Keyboard of the date/time/vet step.

    Occupied slots are rendered with a lock and answer with an alert.
    """
    builder = InlineKeyboardBuilder()

    for vet_id, name in vets:
        mark = "✅ " if vet_id == selected_vet else ""
        builder.row(InlineKeyboardButton(text=f"{mark}🩺 {name}", callback_data=f"bk_vet_{vet_id}"))

    if selected_vet is not None:
        day_buttons = [
            InlineKeyboardButton(
                text=("• " if day == selected_day else "") + day.strftime("%d.%m"),
                callback_data=f"bk_date_{day.isoformat()}",
            )
            for day in days
        ]
        for start in range(0, len(day_buttons), SLOTS_PER_ROW + 1):
            builder.row(*day_buttons[start:start + SLOTS_PER_ROW + 1])
        builder.row(InlineKeyboardButton(text="📆 Otra fecha", callback_data="bk_date_custom"))

    if availability is not None:
        slot_buttons = []
        for slot in availability.slots_disponibles:
            label = display_time(slot.hora)
            if not slot.disponible:
                slot_buttons.append(
                    InlineKeyboardButton(text=f"🔒 {label}", callback_data=f"bk_locked_{slot.hora}")
                )
            elif slot.hora == selected_time:
                slot_buttons.append(
                    InlineKeyboardButton(text=f"✅ {label}", callback_data=f"bk_time_{slot.hora}")
                )
            else:
                slot_buttons.append(
                    InlineKeyboardButton(text=label, callback_data=f"bk_time_{slot.hora}")
                )
        for start in range(0, len(slot_buttons), SLOTS_PER_ROW):
            builder.row(*slot_buttons[start:start + SLOTS_PER_ROW])

    if selected_vet is not None:
        builder.row(InlineKeyboardButton(text="✏️ Motivo de la consulta", callback_data="bk_reason"))
    if can_submit:
        builder.row(InlineKeyboardButton(text="✅ Agendar cita", callback_data="bk_submit"))

    _wizard_footer(builder, back)

    return builder.as_markup()


def get_booking_done_keyboard() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()

    builder.row(InlineKeyboardButton(text="📅 Agendar otra cita", callback_data="book_start"))
    builder.row(InlineKeyboardButton(text="🔙 Menú principal", callback_data="main_menu"))

    return builder.as_markup()


# ========== Role pages ==========


def get_appointment_actions_keyboard(appointments: List[Appointment]) -> InlineKeyboardMarkup:
    """Confirm/cancel buttons for each scheduled appointment."""
    builder = InlineKeyboardBuilder()

    for appointment in appointments[:LIST_DISPLAY_LIMIT]:
        label = f"{display_date(appointment.fecha_cita)} {display_time(appointment.hora_cita)}"
        builder.row(
            InlineKeyboardButton(
                text=f"✅ {label} {appointment.pet_name}",
                callback_data=f"rec_confirm_{appointment.id_cita}",
            ),
            InlineKeyboardButton(
                text="❌ Cancelar",
                callback_data=f"rec_cancel_{appointment.id_cita}",
            ),
        )

    builder.row(InlineKeyboardButton(text="🔙 Menú principal", callback_data="main_menu"))

    return builder.as_markup()


def get_calendar_keyboard(days: List[date], selected: date) -> InlineKeyboardMarkup:
    """Day picker for the vet calendar."""
    builder = InlineKeyboardBuilder()

    buttons = [
        InlineKeyboardButton(
            text=("• " if day == selected else "") + day.strftime("%d.%m"),
            callback_data=f"vet_cal_{day.isoformat()}",
        )
        for day in days
    ]
    for start in range(0, len(buttons), SLOTS_PER_ROW + 1):
        builder.row(*buttons[start:start + SLOTS_PER_ROW + 1])

    builder.row(InlineKeyboardButton(text="🔙 Menú principal", callback_data="main_menu"))

    return builder.as_markup()


def get_records_keyboard(records: List[ClinicalRecord], prefix: str) -> InlineKeyboardMarkup:
    """One button per clinical record."""
    builder = InlineKeyboardBuilder()

    for record in records[:LIST_DISPLAY_LIMIT]:
        builder.row(
            InlineKeyboardButton(
                text=f"📋 {record.title}",
                callback_data=f"{prefix}_{record.id_historia_clinica}",
            )
        )

    builder.row(InlineKeyboardButton(text="🔙 Menú principal", callback_data="main_menu"))

    return builder.as_markup()


def get_reports_keyboard() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()

    builder.row(InlineKeyboardButton(text="📅 Citas", callback_data="adm_report_appointments"))
    builder.row(InlineKeyboardButton(text="🩺 Veterinarios", callback_data="adm_report_vets"))
    builder.row(InlineKeyboardButton(text="📦 Inventario", callback_data="adm_report_inventory"))
    builder.row(InlineKeyboardButton(text="📆 Cambiar rango", callback_data="adm_report_range"))
    builder.row(InlineKeyboardButton(text="🔙 Menú principal", callback_data="main_menu"))

    return builder.as_markup()
