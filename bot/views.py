"""
Text rendering shared by the role pages.
"""

import logging
from html import escape
from typing import Iterable, List, Optional, Union

from aiogram.exceptions import TelegramBadRequest
from aiogram.types import CallbackQuery, InlineKeyboardMarkup, Message

from auth import AuthContext
from bot.keyboards import get_login_keyboard, get_main_menu_keyboard
from models.appointment import Appointment
from models.clinical import ClinicalEvolution, ClinicalRecord, Vaccination
from models.inventory import InventoryItem
from models.pet import Pet
from models.user import SessionUser
from utils.constants import LIST_DISPLAY_LIMIT
from utils.datetime_utils import display_date, display_time

logger = logging.getLogger(__name__)

STATUS_EMOJI = {
    "PROGRAMADA": "🕒",
    "CONFIRMADA": "✅",
    "EN_ATENCION": "🩺",
    "ATENDIDA": "✔️",
    "CANCELADA": "❌",
    "NO_ASISTIO": "🚫",
}


async def respond(
    event: Union[Message, CallbackQuery],
    text: str,
    reply_markup: Optional[InlineKeyboardMarkup] = None,
    notice: Optional[str] = None,
) -> None:
    """Edit the callback's message in place, or answer a plain message."""
    if isinstance(event, CallbackQuery):
        try:
            await event.message.edit_text(text, reply_markup=reply_markup, parse_mode="HTML")
        except TelegramBadRequest as e:
            # Unchanged content or a message that can no longer be edited
            logger.debug(f"Edit failed, sending a new message: {e}")
            if "not modified" not in str(e):
                await event.message.answer(text, reply_markup=reply_markup, parse_mode="HTML")
        await event.answer(notice)
    else:
        await event.answer(text, reply_markup=reply_markup, parse_mode="HTML")


def menu_text(user: SessionUser) -> str:
    return (
        f"👋 Hola, <b>{escape(user.display_name)}</b>\n"
        f"Rol: {escape(user.rol or '-')}\n\n"
        "Elige una opción:"
    )


def appointment_line(appointment: Appointment) -> str:
    emoji = STATUS_EMOJI.get(appointment.estado or "", "•")
    return (
        f"{emoji} {display_date(appointment.fecha_cita)} {display_time(appointment.hora_cita)} "
        f"- {escape(appointment.pet_name)} ({escape(appointment.service_name)})"
    )


def appointments_block(appointments: List[Appointment], empty: str) -> str:
    if not appointments:
        return empty
    lines = [appointment_line(a) for a in appointments[:LIST_DISPLAY_LIMIT]]
    if len(appointments) > LIST_DISPLAY_LIMIT:
        lines.append(f"... y {len(appointments) - LIST_DISPLAY_LIMIT} más")
    return "\n".join(lines)


def pet_line(pet: Pet) -> str:
    return f"🐾 <b>{escape(pet.nombre)}</b> {escape(pet.description)}"


def inventory_line(item: InventoryItem) -> str:
    if item.es_nivel_critico:
        emoji = "🔴"
    elif item.is_low:
        emoji = "🟡"
    else:
        emoji = "🟢"
    quantity = item.cantidad_actual if item.cantidad_actual is not None else "-"
    line = f"{emoji} {escape(item.name)}: {quantity}"
    if item.minimum_stock is not None:
        line += f" (mín. {item.minimum_stock})"
    return line


def inventory_block(items: Iterable[InventoryItem], empty: str) -> str:
    items = list(items)
    if not items:
        return empty
    return "\n".join(inventory_line(item) for item in items[:LIST_DISPLAY_LIMIT])


def record_text(record: ClinicalRecord, evolutions: List[ClinicalEvolution]) -> str:
    lines = [f"📋 <b>{escape(record.title)}</b>"]
    for label, value in (
        ("Antecedentes médicos", record.antecedentes_medicos),
        ("Antecedentes quirúrgicos", record.antecedentes_quirurgicos),
        ("Alergias", record.alergias),
        ("Enfermedades crónicas", record.enfermedades_cronicas),
        ("Medicamentos actuales", record.medicamentos_actuales),
        ("Observaciones", record.observaciones_generales),
    ):
        if value:
            lines.append(f"<i>{label}:</i> {escape(value)}")

    lines.append("")
    if evolutions:
        lines.append("<b>Evoluciones:</b>")
        for evolution in evolutions[:LIST_DISPLAY_LIMIT]:
            lines.append(
                f"• {display_date(evolution.fecha)} - {escape(evolution.descripcion or '')}"
            )
            if evolution.diagnostico:
                lines.append(f"  Diagnóstico: {escape(evolution.diagnostico)}")
    else:
        lines.append("Sin evoluciones registradas.")
    return "\n".join(lines)


def vaccination_line(vaccination: Vaccination) -> str:
    line = f"💉 {escape(vaccination.nombre_vacuna)} - {display_date(vaccination.fecha_aplicacion)}"
    if vaccination.fecha_proxima_dosis:
        line += f" (próxima: {display_date(vaccination.fecha_proxima_dosis)})"
    return line


# ========== Main menu ==========

WELCOME_TEXT = (
    "🐾 <b>Clínica Veterinaria</b>\n\n"
    "Inicia sesión para gestionar citas, mascotas e historias clínicas."
)


async def show_main_menu(event: Union[Message, CallbackQuery], auth: AuthContext) -> None:
    """Send the user to the menu of their role, or to login."""
    if not auth.is_authenticated():
        await respond(event, WELCOME_TEXT, reply_markup=get_login_keyboard())
        return

    role = auth.user.role
    if role is None:
        logger.warning(f"User {auth.user_id} has unknown role {auth.user.rol!r}")
        await respond(
            event,
            "❌ Tu rol no tiene acceso a este portal.",
            reply_markup=get_main_menu_keyboard(None),
        )
        return

    await respond(event, menu_text(auth.user), reply_markup=get_main_menu_keyboard(role))
