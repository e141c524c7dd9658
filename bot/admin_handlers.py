"""
Admin panel handlers: reports over a date range.
Inventory pages shared with assistants live in inventory_handlers.
Accessible only to users with the ADMIN role.
"""

import logging
from datetime import date
from html import escape
from typing import Any, Optional

from aiogram import Router
from aiogram.filters import Command, StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from api import ClinicApi
from auth import AuthContext
from bot.keyboards import get_back_to_menu_keyboard, get_main_menu_keyboard, get_reports_keyboard
from bot.middlewares import guard_router
from bot.states import ReportStates
from bot.views import respond
from config import settings
from models.user import Role
from utils.constants import REPORT_RANGE_KEY
from utils.datetime_utils import display_date, local_today, parse_user_date
from utils.error_messages import describe_error
from utils.exceptions import ApiError

logger = logging.getLogger(__name__)

admin_router = Router()
guard_router(admin_router, Role.ADMIN)


def default_report_range(today: date) -> tuple[date, date]:
    """One month back from today, clamped to the end of a shorter month."""
    year, month = (today.year, today.month - 1) if today.month > 1 else (today.year - 1, 12)
    day = today.day
    while True:
        try:
            return date(year, month, day), today
        except ValueError:
            day -= 1


def get_report_range(auth: AuthContext) -> tuple[date, date]:
    """The range chosen this session, or the last month."""
    stored = auth.storage.get_item(auth.user_id, REPORT_RANGE_KEY)
    if stored:
        try:
            start, end = stored.split("/")
            return date.fromisoformat(start), date.fromisoformat(end)
        except ValueError:
            logger.warning(f"Ignoring malformed report range for user {auth.user_id}: {stored!r}")
    return default_report_range(local_today(settings.timezone))


def save_report_range(auth: AuthContext, start: date, end: date) -> None:
    auth.storage.set_item(auth.user_id, REPORT_RANGE_KEY, f"{start.isoformat()}/{end.isoformat()}")


def parse_range(text: str) -> tuple[date, date]:
    """
    Parse "start end" typed by the user.

    Raises:
        ValueError: If a date is invalid or the range is reversed
    """
    parts = (text or "").split()
    if len(parts) != 2:
        raise ValueError("Escribe dos fechas separadas por un espacio")
    start, end = parse_user_date(parts[0]), parse_user_date(parts[1])
    if start > end:
        raise ValueError("La fecha inicial debe ser anterior a la final")
    return start, end


# ========== Admin Menu ==========


@admin_router.message(Command("admin"))
async def cmd_admin(message: Message, state: FSMContext):
    """Admin panel entry point."""
    await state.clear()
    await message.answer(
        "🔐 <b>Panel de administración</b>\n\nElige una opción:",
        reply_markup=get_main_menu_keyboard(Role.ADMIN),
        parse_mode="HTML",
    )


@admin_router.callback_query(lambda c: c.data == "adm_reports")
async def show_reports(callback: CallbackQuery, auth: AuthContext):
    start, end = get_report_range(auth)
    await respond(
        callback,
        f"📈 <b>Reportes</b>\n\nRango: {display_date(start)} - {display_date(end)}\n\n"
        "Elige un reporte:",
        reply_markup=get_reports_keyboard(),
    )


# ========== Reports ==========


def _count(data: dict, key: str) -> Any:
    value = data.get(key)
    return value if value is not None else 0


def format_appointments_report(data: dict) -> str:
    return (
        f"Total de citas: {_count(data, 'totalCitas')}\n"
        f"✔️ Atendidas: {_count(data, 'citasAtendidas')}\n"
        f"❌ Canceladas: {_count(data, 'citasCanceladas')}\n"
        f"🕒 Programadas: {_count(data, 'citasProgramadas')}"
    )


def format_inventory_report(data: dict) -> str:
    total_value = data.get("valorTotalInventario") or 0
    return (
        f"Total de insumos: {_count(data, 'totalInsumos')}\n"
        f"⚠️ Stock bajo: {_count(data, 'insumosStockBajo')}\n"
        f"💰 Valor total: ${total_value:,}"
    )


def format_veterinarians_report(data: Optional[dict]) -> str:
    data = data or {}
    lines = [f"Total de atenciones: {_count(data, 'totalAtenciones')}"]
    for item in data.get("atencionesPorVeterinario") or []:
        lines.append(
            f"• {escape(item.get('nombreVeterinario') or 'N/A')}: {item.get('totalAtenciones') or 0}"
        )
    return "\n".join(lines)


@admin_router.callback_query(lambda c: c.data.startswith("adm_report_") and c.data != "adm_report_range")
async def show_report(callback: CallbackQuery, auth: AuthContext, api: ClinicApi):
    kind = callback.data[len("adm_report_"):]
    start, end = get_report_range(auth)

    try:
        if kind == "appointments":
            title = "📅 Reporte de Citas"
            body = format_appointments_report(await api.reports.appointments(start, end))
        elif kind == "vets":
            title = "🩺 Reporte de Veterinarios"
            body = format_veterinarians_report(await api.reports.veterinarians(start, end))
        elif kind == "inventory":
            title = "📦 Reporte de Inventario"
            body = format_inventory_report(await api.reports.inventory())
        else:
            await callback.answer("Reporte desconocido", show_alert=True)
            return
    except ApiError as e:
        logger.warning(f"Report {kind} failed: {e}")
        await respond(
            callback,
            f"❌ Error al generar el reporte: {describe_error(e)}",
            reply_markup=get_reports_keyboard(),
        )
        return

    period = "" if kind == "inventory" else f"{display_date(start)} - {display_date(end)}\n\n"
    await respond(callback, f"<b>{title}</b>\n{period}{body}", reply_markup=get_reports_keyboard())


@admin_router.callback_query(lambda c: c.data == "adm_report_range")
async def ask_report_range(callback: CallbackQuery, state: FSMContext):
    await state.set_state(ReportStates.waiting_for_range)
    await respond(
        callback,
        "📆 Escribe el rango como <code>AAAA-MM-DD AAAA-MM-DD</code>:",
        reply_markup=get_back_to_menu_keyboard(),
    )


@admin_router.message(StateFilter(ReportStates.waiting_for_range))
async def handle_report_range(message: Message, state: FSMContext, auth: AuthContext):
    try:
        start, end = parse_range(message.text or "")
    except ValueError as e:
        await message.answer(f"❌ {escape(str(e))}. Intenta de nuevo:")
        return

    await state.set_state(None)
    save_report_range(auth, start, end)
    await message.answer(
        f"📈 <b>Reportes</b>\n\nRango: {display_date(start)} - {display_date(end)}",
        reply_markup=get_reports_keyboard(),
        parse_mode="HTML",
    )


def register_admin_handlers(dp) -> None:
    """Register admin handlers with dispatcher."""
    dp.include_router(admin_router)
