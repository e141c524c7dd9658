"""
Inventory pages for assistants and administrators.
"""

import asyncio
import logging

from aiogram import Router
from aiogram.types import CallbackQuery

from api import ClinicApi
from bot.keyboards import get_back_to_menu_keyboard
from bot.middlewares import guard_router
from bot.views import inventory_block, respond
from models.user import Role
from utils.error_messages import describe_error
from utils.exceptions import ApiError

logger = logging.getLogger(__name__)

router = Router()
guard_router(router, Role.AUXILIAR, Role.ADMIN)


@router.callback_query(lambda c: c.data == "inv_all")
async def show_inventory(callback: CallbackQuery, api: ClinicApi):
    """Full stock list with a low-stock summary on top."""
    try:
        items, low = await asyncio.gather(
            api.inventory.get_all(), api.inventory.get_low_stock()
        )
    except ApiError as e:
        await respond(
            callback,
            f"❌ Error al cargar inventario: {describe_error(e)}",
            reply_markup=get_back_to_menu_keyboard(),
        )
        return

    text = (
        f"📦 <b>Inventario</b> ({len(items)} insumos)\n"
        f"⚠️ Stock bajo: {len(low)}\n\n"
        + inventory_block(items, "No hay insumos en inventario.")
    )
    await respond(callback, text, reply_markup=get_back_to_menu_keyboard())


@router.callback_query(lambda c: c.data == "inv_low")
async def show_low_stock(callback: CallbackQuery, api: ClinicApi):
    """Low-stock alerts."""
    try:
        low = await api.inventory.get_low_stock()
    except ApiError as e:
        await respond(
            callback,
            f"❌ Error al cargar alertas: {describe_error(e)}",
            reply_markup=get_back_to_menu_keyboard(),
        )
        return

    if low:
        logger.info(f"{len(low)} supplies below minimum stock")
    text = "⚠️ <b>Alertas de stock bajo</b>\n\n" + inventory_block(
        low, "✅ Todos los insumos tienen stock suficiente."
    )
    await respond(callback, text, reply_markup=get_back_to_menu_keyboard())
