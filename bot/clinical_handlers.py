"""
Clinical record pages shared by veterinarians and assistants.
"""

import asyncio
import logging
from typing import List

from aiogram import Router
from aiogram.types import CallbackQuery

from api import ClinicApi
from auth import AuthContext
from bot.keyboards import get_back_to_menu_keyboard, get_records_keyboard
from bot.middlewares import guard_router
from bot.vet_handlers import load_vet_appointments
from bot.views import record_text, respond
from models.clinical import ClinicalRecord
from models.user import Role
from utils.error_messages import describe_error
from utils.exceptions import ApiError

logger = logging.getLogger(__name__)

router = Router()
guard_router(router, Role.VETERINARIO, Role.AUXILIAR)


async def _record_of_pet(api: ClinicApi, pet_id: int):
    try:
        return await api.clinical_records.get_by_pet(pet_id)
    except ApiError as e:
        # A pet may not have a clinical record yet
        logger.debug(f"No clinical record for pet {pet_id}: {e}")
        return None


async def load_records_for(auth: AuthContext, api: ClinicApi) -> List[ClinicalRecord]:
    """
    Records visible on the page.

    Veterinarians see the records of pets they have appointments with;
    assistants see every record.
    """
    if not auth.has_role(Role.VETERINARIO):
        return await api.clinical_records.get_all()

    appointments = await load_vet_appointments(api, auth.user)
    pet_ids = list(dict.fromkeys(a.pet_id for a in appointments if a.pet_id))
    records = await asyncio.gather(*(_record_of_pet(api, pet_id) for pet_id in pet_ids))

    unique = {}
    for record in records:
        if record is not None:
            unique.setdefault(record.id_historia_clinica, record)
    return list(unique.values())


@router.callback_query(lambda c: c.data == "records")
async def show_records(callback: CallbackQuery, auth: AuthContext, api: ClinicApi):
    try:
        records = await load_records_for(auth, api)
    except ApiError as e:
        await respond(
            callback,
            f"❌ Error al cargar las historias clínicas: {describe_error(e)}",
            reply_markup=get_back_to_menu_keyboard(),
        )
        return

    text = (
        f"📋 <b>Historias Clínicas</b> ({len(records)})\n\nSelecciona una historia:"
        if records
        else "📋 <b>Historias Clínicas</b>\n\nNo hay historias clínicas."
    )
    await respond(callback, text, reply_markup=get_records_keyboard(records, "record"))


@router.callback_query(lambda c: c.data.startswith("record_"))
async def show_record(callback: CallbackQuery, api: ClinicApi):
    record_id = int(callback.data.rsplit("_", 1)[1])
    try:
        record = await api.clinical_records.get_by_id(record_id)
        evolutions = await api.evolutions.get_by_record(record_id) if record else []
    except ApiError as e:
        await respond(
            callback, f"❌ {describe_error(e)}", reply_markup=get_back_to_menu_keyboard()
        )
        return

    if record is None:
        await callback.answer("Historia clínica no encontrada", show_alert=True)
        return

    await respond(callback, record_text(record, evolutions), reply_markup=get_back_to_menu_keyboard())
