"""
Pet owner (propietario) pages: dashboard, pets and vaccinations.
"""

import asyncio
import logging
from html import escape
from typing import List, Optional

from aiogram import Router
from aiogram.types import CallbackQuery

from api import ClinicApi
from auth import AuthContext
from bot.keyboards import get_back_to_menu_keyboard
from bot.middlewares import guard_router
from bot.views import appointments_block, pet_line, respond, vaccination_line
from models.appointment import Appointment, AppointmentStatus
from models.clinical import Vaccination
from models.owner import Owner
from models.pet import Pet
from models.user import Role
from utils.constants import UPCOMING_DISPLAY_LIMIT
from utils.error_messages import describe_error
from utils.exceptions import ApiError

logger = logging.getLogger(__name__)

router = Router()
guard_router(router, Role.PROPIETARIO)


async def load_owner_pets(api: ClinicApi) -> tuple[Optional[Owner], List[Pet]]:
    """Resolve the logged-in owner's profile and pets."""
    profile = await api.owners.get_or_create_my_profile()
    if profile is None:
        return None, []
    return profile, await api.pets.get_by_owner(profile.id_propietario)


def upcoming_appointments(appointments: List[Appointment], pets: List[Pet]) -> List[Appointment]:
    """Scheduled appointments of the given pets, soonest first."""
    pet_ids = {pet.id_mascota for pet in pets}
    upcoming = [
        a
        for a in appointments
        if a.pet_id in pet_ids and a.estado == AppointmentStatus.PROGRAMADA.value
    ]
    upcoming.sort(key=lambda a: (a.fecha_cita or "", a.hora_cita or ""))
    return upcoming


@router.callback_query(lambda c: c.data == "own_dashboard")
async def show_dashboard(callback: CallbackQuery, auth: AuthContext, api: ClinicApi):
    """Owner dashboard: pet count and upcoming appointments."""
    try:
        profile, pets = await load_owner_pets(api)
        appointments = await api.appointments.get_all() if pets else []
    except ApiError as e:
        logger.warning(f"Owner dashboard failed for user {auth.user_id}: {e}")
        await respond(
            callback, f"❌ {describe_error(e)}", reply_markup=get_back_to_menu_keyboard()
        )
        return

    upcoming = upcoming_appointments(appointments, pets)
    text = (
        f"📊 <b>Bienvenido, {escape(auth.user.display_name)}</b>\n\n"
        f"🐾 Mascotas registradas: {len(pets)}\n"
        f"📅 Citas programadas: {len(upcoming)}\n\n"
        "<b>Próximas citas:</b>\n"
        + appointments_block(upcoming[:UPCOMING_DISPLAY_LIMIT], "No tienes citas programadas.")
    )
    await respond(callback, text, reply_markup=get_back_to_menu_keyboard())


@router.callback_query(lambda c: c.data == "own_pets")
async def show_pets(callback: CallbackQuery, api: ClinicApi):
    try:
        _, pets = await load_owner_pets(api)
    except ApiError as e:
        await respond(
            callback, f"❌ {describe_error(e)}", reply_markup=get_back_to_menu_keyboard()
        )
        return

    if not pets:
        text = "🐾 <b>Mis Mascotas</b>\n\nNo tienes mascotas registradas."
    else:
        text = "🐾 <b>Mis Mascotas</b>\n\n" + "\n".join(pet_line(p) for p in pets)
    await respond(callback, text, reply_markup=get_back_to_menu_keyboard())


async def load_pet_vaccinations(api: ClinicApi, pet: Pet) -> List[Vaccination]:
    """Vaccinations of a pet, read from its clinical record. No record means none."""
    try:
        record = await api.clinical_records.get_by_pet(pet.id_mascota)
    except ApiError as e:
        if e.status_code == 404:
            return []
        raise
    if record is None:
        return []
    return await api.vaccinations.get_by_record(record.id_historia_clinica)


@router.callback_query(lambda c: c.data == "own_vaccinations")
async def show_vaccinations(callback: CallbackQuery, api: ClinicApi):
    try:
        _, pets = await load_owner_pets(api)
        vaccinations = await asyncio.gather(*(load_pet_vaccinations(api, p) for p in pets))
    except ApiError as e:
        await respond(
            callback, f"❌ {describe_error(e)}", reply_markup=get_back_to_menu_keyboard()
        )
        return

    lines = ["💉 <b>Vacunaciones</b>"]
    if not pets:
        lines.append("\nNo tienes mascotas registradas.")
    for pet, pet_vaccinations in zip(pets, vaccinations):
        lines.append(f"\n🐾 <b>{escape(pet.nombre)}</b>")
        if pet_vaccinations:
            lines.extend(vaccination_line(v) for v in pet_vaccinations)
        else:
            lines.append("Sin vacunas registradas.")

    await respond(callback, "\n".join(lines), reply_markup=get_back_to_menu_keyboard())
