"""
Core bot handlers: start, menus, login, logout, registration and password reset.
Role pages live in their own routers and are included by register_handlers().
"""

import logging
from typing import Optional, Union

from aiogram import Router
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command, ExceptionTypeFilter, StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, ErrorEvent, Message

from api import ClinicApi
from auth import AuthContext
from auth.accounts import register_owner, reset_password
from bot.booking_handlers import router as booking_router
from bot.clinical_handlers import router as clinical_router
from bot.inventory_handlers import router as inventory_router
from bot.keyboards import get_back_to_menu_keyboard, get_login_keyboard, get_skip_keyboard
from bot.middlewares import redirect_to_login
from bot.owner_handlers import router as owner_router
from bot.reception_handlers import router as reception_router
from bot.states import LoginStates, RegisterStates, ResetPasswordStates
from bot.vet_handlers import router as vet_router
from bot.views import respond, show_main_menu
from models.user import LoginRequest
from utils.error_messages import describe_error
from utils.exceptions import ApiError, FormValidationError, SessionExpiredError
from utils.validation import (
    sanitize_text,
    validate_document,
    validate_email,
    validate_new_password,
    validate_phone,
)

logger = logging.getLogger(__name__)

router = Router()


# ========== Start Command & Main Menu ==========


@router.message(Command("start"))
async def cmd_start(message: Message, state: FSMContext, auth: AuthContext):
    """Handle /start command."""
    await state.clear()
    await show_main_menu(message, auth)


@router.message(Command("menu"))
async def cmd_menu(message: Message, state: FSMContext, auth: AuthContext):
    await state.clear()
    await show_main_menu(message, auth)


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext, auth: AuthContext):
    """Abort any form or wizard in progress."""
    current = await state.get_state()
    await state.clear()
    if current:
        await message.answer("❌ Operación cancelada.")
    await show_main_menu(message, auth)


@router.callback_query(lambda c: c.data == "main_menu")
async def cb_main_menu(callback: CallbackQuery, state: FSMContext, auth: AuthContext):
    """Show main menu."""
    await state.clear()
    await show_main_menu(callback, auth)


# ========== Login ==========


async def start_login(event: Union[Message, CallbackQuery], state: FSMContext, auth: AuthContext):
    if auth.is_authenticated():
        await show_main_menu(event, auth)
        return

    await state.clear()
    await state.set_state(LoginStates.waiting_for_username)
    await respond(event, "🔑 <b>Iniciar sesión</b>\n\nEscribe tu usuario:")


@router.message(Command("login"))
async def cmd_login(message: Message, state: FSMContext, auth: AuthContext):
    await start_login(message, state, auth)


@router.callback_query(lambda c: c.data == "login")
async def cb_login(callback: CallbackQuery, state: FSMContext, auth: AuthContext):
    await start_login(callback, state, auth)


@router.message(StateFilter(LoginStates.waiting_for_username))
async def handle_login_username(message: Message, state: FSMContext):
    username = sanitize_text(message.text or "", 100)
    if not username:
        await message.answer("Escribe tu usuario:")
        return

    await state.update_data(username=username)
    await state.set_state(LoginStates.waiting_for_password)
    await message.answer("Escribe tu contraseña:")


@router.message(StateFilter(LoginStates.waiting_for_password))
async def handle_login_password(
    message: Message, state: FSMContext, auth: AuthContext, api: ClinicApi
):
    password = message.text or ""
    await _delete_secret(message)

    data = await state.get_data()
    await state.clear()

    result = await auth.login(
        api.auth, LoginRequest(username=data.get("username", ""), password=password)
    )
    if not result.success:
        await message.answer(f"❌ {result.error}", reply_markup=get_login_keyboard())
        return

    await show_main_menu(message, auth)


async def _delete_secret(message: Message) -> None:
    """Remove a message containing a password from the chat."""
    try:
        await message.delete()
    except TelegramBadRequest as e:
        logger.debug(f"Could not delete password message: {e}")


# ========== Logout ==========


@router.message(Command("logout"))
async def cmd_logout(message: Message, state: FSMContext, auth: AuthContext):
    await state.clear()
    auth.logout()
    await message.answer("👋 Sesión cerrada.", reply_markup=get_login_keyboard())


@router.callback_query(lambda c: c.data == "logout")
async def cb_logout(callback: CallbackQuery, state: FSMContext, auth: AuthContext):
    await state.clear()
    auth.logout()
    await respond(callback, "👋 Sesión cerrada.", reply_markup=get_login_keyboard())


# ========== Password Reset ==========


async def start_reset(event: Union[Message, CallbackQuery], state: FSMContext):
    await state.clear()
    await state.set_state(ResetPasswordStates.waiting_for_username)
    await respond(
        event,
        "🔁 <b>Restablecer contraseña</b>\n\nEscribe tu usuario:",
        reply_markup=get_back_to_menu_keyboard(),
    )


@router.message(Command("reset"))
async def cmd_reset(message: Message, state: FSMContext):
    await start_reset(message, state)


@router.callback_query(lambda c: c.data == "reset_password")
async def cb_reset(callback: CallbackQuery, state: FSMContext):
    await start_reset(callback, state)


@router.message(StateFilter(ResetPasswordStates.waiting_for_username))
async def handle_reset_username(message: Message, state: FSMContext):
    username = sanitize_text(message.text or "", 100)
    if not username:
        await message.answer("Escribe tu usuario:")
        return

    await state.update_data(username=username)
    await state.set_state(ResetPasswordStates.waiting_for_password)
    await message.answer("Escribe la nueva contraseña (mínimo 6 caracteres):")


@router.message(StateFilter(ResetPasswordStates.waiting_for_password))
async def handle_reset_password(message: Message, state: FSMContext):
    await _delete_secret(message)
    await state.update_data(new_password=message.text or "")
    await state.set_state(ResetPasswordStates.waiting_for_confirmation)
    await message.answer("Confirma la nueva contraseña:")


@router.message(StateFilter(ResetPasswordStates.waiting_for_confirmation))
async def handle_reset_confirmation(message: Message, state: FSMContext, api: ClinicApi):
    confirmation = message.text or ""
    await _delete_secret(message)
    data = await state.get_data()

    try:
        await reset_password(
            api.auth, data.get("username", ""), data.get("new_password", ""), confirmation
        )
    except FormValidationError as e:
        await state.set_state(ResetPasswordStates.waiting_for_password)
        await message.answer(f"❌ {e}\n\nEscribe la nueva contraseña:")
        return
    except ApiError as e:
        await state.clear()
        await message.answer(
            f"❌ {describe_error(e)}", reply_markup=get_login_keyboard()
        )
        return

    await state.clear()
    await message.answer(
        "✅ Contraseña actualizada. Ya puedes iniciar sesión.",
        reply_markup=get_login_keyboard(),
    )


# ========== Owner Registration ==========

REGISTER_PROMPTS = {
    RegisterStates.waiting_for_username: "Elige un nombre de usuario:",
    RegisterStates.waiting_for_email: "Correo electrónico:",
    RegisterStates.waiting_for_password: "Contraseña (mínimo 6 caracteres):",
    RegisterStates.waiting_for_confirmation: "Confirma la contraseña:",
    RegisterStates.waiting_for_document: "Número de documento (CC):",
    RegisterStates.waiting_for_first_names: "Nombres:",
    RegisterStates.waiting_for_last_names: "Apellidos:",
    RegisterStates.waiting_for_phone: "Teléfono (opcional):",
    RegisterStates.waiting_for_address: "Dirección (opcional):",
}


async def start_register(event: Union[Message, CallbackQuery], state: FSMContext):
    await state.clear()
    await state.set_state(RegisterStates.waiting_for_username)
    await respond(
        event,
        "📝 <b>Registro de propietario</b>\n\n"
        + REGISTER_PROMPTS[RegisterStates.waiting_for_username],
        reply_markup=get_back_to_menu_keyboard(),
    )


@router.message(Command("register"))
async def cmd_register(message: Message, state: FSMContext):
    await start_register(message, state)


@router.callback_query(lambda c: c.data == "register")
async def cb_register(callback: CallbackQuery, state: FSMContext):
    await start_register(callback, state)


@router.message(StateFilter(RegisterStates.waiting_for_username))
async def handle_register_username(message: Message, state: FSMContext):
    username = sanitize_text(message.text or "", 100)
    if not username:
        await message.answer(REGISTER_PROMPTS[RegisterStates.waiting_for_username])
        return
    await state.update_data(username=username)
    await _ask(message, state, RegisterStates.waiting_for_email)


@router.message(StateFilter(RegisterStates.waiting_for_email))
async def handle_register_email(message: Message, state: FSMContext):
    email = sanitize_text(message.text or "", 255)
    if not validate_email(email):
        await message.answer("❌ El correo electrónico no es válido.\n\nCorreo electrónico:")
        return
    await state.update_data(email=email)
    await _ask(message, state, RegisterStates.waiting_for_password)


@router.message(StateFilter(RegisterStates.waiting_for_password))
async def handle_register_password(message: Message, state: FSMContext):
    await _delete_secret(message)
    await state.update_data(password=message.text or "")
    await _ask(message, state, RegisterStates.waiting_for_confirmation)


@router.message(StateFilter(RegisterStates.waiting_for_confirmation))
async def handle_register_confirmation(message: Message, state: FSMContext):
    confirmation = message.text or ""
    await _delete_secret(message)
    data = await state.get_data()

    try:
        validate_new_password(data.get("password", ""), confirmation)
    except FormValidationError as e:
        await state.set_state(RegisterStates.waiting_for_password)
        await message.answer(f"❌ {e}\n\n" + REGISTER_PROMPTS[RegisterStates.waiting_for_password])
        return

    await state.update_data(confirmation=confirmation)
    await _ask(message, state, RegisterStates.waiting_for_document)


@router.message(StateFilter(RegisterStates.waiting_for_document))
async def handle_register_document(message: Message, state: FSMContext):
    document = sanitize_text(message.text or "", 30)
    if not validate_document(document):
        await message.answer(
            "❌ Documento inválido.\n\n" + REGISTER_PROMPTS[RegisterStates.waiting_for_document]
        )
        return
    await state.update_data(documento=document)
    await _ask(message, state, RegisterStates.waiting_for_first_names)


@router.message(StateFilter(RegisterStates.waiting_for_first_names))
async def handle_register_first_names(message: Message, state: FSMContext):
    names = sanitize_text(message.text or "", 100)
    if not names:
        await message.answer(REGISTER_PROMPTS[RegisterStates.waiting_for_first_names])
        return
    await state.update_data(nombres=names)
    await _ask(message, state, RegisterStates.waiting_for_last_names)


@router.message(StateFilter(RegisterStates.waiting_for_last_names))
async def handle_register_last_names(message: Message, state: FSMContext):
    names = sanitize_text(message.text or "", 100)
    if not names:
        await message.answer(REGISTER_PROMPTS[RegisterStates.waiting_for_last_names])
        return
    await state.update_data(apellidos=names)
    await _ask(message, state, RegisterStates.waiting_for_phone, skip="reg_skip_phone")


@router.message(StateFilter(RegisterStates.waiting_for_phone))
async def handle_register_phone(message: Message, state: FSMContext):
    phone = sanitize_text(message.text or "", 30)
    if phone and not validate_phone(phone):
        await message.answer(
            "❌ Teléfono inválido.\n\n" + REGISTER_PROMPTS[RegisterStates.waiting_for_phone],
            reply_markup=get_skip_keyboard("reg_skip_phone"),
        )
        return
    await state.update_data(telefono=phone or None)
    await _ask(message, state, RegisterStates.waiting_for_address, skip="reg_skip_address")


@router.callback_query(
    lambda c: c.data == "reg_skip_phone", StateFilter(RegisterStates.waiting_for_phone)
)
async def cb_register_skip_phone(callback: CallbackQuery, state: FSMContext):
    await state.update_data(telefono=None)
    await state.set_state(RegisterStates.waiting_for_address)
    await respond(
        callback,
        REGISTER_PROMPTS[RegisterStates.waiting_for_address],
        reply_markup=get_skip_keyboard("reg_skip_address"),
    )


@router.message(StateFilter(RegisterStates.waiting_for_address))
async def handle_register_address(message: Message, state: FSMContext, api: ClinicApi):
    await state.update_data(direccion=sanitize_text(message.text or "", 255) or None)
    await _finish_registration(message, state, api)


@router.callback_query(
    lambda c: c.data == "reg_skip_address", StateFilter(RegisterStates.waiting_for_address)
)
async def cb_register_skip_address(callback: CallbackQuery, state: FSMContext, api: ClinicApi):
    await state.update_data(direccion=None)
    await callback.answer()
    await _finish_registration(callback.message, state, api)


async def _ask(message: Message, state: FSMContext, next_state, skip: Optional[str] = None):
    await state.set_state(next_state)
    await message.answer(
        REGISTER_PROMPTS[next_state],
        reply_markup=get_skip_keyboard(skip) if skip else None,
    )


async def _finish_registration(message: Message, state: FSMContext, api: ClinicApi):
    data = await state.get_data()
    await state.clear()

    form = {
        key: data.get(key)
        for key in (
            "username",
            "email",
            "password",
            "documento",
            "nombres",
            "apellidos",
            "telefono",
            "direccion",
        )
    }
    try:
        await register_owner(api.auth, form, data.get("confirmation", ""))
    except FormValidationError as e:
        await message.answer(f"❌ {e}", reply_markup=get_login_keyboard())
        return
    except ApiError as e:
        await message.answer(
            f"❌ Error al registrar: {describe_error(e)}", reply_markup=get_login_keyboard()
        )
        return

    await message.answer(
        "✅ Registro exitoso. Ya puedes iniciar sesión.",
        reply_markup=get_login_keyboard(),
    )


# ========== Errors ==========


@router.errors(ExceptionTypeFilter(SessionExpiredError))
async def handle_session_expired(event: ErrorEvent, state: Optional[FSMContext] = None):
    """Any 401 ends the session: the storage was already cleared by the API client."""
    update = event.update
    target = update.callback_query or update.message
    logger.info(f"Session expired during update {update.update_id}")
    if target is not None:
        await redirect_to_login(target, state, text=f"⏳ {event.exception}")
    return True


def register_handlers(dp) -> None:
    """Register all handlers with dispatcher."""
    dp.include_router(router)
    dp.include_router(booking_router)
    dp.include_router(owner_router)
    dp.include_router(vet_router)
    dp.include_router(reception_router)
    dp.include_router(clinical_router)
    dp.include_router(inventory_router)
