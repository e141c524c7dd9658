"""
Middlewares that attach the user's session to every update and guard role routers.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional

from aiogram import BaseMiddleware
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message, TelegramObject

from api import ClinicApi, create_api
from auth import AuthContext, SessionStorage
from bot.keyboards import get_login_keyboard
from config import settings
from models.user import Role

logger = logging.getLogger(__name__)

ApiFactory = Callable[[AuthContext], ClinicApi]


def default_api_factory(auth: AuthContext) -> ClinicApi:
    return create_api(
        settings.api_base_url,
        token_provider=auth.token_provider,
        on_unauthorized=auth.handle_unauthorized,
        timeout=settings.api_timeout_seconds,
    )


class SessionMiddleware(BaseMiddleware):
    """
    Hydrate an AuthContext and open a ClinicApi for the update's user.

    Handlers receive them as the `auth` and `api` arguments. The API client
    is closed once the update has been processed.
    """

    def __init__(self, storage: SessionStorage, api_factory: Optional[ApiFactory] = None):
        self.storage = storage
        self.api_factory = api_factory or default_api_factory

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        user = data.get("event_from_user")
        if user is None:
            return await handler(event, data)

        auth = AuthContext(user.id, self.storage).hydrate()
        api = self.api_factory(auth)
        data["auth"] = auth
        data["api"] = api
        try:
            return await handler(event, data)
        finally:
            await api.close()


async def redirect_to_login(
    event: TelegramObject,
    state: Optional[FSMContext],
    text: str = "🔒 Tu sesión no está activa.\n\nInicia sesión para continuar.",
) -> None:
    """Drop any conversation state and ask the user to log in."""
    if state is not None:
        await state.clear()

    if isinstance(event, CallbackQuery):
        await event.answer("Inicia sesión para continuar", show_alert=True)
        if event.message:
            await event.message.answer(text, reply_markup=get_login_keyboard())
    elif isinstance(event, Message):
        await event.answer(text, reply_markup=get_login_keyboard())


class RoleGuardMiddleware(BaseMiddleware):
    """
    Let an event through only for authenticated users holding one of the roles.

    Registered as inner middleware, so it runs only for events a handler of
    the guarded router has already matched.
    """

    def __init__(self, allowed_roles: Iterable[Role]):
        self.allowed_roles = tuple(allowed_roles)

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        auth: Optional[AuthContext] = data.get("auth")

        if auth is None or not auth.is_authenticated():
            await redirect_to_login(event, data.get("state"))
            return None

        if self.allowed_roles and not auth.has_any_role(self.allowed_roles):
            logger.warning(
                f"User {auth.user_id} ({auth.user.rol}) denied access to "
                f"{'/'.join(r.value for r in self.allowed_roles)} pages"
            )
            if isinstance(event, CallbackQuery):
                await event.answer("❌ No tienes permiso para esta sección", show_alert=True)
            elif isinstance(event, Message):
                await event.answer("❌ No tienes permiso para esta sección")
            return None

        return await handler(event, data)


def guard_router(router, *roles: Role) -> None:
    """Install a RoleGuardMiddleware on the router's message and callback observers."""
    guard = RoleGuardMiddleware(roles)
    router.message.middleware(guard)
    router.callback_query.middleware(guard)
