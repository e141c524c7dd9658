"""
Veterinary clinic Telegram bot.

Run with `python bot.py`. Polling by default; webhook mode when
BOT_WEBHOOK_URL is set.
"""

import asyncio
import logging
import sys

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.webhook.aiohttp_server import SimpleRequestHandler, setup_application
from aiohttp import web

from auth import SessionStorage
from bot import register_handlers
from bot.admin_handlers import register_admin_handlers
from bot.middlewares import SessionMiddleware
from config import settings
from scheduler import setup_scheduler, shutdown_scheduler
from utils.logging_config import setup_logging

WEBHOOK_PATH = "/webhook/telegram"

setup_logging(log_level=settings.log_level, log_file="bot.log", log_dir="logs")
logger = logging.getLogger("vet_clinic_bot")


def build_dispatcher(storage: SessionStorage) -> Dispatcher:
    """Dispatcher with session middleware and every router registered."""
    dp = Dispatcher(storage=MemoryStorage())
    dp.update.outer_middleware(SessionMiddleware(storage))
    register_handlers(dp)
    register_admin_handlers(dp)
    return dp


async def run_webhook(bot: Bot, dp: Dispatcher) -> None:
    webhook_url = f"{settings.bot_webhook_url.rstrip('/')}{WEBHOOK_PATH}"

    app = web.Application()
    SimpleRequestHandler(dispatcher=dp, bot=bot).register(app, path=WEBHOOK_PATH)
    setup_application(app, dp, bot=bot)

    await bot.set_webhook(url=webhook_url, allowed_updates=dp.resolve_used_update_types())
    logger.info(f"Webhook configured: {webhook_url}")

    try:
        logger.info(f"Webhook server listening on {settings.host}:{settings.port}")
        await web._run_app(app, host=settings.host, port=settings.port)
    finally:
        await bot.delete_webhook()
        logger.info("Webhook removed")


async def run_polling(bot: Bot, dp: Dispatcher) -> None:
    logger.info("Polling for updates. Press Ctrl+C to stop.")
    await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())


async def main() -> None:
    try:
        settings.validate_all_required()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    bot = Bot(
        token=settings.bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    dp = build_dispatcher(SessionStorage(settings.session_path))
    logger.info(
        f"Starting in {settings.environment} mode against {settings.api_base_url}, "
        f"sessions in {settings.session_path}"
    )

    if settings.reminders_enabled:
        setup_scheduler(bot=bot)

    try:
        if settings.bot_webhook_url:
            await run_webhook(bot, dp)
        else:
            await run_polling(bot, dp)
    except asyncio.CancelledError:
        logger.info("Bot cancelled")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        raise
    finally:
        if settings.reminders_enabled:
            shutdown_scheduler()
        await bot.session.close()
        logger.info("Bot shutdown complete")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
