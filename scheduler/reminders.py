"""
Daily owner reminders about tomorrow's appointments, run by APScheduler.

Jobs live in Redis when REDIS_URL is set so several bot processes share them.
"""

import logging
from datetime import date, timedelta
from html import escape
from typing import List, Optional

from aiogram import Bot
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

# Needs the redis extra
try:
    from apscheduler.jobstores.redis import RedisJobStore

    REDIS_AVAILABLE = True
except ImportError:
    REDIS_AVAILABLE = False
    RedisJobStore = None

from api import create_api
from auth import AuthContext, SessionStorage
from config import settings
from models.appointment import Appointment
from models.user import Role
from utils.datetime_utils import display_date, display_time, local_today
from utils.exceptions import ApiError, SessionExpiredError

logger = logging.getLogger(__name__)


def _create_scheduler() -> AsyncIOScheduler:
    """
    Redis-backed scheduler when REDIS_URL is set and redis is installed,
    in-memory otherwise. Both run in the clinic timezone.
    """
    redis_url = settings.redis_url

    if redis_url and REDIS_AVAILABLE and RedisJobStore:
        from urllib.parse import urlparse

        parsed = urlparse(redis_url)
        host = parsed.hostname or "localhost"
        port = parsed.port or 6379
        db = int(parsed.path.lstrip("/")) if parsed.path.lstrip("/") else 0

        jobstores = {
            "default": RedisJobStore(host=host, port=port, db=db, password=parsed.password)
        }
        logger.info(f"Scheduler jobs stored in Redis at {host}:{port}/{db}")
        return AsyncIOScheduler(jobstores=jobstores, timezone=settings.timezone)

    if redis_url and not REDIS_AVAILABLE:
        logger.warning(
            "REDIS_URL is set but the redis extra is not installed, keeping jobs in memory"
        )
    logger.info("Scheduler jobs kept in memory")
    return AsyncIOScheduler(timezone=settings.timezone)


scheduler = _create_scheduler()

# Set by setup_scheduler; reminders are skipped until then
_bot_instance: Optional[Bot] = None


def set_bot_instance(bot: Bot) -> None:
    """Set the bot instance for sending reminders."""
    global _bot_instance
    _bot_instance = bot
    logger.info("Reminder bot registered")


def appointments_for_day(
    appointments: List[Appointment], pet_ids: set[int], day: date
) -> List[Appointment]:
    """Active appointments of the given pets on one day, earliest first."""
    selected = [
        a for a in appointments if a.pet_id in pet_ids and a.day == day and a.is_active
    ]
    selected.sort(key=lambda a: a.hora_cita or "")
    return selected


def reminder_text(appointments: List[Appointment]) -> str:
    lines = ["🔔 <b>Recordatorio</b>: mañana tienes cita en la clínica.\n"]
    for appointment in appointments:
        line = (
            f"🐾 {escape(appointment.pet_name)} · {display_date(appointment.fecha_cita)} "
            f"{display_time(appointment.hora_cita)} · {escape(appointment.service_name)}"
        )
        if appointment.veterinario:
            line += f" · {escape(appointment.veterinario.display_name)}"
        lines.append(line)
    lines.append("\n¡Te esperamos! 🩺")
    return "\n".join(lines)


async def send_reminder(user_id: int, appointments: List[Appointment]) -> bool:
    """
    Send one reminder message listing the user's appointments.

    Returns:
        Whether Telegram accepted the message
    """
    if not _bot_instance:
        logger.error("No bot registered, reminder not sent")
        return False

    try:
        await _bot_instance.send_message(user_id, reminder_text(appointments), parse_mode="HTML")
    except Exception as e:
        logger.error(f"Failed to send reminder to user {user_id}: {e}", exc_info=True)
        return False

    logger.info(f"Reminder sent to user {user_id} for {len(appointments)} appointment(s)")
    return True


async def tomorrows_appointments(auth: AuthContext, day: date) -> List[Appointment]:
    """Load the owner's appointments on `day` with the owner's own session."""
    api = create_api(
        settings.api_base_url,
        token_provider=auth.token_provider,
        on_unauthorized=auth.handle_unauthorized,
        timeout=settings.api_timeout_seconds,
    )
    try:
        profile = await api.owners.get_or_create_my_profile()
        if profile is None:
            return []
        pets = await api.pets.get_by_owner(profile.id_propietario)
        if not pets:
            return []
        appointments = await api.appointments.get_all()
    finally:
        await api.close()

    return appointments_for_day(appointments, {p.id_mascota for p in pets}, day)


async def check_and_send_reminders(storage: Optional[SessionStorage] = None) -> None:
    """Remind every logged-in owner about tomorrow's appointments."""
    storage = storage or SessionStorage(settings.session_path)
    tomorrow = local_today(settings.timezone) + timedelta(days=1)

    sent_count = 0
    failed_count = 0

    for user_id in storage.user_ids():
        auth = AuthContext(user_id, storage).hydrate()
        if not auth.is_authenticated() or not auth.has_role(Role.PROPIETARIO):
            continue

        try:
            appointments = await tomorrows_appointments(auth, tomorrow)
        except SessionExpiredError:
            logger.info(f"Session of user {user_id} expired, skipping reminder")
            continue
        except ApiError as e:
            logger.warning(f"Could not load appointments for user {user_id}: {e}")
            failed_count += 1
            continue

        if not appointments:
            continue

        if await send_reminder(user_id, appointments):
            sent_count += 1
        else:
            failed_count += 1

    logger.info(f"Reminder processing complete: {sent_count} sent, {failed_count} failed")


def setup_scheduler(bot: Optional[Bot] = None) -> None:
    """Register the daily reminder job and start the scheduler.

    Args:
        bot: Bot used to send reminders; may be provided later with set_bot_instance()
    """
    if bot:
        set_bot_instance(bot)

    scheduler.add_job(
        check_and_send_reminders,
        trigger=CronTrigger(hour=settings.reminder_hour, minute=0, timezone=settings.timezone),
        id="owner_reminders",
        name="Remind owners about tomorrow's appointments",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(f"Scheduler started, reminders daily at {settings.reminder_hour:02d}:00")


def shutdown_scheduler() -> None:
    """Stop the scheduler if it was started."""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")
