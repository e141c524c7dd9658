"""
Settings for the veterinary clinic bot, read from the environment and .env.
"""

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# .env next to this file wins over the working directory
env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Telegram Bot
    bot_token: str

    # Clinic REST API
    api_base_url: str = "http://localhost:8080/api"
    api_timeout_seconds: float = 30.0

    # Session storage (one JSON file per Telegram user)
    session_dir: str = "sessions"

    # Booking wizard
    booking_reset_delay_seconds: float = 5.0
    booking_date_options_days: int = 14  # Date buttons offered in the wizard

    # Reminders
    timezone: str = "America/Bogota"
    reminders_enabled: bool = True
    reminder_hour: int = 18  # Local hour to remind owners about tomorrow

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    environment: str = "development"  # development, staging, production

    # Webhook Configuration
    bot_webhook_url: Optional[str] = (
        None  # Full webhook URL for bot (e.g., https://yourdomain.com/webhook/telegram)
    )

    # Redis Configuration (for APScheduler cluster support)
    redis_url: Optional[str] = None

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def session_path(self) -> Path:
        return Path(self.session_dir)

    def validate_all_required(self) -> None:
        """
        Check the settings the bot cannot start without.

        Raises:
            ValueError: Listing every missing or malformed setting
        """
        problems = []

        if not self.bot_token or self.bot_token.lower().startswith("your_"):
            problems.append("BOT_TOKEN is not set")
        if not self.api_base_url.startswith(("http://", "https://")):
            problems.append(f"API_BASE_URL must be an http(s) URL, got {self.api_base_url!r}")
        if self.booking_reset_delay_seconds < 0:
            problems.append("BOOKING_RESET_DELAY_SECONDS cannot be negative")
        if not 0 <= self.reminder_hour <= 23:
            problems.append("REMINDER_HOUR must be between 0 and 23")

        if problems:
            raise ValueError("; ".join(problems) + ". Check your .env file.")


settings = Settings()
