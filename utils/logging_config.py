"""
Logging setup for the bot process.

One set of handlers on the root logger: console output always, plus an
optional rotating file. Every handler carries a filter that masks bearer
tokens and JWTs. Modules log through logging.getLogger(__name__).
"""

import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_SECRET = re.compile(
    r"(Bearer\s+)[A-Za-z0-9\-_.=]+|\beyJ[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+"
)


class RedactTokensFilter(logging.Filter):
    """Replace session tokens in the rendered message with a placeholder."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _SECRET.sub(lambda m: f"{m.group(1) or ''}***", message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _file_handler(log_dir: str, log_file: str, max_bytes: int, backup_count: int) -> logging.Handler:
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        directory / log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )


def setup_logging(
    name: Optional[str] = None,
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_dir: str = "logs",
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Configure and return the logger called `name`, the root logger by default.

    Args:
        name: Logger name; None configures the root logger that every module logger propagates to
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_file: File name inside log_dir; console only when omitted
        log_dir: Directory for log files
        max_bytes: Size at which the file is rotated
        backup_count: Rotated files kept
        format_string: Overrides DEFAULT_FORMAT

    A logger that already has handlers is returned unchanged, so a log file
    is only ever opened by one handler.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(level)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(_file_handler(log_dir, log_file, max_bytes, backup_count))

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT, datefmt=DATE_FORMAT)
    redact = RedactTokensFilter()
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(redact)
        logger.addHandler(handler)

    return logger
