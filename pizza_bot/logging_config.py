"""
Logging setup for the pizza ordering service.

Records go to stdout through one handler that carries a SensitiveDataFilter,
so card numbers and email addresses never reach the log stream in clear text
whichever module logs them.

Usage:
    from pizza_bot.logging_config import setup_logging
    setup_logging()  # Call once at application startup

Environment variables:
    LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, or CRITICAL (default: INFO)
"""
import logging
import os
import re
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Client libraries that log every request at INFO
NOISY_LOGGERS = (
    "aiohttp",
    "httpx",
    "openai",
    "instructor",
    "sqlalchemy.engine",
    "uvicorn.access",
)

CARD_NUMBER_PATTERN = re.compile(r"\b\d{12,15}(\d{4})\b")
EMAIL_PATTERN = re.compile(r"\b[^\s@]+@([^\s@]+\.[^\s@]+)\b")


class SensitiveDataFilter(logging.Filter):
    """Masks card numbers (keeping the last four digits) and email local parts."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = redact(message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def redact(text: str) -> str:
    text = CARD_NUMBER_PATTERN.sub(r"****\1", text)
    return EMAIL_PATTERN.sub(r"***@\1", text)


def resolve_level(level: Optional[str] = None) -> str:
    """Level name from the argument or LOG_LEVEL; unknown names fall back to INFO."""
    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if not isinstance(logging.getLevelName(name), int):
        return "INFO"
    return name


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure the stdout handler and the pizza_bot logger level.

    Args:
        level: Level name. If not provided, reads LOG_LEVEL, defaulting to INFO.
    """
    level = resolve_level(level)
    numeric_level = getattr(logging, level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(SensitiveDataFilter())
    logging.basicConfig(level=numeric_level, handlers=[handler])

    logging.getLogger("pizza_bot").setLevel(numeric_level)

    quiet_level = logging.NOTSET if level == "DEBUG" else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    logging.getLogger(__name__).debug("Logging configured at %s level", level)
