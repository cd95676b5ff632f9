"""Logging configuration for the reminder bot.

Records go to a dated file under LOG_DIR and, when attached to a terminal, to
stdout. Every record passes through SanitizingFilter first, so Supabase keys in
httpx errors and tokens pasted into reminder bodies never reach disk.
"""

import logging
import sys
from datetime import datetime

from config import LOG_DIR, LOG_LEVEL
from utils.log_sanitizer import sanitize_log

LOGGER_NAME = "reminder_bot"

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"

# Third-party loggers that are noisy at INFO
QUIET_LOGGERS = ("httpx", "apscheduler.executors.default")


class SanitizingFilter(logging.Filter):
    """Redact credentials from the fully formatted message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = sanitize_log(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def setup_logging(level: str = LOG_LEVEL) -> logging.Logger:
    """Configure the reminder_bot logger with file and console handlers."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # setup_logging may run again in tests
    logger.handlers.clear()
    logger.filters.clear()
    logger.addFilter(SanitizingFilter())

    log_file = LOG_DIR / f"{datetime.now():%Y-%m-%d}.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(file_handler)

    if sys.stdout is not None and sys.stdout.isatty():
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
        logger.addHandler(console_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


# Global logger instance
logger = setup_logging()
