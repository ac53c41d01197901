"""
Logging utilities.

WHAT: Centralized logging configuration plus session-scoped loggers
WHY: Transitions, config fallbacks and sink failures must be traceable per participant
HOW: Python logging with console and rotating file handlers; a LoggerAdapter
     prefixes every record with the participant id
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from ..core.config import settings

CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(pathname)s:%(lineno)d - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Libraries that log every request/statement at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "sse_starlette")


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None):
    """
    Configure application logging.

    WHAT: Root logger with console and rotating file handlers
    WHY: One log for the whole service, bounded on disk
    HOW: Handlers replaced on every call, so repeated setup is harmless

    Args:
        level: Log level name (settings.LOG_LEVEL when omitted)
        log_file: Log file path (settings.LOG_FILE when omitted)
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    path = Path(log_file or settings.LOG_FILE)
    path.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(console_handler)

    file_handler = RotatingFileHandler(
        path,
        maxBytes=settings.LOG_MAX_BYTES,
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(file_handler)

    library_level = logging.DEBUG if settings.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    root_logger.info(f"Logging initialized (level={level_name}, file={path})")


class SessionLoggerAdapter(logging.LoggerAdapter):
    """Prefixes messages with the participant id of one session."""

    def process(self, msg, kwargs):
        return f"[{self.extra['participant_id']}] {msg}", kwargs


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def get_session_logger(name: str, participant_id: str) -> SessionLoggerAdapter:
    """Logger whose records carry the participant id."""
    return SessionLoggerAdapter(logging.getLogger(name), {"participant_id": participant_id})
