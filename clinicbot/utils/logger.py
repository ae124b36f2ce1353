"""
Logging setup for the booking assistant.

Console output always; a rotating log file when LOG_FILE_PATH is set.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

from clinicbot.config import Settings, settings as default_settings

VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 5


def _handlers(log_file: Optional[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                filename=path,
                maxBytes=MAX_LOG_BYTES,
                backupCount=LOG_BACKUPS,
                encoding="utf-8",
            )
        )

    return handlers


def setup_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure the root logger from LOG_LEVEL and LOG_FILE_PATH.

    Handlers are attached once; later calls only adjust the level.
    """
    settings = settings or default_settings
    log_level = settings.LOG_LEVEL.upper()

    if log_level not in VALID_LEVELS:
        raise ValueError(f"Invalid LOG_LEVEL: {settings.LOG_LEVEL}")

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if root_logger.handlers:
        return

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in _handlers(settings.LOG_FILE_PATH):
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    root_logger.info("Logging configured (level=%s, file=%s)", log_level, settings.LOG_FILE_PATH)
