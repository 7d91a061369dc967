"""
Logging configuration for the desktop application.
"""
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from .resource_loader import get_log_dir

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_configured = False


def configure_logging(level: Optional[str] = None, log_to_file: bool = True) -> None:
    """
    Configure root logging once for the application.

    Args:
        level: Level name; defaults to ESSAYMARK_LOG_LEVEL or INFO
        log_to_file: Also write a rotating log file in the app data directory
    """
    global _configured

    level_name = (level or os.environ.get('ESSAYMARK_LOG_LEVEL', 'INFO')).upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    # Avoid duplicate handlers if called twice
    if _configured:
        return

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(console)

    if log_to_file:
        try:
            file_handler = RotatingFileHandler(
                get_log_dir() / "essaymark.log", maxBytes=1_000_000, backupCount=3, encoding="utf-8"
            )
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(file_handler)
        except OSError as e:
            root.warning("File logging disabled: %s", e)

    _configured = True
