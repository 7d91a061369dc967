"""
Per-platform locations for session files, caches and logs.
"""
import os
import sys
from pathlib import Path
from typing import Optional

APP_NAME = "EssayMark"


def _home_override() -> Optional[Path]:
    """Return ESSAYMARK_HOME as a Path, or None when unset."""
    value = os.environ.get('ESSAYMARK_HOME')
    return Path(value) if value else None


def get_app_data_dir(app_name: str = APP_NAME) -> Path:
    """
    Get the application data directory for storing user data.

    Args:
        app_name: Name of the application

    Returns:
        Path to the app data directory
    """
    override = _home_override()
    if override is not None:
        app_dir = override / "data"
    elif os.name == 'nt':  # Windows
        app_dir = Path(os.environ.get('APPDATA', os.path.expanduser('~'))) / app_name
    elif sys.platform == 'darwin':  # macOS
        app_dir = Path.home() / "Library" / "Application Support" / app_name
    else:  # Linux and others
        app_dir = Path.home() / ".local" / "share" / app_name

    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir


def get_cache_dir(app_name: str = APP_NAME) -> Path:
    """
    Get the cache directory for enhanced page images.

    Args:
        app_name: Name of the application

    Returns:
        Path to the cache directory
    """
    override = _home_override()
    if override is not None:
        cache_dir = override / "cache"
    elif os.name == 'nt':  # Windows
        cache_dir = Path(os.environ.get('LOCALAPPDATA', os.path.expanduser('~'))) / app_name / "cache"
    elif sys.platform == 'darwin':  # macOS
        cache_dir = Path.home() / "Library" / "Caches" / app_name
    else:  # Linux
        cache_dir = Path.home() / ".cache" / app_name

    cache_dir.mkdir(parents=True, exist_ok=True)
    return cache_dir


def get_sessions_dir(app_name: str = APP_NAME) -> Path:
    """Directory holding one JSON file per grading session."""
    sessions_dir = get_app_data_dir(app_name) / "sessions"
    sessions_dir.mkdir(parents=True, exist_ok=True)
    return sessions_dir


def get_log_dir(app_name: str = APP_NAME) -> Path:
    log_dir = get_app_data_dir(app_name) / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir
