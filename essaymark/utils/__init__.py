"""
Utility functions and helpers.
"""
from .resource_loader import (
    get_app_data_dir,
    get_cache_dir,
    get_sessions_dir,
    get_log_dir
)
from .logging_setup import configure_logging

__all__ = [
    'get_app_data_dir',
    'get_cache_dir',
    'get_sessions_dir',
    'get_log_dir',
    'configure_logging'
]
