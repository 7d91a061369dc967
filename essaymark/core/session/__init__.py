"""
Grading sessions: students, persistence and script editing.
"""
from .models import GradingSession, Student, empty_justifications, new_id
from .persistence import SessionPersistence, StorageStats
from .editing import merge_next, merge_with_previous, split_at_page

__all__ = [
    'GradingSession',
    'Student',
    'empty_justifications',
    'new_id',
    'SessionPersistence',
    'StorageStats',
    'merge_next',
    'merge_with_previous',
    'split_at_page'
]
