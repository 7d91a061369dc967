"""
Annotation model, history and store.
"""
from .models import (
    Annotation,
    AnnotationType,
    GradingMode,
    IdGenerator,
    SCORED_MODES,
    StampData,
    StudentScore
)
from .labels import dot_label, dot_labels, next_dot_number, id_sort_key
from .history import HistoryEngine, PageHistory, TypingBurst, BurstState
from .store import AnnotationStore

__all__ = [
    'Annotation',
    'AnnotationType',
    'GradingMode',
    'IdGenerator',
    'SCORED_MODES',
    'StampData',
    'StudentScore',
    'dot_label',
    'dot_labels',
    'next_dot_number',
    'id_sort_key',
    'HistoryEngine',
    'PageHistory',
    'TypingBurst',
    'BurstState',
    'AnnotationStore'
]
