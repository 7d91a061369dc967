"""
Pointer interaction: gesture state machine and selection.
"""
from .models import DragSnapshot, InteractionMode, Modifiers, PointerButton, PointerEvent, ResizeHandle
from .selection import SelectionManager, annotations_in_box
from .state_machine import InteractionController, ScoreProvider, format_stamp_date

__all__ = [
    'DragSnapshot',
    'InteractionMode',
    'Modifiers',
    'PointerButton',
    'PointerEvent',
    'ResizeHandle',
    'SelectionManager',
    'annotations_in_box',
    'InteractionController',
    'ScoreProvider',
    'format_stamp_date'
]
