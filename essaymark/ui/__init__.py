"""
Qt widgets.
"""
from .main_window import MainWindow
from .page_canvas import PageCanvas

__all__ = [
    'MainWindow',
    'PageCanvas'
]
