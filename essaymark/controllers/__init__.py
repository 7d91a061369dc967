"""
Application controllers for managing interactions between UI and core logic.
"""
from .input_handler import UserInputHandler
from .grading_controller import GradingController

__all__ = [
    'UserInputHandler',
    'GradingController'
]
