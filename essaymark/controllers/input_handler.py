"""
Keyboard and mouse input for the grading canvas.
"""
from typing import Callable, Optional

from PyQt5.QtCore import Qt

from essaymark.core.annotations.models import GradingMode
from essaymark.core.interaction import (
    InteractionController,
    Modifiers,
    PointerButton,
    PointerEvent,
    ResizeHandle
)

CATEGORY_KEYS = {
    Qt.Key_F1: GradingMode.CONTENT,
    Qt.Key_F2: GradingMode.COMMUNICATIVE,
    Qt.Key_F3: GradingMode.ORGANISATION,
    Qt.Key_F4: GradingMode.LANGUAGE,
}

_BUTTONS = {
    Qt.LeftButton: PointerButton.LEFT,
    Qt.MiddleButton: PointerButton.MIDDLE,
    Qt.RightButton: PointerButton.RIGHT,
}


def to_modifiers(qt_modifiers) -> Modifiers:
    """Shift extends; Ctrl or Meta (Cmd on macOS) groups."""
    return Modifiers(
        extend=bool(qt_modifiers & Qt.ShiftModifier),
        group=bool(qt_modifiers & (Qt.ControlModifier | Qt.MetaModifier))
    )


def to_button(qt_button) -> PointerButton:
    return _BUTTONS.get(qt_button, PointerButton.OTHER)


def pointer_event_from_qt(event, target_id: Optional[str] = None, rect_index: Optional[int] = None,
                          handle: Optional[str] = None) -> PointerEvent:
    """
    Translate a QMouseEvent into a toolkit-neutral PointerEvent.

    Args:
        event: QMouseEvent received by the canvas
        target_id: Annotation hit under the pointer, if any
        rect_index: Index of the hit rectangle for rect annotations
        handle: Resize handle under the pointer ('nw', 'ne', 'sw', 'se')
    """
    pos = event.pos()
    global_pos = event.globalPos()
    return PointerEvent(
        position=(pos.x(), pos.y()),
        button=to_button(event.button()),
        modifiers=to_modifiers(event.modifiers()),
        target_id=target_id,
        rect_index=rect_index,
        handle=ResizeHandle(handle) if handle else None,
        global_position=(global_pos.x(), global_pos.y())
    )


class UserInputHandler:
    """
    Handles keyboard shortcuts for the grading window.
    """
    def __init__(self, interaction: InteractionController,
                 next_page: Optional[Callable[[], None]] = None,
                 previous_page: Optional[Callable[[], None]] = None):
        """
        Initializes the handler.

        Args:
            interaction: Controller receiving tool and edit commands
            next_page: Called for Right / Page Down
            previous_page: Called for Left / Page Up
        """
        self.interaction = interaction
        self.next_page = next_page
        self.previous_page = previous_page

    def handle_key_press(self, event):
        """
        Handles key press events for the canvas.
        """
        if self.handle_key(event.key(), event.modifiers()):
            event.accept()
        else:
            event.ignore()

    def handle_key(self, key, modifiers) -> bool:
        """
        Apply the shortcut for a key.

        Returns:
            True if the key was handled
        """
        interaction = self.interaction
        ctrl = bool(modifiers & (Qt.ControlModifier | Qt.MetaModifier))
        shift = bool(modifiers & Qt.ShiftModifier)

        if key in CATEGORY_KEYS:
            interaction.toggle_mode(CATEGORY_KEYS[key])
        elif ctrl and key == Qt.Key_M:
            interaction.toggle_mode(GradingMode.SELECT)
        elif ctrl and key == Qt.Key_Z:
            if shift:
                interaction.redo()
            else:
                interaction.undo()
        elif ctrl and key == Qt.Key_Y:
            interaction.redo()
        elif not ctrl and key == Qt.Key_S:
            interaction.toggle_mode(GradingMode.STAMPER)
        elif key == Qt.Key_Escape:
            return interaction.escape()
        elif key in (Qt.Key_Delete, Qt.Key_Backspace):
            return interaction.delete_selected() > 0
        elif key in (Qt.Key_Right, Qt.Key_PageDown) and self.next_page:
            self.next_page()
        elif key in (Qt.Key_Left, Qt.Key_PageUp) and self.previous_page:
            self.previous_page()
        else:
            return False
        return True
