"""
Toolkit-neutral pointer events and transient gesture state.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from essaymark.core.geometry import Point, Rect


class InteractionMode(Enum):
    IDLE = "idle"
    CREATING = "creating"
    MOVING = "moving"
    RESIZING = "resizing"
    PANNING = "panning"
    SELECTING = "selecting"
    MOVING_MULTI = "moving-multi"


class PointerButton(Enum):
    LEFT = "left"
    MIDDLE = "middle"
    RIGHT = "right"
    OTHER = "other"


class ResizeHandle(Enum):
    NW = "nw"
    NE = "ne"
    SW = "sw"
    SE = "se"


@dataclass(frozen=True)
class Modifiers:
    """Keyboard modifiers held during a pointer event."""
    extend: bool = False  # Shift: extend a rect / keep focus
    group: bool = False   # Ctrl/Meta: join the current dot group


@dataclass
class PointerEvent:
    """
    A pointer event already translated to surface coordinates.

    ``target_id``, ``rect_index`` and ``handle`` describe what the
    rendering surface found under the pointer.
    """
    position: Tuple[float, float]
    button: PointerButton = PointerButton.LEFT
    modifiers: Modifiers = field(default_factory=Modifiers)
    target_id: Optional[str] = None
    rect_index: Optional[int] = None
    handle: Optional[ResizeHandle] = None
    # Viewport position, used for panning while the surface scrolls
    global_position: Optional[Tuple[float, float]] = None

    @property
    def viewport_position(self) -> Tuple[float, float]:
        return self.global_position if self.global_position is not None else self.position


@dataclass
class DragSnapshot:
    """Geometry captured at pointer-down for the duration of one gesture."""
    start_point: Point
    annotation_id: Optional[str] = None
    initial_rect: Optional[Rect] = None
    initial_point: Optional[Point] = None
    rect_index: Optional[int] = None
    handle: Optional[ResizeHandle] = None
    # Rect annotation that the finished drag extends (Shift + drag on a rect)
    extend_target_id: Optional[str] = None
    client_start: Optional[Tuple[float, float]] = None
    initial_scroll: Optional[Tuple[float, float]] = None
    initial_multi: Dict[str, Union[Point, List[Rect]]] = field(default_factory=dict)
