"""
Normalized page geometry.

All persisted geometry lives in a [0, 1] x [0, 1] space relative to the
page image bounds, so it is independent of zoom, scroll and resolution.
"""
from dataclasses import dataclass
from typing import Tuple


@dataclass
class Point:
    """A normalized point on a page."""
    x: float
    y: float

    def to_dict(self):
        return {'x': self.x, 'y': self.y}

    @staticmethod
    def from_dict(data):
        return Point(x=float(data['x']), y=float(data['y']))


@dataclass
class Rect:
    """A normalized axis-aligned rectangle (origin is the top-left corner)."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains_point(self, x: float, y: float) -> bool:
        """Check if a point is within this rectangle's bounds."""
        return self.x <= x <= self.right and self.y <= y <= self.bottom

    def to_dict(self):
        return {'x': self.x, 'y': self.y, 'width': self.width, 'height': self.height}

    @staticmethod
    def from_dict(data):
        return Rect(
            x=float(data['x']),
            y=float(data['y']),
            width=float(data['width']),
            height=float(data['height'])
        )


@dataclass
class SurfaceBounds:
    """Bounding box of the rendering surface, in the same units as pointer positions."""
    left: float
    top: float
    width: float
    height: float


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp a value into [lo, hi]."""
    return max(lo, min(hi, value))


def to_relative_point(position: Tuple[float, float], bounds: SurfaceBounds) -> Point:
    """
    Convert a surface position to a normalized page point.

    Args:
        position: (x, y) pointer position in surface coordinates
        bounds: Bounds of the page image on the surface

    Returns:
        Point clamped component-wise to [0, 1]
    """
    if bounds.width <= 0 or bounds.height <= 0:
        return Point(0.0, 0.0)

    return Point(
        x=clamp((position[0] - bounds.left) / bounds.width, 0.0, 1.0),
        y=clamp((position[1] - bounds.top) / bounds.height, 0.0, 1.0)
    )


def normalized_box(a: Point, b: Point) -> Rect:
    """Box spanned by two points, regardless of drag direction."""
    x = min(a.x, b.x)
    y = min(a.y, b.y)
    return Rect(x, y, abs(b.x - a.x), abs(b.y - a.y))


def point_in_box(point: Point, box: Rect) -> bool:
    """Inclusive point-in-box test."""
    return box.contains_point(point.x, point.y)


def rects_overlap(a: Rect, b: Rect) -> bool:
    """Axis-aligned overlap test: touching edges count as overlapping."""
    return not (
        a.x > b.right
        or a.right < b.x
        or a.y > b.bottom
        or a.bottom < b.y
    )


def clamp_point(x: float, y: float) -> Point:
    return Point(clamp(x, 0.0, 1.0), clamp(y, 0.0, 1.0))


def clamp_rect_origin(rect: Rect) -> Rect:
    """Keep a rectangle on the page by moving its origin, never its size."""
    return Rect(
        x=clamp(rect.x, 0.0, max(0.0, 1.0 - rect.width)),
        y=clamp(rect.y, 0.0, max(0.0, 1.0 - rect.height)),
        width=rect.width,
        height=rect.height
    )


def resize_rect(initial: Rect, handle: str, dx: float, dy: float, min_size: float = 0.01) -> Rect:
    """
    Resize a rectangle by dragging one corner handle.

    The corner opposite the handle stays fixed. The moving edges are
    clamped to the page and kept at least ``min_size`` from the fixed ones.

    Args:
        initial: Rectangle at the start of the drag
        handle: Grabbed corner, one of 'nw', 'ne', 'sw', 'se'
        dx: Horizontal pointer delta (normalized)
        dy: Vertical pointer delta (normalized)
        min_size: Smallest allowed width and height

    Returns:
        The resized rectangle
    """
    left, top, right, bottom = initial.x, initial.y, initial.right, initial.bottom

    if 'w' in handle:
        left = clamp(left + dx, 0.0, right - min_size)
    else:
        right = clamp(right + dx, left + min_size, 1.0)

    if 'n' in handle:
        top = clamp(top + dy, 0.0, bottom - min_size)
    else:
        bottom = clamp(bottom + dy, top + min_size, 1.0)

    return Rect(left, top, right - left, bottom - top)
