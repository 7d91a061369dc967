"""
Multi-selection of annotations on the current page.
"""
from typing import Iterable, List, Optional

from PyQt5.QtCore import QObject, pyqtSignal

from essaymark.core.annotations.models import Annotation, AnnotationType
from essaymark.core.geometry import Rect, point_in_box, rects_overlap


def annotations_in_box(annotations: Iterable[Annotation], box: Rect) -> List[str]:
    """
    Ids of annotations matched by a rubber-band box.

    Dots and stamps match when their point lies inside the box; rect
    annotations match when any of their areas overlaps it.
    """
    selected = []
    for ann in annotations:
        if ann.is_point_like:
            if ann.point is not None and point_in_box(ann.point, box):
                selected.append(ann.id)
        elif ann.annotation_type == AnnotationType.RECT:
            if any(rects_overlap(r, box) for r in ann.rects):
                selected.append(ann.id)
    return selected


class SelectionManager(QObject):
    """
    Manages the set of selected annotations and the rubber-band box.

    Supports:
    - Click-to-select (collapses to one annotation)
    - Rubber-band selection recomputed live while dragging
    """

    # Signals
    selection_changed = pyqtSignal()
    selection_cleared = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__(parent)

        self._selected_ids: List[str] = []
        self.selection_box: Optional[Rect] = None

    @property
    def selected_ids(self) -> List[str]:
        return list(self._selected_ids)

    def contains(self, annotation_id: str) -> bool:
        return annotation_id in self._selected_ids

    def has_selection(self) -> bool:
        return bool(self._selected_ids)

    def set_selection(self, annotation_ids: Iterable[str]) -> None:
        new_ids = list(dict.fromkeys(annotation_ids))
        if new_ids != self._selected_ids:
            self._selected_ids = new_ids
            self.selection_changed.emit()

    def select_only(self, annotation_id: str) -> None:
        self.set_selection([annotation_id])

    def update_box(self, box: Rect, page_annotations: Iterable[Annotation]) -> None:
        """
        Set the rubber-band box and recompute the selection from it.

        Args:
            box: Normalized selection box
            page_annotations: Annotations on the current page
        """
        self.selection_box = box
        self.set_selection(annotations_in_box(page_annotations, box))

    def finish_box(self) -> None:
        """Drop the rubber-band box; the selection built while dragging stays."""
        self.selection_box = None

    def clear(self) -> None:
        """Clear all selection state."""
        had_selection = self.has_selection()

        self._selected_ids = []
        self.selection_box = None

        if had_selection:
            self.selection_changed.emit()
            self.selection_cleared.emit()
