"""
Annotation store: the single owner of annotation mutations.

Every change to the current student's annotation list goes through this
class so that history recording stays in one place.
"""
import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

from essaymark.core.geometry import Point, Rect
from .history import HistoryEngine, HistoryKey, Snapshot, snapshot_of
from .models import Annotation, AnnotationType

logger = logging.getLogger(__name__)

# Fields edited keystroke by keystroke in the editor popover
TEXT_FIELDS = frozenset({'text', 'correction'})

HANDLES = ('nw', 'ne', 'sw', 'se')


class AnnotationStore:
    """Manages the annotations of the current student with undo/redo support."""

    def __init__(self, history: Optional[HistoryEngine] = None):
        self.history = history or HistoryEngine()
        self.document_id: Optional[str] = None
        self.page_index: int = 0
        self._annotations: List[Annotation] = []

        # Pre-gesture snapshot (pointer-down to pointer-up)
        self._gesture: Optional[Tuple[HistoryKey, Snapshot]] = None

    # Subject and page

    def set_subject(self, document_id: Optional[str], annotations: Optional[List[Annotation]] = None,
                    page_index: int = 0) -> None:
        """
        Switch to another student.

        Args:
            document_id: Id of the student whose annotations are edited
            annotations: The student's annotation list; mutated in place
            page_index: Page shown first
        """
        self._gesture = None
        self.document_id = document_id
        self._annotations = annotations if annotations is not None else []
        self.page_index = page_index

    def set_page(self, page_index: int) -> None:
        self._gesture = None
        self.page_index = page_index

    @property
    def annotations(self) -> List[Annotation]:
        return self._annotations

    @property
    def history_key(self) -> HistoryKey:
        return (self.document_id or "", self.page_index)

    def _key_for(self, page_index: int) -> HistoryKey:
        return (self.document_id or "", page_index)

    # Queries

    def page_annotations(self, page_index: Optional[int] = None) -> List[Annotation]:
        """
        Get all annotations for a page.

        Args:
            page_index: 0-based page index; defaults to the current page

        Returns:
            List of annotations on the page, in list order
        """
        page = self.page_index if page_index is None else page_index
        return [ann for ann in self._annotations if ann.page_index == page]

    def get(self, annotation_id: Optional[str]) -> Optional[Annotation]:
        if annotation_id is None:
            return None
        return next((a for a in self._annotations if a.id == annotation_id), None)

    def _index_of(self, annotation_id: str) -> int:
        for i, ann in enumerate(self._annotations):
            if ann.id == annotation_id:
                return i
        return -1

    def annotation_at_point(self, point: Point, tolerance: float = 0.015,
                            stamp_size: Tuple[float, float] = (0.175, 0.125)
                            ) -> Tuple[Optional[Annotation], Optional[int]]:
        """
        Get the topmost annotation at a point on the current page.

        Args:
            point: Normalized point
            tolerance: Hit radius for dots
            stamp_size: Normalized (width, height) of a stamp card

        Returns:
            (annotation, rect_index) or (None, None); rect_index is set for rects only
        """
        for ann in reversed(self.page_annotations()):
            if ann.annotation_type == AnnotationType.RECT:
                for index, rect in enumerate(ann.rects):
                    if rect.contains_point(point.x, point.y):
                        return ann, index
            elif ann.annotation_type == AnnotationType.DOT and ann.point is not None:
                if (ann.x - point.x) ** 2 + (ann.y - point.y) ** 2 <= tolerance ** 2:
                    return ann, None
            elif ann.annotation_type == AnnotationType.STAMP and ann.point is not None:
                card = Rect(ann.x, ann.y, stamp_size[0], stamp_size[1])
                if card.contains_point(point.x, point.y):
                    return ann, None
        return None, None

    def handle_at_point(self, point: Point, tolerance: float = 0.01
                        ) -> Tuple[Optional[Annotation], Optional[int], Optional[str]]:
        """
        Find a rect corner handle under a point on the current page.

        Returns:
            (annotation, rect_index, handle) or (None, None, None)
        """
        for ann in reversed(self.page_annotations()):
            if ann.annotation_type != AnnotationType.RECT:
                continue
            for index, rect in enumerate(ann.rects):
                corners = {
                    'nw': (rect.x, rect.y),
                    'ne': (rect.right, rect.y),
                    'sw': (rect.x, rect.bottom),
                    'se': (rect.right, rect.bottom),
                }
                for handle in HANDLES:
                    cx, cy = corners[handle]
                    if abs(cx - point.x) <= tolerance and abs(cy - point.y) <= tolerance:
                        return ann, index, handle
        return None, None, None

    # Mutations

    def add(self, annotation: Annotation, record_history: bool = True) -> None:
        """
        Append an annotation.

        Args:
            annotation: Annotation to add
            record_history: Snapshot its page first
        """
        if record_history:
            key = self._key_for(annotation.page_index)
            self.history.record(key, self.page_annotations(annotation.page_index))
        self._annotations.append(annotation)

    def update(self, annotation_id: str, **fields) -> bool:
        """
        Shallow-merge fields into an annotation.

        Text fields coalesce into one history entry per typing burst;
        any other field snapshots immediately.

        Returns:
            True if the annotation was found and changed
        """
        index = self._index_of(annotation_id)
        if index < 0:
            logger.debug("update: annotation %s not found", annotation_id)
            return False

        current = self._annotations[index]
        changed = {k: v for k, v in fields.items() if getattr(current, k) != v}
        if not changed:
            return False

        key = self._key_for(current.page_index)
        page_state = self.page_annotations(current.page_index)
        if set(changed) <= TEXT_FIELDS:
            self.history.record_text_edit(key, annotation_id, page_state)
        else:
            self.history.record(key, page_state)

        self._annotations[index] = replace(current, **changed)
        return True

    def delete(self, annotation_id: str) -> bool:
        """
        Remove an annotation.

        Returns:
            True if annotation was found and removed
        """
        return self.delete_many([annotation_id]) > 0

    def delete_many(self, annotation_ids: Iterable[str]) -> int:
        """
        Remove several annotations, one history entry per affected page.

        Returns:
            Number of annotations removed
        """
        ids = set(annotation_ids)
        if not ids:
            return 0

        doomed = [a for a in self._annotations if a.id in ids]
        if not doomed:
            return 0

        for page in sorted({a.page_index for a in doomed}):
            self.history.record(self._key_for(page), self.page_annotations(page))

        self._annotations[:] = [a for a in self._annotations if a.id not in ids]
        return len(doomed)

    def append_rect(self, annotation_id: str, rect: Rect) -> bool:
        """Extend a rect annotation with another area (multi-line span)."""
        index = self._index_of(annotation_id)
        if index < 0:
            return False
        current = self._annotations[index]
        if current.annotation_type != AnnotationType.RECT:
            return False

        self.history.record(self._key_for(current.page_index), self.page_annotations(current.page_index))
        self._annotations[index] = replace(current, rects=list(current.rects) + [rect])
        return True

    def remove_rect(self, annotation_id: str, rect_index: int) -> bool:
        """Remove one area of a rect annotation; removing the last one deletes it."""
        index = self._index_of(annotation_id)
        if index < 0:
            return False
        current = self._annotations[index]
        if current.annotation_type != AnnotationType.RECT or not 0 <= rect_index < len(current.rects):
            return False

        if len(current.rects) == 1:
            return self.delete(annotation_id)

        self.history.record(self._key_for(current.page_index), self.page_annotations(current.page_index))
        rects = list(current.rects)
        del rects[rect_index]
        self._annotations[index] = replace(current, rects=rects)
        return True

    def set_geometry(self, annotation_id: str, point: Optional[Point] = None,
                     rects: Optional[List[Rect]] = None) -> bool:
        """
        Live geometry change during a drag. Records no history; the gesture
        snapshot covers it.
        """
        index = self._index_of(annotation_id)
        if index < 0:
            return False
        current = self._annotations[index]
        changes: Dict[str, object] = {}
        if point is not None and current.is_point_like:
            changes['x'] = point.x
            changes['y'] = point.y
        if rects is not None and current.annotation_type == AnnotationType.RECT:
            changes['rects'] = list(rects)
        if not changes:
            return False
        self._annotations[index] = replace(current, **changes)
        return True

    def _restore_page(self, page_index: int, page_state: List[Annotation]) -> None:
        others = [a for a in self._annotations if a.page_index != page_index]
        self._annotations[:] = others + list(page_state)

    # Gestures

    @property
    def has_gesture(self) -> bool:
        return self._gesture is not None

    def begin_gesture(self) -> None:
        """Snapshot the current page at pointer-down."""
        self._gesture = (self.history_key, snapshot_of(self.page_annotations()))

    def commit_gesture(self) -> bool:
        """
        Push the pointer-down snapshot as one history entry.

        Returns:
            True if an entry was pushed (gestures that changed nothing push none)
        """
        if self._gesture is None:
            return False
        key, snapshot = self._gesture
        self._gesture = None
        if snapshot == self.page_annotations(key[1]):
            return False
        self.history.push_snapshot(key, snapshot)
        return True

    def cancel_gesture(self) -> bool:
        """Restore the pointer-down snapshot without touching history."""
        if self._gesture is None:
            return False
        key, snapshot = self._gesture
        self._gesture = None
        self._restore_page(key[1], snapshot)
        return True

    # Undo / redo

    def undo(self) -> bool:
        """
        Undo the last edit on the current page.

        Returns:
            True if undo was successful
        """
        previous = self.history.undo(self.history_key, self.page_annotations())
        if previous is None:
            return False
        self._restore_page(self.page_index, previous)
        return True

    def redo(self) -> bool:
        """
        Redo the last undone edit on the current page.

        Returns:
            True if redo was successful
        """
        following = self.history.redo(self.history_key, self.page_annotations())
        if following is None:
            return False
        self._restore_page(self.page_index, following)
        return True

    def can_undo(self) -> bool:
        return self.history.can_undo(self.history_key)

    def can_redo(self) -> bool:
        return self.history.can_redo(self.history_key)

    def get_annotation_count(self) -> int:
        return len(self._annotations)
