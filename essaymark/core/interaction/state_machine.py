"""
Pointer interaction state machine.

Turns pointer-down / move / up events from the page surface into
annotation edits. All mutations go through the AnnotationStore; the
controller only keeps the transient state of one gesture.
"""
import copy
import datetime
import logging
import math
from typing import Callable, List, Optional, Tuple

from PyQt5.QtCore import QObject, pyqtSignal

from essaymark.config import InteractionConfig
from essaymark.core.annotations.labels import next_dot_number
from essaymark.core.annotations.models import (
    Annotation,
    AnnotationType,
    GradingMode,
    IdGenerator,
    StampData,
    StudentScore
)
from essaymark.core.annotations.store import AnnotationStore
from essaymark.core.geometry import (
    Point,
    Rect,
    SurfaceBounds,
    clamp,
    clamp_point,
    clamp_rect_origin,
    normalized_box,
    resize_rect,
    to_relative_point
)
from .models import DragSnapshot, InteractionMode, PointerButton, PointerEvent
from .selection import SelectionManager

logger = logging.getLogger(__name__)

# Returns the live scores of the current student and the grader name
ScoreProvider = Callable[[], Tuple[StudentScore, str]]


def format_stamp_date(day: datetime.date) -> str:
    """Date printed on stamps, e.g. '19 Oct 2026'."""
    return f"{day.day} {day.strftime('%b %Y')}"


class InteractionController(QObject):
    """
    Drives annotation editing from pointer events.

    Every gesture starts in IDLE on pointer-down and returns to IDLE on
    pointer-up or cancel.
    """

    # Signals
    annotations_changed = pyqtSignal()
    selection_changed = pyqtSignal()
    editing_changed = pyqtSignal(object)  # annotation id or None
    mode_changed = pyqtSignal(str)
    scroll_requested = pyqtSignal(int, int)
    interaction_changed = pyqtSignal()  # transient state for repaint only

    def __init__(self, store: AnnotationStore, score_provider: Optional[ScoreProvider] = None,
                 config: Optional[InteractionConfig] = None, id_generator: Optional[IdGenerator] = None,
                 today: Callable[[], datetime.date] = datetime.date.today, parent=None):
        super().__init__(parent)

        self.store = store
        self.config = config or InteractionConfig()
        self.ids = id_generator or IdGenerator()
        self._score_provider = score_provider or (lambda: (StudentScore(), "Teacher"))
        self._today = today

        self.selection = SelectionManager(self)
        self.selection.selection_changed.connect(self.selection_changed)

        self.surface_bounds = SurfaceBounds(0, 0, 0, 0)
        self.scroll_offset: Tuple[float, float] = (0, 0)

        self._active_mode = GradingMode.GENERAL
        self.mode = InteractionMode.IDLE
        self._snapshot: Optional[DragSnapshot] = None
        self._creation_current: Optional[Point] = None
        self._right_press: Optional[Point] = None

        self._editing_id: Optional[str] = None
        self.new_annotation_id: Optional[str] = None

    # Public state

    @property
    def active_mode(self) -> GradingMode:
        return self._active_mode

    @property
    def editing_id(self) -> Optional[str]:
        return self._editing_id

    @property
    def is_editing_new(self) -> bool:
        return self._editing_id is not None and self._editing_id == self.new_annotation_id

    @property
    def selected_ids(self) -> List[str]:
        return self.selection.selected_ids

    @property
    def selection_box(self) -> Optional[Rect]:
        return self.selection.selection_box

    @property
    def creation_preview(self) -> Optional[Rect]:
        """In-progress rectangle while creating, else None."""
        if self.mode != InteractionMode.CREATING or self._snapshot is None or self._creation_current is None:
            return None
        return normalized_box(self._snapshot.start_point, self._creation_current)

    def set_surface_bounds(self, bounds: SurfaceBounds) -> None:
        self.surface_bounds = bounds

    def set_scroll_offset(self, x: float, y: float) -> None:
        self.scroll_offset = (x, y)

    def _set_editing(self, annotation_id: Optional[str]) -> None:
        if annotation_id != self._editing_id:
            self._editing_id = annotation_id
            self.editing_changed.emit(annotation_id)

    def _relative(self, event: PointerEvent) -> Point:
        return to_relative_point(event.position, self.surface_bounds)

    # Tool modes

    def set_active_mode(self, mode: GradingMode) -> None:
        if mode == self._active_mode:
            return
        if self._active_mode == GradingMode.SELECT:
            self.selection.clear()
        self._active_mode = mode
        self.mode_changed.emit(mode.value)

    def toggle_mode(self, mode: GradingMode) -> None:
        """Switch to ``mode``, or back to general if it is already active."""
        self.set_active_mode(GradingMode.GENERAL if self._active_mode == mode else mode)

    # Pointer events

    def pointer_down(self, event: PointerEvent) -> None:
        if self.mode != InteractionMode.IDLE:
            return

        if event.button == PointerButton.MIDDLE:
            self.mode = InteractionMode.PANNING
            self._snapshot = DragSnapshot(
                start_point=Point(0, 0),
                client_start=event.viewport_position,
                initial_scroll=self.scroll_offset
            )
            return

        point = self._relative(event)
        target = self.store.get(event.target_id)
        if event.target_id is not None and target is None:
            logger.debug("pointer_down: annotation %s no longer exists", event.target_id)
            return

        left = event.button == PointerButton.LEFT

        if self._active_mode == GradingMode.STAMPER and left and target is None:
            self._create_stamp(point)
            return

        if self._active_mode == GradingMode.SELECT and left:
            if target is not None:
                self._begin_multi_move(target, point)
            else:
                self.selection.clear()
                self.mode = InteractionMode.SELECTING
                self._snapshot = DragSnapshot(start_point=point)
            return

        if left and target is not None and event.handle is not None:
            if target.annotation_type == AnnotationType.RECT and event.rect_index is not None \
                    and 0 <= event.rect_index < len(target.rects):
                self.store.begin_gesture()
                self.mode = InteractionMode.RESIZING
                self._snapshot = DragSnapshot(
                    start_point=point,
                    annotation_id=target.id,
                    initial_rect=copy.copy(target.rects[event.rect_index]),
                    rect_index=event.rect_index,
                    handle=event.handle
                )
            return

        if left and target is not None:
            if event.modifiers.extend and target.annotation_type == AnnotationType.RECT:
                self._set_editing(target.id)
                self.mode = InteractionMode.CREATING
                self._snapshot = DragSnapshot(start_point=point, extend_target_id=target.id)
                self._creation_current = point
                return
            self._begin_move(target, point, event.rect_index)
            return

        if left:
            should_clear = not event.modifiers.extend
            if event.modifiers.extend and self._editing_id is not None:
                focused = self.store.get(self._editing_id)
                should_clear = not (focused is not None
                                    and focused.annotation_type == AnnotationType.RECT
                                    and focused.page_index == self.store.page_index)
            if should_clear:
                self._set_editing(None)
                self.new_annotation_id = None
            self.mode = InteractionMode.CREATING
            self._snapshot = DragSnapshot(start_point=point)
            self._creation_current = point
            return

        if event.button == PointerButton.RIGHT:
            if not event.modifiers.extend:
                self._set_editing(None)
                self.new_annotation_id = None
            self._right_press = point

    def _begin_move(self, target: Annotation, point: Point, rect_index: Optional[int]) -> None:
        self._set_editing(target.id)

        snapshot = DragSnapshot(start_point=point, annotation_id=target.id)
        if target.is_point_like and target.point is not None:
            snapshot.initial_point = target.point
        elif target.annotation_type == AnnotationType.RECT and rect_index is not None \
                and 0 <= rect_index < len(target.rects):
            snapshot.initial_rect = copy.copy(target.rects[rect_index])
            snapshot.rect_index = rect_index
        else:
            logger.debug("pointer_down: no move anchor for %s", target.id)
            return

        self.store.begin_gesture()
        self.mode = InteractionMode.MOVING
        self._snapshot = snapshot

    def _begin_multi_move(self, target: Annotation, point: Point) -> None:
        if not self.selection.contains(target.id):
            self.selection.select_only(target.id)

        snapshot = DragSnapshot(start_point=point)
        for annotation_id in self.selection.selected_ids:
            ann = self.store.get(annotation_id)
            if ann is None:
                continue
            if ann.is_point_like and ann.point is not None:
                snapshot.initial_multi[ann.id] = ann.point
            elif ann.annotation_type == AnnotationType.RECT:
                snapshot.initial_multi[ann.id] = copy.deepcopy(ann.rects)

        self.store.begin_gesture()
        self.mode = InteractionMode.MOVING_MULTI
        self._snapshot = snapshot

    def pointer_move(self, event: PointerEvent) -> None:
        snapshot = self._snapshot
        if self.mode == InteractionMode.IDLE or snapshot is None:
            return

        if self.mode == InteractionMode.PANNING:
            vx, vy = event.viewport_position
            sx, sy = snapshot.client_start
            ix, iy = snapshot.initial_scroll
            self.scroll_offset = (ix - (vx - sx), iy - (vy - sy))
            self.scroll_requested.emit(int(round(self.scroll_offset[0])), int(round(self.scroll_offset[1])))
            return

        point = self._relative(event)
        dx = point.x - snapshot.start_point.x
        dy = point.y - snapshot.start_point.y

        if self.mode == InteractionMode.SELECTING:
            box = normalized_box(snapshot.start_point, point)
            self.selection.update_box(box, self.store.page_annotations())
            self.interaction_changed.emit()

        elif self.mode == InteractionMode.MOVING_MULTI:
            for annotation_id, initial in snapshot.initial_multi.items():
                if isinstance(initial, Point):
                    self.store.set_geometry(annotation_id, point=clamp_point(initial.x + dx, initial.y + dy))
                else:
                    moved = [clamp_rect_origin(Rect(r.x + dx, r.y + dy, r.width, r.height)) for r in initial]
                    self.store.set_geometry(annotation_id, rects=moved)
            self.annotations_changed.emit()

        elif self.mode == InteractionMode.MOVING:
            ann = self.store.get(snapshot.annotation_id)
            if ann is None:
                return
            if snapshot.initial_point is not None:
                initial = snapshot.initial_point
                self.store.set_geometry(ann.id, point=clamp_point(initial.x + dx, initial.y + dy))
            elif snapshot.initial_rect is not None and snapshot.rect_index < len(ann.rects):
                initial = snapshot.initial_rect
                rects = list(ann.rects)
                rects[snapshot.rect_index] = clamp_rect_origin(
                    Rect(initial.x + dx, initial.y + dy, initial.width, initial.height))
                self.store.set_geometry(ann.id, rects=rects)
            self.annotations_changed.emit()

        elif self.mode == InteractionMode.RESIZING:
            ann = self.store.get(snapshot.annotation_id)
            if ann is None or snapshot.rect_index >= len(ann.rects):
                return
            rects = list(ann.rects)
            rects[snapshot.rect_index] = resize_rect(
                snapshot.initial_rect, snapshot.handle.value, dx, dy, self.config.min_rect_size)
            self.store.set_geometry(ann.id, rects=rects)
            self.annotations_changed.emit()

        elif self.mode == InteractionMode.CREATING:
            self._creation_current = point
            self.interaction_changed.emit()

    def pointer_up(self, event: PointerEvent) -> None:
        if self.mode == InteractionMode.IDLE:
            if event.button == PointerButton.RIGHT and self._right_press is not None:
                self._finish_right_click(event)
            self._right_press = None
            return

        mode, snapshot = self.mode, self._snapshot
        self._reset_gesture()

        if snapshot is None or mode == InteractionMode.PANNING:
            return

        if mode in (InteractionMode.MOVING, InteractionMode.RESIZING, InteractionMode.MOVING_MULTI):
            self.store.commit_gesture()
            self.annotations_changed.emit()

        elif mode == InteractionMode.SELECTING:
            self.selection.finish_box()
            self.interaction_changed.emit()

        elif mode == InteractionMode.CREATING:
            if event.button == PointerButton.LEFT:
                self._finish_rect(snapshot, self._relative(event), event.modifiers.extend)
            self.interaction_changed.emit()

    def cancel(self) -> bool:
        """
        Abort the gesture in progress, restoring pre-gesture geometry.

        Returns:
            True if a gesture was cancelled
        """
        if self.mode == InteractionMode.IDLE:
            self._right_press = None
            return False

        mode, snapshot = self.mode, self._snapshot
        self._reset_gesture()

        if mode in (InteractionMode.MOVING, InteractionMode.RESIZING, InteractionMode.MOVING_MULTI):
            self.store.cancel_gesture()
            self.annotations_changed.emit()
        elif mode == InteractionMode.SELECTING:
            self.selection.clear()
        elif mode == InteractionMode.PANNING and snapshot is not None:
            self.scroll_offset = snapshot.initial_scroll
            self.scroll_requested.emit(int(round(self.scroll_offset[0])), int(round(self.scroll_offset[1])))

        self.interaction_changed.emit()
        return True

    def _reset_gesture(self) -> None:
        self.mode = InteractionMode.IDLE
        self._snapshot = None
        self._creation_current = None
        self._right_press = None

    # Creation

    def _finish_rect(self, snapshot: DragSnapshot, end: Point, extend: bool) -> None:
        cfg = self.config
        start = snapshot.start_point

        if abs(end.x - start.x) > cfg.click_threshold or abs(end.y - start.y) > cfg.click_threshold:
            box = normalized_box(start, end)
            width = max(box.width, cfg.min_rect_size)
            height = max(box.height, cfg.min_rect_size)
            rect = Rect(
                x=clamp(box.x, 0.0, 1.0 - width),
                y=clamp(box.y, 0.0, 1.0 - height),
                width=width,
                height=height
            )
        else:
            rect = Rect(
                x=clamp(start.x - cfg.default_rect_offset_x, 0.0, 1.0 - cfg.default_rect_width),
                y=clamp(start.y - cfg.default_rect_offset_y, 0.0, 1.0 - cfg.default_rect_height),
                width=cfg.default_rect_width,
                height=cfg.default_rect_height
            )

        target_id = snapshot.extend_target_id
        if target_id is None and extend:
            target_id = self._editing_id
        target = self.store.get(target_id)
        if target is not None and target.annotation_type == AnnotationType.RECT \
                and target.page_index == self.store.page_index:
            self.store.append_rect(target.id, rect)
            self.annotations_changed.emit()
            return

        annotation = Annotation(
            id=self.ids.next_id(),
            mode=self._active_mode,
            page_index=self.store.page_index,
            annotation_type=AnnotationType.RECT,
            rects=[rect],
            text=""
        )
        self.store.add(annotation)
        self.new_annotation_id = annotation.id
        self._set_editing(annotation.id)
        self.annotations_changed.emit()

    def _finish_right_click(self, event: PointerEvent) -> None:
        if self._active_mode.is_tool:
            return

        press = self._right_press
        point = self._relative(event)
        if math.hypot(point.x - press.x, point.y - press.y) >= self.config.click_threshold:
            return

        group = event.modifiers.group
        number = next_dot_number(self.store.annotations, self._active_mode, group)
        annotation = Annotation(
            id=self.ids.next_id(),
            mode=self._active_mode,
            page_index=self.store.page_index,
            annotation_type=AnnotationType.DOT,
            x=press.x,
            y=press.y,
            number=number,
            is_elaboration=group or event.modifiers.extend
        )
        self.store.add(annotation)
        self.annotations_changed.emit()

    def _create_stamp(self, point: Point) -> None:
        scores, grader = self._score_provider()
        annotation = Annotation(
            id=self.ids.next_id(),
            mode=GradingMode.STAMPER,
            page_index=self.store.page_index,
            annotation_type=AnnotationType.STAMP,
            x=point.x,
            y=point.y,
            stamp_data=StampData(
                scores=scores,
                total=scores.total,
                grader=grader,
                date=format_stamp_date(self._today())
            )
        )
        self.store.add(annotation)
        self.annotations_changed.emit()

    # Editor and keyboard operations

    def focus_annotation(self, annotation_id: Optional[str]) -> None:
        """Open the editor on an existing annotation (or close it with None)."""
        self._set_editing(annotation_id)

    def edit_fields(self, annotation_id: str, **fields) -> bool:
        """Editor writes (code, correction, text) go through the store."""
        changed = self.store.update(annotation_id, **fields)
        if changed:
            self.annotations_changed.emit()
        return changed

    def editor_commit(self) -> None:
        self.new_annotation_id = None
        self._set_editing(None)

    def editor_cancel(self) -> None:
        """Close the editor; a freshly created annotation is removed."""
        if self.is_editing_new:
            self.store.delete(self._editing_id)
            self.annotations_changed.emit()
        self.new_annotation_id = None
        self._set_editing(None)

    def delete_selected(self) -> int:
        """
        Delete the multi-selection, or the focused annotation if nothing is selected.

        Returns:
            Number of annotations removed
        """
        ids = self.selection.selected_ids
        if not ids and self._editing_id is not None:
            ids = [self._editing_id]
        removed = self.store.delete_many(ids)

        self.selection.clear()
        if self._editing_id in ids:
            self.new_annotation_id = None
            self._set_editing(None)
        if removed:
            self.annotations_changed.emit()
        return removed

    def undo(self) -> bool:
        self.cancel()
        done = self.store.undo()
        if done:
            self._after_history_change()
        return done

    def redo(self) -> bool:
        self.cancel()
        done = self.store.redo()
        if done:
            self._after_history_change()
        return done

    def _after_history_change(self) -> None:
        existing = {a.id for a in self.store.annotations}
        self.selection.set_selection(i for i in self.selection.selected_ids if i in existing)
        if self._editing_id is not None and self._editing_id not in existing:
            self.new_annotation_id = None
            self._set_editing(None)
        self.annotations_changed.emit()

    def escape(self) -> bool:
        """
        Handle the Escape key.

        Cancels a gesture in progress, otherwise closes the editor, otherwise
        leaves the select / stamper tool and clears the selection.

        Returns:
            True if anything changed
        """
        if self.cancel():
            return True
        if self._editing_id is not None:
            self.editor_cancel()
            return True
        if self._active_mode.is_tool:
            self.selection.clear()
            self.set_active_mode(GradingMode.GENERAL)
            return True
        if self.selection.has_selection():
            self.selection.clear()
            return True
        return False

    def reset(self) -> None:
        """Drop all transient state, e.g. when the page or student changes."""
        self.cancel()
        self.selection.clear()
        self.new_annotation_id = None
        self._set_editing(None)
