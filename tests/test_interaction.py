import datetime

import pytest

from essaymark.core.annotations.history import HistoryEngine
from essaymark.core.annotations.labels import dot_labels
from essaymark.core.annotations.models import (
    Annotation,
    AnnotationType,
    GradingMode,
    IdGenerator,
    StudentScore
)
from essaymark.core.annotations.store import AnnotationStore
from essaymark.core.geometry import Rect, SurfaceBounds
from essaymark.core.interaction import (
    InteractionController,
    InteractionMode,
    Modifiers,
    PointerButton,
    PointerEvent,
    ResizeHandle,
    annotations_in_box
)


def approx_rect(rect, x, y, w, h):
    return (rect.x, rect.y, rect.width, rect.height) == (
        pytest.approx(x), pytest.approx(y), pytest.approx(w), pytest.approx(h))


class Scores:
    def __init__(self):
        self.scores = StudentScore(content=4, communicative=3, organisation=3.5, language=2)

    def __call__(self):
        return self.scores, "Ms Smith"


@pytest.fixture
def controller():
    store = AnnotationStore(HistoryEngine())
    store.set_subject('student-1', [])
    ctrl = InteractionController(
        store,
        score_provider=Scores(),
        id_generator=IdGenerator(start=0),
        today=lambda: datetime.date(2026, 10, 19)
    )
    ctrl.set_surface_bounds(SurfaceBounds(0, 0, 1000, 1000))
    ctrl.set_active_mode(GradingMode.LANGUAGE)
    return ctrl


def left(x, y, **kwargs):
    return PointerEvent(position=(x, y), button=PointerButton.LEFT, **kwargs)


def right(x, y, **kwargs):
    return PointerEvent(position=(x, y), button=PointerButton.RIGHT, **kwargs)


def drag(ctrl, start, end, **kwargs):
    ctrl.pointer_down(left(*start, **kwargs))
    ctrl.pointer_move(left(*end, **kwargs))
    ctrl.pointer_up(left(*end, **kwargs))


def create_rect(ctrl, start=(200, 200), end=(300, 250)):
    drag(ctrl, start, end)
    return ctrl.store.annotations[-1]


def test_create_move_resize_and_undo(controller):
    ann = create_rect(controller)
    assert ann.annotation_type == AnnotationType.RECT
    assert ann.mode == GradingMode.LANGUAGE
    assert approx_rect(ann.rects[0], 0.2, 0.2, 0.1, 0.05)
    assert controller.editing_id == ann.id and controller.is_editing_new

    drag(controller, (250, 225), (350, 225), target_id=ann.id, rect_index=0)
    assert approx_rect(controller.store.get(ann.id).rects[0], 0.3, 0.2, 0.1, 0.05)

    drag(controller, (400, 250), (500, 300), target_id=ann.id, rect_index=0, handle=ResizeHandle.SE)
    assert approx_rect(controller.store.get(ann.id).rects[0], 0.3, 0.2, 0.2, 0.1)
    assert controller.mode == InteractionMode.IDLE

    assert controller.undo()
    assert approx_rect(controller.store.get(ann.id).rects[0], 0.3, 0.2, 0.1, 0.05)
    assert controller.undo()
    assert approx_rect(controller.store.get(ann.id).rects[0], 0.2, 0.2, 0.1, 0.05)
    assert controller.undo()
    assert controller.store.get(ann.id) is None
    assert controller.editing_id is None


def test_click_creates_default_rect(controller):
    ann = create_rect(controller, (500, 500), (502, 501))
    assert approx_rect(ann.rects[0], 0.47, 0.49, 0.06, 0.02)


def test_default_rect_stays_on_page(controller):
    ann = create_rect(controller, (0, 0), (0, 0))
    assert approx_rect(ann.rects[0], 0.0, 0.0, 0.06, 0.02)


def test_move_is_clamped_to_page(controller):
    ann = create_rect(controller)
    drag(controller, (250, 225), (5000, 5000), target_id=ann.id, rect_index=0)
    rect = controller.store.get(ann.id).rects[0]
    assert rect.right == pytest.approx(1.0) and rect.bottom == pytest.approx(1.0)


def test_cancel_restores_geometry_without_history(controller):
    ann = create_rect(controller)
    entries = len(controller.store.history.entry(controller.store.history_key).past)

    controller.pointer_down(left(250, 225, target_id=ann.id, rect_index=0))
    controller.pointer_move(left(600, 600, target_id=ann.id, rect_index=0))
    assert controller.cancel()

    assert approx_rect(controller.store.get(ann.id).rects[0], 0.2, 0.2, 0.1, 0.05)
    assert len(controller.store.history.entry(controller.store.history_key).past) == entries
    assert controller.mode == InteractionMode.IDLE
    assert not controller.cancel()


def test_stale_target_is_ignored(controller):
    controller.pointer_down(left(100, 100, target_id='gone'))
    assert controller.mode == InteractionMode.IDLE


def test_shift_drag_extends_focused_rect(controller):
    ann = create_rect(controller)
    shift = Modifiers(extend=True)
    drag(controller, (200, 300), (400, 330), modifiers=shift)

    rects = controller.store.get(ann.id).rects
    assert len(rects) == 2
    assert approx_rect(rects[1], 0.2, 0.3, 0.2, 0.03)
    assert len(controller.store.annotations) == 1


def test_shift_drag_on_rect_extends_it(controller):
    ann = create_rect(controller)
    controller.editor_commit()
    shift = Modifiers(extend=True)
    drag(controller, (250, 225), (400, 400), modifiers=shift, target_id=ann.id, rect_index=0)
    assert len(controller.store.get(ann.id).rects) == 2


def test_plain_click_elsewhere_starts_new_annotation(controller):
    first = create_rect(controller)
    second = create_rect(controller, (600, 600), (700, 650))
    assert first.id != second.id
    assert controller.editing_id == second.id


def test_right_click_numbers_dots(controller):
    controller.pointer_down(right(500, 500))
    controller.pointer_up(right(502, 501))
    controller.pointer_down(right(600, 600))
    controller.pointer_up(right(600, 600))

    group = Modifiers(group=True)
    controller.pointer_down(right(700, 700, modifiers=group))
    controller.pointer_up(right(700, 700, modifiers=group))

    dots = [a for a in controller.store.annotations if a.annotation_type == AnnotationType.DOT]
    assert [d.number for d in dots] == [1, 2, 2]
    assert dots[0].x == pytest.approx(0.5) and dots[0].y == pytest.approx(0.5)
    assert dots[2].is_elaboration
    labels = dot_labels(dots)
    assert [labels[d.id] for d in dots] == ['1', '2', '2a']


def test_right_drag_creates_no_dot(controller):
    controller.pointer_down(right(500, 500))
    controller.pointer_up(right(600, 600))
    assert controller.store.annotations == []


def test_no_dots_in_tool_modes(controller):
    controller.set_active_mode(GradingMode.SELECT)
    controller.pointer_down(right(500, 500))
    controller.pointer_up(right(500, 500))
    assert controller.store.annotations == []


def test_stamp_keeps_score_snapshot(controller):
    provider = controller._score_provider
    controller.set_active_mode(GradingMode.STAMPER)
    controller.pointer_down(left(100, 800))
    controller.pointer_up(left(100, 800))

    stamp = controller.store.annotations[-1]
    assert stamp.annotation_type == AnnotationType.STAMP
    assert stamp.mode == GradingMode.STAMPER
    assert stamp.stamp_data.total == 12.5
    assert stamp.stamp_data.grader == "Ms Smith"
    assert stamp.stamp_data.date == "19 Oct 2026"

    provider.scores = StudentScore(content=5, communicative=5, organisation=5, language=5)
    assert controller.store.get(stamp.id).stamp_data.total == 12.5
    assert controller.store.get(stamp.id).stamp_data.scores.content == 4


def test_rubber_band_selects_overlapping(controller):
    rect = create_rect(controller)
    controller.editor_commit()
    controller.pointer_down(right(350, 350))
    controller.pointer_up(right(350, 350))
    far = create_rect(controller, (800, 800), (900, 900))
    controller.editor_commit()

    controller.set_active_mode(GradingMode.SELECT)
    controller.pointer_down(left(0, 0))
    controller.pointer_move(left(400, 400))
    assert controller.selection_box is not None
    controller.pointer_up(left(400, 400))

    selected = set(controller.selected_ids)
    dot = controller.store.annotations[1]
    assert selected == {rect.id, dot.id}
    assert far.id not in selected
    assert controller.selection_box is None


def test_multi_move_is_one_history_entry(controller):
    rect = create_rect(controller)
    controller.editor_commit()
    controller.pointer_down(right(500, 500))
    controller.pointer_up(right(500, 500))
    dot = controller.store.annotations[-1]

    controller.set_active_mode(GradingMode.SELECT)
    controller.selection.set_selection([rect.id, dot.id])
    drag(controller, (250, 225), (350, 325), target_id=rect.id, rect_index=0)

    assert approx_rect(controller.store.get(rect.id).rects[0], 0.3, 0.3, 0.1, 0.05)
    assert controller.store.get(dot.id).x == pytest.approx(0.6)

    assert controller.undo()
    assert approx_rect(controller.store.get(rect.id).rects[0], 0.2, 0.2, 0.1, 0.05)
    assert controller.store.get(dot.id).x == pytest.approx(0.5)


def test_leaving_select_mode_clears_selection(controller):
    rect = create_rect(controller)
    controller.set_active_mode(GradingMode.SELECT)
    controller.selection.set_selection([rect.id])
    controller.set_active_mode(GradingMode.CONTENT)
    assert controller.selected_ids == []


def test_delete_selected(controller):
    first = create_rect(controller)
    second = create_rect(controller, (600, 600), (700, 650))
    controller.editor_commit()
    controller.selection.set_selection([first.id, second.id])
    assert controller.delete_selected() == 2
    assert controller.store.annotations == []
    assert controller.undo()
    assert len(controller.store.annotations) == 2


def test_escape_discards_new_annotation(controller):
    ann = create_rect(controller)
    assert controller.escape()
    assert controller.store.get(ann.id) is None
    assert controller.editing_id is None


def test_editor_commit_keeps_annotation(controller):
    ann = create_rect(controller)
    controller.edit_fields(ann.id, code='SP', correction='their')
    controller.editor_commit()
    controller.escape()
    kept = controller.store.get(ann.id)
    assert kept.code == 'SP' and kept.correction == 'their'


def test_escape_leaves_tool_mode(controller):
    controller.set_active_mode(GradingMode.STAMPER)
    assert controller.escape()
    assert controller.active_mode == GradingMode.GENERAL
    assert not controller.escape()


def test_undo_cancels_active_gesture(controller):
    ann = create_rect(controller)
    controller.pointer_down(left(250, 225, target_id=ann.id, rect_index=0))
    controller.pointer_move(left(600, 600, target_id=ann.id, rect_index=0))
    assert controller.undo()
    assert controller.mode == InteractionMode.IDLE
    assert controller.store.get(ann.id) is None


def test_panning_and_cancel_restore_scroll(controller):
    requested = []
    controller.scroll_requested.connect(lambda x, y: requested.append((x, y)))
    controller.set_scroll_offset(50, 50)

    middle = dict(button=PointerButton.MIDDLE)
    controller.pointer_down(PointerEvent(position=(0, 0), global_position=(100, 100), **middle))
    controller.pointer_move(PointerEvent(position=(0, 0), global_position=(80, 90), **middle))
    assert controller.scroll_offset == (70, 60)
    assert requested[-1] == (70, 60)

    assert controller.cancel()
    assert controller.scroll_offset == (50, 50)
    assert controller.store.annotations == []


def test_annotations_in_box_matches_points_and_overlaps(controller):
    rect = create_rect(controller)
    controller.editor_commit()
    box = rect.rects[0]
    assert annotations_in_box(controller.store.page_annotations(), box) == [rect.id]


def test_box_selection_includes_overlapping_rect_only():
    def rect_annotation(annotation_id, rect):
        return Annotation(id=annotation_id, mode=GradingMode.LANGUAGE, page_index=0,
                          annotation_type=AnnotationType.RECT, rects=[rect])

    near = rect_annotation('1', Rect(0.05, 0.05, 0.1, 0.1))
    far = rect_annotation('2', Rect(0.5, 0.5, 0.1, 0.1))
    assert annotations_in_box([near, far], Rect(0.1, 0.1, 0.3, 0.3)) == ['1']


def test_flat_drag_gets_minimum_height(controller):
    ann = create_rect(controller, start=(200, 200), end=(400, 200))
    assert approx_rect(ann.rects[0], 0.2, 0.2, 0.2, 0.01)


def test_flat_drag_at_page_edge_stays_on_page(controller):
    ann = create_rect(controller, start=(1000, 300), end=(1000, 500))
    assert approx_rect(ann.rects[0], 0.99, 0.3, 0.01, 0.2)
