from pathlib import Path

import fitz
import numpy as np
import pytest
from PIL import Image

from essaymark.controllers import GradingController
from essaymark.core.annotations.models import GradingMode
from essaymark.core.geometry import SurfaceBounds
from essaymark.core.interaction import PointerButton, PointerEvent
from essaymark.core.session import SessionPersistence


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def _scan(path, shade=200):
    Image.fromarray(np.full((40, 30, 3), shade, dtype=np.uint8)).save(path)
    return str(path)


@pytest.fixture
def grading(tmp_path):
    clock = FakeClock()
    controller = GradingController(
        persistence=SessionPersistence(str(tmp_path / 'sessions'), str(tmp_path / 'cache')),
        pages_dir=str(tmp_path / 'pages'),
        clock=clock
    )
    controller.clock = clock
    controller.new_session('Mock exam', 'Ms Smith')
    scans = [_scan(tmp_path / f'scan{i}.png') for i in range(3)]
    assert controller.import_scripts(scans + [str(tmp_path / 'notes.txt')]) == 3
    controller.interaction.set_surface_bounds(SurfaceBounds(0, 0, 1000, 1000))
    return controller


def _click_dot(grading, x, y):
    grading.interaction.pointer_down(PointerEvent(position=(x, y), button=PointerButton.RIGHT))
    grading.interaction.pointer_up(PointerEvent(position=(x, y), button=PointerButton.RIGHT))


def test_import_creates_one_student_per_page(grading, tmp_path):
    names = [s.name for s in grading.students]
    assert names == ['Untitled 1', 'Untitled 2', 'Untitled 3']
    assert all(s.images[0].startswith(str(tmp_path / 'pages')) for s in grading.students)
    assert grading.current_image == grading.students[0].images[0]


def test_navigation_crosses_students(grading):
    assert grading.next_page()
    assert grading.student_index == 1
    assert grading.next_page() and grading.next_page() is False
    assert grading.previous_page()
    assert grading.student_index == 1


def test_annotations_follow_the_current_student(grading):
    _click_dot(grading, 500, 500)
    assert len(grading.students[0].annotations) == 1

    grading.next_page()
    assert grading.store.annotations == []
    assert not grading.interaction.undo()

    grading.previous_page()
    assert grading.interaction.undo()
    assert grading.students[0].annotations == []


def test_scores_and_time(grading):
    assert grading.update_score(GradingMode.CONTENT, 4)
    assert not grading.update_score(GradingMode.STAMPER, 4)
    assert grading.current_student.scores.total == 4

    grading.clock.now += 30
    grading.next_page()
    assert grading.students[0].time_spent == pytest.approx(30)


def test_stamp_uses_session_grader(grading):
    grading.update_score(GradingMode.LANGUAGE, 3)
    grading.interaction.set_active_mode(GradingMode.STAMPER)
    grading.interaction.pointer_down(PointerEvent(position=(100, 100)))
    stamp = grading.store.annotations[-1]
    assert stamp.stamp_data.grader == 'Ms Smith'
    assert stamp.stamp_data.total == 3


def test_merge_and_split(grading):
    _click_dot(grading, 500, 500)
    grading.next_page()
    _click_dot(grading, 200, 200)

    assert grading.merge_with_previous()
    assert len(grading.students) == 2
    merged = grading.current_student
    assert merged.page_count == 2
    assert grading.page_index == 1
    assert sorted(a.page_index for a in merged.annotations) == [0, 1]
    assert not grading.interaction.undo()

    assert grading.split_student_at_page()
    assert len(grading.students) == 3
    assert grading.student_index == 1
    assert grading.current_student.name.endswith('(Part 2)')
    assert [a.page_index for a in grading.current_student.annotations] == [0]


def test_save_and_resume(grading, tmp_path):
    _click_dot(grading, 500, 500)
    grading.next_page()
    assert grading.save()

    other = GradingController(
        persistence=SessionPersistence(str(tmp_path / 'sessions'), str(tmp_path / 'cache')),
        pages_dir=str(tmp_path / 'pages')
    )
    assert other.resume(grading.session.id)
    assert other.student_index == 1
    assert len(other.students[0].annotations) == 1
    assert not other.resume('missing')


def test_gradebook_export(grading, tmp_path):
    grading.update_score(GradingMode.CONTENT, 5)
    path = tmp_path / 'grades.csv'
    assert grading.export_gradebook(str(path))
    assert 'Untitled 1,5' in path.read_text(encoding='utf-8')
    assert grading.stats().average == pytest.approx(1.7)


def _pdf(path, pages):
    path.parent.mkdir(parents=True, exist_ok=True)
    with fitz.open() as doc:
        for _ in range(pages):
            doc.new_page(width=300, height=400)
        doc.save(str(path))
    return str(path)


def test_pdfs_with_the_same_name_keep_their_own_pages(grading, tmp_path):
    first = _pdf(tmp_path / 'a' / 'scan.pdf', 1)
    second = _pdf(tmp_path / 'b' / 'scan.pdf', 2)
    assert grading.import_scripts([first, second, first]) == 4

    images = [s.images[0] for s in grading.students[3:]]
    assert len(set(images)) == 4
    assert all(Path(image).exists() for image in images)
