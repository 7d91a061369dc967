"""
Controller for a grading session.
"""
import logging
import shutil
import time
from dataclasses import replace
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

from PyQt5.QtCore import QObject, pyqtSignal

from essaymark.config import AppConfig
from essaymark.core.annotations import AnnotationStore, GradingMode, HistoryEngine, IdGenerator, StudentScore
from essaymark.core.errors import ImageDecodeError
from essaymark.core.export.reports import ClassStats, class_stats, write_gradebook_csv
from essaymark.core.imaging.enhancement import EnhancementKey, EnhancementService
from essaymark.core.imaging.image_io import is_image_file, is_pdf_file, render_pdf_pages
from essaymark.core.interaction import InteractionController
from essaymark.core.session import (
    GradingSession,
    SessionPersistence,
    Student,
    merge_next,
    merge_with_previous,
    new_id,
    split_at_page
)

logger = logging.getLogger(__name__)


class GradingController(QObject):
    """Holds the session and the current student/page, and wires the editing core to it."""

    # Signals
    session_changed = pyqtSignal()  # students added, removed or re-arranged
    page_changed = pyqtSignal(int, int)  # student index, page index
    page_image_changed = pyqtSignal(object)  # image path or RGBA ndarray
    scores_changed = pyqtSignal()
    enhancement_failed = pyqtSignal(str)

    def __init__(self, config: Optional[AppConfig] = None, persistence: Optional[SessionPersistence] = None,
                 enhancement: Optional[EnhancementService] = None, pages_dir: Optional[str] = None,
                 clock: Callable[[], float] = time.monotonic, parent=None):
        super().__init__(parent)
        self.config = config or AppConfig()
        self.persistence = persistence or SessionPersistence()
        self._pages_dir = pages_dir
        self._clock = clock

        self.history = HistoryEngine(self.config.history.typing_idle_window, self.config.history.max_depth)
        self.store = AnnotationStore(self.history)
        self.ids = IdGenerator()
        self.interaction = InteractionController(
            self.store,
            score_provider=self.current_scores_and_grader,
            config=self.config.interaction,
            id_generator=self.ids
        )

        self.enhancement = enhancement or EnhancementService(self.config.sauvola)
        self.enhancement.image_ready.connect(self._on_image_ready)
        self.enhancement.image_failed.connect(self._on_image_failed)

        self.session: Optional[GradingSession] = None
        self.student_index = 0
        self.page_index = 0
        self.enhance_mode = False
        self._pending_key: Optional[EnhancementKey] = None
        self._timer_start: Optional[float] = None

    # Session lifecycle

    def new_session(self, name: str, grader_name: str = '', level: str = '', part: str = '1',
                    task_description: str = '') -> GradingSession:
        self._flush_time()
        self.session = GradingSession(
            id=new_id(),
            name=name,
            grader_name=grader_name or self.config.default_grader,
            level=level,
            part=part,
            task_description=task_description
        )
        self.history.clear_all()
        self.student_index = 0
        self.page_index = 0
        self._bind_current()
        self.session_changed.emit()
        return self.session

    def resume(self, session_id: str) -> bool:
        """
        Load a saved session and return to where grading stopped.

        Returns:
            True if the session was loaded
        """
        session = self.persistence.load_session(session_id)
        if session is None:
            return False

        self._flush_time()
        self.enhancement.cancel_all()
        self.session = session
        self.ids.seed_above(session.all_annotation_ids())
        self.history.clear_all()

        self.student_index = min(max(session.last_student_index, 0), max(len(session.students) - 1, 0))
        student = self.current_student
        pages = student.page_count if student else 0
        self.page_index = min(max(session.last_image_index, 0), max(pages - 1, 0))
        self._bind_current()
        self.session_changed.emit()
        logger.info("Resumed session %s (%d students)", session.name, len(session.students))
        return True

    def save(self) -> bool:
        if self.session is None:
            return False
        self._flush_time()
        self.session.last_student_index = self.student_index
        self.session.last_image_index = self.page_index
        return self.persistence.save_session(self.session)

    # Current position

    @property
    def students(self) -> List[Student]:
        return self.session.students if self.session else []

    @property
    def current_student(self) -> Optional[Student]:
        if self.session is None:
            return None
        return self.session.student(self.student_index)

    @property
    def current_image(self) -> Optional[str]:
        student = self.current_student
        if student is None or not 0 <= self.page_index < student.page_count:
            return None
        return student.images[self.page_index]

    def _bind_current(self) -> None:
        self.interaction.reset()
        student = self.current_student
        if student is None:
            self.store.set_subject(None, [], 0)
        else:
            self.store.set_subject(student.id, student.annotations, self.page_index)
        self._timer_start = self._clock() if student is not None else None
        self.page_changed.emit(self.student_index, self.page_index)
        self._refresh_page_image()

    def go_to(self, student_index: int, page_index: int = 0) -> bool:
        """
        Show a page of a student.

        Returns:
            True if the position exists
        """
        if self.session is None or self.session.student(student_index) is None:
            return False
        if not 0 <= page_index < max(self.session.students[student_index].page_count, 1):
            return False

        if student_index != self.student_index:
            self._flush_time()
            self.student_index = student_index
            self.page_index = page_index
            self._bind_current()
        elif page_index != self.page_index:
            self.interaction.reset()
            self.page_index = page_index
            self.store.set_page(page_index)
            self.page_changed.emit(self.student_index, self.page_index)
            self._refresh_page_image()
        return True

    def go_to_student(self, student_index: int) -> bool:
        return self.go_to(student_index, 0)

    def next_page(self) -> bool:
        """Next page, moving on to the next student after the last page."""
        student = self.current_student
        if student is None:
            return False
        if self.page_index < student.page_count - 1:
            return self.go_to(self.student_index, self.page_index + 1)
        return self.go_to(self.student_index + 1, 0)

    def previous_page(self) -> bool:
        """Previous page, moving back to the last page of the previous student."""
        if self.current_student is None:
            return False
        if self.page_index > 0:
            return self.go_to(self.student_index, self.page_index - 1)
        previous = self.session.student(self.student_index - 1)
        if previous is None:
            return False
        return self.go_to(self.student_index - 1, max(previous.page_count - 1, 0))

    # Time accounting

    def _flush_time(self) -> None:
        student = self.current_student
        if student is None or self._timer_start is None:
            return
        now = self._clock()
        student.time_spent += now - self._timer_start
        self._timer_start = now

    def current_time_spent(self) -> float:
        student = self.current_student
        if student is None:
            return 0
        running = self._clock() - self._timer_start if self._timer_start is not None else 0
        return student.time_spent + running

    # Scores

    def current_scores_and_grader(self) -> Tuple[StudentScore, str]:
        student = self.current_student
        scores = student.scores if student else StudentScore()
        grader = (self.session.grader_name if self.session else '') or self.config.default_grader
        return scores, grader

    def update_score(self, mode: GradingMode, value: float) -> bool:
        student = self.current_student
        if student is None or mode.is_tool or mode == GradingMode.GENERAL:
            return False
        student.scores = replace(student.scores, **{mode.value: value})
        self.scores_changed.emit()
        return True

    def update_justification(self, mode: GradingMode, text: str) -> bool:
        student = self.current_student
        if student is None or mode.value not in student.justifications:
            return False
        student.justifications[mode.value] = text
        return True

    def rename_student(self, name: str) -> None:
        student = self.current_student
        if student is not None:
            student.name = name
            self.session_changed.emit()

    # Import and script editing

    def pages_dir(self) -> Path:
        if self._pages_dir:
            base = Path(self._pages_dir)
        else:
            base = self.persistence.sessions_dir.parent / "pages"
        return base / self.session.id

    def import_scripts(self, paths: Iterable[str]) -> int:
        """
        Add students from scanned scripts. Every image file, and every page
        of every PDF, becomes a new student.

        Returns:
            Number of students added
        """
        if self.session is None:
            self.new_session("Untitled Session")

        target_dir = self.pages_dir()
        target_dir.mkdir(parents=True, exist_ok=True)

        was_empty = not self.session.students
        start = len(self.session.students) + 1
        added = 0
        for path in paths:
            try:
                if is_pdf_file(path):
                    images = render_pdf_pages(path, str(target_dir), prefix=new_id())
                elif is_image_file(path):
                    copy_path = target_dir / f"{new_id()}{Path(path).suffix.lower()}"
                    shutil.copy2(path, copy_path)
                    images = [str(copy_path)]
                else:
                    logger.warning("Skipping unsupported file %s", path)
                    continue
            except (ImageDecodeError, OSError) as e:
                logger.warning("Could not import %s: %s", path, e)
                continue

            for image in images:
                self.session.students.append(Student(id=new_id(), name=f"Untitled {start + added}",
                                                     images=[image]))
                added += 1

        if added:
            logger.info("Imported %d script page(s)", added)
            if was_empty:
                self.student_index = 0
                self.page_index = 0
                self._bind_current()
            self.session_changed.emit()
        return added

    def _forget_students(self, student_ids: Iterable[str]) -> None:
        for student_id in student_ids:
            self.history.clear(student_id)
            self.enhancement.invalidate_subject(self.session.id, student_id)

    def merge_next_student(self) -> bool:
        if self.session is None:
            return False
        affected = [s.id for s in self.session.students[self.student_index:self.student_index + 2]]
        self._flush_time()
        if not merge_next(self.session, self.student_index):
            return False
        self._forget_students(affected)
        self._bind_current()
        self.session_changed.emit()
        return True

    def merge_with_previous(self) -> bool:
        if self.session is None or self.student_index == 0:
            return False
        affected = [s.id for s in self.session.students[self.student_index - 1:self.student_index + 1]]
        self._flush_time()
        first_page = merge_with_previous(self.session, self.student_index)
        if first_page is None:
            return False
        self._forget_students(affected)
        self.student_index -= 1
        self.page_index = first_page
        self._bind_current()
        self.session_changed.emit()
        return True

    def split_student_at_page(self) -> bool:
        """Move the current page and the ones after it into a new student."""
        student = self.current_student
        if student is None:
            return False
        self._flush_time()
        if not split_at_page(self.session, self.student_index, self.page_index):
            return False
        self._forget_students([student.id])
        self.student_index += 1
        self.page_index = 0
        self._bind_current()
        self.session_changed.emit()
        return True

    # Enhancement

    def set_enhance_mode(self, on: bool) -> None:
        if on == self.enhance_mode:
            return
        self.enhance_mode = on
        self._refresh_page_image()

    def _current_key(self) -> Optional[EnhancementKey]:
        student = self.current_student
        if self.session is None or student is None:
            return None
        return EnhancementKey(self.session.id, student.id, self.page_index)

    def _refresh_page_image(self) -> None:
        key = self._current_key()
        if self._pending_key is not None and self._pending_key != key:
            self.enhancement.cancel(self._pending_key)
            self._pending_key = None

        image = self.current_image
        if image is None:
            self.page_image_changed.emit(None)
            return

        if self.enhance_mode:
            result = self.enhancement.request(key, image)
            if result is not None:
                self.page_image_changed.emit(result)
                return
            self._pending_key = key

        self.page_image_changed.emit(image)

    def _on_image_ready(self, key: EnhancementKey, result) -> None:
        if key == self._pending_key:
            self._pending_key = None
        if self.enhance_mode and key == self._current_key():
            self.page_image_changed.emit(result)

    def _on_image_failed(self, key: EnhancementKey, message: str) -> None:
        if key == self._pending_key:
            self._pending_key = None
        if key == self._current_key():
            self.enhancement_failed.emit(message)

    # Reports

    def stats(self) -> Optional[ClassStats]:
        self._flush_time()
        return class_stats(self.students)

    def export_gradebook(self, path: str) -> bool:
        self._flush_time()
        return write_gradebook_csv(self.students, path)

    def delete_session(self, session_id: str) -> bool:
        if self.session is not None and self.session.id == session_id:
            self.enhancement.cancel_all()
            self.session = None
            self._bind_current()
        return self.persistence.delete_session(session_id)
