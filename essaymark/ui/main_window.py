"""
Main application window for EssayMark.
"""
import logging
from typing import Optional

from PyQt5.QtCore import Qt
from PyQt5.QtGui import QKeySequence
from PyQt5.QtWidgets import (
    QAction,
    QFileDialog,
    QHBoxLayout,
    QInputDialog,
    QMainWindow,
    QMessageBox,
    QScrollArea,
    QToolBar,
    QVBoxLayout,
    QWidget,
)

from essaymark.config import AppConfig, AppPaths
from essaymark.controllers import GradingController, UserInputHandler
from essaymark.core.export import ExportWorker, gradebook_filename
from essaymark.core.imaging import EnhancementService
from essaymark.core.session import SessionPersistence
from .page_canvas import PageCanvas
from .panels import EditorPanel, ScorePanel

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    """Grading window: page canvas in the middle, editor and scores on the right."""

    def __init__(self, config: AppConfig, paths: AppPaths, session_id: Optional[str] = None):
        super().__init__()
        self.config = config
        self._export_worker = None

        self.grading = GradingController(
            config,
            persistence=SessionPersistence(str(paths.sessions_dir), str(paths.cache_dir)),
            enhancement=EnhancementService(config.sauvola, cache_dir=str(paths.cache_dir))
        )
        interaction = self.grading.interaction
        self.input_handler = UserInputHandler(interaction, self.grading.next_page, self.grading.previous_page)

        self._setup_ui()
        self._setup_connections()

        if session_id and not self.grading.resume(session_id):
            QMessageBox.warning(self, "Resume", f"Session {session_id} could not be loaded.")
        if self.grading.session is None:
            self.grading.new_session("Untitled Session", config.default_grader)

    def _setup_ui(self):
        self.setWindowTitle("EssayMark")
        self.resize(1400, 900)

        self.canvas = PageCanvas(self.grading.interaction, self.input_handler)
        self.scroll_area = QScrollArea()
        self.scroll_area.setWidget(self.canvas)
        self.scroll_area.setAlignment(Qt.AlignCenter)

        self.editor_panel = EditorPanel(self.grading.interaction)
        self.score_panel = ScorePanel(self.grading)

        side = QVBoxLayout()
        side.addWidget(self.score_panel)
        side.addWidget(self.editor_panel)
        side.addStretch()
        side_widget = QWidget()
        side_widget.setLayout(side)
        side_widget.setFixedWidth(300)

        central = QWidget()
        layout = QHBoxLayout(central)
        layout.addWidget(self.scroll_area, 1)
        layout.addWidget(side_widget)
        self.setCentralWidget(central)

        toolbar = QToolBar("Main")
        self.addToolBar(toolbar)
        self._add_action(toolbar, "Import Scripts", self.import_scripts, QKeySequence.Open)
        self._add_action(toolbar, "Save", self.save_session, QKeySequence.Save)
        toolbar.addSeparator()
        self._add_action(toolbar, "Previous", self.grading.previous_page)
        self._add_action(toolbar, "Next", self.grading.next_page)
        self._add_action(toolbar, "Zoom In", lambda: self.canvas.set_zoom(self.canvas.zoom_level * 1.25),
                         QKeySequence.ZoomIn)
        self._add_action(toolbar, "Zoom Out", lambda: self.canvas.set_zoom(self.canvas.zoom_level / 1.25),
                         QKeySequence.ZoomOut)
        toolbar.addSeparator()
        self.enhance_action = self._add_action(toolbar, "Enhance", self.grading.set_enhance_mode)
        self.enhance_action.setCheckable(True)
        toolbar.addSeparator()
        self._add_action(toolbar, "Merge Next", self.grading.merge_next_student)
        self._add_action(toolbar, "Merge Previous", self.grading.merge_with_previous)
        self._add_action(toolbar, "Split Here", self.grading.split_student_at_page)
        self._add_action(toolbar, "Rename", self.rename_student)
        toolbar.addSeparator()
        self._add_action(toolbar, "Export PDF", self.export_pdf)
        self._add_action(toolbar, "Gradebook", self.export_gradebook)
        self._add_action(toolbar, "Statistics", self.show_stats)

    def _add_action(self, toolbar, text, slot, shortcut=None) -> QAction:
        action = QAction(text, self)
        if shortcut is not None:
            action.setShortcut(shortcut)
        action.triggered.connect(slot)
        toolbar.addAction(action)
        return action

    def _setup_connections(self):
        grading = self.grading
        grading.page_image_changed.connect(self.canvas.set_image)
        grading.page_changed.connect(self._update_title)
        grading.session_changed.connect(self._update_title)
        grading.enhancement_failed.connect(
            lambda message: self.statusBar().showMessage(f"Enhancement failed: {message}", 5000))

        interaction = grading.interaction
        interaction.mode_changed.connect(lambda mode: self.statusBar().showMessage(f"Mode: {mode}", 3000))
        interaction.scroll_requested.connect(self._scroll_to)
        self.scroll_area.horizontalScrollBar().valueChanged.connect(self._sync_scroll)
        self.scroll_area.verticalScrollBar().valueChanged.connect(self._sync_scroll)

    def _scroll_to(self, x: int, y: int):
        self.scroll_area.horizontalScrollBar().setValue(x)
        self.scroll_area.verticalScrollBar().setValue(y)

    def _sync_scroll(self, *_):
        self.grading.interaction.set_scroll_offset(
            self.scroll_area.horizontalScrollBar().value(),
            self.scroll_area.verticalScrollBar().value()
        )

    def _update_title(self, *_):
        session = self.grading.session
        student = self.grading.current_student
        if session is None or student is None:
            self.setWindowTitle("EssayMark")
            return
        self.setWindowTitle(
            f"{session.name} - {student.name} "
            f"({self.grading.student_index + 1}/{len(session.students)}, "
            f"page {self.grading.page_index + 1}/{student.page_count}) - EssayMark"
        )

    # Actions

    def import_scripts(self):
        paths, _ = QFileDialog.getOpenFileNames(
            self, "Import Scripts", "", "Scripts (*.pdf *.png *.jpg *.jpeg *.bmp *.tif *.tiff *.webp)")
        if paths:
            added = self.grading.import_scripts(paths)
            self.statusBar().showMessage(f"Imported {added} script page(s)", 5000)

    def save_session(self):
        if self.grading.save():
            self.statusBar().showMessage("Session saved", 3000)
        else:
            QMessageBox.warning(self, "Save", "The session could not be saved.")

    def rename_student(self):
        student = self.grading.current_student
        if student is None:
            return
        name, ok = QInputDialog.getText(self, "Rename Student", "Name:", text=student.name)
        if ok and name.strip():
            self.grading.rename_student(name.strip())

    def export_pdf(self):
        student = self.grading.current_student
        if student is None or self._export_worker is not None:
            return
        path, _ = QFileDialog.getSaveFileName(self, "Export Annotated PDF", f"{student.name}.pdf", "PDF (*.pdf)")
        if not path:
            return
        self._export_worker = ExportWorker([student], path)
        self._export_worker.progress.connect(lambda message: self.statusBar().showMessage(message))
        self._export_worker.completed.connect(self._on_export_completed)
        self._export_worker.start()

    def _on_export_completed(self, success: bool, message: str):
        self._export_worker = None
        if success:
            self.statusBar().showMessage(message, 5000)
        else:
            QMessageBox.warning(self, "Export", message)

    def export_gradebook(self):
        session = self.grading.session
        if session is None:
            return
        path, _ = QFileDialog.getSaveFileName(self, "Export Gradebook", gradebook_filename(session.name),
                                              "CSV (*.csv)")
        if path and not self.grading.export_gradebook(path):
            QMessageBox.warning(self, "Gradebook", "The gradebook could not be written.")

    def show_stats(self):
        stats = self.grading.stats()
        if stats is None:
            QMessageBox.information(self, "Statistics", "No students yet.")
            return
        lines = [f"Average: {stats.average}", f"Median: {stats.median}",
                 f"Average time: {stats.average_time_seconds / 60:.1f} min"]
        lines += [f"{mode.value.capitalize()}: {value}" for mode, value in stats.category_averages.items()]
        if stats.top_errors:
            lines.append("Top errors: " + ", ".join(f"{e.code} ({e.count})" for e in stats.top_errors))
        QMessageBox.information(self, "Statistics", "\n".join(lines))

    def closeEvent(self, event):
        self.grading.enhancement.cancel_all()
        if self.grading.session is not None and self.grading.session.students:
            self.grading.save()
        super().closeEvent(event)
