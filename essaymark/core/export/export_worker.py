"""
Background PDF export.
"""
import logging
import os
import shutil
import tempfile
from typing import Dict, Optional, Sequence

from PyQt5.QtCore import QThread, pyqtSignal

from essaymark.core.session.models import Student
from .pdf_exporter import AnnotatedPdfExporter

logger = logging.getLogger(__name__)


class ExportWorker(QThread):
    """Worker thread for exporting scripts to PDF without freezing the UI."""

    # Signals
    completed = pyqtSignal(bool, str)  # success, message
    progress = pyqtSignal(str)  # status message
    page_progress = pyqtSignal(int, int)  # current, total pages

    def __init__(self, students: Sequence[Student], output_pdf: str, include_background: bool = True,
                 backgrounds: Optional[Dict[str, Dict[int, str]]] = None, parent=None):
        super().__init__(parent)
        self.students = list(students)
        self.output_pdf = output_pdf
        self.include_background = include_background
        self.backgrounds = backgrounds
        self.temp_path = None
        self.exporter = AnnotatedPdfExporter()

    def run(self):
        """Execute the export in a background thread."""
        self.exporter.progress_signal.connect(self._on_page_progress)

        # Write next to the target, then move into place
        output_dir = os.path.dirname(os.path.abspath(self.output_pdf))
        try:
            temp_fd, self.temp_path = tempfile.mkstemp(suffix='.pdf', dir=output_dir)
            os.close(temp_fd)
        except OSError as e:
            self.completed.emit(False, f"Error during export: {e}")
            return

        self.progress.emit("Exporting annotations...")
        success = self.exporter.export_students(
            self.students,
            self.temp_path,
            self.include_background,
            self.backgrounds
        )

        try:
            if success:
                self.progress.emit("Finalizing...")
                shutil.move(self.temp_path, self.output_pdf)
                self.completed.emit(True, f"Exported to {self.output_pdf}")
            else:
                self.completed.emit(False, "Failed to export annotated PDF.")
        except OSError as e:
            logger.error("Could not move export into place: %s", e)
            self.completed.emit(False, f"Error during export: {e}")
        finally:
            if self.temp_path and os.path.exists(self.temp_path):
                os.remove(self.temp_path)

    def _on_page_progress(self, current, total):
        """Handle page-level progress updates."""
        self.page_progress.emit(current, total)
