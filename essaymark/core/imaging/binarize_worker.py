"""
Background binarization.
"""
import logging

import numpy as np
from PyQt5.QtCore import QThread, pyqtSignal

from essaymark.config import SauvolaConfig
from essaymark.core.errors import EssayMarkError
from .image_io import ImageSource, load_image
from .sauvola import binarize

logger = logging.getLogger(__name__)


class BinarizeWorker(QThread):
    """Worker thread for enhancing a page image without freezing the UI."""

    # Signals
    completed = pyqtSignal(object, int, object)  # key, generation, RGBA ndarray
    failed = pyqtSignal(object, int, str)  # key, generation, error message

    def __init__(self, key, generation: int, source: ImageSource,
                 config: SauvolaConfig = SauvolaConfig(), parent=None):
        super().__init__(parent)
        self.key = key
        self.generation = generation
        self._source = source
        self._config = config
        self._cancelled = False

    def cancel(self):
        """Cancel the enhancement; no signal is emitted afterwards."""
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def run(self):
        """Decode and binarize in the background thread."""
        try:
            image = self._source if isinstance(self._source, np.ndarray) else load_image(self._source)
            if self._cancelled:
                return

            result = binarize(image, self._config.window, self._config.k, self._config.r)
            if self._cancelled:
                return

            self.completed.emit(self.key, self.generation, result)

        except (EssayMarkError, ValueError, MemoryError) as e:
            logger.warning("Binarization failed for %s: %s", self.key, e)
            if not self._cancelled:
                self.failed.emit(self.key, self.generation, str(e))
