"""
Enhanced-page cache and scheduling.

Keeps at most one binarization in flight per page and drops results that
arrive for a request that has since been superseded or cancelled.
"""
import logging
import os
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import numpy as np
from PyQt5.QtCore import QObject, pyqtSignal

from essaymark.config import SauvolaConfig
from essaymark.core.errors import ImageDecodeError
from .binarize_worker import BinarizeWorker
from .image_io import load_image, save_png

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnhancementKey:
    """Identifies one page image of one student in one session."""
    document_id: str
    subject_id: str
    page_index: int

    @property
    def cache_name(self) -> str:
        return f"{self.document_id}-{self.subject_id}-{self.page_index}"


class EnhancementService(QObject):
    """
    Serves binarized page images from cache or from a background worker.
    """

    # Signals
    image_ready = pyqtSignal(object, object)  # EnhancementKey, RGBA ndarray
    image_failed = pyqtSignal(object, str)  # EnhancementKey, error message

    def __init__(self, config: SauvolaConfig = SauvolaConfig(), cache_dir: Optional[str] = None,
                 worker_factory: Callable[..., BinarizeWorker] = BinarizeWorker, parent=None):
        super().__init__(parent)
        self._config = config
        self._cache_dir = cache_dir
        self._worker_factory = worker_factory

        self._cache: Dict[EnhancementKey, np.ndarray] = {}
        self._workers: Dict[EnhancementKey, BinarizeWorker] = {}
        self._generations: Dict[EnhancementKey, int] = {}

    def _disk_path(self, key: EnhancementKey) -> Optional[str]:
        if not self._cache_dir:
            return None
        return os.path.join(self._cache_dir, f"{key.cache_name}.png")

    def cached(self, key: EnhancementKey) -> Optional[np.ndarray]:
        """Get a finished result from memory or from the disk cache."""
        if key in self._cache:
            return self._cache[key]

        path = self._disk_path(key)
        if path and os.path.exists(path):
            try:
                image = load_image(path)
            except ImageDecodeError as e:
                logger.warning("Ignoring unreadable cache file %s: %s", path, e)
                return None
            self._cache[key] = image
            return image
        return None

    def is_pending(self, key: EnhancementKey) -> bool:
        return key in self._workers

    def request(self, key: EnhancementKey, source, force: bool = False) -> Optional[np.ndarray]:
        """
        Ask for the enhanced version of a page.

        Args:
            key: Page identity
            source: Image path, encoded bytes or decoded array
            force: Recompute even if a result is cached or pending

        Returns:
            The cached result if available; otherwise None and the result
            arrives later through ``image_ready`` or ``image_failed``
        """
        if not force:
            result = self.cached(key)
            if result is not None:
                return result
            if key in self._workers:
                return None

        previous = self._workers.pop(key, None)
        if previous is not None:
            previous.cancel()

        generation = self._generations.get(key, 0) + 1
        self._generations[key] = generation

        worker = self._worker_factory(key, generation, source, self._config)
        worker.completed.connect(self._on_completed)
        worker.failed.connect(self._on_failed)
        self._workers[key] = worker
        worker.start()

        logger.debug("Binarization scheduled for %s (generation %d)", key, generation)
        return None

    def _is_current(self, key: EnhancementKey, generation: int) -> bool:
        return self._generations.get(key) == generation

    def _finish_worker(self, key: EnhancementKey, generation: int) -> None:
        worker = self._workers.get(key)
        if worker is not None and worker.generation == generation:
            del self._workers[key]

    def _on_completed(self, key: EnhancementKey, generation: int, result: np.ndarray) -> None:
        if not self._is_current(key, generation):
            logger.debug("Dropping stale result for %s (generation %d)", key, generation)
            return
        self._finish_worker(key, generation)
        self._cache[key] = result

        path = self._disk_path(key)
        if path:
            try:
                save_png(result, path)
            except OSError as e:
                logger.warning("Could not write enhancement cache %s: %s", path, e)

        self.image_ready.emit(key, result)

    def _on_failed(self, key: EnhancementKey, generation: int, message: str) -> None:
        if not self._is_current(key, generation):
            return
        self._finish_worker(key, generation)
        self.image_failed.emit(key, message)

    def cancel(self, key: EnhancementKey) -> None:
        """Stop pending work for a page; cached results are kept."""
        worker = self._workers.pop(key, None)
        if worker is not None:
            worker.cancel()
            self._generations[key] = self._generations.get(key, 0) + 1

    def cancel_all(self) -> None:
        for key in list(self._workers):
            self.cancel(key)

    def invalidate(self, key: EnhancementKey) -> None:
        """Forget the cached result of a page (memory and disk)."""
        self._cache.pop(key, None)
        path = self._disk_path(key)
        if path and os.path.exists(path):
            try:
                os.remove(path)
            except OSError as e:
                logger.warning("Could not remove cache file %s: %s", path, e)

    def invalidate_subject(self, document_id: str, subject_id: str) -> None:
        """Forget every page of one student, e.g. after its pages were re-arranged."""
        for key in list(self._workers):
            if key.document_id == document_id and key.subject_id == subject_id:
                self.cancel(key)
        for key in [k for k in self._cache if k.document_id == document_id and k.subject_id == subject_id]:
            del self._cache[key]
        if self._cache_dir and os.path.isdir(self._cache_dir):
            prefix = f"{document_id}-{subject_id}-"
            for name in os.listdir(self._cache_dir):
                if name.startswith(prefix) and name.endswith('.png'):
                    try:
                        os.remove(os.path.join(self._cache_dir, name))
                    except OSError as e:
                        logger.warning("Could not remove cache file %s: %s", name, e)

    def clear_memory(self) -> None:
        self._cache.clear()
