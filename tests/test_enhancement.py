import numpy as np
from PyQt5.QtCore import QObject, pyqtSignal

from essaymark.config import SauvolaConfig
from essaymark.core.imaging import BinarizeWorker
from essaymark.core.imaging.enhancement import EnhancementKey, EnhancementService


class FakeWorker(QObject):
    completed = pyqtSignal(object, int, object)
    failed = pyqtSignal(object, int, str)

    instances = []

    def __init__(self, key, generation, source, config):
        super().__init__()
        self.key = key
        self.generation = generation
        self.source = source
        self.started = False
        self.cancelled = False
        FakeWorker.instances.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def finish(self, result):
        self.completed.emit(self.key, self.generation, result)


def _service(cache_dir=None):
    FakeWorker.instances = []
    service = EnhancementService(SauvolaConfig(window=3), cache_dir=cache_dir, worker_factory=FakeWorker)
    ready = []
    failed = []
    service.image_ready.connect(lambda key, image: ready.append((key, image)))
    service.image_failed.connect(lambda key, message: failed.append((key, message)))
    return service, ready, failed


KEY = EnhancementKey('session', 'student', 0)


def test_one_worker_per_page_in_flight():
    service, _, _ = _service()
    assert service.request(KEY, 'page.png') is None
    assert service.request(KEY, 'page.png') is None
    assert len(FakeWorker.instances) == 1
    assert service.is_pending(KEY)


def test_result_is_cached():
    service, ready, _ = _service()
    service.request(KEY, 'page.png')
    image = np.zeros((2, 2, 4), dtype=np.uint8)
    FakeWorker.instances[0].finish(image)

    assert len(ready) == 1 and ready[0][0] == KEY
    assert not service.is_pending(KEY)
    assert service.request(KEY, 'page.png') is image


def test_stale_result_is_dropped():
    service, ready, _ = _service()
    service.request(KEY, 'page.png')
    service.request(KEY, 'page.png', force=True)
    first, second = FakeWorker.instances
    assert first.cancelled

    first.finish(np.zeros((2, 2, 4), dtype=np.uint8))
    assert ready == []
    assert service.is_pending(KEY)

    second.finish(np.full((2, 2, 4), 255, dtype=np.uint8))
    assert len(ready) == 1


def test_cancelled_request_never_lands():
    service, ready, failed = _service()
    service.request(KEY, 'page.png')
    worker = FakeWorker.instances[0]
    service.cancel(KEY)
    worker.finish(np.zeros((2, 2, 4), dtype=np.uint8))
    worker.failed.emit(worker.key, worker.generation, "boom")
    assert ready == [] and failed == []
    assert service.cached(KEY) is None


def test_failure_is_reported():
    service, _, failed = _service()
    service.request(KEY, 'page.png')
    worker = FakeWorker.instances[0]
    worker.failed.emit(worker.key, worker.generation, "boom")
    assert failed == [(KEY, "boom")]
    assert not service.is_pending(KEY)


def test_disk_cache_survives_memory_clear(tmp_path):
    service, _, _ = _service(str(tmp_path))
    service.request(KEY, 'page.png')
    FakeWorker.instances[0].finish(np.full((3, 3, 4), 255, dtype=np.uint8))
    assert (tmp_path / 'session-student-0.png').exists()

    service.clear_memory()
    cached = service.cached(KEY)
    assert cached is not None and cached.shape == (3, 3, 4)

    service.invalidate_subject('session', 'student')
    assert not (tmp_path / 'session-student-0.png').exists()
    assert service.cached(KEY) is None


def test_worker_binarizes_array_source():
    results = []
    image = np.full((6, 6, 3), 200, dtype=np.uint8)
    worker = BinarizeWorker(KEY, 1, image, SauvolaConfig(window=3))
    worker.completed.connect(lambda key, generation, result: results.append((key, generation, result)))
    worker.run()

    key, generation, result = results[0]
    assert key == KEY and generation == 1
    assert result.shape == (6, 6, 4)


def test_worker_reports_decode_failure():
    failures = []
    worker = BinarizeWorker(KEY, 2, b'not an image')
    worker.failed.connect(lambda key, generation, message: failures.append(generation))
    worker.run()
    assert failures == [2]


def test_cancelled_worker_emits_nothing():
    emitted = []
    worker = BinarizeWorker(KEY, 1, np.zeros((4, 4), dtype=np.uint8))
    worker.completed.connect(lambda *args: emitted.append(args))
    worker.cancel()
    worker.run()
    assert emitted == []
