from essaymark.core.annotations.history import BurstState, HistoryEngine, TypingBurst


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_typing_burst_expires_after_idle_window():
    clock = FakeClock()
    burst = TypingBurst(idle_window=1.0, clock=clock)
    assert burst.touch('a') is True
    clock.now = 0.5
    assert burst.touch('a') is False
    clock.now = 1.4
    assert burst.touch('a') is False
    assert burst.state == BurstState.TYPING
    clock.now = 2.5
    assert burst.state == BurstState.IDLE
    assert burst.touch('a') is True


def test_switching_subject_starts_new_burst():
    burst = TypingBurst(idle_window=1.0, clock=FakeClock())
    assert burst.touch('a')
    assert burst.touch('b')


def test_text_edits_coalesce_per_burst():
    clock = FakeClock()
    engine = HistoryEngine(idle_window=1.0, clock=clock)
    key = ('student', 0)
    assert engine.record_text_edit(key, '1', [])
    clock.now = 0.3
    assert not engine.record_text_edit(key, '1', [])
    clock.now = 5.0
    assert engine.record_text_edit(key, '1', [])
    assert len(engine.entry(key).past) == 2


def test_structural_record_closes_burst():
    engine = HistoryEngine(clock=FakeClock())
    key = ('student', 0)
    engine.record_text_edit(key, '1', [])
    engine.record(key, [])
    assert engine.record_text_edit(key, '1', [])
    assert len(engine.entry(key).past) == 3


def test_history_is_per_page():
    engine = HistoryEngine()
    engine.record(('s', 0), [])
    assert engine.can_undo(('s', 0))
    assert not engine.can_undo(('s', 1))
    assert engine.undo(('s', 1), []) is None


def test_new_edit_clears_redo_and_depth_is_bounded():
    engine = HistoryEngine(max_depth=3)
    key = ('s', 0)
    for _ in range(5):
        engine.record(key, [])
    assert len(engine.entry(key).past) == 3

    engine.undo(key, [])
    assert engine.can_redo(key)
    engine.record(key, [])
    assert not engine.can_redo(key)


def test_clear_drops_only_one_document():
    engine = HistoryEngine()
    engine.record(('a', 0), [])
    engine.record(('b', 0), [])
    engine.clear('a')
    assert not engine.has_entry(('a', 0))
    assert engine.has_entry(('b', 0))
