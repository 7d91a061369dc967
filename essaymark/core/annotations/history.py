"""
Per-page undo/redo history.

History is keyed by ``(document_id, page_index)`` so undo never crosses
pages. Continuous text edits are coalesced into one entry per typing
burst, and drag gestures are committed as a single entry at pointer-up.
"""
import copy
import logging
import time
from enum import Enum
from typing import Callable, Dict, Hashable, List, Optional, Tuple

from .models import Annotation

logger = logging.getLogger(__name__)

HistoryKey = Tuple[str, int]
Snapshot = List[Annotation]


def snapshot_of(annotations: List[Annotation]) -> Snapshot:
    """Deep copy of a page's annotation list."""
    return [copy.deepcopy(ann) for ann in annotations]


class PageHistory:
    """Undo/redo stacks for one page."""

    def __init__(self, max_size: int = 100):
        """
        Initialize the undo/redo stacks.

        Args:
            max_size: Maximum number of states to keep in history
        """
        self.past: List[Snapshot] = []
        self.future: List[Snapshot] = []
        self.max_size = max_size

    def push(self, snapshot: Snapshot) -> None:
        """
        Push a pre-edit snapshot. A new edit invalidates redo history.

        Args:
            snapshot: Deep copy of the page state before the edit
        """
        self.past.append(snapshot)
        self.future.clear()

        # Limit stack size
        if len(self.past) > self.max_size:
            self.past.pop(0)

    def can_undo(self) -> bool:
        return len(self.past) > 0

    def can_redo(self) -> bool:
        return len(self.future) > 0

    def undo(self, current_state: List[Annotation]) -> Optional[Snapshot]:
        """
        Step back one edit.

        Args:
            current_state: Page annotations before undo

        Returns:
            Previous state of the page, or None if there is nothing to undo
        """
        if not self.can_undo():
            return None

        self.future.append(snapshot_of(current_state))
        return self.past.pop()

    def redo(self, current_state: List[Annotation]) -> Optional[Snapshot]:
        """
        Re-apply the last undone edit.

        Args:
            current_state: Page annotations before redo

        Returns:
            Next state of the page, or None if there is nothing to redo
        """
        if not self.can_redo():
            return None

        self.past.append(snapshot_of(current_state))
        return self.future.pop()

    def clear(self) -> None:
        self.past.clear()
        self.future.clear()


class BurstState(Enum):
    IDLE = "idle"
    TYPING = "typing"


class TypingBurst:
    """
    ``idle -> typing -> idle`` state machine for text-edit coalescing.

    A burst stays open while edits arrive within ``idle_window`` seconds of
    each other and while they target the same subject (page key and
    annotation). The first edit of a burst is the one that snapshots.
    """

    def __init__(self, idle_window: float = 1.0, clock: Callable[[], float] = time.monotonic):
        self.idle_window = idle_window
        self._clock = clock
        self._state = BurstState.IDLE
        self._deadline = 0.0
        self._subject: Optional[Hashable] = None

    @property
    def state(self) -> BurstState:
        if self._state == BurstState.TYPING and self._clock() >= self._deadline:
            self._state = BurstState.IDLE
            self._subject = None
        return self._state

    def touch(self, subject: Hashable) -> bool:
        """
        Register an edit.

        Args:
            subject: What is being edited, e.g. (history key, annotation id)

        Returns:
            True when this edit starts a new burst
        """
        starts = self.state == BurstState.IDLE or subject != self._subject
        self._state = BurstState.TYPING
        self._subject = subject
        self._deadline = self._clock() + self.idle_window
        return starts

    def reset(self) -> None:
        self._state = BurstState.IDLE
        self._subject = None


class HistoryEngine:
    """Owns every page history of the open session."""

    def __init__(self, idle_window: float = 1.0, max_depth: int = 100,
                 clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[HistoryKey, PageHistory] = {}
        self.max_depth = max_depth
        self.typing = TypingBurst(idle_window, clock)

    def entry(self, key: HistoryKey) -> PageHistory:
        """Get the history for a page, creating it on first use."""
        history = self._entries.get(key)
        if history is None:
            history = PageHistory(self.max_depth)
            self._entries[key] = history
        return history

    def has_entry(self, key: HistoryKey) -> bool:
        return key in self._entries

    def record(self, key: HistoryKey, page_state: List[Annotation]) -> None:
        """Snapshot the page before a structural mutation."""
        self.typing.reset()
        self.entry(key).push(snapshot_of(page_state))

    def record_text_edit(self, key: HistoryKey, annotation_id: str,
                         page_state: List[Annotation]) -> bool:
        """
        Snapshot the page for a text edit, once per typing burst.

        Returns:
            True if a history entry was pushed
        """
        if not self.typing.touch((key, annotation_id)):
            return False
        self.entry(key).push(snapshot_of(page_state))
        return True

    def push_snapshot(self, key: HistoryKey, snapshot: Snapshot) -> None:
        """Commit a snapshot taken earlier (gesture start)."""
        self.typing.reset()
        self.entry(key).push(snapshot)

    def undo(self, key: HistoryKey, current_state: List[Annotation]) -> Optional[Snapshot]:
        history = self._entries.get(key)
        if history is None or not history.can_undo():
            logger.debug("Nothing to undo for %s", key)
            return None
        self.typing.reset()
        return history.undo(current_state)

    def redo(self, key: HistoryKey, current_state: List[Annotation]) -> Optional[Snapshot]:
        history = self._entries.get(key)
        if history is None or not history.can_redo():
            logger.debug("Nothing to redo for %s", key)
            return None
        self.typing.reset()
        return history.redo(current_state)

    def can_undo(self, key: HistoryKey) -> bool:
        history = self._entries.get(key)
        return history is not None and history.can_undo()

    def can_redo(self, key: HistoryKey) -> bool:
        history = self._entries.get(key)
        return history is not None and history.can_redo()

    def clear(self, document_id: str) -> None:
        """Drop every page history of one document (student)."""
        for key in [k for k in self._entries if k[0] == document_id]:
            del self._entries[key]
        self.typing.reset()

    def clear_all(self) -> None:
        self._entries.clear()
        self.typing.reset()
