from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable


class Stream(str, Enum):
    DOCUMENT = "document"
    ARCHIVE = "archive"


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    fraction: float
    document_done: int
    archive_done: int
    total: int
    archive_enabled: bool = True

    @property
    def label(self) -> str:
        if not self.archive_enabled:
            return f"PDF: {self.document_done}/{self.total}"
        return f"PDF: {self.document_done}/{self.total}, ZIP: {self.archive_done}/{self.total}"


ProgressCallback = Callable[[ProgressSnapshot], None]


@dataclass(slots=True)
class ProgressState:
    total: int
    archive_enabled: bool
    document_done: int = 0
    archive_done: int = 0

    def fraction(self) -> float:
        if self.total <= 0:
            return 0.0
        if self.archive_enabled:
            return (self.document_done + self.archive_done) / (2 * self.total)
        return self.document_done / self.total


class ProgressTracker:
    """Merges per-item ticks from both builders into one fraction.

    Builders call :meth:`advance` from their own threads. Counter updates,
    the fraction and the callback all run under one lock, so the sequence of
    snapshots handed to ``callback`` never decreases.
    """

    def __init__(self, total: int, *, archive_enabled: bool, callback: ProgressCallback | None = None) -> None:
        self._state = ProgressState(total=total, archive_enabled=archive_enabled)
        self._callback = callback
        self._lock = threading.Lock()

    def advance(self, stream: Stream, completed: int) -> ProgressSnapshot:
        with self._lock:
            if stream is Stream.DOCUMENT:
                self._state.document_done = max(self._state.document_done, min(completed, self._state.total))
            else:
                self._state.archive_done = max(self._state.archive_done, min(completed, self._state.total))
            snapshot = self._snapshot()
            if self._callback is not None:
                self._callback(snapshot)
            return snapshot

    def callback_for(self, stream: Stream) -> Callable[[int], None]:
        def _tick(completed: int) -> None:
            self.advance(stream, completed)

        return _tick

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return self._snapshot()

    def _snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            fraction=self._state.fraction(),
            document_done=self._state.document_done,
            archive_done=self._state.archive_done,
            total=self._state.total,
            archive_enabled=self._state.archive_enabled,
        )


__all__ = ["ProgressCallback", "ProgressSnapshot", "ProgressState", "ProgressTracker", "Stream"]
