from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable

from termix.models.enums import ClipboardMode


@dataclass(slots=True, frozen=True)
class TransferProgress:
    total_bytes: int
    completed_bytes: int
    label: str = ""


ProgressCallback = Callable[[TransferProgress], None]
CancelCheck = Callable[[], bool]


class CancelToken:
    """Cooperative cancellation flag shared between the UI thread and a worker."""

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        return self._event.wait(timeout)


@dataclass(slots=True, eq=False)
class TransferJob:
    source_path: str
    destination_path: str
    mode: ClipboardMode
    token: CancelToken = field(default_factory=CancelToken)
    total_bytes: int = 0
    completed_bytes: int = 0
    current_label: str = ""

    # Written by the worker thread, read by the UI thread during redraw.
    def record(self, progress: TransferProgress) -> None:
        if progress.label:
            self.current_label = progress.label
        self.total_bytes = progress.total_bytes
        self.completed_bytes = progress.completed_bytes

    @property
    def percent(self) -> float:
        total = self.total_bytes
        if total <= 0:
            return 0.0
        return min(100.0, self.completed_bytes / total * 100)
