from __future__ import annotations

from enum import Enum


class ClipboardMode(str, Enum):
    COPY = "copy"
    MOVE = "move"


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
