from __future__ import annotations

import os
from dataclasses import dataclass

from termix.models.enums import ClipboardMode

PARENT_NAME = ".."


@dataclass(slots=True, frozen=True)
class DirectoryEntry:
    path: str
    display_name: str
    is_directory: bool
    size_bytes: int = 0
    modified_at: float = 0.0
    is_parent_marker: bool = False

    @property
    def name(self) -> str:
        """Leaf name on disk; differs from ``display_name`` for deep-scan entries."""
        if self.is_parent_marker:
            return PARENT_NAME
        return os.path.basename(self.path.rstrip(os.sep)) or self.path


@dataclass(slots=True, frozen=True)
class ClipboardEntry:
    source: DirectoryEntry
    mode: ClipboardMode
