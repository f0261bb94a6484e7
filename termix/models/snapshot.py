from __future__ import annotations

from dataclasses import dataclass

from termix.models.entry import DirectoryEntry


@dataclass(slots=True, frozen=True)
class PreviewContent:
    title: str
    body: str
    placeholder: bool = False
    lexer: str | None = None


@dataclass(slots=True, frozen=True)
class SavedFilterView:
    path: str
    query: str
    entries: tuple[DirectoryEntry, ...]
    selected_index: int


@dataclass(slots=True, frozen=True)
class TransferStatus:
    label: str
    percent: float


@dataclass(slots=True, frozen=True)
class RenderSnapshot:
    current_path: str
    displayed_entries: tuple[DirectoryEntry, ...]
    selected_index: int
    viewport_offset: int
    page_size: int
    preview: PreviewContent
    footer: str
    clipboard_summary: str | None
    transfer: TransferStatus | None
    status_severity: str | None = None
