from __future__ import annotations

from dataclasses import dataclass

from termix.models.entry import DirectoryEntry


@dataclass(slots=True)
class NormalMode:
    pass


@dataclass(slots=True)
class AddMode:
    base_path: str
    target_label: str
    buffer: str = ""


@dataclass(slots=True)
class RenameMode:
    target: DirectoryEntry
    buffer: str = ""


@dataclass(slots=True, frozen=True)
class DeleteConfirmMode:
    target: DirectoryEntry


@dataclass(slots=True)
class FilterMode:
    buffer: str = ""


@dataclass(slots=True, frozen=True)
class FilteredNavigationMode:
    pass


@dataclass(slots=True, frozen=True)
class QuitConfirmMode:
    pass


type InputMode = (
    NormalMode | AddMode | RenameMode | DeleteConfirmMode | FilterMode | FilteredNavigationMode | QuitConfirmMode
)
