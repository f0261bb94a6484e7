from __future__ import annotations

import os

from termix.models.entry import DirectoryEntry

# Nerd Font glyphs.
_DEFAULT_FILE = ""
_FOLDER = ""
_PARENT = ""

_EXTENSION_ICONS: dict[str, str] = {
    ".py": "",
    ".js": "",
    ".json": "",
    ".html": "",
    ".css": "",
    ".md": "",
    ".txt": "",
    ".pdf": "",
    ".png": "",
    ".jpg": "",
    ".jpeg": "",
    ".gif": "",
    ".zip": "",
    ".gz": "",
    ".yml": "",
    ".yaml": "",
    ".gitignore": "",
}


class IconLookup:
    def __init__(self, use_icons: bool = True) -> None:
        self.use_icons = use_icons

    def glyph(self, entry: DirectoryEntry) -> str:
        if not self.use_icons:
            if entry.is_parent_marker:
                return "[..]"
            return "[DIR]" if entry.is_directory else "     "
        if entry.is_parent_marker:
            return _PARENT
        if entry.is_directory:
            return _FOLDER
        name = entry.name.lower()
        if name in _EXTENSION_ICONS:
            return _EXTENSION_ICONS[name]
        return _EXTENSION_ICONS.get(os.path.splitext(name)[1], _DEFAULT_FILE)
