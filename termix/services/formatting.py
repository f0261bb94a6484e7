from __future__ import annotations

from datetime import datetime

from termix.models.entry import DirectoryEntry

UNITS = ["B", "KB", "MB", "GB", "TB", "PB"]


def format_bytes(size: int) -> str:
    if size <= 0:
        return "0 B"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(UNITS) - 1:
        value /= 1024.0
        unit += 1
    if unit == 0:
        return f"{int(value)} {UNITS[unit]}"
    return f"{value:.1f} {UNITS[unit]}"


def format_size_cell(entry: DirectoryEntry) -> str:
    if entry.is_directory:
        return "-"
    return format_bytes(entry.size_bytes)


def format_modified_cell(entry: DirectoryEntry) -> str:
    if (entry.is_directory and not entry.is_parent_marker) or entry.modified_at <= 0:
        return "-"
    return datetime.fromtimestamp(entry.modified_at).strftime("%Y-%m-%d %H:%M")


def truncate_path(path: str, max_width: int = 80) -> str:
    if len(path) <= max_width:
        return path
    keep = max_width - 3
    return f"...{path[-keep:]}"
