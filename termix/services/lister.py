from __future__ import annotations

import os

from result import Err, Ok

from termix.models.entry import PARENT_NAME, DirectoryEntry
from termix.models.errors import OpError, OpErrorCode, OpResult
from termix.services.fs import DEFAULT_FS, FileSystem


def parent_path(path: str) -> str | None:
    """Return the parent directory of *path*, or ``None`` at a filesystem root."""
    parent = os.path.dirname(path.rstrip(os.sep) or path)
    if not parent or parent == path:
        return None
    return parent


def _sort_key(entry: DirectoryEntry) -> str:
    return entry.display_name.casefold()


class DirectoryLister:
    def __init__(self, fs: FileSystem = DEFAULT_FS) -> None:
        self._fs = fs

    def list(self, path: str) -> OpResult[list[DirectoryEntry]]:
        """Read *path* and return parent marker, directories, then files.

        Each run is sorted case-insensitively by name. Nothing is cached.
        """
        if not self._fs.exists(path):
            return Err(OpError(code=OpErrorCode.NOT_FOUND, path=path, message="Directory no longer exists"))

        directories: list[DirectoryEntry] = []
        files: list[DirectoryEntry] = []
        try:
            for item in self._fs.scandir(path):
                st = item.stat
                if st is not None and st.is_dir:
                    directories.append(
                        DirectoryEntry(path=item.path, display_name=item.name, is_directory=True, modified_at=st.mtime)
                    )
                else:
                    files.append(
                        DirectoryEntry(
                            path=item.path,
                            display_name=item.name,
                            is_directory=False,
                            size_bytes=st.size if st is not None else 0,
                            modified_at=st.mtime if st is not None else 0.0,
                        )
                    )
        except FileNotFoundError as exc:
            return Err(OpError(code=OpErrorCode.NOT_FOUND, path=path, message=str(exc)))
        except OSError as exc:
            return Err(OpError(code=OpErrorCode.ACCESS, path=path, message=str(exc)))

        entries: list[DirectoryEntry] = []
        parent = parent_path(path)
        if parent is not None:
            entries.append(self._parent_marker(parent))
        entries.extend(sorted(directories, key=_sort_key))
        entries.extend(sorted(files, key=_sort_key))
        return Ok(entries)

    def _parent_marker(self, parent: str) -> DirectoryEntry:
        try:
            modified = self._fs.stat(parent).mtime
        except OSError:
            modified = 0.0
        return DirectoryEntry(
            path=parent,
            display_name=PARENT_NAME,
            is_directory=True,
            modified_at=modified,
            is_parent_marker=True,
        )
