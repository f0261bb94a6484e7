from __future__ import annotations

import logging
import os
import shutil
import sys
from typing import Callable

from result import Err, Ok

from termix.models.entry import DirectoryEntry
from termix.models.errors import OpError, OpErrorCode, OpResult
from termix.models.transfer import CancelCheck, ProgressCallback, TransferProgress

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 81920

if sys.platform == "win32":
    _INVALID_PATH_CHARS = frozenset('\0<>"|?*')
    _INVALID_NAME_CHARS = frozenset('\0<>:"|?*/\\')
else:
    _INVALID_PATH_CHARS = frozenset("\0")
    _INVALID_NAME_CHARS = frozenset("\0/")


class _Cancelled(Exception):
    pass


def _has_extension(leaf: str) -> bool:
    return bool(os.path.splitext(leaf)[1]) or leaf.startswith(".")


def same_volume(source: str, destination: str) -> bool:
    """Whether *destination* (not yet existing) lives on the device of *source*."""
    dest_parent = os.path.dirname(os.path.abspath(destination))
    return os.lstat(source).st_dev == os.stat(dest_parent).st_dev


def directory_size(path: str) -> int:
    """Sum file sizes below *path*; unreadable subtrees count as zero."""
    total = 0
    stack = [path]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as it:
                for entry in it:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            stack.append(entry.path)
                        else:
                            total += entry.stat(follow_symlinks=False).st_size
                    except OSError:
                        continue
        except OSError:
            continue
    return total


def _remove_path(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    else:
        os.remove(path)


class FileTransferEngine:
    """Create, rename, delete, and cancellable copy/move with byte progress.

    Every operation returns ``Ok``/``Err`` instead of raising, and none of
    them overwrites an existing destination.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        default_extension: str = ".txt",
        volume_check: Callable[[str, str], bool] = same_volume,
    ) -> None:
        self._chunk_size = max(1, chunk_size)
        self._default_extension = default_extension
        self._same_volume = volume_check

    # -- single-entry operations -------------------------------------------------

    def create(self, base_dir: str, user_input: str) -> OpResult[str]:
        if not user_input or not user_input.strip():
            return Err(OpError(code=OpErrorCode.EMPTY_INPUT, path=base_dir, message="Input was empty."))
        if any(c in _INVALID_PATH_CHARS for c in user_input):
            return Err(OpError(code=OpErrorCode.INVALID_NAME, path=base_dir, message="Invalid characters in path."))

        is_dir = user_input.endswith("/") or user_input.endswith(os.sep)
        relative = user_input.rstrip("/" + os.sep) if is_dir else user_input
        if not relative:
            return Err(OpError(code=OpErrorCode.INVALID_NAME, path=base_dir, message="Invalid name."))
        leaf = os.path.basename(relative)
        if not is_dir and not _has_extension(leaf):
            relative += self._default_extension
            leaf += self._default_extension

        new_path = os.path.join(base_dir, relative)
        if os.path.lexists(new_path):
            return Err(
                OpError(code=OpErrorCode.ALREADY_EXISTS, path=new_path, message=f"'{relative}' already exists.")
            )

        try:
            if is_dir:
                os.makedirs(new_path)
            else:
                parent = os.path.dirname(new_path)
                if parent:
                    os.makedirs(parent, exist_ok=True)
                with open(new_path, "x", encoding="utf-8"):
                    pass
        except FileExistsError:
            return Err(
                OpError(code=OpErrorCode.ALREADY_EXISTS, path=new_path, message=f"'{relative}' already exists.")
            )
        except OSError as exc:
            return Err(OpError(code=OpErrorCode.CREATE, path=new_path, message=f"Create failed: {exc}"))
        logger.info("Created %s", new_path)
        return Ok(leaf)

    def rename(self, base_dir: str, old_name: str, new_name: str) -> OpResult[str]:
        if not new_name or not new_name.strip() or any(c in _INVALID_NAME_CHARS for c in new_name):
            return Err(OpError(code=OpErrorCode.INVALID_NAME, path=base_dir, message="Invalid name."))
        if new_name in {".", ".."}:
            return Err(OpError(code=OpErrorCode.INVALID_NAME, path=base_dir, message="Invalid name."))

        old_path = os.path.join(base_dir, old_name)
        new_path = os.path.join(base_dir, new_name)
        if os.path.lexists(new_path):
            return Err(
                OpError(code=OpErrorCode.ALREADY_EXISTS, path=new_path, message=f"'{new_name}' already exists.")
            )
        try:
            os.rename(old_path, new_path)
        except OSError as exc:
            return Err(OpError(code=OpErrorCode.RENAME, path=old_path, message=f"Rename failed: {exc}"))
        logger.info("Renamed %s -> %s", old_path, new_path)
        return Ok(new_name)

    def delete(self, entry: DirectoryEntry) -> OpResult[str]:
        try:
            if entry.is_directory and not os.path.islink(entry.path):
                shutil.rmtree(entry.path)
            else:
                os.remove(entry.path)
        except OSError as exc:
            return Err(OpError(code=OpErrorCode.DELETE, path=entry.path, message=f"Delete failed: {exc}"))
        logger.info("Deleted %s", entry.path)
        return Ok(f"Deleted '{entry.name}'")

    # -- streaming operations ----------------------------------------------------

    def copy(
        self,
        source: str,
        destination: str,
        progress_callback: ProgressCallback | None = None,
        cancel_check: CancelCheck | None = None,
    ) -> OpResult[str]:
        return self._copy(source, destination, progress_callback, cancel_check, verb="Copying")

    def move(
        self,
        source: str,
        destination: str,
        progress_callback: ProgressCallback | None = None,
        cancel_check: CancelCheck | None = None,
    ) -> OpResult[str]:
        name = os.path.basename(source)
        if not os.path.lexists(source):
            return Err(OpError(code=OpErrorCode.NOT_FOUND, path=source, message=f"'{name}' no longer exists."))
        if os.path.lexists(destination):
            return Err(
                OpError(code=OpErrorCode.ALREADY_EXISTS, path=destination, message=f"'{name}' already exists.")
            )

        try:
            local = self._same_volume(source, destination)
        except OSError as exc:
            return Err(OpError(code=OpErrorCode.MOVE, path=source, message=f"Move failed: {exc}"))

        if local:
            _emit(progress_callback, TransferProgress(1, 0, f"Moving {name}"))
            try:
                os.rename(source, destination)
            except OSError as exc:
                return Err(OpError(code=OpErrorCode.MOVE, path=source, message=f"Move failed: {exc}"))
            _emit(progress_callback, TransferProgress(1, 1, f"Moved {name}"))
            logger.info("Moved %s -> %s", source, destination)
            return Ok(f"Moved '{name}'")

        copied = self._copy(source, destination, progress_callback, cancel_check, verb="Moving")
        if isinstance(copied, Err):
            return copied

        try:
            _remove_path(source)
        except OSError as exc:
            return Err(
                OpError(
                    code=OpErrorCode.MOVE,
                    path=source,
                    message=f"Copied '{name}' but could not remove the original: {exc}",
                )
            )
        logger.info("Moved %s -> %s across volumes", source, destination)
        return Ok(f"Moved '{name}' across volumes")

    def _copy(
        self,
        source: str,
        destination: str,
        progress_callback: ProgressCallback | None,
        cancel_check: CancelCheck | None,
        verb: str,
    ) -> OpResult[str]:
        name = os.path.basename(source)
        if not os.path.lexists(source):
            return Err(OpError(code=OpErrorCode.NOT_FOUND, path=source, message=f"'{name}' no longer exists."))
        if os.path.lexists(destination):
            return Err(
                OpError(code=OpErrorCode.ALREADY_EXISTS, path=destination, message=f"'{name}' already exists.")
            )

        completed = 0

        def check_cancel() -> None:
            if cancel_check is not None and cancel_check():
                raise _Cancelled

        def on_chunk(size: int, total: int) -> None:
            nonlocal completed
            completed += size
            _emit(progress_callback, TransferProgress(total, completed))

        try:
            if os.path.isdir(source) and not os.path.islink(source):
                total = directory_size(source)
                _emit(progress_callback, TransferProgress(total, 0, f"{verb} directory {name}"))
                self._copy_tree(source, destination, check_cancel, lambda n: on_chunk(n, total))
            else:
                total = os.path.getsize(source)
                _emit(progress_callback, TransferProgress(total, 0, f"{verb} file {name}"))
                self._copy_file(source, destination, check_cancel, lambda n: on_chunk(n, total))
        except _Cancelled:
            try:
                if os.path.lexists(destination):
                    _remove_path(destination)
            except OSError as exc:
                logger.warning("Could not clean up %s after cancellation: %s", destination, exc)
            logger.info("%s %s cancelled", verb, source)
            return Err(OpError(code=OpErrorCode.CANCELLED, path=source, message=f"{verb} was cancelled."))
        except OSError as exc:
            return Err(OpError(code=OpErrorCode.COPY, path=source, message=f"{verb} failed: {exc}"))

        past = "Copied" if verb == "Copying" else "Moved"
        logger.info("%s %s -> %s", past, source, destination)
        return Ok(f"{past} '{name}'")

    def _copy_tree(
        self, source: str, target: str, check_cancel: Callable[[], None], on_bytes: Callable[[int], None]
    ) -> None:
        check_cancel()
        os.mkdir(target)
        with os.scandir(source) as it:
            entries = sorted(it, key=lambda e: e.name)
        files = [e for e in entries if not e.is_dir(follow_symlinks=False)]
        dirs = [e for e in entries if e.is_dir(follow_symlinks=False)]
        for entry in files:
            check_cancel()
            self._copy_file(entry.path, os.path.join(target, entry.name), check_cancel, on_bytes)
        for entry in dirs:
            check_cancel()
            self._copy_tree(entry.path, os.path.join(target, entry.name), check_cancel, on_bytes)

    def _copy_file(
        self, source: str, target: str, check_cancel: Callable[[], None], on_bytes: Callable[[int], None]
    ) -> None:
        if os.path.islink(source):
            os.symlink(os.readlink(source), target)
            return
        with open(source, "rb") as src, open(target, "xb") as dst:
            while True:
                check_cancel()
                chunk = src.read(self._chunk_size)
                if not chunk:
                    break
                dst.write(chunk)
                on_bytes(len(chunk))
        shutil.copymode(source, target)


def _emit(callback: ProgressCallback | None, progress: TransferProgress) -> None:
    if callback is not None:
        callback(progress)
