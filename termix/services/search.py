from __future__ import annotations

import logging
import os
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Callable

from result import Err, Ok

from termix.models.entry import DirectoryEntry
from termix.models.errors import OpError, OpErrorCode, OpResult
from termix.models.snapshot import SavedFilterView
from termix.models.transfer import CancelCheck, CancelToken
from termix.services.fs import DEFAULT_FS, FileSystem
from termix.services.ignore import PathIgnoreMatcher

logger = logging.getLogger(__name__)

type Spawn = Callable[[Callable[[], None]], None]
type DeepScanFn = Callable[[str, CancelCheck], OpResult[list[DirectoryEntry]]]


def spawn_thread(target: Callable[[], None]) -> None:
    threading.Thread(target=target, daemon=True).start()


def deep_scan(
    root: str,
    matcher: PathIgnoreMatcher,
    fs: FileSystem = DEFAULT_FS,
    cancel_check: CancelCheck | None = None,
) -> OpResult[list[DirectoryEntry]]:
    """Collect every non-ignored file under *root*.

    Display names are paths relative to *root*. Unreadable directories are
    skipped. Only files are collected: directories are walked and symlinked
    directories are neither followed nor listed.
    """
    results: list[DirectoryEntry] = []
    stack = [root]
    while stack:
        if cancel_check is not None and cancel_check():
            return Err(OpError(code=OpErrorCode.CANCELLED, path=root, message="Search cancelled"))
        current = stack.pop()
        try:
            children = list(fs.scandir(current))
        except OSError as exc:
            logger.debug("Deep scan skipped %s: %s", current, exc)
            continue
        for child in children:
            if matcher.is_ignored(child.path):
                continue
            st = child.stat
            if st is not None and st.is_dir:
                if not st.is_symlink:
                    stack.append(child.path)
                continue
            rel = os.path.relpath(child.path, root).replace(os.sep, "/")
            results.append(
                DirectoryEntry(
                    path=child.path,
                    display_name=rel,
                    is_directory=False,
                    size_bytes=st.size if st is not None else 0,
                    modified_at=st.mtime if st is not None else 0.0,
                )
            )
    results.sort(key=lambda e: e.display_name.casefold())
    return Ok(results)


def filter_entries(entries: Iterable[DirectoryEntry], query: str) -> list[DirectoryEntry]:
    """Case-insensitive substring match on display names; the parent marker never matches."""
    needle = query.casefold()
    return [e for e in entries if not e.is_parent_marker and needle in e.display_name.casefold()]


@dataclass(slots=True, frozen=True)
class DeepScanFinished:
    generation: int
    result: OpResult[list[DirectoryEntry]]


class FilterSearchEngine:
    """Query text, the once-per-session deep cache, and the saved filtered view.

    Completions are posted through *post* as ``DeepScanFinished`` messages and
    applied with ``complete_scan`` on the thread that owns the session state.
    """

    def __init__(
        self,
        scan_fn: DeepScanFn,
        post: Callable[[object], None],
        spawn: Spawn = spawn_thread,
        debounce: float = 0.0,
    ) -> None:
        self._scan_fn = scan_fn
        self._post = post
        self._spawn = spawn
        self._debounce = debounce
        self._generation = 0
        self._scan_token: CancelToken | None = None

        self.query = ""
        self.deep_cache: tuple[DirectoryEntry, ...] | None = None
        self.is_scan_running = False
        self.saved_view: SavedFilterView | None = None

    @property
    def is_view_filtered(self) -> bool:
        return bool(self.query)

    def enter(self) -> None:
        self._reset()

    def clear(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self._supersede()
        self.query = ""
        self.deep_cache = None

    def _supersede(self) -> None:
        if self._scan_token is not None:
            self._scan_token.cancel()
            self._scan_token = None
        self._generation += 1
        self.is_scan_running = False

    def update_query(self, text: str, root: str) -> None:
        """Set the query; launch the single deep scan for this session if needed."""
        self.query = text
        if self.deep_cache is None and not self.is_scan_running and text:
            self._launch_scan(root)

    def save_view(self, view: SavedFilterView) -> None:
        """Park the filtered view while browsing into a result; the deep cache is kept."""
        self.saved_view = view
        self.query = ""

    def restore_view(self) -> SavedFilterView | None:
        view = self.saved_view
        if view is None:
            return None
        self.saved_view = None
        self.query = view.query
        return view

    def apply(self, shallow: Sequence[DirectoryEntry]) -> list[DirectoryEntry]:
        if not self.query:
            return list(shallow)
        source = self.deep_cache if self.deep_cache is not None else shallow
        return filter_entries(source, self.query)

    def _launch_scan(self, root: str) -> None:
        token = CancelToken()
        generation = self._generation
        self._scan_token = token
        self.is_scan_running = True
        debounce = self._debounce
        scan_fn = self._scan_fn
        post = self._post
        logger.debug("Deep scan %d starting at %s", generation, root)

        def worker() -> None:
            if debounce > 0 and token.wait(debounce):
                return
            try:
                result = scan_fn(root, token.is_cancelled)
            except Exception as exc:  # noqa: BLE001
                result = Err(OpError(code=OpErrorCode.INTERNAL, path=root, message=f"Search failed: {exc}"))
            post(DeepScanFinished(generation=generation, result=result))

        self._spawn(worker)

    def complete_scan(self, message: DeepScanFinished) -> bool:
        """Publish a finished scan; returns whether the filter should be re-applied."""
        if message.generation != self._generation:
            logger.debug("Discarding superseded deep scan %d", message.generation)
            return False
        self.is_scan_running = False
        self._scan_token = None
        if isinstance(message.result, Err):
            logger.debug("Deep scan %d failed: %s", message.generation, message.result.unwrap_err().message)
            return False
        self.deep_cache = tuple(message.result.unwrap())
        return bool(self.query)

    def shutdown(self) -> None:
        self._supersede()
