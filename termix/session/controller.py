from __future__ import annotations

import logging
import os
import queue
from dataclasses import dataclass
from typing import Callable

from rich.markup import escape
from result import Err, Ok, Result

from termix.config.defaults import default_config
from termix.config.schema import AppConfig
from termix.models.entry import ClipboardEntry, DirectoryEntry
from termix.models.enums import ClipboardMode, Severity
from termix.models.errors import OpError, OpErrorCode, OpResult
from termix.models.modes import (
    AddMode,
    DeleteConfirmMode,
    FilteredNavigationMode,
    FilterMode,
    InputMode,
    NormalMode,
    QuitConfirmMode,
    RenameMode,
)
from termix.models.snapshot import PreviewContent, RenderSnapshot, SavedFilterView, TransferStatus
from termix.models.transfer import CancelCheck, TransferJob, TransferProgress
from termix.services.fs import DEFAULT_FS, FileSystem
from termix.services.ignore import PathIgnoreMatcher
from termix.services.launcher import open_with_default_app
from termix.services.lister import DirectoryLister, parent_path
from termix.services.preview import PLACEHOLDER, PreviewProvider
from termix.services.search import DeepScanFinished, FilterSearchEngine, Spawn, deep_scan, spawn_thread
from termix.services.transfer import FileTransferEngine
from termix.session.keys import KeyEvent, dispatch

logger = logging.getLogger(__name__)

type Launcher = Callable[[str], Result[None, str]]


@dataclass(slots=True, frozen=True)
class TransferFinished:
    job: TransferJob
    result: OpResult[str]


def _same_path(a: str, b: str) -> bool:
    return os.path.normcase(os.path.abspath(a)) == os.path.normcase(os.path.abspath(b))


def _is_within(path: str, root: str) -> bool:
    path = os.path.normcase(os.path.abspath(path))
    root = os.path.normcase(os.path.abspath(root))
    return path == root or path.startswith(root.rstrip(os.sep) + os.sep)


class SessionController:
    """Owns navigation, the input-mode state machine, clipboard and transfers.

    All state is mutated on the thread that calls ``handle_key`` and
    ``process_pending``. Background work reports back through an internal
    queue that ``process_pending`` drains; the only exception is transfer
    progress, which the worker writes straight into the active ``TransferJob``.
    """

    def __init__(
        self,
        start_path: str,
        config: AppConfig | None = None,
        *,
        fs: FileSystem = DEFAULT_FS,
        lister: DirectoryLister | None = None,
        engine: FileTransferEngine | None = None,
        preview: PreviewProvider | None = None,
        launcher: Launcher = open_with_default_app,
        page_size: Callable[[], int] | None = None,
        spawn: Spawn = spawn_thread,
    ) -> None:
        self.config = config or default_config()
        self._fs = fs
        self._lister = lister or DirectoryLister(fs)
        self._engine = engine or FileTransferEngine(
            chunk_size=self.config.copy_chunk_size,
            default_extension=self.config.default_extension,
        )
        self._preview_provider = preview or PreviewProvider(self.config.preview_max_bytes)
        self._launcher = launcher
        self._page_size_fn = page_size
        self._spawn = spawn
        self._messages: queue.Queue[object] = queue.Queue()

        self.search = FilterSearchEngine(
            scan_fn=self._run_deep_scan,
            post=self._messages.put,
            spawn=spawn,
            debounce=self.config.search_debounce,
        )

        self.current_path = os.path.abspath(start_path)
        self.unfiltered: list[DirectoryEntry] = []
        self.displayed: list[DirectoryEntry] = []
        self.selected_index = -1
        self.viewport_offset = 0
        self.mode: InputMode = NormalMode()
        self.clipboard: ClipboardEntry | None = None
        self.job: TransferJob | None = None
        self.status: str | None = None
        self.status_severity: Severity | None = None
        self.preview: PreviewContent = PLACEHOLDER
        self.preview_vertical = 0
        self.preview_horizontal = 0
        self.should_quit = False
        self._history: list[str] = []
        self._dirty = True

    # -- loop plumbing -----------------------------------------------------------

    def start(self) -> None:
        self._refresh_directory(initial=True)

    def mark_dirty(self) -> None:
        self._dirty = True

    def consume_dirty(self) -> bool:
        dirty = self._dirty
        self._dirty = False
        return dirty

    def process_pending(self) -> None:
        """Apply every background completion queued since the last call."""
        while True:
            try:
                message = self._messages.get_nowait()
            except queue.Empty:
                return
            if isinstance(message, DeepScanFinished):
                if self.search.complete_scan(message) and isinstance(self.mode, (FilterMode, NormalMode)):
                    self._apply_filter()
                self.mark_dirty()
            elif isinstance(message, TransferFinished):
                self._finish_transfer(message)

    def handle_key(self, event: KeyEvent) -> None:
        self.clear_status()
        dispatch(self, event)

    def shutdown(self) -> None:
        if self.job is not None:
            self.job.token.cancel()
        self.search.shutdown()

    def page_size(self) -> int:
        rows = self._page_size_fn() if self._page_size_fn is not None else 20
        return max(self.config.min_page_size, rows)

    # -- status --------------------------------------------------------------------

    def set_status(self, message: str, severity: Severity = Severity.INFO) -> None:
        self.status = message
        self.status_severity = severity
        self.mark_dirty()

    def clear_status(self) -> None:
        if self.status is not None:
            self.status = None
            self.status_severity = None
            self.mark_dirty()

    def _report_error(self, error: OpError) -> None:
        severity = Severity.WARNING if error.code is OpErrorCode.CANCELLED else Severity.ERROR
        self.set_status(error.message, severity)

    # -- selection and viewport ----------------------------------------------------

    @property
    def selected_entry(self) -> DirectoryEntry | None:
        if 0 <= self.selected_index < len(self.displayed):
            return self.displayed[self.selected_index]
        return None

    def _selected_actionable(self) -> DirectoryEntry | None:
        entry = self.selected_entry
        if entry is None or entry.is_parent_marker:
            return None
        return entry

    def move_selection(self, delta: int) -> None:
        if not self.displayed:
            return
        new_index = max(0, min(len(self.displayed) - 1, self.selected_index + delta))
        if new_index == self.selected_index:
            return
        self.selected_index = new_index
        self.adjust_viewport()
        self._update_preview()

    def move_to_edge(self, to_start: bool) -> None:
        if not self.displayed:
            return
        self.selected_index = 0 if to_start else len(self.displayed) - 1
        self.adjust_viewport()
        self._update_preview()

    def adjust_viewport(self) -> None:
        page = self.page_size()
        offset = self.viewport_offset
        if self.selected_index < offset:
            offset = self.selected_index
        elif self.selected_index >= offset + page:
            offset = self.selected_index - page + 1
        self.viewport_offset = max(0, min(offset, max(0, len(self.displayed) - page)))
        self.mark_dirty()

    def scroll_preview(self, vertical: int, horizontal: int) -> None:
        self.preview_vertical = max(0, self.preview_vertical + vertical)
        self.preview_horizontal = max(0, self.preview_horizontal + horizontal)
        self._update_preview(reset_scroll=False)

    def _update_preview(self, reset_scroll: bool = True) -> None:
        if reset_scroll:
            self.preview_vertical = 0
            self.preview_horizontal = 0
        entry = self.selected_entry
        if entry is None or entry.is_directory:
            self.preview = self._preview_provider.get_preview(None, 0, 0)
        else:
            self.preview = self._preview_provider.get_preview(
                entry.path, self.preview_vertical, self.preview_horizontal, self.page_size()
            )
        self.mark_dirty()

    def _reset_view_after_filter(self) -> None:
        self.selected_index = 0 if self.displayed else -1
        self.adjust_viewport()
        self._update_preview()

    # -- directory loading and navigation ------------------------------------------

    def _load_unfiltered(self) -> bool:
        result = self._lister.list(self.current_path)
        if isinstance(result, Err):
            error = result.unwrap_err()
            logger.warning("Error loading %s: %s", self.current_path, error.message)
            self.set_status(f"Error loading directory: {error.message}", Severity.ERROR)
            self.unfiltered = []
            return False
        self.unfiltered = result.unwrap()
        return True

    def _refresh_directory(
        self,
        select_name: str | None = None,
        preserve_selection: bool = False,
        initial: bool = False,
    ) -> None:
        old_index = self.selected_index
        self._load_unfiltered()

        # While the query is being edited the displayed list is owned by the filter.
        if not isinstance(self.mode, FilterMode):
            if self.search.is_view_filtered:
                self.search.clear()
            self.displayed = list(self.unfiltered)

        if select_name is not None:
            needle = select_name.casefold()
            self.selected_index = next(
                (i for i, e in enumerate(self.displayed) if e.display_name.casefold() == needle),
                -1,
            )
        elif preserve_selection:
            self.selected_index = max(0, min(old_index, len(self.displayed) - 1))
        elif initial:
            self.selected_index = 0 if self.displayed else -1
        else:
            self.selected_index = max(-1, min(old_index, len(self.displayed) - 1))

        if self.selected_index == -1 and self.displayed:
            self.selected_index = 0
        if not self.displayed:
            self.selected_index = -1

        self.adjust_viewport()
        self._update_preview()

    def _navigate_to(self, path: str, select_name: str | None = None) -> None:
        if not isinstance(self.mode, FilteredNavigationMode):
            self.mode = NormalMode()
        self.current_path = os.path.abspath(path)
        self.viewport_offset = 0
        self._refresh_directory(select_name, initial=True)

    def open_selected(self) -> None:
        entry = self.selected_entry
        if entry is None:
            return
        if entry.is_parent_marker:
            self.navigate_up()
            return
        if not entry.is_directory:
            opened = self._launcher(entry.path)
            if isinstance(opened, Err):
                self.set_status(opened.unwrap_err(), Severity.ERROR)
            return

        if self.search.is_view_filtered and not isinstance(self.mode, FilteredNavigationMode):
            self.search.save_view(
                SavedFilterView(
                    path=self.current_path,
                    query=self.search.query,
                    entries=tuple(self.displayed),
                    selected_index=self.selected_index,
                )
            )
            self.mode = FilteredNavigationMode()
        self._history.append(entry.name)
        self._navigate_to(entry.path)

    def navigate_up(self) -> None:
        if not isinstance(self.mode, (NormalMode, FilteredNavigationMode)):
            return
        if self.search.is_view_filtered:
            self.clear_filter()
            return
        parent = parent_path(self.current_path)
        if parent is None:
            return
        child = self._history.pop() if self._history else os.path.basename(self.current_path)
        self._navigate_to(parent, select_name=child)

    def return_to_results(self) -> None:
        if not isinstance(self.mode, FilteredNavigationMode):
            return
        saved = self.search.restore_view()
        if saved is None:
            return
        self.mode = FilterMode(buffer=saved.query)
        self.current_path = saved.path
        self._history.clear()
        self._load_unfiltered()
        self.displayed = list(saved.entries)
        self.selected_index = saved.selected_index if saved.selected_index < len(self.displayed) else -1
        if self.selected_index == -1 and self.displayed:
            self.selected_index = 0
        self.adjust_viewport()
        self._update_preview()

    # -- filter --------------------------------------------------------------------

    def begin_filter(self) -> None:
        self.search.enter()
        self.search.saved_view = None
        self.mode = FilterMode()
        self.displayed = list(self.unfiltered)
        self._reset_view_after_filter()

    def update_filter(self, text: str) -> None:
        if not isinstance(self.mode, FilterMode):
            return
        self.mode.buffer = text
        self.search.update_query(text, self.current_path)
        self._apply_filter()

    def _apply_filter(self) -> None:
        self.displayed = self.search.apply(self.unfiltered)
        self._reset_view_after_filter()

    def accept_filter(self) -> None:
        if isinstance(self.mode, FilterMode):
            self.mode = NormalMode()
            self.mark_dirty()

    def clear_filter(self) -> None:
        self.search.clear()
        self.mode = NormalMode()
        self.displayed = list(self.unfiltered)
        self._reset_view_after_filter()

    # -- text entry: add / rename ------------------------------------------------

    def begin_add(self) -> None:
        entry = self._selected_actionable()
        if entry is not None and entry.is_directory:
            self.mode = AddMode(base_path=entry.path, target_label=entry.name)
        else:
            label = os.path.basename(self.current_path.rstrip(os.sep)) or self.current_path
            self.mode = AddMode(base_path=self.current_path, target_label=label)
        self.mark_dirty()

    def begin_rename(self) -> None:
        entry = self._selected_actionable()
        if entry is None:
            return
        self.mode = RenameMode(target=entry, buffer=entry.name)
        self.mark_dirty()

    def append_text(self, char: str) -> None:
        if isinstance(self.mode, FilterMode):
            self.update_filter(self.mode.buffer + char)
        elif isinstance(self.mode, (AddMode, RenameMode)):
            self.mode.buffer += char
            self.mark_dirty()

    def delete_text(self) -> None:
        if isinstance(self.mode, FilterMode):
            if self.mode.buffer:
                self.update_filter(self.mode.buffer[:-1])
        elif isinstance(self.mode, (AddMode, RenameMode)) and self.mode.buffer:
            self.mode.buffer = self.mode.buffer[:-1]
            self.mark_dirty()

    def commit_text(self) -> None:
        mode = self.mode
        if isinstance(mode, AddMode):
            result = self._engine.create(mode.base_path, mode.buffer)
            success = "Created '{}'"
        elif isinstance(mode, RenameMode):
            target = mode.target
            result = self._engine.rename(os.path.dirname(target.path), target.name, mode.buffer)
            success = "Renamed to '{}'"
        else:
            return

        self.reset_to_normal()
        if isinstance(result, Ok):
            name = result.unwrap()
            self.set_status(success.format(name), Severity.SUCCESS)
            self._refresh_directory(select_name=name)
        else:
            self._report_error(result.unwrap_err())

    def reset_to_normal(self) -> None:
        self.mode = NormalMode()
        self.mark_dirty()

    # -- delete ------------------------------------------------------------------

    def begin_delete(self) -> None:
        entry = self._selected_actionable()
        if entry is None:
            return
        self.mode = DeleteConfirmMode(target=entry)
        self.mark_dirty()

    def confirm_delete(self) -> None:
        if not isinstance(self.mode, DeleteConfirmMode):
            return
        result = self._engine.delete(self.mode.target)
        self.reset_to_normal()
        if isinstance(result, Ok):
            self.set_status(result.unwrap(), Severity.SUCCESS)
            self._refresh_directory(preserve_selection=True)
        else:
            self._report_error(result.unwrap_err())

    # -- clipboard and transfers -------------------------------------------------

    def mark_for_copy(self) -> None:
        self._set_clipboard(ClipboardMode.COPY, "{} copied to clipboard.")

    def mark_for_move(self) -> None:
        self._set_clipboard(ClipboardMode.MOVE, "{} marked for move.")

    def _set_clipboard(self, mode: ClipboardMode, template: str) -> None:
        entry = self._selected_actionable()
        if entry is None:
            return
        self.clipboard = ClipboardEntry(source=entry, mode=mode)
        self.set_status(template.format(entry.name))

    def clear_clipboard(self) -> None:
        self.clipboard = None
        self.set_status("Clipboard cleared.")

    def paste(self) -> None:
        if self.job is not None:
            self.set_status("A transfer is already in progress.", Severity.WARNING)
            return
        clip = self.clipboard
        if clip is None:
            self.set_status("Clipboard is empty.", Severity.ERROR)
            return

        selected = self._selected_actionable()
        base = selected.path if selected is not None and selected.is_directory else self.current_path
        source = clip.source.path
        destination = os.path.join(base, clip.source.name)

        if _same_path(source, destination) or (
            clip.mode is ClipboardMode.MOVE and _same_path(os.path.dirname(source), base)
        ):
            if clip.mode is ClipboardMode.MOVE:
                self.clipboard = None
            self.set_status("Source and destination are the same.", Severity.WARNING)
            return
        if clip.source.is_directory and _is_within(destination, source):
            self.set_status("Cannot paste a folder into itself.", Severity.ERROR)
            return
        if os.path.lexists(destination):
            self.set_status(f"An item named '{clip.source.name}' already exists here.", Severity.ERROR)
            return

        self.clipboard = None
        job = TransferJob(source_path=source, destination_path=destination, mode=clip.mode)
        self.job = job
        self._start_transfer(job)
        self.mark_dirty()

    def _start_transfer(self, job: TransferJob) -> None:
        engine = self._engine
        post = self._messages.put

        def on_progress(progress: TransferProgress) -> None:
            job.record(progress)
            self._dirty = True

        def worker() -> None:
            try:
                if job.mode is ClipboardMode.COPY:
                    result = engine.copy(job.source_path, job.destination_path, on_progress, job.token.is_cancelled)
                else:
                    result = engine.move(job.source_path, job.destination_path, on_progress, job.token.is_cancelled)
            except Exception as exc:  # noqa: BLE001
                result = Err(
                    OpError(
                        code=OpErrorCode.INTERNAL,
                        path=job.source_path,
                        message=f"An unexpected error occurred: {exc}",
                    )
                )
            post(TransferFinished(job=job, result=result))

        logger.info("Starting %s of %s to %s", job.mode.value, job.source_path, job.destination_path)
        self._spawn(worker)

    def _finish_transfer(self, message: TransferFinished) -> None:
        if message.job is not self.job:
            return
        self.job = None
        if isinstance(message.result, Ok):
            self.set_status(message.result.unwrap(), Severity.SUCCESS)
        else:
            self._report_error(message.result.unwrap_err())
        if isinstance(self.mode, QuitConfirmMode):
            self.mode = NormalMode()
        self._refresh_directory(preserve_selection=True)

    def cancel_transfer(self) -> None:
        if self.job is not None:
            self.job.token.cancel()
            self.set_status("Cancelling...", Severity.WARNING)

    # -- quit ----------------------------------------------------------------------

    def request_quit(self) -> None:
        if self.job is not None:
            self.mode = QuitConfirmMode()
            self.mark_dirty()
        else:
            self.should_quit = True

    def confirm_quit(self) -> None:
        if self.job is not None:
            self.job.token.cancel()
        self.should_quit = True

    # -- background search -------------------------------------------------------

    def _run_deep_scan(self, root: str, cancel_check: CancelCheck) -> OpResult[list[DirectoryEntry]]:
        matcher = PathIgnoreMatcher(
            root,
            fs=self._fs,
            builtin_patterns=self.config.ignore_patterns,
            ignore_file_name=self.config.ignore_file_name,
        )
        return deep_scan(root, matcher, fs=self._fs, cancel_check=cancel_check)

    # -- rendering input -----------------------------------------------------------

    def snapshot(self) -> RenderSnapshot:
        job = self.job
        transfer = None
        if job is not None:
            transfer = TransferStatus(label=job.current_label or "Processing...", percent=job.percent)
        clipboard = None
        if self.clipboard is not None:
            label = "Copy" if self.clipboard.mode is ClipboardMode.COPY else "Move"
            clipboard = f"Clipboard ({label}): {self.clipboard.source.name}"
        return RenderSnapshot(
            current_path=self.current_path,
            displayed_entries=tuple(self.displayed),
            selected_index=self.selected_index,
            viewport_offset=self.viewport_offset,
            page_size=self.page_size(),
            preview=self.preview,
            footer=self.footer_markup(),
            clipboard_summary=clipboard,
            transfer=transfer,
            status_severity=self.status_severity.value if self.status_severity is not None else None,
        )

    def footer_markup(self) -> str:
        if self.status is not None:
            return escape(self.status)

        mode = self.mode
        if isinstance(mode, FilteredNavigationMode):
            return "[grey50]Use[/] [cyan]B[/] [grey50]to return to search results | Browsing from a search result.[/]"
        if isinstance(mode, FilterMode):
            searching = " [grey50](Searching...)[/]" if self.search.is_scan_running else ""
            return (
                f"Search:{searching} [yellow]{escape(mode.buffer)}[/][grey50]█[/] | "
                "[grey50]Press[/] [cyan]Esc[/] [grey50]to navigate results[/]"
            )
        if isinstance(mode, AddMode):
            return f"Create in \\[{escape(mode.target_label)}]: [yellow]{escape(mode.buffer)}[/][grey50]█[/]"
        if isinstance(mode, RenameMode):
            return f"Rename: [yellow]{escape(mode.buffer)}[/][grey50]█[/]"
        if isinstance(mode, DeleteConfirmMode):
            return f"Delete '{escape(mode.target.name)}'? [bold green]y[/]/[bold red]n[/]"
        if isinstance(mode, QuitConfirmMode):
            return "[bold yellow]A file operation is in progress. Quit and cancel? (y/n)[/]"
        if self.clipboard is not None:
            label = "Copy" if self.clipboard.mode is ClipboardMode.COPY else "Move"
            return (
                f"[grey50]Clipboard ({label}):[/] [yellow]{escape(self.clipboard.source.name)}[/] | "
                "[cyan]P[/] Paste, [cyan]Esc[/] Clear"
            )
        if self.search.is_view_filtered:
            return (
                f"[grey50]Results for '[yellow]{escape(self.search.query)}[/]'. "
                "Press [cyan]Esc[/] to clear, or [cyan]S[/] for new search.[/]"
            )
        return (
            "[cyan]↓↑/JK[/] [grey50]Move[/] | [cyan]H/L[/] [grey50]Up/Open[/] | [cyan]C[/] Copy | "
            "[cyan]X[/] Move | [cyan]P[/] Paste | [cyan]S[/] [grey50]Search[/] | [cyan]A[/] [grey50]Add[/] | "
            "[cyan]R[/] [grey50]Rename[/] | [cyan]D[/] [grey50]Delete[/] | [cyan]Q[/] [grey50]Quit[/]"
        )
