from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Callable

import pytest
from result import Err, Ok, Result

from termix.config.defaults import default_config
from termix.models.enums import Severity
from termix.models.modes import (
    AddMode,
    DeleteConfirmMode,
    FilteredNavigationMode,
    FilterMode,
    NormalMode,
    QuitConfirmMode,
    RenameMode,
)
from termix.session.controller import SessionController
from termix.session.keys import KeyEvent


def _run_now(fn: Callable[[], None]) -> None:
    fn()


def _make(
    root: Path,
    spawn: Callable[[Callable[[], None]], None] = _run_now,
    launcher: Callable[[str], Result[None, str]] = lambda path: Ok(None),
) -> SessionController:
    config = replace(default_config(), search_debounce=0.0)
    ctl = SessionController(str(root), config, page_size=lambda: 10, spawn=spawn, launcher=launcher)
    ctl.start()
    return ctl


def press(ctl: SessionController, *keys: str) -> None:
    for key in keys:
        ctl.handle_key(KeyEvent.parse(key, key if len(key) == 1 else None))
        ctl.process_pending()


def names(ctl: SessionController) -> list[str]:
    return [e.display_name for e in ctl.displayed]


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    (tmp_path / "a.txt").write_bytes(b"0123456789")
    (tmp_path / "b").mkdir()
    return tmp_path


# ── listing and navigation ──────────────────────────────────────────


def test_start_lists_current_directory(tree: Path) -> None:
    ctl = _make(tree)
    assert names(ctl) == ["..", "b", "a.txt"]
    assert ctl.selected_index == 0
    assert ctl.preview.placeholder
    assert ctl.consume_dirty() is True
    assert ctl.consume_dirty() is False


def test_open_directory_and_go_back_restores_selection(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "j", "l")
    assert ctl.current_path == str(tree / "b")
    assert names(ctl) == [".."]

    press(ctl, "h")
    assert ctl.current_path == str(tree)
    assert ctl.selected_entry is not None
    assert ctl.selected_entry.name == "b"


def test_going_up_past_start_selects_the_directory_left(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "backspace")
    assert ctl.current_path == str(tree.parent)
    assert ctl.selected_entry is not None
    assert ctl.selected_entry.name == tree.name


def test_parent_marker_opens_parent(tree: Path) -> None:
    ctl = _make(tree / "b")
    press(ctl, "enter")
    assert ctl.current_path == str(tree)
    assert ctl.selected_entry is not None
    assert ctl.selected_entry.name == "b"


def test_opening_a_file_uses_launcher(tree: Path) -> None:
    opened: list[str] = []

    def launcher(path: str) -> Result[None, str]:
        opened.append(path)
        return Ok(None)

    ctl = _make(tree, launcher=launcher)
    press(ctl, "end", "o")
    assert opened == [str(tree / "a.txt")]
    assert ctl.current_path == str(tree)


def test_launcher_failure_becomes_status(tree: Path) -> None:
    ctl = _make(tree, launcher=lambda path: Err("Error opening file: no handler"))
    press(ctl, "end", "enter")
    assert ctl.status == "Error opening file: no handler"
    assert ctl.status_severity is Severity.ERROR


def test_viewport_follows_selection(tmp_path: Path) -> None:
    for i in range(30):
        (tmp_path / f"f{i:02d}.txt").write_text("x")
    ctl = _make(tmp_path)
    assert len(ctl.displayed) == 31

    press(ctl, "end")
    assert (ctl.selected_index, ctl.viewport_offset) == (30, 21)
    press(ctl, "home")
    assert (ctl.selected_index, ctl.viewport_offset) == (0, 0)
    press(ctl, "pagedown")
    assert (ctl.selected_index, ctl.viewport_offset) == (10, 1)

    for key in ["pagedown", "pagedown", "k", "pageup", "j", "end", "pageup", "pageup", "home"]:
        press(ctl, key)
        assert ctl.viewport_offset <= ctl.selected_index < ctl.viewport_offset + 10
        assert 0 <= ctl.viewport_offset <= len(ctl.displayed) - 10


def test_selection_stays_within_bounds(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "k")
    assert ctl.selected_index == 0
    press(ctl, "j", "j", "j", "j")
    assert ctl.selected_index == 2


def test_key_press_clears_previous_status(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "p")
    assert ctl.status == "Clipboard is empty."
    press(ctl, "j")
    assert ctl.status is None
    assert ctl.status_severity is None


# ── preview ─────────────────────────────────────────────────────────


def test_preview_scrolls_and_resets_on_selection_change(tmp_path: Path) -> None:
    (tmp_path / "lines.txt").write_text("\n".join(f"line {i}" for i in range(20)))
    ctl = _make(tmp_path)
    press(ctl, "j")
    assert ctl.preview.body.startswith("line 0")

    press(ctl, "alt+down")
    assert ctl.preview.body.startswith("line 1")
    press(ctl, "alt+right")
    assert ctl.preview.body.splitlines()[0] == "1"
    press(ctl, "alt+left", "alt+left", "alt+up", "alt+up")
    assert (ctl.preview_vertical, ctl.preview_horizontal) == (0, 0)

    press(ctl, "alt+down", "k", "j")
    assert ctl.preview_vertical == 0
    assert ctl.preview.body.startswith("line 0")


# ── filter ──────────────────────────────────────────────────────────


def test_filter_narrows_and_clears(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "s")
    assert isinstance(ctl.mode, FilterMode)

    press(ctl, "a")
    assert names(ctl) == ["a.txt"]
    assert ctl.selected_index == 0

    press(ctl, "backspace", "z")
    assert names(ctl) == []
    assert ctl.selected_index == -1

    press(ctl, "escape")
    assert isinstance(ctl.mode, NormalMode)
    assert names(ctl) == []

    press(ctl, "escape")
    assert names(ctl) == ["..", "b", "a.txt"]
    assert ctl.selected_index == 0
    assert not ctl.search.is_view_filtered


def test_filter_is_idempotent(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "slash", "a")
    first = names(ctl)
    press(ctl, "backspace", "a")
    assert names(ctl) == first


def test_escape_on_empty_filter_cancels(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "s", "escape")
    assert isinstance(ctl.mode, NormalMode)
    assert names(ctl) == ["..", "b", "a.txt"]


def test_filter_searches_subdirectories(tree: Path) -> None:
    (tree / "sub" / "deep").mkdir(parents=True)
    (tree / "sub" / "deep" / "target.txt").write_text("t")
    (tree / "node_modules").mkdir()
    (tree / "node_modules" / "target.js").write_text("t")

    opened: list[str] = []

    def launcher(path: str) -> Result[None, str]:
        opened.append(path)
        return Ok(None)

    ctl = _make(tree, launcher=launcher)
    press(ctl, "s", *"target")
    assert names(ctl) == ["sub/deep/target.txt"]

    press(ctl, "enter")
    assert isinstance(ctl.mode, NormalMode)
    assert opened == [str(tree / "sub" / "deep" / "target.txt")]


def test_filter_keys_accept_and_move(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "s", "t", "down")
    assert isinstance(ctl.mode, NormalMode)
    assert ctl.search.is_view_filtered


def test_browsing_from_results_and_returning(tree: Path) -> None:
    (tree / "sub").mkdir()
    (tree / "sub" / "inner.txt").write_text("i")
    pending: list[Callable[[], None]] = []
    ctl = _make(tree, spawn=pending.append)

    press(ctl, "s", *"sub")
    assert names(ctl) == ["sub"]

    press(ctl, "enter")
    assert isinstance(ctl.mode, FilteredNavigationMode)
    assert ctl.current_path == str(tree / "sub")
    assert names(ctl) == ["..", "inner.txt"]
    assert "return to search results" in ctl.footer_markup()

    press(ctl, "h")
    assert isinstance(ctl.mode, FilteredNavigationMode)
    assert ctl.current_path == str(tree)

    press(ctl, "b")
    assert isinstance(ctl.mode, FilterMode)
    assert ctl.mode.buffer == "sub"
    assert ctl.current_path == str(tree)
    assert names(ctl) == ["sub"]

    press(ctl, "escape", "escape")
    assert isinstance(ctl.mode, NormalMode)
    assert names(ctl) == ["..", "b", "sub", "a.txt"]


def test_back_to_results_only_in_filtered_navigation(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "b")
    assert isinstance(ctl.mode, NormalMode)
    assert ctl.current_path == str(tree)


def test_going_up_from_filtered_view_clears_filter(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "s", "a", "escape", "h")
    assert ctl.current_path == str(tree)
    assert names(ctl) == ["..", "b", "a.txt"]


# ── add / rename / delete ───────────────────────────────────────────


def test_add_file_in_current_directory(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "a")
    assert isinstance(ctl.mode, AddMode)
    assert ctl.mode.base_path == str(tree)

    press(ctl, *"new", "enter")
    assert (tree / "new.txt").is_file()
    assert isinstance(ctl.mode, NormalMode)
    assert ctl.status == "Created 'new.txt'"
    assert ctl.selected_entry is not None
    assert ctl.selected_entry.name == "new.txt"


def test_add_targets_selected_directory(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "j", "a")
    assert isinstance(ctl.mode, AddMode)
    assert ctl.mode.target_label == "b"
    press(ctl, "x", "enter")
    assert (tree / "b" / "x.txt").is_file()


def test_add_existing_reports_error(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "a", "a", "enter")
    assert ctl.status == "'a.txt' already exists."
    assert ctl.status_severity is Severity.ERROR


def test_escape_abandons_text_entry(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "a", "q", "escape")
    assert isinstance(ctl.mode, NormalMode)
    assert not (tree / "q.txt").exists()
    assert not ctl.should_quit


def test_rename_prefills_and_renames(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "end", "r")
    assert isinstance(ctl.mode, RenameMode)
    assert ctl.mode.buffer == "a.txt"

    press(ctl, *["backspace"] * 5, "c", ".", "m", "d", "enter")
    assert (tree / "c.md").read_bytes() == b"0123456789"
    assert not (tree / "a.txt").exists()
    assert ctl.status == "Renamed to 'c.md'"
    assert ctl.status_severity is Severity.SUCCESS
    assert ctl.selected_entry is not None
    assert ctl.selected_entry.name == "c.md"


def test_rename_and_delete_ignore_parent_marker(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "r")
    assert isinstance(ctl.mode, NormalMode)
    press(ctl, "d")
    assert isinstance(ctl.mode, NormalMode)


def test_delete_confirmed(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "end", "d")
    assert isinstance(ctl.mode, DeleteConfirmMode)
    press(ctl, "y")
    assert not (tree / "a.txt").exists()
    assert names(ctl) == ["..", "b"]
    assert ctl.selected_index == 1
    assert ctl.status == "Deleted 'a.txt'"


def test_delete_declined(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "end", "d", "n")
    assert isinstance(ctl.mode, NormalMode)
    assert (tree / "a.txt").exists()


def test_delete_prompt_ignores_unrelated_keys(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "end", "d", "j", "k", "x")
    assert isinstance(ctl.mode, DeleteConfirmMode)
    assert ctl.selected_entry is not None
    assert ctl.selected_entry.name == "a.txt"

    press(ctl, "escape")
    assert isinstance(ctl.mode, NormalMode)
    assert (tree / "a.txt").exists()


# ── clipboard and paste ─────────────────────────────────────────────


def test_paste_with_empty_clipboard(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "p")
    assert ctl.status == "Clipboard is empty."
    assert ctl.status_severity is Severity.ERROR


def test_paste_into_same_location(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "end", "c", "p")
    assert ctl.status == "Source and destination are the same."
    assert ctl.clipboard is not None

    press(ctl, "x", "p")
    assert ctl.status == "Source and destination are the same."
    assert ctl.clipboard is None


def test_copy_into_directory(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "end", "c")
    assert ctl.snapshot().clipboard_summary == "Clipboard (Copy): a.txt"

    press(ctl, "home", "j", "p")
    assert (tree / "b" / "a.txt").read_bytes() == b"0123456789"
    assert (tree / "a.txt").exists()
    assert ctl.job is None
    assert ctl.clipboard is None
    assert ctl.status == "Copied 'a.txt'"
    assert ctl.status_severity is Severity.SUCCESS


def test_move_into_directory(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "end", "x", "home", "j", "p")
    assert (tree / "b" / "a.txt").exists()
    assert not (tree / "a.txt").exists()
    assert names(ctl) == ["..", "b"]
    assert ctl.status == "Moved 'a.txt'"


def test_paste_folder_into_itself_is_refused(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "j", "c", "p")
    assert ctl.status == "Cannot paste a folder into itself."
    assert not (tree / "b" / "b").exists()


def test_paste_onto_existing_name_is_refused(tree: Path) -> None:
    (tree / "b" / "a.txt").write_text("other")
    ctl = _make(tree)
    press(ctl, "end", "c", "home", "j", "p")
    assert ctl.status == "An item named 'a.txt' already exists here."
    assert (tree / "b" / "a.txt").read_text() == "other"


def test_escape_clears_clipboard(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "end", "c", "escape")
    assert ctl.clipboard is None
    assert ctl.status == "Clipboard cleared."


def test_transfer_in_flight_can_be_cancelled(tree: Path) -> None:
    pending: list[Callable[[], None]] = []
    ctl = _make(tree, spawn=pending.append)
    press(ctl, "end", "c", "home", "j", "p")
    job = ctl.job
    assert job is not None
    assert ctl.clipboard is None
    assert ctl.snapshot().transfer is not None

    press(ctl, "p")
    assert ctl.status == "A transfer is already in progress."

    press(ctl, "escape")
    assert job.token.is_cancelled()

    pending[-1]()
    ctl.process_pending()
    assert ctl.job is None
    assert ctl.status == "Copying was cancelled."
    assert ctl.status_severity is Severity.WARNING
    assert not (tree / "b" / "a.txt").exists()


def test_stale_transfer_completion_is_ignored(tree: Path) -> None:
    pending: list[Callable[[], None]] = []
    ctl = _make(tree, spawn=pending.append)
    press(ctl, "end", "c", "home", "j", "p")
    ctl.job = None
    pending[-1]()
    ctl.process_pending()
    assert ctl.status is None


# ── quit ────────────────────────────────────────────────────────────


def test_quit_without_transfer(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "q")
    assert ctl.should_quit


def test_quit_with_transfer_asks_first(tree: Path) -> None:
    pending: list[Callable[[], None]] = []
    ctl = _make(tree, spawn=pending.append)
    press(ctl, "end", "c", "home", "j", "p", "q")
    assert isinstance(ctl.mode, QuitConfirmMode)
    assert not ctl.should_quit

    press(ctl, "n")
    assert isinstance(ctl.mode, NormalMode)
    assert not ctl.should_quit

    press(ctl, "q", "j")
    assert isinstance(ctl.mode, QuitConfirmMode)

    press(ctl, "escape", "Q", "y")
    assert ctl.should_quit
    assert ctl.job is not None
    assert ctl.job.token.is_cancelled()


# ── rendering input ─────────────────────────────────────────────────


def test_snapshot_reflects_state(tree: Path) -> None:
    ctl = _make(tree)
    snap = ctl.snapshot()
    assert snap.current_path == str(tree)
    assert [e.display_name for e in snap.displayed_entries] == ["..", "b", "a.txt"]
    assert snap.page_size == 10
    assert snap.transfer is None
    assert snap.clipboard_summary is None
    assert "Quit" in snap.footer


def test_footer_follows_mode(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "s", "a")
    assert "Search:" in ctl.footer_markup()
    press(ctl, "escape")
    assert "Results for" in ctl.footer_markup()
    press(ctl, "escape", "end", "d")
    assert "Delete 'a.txt'?" in ctl.footer_markup()


def test_footer_escapes_user_text(tree: Path) -> None:
    ctl = _make(tree)
    press(ctl, "a", "[", "b", "]")
    assert "\\[b]" in ctl.footer_markup()
