from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from termix.models.modes import (
    AddMode,
    DeleteConfirmMode,
    FilteredNavigationMode,
    FilterMode,
    QuitConfirmMode,
    RenameMode,
)

if TYPE_CHECKING:
    from termix.session.controller import SessionController

_CONFIRM_CANCEL_KEYS = frozenset({"n", "escape"})


@dataclass(slots=True, frozen=True)
class KeyEvent:
    """A terminal key press, named the way textual names keys."""

    key: str
    character: str | None = None
    alt: bool = False

    @classmethod
    def parse(cls, key: str, character: str | None = None) -> KeyEvent:
        alt = key.startswith("alt+")
        if alt:
            key = key[len("alt+") :]
        return cls(key=key, character=character, alt=alt)

    @property
    def command(self) -> str:
        """Key name with letter case and shift folded away, so ``Q`` acts like ``q``."""
        key = self.key
        if key.startswith("shift+") and len(key) == len("shift+") + 1:
            return key[-1].lower()
        if len(key) == 1:
            return key.lower()
        return key

    @property
    def is_printable(self) -> bool:
        char = self.character
        return not self.alt and char is not None and len(char) == 1 and char.isprintable()


def dispatch(controller: SessionController, event: KeyEvent) -> None:
    mode = controller.mode
    if isinstance(mode, FilterMode):
        _handle_filter_key(controller, event)
    elif isinstance(mode, (AddMode, RenameMode)):
        _handle_text_key(controller, event)
    elif isinstance(mode, DeleteConfirmMode):
        if event.command == "y":
            controller.confirm_delete()
        elif event.command in _CONFIRM_CANCEL_KEYS:
            controller.reset_to_normal()
    elif isinstance(mode, QuitConfirmMode):
        if event.command == "y":
            controller.confirm_quit()
        elif event.command in _CONFIRM_CANCEL_KEYS:
            controller.reset_to_normal()
    else:
        _handle_browse_key(controller, event)


def _handle_filter_key(controller: SessionController, event: KeyEvent) -> None:
    key = event.key
    if key == "escape":
        if controller.search.query:
            controller.accept_filter()
        else:
            controller.clear_filter()
        return
    if key in {"enter", "up", "down"}:
        controller.accept_filter()
        _handle_browse_key(controller, event)
        return
    if key == "backspace":
        controller.delete_text()
        return
    if event.is_printable:
        assert event.character is not None
        controller.append_text(event.character)


def _handle_text_key(controller: SessionController, event: KeyEvent) -> None:
    key = event.key
    if key == "enter":
        controller.commit_text()
    elif key == "escape":
        controller.reset_to_normal()
    elif key == "backspace":
        controller.delete_text()
    elif event.is_printable:
        assert event.character is not None
        controller.append_text(event.character)


def _handle_preview_key(controller: SessionController, event: KeyEvent) -> bool:
    if not event.alt:
        return False
    key = event.command
    step = controller.config.preview_scroll_step
    if key in {"up", "k"}:
        controller.scroll_preview(-1, 0)
        return True
    if key in {"down", "j"}:
        controller.scroll_preview(1, 0)
        return True
    if key in {"left", "h"}:
        controller.scroll_preview(0, -step)
        return True
    if key in {"right", "l"}:
        controller.scroll_preview(0, step)
        return True
    return False


def _handle_navigation_key(controller: SessionController, key: str) -> bool:
    if key in {"j", "down"}:
        controller.move_selection(1)
        return True
    if key in {"k", "up"}:
        controller.move_selection(-1)
        return True
    if key == "pagedown":
        controller.move_selection(controller.page_size())
        return True
    if key == "pageup":
        controller.move_selection(-controller.page_size())
        return True
    if key == "home":
        controller.move_to_edge(to_start=True)
        return True
    if key == "end":
        controller.move_to_edge(to_start=False)
        return True
    if key in {"enter", "l", "o", "right"}:
        controller.open_selected()
        return True
    if key in {"backspace", "h", "left"}:
        controller.navigate_up()
        return True
    return False


def _handle_command_key(controller: SessionController, key: str) -> bool:
    if key == "a":
        controller.begin_add()
        return True
    if key == "r":
        controller.begin_rename()
        return True
    if key == "d":
        controller.begin_delete()
        return True
    if key in {"s", "slash"}:
        controller.begin_filter()
        return True
    if key == "c":
        controller.mark_for_copy()
        return True
    if key == "x":
        controller.mark_for_move()
        return True
    if key == "p":
        controller.paste()
        return True
    if key == "q":
        controller.request_quit()
        return True
    if key == "b" and isinstance(controller.mode, FilteredNavigationMode):
        controller.return_to_results()
        return True
    return False


def _handle_escape(controller: SessionController) -> None:
    if controller.search.is_view_filtered:
        controller.clear_filter()
    elif controller.clipboard is not None:
        controller.clear_clipboard()
    elif controller.job is not None:
        controller.cancel_transfer()


def _handle_browse_key(controller: SessionController, event: KeyEvent) -> None:
    if _handle_preview_key(controller, event):
        return
    if event.alt:
        return
    key = event.command
    if key == "escape":
        _handle_escape(controller)
        return
    if _handle_navigation_key(controller, key):
        return
    _handle_command_key(controller, key)
