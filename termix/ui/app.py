from __future__ import annotations

from typing import override

from rich.console import Group, RenderableType
from rich.markup import escape
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.widgets import Static

from termix.config.schema import AppConfig
from termix.models.entry import DirectoryEntry
from termix.models.snapshot import RenderSnapshot
from termix.services.formatting import format_modified_cell, format_size_cell, truncate_path
from termix.services.icons import IconLookup
from termix.session.controller import SessionController
from termix.session.keys import KeyEvent

_STATUS_STYLES: dict[str, str] = {
    "info": "#c5c8c6",
    "success": "#b5bd68",
    "warning": "#f0c674",
    "error": "#cc6666",
}


class TermixApp(App[None]):
    CSS_PATH = "app.tcss"

    def __init__(
        self,
        start_path: str,
        config: AppConfig,
        use_icons: bool = True,
        controller: SessionController | None = None,
    ) -> None:
        super().__init__()
        self.config = config
        self.icons = IconLookup(use_icons)
        self.controller = controller or SessionController(start_path, config, page_size=self._visible_rows)

    def _visible_rows(self) -> int:
        return self.size.height - self.config.layout_chrome_rows

    @override
    def compose(self) -> ComposeResult:
        yield Container(
            Static(id="path-row"),
            Horizontal(
                Static(id="listing"),
                Static(id="preview"),
                id="panes",
            ),
            Static(id="clipboard-row"),
            Static(id="progress-row"),
            Static(id="status-row"),
            id="app-grid",
        )

    def on_mount(self) -> None:
        self.controller.start()
        self.set_interval(self.config.poll_interval, self._tick)
        self._refresh_all()

    def on_resize(self) -> None:
        self.controller.adjust_viewport()
        self._refresh_all()

    def on_unmount(self) -> None:
        self.controller.shutdown()

    @override
    def on_key(self, event: events.Key) -> None:  # type: ignore[override]
        event.stop()
        event.prevent_default()
        self.controller.handle_key(KeyEvent.parse(event.key, event.character))
        self._tick()

    def _tick(self) -> None:
        controller = self.controller
        controller.process_pending()
        if controller.should_quit:
            self.exit()
            return
        if controller.consume_dirty():
            self._refresh_all()

    def _refresh_all(self) -> None:
        snap = self.controller.snapshot()
        self._render_path_row(snap)
        self._render_listing(snap)
        self._render_preview(snap)
        self._render_footer_rows(snap)

    def _render_path_row(self, snap: RenderSnapshot) -> None:
        width = max(10, self.size.width - 10)
        path = truncate_path(snap.current_path, width)
        self.query_one("#path-row", Static).update(Text.from_markup(f"[#81a2be]Path:[/] {escape(path)}"))

    def _render_listing(self, snap: RenderSnapshot) -> None:
        table = Table(box=None, expand=True, show_edge=False, pad_edge=False, header_style="bold #81a2be")
        table.add_column("", width=2, no_wrap=True)
        table.add_column("NAME", ratio=1, no_wrap=True, overflow="ellipsis")
        table.add_column("SIZE", justify="right", width=10, no_wrap=True)
        table.add_column("MODIFIED", width=16, no_wrap=True)

        visible = snap.displayed_entries[snap.viewport_offset : snap.viewport_offset + snap.page_size]
        for offset, entry in enumerate(visible):
            index = snap.viewport_offset + offset
            style = "reverse" if index == snap.selected_index else None
            table.add_row(
                self.icons.glyph(entry),
                _name_cell(entry),
                "" if entry.is_parent_marker else format_size_cell(entry),
                "" if entry.is_parent_marker else format_modified_cell(entry),
                style=style,
            )

        body: RenderableType = table
        if not snap.displayed_entries:
            body = Group(table, Text("(empty)", style="#969896"))
        self.query_one("#listing", Static).update(body)

    def _render_preview(self, snap: RenderSnapshot) -> None:
        preview = snap.preview
        body: RenderableType
        if preview.lexer and not preview.placeholder:
            body = Syntax(preview.body, preview.lexer, theme="monokai", word_wrap=False, background_color="default")
        else:
            style = "#969896" if preview.placeholder else "#c5c8c6"
            body = Text(preview.body, style=style, no_wrap=True, overflow="crop")
        panel = Panel(body, title=escape(preview.title), title_align="left", border_style="#373b41")
        self.query_one("#preview", Static).update(panel)

    def _render_footer_rows(self, snap: RenderSnapshot) -> None:
        clipboard_row = self.query_one("#clipboard-row", Static)
        clipboard_row.update(Text(snap.clipboard_summary or "", style="#f0c674"))

        progress_row = self.query_one("#progress-row", Static)
        if snap.transfer is not None:
            grid = Table.grid(padding=(0, 1))
            grid.add_column(no_wrap=True)
            grid.add_column(width=30)
            grid.add_column(justify="right", width=5)
            grid.add_row(
                Text(snap.transfer.label, style="#81a2be"),
                ProgressBar(total=100, completed=snap.transfer.percent, width=30),
                f"{snap.transfer.percent:.0f}%",
            )
            progress_row.update(grid)
        else:
            progress_row.update("")

        footer = snap.footer
        if snap.status_severity is not None:
            footer = f"[{_STATUS_STYLES.get(snap.status_severity, '#c5c8c6')}]{footer}[/]"
        self.query_one("#status-row", Static).update(Text.from_markup(footer))


def _name_cell(entry: DirectoryEntry) -> Text:
    if entry.is_directory:
        return Text(entry.display_name, style="bold #81a2be")
    return Text(entry.display_name)
