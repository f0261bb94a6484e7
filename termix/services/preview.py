from __future__ import annotations

import os

from rich.syntax import Syntax

from termix.models.snapshot import PreviewContent

_BINARY_SAMPLE = 8000

PLACEHOLDER = PreviewContent(title="Preview", body="Select a file to preview", placeholder=True)


def is_binary(data: bytes) -> bool:
    for b in data[:_BINARY_SAMPLE]:
        if b == 0 or b < 7 or 14 < b < 32:
            return True
    return False


def lexer_for(path: str) -> str | None:
    """Pygments lexer name for *path*, or ``None`` when the file type is unknown."""
    name = Syntax.guess_lexer(path)
    return None if name == "default" else name


class PreviewProvider:
    def __init__(self, max_bytes: int = 512 * 1024) -> None:
        self._max_bytes = max_bytes

    def get_preview(
        self, path: str | None, vertical_offset: int, horizontal_offset: int, height: int = 40
    ) -> PreviewContent:
        if path is None or not os.path.isfile(path):
            return PLACEHOLDER

        title = os.path.basename(path)
        try:
            with open(path, "rb") as fh:
                data = fh.read(self._max_bytes)
        except OSError as exc:
            return PreviewContent(title=title, body=f"Error reading file: {exc}", placeholder=True)

        if is_binary(data):
            return PreviewContent(title=title, body="Binary file\nNo preview available", placeholder=True)

        lines = data.decode("utf-8", errors="replace").splitlines()
        visible = [line[horizontal_offset:] for line in lines[vertical_offset : vertical_offset + max(1, height)]]
        if not visible:
            return PreviewContent(title=title, body="-- End of File --", placeholder=True)
        return PreviewContent(title=title, body="\n".join(visible), lexer=lexer_for(path))
