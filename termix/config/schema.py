from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class AppConfig:
    ignore_patterns: list[str] = field(default_factory=list)
    ignore_file_name: str = ".gitignore"
    default_extension: str = ".txt"
    copy_chunk_size: int = 81920
    min_page_size: int = 5
    layout_chrome_rows: int = 8
    poll_interval: float = 0.05
    search_debounce: float = 0.15
    preview_max_bytes: int = 512 * 1024
    preview_scroll_step: int = 5
    log_level: str = "WARNING"
    log_file: str | None = None
