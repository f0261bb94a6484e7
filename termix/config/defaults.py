from __future__ import annotations

from termix.config.schema import AppConfig

# Build output, version control, editor and dependency directories.
BUILTIN_IGNORE_PATTERNS: tuple[str, ...] = (
    "**/bin/**",
    "**/obj/**",
    "**/node_modules/**",
    "**/.git/**",
    "**/.vs/**",
    "**/.vscode/**",
    "**/__pycache__/**",
    "**/.venv/**",
)


def default_config() -> AppConfig:
    return AppConfig(
        ignore_patterns=list(BUILTIN_IGNORE_PATTERNS),
        ignore_file_name=".gitignore",
        default_extension=".txt",
        copy_chunk_size=81920,
        min_page_size=5,
        layout_chrome_rows=8,
        poll_interval=0.05,
        search_debounce=0.15,
        preview_max_bytes=512 * 1024,
        preview_scroll_step=5,
        log_level="WARNING",
        log_file=None,
    )
