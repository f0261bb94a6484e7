from __future__ import annotations

import pytest

from termix.config.defaults import BUILTIN_IGNORE_PATTERNS
from termix.services.ignore import (
    PathIgnoreMatcher,
    _CONTAINS,
    _ENDSWITH,
    _EXACT,
    _GLOB,
    _STARTSWITH,
    _classify,
    glob_to_regex,
    normalize_pattern,
    parse_ignore_lines,
)
from tests.fs_mock import MemoryFileSystem


# ── normalize_pattern ───────────────────────────────────────────────


@pytest.mark.parametrize("line", ["", "   ", "# comment", "!keep.log"])
def test_normalize_skips_blank_comment_and_negation(line: str) -> None:
    assert normalize_pattern(line) is None


def test_normalize_bare_name_matches_anywhere() -> None:
    assert normalize_pattern("build/") == "**/build/**"
    assert normalize_pattern("*.log") == "**/*.log/**"


def test_normalize_leading_slash_anchors_to_root() -> None:
    assert normalize_pattern("/dist") == "dist"
    assert normalize_pattern("/a/b/") == "a/b"


def test_normalize_keeps_nested_paths() -> None:
    assert normalize_pattern("docs/_build") == "docs/_build"
    assert normalize_pattern("  src\\gen  ") == "src/gen"


def test_parse_ignore_lines() -> None:
    assert parse_ignore_lines(["# c", "", "out", "/tmp"]) == ["**/out/**", "tmp"]


# ── _classify / glob_to_regex ───────────────────────────────────────


def test_classify_kinds() -> None:
    assert _classify("**/node_modules/**").kind == _CONTAINS
    assert _classify("**/*.pyc").kind == _ENDSWITH
    assert _classify("**/tmp*").kind == _STARTSWITH
    assert _classify("**/Thumbs.db").kind == _EXACT
    assert _classify("src/*.py").kind == _GLOB


def test_single_star_stays_in_segment() -> None:
    rx = glob_to_regex("src/*.py")
    assert rx.fullmatch("src/main.py")
    assert not rx.fullmatch("src/pkg/main.py")


def test_double_star_crosses_segments() -> None:
    rx = glob_to_regex("**/test_?.py")
    assert rx.fullmatch("test_1.py")
    assert rx.fullmatch("a/b/test_1.py")
    assert not rx.fullmatch("a/b/test_10.py")


def test_character_class() -> None:
    rx = glob_to_regex("file[0-9].txt")
    assert rx.fullmatch("file3.txt")
    assert not rx.fullmatch("filex.txt")


# ── PathIgnoreMatcher ───────────────────────────────────────────────


@pytest.fixture
def repo_fs() -> MemoryFileSystem:
    return (
        MemoryFileSystem()
        .add_file("/repo/.gitignore", content="*.log\nbuild/\n# comment\n\n/dist\n")
        .add_file("/.gitignore", content="secret.txt\n")
        .add_file("/repo/src/main.py")
    )


def test_builtin_patterns_apply(repo_fs: MemoryFileSystem) -> None:
    matcher = PathIgnoreMatcher("/repo", fs=repo_fs)
    assert matcher.is_ignored("/repo/node_modules/lib/index.js")
    assert matcher.is_ignored("/repo/pkg/__pycache__/mod.pyc")
    assert matcher.is_ignored("/repo/.git")
    assert not matcher.is_ignored("/repo/src/main.py")


def test_patterns_from_ignore_file(repo_fs: MemoryFileSystem) -> None:
    matcher = PathIgnoreMatcher("/repo", fs=repo_fs)
    assert matcher.is_ignored("/repo/app.log")
    assert matcher.is_ignored("/repo/src/debug.log")
    assert matcher.is_ignored("/repo/build")
    assert matcher.is_ignored("/repo/src/build/out.o")
    assert matcher.is_ignored("/repo/dist")
    assert not matcher.is_ignored("/repo/src/dist")


def test_ignore_files_found_up_to_filesystem_root(repo_fs: MemoryFileSystem) -> None:
    matcher = PathIgnoreMatcher("/repo", fs=repo_fs)
    assert matcher.is_ignored("/repo/config/secret.txt")


def test_patterns_collected_in_order(repo_fs: MemoryFileSystem) -> None:
    matcher = PathIgnoreMatcher("/repo", fs=repo_fs)
    assert matcher.patterns[: len(BUILTIN_IGNORE_PATTERNS)] == BUILTIN_IGNORE_PATTERNS
    assert "**/*.log/**" in matcher.patterns
    assert "**/secret.txt/**" in matcher.patterns


def test_paths_outside_root_are_not_ignored(repo_fs: MemoryFileSystem) -> None:
    matcher = PathIgnoreMatcher("/repo", fs=repo_fs)
    assert not matcher.is_ignored("/repo")
    assert not matcher.is_ignored("/other/app.log")


def test_custom_builtins_replace_defaults() -> None:
    fs = MemoryFileSystem().add_dir("/repo")
    matcher = PathIgnoreMatcher("/repo", fs=fs, builtin_patterns=["**/*.tmp"])
    assert matcher.is_ignored("/repo/a/b.tmp")
    assert not matcher.is_ignored("/repo/node_modules/x.js")


def test_alternate_ignore_file_name() -> None:
    fs = MemoryFileSystem().add_file("/repo/.termixignore", content="vendor\n")
    matcher = PathIgnoreMatcher("/repo", fs=fs, ignore_file_name=".termixignore")
    assert matcher.is_ignored("/repo/vendor/lib.c")
