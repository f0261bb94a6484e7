from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable
from dataclasses import dataclass

from termix.config.defaults import BUILTIN_IGNORE_PATTERNS
from termix.services.fs import DEFAULT_FS, FileSystem

logger = logging.getLogger(__name__)

# Matcher kinds, as ints for a cheap per-entry dispatch.
_CONTAINS = 0  # "/segment/" in "/rel/"  (for **/segment/**)
_ENDSWITH = 1  # basename.endswith(v)   (for **/*.ext)
_STARTSWITH = 2  # basename.startswith(v) (for **/prefix*)
_EXACT = 3  # basename == v           (for **/name)
_GLOB = 4  # fallback to a compiled regex


@dataclass(slots=True, frozen=True)
class _Matcher:
    kind: int
    value: str
    regex: re.Pattern[str] | None = None


def _has_glob_chars(s: str) -> bool:
    return "*" in s or "?" in s or "[" in s


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a glob into a regex over ``/``-separated relative paths.

    ``*`` and ``?`` stay inside one segment; ``**`` crosses segments.
    """
    out: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        c = pattern[i]
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("/**", i) and i + 3 == n:
            out.append("(?:/.*)?")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif c == "*":
            out.append("[^/]*")
            i += 1
        elif c == "?":
            out.append("[^/]")
            i += 1
        elif c == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                out.append(re.escape(c))
                i += 1
            else:
                body = pattern[i + 1 : end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = end + 1
        else:
            out.append(re.escape(c))
            i += 1
    return re.compile("".join(out))


def _classify(pattern: str) -> _Matcher:
    """Turn one normalized pattern into a fast string matcher."""
    if not pattern.startswith("**/"):
        return _Matcher(_GLOB, pattern, glob_to_regex(pattern))

    rest = pattern[3:]

    # **/segment/** and **/a/b/** become a substring check on the path
    if rest.endswith("/**"):
        middle = rest[:-3]
        if not _has_glob_chars(middle):
            return _Matcher(_CONTAINS, f"/{middle}/")
        return _Matcher(_GLOB, pattern, glob_to_regex(pattern))

    if "/" in rest:
        return _Matcher(_GLOB, pattern, glob_to_regex(pattern))

    # **/*.ext
    if rest.startswith("*") and not _has_glob_chars(rest[1:]):
        return _Matcher(_ENDSWITH, rest[1:])

    # **/prefix*
    if rest.endswith("*") and not _has_glob_chars(rest[:-1]):
        return _Matcher(_STARTSWITH, rest[:-1])

    # **/name
    if not _has_glob_chars(rest):
        return _Matcher(_EXACT, rest)

    return _Matcher(_GLOB, pattern, glob_to_regex(pattern))


def normalize_pattern(line: str) -> str | None:
    """Convert one exclusion-file line into a root-relative glob.

    Returns ``None`` for blank lines, comments and negations.
    """
    pattern = line.strip()
    if not pattern or pattern.startswith("#") or pattern.startswith("!"):
        return None
    pattern = pattern.replace("\\", "/").rstrip("/")
    if not pattern:
        return None
    if pattern.startswith("/"):
        return pattern.lstrip("/")
    if "/" not in pattern:
        # A bare name matches at any depth, including everything beneath it.
        return f"**/{pattern}/**"
    return pattern


def parse_ignore_lines(lines: Iterable[str]) -> list[str]:
    patterns: list[str] = []
    for line in lines:
        normalized = normalize_pattern(line)
        if normalized is not None:
            patterns.append(normalized)
    return patterns


def _match(m: _Matcher, rel: str, base: str) -> bool:
    if m.kind == _CONTAINS:
        return m.value in f"/{rel}/"
    if m.kind == _ENDSWITH:
        return base.endswith(m.value)
    if m.kind == _STARTSWITH:
        return base.startswith(m.value)
    if m.kind == _EXACT:
        return base == m.value
    assert m.regex is not None
    return m.regex.fullmatch(rel) is not None


class PathIgnoreMatcher:
    """Answers whether a path under *root* is excluded from a deep scan.

    Patterns are the built-in excludes plus every line of each exclusion file
    found from *root* up to the filesystem root. Immutable after construction,
    so ``is_ignored`` is safe to call from worker threads.
    """

    __slots__ = ("_root", "_matchers", "_patterns")

    def __init__(
        self,
        root: str,
        fs: FileSystem = DEFAULT_FS,
        builtin_patterns: Iterable[str] = BUILTIN_IGNORE_PATTERNS,
        ignore_file_name: str = ".gitignore",
    ) -> None:
        self._root = root
        patterns = list(builtin_patterns)
        patterns.extend(_load_ignore_files(root, fs, ignore_file_name))
        self._patterns: tuple[str, ...] = tuple(patterns)
        self._matchers: tuple[_Matcher, ...] = tuple(_classify(p) for p in patterns)

    @property
    def patterns(self) -> tuple[str, ...]:
        return self._patterns

    def is_ignored(self, absolute_path: str) -> bool:
        rel = os.path.relpath(absolute_path, self._root).replace(os.sep, "/")
        if rel == "." or rel == ".." or rel.startswith("../"):
            return False
        base = rel.rsplit("/", 1)[-1]
        for m in self._matchers:
            if _match(m, rel, base):
                return True
        return False


def _load_ignore_files(root: str, fs: FileSystem, ignore_file_name: str) -> list[str]:
    patterns: list[str] = []
    current = root
    while True:
        candidate = os.path.join(current, ignore_file_name)
        if fs.exists(candidate):
            try:
                patterns.extend(parse_ignore_lines(fs.read_text(candidate).splitlines()))
            except (OSError, UnicodeDecodeError) as exc:
                logger.debug("Skipping unreadable ignore file %s: %s", candidate, exc)
        parent = os.path.dirname(current)
        if not parent or parent == current:
            break
        current = parent
    return patterns
