"""Exclude patterns for PHP source discovery.

Two layers:

DEFAULT_EXCLUDE_PATTERNS: regexes matched against forward-slash normalized paths.
    - Dependencies, VCS internals, IDE directories
    - Replaced entirely when the caller supplies its own non-empty pattern list

FALLBACK_PRUNED_DIRS: directory names skipped when a project manifest declares no
    source roots and the whole project root is walked instead.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import Path

from phpthrows.core.errors import ConfigError

DEFAULT_EXCLUDE_PATTERNS: tuple[str, ...] = (
    # Dependencies
    r"(?:^|/)vendor/",
    r"(?:^|/)node_modules/",
    # VCS internals
    r"(?:^|/)\.git/",
    r"(?:^|/)\.svn/",
    r"(?:^|/)\.hg/",
    # IDE/Editor directories
    r"(?:^|/)\.idea/",
    r"(?:^|/)\.vscode/",
    r"(?:^|/)\.vs/",
)

FALLBACK_PRUNED_DIRS: frozenset[str] = frozenset(
    (
        ".git",
        ".svn",
        ".hg",
        "vendor",
        "node_modules",
        "cache",
        "var",
        "storage",
        "temp",
    )
)

# /regex/flags, as written for preg_match
_DELIMITED = re.compile(r"^/(?P<body>.*)/(?P<flags>[imsx]*)$", re.DOTALL)

_FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}


def normalize_path(path: str | Path) -> str:
    """Render a path with forward slashes regardless of platform."""
    return str(path).replace("\\", "/")


def compile_exclude_pattern(pattern: str) -> re.Pattern[str]:
    """Compile one exclude pattern, accepting PHP-style /delimited/ regexes."""
    body = pattern
    flags = 0
    match = _DELIMITED.match(pattern)
    if match is not None and match.group("body"):
        body = match.group("body")
        for flag in match.group("flags"):
            flags |= _FLAG_MAP[flag]
    try:
        return re.compile(body, flags)
    except re.error as e:
        raise ConfigError.invalid_pattern(pattern, str(e)) from e


class ExcludeFilter:
    """Regex-based path exclusion.

    An empty or missing pattern list falls back to DEFAULT_EXCLUDE_PATTERNS;
    it never means "exclude nothing".
    """

    def __init__(self, patterns: Iterable[str] | None = None) -> None:
        custom = [p for p in (patterns or ()) if p]
        self.patterns: tuple[str, ...] = tuple(custom) if custom else DEFAULT_EXCLUDE_PATTERNS
        self._compiled = [compile_exclude_pattern(p) for p in self.patterns]

    def is_excluded(self, path: str | Path) -> bool:
        normalized = normalize_path(path)
        return any(regex.search(normalized) for regex in self._compiled)
