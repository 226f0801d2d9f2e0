"""
Glob validation and compilation using pathspec.

Patterns are matched against whole root-relative paths, never against a
matched parent directory:

- `*`, `?` and `[...]` stay within one path segment (`*.jar` is top-level only).
- `**` crosses segments, whether it is a whole segment (`**/*.jar`) or part of
  one (`org/**.class`).
- A trailing `/` is the one subtree form: `old/` matches everything below `old`.
- A leading `/` is accepted and ignored; every pattern is anchored.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

import pathspec
from pathspec.pattern import RegexPattern

from packmerge.errors import GlobSyntaxError


class ArchiveGlobPattern(RegexPattern):
    """A pathspec pattern compiled from the anchored glob dialect above."""

    __slots__ = ()

    @classmethod
    def pattern_to_regex(cls, pattern: str) -> tuple[str, bool]:
        return glob_to_regex(pattern), True


def _dangling_escape(pattern: str) -> bool:
    trailing = len(pattern) - len(pattern.rstrip("\\"))
    return trailing % 2 == 1


def _unterminated_class(pattern: str) -> bool:
    """True if a `[` opens a character class that never closes within its segment."""
    i = 0
    n = len(pattern)
    while i < n:
        c = pattern[i]
        if c == "\\":
            i += 2
            continue
        if c == "[":
            j = i + 1
            if j < n and pattern[j] in "!^":
                j += 1
            if j < n and pattern[j] == "]":
                j += 1
            while j < n and pattern[j] != "]":
                if pattern[j] == "/":
                    return True
                j += 1
            if j >= n:
                return True
            i = j + 1
            continue
        i += 1
    return False


def _translate_segment(segment: str) -> str:
    out: list[str] = []
    i = 0
    n = len(segment)
    while i < n:
        c = segment[i]
        if c == "\\":
            if i + 1 >= n:
                raise ValueError("escape character at end of path segment")
            out.append(re.escape(segment[i + 1]))
            i += 2
        elif c == "*":
            if segment.startswith("**", i):
                out.append(".*")
                while i < n and segment[i] == "*":
                    i += 1
            else:
                out.append("[^/]*")
                i += 1
        elif c == "?":
            out.append("[^/]")
            i += 1
        elif c == "[":
            j = i + 1
            negate = j < n and segment[j] in "!^"
            if negate:
                j += 1
            start = j
            if j < n and segment[j] == "]":
                j += 1
            while segment[j] != "]":
                j += 1
            body = "".join("\\" + ch if ch in "\\[]^" else ch for ch in segment[start:j])
            out.append(f"[^/{body}]" if negate else f"[{body}]")
            i = j + 1
        else:
            out.append(re.escape(c))
            i += 1
    return "".join(out)


def glob_to_regex(pattern: str) -> str:
    """Translate a validated glob into an anchored regular expression."""
    body = pattern.lstrip("/")
    subtree = body.endswith("/")
    if subtree:
        body = body.rstrip("/")

    segments = body.split("/")
    parts: list[str] = []
    for i, segment in enumerate(segments):
        last = i == len(segments) - 1
        if segment == "**":
            parts.append(".*" if last else "(?:[^/]*/)*")
        else:
            parts.append(_translate_segment(segment) + ("" if last else "/"))
    return "^" + "".join(parts) + ("/.*" if subtree else "") + "$"


def validate_glob(pattern: str) -> ArchiveGlobPattern:
    """
    Check a single pattern and return it compiled.
    Raises `GlobSyntaxError` if the pattern is malformed.
    """
    if not pattern.strip() or not pattern.strip("/"):
        raise GlobSyntaxError(pattern, "pattern is empty")
    if pattern.startswith("!"):
        raise GlobSyntaxError(pattern, "negated patterns are not supported; use an exclude list")
    if _dangling_escape(pattern):
        raise GlobSyntaxError(pattern, "trailing escape character")
    if _unterminated_class(pattern):
        raise GlobSyntaxError(pattern, "unterminated character class")

    try:
        return ArchiveGlobPattern(pattern)
    except (re.error, ValueError) as e:
        raise GlobSyntaxError(pattern, str(e)) from e


def compile_globs(patterns: Iterable[str]) -> pathspec.PathSpec:
    """Validate every pattern, then combine them into one `PathSpec`."""
    return pathspec.PathSpec([validate_glob(p) for p in patterns])
