"""Error types raised during dependency resolution and packaging."""

from __future__ import annotations

from pathlib import Path


class PackagingError(Exception):
    """Base class for all packaging failures. A raised error means no manifest was emitted."""


class SourceResolutionError(PackagingError):
    """A declared scan root or named artifact could not be located."""


class ArchiveReadError(PackagingError):
    """
    An archive could not be opened, enumerated, or read within its timeout.
    `source_id` identifies the declaring source for reporting.
    """

    def __init__(self, message: str, source_id: str, archive: Path | None = None) -> None:
        super().__init__(f"{source_id}: {message}")
        self.source_id: str = source_id
        self.archive: Path | None = archive


class GlobSyntaxError(PackagingError):
    """An include, exclude, or resource exclusion pattern is malformed."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid glob pattern {pattern!r}: {reason}")
        self.pattern: str = pattern
        self.reason: str = reason
