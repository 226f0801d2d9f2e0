"""
Locators that turn a named artifact id into exactly one archive on disk.

Named dependencies are opaque to the resolver. A locator may treat them as
catalog aliases (like a Gradle version catalog entry) or as Maven coordinates
looked up in local repository directories.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol

from packmerge.errors import SourceResolutionError

logger = logging.getLogger(__name__)

# Tried in order when a coordinate has no explicit `@ext`.
_DEFAULT_EXTENSIONS = ("jar", "aar")


class ArtifactLocator(Protocol):
    """Resolves an artifact id to one archive path, or raises `SourceResolutionError`."""

    def locate(self, artifact_id: str) -> Path: ...


class CatalogLocator:
    """Looks up ids in a fixed alias-to-path mapping."""

    def __init__(self, entries: Mapping[str, Path]) -> None:
        self._entries: dict[str, Path] = dict(entries)

    def locate(self, artifact_id: str) -> Path:
        path = self._entries.get(artifact_id)
        if path is None:
            raise SourceResolutionError(f"Artifact not in catalog: {artifact_id}")
        if not path.is_file():
            raise SourceResolutionError(
                f"Catalog entry {artifact_id!r} points to a missing file: {path}"
            )
        return path


class MavenRepositoryLocator:
    """
    Resolves `group:name:version[:classifier][@ext]` coordinates against local
    repositories laid out as `group/as/dirs/name/version/name-version[-classifier].ext`.
    Repositories are searched in order; the first hit wins.
    """

    def __init__(self, repositories: Sequence[Path]) -> None:
        self._repositories: list[Path] = [r.expanduser() for r in repositories]

    def locate(self, artifact_id: str) -> Path:
        for candidate in self.candidate_paths(artifact_id):
            if candidate.is_file():
                logger.debug("Located %s at %s", artifact_id, candidate)
                return candidate
        raise SourceResolutionError(f"Artifact not found in any repository: {artifact_id}")

    def candidate_paths(self, artifact_id: str) -> list[Path]:
        """All paths that would satisfy `artifact_id`, in search order."""
        group, name, version, classifier, extensions = _parse_coordinate(artifact_id)
        suffix = f"-{classifier}" if classifier else ""
        rel_dir = Path(*group.split("."), name, version)
        return [
            repo / rel_dir / f"{name}-{version}{suffix}.{ext}"
            for repo in self._repositories
            for ext in extensions
        ]


class ChainLocator:
    """Tries each locator in turn and returns the first successful result."""

    def __init__(self, locators: Sequence[ArtifactLocator]) -> None:
        self._locators: list[ArtifactLocator] = list(locators)

    def locate(self, artifact_id: str) -> Path:
        failures: list[str] = []
        for locator in self._locators:
            try:
                return locator.locate(artifact_id)
            except SourceResolutionError as e:
                failures.append(str(e))
        detail = "; ".join(failures) if failures else "no locators configured"
        raise SourceResolutionError(f"Cannot locate artifact {artifact_id!r} ({detail})")


def _parse_coordinate(artifact_id: str) -> tuple[str, str, str, str | None, tuple[str, ...]]:
    coordinate, _, ext = artifact_id.partition("@")
    parts = coordinate.split(":")
    if len(parts) not in (3, 4) or not all(parts):
        raise SourceResolutionError(
            f"Not a Maven coordinate (expected group:name:version[:classifier][@ext]): {artifact_id}"
        )
    group, name, version = parts[:3]
    classifier = parts[3] if len(parts) == 4 else None
    extensions = (ext,) if ext else _DEFAULT_EXTENSIONS
    return group, name, version, classifier, extensions
