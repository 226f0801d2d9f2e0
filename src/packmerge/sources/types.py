"""Value types describing declared dependency sources."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from packmerge.sources.defaults import DEFAULT_INCLUDES


@dataclass(frozen=True)
class NamedArtifact:
    """
    A dependency declared by an opaque id (an alias or Maven coordinate),
    resolved to exactly one archive by an `ArtifactLocator`.
    """

    id: str

    @property
    def source_id(self) -> str:
        return self.id


@dataclass(frozen=True)
class DirectoryScan:
    """
    A directory tree scanned for archives. A file is a candidate iff it matches
    at least one `include` glob and no `exclude` glob, both relative to `root`.
    """

    root: Path
    include: tuple[str, ...] = field(default_factory=lambda: tuple(DEFAULT_INCLUDES))
    exclude: tuple[str, ...] = ()

    @property
    def source_id(self) -> str:
        return f"scan:{self.root.as_posix()}"

    def archive_id(self, rel_path: Path) -> str:
        """Attribution id for one archive found under this scan."""
        return f"scan:{(self.root / rel_path).as_posix()}"


DependencySource = NamedArtifact | DirectoryScan


@dataclass(frozen=True)
class ExclusionRule:
    """A glob over entry paths inside archives. Matching entries are never packaged."""

    pattern: str


@dataclass(frozen=True)
class CandidateArchive:
    """One archive produced by expanding a source, in declaration order."""

    source_id: str
    path: Path
