"""
PackagingResolver: main entry point for dependency packaging.

Expands declared sources into candidate archives, reads them, drops resource
paths matching the global exclusion rules, and merges the rest into one
conflict-free, ordered list of entries. When two archives provide the same
path, the archive declared first wins.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pathspec

from packmerge.archives import ArchiveReader
from packmerge.errors import SourceResolutionError
from packmerge.sources.defaults import DEFAULT_TIMEOUT
from packmerge.sources.globs import compile_globs
from packmerge.sources.locators import ArtifactLocator
from packmerge.sources.scanner import ArchiveScanner
from packmerge.sources.types import (
    CandidateArchive,
    DependencySource,
    DirectoryScan,
    ExclusionRule,
    NamedArtifact,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackagedEntry:
    """One file that lands in the final package."""

    path: str
    archive: Path
    content: bytes = field(repr=False)
    source_id: str

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def sha256(self) -> str:
        return hashlib.sha256(self.content).hexdigest()


@dataclass(frozen=True)
class Collision:
    """A later entry discarded because an earlier archive already supplied `path`."""

    path: str
    kept: str
    discarded: str


@dataclass
class ResolutionResult:
    entries: list[PackagedEntry] = field(default_factory=list)
    archives: list[CandidateArchive] = field(default_factory=list)
    collisions: list[Collision] = field(default_factory=list)
    excluded_count: int = 0

    @property
    def paths(self) -> list[str]:
        return [e.path for e in self.entries]


class PackagingResolver:
    """
    Resolves an ordered list of dependency sources into packaged entries.

    Named artifacts need a `locator`. Archive reads are bounded by `timeout`
    seconds each and may use `jobs` threads; neither setting affects the result.
    """

    def __init__(
        self,
        locator: ArtifactLocator | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
        jobs: int = 1,
    ) -> None:
        self._locator: ArtifactLocator | None = locator
        self._timeout: float | None = timeout
        self._jobs: int = jobs

    def expand(self, sources: Sequence[DependencySource]) -> list[CandidateArchive]:
        """
        Expand sources into candidate archives in declaration order, without
        opening any archive. Every scan glob is validated before the first walk.
        """
        scanners = {
            i: ArchiveScanner(s) for i, s in enumerate(sources) if isinstance(s, DirectoryScan)
        }

        archives: list[CandidateArchive] = []
        for i, source in enumerate(sources):
            if isinstance(source, NamedArtifact):
                archives.append(CandidateArchive(source.source_id, self._locate(source)))
            else:
                archives.extend(scanners[i].expand())
        return archives

    def resolve(
        self,
        sources: Sequence[DependencySource],
        rules: Iterable[ExclusionRule | str] = (),
    ) -> ResolutionResult:
        """
        Run one full resolution pass. Raises a `PackagingError` subclass on any
        failure; nothing is returned partially.
        """
        exclude_spec = _compile_rules(rules)
        archives = self.expand(sources)

        reader = ArchiveReader(timeout=self._timeout, jobs=self._jobs, exclude=exclude_spec)
        result = ResolutionResult(archives=archives)
        seen: dict[str, PackagedEntry] = {}

        for contents in reader.read_all(archives):
            source_id = contents.archive.source_id
            result.excluded_count += len(contents.excluded)
            for path, data in contents.entries:
                kept = seen.get(path)
                if kept is not None:
                    result.collisions.append(Collision(path, kept.source_id, source_id))
                    logger.debug(
                        "Collision on %s: keeping %s, dropping %s", path, kept.source_id, source_id
                    )
                    continue
                entry = PackagedEntry(
                    path=path, archive=contents.archive.path, content=data, source_id=source_id
                )
                seen[path] = entry
                result.entries.append(entry)

        logger.info(
            "Resolved %d entries from %d archive(s) (%d collisions, %d excluded)",
            len(result.entries),
            len(archives),
            len(result.collisions),
            result.excluded_count,
        )
        return result

    def _locate(self, artifact: NamedArtifact) -> Path:
        if self._locator is None:
            raise SourceResolutionError(
                f"No artifact locator configured to resolve named artifact: {artifact.id}"
            )
        return self._locator.locate(artifact.id)


def _compile_rules(rules: Iterable[ExclusionRule | str]) -> pathspec.PathSpec:
    patterns = [r.pattern if isinstance(r, ExclusionRule) else r for r in rules]
    return compile_globs(patterns)
