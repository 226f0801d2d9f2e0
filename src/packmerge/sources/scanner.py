"""
Directory-scan expansion: walks a scan root and yields the archives that pass
the scan's include and exclude globs, in a stable order.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

import pathspec

from packmerge.errors import SourceResolutionError
from packmerge.sources.globs import compile_globs
from packmerge.sources.types import CandidateArchive, DirectoryScan

logger = logging.getLogger(__name__)


class ArchiveScanner:
    """
    Expands one `DirectoryScan`. Globs are compiled on construction, so a bad
    pattern fails before any directory is walked.

    Exclude globs always win over include globs. Excluded directories are
    pruned during traversal rather than filtered afterwards.
    """

    def __init__(self, scan: DirectoryScan) -> None:
        self._scan: DirectoryScan = scan
        self._include_spec: pathspec.PathSpec = compile_globs(scan.include)
        self._exclude_spec: pathspec.PathSpec = compile_globs(scan.exclude)

    @property
    def scan(self) -> DirectoryScan:
        return self._scan

    def expand(self) -> list[CandidateArchive]:
        """
        Return candidate archives beneath the root. An existing root with no
        matches yields an empty list; a missing root raises `SourceResolutionError`.
        """
        root = self._scan.root
        if not root.exists():
            raise SourceResolutionError(f"Scan root not found: {root}")
        if not root.is_dir():
            raise SourceResolutionError(f"Scan root is not a directory: {root}")

        found = [
            CandidateArchive(source_id=self._scan.archive_id(rel), path=root / rel)
            for rel in self._walk(root)
        ]
        logger.debug("Scan %s matched %d archive(s)", root, len(found))
        return found

    def matches(self, rel_path: str) -> bool:
        """Whether a root-relative POSIX path is selected by this scan's globs."""
        if self._exclude_spec.match_file(rel_path):
            return False
        return self._include_spec.match_file(rel_path)

    def _walk(self, root: Path) -> Iterable[Path]:
        for dirpath, dirnames, filenames in os.walk(root):
            current = Path(dirpath)
            rel_dir = current.relative_to(root)

            # Prune excluded directories in-place (prevents descent)
            dirnames[:] = sorted(
                d for d in dirnames if not self._exclude_spec.match_file(_posix(rel_dir / d) + "/")
            )

            for filename in sorted(filenames):
                rel = rel_dir / filename
                if not (current / filename).is_file():
                    continue
                if self.matches(_posix(rel)):
                    yield rel


def _posix(path: Path) -> str:
    return "" if path == Path(".") else path.as_posix()
