"""
Reading candidate archives (`.jar`, `.aar`, and any other zip container).

Each read is bounded by a timeout. With `jobs > 1` archives are read in
parallel, but results are always returned in declaration order so the merge
that follows stays deterministic.
"""

from __future__ import annotations

import concurrent.futures
import logging
import queue
import threading
import zipfile
from collections.abc import Sequence
from dataclasses import dataclass, field

import pathspec

from packmerge.errors import ArchiveReadError
from packmerge.sources.defaults import DEFAULT_TIMEOUT
from packmerge.sources.types import CandidateArchive

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchiveContents:
    """File entries of one archive, in stored order, with excluded paths split out."""

    archive: CandidateArchive
    entries: list[tuple[str, bytes]] = field(default_factory=list)
    excluded: list[str] = field(default_factory=list)


def read_archive(
    archive: CandidateArchive, exclude: pathspec.PathSpec | None = None
) -> ArchiveContents:
    """
    Open a zip-format archive and read every file entry. Directory entries are
    skipped. Entries matching `exclude` are listed but their content is not read.
    """
    entries: list[tuple[str, bytes]] = []
    excluded: list[str] = []
    try:
        with zipfile.ZipFile(archive.path) as zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue
                if exclude is not None and exclude.match_file(info.filename):
                    excluded.append(info.filename)
                    continue
                entries.append((info.filename, zf.read(info)))
    except zipfile.BadZipFile as e:
        raise ArchiveReadError(
            f"Corrupt or non-zip archive {archive.path}: {e}", archive.source_id, archive.path
        ) from e
    except (OSError, EOFError, RuntimeError, NotImplementedError) as e:
        # RuntimeError: encrypted entries; NotImplementedError: unsupported compression
        raise ArchiveReadError(
            f"Cannot read archive {archive.path}: {e}", archive.source_id, archive.path
        ) from e

    logger.debug(
        "Read %s: %d entries, %d excluded", archive.path, len(entries), len(excluded)
    )
    return ArchiveContents(archive=archive, entries=entries, excluded=excluded)


class ArchiveReader:
    """
    Reads many archives with a per-archive timeout.

    `timeout` is in seconds; `0` or `None` disables it. `jobs` is the number of
    worker threads.
    """

    def __init__(
        self,
        timeout: float | None = DEFAULT_TIMEOUT,
        jobs: int = 1,
        exclude: pathspec.PathSpec | None = None,
    ) -> None:
        if jobs < 1:
            raise ValueError(f"jobs must be at least 1, got {jobs}")
        self._timeout: float | None = timeout if timeout else None
        self._jobs: int = jobs
        self._exclude: pathspec.PathSpec | None = exclude

    def read_all(self, archives: Sequence[CandidateArchive]) -> list[ArchiveContents]:
        """
        Read `archives` and return their contents in the same order. The first
        failure (in declaration order) is raised and pending reads are cancelled.
        """
        if not archives:
            return []

        pending: queue.SimpleQueue[tuple[CandidateArchive, concurrent.futures.Future]] = (
            queue.SimpleQueue()
        )
        futures: list[concurrent.futures.Future] = []
        for archive in archives:
            future: concurrent.futures.Future = concurrent.futures.Future()
            pending.put((archive, future))
            futures.append(future)

        # Daemon workers: a read stuck in the filesystem must not block interpreter exit.
        for i in range(min(self._jobs, len(archives))):
            threading.Thread(
                target=_read_worker,
                args=(pending, self._exclude),
                name=f"packmerge-read-{i}",
                daemon=True,
            ).start()

        try:
            results: list[ArchiveContents] = []
            for archive, future in zip(archives, futures):
                try:
                    results.append(future.result(timeout=self._timeout))
                except concurrent.futures.TimeoutError as e:
                    raise ArchiveReadError(
                        f"Timed out after {self._timeout}s reading {archive.path}",
                        archive.source_id,
                        archive.path,
                    ) from e
            return results
        finally:
            for future in futures:
                future.cancel()


def _read_worker(
    pending: queue.SimpleQueue[tuple[CandidateArchive, concurrent.futures.Future]],
    exclude: pathspec.PathSpec | None,
) -> None:
    while True:
        try:
            archive, future = pending.get_nowait()
        except queue.Empty:
            return
        if not future.set_running_or_notify_cancel():
            continue
        try:
            future.set_result(read_archive(archive, exclude))
        except BaseException as e:
            future.set_exception(e)
