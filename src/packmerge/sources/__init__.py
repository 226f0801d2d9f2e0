"""
Dependency source declarations and their expansion into candidate archives.

Usage::

    from packmerge.sources import ArchiveScanner, DirectoryScan

    scan = DirectoryScan(root=Path("libs"), exclude=("httpclient-*.jar",))
    archives = ArchiveScanner(scan).expand()
"""

from packmerge.sources.defaults import DEFAULT_INCLUDES, DEFAULT_RESOURCE_EXCLUDES
from packmerge.sources.globs import compile_globs, validate_glob
from packmerge.sources.locators import (
    ArtifactLocator,
    CatalogLocator,
    ChainLocator,
    MavenRepositoryLocator,
)
from packmerge.sources.scanner import ArchiveScanner
from packmerge.sources.types import (
    CandidateArchive,
    DependencySource,
    DirectoryScan,
    ExclusionRule,
    NamedArtifact,
)

__all__ = [
    "DEFAULT_INCLUDES",
    "DEFAULT_RESOURCE_EXCLUDES",
    "ArchiveScanner",
    "ArtifactLocator",
    "CandidateArchive",
    "CatalogLocator",
    "ChainLocator",
    "DependencySource",
    "DirectoryScan",
    "ExclusionRule",
    "MavenRepositoryLocator",
    "NamedArtifact",
    "compile_globs",
    "validate_glob",
]
