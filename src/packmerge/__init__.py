"""
Deterministic packaging of jar/aar dependencies.

Usage::

    from packmerge import DirectoryScan, NamedArtifact, PackagingResolver

    resolver = PackagingResolver(locator=CatalogLocator({"okhttp": Path("okhttp.jar")}))
    result = resolver.resolve(
        [NamedArtifact("okhttp"), DirectoryScan(root=Path("libs"))],
        rules=["META-INF/LICENSE*"],
    )
    for entry in result.entries:
        print(entry.path, entry.source_id)
"""

from packmerge.errors import (
    ArchiveReadError,
    GlobSyntaxError,
    PackagingError,
    SourceResolutionError,
)
from packmerge.manifest import ManifestFormat, render_manifest, write_archive, write_manifest
from packmerge.resolver import Collision, PackagedEntry, PackagingResolver, ResolutionResult
from packmerge.sources import (
    CatalogLocator,
    DirectoryScan,
    ExclusionRule,
    MavenRepositoryLocator,
    NamedArtifact,
)

__all__ = [
    "ArchiveReadError",
    "CatalogLocator",
    "Collision",
    "DirectoryScan",
    "ExclusionRule",
    "GlobSyntaxError",
    "ManifestFormat",
    "MavenRepositoryLocator",
    "NamedArtifact",
    "PackagedEntry",
    "PackagingError",
    "PackagingResolver",
    "ResolutionResult",
    "SourceResolutionError",
    "render_manifest",
    "write_archive",
    "write_manifest",
]
