"""
Default include and exclude patterns for dependency packaging.

Patterns are anchored at the scan root (for archive discovery) or at the
archive root (for resource exclusions). `*` stays within one path segment;
`**` crosses segments.
"""

from __future__ import annotations

DEFAULT_INCLUDES: list[str] = ["*.aar", "*.jar"]

# Resource paths that commonly collide when several Apache/HttpComponents
# jars land in one package. Dropped from every archive during the merge.
DEFAULT_RESOURCE_EXCLUDES: list[str] = [
    # License and notice files
    "META-INF/DEPENDENCIES",
    "META-INF/NOTICE",
    "META-INF/LICENSE",
    "META-INF/LICENSE.txt",
    "META-INF/NOTICE.txt",
    # Duplicated classes from commons-codec
    "org/apache/commons/codec/language/**",
    # Per-jar version stamps
    "org/apache/http/client/version.properties",
    "org/apache/http/entity/mime/version.properties",
    # Bundled data files
    "mozilla/public-suffix-list.txt",
]

DEFAULT_TIMEOUT: float = 30.0
