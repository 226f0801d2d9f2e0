#!/usr/bin/env python3
"""
packmerge: Deterministic dependency packaging for jar/aar archives

Common usage:
  packmerge libs/
  packmerge libs/ --scan-exclude 'httpclient-*.jar' -o manifest.tsv
  packmerge --artifact com.squareup.okhttp3:okhttp:4.12.0 libs/ --archive merged.jar
  packmerge --list-archives

Sources are merged in declaration order; when two archives contain the same
entry path, the archive declared first wins. Without positional arguments,
sources come from `packmerge.toml`, `.packmerge.toml`, or `[tool.packmerge]`
in `pyproject.toml`.
"""

from __future__ import annotations

import argparse
import importlib.metadata
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path

from packmerge.config import (
    PackmergeConfig,
    build_locator,
    find_config_file,
    load_config,
    merge_cli_with_config,
)
from packmerge.errors import PackagingError
from packmerge.manifest import ManifestFormat, render_manifest, write_archive, write_manifest
from packmerge.resolver import PackagingResolver
from packmerge.sources.defaults import (
    DEFAULT_INCLUDES,
    DEFAULT_RESOURCE_EXCLUDES,
    DEFAULT_TIMEOUT,
)
from packmerge.sources.types import DependencySource, DirectoryScan, NamedArtifact


@dataclass
class Options:
    """Command-line options for the packmerge tool."""

    sources: list[DependencySource]
    output: str
    format: str
    archive: str | None
    exclude: list[str] | None
    extend_exclude: list[str]
    timeout: float
    jobs: int
    config: str | None
    list_archives: bool
    show_collisions: bool
    verbose: bool
    version: bool
    maven: list[Path] = field(default_factory=list)

    @property
    def effective_exclude(self) -> list[str]:
        """Global resource excludes: defaults (or `exclude`) + `extend_exclude`."""
        base = self.exclude if self.exclude is not None else list(DEFAULT_RESOURCE_EXCLUDES)
        return base + self.extend_exclude


def _parse_args(args: list[str] | None = None) -> tuple[Options, set[str]]:
    """
    Parse command-line arguments.

    Returns `(options, explicit_flags)`, where `explicit_flags` names the
    `Options` fields the user set on the command line (for config merge precedence).
    """
    # Use the module's docstring as the description
    module_doc = __doc__ or ""
    doc_parts = module_doc.split("\n\n")
    description = doc_parts[0]
    epilog = "\n\n".join(doc_parts[1:])

    parser = argparse.ArgumentParser(
        description=description,
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "roots",
        nargs="*",
        type=str,
        default=[],
        metavar="SCAN_ROOT",
        help="Directories to scan for archives, in priority order (replaces configured sources)",
    )
    parser.add_argument(
        "--artifact",
        action="append",
        default=[],
        metavar="ID",
        help="Named artifact (catalog alias or group:name:version) declared after the scan "
        "roots. Can be repeated",
    )
    parser.add_argument(
        "--include",
        action="append",
        default=None,
        metavar="PATTERN",
        help=f"Archive file patterns for scan roots (default: {' '.join(DEFAULT_INCLUDES)}). "
        "Can be repeated",
    )
    parser.add_argument(
        "--scan-exclude",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Archive file patterns to skip in scan roots; wins over --include. Can be repeated",
    )
    parser.add_argument(
        "--maven-repo",
        action="append",
        default=[],
        metavar="DIR",
        help="Local Maven-layout repository for resolving --artifact coordinates. Can be repeated",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default="-",
        help="Manifest output file (use '-' for stdout)",
    )
    parser.add_argument(
        "--format",
        type=str,
        choices=[f.value for f in ManifestFormat],
        default=None,
        help="Manifest format (default: tsv)",
    )
    parser.add_argument(
        "--archive",
        type=str,
        default=None,
        metavar="PATH",
        help="Also assemble the resolved entries into a zip archive at PATH",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=None,
        metavar="PATTERN",
        help="Replace the default resource exclusion patterns. Can be repeated",
    )
    parser.add_argument(
        "--extend-exclude",
        action="append",
        default=None,
        metavar="PATTERN",
        help="Add to the resource exclusion patterns (e.g., 'META-INF/*.kotlin_module'). "
        "Can be repeated",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        metavar="SECONDS",
        help=f"Per-archive read timeout, 0 to disable (default: {DEFAULT_TIMEOUT:g})",
    )
    parser.add_argument(
        "-j",
        "--jobs",
        type=int,
        default=None,
        help="Number of archives to read in parallel (default: 1)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        metavar="PATH",
        help="Config file to use instead of searching from the current directory",
    )
    parser.add_argument(
        "--list-archives",
        action="store_true",
        dest="list_archives",
        help="Print candidate archives in declaration order without reading them",
    )
    parser.add_argument(
        "--show-collisions",
        action="store_true",
        dest="show_collisions",
        help="Report entries discarded because an earlier archive supplied the same path",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version information and exit",
    )
    opts = parser.parse_args(args)

    # Flags left at None were not given on the command line.
    explicit_flags: set[str] = {
        name
        for name in ("format", "exclude", "extend_exclude", "timeout", "jobs")
        if getattr(opts, name) is not None
    }

    include = tuple(opts.include) if opts.include is not None else tuple(DEFAULT_INCLUDES)
    sources: list[DependencySource] = [
        DirectoryScan(root=Path(root), include=include, exclude=tuple(opts.scan_exclude))
        for root in opts.roots
    ]
    sources.extend(NamedArtifact(id=a) for a in opts.artifact)
    if sources:
        explicit_flags.add("sources")
    maven = [Path(p) for p in opts.maven_repo]
    if maven:
        explicit_flags.add("maven")

    return (
        Options(
            sources=sources,
            output=opts.output,
            format=opts.format or ManifestFormat.tsv.value,
            archive=opts.archive,
            exclude=opts.exclude,
            extend_exclude=opts.extend_exclude or [],
            timeout=opts.timeout if opts.timeout is not None else DEFAULT_TIMEOUT,
            jobs=opts.jobs if opts.jobs is not None else 1,
            config=opts.config,
            list_archives=opts.list_archives,
            show_collisions=opts.show_collisions,
            verbose=opts.verbose,
            version=opts.version,
            maven=maven,
        ),
        explicit_flags,
    )


def _load_config(options: Options) -> PackmergeConfig | None:
    if options.config is not None:
        config_path = Path(options.config)
        if not config_path.is_file():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        return load_config(config_path)
    config_path = find_config_file(Path.cwd())
    return load_config(config_path) if config_path else None


def main(args: list[str] | None = None) -> int:
    """
    Main entry point for the packmerge CLI.

    Args:
        args: Command-line arguments (uses sys.argv if None)

    Returns:
        Exit code: 0 for success, 1 for usage or config errors, 2 for packaging errors
    """
    options, explicit_flags = _parse_args(args)

    if options.version:
        try:
            version = importlib.metadata.version("packmerge")
            print(f"v{version}")
        except importlib.metadata.PackageNotFoundError:
            print("unknown (package not installed)")
        return 0

    logging.basicConfig(
        level=logging.DEBUG if options.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = _load_config(options)
        merge_cli_with_config(options, config, explicit_flags)
        fmt = ManifestFormat(options.format)
        if options.jobs < 1:
            raise ValueError(f"--jobs must be at least 1, got {options.jobs}")
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not options.sources:
        print(
            "Error: No dependency sources. Provide scan directories, --artifact ids,"
            " or a [[sources]] list in packmerge.toml. Use --help for more options.",
            file=sys.stderr,
        )
        return 1

    locator = build_locator(catalog=config.catalog if config else None, maven=options.maven)
    resolver = PackagingResolver(locator=locator, timeout=options.timeout, jobs=options.jobs)

    try:
        if options.list_archives:
            for archive in resolver.expand(options.sources):
                print(f"{archive.path}\t{archive.source_id}")
            return 0

        result = resolver.resolve(options.sources, options.effective_exclude)

        # Nothing reaches stdout, and no manifest is left behind, unless both outputs succeed.
        if options.output == "-":
            if options.archive:
                write_archive(result, Path(options.archive))
            sys.stdout.write(render_manifest(result, fmt))
        else:
            manifest_path = Path(options.output)
            write_manifest(result, manifest_path, fmt)
            if options.archive:
                try:
                    write_archive(result, Path(options.archive))
                except OSError:
                    manifest_path.unlink(missing_ok=True)
                    raise
    except (PackagingError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if options.show_collisions:
        for c in result.collisions:
            print(f"collision: {c.path} (kept {c.kept}, dropped {c.discarded})", file=sys.stderr)

    return 0


if __name__ == "__main__":
    sys.exit(main())
