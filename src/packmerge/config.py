"""
TOML-based config file loading for packmerge.

Searches for `.packmerge.toml`, `packmerge.toml`, or `pyproject.toml [tool.packmerge]`
walking up from the current directory. Config values are merged with CLI flags
using three-way precedence: explicit CLI flags > config file > built-in defaults.

Relative paths in a config file (scan roots, catalog entries, repositories) are
resolved against the directory containing that file.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any, cast

from packmerge.sources.locators import (
    ArtifactLocator,
    CatalogLocator,
    ChainLocator,
    MavenRepositoryLocator,
)
from packmerge.sources.types import DependencySource, DirectoryScan, NamedArtifact

if TYPE_CHECKING:
    from packmerge.cli import Options

if sys.version_info >= (3, 11):
    import tomllib  # pyright: ignore[reportUnreachable]
else:
    import tomli as tomllib  # type: ignore[no-redef]  # pyright: ignore[reportUnreachable]

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """A config file parsed as TOML but declares something invalid."""


@dataclass
class PackmergeConfig:
    """
    Parsed config from a TOML file. Fields are `None` when not set in the config,
    allowing the merge logic to distinguish "not configured" from "explicitly set
    to default value".
    """

    # Packaging
    exclude: list[str] | None = None
    extend_exclude: list[str] | None = None
    timeout: float | None = None
    jobs: int | None = None
    format: str | None = None
    # Dependency sources
    sources: list[DependencySource] | None = None
    maven: list[Path] | None = None
    catalog: dict[str, Path] | None = None


# Config file search order (first match wins within each directory level)
_CONFIG_FILENAMES = [".packmerge.toml", "packmerge.toml", "pyproject.toml"]

# Tables whose keys are data (artifact aliases), not settings, so are never flattened
_DATA_TABLES = {"catalog"}

_VALID_FIELDS = {f.name for f in fields(PackmergeConfig)}


def find_config_file(start_dir: Path) -> Path | None:
    """
    Walk up from `start_dir` looking for a config file. Returns the first
    found, or `None`. Search order per directory: `.packmerge.toml` >
    `packmerge.toml` > `pyproject.toml` (only if it has `[tool.packmerge]`).
    """
    current = start_dir.resolve()
    while True:
        for filename in _CONFIG_FILENAMES:
            candidate = current / filename
            if candidate.is_file():
                if filename == "pyproject.toml":
                    if _pyproject_has_packmerge_section(candidate):
                        return candidate
                else:
                    return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None


def _pyproject_has_packmerge_section(path: Path) -> bool:
    try:
        data = tomllib.loads(path.read_text())
        return "packmerge" in data.get("tool", {})
    except (tomllib.TOMLDecodeError, OSError):
        return False


def load_config(config_path: Path) -> PackmergeConfig:
    """
    Load a `PackmergeConfig` from a TOML file. Supports standalone
    `packmerge.toml` / `.packmerge.toml` and `pyproject.toml` (extracts
    `[tool.packmerge]`). Malformed TOML is reported and treated as empty.
    Raises `ConfigError` for well-formed TOML with invalid source declarations.
    """
    try:
        data = tomllib.loads(config_path.read_text())
    except tomllib.TOMLDecodeError as e:
        logger.warning("Ignoring malformed config file %s: %s", config_path, e)
        return PackmergeConfig()

    if config_path.name == "pyproject.toml":
        data = data.get("tool", {}).get("packmerge", {})

    return _parse_config_data(data, config_path.parent.resolve())


def _parse_config_data(data: dict[str, Any], base_dir: Path) -> PackmergeConfig:
    """Parse a flat or sectioned TOML dict into PackmergeConfig."""
    # Flatten settings sections: [packaging] and [repositories] merge into top level
    flat: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict) and key not in _DATA_TABLES:
            for sub_key, sub_value in cast(dict[str, Any], value).items():
                flat[sub_key] = sub_value
        else:
            flat[key] = value

    mapped: dict[str, Any] = {}
    for key, value in flat.items():
        snake_key = key.replace("-", "_")
        if snake_key not in _VALID_FIELDS:
            logger.warning("Ignoring unrecognized config key: %s", key)
            continue
        mapped[snake_key] = value

    for key in ("exclude", "extend_exclude"):
        if key in mapped:
            mapped[key] = _str_list(mapped[key], key)
    if "sources" in mapped:
        if not isinstance(mapped["sources"], list):
            raise ConfigError("`sources` must be an array of tables ([[sources]])")
        mapped["sources"] = [_parse_source(s, base_dir) for s in mapped["sources"]]
    if "maven" in mapped:
        mapped["maven"] = [_resolve_path(p, base_dir) for p in _str_list(mapped["maven"], "maven")]
    if "catalog" in mapped:
        mapped["catalog"] = _parse_catalog(mapped["catalog"], base_dir)
    if "timeout" in mapped:
        timeout = mapped["timeout"]
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout < 0:
            raise ConfigError(f"`timeout` must be a non-negative number, got: {timeout!r}")
        mapped["timeout"] = float(timeout)
    if "jobs" in mapped:
        jobs = mapped["jobs"]
        if isinstance(jobs, bool) or not isinstance(jobs, int):
            raise ConfigError(f"`jobs` must be an integer, got: {jobs!r}")
    if "format" in mapped:
        _str(mapped["format"], "format")

    return PackmergeConfig(**mapped)


def _parse_source(raw: Any, base_dir: Path) -> DependencySource:
    if not isinstance(raw, dict):
        raise ConfigError(f"Each [[sources]] entry must be a table, got: {raw!r}")
    entry = cast(dict[str, Any], raw)
    kind = entry.get("kind")
    if kind == "named":
        if not entry.get("id"):
            raise ConfigError("Named source is missing `id`")
        return NamedArtifact(id=_str(entry["id"], "id"))
    if kind == "scan":
        if not entry.get("root"):
            raise ConfigError("Scan source is missing `root`")
        root = _resolve_path(_str(entry["root"], "root"), base_dir)
        exclude = tuple(_str_list(entry.get("exclude", []), "exclude"))
        if "include" in entry:
            include = tuple(_str_list(entry["include"], "include"))
            return DirectoryScan(root=root, include=include, exclude=exclude)
        return DirectoryScan(root=root, exclude=exclude)
    raise ConfigError(f"Unknown source kind {kind!r} (expected 'named' or 'scan')")


def _parse_catalog(raw: Any, base_dir: Path) -> dict[str, Path]:
    if not isinstance(raw, dict):
        raise ConfigError(f"`catalog` must be a table of alias = path entries, got: {raw!r}")
    return {
        alias: _resolve_path(_str(path, f"catalog.{alias}"), base_dir)
        for alias, path in cast(dict[str, Any], raw).items()
    }


def _str(value: Any, key: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"`{key}` must be a string, got: {value!r}")
    return value


def _str_list(value: Any, key: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"`{key}` must be a list of strings, got: {value!r}")
    return cast(list[str], value)


def _resolve_path(value: str, base_dir: Path) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else base_dir / path


def build_locator(
    catalog: Mapping[str, Path] | None = None, maven: Sequence[Path] | None = None
) -> ArtifactLocator | None:
    """
    Build the artifact locator for named sources: the catalog first, then Maven
    repositories. Returns `None` if neither is configured.
    """
    locators: list[ArtifactLocator] = []
    if catalog:
        locators.append(CatalogLocator(catalog))
    if maven:
        locators.append(MavenRepositoryLocator(maven))
    if not locators:
        return None
    if len(locators) == 1:
        return locators[0]
    return ChainLocator(locators)


# Config fields that the CLI can also set. `catalog` is config-only.
_CLI_FIELDS = ("exclude", "extend_exclude", "timeout", "jobs", "format", "sources", "maven")


def merge_cli_with_config(
    cli_opts: Options,
    config: PackmergeConfig | None,
    explicit_flags: set[str],
) -> Options:
    """
    Merge CLI options with config file settings.

    Precedence: explicit CLI flags > config file > built-in defaults.
    """
    if config is None:
        return cli_opts

    for name in _CLI_FIELDS:
        cfg_value = getattr(config, name)
        if cfg_value is None or name in explicit_flags:
            continue
        setattr(cli_opts, name, cfg_value)

    return cli_opts
