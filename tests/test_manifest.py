"""Tests for manifest rendering, atomic manifest writes, and archive assembly."""

from __future__ import annotations

import json
import zipfile
from pathlib import Path

from packmerge import (
    DirectoryScan,
    ManifestFormat,
    PackagingResolver,
    ResolutionResult,
    render_manifest,
    write_archive,
    write_manifest,
)


def _resolve(tmp_path: Path) -> ResolutionResult:
    libs = tmp_path / "libs"
    libs.mkdir()
    with zipfile.ZipFile(libs / "a.jar", "w") as zf:
        zf.writestr("com/example/A.class", "AAAA")
        zf.writestr("shared.properties", "from a")
    with zipfile.ZipFile(libs / "b.jar", "w") as zf:
        zf.writestr("shared.properties", "from b")
        zf.writestr("com/example/B.class", "BB")
    return PackagingResolver().resolve([DirectoryScan(root=libs)])


def test_render_tsv(tmp_path: Path):
    result = _resolve(tmp_path)
    prefix = f"scan:{(tmp_path / 'libs').as_posix()}"
    assert render_manifest(result) == (
        f"com/example/A.class\t{prefix}/a.jar\n"
        f"shared.properties\t{prefix}/a.jar\n"
        f"com/example/B.class\t{prefix}/b.jar\n"
    )


def test_render_json(tmp_path: Path):
    result = _resolve(tmp_path)
    records = json.loads(render_manifest(result, ManifestFormat.json))
    assert [r["path"] for r in records] == [
        "com/example/A.class",
        "shared.properties",
        "com/example/B.class",
    ]
    assert records[0]["size"] == 4
    assert records[1]["source"].endswith("/a.jar")
    assert len(records[2]["sha256"]) == 64


def test_render_empty_result():
    assert render_manifest(ResolutionResult()) == ""
    assert render_manifest(ResolutionResult(), ManifestFormat.json) == "[]\n"


def test_write_manifest_creates_parents(tmp_path: Path):
    result = _resolve(tmp_path)
    out = tmp_path / "build" / "out" / "manifest.tsv"
    write_manifest(result, out)
    assert out.read_text() == render_manifest(result)


def test_write_archive(tmp_path: Path):
    result = _resolve(tmp_path)
    out = tmp_path / "merged.jar"
    write_archive(result, out)

    with zipfile.ZipFile(out) as zf:
        assert zf.namelist() == result.paths
        assert zf.read("shared.properties") == b"from a"


def test_write_archive_is_reproducible(tmp_path: Path):
    result = _resolve(tmp_path)
    first = tmp_path / "first.jar"
    second = tmp_path / "second.jar"
    write_archive(result, first)
    write_archive(result, second)
    assert first.read_bytes() == second.read_bytes()
