"""Tests for PackagingResolver: expansion, exclusions, and first-declared-wins merging."""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from packmerge import (
    ArchiveReadError,
    CatalogLocator,
    DirectoryScan,
    ExclusionRule,
    GlobSyntaxError,
    NamedArtifact,
    PackagingResolver,
    SourceResolutionError,
    render_manifest,
)
from packmerge.sources import DEFAULT_RESOURCE_EXCLUDES


def _make_jar(path: Path, entries: dict[str, str]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return path


def test_example_scan_with_exclusions(tmp_path: Path):
    """Excluded jars are never read and license entries are dropped from the rest."""
    libs = tmp_path / "libs"
    _make_jar(
        libs / "httpclient-4.5.14.jar",
        {"org/apache/http/client/HttpClient.class": "hc", "META-INF/LICENSE": "apache"},
    )
    _make_jar(
        libs / "okhttp.aar",
        {"classes.jar": "classes", "AndroidManifest.xml": "<manifest/>", "META-INF/LICENSE": "x"},
    )

    scan = DirectoryScan(
        root=libs, include=("*.aar", "*.jar"), exclude=("httpclient-4.5.14.jar",)
    )
    result = PackagingResolver().resolve([scan], [ExclusionRule("META-INF/LICENSE*")])

    assert [a.path.name for a in result.archives] == ["okhttp.aar"]
    assert result.paths == ["classes.jar", "AndroidManifest.xml"]
    assert result.excluded_count == 1
    assert all(e.archive == libs / "okhttp.aar" for e in result.entries)


def test_first_declared_wins(tmp_path: Path):
    a = _make_jar(tmp_path / "a" / "first.jar", {"shared.txt": "from A", "only_a.txt": "A"})
    b = _make_jar(tmp_path / "b" / "second.jar", {"shared.txt": "from B", "only_b.txt": "B"})
    locator = CatalogLocator({"first": a, "second": b})

    result = PackagingResolver(locator=locator).resolve(
        [NamedArtifact("first"), NamedArtifact("second")]
    )
    by_path = {e.path: e for e in result.entries}
    assert by_path["shared.txt"].source_id == "first"
    assert by_path["shared.txt"].content == b"from A"
    assert result.paths == ["shared.txt", "only_a.txt", "only_b.txt"]
    assert len(result.collisions) == 1
    collision = result.collisions[0]
    assert collision.path == "shared.txt"
    assert (collision.kept, collision.discarded) == ("first", "second")


def test_declaration_order_decides_winner(tmp_path: Path):
    a = _make_jar(tmp_path / "first.jar", {"shared.txt": "from A"})
    b = _make_jar(tmp_path / "second.jar", {"shared.txt": "from B"})
    locator = CatalogLocator({"first": a, "second": b})

    result = PackagingResolver(locator=locator).resolve(
        [NamedArtifact("second"), NamedArtifact("first")]
    )
    assert result.entries[0].source_id == "second"
    assert result.entries[0].content == b"from B"


def test_output_paths_are_unique(tmp_path: Path):
    libs = tmp_path / "libs"
    for i in range(5):
        _make_jar(
            libs / f"lib{i}.jar",
            {"META-INF/MANIFEST.MF": "m", "common/util.class": str(i), f"lib{i}/Own.class": "x"},
        )

    result = PackagingResolver().resolve([DirectoryScan(root=libs)])
    assert len(result.paths) == len(set(result.paths))
    assert len(result.collisions) == 8


def test_duplicate_entry_inside_one_archive_keeps_first(tmp_path: Path):
    jar = tmp_path / "dup.jar"
    with pytest.warns(UserWarning):
        with zipfile.ZipFile(jar, "w") as zf:
            zf.writestr("a.txt", "first")
            zf.writestr("a.txt", "second")

    result = PackagingResolver().resolve([DirectoryScan(root=tmp_path)])
    assert [e.content for e in result.entries] == [b"first"]


def test_idempotent_manifest(tmp_path: Path):
    libs = tmp_path / "libs"
    _make_jar(libs / "a.jar", {"x.txt": "1", "y.txt": "2"})
    _make_jar(libs / "b.aar", {"y.txt": "3", "z.txt": "4"})
    sources = [DirectoryScan(root=libs)]

    resolver = PackagingResolver()
    first = render_manifest(resolver.resolve(sources, DEFAULT_RESOURCE_EXCLUDES))
    second = render_manifest(resolver.resolve(sources, DEFAULT_RESOURCE_EXCLUDES))
    assert first.encode() == second.encode()


def test_parallel_reads_match_serial(tmp_path: Path):
    libs = tmp_path / "libs"
    for i in range(10):
        _make_jar(libs / f"lib{i:02d}.jar", {"shared.txt": str(i), f"own{i}.txt": "x"})
    sources = [DirectoryScan(root=libs)]

    serial = PackagingResolver(jobs=1).resolve(sources)
    parallel = PackagingResolver(jobs=4).resolve(sources)
    assert render_manifest(serial) == render_manifest(parallel)
    assert serial.entries[0].source_id.endswith("lib00.jar")


def test_default_resource_excludes(tmp_path: Path):
    _make_jar(
        tmp_path / "httpmime.jar",
        {
            "META-INF/DEPENDENCIES": "",
            "META-INF/NOTICE.txt": "",
            "org/apache/commons/codec/language/bm/lang.txt": "",
            "org/apache/http/entity/mime/version.properties": "",
            "mozilla/public-suffix-list.txt": "",
            "org/apache/http/entity/mime/MultipartEntity.class": "",
        },
    )
    result = PackagingResolver().resolve([DirectoryScan(root=tmp_path)], DEFAULT_RESOURCE_EXCLUDES)
    assert result.paths == ["org/apache/http/entity/mime/MultipartEntity.class"]
    assert result.excluded_count == 5


def test_empty_scan_contributes_nothing(tmp_path: Path):
    empty = tmp_path / "empty"
    empty.mkdir()
    jar = _make_jar(tmp_path / "lib.jar", {"a.txt": "A"})

    result = PackagingResolver(locator=CatalogLocator({"lib": jar})).resolve(
        [DirectoryScan(root=empty), NamedArtifact("lib")]
    )
    assert result.paths == ["a.txt"]
    assert [a.source_id for a in result.archives] == ["lib"]


def test_no_sources():
    result = PackagingResolver().resolve([])
    assert result.entries == []
    assert result.archives == []


def test_missing_root_fails(tmp_path: Path):
    with pytest.raises(SourceResolutionError):
        PackagingResolver().resolve([DirectoryScan(root=tmp_path / "nope")])


def test_named_artifact_without_locator_fails():
    with pytest.raises(SourceResolutionError, match="No artifact locator"):
        PackagingResolver().resolve([NamedArtifact("appcompat")])


def test_glob_errors_reported_before_walking(tmp_path: Path):
    """A malformed glob in a later source wins over a missing root in an earlier one."""
    sources = [
        DirectoryScan(root=tmp_path / "missing"),
        DirectoryScan(root=tmp_path, include=("[broken",)),
    ]
    with pytest.raises(GlobSyntaxError):
        PackagingResolver().resolve(sources)


def test_rule_errors_reported_before_reading(tmp_path: Path):
    (tmp_path / "corrupt.jar").write_bytes(b"junk")
    with pytest.raises(GlobSyntaxError):
        PackagingResolver().resolve([DirectoryScan(root=tmp_path)], ["!META-INF/**"])


def test_corrupt_archive_fails_with_source_id(tmp_path: Path):
    (tmp_path / "corrupt.jar").write_bytes(b"junk")
    with pytest.raises(ArchiveReadError) as exc:
        PackagingResolver().resolve([DirectoryScan(root=tmp_path)])
    assert exc.value.source_id.endswith("corrupt.jar")


def test_rules_accept_plain_strings(tmp_path: Path):
    _make_jar(tmp_path / "a.jar", {"keep.txt": "", "drop.txt": ""})
    result = PackagingResolver().resolve([DirectoryScan(root=tmp_path)], {"drop.txt"})
    assert result.paths == ["keep.txt"]


def test_entry_digest_and_size(tmp_path: Path):
    _make_jar(tmp_path / "a.jar", {"hello.txt": "hello"})
    (entry,) = PackagingResolver().resolve([DirectoryScan(root=tmp_path)]).entries
    assert entry.size == 5
    assert entry.sha256 == "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"


def test_expand_does_not_open_archives(tmp_path: Path):
    (tmp_path / "corrupt.jar").write_bytes(b"junk")
    archives = PackagingResolver().expand([DirectoryScan(root=tmp_path)])
    assert [a.path.name for a in archives] == ["corrupt.jar"]
