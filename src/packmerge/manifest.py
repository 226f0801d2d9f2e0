"""
Manifest rendering and output.

A manifest is the ordered list of `(path, source id)` pairs handed to the
final packaging stage. Files are written atomically so a failed run never
leaves a partial manifest or archive behind.
"""

from __future__ import annotations

import json
import zipfile
from enum import Enum
from pathlib import Path

from strif import atomic_output_file

from packmerge.resolver import ResolutionResult

# Fixed timestamp for assembled archives, so repeated builds are byte-identical.
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


class ManifestFormat(str, Enum):
    tsv = "tsv"
    json = "json"


def render_manifest(result: ResolutionResult, fmt: ManifestFormat = ManifestFormat.tsv) -> str:
    """
    Render the manifest as text. TSV has one `path<TAB>source` line per entry;
    JSON also includes each entry's size and SHA-256.
    """
    if fmt == ManifestFormat.json:
        records = [
            {"path": e.path, "source": e.source_id, "size": e.size, "sha256": e.sha256}
            for e in result.entries
        ]
        return json.dumps(records, indent=2) + "\n"
    return "".join(f"{e.path}\t{e.source_id}\n" for e in result.entries)


def write_manifest(
    result: ResolutionResult, path: Path, fmt: ManifestFormat = ManifestFormat.tsv
) -> None:
    text = render_manifest(result, fmt)
    with atomic_output_file(path, make_parents=True) as tmp_path:
        Path(tmp_path).write_text(text, encoding="utf-8")


def write_archive(result: ResolutionResult, path: Path) -> None:
    """Assemble all resolved entries into one zip archive at `path`."""
    with atomic_output_file(path, make_parents=True) as tmp_path:
        with zipfile.ZipFile(tmp_path, "w", zipfile.ZIP_DEFLATED) as zf:
            for entry in result.entries:
                info = zipfile.ZipInfo(entry.path, date_time=_ZIP_EPOCH)
                info.compress_type = zipfile.ZIP_DEFLATED
                info.external_attr = 0o644 << 16
                zf.writestr(info, entry.content)
