"""Smoke tests for the command-line scripts."""
from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

from conftest import metadata_document

from ucdmeta.io_utils import save_json

ROOT = Path(__file__).resolve().parents[1]


def _run(script: str, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
    env = os.environ.copy()
    env["PYTHONPATH"] = str(ROOT / "src")
    return subprocess.run(
        [sys.executable, str(ROOT / "scripts" / script), *args],
        cwd=str(ROOT),
        env=env,
        capture_output=True,
        text=True,
        check=check,
    )


def test_validate_metadata(ucd_tree: tuple[Path, Path]) -> None:
    cache, metadata = ucd_tree
    proc = _run("validate_metadata.py", "--metadata", str(metadata), "--cache", str(cache))
    payload = json.loads(proc.stdout)
    assert [r["version_name"] for r in payload] == ["15.0.0"]
    assert payload[0]["ok"] is True


def test_validate_metadata_text(ucd_tree: tuple[Path, Path]) -> None:
    cache, metadata = ucd_tree
    proc = _run(
        "validate_metadata.py", "--metadata", str(metadata), "--cache", str(cache),
        "--version", "15.0.0", "--text",
    )
    assert proc.stdout.splitlines()[0] == "== validation results for version 15.0.0 =="


def test_validate_metadata_reports_findings(ucd_tree: tuple[Path, Path]) -> None:
    cache, metadata = ucd_tree
    document = metadata_document()
    document["version_metadatas"][0]["file_formats"][0]["blocks"][0]["range"] = "6..16"
    save_json(document, metadata)
    proc = _run("validate_metadata.py", "--metadata", str(metadata), "--cache", str(cache), check=False)
    assert proc.returncode == 1
    payload = json.loads(proc.stdout)
    assert payload[0]["ok"] is False


def test_validate_metadata_missing_document(tmp_path: Path) -> None:
    proc = _run("validate_metadata.py", "--metadata", str(tmp_path / "absent.json"), check=False)
    assert proc.returncode == 2


def test_generate_metadata(ucd_tree: tuple[Path, Path], tmp_path: Path) -> None:
    cache, metadata = ucd_tree
    output = tmp_path / "draft" / "metadata.json"
    proc = _run(
        "generate_metadata.py", "--metadata", str(metadata), "--cache", str(cache),
        "--from", "15.0.0", "--to", "15.1.0", "--output", str(output),
    )
    summary = json.loads(proc.stdout)
    assert summary["version_name"] == "15.1.0"
    assert summary["file_count"] == 7
    assert summary["block_count"] == 9
    document = json.loads(output.read_text(encoding="utf-8"))
    assert [e["version_name"] for e in document["version_metadatas"]] == ["15.0.0", "15.1.0"]

    again = _run(
        "generate_metadata.py", "--metadata", str(metadata), "--cache", str(cache),
        "--from", "15.0.0", "--to", "15.1.0", "--output", str(output), check=False,
    )
    assert again.returncode == 2


def test_query_property(ucd_tree: tuple[Path, Path]) -> None:
    cache, metadata = ucd_tree
    base = ["--metadata", str(metadata), "--cache", str(cache)]

    by_codepoint = json.loads(_run(
        "query_property.py", *base, "--property", "sc", "--codepoint", "U+0041",
    ).stdout)
    assert by_codepoint == {
        "version_name": "15.0.0", "property": "sc", "codepoint": "U+0041", "values": "Latin",
    }

    by_value = json.loads(_run(
        "query_property.py", *base, "--version", "15.0.0", "--property", "Script", "--value", "Latn",
    ).stdout)
    assert by_value["aliases"] == ["Latn", "Latin"]
    assert by_value["ranges"] == ["U+0041..005A", "U+0061..007A"]


def test_query_property_diff(ucd_tree: tuple[Path, Path]) -> None:
    cache, metadata = ucd_tree
    save_json(metadata_document(with_next=True), metadata)
    result = json.loads(_run(
        "query_property.py", "--metadata", str(metadata), "--cache", str(cache),
        "--version", "15.0.0", "--property", "Age", "--diff-version", "15.1.0",
    ).stdout)
    assert result["changed"] == ["U+0370..0373"]


def test_build_value_index(ucd_tree: tuple[Path, Path], tmp_path: Path) -> None:
    cache, metadata = ucd_tree
    db_path = tmp_path / "values.duckdb"
    proc = _run(
        "build_value_index.py", "--metadata", str(metadata), "--cache", str(cache),
        "--version", "15.0.0", "--db", str(db_path), "--property", "Script", "--property", "Age",
    )
    summary = json.loads(proc.stdout)
    assert summary["rows"] == 8
    assert db_path.exists()
