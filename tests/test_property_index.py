"""Tests for ucdmeta.property_index."""
from __future__ import annotations

import copy
from pathlib import Path

import pytest
from conftest import metadata_document, release_files

from ucdmeta.errors import MetadataNotFoundError
from ucdmeta.io_utils import load_json, save_json
from ucdmeta.metadata import Metadata
from ucdmeta.property_index import PropertyIndex, default_index_path
from ucdmeta.ranges import IntRange
from ucdmeta.sources import MemorySource
from ucdmeta.ucd import UcdData


def _data(index_path: Path | None) -> UcdData:
    source = MemorySource({"15.0.0": release_files(), "15.1.0": release_files(next_release=True)})
    return UcdData(
        source,
        metadata=Metadata(copy.deepcopy(metadata_document())),
        property_index_path=index_path,
    )


def test_default_index_path() -> None:
    assert default_index_path(Path("data/metadata.json")) == Path("data/property_metadata.json")


class TestPropertyIndex:
    def test_in_memory(self, data: UcdData) -> None:
        index = data.property_index
        assert index.path is None
        entry = index.for_version(data.find_version("15.0.0"))
        assert index.has_raw("15.0.0")
        assert index.for_version(data.find_version("15.0.0")) is entry

    def test_generated_entry_is_saved(self, tmp_path: Path) -> None:
        path = tmp_path / "property_metadata.json"
        data = _data(path)
        data.property_index.for_version(data.find_version("15.0.0"))
        saved = load_json(path)
        assert [e["version_name"] for e in saved] == ["15.0.0"]
        script = next(p for p in saved[0]["properties"] if p["property_name"] == "Script")
        assert script == {
            "property_name": "Script",
            "positions": [{"file_name": "Scripts", "block": 0, "range": "6..22", "columns": 1}],
            "unihan": False,
            "type": "catalog",
            "derived": False,
        }
        assert PropertyIndex(path).has_raw("15.0.0")

    def test_existing_entry_is_not_rewritten(self, tmp_path: Path) -> None:
        path = tmp_path / "property_metadata.json"
        save_json([{"version_name": "15.0.0", "properties": [
            {"property_name": "sc", "positions": [
                {"file_name": "Scripts", "block": 0, "range": "6..9", "columns": 1},
            ]},
        ]}], path)
        data = _data(path)
        index = data.property_index.for_version(data.find_version("15.0.0"))
        assert list(index.records) == ["sc"]
        assert index.find(data.find_version("15.0.0").find_property("Script")).positions[0].range == IntRange(6, 9)
        assert len(load_json(path)) == 1

    def test_version_without_metadata(self, data: UcdData) -> None:
        with pytest.raises(MetadataNotFoundError):
            data.property_index.for_version(data.find_version("15.1.0"))
        with pytest.raises(MetadataNotFoundError):
            data.property_index.find_raw("15.1.0")


class TestRecords:
    def test_binary_record(self, data: UcdData) -> None:
        version = data.find_version("15.0.0")
        record = data.property_index.for_version(version).find(version.find_property("WSpace"))
        assert [p.file.name for p in record.positions] == ["PropList", "FlagValues"]
        assert record.type == "binary"
        assert not record.derived and not record.unihan
        assert record.position is not None
        assert record.position.file.name == "PropList"

    def test_derived_file_preferred(self, data: UcdData) -> None:
        version = data.find_version("15.0.0")
        record = data.property_index.for_version(version).find(version.find_property("Age"))
        assert record.derived
        assert record.position is not None
        assert record.position.file.name == "DerivedAge"

    def test_unihan_record(self, data: UcdData) -> None:
        version = data.find_version("15.0.0")
        index = data.property_index.for_version(version)
        record = index.find(version.find_property("kMandarin"))
        assert record.unihan
        assert record.positions == ()
        assert index.value_group(record.property).values_of(0x3401) == "tiàn"

    def test_value_groups_are_cached(self, data: UcdData) -> None:
        version = data.find_version("15.0.0")
        index = data.property_index.for_version(version)
        script = version.find_property("Script")
        assert index.value_group(script) is index.value_group(script)
