"""Tests for ucdmeta.version and version handling in ucdmeta.ucd."""
from __future__ import annotations

import pytest
from conftest import DataFactory, release_files

from ucdmeta.errors import (
    FileNotFoundInVersionError,
    MetadataNotFoundError,
    VersionNotFoundError,
    VersionParseError,
)
from ucdmeta.rawfile import PropertyAliasesFile, PropertyValueAliasesFile
from ucdmeta.settings import Settings
from ucdmeta.sources import MemorySource
from ucdmeta.ucd import UcdData
from ucdmeta.version import parse_version_name, version_weight


class TestVersionNames:
    @pytest.mark.parametrize(
        ("name", "parts"),
        [
            ("15.0.0", (15, 0, 0)),
            ("4.1-Update1", (4, 1, 1)),
            ("4.0-Update", (4, 0, 0)),
        ],
    )
    def test_parse(self, name: str, parts: tuple[int, int, int]) -> None:
        assert parse_version_name(name) == parts

    @pytest.mark.parametrize("name", ["15.0", "latest", "15.0.0d1", ""])
    def test_parse_rejects(self, name: str) -> None:
        with pytest.raises(VersionParseError):
            parse_version_name(name)

    def test_update_names_share_weight(self) -> None:
        assert version_weight("4.1-Update1") == version_weight("4.1.1")
        assert version_weight("4.0-Update") == version_weight("4.0.0")
        assert version_weight("15.1.0") > version_weight("15.0.0")


class TestUcdDataVersions:
    def test_versions_sorted_and_unique(self, data: UcdData) -> None:
        assert [v.version_name for v in data.versions] == ["15.0.0", "15.1.0"]
        assert data.oldest_version_name() == "15.0.0"
        assert data.latest_version_name() == "15.1.0"

    def test_find_version(self, data: UcdData) -> None:
        assert data.find_version("15.0.0") is data.versions[0]
        assert data.has_version("15.1.0")
        assert not data.has_version("9.0.0")
        assert not data.has_version("not a version")
        with pytest.raises(VersionNotFoundError):
            data.find_version("9.0.0")
        with pytest.raises(VersionParseError):
            data.find_version("latest")

    def test_metadata_presence(self, data: UcdData) -> None:
        assert data.find_version("15.0.0").has_version_metadata
        assert not data.find_version("15.1.0").has_version_metadata
        with pytest.raises(MetadataNotFoundError):
            data.version_manager("15.1.0")

    def test_files(self, data: UcdData) -> None:
        version = data.find_version("15.0.0")
        assert isinstance(version.property_aliases_file, PropertyAliasesFile)
        assert isinstance(version.property_value_aliases_file, PropertyValueAliasesFile)
        assert version.find_file("scripts.txt") is version.find_file("Scripts")
        assert version.has_unihan
        with pytest.raises(FileNotFoundInVersionError):
            version.find_file("Blocks")

    def test_alias_file_of_the_wrong_kind(self) -> None:
        settings = Settings.from_dict({"default": {"property_value_aliases_file_name": "PropertyAliases"}})
        data = UcdData(MemorySource({"15.0.0": release_files()}), settings=settings)
        with pytest.raises(FileNotFoundInVersionError):
            data.find_version("15.0.0").property_value_aliases_file

    def test_file_correspondence(self, make_data: DataFactory) -> None:
        data = make_data(extra={"15.0.0": {"Retired.txt": "0041 ; X\n"}})
        mapping = data.file_correspondence("15.0.0", "15.1.0")
        assert mapping["Retired"] is None
        scripts = mapping["Scripts"]
        assert scripts is not None
        assert scripts.version == data.find_version("15.1.0")

    def test_reload_rebuilds_versions(self, data: UcdData) -> None:
        before = data.find_version("15.0.0")
        catalog = before.catalog
        data.reload()
        after = data.find_version("15.0.0")
        assert after is not before
        assert after.catalog is not catalog
