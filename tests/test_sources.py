"""Tests for ucdmeta.sources."""
from __future__ import annotations

from pathlib import Path

import pytest

from ucdmeta.errors import FileNotFoundInVersionError, VersionNotFoundError
from ucdmeta.settings import Settings
from ucdmeta.sources import DirectorySource, MemorySource, file_prefix, is_unihan_file_name


@pytest.mark.parametrize(
    ("name", "prefix"),
    [
        ("Scripts.txt", "Scripts"),
        ("PropList-15.0.0d1.txt", "PropList"),
        ("PropList-15.0.0", "PropList"),
        ("emoji-data.txt", "emoji-data"),
        ("auxiliary/WordBreakProperty.txt", "WordBreakProperty"),
    ],
)
def test_file_prefix(name: str, prefix: str) -> None:
    assert file_prefix(name) == prefix


def test_unihan_file_names() -> None:
    assert is_unihan_file_name("Unihan_Readings.txt")
    assert not is_unihan_file_name("Scripts.txt")
    assert is_unihan_file_name("Unihan_Readings", ["unihan readings"])
    assert not is_unihan_file_name("Unihan_Variants", ["Unihan_Readings"])


class TestMemorySource:
    def test_lists_and_fetches_by_prefix(self) -> None:
        source = MemorySource({"15.0.0": {"Scripts.txt": "0041 ; Latin\n", "Blob": b"\x00"}})
        assert source.list_versions() == ["15.0.0"]
        assert sorted(source.list_files("15.0.0")) == ["Blob", "Scripts"]
        assert source.fetch("15.0.0", "scripts") == b"0041 ; Latin\n"

    def test_missing_version_and_file(self) -> None:
        source = MemorySource({"15.0.0": {}})
        with pytest.raises(VersionNotFoundError):
            source.list_files("14.0.0")
        with pytest.raises(FileNotFoundInVersionError):
            source.fetch("15.0.0", "Scripts")


class TestDirectorySource:
    @pytest.fixture
    def root(self, tmp_path: Path) -> Path:
        version_dir = tmp_path / "15.0.0"
        (version_dir / "auxiliary").mkdir(parents=True)
        (version_dir / "MAPPINGS").mkdir()
        (version_dir / "Scripts.txt").write_text("0041 ; Latin\n", encoding="utf-8")
        (version_dir / "ReadMe.txt").write_text("read me\n", encoding="utf-8")
        (version_dir / "NormalizationTest.txt").write_text("", encoding="utf-8")
        (version_dir / "Unihan.zip").write_bytes(b"PK")
        (version_dir / "MAPPINGS" / "Table.txt").write_text("", encoding="utf-8")
        (version_dir / "auxiliary" / "WordBreakProperty.txt").write_text("", encoding="utf-8")
        (tmp_path / "14.0.0").mkdir()
        return tmp_path

    def test_exclusions(self, root: Path) -> None:
        source = DirectorySource(root, Settings.default().retrieval())
        assert set(source.list_files("15.0.0")) == {"Scripts", "WordBreakProperty"}

    def test_list_versions(self, root: Path) -> None:
        assert DirectorySource(root).list_versions() == ["14.0.0", "15.0.0"]
        assert DirectorySource(root / "absent").list_versions() == []

    def test_fetch(self, root: Path) -> None:
        source = DirectorySource(root)
        assert source.fetch("15.0.0", "Scripts.txt") == b"0041 ; Latin\n"
        with pytest.raises(FileNotFoundInVersionError):
            source.fetch("15.0.0", "Blocks")
        with pytest.raises(VersionNotFoundError):
            source.fetch("1.0.0", "Scripts")

    def test_reload_picks_up_new_files(self, root: Path) -> None:
        source = DirectorySource(root)
        assert "Blocks" not in source.list_files("15.0.0")
        (root / "15.0.0" / "Blocks.txt").write_text("0000..007F; Basic Latin\n", encoding="utf-8")
        assert "Blocks" not in source.list_files("15.0.0")
        source.reload("15.0.0")
        assert "Blocks" in source.list_files("15.0.0")
