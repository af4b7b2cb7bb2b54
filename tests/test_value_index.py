"""Tests for ucdmeta.value_index."""
from __future__ import annotations

from pathlib import Path

import duckdb
import pytest

from ucdmeta.errors import OutputExistsError
from ucdmeta.ranges import IntRange
from ucdmeta.ucd import UcdData
from ucdmeta.value_index import SCHEMA_VERSION, SchemaVersionError, ValueIndex, build_value_index, value_rows


@pytest.fixture
def db_path(data: UcdData, tmp_path: Path) -> Path:
    path = tmp_path / "values.duckdb"
    build_value_index(path, data.version_manager("15.0.0"), ["Script", "Age", "scx"])
    return path


def test_value_rows(data: UcdData) -> None:
    rows = value_rows(data.version_manager("15.0.0"), "sc")
    assert rows[0] == ("15.0.0", "Script", 0x0, 0x23, "Common", 0)
    assert len(rows) == 5


class TestBuild:
    def test_row_count(self, data: UcdData, tmp_path: Path) -> None:
        path = tmp_path / "values.duckdb"
        assert build_value_index(path, data.version_manager("15.0.0"), ["Script", "Age"]) == 8

    def test_all_indexed_properties_by_default(self, data: UcdData, tmp_path: Path) -> None:
        path = tmp_path / "values.duckdb"
        build_value_index(path, data.version_manager("15.0.0"))
        with ValueIndex(path) as index:
            assert set(index.properties("15.0.0")) == {
                "Age", "Script", "General_Category", "White_Space", "Dash",
                "Composition_Exclusion", "Script_Extensions", "kMandarin",
            }

    def test_refuses_to_overwrite(self, data: UcdData, db_path: Path) -> None:
        with pytest.raises(OutputExistsError):
            build_value_index(db_path, data.version_manager("15.0.0"), ["Script"])


class TestValueIndex:
    def test_lookups(self, db_path: Path) -> None:
        with ValueIndex(db_path) as index:
            assert index.schema_version == SCHEMA_VERSION
            assert index.versions() == ["15.0.0"]
            assert index.properties("15.0.0") == ["Age", "Script", "Script_Extensions"]
            assert index.values_of("15.0.0", "Script", "A") == ["Latin"]
            assert index.values_of("15.0.0", "Script", 0x100) == []
            assert index.values_of("15.0.0", "Script_Extensions", "U+1DC0") == ["Grek Latn"]
            assert index.codepoints_with_value("15.0.0", "Script", "Common") == [
                IntRange(0x0, 0x23), IntRange(0x2A, 0x2A),
            ]

    def test_schema_mismatch(self, db_path: Path) -> None:
        conn = duckdb.connect(str(db_path))
        conn.execute("UPDATE _schema_version SET version = '0.0.1'")
        conn.close()
        with pytest.raises(SchemaVersionError, match="expected 1.0.0, got 0.0.1"):
            ValueIndex(db_path)
        with ValueIndex(db_path, enforce_schema=False) as index:
            assert index.schema_version == "0.0.1"
