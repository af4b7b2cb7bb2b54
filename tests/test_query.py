"""Tests for ucdmeta.query."""
from __future__ import annotations

from pathlib import Path

import pytest
from conftest import DERIVED_GENERAL_CATEGORY, DataFactory

from ucdmeta.errors import CodepointParseError, PropertyNotFoundError
from ucdmeta.query import VersionManager, format_codepoint, format_range, to_codepoint
from ucdmeta.ranges import IntRange
from ucdmeta.ucd import UcdData


@pytest.fixture
def vm(data: UcdData) -> VersionManager:
    return data.version_manager("15.0.0")


class TestCodepoints:
    @pytest.mark.parametrize("given", ["A", "0041", "U+0041", "u+0041", 0x41])
    def test_to_codepoint(self, given: str | int) -> None:
        assert to_codepoint(given) == 0x41

    def test_to_codepoint_rejects(self) -> None:
        with pytest.raises(CodepointParseError):
            to_codepoint("AB")

    def test_formatting(self) -> None:
        assert format_codepoint(0x41) == "U+0041"
        assert format_codepoint(0x1F600) == "U+1F600"
        assert format_range(IntRange(0x41, 0x41)) == "U+0041"
        assert format_range(IntRange(0x41, 0x5A)) == "U+0041..005A"


class TestValues:
    @pytest.mark.parametrize(
        ("prop", "codepoint", "expected"),
        [
            ("Script", 0x2A, "Common"),
            ("sc", "A", "Latin"),
            ("Script", 0x100, "Unknown"),
            ("General_Category", 0x41, "Lu"),
            ("gc", 0x100, "Cn"),
            ("Dash", 0x2D, "True"),
            ("Dash", 0x41, "False"),
            ("White_Space", 0x20, "True"),
            ("Composition_Exclusion", 0x958, "True"),
            ("Age", 0x41, "1.1"),
            ("Age", 0x100, "Unassigned"),
            ("kMandarin", 0x3400, "qiū"),
        ],
    )
    def test_values_of(self, vm: VersionManager, prop: str, codepoint: str | int, expected: str) -> None:
        assert vm.values_of(prop, codepoint) == expected

    def test_script_placeholder(self, vm: VersionManager) -> None:
        assert vm.values_of("scx", 0x1DC0) == "Grek Latn"
        assert vm.values_of("scx", 0x41) == "Latin"
        assert vm.values_of("scx", 0x100) == "Unknown"
        assert vm.property_manager("scx").raw_missing_value(0x41) == "<script>"

    def test_codepoint_placeholder(self, make_data: DataFactory) -> None:
        text = DERIVED_GENERAL_CATEGORY.replace("; Cn", "; <codepoint>")
        data = make_data(extra={"15.0.0": {"DerivedGeneralCategory.txt": text}})
        vm = data.version_manager("15.0.0")
        assert vm.values_of("gc", 0x100) == "100"
        assert vm.values_of("gc", 0x41) == "Lu"

    def test_unknown_property(self, vm: VersionManager) -> None:
        with pytest.raises(PropertyNotFoundError):
            vm.values_of("Bidi_Class", 0x41)
        assert not vm.has_property("Bidi_Class")
        assert vm.has_property("WSpace")

    def test_managers_are_shared_across_aliases(self, vm: VersionManager) -> None:
        assert vm.property_manager("sc") is vm.property_manager("Script")


class TestLookups:
    def test_codepoints_of_expands_aliases(self, vm: VersionManager) -> None:
        expected = [IntRange(0x41, 0x5A), IntRange(0x61, 0x7A)]
        assert vm.codepoints_of("Script", "Latn") == expected
        assert vm.codepoints_of("Script", "Latin") == expected

    def test_has_value(self, vm: VersionManager) -> None:
        assert vm.has_value("Script", "A", "Latn")
        assert not vm.has_value("Script", "A", "Greek")

    def test_properties_of(self, vm: VersionManager) -> None:
        assert vm.properties_of("A", "Latin") == ["Script"]
        assert vm.properties_of("-", "True") == ["Dash"]

    def test_assigned_codepoints_exclude_defaults(self, vm: VersionManager) -> None:
        assert vm.assigned_codepoints("Script") == [
            IntRange(0x0, 0x23), IntRange(0x2A, 0x2A), IntRange(0x41, 0x5A),
            IntRange(0x61, 0x7A), IntRange(0x370, 0x373),
        ]

    def test_value_aliases(self, vm: VersionManager) -> None:
        assert vm.value_aliases("Age", "1.1") == ["1.1", "V1_1"]
        assert vm.value_aliases("Age", "99.0") == []
        assert vm.value_aliases("Bidi_Class", "L") == []

    def test_same_value(self, vm: VersionManager) -> None:
        script = vm.property_manager("Script")
        assert script.same_value("Latn", "Latin")
        assert script.same_value("zyyy", "Common")
        assert not script.same_value("Latn", "Greek")
        # Values outside the catalog compare as text.
        assert script.same_value("Cyrl", "Cyrl")
        assert not script.same_value("Cyrl", "Cyrillic")
        assert not vm.property_manager("scx").same_value("Latn", "Latin")

    def test_properties(self, vm: VersionManager) -> None:
        assert vm.properties == [
            "Age", "Script", "General_Category", "White_Space", "Dash",
            "Composition_Exclusion", "Script_Extensions", "kMandarin",
        ]


class TestAcrossVersions:
    @pytest.fixture
    def both(self, make_data: DataFactory) -> UcdData:
        return make_data(with_next=True)

    def test_versions_of(self, both: UcdData) -> None:
        um = both.unicode_manager()
        assert um.versions_of("Age", 0x370, "1.1") == ["15.0.0"]
        assert um.versions_of("Age", 0x2010, "1.1") == ["15.0.0", "15.1.0"]
        assert um.versions_of("Bidi_Class", 0x41, "L") == []

    def test_text_changes(self, both: UcdData) -> None:
        um = both.unicode_manager()
        assert um.text_changed_codepoints("Age", "15.0.0", "15.1.0") == [
            IntRange(0x370, 0x373), IntRange(0x2010, 0x2015),
        ]
        assert um.text_changed_codepoints("Script", "15.0.0", "15.1.0") == []

    def test_alias_renames_are_not_value_changes(self, both: UcdData) -> None:
        um = both.unicode_manager()
        assert um.value_changed_codepoints("Age", "15.0.0", "15.1.0") == [IntRange(0x370, 0x373)]

    def test_properties_union(self, both: UcdData) -> None:
        assert "kMandarin" in both.unicode_manager().properties

    def test_validate_and_generate(self, data: UcdData, tmp_path: Path) -> None:
        um = data.unicode_manager()
        assert um.validate_metadata("15.0.0").ok
        document = um.generate_metadata(tmp_path / "metadata.json", "15.0.0", "15.1.0")
        assert len(document["version_metadatas"]) == 2
