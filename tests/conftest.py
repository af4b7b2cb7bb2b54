"""Shared fixtures: a miniature two-release UCD served from memory.

Row numbers of every file are fixed; tests and the metadata below rely on
them. 15.1.0 differs from 15.0.0 in three places: Scripts gains a row
after ASTERISK, DerivedAge records a real change (0370..0373) and an alias
rename (2010..2015 written as V1_1), and PropertyValueAliases gains Age 15.1.
"""
from __future__ import annotations

import copy
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from ucdmeta.io_utils import save_json
from ucdmeta.metadata import Metadata
from ucdmeta.sources import MemorySource
from ucdmeta.ucd import UcdData

PROPERTY_ALIASES = """\
# PropertyAliases-15.0.0.txt
#
# ================================================
# Catalog Properties
# ================================================

age                      ; Age
sc                       ; Script

# ================================================
# Enumerated Properties
# ================================================

gc                       ; General_Category

# ================================================
# Binary Properties
# ================================================

WSpace                   ; White_Space                 ; space
Dash                     ; Dash
CE                       ; Composition_Exclusion

# ================================================
# Miscellaneous Properties
# ================================================

scx                      ; Script_Extensions

# EOF
"""

_VALUE_ALIASES_HEAD = """\
# PropertyValueAliases-15.0.0.txt

# Age (age)

# @missing: 0000..10FFFF; Age; Unassigned
age; 1.1                              ; V1_1
age; 15.0                             ; V15_0
"""

_VALUE_ALIASES_TAIL = """\
age; NA                               ; Unassigned

# General_Category (gc)

# @missing: 0000..10FFFF; General_Category; Unassigned
gc ; Cn                               ; Unassigned
gc ; Ll                               ; Lowercase_Letter
gc ; Lu                               ; Uppercase_Letter
gc ; Po                               ; Other_Punctuation

# Script (sc)

# @missing: 0000..10FFFF; Script; Unknown
sc ; Grek                             ; Greek
sc ; Latn                             ; Latin
sc ; Zyyy                             ; Common
sc ; Zzzz                             ; Unknown

# Binary properties

CE ; N                                ; No                               ; F                                ; False
CE ; Y                                ; Yes                              ; T                                ; True
Dash; N                               ; No                               ; F                                ; False
Dash; Y                               ; Yes                              ; T                                ; True
WSpace; N                             ; No                               ; F                                ; False
WSpace; Y                             ; Yes                              ; T                                ; True

# EOF
"""

PROPERTY_VALUE_ALIASES = _VALUE_ALIASES_HEAD + _VALUE_ALIASES_TAIL
PROPERTY_VALUE_ALIASES_NEXT = (
    _VALUE_ALIASES_HEAD
    + "age; 15.1                             ; V15_1\n"
    + _VALUE_ALIASES_TAIL
)

SCRIPTS = """\
# Scripts-15.0.0.txt
#
# @missing: 0000..10FFFF; Unknown

# ================================================

0000..001F    ; Common # Cc  [32] <control-0000>..<control-001F>
0020          ; Common # Zs       SPACE
0021..0023    ; Common # Po   [3] EXCLAMATION MARK..NUMBER SIGN
002A          ; Common # Po       ASTERISK

# Total code points: 37

# ================================================

0041..005A    ; Latin # L&  [26] LATIN CAPITAL LETTER A..LATIN CAPITAL LETTER Z
0061..007A    ; Latin # L&  [26] LATIN SMALL LETTER A..LATIN SMALL LETTER Z

# Total code points: 52

# ================================================

0370..0373    ; Greek # L&   [4] GREEK CAPITAL LETTER HETA..GREEK SMALL LETTER ARCHAIC SAMPI

# EOF
"""

SCRIPTS_NEXT = SCRIPTS.replace(
    "002A          ; Common # Po       ASTERISK\n",
    "002A          ; Common # Po       ASTERISK\n002B          ; Common # Sm       PLUS SIGN\n",
)

PROP_LIST = """\
# PropList-15.0.0.txt

# ================================================

0009..000D    ; White_Space # Cc   [5] <control-0009>..<control-000D>
0020          ; White_Space # Zs       SPACE

# Total code points: 6

# ================================================

002D          ; Dash # Pd       HYPHEN-MINUS
2010..2015    ; Dash # Pd   [6] HYPHEN..HORIZONTAL BAR

# Total code points: 7
"""

FLAG_VALUES = """\
# FlagValues-15.0.0.txt

0009..000D    ; White_Space ; Y
0020          ; White_Space ; Y

002D          ; Dash ; Y
2010..2015    ; Dash ; N
"""

COMPOSITION_EXCLUSIONS = """\
# CompositionExclusions-15.0.0.txt

0958    #  DEVANAGARI LETTER QA
0959    #  DEVANAGARI LETTER KHHA
"""

DERIVED_GENERAL_CATEGORY = """\
# DerivedGeneralCategory-15.0.0.txt

# @missing: 0000..10FFFF; Cn

0021..0023    ; Po #   [3] EXCLAMATION MARK..NUMBER SIGN
002A          ; Po #       ASTERISK
0041..005A    ; Lu #  [26] LATIN CAPITAL LETTER A..LATIN CAPITAL LETTER Z
0061..007A    ; Ll #  [26] LATIN SMALL LETTER A..LATIN SMALL LETTER Z
"""

SCRIPT_EXTENSIONS = """\
# ScriptExtensions-15.0.0.txt

# @missing: 0000..10FFFF; <script>

0342          ; Grek # Mn       COMBINING GREEK PERISPOMENI
0363..036F    ; Latn # Mn  [13] COMBINING LATIN SMALL LETTER A..COMBINING LATIN SMALL LETTER X
1DC0..1DC1    ; Grek Latn # Mn   [2] COMBINING DOTTED GRAVE ACCENT..COMBINING SUSPENDED HYPHEN
"""

DERIVED_AGE = """\
# DerivedAge-15.0.0.txt

# @missing: 0000..10FFFF; Unassigned

0000..007F    ; 1.1 #  [128] <control-0000>..DELETE
0370..0373    ; 1.1 #   [4] GREEK CAPITAL LETTER HETA..GREEK SMALL LETTER ARCHAIC SAMPI
2010..2015    ; 1.1 #   [6] HYPHEN..HORIZONTAL BAR
"""

DERIVED_AGE_NEXT = DERIVED_AGE.replace(
    "0370..0373    ; 1.1", "0370..0373    ; 15.0",
).replace(
    "2010..2015    ; 1.1", "2010..2015    ; V1_1",
)

UNIHAN_READINGS = "# Unihan_Readings.txt\nU+3400\tkMandarin\tqiū\nU+3401\tkMandarin\ttiàn\n"


def release_files(*, next_release: bool = False) -> dict[str, str]:
    return {
        "PropertyAliases.txt": PROPERTY_ALIASES,
        "PropertyValueAliases.txt": PROPERTY_VALUE_ALIASES_NEXT if next_release else PROPERTY_VALUE_ALIASES,
        "Scripts.txt": SCRIPTS_NEXT if next_release else SCRIPTS,
        "PropList.txt": PROP_LIST,
        "FlagValues.txt": FLAG_VALUES,
        "CompositionExclusions.txt": COMPOSITION_EXCLUSIONS,
        "DerivedGeneralCategory.txt": DERIVED_GENERAL_CATEGORY,
        "ScriptExtensions.txt": SCRIPT_EXTENSIONS,
        "DerivedAge.txt": DERIVED_AGE_NEXT if next_release else DERIVED_AGE,
        "Unihan_Readings.txt": UNIHAN_READINGS,
    }


def version_entry(version_name: str, *, scripts_range: str = "6..22") -> dict[str, Any]:
    return {
        "version_name": version_name,
        "file_formats": [
            {"file_name": "Scripts", "blocks": [
                {"content": ["codepoint", "Script"], "range": scripts_range},
            ]},
            {"file_name": "PropList", "blocks": [
                {"content": ["codepoint", "White_Space"], "range": "4..5"},
                {"content": ["codepoint", "Dash"], "range": "11..12"},
            ]},
            {"file_name": "FlagValues", "blocks": [
                {"content": ["codepoint", None, "White_Space"], "range": "2..3"},
                {"content": ["codepoint", None, "Dash"], "range": "5..6"},
            ]},
            {"file_name": "CompositionExclusions", "blocks": [
                {"content": [["codepoint", "Composition_Exclusion"]], "range": "2..3"},
            ]},
            {"file_name": "DerivedGeneralCategory", "blocks": [
                {"content": ["codepoint", "General_Category"], "range": "4..7"},
            ]},
            {"file_name": "ScriptExtensions", "blocks": [
                {"content": ["codepoint", "Script_Extensions"], "range": "4..6"},
            ]},
            {"file_name": "DerivedAge", "blocks": [
                {"content": ["codepoint", "Age"], "range": "4..6"},
            ]},
        ],
        "unihan_files": ["Unihan_Readings"],
        "unihan_properties": ["kMandarin"],
    }


def metadata_document(*, with_next: bool = False) -> dict[str, Any]:
    entries = [version_entry("15.0.0")]
    names = ["15.0.0"]
    if with_next:
        entries.append(version_entry("15.1.0", scripts_range="6..23"))
        names.append("15.1.0")
    return {"version_names": names, "version_metadatas": entries}


type DataFactory = Callable[..., UcdData]


@pytest.fixture
def make_data() -> DataFactory:
    """Build a UcdData over the miniature releases.

    Keyword arguments: ``with_next`` adds a reviewed 15.1.0 entry,
    ``metadata`` replaces the document, ``extra`` adds or overrides files
    per version.
    """

    def _make(
        *,
        with_next: bool = False,
        metadata: dict[str, Any] | None = None,
        extra: dict[str, dict[str, str]] | None = None,
    ) -> UcdData:
        files = {
            "15.0.0": release_files(),
            "15.1.0": release_files(next_release=True),
        }
        for version_name, overrides in (extra or {}).items():
            files.setdefault(version_name, {}).update(overrides)
        document = metadata if metadata is not None else metadata_document(with_next=with_next)
        return UcdData(MemorySource(files), metadata=Metadata(copy.deepcopy(document)))

    return _make


@pytest.fixture
def data(make_data: DataFactory) -> UcdData:
    return make_data()


@pytest.fixture
def ucd_tree(tmp_path: Path) -> tuple[Path, Path]:
    """The same releases unpacked on disk plus a metadata file.

    Returns (cache root, metadata path).
    """
    root = tmp_path / "UCD"
    for version_name, next_release in (("15.0.0", False), ("15.1.0", True)):
        version_dir = root / version_name
        version_dir.mkdir(parents=True)
        for name, text in release_files(next_release=next_release).items():
            (version_dir / name).write_text(text, encoding="utf-8")
    metadata_path = tmp_path / "metadata.json"
    save_json(metadata_document(), metadata_path)
    return root, metadata_path
