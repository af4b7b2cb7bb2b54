"""Tests for ucdmeta.settings."""
from __future__ import annotations

from pathlib import Path

import pytest

from ucdmeta.io_utils import save_json
from ucdmeta.settings import CACHE_ENV_VAR, FileFormat, Settings
from ucdmeta.value_types import MiscKind


class TestDefaults:
    def test_default_file_format(self) -> None:
        fmt = Settings.default().file_format("15.0.0", "Scripts")
        assert fmt.trim == r"\s" and fmt.split == ";"
        assert fmt.trims_whitespace

    def test_per_file_override(self) -> None:
        fmt = Settings.default().file_format(None, "NushuSources")
        assert fmt.split == r"\s"

    def test_unihan_format(self) -> None:
        fmt = Settings.default().unihan_file_format("15.0.0")
        assert fmt == FileFormat(trim="", split=r"\s")

    def test_miscellaneous_format_by_any_spelling(self) -> None:
        fmt = Settings.default().miscellaneous_format("15.0.0", "name")
        assert fmt is not None
        assert fmt.format_type is MiscKind.UNIQUE
        assert fmt.unique_threshold == 0.9
        assert Settings.default().miscellaneous_format(None, "Script") is None

    def test_alias_file_names(self) -> None:
        s = Settings.default()
        assert s.property_aliases_file_name() == "PropertyAliases"
        assert s.property_value_aliases_file_name("15.0.0") == "PropertyValueAliases"


class TestDocument:
    def test_version_section_wins(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.json"
        save_json({
            "default": {"file_formats": [{"file_name": "Special", "trim": "", "split": ","}]},
            "versions": {
                "3.0.0": {
                    "file_formats": [{"file_name": "Special", "trim": "\\s", "split": "\\|"}],
                    "property_aliases_file_name": "PropertyAliases-3.0.0",
                },
            },
        }, path)
        s = Settings.from_json(path)
        assert s.file_format("3.0.0", "Special").split == "\\|"
        assert s.file_format("15.0.0", "Special").split == ","
        assert s.property_aliases_file_name("3.0.0") == "PropertyAliases-3.0.0"
        assert s.property_aliases_file_name("15.0.0") == "PropertyAliases"

    def test_unset_keys_keep_builtin_defaults(self) -> None:
        s = Settings.from_dict({"default": {"miscellaneous_formats": []}})
        assert s.miscellaneous_format(None, "Name") is None
        assert s.unihan_file_format().split == r"\s"

    def test_retrieval_flags(self) -> None:
        s = Settings.from_dict({"versions": {"15.1.0": {"use_https": False, "excluded_files": ["X"]}}})
        assert s.retrieval("15.1.0").use_https is False
        assert s.retrieval("15.1.0").excluded_files == ("X",)
        assert s.retrieval("15.0.0").use_https is True


def test_cache_path_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(CACHE_ENV_VAR, str(tmp_path / "cache"))
    assert Settings.default().resolve_cache_path() == (tmp_path / "cache").resolve()


def test_cache_path_from_document(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(CACHE_ENV_VAR, raising=False)
    s = Settings.from_dict({"cache_path": str(tmp_path)})
    assert s.resolve_cache_path() == tmp_path.resolve()
