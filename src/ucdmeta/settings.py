"""Load-time configuration for UCD parsing and retrieval.

Settings are grouped in sections: a ``default`` section and optional
per-version sections keyed by version name. Every lookup searches the
version section first and falls back to ``default``.

Only the file-format and miscellaneous-format lookups influence parsing.
The retrieval lists are carried for the file source and have no effect on
how a file's lines are read.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from ucdmeta.aliases import canonical
from ucdmeta.io_utils import load_json
from ucdmeta.value_types import MiscKind, parse_misc_kind

CACHE_ENV_VAR = "UCDMETA_CACHE"
DEFAULT_CACHE_PATH = Path.home() / ".cache" / "ucdmeta" / "UCD"

WHITESPACE_TRIMS = frozenset({r"\s", r"\s+", " "})


@dataclass(frozen=True, slots=True)
class FileFormat:
    """Cell-splitting rule for one file (or the default).

    ``split`` is a regular expression separating cells. ``trim`` is a
    regular expression removed from every cell; a whitespace trim only
    strips the ends of each cell, so inner spaces survive.
    """

    trim: str
    split: str
    file_name: str | None = None

    @property
    def trims_whitespace(self) -> bool:
        return self.trim in WHITESPACE_TRIMS

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileFormat:
        return cls(
            trim=str(data.get("trim", data.get("strip", r"\s"))),
            split=str(data.get("split", ";")),
            file_name=data.get("file_name"),
        )


@dataclass(frozen=True, slots=True)
class MiscellaneousFormat:
    """Refinement of a miscellaneous property's value kind."""

    property_name: str
    format_type: MiscKind
    unique_threshold: float | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MiscellaneousFormat:
        threshold = data.get("unique_threshold")
        return cls(
            property_name=str(data["property_name"]),
            format_type=parse_misc_kind(str(data["format_type"])),
            unique_threshold=float(threshold) if threshold is not None else None,
        )


@dataclass(frozen=True, slots=True)
class RetrievalSettings:
    """Inputs for the file source; never consulted while parsing."""

    excluded_extensions: tuple[str, ...] = ()
    excluded_directories: tuple[str, ...] = ()
    excluded_files: tuple[str, ...] = ()
    included_files: tuple[str, ...] = ()
    unicode_beta: bool = False
    use_https: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RetrievalSettings:
        return cls(
            excluded_extensions=tuple(data.get("excluded_extensions", [])),
            excluded_directories=tuple(data.get("excluded_directories", [])),
            excluded_files=tuple(data.get("excluded_files", [])),
            included_files=tuple(data.get("included_files", [])),
            unicode_beta=bool(data.get("unicode_beta", False)),
            use_https=bool(data.get("use_https", True)),
        )


@dataclass(frozen=True, slots=True)
class SettingsSection:
    """One section of the settings document; None means "not set here"."""

    default_file_format: FileFormat | None = None
    file_formats: tuple[FileFormat, ...] | None = None
    unihan_file_format: FileFormat | None = None
    miscellaneous_formats: tuple[MiscellaneousFormat, ...] | None = None
    retrieval: RetrievalSettings | None = None
    property_aliases_file_name: str | None = None
    property_value_aliases_file_name: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SettingsSection:
        def _fmt(key: str) -> FileFormat | None:
            raw = data.get(key)
            return FileFormat.from_dict(raw) if raw is not None else None

        file_formats = data.get("file_formats")
        misc = data.get("miscellaneous_formats")
        retrieval_keys = {f.name for f in fields(RetrievalSettings)}
        retrieval = (
            RetrievalSettings.from_dict(data)
            if retrieval_keys.intersection(data)
            else None
        )
        return cls(
            default_file_format=_fmt("default_file_format"),
            file_formats=(
                tuple(FileFormat.from_dict(f) for f in file_formats)
                if file_formats is not None else None
            ),
            unihan_file_format=_fmt("unihan_file_format"),
            miscellaneous_formats=(
                tuple(MiscellaneousFormat.from_dict(m) for m in misc)
                if misc is not None else None
            ),
            retrieval=retrieval,
            property_aliases_file_name=data.get("property_aliases_file_name"),
            property_value_aliases_file_name=data.get("property_value_aliases_file_name"),
        )


# ---------------------------------------------------------------------------
# Built-in defaults
# ---------------------------------------------------------------------------

_DEFAULT_SECTION = SettingsSection(
    default_file_format=FileFormat(trim=r"\s", split=";"),
    file_formats=(FileFormat(trim="", split=r"\s", file_name="NushuSources"),),
    unihan_file_format=FileFormat(trim="", split=r"\s"),
    miscellaneous_formats=(
        MiscellaneousFormat("Bidi_Mirroring_Glyph", MiscKind.STRING),
        MiscellaneousFormat("Bidi_Paired_Bracket", MiscKind.STRING),
        MiscellaneousFormat("Equivalent_Unified_Ideograph", MiscKind.STRING),
        MiscellaneousFormat("Jamo_Short_Name", MiscKind.JAMO_SHORT_NAME),
        MiscellaneousFormat("Name", MiscKind.UNIQUE, 0.9),
        MiscellaneousFormat("Name_Alias", MiscKind.UNIQUE, 0.9),
        MiscellaneousFormat("Script_Extensions", MiscKind.SCRIPT_EXTENSIONS),
        MiscellaneousFormat("Unicode_1_Name", MiscKind.TEXT),
        MiscellaneousFormat("ISO_Comment", MiscKind.TEXT),
    ),
    retrieval=RetrievalSettings(
        excluded_extensions=("zip", "gz", "Z", "pdf", "ps", "gif", "jpg", "C", "html"),
        excluded_directories=(
            "MAPPINGS", "PROGRAMS", "UCA", "cldr", "idna", "math", "reconstructed",
            "security", "vertical", "zipped", "charts", "ucdxml",
        ),
        excluded_files=(
            "Index", "CJKXREF", "StandardizedVariants", "TangutSources",
            "NushuSources", "USourceData", "NamedSequencesProv", "ReadMe",
            # no properties in these
            "NormalizationCorrections", "NamedSequences", "CJKRadicals",
            "NamesList", "emoji-variation-sequences", "EmojiSources",
        ),
        included_files=("Unihan",),
    ),
    property_aliases_file_name="PropertyAliases",
    property_value_aliases_file_name="PropertyValueAliases",
)


@dataclass(frozen=True, slots=True)
class Settings:
    """All configuration lookups the core needs."""

    base: SettingsSection = _DEFAULT_SECTION
    versions: dict[str, SettingsSection] = field(default_factory=dict)
    cache_path: Path | None = None

    @classmethod
    def default(cls) -> Settings:
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        """Build settings from a parsed document.

        Keys absent from the document's ``default`` section keep the
        built-in defaults.
        """
        raw_default = data.get("default")
        default = _DEFAULT_SECTION
        if raw_default is not None:
            default = _overlay(_DEFAULT_SECTION, SettingsSection.from_dict(raw_default))
        versions = {
            str(name): SettingsSection.from_dict(section)
            for name, section in (data.get("versions") or {}).items()
        }
        cache = data.get("cache_path")
        return cls(
            base=default,
            versions=versions,
            cache_path=Path(cache) if cache else None,
        )

    @classmethod
    def from_json(cls, path: Path) -> Settings:
        """Load from a settings JSON file."""
        return cls.from_dict(load_json(path))

    def _search(self, version_name: str | None, attr: str) -> Any:
        if version_name is not None:
            section = self.versions.get(version_name)
            if section is not None:
                value = getattr(section, attr)
                if value is not None:
                    return value
        return getattr(self.base, attr)

    # ── Parsing lookups ─────────────────────────────────────────────────

    def file_format(self, version_name: str | None, file_name: str) -> FileFormat:
        key = canonical(file_name)
        for section_version in (version_name, None):
            formats = self._search(section_version, "file_formats") or ()
            for fmt in formats:
                if fmt.file_name is not None and canonical(fmt.file_name) == key:
                    return fmt
        fallback = self._search(None, "default_file_format")
        return fallback if fallback is not None else FileFormat(trim=r"\s", split=";")

    def unihan_file_format(self, version_name: str | None = None) -> FileFormat:
        fmt = self._search(version_name, "unihan_file_format")
        return fmt if fmt is not None else FileFormat(trim="", split=r"\s")

    def miscellaneous_format(
        self, version_name: str | None, property_alias: str,
    ) -> MiscellaneousFormat | None:
        key = canonical(property_alias)
        for section_version in (version_name, None):
            formats = self._search(section_version, "miscellaneous_formats") or ()
            for fmt in formats:
                if canonical(fmt.property_name) == key:
                    return fmt
        return None

    def property_aliases_file_name(self, version_name: str | None = None) -> str:
        return self._search(version_name, "property_aliases_file_name") or "PropertyAliases"

    def property_value_aliases_file_name(self, version_name: str | None = None) -> str:
        return (
            self._search(version_name, "property_value_aliases_file_name")
            or "PropertyValueAliases"
        )

    # ── Retrieval lookups ───────────────────────────────────────────────

    def retrieval(self, version_name: str | None = None) -> RetrievalSettings:
        value = self._search(version_name, "retrieval")
        return value if value is not None else RetrievalSettings()

    def resolve_cache_path(self) -> Path:
        """Cache root: $UCDMETA_CACHE, then the configured path, then ~/.cache."""
        env = os.environ.get(CACHE_ENV_VAR, "")
        if env:
            return Path(env).expanduser().resolve()
        if self.cache_path is not None:
            return self.cache_path.expanduser().resolve()
        return DEFAULT_CACHE_PATH


def _overlay(base: SettingsSection, override: SettingsSection) -> SettingsSection:
    return SettingsSection(
        default_file_format=override.default_file_format or base.default_file_format,
        file_formats=(
            override.file_formats if override.file_formats is not None else base.file_formats
        ),
        unihan_file_format=override.unihan_file_format or base.unihan_file_format,
        miscellaneous_formats=(
            override.miscellaneous_formats
            if override.miscellaneous_formats is not None
            else base.miscellaneous_formats
        ),
        retrieval=override.retrieval or base.retrieval,
        property_aliases_file_name=(
            override.property_aliases_file_name or base.property_aliases_file_name
        ),
        property_value_aliases_file_name=(
            override.property_value_aliases_file_name or base.property_value_aliases_file_name
        ),
    )
