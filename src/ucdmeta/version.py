"""A UCD release: its files, its property catalog and its metadata entry.

Versions are named ``X.Y.Z`` or, for early releases, ``X.Y-UpdateN`` and
``X.Y-Update``. Two names with the same weight denote the same release.
"""
from __future__ import annotations

import functools
import re
from typing import TYPE_CHECKING, Protocol

from ucdmeta.aliases import canonical
from ucdmeta.catalog import Property, PropertyCatalog
from ucdmeta.errors import (
    FileNotFoundInVersionError,
    MetadataNotFoundError,
    PropertyNotFoundError,
    VersionParseError,
)
from ucdmeta.rawfile import PropertyAliasesFile, PropertyValueAliasesFile, RawFile, UnihanFile
from ucdmeta.sources import FileSource, file_prefix, is_unihan_file_name
from ucdmeta.unihan import UnihanCatalog

if TYPE_CHECKING:
    from ucdmeta.metadata import Metadata, VersionMetadata
    from ucdmeta.settings import Settings

_VERSION_PATTERNS = (
    re.compile(r"^(\d+)\.(\d+)\.(\d+)$"),
    re.compile(r"^(\d+)\.(\d+)-Update(\d+)$"),
    re.compile(r"^(\d+)\.(\d+)-Update$"),
)


def parse_version_name(version_name: str) -> tuple[int, int, int]:
    """Return (major, minor, tiny); ``X.Y-Update`` has tiny 0."""
    for pattern in _VERSION_PATTERNS:
        m = pattern.match(version_name)
        if m:
            groups = m.groups()
            tiny = int(groups[2]) if len(groups) > 2 else 0
            return int(groups[0]), int(groups[1]), tiny
    raise VersionParseError(f"{version_name!r} is not a version name")


def version_weight(version_name: str) -> int:
    major, minor, tiny = parse_version_name(version_name)
    return major * 10000 + minor * 100 + tiny


class VersionRoot(Protocol):
    """What a Version needs from the object that created it."""

    @property
    def source(self) -> FileSource: ...

    @property
    def settings(self) -> Settings: ...

    @property
    def metadata(self) -> Metadata: ...


@functools.total_ordering
class Version:
    """One release of the UCD, owning its files and catalog.

    Files, the property catalog, the Unihan catalog and the metadata view
    are built on first access and cached until ``reload``.
    """

    def __init__(self, root: VersionRoot, version_name: str) -> None:
        self.root = root
        self.version_name = version_name
        self.major, self.minor, self.tiny = parse_version_name(version_name)
        self._files: list[RawFile] | None = None
        self._catalog: PropertyCatalog | None = None
        self._unihan: UnihanCatalog | None = None
        self._version_metadata: VersionMetadata | None = None

    @property
    def weight(self) -> int:
        return self.major * 10000 + self.minor * 100 + self.tiny

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.weight == other.weight

    def __lt__(self, other: Version) -> bool:
        return self.weight < other.weight

    def __hash__(self) -> int:
        return hash(self.weight)

    def __repr__(self) -> str:
        return f"<Version {self.version_name}>"

    @property
    def settings(self) -> Settings:
        return self.root.settings

    # ── Files ───────────────────────────────────────────────────────────

    @property
    def files(self) -> list[RawFile]:
        if self._files is None:
            names = self.root.source.list_files(self.version_name)
            self._files = [self._create_file(name) for name in names]
        return self._files

    def reload(self) -> None:
        """Drop every cached artifact; the next access re-lists the source."""
        reload_source = getattr(self.root.source, "reload", None)
        if reload_source is not None:
            reload_source(self.version_name)
        self._files = None
        self._catalog = None
        self._unihan = None
        self._version_metadata = None

    def _create_file(self, name: str) -> RawFile:
        source = self.root.source
        version_name = self.version_name

        def loader() -> bytes:
            return source.fetch(version_name, name)

        key = canonical(name)
        if key == canonical(self.settings.property_aliases_file_name(version_name)):
            return PropertyAliasesFile(
                name, loader, self.settings.file_format(version_name, name), version=self,
            )
        if key == canonical(self.settings.property_value_aliases_file_name(version_name)):
            return PropertyValueAliasesFile(
                name, loader, self.settings.file_format(version_name, name), version=self,
            )
        if is_unihan_file_name(name):
            return UnihanFile(
                name, loader, self.settings.unihan_file_format(version_name), version=self,
            )
        return RawFile(name, loader, self.settings.file_format(version_name, name), version=self)

    def find_file(self, name: str) -> RawFile:
        key = canonical(file_prefix(name))
        for f in self.files:
            if f.key == key:
                return f
        raise FileNotFoundInVersionError(f"{name} is not found in {self.version_name}")

    def has_file(self, name: str) -> bool:
        try:
            self.find_file(name)
        except FileNotFoundInVersionError:
            return False
        return True

    @property
    def property_aliases_file(self) -> PropertyAliasesFile:
        f = self.find_file(self.settings.property_aliases_file_name(self.version_name))
        if not isinstance(f, PropertyAliasesFile):
            raise FileNotFoundInVersionError(f"{f.name} is not a property aliases file")
        return f

    @property
    def property_value_aliases_file(self) -> PropertyValueAliasesFile:
        f = self.find_file(self.settings.property_value_aliases_file_name(self.version_name))
        if not isinstance(f, PropertyValueAliasesFile):
            raise FileNotFoundInVersionError(f"{f.name} is not a property value aliases file")
        return f

    # ── Properties ──────────────────────────────────────────────────────

    @property
    def catalog(self) -> PropertyCatalog:
        if self._catalog is None:
            self._catalog = PropertyCatalog.from_files(
                self.property_aliases_file,
                self.property_value_aliases_file,
                settings=self.settings,
                version=self,
            )
        return self._catalog

    @property
    def unihan_files(self) -> list[RawFile]:
        return [f for f in self.files if f.is_unihan]

    @property
    def has_unihan(self) -> bool:
        return bool(self.unihan_files)

    @property
    def unihan(self) -> UnihanCatalog:
        if self._unihan is None:
            self._unihan = UnihanCatalog(self.unihan_files)
        return self._unihan

    @property
    def unihan_properties(self) -> list[Property]:
        return self.unihan.properties

    def properties(self, *, exclude_unihan: bool = False) -> list[Property]:
        """Catalog properties, plus Unihan properties unless excluded."""
        unihan = self.unihan_properties if self.has_unihan else []
        unihan_keys = {p.key for p in unihan}
        if exclude_unihan:
            return [p for p in self.catalog if p.key not in unihan_keys]
        result = list(self.catalog)
        known = {p.key for p in result}
        result.extend(p for p in unihan if p.key not in known)
        return result

    def find_property(self, target: str | Property) -> Property:
        """Resolve an alias or a Property of another version in this version.

        PropertyAliases entries win; Unihan-only properties are searched next.
        """
        try:
            return self.catalog.find(target)
        except PropertyNotFoundError:
            if not self.has_unihan:
                raise
        return self.unihan.find_property(target)

    def has_property(self, target: str | Property) -> bool:
        try:
            self.find_property(target)
        except PropertyNotFoundError:
            return False
        return True

    def find_unihan_property(self, target: str | Property) -> Property:
        if isinstance(target, Property):
            for alias in sorted(target.raw_aliases, key=len, reverse=True):
                if self.unihan.has_property(alias):
                    return self.unihan.find_property(alias)
            raise PropertyNotFoundError(target.longest_alias)
        return self.unihan.find_property(target)

    def has_unihan_property(self, target: str | Property) -> bool:
        try:
            self.find_unihan_property(target)
        except PropertyNotFoundError:
            return False
        return True

    def resolve_property(self, name: str | None) -> Property | None:
        """The property named ``name``, or None when nothing resolves."""
        if name is None:
            return None
        try:
            return self.find_property(name)
        except PropertyNotFoundError:
            return None

    # ── Metadata ────────────────────────────────────────────────────────

    @property
    def version_metadata(self) -> VersionMetadata:
        """The metadata entry describing this version.

        Raises:
            MetadataNotFoundError: the metadata document has no entry of this weight.
        """
        if self._version_metadata is None:
            from ucdmeta.metadata import VersionMetadata

            raw = self.root.metadata.find_raw_version_metadata(self.version_name)
            self._version_metadata = VersionMetadata(self, raw)
        return self._version_metadata

    @property
    def has_version_metadata(self) -> bool:
        try:
            self.version_metadata
        except MetadataNotFoundError:
            return False
        return True
