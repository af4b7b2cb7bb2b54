"""Property-indexed companion of the metadata document.

The structural metadata is organised by file. Answering "where is property
P" from it means resolving every block of every file, so a second JSON
document keeps the answer per version and per property::

    [{"version_name": "15.0.0",
      "properties": [{"property_name": "Script",
                      "positions": [{"file_name": "Scripts", "block": 0,
                                     "range": "34..2200", "columns": 1}],
                      "unihan": false, "type": "catalog", "derived": false}]}]

Entries are generated from the structural metadata the first time a version
is asked for and appended to the file; an existing entry is never rewritten.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ucdmeta.errors import MetadataNotFoundError
from ucdmeta.io_utils import load_json, save_json
from ucdmeta.metadata import Position
from ucdmeta.ranges import IntRange
from ucdmeta.version import version_weight

if TYPE_CHECKING:
    from ucdmeta.catalog import Property
    from ucdmeta.value_group import PropertyValueGroupBase
    from ucdmeta.version import Version

logger = logging.getLogger(__name__)

PROPERTY_INDEX_PREFIX = "property_"


def default_index_path(metadata_path: Path) -> Path:
    return metadata_path.parent / (PROPERTY_INDEX_PREFIX + metadata_path.name)


@dataclass(frozen=True, slots=True)
class PropertyRecord:
    """Everything the index knows about one property of one version."""

    property: Property
    positions: tuple[Position, ...]
    unihan: bool
    derived: bool
    type: str

    @property
    def position(self) -> Position | None:
        """The position best suited for reading values.

        Derived files are preferred when the property has one; otherwise the
        position spanning the fewest columns.
        """
        if self.derived:
            for pos in self.positions:
                if pos.file.name.startswith("Derived"):
                    return pos
            return None
        if not self.positions:
            return None
        return min(self.positions, key=lambda p: len(p.columns))


class VersionPropertyIndex:
    """Index entry of one version, resolved against that version."""

    def __init__(self, version: Version, raw: dict[str, Any]) -> None:
        self.version = version
        self.raw = raw
        self._records: dict[str, PropertyRecord] | None = None
        self._value_groups: dict[str, PropertyValueGroupBase] = {}

    @property
    def records(self) -> dict[str, PropertyRecord]:
        if self._records is None:
            records: dict[str, PropertyRecord] = {}
            for entry in self.raw.get("properties", []):
                record = self._restore(entry)
                records.setdefault(record.property.key, record)
            self._records = records
        return self._records

    def _restore(self, entry: dict[str, Any]) -> PropertyRecord:
        positions = []
        for raw_pos in entry.get("positions", []):
            columns = raw_pos["columns"]
            positions.append(Position(
                file=self.version.find_file(str(raw_pos["file_name"])),
                block=int(raw_pos["block"]),
                range=IntRange.parse(str(raw_pos["range"])),
                columns=(int(columns),) if isinstance(columns, int) else tuple(int(c) for c in columns),
            ))
        return PropertyRecord(
            property=self.version.find_property(str(entry["property_name"])),
            positions=tuple(positions),
            unihan=bool(entry.get("unihan", False)),
            derived=bool(entry.get("derived", False)),
            type=str(entry.get("type", "")),
        )

    def find(self, prop: Property) -> PropertyRecord:
        record = self.records.get(prop.key)
        if record is None:
            raise MetadataNotFoundError(f"index entry for {prop.longest_alias} is not found")
        return record

    def has(self, prop: Property) -> bool:
        return prop.key in self.records

    def value_group(self, prop: Property) -> PropertyValueGroupBase:
        """Values of ``prop`` read from its best position (or from Unihan)."""
        from ucdmeta.value_group import PropertyValueGroup

        cached = self._value_groups.get(prop.key)
        if cached is not None:
            return cached
        record = self.find(prop)
        group: PropertyValueGroupBase
        if record.unihan:
            group = self.version.unihan.value_group(record.property)
        else:
            pos = record.position
            if pos is None:
                raise MetadataNotFoundError(f"{prop.longest_alias} has no readable position")
            group = PropertyValueGroup(pos.file, record.property, pos.block)
        self._value_groups[prop.key] = group
        return group


class PropertyIndex:
    """The property-indexed JSON document, extended on demand.

    Without a path the index lives in memory only.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self.raw: list[dict[str, Any]] = []
        if path is not None and path.exists():
            self.raw = load_json(path)
        self._versions: dict[int, VersionPropertyIndex] = {}

    @property
    def raw_version_entries(self) -> list[dict[str, Any]]:
        return sorted(self.raw, key=lambda e: version_weight(str(e["version_name"])))

    def find_raw(self, version_name: str) -> dict[str, Any]:
        weight = version_weight(version_name)
        for entry in self.raw:
            if version_weight(str(entry["version_name"])) == weight:
                return entry
        raise MetadataNotFoundError(f"property index for {version_name} is not found")

    def has_raw(self, version_name: str) -> bool:
        try:
            self.find_raw(version_name)
        except MetadataNotFoundError:
            return False
        return True

    def for_version(self, version: Version) -> VersionPropertyIndex:
        """The index entry of ``version``, generating and saving it if absent.

        Raises:
            MetadataNotFoundError: the structural metadata has no entry either.
        """
        cached = self._versions.get(version.weight)
        if cached is not None:
            return cached
        if not self.has_raw(version.version_name):
            if not version.has_version_metadata:
                raise MetadataNotFoundError(f"metadata for {version.version_name} is not found")
            logger.info("generating property index for %s", version.version_name)
            self.raw.append(generate_version_entry(version))
            if self.path is not None:
                save_json(self.raw, self.path)
        index = VersionPropertyIndex(version, self.find_raw(version.version_name))
        self._versions[version.weight] = index
        return index


def generate_version_entry(version: Version) -> dict[str, Any]:
    return {
        "version_name": version.version_name,
        "properties": [generate_property_entry(version, p) for p in version.properties()],
    }


def generate_property_entry(version: Version, prop: Property) -> dict[str, Any]:
    positions = version.version_metadata.positions_of(prop)
    return {
        "property_name": prop.longest_alias,
        "positions": [
            {
                "file_name": pos.file.name,
                "block": pos.block,
                "range": pos.range.to_str(),
                "columns": pos.columns[0] if len(pos.columns) == 1 else list(pos.columns),
            }
            for pos in positions
        ],
        "unihan": version.has_unihan and version.has_unihan_property(prop),
        "type": str(prop.value_kind),
        "derived": any(pos.file.is_derived for pos in positions),
    }
