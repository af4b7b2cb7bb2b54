"""The persisted structural description of the UCD and its live views.

Document layout::

    {"version_names": [...],
     "version_metadatas": [
        {"version_name": "15.0.0",
         "file_formats": [{"file_name": "Scripts",
                           "blocks": [{"content": ["codepoint", "Script"],
                                       "range": "10..50"}]}],
         "unihan_files": [...],
         "unihan_properties": [...]}]}

``content`` cells are a property name, a list of names (a column that
describes several properties at once), ``"codepoint"`` or null. Live views
re-resolve every name against the version they describe; names that do not
resolve become empty columns instead of failing the file.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ucdmeta.aliases import canonical
from ucdmeta.errors import MetadataNotFoundError
from ucdmeta.io_utils import load_json
from ucdmeta.ranges import CODEPOINT_RANGE, IntRange
from ucdmeta.sources import file_prefix
from ucdmeta.value_types import ValueKind
from ucdmeta.version import version_weight

if TYPE_CHECKING:
    from ucdmeta.catalog import Property
    from ucdmeta.rawfile import RawFile
    from ucdmeta.value_group import BlockValueGroup
    from ucdmeta.version import Version

CODEPOINT_COLUMN = "codepoint"

type RawCell = str | tuple[str, ...] | None


# ---------------------------------------------------------------------------
# Column variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class EmptyColumn:
    """A column that describes no property (codepoint, comment, unresolved)."""


@dataclass(frozen=True, slots=True)
class Single[T]:
    item: T


@dataclass(frozen=True, slots=True)
class Ambiguous[T]:
    """A column whose cells carry values of several properties at once."""

    items: tuple[T, ...]

    def __post_init__(self) -> None:
        if not self.items:
            raise ValueError("Ambiguous column needs at least one item")


type Column[T] = EmptyColumn | Single[T] | Ambiguous[T]

EMPTY = EmptyColumn()


def column_items[T](column: Column[T]) -> tuple[T, ...]:
    match column:
        case Single(item=item):
            return (item,)
        case Ambiguous(items=items):
            return items
        case _:
            return ()


def raw_cell_names(cell: RawCell) -> tuple[str, ...]:
    if cell is None:
        return ()
    if isinstance(cell, str):
        return (cell,)
    return tuple(cell)


def is_codepoint_cell(cell: RawCell) -> bool:
    return any(canonical(name) == CODEPOINT_COLUMN for name in raw_cell_names(cell))


def _raw_cell_from_json(value: Any) -> RawCell:
    if value is None or isinstance(value, str):
        return value
    return tuple(str(v) for v in value)


def _raw_cell_to_json(cell: RawCell) -> Any:
    if isinstance(cell, tuple):
        return list(cell)
    return cell


# ---------------------------------------------------------------------------
# Blocks and positions
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class RawBlock:
    """A block as written in the document: names, not properties."""

    content: tuple[RawCell, ...]
    range: IntRange

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RawBlock:
        return cls(
            content=tuple(_raw_cell_from_json(c) for c in data["content"]),
            range=IntRange.parse(str(data["range"])),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": [_raw_cell_to_json(c) for c in self.content],
            "range": self.range.to_str(),
        }

    @property
    def names(self) -> list[str]:
        """Every name in the block, flattened, in column order."""
        return [name for cell in self.content for name in raw_cell_names(cell)]


@dataclass(frozen=True, slots=True)
class Block:
    """A block with its columns resolved to live properties."""

    columns: tuple[Column[Property], ...]
    range: IntRange

    @property
    def properties(self) -> list[Property]:
        found: list[Property] = []
        for column in self.columns:
            for prop in column_items(column):
                if prop not in found:
                    found.append(prop)
        return found


def resolve_block(raw: RawBlock, version: Version) -> Block:
    columns: list[Column[Property]] = []
    for cell in raw.content:
        if cell is None:
            columns.append(EMPTY)
        elif isinstance(cell, str):
            prop = version.resolve_property(cell)
            columns.append(Single(prop) if prop is not None else EMPTY)
        else:
            props = tuple(p for p in (version.resolve_property(n) for n in cell) if p is not None)
            columns.append(Ambiguous(props) if props else EMPTY)
    return Block(tuple(columns), raw.range)


@dataclass(frozen=True, slots=True)
class Position:
    """Where a property physically occurs: one (file, block) with its columns."""

    file: RawFile
    block: int
    range: IntRange
    columns: tuple[int, ...]


@dataclass(frozen=True, slots=True)
class MissingDefinition:
    """Default value of a property over a codepoint range."""

    codepoints: IntRange
    property: Property
    value: str


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------

class Metadata:
    """The whole metadata document, read-only after loading."""

    def __init__(self, raw: dict[str, Any], path: Path | None = None) -> None:
        self.raw = raw
        self.path = path

    @classmethod
    def load(cls, path: Path) -> Metadata:
        if not path.exists():
            raise MetadataNotFoundError(f"{path} is not found")
        return cls(load_json(path), path)

    @classmethod
    def empty(cls) -> Metadata:
        return cls({"version_names": [], "version_metadatas": []})

    @property
    def version_names(self) -> list[str]:
        """Declared version names; falls back to the names of the entries."""
        names = self.raw.get("version_names") or []
        if names:
            return [str(n) for n in names]
        return [str(e["version_name"]) for e in self.raw_version_metadatas]

    @property
    def raw_version_metadatas(self) -> list[dict[str, Any]]:
        entries = self.raw.get("version_metadatas") or []
        return sorted(entries, key=lambda e: version_weight(str(e["version_name"])))

    def find_raw_version_metadata(self, version_name: str) -> dict[str, Any]:
        weight = version_weight(version_name)
        for entry in self.raw_version_metadatas:
            if version_weight(str(entry["version_name"])) == weight:
                return entry
        raise MetadataNotFoundError(f"metadata for {version_name} is not found")

    def has_raw_version_metadata(self, version_name: str) -> bool:
        try:
            self.find_raw_version_metadata(version_name)
        except MetadataNotFoundError:
            return False
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "version_names": list(self.raw.get("version_names") or []),
            "version_metadatas": self.raw_version_metadatas,
        }


class FileMetadata:
    """Blocks of one file, raw and resolved."""

    def __init__(self, file: RawFile, raw_file_format: dict[str, Any]) -> None:
        self.file = file
        self.raw_file_format = raw_file_format
        self._raw_blocks: list[RawBlock] | None = None
        self._blocks: list[Block] | None = None
        self._block_value_groups: dict[int, BlockValueGroup] = {}

    @property
    def version(self) -> Version:
        return self.file.owning_version

    @property
    def raw_blocks(self) -> list[RawBlock]:
        if self._raw_blocks is None:
            self._raw_blocks = [RawBlock.from_dict(b) for b in self.raw_file_format.get("blocks", [])]
        return self._raw_blocks

    @property
    def blocks(self) -> list[Block]:
        if self._blocks is None:
            self._blocks = [resolve_block(b, self.version) for b in self.raw_blocks]
        return self._blocks

    @property
    def actual_properties(self) -> list[Property]:
        found: list[Property] = []
        for block in self.blocks:
            for prop in block.properties:
                if prop not in found:
                    found.append(prop)
        return found

    @property
    def has_any_properties(self) -> bool:
        return bool(self.actual_properties)

    @property
    def property_written_ranges(self) -> list[IntRange]:
        return [b.range for b in self.blocks]

    @property
    def codepoint_column_nos(self) -> list[int | None]:
        """Per block, the column holding codepoints (the last one if several)."""
        result: list[int | None] = []
        for raw in self.raw_blocks:
            found: int | None = None
            for i, cell in enumerate(raw.content):
                if is_codepoint_cell(cell):
                    found = i
            result.append(found)
        return result

    def property_column_nos(self, prop: Property) -> list[list[int]]:
        """Per block, the columns that describe ``prop``."""
        return [
            [i for i, column in enumerate(block.columns) if prop in column_items(column)]
            for block in self.blocks
        ]

    @property
    def has_multiple_properties_column(self) -> bool:
        return any(isinstance(c, Ambiguous) for b in self.blocks for c in b.columns)

    def block_value_group(self, block: int) -> BlockValueGroup | None:
        if not 0 <= block < len(self.raw_blocks):
            return None
        group = self._block_value_groups.get(block)
        if group is None:
            from ucdmeta.value_group import BlockValueGroup

            group = BlockValueGroup(self.file, block)
            self._block_value_groups[block] = group
        return group


class VersionMetadata:
    """The metadata entry of one version, resolved against that version."""

    def __init__(self, version: Version, raw: dict[str, Any]) -> None:
        self.version = version
        self.raw = raw
        self._file_metadatas: list[FileMetadata] | None = None
        self._positions: dict[str, list[Position]] | None = None
        self._file_properties: dict[str, list[Property]] | None = None
        self._file_missing: dict[str, list[MissingDefinition]] = {}
        self._property_missing: dict[str, list[MissingDefinition]] = {}
        self._unihan_properties: list[Property] | None = None

    @property
    def version_name(self) -> str:
        return str(self.raw.get("version_name", self.version.version_name))

    # ── Files ───────────────────────────────────────────────────────────

    @property
    def raw_file_formats(self) -> list[dict[str, Any]]:
        return list(self.raw.get("file_formats") or [])

    @property
    def unihan_file_names(self) -> list[str]:
        return [str(n) for n in self.raw.get("unihan_files") or []]

    @property
    def unihan_property_names(self) -> list[str]:
        return [str(n) for n in self.raw.get("unihan_properties") or []]

    @property
    def file_names(self) -> list[str]:
        """Every file the entry mentions, Unihan files included."""
        return [str(f["file_name"]) for f in self.raw_file_formats] + self.unihan_file_names

    @property
    def actual_files(self) -> list[RawFile]:
        """Mentioned files that the version really has."""
        files: list[RawFile] = []
        for name in self.file_names:
            if self.version.has_file(name):
                f = self.version.find_file(name)
                if f not in files:
                    files.append(f)
        return files

    def find_raw_file_format(self, file: RawFile) -> dict[str, Any]:
        for fmt in self.raw_file_formats:
            if canonical(file_prefix(str(fmt["file_name"]))) == file.key and file.version == self.version:
                return fmt
        raise MetadataNotFoundError(f"metadata for {file.name} is not found")

    def has_file_format(self, file: RawFile) -> bool:
        try:
            self.find_raw_file_format(file)
        except MetadataNotFoundError:
            return False
        return True

    @property
    def file_metadatas(self) -> list[FileMetadata]:
        if self._file_metadatas is None:
            self._file_metadatas = [
                FileMetadata(f, self.find_raw_file_format(f))
                for f in self.actual_files
                if self.has_file_format(f)
            ]
        return self._file_metadatas

    def find_file_metadata(self, file: RawFile) -> FileMetadata:
        for fm in self.file_metadatas:
            if fm.file == file:
                return fm
        raise MetadataNotFoundError(f"metadata for {file.name} is not found")

    def has_file_metadata(self, file: RawFile) -> bool:
        try:
            self.find_file_metadata(file)
        except MetadataNotFoundError:
            return False
        return True

    # ── Properties ──────────────────────────────────────────────────────

    @property
    def property_to_positions(self) -> dict[str, list[Position]]:
        """Positions of every property, keyed by ``Property.key``."""
        if self._positions is None:
            columns: dict[str, dict[tuple[str, int], list[int]]] = {}
            anchors: dict[tuple[str, int], tuple[RawFile, IntRange]] = {}
            for fm in self.file_metadatas:
                for block_no, block in enumerate(fm.blocks):
                    anchors[(fm.file.key, block_no)] = (fm.file, block.range)
                    for col_no, column in enumerate(block.columns):
                        for key in dict.fromkeys(p.key for p in column_items(column)):
                            cols = columns.setdefault(key, {}).setdefault((fm.file.key, block_no), [])
                            cols.append(col_no)
            self._positions = {
                key: [
                    Position(anchors[at][0], at[1], anchors[at][1], tuple(cols))
                    for at, cols in per_block.items()
                ]
                for key, per_block in columns.items()
            }
        return self._positions

    def positions_of(self, prop: Property) -> list[Position]:
        return list(self.property_to_positions.get(prop.key, []))

    @property
    def file_to_properties(self) -> dict[str, list[Property]]:
        """Properties described in each file, keyed by file key."""
        if self._file_properties is None:
            self._file_properties = {fm.file.key: fm.actual_properties for fm in self.file_metadatas}
        return self._file_properties

    def properties_of_file(self, file: RawFile) -> list[Property]:
        return list(self.file_to_properties.get(file.key, []))

    def files_of_property(self, prop: Property) -> list[RawFile]:
        return [
            fm.file for fm in self.file_metadatas
            if any(p == prop for p in self.file_to_properties.get(fm.file.key, []))
        ]

    @property
    def property_names(self) -> list[str]:
        """Every name used in block content, unresolved, unique, in order."""
        names: dict[str, None] = {}
        for fm in self.file_metadatas:
            for raw in fm.raw_blocks:
                for name in raw.names:
                    names.setdefault(name, None)
        return list(names)

    @property
    def unihan_properties(self) -> list[Property]:
        if self._unihan_properties is None:
            from ucdmeta.catalog import UNIHAN_ONLY_KIND, Property

            props: list[Property] = []
            for name in self.unihan_property_names:
                prop = self.version.resolve_property(name)
                if prop is None:
                    prop = Property([name], UNIHAN_ONLY_KIND, version=self.version, unihan=True)
                props.append(prop)
            self._unihan_properties = props
        return self._unihan_properties

    @property
    def actual_properties(self) -> list[Property]:
        found: list[Property] = []
        for props in self.file_to_properties.values():
            found.extend(props)
        found.extend(self.unihan_properties)
        return found

    # ── Missing values ──────────────────────────────────────────────────

    def file_missing_definitions(self, file: RawFile) -> list[MissingDefinition]:
        """``@missing`` declarations of one file.

        The two-cell form names no property; it is attributed to the file's
        property only when the file describes exactly one.
        """
        cached = self._file_missing.get(file.key)
        if cached is not None:
            return cached
        found: list[MissingDefinition] = []
        described = self.properties_of_file(file)
        for directive in file.missing_directives:
            if directive.property_name is not None:
                prop = self.version.resolve_property(directive.property_name)
                if prop is not None:
                    found.append(MissingDefinition(directive.codepoints, prop, directive.value))
            elif len(described) == 1:
                found.append(MissingDefinition(directive.codepoints, described[0], directive.value))
        self._file_missing[file.key] = found
        return found

    def property_missing_definitions(self, prop: Property) -> list[MissingDefinition]:
        """Missing-value declarations for ``prop``.

        Binary properties default to "False" everywhere. Otherwise the files
        describing the property and PropertyValueAliases are searched, and the
        file declaring the most entries for it wins (files may disagree).
        """
        cached = self._property_missing.get(prop.key)
        if cached is not None:
            return cached
        if prop.value_kind is ValueKind.BINARY:
            result = [MissingDefinition(CODEPOINT_RANGE, prop, "False")]
        else:
            search: list[RawFile] = self.files_of_property(prop)
            search.append(self.version.property_value_aliases_file)
            best: list[MissingDefinition] | None = None
            for f in search:
                defs = [d for d in self.file_missing_definitions(f) if d.property == prop]
                if best is None or len(defs) > len(best):
                    best = defs
            result = best or []
        self._property_missing[prop.key] = result
        return result

