"""Draft metadata for a new version, inferred from a known one.

UCD files carry no marker for where one block ends and the next begins. To
describe a new release, every row of each of its files is matched against
the blocks of the same file in a version whose metadata is already
reviewed:

1. Each source block gets a per-column signature. When the file has two or
   more blocks holding free-valued properties (anything but binary,
   enumerated or catalog), the type of a cell says nothing about which block
   it belongs to, so columns are matched by content: the target cell must
   equal the value the source block recorded for the same codepoint.
   Otherwise columns are matched by value kind.
2. A row belongs to the single block whose signature it matches. With zero
   or several matches, a literal property alias in the row decides; if that
   is not unique either the row stays unassigned.
3. Assigned rows are folded into runs per block. A block that recurs in
   several runs keeps only its first run; the validator reports the rest.

The result is a draft for human review, never authoritative.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ucdmeta.catalog import Property
from ucdmeta.errors import CatalogMismatchError, MetadataExistsError, OutputExistsError
from ucdmeta.io_utils import save_json
from ucdmeta.metadata import Ambiguous, EmptyColumn, FileMetadata, Metadata, RawBlock, Single
from ucdmeta.ranges import IntRange
from ucdmeta.value_types import CLOSED_KINDS, FormatKind, MiscKind, ValueKind
from ucdmeta.version import version_weight

if TYPE_CHECKING:
    from ucdmeta.metadata import Column
    from ucdmeta.rawfile import RawFile
    from ucdmeta.version import Version

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class KindMatch:
    """Column matched by value kind; ``property`` supplies aliases and values."""

    kind: FormatKind
    property: Property | None


@dataclass(frozen=True, slots=True)
class ContentMatch:
    """Column matched against the source block's recorded values."""

    property: Property


type ColumnSignature = KindMatch | ContentMatch | None


class BlockGenerator:
    """Infers the blocks of ``target_file`` from ``source_file``'s metadata."""

    def __init__(self, source_file: RawFile, target_file: RawFile, source_metadata: FileMetadata) -> None:
        self.source_file = source_file
        self.target_file = target_file
        self.target_version: Version = target_file.owning_version
        self.source_metadata = source_metadata
        self._signatures: list[list[ColumnSignature]] | None = None
        self._lines_format: list[int | None] | None = None
        self._matched_ranges: list[IntRange | None] | None = None

    # ── Signatures ──────────────────────────────────────────────────────

    @property
    def has_multiple_free_value_blocks(self) -> bool:
        free = 0
        for block in self.source_metadata.blocks:
            props = [c.item for c in block.columns if isinstance(c, Single)]
            if not all(p.value_kind in CLOSED_KINDS for p in props):
                free += 1
        return free > 1

    @property
    def block_signatures(self) -> list[list[ColumnSignature]]:
        if self._signatures is None:
            content_based = self.has_multiple_free_value_blocks
            self._signatures = [
                [self._column_signature(c, content_based) for c in block.columns]
                for block in self.source_metadata.blocks
            ]
        return self._signatures

    @staticmethod
    def _column_signature(column: Column[Property], content_based: bool) -> ColumnSignature:
        match column:
            case Ambiguous():
                # Several properties share the cell; no single rule applies.
                return KindMatch(MiscKind.TEXT, None)
            case EmptyColumn():
                return None
            case Single(item=prop):
                if content_based:
                    return ContentMatch(prop)
                kind = prop.kind.format_kind
                if kind is MiscKind.UNIQUE:
                    kind = MiscKind.TEXT
                return KindMatch(kind, prop)
        return None

    # ── Row matching ────────────────────────────────────────────────────

    def match_format(self, row: int, block: int) -> bool:
        """Does ``row`` of the target file fit every column of source ``block``?"""
        for column, signature in enumerate(self.block_signatures[block]):
            match signature:
                case None:
                    continue
                case KindMatch(kind=MiscKind.TEXT) | KindMatch(property=None):
                    continue
                case KindMatch(kind=kind, property=Property() as prop):
                    if kind in CLOSED_KINDS and self.target_version.has_property(prop):
                        # Values added in the new release only exist on the new property.
                        prop = self.target_version.find_property(prop)
                    if not self.target_file.type_match(row, column, kind, prop):
                        return False
                case ContentMatch():
                    if not self._content_matches(row, column, block):
                        return False
        return True

    def _content_matches(self, row: int, column: int, block: int) -> bool:
        codepoint_column = self.source_metadata.codepoint_column_nos[block]
        cells = list(self.target_file.shaped_lines[row])
        if codepoint_column is None or codepoint_column >= len(cells):
            return False
        # Every codepoint of a range row has the same value; the first one is enough.
        codepoint = cells.pop(codepoint_column).split("..")[0]
        group = self.source_metadata.block_value_group(block)
        if group is None:
            return False
        recorded = group.values_of(codepoint)
        actual = self.target_file.value_at(row, column)
        if isinstance(recorded, str):
            return recorded == actual
        if isinstance(recorded, list):
            return actual in recorded
        return False

    def line_format(self, row: int) -> int | None:
        """Index of the source block ``row`` belongs to, or None."""
        blocks = self.source_metadata.blocks
        matched = [b for b in range(len(blocks)) if self.match_format(row, b)]
        if len(matched) == 1:
            return matched[0]

        by_alias: list[int] = []
        for block_no, block in enumerate(blocks):
            for column in block.columns:
                if isinstance(column, Single) and self.target_file.has_property_alias(row, column.item):
                    if block_no not in by_alias:
                        by_alias.append(block_no)
        if len(by_alias) == 1:
            return by_alias[0]
        return None

    @property
    def lines_format(self) -> list[int | None]:
        if self._lines_format is None:
            self._lines_format = [
                None if self.target_file.is_comment(row) else self.line_format(row)
                for row in range(self.target_file.row_count)
            ]
        return self._lines_format

    @property
    def matched_ranges(self) -> list[IntRange | None]:
        """Per source block, the first run of target rows assigned to it.

        Unassigned rows neither extend nor break a run.
        """
        if self._matched_ranges is None:
            runs: dict[int, list[IntRange]] = {}
            current: int | None = None
            start = prev = 0
            for row, block in enumerate(self.lines_format):
                if block is None:
                    continue
                if block != current:
                    if current is not None:
                        runs.setdefault(current, []).append(IntRange(start, prev))
                    current, start = block, row
                prev = row
            if current is not None:
                runs.setdefault(current, []).append(IntRange(start, prev))
            self._matched_ranges = [
                runs[b][0] if b in runs else None
                for b in range(len(self.source_metadata.blocks))
            ]
        return self._matched_ranges

    def generate_raw_blocks(self) -> list[RawBlock]:
        """Source block content carried over verbatim with the inferred ranges."""
        result: list[RawBlock] = []
        for block_no, r in enumerate(self.matched_ranges):
            if r is not None:
                result.append(RawBlock(self.source_metadata.raw_blocks[block_no].content, r))
        return result


class VersionMetadataRecreator:
    """Runs BlockGenerator over every file the two versions share."""

    def __init__(self, source: Version, target: Version) -> None:
        if source.root is not target.root:
            raise CatalogMismatchError(
                "cannot recreate metadata across versions from different roots"
            )
        self.source = source
        self.target = target
        self._file_formats: list[dict[str, Any]] | None = None

    def generate_file_formats(self) -> list[dict[str, Any]]:
        if self._file_formats is not None:
            return self._file_formats
        source_metadata = self.source.version_metadata
        files = self.source.files
        formats: list[dict[str, Any]] = []
        for i, f in enumerate(files, start=1):
            logger.info("recreating metadata for %s (%d/%d)", f.name, i, len(files))
            if not source_metadata.has_file_metadata(f):
                continue
            if not self.target.has_file(f.name):
                continue
            formats.append({
                "file_name": f.name,
                "blocks": [b.to_dict() for b in self.generate_blocks(f)],
            })
        self._file_formats = formats
        return formats

    def generate_blocks(self, source_file: RawFile) -> list[RawBlock]:
        target_file = self.target.find_file(source_file.name)
        file_metadata = self.source.version_metadata.find_file_metadata(source_file)
        return BlockGenerator(source_file, target_file, file_metadata).generate_raw_blocks()


def generate_version_metadata(source: Version, target: Version) -> dict[str, Any]:
    """Draft metadata entry for ``target`` using ``source`` as the template.

    Raises:
        CatalogMismatchError: the versions come from different roots.
        MetadataExistsError: the metadata already has an entry for ``target``.
    """
    recreator = VersionMetadataRecreator(source, target)
    if target.root.metadata.has_raw_version_metadata(target.version_name):
        raise MetadataExistsError(target.version_name)

    entry: dict[str, Any] = {
        "version_name": target.version_name,
        "file_formats": recreator.generate_file_formats(),
    }
    if target.has_unihan:
        entry["unihan_files"] = [f.name for f in target.unihan_files]
        entry["unihan_properties"] = [p.longest_alias for p in target.unihan_properties]
    return entry


def generate_metadata(
    metadata: Metadata, output_path: Path, source: Version, target: Version,
) -> dict[str, Any]:
    """Write the current document plus a draft entry for ``target`` to a new file.

    Raises:
        OutputExistsError: ``output_path`` already exists.
    """
    if output_path.exists():
        raise OutputExistsError(output_path)
    entries = list(metadata.raw_version_metadatas)
    entries.append(generate_version_metadata(source, target))
    entries.sort(key=lambda e: version_weight(str(e["version_name"])))
    document = {"version_names": metadata.version_names, "version_metadatas": entries}
    save_json(document, output_path)
    return document
