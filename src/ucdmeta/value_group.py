"""Codepoint-to-value indexes rebuilt by replaying file blocks.

Values are stored against codepoint ranges exactly as the file lists them,
so a ``0000..10FFFF`` row costs one entry. Lookups go through a sorted
segment index that is rebuilt after every batch of additions.

A codepoint with one value maps to that string; with two or more it maps to
the list of values in the order they were added.
"""
from __future__ import annotations

import bisect
from collections.abc import Sequence
from typing import TYPE_CHECKING

from ucdmeta import ranges
from ucdmeta.aliases import canonical
from ucdmeta.errors import CodepointParseError
from ucdmeta.ranges import IntRange, RangeSet
from ucdmeta.value_types import ValueKind, is_single_codepoint, parse_codepoint

if TYPE_CHECKING:
    from ucdmeta.catalog import Property
    from ucdmeta.rawfile import RawFile

type Values = str | list[str]
type ValuesKey = str | tuple[str, ...]

_COMPOSITION_EXCLUSION_SHAPE = [["codepoint", "compositionexclusion"]]


def _strip_plus(text: str) -> str:
    return text.replace("U+", "")


class ValueGroup:
    """Codepoint ranges and the values recorded for them."""

    def __init__(self) -> None:
        self._entries: list[tuple[IntRange, str]] = []
        self._starts: list[int] | None = None
        self._segments: list[tuple[IntRange, tuple[str, ...]]] = []

    # ── Building ────────────────────────────────────────────────────────

    def add_value(self, codepoint: str, value: str) -> None:
        """Record ``value`` for a ``XXXX`` or ``XXXX..YYYY`` cell.

        Cells that are not codepoints are ignored.
        """
        try:
            r = parse_codepoint(_strip_plus(codepoint))
        except CodepointParseError:
            return
        self._entries.append((r, _strip_plus(value)))
        self._starts = None

    def add_values(self, codepoint: str, values: str | Sequence[str]) -> None:
        if isinstance(values, str):
            self.add_value(codepoint, values)
            return
        for value in values:
            self.add_value(codepoint, value)

    def _index(self) -> list[int]:
        if self._starts is not None:
            return self._starts
        bounds = sorted({b for r, _ in self._entries for b in (r.first, r.last + 1)})
        buckets: list[list[str]] = [[] for _ in bounds]
        for r, value in self._entries:
            lo = bisect.bisect_left(bounds, r.first)
            hi = bisect.bisect_left(bounds, r.last + 1)
            for i in range(lo, hi):
                buckets[i].append(value)

        segments: list[tuple[IntRange, tuple[str, ...]]] = []
        for i, bucket in enumerate(buckets):
            if not bucket:
                continue
            seg = IntRange(bounds[i], bounds[i + 1] - 1)
            values = tuple(bucket)
            if segments and segments[-1][1] == values and segments[-1][0].last + 1 == seg.first:
                segments[-1] = (IntRange(segments[-1][0].first, seg.last), values)
            else:
                segments.append((seg, values))
        self._segments = segments
        self._starts = [seg.first for seg, _ in segments]
        return self._starts

    # ── Lookup ──────────────────────────────────────────────────────────

    def values_of(self, codepoint: int | str) -> Values | None:
        """Values recorded at ``codepoint`` (an int or a hex string)."""
        if isinstance(codepoint, str):
            text = _strip_plus(codepoint).strip()
            if not is_single_codepoint(text):
                return None
            codepoint = int(text, 16)
        starts = self._index()
        i = bisect.bisect_right(starts, codepoint) - 1
        if i < 0:
            return None
        seg, values = self._segments[i]
        if codepoint not in seg:
            return None
        return values[0] if len(values) == 1 else list(values)

    @property
    def segments(self) -> list[tuple[IntRange, Values]]:
        """Maximal runs of codepoints sharing the same recorded values."""
        self._index()
        return [(seg, v[0] if len(v) == 1 else list(v)) for seg, v in self._segments]

    @property
    def codepoints(self) -> RangeSet:
        self._index()
        return ranges.merge(seg for seg, _ in self._segments)

    @property
    def values_to_codepoints(self) -> dict[ValuesKey, RangeSet]:
        """Group codepoints by their recorded value (tuple for multi-valued)."""
        self._index()
        grouped: dict[ValuesKey, list[IntRange]] = {}
        for seg, values in self._segments:
            key: ValuesKey = values[0] if len(values) == 1 else values
            grouped.setdefault(key, []).append(seg)
        return {key: ranges.merge(segs) for key, segs in grouped.items()}


class PropertyValueGroupBase(ValueGroup):
    """A value group whose values belong to known properties."""

    def __init__(self, properties: Sequence[Property] = ()) -> None:
        super().__init__()
        self.properties: list[Property] = list(properties)

    def has_property(self, prop: Property) -> bool:
        return prop in self.properties

    def string_codepoints_with_value(self, value: str) -> RangeSet:
        """Codepoints whose recorded values include ``value`` verbatim."""
        found: list[IntRange] = []
        for key, codepoints in self.values_to_codepoints.items():
            if (key == value) if isinstance(key, str) else (value in key):
                found.extend(codepoints)
        return ranges.merge(found)

    def codepoints_with_value(self, value: str) -> RangeSet:
        """Codepoints having ``value`` under any alias of the matching property value."""
        property_values = [
            prop.find_property_value(value)
            for prop in self.properties
            if prop.has_property_value(value)
        ]
        if not property_values:
            return self.string_codepoints_with_value(value)
        return ranges.union(*(
            self.string_codepoints_with_value(alias)
            for pv in property_values
            for alias in pv.raw_aliases
        ))


class PropertyValueGroup(PropertyValueGroupBase):
    """Values of one or more properties read from one block of a file.

    Rows are replayed in one of three ways: the CompositionExclusions shape
    (a lone codepoint column) and single binary properties record "True" for
    every listed codepoint; everything else records the property columns,
    skipping rows where any of them is absent.
    """

    def __init__(self, file: RawFile, properties: Property | Sequence[Property], block: int) -> None:
        super().__init__([properties] if not isinstance(properties, Sequence) else properties)
        self.file = file
        self.block = block
        file_metadata = file.owning_version.version_metadata.find_file_metadata(file)
        block_range = file_metadata.blocks[block].range
        raw_content = file_metadata.raw_blocks[block].content
        codepoint_column = file_metadata.codepoint_column_nos[block]

        value_columns: set[int] = set()
        for prop in self.properties:
            value_columns.update(file_metadata.property_column_nos(prop)[block])
        columns = sorted(value_columns)

        rows = [file.shaped_lines[row] for row in block_range if row < file.row_count]
        shape = [_canonical_cell(raw_content[c]) for c in columns if c < len(raw_content)]
        if shape == _COMPOSITION_EXCLUSION_SHAPE:
            self._add_listed(rows, None)
        elif len(self.properties) == 1 and self.properties[0].value_kind is ValueKind.BINARY:
            self._add_listed(rows, codepoint_column)
        else:
            self._add_columns(rows, codepoint_column, columns)

    def _add_listed(self, rows: list[list[str]], codepoint_column: int | None) -> None:
        for cells in rows:
            if codepoint_column is None:
                if len(cells) == 1:
                    self.add_value(cells[0], "True")
            elif codepoint_column < len(cells):
                self.add_value(cells[codepoint_column], "True")

    def _add_columns(
        self, rows: list[list[str]], codepoint_column: int | None, columns: list[int],
    ) -> None:
        if codepoint_column is None:
            return
        for cells in rows:
            if codepoint_column >= len(cells) or any(c >= len(cells) for c in columns):
                continue
            self.add_values(cells[codepoint_column], [cells[c] for c in columns])


class UnihanValueGroup(PropertyValueGroupBase):
    """Values of one Unihan property: codepoint in cell 0, values from cell 2."""

    def __init__(self, prop: Property, shaped_lines: Sequence[Sequence[str]]) -> None:
        super().__init__([prop])
        for cells in shaped_lines:
            if cells:
                self.add_values(cells[0], list(cells[2:]))


class BlockValueGroup(ValueGroup):
    """Every non-codepoint cell of one block, keyed by the row's codepoint."""

    def __init__(self, file: RawFile, block: int) -> None:
        super().__init__()
        self.file = file
        self.block = block
        file_metadata = file.owning_version.version_metadata.find_file_metadata(file)
        block_range = file_metadata.blocks[block].range
        codepoint_column = file_metadata.codepoint_column_nos[block]
        if codepoint_column is None:
            return
        for row in block_range:
            if row >= file.row_count:
                break
            cells = list(file.shaped_lines[row])
            if codepoint_column >= len(cells):
                continue
            codepoint = cells.pop(codepoint_column)
            self.add_values(codepoint, cells)


def _canonical_cell(cell: object) -> object:
    if isinstance(cell, str):
        return canonical(cell)
    if isinstance(cell, (list, tuple)):
        return [canonical(c) if isinstance(c, str) else c for c in cell]
    return cell
