"""Line-oriented view of one UCD data file.

Rows are 0-based line indexes into the raw file and are never renumbered:
comment-only and blank lines keep their index, they just shape to no cells.
Every derived view is computed on first use and cached for the lifetime of
the object.
"""
from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ucdmeta import ranges
from ucdmeta.aliases import canonical
from ucdmeta.errors import CodepointParseError, FileNotFoundInVersionError, PropertyNotFoundError
from ucdmeta.io_utils import decode_lines
from ucdmeta.ranges import IntRange, RangeSet
from ucdmeta.settings import FileFormat
from ucdmeta.value_types import (
    FormatKind,
    MiscKind,
    ValueKind,
    is_unique_column,
    matches_kind,
    parse_codepoint,
)

if TYPE_CHECKING:
    from ucdmeta.catalog import Property
    from ucdmeta.version import Version

_COMMENT_RE = re.compile(r"#.*")
_BLANK_RE = re.compile(r"^\s*$")
_WHITESPACE_RE = re.compile(r"\s")
_KIND_BANNER_RE = re.compile(r"#\s*={10,}\n#\s(.+)\sProperties\n#\s*={10,}")

DEFAULT_FORMAT = FileFormat(trim=r"\s", split=";")


@dataclass(frozen=True, slots=True)
class MissingDirective:
    """One ``@missing`` line: a default value over a codepoint range.

    ``property_name`` is None for the two-cell form, where the property is
    implied by the file.
    """

    codepoints: IntRange
    property_name: str | None
    value: str


class RawFile:
    """One UCD file inside a version, identified by its name prefix."""

    def __init__(
        self,
        name: str,
        loader: Callable[[], bytes],
        file_format: FileFormat = DEFAULT_FORMAT,
        *,
        version: Version | None = None,
    ) -> None:
        self.name = name
        self.file_format = file_format
        self.version = version
        self._loader = loader
        self._split_re = re.compile(file_format.split)
        self._trim_re = re.compile(file_format.trim) if file_format.trim else None
        self._lines: list[str] | None = None
        self._lines_without_comment: list[str] | None = None
        self._shaped_lines: list[list[str]] | None = None
        self._contents: list[set[str]] | None = None
        self._comment_ranges: RangeSet | None = None
        self._missing_directives: list[MissingDirective] | None = None

    @classmethod
    def from_text(
        cls,
        name: str,
        text: str,
        file_format: FileFormat = DEFAULT_FORMAT,
        *,
        version: Version | None = None,
    ) -> RawFile:
        data = text.encode("utf-8")
        return cls(name, lambda: data, file_format, version=version)

    # ── Identity ────────────────────────────────────────────────────────

    @property
    def key(self) -> str:
        return canonical(self.name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RawFile):
            return NotImplemented
        return self.version == other.version and self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"

    @property
    def owning_version(self) -> Version:
        """The version the file was listed in; files built from bare text have none."""
        if self.version is None:
            raise FileNotFoundInVersionError(f"{self.name} does not belong to a version")
        return self.version

    @property
    def is_meta(self) -> bool:
        return False

    @property
    def is_unihan(self) -> bool:
        return False

    @property
    def is_derived(self) -> bool:
        return self.name.startswith("Derived")

    # ── Line views ──────────────────────────────────────────────────────

    @property
    def lines(self) -> list[str]:
        if self._lines is None:
            self._lines = decode_lines(self._loader())
        return self._lines

    @property
    def row_count(self) -> int:
        return len(self.lines)

    @property
    def lines_without_comment(self) -> list[str]:
        """Lines with ``#...`` removed; comment-only lines become ""."""
        if self._lines_without_comment is None:
            self._lines_without_comment = [_COMMENT_RE.sub("", line) for line in self.lines]
        return self._lines_without_comment

    @property
    def netto_lines(self) -> list[str]:
        """Comment-free lines that still carry data."""
        return [line for line in self.lines_without_comment if not _BLANK_RE.match(line)]

    @property
    def shaped_lines(self) -> list[list[str]]:
        """Comment-free lines split into cells.

        Trailing empty cells are kept, so ``0041;Lu;`` has three cells.
        Comment rows shape to an empty list.
        """
        if self._shaped_lines is None:
            self._shaped_lines = [self._shape(line) for line in self.lines_without_comment]
        return self._shaped_lines

    def _shape(self, line: str) -> list[str]:
        if _BLANK_RE.match(line):
            return []
        cells = self._split_re.split(line)
        if self.file_format.trims_whitespace:
            return [cell.strip() for cell in cells]
        if self._trim_re is not None:
            return [self._trim_re.sub("", cell) for cell in cells]
        return cells

    @property
    def netto_shaped_lines(self) -> list[list[str]]:
        return [cells for cells in self.shaped_lines if cells]

    def value_at(self, row: int, column: int) -> str | None:
        if not 0 <= row < self.row_count:
            return None
        cells = self.shaped_lines[row]
        if not 0 <= column < len(cells):
            return None
        return cells[column]

    # ── Columns ─────────────────────────────────────────────────────────

    @property
    def contents(self) -> list[set[str]]:
        """Per column, the set of canonical values seen anywhere in the file.

        A last column that never holds a value (only whitespace or comments
        after the final delimiter) is not counted.
        """
        if self._contents is None:
            contents: list[set[str]] = []
            for cells in self.shaped_lines:
                for i, cell in enumerate(cells):
                    while len(contents) <= i:
                        contents.append(set())
                    contents[i].add(canonical(cell))
            if contents and contents[-1] <= {""}:
                contents.pop()
            self._contents = contents
        return self._contents

    @property
    def values(self) -> set[str]:
        result: set[str] = set()
        for column in self.contents:
            result |= column
        return result

    def distinct_count(self, column: int) -> int:
        return len(self.contents[column]) if 0 <= column < len(self.contents) else 0

    def is_unique_column(self, column: int, threshold: float | None) -> bool:
        return is_unique_column(self.distinct_count(column), len(self.netto_lines), threshold)

    def column_count(self, row: int) -> int:
        """Cells on ``row``, not counting one trailing empty cell."""
        if not 0 <= row < self.row_count:
            return 0
        cells = self.shaped_lines[row]
        if cells and cells[-1] == "":
            return len(cells) - 1
        return len(cells)

    def max_column_count(self, rows: IntRange) -> int:
        return max((self.column_count(row) for row in rows), default=0)

    # ── Comment and data ranges ─────────────────────────────────────────

    def is_comment(self, row: int) -> bool:
        """Blank rows count as comments; out-of-range rows do not."""
        if not 0 <= row < self.row_count:
            return False
        return _BLANK_RE.match(self.lines_without_comment[row]) is not None

    @property
    def comment_ranges(self) -> RangeSet:
        if self._comment_ranges is None:
            self._comment_ranges = ranges.from_sorted_ints(
                row for row in range(self.row_count) if self.is_comment(row)
            )
        return self._comment_ranges

    @property
    def information_containing_ranges(self) -> RangeSet:
        """Rows that hold data: the whole file minus comment rows."""
        if self.row_count == 0:
            return []
        return ranges.difference([IntRange(0, self.row_count - 1)], self.comment_ranges)

    # ── Property-aware matching ─────────────────────────────────────────

    def has_property_alias(self, row: int, prop: Property) -> bool:
        if not 0 <= row < self.row_count:
            return False
        return any(prop.has_alias(cell) for cell in self.shaped_lines[row])

    def property_alias_ranges(self, prop: Property) -> RangeSet:
        return ranges.from_sorted_ints(
            row for row in range(self.row_count) if self.has_property_alias(row, prop)
        )

    def _script_property(self, prop: Property) -> Property | None:
        version = self.version if self.version is not None else prop.version
        if version is None:
            return None
        try:
            return version.find_property("Script")
        except PropertyNotFoundError:
            return None

    def type_match(self, row: int, column: int, kind: FormatKind, prop: Property) -> bool:
        """Does the cell at (row, column) look like a ``kind`` value of ``prop``?

        A missing cell is read as "": a trailing column can be absent on a
        row simply because that row has no value there.
        """
        script = self._script_property(prop) if kind is MiscKind.SCRIPT_EXTENSIONS else None
        return matches_kind(self.value_at(row, column), kind, prop, script=script)

    def property_value_type_match(self, row: int, column: int, prop: Property) -> bool:
        return self.type_match(row, column, prop.kind.format_kind, prop)

    def property_value_type_match_ranges(self, column: int, prop: Property) -> RangeSet:
        """Rows whose ``column`` cell matches ``prop``'s declared kind.

        Unique properties are judged per column: every data row if the
        column is unique enough, none otherwise.
        """
        kind = prop.kind
        if kind.value_kind is ValueKind.MISCELLANEOUS and kind.misc is MiscKind.UNIQUE:
            if self.is_unique_column(column, kind.unique_threshold):
                return self.information_containing_ranges
            return []
        return ranges.from_sorted_ints(
            row for row in range(self.row_count)
            if self.property_value_type_match(row, column, prop)
        )

    def verbose_property_value_type_match_ranges(self, column: int, prop: Property) -> RangeSet:
        """Matching rows plus the comment rows lying between the first and last match."""
        matched = self.property_value_type_match_ranges(column, prop)
        lo = ranges.range_min(matched)
        hi = ranges.range_max(matched)
        if lo is None or hi is None:
            return matched
        clipped = [
            r for r in (ranges.trim_outside(c, lo, hi) for c in self.comment_ranges)
            if r is not None
        ]
        return ranges.union(clipped, matched)

    # ── @missing directives ─────────────────────────────────────────────

    @property
    def missing_value_lines(self) -> list[str]:
        return [line for line in self.lines if "@missing" in line]

    @property
    def shaped_missing_value_lines(self) -> list[list[str]]:
        """``@missing`` lines with all whitespace removed, split on ``;``."""
        return [_WHITESPACE_RE.sub("", line).split(";") for line in self.missing_value_lines]

    @property
    def missing_directives(self) -> list[MissingDirective]:
        if self._missing_directives is None:
            self._missing_directives = []
            for cells in self.shaped_missing_value_lines:
                directive = _parse_missing(cells)
                if directive is not None:
                    self._missing_directives.append(directive)
        return self._missing_directives


def _parse_missing(cells: list[str]) -> MissingDirective | None:
    head = cells[0]
    marker = head.find("@missing:")
    codepoint_text = head[marker + len("@missing:"):] if marker >= 0 else head
    try:
        codepoints = parse_codepoint(codepoint_text)
    except CodepointParseError:
        return None
    if len(cells) == 3:
        return MissingDirective(codepoints, cells[1], cells[2])
    if len(cells) == 2:
        return MissingDirective(codepoints, None, cells[1])
    return None


class PropertyAliasesFile(RawFile):
    """PropertyAliases.txt: property names grouped under kind banners."""

    @property
    def is_meta(self) -> bool:
        return True

    def kind_sections(self) -> dict[str, list[list[str]]]:
        """Map each banner's kind label (e.g. "Binary") to its alias rows.

        A banner is::

            # ================================================
            # Binary Properties
            # ================================================
        """
        text = "\n".join(self.lines)
        banners = list(_KIND_BANNER_RE.finditer(text))
        sections: dict[str, list[list[str]]] = {}
        for i, m in enumerate(banners):
            end_row = text.count("\n", 0, m.end())
            next_row = (
                text.count("\n", 0, banners[i + 1].start())
                if i + 1 < len(banners) else self.row_count
            )
            rows = sections.setdefault(m.group(1), [])
            for row in range(end_row + 1, next_row):
                cells = self.shaped_lines[row]
                if cells:
                    rows.append(cells)
        return sections


class PropertyValueAliasesFile(RawFile):
    """PropertyValueAliases.txt: ``property; alias; alias...`` rows."""

    @property
    def is_meta(self) -> bool:
        return True

    @property
    def property_value_aliases(self) -> set[str]:
        result: set[str] = set()
        for column in self.contents[1:]:
            result |= column
        return result


class UnihanFile(RawFile):
    """One Unihan data file: ``U+XXXX<TAB>kProperty<TAB>value...``."""

    @property
    def is_unihan(self) -> bool:
        return True
