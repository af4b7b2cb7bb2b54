"""Property value kinds and the cell classifier.

A property's kind is two-level: the ValueKind tag declared by
PropertyAliases (catalog, enumerated, binary, string, numeric,
miscellaneous), and for miscellaneous properties a MiscKind configured in
settings. ``FormatKind`` is the resolved leaf used for classification.

Classification answers one question: does this raw cell look like a value
of this kind? It never raises on malformed cells.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from ucdmeta.errors import CodepointParseError, UnknownValueKindError
from ucdmeta.ranges import IntRange

if TYPE_CHECKING:
    from ucdmeta.catalog import Property


class ValueKind(StrEnum):
    CATALOG = "catalog"
    ENUMERATED = "enumerated"
    BINARY = "binary"
    STRING = "string"
    NUMERIC = "numeric"
    MISCELLANEOUS = "miscellaneous"


class MiscKind(StrEnum):
    STRING = "string"
    NUMERIC = "numeric"
    JAMO_SHORT_NAME = "jamo_short_name"
    SCRIPT_EXTENSIONS = "script_extensions"
    TEXT = "text"
    UNIQUE = "unique"


type FormatKind = ValueKind | MiscKind

# Kinds whose legal values are a closed, alias-bearing set.
CLOSED_KINDS: frozenset[ValueKind] = frozenset(
    {ValueKind.BINARY, ValueKind.ENUMERATED, ValueKind.CATALOG}
)

RE_SINGLE_CODEPOINT = re.compile(r"^[0-9A-Fa-f]{4,6}$")
RE_RANGE_CODEPOINT = re.compile(r"^([0-9A-Fa-f]{4,6})\.\.([0-9A-Fa-f]{4,6})$")
# Empty string included: some string properties map a codepoint to "".
RE_STRING = re.compile(r"^(?:[0-9A-Fa-f]{4,6}(?:\s+[0-9A-Fa-f]{4,6})*)?$")
RE_NUMERIC = re.compile(r"^-?\d+$|^-?\d+\.\d+$|^-?\d+/\d+$")
BINARY_LITERALS: frozenset[str] = frozenset({"Y", "Yes", "N", "No"})


def parse_value_kind(text: str) -> ValueKind:
    try:
        return ValueKind(text.strip().lower())
    except ValueError:
        raise UnknownValueKindError(text) from None


def parse_misc_kind(text: str) -> MiscKind:
    try:
        return MiscKind(text.strip().lower())
    except ValueError:
        raise UnknownValueKindError(text) from None


@dataclass(frozen=True, slots=True)
class PropertyKind:
    """Declared kind of a property plus its miscellaneous refinement."""

    value_kind: ValueKind
    misc: MiscKind | None = None
    unique_threshold: float | None = None

    @property
    def format_kind(self) -> FormatKind:
        if self.value_kind is ValueKind.MISCELLANEOUS and self.misc is not None:
            return self.misc
        return self.value_kind

    @property
    def is_closed(self) -> bool:
        return self.value_kind in CLOSED_KINDS

    def describe(self) -> str:
        if self.value_kind is ValueKind.MISCELLANEOUS:
            return str(self.misc) if self.misc is not None else "miscellaneous"
        return str(self.value_kind)


# ---------------------------------------------------------------------------
# Cell predicates
# ---------------------------------------------------------------------------

def is_single_codepoint(cell: str) -> bool:
    return RE_SINGLE_CODEPOINT.match(cell) is not None


def is_range_codepoint(cell: str) -> bool:
    return RE_RANGE_CODEPOINT.match(cell) is not None


def is_codepoint(cell: str) -> bool:
    return is_single_codepoint(cell) or is_range_codepoint(cell)


def parse_codepoint(cell: str) -> IntRange:
    """Parse ``XXXX`` or ``XXXX..YYYY`` (hex) into an inclusive range."""
    text = cell.strip()
    m = RE_RANGE_CODEPOINT.match(text)
    if m:
        first, last = int(m.group(1), 16), int(m.group(2), 16)
        if first > last:
            raise CodepointParseError(f"{cell!r} has start greater than end")
        return IntRange(first, last)
    if RE_SINGLE_CODEPOINT.match(text):
        return IntRange.single(int(text, 16))
    raise CodepointParseError(f"{cell!r} is not a codepoint")


def is_numeric(cell: str) -> bool:
    return RE_NUMERIC.match(cell) is not None


def is_string(cell: str) -> bool:
    return RE_STRING.match(cell) is not None


def is_binary(cell: str, prop: Property) -> bool:
    """Y/Yes/N/No, or the property's own name written as the value."""
    return cell in BINARY_LITERALS or prop.has_alias(cell)


def is_enumerated(cell: str, prop: Property) -> bool:
    return prop.has_property_value(cell)


def is_jamo_short_name(cell: str, prop: Property) -> bool:
    # An explicit empty value appears in some releases.
    return cell == "" or prop.has_property_value(cell)


def is_script_extensions(cell: str, script: Property | None) -> bool:
    if script is None:
        return False
    tokens = cell.split()
    return bool(tokens) and all(script.has_property_value(token) for token in tokens)


def matches_kind(
    cell: str | None,
    kind: FormatKind,
    prop: Property,
    *,
    script: Property | None = None,
) -> bool:
    """Check whether ``cell`` is a plausible value of ``kind`` for ``prop``.

    Args:
        cell: Raw cell text; None (column absent on that row) is treated as "".
        kind: Resolved format kind.
        prop: Property owning the column; supplies aliases and values.
        script: The Script property, needed only for Script_Extensions.

    Returns:
        True on a match. Unique never fails by content; its column is judged
        by ``is_unique_column`` instead. An unrefined miscellaneous kind
        never matches.
    """
    value = cell if cell is not None else ""
    match kind:
        case ValueKind.CATALOG | ValueKind.ENUMERATED:
            return is_enumerated(value, prop)
        case ValueKind.BINARY:
            return is_binary(value, prop)
        case ValueKind.STRING | MiscKind.STRING:
            return is_string(value)
        case ValueKind.NUMERIC | MiscKind.NUMERIC:
            return is_numeric(value)
        case MiscKind.JAMO_SHORT_NAME:
            return is_jamo_short_name(value, prop)
        case MiscKind.SCRIPT_EXTENSIONS:
            return is_script_extensions(value, script)
        case MiscKind.TEXT | MiscKind.UNIQUE:
            return True
        case ValueKind.MISCELLANEOUS:
            return False


def uniqueness_ratio(distinct_values: int, data_rows: int) -> float:
    if data_rows <= 0:
        return 0.0
    return distinct_values / data_rows


def is_unique_column(distinct_values: int, data_rows: int, threshold: float | None) -> bool:
    """A column is unique when distinct/rows exceeds the configured threshold.

    With no threshold configured the column is never unique.
    """
    if threshold is None or data_rows <= 0:
        return False
    return uniqueness_ratio(distinct_values, data_rows) > threshold
