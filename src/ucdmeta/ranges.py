"""Inclusive integer ranges and the set algebra over them.

Ranges are the unit of positional reasoning everywhere: codepoints in a
value group, rows in a file, block extents in metadata. A "range set" is any
iterable of IntRange; every operation here treats it as a set (order and
duplicates are not observable) and returns a minimal, disjoint, sorted list.

All operations work on interval endpoints, never on expanded integers, so
whole-codespace ranges cost the same as single codepoints.
"""
from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from ucdmeta.errors import RangeParseError

MIN_CODEPOINT = 0x0000
MAX_CODEPOINT = 0x10FFFF

_RANGE_STR_RE = re.compile(r"^(\d+)\.\.(\d+)$")


@dataclass(frozen=True, slots=True, order=True)
class IntRange:
    """Inclusive interval [first, last] of non-negative integers.

    Invariant (enforced in __post_init__): first <= last.
    """

    first: int
    last: int

    def __post_init__(self) -> None:
        if self.first > self.last:
            raise ValueError(
                f"IntRange.first ({self.first}) must be <= last ({self.last})"
            )

    @classmethod
    def single(cls, value: int) -> IntRange:
        return cls(value, value)

    @classmethod
    def parse(cls, text: str) -> IntRange:
        """Parse the persisted ``start..end`` form (decimal integers)."""
        m = _RANGE_STR_RE.match(text.strip())
        if not m:
            raise RangeParseError(f"{text!r} is not a range of the form start..end")
        first, last = int(m.group(1)), int(m.group(2))
        if first > last:
            raise RangeParseError(f"{text!r} has start greater than end")
        return cls(first, last)

    def to_str(self) -> str:
        return f"{self.first}..{self.last}"

    def __str__(self) -> str:
        return self.to_str()

    def __contains__(self, value: object) -> bool:
        return isinstance(value, int) and self.first <= value <= self.last

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.first, self.last + 1))

    def __len__(self) -> int:
        return self.last - self.first + 1

    @property
    def size(self) -> int:
        return self.last - self.first + 1

    def overlaps(self, other: IntRange) -> bool:
        return self.first <= other.last and other.first <= self.last

    def touches(self, other: IntRange) -> bool:
        """True when the two ranges overlap or are directly adjacent."""
        return self.first <= other.last + 1 and other.first <= self.last + 1


CODEPOINT_RANGE = IntRange(MIN_CODEPOINT, MAX_CODEPOINT)

# A range set as returned by this module: disjoint, sorted, non-adjacent.
type RangeSet = list[IntRange]


def merge(ranges: Iterable[IntRange]) -> RangeSet:
    """Coalesce touching or overlapping ranges into a minimal sorted set."""
    ordered = sorted(ranges)
    result: RangeSet = []
    for r in ordered:
        if result and r.first <= result[-1].last + 1:
            if r.last > result[-1].last:
                result[-1] = IntRange(result[-1].first, r.last)
        else:
            result.append(r)
    return result


def from_sorted_ints(values: Iterable[int]) -> RangeSet:
    """Group integers into maximal runs of consecutive values.

    Input is expected sorted; unsorted or duplicated input is tolerated.
    """
    result: RangeSet = []
    start: int | None = None
    prev: int | None = None
    for value in sorted(set(values)):
        if start is None or prev is None:
            start = value
        elif value != prev + 1:
            result.append(IntRange(start, prev))
            start = value
        prev = value
    if start is not None and prev is not None:
        result.append(IntRange(start, prev))
    return result


def difference(a: Iterable[IntRange], b: Iterable[IntRange]) -> RangeSet:
    """Elements of ``a`` that are not in ``b``."""
    left = merge(a)
    right = merge(b)
    result: RangeSet = []
    j = 0
    for r in left:
        cur_first = r.first
        while j < len(right) and right[j].last < cur_first:
            j += 1
        k = j
        while k < len(right) and right[k].first <= r.last:
            cut = right[k]
            if cut.first > cur_first:
                result.append(IntRange(cur_first, cut.first - 1))
            cur_first = max(cur_first, cut.last + 1)
            if cur_first > r.last:
                break
            k += 1
        if cur_first <= r.last:
            result.append(IntRange(cur_first, r.last))
    return result


def intersect(a: Iterable[IntRange], b: Iterable[IntRange]) -> RangeSet:
    """Elements present in both ``a`` and ``b``."""
    left = merge(a)
    right = merge(b)
    result: RangeSet = []
    i = j = 0
    while i < len(left) and j < len(right):
        lo = max(left[i].first, right[j].first)
        hi = min(left[i].last, right[j].last)
        if lo <= hi:
            result.append(IntRange(lo, hi))
        if left[i].last < right[j].last:
            i += 1
        else:
            j += 1
    return result


def intersect_many(*range_sets: Iterable[IntRange]) -> RangeSet:
    """Elements common to every input range set; empty when called with none."""
    if not range_sets:
        return []
    result = merge(range_sets[0])
    for other in range_sets[1:]:
        result = intersect(result, other)
        if not result:
            break
    return result


def union(*range_sets: Iterable[IntRange]) -> RangeSet:
    collected: list[IntRange] = []
    for rs in range_sets:
        collected.extend(rs)
    return merge(collected)


def trim_outside(r: IntRange, lo: int, hi: int) -> IntRange | None:
    """Clip ``r`` to [lo, hi]; None when the two are disjoint."""
    if r.last < lo or hi < r.first:
        return None
    return IntRange(max(r.first, lo), min(r.last, hi))


def trim_inside(r: IntRange, lo: int, hi: int) -> RangeSet:
    """Remove [lo, hi] from ``r``, leaving zero, one or two pieces.

    The bounds themselves are removed, so
    ``trim_inside(trim_outside(r, lo, hi), lo, hi)`` is always empty.
    """
    inner = trim_outside(IntRange(lo, hi), r.first, r.last) if lo <= hi else None
    if inner is None:
        return [r]
    result: RangeSet = []
    if r.first < inner.first:
        result.append(IntRange(r.first, inner.first - 1))
    if inner.last < r.last:
        result.append(IntRange(inner.last + 1, r.last))
    return result


def range_min(ranges: Iterable[IntRange]) -> int | None:
    """Smallest integer covered by any range, None for an empty set."""
    firsts = [r.first for r in ranges]
    return min(firsts) if firsts else None


def range_max(ranges: Iterable[IntRange]) -> int | None:
    """Largest integer covered by any range, None for an empty set."""
    lasts = [r.last for r in ranges]
    return max(lasts) if lasts else None


def total_size(ranges: Iterable[IntRange]) -> int:
    return sum(r.size for r in merge(ranges))


def format_row_range(r: IntRange) -> str:
    """Human form used in reports: ``a`` for a single row, ``a to b`` otherwise."""
    if r.size == 1:
        return str(r.first)
    return f"{r.first} to {r.last}"
