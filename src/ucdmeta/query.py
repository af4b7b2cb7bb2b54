"""Read API over one or several versions.

``VersionManager`` answers questions about one version through the
property index; ``UnicodeManager`` compares versions. Codepoints may be
given as a one-character string, a hex string or an int.
"""
from __future__ import annotations

import bisect
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ucdmeta import ranges
from ucdmeta.errors import CodepointParseError, PropertyNotFoundError
from ucdmeta.ranges import IntRange, RangeSet
from ucdmeta.value_types import is_single_codepoint

if TYPE_CHECKING:
    from ucdmeta.catalog import Property
    from ucdmeta.metadata import MissingDefinition
    from ucdmeta.property_index import PropertyIndex, VersionPropertyIndex
    from ucdmeta.ucd import UcdData
    from ucdmeta.validator import ValidationReport
    from ucdmeta.value_group import PropertyValueGroupBase, Values
    from ucdmeta.version import Version

logger = logging.getLogger(__name__)

CODEPOINT_PLACEHOLDER = "<codepoint>"
SCRIPT_PLACEHOLDER = "<script>"


def format_codepoint(cp: int) -> str:
    return f"U+{cp:04X}"


def format_range(r: IntRange) -> str:
    if r.first == r.last:
        return format_codepoint(r.first)
    return f"U+{r.first:04X}..{r.last:04X}"


def to_codepoint(char_or_codepoint: str | int) -> int:
    """``"A"``, ``"0041"``, ``"U+0041"`` and ``0x41`` all give 0x41."""
    if isinstance(char_or_codepoint, int):
        return char_or_codepoint
    if len(char_or_codepoint) == 1:
        return ord(char_or_codepoint)
    text = char_or_codepoint.strip().removeprefix("U+").removeprefix("u+")
    if not is_single_codepoint(text):
        raise CodepointParseError(f"{char_or_codepoint!r} is neither a character nor a codepoint")
    return int(text, 16)


def _as_list(values: Values | None) -> list[str]:
    if values is None:
        return []
    return [values] if isinstance(values, str) else list(values)


# ---------------------------------------------------------------------------
# One property
# ---------------------------------------------------------------------------

class PropertyManager:
    """Values and defaults of one property in one version."""

    def __init__(self, prop: Property, version_index: VersionPropertyIndex) -> None:
        self.property = prop
        self.version_index = version_index
        self.version: Version = version_index.version
        self._script: PropertyManager | None = None

    @property
    def value_group(self) -> PropertyValueGroupBase:
        return self.version_index.value_group(self.property)

    @property
    def missing_definitions(self) -> list[MissingDefinition]:
        return self.version.version_metadata.property_missing_definitions(self.property)

    def values_of(self, codepoint: int | str) -> Values | None:
        """Recorded value(s) at ``codepoint``, else its missing value."""
        cp = to_codepoint(codepoint)
        value = self.value_group.values_of(cp)
        if not value:
            return self.missing_value(cp)
        return value

    def raw_missing_value(self, codepoint: int | str) -> str | None:
        """The declared default at ``codepoint``, placeholders untouched.

        Later declarations override earlier ones.
        """
        cp = to_codepoint(codepoint)
        for definition in reversed(self.missing_definitions):
            if cp in definition.codepoints:
                return definition.value
        return None

    def missing_value(self, codepoint: int | str) -> str | None:
        cp = to_codepoint(codepoint)
        raw = self.raw_missing_value(cp)
        if raw == CODEPOINT_PLACEHOLDER:
            return f"{cp:X}"
        if raw == SCRIPT_PLACEHOLDER:
            script = self._script_manager()
            if script is None:
                return raw
            # One level only: Script's own default is taken as declared.
            value = script.value_group.values_of(cp)
            if value:
                return value if isinstance(value, str) else value[0]
            return script.raw_missing_value(cp)
        return raw

    def _script_manager(self) -> PropertyManager | None:
        if self._script is None:
            prop = self.version.resolve_property("Script")
            if prop is None or not self.version_index.has(prop):
                return None
            self._script = PropertyManager(prop, self.version_index)
        return self._script

    def same_value(self, value1: str, value2: str) -> bool:
        """Do the two strings name the same value of this property?"""
        prop = self.property
        if prop.property_values and prop.has_property_value(value1) and prop.has_property_value(value2):
            return prop.find_property_value(value1) == prop.find_property_value(value2)
        return value1 == value2

    def missing_boundaries(self) -> list[int]:
        return sorted({b for d in self.missing_definitions for b in (d.codepoints.first, d.codepoints.last + 1)})


# ---------------------------------------------------------------------------
# One version
# ---------------------------------------------------------------------------

class VersionManager:
    """Property lookups within one version.

    Property names are matched by alias, so ``"sc"`` and ``"Script"`` share
    one PropertyManager.
    """

    def __init__(self, version: Version, property_index: PropertyIndex) -> None:
        self.version = version
        self.property_index = property_index
        self._managers: dict[str, PropertyManager] = {}
        self._properties: list[str] | None = None

    @property
    def version_name(self) -> str:
        return self.version.version_name

    def property_manager(self, name: str) -> PropertyManager:
        """Raises PropertyNotFoundError for names the version does not know."""
        prop = self.version.find_property(name)
        manager = self._managers.get(prop.key)
        if manager is None:
            manager = PropertyManager(prop, self.property_index.for_version(self.version))
            self._managers[prop.key] = manager
        return manager

    def values_of(self, property_name: str, char_or_codepoint: str | int) -> Values | None:
        return self.property_manager(property_name).values_of(char_or_codepoint)

    def codepoints_of(self, property_name: str, value: str) -> RangeSet:
        return self.property_manager(property_name).value_group.codepoints_with_value(value)

    def has_value(self, property_name: str, char_or_codepoint: str | int, value: str) -> bool:
        cp = to_codepoint(char_or_codepoint)
        return any(cp in r for r in self.codepoints_of(property_name, value))

    def properties_of(self, char_or_codepoint: str | int, value: str) -> list[str]:
        """Names of the properties that record ``value`` at the codepoint."""
        index = self.property_index.for_version(self.version)
        return [
            name for name in self.properties
            if index.has(self.version.find_property(name))
            and self.has_value(name, char_or_codepoint, value)
        ]

    @property
    def properties(self) -> list[str]:
        if self._properties is None:
            self._properties = [p.longest_alias for p in self.version.properties()]
        return self._properties

    def has_property(self, name: str) -> bool:
        return self.version.has_property(name)

    def assigned_codepoints(self, property_name: str) -> RangeSet:
        """Codepoints with an explicitly recorded value (defaults excluded)."""
        return self.property_manager(property_name).value_group.codepoints

    def value_aliases(self, property_name: str, value: str) -> list[str]:
        """Every alias of ``value``; empty when the property or value is unknown."""
        prop = self.version.resolve_property(property_name)
        if prop is None or not prop.has_property_value(value):
            return []
        return list(prop.find_property_value(value).raw_aliases)


# ---------------------------------------------------------------------------
# Across versions
# ---------------------------------------------------------------------------

class UnicodeManager:
    def __init__(self, data: UcdData) -> None:
        self.data = data
        self._properties: list[str] | None = None

    def version_manager(self, version_name: str) -> VersionManager:
        return self.data.version_manager(version_name)

    @property
    def properties(self) -> list[str]:
        """Property names of every version that has metadata, first spelling wins."""
        if self._properties is None:
            seen: dict[str, None] = {}
            for vm in self.data.version_managers():
                for name in vm.properties:
                    seen.setdefault(name, None)
            self._properties = list(seen)
        return self._properties

    def versions_of(self, property_name: str, char_or_codepoint: str | int, value: str) -> list[str]:
        """Names of the versions where the codepoint records ``value``."""
        found = []
        for vm in self.data.version_managers():
            try:
                if vm.has_value(property_name, char_or_codepoint, value):
                    found.append(vm.version_name)
            except PropertyNotFoundError:
                continue
        return found

    def text_changed_codepoints(self, property_name: str, version1: str, version2: str) -> RangeSet:
        """Codepoints whose recorded text in ``version1`` differs in ``version2``.

        Purely textual: ``5.0`` and ``V5_0`` count as different. Codepoints
        that only ``version2`` records are not reported.
        """
        group1 = self.version_manager(version1).property_manager(property_name).value_group
        group2 = self.version_manager(version2).property_manager(property_name).value_group
        by_value2 = group2.values_to_codepoints
        changed: list[IntRange] = []
        for values, codepoints in group1.values_to_codepoints.items():
            changed.extend(ranges.difference(codepoints, by_value2.get(values, [])))
        return ranges.merge(changed)

    def value_changed_codepoints(self, property_name: str, version1: str, version2: str) -> RangeSet:
        """Like ``text_changed_codepoints`` but alias renames are not changes.

        Aliases are looked up in ``version2``: a codepoint is kept when some
        value of ``version2`` is not an alias of any value of ``version1``.
        """
        vm2 = self.version_manager(version2)
        pm1 = self.version_manager(version1).property_manager(property_name)
        pm2 = vm2.property_manager(property_name)

        # Inside one piece both sides resolve to the same values.
        cuts = sorted(
            {seg.first for seg, _ in pm1.value_group.segments}
            | {seg.last + 1 for seg, _ in pm1.value_group.segments}
            | {seg.first for seg, _ in pm2.value_group.segments}
            | {seg.last + 1 for seg, _ in pm2.value_group.segments}
            | set(pm1.missing_boundaries())
            | set(pm2.missing_boundaries())
        )

        changed: list[IntRange] = []
        for r in self.text_changed_codepoints(property_name, version1, version2):
            for piece in _split(r, cuts):
                per_codepoint = CODEPOINT_PLACEHOLDER in (
                    pm1.raw_missing_value(piece.first), pm2.raw_missing_value(piece.first),
                )
                probes = list(piece) if per_codepoint else [piece.first]
                for cp in probes:
                    if self._value_differs(vm2, property_name, pm1.values_of(cp), pm2.values_of(cp)):
                        changed.append(IntRange.single(cp) if per_codepoint else piece)
        return ranges.merge(changed)

    @staticmethod
    def _value_differs(vm2: VersionManager, property_name: str, values1: Values | None, values2: Values | None) -> bool:
        aliases = {a for v in _as_list(values1) for a in vm2.value_aliases(property_name, v)}
        return any(v not in aliases for v in _as_list(values2))

    def validate_metadata(self, version_name: str) -> ValidationReport:
        from ucdmeta.validator import run_all_validations

        return run_all_validations(self.data.find_version(version_name).version_metadata)

    def generate_metadata(self, output_path: Path, source_name: str, target_name: str) -> dict[str, Any]:
        return self.data.generate_metadata(output_path, source_name, target_name)


def _split(r: IntRange, cuts: list[int]) -> list[IntRange]:
    pieces = []
    start = r.first
    i = bisect.bisect_right(cuts, start)
    while i < len(cuts) and cuts[i] <= r.last:
        pieces.append(IntRange(start, cuts[i] - 1))
        start = cuts[i]
        i += 1
    pieces.append(IntRange(start, r.last))
    return pieces
