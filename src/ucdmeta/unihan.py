"""The Unihan database: one property per row, spread over several files.

Every Unihan row is ``U+XXXX<TAB>kProperty<TAB>value``; the property name is
always the second cell.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from ucdmeta.aliases import canonical
from ucdmeta.catalog import UNIHAN_ONLY_KIND, Property
from ucdmeta.errors import PropertyNotFoundError, VersionMismatchError
from ucdmeta.rawfile import RawFile

if TYPE_CHECKING:
    from ucdmeta.value_group import UnihanValueGroup
    from ucdmeta.version import Version


class UnihanCatalog:
    """Unihan files of one version and the properties they carry."""

    def __init__(self, files: Sequence[RawFile]) -> None:
        self.files = list(files)
        versions = {f.version for f in self.files}
        if len(versions) > 1:
            raise VersionMismatchError("all Unihan files must belong to the same version")
        self.version: Version | None = next(iter(versions), None)
        self._shaped_lines: list[list[str]] | None = None
        self._properties: list[Property] | None = None
        self._lines_by_name: dict[str, list[list[str]]] | None = None
        self._value_groups: dict[str, UnihanValueGroup] = {}

    @property
    def shaped_lines(self) -> list[list[str]]:
        if self._shaped_lines is None:
            self._shaped_lines = [
                cells for f in self.files for cells in f.netto_shaped_lines
            ]
        return self._shaped_lines

    @property
    def property_names(self) -> list[str]:
        seen: dict[str, None] = {}
        for cells in self.shaped_lines:
            if len(cells) > 1:
                seen.setdefault(cells[1], None)
        return list(seen)

    @property
    def properties(self) -> list[Property]:
        """Unihan properties; PropertyAliases entries are preferred when present."""
        if self._properties is None:
            self._properties = []
            for name in self.property_names:
                prop: Property | None = None
                if self.version is not None:
                    try:
                        prop = self.version.catalog.find(name)
                    except PropertyNotFoundError:
                        prop = None
                if prop is None:
                    prop = Property([name], UNIHAN_ONLY_KIND, version=self.version, unihan=True)
                self._properties.append(prop)
        return self._properties

    def find_property(self, name: str | Property) -> Property:
        aliases = [name] if isinstance(name, str) else name.raw_aliases
        for alias in aliases:
            for prop in self.properties:
                if prop.has_alias(alias):
                    return prop
        raise PropertyNotFoundError(name if isinstance(name, str) else name.longest_alias)

    def has_property(self, name: str | Property) -> bool:
        try:
            self.find_property(name)
        except PropertyNotFoundError:
            return False
        return True

    def lines_of(self, prop: Property) -> list[list[str]]:
        if self._lines_by_name is None:
            grouped: dict[str, list[list[str]]] = {}
            for cells in self.shaped_lines:
                if len(cells) > 1:
                    grouped.setdefault(canonical(cells[1]), []).append(cells)
            self._lines_by_name = grouped
        for alias in prop.aliases:
            lines = self._lines_by_name.get(alias)
            if lines is not None:
                return lines
        return []

    def value_group(self, prop: Property) -> UnihanValueGroup:
        from ucdmeta.value_group import UnihanValueGroup

        cached = self._value_groups.get(prop.key)
        if cached is None:
            cached = UnihanValueGroup(prop, self.lines_of(prop))
            self._value_groups[prop.key] = cached
        return cached
