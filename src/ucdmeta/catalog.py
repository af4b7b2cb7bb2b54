"""Properties, property values and the per-version catalog that owns them.

The catalog is built from PropertyAliases (names and value kinds, grouped
under kind banners) and PropertyValueAliases (value aliases per property).
Lookups are by alias in canonical form; the first property declaring an
alias wins.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from ucdmeta.aliases import AliasedEntity, canonical
from ucdmeta.errors import PropertyNotFoundError, PropertyValueNotFoundError
from ucdmeta.value_types import MiscKind, PropertyKind, ValueKind, parse_value_kind

if TYPE_CHECKING:
    from ucdmeta.rawfile import PropertyAliasesFile, PropertyValueAliasesFile
    from ucdmeta.settings import Settings
    from ucdmeta.version import Version

logger = logging.getLogger(__name__)

# Kind given to Unihan properties that PropertyAliases does not list.
UNIHAN_ONLY_KIND = PropertyKind(ValueKind.MISCELLANEOUS, MiscKind.TEXT)


class Property(AliasedEntity):
    """A character property of one version."""

    __slots__ = ("version", "kind", "unihan", "_values", "_value_index")

    def __init__(
        self,
        aliases: Iterable[str],
        kind: PropertyKind,
        *,
        version: Version | None = None,
        unihan: bool = False,
    ) -> None:
        super().__init__(aliases)
        self.version = version
        self.kind = kind
        self.unihan = unihan
        self._values: list[PropertyValue] = []
        self._value_index: dict[str, PropertyValue] = {}

    def _version_weight(self) -> int:
        return self.version.weight if self.version is not None else 0

    @property
    def value_kind(self) -> ValueKind:
        return self.kind.value_kind

    @property
    def property_values(self) -> list[PropertyValue]:
        return list(self._values)

    def add_property_value(self, aliases: Iterable[str]) -> PropertyValue:
        value = PropertyValue(self, aliases)
        self._values.append(value)
        for alias in value.aliases:
            self._value_index.setdefault(alias, value)
        return value

    def find_property_value(self, alias: str) -> PropertyValue:
        value = self._value_index.get(canonical(alias))
        if value is None:
            raise PropertyValueNotFoundError(
                f"{self.longest_alias} doesn't have {alias} as value"
            )
        return value

    def has_property_value(self, alias: str) -> bool:
        return canonical(alias) in self._value_index

    @property
    def is_unihan(self) -> bool:
        return self.unihan


class PropertyValue(AliasedEntity):
    """One value of a Property, identified by its aliases."""

    __slots__ = ("property",)

    def __init__(self, prop: Property, aliases: Iterable[str] = ()) -> None:
        super().__init__(aliases)
        self.property = prop

    def _version_weight(self) -> int:
        return self.property._version_weight()


class PropertyCatalog:
    """All properties of one version, indexed by canonical alias."""

    def __init__(self, properties: Iterable[Property] = ()) -> None:
        self._properties: list[Property] = []
        self._index: dict[str, Property] = {}
        for prop in properties:
            self.add(prop)

    @classmethod
    def from_files(
        cls,
        aliases_file: PropertyAliasesFile,
        value_aliases_file: PropertyValueAliasesFile,
        *,
        settings: Settings,
        version: Version | None = None,
    ) -> PropertyCatalog:
        """Build the catalog from a version's two alias files.

        Raises:
            UnknownValueKindError: a banner names a kind outside the known set.
        """
        version_name = version.version_name if version is not None else None
        catalog = cls()
        for label, rows in aliases_file.kind_sections().items():
            value_kind = parse_value_kind(label)
            for cells in rows:
                kind = PropertyKind(value_kind)
                if value_kind is ValueKind.MISCELLANEOUS:
                    kind = _miscellaneous_kind(settings, version_name, cells)
                catalog.add(Property(cells, kind, version=version))

        for cells in value_aliases_file.netto_shaped_lines:
            try:
                prop = catalog.find(cells[0])
            except PropertyNotFoundError:
                logger.debug("skipping value aliases of unknown property %s", cells[0])
                continue
            prop.add_property_value(cells[1:])
        return catalog

    def add(self, prop: Property) -> None:
        self._properties.append(prop)
        for alias in prop.aliases:
            self._index.setdefault(alias, prop)

    def find(self, target: str | Property) -> Property:
        """Find by alias, or re-resolve a Property (possibly from another version).

        A Property is tried through its spellings longest first.
        """
        if isinstance(target, str):
            prop = self._index.get(canonical(target))
            if prop is None:
                raise PropertyNotFoundError(target)
            return prop
        for alias in sorted(target.raw_aliases, key=len, reverse=True):
            prop = self._index.get(canonical(alias))
            if prop is not None:
                return prop
        raise PropertyNotFoundError(target.longest_alias)

    def has(self, target: str | Property) -> bool:
        try:
            self.find(target)
        except PropertyNotFoundError:
            return False
        return True

    @property
    def properties(self) -> list[Property]:
        return list(self._properties)

    def __iter__(self) -> Iterator[Property]:
        return iter(self._properties)

    def __len__(self) -> int:
        return len(self._properties)


def _miscellaneous_kind(
    settings: Settings, version_name: str | None, aliases: list[str],
) -> PropertyKind:
    for alias in aliases:
        fmt = settings.miscellaneous_format(version_name, alias)
        if fmt is not None:
            return PropertyKind(ValueKind.MISCELLANEOUS, fmt.format_type, fmt.unique_threshold)
    return PropertyKind(ValueKind.MISCELLANEOUS)
