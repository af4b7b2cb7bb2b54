"""Alias normalisation and alias-identified entities.

UCD names are compared loosely: case, ``-``, ``_`` and spaces are ignored
("Line_Break", "line break" and "LINEBREAK" are the same alias).
"""
from __future__ import annotations

import re
from collections.abc import Iterable

_SEPARATORS_RE = re.compile(r"[-_ ]")


def canonical(text: str) -> str:
    """Normalise an alias for comparison."""
    return _SEPARATORS_RE.sub("", text).lower()


def _displays_better(alias: str, current: str) -> bool:
    if len(alias) != len(current):
        return len(alias) > len(current)
    return current.islower() and not alias.islower()


class AliasedEntity:
    """An entity identified by an insertion-ordered set of aliases.

    ``aliases`` holds canonical forms, ``raw_aliases`` the spellings as
    written in the source file. ``longest_alias`` is the display name; between
    spellings of equal length a capitalised one beats an all-lowercase one
    (``age ; Age`` displays as "Age"), otherwise the first one stays.

    Subclasses decide how equality behaves across versions via
    ``_version_weight``; two entities of the same weight are equal iff their
    alias sets match, otherwise the older one's aliases must be a
    subset of the newer one's (alias lists only grow between releases).

    Because that rule lets a small alias set equal a larger one, no
    alias-derived hash can be consistent with it. Hashing is by class only;
    indexes that need speed key on ``key`` instead.
    """

    __slots__ = ("aliases", "raw_aliases", "longest_alias")

    def __init__(self, aliases: Iterable[str] = ()) -> None:
        self.aliases: list[str] = []
        self.raw_aliases: list[str] = []
        self.longest_alias: str = ""
        for alias in aliases:
            self.add_alias(alias)

    def add_alias(self, alias: str) -> None:
        if not isinstance(alias, str) or alias == "":
            return
        norm = canonical(alias)
        if _displays_better(alias, self.longest_alias):
            self.longest_alias = alias
        if norm not in self.aliases:
            self.aliases.append(norm)
        if alias not in self.raw_aliases:
            self.raw_aliases.append(alias)

    def has_alias(self, alias: str) -> bool:
        return canonical(alias) in self.aliases

    @property
    def key(self) -> str:
        """Canonical first alias; unique among entities of one version."""
        return self.aliases[0] if self.aliases else ""

    def _version_weight(self) -> int:
        return 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AliasedEntity) or type(other) is not type(self):
            return NotImplemented
        mine, theirs = self._version_weight(), other._version_weight()
        if mine > theirs:
            return set(other.aliases) <= set(self.aliases)
        if mine < theirs:
            return set(self.aliases) <= set(other.aliases)
        return set(self.aliases) == set(other.aliases)

    def __hash__(self) -> int:
        return hash(type(self).__name__)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.longest_alias}>"
