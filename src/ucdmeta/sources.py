"""File sources: where a version's raw UCD bytes come from.

The core never downloads anything. A ``FileSource`` lists the files of a
version by name prefix and hands back their bytes; everything else (an
unpacked release tree on disk, an in-memory fixture) is an implementation
detail of the source.
"""
from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Protocol

from ucdmeta.aliases import canonical
from ucdmeta.errors import FileNotFoundInVersionError, VersionNotFoundError
from ucdmeta.settings import RetrievalSettings

_PREFIX_RE = re.compile(r"^([\.\-0-9a-zA-Z_ ]+)-([\.0-9a-zA-Z_ ]+)$")
_UNIHAN_RE = re.compile(r"^unihan")


def file_prefix(name: str) -> str:
    """Name of a UCD file without extension or trailing version tag.

    ``PropList-15.0.0d1.txt`` -> ``PropList``; ``emoji-data.txt`` keeps its
    hyphen because the tail does not start with a digit.
    """
    stem = Path(name).name
    suffix = Path(stem).suffix
    if suffix[1:].isalpha():
        stem = stem[: -len(suffix)]
    m = _PREFIX_RE.match(stem)
    if m and m.group(2)[:1].isdigit():
        return m.group(1)
    return stem


def is_unihan_file_name(name: str, unihan_file_names: Iterable[str] | None = None) -> bool:
    """True for Unihan data files.

    With an explicit name list the match is exact (canonical form);
    otherwise any name starting with ``Unihan`` qualifies.
    """
    key = canonical(file_prefix(name))
    if unihan_file_names is not None:
        return key in {canonical(n) for n in unihan_file_names}
    return _UNIHAN_RE.match(key) is not None


class FileSource(Protocol):
    """What the core needs from the retrieval side."""

    def list_versions(self) -> list[str]:
        """Names of the versions the source can serve."""
        ...

    def list_files(self, version_name: str) -> list[str]:
        """Name prefixes of every parseable file in the version."""
        ...

    def fetch(self, version_name: str, file_name: str) -> bytes:
        """Raw bytes of the named file; FileNotFoundInVersionError if absent."""
        ...


class MemorySource:
    """In-memory file source keyed by version name then file name."""

    def __init__(self, files: Mapping[str, Mapping[str, bytes | str]]) -> None:
        self._files: dict[str, dict[str, bytes]] = {}
        for version_name, entries in files.items():
            self._files[version_name] = {
                file_prefix(name): content.encode("utf-8") if isinstance(content, str) else content
                for name, content in entries.items()
            }

    def list_versions(self) -> list[str]:
        return list(self._files)

    def list_files(self, version_name: str) -> list[str]:
        return list(self._version(version_name))

    def fetch(self, version_name: str, file_name: str) -> bytes:
        key = canonical(file_prefix(file_name))
        for name, content in self._version(version_name).items():
            if canonical(name) == key:
                return content
        raise FileNotFoundInVersionError(f"{file_name} is not found in {version_name}")

    def _version(self, version_name: str) -> dict[str, bytes]:
        entries = self._files.get(version_name)
        if entries is None:
            raise VersionNotFoundError(f"version {version_name} is not in this source")
        return entries


class DirectorySource:
    """Unpacked release trees laid out as ``root/<version_name>/...``.

    Only ``.txt`` files are listed. Retrieval exclusions are honoured the
    same way the downloader applies them, and ``*Test`` files are skipped.
    When two paths share a prefix the first one found wins.
    """

    def __init__(self, root: Path, retrieval: RetrievalSettings | None = None) -> None:
        self.root = root
        self.retrieval = retrieval or RetrievalSettings()
        self._paths: dict[str, dict[str, Path]] = {}

    def list_versions(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(p.name for p in self.root.iterdir() if p.is_dir())

    def list_files(self, version_name: str) -> list[str]:
        return list(self._scan(version_name))

    def fetch(self, version_name: str, file_name: str) -> bytes:
        key = canonical(file_prefix(file_name))
        for name, path in self._scan(version_name).items():
            if canonical(name) == key:
                return path.read_bytes()
        raise FileNotFoundInVersionError(f"{file_name} is not found in {version_name}")

    def reload(self, version_name: str | None = None) -> None:
        """Forget scanned listings so files added on disk become visible."""
        if version_name is None:
            self._paths.clear()
        else:
            self._paths.pop(version_name, None)

    def _scan(self, version_name: str) -> dict[str, Path]:
        cached = self._paths.get(version_name)
        if cached is not None:
            return cached
        version_dir = self.root / version_name
        if not version_dir.is_dir():
            raise VersionNotFoundError(f"{version_dir} does not exist")

        found: dict[str, Path] = {}
        for path in sorted(p for p in version_dir.rglob("*") if p.is_file()):
            if not self._wanted(path.relative_to(version_dir)):
                continue
            if path.suffix.lower() != ".txt":
                continue
            prefix = file_prefix(path.name)
            if any(canonical(prefix) == canonical(seen) for seen in found):
                continue
            found[prefix] = path
        self._paths[version_name] = found
        return found

    def _wanted(self, relative: Path) -> bool:
        r = self.retrieval
        prefix = file_prefix(relative.name)
        lowered = prefix.lower()
        if lowered in {f.lower() for f in r.included_files} or relative.name.lower() in {
            f.lower() for f in r.included_files
        }:
            return True
        if relative.suffix[1:].lower() in {e.lower() for e in r.excluded_extensions}:
            return False
        parents = {p.lower() for p in relative.parts[:-1]}
        if parents & {d.lower() for d in r.excluded_directories}:
            return False
        if lowered in {f.lower() for f in r.excluded_files}:
            return False
        return not prefix.endswith("Test")
