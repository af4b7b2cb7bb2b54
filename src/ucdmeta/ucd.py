"""Entry point: a file source, settings and the metadata documents together.

``UcdData`` is the root every Version points back to. Two versions can only
be compared when they come from the same ``UcdData``.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from ucdmeta.errors import MetadataNotFoundError, VersionNotFoundError, VersionParseError
from ucdmeta.metadata import Metadata
from ucdmeta.property_index import PropertyIndex, default_index_path
from ucdmeta.query import UnicodeManager, VersionManager
from ucdmeta.rawfile import RawFile
from ucdmeta.recreator import generate_metadata
from ucdmeta.settings import Settings
from ucdmeta.sources import DirectorySource, FileSource
from ucdmeta.validator import ValidationReport, run_all_validations
from ucdmeta.version import Version, parse_version_name, version_weight

logger = logging.getLogger(__name__)


class UcdData:
    """Versions served by ``source`` and described by ``metadata``.

    Args:
        source: where raw files come from.
        settings: parsing configuration; built-in defaults when omitted.
        metadata: an already loaded document; takes precedence over
            ``metadata_path``.
        metadata_path: JSON document to load. A missing file gives an empty
            document so new metadata can still be generated.
        property_index_path: companion index file; defaults to
            ``property_<metadata name>`` beside the metadata, or to an
            in-memory index when there is no metadata path.
    """

    def __init__(
        self,
        source: FileSource,
        *,
        settings: Settings | None = None,
        metadata: Metadata | None = None,
        metadata_path: Path | None = None,
        property_index_path: Path | None = None,
    ) -> None:
        self._source = source
        self._settings = settings or Settings.default()
        if metadata is None:
            if metadata_path is not None and metadata_path.exists():
                metadata = Metadata.load(metadata_path)
            else:
                metadata = Metadata.empty()
        self._metadata = metadata
        if property_index_path is None and metadata_path is not None:
            property_index_path = default_index_path(metadata_path)
        self.property_index = PropertyIndex(property_index_path)
        self._versions: list[Version] | None = None
        self._version_managers: dict[int, VersionManager] = {}

    @classmethod
    def from_paths(
        cls,
        metadata_path: Path,
        *,
        cache_root: Path | None = None,
        settings_path: Path | None = None,
    ) -> UcdData:
        """Release trees under ``cache_root`` (or the configured cache) plus metadata."""
        settings = Settings.from_json(settings_path) if settings_path is not None else Settings.default()
        root = cache_root if cache_root is not None else settings.resolve_cache_path()
        source = DirectorySource(root, settings.retrieval())
        return cls(source, settings=settings, metadata_path=metadata_path)

    @property
    def source(self) -> FileSource:
        return self._source

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def metadata(self) -> Metadata:
        return self._metadata

    # ── Versions ────────────────────────────────────────────────────────

    @property
    def versions(self) -> list[Version]:
        """Every version named by the metadata or the source, oldest first."""
        if self._versions is None:
            by_weight: dict[int, Version] = {}
            for name in [*self.metadata.version_names, *self.source.list_versions()]:
                try:
                    parse_version_name(name)
                except VersionParseError:
                    logger.debug("skipping %r: not a version name", name)
                    continue
                by_weight.setdefault(version_weight(name), Version(self, name))
            self._versions = sorted(by_weight.values())
        return self._versions

    def find_version(self, version_name: str) -> Version:
        """The version with the weight of ``version_name``.

        Raises:
            VersionParseError: the name is not a version name.
            VersionNotFoundError: neither the metadata nor the source knows it.
        """
        weight = version_weight(version_name)
        for version in self.versions:
            if version.weight == weight:
                return version
        raise VersionNotFoundError(f"version {version_name} is not found")

    def has_version(self, version_name: str) -> bool:
        try:
            self.find_version(version_name)
        except (VersionNotFoundError, VersionParseError):
            return False
        return True

    def oldest_version_name(self) -> str:
        if not self.versions:
            raise VersionNotFoundError("no versions are known")
        return self.versions[0].version_name

    def latest_version_name(self) -> str:
        if not self.versions:
            raise VersionNotFoundError("no versions are known")
        return self.versions[-1].version_name

    def reload(self) -> None:
        """Forget listed versions and every cached artifact of them."""
        for version in self._versions or []:
            version.reload()
        self._versions = None
        self._version_managers.clear()

    # ── Query ───────────────────────────────────────────────────────────

    def version_manager(self, version_name: str) -> VersionManager:
        """Raises MetadataNotFoundError when the version has no metadata entry."""
        version = self.find_version(version_name)
        manager = self._version_managers.get(version.weight)
        if manager is None:
            if not version.has_version_metadata:
                raise MetadataNotFoundError(f"metadata for {version.version_name} is not found")
            manager = VersionManager(version, self.property_index)
            self._version_managers[version.weight] = manager
        return manager

    def version_managers(self) -> list[VersionManager]:
        return [
            self.version_manager(v.version_name)
            for v in self.versions
            if v.has_version_metadata
        ]

    def unicode_manager(self) -> UnicodeManager:
        return UnicodeManager(self)

    # ── Metadata maintenance ────────────────────────────────────────────

    def generate_metadata(self, output_path: Path, source_name: str, target_name: str) -> dict[str, Any]:
        """Write the metadata plus a draft entry for ``target_name`` to ``output_path``."""
        return generate_metadata(
            self.metadata, output_path, self.find_version(source_name), self.find_version(target_name),
        )

    def validate(self, version_name: str | None = None) -> list[ValidationReport]:
        """Reports for one version, or for every version with metadata."""
        if version_name is not None:
            return [run_all_validations(self.find_version(version_name).version_metadata)]
        return [run_all_validations(v.version_metadata) for v in self.versions if v.has_version_metadata]

    def file_correspondence(self, version_name1: str, version_name2: str) -> dict[str, RawFile | None]:
        """Each file of the first version mapped to its namesake in the second."""
        v1 = self.find_version(version_name1)
        v2 = self.find_version(version_name2)
        return {f.name: (v2.find_file(f.name) if v2.has_file(f.name) else None) for f in v1.files}
