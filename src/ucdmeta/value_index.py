"""DuckDB export of recorded property values.

One row per run of codepoints sharing a value, so large blocks stay small.
Only values the files record are exported; ``@missing`` defaults are not.

Tables:
    codepoint_values: (version, property, first_codepoint, last_codepoint,
                      value, ordinal); ``ordinal`` orders multi-valued cells
    _schema_version: schema version tracking
"""
from __future__ import annotations

import importlib
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from ucdmeta.errors import OutputExistsError
from ucdmeta.query import VersionManager, to_codepoint
from ucdmeta.ranges import IntRange, RangeSet, merge

# Dynamic DuckDB import for pyright compatibility
_duckdb_mod = importlib.import_module("duckdb")

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0.0"


class SchemaVersionError(RuntimeError):
    """Raised when a value index schema version does not match expected."""


_SCHEMA_DDL = f"""\
CREATE TABLE _schema_version (
    table_name VARCHAR PRIMARY KEY,
    version VARCHAR NOT NULL,
    created_at TIMESTAMP DEFAULT current_timestamp
);

INSERT INTO _schema_version VALUES ('codepoint_values', '{SCHEMA_VERSION}', current_timestamp);

CREATE TABLE codepoint_values (
    version VARCHAR NOT NULL,
    property VARCHAR NOT NULL,
    first_codepoint INTEGER NOT NULL,
    last_codepoint INTEGER NOT NULL,
    value VARCHAR NOT NULL,
    ordinal INTEGER NOT NULL
);
"""


def _read_schema_version(conn: Any) -> str:
    try:
        result = conn.execute(
            "SELECT version FROM _schema_version WHERE table_name = 'codepoint_values'"
        ).fetchone()
        return str(result[0]) if result else "unknown"
    except Exception:
        return "unknown"


def ensure_schema_version(conn: Any, *, db_path: Path | None = None, expected: str = SCHEMA_VERSION) -> str:
    """Return the schema version; SchemaVersionError on mismatch."""
    actual = _read_schema_version(conn)
    if actual != expected:
        where = f" in {db_path}" if db_path is not None else ""
        raise SchemaVersionError(
            f"Schema version mismatch{where}: expected {expected}, got {actual}"
        )
    return actual


def value_rows(version_manager: VersionManager, property_name: str) -> list[tuple[Any, ...]]:
    """Table rows for one property, one per (segment, value)."""
    manager = version_manager.property_manager(property_name)
    name = manager.property.longest_alias
    rows: list[tuple[Any, ...]] = []
    for seg, values in manager.value_group.segments:
        for ordinal, value in enumerate([values] if isinstance(values, str) else values):
            rows.append((version_manager.version_name, name, seg.first, seg.last, value, ordinal))
    return rows


def build_value_index(
    db_path: Path,
    version_manager: VersionManager,
    properties: Iterable[str] | None = None,
) -> int:
    """Write the recorded values of ``properties`` (all indexed ones by default).

    Returns the number of rows written.

    Raises:
        OutputExistsError: ``db_path`` already exists.
    """
    if db_path.exists():
        raise OutputExistsError(db_path)
    if properties is None:
        index = version_manager.property_index.for_version(version_manager.version)
        properties = [r.property.longest_alias for r in index.records.values()]

    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn: Any = _duckdb_mod.connect(str(db_path))
    total = 0
    try:
        conn.execute(_SCHEMA_DDL)
        for name in properties:
            rows = value_rows(version_manager, name)
            logger.info("indexing %s: %d rows", name, len(rows))
            conn.execute("BEGIN")
            try:
                if rows:
                    conn.executemany(
                        "INSERT INTO codepoint_values VALUES (?, ?, ?, ?, ?, ?)", rows,
                    )
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise
            total += len(rows)
    finally:
        conn.close()
    return total


class ValueIndex:
    """Read-only interface to a built value index."""

    def __init__(self, db_path: Path, *, enforce_schema: bool = True) -> None:
        self._db_path = db_path
        self._conn: Any = _duckdb_mod.connect(str(db_path), read_only=True)
        if enforce_schema:
            try:
                ensure_schema_version(self._conn, db_path=db_path)
            except Exception:
                self._conn.close()
                raise

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> ValueIndex:
        return self

    def __exit__(self, *_args: object) -> None:
        self.close()

    @property
    def schema_version(self) -> str:
        return _read_schema_version(self._conn)

    def versions(self) -> list[str]:
        rows = self._conn.execute(
            "SELECT DISTINCT version FROM codepoint_values ORDER BY version"
        ).fetchall()
        return [str(r[0]) for r in rows]

    def properties(self, version: str) -> list[str]:
        rows = self._conn.execute(
            "SELECT DISTINCT property FROM codepoint_values WHERE version = ? ORDER BY property",
            [version],
        ).fetchall()
        return [str(r[0]) for r in rows]

    def values_of(self, version: str, property_name: str, char_or_codepoint: str | int) -> list[str]:
        """Recorded values in cell order; empty when nothing is recorded."""
        cp = to_codepoint(char_or_codepoint)
        rows = self._conn.execute(
            """SELECT value FROM codepoint_values
               WHERE version = ? AND property = ?
                 AND first_codepoint <= ? AND last_codepoint >= ?
               ORDER BY ordinal""",
            [version, property_name, cp, cp],
        ).fetchall()
        return [str(r[0]) for r in rows]

    def codepoints_with_value(self, version: str, property_name: str, value: str) -> RangeSet:
        """Codepoints recording ``value`` verbatim (no alias expansion)."""
        rows = self._conn.execute(
            """SELECT first_codepoint, last_codepoint FROM codepoint_values
               WHERE version = ? AND property = ? AND value = ?
               ORDER BY first_codepoint""",
            [version, property_name, value],
        ).fetchall()
        return merge(IntRange(int(r[0]), int(r[1])) for r in rows)
