"""Cross-checks of a version's metadata against its real files.

Each check is independent and returns its findings as data; a check that
fails with an exception is recorded as an error and the others still run.
Nothing here mutates the metadata.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any

from ucdmeta import ranges
from ucdmeta.metadata import Single
from ucdmeta.ranges import IntRange, format_row_range
from ucdmeta.value_types import ValueKind

if TYPE_CHECKING:
    from ucdmeta.catalog import Property
    from ucdmeta.metadata import VersionMetadata
    from ucdmeta.version import Version

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Findings
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class FileFinding:
    """A file missing from the metadata, or claimed but absent."""

    file_name: str


@dataclass(frozen=True, slots=True)
class PropertyFinding:
    """A property missing from the metadata, or named but unresolvable."""

    property_name: str


@dataclass(frozen=True, slots=True)
class UncoveredRows:
    """Data rows of a file that no block covers."""

    file_name: str
    rows: tuple[IntRange, ...]


@dataclass(frozen=True, slots=True)
class ColumnCountMismatch:
    file_name: str
    block: int
    metadata_columns: int
    actual_columns: int


@dataclass(frozen=True, slots=True)
class TypeMismatch:
    """Rows of a block whose cells do not look like the declared property.

    ``rows`` also swallows comment rows outside the run of matching rows;
    ``data_rows`` is the same with every comment row removed.
    """

    file_name: str
    block: int
    column: int
    expected_type: str
    rows: tuple[IntRange, ...]
    data_rows: tuple[IntRange, ...]


type Finding = FileFinding | PropertyFinding | UncoveredRows | ColumnCountMismatch | TypeMismatch


def finding_to_dict(finding: Finding) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for f in fields(finding):
        value = getattr(finding, f.name)
        if isinstance(value, tuple):
            value = [r.to_str() for r in value]
        out[f.name] = value
    return out


@dataclass(frozen=True, slots=True)
class CheckResult:
    check: str
    findings: tuple[Finding, ...] = ()
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.findings

    def to_dict(self) -> dict[str, Any]:
        return {
            "check": self.check,
            "ok": self.ok,
            "findings": [finding_to_dict(f) for f in self.findings],
            "error": self.error,
        }


@dataclass(frozen=True, slots=True)
class ValidationReport:
    version_name: str
    results: tuple[CheckResult, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)

    def result(self, check: str) -> CheckResult:
        for r in self.results:
            if r.check == check:
                return r
        raise KeyError(check)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version_name": self.version_name,
            "ok": self.ok,
            "results": [r.to_dict() for r in self.results],
        }


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------

def expected_type(prop: Property) -> str:
    """Kind label used in type findings, e.g. ``enumerated (Line_Break)``."""
    kind = prop.value_kind
    if kind in (ValueKind.BINARY, ValueKind.CATALOG, ValueKind.ENUMERATED):
        return f"{kind} ({prop.longest_alias})"
    return prop.kind.describe()


def check_files_shortage(vm: VersionMetadata) -> list[Finding]:
    described = {f.key for f in vm.actual_files}
    return [
        FileFinding(f.name) for f in vm.version.files
        if not f.is_meta and f.key not in described
    ]


def check_files_excess(vm: VersionMetadata) -> list[Finding]:
    return [FileFinding(name) for name in vm.file_names if not vm.version.has_file(name)]


def check_properties_shortage(vm: VersionMetadata) -> list[Finding]:
    described = vm.actual_properties
    return [
        PropertyFinding(p.longest_alias) for p in vm.version.properties()
        if not any(p == d for d in described)
    ]


def check_properties_excess(vm: VersionMetadata) -> list[Finding]:
    return [
        PropertyFinding(name) for name in vm.property_names
        if name not in ("", "codepoint") and not vm.version.has_property(name)
    ]


def check_row_perfection(vm: VersionMetadata) -> list[Finding]:
    findings: list[Finding] = []
    for fm in vm.file_metadatas:
        remaining = fm.file.information_containing_ranges
        for block_range in fm.property_written_ranges:
            remaining = [
                piece for r in remaining
                for piece in ranges.trim_inside(r, block_range.first, block_range.last)
            ]
        if remaining:
            findings.append(UncoveredRows(fm.file.name, tuple(ranges.merge(remaining))))
    return findings


def check_column_perfection(vm: VersionMetadata) -> list[Finding]:
    findings: list[Finding] = []
    for fm in vm.file_metadatas:
        for block_no, block in enumerate(fm.blocks):
            declared = len(block.columns)
            actual = fm.file.max_column_count(block.range)
            if declared != actual:
                findings.append(ColumnCountMismatch(fm.file.name, block_no, declared, actual))
    return findings


def check_type(vm: VersionMetadata) -> list[Finding]:
    """Single-property columns only; ambiguous columns have no one kind to check."""
    findings: list[Finding] = []
    for fm in vm.file_metadatas:
        f = fm.file
        for block_no, block in enumerate(fm.blocks):
            for column, cell in enumerate(block.columns):
                if not isinstance(cell, Single):
                    continue
                prop = cell.item
                rows = ranges.difference(
                    [block.range], f.verbose_property_value_type_match_ranges(column, prop),
                )
                data_rows = ranges.difference(rows, f.comment_ranges)
                if data_rows:
                    findings.append(TypeMismatch(
                        f.name, block_no, column, expected_type(prop),
                        tuple(rows), tuple(data_rows),
                    ))
    return findings


def check_unihan_shortage(vm: VersionMetadata) -> list[Finding]:
    names = vm.unihan_property_names
    return [
        PropertyFinding(p.longest_alias) for p in vm.version.unihan_properties
        if not any(p.has_alias(n) for n in names)
    ]


def check_unihan_excess(vm: VersionMetadata) -> list[Finding]:
    props = vm.version.unihan_properties
    return [
        PropertyFinding(n) for n in vm.unihan_property_names
        if not any(p.has_alias(n) for p in props)
    ]


type Check = Callable[[VersionMetadata], list[Finding]]

CHECKS: tuple[tuple[str, Check], ...] = (
    ("files_shortage", check_files_shortage),
    ("files_excess", check_files_excess),
    ("properties_shortage", check_properties_shortage),
    ("properties_excess", check_properties_excess),
    ("row_perfection", check_row_perfection),
    ("column_perfection", check_column_perfection),
    ("type", check_type),
)

UNIHAN_CHECKS: tuple[tuple[str, Check], ...] = (
    ("unihan_properties_shortage", check_unihan_shortage),
    ("unihan_properties_excess", check_unihan_excess),
)


def _run_check(name: str, check: Check, vm: VersionMetadata) -> CheckResult:
    try:
        return CheckResult(name, tuple(check(vm)))
    except Exception as exc:
        logger.warning("check %s failed for %s: %s", name, vm.version.version_name, exc)
        return CheckResult(name, error=f"{type(exc).__name__}: {exc}")


def run_all_validations(vm: VersionMetadata) -> ValidationReport:
    """Run every check on one version; Unihan checks only when it has Unihan."""
    checks = list(CHECKS)
    try:
        has_unihan = vm.version.has_unihan
    except Exception as exc:
        logger.warning("cannot list files of %s: %s", vm.version.version_name, exc)
        has_unihan = False
    if has_unihan:
        checks.extend(UNIHAN_CHECKS)
    return ValidationReport(
        vm.version.version_name,
        tuple(_run_check(name, check, vm) for name, check in checks),
    )


def validate_versions(versions: list[Version]) -> list[ValidationReport]:
    """Validate every version that has a metadata entry, oldest first."""
    return [
        run_all_validations(v.version_metadata)
        for v in sorted(versions)
        if v.has_version_metadata
    ]


# ---------------------------------------------------------------------------
# Text rendering
# ---------------------------------------------------------------------------

_MESSAGES: dict[str, tuple[str, str]] = {
    "files_shortage": (
        "All files are described in the metadata",
        "Files that are not described in the metadata",
    ),
    "files_excess": (
        "There are no excessive files in the metadata.",
        "Files that are described in the metadata even though they do not actually exist",
    ),
    "properties_shortage": (
        "All properties are described in the metadata",
        "Properties that are not described in the metadata",
    ),
    "properties_excess": (
        "There are no excessive properties in the metadata.",
        "Properties that are described in the metadata even though they do not actually exist",
    ),
    "row_perfection": (
        "There are no files for which a file name is described in the metadata"
        " but for which this information is missing.",
        "Ranges where metadata is missing in files",
    ),
    "column_perfection": (
        "There are no difference in column size between the metadata and the"
        " actual description in all files",
        "Files that the number of columns differs between the metadata and the actual description",
    ),
    "type": (
        "In all blocks in the metadata, the type of the property described in the"
        " block matches the type of the values in the actual file.",
        "",
    ),
    "unihan_properties_shortage": (
        "All Unihan properties are described in the metadata",
        "Unihan properties that are not described in the metadata",
    ),
    "unihan_properties_excess": (
        "There are no excessive Unihan properties in the metadata.",
        "Unihan properties that are described in the metadata even though they do not actually exist",
    ),
}


def _finding_lines(finding: Finding) -> list[str]:
    match finding:
        case FileFinding(file_name=name) | PropertyFinding(property_name=name):
            return [f"・{name}"]
        case UncoveredRows(file_name=name, rows=rows):
            return [f"・{name}", *(f"\t{format_row_range(r)}" for r in rows)]
        case ColumnCountMismatch():
            return [
                f"{finding.file_name} (in block {finding.block})",
                f"\tmetadata column size: {finding.metadata_columns}",
                f"\tactual column size: {finding.actual_columns}",
            ]
        case TypeMismatch():
            return [
                f"According to the metadata, column {finding.column} in {finding.file_name}"
                f" should be {finding.expected_type} value, but the following line is wrong.",
                *(f"\t{format_row_range(r)}" for r in finding.rows),
            ]
    return []


def format_report(report: ValidationReport) -> list[str]:
    """Human-readable lines, one section per check."""
    lines = [f"== validation results for version {report.version_name} =="]
    for result in report.results:
        ok_message, heading = _MESSAGES.get(result.check, (result.check, result.check))
        if result.error is not None:
            lines.append(f"{result.check} could not be checked: {result.error}")
            continue
        if result.ok:
            lines.append(ok_message)
            continue
        if heading:
            lines.append(heading)
        for finding in result.findings:
            lines.extend(_finding_lines(finding))
    return lines
