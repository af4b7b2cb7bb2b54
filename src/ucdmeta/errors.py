"""Exception hierarchy for ucdmeta.

Three families. NotFoundError: a version, file, property, value or metadata
entry is absent, and the caller may recover. ParseError: a version name,
range string, codepoint or kind tag is not in the expected grammar.
StructuralMismatchError: a precondition between two objects does not hold.

Validation findings are data, not exceptions (see ucdmeta.validator).
"""
from __future__ import annotations


class UcdMetaError(Exception):
    """Base class for every error raised by ucdmeta."""


# ---------------------------------------------------------------------------
# NotFound
# ---------------------------------------------------------------------------

class NotFoundError(UcdMetaError, LookupError):
    """A looked-up entity does not exist."""


class VersionNotFoundError(NotFoundError):
    """No version with the requested weight is known."""


class FileNotFoundInVersionError(NotFoundError):
    """The version has no file with the requested name prefix."""


class PropertyNotFoundError(NotFoundError):
    def __init__(self, searched: object) -> None:
        super().__init__(f"property not found (searched property: {searched})")
        self.searched = searched


class PropertyValueNotFoundError(NotFoundError):
    """The property has no value with the requested alias."""


class MetadataNotFoundError(NotFoundError):
    """No metadata entry exists for the requested version, file or property."""


# ---------------------------------------------------------------------------
# Parse
# ---------------------------------------------------------------------------

class ParseError(UcdMetaError, ValueError):
    """Input text is not in the expected grammar."""


class VersionParseError(ParseError):
    """A version name is not X.Y.Z, X.Y-UpdateN or X.Y-Update."""


class RangeParseError(ParseError):
    """A persisted range string is not ``start..end``."""


class CodepointParseError(ParseError):
    """A cell is not a codepoint or codepoint range."""


class UnknownValueKindError(ParseError):
    def __init__(self, kind: str) -> None:
        super().__init__(f"{kind} does not exist as a property value kind")
        self.kind = kind


# ---------------------------------------------------------------------------
# Structural mismatch
# ---------------------------------------------------------------------------

class StructuralMismatchError(UcdMetaError):
    """A precondition between two objects does not hold."""


class CatalogMismatchError(StructuralMismatchError):
    """Two versions being compared were not obtained from the same root."""


class MetadataExistsError(StructuralMismatchError):
    def __init__(self, version_name: str) -> None:
        super().__init__(
            f"metadata for {version_name} already exists; delete the entry and run again"
        )
        self.version_name = version_name


class OutputExistsError(StructuralMismatchError):
    def __init__(self, path: object) -> None:
        super().__init__(f"{path} already exists; delete the file and run again")
        self.path = path


class VersionMismatchError(StructuralMismatchError):
    """Files expected to share a version belong to different versions."""
