"""
Diagnostic record definitions.

Defines the values produced by the analysis rules: source locations,
queried attributes, and the two message kinds (entity and method) that
are paired with a file path and location to form a Result.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Tuple

from ormscan.core.exceptions import ReportFormatError


class MethodCategory(Enum):
    """Categories of the repository API surface."""
    READ = "read"
    WRITE = "write"
    OTHER = "other"
    TRANSACTION = "transaction"


@dataclass(frozen=True)
class Location:
    """
    Source span of a syntax node.

    Lines are 1-based, columns are 0-based and counted in characters.
    """
    start_line: int
    start_column: int
    end_line: int
    end_column: int

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary."""
        return {
            "startLine": self.start_line,
            "startColumn": self.start_column,
            "endLine": self.end_line,
            "endColumn": self.end_column,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Location":
        """Create a location from its dictionary form."""
        try:
            return cls(
                start_line=int(data["startLine"]),
                start_column=int(data["startColumn"]),
                end_line=int(data["endLine"]),
                end_column=int(data["endColumn"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ReportFormatError(f"Invalid location: {data!r}") from e


@dataclass(frozen=True)
class Attribute:
    """
    A column name referenced by a query argument.

    Two attributes are equal when their names are equal; the location
    only records where the first occurrence was found.
    """
    name: str
    location: Location = field(compare=False)

    def __lt__(self, other: "Attribute") -> bool:
        return self.name < other.name

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "location": self.location.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Attribute":
        if "name" not in data or "location" not in data:
            raise ReportFormatError(f"Invalid attribute: {data!r}")
        return cls(name=str(data["name"]), location=Location.from_dict(data["location"]))


def unique_attributes(attributes: Iterable[Attribute]) -> List[Attribute]:
    """Deduplicate attributes by name, keeping the first occurrence."""
    seen = {}
    for attribute in attributes:
        if attribute.name not in seen:
            seen[attribute.name] = attribute
    return list(seen.values())


def sorted_attributes(attributes: Iterable[Attribute]) -> Tuple[Attribute, ...]:
    """Deduplicate attributes by name and sort them by name."""
    return tuple(sorted(unique_attributes(attributes)))


@dataclass(frozen=True)
class DiagnosticMessage:
    """Base class for messages emitted by the analysis rules."""

    @property
    def kind(self) -> str:
        raise NotImplementedError("Subclasses must define kind")

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError("Subclasses must implement to_dict")

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "DiagnosticMessage":
        """
        Rebuild a message from its dictionary form.

        Args:
            data: Dictionary produced by ``to_dict``.

        Returns:
            An EntityMessage or MethodMessage.

        Raises:
            ReportFormatError: If the kind is unknown or fields are missing.
        """
        if not isinstance(data, dict):
            raise ReportFormatError(f"Invalid message: {data!r}")

        kind = data.get("kind")
        try:
            if kind == "entity":
                return EntityMessage(name=data["name"])
            if kind == "method":
                return MethodMessage(
                    name=data["name"],
                    category=MethodCategory(data["category"]),
                    subject_text=data["subjectText"],
                    subject_types=tuple(data["subjectTypes"]),
                    attributes=tuple(
                        Attribute.from_dict(a) for a in data["attributes"]
                    ),
                )
        except (KeyError, TypeError, ValueError) as e:
            raise ReportFormatError(f"Invalid {kind} message: {data!r}") from e

        raise ReportFormatError(f"Unknown message kind: {kind!r}")


@dataclass(frozen=True)
class EntityMessage(DiagnosticMessage):
    """A class declaration decorated as a TypeORM entity."""
    name: str

    @property
    def kind(self) -> str:
        return "entity"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "name": self.name,
        }


@dataclass(frozen=True)
class MethodMessage(DiagnosticMessage):
    """A call to (or a declaration of) a repository API method."""
    name: str
    category: MethodCategory
    subject_text: str
    subject_types: Tuple[str, ...]
    attributes: Tuple[Attribute, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "subject_types", tuple(self.subject_types))
        object.__setattr__(self, "attributes", sorted_attributes(self.attributes))

    @property
    def kind(self) -> str:
        return "method"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "name": self.name,
            "category": self.category.value,
            "subjectText": self.subject_text,
            "subjectTypes": list(self.subject_types),
            "attributes": [a.to_dict() for a in self.attributes],
        }


@dataclass(frozen=True)
class Result:
    """A message paired with the file and span of the node that triggered it."""
    file_path: str
    location: Location
    message: DiagnosticMessage

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filePath": self.file_path,
            "location": self.location.to_dict(),
            "message": self.message.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Result":
        if not isinstance(data, dict) or "filePath" not in data:
            raise ReportFormatError(f"Invalid result: {data!r}")
        return cls(
            file_path=data["filePath"],
            location=Location.from_dict(data.get("location") or {}),
            message=DiagnosticMessage.from_dict(data.get("message")),
        )
