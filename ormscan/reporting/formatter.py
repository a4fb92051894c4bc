"""
Output formatters.

Renders a scan's output document either as the JSON document itself or
as a human-readable summary of the entities and repository API usage
that were found.
"""

import json
import logging
from abc import ABC, abstractmethod
from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional

from ormscan.analysis.entities import EntityMessage, MethodCategory, MethodMessage
from ormscan.core.exceptions import ReportingError
from ormscan.reporting.output import ScanOutput

logger = logging.getLogger(__name__)


class OutputFormatter(ABC):
    """Abstract base class for output formatters."""

    @abstractmethod
    def format(self, output: ScanOutput) -> str:
        """Format an output document to string."""
        pass

    def save(self, output: ScanOutput, path: Path) -> None:
        """Save the formatted document to a file."""
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(self.format(output))
        except (IOError, OSError) as e:
            raise ReportingError(
                f"Cannot write {path}: {e}", details={"path": str(path)}
            ) from e

        logger.info(f"Output saved to {path}")


class JSONFormatter(OutputFormatter):
    """Formats the output document as JSON, exactly as it is written to disk."""

    def __init__(self, indent: int = 4):
        self.indent = indent

    def format(self, output: ScanOutput) -> str:
        return json.dumps(output.to_dict(), indent=self.indent)


class TextFormatter(OutputFormatter):
    """
    Formats a summary of the output document as text.

    Lists the entities found, the number of repository calls per
    category, the most used methods and the attributes queried most
    often.
    """

    def __init__(self, width: int = 80, top: int = 10):
        self.width = width
        self.top = top
        self.section_char = "="
        self.subsection_char = "-"

    def format(self, output: ScanOutput) -> str:
        entities = [
            r for r in output.results if isinstance(r.message, EntityMessage)
        ]
        methods = [
            r for r in output.results if isinstance(r.message, MethodMessage)
        ]

        lines = []
        lines.extend(self._format_header(output))
        lines.extend(self._format_entities(entities))
        lines.extend(self._format_categories(methods))
        lines.extend(self._format_methods(methods))
        lines.extend(self._format_attributes(methods))
        lines.append(self.section_char * self.width)

        return "\n".join(lines)

    def _format_header(self, output: ScanOutput) -> List[str]:
        files_with_results = len({r.file_path for r in output.results})
        return [
            self.section_char * self.width,
            self._center("ORM USAGE SUMMARY"),
            self.section_char * self.width,
            "",
            f"Files analyzed:      {len(output.done_files)}",
            f"Files with results:  {files_with_results}",
            f"Results:             {len(output.results)}",
            "",
        ]

    def _format_entities(self, entities) -> List[str]:
        lines = self._section(f"Entities ({len(entities)})")
        for result in sorted(entities, key=lambda r: (r.message.name, r.file_path)):
            lines.append(
                f"  {result.message.name:<30} "
                f"{result.file_path}:{result.location.start_line}"
            )
        lines.append("")
        return lines

    def _format_categories(self, methods) -> List[str]:
        counts: Counter = Counter(r.message.category for r in methods)
        lines = self._section(f"Repository calls ({len(methods)})")
        for category in MethodCategory:
            lines.append(f"  {category.value:<15} {counts.get(category, 0):>6}")
        lines.append("")
        return lines

    def _format_methods(self, methods) -> List[str]:
        counts: Counter = Counter(r.message.name or "<anonymous>" for r in methods)
        lines = self._section("Most used methods")
        for name, count in counts.most_common(self.top):
            lines.append(f"  {name:<30} {count:>6}")
        lines.append("")
        return lines

    def _format_attributes(self, methods) -> List[str]:
        counts: Dict[str, int] = Counter(
            attribute.name
            for result in methods
            for attribute in result.message.attributes
        )
        lines = self._section("Most queried attributes")
        for name, count in counts.most_common(self.top):
            lines.append(f"  {name:<30} {count:>6}")
        lines.append("")
        return lines

    def _section(self, title: str) -> List[str]:
        return [title, self.subsection_char * len(title)]

    def _center(self, text: str) -> str:
        """Center text within width."""
        padding = (self.width - len(text)) // 2
        return " " * padding + text


def format_output(
    output: ScanOutput,
    format_type: str = "json",
    output_path: Optional[Path] = None,
) -> str:
    """
    Format and optionally save an output document.

    Args:
        output: Output document to format.
        format_type: Output format ("json", "text").
        output_path: Optional path to save the formatted document.

    Returns:
        Formatted string.
    """
    if format_type == "json":
        formatter = JSONFormatter()
    elif format_type == "text":
        formatter = TextFormatter()
    else:
        raise ReportingError(f"Unknown output format: {format_type}")

    formatted = formatter.format(output)

    if output_path:
        formatter.save(output, output_path)

    return formatted
