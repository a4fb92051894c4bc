"""
Scan output document.

The output document collects every Result of a scan together with the
list of files already analyzed, so an interrupted scan can be resumed
from it:

    {"results": [Result, ...], "doneFiles": ["src/a.ts", ...]}
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Set

from ormscan.analysis.entities import Result
from ormscan.core.exceptions import ReportFormatError, ReportingError

logger = logging.getLogger(__name__)


@dataclass
class ScanOutput:
    """Accumulated results and completed files of a scan."""

    results: List[Result] = field(default_factory=list)
    done_files: List[str] = field(default_factory=list)
    _done: Set[str] = field(default_factory=set, init=False, repr=False, compare=False)

    def __post_init__(self):
        self._done = set(self.done_files)

    def is_done(self, relative_path: str) -> bool:
        """Check if a file was analyzed by this or a previous run."""
        return relative_path in self._done

    def add_results(self, results: Iterable[Result]) -> None:
        self.results.extend(results)

    def mark_done(self, relative_paths: Iterable[str]) -> None:
        """Record files as analyzed, keeping first-seen order."""
        for relative_path in relative_paths:
            if relative_path not in self._done:
                self._done.add(relative_path)
                self.done_files.append(relative_path)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "doneFiles": list(self.done_files),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScanOutput":
        """
        Rebuild an output document from its dictionary form.

        Raises:
            ReportFormatError: If the document does not have the expected shape.
        """
        if not isinstance(data, dict):
            raise ReportFormatError("Output document must be a JSON object")

        results = data.get("results", [])
        done_files = data.get("doneFiles", [])
        if not isinstance(results, list) or not isinstance(done_files, list):
            raise ReportFormatError(
                "Output document must contain 'results' and 'doneFiles' lists"
            )

        return cls(
            results=[Result.from_dict(r) for r in results],
            done_files=[str(f) for f in done_files],
        )

    @classmethod
    def load(cls, path: Path) -> "ScanOutput":
        """
        Load a previous output document.

        Args:
            path: Path of the JSON document.

        Returns:
            The loaded ScanOutput.

        Raises:
            ReportFormatError: If the file is not a valid output document.
            ReportingError: If the file cannot be read.
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ReportFormatError(
                f"Existing output {path} is not valid JSON: {e}",
                details={"path": str(path)},
            ) from e
        except (IOError, OSError) as e:
            raise ReportingError(
                f"Cannot read existing output {path}: {e}",
                details={"path": str(path)},
            ) from e

        output = cls.from_dict(data)
        logger.info(
            f"Loaded {len(output.results)} results and "
            f"{len(output.done_files)} done files from {path}"
        )
        return output

    def save(self, path: Path, indent: int = 4) -> None:
        """
        Write the document, replacing any previous version atomically.

        Args:
            path: Destination path.
            indent: JSON indentation.
        """
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
            )
        except (IOError, OSError) as e:
            raise ReportingError(
                f"Cannot write output {path}: {e}", details={"path": str(path)}
            ) from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=indent)
            os.replace(tmp_name, path)
        except (IOError, OSError, TypeError, ValueError) as e:
            os.unlink(tmp_name)
            raise ReportingError(
                f"Cannot write output {path}: {e}", details={"path": str(path)}
            ) from e

        logger.debug(f"Output written to {path}")
