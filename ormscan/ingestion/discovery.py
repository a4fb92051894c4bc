"""
Source file discovery pipeline stage.

Validates the scan root, finds the files matching the include glob
while honoring the exclude glob and ignore patterns, and loads the
previous output document when a scan is resumed.
"""

import fnmatch
import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional, Tuple

import pathspec

from ormscan.core.config import ScanConfig, DiscoveryConfig
from ormscan.core.exceptions import DiscoveryError, RootValidationError
from ormscan.core.pipeline import PipelineStage, PipelineState
from ormscan.reporting.output import ScanOutput
from ormscan.utils.logging_config import pluralize
from ormscan.utils.validation import validate_path

logger = logging.getLogger(__name__)


@dataclass
class FileInfo:
    """Information about a single file under the scan root."""

    path: Path
    relative_path: str
    size_bytes: int
    extension: str

    @classmethod
    def from_path(cls, path: Path, root: Path) -> "FileInfo":
        """Create FileInfo from a file path."""
        relative = PurePosixPath(*path.relative_to(root).parts)
        stat = path.stat()

        return cls(
            path=path,
            relative_path=str(relative),
            size_bytes=stat.st_size,
            extension=path.suffix.lower(),
        )


def expand_braces(pattern: str) -> List[str]:
    """
    Expand ``{a,b}`` alternatives into separate patterns.

    Alternatives may hold wildcards and nest, e.g. ``src/{*.ts,lib/**/*.tsx}``.
    An unmatched brace is kept as literal text.
    """
    start = pattern.find("{")
    while start != -1:
        depth = 0
        splits = []
        for i in range(start, len(pattern)):
            c = pattern[i]
            if c == "{":
                depth += 1
            elif c == "}":
                depth -= 1
                if depth == 0:
                    head, tail = pattern[:start], pattern[i + 1:]
                    bounds = [start] + splits + [i]
                    return [
                        expanded
                        for a, b in zip(bounds, bounds[1:])
                        for expanded in expand_braces(head + pattern[a + 1:b] + tail)
                    ]
            elif c == "," and depth == 1:
                splits.append(i)
        start = pattern.find("{", start + 1)
    return [pattern]


def compile_glob(pattern: str, anchored: bool = True) -> pathspec.PathSpec:
    """
    Compile a path glob to a gitwildmatch PathSpec.

    ``**`` spans directories, ``*`` and ``?`` stay within one path
    segment, and ``{a,b}`` alternates. An anchored glob without a slash
    only matches at the root; an unanchored one matches a file or
    directory name at any depth, as a .gitignore entry does.
    """
    lines = []
    for expanded in expand_braces(pattern.replace("\\", "/")):
        if expanded.startswith("./"):
            expanded = expanded[2:]
        if anchored and not expanded.startswith("/"):
            expanded = "/" + expanded
        lines.append(expanded)

    try:
        return pathspec.PathSpec.from_lines("gitwildmatch", lines)
    except (ValueError, TypeError) as e:
        raise DiscoveryError(f"Invalid glob {pattern!r}: {e}", details={"pattern": pattern}) from e


class FileDiscovery:
    """Finds the source files of a scan root."""

    def __init__(self, config: DiscoveryConfig):
        self.config = config
        self._include = compile_glob(config.include)
        self._exclude = (
            compile_glob(config.exclude, anchored=False) if config.exclude else None
        )

    def discover(self, root: Path) -> List[FileInfo]:
        """
        Discover all files to analyze under ``root``.

        Args:
            root: Scan root directory.

        Returns:
            FileInfo objects sorted by relative path.
        """
        files = []

        for current, dirs, filenames in os.walk(root):
            current_path = Path(current)

            dirs[:] = sorted(
                d for d in dirs
                if not self.should_ignore(self._relative(current_path / d, root))
            )

            for filename in filenames:
                file_path = current_path / filename
                relative = self._relative(file_path, root)

                if self.should_ignore(relative) or not self._include.match_file(relative):
                    continue

                try:
                    if not file_path.is_file():
                        continue

                    file_info = FileInfo.from_path(file_path, root)
                    max_size = self.config.max_file_size
                    if max_size and file_info.size_bytes > max_size:
                        logger.debug(
                            f"Skipping large file: {relative} "
                            f"({file_info.size_bytes / 1024:.1f} KB)"
                        )
                        continue

                    files.append(file_info)

                except (OSError, IOError) as e:
                    logger.warning(f"Error accessing file {file_path}: {e}")
                    continue

        files.sort(key=lambda f: f.relative_path)
        logger.debug(f"Discovered {len(files)} files in {root}")
        return files

    def should_ignore(self, relative: str) -> bool:
        """
        Check if a relative path is excluded.

        A path is excluded when the exclude glob matches it or one of its
        parent directories, or when any path segment matches an ignore
        pattern.
        """
        parts = PurePosixPath(relative).parts

        if self._exclude is not None:
            for depth in range(1, len(parts) + 1):
                if self._exclude.match_file("/".join(parts[:depth])):
                    return True

        for pattern in self.config.ignore_patterns:
            if fnmatch.fnmatch(relative, pattern):
                return True
            for part in parts:
                if fnmatch.fnmatch(part, pattern):
                    return True

        return False

    @staticmethod
    def _relative(path: Path, root: Path) -> str:
        return str(PurePosixPath(*path.relative_to(root).parts))


class DiscoveryStage(PipelineStage):
    """
    Pipeline stage for file discovery.

    Produces the list of files to analyze and the output document the
    analysis appends to (empty, or loaded from a previous run).
    """

    def __init__(self, config: ScanConfig):
        super().__init__(config)
        self.discovery = FileDiscovery(config.discovery)

    @property
    def name(self) -> str:
        return "discovery"

    def execute(self, state: PipelineState) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        root = self._resolve_root(state.root)

        self.logger.info(
            f"Finding files matching include={self.config.discovery.include!r} "
            f"exclude={self.config.discovery.exclude!r} under {root}"
        )
        files = self.discovery.discover(root)
        self.logger.info(f"Found {len(files)} {pluralize('file', len(files))}")

        output = self._initial_output()

        return {
            "root": root,
            "files": files,
            "output": output,
        }, {
            "files_discovered": len(files),
            "files_already_done": len(output.done_files),
        }

    def _resolve_root(self, root: str) -> Path:
        is_valid, error = validate_path(root)
        if not is_valid:
            raise RootValidationError(root, error)
        return Path(root).resolve()

    def _initial_output(self) -> ScanOutput:
        output_path = Path(self.config.output.output_path)
        if self.config.output.continue_from_existing and output_path.exists():
            return ScanOutput.load(output_path)
        return ScanOutput()


def discover_files(root: str, config: Optional[DiscoveryConfig] = None) -> List[FileInfo]:
    """
    Convenience function to list the files a scan would analyze.

    Args:
        root: Scan root directory.
        config: Optional discovery configuration.

    Returns:
        FileInfo objects sorted by relative path.
    """
    is_valid, error = validate_path(root)
    if not is_valid:
        raise DiscoveryError(error, details={"path": root})
    return FileDiscovery(config or DiscoveryConfig()).discover(Path(root).resolve())