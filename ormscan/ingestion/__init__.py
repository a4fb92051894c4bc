"""
Source file discovery module.

Finds the files of a scan root that match the include and exclude globs.
"""

from ormscan.ingestion.discovery import (
    DiscoveryStage,
    FileDiscovery,
    FileInfo,
    discover_files,
    compile_glob,
    expand_braces,
)

__all__ = [
    "DiscoveryStage",
    "FileDiscovery",
    "FileInfo",
    "discover_files",
    "compile_glob",
    "expand_braces",
]
