"""
Input validation utilities.

Provides validation functions for scan roots, globs and numeric options.
"""

import os
from pathlib import Path
from typing import Optional, Tuple


def validate_path(path: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a local directory path.

    Args:
        path: Path to validate.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if not path:
        return False, "Path cannot be empty"

    try:
        path_obj = Path(path).resolve()
    except (OSError, RuntimeError) as e:
        return False, f"Invalid path format: {e}"

    if not path_obj.exists():
        return False, f"Path does not exist: {path}"

    if not path_obj.is_dir():
        return False, f"Path is not a directory: {path}"

    if not os.access(path_obj, os.R_OK):
        return False, f"Path is not readable: {path}"

    return True, None


def validate_glob(pattern: str) -> Tuple[bool, Optional[str]]:
    """
    Validate an include or exclude glob.

    Args:
        pattern: Glob relative to the scan root.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if not pattern or not pattern.strip():
        return False, "Glob cannot be empty"

    if Path(pattern).is_absolute():
        return False, f"Glob must be relative to the scan root: {pattern}"

    if pattern.count("{") != pattern.count("}"):
        return False, f"Unbalanced braces in glob: {pattern}"

    return True, None


def validate_batch_size(batch_size: int) -> Tuple[bool, Optional[str]]:
    """
    Validate a batch size (0 means a single batch).

    Args:
        batch_size: Number of files per batch.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if batch_size < 0:
        return False, f"Batch size cannot be negative: {batch_size}"
    return True, None
