"""
Utility functions and helpers.

Provides common utilities used across the codebase.
"""

from ormscan.utils.logging_config import setup_logging, pluralize
from ormscan.utils.validation import validate_path, validate_glob, validate_batch_size

__all__ = [
    "setup_logging",
    "pluralize",
    "validate_path",
    "validate_glob",
    "validate_batch_size",
]
