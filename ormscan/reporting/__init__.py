"""
Reporting and output generation module.

Provides the scan output document with resume support and the
formatters that render it.
"""

from ormscan.reporting.output import ScanOutput
from ormscan.reporting.formatter import (
    OutputFormatter,
    JSONFormatter,
    TextFormatter,
    format_output,
)

__all__ = [
    "ScanOutput",
    "OutputFormatter",
    "JSONFormatter",
    "TextFormatter",
    "format_output",
]
