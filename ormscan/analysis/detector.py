"""
Grammar detection for source files.

Chooses the tree-sitter grammar (``typescript`` or ``tsx``) for a file
from its extension.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

from ormscan.core.config import AnalysisConfig

logger = logging.getLogger(__name__)


@dataclass
class LanguageDetectionResult:
    """Result of grammar detection for a file."""
    language: str
    confidence: float
    method: str  # "extension", "none"


class LanguageDetector:
    """Detects the grammar to parse a file with."""

    EXTENSION_MAP: Dict[str, str] = {
        ".ts": "typescript",
        ".mts": "typescript",
        ".cts": "typescript",
        ".tsx": "tsx",
        ".js": "typescript",
        ".mjs": "typescript",
        ".cjs": "typescript",
        ".jsx": "tsx",
    }

    def __init__(self, config: AnalysisConfig = None):
        self.config = config or AnalysisConfig()
        self.extension_map = {
            **self.EXTENSION_MAP,
            **self.config.language_extensions,
        }

    def detect_file_language(self, file_path: Path) -> LanguageDetectionResult:
        """
        Detect the grammar of a file.

        Args:
            file_path: Path to the file.

        Returns:
            LanguageDetectionResult with detected grammar and confidence.
        """
        extension = Path(file_path).suffix.lower()
        if extension in self.extension_map:
            return LanguageDetectionResult(
                language=self.extension_map[extension],
                confidence=1.0,
                method="extension",
            )

        return LanguageDetectionResult(
            language="unknown",
            confidence=0.0,
            method="none",
        )
