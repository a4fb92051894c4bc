"""
Configuration management for the ORM usage scanner.

Provides centralized configuration for all scan stages with
sensible defaults and validation.
"""

import os
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv


@dataclass
class DiscoveryConfig:
    """Configuration for source file discovery."""

    # Glob of files to analyze, relative to the scan root
    include: str = "**/*.ts"

    # Glob of paths to skip, relative to the scan root
    exclude: str = "node_modules"

    # Additional patterns to ignore during file discovery
    ignore_patterns: List[str] = field(default_factory=lambda: [
        ".git", "node_modules",
    ])

    # Maximum file size to process (in bytes, 0 = no limit)
    max_file_size: int = 2 * 1024 * 1024


@dataclass
class AnalysisConfig:
    """Configuration for static analysis."""

    # Extension to grammar mapping
    language_extensions: Dict[str, str] = field(default_factory=lambda: {
        ".ts": "typescript",
        ".mts": "typescript",
        ".cts": "typescript",
        ".tsx": "tsx",
    })

    # Rules to run on every file
    rules: List[str] = field(default_factory=lambda: [
        "find-schema", "find-api",
    ])

    # Type resolver: "declaration" or "any"
    type_resolver: str = "declaration"

    # Index classes across the whole project before analysis
    index_project: bool = True

    # Worker threads for per-file analysis
    max_workers: int = 4

    # Batches smaller than this run sequentially
    parallel_threshold: int = 8


@dataclass
class OutputConfig:
    """Configuration for scan output."""

    # Path of the JSON output document
    output_path: str = "messages.json"

    # Files per batch (0 = a single batch)
    batch_size: int = 0

    # Resume from an existing output document
    continue_from_existing: bool = False

    # JSON indentation of the output document
    indent: int = 4


@dataclass
class ScanConfig:
    """Master configuration combining all stage configurations."""

    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    # Enable verbose logging
    verbose: bool = False


class Config:
    """
    Central configuration manager providing access to all settings.

    Supports loading from environment variables and configuration files.
    """

    _instance: Optional["Config"] = None
    _config: ScanConfig = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._config = ScanConfig()
        return cls._instance

    @classmethod
    def get(cls) -> ScanConfig:
        """Get the current scan configuration."""
        if cls._instance is None:
            cls()
        return cls._instance._config

    @classmethod
    def reset(cls) -> ScanConfig:
        """Restore the default configuration (mainly for testing)."""
        instance = cls()
        instance._config = ScanConfig()
        return instance._config

    @classmethod
    def load_from_file(cls, config_path: str) -> ScanConfig:
        """
        Load configuration from a JSON file.

        Args:
            config_path: Path to the configuration file.

        Returns:
            Loaded ScanConfig instance.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, "r") as f:
            data = json.load(f)

        instance = cls()
        instance._config = cls._dict_to_config(data)
        return instance._config

    @classmethod
    def load_from_env(cls) -> ScanConfig:
        """
        Load configuration from environment variables.

        Variables are prefixed with ORMSCAN_ and may also be placed in a
        ``.env`` file in the working directory.

        Returns:
            ScanConfig with environment overrides applied.
        """
        load_dotenv()

        instance = cls()
        config = instance._config

        if os.getenv("ORMSCAN_INCLUDE"):
            config.discovery.include = os.getenv("ORMSCAN_INCLUDE")

        if os.getenv("ORMSCAN_EXCLUDE"):
            config.discovery.exclude = os.getenv("ORMSCAN_EXCLUDE")

        if os.getenv("ORMSCAN_TYPE_RESOLVER"):
            config.analysis.type_resolver = os.getenv("ORMSCAN_TYPE_RESOLVER")

        if os.getenv("ORMSCAN_MAX_WORKERS"):
            config.analysis.max_workers = int(os.getenv("ORMSCAN_MAX_WORKERS"))

        if os.getenv("ORMSCAN_OUTPUT"):
            config.output.output_path = os.getenv("ORMSCAN_OUTPUT")

        if os.getenv("ORMSCAN_BATCH"):
            config.output.batch_size = int(os.getenv("ORMSCAN_BATCH"))

        if os.getenv("ORMSCAN_VERBOSE"):
            config.verbose = os.getenv("ORMSCAN_VERBOSE").lower() in ("true", "1", "yes")

        return config

    @staticmethod
    def _dict_to_config(data: dict) -> ScanConfig:
        """Convert a dictionary to ScanConfig."""
        config = ScanConfig()

        if "discovery" in data:
            config.discovery = DiscoveryConfig(**data["discovery"])

        if "analysis" in data:
            config.analysis = AnalysisConfig(**data["analysis"])

        if "output" in data:
            config.output = OutputConfig(**data["output"])

        if "verbose" in data:
            config.verbose = data["verbose"]

        return config

    @classmethod
    def save_to_file(cls, config_path: str) -> None:
        """
        Save current configuration to a JSON file.

        Args:
            config_path: Path to save the configuration file.
        """
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        config = cls.get()
        data = cls._config_to_dict(config)

        with open(config_path, "w") as f:
            json.dump(data, f, indent=2)

    @staticmethod
    def _config_to_dict(config: ScanConfig) -> dict:
        """Convert ScanConfig to a dictionary."""
        return {
            "discovery": {
                "include": config.discovery.include,
                "exclude": config.discovery.exclude,
                "ignore_patterns": config.discovery.ignore_patterns,
                "max_file_size": config.discovery.max_file_size,
            },
            "analysis": {
                "language_extensions": config.analysis.language_extensions,
                "rules": config.analysis.rules,
                "type_resolver": config.analysis.type_resolver,
                "index_project": config.analysis.index_project,
                "max_workers": config.analysis.max_workers,
                "parallel_threshold": config.analysis.parallel_threshold,
            },
            "output": {
                "output_path": config.output.output_path,
                "batch_size": config.output.batch_size,
                "continue_from_existing": config.output.continue_from_existing,
                "indent": config.output.indent,
            },
            "verbose": config.verbose,
        }
