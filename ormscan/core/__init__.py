"""
Core module containing pipeline orchestration, configuration, and base classes.
"""

from ormscan.core.config import Config, ScanConfig
from ormscan.core.pipeline import Pipeline, PipelineStage, PipelineState
from ormscan.core.exceptions import (
    PipelineError,
    DiscoveryError,
    AnalysisError,
    ParseError,
    TypeResolutionError,
    ReportingError,
    ReportFormatError,
)

__all__ = [
    "Config",
    "ScanConfig",
    "Pipeline",
    "PipelineStage",
    "PipelineState",
    "PipelineError",
    "DiscoveryError",
    "AnalysisError",
    "ParseError",
    "TypeResolutionError",
    "ReportingError",
    "ReportFormatError",
]
