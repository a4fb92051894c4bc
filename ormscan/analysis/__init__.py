"""
Static analysis module for TypeORM usage in TypeScript sources.

Parses files with tree-sitter and runs pluggable rules that report
entity declarations and repository API calls.
"""

from ormscan.analysis.entities import (
    Attribute,
    DiagnosticMessage,
    EntityMessage,
    Location,
    MethodCategory,
    MethodMessage,
    Result,
)
from ormscan.analysis.registry import BaseRule, RuleContext, RuleRegistry
from ormscan.analysis.analyzer import AnalysisResult, FileAnalyzer, analyze_source

__all__ = [
    "Attribute",
    "DiagnosticMessage",
    "EntityMessage",
    "Location",
    "MethodCategory",
    "MethodMessage",
    "Result",
    "BaseRule",
    "RuleContext",
    "RuleRegistry",
    "AnalysisResult",
    "FileAnalyzer",
    "analyze_source",
]
