"""
Syntax-tree rules.

Importing this package registers every rule with the RuleRegistry.

Rules:
    - find-schema: TypeORM entity declarations
    - find-api: repository API calls and transactional methods
"""

from ormscan.analysis.rules import find_schema
from ormscan.analysis.rules import find_api

__all__ = [
    "find_schema",
    "find_api",
]
