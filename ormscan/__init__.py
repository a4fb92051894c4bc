"""
ormscan: TypeORM usage scanner for TypeScript codebases.

Locates TypeORM entity declarations and repository API calls, and
extracts the attribute names each query references together with their
source locations.
"""

__version__ = "1.0.0"
