#!/usr/bin/env python3
"""
ormscan - Main Entry Point

Scans TypeScript codebases for TypeORM entity declarations and
repository API usage.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from ormscan.cli import main

if __name__ == "__main__":
    main()
