"""
Attribution CLI entry point.

Usage:
    python -m attribution.cli build <output> --entry 10:foo --chain 56,57:foo
    python -m attribution.cli show <input>
    python -m attribution.cli compare <left> <right>
"""

import sys
from .main import main

if __name__ == "__main__":
    sys.exit(main())
