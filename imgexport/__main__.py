"""
Main entry point for running the package as a module.

Usage:
    python -m imgexport optimize
    python -m imgexport scan --show-files
    python -m imgexport clean --yes
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())
