#!/usr/bin/env python3
"""
palfix Entry Point Script

Slows a Matroska movie (or every file of a directory) down to undo PAL speedup.
"""

import sys
from palfix.cli import main

if __name__ == "__main__":
    if sys.version_info < (3, 8):
        sys.stderr.write("palfix requires Python 3.8 or later.\n")
        sys.exit(1)

    main()
