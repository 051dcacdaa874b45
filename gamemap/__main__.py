#!/usr/bin/env python3

"""
gamemap command line

Usage:
    python -m gamemap --formats
    python -m gamemap open -f <format> <file> info
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
