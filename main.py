#!/usr/bin/env python3
"""
Solar Boat - Main entry point.

Runs the command-line interface.
"""

import sys

from solarboat.cli import main


if __name__ == "__main__":
    sys.exit(main())
