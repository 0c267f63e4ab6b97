"""
Solar Boat - change-driven Terraform runs for monorepos.

Finds the Terraform modules affected by a set of changed files and runs
init/plan/apply on them.
"""

import platform
import sys

__version__ = "0.1.2"

# Overridden by release builds
BUILD_COMMIT = "unknown"
BUILD_TIME = "unknown"


def get_version() -> str:
    """Version string with build metadata."""
    return (
        f"Solar Boat CLI v{__version__} (commit: {BUILD_COMMIT}, built: {BUILD_TIME}, "
        f"Python {platform.python_version()} {sys.platform}/{platform.machine()})"
    )
