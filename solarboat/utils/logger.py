"""
Logging configuration for Solar Boat.
"""

import logging
import os
import sys
from pathlib import Path
from datetime import datetime
from typing import Optional


def setup_logging(log_level: str = "WARNING", log_file: bool = False) -> logging.Logger:
    """
    Configure application logging.

    Console logging goes to stderr so command output on stdout stays clean.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: If True, also log everything at DEBUG to a file

    Returns:
        Root logger instance
    """
    level = getattr(logging, log_level.upper(), logging.WARNING)

    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if log_file else level)

    # Clear any existing handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    logger.addHandler(console_handler)

    if log_file:
        log_file_path = get_log_file_path()
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file_path}")

    return logger


def get_log_file_path(log_dir: Optional[Path] = None) -> Path:
    """Timestamped log file path inside the log directory."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return (log_dir or get_log_dir()) / f"solarboat_{timestamp}.log"


def get_log_dir() -> Path:
    """
    Get platform-specific log directory.

    Returns:
        Path to log directory
    """
    if os.name == 'nt':  # Windows
        base = os.environ.get('LOCALAPPDATA', os.path.expanduser('~'))
    else:  # Linux/macOS
        base = os.environ.get('XDG_CACHE_HOME', os.path.expanduser('~/.cache'))

    return Path(base) / 'solarboat' / 'logs'
