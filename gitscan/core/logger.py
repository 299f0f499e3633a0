"""Logging configuration and utilities."""

import sys
import logging
from typing import Optional


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """Configure logging to stderr and optionally to a file.

    stdout is left to scan results.

    Args:
        verbose: Log DEBUG and INFO messages instead of warnings only
        log_file: Optional path of a log file that receives the same records

    Returns:
        Configured logger instance
    """
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True  # Reset any existing configuration
    )

    logger = logging.getLogger('gitscan')
    if log_file:
        logger.info(f"Log file: {log_file}")

    return logger

