"""Logging configuration for the evaluator and its command line."""
import logging
import sys
import os
from typing import Optional

def setup_logging(level: str = "WARNING", log_file: Optional[str] = None) -> None:
    """
    Configure logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file. If None, logs to stderr so that
                  program output on stdout stays clean.
    """
    # Convert string level to logging constant
    numeric_level = getattr(logging, level.upper(), logging.WARNING)

    config = {
        'level': numeric_level,
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'force': True,
    }

    if log_file:
        # Ensure directory exists
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)
        config['filename'] = log_file
    else:
        config['stream'] = sys.stderr

    logging.basicConfig(**config)

    logging.getLogger(__name__).info("Logging initialized at %s level", level.upper())

def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name.

    Args:
        name: Logger name, typically __name__ from the calling module

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
