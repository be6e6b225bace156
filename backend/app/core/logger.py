"""
Custom logging configuration.

Responsibilities:
- Setup structured logging
- Configure log levels and formats
- Output logs to console and file
"""

import logging
import sys
from typing import Optional

LOGGER_NAME = "bgremove"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logger(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Configures the application logger."""
    root = logging.getLogger(LOGGER_NAME)
    root.setLevel(level.upper())

    if not root.handlers:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(console)

        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(file_handler)

    return root


def get_logger(name: str) -> logging.Logger:
    """Return a child of the application logger."""
    if name.startswith(LOGGER_NAME):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


logger = logging.getLogger(LOGGER_NAME)
