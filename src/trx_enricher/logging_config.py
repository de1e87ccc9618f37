"""Logging configuration for the application."""

import logging
from typing import Dict, Optional

from rich.logging import RichHandler

from .config import get_settings


def setup_logging(level: Optional[str] = None) -> None:
    """Set up application logging with rich formatting."""
    level = (level or get_settings().log_level).upper()

    # Configure root logger
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=None,  # Use default console
                show_path=False,
                markup=False,
                rich_tracebacks=True,
            )
        ],
        force=True,
    )

    # Request logs would repeat every call of a batch
    logger_levels: Dict[str, str] = {
        "httpx": "WARNING",
        "httpcore": "WARNING",
    }

    for logger_name, logger_level in logger_levels.items():
        logging.getLogger(logger_name).setLevel(getattr(logging, logger_level))


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for the given name."""
    return logging.getLogger(name)
