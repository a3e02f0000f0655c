"""
Daily Devotional - Logging

Centralized logging configuration using Rich for console output.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

# Global console instance
console = Console()

# Log directory
LOG_DIR = Path(__file__).parent.parent / "logs"
LOG_FILE = LOG_DIR / "devotional_pipeline.log"

ROOT_LOGGER_NAME = "devotional_pipeline"


def _level_from_env(default: int) -> int:
    """Resolve DEVOTIONAL_LOG_LEVEL (e.g. "DEBUG") to a logging level."""
    name = os.environ.get("DEVOTIONAL_LOG_LEVEL", "").strip().upper()
    if not name:
        return default
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default


def get_logger(
    name: str,
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Get a configured logger with Rich console output and file output.

    Args:
        name: Name of the logger (usually __name__)
        level: Logging level (default: INFO, overridden by DEVOTIONAL_LOG_LEVEL)
        log_file: Optional path to log file (default: logs/devotional_pipeline.log)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    level = _level_from_env(level)
    logger.setLevel(level)

    console_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        rich_tracebacks=True,
        markup=True,
    )
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    if log_file is None:
        log_file = LOG_FILE
    log_file.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    logger.addHandler(file_handler)

    return logger


def get_console() -> Console:
    """Get the global Rich console instance."""
    return console


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure and return the pipeline's root logger."""
    return get_logger(ROOT_LOGGER_NAME, level=level)
