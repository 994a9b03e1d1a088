"""Logging utilities for the MAGIC cross builder."""

from __future__ import annotations

import copy
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from logging import Logger

# Package logger name
LOGGER_NAME = "magic_cross"

# Format strings
CONSOLE_FORMAT = "%(levelname)-8s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors the level name on a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str, datefmt: str | None = None) -> None:
        super().__init__(fmt, datefmt)
        self.use_colors = sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with optional colors."""
        if self.use_colors:
            # Other handlers share the record, so color a copy
            record = copy.copy(record)
            color = self.COLORS.get(record.levelname, self.RESET)
            record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logging(
    level: int | str = logging.INFO,
    log_file: str | Path | None = None,
    log_dir: str | Path | None = None,
) -> Logger:
    """
    Set up logging for the cross builder.

    Console records go to stderr at ``level``. When a log file or log
    directory is given, a file handler records everything down to DEBUG,
    including the per-marker drop messages the console usually hides.

    Args:
        level: Console logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Specific log file path.
        log_dir: Directory for a timestamped log file. Ignored when
            ``log_file`` is given. If both are None, no file logging.

    Returns:
        Configured package logger.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, DATE_FORMAT))
    logger.addHandler(console_handler)

    file_path = None
    if log_file is not None:
        file_path = Path(log_file)
    elif log_dir is not None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        file_path = Path(log_dir) / f"magic_cross_{timestamp}.log"

    if file_path is not None:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(file_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, DATE_FORMAT))
        logger.addHandler(file_handler)

    logger.setLevel(logging.DEBUG if file_path is not None else level)
    logger.propagate = False

    if file_path is not None:
        logger.info(f"Logging to file: {file_path}")

    return logger


def get_logger(name: str | None = None) -> Logger:
    """
    Get a logger under the package logger.

    Module names already inside the package (``magic_cross.pipeline``) are
    used as they are; anything else is nested under ``magic_cross``.
    """
    if name is None:
        return logging.getLogger(LOGGER_NAME)
    if name == LOGGER_NAME or name.startswith(f"{LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def log_step(
    step_name: str,
    step: int | None = None,
    total: int | None = None,
    logger: Logger | None = None,
) -> None:
    """
    Log a build stage between separator lines.

    Args:
        step_name: Name of the stage.
        step: 1-based stage number, shown as ``[step/total]``.
        total: Number of stages in this run.
        logger: Logger to use. If None, uses package logger.
    """
    if logger is None:
        logger = get_logger()

    if step is not None and total is not None:
        step_name = f"[{step}/{total}] {step_name}"

    separator = "=" * 60
    logger.info(separator)
    logger.info(f"  {step_name}")
    logger.info(separator)


def log_summary(
    title: str,
    items: dict[str, str | int | float],
    logger: Logger | None = None,
) -> None:
    """
    Log key/value counts as an aligned block.

    Keys such as ``dropped_from_map`` are shown as ``dropped from map``
    and integers get thousands separators.
    """
    if logger is None:
        logger = get_logger()

    labels = {key: key.replace("_", " ") for key in items}
    width = max((len(label) for label in labels.values()), default=0)

    logger.info(f"{title}:")
    logger.info("-" * 40)
    for key, value in items.items():
        text = f"{value:,}" if isinstance(value, int) and not isinstance(value, bool) else str(value)
        logger.info(f"  {labels[key]:<{width}}  {text}")
    logger.info("-" * 40)
