"""Utility modules for the MAGIC cross builder."""

from magic_cross.utils.config import Config, load_config
from magic_cross.utils.logging import setup_logging, get_logger
from magic_cross.utils.validators import (
    ParseError,
    ValidationError,
    validate_file_exists,
    validate_marker_tables,
)
from magic_cross.utils.io import (
    ensure_directory,
    read_table,
    write_table,
)

__all__ = [
    "Config",
    "load_config",
    "setup_logging",
    "get_logger",
    "ParseError",
    "ValidationError",
    "validate_file_exists",
    "validate_marker_tables",
    "ensure_directory",
    "read_table",
    "write_table",
]
