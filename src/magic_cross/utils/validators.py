"""Data validation utilities for the MAGIC cross builder."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from magic_cross.utils.logging import get_logger

if TYPE_CHECKING:
    import pandas as pd

logger = get_logger(__name__)


class ValidationError(Exception):
    """Raised when data validation fails."""

    pass


class ParseError(ValueError):
    """Raised when an input file does not have the expected structure."""

    def __init__(
        self,
        message: str,
        path: str | Path | None = None,
        line: int | None = None,
        expected: int | None = None,
        actual: int | None = None,
    ) -> None:
        self.path = Path(path) if path is not None else None
        self.line = line
        self.expected = expected
        self.actual = actual

        location = ""
        if self.path is not None:
            location = f"{self.path.name}"
            if line is not None:
                location += f":{line}"
            location += ": "
        counts = ""
        if expected is not None and actual is not None:
            counts = f" (expected {expected}, got {actual})"
        super().__init__(f"{location}{message}{counts}")


def validate_file_exists(
    file_path: str | Path,
    description: str = "file",
    raise_error: bool = True,
) -> bool:
    """
    Validate that a file exists.

    Args:
        file_path: Path to the file.
        description: Description of the file for error messages.
        raise_error: If True, raise an error on failure.

    Returns:
        True if file exists.

    Raises:
        FileNotFoundError: If file does not exist and raise_error is True.
    """
    path = Path(file_path)
    if not path.exists():
        msg = f"{description} not found: {file_path}"
        if raise_error:
            raise FileNotFoundError(msg)
        logger.warning(msg)
        return False
    return True


def validate_row_count(
    actual: int,
    expected: int,
    path: str | Path,
    what: str = "rows",
) -> None:
    """
    Check a parsed row count against the count a file declares.

    Raises:
        ParseError: If the counts differ.
    """
    if actual != expected:
        raise ParseError(f"{what} does not match declared marker count", path,
                         expected=expected, actual=actual)


def validate_unique(values: pd.Index | list[str], description: str) -> None:
    """
    Check that identifiers are unique.

    Raises:
        ValidationError: If any identifier occurs more than once.
    """
    seen: set[str] = set()
    duplicates: list[str] = []
    for value in values:
        if value in seen:
            duplicates.append(value)
        seen.add(value)

    if duplicates:
        shown = ", ".join(sorted(set(duplicates))[:5])
        raise ValidationError(f"Duplicate {description}: {shown}")


def validate_strain_order(
    expected: list[str],
    actual: list[str],
    path: str | Path,
) -> None:
    """
    Check that a file declares the same ordered founder strains as the others.

    Raises:
        ParseError: If the strain lists differ.
    """
    if list(expected) != list(actual):
        raise ParseError(
            f"founder strains differ from earlier files: {actual}",
            path,
        )


def validate_marker_tables(tables: dict[str, pd.Index | list[str]]) -> dict[str, list[str]]:
    """
    Check that every table holds the same markers, each exactly once.

    Args:
        tables: Mapping of table name to its marker identifiers.

    Returns:
        Mapping of table name to the markers it is missing relative to
        the union. Empty lists everywhere when consistent.

    Raises:
        ValidationError: If a table lists a marker more than once.
    """
    for name, markers in tables.items():
        validate_unique(markers, f"markers in {name}")

    union: set[str] = set()
    for markers in tables.values():
        union.update(markers)

    missing = {
        name: sorted(union - set(markers))
        for name, markers in tables.items()
    }

    for name, absent in missing.items():
        if absent:
            logger.warning(f"{name} is missing {len(absent)} markers")

    return missing
