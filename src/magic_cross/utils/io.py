"""I/O utilities for the MAGIC cross builder."""

from __future__ import annotations

import gzip
import re
from pathlib import Path
from typing import IO, Iterator

import pandas as pd

from magic_cross.utils.logging import get_logger
from magic_cross.utils.validators import validate_file_exists

logger = get_logger(__name__)

_DIGITS = re.compile(r"(\d+)")


def open_text(file_path: str | Path, mode: str = "rt") -> IO[str]:
    """
    Open a text file, transparently handling gzip compression.

    Args:
        file_path: Path to the file.
        mode: Text mode ("rt" or "wt").

    Returns:
        Open text handle.
    """
    opener = gzip.open if str(file_path).endswith(".gz") else open
    return opener(file_path, mode, encoding="utf-8")


def iter_lines(file_path: str | Path, description: str = "file") -> Iterator[tuple[int, str]]:
    """
    Iterate over the non-blank lines of a text file.

    Yields:
        Tuples of (1-based line number, line without trailing newline).
    """
    validate_file_exists(file_path, description)

    with open_text(file_path) as f:
        for line_num, line in enumerate(f, 1):
            line = line.rstrip("\r\n")
            if line.strip():
                yield line_num, line


def natural_sort_key(value: str | Path) -> list[int | str]:
    """Sort key that orders embedded numbers numerically (chr2 < chr10)."""
    text = value.name if isinstance(value, Path) else str(value)
    return [int(part) if part.isdigit() else part.lower() for part in _DIGITS.split(text)]


def write_table(
    df: pd.DataFrame,
    output_path: str | Path,
    sep: str = ",",
    na_rep: str = "NA",
    index: bool = False,
    comment: str | None = None,
) -> Path:
    """
    Write a delimited table.

    Args:
        df: Table to write.
        output_path: Output file path.
        sep: Column separator.
        na_rep: Representation of missing values.
        index: Whether to write the index as the first column.
        comment: Optional comment line written above the header.

    Returns:
        Path to written file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w", encoding="utf-8", newline="") as f:
        if comment:
            f.write(f"{comment}\n")
        df.to_csv(f, sep=sep, na_rep=na_rep, index=index, lineterminator="\n")

    logger.info(f"Wrote {df.shape[0]} x {df.shape[1]} table to {output_path}")
    return output_path


def read_table(
    file_path: str | Path,
    sep: str = ",",
    na_values: list[str] | None = None,
    comment: str | None = "#",
    index_col: int | str | None = None,
) -> pd.DataFrame:
    """
    Read a delimited table written by write_table.

    Args:
        file_path: Path to table.
        sep: Column separator.
        na_values: Strings to treat as missing.
        comment: Comment character.
        index_col: Column to use as index.

    Returns:
        Table as DataFrame.
    """
    validate_file_exists(file_path, "Table")
    return pd.read_csv(
        file_path,
        sep=sep,
        na_values=na_values or ["NA"],
        keep_default_na=False,
        comment=comment,
        index_col=index_col,
    )


def ensure_directory(path: str | Path) -> Path:
    """
    Ensure directory exists, creating if necessary.

    Args:
        path: Directory path.

    Returns:
        Path object.
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path
