"""Line-genotype (``.data``) parser.

Each row holds one MAGIC line: its identifier, five metadata columns and then
two columns per marker. The lines are treated as fully inbred, so only the
first column of each pair is kept. Marker names are not in the file; they
come from the ``.alleles`` file of the same chromosome.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd

from magic_cross.parsers.founders import read_marker_names
from magic_cross.utils.io import iter_lines
from magic_cross.utils.logging import get_logger
from magic_cross.utils.validators import ParseError, ValidationError, validate_unique

logger = get_logger(__name__)

SAMPLE_INDEX = "ID"
DEFAULT_MISSING_TOKENS = ("NA", "0", "N", "-", ".")


def parse_data_file(
    path: str | Path,
    marker_names: list[str],
    missing_tokens: list[str] | tuple[str, ...] = DEFAULT_MISSING_TOKENS,
    metadata_columns: int = 5,
) -> pd.DataFrame:
    """
    Parse one ``.data`` file into a sample x marker table of allele calls.

    Args:
        path: Path to the ``.data`` file.
        marker_names: Marker names for the genotype column pairs, in order.
        missing_tokens: Calls treated as missing.
        metadata_columns: Number of columns between the sample id and the
            first genotype column.

    Returns:
        DataFrame indexed by sample id with one column per marker.

    Raises:
        ParseError: If a row does not have one column pair per marker, or a
            sample id occurs twice.
    """
    path = Path(path)
    n_markers = len(marker_names)
    first = 1 + metadata_columns
    expected_fields = first + 2 * n_markers
    missing = set(missing_tokens)

    samples: list[str] = []
    rows: list[list[object]] = []

    for line_num, line in iter_lines(path, "Line genotype file"):
        tokens = line.split()
        if len(tokens) != expected_fields:
            kept = 1 + max(len(tokens) - first, 0) / 2
            raise ParseError(
                f"row has {kept:g} columns after dropping metadata and duplicate "
                f"allele columns, expected {1 + n_markers} (1 id + {n_markers} markers)",
                path,
                line_num,
                expected=expected_fields,
                actual=len(tokens),
            )

        calls = tokens[first::2]
        samples.append(tokens[0])
        rows.append([np.nan if call in missing else call for call in calls])

    try:
        validate_unique(samples, f"sample ids in {path.name}")
    except ValidationError as e:
        raise ParseError(str(e), path) from e

    table = pd.DataFrame(
        rows,
        index=pd.Index(samples, name=SAMPLE_INDEX),
        columns=marker_names,
        dtype=object,
    )
    logger.debug(f"Parsed {table.shape[0]} lines x {table.shape[1]} markers from {path.name}")
    return table


def parse_line_genotypes(
    data_path: str | Path,
    alleles_path: str | Path,
    missing_tokens: list[str] | tuple[str, ...] = DEFAULT_MISSING_TOKENS,
    metadata_columns: int = 5,
) -> pd.DataFrame:
    """Parse a ``.data`` file, naming its markers from the matching ``.alleles`` file."""
    marker_names = read_marker_names(alleles_path)
    return parse_data_file(data_path, marker_names, missing_tokens, metadata_columns)


def merge_line_genotypes(tables: list[pd.DataFrame]) -> pd.DataFrame:
    """
    Outer-join per-chromosome line tables on sample id.

    A line absent from one chromosome keeps missing values for that
    chromosome's markers. Lines are ordered by first appearance.

    Raises:
        ValueError: If no tables are given.
        ValidationError: If a marker occurs on more than one chromosome.
    """
    if not tables:
        raise ValueError("No line genotype tables to merge")

    order = list(dict.fromkeys(sample for table in tables for sample in table.index))
    merged = pd.concat([table.reindex(order) for table in tables], axis=1)
    merged.index.name = SAMPLE_INDEX
    validate_unique(merged.columns, "markers across line genotype files")

    n_partial = int(
        sum(len(order) - len(table.index) for table in tables)
    )
    logger.info(
        f"Line genotypes: {merged.shape[0]} lines x {merged.shape[1]} markers "
        f"({n_partial} line/chromosome combinations absent)"
    )
    return merged
