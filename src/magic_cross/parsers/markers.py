"""Marker-map (``.map``) parser."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from magic_cross.utils.io import iter_lines
from magic_cross.utils.logging import get_logger
from magic_cross.utils.validators import ParseError, validate_unique

logger = get_logger(__name__)

MAP_COLUMNS = ["marker", "info1", "info2", "chr", "pos"]


def parse_map_file(path: str | Path) -> pd.DataFrame:
    """
    Parse one tab-delimited ``.map`` file.

    Columns are marker name, two text fields, chromosome and physical
    position in bp. A first line whose chromosome is not an integer is taken
    as a header and skipped.

    Args:
        path: Path to the ``.map`` file.

    Returns:
        DataFrame with columns marker, info1, info2, chr, pos.

    Raises:
        ParseError: On a wrong column count or non-integer coordinates.
    """
    path = Path(path)
    records = []

    for i, (line_num, line) in enumerate(iter_lines(path, "Marker map file")):
        fields = [f.strip() for f in line.split("\t")]
        if len(fields) != len(MAP_COLUMNS):
            raise ParseError("wrong number of map columns", path, line_num,
                             expected=len(MAP_COLUMNS), actual=len(fields))

        marker, info1, info2, chrom, pos = fields
        try:
            chrom_value = int(chrom)
        except ValueError:
            if i == 0:
                continue
            raise ParseError(f"non-integer chromosome {chrom!r}", path, line_num) from None
        try:
            pos_value = int(pos)
        except ValueError:
            raise ParseError(f"non-integer position {pos!r}", path, line_num) from None

        records.append((marker, info1, info2, chrom_value, pos_value))

    table = pd.DataFrame(records, columns=MAP_COLUMNS)
    table = table.astype({"chr": "int64", "pos": "int64"})
    logger.debug(f"Parsed {len(table)} map entries from {path.name}")
    return table


def parse_map_files(paths: list[str | Path]) -> pd.DataFrame:
    """
    Parse and concatenate several ``.map`` files.

    Raises:
        ValidationError: If a marker is listed twice.
    """
    if not paths:
        raise ValueError("No map files to parse")

    table = pd.concat([parse_map_file(p) for p in paths], ignore_index=True)
    validate_unique(table["marker"], "markers across map files")
    logger.info(f"Marker map: {len(table)} markers on {table['chr'].nunique()} chromosomes")
    return table
