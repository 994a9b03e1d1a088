"""Export of the reconciled data as one merged HAPPY dataset.

The per-chromosome ``.alleles``, ``.data`` and ``.map`` files are written
back as a single file of each kind, chromosome after chromosome and in the
original marker order, so the result can be fed to HAPPY-based imputation
and read again by the parsers in ``magic_cross.parsers``.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd

from magic_cross.processing.reconcile import ReconciledCross
from magic_cross.utils.io import ensure_directory
from magic_cross.utils.logging import get_logger

logger = get_logger(__name__)

PLACEHOLDER = "NA"

# Probabilities are padded to this many decimals when that loses nothing
MIN_DECIMALS = 3


def format_probability(value: float, decimals: int | None = None) -> str:
    """
    Render one probability for an ``.alleles`` row.

    Args:
        value: Probability, NaN for missing.
        decimals: Round to this many decimals. If None, the value is written
            exactly, with at least three decimals.

    Returns:
        The formatted value, or ``NA`` when missing.
    """
    if pd.isna(value):
        return PLACEHOLDER
    if decimals is not None:
        return f"{value:.{decimals}f}"

    text = f"{value:.{MIN_DECIMALS}f}"
    if float(text) == value:
        return text
    return np.format_float_positional(value, unique=True, trim="-")


class HappyExporter:
    """Writes ``<prefix>.alleles``, ``<prefix>.data`` and ``<prefix>.map``."""

    def __init__(
        self,
        output_dir: str | Path = "results/happy",
        prefix: str = "magic",
        decimals: int | None = None,
        metadata_columns: int = 5,
    ) -> None:
        """
        Initialize exporter.

        Args:
            output_dir: Directory for the three files.
            prefix: File name stem.
            decimals: Round probabilities to this many decimals. By default
                they are written without loss.
            metadata_columns: Placeholder columns after the sample id in
                the ``.data`` file.
        """
        self.output_dir = ensure_directory(output_dir)
        self.prefix = prefix
        self.decimals = decimals
        self.metadata_columns = metadata_columns

    def export(self, cross: ReconciledCross) -> dict[str, Path]:
        """
        Write all three files.

        Returns:
            Mapping of file role to written path.
        """
        paths = {
            "alleles": self.write_alleles(cross, self.output_dir / f"{self.prefix}.alleles"),
            "data": self.write_data(cross, self.output_dir / f"{self.prefix}.data"),
            "map": self.write_map(cross, self.output_dir / f"{self.prefix}.map"),
        }
        logger.info(f"HAPPY export written to {self.output_dir}")
        return paths

    def _format_row(self, values: pd.Series) -> str:
        return "\t".join(format_probability(v, self.decimals) for v in values)

    def write_alleles(self, cross: ReconciledCross, path: Path) -> Path:
        """Write the merged four-line-per-marker block file."""
        founders = cross.founders
        strains = founders.strains

        with open(path, "w", encoding="utf-8") as f:
            f.write(f"markers {len(founders)} strains {len(strains)}\n")
            f.write("\t".join(["strain_names", *strains]) + "\n")

            for marker, info in founders.markers.iterrows():
                f.write(f"marker {marker} {info['header_code']} {info['chr']} {info['cM']}\n")
                f.write(f"allele\tNA\t{self._format_row(founders.missing.loc[marker])}\n")
                for table in (founders.allele1, founders.allele2):
                    row = table.loc[marker]
                    f.write(f"allele\t{row['allele']}\t{self._format_row(row[strains])}\n")

        logger.info(f"Wrote {len(founders)} marker blocks to {path}")
        return path

    def write_data(self, cross: ReconciledCross, path: Path) -> Path:
        """Write line genotypes with every call doubled."""
        placeholders = [PLACEHOLDER] * self.metadata_columns

        with open(path, "w", encoding="utf-8") as f:
            for sample, calls in cross.genotypes.iterrows():
                fields = [str(sample), *placeholders]
                for call in calls:
                    allele = PLACEHOLDER if pd.isna(call) else str(call)
                    fields.extend((allele, allele))
                f.write("\t".join(fields) + "\n")

        logger.info(f"Wrote {cross.genotypes.shape[0]} lines to {path}")
        return path

    def write_map(self, cross: ReconciledCross, path: Path) -> Path:
        """Write the reconciled marker map."""
        cross.marker_map[["marker", "info1", "info2", "chr", "pos"]].to_csv(
            path, sep="\t", header=False, index=False, lineterminator="\n"
        )
        logger.info(f"Wrote {len(cross.marker_map)} map entries to {path}")
        return path
