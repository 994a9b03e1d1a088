"""Export of the reconciled data as an R/qtl2-style cross dataset.

The dataset is a JSON manifest plus four comma-separated tables:

- ``geno.csv``: line genotypes, one row per line
- ``founder_geno.csv``: founder genotypes, one row per founder
- ``gmap.csv``: genetic map (cM)
- ``pmap.csv``: physical map (bp)

Genotypes are coded 1 (reference allele), 2 (heterozygous) and 3 (other
allele). The manifest and tables can be zipped into a single bundle.
"""

from __future__ import annotations

import json
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

from magic_cross.processing.encode import (
    GENOTYPE_LABELS,
    encode_founder_genotypes,
    encode_line_genotypes,
)
from magic_cross.processing.reconcile import ReconciledCross
from magic_cross.utils.config import CrossConfig
from magic_cross.utils.io import ensure_directory, write_table
from magic_cross.utils.logging import get_logger
from magic_cross.utils.validators import ValidationError, validate_marker_tables

logger = get_logger(__name__)


@dataclass
class CrossTables:
    """The four tables of a cross dataset."""

    geno: pd.DataFrame
    founder_geno: pd.DataFrame
    gmap: pd.DataFrame
    pmap: pd.DataFrame

    def marker_sets(self) -> dict[str, list[str]]:
        """Markers listed by each table."""
        return {
            "geno": list(self.geno.columns),
            "founder_geno": list(self.founder_geno.columns),
            "gmap": list(self.gmap["marker"]),
            "pmap": list(self.pmap["marker"]),
        }


def build_tables(cross: ReconciledCross) -> CrossTables:
    """
    Encode genotypes and assemble the map tables.

    Raises:
        ValidationError: If the tables do not list the same markers.
    """
    geno = encode_line_genotypes(cross)
    founder_geno = encode_founder_genotypes(cross)

    markers = cross.founders.markers
    gmap = pd.DataFrame({
        "marker": markers.index,
        "chr": markers["chr"].to_numpy(),
        "pos": markers["cM"].to_numpy(),
    })
    pmap = cross.marker_map[["marker", "chr", "pos"]].reset_index(drop=True)

    tables = CrossTables(geno=geno, founder_geno=founder_geno, gmap=gmap, pmap=pmap)

    missing = validate_marker_tables(tables.marker_sets())
    if any(missing.values()):
        raise ValidationError(
            "Exported tables disagree on markers: "
            + ", ".join(f"{name} lacks {len(m)}" for name, m in missing.items() if m)
        )
    return tables


def build_manifest(config: CrossConfig, strains: list[str]) -> dict[str, Any]:
    """Manifest describing file roles, genotype codes and founders."""
    return {
        "description": config.description,
        "crosstype": config.crosstype,
        "sep": config.sep,
        "na.strings": [config.na_string],
        "comment.char": config.comment_char,
        "geno": config.geno_file,
        "founder_geno": config.founder_geno_file,
        "gmap": config.gmap_file,
        "pmap": config.pmap_file,
        "alleles": list(strains),
        "genotypes": {str(code): label for code, label in GENOTYPE_LABELS.items()},
        "geno_transposed": False,
        "founder_geno_transposed": False,
    }


class Qtl2Exporter:
    """Writes the cross dataset and its zip bundle."""

    def __init__(
        self,
        config: CrossConfig | None = None,
        output_dir: str | Path = "results/cross",
    ) -> None:
        """
        Initialize exporter.

        Args:
            config: Cross export configuration.
            output_dir: Directory for manifest and tables.
        """
        self.config = config or CrossConfig()
        self.output_dir = ensure_directory(output_dir)

    @property
    def manifest_path(self) -> Path:
        return self.output_dir / f"{self.config.name}.json"

    def export(self, cross: ReconciledCross) -> dict[str, Path]:
        """
        Write manifest and tables.

        Returns:
            Mapping of file role to written path.
        """
        tables = build_tables(cross)
        cfg = self.config

        def header(what: str) -> str:
            return f"{cfg.comment_char} {cfg.name}: {what}"

        paths = {
            "geno": write_table(
                tables.geno, self.output_dir / cfg.geno_file, sep=cfg.sep,
                na_rep=cfg.na_string, index=True, comment=header("line genotypes"),
            ),
            "founder_geno": write_table(
                tables.founder_geno, self.output_dir / cfg.founder_geno_file, sep=cfg.sep,
                na_rep=cfg.na_string, index=True, comment=header("founder genotypes"),
            ),
            "gmap": write_table(
                tables.gmap, self.output_dir / cfg.gmap_file, sep=cfg.sep,
                na_rep=cfg.na_string, comment=header("genetic map (cM)"),
            ),
            "pmap": write_table(
                tables.pmap, self.output_dir / cfg.pmap_file, sep=cfg.sep,
                na_rep=cfg.na_string, comment=header("physical map (bp)"),
            ),
        }

        manifest = build_manifest(cfg, cross.strains)
        with open(self.manifest_path, "w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=2)
            f.write("\n")
        paths["manifest"] = self.manifest_path

        logger.info(f"Cross dataset written to {self.output_dir}")
        return paths

    def bundle(self, paths: dict[str, Path], zip_path: str | Path | None = None) -> Path:
        """
        Zip the manifest and tables into one file.

        Args:
            paths: Output of export().
            zip_path: Destination. Defaults to ``<output_dir>/<name>.zip``.

        Returns:
            Path to the zip file.
        """
        zip_path = Path(zip_path) if zip_path else self.output_dir / f"{self.config.name}.zip"
        ensure_directory(zip_path.parent)

        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for role in ("manifest", "geno", "founder_geno", "gmap", "pmap"):
                zf.write(paths[role], arcname=paths[role].name)

        logger.info(f"Bundled cross dataset into {zip_path}")
        return zip_path
