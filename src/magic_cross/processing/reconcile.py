"""Reconciliation of founder, line and map tables on marker identity.

A marker survives only if it has a map entry, line genotypes and founder
allele probabilities. Markers failing any of these are dropped and counted;
the counts are recomputed on every run.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd

from magic_cross.parsers.founders import FounderAlleles
from magic_cross.utils.logging import get_logger
from magic_cross.utils.validators import ValidationError, validate_unique

logger = get_logger(__name__)


@dataclass
class ReconcileStats:
    """Marker bookkeeping from one reconciliation."""

    genotype_markers: int
    map_markers: int
    founder_markers: int
    dropped_from_genotypes: int
    dropped_from_map: int
    dropped_without_founders: int
    retained_markers: int
    samples: int
    founders: int
    uninformative_markers: int
    reference_ties: int
    missing_reference: int

    def as_dict(self) -> dict[str, int]:
        """Stats as an ordered dictionary."""
        return dict(self.__dict__)


@dataclass
class ReconciledCross:
    """Tables restricted to the shared marker set, in founder-file order."""

    founders: FounderAlleles
    genotypes: pd.DataFrame
    marker_map: pd.DataFrame
    reference_alleles: pd.Series
    founder_calls: pd.DataFrame
    reference_strain: str
    stats: ReconcileStats

    @property
    def markers(self) -> list[str]:
        """Retained marker names."""
        return self.founders.marker_names

    @property
    def strains(self) -> list[str]:
        """Founder strain names in column order."""
        return list(self.founders.strains)


def most_probable_alleles(founders: FounderAlleles) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Call the most probable allele for every founder at every marker.

    The first allele row wins ties. A founder whose two allele probabilities
    are both zero or missing gets no call.

    Returns:
        Tuple of (calls, ties): calls is a marker x strain table of allele
        symbols, ties flags the calls decided by the tie-break.
    """
    strains = founders.strains
    p1 = founders.allele1[strains].astype(float).fillna(0.0).to_numpy()
    p2 = founders.allele2[strains].astype(float).fillna(0.0).to_numpy()
    a1 = founders.allele1["allele"].to_numpy(dtype=object)[:, None]
    a2 = founders.allele2["allele"].to_numpy(dtype=object)[:, None]

    no_call = (p1 <= 0) & (p2 <= 0)
    symbols = np.where(p1 >= p2, a1, a2).astype(object)
    symbols[no_call] = np.nan

    index = founders.markers.index
    calls = pd.DataFrame(symbols, index=index, columns=strains, dtype=object)
    ties = pd.DataFrame((p1 == p2) & ~no_call, index=index, columns=strains)
    return calls, ties


class Reconciler:
    """Intersects the parsed tables and derives reference alleles."""

    def __init__(self, reference_strain: str = "Col-0") -> None:
        """
        Initialize reconciler.

        Args:
            reference_strain: Founder whose alleles define the reference.
        """
        self.reference_strain = reference_strain

    def reconcile(
        self,
        founders: FounderAlleles,
        genotypes: pd.DataFrame,
        marker_map: pd.DataFrame,
    ) -> ReconciledCross:
        """
        Restrict all tables to markers present in each of them.

        Args:
            founders: Genome-wide founder allele tables.
            genotypes: Sample x marker table of line calls.
            marker_map: Map table with a ``marker`` column.

        Returns:
            ReconciledCross with aligned tables and derived alleles.

        Raises:
            ValidationError: On duplicate markers or an unknown reference strain.
        """
        validate_unique(founders.markers.index, "markers in founder alleles")
        validate_unique(genotypes.columns, "markers in line genotypes")
        validate_unique(marker_map["marker"], "markers in map")

        if self.reference_strain not in founders.strains:
            raise ValidationError(
                f"Reference strain {self.reference_strain!r} is not among the founders"
            )

        geno_markers = set(genotypes.columns)
        map_markers = set(marker_map["marker"])
        founder_markers = set(founders.markers.index)

        shared = geno_markers & map_markers
        dropped_geno = sorted(geno_markers - map_markers)
        dropped_map = sorted(map_markers - geno_markers)
        without_founders = sorted(shared - founder_markers)

        if dropped_geno:
            logger.warning(
                f"Dropping {len(dropped_geno)} genotyped markers without map information"
            )
            logger.debug(f"Unmapped markers: {', '.join(dropped_geno)}")
        if dropped_map:
            logger.warning(f"Dropping {len(dropped_map)} mapped markers without genotypes")
        if without_founders:
            logger.warning(
                f"Dropping {len(without_founders)} markers without founder alleles"
            )

        retained = [m for m in founders.markers.index if m in shared]

        kept_founders = founders.subset(retained)
        kept_genotypes = genotypes.loc[:, retained]
        kept_map = marker_map.set_index("marker").loc[retained].reset_index()

        calls, ties = most_probable_alleles(kept_founders)
        reference = calls[self.reference_strain].rename("reference_allele")

        n_ties = int(ties[self.reference_strain].sum())
        if n_ties:
            logger.warning(
                f"{n_ties} reference alleles decided by tie-break "
                f"(first allele row wins at {self.reference_strain})"
            )
        n_missing_ref = int(reference.isna().sum())
        if n_missing_ref:
            logger.warning(f"{n_missing_ref} markers have no reference allele call")

        self._check_chromosomes(kept_founders, kept_map)

        stats = ReconcileStats(
            genotype_markers=len(geno_markers),
            map_markers=len(map_markers),
            founder_markers=len(founder_markers),
            dropped_from_genotypes=len(dropped_geno),
            dropped_from_map=len(dropped_map),
            dropped_without_founders=len(without_founders),
            retained_markers=len(retained),
            samples=kept_genotypes.shape[0],
            founders=len(kept_founders.strains),
            uninformative_markers=int(kept_founders.markers["uninformative"].sum()),
            reference_ties=n_ties,
            missing_reference=n_missing_ref,
        )

        logger.info(
            f"Reconciled {stats.retained_markers} markers "
            f"({stats.genotype_markers} genotyped, {stats.map_markers} mapped)"
        )

        return ReconciledCross(
            founders=kept_founders,
            genotypes=kept_genotypes,
            marker_map=kept_map,
            reference_alleles=reference,
            founder_calls=calls,
            reference_strain=self.reference_strain,
            stats=stats,
        )

    def _check_chromosomes(self, founders: FounderAlleles, marker_map: pd.DataFrame) -> None:
        """Warn when the allele and map files place a marker on different chromosomes."""
        allele_chr = founders.markers["chr"].astype(str).to_numpy()
        map_chr = marker_map["chr"].astype(str).to_numpy()
        n_conflicts = int((allele_chr != map_chr).sum())
        if n_conflicts:
            logger.warning(
                f"{n_conflicts} markers have different chromosomes in the allele and map files"
            )
