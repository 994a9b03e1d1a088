"""Reconciliation and genotype encoding."""

from magic_cross.processing.reconcile import (
    ReconciledCross,
    ReconcileStats,
    Reconciler,
    most_probable_alleles,
)
from magic_cross.processing.encode import (
    GENOTYPE_LABELS,
    encode_calls,
    encode_founder_genotypes,
    encode_line_genotypes,
    rederive_reference_alleles,
)

__all__ = [
    "ReconciledCross",
    "ReconcileStats",
    "Reconciler",
    "most_probable_alleles",
    "GENOTYPE_LABELS",
    "encode_calls",
    "encode_founder_genotypes",
    "encode_line_genotypes",
    "rederive_reference_alleles",
]
