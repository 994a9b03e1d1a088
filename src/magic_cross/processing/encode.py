"""Three-state genotype encoding against per-marker reference alleles."""

from __future__ import annotations

import numpy as np
import pandas as pd

from magic_cross.parsers.founders import FounderAlleles
from magic_cross.processing.reconcile import ReconciledCross, most_probable_alleles
from magic_cross.utils.logging import get_logger

logger = get_logger(__name__)

REFERENCE = 1
HETEROZYGOUS = 2
ALTERNATE = 3

GENOTYPE_LABELS = {REFERENCE: "AA", HETEROZYGOUS: "AB", ALTERNATE: "BB"}

# Already-encoded values pass through unchanged
_CODES = {REFERENCE, HETEROZYGOUS, ALTERNATE, "1", "2", "3"}


def _encode_value(call: object, reference: object) -> object:
    if pd.isna(call):
        return pd.NA
    if call in _CODES:
        return int(call)
    if pd.isna(reference):
        return pd.NA
    return REFERENCE if call == reference else ALTERNATE


def encode_calls(calls: pd.DataFrame, reference: pd.Series) -> pd.DataFrame:
    """
    Encode allele calls as 1 (reference), 3 (other allele) or NA.

    Columns are markers. A call equal to the marker's reference allele
    becomes 1, any other call becomes 3, and missing calls stay missing.
    Values that are already codes are kept, so encoding is idempotent.
    Markers without a reference allele encode to NA.

    Args:
        calls: Table of allele calls, one column per marker.
        reference: Reference allele per marker.

    Returns:
        Table of the same shape with nullable integer codes.
    """
    reference = reference.reindex(calls.columns)
    encoded = {
        marker: pd.array(
            [_encode_value(call, ref) for call in calls[marker]],
            dtype="Int64",
        )
        for marker, ref in reference.items()
    }
    return pd.DataFrame(encoded, index=calls.index, columns=calls.columns)


def encode_line_genotypes(cross: ReconciledCross) -> pd.DataFrame:
    """Encode the line genotypes (rows lines, columns markers)."""
    encoded = encode_calls(cross.genotypes, cross.reference_alleles)
    encoded.index.name = "ID"
    _log_code_counts("Line genotypes", encoded)
    return encoded


def encode_founder_genotypes(cross: ReconciledCross) -> pd.DataFrame:
    """Encode the founder calls (rows founders, columns markers)."""
    encoded = encode_calls(cross.founder_calls.T, cross.reference_alleles)
    encoded.index.name = "ID"
    _log_code_counts("Founder genotypes", encoded)
    return encoded


def rederive_reference_alleles(
    founder_codes: pd.DataFrame,
    founders: FounderAlleles,
) -> pd.Series:
    """
    Recover each marker's reference allele from encoded founder genotypes.

    Among the founders coded 1 at a marker, the one whose most probable
    allele has the highest probability supplies the allele symbol.

    Args:
        founder_codes: Founder x marker table of codes.
        founders: The founder allele probabilities the codes came from.

    Returns:
        Reference allele per marker; NA where no founder is coded 1.
    """
    strains = founders.strains
    markers = founders.markers.index
    if not strains:
        return pd.Series(np.nan, index=markers, name="reference_allele", dtype=object)

    calls, _ = most_probable_alleles(founders)
    p1 = founders.allele1[strains].astype(float).fillna(0.0).to_numpy()
    p2 = founders.allele2[strains].astype(float).fillna(0.0).to_numpy()

    codes = founder_codes.T.reindex(index=markers, columns=strains)
    is_reference = codes.fillna(0).to_numpy(dtype=int) == REFERENCE

    # -1 marks founders not coded as reference
    weighted = np.where(is_reference, np.maximum(p1, p2), -1.0)
    best = weighted.argmax(axis=1)
    rows = np.arange(len(markers))

    derived = calls.to_numpy(dtype=object)[rows, best]
    derived[weighted[rows, best] < 0] = np.nan
    return pd.Series(derived, index=markers, name="reference_allele", dtype=object)


def _log_code_counts(title: str, encoded: pd.DataFrame) -> None:
    values = encoded.to_numpy(dtype=object).ravel()
    counts = pd.Series(values).value_counts(dropna=False)
    summary = ", ".join(f"{code}={n}" for code, n in counts.items())
    logger.info(f"{title}: {encoded.shape[0]} x {encoded.shape[1]} ({summary})")
