"""Pytest configuration and fixtures for MAGIC cross tests."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest

STRAINS = ["Bur-0", "Col-0", "Ler-0", "Zu-0"]

# name, chr, cM, (allele1, allele2), missing, p(allele1), p(allele2)
CHR1_MARKERS = [
    ("M1", "1", 0.5, ("A", "G"), [0.0] * 4, [0.1, 0.9, 0.2, 0.8], [0.9, 0.1, 0.8, 0.2]),
    ("M2", "1", 1.2, ("C", "T"), [0.053] * 4, [1.0, 0.0, 1.0, 0.0], [0.0, 1.0, 0.0, 1.0]),
    ("M3", "1", 2.0, ("A", "T"), [0.0] * 4, [0.5] * 4, [0.5] * 4),
]
CHR2_MARKERS = [
    ("M4", "2", 0.0, ("G", "C"), [0.0] * 4, [0.0, 0.7, 0.0, 1.0], [0.0, 0.3, 0.0, 0.0]),
    ("M5", "2", 3.3, ("A", "C"), [0.0] * 4, [0.2, 0.3, 0.9, 0.4], [0.8, 0.7, 0.1, 0.6]),
]

CHR1_LINES = {
    "L1": ["A", "C", "A"],
    "L2": ["G", "T", "NA"],
    "L3": ["A", "T", "T"],
}
CHR2_LINES = {
    "L1": ["G", "C"],
    "L2": ["C", "A"],
    "L4": ["NA", "C"],
}

# M5 is genotyped but unmapped; M9 is mapped but not genotyped
CHR1_MAP = [("M1", "snp", "TAIR10", 1, 1000), ("M2", "snp", "TAIR10", 1, 2500),
            ("M3", "snp", "TAIR10", 1, 4000)]
CHR2_MAP = [("M4", "snp", "TAIR10", 2, 1500), ("M9", "snp", "TAIR10", 2, 9000)]


def format_probability(value: float) -> str:
    """Three decimals, or every digit when three would round."""
    return f"{value:.3f}" if round(value, 3) == value else repr(value)


def format_alleles(markers: list[tuple], strains: list[str], declared: int | None = None) -> str:
    """Render marker tuples as a HAPPY ``.alleles`` file."""
    count = len(markers) if declared is None else declared
    lines = [f"markers {count} strains {len(strains)}", "\t".join(["strain_names", *strains])]
    for name, chrom, cm, (a1, a2), missing, p1, p2 in markers:
        lines.append(f"marker {name} 3 {chrom} {cm}")
        lines.append("\t".join(["allele", "NA", *(format_probability(v) for v in missing)]))
        lines.append("\t".join(["allele", a1, *(format_probability(v) for v in p1)]))
        lines.append("\t".join(["allele", a2, *(format_probability(v) for v in p2)]))
    return "\n".join(lines) + "\n"


def format_data(lines: dict[str, list[str]]) -> str:
    """Render line calls as a HAPPY ``.data`` file with doubled calls."""
    rows = []
    for sample, calls in lines.items():
        fields = [sample, "NA", "NA", "NA", "NA", "NA"]
        for call in calls:
            fields.extend((call, call))
        rows.append(" ".join(fields))
    return "\n".join(rows) + "\n"


def format_map(rows: list[tuple]) -> str:
    """Render map rows as a tab-delimited ``.map`` file."""
    return "\n".join("\t".join(str(v) for v in row) for row in rows) + "\n"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Undo setup_logging so caplog sees package records in every test."""
    yield
    package_logger = logging.getLogger("magic_cross")
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


@pytest.fixture
def make_alleles() -> Callable[..., str]:
    """Return the ``.alleles`` formatter."""
    return format_alleles


@pytest.fixture
def write_chromosome() -> Callable[..., Path]:
    """Return a function writing one chromosome's three HAPPY files."""

    def _write(
        directory: Path,
        name: str,
        markers: list[tuple],
        lines: dict[str, list[str]],
        map_rows: list[tuple],
        strains: list[str] = STRAINS,
    ) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        alleles = directory / f"{name}.alleles"
        alleles.write_text(format_alleles(markers, strains))
        (directory / f"{name}.data").write_text(format_data(lines))
        (directory / f"{name}.map").write_text(format_map(map_rows))
        return alleles

    return _write


@pytest.fixture
def happy_dir(temp_dir: Path, write_chromosome: Callable[..., Path]) -> Path:
    """Directory with two chromosomes of synthetic HAPPY files."""
    source = temp_dir / "happy"
    write_chromosome(source, "chr1", CHR1_MARKERS, CHR1_LINES, CHR1_MAP)
    write_chromosome(source, "chr2", CHR2_MARKERS, CHR2_LINES, CHR2_MAP)
    return source


@pytest.fixture
def alleles_file(happy_dir: Path) -> Path:
    """The chromosome 1 ``.alleles`` file."""
    return happy_dir / "chr1.alleles"


@pytest.fixture
def reconciled(happy_dir: Path):
    """The synthetic dataset parsed and reconciled against Col-0."""
    from magic_cross.parsers import (
        merge_line_genotypes,
        parse_alleles_files,
        parse_line_genotypes,
        parse_map_files,
    )
    from magic_cross.processing import Reconciler

    chromosomes = ["chr1", "chr2"]
    founders = parse_alleles_files([happy_dir / f"{c}.alleles" for c in chromosomes])
    genotypes = merge_line_genotypes([
        parse_line_genotypes(happy_dir / f"{c}.data", happy_dir / f"{c}.alleles")
        for c in chromosomes
    ])
    marker_map = parse_map_files([happy_dir / f"{c}.map" for c in chromosomes])

    return Reconciler("Col-0").reconcile(founders, genotypes, marker_map)
