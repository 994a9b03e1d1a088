"""Founder-allele (``.alleles``) parser.

A HAPPY ``.alleles`` file describes, for every marker, the probability that
each founder strain carries each allele::

    markers <M> strains <S>
    strain_names <strain_1> ... <strain_S>
    marker <name> 3 <chromosome> <cM>
    allele NA <S probabilities>
    allele <symbol> <S probabilities>
    allele <symbol> <S probabilities>

The four-line marker blocks are read with an explicit state machine, so every
probability row is tied to the marker header that precedes it.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
import pandas as pd

from magic_cross.utils.io import iter_lines
from magic_cross.utils.logging import get_logger
from magic_cross.utils.validators import (
    ParseError,
    validate_row_count,
    validate_strain_order,
    validate_unique,
)

logger = get_logger(__name__)

MISSING_ALLELE = "NA"

# Probability every strain gets at a marker carrying no information
UNINFORMATIVE_PROBABILITY = round(1 / 19, 3)


class ParserState(enum.Enum):
    """Which record of a marker block the parser expects next."""

    EXPECT_HEADER = "marker header"
    EXPECT_MISSING = "missing-allele row"
    EXPECT_ALLELE1 = "first allele row"
    EXPECT_ALLELE2 = "second allele row"


@dataclass
class FounderAlleles:
    """Founder allele probabilities, all tables indexed by marker name."""

    strains: list[str]
    markers: pd.DataFrame
    missing: pd.DataFrame
    allele1: pd.DataFrame
    allele2: pd.DataFrame
    sources: list[Path] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.markers)

    @property
    def marker_names(self) -> list[str]:
        """Marker names in file order."""
        return self.markers.index.tolist()

    def subset(self, markers: list[str] | pd.Index) -> FounderAlleles:
        """Restrict every table to the given markers, in the given order."""
        markers = list(markers)
        return FounderAlleles(
            strains=list(self.strains),
            markers=self.markers.loc[markers],
            missing=self.missing.loc[markers],
            allele1=self.allele1.loc[markers],
            allele2=self.allele2.loc[markers],
            sources=list(self.sources),
        )


class AllelesParser:
    """State-machine parser for one ``.alleles`` file."""

    def __init__(
        self,
        path: str | Path,
        uninformative_probability: float = UNINFORMATIVE_PROBABILITY,
        decimals: int = 3,
    ) -> None:
        """
        Initialize parser.

        Args:
            path: Path to the ``.alleles`` file.
            uninformative_probability: Missing-row value marking a marker as
                uninformative when every strain has it.
            decimals: Rounding applied before that comparison.
        """
        self.path = Path(path)
        self.uninformative_probability = uninformative_probability
        self.decimals = decimals

        self.declared_markers = 0
        self.strains: list[str] = []
        self.state = ParserState.EXPECT_HEADER

        self._current: str | None = None
        self._marker_rows: list[dict] = []
        self._missing_rows: list[list[float]] = []
        self._allele1_rows: list[tuple[str, list[float]]] = []
        self._allele2_rows: list[tuple[str, list[float]]] = []

    def parse(self) -> FounderAlleles:
        """
        Parse the file.

        Returns:
            FounderAlleles for this chromosome.

        Raises:
            ParseError: On any structural problem, including a parsed row
                count that differs from the declared marker count.
        """
        lines = iter_lines(self.path, "Founder allele file")

        self.declared_markers, n_strains = _read_counts(self.path, lines)
        self.strains = _read_strains(self.path, lines, n_strains)

        for line_num, line in lines:
            self._consume(line_num, line.split())

        if self.state is not ParserState.EXPECT_HEADER:
            raise ParseError(
                f"file ends inside the block for marker {self._current} "
                f"(expected {self.state.value})",
                self.path,
            )

        for rows, what in (
            (self._marker_rows, "marker headers"),
            (self._missing_rows, "missing-allele rows"),
            (self._allele1_rows, "first allele rows"),
            (self._allele2_rows, "second allele rows"),
        ):
            validate_row_count(len(rows), self.declared_markers, self.path, what)

        founders = self._build_tables()
        logger.debug(
            f"Parsed {len(founders)} markers x {len(self.strains)} strains "
            f"from {self.path.name}"
        )
        return founders

    def _consume(self, line_num: int, tokens: list[str]) -> None:
        """Advance the state machine by one record."""
        if self.state is ParserState.EXPECT_HEADER:
            self._marker_rows.append(self._read_header(line_num, tokens))
            self.state = ParserState.EXPECT_MISSING
        elif self.state is ParserState.EXPECT_MISSING:
            allele, values = self._read_allele_row(line_num, tokens)
            if allele != MISSING_ALLELE:
                raise ParseError(
                    f"expected 'allele {MISSING_ALLELE}' row for marker {self._current}, "
                    f"got allele {allele}",
                    self.path,
                    line_num,
                )
            self._missing_rows.append(values)
            self.state = ParserState.EXPECT_ALLELE1
        elif self.state is ParserState.EXPECT_ALLELE1:
            self._allele1_rows.append(self._read_allele_row(line_num, tokens))
            self.state = ParserState.EXPECT_ALLELE2
        else:
            self._allele2_rows.append(self._read_allele_row(line_num, tokens))
            self.state = ParserState.EXPECT_HEADER

    def _read_header(self, line_num: int, tokens: list[str]) -> dict:
        if len(tokens) != 5 or tokens[0] != "marker":
            raise ParseError(
                f"expected 'marker <name> 3 <chromosome> <position>', got {' '.join(tokens)!r}",
                self.path,
                line_num,
            )

        _, name, header_code, chromosome, position = tokens
        try:
            cm = float(position)
        except ValueError:
            raise ParseError(
                f"invalid map position {position!r} for marker {name}",
                self.path,
                line_num,
            ) from None

        self._current = name
        return {"marker": name, "chr": chromosome, "cM": cm, "header_code": header_code}

    def _read_allele_row(self, line_num: int, tokens: list[str]) -> tuple[str, list[float]]:
        if len(tokens) < 2 or tokens[0] != "allele":
            raise ParseError(
                f"expected {self.state.value} for marker {self._current}, "
                f"got {' '.join(tokens[:3])!r}",
                self.path,
                line_num,
            )

        values = tokens[2:]
        if len(values) != len(self.strains):
            raise ParseError(
                f"wrong number of probabilities for marker {self._current}",
                self.path,
                line_num,
                expected=len(self.strains),
                actual=len(values),
            )

        try:
            probabilities = [np.nan if v == MISSING_ALLELE else float(v) for v in values]
        except ValueError as e:
            raise ParseError(
                f"invalid probability for marker {self._current}: {e}",
                self.path,
                line_num,
            ) from None

        return tokens[1], probabilities

    def _build_tables(self) -> FounderAlleles:
        markers = pd.DataFrame(
            self._marker_rows, columns=["marker", "chr", "cM", "header_code"]
        ).set_index("marker")
        index = markers.index
        validate_unique(index, f"markers in {self.path.name}")

        missing = pd.DataFrame(self._missing_rows, index=index, columns=self.strains)
        allele1 = _allele_table(self._allele1_rows, index, self.strains)
        allele2 = _allele_table(self._allele2_rows, index, self.strains)

        rounded = missing.round(self.decimals)
        markers["uninformative"] = rounded.eq(self.uninformative_probability).all(axis=1)

        return FounderAlleles(
            strains=list(self.strains),
            markers=markers,
            missing=missing,
            allele1=allele1,
            allele2=allele2,
            sources=[self.path],
        )


def _allele_table(
    rows: list[tuple[str, list[float]]],
    index: pd.Index,
    strains: list[str],
) -> pd.DataFrame:
    table = pd.DataFrame([values for _, values in rows], index=index, columns=strains)
    table.insert(0, "allele", [allele for allele, _ in rows])
    return table


def _read_counts(path: Path, lines) -> tuple[int, int]:
    """Read ``markers <M> strains <S>`` from the first line."""
    try:
        line_num, line = next(lines)
    except StopIteration:
        raise ParseError("empty founder allele file", path) from None

    tokens = line.split()
    if len(tokens) != 4 or tokens[0] != "markers" or tokens[2] != "strains":
        raise ParseError(f"expected 'markers <M> strains <S>', got {line!r}", path, line_num)

    try:
        return int(tokens[1]), int(tokens[3])
    except ValueError:
        raise ParseError(f"non-integer counts in {line!r}", path, line_num) from None


def _read_strains(path: Path, lines, n_strains: int) -> list[str]:
    """Read the strain name list from the second line."""
    try:
        line_num, line = next(lines)
    except StopIteration:
        raise ParseError("missing strain name line", path) from None

    names = line.split("\t") if "\t" in line else line.split()
    names = [name.strip() for name in names if name.strip()]
    if names and names[0] == "strain_names":
        names = names[1:]

    if len(names) != n_strains:
        raise ParseError("strain names do not match declared strain count", path,
                         line_num, expected=n_strains, actual=len(names))
    validate_unique(names, f"strains in {path.name}")
    return names


def parse_alleles_file(
    path: str | Path,
    uninformative_probability: float = UNINFORMATIVE_PROBABILITY,
    decimals: int = 3,
) -> FounderAlleles:
    """Parse one ``.alleles`` file."""
    return AllelesParser(path, uninformative_probability, decimals).parse()


def read_marker_names(path: str | Path) -> list[str]:
    """
    Read the marker names of an ``.alleles`` file in file order.

    Only the ``marker`` header lines are inspected.

    Raises:
        ParseError: If the number of headers differs from the declared count.
    """
    path = Path(path)
    lines = iter_lines(path, "Founder allele file")
    declared, _ = _read_counts(path, lines)

    names = []
    for line_num, line in lines:
        tokens = line.split()
        if tokens and tokens[0] == "marker":
            if len(tokens) < 2:
                raise ParseError("marker header without a name", path, line_num)
            names.append(tokens[1])

    validate_row_count(len(names), declared, path, "marker headers")
    return names


def concat_founder_alleles(parts: list[FounderAlleles]) -> FounderAlleles:
    """
    Concatenate per-chromosome founder tables into a genome-wide table.

    Raises:
        ValueError: If no tables are given.
        ParseError: If the files disagree on the founder strains.
    """
    if not parts:
        raise ValueError("No founder allele tables to concatenate")

    strains = parts[0].strains
    for part in parts[1:]:
        validate_strain_order(strains, part.strains, part.sources[0] if part.sources else "")

    founders = FounderAlleles(
        strains=list(strains),
        markers=pd.concat([p.markers for p in parts]),
        missing=pd.concat([p.missing for p in parts]),
        allele1=pd.concat([p.allele1 for p in parts]),
        allele2=pd.concat([p.allele2 for p in parts]),
        sources=[source for p in parts for source in p.sources],
    )

    n_uninformative = int(founders.markers["uninformative"].sum())
    logger.info(
        f"Founder alleles: {len(founders)} markers, {len(strains)} strains, "
        f"{n_uninformative} uninformative for missingness"
    )
    return founders


def parse_alleles_files(
    paths: list[str | Path],
    uninformative_probability: float = UNINFORMATIVE_PROBABILITY,
    decimals: int = 3,
) -> FounderAlleles:
    """Parse and concatenate several ``.alleles`` files."""
    return concat_founder_alleles(
        [parse_alleles_file(p, uninformative_probability, decimals) for p in paths]
    )
