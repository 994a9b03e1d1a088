"""Parsers for the per-chromosome HAPPY files."""

from magic_cross.parsers.founders import (
    AllelesParser,
    FounderAlleles,
    concat_founder_alleles,
    parse_alleles_file,
    parse_alleles_files,
    read_marker_names,
)
from magic_cross.parsers.lines import (
    merge_line_genotypes,
    parse_data_file,
    parse_line_genotypes,
)
from magic_cross.parsers.markers import parse_map_file, parse_map_files

__all__ = [
    "AllelesParser",
    "FounderAlleles",
    "concat_founder_alleles",
    "parse_alleles_file",
    "parse_alleles_files",
    "read_marker_names",
    "merge_line_genotypes",
    "parse_data_file",
    "parse_line_genotypes",
    "parse_map_file",
    "parse_map_files",
]
