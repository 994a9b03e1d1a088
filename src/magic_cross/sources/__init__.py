"""Retrieval of the raw HAPPY archive."""

from magic_cross.sources.fetcher import (
    ArchiveFetcher,
    ChromosomeFiles,
    FetchError,
    find_chromosome_files,
)

__all__ = [
    "ArchiveFetcher",
    "ChromosomeFiles",
    "FetchError",
    "find_chromosome_files",
]
