"""Download and unpack the MAGIC HAPPY archive.

The archive holds one ``.alleles``, ``.data`` and ``.map`` file per
chromosome. Nothing here retries: a failed download or a corrupt archive
stops the run and leaves the working directory for inspection.
"""

from __future__ import annotations

import shutil
import tarfile
import zipfile
from dataclasses import dataclass
from pathlib import Path

import requests
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TransferSpeedColumn,
)

from magic_cross.utils.config import SourceConfig
from magic_cross.utils.io import ensure_directory, natural_sort_key
from magic_cross.utils.logging import get_logger
from magic_cross.utils.validators import validate_file_exists

logger = get_logger(__name__)


class FetchError(RuntimeError):
    """Raised when the archive cannot be downloaded or unpacked."""

    pass


@dataclass
class ChromosomeFiles:
    """The three HAPPY files describing one chromosome."""

    name: str
    alleles: Path
    data: Path
    map: Path


class ArchiveFetcher:
    """Fetches the genotype archive into a working directory."""

    def __init__(
        self,
        config: SourceConfig | None = None,
        work_dir: str | Path = "work",
        session: requests.Session | None = None,
        show_progress: bool = True,
    ) -> None:
        """
        Initialize fetcher.

        Args:
            config: Archive source configuration.
            work_dir: Directory receiving the archive and extracted files.
            session: Optional requests session (one is created otherwise).
            show_progress: Whether to draw a progress bar while downloading.
        """
        self.config = config or SourceConfig()
        self.work_dir = Path(work_dir)
        self.session = session or requests.Session()
        self.show_progress = show_progress

    def download(self, url: str, destination: str | Path) -> Path:
        """
        Download a single file with one HTTP GET.

        Args:
            url: Source URL.
            destination: Local file path.

        Returns:
            Path to the downloaded file.

        Raises:
            FetchError: On any network or HTTP error.
        """
        destination = Path(destination)
        ensure_directory(destination.parent)

        logger.info(f"Downloading {url}")

        try:
            with self.session.get(url, stream=True, timeout=self.config.timeout) as response:
                response.raise_for_status()
                total = int(response.headers.get("Content-Length", 0)) or None

                with open(destination, "wb") as f, self._progress() as progress:
                    task = progress.add_task(destination.name, total=total)
                    for chunk in response.iter_content(chunk_size=self.config.chunk_size):
                        if chunk:
                            f.write(chunk)
                            progress.update(task, advance=len(chunk))
        except requests.RequestException as e:
            raise FetchError(f"Download failed for {url}: {e}") from e

        logger.info(f"Saved {destination.stat().st_size:,} bytes to {destination}")
        return destination

    def _progress(self) -> Progress:
        return Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            disable=not self.show_progress,
            transient=True,
        )

    def extract(self, archive: str | Path, target_dir: str | Path | None = None) -> Path:
        """
        Unpack a tar or zip archive.

        Args:
            archive: Archive path.
            target_dir: Extraction directory. Defaults to the working directory.

        Returns:
            Directory holding the extracted files.

        Raises:
            FetchError: If the archive cannot be read.
        """
        archive = Path(archive)
        validate_file_exists(archive, "Archive")
        target_dir = ensure_directory(target_dir or self.work_dir)

        logger.info(f"Extracting {archive.name} into {target_dir}")

        try:
            if zipfile.is_zipfile(archive):
                with zipfile.ZipFile(archive) as zf:
                    zf.extractall(target_dir)
            elif tarfile.is_tarfile(archive):
                with tarfile.open(archive) as tf:
                    tf.extractall(target_dir, filter="data")
            else:
                raise FetchError(f"Unrecognised archive format: {archive}")
        except (tarfile.TarError, zipfile.BadZipFile, OSError) as e:
            raise FetchError(f"Could not extract {archive}: {e}") from e

        return target_dir

    def fetch(self, url: str | None = None) -> Path:
        """
        Download the archive and unpack it into the working directory.

        Args:
            url: Archive URL. Defaults to the configured source.

        Returns:
            Directory holding the extracted files.
        """
        url = url or self.config.url
        archive_name = url.rstrip("/").rsplit("/", 1)[-1] or self.config.archive_name
        archive = self.download(url, self.work_dir / archive_name)
        return self.extract(archive, self.work_dir / "extracted")

    def cleanup(self) -> None:
        """Remove the working directory and everything in it."""
        if self.work_dir.exists():
            shutil.rmtree(self.work_dir)
            logger.info(f"Removed working directory {self.work_dir}")


def find_chromosome_files(root: str | Path) -> list[ChromosomeFiles]:
    """
    Locate per-chromosome HAPPY files below a directory.

    Every ``*.alleles`` file is paired with the ``.data`` and ``.map`` file
    of the same stem. Chromosomes are returned in natural order.

    Args:
        root: Directory to search recursively.

    Returns:
        One ChromosomeFiles per ``.alleles`` file.

    Raises:
        FileNotFoundError: If no ``.alleles`` files are found or a partner
            file is missing.
    """
    root = Path(root)
    alleles_files = sorted(root.rglob("*.alleles"), key=natural_sort_key)

    if not alleles_files:
        raise FileNotFoundError(f"No .alleles files found under {root}")

    chromosomes = []
    for alleles in alleles_files:
        data = alleles.with_suffix(".data")
        map_file = alleles.with_suffix(".map")
        validate_file_exists(data, "Line genotype file")
        validate_file_exists(map_file, "Marker map file")
        chromosomes.append(ChromosomeFiles(alleles.stem, alleles, data, map_file))

    logger.info(f"Found HAPPY files for {len(chromosomes)} chromosomes under {root}")
    return chromosomes
