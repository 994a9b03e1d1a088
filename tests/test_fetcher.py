"""Tests for archive download and extraction."""

import io
import tarfile
import zipfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from magic_cross.sources.fetcher import ArchiveFetcher, FetchError, find_chromosome_files
from magic_cross.utils.config import SourceConfig


def make_tarball(source: Path) -> bytes:
    """Pack a directory as a gzipped tar archive in memory."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tf:
        tf.add(source, arcname="MAGIC")
    return buffer.getvalue()


def make_session(payload: bytes) -> MagicMock:
    """Session whose GET streams the payload in two chunks."""
    response = MagicMock()
    response.headers = {"Content-Length": str(len(payload))}
    half = len(payload) // 2
    response.iter_content.return_value = [payload[:half], payload[half:]]

    session = MagicMock()
    session.get.return_value.__enter__.return_value = response
    return session


class TestArchiveFetcher:
    """Tests for ArchiveFetcher."""

    def test_download(self, temp_dir: Path) -> None:
        """Test the response body is written to disk."""
        session = make_session(b"happy files")
        fetcher = ArchiveFetcher(SourceConfig(), temp_dir / "work", session, show_progress=False)

        path = fetcher.download("http://example.org/a.tar.gz", temp_dir / "work" / "a.tar.gz")

        assert path.read_bytes() == b"happy files"
        session.get.assert_called_once_with(
            "http://example.org/a.tar.gz", stream=True, timeout=120.0
        )

    def test_http_error(self, temp_dir: Path) -> None:
        """Test an HTTP error status becomes a FetchError."""
        session = make_session(b"")
        response = session.get.return_value.__enter__.return_value
        response.raise_for_status.side_effect = requests.HTTPError("404 Client Error")
        fetcher = ArchiveFetcher(work_dir=temp_dir, session=session, show_progress=False)

        with pytest.raises(FetchError, match="404"):
            fetcher.download("http://example.org/missing.tar.gz", temp_dir / "missing.tar.gz")

    def test_connection_error(self, temp_dir: Path) -> None:
        """Test a network failure becomes a FetchError."""
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("unreachable")
        fetcher = ArchiveFetcher(work_dir=temp_dir, session=session, show_progress=False)

        with pytest.raises(FetchError, match="Download failed"):
            fetcher.fetch("http://example.org/MAGIC.tar.gz")

    def test_fetch_tarball(self, temp_dir: Path, happy_dir: Path) -> None:
        """Test download and extraction of a tar.gz archive."""
        session = make_session(make_tarball(happy_dir))
        work_dir = temp_dir / "work"
        fetcher = ArchiveFetcher(SourceConfig(), work_dir, session, show_progress=False)

        extracted = fetcher.fetch()

        assert (work_dir / "MAGIC.happy.tar.gz").exists()
        assert extracted == work_dir / "extracted"
        chromosomes = find_chromosome_files(extracted)
        assert [c.name for c in chromosomes] == ["chr1", "chr2"]
        session.get.assert_called_once()
        assert session.get.call_args.args[0] == SourceConfig().url

    def test_extract_zip(self, temp_dir: Path, happy_dir: Path) -> None:
        """Test zip archives are extracted too."""
        archive = temp_dir / "MAGIC.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            for path in happy_dir.iterdir():
                zf.write(path, arcname=f"MAGIC/{path.name}")

        fetcher = ArchiveFetcher(work_dir=temp_dir / "work", show_progress=False)
        extracted = fetcher.extract(archive)

        assert (extracted / "MAGIC" / "chr1.alleles").exists()

    def test_extract_unknown_format(self, temp_dir: Path) -> None:
        """Test a file that is neither tar nor zip is rejected."""
        archive = temp_dir / "archive.tar.gz"
        archive.write_bytes(b"not an archive")
        fetcher = ArchiveFetcher(work_dir=temp_dir / "work", show_progress=False)

        with pytest.raises(FetchError, match="Unrecognised"):
            fetcher.extract(archive)

    def test_extract_rejects_member_outside_target(self, temp_dir: Path) -> None:
        """Test a tar member pointing above the target directory is refused."""
        payload = b"markers 0 strains 0\n"
        info = tarfile.TarInfo("../evil.alleles")
        info.size = len(payload)
        archive = temp_dir / "archive.tar.gz"
        with tarfile.open(archive, "w:gz") as tf:
            tf.addfile(info, io.BytesIO(payload))
        fetcher = ArchiveFetcher(work_dir=temp_dir / "work", show_progress=False)

        with pytest.raises(FetchError, match="Could not extract"):
            fetcher.extract(archive, temp_dir / "work" / "extracted")

        assert not (temp_dir / "work" / "evil.alleles").exists()

    def test_cleanup(self, temp_dir: Path) -> None:
        """Test the working directory is removed."""
        work_dir = temp_dir / "work"
        (work_dir / "extracted").mkdir(parents=True)
        (work_dir / "extracted" / "chr1.alleles").write_text("markers 0 strains 0\n")

        fetcher = ArchiveFetcher(work_dir=work_dir, show_progress=False)
        fetcher.cleanup()

        assert not work_dir.exists()


class TestFindChromosomeFiles:
    """Tests for find_chromosome_files."""

    def test_natural_order(self, temp_dir: Path) -> None:
        """Test chr10 sorts after chr2."""
        for name in ("chr10", "chr2", "chr1"):
            for suffix in (".alleles", ".data", ".map"):
                (temp_dir / f"{name}{suffix}").write_text("")

        chromosomes = find_chromosome_files(temp_dir)

        assert [c.name for c in chromosomes] == ["chr1", "chr2", "chr10"]
        assert chromosomes[0].data == temp_dir / "chr1.data"

    def test_missing_partner(self, happy_dir: Path) -> None:
        """Test a missing .map file is reported."""
        (happy_dir / "chr2.map").unlink()

        with pytest.raises(FileNotFoundError, match="chr2.map"):
            find_chromosome_files(happy_dir)

    def test_no_alleles_files(self, temp_dir: Path) -> None:
        """Test an empty directory is reported."""
        with pytest.raises(FileNotFoundError, match="No .alleles"):
            find_chromosome_files(temp_dir)
