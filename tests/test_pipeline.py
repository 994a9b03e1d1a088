"""Tests for the end-to-end cross build."""

import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from magic_cross.pipeline import CrossBuilder
from magic_cross.utils.config import Config
from magic_cross.utils.validators import ParseError


@pytest.fixture
def config(temp_dir: Path) -> Config:
    """Configuration writing below the temporary directory."""
    config = Config()
    config.pipeline.work_dir = str(temp_dir / "work")
    config.pipeline.output_dir = str(temp_dir / "results")
    return config


class TestCrossBuilder:
    """Tests for CrossBuilder."""

    def test_build_from_directory(self, config: Config, happy_dir: Path, temp_dir: Path) -> None:
        """Test a build from extracted files writes every output."""
        result = CrossBuilder(config).build(source_dir=happy_dir)

        results = temp_dir / "results"
        assert result.happy_files["alleles"] == results / "happy" / "magic.alleles"
        assert result.cross_files["manifest"] == results / "cross" / "kover2009.json"
        assert result.bundle == results / "kover2009.zip"
        assert result.bundle.exists()
        assert result.installed is None

        assert result.stats.retained_markers == 4
        assert result.stats.dropped_from_genotypes == 1
        assert result.stats.dropped_from_map == 1

    def test_parse(self, config: Config, happy_dir: Path) -> None:
        """Test every chromosome is parsed and merged."""
        inputs = CrossBuilder(config).parse(happy_dir)

        assert len(inputs.founders) == 5
        assert inputs.genotypes.shape == (4, 5)
        assert len(inputs.marker_map) == 5

    def test_uninformative_from_config(self, config: Config, happy_dir: Path) -> None:
        """Test the uninformative flag follows the parser settings."""
        assert CrossBuilder(config).parse(happy_dir).founders.markers["uninformative"].any()

        config.parser.uninformative_strains = 10
        inputs = CrossBuilder(config).parse(happy_dir)

        assert not inputs.founders.markers["uninformative"].any()

    def test_stage_banners(
        self,
        config: Config,
        happy_dir: Path,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test a local build logs three numbered stages."""
        with caplog.at_level(logging.INFO, logger="magic_cross"):
            CrossBuilder(config).build(source_dir=happy_dir)

        messages = [r.getMessage() for r in caplog.records]
        assert "  [1/3] Parsing HAPPY files" in messages
        assert "  [3/3] Exporting" in messages
        assert any(m.startswith("  retained markers") and m.endswith(" 4") for m in messages)

    def test_reference_strain_from_config(self, config: Config, happy_dir: Path) -> None:
        """Test the configured reference strain is used."""
        config.cross.reference_strain = "Bur-0"
        builder = CrossBuilder(config)

        cross = builder.reconcile(builder.parse(happy_dir))

        assert cross.reference_strain == "Bur-0"
        assert cross.reference_alleles["M1"] == "G"

    def test_download_and_cleanup(self, config: Config, happy_dir: Path, temp_dir: Path) -> None:
        """Test a downloaded run removes the working directory afterwards."""
        fetcher = MagicMock()
        fetcher.fetch.return_value = happy_dir

        CrossBuilder(config, fetcher=fetcher).build(url="http://example.org/MAGIC.tar.gz")

        fetcher.fetch.assert_called_once_with("http://example.org/MAGIC.tar.gz")
        fetcher.cleanup.assert_called_once()

    def test_keep_work_dir(self, config: Config, happy_dir: Path) -> None:
        """Test the working directory is kept when requested."""
        config.pipeline.keep_work_dir = True
        fetcher = MagicMock()
        fetcher.fetch.return_value = happy_dir

        CrossBuilder(config, fetcher=fetcher).build()

        fetcher.cleanup.assert_not_called()

    def test_local_build_never_cleans_up(self, config: Config, happy_dir: Path) -> None:
        """Test files the user supplied are never removed."""
        fetcher = MagicMock()

        CrossBuilder(config, fetcher=fetcher).build(source_dir=happy_dir)

        fetcher.fetch.assert_not_called()
        fetcher.cleanup.assert_not_called()
        assert (happy_dir / "chr1.alleles").exists()

    def test_failure_keeps_work_dir(self, config: Config, happy_dir: Path) -> None:
        """Test a failed run leaves the downloaded files in place."""
        (happy_dir / "chr1.data").write_text("L1 NA NA NA NA NA A A\n")
        fetcher = MagicMock()
        fetcher.fetch.return_value = happy_dir

        with pytest.raises(ParseError):
            CrossBuilder(config, fetcher=fetcher).build()

        fetcher.cleanup.assert_not_called()

    def test_install(
        self,
        config: Config,
        happy_dir: Path,
        temp_dir: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test the bundle is copied into the data directory."""
        data_dir = temp_dir / "package_data"
        monkeypatch.setattr("magic_cross.datasets.data_dir", lambda: data_dir)

        result = CrossBuilder(config).build(source_dir=happy_dir, install=True)

        assert result.installed == data_dir / "kover2009.zip"
        assert result.installed.exists()
