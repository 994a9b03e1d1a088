"""End-to-end build of the MAGIC cross dataset.

Stages run strictly in order: fetch, parse, reconcile, export, bundle. Any
error stops the run; the working directory is only removed after a
successful run so a failed one can be inspected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from magic_cross.exporters.happy import HappyExporter
from magic_cross.exporters.qtl2 import Qtl2Exporter
from magic_cross.parsers.founders import FounderAlleles, concat_founder_alleles, parse_alleles_file
from magic_cross.parsers.lines import merge_line_genotypes, parse_line_genotypes
from magic_cross.parsers.markers import parse_map_files
from magic_cross.processing.reconcile import ReconciledCross, ReconcileStats, Reconciler
from magic_cross.sources.fetcher import ArchiveFetcher, find_chromosome_files
from magic_cross.utils.config import Config
from magic_cross.utils.io import ensure_directory
from magic_cross.utils.logging import get_logger, log_step, log_summary

logger = get_logger(__name__)


@dataclass
class ParsedInputs:
    """Genome-wide tables straight from the HAPPY files."""

    founders: FounderAlleles
    genotypes: pd.DataFrame
    marker_map: pd.DataFrame


@dataclass
class BuildResult:
    """Everything a build produced."""

    stats: ReconcileStats
    happy_files: dict[str, Path] = field(default_factory=dict)
    cross_files: dict[str, Path] = field(default_factory=dict)
    bundle: Path | None = None
    installed: Path | None = None


class CrossBuilder:
    """Runs the whole conversion from archive to bundled dataset."""

    def __init__(
        self,
        config: Config | None = None,
        fetcher: ArchiveFetcher | None = None,
    ) -> None:
        """
        Initialize builder.

        Args:
            config: Pipeline configuration.
            fetcher: Archive fetcher. Built from the configuration if None.
        """
        self.config = config or Config()
        pipeline = self.config.pipeline
        self.fetcher = fetcher or ArchiveFetcher(self.config.source, work_dir=pipeline.work_dir)
        self.output_dir = Path(pipeline.output_dir)

    def parse(self, source_dir: str | Path) -> ParsedInputs:
        """
        Parse every chromosome's HAPPY files below a directory.

        Args:
            source_dir: Directory containing the extracted files.

        Returns:
            Genome-wide founder, line and map tables.
        """
        parser_cfg = self.config.parser
        chromosomes = find_chromosome_files(source_dir)

        founders = []
        lines = []
        for chromosome in chromosomes:
            logger.info(f"Parsing chromosome {chromosome.name}")
            founders.append(parse_alleles_file(
                chromosome.alleles,
                parser_cfg.uninformative_probability,
                parser_cfg.probability_decimals,
            ))
            lines.append(parse_line_genotypes(
                chromosome.data,
                chromosome.alleles,
                missing_tokens=parser_cfg.missing_tokens,
                metadata_columns=parser_cfg.metadata_columns,
            ))

        return ParsedInputs(
            founders=concat_founder_alleles(founders),
            genotypes=merge_line_genotypes(lines),
            marker_map=parse_map_files([c.map for c in chromosomes]),
        )

    def reconcile(self, inputs: ParsedInputs) -> ReconciledCross:
        """Intersect the parsed tables on marker identity."""
        reconciler = Reconciler(reference_strain=self.config.cross.reference_strain)
        return reconciler.reconcile(inputs.founders, inputs.genotypes, inputs.marker_map)

    def export(self, cross: ReconciledCross, result: BuildResult) -> None:
        """Write both output formats and the bundle."""
        cross_cfg = self.config.cross

        happy = HappyExporter(
            self.output_dir / "happy",
            prefix=cross_cfg.happy_prefix,
            metadata_columns=self.config.parser.metadata_columns,
        )
        result.happy_files = happy.export(cross)

        qtl2 = Qtl2Exporter(cross_cfg, self.output_dir / "cross")
        result.cross_files = qtl2.export(cross)
        result.bundle = qtl2.bundle(result.cross_files, self.output_dir / f"{cross_cfg.name}.zip")

    def build(
        self,
        source_dir: str | Path | None = None,
        url: str | None = None,
        install: bool = False,
    ) -> BuildResult:
        """
        Run the complete pipeline.

        Args:
            source_dir: Directory with already extracted HAPPY files. If None,
                the archive is downloaded first.
            url: Archive URL overriding the configured one.
            install: Copy the bundle into the package data directory.

        Returns:
            BuildResult with stats and written paths.
        """
        ensure_directory(self.output_dir)
        downloaded = source_dir is None
        total = 4 if downloaded else 3
        step = 0

        if downloaded:
            step += 1
            log_step("Fetching archive", step, total)
            source_dir = self.fetcher.fetch(url)

        step += 1
        log_step("Parsing HAPPY files", step, total)
        inputs = self.parse(source_dir)

        step += 1
        log_step("Reconciling markers", step, total)
        cross = self.reconcile(inputs)

        step += 1
        log_step("Exporting", step, total)
        result = BuildResult(stats=cross.stats)
        self.export(cross, result)

        if install and result.bundle is not None:
            from magic_cross.datasets import install_bundle

            result.installed = install_bundle(result.bundle, self.config.cross.name)

        log_summary("Build summary", cross.stats.as_dict())

        if downloaded and not self.config.pipeline.keep_work_dir:
            self.fetcher.cleanup()

        return result
