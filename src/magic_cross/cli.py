"""Command-line interface for the MAGIC cross builder."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from magic_cross import __version__
from magic_cross.utils.config import Config, load_config
from magic_cross.utils.logging import get_logger, setup_logging

console = Console()
logger = get_logger(__name__)


def print_banner() -> None:
    """Print application banner."""
    console.print(
        "\n[bold blue]MAGIC Cross Builder[/bold blue] "
        f"[dim]v{__version__}[/dim]\n"
    )


def fail(ctx: click.Context, error: Exception) -> None:
    """Report an error and exit with status 1."""
    console.print(f"[red]Error:[/red] {error}")
    if ctx.obj.get("verbose"):
        import traceback

        console.print(traceback.format_exc())
    sys.exit(1)


def print_build_summary(result) -> None:
    """Print reconcile stats and output paths."""
    stats = result.stats
    table = Table(title="Build Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Genotyped markers", f"{stats.genotype_markers:,}")
    table.add_row("Mapped markers", f"{stats.map_markers:,}")
    table.add_row("Dropped (no map)", f"{stats.dropped_from_genotypes:,}")
    table.add_row("Dropped (no genotypes)", f"{stats.dropped_from_map:,}")
    table.add_row("Dropped (no founder alleles)", f"{stats.dropped_without_founders:,}")
    table.add_row("Retained markers", f"{stats.retained_markers:,}")
    table.add_row("Lines", f"{stats.samples:,}")
    table.add_row("Founders", f"{stats.founders:,}")
    table.add_row("Uninformative markers", f"{stats.uninformative_markers:,}")
    table.add_row("Reference tie-breaks", f"{stats.reference_ties:,}")

    console.print(table)

    console.print("\n[green]Output files:[/green]")
    for name, path in {**result.happy_files, **result.cross_files}.items():
        console.print(f"  {name}: {path}")
    if result.bundle:
        console.print(f"[green]Bundle:[/green] {result.bundle}")
    if result.installed:
        console.print(f"[green]Installed:[/green] {result.installed}")


@click.group()
@click.version_option(version=__version__, prog_name="magic-cross")
@click.option(
    "--config", "-c",
    type=click.Path(exists=True),
    help="Path to configuration file.",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose output.",
)
@click.option(
    "--quiet", "-q",
    is_flag=True,
    help="Suppress non-error output.",
)
@click.option(
    "--log-file",
    type=click.Path(),
    help="Path to log file.",
)
@click.pass_context
def main(
    ctx: click.Context,
    config: Optional[str],
    verbose: bool,
    quiet: bool,
    log_file: Optional[str],
) -> None:
    """
    MAGIC Cross Builder.

    Converts the Arabidopsis MAGIC HAPPY genotype files into a merged HAPPY
    dataset and a bundled cross dataset.
    """
    ctx.ensure_object(dict)

    log_level = "DEBUG" if verbose else "WARNING" if quiet else "INFO"

    ctx.obj["config"] = load_config(config)
    ctx.obj["verbose"] = verbose

    errors = ctx.obj["config"].validate()
    if errors:
        for error in errors:
            console.print(f"[red]Invalid configuration:[/red] {error}")
        sys.exit(1)

    setup_logging(
        level=log_level,
        log_file=log_file,
        log_dir=None if log_file else ctx.obj["config"].pipeline.log_dir,
    )

    if not quiet:
        print_banner()


@main.command()
@click.option(
    "--url",
    help="Archive URL (defaults to the configured source).",
)
@click.option(
    "--work-dir", "-w",
    type=click.Path(),
    help="Working directory for the download.",
)
@click.option(
    "--output-dir", "-o",
    type=click.Path(),
    help="Output directory.",
)
@click.option(
    "--keep-work-dir",
    is_flag=True,
    help="Keep downloaded and extracted files after a successful run.",
)
@click.option(
    "--install",
    is_flag=True,
    help="Copy the bundle into the package data directory.",
)
@click.pass_context
def build(
    ctx: click.Context,
    url: Optional[str],
    work_dir: Optional[str],
    output_dir: Optional[str],
    keep_work_dir: bool,
    install: bool,
) -> None:
    """
    Download the archive and build all outputs.

    Fetches the HAPPY archive, parses and reconciles it, writes the merged
    HAPPY files and the cross dataset, then removes the working directory.
    """
    from magic_cross.pipeline import CrossBuilder

    config = ctx.obj["config"]
    if work_dir:
        config.pipeline.work_dir = work_dir
    if output_dir:
        config.pipeline.output_dir = output_dir
    if keep_work_dir:
        config.pipeline.keep_work_dir = True

    try:
        result = CrossBuilder(config).build(url=url, install=install)
        print_build_summary(result)
    except Exception as e:
        fail(ctx, e)


@main.command()
@click.argument("source_dir", type=click.Path(exists=True, file_okay=False))
@click.option(
    "--output-dir", "-o",
    type=click.Path(),
    help="Output directory.",
)
@click.option(
    "--reference-strain",
    help="Founder defining the reference allele.",
)
@click.option(
    "--install",
    is_flag=True,
    help="Copy the bundle into the package data directory.",
)
@click.pass_context
def convert(
    ctx: click.Context,
    source_dir: str,
    output_dir: Optional[str],
    reference_strain: Optional[str],
    install: bool,
) -> None:
    """
    Build all outputs from already extracted HAPPY files.

    SOURCE_DIR is searched recursively for .alleles files with matching
    .data and .map files.
    """
    from magic_cross.pipeline import CrossBuilder

    config = ctx.obj["config"]
    if output_dir:
        config.pipeline.output_dir = output_dir
    if reference_strain:
        config.cross.reference_strain = reference_strain

    try:
        result = CrossBuilder(config).build(source_dir=source_dir, install=install)
        print_build_summary(result)
    except Exception as e:
        fail(ctx, e)


@main.command()
@click.option(
    "--url",
    help="Archive URL (defaults to the configured source).",
)
@click.option(
    "--work-dir", "-w",
    type=click.Path(),
    help="Working directory for the download.",
)
@click.pass_context
def fetch(
    ctx: click.Context,
    url: Optional[str],
    work_dir: Optional[str],
) -> None:
    """
    Download and extract the archive only.

    The working directory is left in place for a later convert run.
    """
    from magic_cross.sources import ArchiveFetcher, find_chromosome_files

    config = ctx.obj["config"]
    fetcher = ArchiveFetcher(config.source, work_dir=work_dir or config.pipeline.work_dir)

    try:
        extracted = fetcher.fetch(url)
        chromosomes = find_chromosome_files(extracted)
        console.print(f"\n[green]Extracted:[/green] {extracted}")
        console.print(f"Chromosomes: {', '.join(c.name for c in chromosomes)}")
    except Exception as e:
        fail(ctx, e)


@main.command()
@click.argument("source_dir", type=click.Path(exists=True, file_okay=False))
@click.pass_context
def validate(ctx: click.Context, source_dir: str) -> None:
    """
    Validate extracted HAPPY files.

    Parses every chromosome's .alleles, .data and .map file and reports
    marker counts without writing anything.
    """
    from magic_cross.parsers import parse_alleles_file, parse_line_genotypes, parse_map_file
    from magic_cross.sources import find_chromosome_files

    parser_cfg = ctx.obj["config"].parser
    all_valid = True

    try:
        chromosomes = find_chromosome_files(source_dir)
    except Exception as e:
        fail(ctx, e)
        return

    table = Table(title="HAPPY Files")
    table.add_column("Chromosome", style="cyan")
    table.add_column("Markers", justify="right")
    table.add_column("Strains", justify="right")
    table.add_column("Lines", justify="right")
    table.add_column("Mapped", justify="right")
    table.add_column("Uninformative", justify="right")
    table.add_column("Status")

    for chromosome in chromosomes:
        try:
            founders = parse_alleles_file(
                chromosome.alleles,
                parser_cfg.uninformative_probability,
                parser_cfg.probability_decimals,
            )
            lines = parse_line_genotypes(
                chromosome.data,
                chromosome.alleles,
                missing_tokens=parser_cfg.missing_tokens,
                metadata_columns=parser_cfg.metadata_columns,
            )
            marker_map = parse_map_file(chromosome.map)
            table.add_row(
                chromosome.name,
                f"{len(founders):,}",
                f"{len(founders.strains)}",
                f"{lines.shape[0]:,}",
                f"{len(marker_map):,}",
                f"{int(founders.markers['uninformative'].sum()):,}",
                "[green]ok[/green]",
            )
        except Exception as e:
            all_valid = False
            table.add_row(chromosome.name, "", "", "", "", "", f"[red]{e}[/red]")

    console.print(table)

    if all_valid:
        console.print("\n[green]All validations passed![/green]")
    else:
        console.print("\n[red]Some validations failed.[/red]")
        sys.exit(1)


@main.command()
@click.option(
    "--name", "-n",
    default="kover2009",
    help="Name of a bundled dataset.",
)
@click.option(
    "--path", "-p",
    type=click.Path(exists=True, dir_okay=False),
    help="Explicit bundle path.",
)
@click.pass_context
def inspect(ctx: click.Context, name: str, path: Optional[str]) -> None:
    """
    Summarise a bundled cross dataset.
    """
    from magic_cross.datasets import list_datasets, load_cross

    try:
        cross = load_cross(name, path=path)
    except Exception as e:
        available = list_datasets()
        if available:
            console.print(f"Available datasets: {', '.join(available)}")
        fail(ctx, e)
        return

    table = Table(title=f"Cross Dataset: {Path(cross.source).name if cross.source else name}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", justify="right")
    for key, value in cross.summary().items():
        table.add_row(key, f"{value:,}" if isinstance(value, int) else str(value))
    table.add_row("Founder strains", ", ".join(cross.founders))

    console.print(table)


@main.command()
@click.option(
    "--output", "-o",
    type=click.Path(),
    default="config.yaml",
    help="Output configuration file path.",
)
def init_config(output: str) -> None:
    """
    Generate a default configuration file.

    Creates a YAML configuration file with all available options.
    """
    config = Config()
    config.save(output)
    console.print(f"[green]Configuration saved to:[/green] {output}")


if __name__ == "__main__":
    main()
