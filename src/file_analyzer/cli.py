from __future__ import annotations

import click
from pathlib import Path

from .config import load_settings
from .exceptions import ErrorKind, FileAnalyzerError
from .utils.io import write_failure, write_report
from .utils.logger import setup_cli_logging


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase verbosity (repeat for more).")
@click.option("-q", "--quiet", is_flag=True, default=False, help="Suppress all but warnings.")
@click.pass_context
def main(ctx: click.Context, verbose: int, quiet: bool) -> None:
    """file-analyzer CLI"""
    ctx.ensure_object(dict)
    verbosity = -1 if quiet else verbose
    ctx.obj["verbosity"] = verbosity
    setup_cli_logging(verbosity=verbosity)


@main.command("run")
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False), default=None,
    help="Path to YAML config file.",
)
@click.option(
    "--input-dir", type=click.Path(file_okay=False, path_type=Path), default=None,
    help="Directory holding the text files (overrides INPUT_DIR).",
)
@click.option(
    "--output-archive", type=click.Path(dir_okay=False, path_type=Path), default=None,
    help="ZIP archive to create (overrides OUTPUT_ARCHIVE).",
)
@click.option(
    "--keep-sources", is_flag=True, default=False,
    help="Do not delete source files after archiving.",
)
@click.option(
    "--report", "report_path", type=click.Path(dir_okay=False, path_type=Path), default=None,
    help="Write the full JSON report to this path.",
)
def run_cmd(
    config_path: str | None,
    input_dir: Path | None,
    output_archive: Path | None,
    keep_sources: bool,
    report_path: Path | None,
) -> None:
    """Analyse every text file in the input directory and archive them."""
    from .run import run_all

    cfg = load_settings(config_path)
    if input_dir is not None:
        cfg.INPUT_DIR = input_dir
    if output_archive is not None:
        cfg.OUTPUT_ARCHIVE = output_archive
    if keep_sources:
        cfg.DELETE_SOURCES = False

    try:
        report = run_all(cfg)
    except FileAnalyzerError as err:
        click.echo(str(err), err=True)
        if err.kind is ErrorKind.NO_CONTENT:
            raise SystemExit(1)
        failure = write_failure(
            cfg.OUTPUT_ARCHIVE.parent / "failures", "pipeline", cfg.OUTPUT_ARCHIVE.stem, err,
        )
        click.echo(f"Failure record: {failure}", err=True)
        raise SystemExit(2)

    if report_path is not None:
        write_report(report_path, report.to_dict())

    analysis, archive = report.analysis, report.archive
    click.echo("\nRun complete.")
    click.echo(f"  Files processed:     {analysis.total_processed_files}")
    click.echo(f"  Successful / failed: {analysis.successful_file_count} / {analysis.failed_file_count}")
    click.echo(f"  Total lines:         {analysis.total_line_count}")
    click.echo(f"  Total characters:    {analysis.total_character_count}")
    click.echo(f"  Archive:             {archive.archive_path}")
    click.echo(f"  Files archived:      {archive.archived_file_count}")
    click.echo(f"  Archive size:        {archive.size_kb:.1f} KB")
    if archive.undeleted_file_names:
        click.echo(f"  Not deleted:         {', '.join(archive.undeleted_file_names)}", err=True)


@main.command()
@click.argument("archive", type=click.Path(dir_okay=False, path_type=Path))
@click.argument("dest", type=click.Path(file_okay=False, path_type=Path))
def extract(archive: Path, dest: Path) -> None:
    """Extract ARCHIVE into DEST."""
    from .archive import ArchiveBuilder

    try:
        written = ArchiveBuilder().extract(archive, dest)
    except FileAnalyzerError as err:
        click.echo(str(err), err=True)
        raise SystemExit(2)
    click.echo(f"Extracted {len(written)} files to {dest}")


@main.command()
@click.argument("archive", type=click.Path(dir_okay=False, path_type=Path))
def validate(archive: Path) -> None:
    """Check that ARCHIVE is a readable ZIP file."""
    from .archive import ArchiveBuilder

    if ArchiveBuilder().validate(archive):
        click.echo("valid")
    else:
        click.echo("invalid", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
