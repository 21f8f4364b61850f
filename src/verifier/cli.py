from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from src.common.config import DEFAULT_MANIFEST, build_config
from src.common.errors import EXIT_FAILED, EXIT_FATAL, ChecksumError
from src.common.logs import configure_logging

from .verifier import ChecksumVerifier

app = typer.Typer(help="Verify a directory tree against a checksum manifest.")


@app.command()
def verify(
    checksums: str = typer.Option(
        DEFAULT_MANIFEST,
        "--checksums",
        "-f",
        help="Manifest file to check against ('-' for standard input).",
    ),
    directory: Path = typer.Option(
        Path("."),
        "--directory",
        "-d",
        help="Root of the tree the manifest paths are relative to.",
    ),
    algorithm: Optional[str] = typer.Option(
        None,
        "--algorithm",
        "-a",
        help="Digest algorithm; inferred from the digest length when omitted.",
    ),
    threads: Optional[int] = typer.Option(
        None,
        "--threads",
        "-n",
        help="Number of hashing threads (default: physical CPU count).",
    ),
    exclude: Optional[List[str]] = typer.Option(
        None,
        "--exclude",
        "-e",
        help="Path or glob pattern to skip, relative to the directory. Repeatable.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only list files that FAILED or are MISSING.",
    ),
    report_extra: bool = typer.Option(
        False,
        "--report-extra",
        help="Also list files on disk that the manifest does not mention.",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML file with default options.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug details."),
) -> None:
    """Re-hash DIRECTORY and compare it with the manifest. Exits 1 on any FAILED or MISSING file."""

    configure_logging(verbose)
    try:
        run_config = build_config(
            "verify",
            root=directory,
            manifest=checksums,
            algorithm=algorithm,
            threads=threads,
            exclude=tuple(exclude or ()),
            quiet=quiet or None,
            report_extra=report_extra or None,
            config_file=config,
        )
        report = ChecksumVerifier(run_config).run()
    except ChecksumError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=EXIT_FATAL) from exc

    for line in report.render_lines(quiet=run_config.quiet, include_extra=run_config.report_extra):
        typer.echo(line)
    if not report.ok:
        raise typer.Exit(code=EXIT_FAILED)


if __name__ == "__main__":  # pragma: no cover
    app()
