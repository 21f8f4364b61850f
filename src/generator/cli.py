from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from src.common.config import DEFAULT_MANIFEST, build_config
from src.common.errors import EXIT_FATAL, ChecksumError
from src.common.logs import configure_logging

from .generator import ChecksumGenerator

app = typer.Typer(help="Generate a checksum manifest for every file under a directory.")


@app.command()
def generate(
    checksums: str = typer.Option(
        DEFAULT_MANIFEST,
        "--checksums",
        "-f",
        help="Manifest file to write ('-' for standard output).",
    ),
    directory: Path = typer.Option(
        Path("."),
        "--directory",
        "-d",
        help="Root of the tree to checksum.",
    ),
    algorithm: Optional[str] = typer.Option(
        None,
        "--algorithm",
        "-a",
        help="Digest algorithm: MD5, SHA1, SHA224, SHA256 (default), SHA384 or SHA512.",
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
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML file with default options.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug details."),
) -> None:
    """Hash every file under DIRECTORY and write the sorted manifest."""

    configure_logging(verbose)
    try:
        run_config = build_config(
            "generate",
            root=directory,
            manifest=checksums,
            algorithm=algorithm,
            threads=threads,
            exclude=tuple(exclude or ()),
            config_file=config,
        )
        ChecksumGenerator(run_config).run()
    except ChecksumError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=EXIT_FATAL) from exc


if __name__ == "__main__":  # pragma: no cover
    app()
