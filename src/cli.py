"""``chksum``: generate and verify file checksums."""

from __future__ import annotations

import typer

from src.generator.cli import generate
from src.verifier.cli import verify

app = typer.Typer(help="A tool to generate and verify file checksums.", no_args_is_help=True)

app.command("generate")(generate)
app.command("verify")(verify)
# Short aliases, hidden from --help.
app.command("g", hidden=True)(generate)
app.command("v", hidden=True)(verify)


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
