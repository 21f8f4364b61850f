from __future__ import annotations

import os
import stat
import sys
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional, TextIO

from src.common.config import STDIO_SENTINEL
from src.common.errors import ManifestReadError, ManifestWriteError

from .codec import DigestRecord, decode, encode_lines

ENCODING = "utf-8"
ERRORS = "surrogateescape"


def read_manifest(location: str, stdin: Optional[TextIO] = None) -> List[DigestRecord]:
    """Load and decode a manifest from a file, or from stdin for ``-``."""

    return decode(read_manifest_text(location, stdin=stdin))


def read_manifest_text(location: str, stdin: Optional[TextIO] = None) -> str:
    if location == STDIO_SENTINEL:
        stream = stdin if stdin is not None else sys.stdin
        try:
            return stream.read()
        except OSError as exc:
            raise ManifestReadError("<stdin>", exc) from exc
    try:
        with open(location, "r", encoding=ENCODING, errors=ERRORS, newline="") as handle:
            return handle.read()
    except OSError as exc:
        raise ManifestReadError(location, exc) from exc


def write_manifest(location: str, records: Iterable[DigestRecord], stdout: Optional[TextIO] = None) -> None:
    """Write records to ``location`` (stdout for ``-``), replacing any existing file."""

    if location == STDIO_SENTINEL:
        stream = stdout if stdout is not None else sys.stdout
        try:
            for line in encode_lines(records):
                stream.write(line)
            stream.flush()
        except OSError as exc:
            raise ManifestWriteError("<stdout>", exc) from exc
        return

    target = Path(location)
    tmp_name: Optional[str] = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent))
        with os.fdopen(fd, "w", encoding=ENCODING, errors=ERRORS, newline="\n") as handle:
            for line in encode_lines(records):
                handle.write(line)
        os.chmod(tmp_name, _target_mode(target))
        os.replace(tmp_name, str(target))
        tmp_name = None
    except OSError as exc:
        raise ManifestWriteError(location, exc) from exc
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass


def _target_mode(target: Path) -> int:
    # mkstemp creates 0600 files; keep the mode of the file being replaced.
    try:
        return stat.S_IMODE(target.stat().st_mode)
    except OSError:
        return 0o644


__all__ = ["read_manifest", "read_manifest_text", "write_manifest"]
