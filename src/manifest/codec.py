"""Text encoding of checksum manifests.

The format is the one produced by ``sha256sum`` and friends::

    <lowercase hex digest><two spaces><relative/path>

No header is written and the digest algorithm is not recorded; readers either
know it or infer it from the digest length.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional

from src.common.errors import MalformedLine

_SEPARATOR = re.compile(r" {2,}")
_HEX_DIGEST = re.compile(r"(?:[0-9a-fA-F]{2})+")


@dataclass(frozen=True)
class DigestRecord:
    path: str
    digest: bytes

    @property
    def hexdigest(self) -> str:
        return self.digest.hex()


def normalise_path(path: str) -> str:
    normalised = path
    while normalised.startswith("./"):
        normalised = normalised[2:]
    return normalised


def encode_line(record: DigestRecord) -> str:
    if "\n" in record.path or "\r" in record.path:
        raise MalformedLine(record.path, reason="path contains a line break")
    return f"{record.hexdigest}  {record.path}\n"


def encode_lines(records: Iterable[DigestRecord]) -> Iterator[str]:
    for record in records:
        yield encode_line(record)


def encode(records: Iterable[DigestRecord]) -> str:
    return "".join(encode_lines(records))


def decode_line(line: str, line_number: Optional[int] = None) -> DigestRecord:
    match = _SEPARATOR.search(line)
    if match is None:
        raise MalformedLine(line, line_number, "no two-space separator")
    token = line[: match.start()].strip()
    path = normalise_path(line[match.end():])
    if not _HEX_DIGEST.fullmatch(token):
        raise MalformedLine(line, line_number, f"hash value '{token}' is invalid")
    if not path:
        raise MalformedLine(line, line_number, "missing path")
    return DigestRecord(path=path, digest=bytes.fromhex(token))


def decode(text: str) -> List[DigestRecord]:
    """Parse manifest text. Blank lines are skipped; duplicates are kept in order."""

    records: List[DigestRecord] = []
    for line_number, line in enumerate(text.split("\n"), start=1):
        line = line.rstrip("\r")
        if not line.strip():
            continue
        records.append(decode_line(line, line_number))
    return records


__all__ = [
    "DigestRecord",
    "decode",
    "decode_line",
    "encode",
    "encode_line",
    "encode_lines",
    "normalise_path",
]
