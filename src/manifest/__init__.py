"""Manifest codec and manifest file I/O."""

from .codec import DigestRecord, decode, encode
from .store import read_manifest, write_manifest

__all__ = ["DigestRecord", "decode", "encode", "read_manifest", "write_manifest"]
