"""Generate pipeline: walk, hash, sort and write a checksum manifest."""

from .generator import ChecksumGenerator, GenerationResult, generate_checksums

__all__ = ["ChecksumGenerator", "GenerationResult", "generate_checksums"]
