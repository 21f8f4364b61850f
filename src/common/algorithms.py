"""Closed registry of supported digest algorithms."""

from __future__ import annotations

import hashlib
from enum import Enum
from functools import lru_cache
from typing import Iterable, List, Optional, Union

from .errors import AmbiguousLength, UnknownAlgorithm, UnrecognizedLength


class Algorithm(Enum):
    MD5 = ("MD5", "md5", 16)
    SHA1 = ("SHA1", "sha1", 20)
    SHA224 = ("SHA224", "sha224", 28)
    SHA256 = ("SHA256", "sha256", 32)
    SHA384 = ("SHA384", "sha384", 48)
    SHA512 = ("SHA512", "sha512", 64)

    def __init__(self, canonical_name: str, hashlib_name: str, digest_size: int) -> None:
        self.canonical_name = canonical_name
        self.hashlib_name = hashlib_name
        self.digest_size = digest_size

    def new(self):
        """Return a fresh streaming hash object for this algorithm."""
        return hashlib.new(self.hashlib_name)

    def __str__(self) -> str:
        return self.canonical_name


DEFAULT_ALGORITHM = Algorithm.SHA256

_ALIASES = {
    "md5": Algorithm.MD5,
    "sha1": Algorithm.SHA1,
    "sha-1": Algorithm.SHA1,
    "sha_1": Algorithm.SHA1,
    "sha224": Algorithm.SHA224,
    "sha-224": Algorithm.SHA224,
    "sha_224": Algorithm.SHA224,
    "sha256": Algorithm.SHA256,
    "sha-256": Algorithm.SHA256,
    "sha_256": Algorithm.SHA256,
    "sha384": Algorithm.SHA384,
    "sha-384": Algorithm.SHA384,
    "sha_384": Algorithm.SHA384,
    "sha512": Algorithm.SHA512,
    "sha-512": Algorithm.SHA512,
    "sha_512": Algorithm.SHA512,
}


@lru_cache(maxsize=None)
def _lookup(key: str) -> Optional[Algorithm]:
    return _ALIASES.get(key)


def resolve(identifier: Union[str, Algorithm]) -> Algorithm:
    """Map an algorithm name or alias (case-insensitive) to its registry entry."""

    if isinstance(identifier, Algorithm):
        return identifier
    key = (identifier or "").strip().lower()
    algorithm = _lookup(key)
    if algorithm is None:
        raise UnknownAlgorithm(identifier)
    return algorithm


def infer(length: int, candidates: Optional[Iterable[Algorithm]] = None) -> Algorithm:
    """Pick the unique algorithm producing ``length``-byte digests."""

    pool = list(Algorithm) if candidates is None else list(candidates)
    matches: List[Algorithm] = [algorithm for algorithm in pool if algorithm.digest_size == length]
    if not matches:
        raise UnrecognizedLength(length)
    if len(matches) > 1:
        raise AmbiguousLength(length, matches)
    return matches[0]


def names() -> List[str]:
    return [algorithm.canonical_name for algorithm in Algorithm]


__all__ = ["Algorithm", "DEFAULT_ALGORITHM", "infer", "names", "resolve"]
