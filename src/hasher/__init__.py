"""Concurrent per-file digest computation."""

from .pool import HashResult, HashWorkerPool, compute_digest, hash_entries

__all__ = ["HashResult", "HashWorkerPool", "compute_digest", "hash_entries"]
