from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from src.common.algorithms import Algorithm
from src.common.config import DEFAULT_CHUNK_SIZE, physical_cpu_count, validate_concurrency
from src.common.errors import FileReadError
from src.manifest.codec import DigestRecord
from src.walker.walker import FileEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HashResult:
    path: str
    digest: Optional[bytes] = None
    error: Optional[FileReadError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_record(self) -> DigestRecord:
        if self.digest is None:
            raise ValueError(f"No digest computed for {self.path}")
        return DigestRecord(path=self.path, digest=self.digest)


def compute_digest(path: Union[str, Path], algorithm: Algorithm, chunk_size: int = DEFAULT_CHUNK_SIZE) -> bytes:
    hasher = algorithm.new()
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(chunk_size), b""):
            hasher.update(chunk)
    return hasher.digest()


class _SharedCursor:
    """Hands out entries from one iterator to many workers, one at a time."""

    def __init__(self, entries: Iterable[FileEntry]) -> None:
        self._iterator: Iterator[FileEntry] = iter(entries)
        self._lock = threading.Lock()
        self._exhausted = False

    def claim(self) -> Optional[FileEntry]:
        with self._lock:
            if self._exhausted:
                return None
            try:
                return next(self._iterator)
            except StopIteration:
                self._exhausted = True
                return None
            except BaseException:
                self._exhausted = True
                raise


class HashWorkerPool:
    def __init__(
        self,
        algorithm: Algorithm,
        concurrency: Optional[int] = None,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.algorithm = algorithm
        self.concurrency = validate_concurrency(concurrency) if concurrency is not None else physical_cpu_count()
        self.chunk_size = chunk_size
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Stop handing out new entries; files already claimed are finished."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def run(self, entries: Iterable[FileEntry]) -> List[HashResult]:
        """Hash every entry and return the results in completion order."""

        cursor = _SharedCursor(entries)
        results: List[HashResult] = []
        results_lock = threading.Lock()
        start = time.perf_counter()
        with ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix="hasher") as executor:
            futures = [executor.submit(self._worker, cursor, results, results_lock) for _ in range(self.concurrency)]
            errors: List[BaseException] = []
            for future in futures:
                exc = future.exception()
                if exc is not None:
                    errors.append(exc)
        if errors:
            raise errors[0]
        logger.debug(
            "Hashed %d file(s) with %d worker(s) in %.2fs",
            len(results),
            self.concurrency,
            time.perf_counter() - start,
        )
        return results

    def _worker(self, cursor: _SharedCursor, results: List[HashResult], results_lock: threading.Lock) -> int:
        processed = 0
        while not self._cancelled.is_set():
            entry = cursor.claim()
            if entry is None:
                break
            result = self._hash_entry(entry)
            with results_lock:
                results.append(result)
            processed += 1
        return processed

    def _hash_entry(self, entry: FileEntry) -> HashResult:
        try:
            digest = compute_digest(entry.absolute, self.algorithm, self.chunk_size)
        except OSError as exc:
            error = FileReadError(entry.path, exc)
            logger.debug("Hashing failed: %s", error)
            return HashResult(path=entry.path, error=error)
        return HashResult(path=entry.path, digest=digest)


def hash_entries(
    entries: Iterable[FileEntry],
    algorithm: Algorithm,
    concurrency: Optional[int] = None,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> List[HashResult]:
    return HashWorkerPool(algorithm, concurrency, chunk_size=chunk_size).run(entries)


__all__ = ["HashResult", "HashWorkerPool", "compute_digest", "hash_entries"]
