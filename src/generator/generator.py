from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, TextIO

from src.common.algorithms import DEFAULT_ALGORITHM, Algorithm
from src.common.config import ChecksumConfig
from src.common.errors import FileReadError, MalformedLine
from src.hasher.pool import HashResult, HashWorkerPool
from src.manifest.codec import DigestRecord
from src.manifest.store import write_manifest
from src.walker.walker import WalkIssue, exclusion_rules, walk

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    IDLE = "idle"
    WALKING = "walking"
    HASHING = "hashing"
    SORTING = "sorting"
    ENCODING = "encoding"
    DONE = "done"
    FAILED = "failed"


@dataclass
class GenerationResult:
    algorithm: Algorithm
    manifest: str
    records: List[DigestRecord] = field(default_factory=list)
    failures: List[FileReadError] = field(default_factory=list)
    walk_issues: List[WalkIssue] = field(default_factory=list)
    skipped_paths: List[str] = field(default_factory=list)

    @property
    def warnings(self) -> int:
        return len(self.failures) + len(self.walk_issues) + len(self.skipped_paths)


class ChecksumGenerator:
    def __init__(self, config: ChecksumConfig, *, stdout: Optional[TextIO] = None) -> None:
        self.config = config.validate()
        self.algorithm = config.algorithm or DEFAULT_ALGORITHM
        self.stage = Stage.IDLE
        self._stdout = stdout

    def run(self) -> GenerationResult:
        result = GenerationResult(algorithm=self.algorithm, manifest=self.config.manifest)
        try:
            self._advance(Stage.WALKING)
            entries = walk(
                self.config.root,
                exclusion_rules(self.config),
                same_file_system=self.config.same_file_system,
                issues=result.walk_issues,
            )

            self._advance(Stage.HASHING)
            pool = HashWorkerPool(self.algorithm, self.config.concurrency, chunk_size=self.config.chunk_size)
            hashed = pool.run(entries)

            self._advance(Stage.SORTING)
            result.records = self._collect(hashed, result)

            self._advance(Stage.ENCODING)
            write_manifest(self.config.manifest, result.records, stdout=self._stdout)
        except Exception:
            self._advance(Stage.FAILED)
            raise

        self._advance(Stage.DONE)
        self._report(result)
        return result

    def _collect(self, hashed: List[HashResult], result: GenerationResult) -> List[DigestRecord]:
        records: List[DigestRecord] = []
        for item in hashed:
            if item.error is not None:
                result.failures.append(item.error)
                continue
            if "\n" in item.path or "\r" in item.path:
                result.skipped_paths.append(item.path)
                continue
            records.append(item.to_record())
        records.sort(key=lambda record: record.path.encode("utf-8", "surrogateescape"))
        return records

    def _advance(self, stage: Stage) -> None:
        logger.debug("generate: %s -> %s", self.stage.value, stage.value)
        self.stage = stage

    def _report(self, result: GenerationResult) -> None:
        for failure in sorted(result.failures, key=lambda error: error.path):
            logger.warning("%s", failure)
        for path in sorted(result.skipped_paths):
            logger.warning("%s", MalformedLine(path, reason="path contains a line break, not recorded"))
        logger.info(
            "Wrote %d %s checksum(s) to %s (%d warning(s))",
            len(result.records),
            self.algorithm.canonical_name,
            "standard output" if self.config.uses_stdio else self.config.manifest,
            result.warnings,
        )


def generate_checksums(config: ChecksumConfig, *, stdout: Optional[TextIO] = None) -> GenerationResult:
    return ChecksumGenerator(config, stdout=stdout).run()


__all__ = ["ChecksumGenerator", "GenerationResult", "Stage", "generate_checksums"]
