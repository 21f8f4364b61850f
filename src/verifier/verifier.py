from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, TextIO

from src.common.algorithms import DEFAULT_ALGORITHM, Algorithm, infer
from src.common.config import ChecksumConfig
from src.common.errors import DigestLengthMismatch, FileReadError
from src.hasher.pool import HashResult, HashWorkerPool
from src.manifest.codec import DigestRecord
from src.manifest.store import read_manifest
from src.walker.walker import WalkIssue, exclusion_rules, walk

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    INFERRING = "inferring"
    USING_EXPLICIT = "using-explicit"
    WALKING = "walking"
    HASHING = "hashing"
    RECONCILING = "reconciling"
    REPORTING = "reporting"
    DONE = "done"
    FAILED = "failed"


class Classification(str, Enum):
    MATCHED = "OK"
    MISMATCHED = "FAILED"
    MISSING = "MISSING"
    EXTRA = "EXTRA"


@dataclass
class ReconciliationReport:
    algorithm: Algorithm
    entries: Dict[str, Classification] = field(default_factory=dict)
    failures: Dict[str, FileReadError] = field(default_factory=dict)
    walk_issues: List[WalkIssue] = field(default_factory=list)

    def paths(self, classification: Classification) -> List[str]:
        return sorted(path for path, value in self.entries.items() if value is classification)

    @property
    def matched(self) -> List[str]:
        return self.paths(Classification.MATCHED)

    @property
    def mismatched(self) -> List[str]:
        return self.paths(Classification.MISMATCHED)

    @property
    def missing(self) -> List[str]:
        return self.paths(Classification.MISSING)

    @property
    def extra(self) -> List[str]:
        return self.paths(Classification.EXTRA)

    @property
    def ok(self) -> bool:
        return not any(
            value in (Classification.MISMATCHED, Classification.MISSING) for value in self.entries.values()
        )

    def counts(self) -> Dict[str, int]:
        return {classification.name.lower(): len(self.paths(classification)) for classification in Classification}

    def render_lines(self, quiet: bool = False, include_extra: bool = False) -> List[str]:
        """``path: STATUS`` lines in path order.

        Quiet keeps only FAILED and MISSING lines; EXTRA lines need ``include_extra``.
        """

        lines: List[str] = []
        for path in sorted(self.entries):
            classification = self.entries[path]
            if classification is Classification.EXTRA and not include_extra:
                continue
            if quiet and classification in (Classification.MATCHED, Classification.EXTRA):
                continue
            lines.append(f"{path}: {classification.value}")
        return lines


def reconcile(
    stored: Iterable[DigestRecord],
    live: Iterable[HashResult],
    algorithm: Algorithm,
) -> ReconciliationReport:
    """Classify every path of the manifest and of the live tree exactly once."""

    report = ReconciliationReport(algorithm=algorithm)
    expected: Dict[str, bytes] = {}
    for record in stored:
        expected[record.path] = record.digest

    computed: Dict[str, bytes] = {}
    for result in live:
        if result.error is not None:
            report.failures[result.path] = result.error
            continue
        computed[result.path] = result.digest

    for path, digest in expected.items():
        actual = computed.get(path)
        if actual is None:
            report.entries[path] = Classification.MISSING
        elif actual == digest:
            report.entries[path] = Classification.MATCHED
        else:
            report.entries[path] = Classification.MISMATCHED

    live_paths = set(computed) | set(report.failures)
    for path in live_paths - set(expected):
        report.entries[path] = Classification.EXTRA
    return report


class ChecksumVerifier:
    def __init__(self, config: ChecksumConfig, *, stdin: Optional[TextIO] = None) -> None:
        self.config = config.validate()
        self.stage = Stage.IDLE
        self.algorithm: Optional[Algorithm] = None
        self._stdin = stdin

    def run(self) -> ReconciliationReport:
        try:
            self._advance(Stage.LOADING)
            stored = read_manifest(self.config.manifest, stdin=self._stdin)
            logger.debug("Loaded %d record(s) from %s", len(stored), self.config.manifest)

            self.algorithm = self._select_algorithm(stored)
            self._check_lengths(stored, self.algorithm)

            self._advance(Stage.WALKING)
            walk_issues: List[WalkIssue] = []
            entries = walk(
                self.config.root,
                exclusion_rules(self.config),
                same_file_system=self.config.same_file_system,
                issues=walk_issues,
            )

            self._advance(Stage.HASHING)
            pool = HashWorkerPool(self.algorithm, self.config.concurrency, chunk_size=self.config.chunk_size)
            live = pool.run(entries)

            self._advance(Stage.RECONCILING)
            report = reconcile(stored, live, self.algorithm)
            report.walk_issues = walk_issues

            self._advance(Stage.REPORTING)
            self._log_summary(report)
        except Exception:
            self._advance(Stage.FAILED)
            raise
        self._advance(Stage.DONE)
        return report

    def _select_algorithm(self, stored: List[DigestRecord]) -> Algorithm:
        if self.config.algorithm is not None:
            self._advance(Stage.USING_EXPLICIT)
            return self.config.algorithm
        self._advance(Stage.INFERRING)
        if not stored:
            return DEFAULT_ALGORITHM
        algorithm = infer(len(stored[0].digest))
        logger.debug("Inferred %s from %d-byte digests", algorithm.canonical_name, len(stored[0].digest))
        return algorithm

    def _check_lengths(self, stored: List[DigestRecord], algorithm: Algorithm) -> None:
        for record in stored:
            if len(record.digest) != algorithm.digest_size:
                raise DigestLengthMismatch(record.path, len(record.digest), algorithm)

    def _advance(self, stage: Stage) -> None:
        logger.debug("verify: %s -> %s", self.stage.value, stage.value)
        self.stage = stage

    def _log_summary(self, report: ReconciliationReport) -> None:
        for path in sorted(report.failures):
            logger.warning("%s", report.failures[path])
        extra = report.extra
        if extra and not self.config.report_extra:
            logger.warning("%d file(s) on disk are not listed in %s", len(extra), self.config.manifest)
        counts = report.counts()
        logger.info(
            "%s: %d OK, %d FAILED, %d MISSING, %d EXTRA",
            report.algorithm.canonical_name,
            counts["matched"],
            counts["mismatched"],
            counts["missing"],
            counts["extra"],
        )


def verify_checksums(config: ChecksumConfig, *, stdin: Optional[TextIO] = None) -> ReconciliationReport:
    return ChecksumVerifier(config, stdin=stdin).run()


__all__ = [
    "ChecksumVerifier",
    "Classification",
    "ReconciliationReport",
    "Stage",
    "reconcile",
    "verify_checksums",
]
