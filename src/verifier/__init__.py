"""Verify pipeline: re-hash a tree and reconcile it against a stored manifest."""

from .verifier import ChecksumVerifier, Classification, ReconciliationReport, reconcile, verify_checksums

__all__ = ["ChecksumVerifier", "Classification", "ReconciliationReport", "reconcile", "verify_checksums"]
