"""Directory traversal with exclusion rules."""

from .walker import ExclusionRules, FileEntry, WalkIssue, exclusion_rules, walk

__all__ = ["ExclusionRules", "FileEntry", "WalkIssue", "exclusion_rules", "walk"]
