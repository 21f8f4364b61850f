from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import FrozenSet, Iterable, Iterator, List, Optional, Tuple, Union

from src.common.config import ChecksumConfig
from src.common.errors import ChecksumError, InvalidDirectoryCycle, UnreadableDirectory

logger = logging.getLogger(__name__)

DirectoryId = Tuple[int, int]


@dataclass(frozen=True)
class FileEntry:
    path: str
    size: Optional[int]
    absolute: Path


@dataclass(frozen=True)
class WalkIssue:
    path: str
    error: ChecksumError

    def __str__(self) -> str:
        return str(self.error)


class ExclusionRules:
    """Glob patterns matched against root-relative, slash-separated paths.

    A pattern without a slash also matches the last path component, so
    ``*.tmp`` or ``.git`` apply at any depth. A matching directory is pruned
    together with everything below it.
    """

    def __init__(self, patterns: Iterable[str] = (), exact: Iterable[str] = ()) -> None:
        normalised: List[str] = []
        for pattern in patterns:
            cleaned = _normalise_pattern(pattern)
            if cleaned and cleaned not in normalised:
                normalised.append(cleaned)
        self.patterns: Tuple[str, ...] = tuple(normalised)
        # Literal root-relative paths, never treated as globs.
        self.exact: FrozenSet[str] = frozenset(path for path in exact if path)

    def matches(self, relative_path: str) -> bool:
        if relative_path in self.exact:
            return True
        basename = relative_path.rsplit("/", 1)[-1]
        for pattern in self.patterns:
            if fnmatchcase(relative_path, pattern):
                return True
            if "/" not in pattern and fnmatchcase(basename, pattern):
                return True
        return False

    def __bool__(self) -> bool:
        return bool(self.patterns or self.exact)


def exclusion_rules(config: ChecksumConfig) -> ExclusionRules:
    """Configured patterns plus the manifest itself, matched literally, when it sits under the scanned root."""

    own_path = config.manifest_relative_to_root()
    return ExclusionRules(config.exclusions, exact=[own_path] if own_path else ())


def _normalise_pattern(pattern: str) -> str:
    cleaned = pattern.strip().replace("\\", "/")
    while cleaned.startswith("./"):
        cleaned = cleaned[2:]
    return cleaned.rstrip("/")


def walk(
    root: Union[str, Path],
    exclusions: Union[Iterable[str], ExclusionRules] = (),
    *,
    same_file_system: bool = True,
    issues: Optional[List[WalkIssue]] = None,
) -> Iterator[FileEntry]:
    """Lazily enumerate regular files below ``root``.

    The root is checked before returning: a missing or unlistable root raises
    ``UnreadableDirectory``. Problems below the root are appended to
    ``issues`` and the affected subtree is skipped.
    """

    root_path = Path(root)
    try:
        root_stat = root_path.stat()
    except OSError as exc:
        raise UnreadableDirectory(root_path, exc) from exc
    if not stat.S_ISDIR(root_stat.st_mode):
        raise UnreadableDirectory(root_path, NotADirectoryError(f"Not a directory: '{root_path}'"))
    try:
        first_listing = _list_directory(root_path)
    except OSError as exc:
        raise UnreadableDirectory(root_path, exc) from exc

    rules = exclusions if isinstance(exclusions, ExclusionRules) else ExclusionRules(exclusions)
    sink = issues if issues is not None else []
    root_id = (root_stat.st_dev, root_stat.st_ino)
    return _walk(root_path, first_listing, root_id, rules, same_file_system, sink)


def _list_directory(path: Path) -> List[os.DirEntry]:
    with os.scandir(path) as entries:
        return sorted(entries, key=lambda entry: entry.name)


def _walk(
    root: Path,
    first_listing: List[os.DirEntry],
    root_id: DirectoryId,
    rules: ExclusionRules,
    same_file_system: bool,
    issues: List[WalkIssue],
) -> Iterator[FileEntry]:
    # Each frame: (absolute dir, relative prefix, ancestor ids, pre-read listing)
    stack: List[Tuple[Path, str, FrozenSet[DirectoryId], Optional[List[os.DirEntry]]]] = [
        (root, "", frozenset([root_id]), first_listing)
    ]
    while stack:
        directory, prefix, ancestors, listing = stack.pop()
        if listing is None:
            try:
                listing = _list_directory(directory)
            except OSError as exc:
                error = UnreadableDirectory(directory, exc)
                logger.warning("Skipping directory: %s", error)
                issues.append(WalkIssue(prefix.rstrip("/"), error))
                continue

        subdirectories: List[Tuple[Path, str, FrozenSet[DirectoryId], None]] = []
        for entry in listing:
            relative = f"{prefix}{entry.name}"
            if rules and rules.matches(relative):
                logger.debug("Excluded %s", relative)
                continue
            try:
                is_dir = entry.is_dir()
                is_file = not is_dir and entry.is_file()
            except OSError as exc:
                logger.warning("Skipping entry %s: %s", relative, exc)
                continue

            if is_dir:
                try:
                    info = entry.stat()
                except OSError as exc:
                    error = UnreadableDirectory(entry.path, exc)
                    logger.warning("Skipping directory: %s", error)
                    issues.append(WalkIssue(relative, error))
                    continue
                identity = (info.st_dev, info.st_ino)
                if identity in ancestors:
                    cycle = InvalidDirectoryCycle(entry.path, os.path.realpath(entry.path))
                    logger.warning("%s", cycle)
                    issues.append(WalkIssue(relative, cycle))
                    continue
                if same_file_system and info.st_dev != root_id[0]:
                    logger.debug("Not crossing into other file system at %s", relative)
                    continue
                subdirectories.append((Path(entry.path), f"{relative}/", ancestors | {identity}, None))
            elif is_file:
                yield FileEntry(path=relative, size=_size_of(entry), absolute=Path(entry.path))
            else:
                logger.debug("Skipping %s: not a regular file or directory", relative)

        stack.extend(reversed(subdirectories))


def _size_of(entry: os.DirEntry) -> Optional[int]:
    try:
        return entry.stat().st_size
    except OSError:
        return None


__all__ = ["ExclusionRules", "FileEntry", "WalkIssue", "exclusion_rules", "walk"]
