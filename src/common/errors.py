"""Exception hierarchy shared by the checksum engine and its command line."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

PathLike = Union[str, Path]

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_FATAL = 2


class ChecksumError(Exception):
    """Base class for every error raised by the checksum engine."""


class ConfigurationError(ChecksumError):
    """Raised before any work starts when the run configuration is invalid."""


class UnknownAlgorithm(ConfigurationError):
    def __init__(self, identifier: str) -> None:
        super().__init__(f"Invalid algorithm '{identifier}'.")
        self.identifier = identifier


class InvalidConcurrency(ConfigurationError):
    def __init__(self, value: object) -> None:
        super().__init__(f"Thread count must be a positive integer, got {value!r}.")
        self.value = value


class InvalidConfigFile(ConfigurationError):
    def __init__(self, path: PathLike, reason: str) -> None:
        super().__init__(f"Config file {path}: {reason}")
        self.path = Path(path)
        self.reason = reason


class FormatError(ChecksumError):
    """Raised when manifest content cannot be trusted."""


class MalformedLine(FormatError):
    def __init__(self, line: str, line_number: Optional[int] = None, reason: str = "malformed line") -> None:
        location = f"line {line_number}: " if line_number is not None else ""
        super().__init__(f"{location}{reason}: {line!r}")
        self.line = line
        self.line_number = line_number
        self.reason = reason


class AmbiguousLength(FormatError):
    def __init__(self, length: int, candidates) -> None:
        names = ", ".join(candidate.canonical_name for candidate in candidates)
        super().__init__(
            f"Cannot guess algorithm with {length} bytes hash value: matches {names}. Select one explicitly."
        )
        self.length = length
        self.candidates = tuple(candidates)


class UnrecognizedLength(FormatError):
    def __init__(self, length: int) -> None:
        super().__init__(f"Cannot guess algorithm with {length} bytes hash value.")
        self.length = length


class DigestLengthMismatch(FormatError):
    def __init__(self, path: str, length: int, algorithm) -> None:
        super().__init__(
            f"Hash value for '{path}' is {length} bytes, {algorithm.canonical_name} digests are "
            f"{algorithm.digest_size} bytes."
        )
        self.path = path
        self.length = length
        self.algorithm = algorithm


class FatalIOError(ChecksumError):
    """An I/O failure that aborts the active pipeline."""

    action = "access"

    def __init__(self, path: PathLike, cause: Optional[BaseException] = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Cannot {self.action} '{path}'{detail}")
        self.path = path
        self.cause = cause


class UnreadableDirectory(FatalIOError):
    action = "list directory"


class ManifestReadError(FatalIOError):
    action = "read checksums from"


class ManifestWriteError(FatalIOError):
    action = "write checksums to"


class InvalidDirectoryCycle(ChecksumError):
    def __init__(self, path: PathLike, target: PathLike) -> None:
        super().__init__(f"'{path}' links back to '{target}', not descending.")
        self.path = path
        self.target = target


class FileReadError(ChecksumError):
    """Per-file hashing failure. Carried in results, never raised out of the pool."""

    def __init__(self, path: str, cause: OSError) -> None:
        self.path = path
        self.cause = cause
        self.reason = _classify_os_error(cause)
        super().__init__(f"'{path}' is inaccessible or not a file ({self.reason}): {cause.strerror or cause}")


def _classify_os_error(exc: OSError) -> str:
    if isinstance(exc, FileNotFoundError):
        return "not-found"
    if isinstance(exc, PermissionError):
        return "permission-denied"
    return "read-error"


__all__ = [
    "AmbiguousLength",
    "ChecksumError",
    "ConfigurationError",
    "DigestLengthMismatch",
    "EXIT_FAILED",
    "EXIT_FATAL",
    "EXIT_OK",
    "FatalIOError",
    "FileReadError",
    "FormatError",
    "InvalidConcurrency",
    "InvalidConfigFile",
    "InvalidDirectoryCycle",
    "MalformedLine",
    "ManifestReadError",
    "ManifestWriteError",
    "UnknownAlgorithm",
    "UnreadableDirectory",
    "UnrecognizedLength",
]
