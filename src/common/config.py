"""Run configuration consumed by the generate and verify pipelines."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import psutil
import yaml

from .algorithms import Algorithm, resolve
from .errors import ConfigurationError, InvalidConcurrency, InvalidConfigFile

STDIO_SENTINEL = "-"
DEFAULT_MANIFEST = "checksums.txt"
DEFAULT_CHUNK_SIZE = 1024 * 1024

_CONFIG_KEYS = {"algorithm", "threads", "exclude", "quiet", "report_extra", "same_file_system", "chunk_size"}


def physical_cpu_count() -> int:
    count = psutil.cpu_count(logical=False) or os.cpu_count() or 1
    return max(1, int(count))


def validate_concurrency(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidConcurrency(value)
    return value


@dataclass(frozen=True)
class ChecksumConfig:
    mode: str
    root: Path = Path(".")
    manifest: str = DEFAULT_MANIFEST
    algorithm: Optional[Algorithm] = None
    concurrency: Optional[int] = None
    quiet: bool = False
    exclusions: Tuple[str, ...] = field(default_factory=tuple)
    report_extra: bool = False
    same_file_system: bool = True
    chunk_size: int = DEFAULT_CHUNK_SIZE

    @property
    def uses_stdio(self) -> bool:
        return self.manifest == STDIO_SENTINEL

    @property
    def threads(self) -> int:
        return self.concurrency if self.concurrency is not None else physical_cpu_count()

    def validate(self) -> "ChecksumConfig":
        if self.mode not in ("generate", "verify"):
            raise ConfigurationError(f"Unknown mode {self.mode!r}.")
        if self.concurrency is not None:
            validate_concurrency(self.concurrency)
        if isinstance(self.chunk_size, bool) or not isinstance(self.chunk_size, int) or self.chunk_size < 1:
            raise ConfigurationError(f"chunk_size must be a positive integer, got {self.chunk_size!r}.")
        return self

    def manifest_relative_to_root(self) -> Optional[str]:
        """Root-relative path of the manifest file when it lives inside the scanned tree."""

        if self.uses_stdio:
            return None
        manifest_path = Path(self.manifest).expanduser().resolve()
        try:
            return manifest_path.relative_to(self.root.expanduser().resolve()).as_posix()
        except ValueError:
            return None


def load_config_file(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except FileNotFoundError as exc:
        raise InvalidConfigFile(path, "not found") from exc
    except yaml.YAMLError as exc:
        raise InvalidConfigFile(path, f"invalid YAML ({exc})") from exc
    if not isinstance(data, dict):
        raise InvalidConfigFile(path, "must contain a mapping")
    unknown = sorted(set(data) - _CONFIG_KEYS)
    if unknown:
        raise InvalidConfigFile(path, f"unknown key(s): {', '.join(map(str, unknown))}")
    exclude = data.get("exclude")
    if exclude is not None and not (isinstance(exclude, list) and all(isinstance(item, str) for item in exclude)):
        raise InvalidConfigFile(path, "exclude must be a list of patterns")
    return data


def build_config(
    mode: str,
    *,
    root: Path,
    manifest: str,
    algorithm: Optional[str] = None,
    threads: Optional[int] = None,
    exclude: Optional[Tuple[str, ...]] = None,
    quiet: Optional[bool] = None,
    report_extra: Optional[bool] = None,
    config_file: Optional[Path] = None,
) -> ChecksumConfig:
    """Merge command-line values over config-file values over defaults."""

    file_values = load_config_file(config_file) if config_file is not None else {}

    def pick(cli_value: Any, key: str, default: Any) -> Any:
        if cli_value is not None:
            return cli_value
        return file_values.get(key, default)

    algorithm_value = pick(algorithm, "algorithm", None)
    patterns = list(file_values.get("exclude") or [])
    if exclude:
        patterns.extend(exclude)

    config = ChecksumConfig(
        mode=mode,
        root=Path(root),
        manifest=str(manifest),
        algorithm=resolve(algorithm_value) if algorithm_value is not None else None,
        concurrency=pick(threads, "threads", None),
        quiet=bool(pick(quiet, "quiet", False)),
        exclusions=tuple(patterns),
        report_extra=bool(pick(report_extra, "report_extra", False)),
        same_file_system=bool(file_values.get("same_file_system", True)),
        chunk_size=file_values.get("chunk_size", DEFAULT_CHUNK_SIZE),
    )
    return config.validate()


__all__ = [
    "ChecksumConfig",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_MANIFEST",
    "STDIO_SENTINEL",
    "build_config",
    "load_config_file",
    "physical_cpu_count",
    "validate_concurrency",
]
