from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

from buildsetup.core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from buildsetup.strategies.base import InstallStrategy


class ExecutionStatus(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ExecutionResult:
    """Per-unit outcome of a pipeline run."""

    status: ExecutionStatus
    reason: Optional[str] = None

    @classmethod
    def success(cls) -> "ExecutionResult":
        return cls(ExecutionStatus.SUCCESS)

    @classmethod
    def skipped(cls, reason: str) -> "ExecutionResult":
        return cls(ExecutionStatus.SKIPPED, reason)

    @classmethod
    def failed(cls, reason: str) -> "ExecutionResult":
        return cls(ExecutionStatus.FAILED, reason)

    @property
    def is_failed(self) -> bool:
        return self.status is ExecutionStatus.FAILED

    def __str__(self) -> str:
        if self.reason:
            return f"{self.status.value} ({self.reason})"
        return self.status.value


@dataclass(frozen=True)
class BuildContext:
    """Shared paths lent to every install strategy.

    ``source_root`` holds one checkout per unit; ``install_prefix`` is the
    ``--prefix`` every unit installs into, so later units can build against
    what earlier units installed.
    """
    source_root: Path
    install_prefix: Path

    @classmethod
    def prepare(
        cls,
        source_root: Union[str, Path],
        install_prefix: Union[str, Path],
        *,
        check_prefix_writable: bool = True,
    ) -> "BuildContext":
        """Create both directories if needed and return an absolute context.

        Pass ``check_prefix_writable=False`` when units install with sudo into
        a system prefix such as /usr/local.
        """
        return cls(
            source_root=ensure_directory(source_root, "source root"),
            install_prefix=ensure_directory(
                install_prefix, "install prefix", check_writable=check_prefix_writable
            ),
        )


def ensure_directory(path: Union[str, Path], label: str, *, check_writable: bool = True) -> Path:
    if not str(path).strip():
        raise ConfigurationError(f"No {label} directory configured")
    resolved = Path(path).expanduser().resolve()
    try:
        resolved.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigurationError(f"Failed to create {label} directory: {resolved} ({exc})") from exc
    if not resolved.is_dir():
        raise ConfigurationError(f"{label.capitalize()} is not a directory: {resolved}")
    if check_writable and not os.access(resolved, os.W_OK):
        raise ConfigurationError(f"{label.capitalize()} is not writable: {resolved}")
    return resolved


@dataclass(frozen=True)
class SourceUnit:
    """One buildable dependency: where to fetch it and how to install it."""

    name: str
    repository_url: str
    branch: str
    install_strategy: "InstallStrategy"

    def local_dir(self, source_root: Path) -> Path:
        return Path(source_root) / self.name
