"""
Custom exception classes for the buildsetup framework.

Fetch and build-stage errors are captured per unit by the executor and never
abort a pipeline. Duplicate names, configuration and setup-task errors are
structural and stop a run before (or instead of) building anything.
"""

from enum import Enum
from typing import Any, Dict, Optional


class BuildSetupException(Exception):
    """Base exception class for all buildsetup exceptions."""

    pass


class ConfigurationError(BuildSetupException):
    """Raised when the config file, context paths or strategy options are invalid."""

    pass


class DuplicateNameError(BuildSetupException):
    """Raised when a source unit name is registered twice."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Source unit already registered: {name!r}")


class FetchError(BuildSetupException):
    """
    Raised when a repository cannot be cloned or updated.

    Example:
        >>> raise FetchError(url="git://example.org/ostree", reason="clone")
    """

    def __init__(self, url: str, reason: str, details: Optional[Dict[str, Any]] = None):
        self.url = url
        self.reason = reason
        self.details = details or {}
        message = f"{reason} failed for {url}"
        if self.details:
            message += f" - {self.details}"
        super().__init__(message)


class BuildStageError(BuildSetupException):
    """
    Raised when an install strategy stage exits non-zero.

    ``stage`` is one of the strategy's stage names (bootstrap, configure,
    compile, install) and becomes the reason of the unit's failed result.

    Example:
        >>> raise BuildStageError("configure", details={"exit_status": 1})
    """

    def __init__(self, stage: str, details: Optional[Dict[str, Any]] = None):
        self.stage = stage
        self.details = details or {}
        message = f"Stage '{stage}' failed"
        if self.details:
            message += f" - {self.details}"
        super().__init__(message)


class SetupTaskError(BuildSetupException):
    """Raised when a machine setup task (packages, cron, apache) fails."""

    pass


class FailurePolicy(Enum):
    """What the pipeline does after a unit fails."""

    CONTINUE = "continue"      # Record the failure and build the next unit (default)
    STOP = "stop"              # Skip every remaining unit
