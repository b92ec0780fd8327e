"""buildsetup.

Build-machine setup: installs OS packages, clones and builds an ordered list of
source dependencies into a shared prefix, and optionally schedules recurring
builds with cron and publishes the exports through Apache.
"""

from buildsetup.orchestrator import SetupOrchestrator, SetupResult
from buildsetup.cli import main, validate_config

__version__ = "0.1.0"

__all__ = [
    "SetupOrchestrator",
    "SetupResult",
    "main",
    "validate_config",
]
