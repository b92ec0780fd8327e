from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping, Optional, Sequence

from buildsetup.core.contracts import BuildContext
from buildsetup.core.exceptions import BuildStageError
from buildsetup.core.logger import get_logger
from buildsetup.core.process import ProcessRunner

logger = get_logger(__name__)


class InstallStrategy(ABC):
    """Builds a checked-out source tree and installs it into the context prefix."""

    kind: str = "-"

    def __init__(self, runner: ProcessRunner):
        self.runner = runner

    @abstractmethod
    def build(self, source_dir: Path, context: BuildContext) -> None:
        """Run every stage in order; raise BuildStageError on the first failure."""
        raise NotImplementedError

    def _run_stage(
        self,
        stage: str,
        args: Sequence[str],
        cwd: Path,
        *,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        logger.info(f"[{cwd.name}] {stage}: {' '.join(str(a) for a in args)}")
        status = self.runner.run(list(args), cwd=cwd, env=env)
        if status != 0:
            raise BuildStageError(stage, details={"exit_status": status, "source_dir": str(cwd)})

    @staticmethod
    def _make_command(jobs: Optional[int], make_args: Sequence[str]) -> list[str]:
        cmd = ["make"]
        if jobs:
            cmd.append(f"-j{jobs}")
        cmd.extend(make_args)
        return cmd

    @staticmethod
    def _install_command(install_with_sudo: bool, args: Sequence[str]) -> list[str]:
        cmd = ["sudo"] if install_with_sudo else []
        cmd.extend(["make", *args])
        return cmd
