"""Autotools install strategy.

Stages run strictly in order and each one needs the previous to succeed::

    Init -> Bootstrapped -> Configured -> Built -> Installed

A non-zero exit at any stage raises ``BuildStageError(stage)`` and no later
stage runs for that unit.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

from buildsetup.core.contracts import BuildContext
from buildsetup.core.logger import get_logger
from buildsetup.core.process import ProcessRunner
from buildsetup.models.builder_config import AutotoolsBuilderConfig
from buildsetup.strategies.base import InstallStrategy
from buildsetup.strategies.registry import register_strategy

logger = get_logger(__name__)


class AutotoolsStrategy(InstallStrategy):
    kind = "autotools"

    def __init__(
        self,
        runner: ProcessRunner,
        *,
        configure_args: Sequence[str] = (),
        make_args: Sequence[str] = (),
        jobs: Optional[int] = None,
        bootstrap_command: Optional[Sequence[str]] = None,
        install_with_sudo: bool = False,
    ):
        super().__init__(runner)
        self.configure_args = list(configure_args)
        self.make_args = list(make_args)
        self.jobs = jobs
        self.bootstrap_command = list(bootstrap_command) if bootstrap_command else None
        self.install_with_sudo = install_with_sudo

    def build(self, source_dir: Path, context: BuildContext) -> None:
        source_dir = Path(source_dir)

        # A configure script means the tree was bootstrapped before (or ships one)
        if (source_dir / "configure").exists():
            logger.info(f"[{source_dir.name}] configure script present, skipping bootstrap")
        else:
            self._run_stage("bootstrap", self._bootstrap_args(source_dir), source_dir, env={"NOCONFIGURE": "1"})

        self._run_stage(
            "configure",
            ["./configure", f"--prefix={context.install_prefix}", *self.configure_args],
            source_dir,
        )
        self._run_stage("compile", self._make_command(self.jobs, self.make_args), source_dir)
        self._run_stage("install", self._install_command(self.install_with_sudo, ["install"]), source_dir)

    def _bootstrap_args(self, source_dir: Path) -> List[str]:
        if self.bootstrap_command:
            return self.bootstrap_command
        if (source_dir / "autogen.sh").exists():
            return ["./autogen.sh"]
        return ["autoreconf", "--install", "--force"]


@register_strategy(kind="autotools")
def build_autotools_strategy(cfg: AutotoolsBuilderConfig, runner: ProcessRunner) -> AutotoolsStrategy:
    return AutotoolsStrategy(
        runner,
        configure_args=cfg.configure_args,
        make_args=cfg.make_args,
        jobs=cfg.jobs,
        bootstrap_command=cfg.bootstrap_command,
        install_with_sudo=cfg.install_with_sudo,
    )
