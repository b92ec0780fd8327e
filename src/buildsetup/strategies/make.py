from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

from buildsetup.core.contracts import BuildContext
from buildsetup.core.process import ProcessRunner
from buildsetup.models.builder_config import MakeBuilderConfig
from buildsetup.strategies.base import InstallStrategy
from buildsetup.strategies.registry import register_strategy


class MakeStrategy(InstallStrategy):
    """Plain Makefile projects: `make PREFIX=...` then `make install PREFIX=...`."""

    kind = "make"

    def __init__(
        self,
        runner: ProcessRunner,
        *,
        make_args: Sequence[str] = (),
        jobs: Optional[int] = None,
        prefix_variable: str = "PREFIX",
        install_target: str = "install",
        install_with_sudo: bool = False,
    ):
        super().__init__(runner)
        self.make_args = list(make_args)
        self.jobs = jobs
        self.prefix_variable = prefix_variable
        self.install_target = install_target
        self.install_with_sudo = install_with_sudo

    def build(self, source_dir: Path, context: BuildContext) -> None:
        source_dir = Path(source_dir)
        prefix_assignment = f"{self.prefix_variable}={context.install_prefix}"

        self._run_stage(
            "compile",
            self._make_command(self.jobs, [prefix_assignment, *self.make_args]),
            source_dir,
        )
        self._run_stage(
            "install",
            self._install_command(self.install_with_sudo, [self.install_target, prefix_assignment]),
            source_dir,
        )


@register_strategy(kind="make")
def build_make_strategy(cfg: MakeBuilderConfig, runner: ProcessRunner) -> MakeStrategy:
    return MakeStrategy(
        runner,
        make_args=cfg.make_args,
        jobs=cfg.jobs,
        prefix_variable=cfg.prefix_variable,
        install_target=cfg.install_target,
        install_with_sudo=cfg.install_with_sudo,
    )
