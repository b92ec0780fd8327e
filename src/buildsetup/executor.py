from __future__ import annotations

import shutil
from pathlib import Path

from buildsetup.core.contracts import BuildContext, ExecutionResult, SourceUnit
from buildsetup.core.events import publish_event, timed_stage
from buildsetup.core.exceptions import BuildStageError, FetchError
from buildsetup.core.logger import get_logger
from buildsetup.core.process import ProcessRunner

logger = get_logger(__name__)


class BuildExecutor:
    """Ensures one unit's checkout is present, then runs its install strategy.

    Holds no per-unit state, so calling ``ensure`` again on a unit that was
    already built just updates the checkout and rebuilds it.
    """

    def __init__(self, runner: ProcessRunner):
        self.runner = runner

    def ensure(self, unit: SourceUnit, context: BuildContext) -> ExecutionResult:
        local_dir = unit.local_dir(context.source_root)
        details = {"unit": unit.name, "branch": unit.branch}

        try:
            with timed_stage("unit.fetch", details=details):
                if local_dir.exists():
                    self._update(unit, local_dir)
                else:
                    self._clone(unit, local_dir)
        except FetchError as exc:
            logger.error(f"[{unit.name}] {exc}")
            return ExecutionResult.failed(exc.reason)

        try:
            with timed_stage("unit.build", details={**details, "strategy": unit.install_strategy.kind}):
                unit.install_strategy.build(local_dir, context)
        except BuildStageError as exc:
            logger.error(f"[{unit.name}] {exc}")
            return ExecutionResult.failed(exc.stage)

        logger.info(f"[{unit.name}] installed into {context.install_prefix}")
        return ExecutionResult.success()

    def _clone(self, unit: SourceUnit, local_dir: Path) -> None:
        logger.info(f"[{unit.name}] cloning {unit.repository_url} ({unit.branch})")
        status = self.runner.run(
            ["git", "clone", "--branch", unit.branch, unit.repository_url, str(local_dir)],
            cwd=local_dir.parent,
        )
        if status != 0:
            # Leave nothing behind so the next run clones again instead of updating
            if local_dir.exists():
                shutil.rmtree(local_dir, ignore_errors=True)
            raise FetchError(unit.repository_url, "clone", details={"exit_status": status})

    def _update(self, unit: SourceUnit, local_dir: Path) -> None:
        steps = (
            ["git", "fetch", "origin", unit.branch],
            ["git", "checkout", unit.branch],
            ["git", "merge", "--ff-only", "FETCH_HEAD"],
        )
        for args in steps:
            status = self.runner.run(args, cwd=local_dir)
            if status != 0:
                # Diverged or offline: build whatever is checked out
                logger.warning(
                    f"[{unit.name}] could not fast-forward to {unit.branch} "
                    f"('{' '.join(args)}' exited {status}); using existing checkout"
                )
                publish_event(
                    stage="unit.update",
                    status="degraded",
                    details={"unit": unit.name, "command": " ".join(args), "exit_status": status},
                )
                return
        logger.info(f"[{unit.name}] up to date with {unit.branch}")
