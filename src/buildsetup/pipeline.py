from __future__ import annotations

from typing import Dict, List, Mapping

from buildsetup.core.contracts import BuildContext, ExecutionResult
from buildsetup.core.exceptions import FailurePolicy
from buildsetup.core.logger import get_logger
from buildsetup.executor import BuildExecutor
from buildsetup.sources.registry import SourceRegistry

logger = get_logger(__name__)

SKIP_REASON = "previous failure"


class PipelineRunner:
    """Runs every registered unit, one after another, in declaration order.

    Later units may build against what earlier ones installed into the shared
    prefix, so units never overlap.
    """

    def __init__(self, executor: BuildExecutor, failure_policy: FailurePolicy = FailurePolicy.CONTINUE):
        self.executor = executor
        self.failure_policy = failure_policy

    def run(self, registry: SourceRegistry, context: BuildContext) -> Dict[str, ExecutionResult]:
        results: Dict[str, ExecutionResult] = {}
        stopped = False

        units = registry.list()
        logger.info(f"Building {len(units)} source unit(s) into {context.install_prefix}")
        for index, unit in enumerate(units, start=1):
            if stopped:
                results[unit.name] = ExecutionResult.skipped(SKIP_REASON)
                logger.info(f"[{unit.name}] skipped after earlier failure")
                continue

            logger.info(f"({index}/{len(units)}) {unit.name}")
            result = self.executor.ensure(unit, context)
            results[unit.name] = result

            if result.is_failed and self.failure_policy is FailurePolicy.STOP:
                stopped = True

        return results


def exit_status(results: Mapping[str, ExecutionResult]) -> int:
    return 1 if any(r.is_failed for r in results.values()) else 0


def summarize(results: Mapping[str, ExecutionResult]) -> List[str]:
    if not results:
        return ["No source units registered"]
    width = max(len(name) for name in results)
    return [f"{name.ljust(width)}  {result}" for name, result in results.items()]
