from __future__ import annotations

from typing import Iterable

from buildsetup.bootstrap import load_builtin_plugins
from buildsetup.core.process import ProcessRunner
from buildsetup.models.setup_config import SourceConfig
from buildsetup.sources.registry import SourceRegistry
from buildsetup.strategies.registry import StrategyRegistry


def build_source_registry(sources: Iterable[SourceConfig], runner: ProcessRunner) -> SourceRegistry:
    """Turn validated source entries into a registry, resolving each builder kind once."""
    load_builtin_plugins()

    registry = SourceRegistry()
    for source in sources:
        builder = StrategyRegistry.get(source.builder.kind)
        strategy = builder(source.builder, runner)
        registry.register(source.name, source.url, source.branch, strategy)
    return registry
