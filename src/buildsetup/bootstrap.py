from __future__ import annotations

import importlib
import sys
from typing import Iterable


BUILTIN_PLUGIN_MODULES: tuple[str, ...] = (
    "buildsetup.strategies.autotools",
    "buildsetup.strategies.make",
)


_LOADED = False


def load_builtin_plugins(*, reload: bool = False, modules: Iterable[str] = BUILTIN_PLUGIN_MODULES) -> None:
    """Import built-in strategy modules so their decorators register them.

    In production, call with reload=False (default) so imports are cheap.
    In tests, call with reload=True to clear the strategy registry and re-run
    the decorators.
    """

    global _LOADED

    if _LOADED and not reload:
        return

    if reload:
        from buildsetup.strategies.registry import StrategyRegistry

        StrategyRegistry.clear()

    for module_name in modules:
        if reload:
            sys.modules.pop(module_name, None)
        importlib.import_module(module_name)

    _LOADED = True
