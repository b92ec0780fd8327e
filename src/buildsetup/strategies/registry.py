from __future__ import annotations

from typing import Any, Callable, ClassVar, Dict, Optional

from buildsetup.core.exceptions import ConfigurationError
from buildsetup.core.process import ProcessRunner
from buildsetup.strategies.base import InstallStrategy


# (builder config model, process runner) -> strategy instance
StrategyBuilder = Callable[[Any, ProcessRunner], InstallStrategy]


class StrategyRegistryError(ConfigurationError):
    pass


class StrategyRegistry:
    _registry: ClassVar[Dict[str, StrategyBuilder]] = {}

    @classmethod
    def register(
        cls,
        *,
        kind: str,
        builder: StrategyBuilder,
        overwrite: bool = False,
    ) -> None:
        if not overwrite and kind in cls._registry:
            existing = cls._registry[kind]
            raise StrategyRegistryError(
                f"Install strategy already registered for kind={kind!r}: {existing}"
            )
        cls._registry[kind] = builder

    @classmethod
    def get(cls, kind: str) -> StrategyBuilder:
        try:
            return cls._registry[kind]
        except KeyError as exc:
            raise StrategyRegistryError(
                f"No install strategy registered for kind={kind!r}"
            ) from exc

    @classmethod
    def try_get(cls, kind: str) -> Optional[StrategyBuilder]:
        return cls._registry.get(kind)

    @classmethod
    def kinds(cls) -> list[str]:
        return sorted(cls._registry)

    @classmethod
    def clear(cls) -> None:
        cls._registry.clear()


def register_strategy(
    *,
    kind: str,
    overwrite: bool = False,
) -> Callable[[StrategyBuilder], StrategyBuilder]:
    def decorator(builder: StrategyBuilder) -> StrategyBuilder:
        StrategyRegistry.register(kind=kind, builder=builder, overwrite=overwrite)
        return builder

    return decorator
