from __future__ import annotations

from typing import Dict, Iterator, List, Optional

from buildsetup.core.contracts import SourceUnit
from buildsetup.core.exceptions import ConfigurationError, DuplicateNameError
from buildsetup.strategies.base import InstallStrategy


class SourceRegistry:
    """Ordered, name-unique collection of source units.

    Unlike the strategy registry this is a plain value: build one per run and
    hand it to the pipeline runner.
    """

    def __init__(self) -> None:
        self._units: List[SourceUnit] = []
        self._by_name: Dict[str, SourceUnit] = {}

    def register(
        self,
        name: str,
        repository_url: str,
        branch: str,
        install_strategy: InstallStrategy,
    ) -> SourceUnit:
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            raise ConfigurationError(f"Invalid source unit name: {name!r}")
        if not repository_url:
            raise ConfigurationError(f"Source unit {name!r} has no repository URL")
        if not branch:
            raise ConfigurationError(f"Source unit {name!r} has no branch")
        if name in self._by_name:
            raise DuplicateNameError(name)

        unit = SourceUnit(
            name=name,
            repository_url=repository_url,
            branch=branch,
            install_strategy=install_strategy,
        )
        self._units.append(unit)
        self._by_name[name] = unit
        return unit

    def list(self) -> List[SourceUnit]:
        return list(self._units)

    def get(self, name: str) -> Optional[SourceUnit]:
        return self._by_name.get(name)

    def __iter__(self) -> Iterator[SourceUnit]:
        return iter(self.list())

    def __len__(self) -> int:
        return len(self._units)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name
