from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import pytest

from buildsetup.core.contracts import BuildContext

Predicate = Callable[[List[str], Optional[Path]], bool]


@dataclass
class Call:
    args: List[str]
    cwd: Optional[Path]
    env: Dict[str, str] = field(default_factory=dict)
    input_text: Optional[str] = None


class FakeProcessRunner:
    """Records every command and answers with scripted exit statuses.

    Unscripted commands succeed. A successful ``git clone`` creates the
    destination directory so later runs see an existing checkout.
    """

    def __init__(self) -> None:
        self.calls: List[Call] = []
        self.captures: Dict[Tuple[str, ...], Tuple[int, str]] = {}
        self._rules: List[Tuple[Predicate, int, Optional[Callable[[List[str]], None]]]] = []

    def fail_when(
        self,
        predicate: Predicate,
        status: int = 1,
        side_effect: Optional[Callable[[List[str]], None]] = None,
    ) -> None:
        self._rules.append((predicate, status, side_effect))

    def run(
        self,
        args: Sequence[str],
        cwd=None,
        *,
        env: Optional[Mapping[str, str]] = None,
        input_text: Optional[str] = None,
        quiet: bool = False,
    ) -> int:
        args = [str(a) for a in args]
        cwd_path = Path(cwd) if cwd is not None else None
        self.calls.append(Call(args, cwd_path, dict(env or {}), input_text))

        for predicate, status, side_effect in self._rules:
            if predicate(args, cwd_path):
                if side_effect is not None:
                    side_effect(args)
                return status

        if args[:2] == ["git", "clone"]:
            Path(args[-1]).mkdir(parents=True, exist_ok=True)
        return 0

    def capture(self, args: Sequence[str], cwd=None) -> Tuple[int, str]:
        args = [str(a) for a in args]
        self.calls.append(Call(args, Path(cwd) if cwd is not None else None))
        return self.captures.get(tuple(args), (0, ""))

    def commands(self, unit: Optional[str] = None) -> List[str]:
        """Command lines, optionally only those run inside ``unit``'s checkout."""
        return [
            " ".join(c.args)
            for c in self.calls
            if unit is None or (c.cwd is not None and c.cwd.name == unit)
        ]

    def clones(self) -> List[str]:
        return [c.args[-1] for c in self.calls if c.args[:2] == ["git", "clone"]]


def matches(*prefix: str, unit: Optional[str] = None, exact: bool = False) -> Predicate:
    """Predicate for commands starting with ``prefix`` (run inside ``unit``'s checkout)."""

    def predicate(args: List[str], cwd: Optional[Path]) -> bool:
        if unit is not None and (cwd is None or cwd.name != unit):
            return False
        if exact:
            return tuple(args) == prefix
        return tuple(args[: len(prefix)]) == prefix

    return predicate


def clone_of(unit: str) -> Predicate:
    def predicate(args: List[str], cwd: Optional[Path]) -> bool:
        return args[:2] == ["git", "clone"] and Path(args[-1]).name == unit

    return predicate


@pytest.fixture
def runner() -> FakeProcessRunner:
    return FakeProcessRunner()


@pytest.fixture
def context(tmp_path: Path) -> BuildContext:
    return BuildContext.prepare(tmp_path / "src", tmp_path / "out")


@pytest.fixture(autouse=True)
def _quiet_events(monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep the stdout observer out of test output; JSONL still works
    monkeypatch.setenv("BUILDSETUP_EVENTS_TRANSPORTS", "jsonl")
