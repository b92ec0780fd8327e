from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Mapping, Optional, Protocol, Sequence, Tuple, Union

from buildsetup.core.logger import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]

# Shell conventions for "found but cannot execute" and "command not found"
CANNOT_EXECUTE = 126
COMMAND_NOT_FOUND = 127


class ProcessRunner(Protocol):
    def run(
        self,
        args: Sequence[str],
        cwd: Optional[PathLike] = None,
        *,
        env: Optional[Mapping[str, str]] = None,
        input_text: Optional[str] = None,
        quiet: bool = False,
    ) -> int:
        ...

    def capture(self, args: Sequence[str], cwd: Optional[PathLike] = None) -> Tuple[int, str]:
        ...


class SubprocessRunner:
    """Run external commands, inheriting stdout/stderr, and report exit status.

    ``env`` entries are layered over the current environment. ``quiet``
    discards stdout (used for ``sudo tee``). A missing program is reported as
    exit status 127, and any other OS error starting it (not executable, bad
    working directory) as 126, instead of raising.
    """

    def run(
        self,
        args: Sequence[str],
        cwd: Optional[PathLike] = None,
        *,
        env: Optional[Mapping[str, str]] = None,
        input_text: Optional[str] = None,
        quiet: bool = False,
    ) -> int:
        cmd = [str(a) for a in args]
        logger.debug(f"Running {' '.join(cmd)} (cwd={cwd or os.getcwd()})")
        try:
            completed = subprocess.run(
                cmd,
                cwd=str(cwd) if cwd is not None else None,
                env=_merged_env(env),
                input=input_text,
                text=True,
                stdout=subprocess.DEVNULL if quiet else None,
                check=False,
            )
        except OSError as exc:
            return _launch_failure(cmd, cwd, exc)
        return completed.returncode

    def capture(self, args: Sequence[str], cwd: Optional[PathLike] = None) -> Tuple[int, str]:
        cmd = [str(a) for a in args]
        logger.debug(f"Capturing {' '.join(cmd)}")
        try:
            completed = subprocess.run(
                cmd,
                cwd=str(cwd) if cwd is not None else None,
                stdout=subprocess.PIPE,
                text=True,
                check=False,
            )
        except OSError as exc:
            return _launch_failure(cmd, cwd, exc), ""
        return completed.returncode, completed.stdout or ""


def _merged_env(env: Optional[Mapping[str, str]]) -> Optional[dict]:
    if not env:
        return None
    merged = dict(os.environ)
    merged.update(env)
    return merged


def _launch_failure(cmd: Sequence[str], cwd: Optional[PathLike], exc: OSError) -> int:
    # A missing cwd also surfaces as FileNotFoundError
    if isinstance(exc, FileNotFoundError) and (cwd is None or Path(cwd).is_dir()):
        logger.error(f"Command not found: {cmd[0]}")
        return COMMAND_NOT_FOUND
    logger.error(f"Cannot run {cmd[0]} (cwd={cwd}): {type(exc).__name__}: {exc}")
    return CANNOT_EXECUTE
