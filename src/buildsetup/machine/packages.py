from __future__ import annotations

from typing import Iterable, List

from buildsetup.core.exceptions import SetupTaskError
from buildsetup.core.logger import get_logger
from buildsetup.core.process import ProcessRunner
from buildsetup.models.setup_config import PackagesConfig

logger = get_logger(__name__)


def install_command(cfg: PackagesConfig, names: Iterable[str]) -> List[str]:
    cmd = ["sudo"] if cfg.use_sudo else []
    cmd.extend([cfg.manager, "install"])
    if cfg.assume_yes:
        cmd.append("-y")
    cmd.extend(names)
    return cmd


def install_packages(cfg: PackagesConfig, runner: ProcessRunner, extra: Iterable[str] = ()) -> List[str]:
    """Install the configured OS packages (plus ``extra``), returning what was requested."""
    names: List[str] = []
    for name in [*cfg.names, *extra]:
        if name not in names:
            names.append(name)

    if not cfg.enabled or not names:
        logger.info("No OS packages to install")
        return []

    logger.info(f"Ensuring {len(names)} OS package(s) are installed via {cfg.manager}")
    status = runner.run(install_command(cfg, names))
    if status != 0:
        raise SetupTaskError(f"{cfg.manager} install exited with status {status}")
    return names
