from __future__ import annotations

from pathlib import Path
from typing import Dict

from buildsetup.core.exceptions import SetupTaskError
from buildsetup.core.logger import get_logger
from buildsetup.core.process import ProcessRunner
from buildsetup.core.template_resolution import render_file_template
from buildsetup.models.setup_config import ApacheConfig

logger = get_logger(__name__)

# Installed config file (relative to apache_dir) -> template name in template_dir
APACHE_FILES: Dict[str, str] = {
    "apache2.conf": "apache2.conf.in",
    "sites-available/000-default.conf": "000-default.conf.in",
    "sites-available/default-ssl.conf": "default-ssl.conf.in",
}


def configure_apache(cfg: ApacheConfig, template_dir: Path, site_root: Path, runner: ProcessRunner) -> bool:
    """Point the stock Apache layout at ``site_root`` and restart the server.

    Returns False without touching anything when the Apache layout is not the
    one the templates were written for.
    """
    apache_dir = Path(cfg.apache_dir)
    targets = {apache_dir / rel: template_dir / tpl for rel, tpl in APACHE_FILES.items()}

    missing = [str(path) for path in targets if not path.is_file()]
    if missing:
        logger.warning(f"Unrecognized apache server (missing {', '.join(missing)}); not setting up apache")
        return False

    tokens = {"SITE_ROOT": str(site_root)}
    for target, template in targets.items():
        try:
            text = template.read_text(encoding="utf-8")
        except OSError as exc:
            raise SetupTaskError(f"Cannot read apache template {template}: {exc}") from exc
        status = runner.run(["sudo", "tee", str(target)], input_text=render_file_template(text, tokens), quiet=True)
        if status != 0:
            raise SetupTaskError(f"Writing {target} exited with status {status}")

    logger.info(f"Restarting apache server to serve build results at: {site_root}")
    status = runner.run(["sudo", "service", cfg.service, "restart"])
    if status != 0:
        raise SetupTaskError(f"Restarting {cfg.service} exited with status {status}")
    return True
