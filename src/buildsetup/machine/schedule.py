"""Cron scheduling of recurring builds.

A launcher script is rendered from a template carrying the current setup
(``@@TOPDIR@@``, ``@@PREFIX@@``, ``@@CONFIG@@``, ``@@WORKDIR@@``) and a single
crontab line runs it. Re-running the setup replaces the previous line instead
of adding another.
"""

from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import List, Mapping

from buildsetup.core.exceptions import SetupTaskError
from buildsetup.core.logger import get_logger
from buildsetup.core.process import ProcessRunner
from buildsetup.core.template_resolution import render_file_template

logger = get_logger(__name__)


def write_launcher(template_path: Path, launcher_path: Path, tokens: Mapping[str, str]) -> Path:
    try:
        text = template_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SetupTaskError(f"Cannot read launcher template {template_path}: {exc}") from exc

    launcher_path.parent.mkdir(parents=True, exist_ok=True)
    launcher_path.write_text(render_file_template(text, tokens), encoding="utf-8")
    mode = launcher_path.stat().st_mode
    os.chmod(launcher_path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    logger.info(f"Wrote launcher script {launcher_path}")
    return launcher_path


def merge_crontab(existing: str, marker: str, job: str) -> str:
    """Drop every line mentioning ``marker`` (case-insensitive) and append ``job``."""
    needle = marker.lower()
    kept: List[str] = [line for line in existing.splitlines() if needle not in line.lower()]
    kept.append(job)
    return "\n".join(kept) + "\n"


def ensure_build_schedule(
    cron: str,
    template_path: Path,
    launcher_path: Path,
    tokens: Mapping[str, str],
    runner: ProcessRunner,
) -> str:
    """Render the launcher and point exactly one crontab entry at it; returns the job line."""
    launcher = write_launcher(template_path, launcher_path, tokens)
    job = f"{cron} {launcher}"

    status, current = runner.capture(["crontab", "-l"])
    if status != 0:
        # No crontab for this user yet
        current = ""

    updated = merge_crontab(current, launcher.name, job)
    status = runner.run(["crontab", "-"], input_text=updated)
    if status != 0:
        raise SetupTaskError(f"crontab update exited with status {status}")

    logger.info(f"Scheduled builds: {job}")
    return job
