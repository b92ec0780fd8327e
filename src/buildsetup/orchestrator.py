from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from buildsetup.core.contracts import BuildContext, ExecutionResult, ensure_directory
from buildsetup.core.events import build_default_bus, publish_event, set_global_bus, timed_stage
from buildsetup.core.exceptions import ConfigurationError, FailurePolicy
from buildsetup.core.logger import configure_root_logger, get_logger, push_run_id, reset_run_id
from buildsetup.core.process import ProcessRunner, SubprocessRunner
from buildsetup.core.template_resolution import default_template_vars, resolve_templates
from buildsetup.executor import BuildExecutor
from buildsetup.machine.apache import configure_apache
from buildsetup.machine.packages import install_packages
from buildsetup.machine.schedule import ensure_build_schedule
from buildsetup.models.setup_config import SetupConfig
from buildsetup.pipeline import PipelineRunner, exit_status, summarize
from buildsetup.sources.wiring import build_source_registry


@dataclass
class SetupResult:
    run_id: str
    setup_name: str
    results: Dict[str, ExecutionResult] = field(default_factory=dict)
    packages: List[str] = field(default_factory=list)
    schedule_job: Optional[str] = None
    apache_configured: bool = False

    @property
    def exit_code(self) -> int:
        return exit_status(self.results)

    def summary(self) -> List[str]:
        return summarize(self.results)


class SetupOrchestrator:
    """
    Runs one build-machine setup end to end.

    Order matches a manual setup: OS packages first, then every source unit
    in declaration order, then the optional cron schedule and Apache site.

    Example:
        >>> from buildsetup import SetupOrchestrator
        >>> result = SetupOrchestrator().run(config_dict, base_dir="/srv/build")
        >>> result.exit_code
        0
    """

    def __init__(
        self,
        run_id: Optional[str] = None,
        *,
        runner: Optional[ProcessRunner] = None,
        log_level: str = "INFO",
    ):
        self.run_id = str(run_id) if run_id is not None else str(uuid.uuid4())
        self.runner: ProcessRunner = runner or SubprocessRunner()
        self.log_level = log_level

    def run(
        self,
        cfg: Union[Dict[str, Any], SetupConfig],
        *,
        base_dir: Optional[Union[str, Path]] = None,
        config_path: Optional[Union[str, Path]] = None,
        skip_packages: bool = False,
        runtime_vars: Optional[Dict[str, Any]] = None,
    ) -> SetupResult:
        """
        Execute the setup described by ``cfg``.

        Args:
            cfg: Setup configuration as a dict or an already validated SetupConfig.
            base_dir: Directory relative paths resolve against. Defaults to the
                      config file's directory, then the working directory.
            config_path: Config file the run came from; handed to the launcher script.
            skip_packages: Do not invoke the OS package manager.
            runtime_vars: Extra {{var}} values for config templates; they win
                          over the built-in ones.

        Returns:
            SetupResult with one ExecutionResult per source unit.

        Raises:
            ValidationError: If the config dict is invalid (raised by pydantic).
            ConfigurationError: If directories cannot be prepared, a builder
                                kind is unknown, or a schedule has no config
                                file for its launcher.
            DuplicateNameError: If two sources share a name.
            SetupTaskError: If installing packages, the schedule or apache fails.
        """
        configure_root_logger(self.log_level)
        log = get_logger(__name__)

        config_file = Path(config_path).expanduser().resolve() if config_path else None
        if base_dir is not None:
            root = Path(base_dir).expanduser().resolve()
        elif config_file is not None:
            root = config_file.parent
        else:
            root = Path.cwd()

        template_vars: Dict[str, Any] = {}
        template_vars.update(default_template_vars(config_dir=root))
        template_vars["run_id"] = self.run_id
        if runtime_vars:
            template_vars.update(runtime_vars)

        if isinstance(cfg, SetupConfig):
            cfg = SetupConfig.model_validate(resolve_templates(cfg.model_dump(mode="json"), template_vars))
        else:
            cfg = SetupConfig.model_validate(resolve_templates(cfg, template_vars))

        # Structural problems surface here, before anything is installed or built
        registry = build_source_registry(cfg.sources, self.runner)
        if cfg.schedule is not None and not cfg.schedule.build_config and config_file is None:
            raise ConfigurationError(
                "schedule needs a config file for the launcher to run: "
                "set schedule.build_config or pass config_path"
            )
        sudo_install = any(getattr(s.builder, "install_with_sudo", False) for s in cfg.sources)
        context = BuildContext.prepare(
            _resolve(cfg.tooldir, root),
            _resolve(cfg.prefix, root),
            check_prefix_writable=not sudo_install,
        )
        workdir = ensure_directory(_resolve(cfg.workdir, root), "work")
        export_dir = ensure_directory(workdir / "export", "export")

        result = SetupResult(run_id=self.run_id, setup_name=cfg.name)

        token = push_run_id(self.run_id)
        bus = build_default_bus(run_id=self.run_id, setup_name=cfg.name, base_path=str(workdir / "events"))
        if bus is not None:
            bus.start()
            set_global_bus(bus)
        publish_event(stage="setup", status="started", details={"units": len(registry)})
        try:
            log.info(f"Setup '{cfg.name}' started (prefix={context.install_prefix}, tooldir={context.source_root})")

            if skip_packages:
                log.info("Skipping OS package installation")
            else:
                extra = cfg.apache.packages if cfg.apache.enabled else []
                with timed_stage("packages.install", details={"manager": cfg.packages.manager}):
                    result.packages = install_packages(cfg.packages, self.runner, extra=extra)

            runner = PipelineRunner(BuildExecutor(self.runner), FailurePolicy(cfg.failure_policy))
            result.results = runner.run(registry, context)

            if cfg.schedule is not None:
                build_config = cfg.schedule.build_config
                tokens = {
                    "TOPDIR": str(root),
                    "PREFIX": str(context.install_prefix),
                    "CONFIG": str(_resolve(build_config, root)) if build_config else str(config_file),
                    "WORKDIR": str(workdir),
                }
                with timed_stage("schedule.install", details={"cron": cfg.schedule.cron}):
                    result.schedule_job = ensure_build_schedule(
                        cfg.schedule.cron,
                        _resolve(cfg.schedule.launcher_template, root),
                        _resolve(cfg.schedule.launcher_path, root),
                        tokens,
                        self.runner,
                    )

            if cfg.apache.enabled:
                with timed_stage("apache.configure", details={"site_root": str(export_dir)}):
                    result.apache_configured = configure_apache(
                        cfg.apache,
                        _resolve(cfg.apache.template_dir, root),
                        export_dir,
                        self.runner,
                    )

            for line in result.summary():
                log.info(line)
            failed = [name for name, r in result.results.items() if r.is_failed]
            if failed:
                log.error(f"Setup '{cfg.name}' finished with {len(failed)} failed unit(s): {', '.join(failed)}")
            else:
                log.info(f"Setup '{cfg.name}' completed successfully")
            publish_event(stage="setup", status="completed", details={"failed_units": failed})
            return result
        except Exception as exc:
            publish_event(stage="setup", status="failed", error={"code": type(exc).__name__, "message": str(exc)})
            raise
        finally:
            reset_run_id(token)
            if bus is not None:
                bus.shutdown()
            set_global_bus(None)


def _resolve(value: Union[str, Path], root: Path) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = root / path
    return path
