"""
Command-line interface and entry points for buildsetup.

``buildsetup run setup.yaml`` prepares a build machine: OS packages, every
configured source dependency, and optionally a cron schedule and an Apache
site publishing the build exports. The process exits non-zero when any
source unit failed to build.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from buildsetup.core.exceptions import ConfigurationError
from buildsetup.core.logger import configure_root_logger, get_logger
from buildsetup.core.process import SubprocessRunner
from buildsetup.models.setup_config import SetupConfig
from buildsetup.orchestrator import SetupOrchestrator, SetupResult
from buildsetup.sources.wiring import build_source_registry

logger = get_logger(__name__)


def load_config_file(config_path: str) -> Dict[str, Any]:
    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_file, "r") as f:
        if config_file.suffix == ".json":
            config = json.load(f)
        elif config_file.suffix in (".yaml", ".yml"):
            config = yaml.safe_load(f)
        else:
            raise ConfigurationError(
                f"Unsupported config format: {config_file.suffix}. "
                "Use .json or .yaml"
            )

    if config is None:
        config = {}
    if not isinstance(config, dict):
        raise ConfigurationError(f"Config file must contain a mapping: {config_path}")
    return config


def apply_overrides(config: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Layer command-line options over the file config (unset options are ignored)."""
    merged = dict(config)

    for key in ("prefix", "tooldir", "workdir"):
        value = overrides.get(key)
        if value:
            # Paths given on the command line are relative to where we were run
            merged[key] = str(Path(value).expanduser().resolve())

    if overrides.get("schedule"):
        schedule = dict(merged.get("schedule") or {})
        schedule["cron"] = overrides["schedule"]
        merged["schedule"] = schedule

    if overrides.get("with_apache"):
        apache = dict(merged.get("apache") or {})
        apache["enabled"] = True
        merged["apache"] = apache

    if overrides.get("fail_fast"):
        merged["failure_policy"] = "stop"

    return merged


def main(
    config_path: Optional[str] = None,
    config_dict: Optional[Dict[str, Any]] = None,
    *,
    overrides: Optional[Dict[str, Any]] = None,
    skip_packages: bool = False,
    runtime_vars: Optional[Dict[str, Any]] = None,
    log_level: str = "INFO",
) -> SetupResult:
    """
    Main entry point for a setup run.

    Can be called with either:
    - A config file path (JSON/YAML)
    - A config dictionary (programmatic)

    Args:
        config_path: Path to JSON/YAML configuration file
        config_dict: Direct configuration dictionary
        overrides: Command-line style overrides (prefix, tooldir, workdir,
                   schedule, with_apache, fail_fast)

    Returns:
        SetupResult with per-unit outcomes; ``exit_code`` is non-zero if any
        unit failed.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If neither config_path nor config_dict provided

    Example:
        >>> from buildsetup.cli import main
        >>> result = main(config_path="setup.yaml", overrides={"prefix": "/opt/flatpak"})
        >>> print(result.summary())
    """
    try:
        if config_dict is not None:
            config = config_dict
            logger.info("Using provided config dictionary")
        elif config_path:
            config = load_config_file(config_path)
            logger.info(f"Loaded config from {config_path}")
        else:
            raise ValueError(
                "Either config_path or config_dict must be provided"
            )

        config = apply_overrides(config, overrides or {})

        orchestrator = SetupOrchestrator(log_level=log_level)
        result = orchestrator.run(
            config,
            config_path=config_path,
            skip_packages=skip_packages,
            runtime_vars=runtime_vars,
        )
        logger.info(f"Setup finished with exit code {result.exit_code}")
        return result

    except Exception as e:
        logger.error(f"Setup failed: {str(e)}", exc_info=True)
        raise


def validate_config(config_path: str) -> bool:
    """
    Validate configuration without installing or building anything.

    Checks the schema, that every builder kind has a registered strategy and
    that source names are unique.

    Example:
        >>> validate_config("/path/to/setup.yaml")
        True
    """
    try:
        config = load_config_file(config_path)
        logger.info(f"Validating config: {config_path}")

        cfg = SetupConfig.model_validate(config)
        build_source_registry(cfg.sources, SubprocessRunner())

        logger.info("Configuration is valid")
        return True

    except Exception as e:
        logger.error(f"Config validation failed: {str(e)}")
        raise


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="buildsetup",
        description="Set up a build machine: install OS packages, build source dependencies, schedule builds"
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Command to execute"
    )

    run_parser = subparsers.add_parser(
        "run",
        help="Install packages and build every configured source"
    )
    run_parser.add_argument(
        "config",
        help="Path to configuration file (JSON or YAML)"
    )
    run_parser.add_argument(
        "-p", "--prefix",
        help="Install prefix for the built tooling (default from config: /usr/local)"
    )
    run_parser.add_argument(
        "-t", "--tooldir",
        help="Directory the sources are checked out and built in"
    )
    run_parser.add_argument(
        "-w", "--workdir",
        help="Directory for build output, exports and event logs"
    )
    run_parser.add_argument(
        "-s", "--schedule",
        metavar="EXPRESSION",
        help="Cron expression for recurring builds (default: no cron job)"
    )
    run_parser.add_argument(
        "--with-apache",
        action="store_true",
        help="Install and set up an apache server to host the builds and logs"
    )
    run_parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Stop building after the first failed source"
    )
    run_parser.add_argument(
        "--skip-packages",
        action="store_true",
        help="Do not run the OS package manager"
    )
    run_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate configuration without running anything"
    )
    validate_parser.add_argument(
        "config",
        help="Path to configuration file (JSON or YAML)"
    )
    return parser


def cli(argv: Optional[list] = None) -> None:
    """
    Command-line interface for buildsetup.

    Usage:
        buildsetup run setup.yaml --prefix /opt/flatpak --schedule "0 3 * * *"
        buildsetup validate setup.yaml
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "run":
        level = "DEBUG" if args.verbose else "INFO"
        configure_root_logger(level)
        overrides = {
            "prefix": args.prefix,
            "tooldir": args.tooldir,
            "workdir": args.workdir,
            "schedule": args.schedule,
            "with_apache": args.with_apache,
            "fail_fast": args.fail_fast,
        }
        try:
            result = main(
                config_path=args.config,
                overrides=overrides,
                skip_packages=args.skip_packages,
                log_level=level,
            )
        except Exception:
            # main() has already logged the failure with its traceback
            sys.exit(1)
        for line in result.summary():
            print(line)
        sys.exit(result.exit_code)

    elif args.command == "validate":
        configure_root_logger("INFO")
        try:
            validate_config(args.config)
            sys.exit(0)
        except Exception:
            # validate_config() has already logged the failure
            sys.exit(1)

    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    cli()
