from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from buildsetup.models.builder_config import AutotoolsBuilderConfig, BuilderConfig


class SourceConfig(BaseModel):
    """One entry of the ordered `sources` list."""

    name: str
    url: str
    branch: str = "master"

    # Either a full builder mapping or just its kind, e.g. `builder: autotools`
    builder: BuilderConfig = Field(default_factory=AutotoolsBuilderConfig)

    @field_validator("builder", mode="before")
    @classmethod
    def _expand_builder_shorthand(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"kind": value}
        return value

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("source name must not be empty")
        if "/" in value or "\\" in value or value in (".", ".."):
            raise ValueError(f"source name must be a plain directory name: {value!r}")
        return value


class PackagesConfig(BaseModel):
    enabled: bool = True
    manager: str = "apt-get"
    names: List[str] = Field(default_factory=list)
    use_sudo: bool = True
    assume_yes: bool = True


class ScheduleConfig(BaseModel):
    """Cron entry that re-runs the builds through a generated launcher script."""

    cron: str
    launcher_template: str = "data/build-launcher.sh.in"
    launcher_path: str = "build-launcher.sh"

    # Passed to the launcher as @@CONFIG@@; defaults to the setup config file.
    build_config: Optional[str] = None

    @field_validator("cron")
    @classmethod
    def _validate_cron(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("cron expression must not be empty")
        return value


class ApacheConfig(BaseModel):
    enabled: bool = False
    template_dir: str = "data/apache"
    apache_dir: str = "/etc/apache2"
    service: str = "apache2"
    packages: List[str] = Field(default_factory=lambda: ["apache2"])


class SetupConfig(BaseModel):
    name: str = "build-machine"

    # Relative paths resolve against the directory of the config file.
    prefix: str = "/usr/local"
    tooldir: str = "tools"
    workdir: str = "work"

    failure_policy: Literal["continue", "stop"] = "continue"

    packages: PackagesConfig = Field(default_factory=PackagesConfig)
    sources: List[SourceConfig] = Field(default_factory=list)

    schedule: Optional[ScheduleConfig] = None
    apache: ApacheConfig = Field(default_factory=ApacheConfig)

    @model_validator(mode="after")
    def _validate_paths(self) -> "SetupConfig":
        for label in ("prefix", "tooldir", "workdir"):
            if not getattr(self, label).strip():
                raise ValueError(f"{label} must not be empty")
        return self
