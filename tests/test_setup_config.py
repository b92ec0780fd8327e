from pathlib import Path

import pytest
from pydantic import ValidationError

from buildsetup.cli import load_config_file
from buildsetup.models.builder_config import AutotoolsBuilderConfig, MakeBuilderConfig
from buildsetup.models.setup_config import SetupConfig, SourceConfig

EXAMPLE = Path(__file__).resolve().parents[1] / "examples" / "flatpak-build-machine.yaml"


def test_defaults_match_a_plain_build_machine():
    cfg = SetupConfig.model_validate({})

    assert cfg.prefix == "/usr/local"
    assert cfg.tooldir == "tools"
    assert cfg.workdir == "work"
    assert cfg.failure_policy == "continue"
    assert cfg.packages.manager == "apt-get"
    assert cfg.schedule is None
    assert cfg.apache.enabled is False
    assert cfg.apache.packages == ["apache2"]


def test_builder_defaults_to_autotools():
    source = SourceConfig.model_validate({"name": "ostree", "url": "git://x/ostree"})

    assert isinstance(source.builder, AutotoolsBuilderConfig)
    assert source.branch == "master"


def test_builder_kind_shorthand():
    source = SourceConfig.model_validate({"name": "bwrap", "url": "git://x/bwrap", "builder": "make"})

    assert isinstance(source.builder, MakeBuilderConfig)
    assert source.builder.prefix_variable == "PREFIX"


def test_builder_options_are_validated():
    source = SourceConfig.model_validate(
        {
            "name": "ostree",
            "url": "git://x/ostree",
            "builder": {"kind": "autotools", "jobs": 8, "configure_args": ["--without-selinux"]},
        }
    )
    assert source.builder.jobs == 8
    assert source.builder.configure_args == ["--without-selinux"]

    with pytest.raises(ValidationError):
        SourceConfig.model_validate({"name": "o", "url": "u", "builder": {"kind": "autotools", "jobs": 0}})


def test_unknown_builder_kind_is_rejected():
    with pytest.raises(ValidationError):
        SourceConfig.model_validate({"name": "x", "url": "git://x/x", "builder": "cmake"})


@pytest.mark.parametrize("name", ["", "  ", "a/b", ".."])
def test_source_name_must_be_a_directory_name(name):
    with pytest.raises(ValidationError):
        SourceConfig.model_validate({"name": name, "url": "git://x/x"})


def test_empty_cron_is_rejected():
    with pytest.raises(ValidationError):
        SetupConfig.model_validate({"schedule": {"cron": "  "}})


def test_empty_paths_are_rejected():
    with pytest.raises(ValidationError, match="tooldir"):
        SetupConfig.model_validate({"tooldir": ""})


def test_example_config_validates():
    cfg = SetupConfig.model_validate(load_config_file(str(EXAMPLE)))

    assert [s.name for s in cfg.sources] == ["libgsystem", "ostree", "xdg-app"]
    assert all(s.builder.kind == "autotools" for s in cfg.sources)
    assert cfg.sources[1].builder.jobs == 4
    assert cfg.schedule.cron == "0 3 * * *"
