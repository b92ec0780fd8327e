import os

import pytest

from buildsetup.core.exceptions import SetupTaskError
from buildsetup.machine.apache import APACHE_FILES, configure_apache
from buildsetup.machine.packages import install_command, install_packages
from buildsetup.machine.schedule import ensure_build_schedule, merge_crontab, write_launcher
from buildsetup.models.setup_config import ApacheConfig, PackagesConfig

from conftest import matches


# --- packages ---------------------------------------------------------------

def test_install_command_uses_sudo_and_assume_yes():
    cfg = PackagesConfig(names=["git", "bison"])
    assert install_command(cfg, cfg.names) == ["sudo", "apt-get", "install", "-y", "git", "bison"]

    cfg = PackagesConfig(manager="dnf", use_sudo=False, assume_yes=False)
    assert install_command(cfg, ["git"]) == ["dnf", "install", "git"]


def test_install_packages_appends_extra_without_duplicates(runner):
    cfg = PackagesConfig(names=["git", "apache2"])

    requested = install_packages(cfg, runner, extra=["apache2", "libapache2-mod-php"])

    assert requested == ["git", "apache2", "libapache2-mod-php"]
    assert runner.commands() == ["sudo apt-get install -y git apache2 libapache2-mod-php"]


def test_install_packages_is_a_no_op_when_disabled_or_empty(runner):
    assert install_packages(PackagesConfig(), runner) == []
    assert install_packages(PackagesConfig(enabled=False, names=["git"]), runner) == []
    assert runner.calls == []


def test_install_packages_failure_raises(runner):
    runner.fail_when(matches("sudo", "apt-get"), status=100)
    with pytest.raises(SetupTaskError, match="status 100"):
        install_packages(PackagesConfig(names=["git"]), runner)


# --- schedule ---------------------------------------------------------------

def test_write_launcher_renders_tokens_and_is_executable(tmp_path):
    template = tmp_path / "build-launcher.sh.in"
    template.write_text("cd @@TOPDIR@@\nexec run @@CONFIG@@ --prefix @@PREFIX@@ --workdir @@WORKDIR@@\n")
    launcher = tmp_path / "build-launcher.sh"

    write_launcher(
        template,
        launcher,
        {"TOPDIR": "/srv", "CONFIG": "/srv/build.conf", "PREFIX": "/usr/local", "WORKDIR": "/srv/work"},
    )

    assert launcher.read_text() == "cd /srv\nexec run /srv/build.conf --prefix /usr/local --workdir /srv/work\n"
    assert os.access(launcher, os.X_OK)


def test_write_launcher_missing_template_raises(tmp_path):
    with pytest.raises(SetupTaskError, match="launcher template"):
        write_launcher(tmp_path / "missing.in", tmp_path / "out.sh", {})


def test_merge_crontab_replaces_previous_launcher_lines():
    existing = "MAILTO=ops\n0 1 * * * /old/Build-Launcher.sh\n30 2 * * * /usr/bin/backup\n"

    merged = merge_crontab(existing, "build-launcher.sh", "0 3 * * * /srv/build-launcher.sh")

    assert merged == "MAILTO=ops\n30 2 * * * /usr/bin/backup\n0 3 * * * /srv/build-launcher.sh\n"


def test_ensure_build_schedule_installs_single_job(runner, tmp_path):
    template = tmp_path / "build-launcher.sh.in"
    template.write_text("#!/bin/sh\n")
    launcher = tmp_path / "build-launcher.sh"
    runner.captures[("crontab", "-l")] = (0, f"15 4 * * * {launcher}\n")

    job = ensure_build_schedule("0 3 * * *", template, launcher, {}, runner)

    assert job == f"0 3 * * * {launcher}"
    install = runner.calls[-1]
    assert install.args == ["crontab", "-"]
    assert install.input_text == f"0 3 * * * {launcher}\n"


def test_ensure_build_schedule_without_existing_crontab(runner, tmp_path):
    template = tmp_path / "launcher.in"
    template.write_text("#!/bin/sh\n")
    runner.captures[("crontab", "-l")] = (1, "no crontab for builder\n")

    ensure_build_schedule("@daily", template, tmp_path / "launcher.sh", {}, runner)

    assert runner.calls[-1].input_text == f"@daily {tmp_path / 'launcher.sh'}\n"


def test_ensure_build_schedule_crontab_failure_raises(runner, tmp_path):
    template = tmp_path / "launcher.in"
    template.write_text("#!/bin/sh\n")
    runner.fail_when(matches("crontab", "-"))

    with pytest.raises(SetupTaskError, match="crontab"):
        ensure_build_schedule("@daily", template, tmp_path / "launcher.sh", {}, runner)


# --- apache -----------------------------------------------------------------

def _apache_layout(tmp_path):
    apache_dir = tmp_path / "apache2"
    for rel in APACHE_FILES:
        target = apache_dir / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text("# stock\n")
    template_dir = tmp_path / "templates"
    template_dir.mkdir()
    for tpl in APACHE_FILES.values():
        (template_dir / tpl).write_text(f"DocumentRoot @@SITE_ROOT@@ # {tpl}\n")
    return apache_dir, template_dir


def test_configure_apache_writes_configs_and_restarts(runner, tmp_path):
    apache_dir, template_dir = _apache_layout(tmp_path)
    cfg = ApacheConfig(enabled=True, apache_dir=str(apache_dir))

    assert configure_apache(cfg, template_dir, tmp_path / "export", runner) is True

    tee_calls = [c for c in runner.calls if c.args[:2] == ["sudo", "tee"]]
    assert [c.args[2] for c in tee_calls] == [str(apache_dir / rel) for rel in APACHE_FILES]
    assert tee_calls[0].input_text == f"DocumentRoot {tmp_path / 'export'} # apache2.conf.in\n"
    assert runner.commands()[-1] == "sudo service apache2 restart"


def test_configure_apache_skips_unrecognized_layout(runner, tmp_path):
    apache_dir, template_dir = _apache_layout(tmp_path)
    (apache_dir / "sites-available" / "default-ssl.conf").unlink()
    cfg = ApacheConfig(enabled=True, apache_dir=str(apache_dir))

    assert configure_apache(cfg, template_dir, tmp_path / "export", runner) is False
    assert runner.calls == []


def test_configure_apache_restart_failure_raises(runner, tmp_path):
    apache_dir, template_dir = _apache_layout(tmp_path)
    runner.fail_when(matches("sudo", "service"))
    cfg = ApacheConfig(enabled=True, apache_dir=str(apache_dir))

    with pytest.raises(SetupTaskError, match="apache2"):
        configure_apache(cfg, template_dir, tmp_path / "export", runner)
