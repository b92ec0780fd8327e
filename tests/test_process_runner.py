import sys

from buildsetup.core.process import CANNOT_EXECUTE, COMMAND_NOT_FOUND, SubprocessRunner


def test_run_returns_exit_status(tmp_path):
    runner = SubprocessRunner()
    assert runner.run([sys.executable, "-c", "raise SystemExit(0)"]) == 0
    assert runner.run([sys.executable, "-c", "raise SystemExit(3)"], cwd=tmp_path) == 3


def test_run_layers_env_and_uses_cwd(tmp_path):
    script = (
        "import os, pathlib;"
        "pathlib.Path('seen.txt').write_text(os.environ['NOCONFIGURE'] + ':' + str('PATH' in os.environ))"
    )
    status = SubprocessRunner().run([sys.executable, "-c", script], cwd=tmp_path, env={"NOCONFIGURE": "1"})

    assert status == 0
    assert (tmp_path / "seen.txt").read_text() == "1:True"


def test_run_feeds_input_text(tmp_path):
    script = "import sys, pathlib; pathlib.Path('in.txt').write_text(sys.stdin.read())"
    SubprocessRunner().run([sys.executable, "-c", script], cwd=tmp_path, input_text="0 3 * * * job\n", quiet=True)

    assert (tmp_path / "in.txt").read_text() == "0 3 * * * job\n"


def test_missing_program_reports_127():
    runner = SubprocessRunner()
    assert runner.run(["buildsetup-no-such-program-xyz"]) == COMMAND_NOT_FOUND
    assert runner.capture(["buildsetup-no-such-program-xyz"]) == (COMMAND_NOT_FOUND, "")


def test_capture_returns_stdout():
    status, out = SubprocessRunner().capture([sys.executable, "-c", "print('15 4 * * * job')"])
    assert status == 0
    assert out == "15 4 * * * job\n"


def test_non_executable_program_reports_126(tmp_path):
    script = tmp_path / "configure"
    script.write_text("#!/bin/sh\nexit 0\n")
    script.chmod(0o644)

    assert SubprocessRunner().run(["./configure"], cwd=tmp_path) == CANNOT_EXECUTE


def test_file_as_working_directory_reports_126(tmp_path):
    not_a_dir = tmp_path / "ostree"
    not_a_dir.write_text("")

    runner = SubprocessRunner()
    assert runner.run([sys.executable, "-c", "pass"], cwd=not_a_dir) == CANNOT_EXECUTE
    assert runner.capture([sys.executable, "-c", "pass"], cwd=not_a_dir) == (CANNOT_EXECUTE, "")
