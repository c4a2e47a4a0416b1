"""Tests for the command runner, using real binaries and no sudo prefix."""

import pytest

from runner import MMFS_BIN, CommandFailed, CommandRunner, DeadlineExceeded


def test_argv_prefixes_bindir_and_sudo():
    runner = CommandRunner()
    assert runner.argv("mmdf", ["project", "-Y"]) == ["sudo", f"{MMFS_BIN}/mmdf", "project", "-Y"]


def test_argv_without_sudo_keeps_absolute_path():
    runner = CommandRunner(sudo="")
    assert runner.argv("/bin/echo", ["foo"]) == ["/bin/echo", "foo"]


def test_run_returns_stdout():
    runner = CommandRunner(sudo="")
    assert runner.run("/bin/echo", ["foo"], 5) == "foo\n"


def test_run_passes_stdin():
    runner = CommandRunner(sudo="")
    assert runner.run("/bin/cat", [], 5, stdin="fs_io_s\n") == "fs_io_s\n"


def test_run_nonzero_exit():
    runner = CommandRunner(sudo="")
    with pytest.raises(CommandFailed) as exc:
        runner.run("/bin/sh", ["-c", "echo partial; exit 3"], 5)
    assert exc.value.returncode == 3


def test_run_missing_binary():
    runner = CommandRunner(sudo="", bindir="/nonexistent")
    with pytest.raises(CommandFailed):
        runner.run("mmgetstate", ["-Y"], 5)


def test_run_deadline():
    runner = CommandRunner(sudo="")
    with pytest.raises(DeadlineExceeded) as exc:
        runner.run("/bin/sleep", ["5"], 0.2)
    assert exc.value.timeout == 0.2


def test_deadline_is_not_a_command_failure():
    assert not issubclass(DeadlineExceeded, CommandFailed)
    assert not issubclass(CommandFailed, DeadlineExceeded)
