"""Tests for nsync.process: running external tools."""

import logging

import pytest

from nsync.errors import BuildError
from nsync.process import CommandRunner


@pytest.fixture
def runner():
    return CommandRunner()


class TestCommandRunner:
    def test_captures_stdout(self, runner):
        result = runner.run(["sh", "-c", "echo hello"])
        assert result.returncode == 0
        assert result.stdout == "hello\n"

    def test_nonzero_exit_raises_build_error(self, runner, tmp_path):
        with pytest.raises(BuildError) as exc:
            runner.run(
                ["sh", "-c", "echo out; echo err >&2; exit 3"],
                summary="Step failed",
                cwd=tmp_path,
            )
        err = exc.value
        assert err.summary == "Step failed"
        assert err.returncode == 3
        assert err.stdout == "out\n"
        assert err.stderr == "err\n"
        assert "Exit code: 3" in err.description
        assert f"Working directory: {tmp_path}" in err.description
        assert "Command: sh -c" in err.description

    def test_check_false_returns_result(self, runner):
        result = runner.run(["sh", "-c", "exit 4"], check=False)
        assert result.returncode == 4

    def test_missing_executable(self, runner):
        with pytest.raises(BuildError) as exc:
            runner.run(["nsync-definitely-not-installed"])
        assert exc.value.returncode == 127

    def test_env_is_merged_with_environment(self, runner, monkeypatch):
        monkeypatch.setenv("NSYNC_OUTER", "outer")
        result = runner.run(
            ["sh", "-c", 'echo "$NSYNC_OUTER $NSYNC_INNER"'], env={"NSYNC_INNER": "inner"}
        )
        assert result.stdout == "outer inner\n"

    def test_commands_are_logged(self, runner, caplog):
        with caplog.at_level(logging.INFO, logger="nsync.process"):
            runner.run(["sh", "-c", "true"])
        assert "$ sh -c true" in caplog.text
