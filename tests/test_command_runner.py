"""Tests for CfCommandRunner subprocess handling."""

import subprocess
from unittest.mock import Mock, patch

import pytest

from suite_context.command_runner import CfCommandRunner, mask_args
from suite_context.exceptions import CommandExecutionError, CommandTimeoutError


def _completed(returncode=0, stdout="OK\n", stderr=""):
    return Mock(returncode=returncode, stdout=stdout, stderr=stderr)


class TestCfCommandRunner:
    def test_runs_binary_with_args_and_timeout(self):
        runner = CfCommandRunner("cf")
        with patch("subprocess.run", return_value=_completed()) as mock_run:
            result = runner.run("create-org", "ORG", timeout=60.0)

        args, kwargs = mock_run.call_args
        assert args[0] == ["cf", "create-org", "ORG"]
        assert kwargs["timeout"] == 60.0
        assert kwargs["capture_output"] is True
        assert kwargs["text"] is True
        assert result.exit_code == 0
        assert result.stdout == "OK\n"
        assert result.args == ("create-org", "ORG")

    def test_custom_binary(self):
        runner = CfCommandRunner("/opt/cf/bin/cf7")
        with patch("subprocess.run", return_value=_completed()) as mock_run:
            runner.run("logout", timeout=5)
        assert mock_run.call_args[0][0][0] == "/opt/cf/bin/cf7"

    def test_cf_home_passed_in_environment(self):
        runner = CfCommandRunner(cf_home="/tmp/cf-home-x")
        with patch("subprocess.run", return_value=_completed()) as mock_run:
            runner.run("target", timeout=5)
        assert mock_run.call_args.kwargs["env"]["CF_HOME"] == "/tmp/cf-home-x"

    def test_scoped_home_restores_previous(self):
        runner = CfCommandRunner(cf_home="/before")
        with runner.scoped_home("/during"):
            assert runner.cf_home == "/during"
        assert runner.cf_home == "/before"

    def test_scoped_home_restores_on_error(self):
        runner = CfCommandRunner()
        with pytest.raises(ValueError):
            with runner.scoped_home("/during"):
                raise ValueError("boom")
        assert runner.cf_home is None

    def test_non_zero_exit_raises(self):
        runner = CfCommandRunner()
        with patch(
            "subprocess.run",
            return_value=_completed(returncode=1, stderr="FAILED\nOrg already exists"),
        ):
            with pytest.raises(CommandExecutionError) as exc_info:
                runner.run("create-org", "ORG", timeout=60)

        error = exc_info.value
        assert error.exit_code == 1
        assert error.context["command"] == "cf create-org ORG"
        assert "Org already exists" in error.context["stderr"]
        assert not isinstance(error, CommandTimeoutError)

    def test_timeout_raises_timeout_error(self):
        runner = CfCommandRunner()
        with patch(
            "subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd=["cf", "create-org"], timeout=60),
        ):
            with pytest.raises(CommandTimeoutError) as exc_info:
                runner.run("create-org", "ORG", timeout=60)

        assert exc_info.value.timeout == 60
        assert exc_info.value.error_code == "COMMAND_TIMEOUT"
        assert isinstance(exc_info.value, CommandExecutionError)

    def test_missing_binary_raises(self):
        runner = CfCommandRunner("no-such-cf")
        with patch("subprocess.run", side_effect=FileNotFoundError("no-such-cf")):
            with pytest.raises(CommandExecutionError, match="not found"):
                runner.run("api", timeout=5)

    def test_non_executable_binary_raises(self):
        runner = CfCommandRunner("/opt/cf/cf.txt")
        with patch("subprocess.run", side_effect=PermissionError(13, "Permission denied")):
            with pytest.raises(CommandExecutionError, match="could not be started") as exc_info:
                runner.run("api", timeout=5)
        assert isinstance(exc_info.value.cause, PermissionError)

    def test_sensitive_values_masked_in_errors(self):
        runner = CfCommandRunner()
        with patch(
            "subprocess.run",
            return_value=_completed(returncode=1, stderr="bad password hunter2"),
        ):
            with pytest.raises(CommandExecutionError) as exc_info:
                runner.run("auth", "admin", "hunter2", timeout=5, sensitive=["hunter2"])

        assert "hunter2" not in str(exc_info.value)
        assert exc_info.value.context["command"] == "cf auth admin ***"

    def test_sensitive_values_not_logged(self, caplog):
        runner = CfCommandRunner()
        with caplog.at_level("DEBUG", logger="suite_context.command_runner"):
            with patch("subprocess.run", return_value=_completed()):
                runner.run("create-user", "u", "hunter2", timeout=5, sensitive=["hunter2"])

        assert "hunter2" not in caplog.text
        assert "create-user u ***" in caplog.text


def test_mask_args_ignores_empty_values():
    assert mask_args(["cf", "auth", "u", ""], ["", "u"]) == ["cf", "auth", "***", ""]
