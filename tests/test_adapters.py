"""
Tests for adapters — command runners and operator prompts.
"""

import subprocess
from unittest.mock import MagicMock, patch

import click

from zbxdeploy.adapters.base import EXIT_NOT_FOUND, EXIT_TIMEOUT, CommandResult
from zbxdeploy.adapters.mock import MockRunner
from zbxdeploy.adapters.prompt import ClickPrompter, ScriptedPrompter, is_yes
from zbxdeploy.adapters.shell.command import SubprocessRunner

# ── CommandResult ────────────────────────────────────────────────────


class TestCommandResult:
    def test_ok(self):
        r = CommandResult(argv=["true"], returncode=0)
        assert r.ok
        assert not r.failed

    def test_failed(self):
        r = CommandResult(argv=["false"], returncode=1)
        assert r.failed
        assert r.command_line == "false"


# ── MockRunner ───────────────────────────────────────────────────────


class TestMockRunner:
    def test_succeeds_by_default(self):
        runner = MockRunner()
        result = runner.run(["apt", "update"])
        assert result.ok
        assert result.output == ""
        assert runner.call_log == [["apt", "update"]]

    def test_prefix_failure(self):
        runner = MockRunner()
        runner.set_failure(["apt", "install"], output="E: nope")
        assert runner.run(["apt", "install", "-y", "x"]).returncode == 1
        assert runner.run(["apt", "update"]).ok

    def test_longest_prefix_wins(self):
        runner = MockRunner()
        runner.set_failure(["systemctl"])
        runner.set_output(["systemctl", "status"], "active")
        assert runner.run(["systemctl", "status", "x"]).output == "active"
        assert runner.run(["systemctl", "stop", "x"]).failed

    def test_records_stdin(self):
        runner = MockRunner()
        runner.run(["mysql"], input_text="SELECT 1;")
        runner.run(["true"])
        assert runner.inputs == ["SELECT 1;", None]

    def test_stdout_path(self, tmp_path):
        runner = MockRunner()
        runner.set_output(["mysqldump"], "-- dump\n")
        dest = tmp_path / "out.sql"
        result = runner.run(["mysqldump", "zabbix"], stdout_path=dest)
        assert result.output == ""
        assert dest.read_text() == "-- dump\n"

    def test_ran_and_calls_matching(self):
        runner = MockRunner()
        runner.run(["systemctl", "stop", "a"])
        runner.run(["systemctl", "start", "a"])
        assert runner.ran(["systemctl", "stop"])
        assert not runner.ran(["systemctl", "restart"])
        assert runner.calls_matching(["systemctl"]) == [
            ["systemctl", "stop", "a"],
            ["systemctl", "start", "a"],
        ]

    def test_reset(self):
        runner = MockRunner()
        runner.set_failure(["x"])
        runner.run(["x"])
        runner.reset()
        assert runner.call_count == 0
        assert runner.run(["x"]).ok


# ── SubprocessRunner ─────────────────────────────────────────────────


class TestSubprocessRunner:
    @patch("zbxdeploy.adapters.shell.command.subprocess.run")
    def test_success(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="hello\n")
        result = SubprocessRunner().run(["echo", "hello"])

        assert result.ok
        assert result.output == "hello\n"
        kwargs = mock_run.call_args.kwargs
        assert kwargs["stderr"] == subprocess.STDOUT
        assert kwargs["timeout"] == 1800

    @patch("zbxdeploy.adapters.shell.command.subprocess.run")
    def test_env_layered(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="")
        SubprocessRunner().run(["apt", "update"], env={"DEBIAN_FRONTEND": "noninteractive"})

        env = mock_run.call_args.kwargs["env"]
        assert env["DEBIAN_FRONTEND"] == "noninteractive"
        assert "PATH" in env

    @patch("zbxdeploy.adapters.shell.command.subprocess.run")
    def test_stdin_passed(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="")
        SubprocessRunner().run(["mysql", "-uroot"], input_text="SELECT 1;\n")
        assert mock_run.call_args.kwargs["input"] == "SELECT 1;\n"

    @patch("zbxdeploy.adapters.shell.command.subprocess.run")
    def test_nonzero_exit(self, mock_run):
        mock_run.return_value = MagicMock(returncode=100, stdout="E: Unable to locate package\n")
        result = SubprocessRunner().run(["apt", "install", "-y", "nope"])
        assert result.returncode == 100
        assert "Unable to locate" in result.output

    @patch("zbxdeploy.adapters.shell.command.subprocess.run", side_effect=FileNotFoundError)
    def test_command_not_found(self, _mock_run):
        result = SubprocessRunner().run(["nonexistent"])
        assert result.returncode == EXIT_NOT_FOUND
        assert "not found" in result.output

    @patch(
        "zbxdeploy.adapters.shell.command.subprocess.run",
        side_effect=subprocess.TimeoutExpired(cmd="x", timeout=5),
    )
    def test_timeout(self, _mock_run):
        result = SubprocessRunner().run(["sleep", "100"], timeout=5)
        assert result.returncode == EXIT_TIMEOUT
        assert "timed out after 5s" in result.output

    def test_undecodable_output(self):
        result = SubprocessRunner().run(["printf", "\\377\\376 apt says hi\\n"])
        assert result.ok
        assert "\ufffd" in result.output
        assert "apt says hi" in result.output

    @patch(
        "zbxdeploy.adapters.shell.command.subprocess.run",
        side_effect=UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte"),
    )
    def test_unexpected_error_is_failed_result(self, _mock_run):
        result = SubprocessRunner().run(["dpkg-query", "-W"])
        assert result.failed
        assert "Command execution error" in result.output

    @patch("zbxdeploy.adapters.shell.command.subprocess.run")
    def test_stdout_to_file(self, mock_run, tmp_path):
        mock_run.return_value = MagicMock(returncode=0, stderr="")
        dest = tmp_path / "dump.sql"
        result = SubprocessRunner().run(["mysqldump", "zabbix"], stdout_path=dest)

        assert result.ok
        assert dest.exists()
        assert mock_run.call_args.kwargs["stderr"] == subprocess.PIPE

    @patch("zbxdeploy.adapters.shell.command.subprocess.run")
    def test_output_capped(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="x" * 50_000)
        result = SubprocessRunner().run(["yes"])
        assert len(result.output) == 20_000


# ── Prompts ──────────────────────────────────────────────────────────


class TestPrompts:
    def test_is_yes(self):
        assert is_yes("y")
        assert is_yes(" YES ")
        assert not is_yes("n")
        assert not is_yes("")
        assert not is_yes(None)

    def test_scripted_answers_in_order(self):
        p = ScriptedPrompter(["y", "pgsql"])
        assert p.confirm_intent("go?")
        assert p.ask("which?") == "pgsql"
        assert p.questions == ["go?", "which?"]

    def test_scripted_exhausted_means_no(self):
        p = ScriptedPrompter()
        assert not p.confirm_intent("go?")
        assert p.ask("x") == ""

    def test_click_assume_yes(self):
        assert ClickPrompter(assume_yes=True).confirm_intent("Installing")

    @patch("zbxdeploy.adapters.prompt.click.prompt", return_value="n")
    def test_click_declined(self, _mock_prompt):
        assert not ClickPrompter().confirm_intent("Installing")

    @patch("zbxdeploy.adapters.prompt.sys.stdin")
    def test_click_ask_without_terminal(self, mock_stdin):
        mock_stdin.isatty.return_value = False
        assert ClickPrompter().ask("Remove database?") == ""

    @patch("zbxdeploy.adapters.prompt.click.prompt", side_effect=click.Abort)
    def test_click_closed_input_means_no(self, _mock_prompt):
        assert not ClickPrompter().confirm_intent("Installing")

    @patch("zbxdeploy.adapters.prompt.click.prompt", side_effect=click.Abort)
    def test_click_closed_input_leaves_secret_empty(self, _mock_prompt):
        assert ClickPrompter().secret("Database password") == ""
