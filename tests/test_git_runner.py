"""
Tests for Context and GitRunner.

Tests cover:
- Deadline and cancellation bookkeeping
- Running git and capturing output
- Failure classification
- Context expiry before and during an invocation
- Environment and logger injection
"""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from gitsync.core.git import (
    Context,
    ContextCancelledError,
    DeadlineExceededError,
    ErrorKind,
    GitError,
    GitRunner,
)


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository for testing."""
    repo = tmp_path / "repo"
    repo.mkdir()
    subprocess.run(["git", "init"], cwd=repo, capture_output=True, check=True)
    return repo


class TestContext:
    """Tests for Context."""

    def test_background_never_expires(self) -> None:
        ctx = Context.background()
        assert ctx.remaining() is None
        assert not ctx.expired
        assert not ctx.done
        ctx.check()

    def test_with_timeout(self) -> None:
        ctx = Context.with_timeout(30)
        remaining = ctx.remaining()
        assert remaining is not None
        assert 0 < remaining <= 30
        assert not ctx.expired

    def test_past_deadline(self) -> None:
        ctx = Context(deadline=time.monotonic() - 1)
        assert ctx.expired
        assert ctx.remaining() == 0.0
        with pytest.raises(DeadlineExceededError) as exc_info:
            ctx.check(["git", "fetch"])
        assert "deadline exceeded" in str(exc_info.value)
        assert "git fetch" in str(exc_info.value)

    def test_cancel(self) -> None:
        ctx = Context.background()
        ctx.cancel()
        assert ctx.cancelled
        assert ctx.done
        with pytest.raises(ContextCancelledError) as exc_info:
            ctx.check(["git", "push"])
        assert "cancelled" in str(exc_info.value)

    def test_cancellation_wins_over_deadline(self) -> None:
        ctx = Context(deadline=time.monotonic() - 1)
        ctx.cancel()
        with pytest.raises(ContextCancelledError):
            ctx.check()


class TestGitRunnerRun:
    """Tests for GitRunner.run."""

    def test_success_captures_stdout(self, git_repo: Path) -> None:
        result = GitRunner().run(
            Context.background(), ["rev-parse", "--git-dir"], cwd=git_repo, capture_output=True
        )
        assert result.ok
        assert result.exit_code == 0
        assert result.stdout.strip() == ".git"
        assert result.command == ["git", "rev-parse", "--git-dir"]

    def test_stdout_discarded_without_capture(self, git_repo: Path) -> None:
        result = GitRunner().run(Context.background(), ["rev-parse", "--git-dir"], cwd=git_repo)
        assert result.stdout == ""

    def test_failure_raises_classified_error(self, git_repo: Path) -> None:
        with pytest.raises(GitError) as exc_info:
            GitRunner().run(Context.background(), ["rev-parse", "nonexistent-ref"], cwd=git_repo)

        error = exc_info.value
        assert str(error).startswith("fatal: ")
        assert error.kind is ErrorKind.UNKNOWN_REVISION
        assert error.command == ["git", "rev-parse", "nonexistent-ref"]
        assert "unknown revision" in error.stderr

    def test_check_false_returns_result(self, git_repo: Path) -> None:
        result = GitRunner().run(
            Context.background(), ["rev-parse", "nonexistent-ref"], cwd=git_repo, check=False
        )
        assert not result.ok
        assert result.exit_code != 0
        assert "unknown revision" in result.stderr

    def test_unrecognized_failure_uses_raw_message(self) -> None:
        runner = GitRunner(git_binary="false")
        with pytest.raises(GitError) as exc_info:
            runner.run(Context.background(), [])
        assert "exit status 1" in str(exc_info.value)
        assert exc_info.value.kind is ErrorKind.UNKNOWN

    def test_missing_binary(self) -> None:
        runner = GitRunner(git_binary="gitsync-no-such-binary")
        with pytest.raises(GitError, match="not found in PATH"):
            runner.run(Context.background(), ["status"])


class TestGitRunnerContext:
    """Tests for context handling in GitRunner.run."""

    def test_expired_context_never_spawns(self) -> None:
        ctx = Context(deadline=time.monotonic() - 1)
        with patch("gitsync.core.git.runner.subprocess.Popen") as mock_popen:
            with pytest.raises(DeadlineExceededError):
                GitRunner().run(ctx, ["fetch", "origin"])
        mock_popen.assert_not_called()

    def test_cancelled_context_never_spawns(self) -> None:
        ctx = Context.background()
        ctx.cancel()
        with patch("gitsync.core.git.runner.subprocess.Popen") as mock_popen:
            with pytest.raises(ContextCancelledError):
                GitRunner().run(ctx, ["push", "origin", "main"])
        mock_popen.assert_not_called()

    def test_deadline_kills_running_process(self) -> None:
        runner = GitRunner(git_binary="sleep")
        started = time.monotonic()
        with pytest.raises(DeadlineExceededError):
            runner.run(Context.with_timeout(0.3), ["10"])
        assert time.monotonic() - started < 5

    def test_cancel_kills_running_process(self) -> None:
        runner = GitRunner(git_binary="sleep")
        ctx = Context.background()
        timer = threading.Timer(0.3, ctx.cancel)
        timer.start()
        started = time.monotonic()
        try:
            with pytest.raises(ContextCancelledError):
                runner.run(ctx, ["10"])
        finally:
            timer.cancel()
        assert time.monotonic() - started < 5


class TestGitRunnerEnvironment:
    """Tests for environment and logger injection."""

    def test_prompt_disabled(self) -> None:
        env = GitRunner().environment()
        assert env["GIT_TERMINAL_PROMPT"] == "0"

    def test_extra_env_merged(self, monkeypatch) -> None:
        monkeypatch.setenv("GITSYNC_TEST_INHERITED", "yes")
        env = GitRunner(env={"GIT_SSH_COMMAND": "ssh -i key"}).environment()
        assert env["GIT_SSH_COMMAND"] == "ssh -i key"
        assert env["GITSYNC_TEST_INHERITED"] == "yes"

    def test_prompt_cannot_be_reenabled(self) -> None:
        env = GitRunner(env={"GIT_TERMINAL_PROMPT": "1"}).environment()
        assert env["GIT_TERMINAL_PROMPT"] == "0"

    def test_injected_logger_receives_commands(self, git_repo: Path, caplog) -> None:
        log = logging.getLogger("tests.gitsync.runner")
        with caplog.at_level(logging.DEBUG, logger="tests.gitsync.runner"):
            GitRunner(logger=log).run(Context.background(), ["status"], cwd=git_repo)

        messages = [r.getMessage() for r in caplog.records if r.name == "tests.gitsync.runner"]
        assert "Running git command: git status" in messages


class TestGitRunnerStartup:
    """Tests for stdin input and failures to start git."""

    def test_input_written_to_stdin(self, git_repo: Path) -> None:
        result = GitRunner().run(
            Context.background(),
            ["hash-object", "--stdin"],
            cwd=git_repo,
            capture_output=True,
            input="hello\n",
        )
        assert result.stdout.strip() == "ce013625030ba8dba906f756967f9e9ca394464a"

    def test_missing_working_directory(self, tmp_path: Path) -> None:
        missing = tmp_path / "gone"
        with patch("gitsync.core.git.runner.subprocess.Popen") as mock_popen:
            with pytest.raises(GitError, match="working directory does not exist"):
                GitRunner().run(Context.background(), ["status"], cwd=missing)
        mock_popen.assert_not_called()

    def test_other_start_failures_are_git_errors(self, git_repo: Path) -> None:
        with patch(
            "gitsync.core.git.runner.subprocess.Popen",
            side_effect=OSError(7, "Argument list too long"),
        ):
            with pytest.raises(GitError, match="failed to start git"):
                GitRunner().run(Context.background(), ["status"], cwd=git_repo)


def _running(pid: int) -> bool:
    """Whether `pid` is alive (zombies count as gone)."""
    try:
        fields = Path(f"/proc/{pid}/stat").read_text().rsplit(")", 1)[1].split()
    except (FileNotFoundError, ProcessLookupError):
        return False
    return fields[0] != "Z"


@pytest.mark.skipif(not Path("/proc/self/stat").exists(), reason="needs /proc")
class TestGitRunnerProcessGroup:
    """A killed invocation takes the transport processes git started with it."""

    def test_deadline_kills_hung_ssh_transport(self, tmp_path: Path) -> None:
        pid_file = tmp_path / "ssh.pid"
        runner = GitRunner(
            env={
                "GIT_SSH_COMMAND": f"sh -c 'echo $$ > {pid_file}; exec sleep 30'",
                "GIT_SSH_VARIANT": "ssh",
            }
        )

        with pytest.raises(DeadlineExceededError):
            runner.run(
                Context.with_timeout(2),
                ["clone", "ssh://git@example.invalid/env.git", str(tmp_path / "clone")],
                cwd=tmp_path,
            )

        assert pid_file.exists()
        pid = int(pid_file.read_text().strip())
        deadline = time.monotonic() + 5
        while _running(pid) and time.monotonic() < deadline:
            time.sleep(0.05)
        assert not _running(pid)
