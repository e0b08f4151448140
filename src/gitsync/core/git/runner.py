"""
Single git subprocess invocation.

GitRunner runs one git command bounded by a Context, captures stderr
(always) and stdout (on request), and turns failures into GitError
subclasses. Everything in operations.py is built on GitRunner.run().
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from gitsync.core.git.context import Context
from gitsync.core.git.errors import GitError, classify_stderr, find_error_message

# Fail fast instead of waiting on a credential prompt nobody will answer.
PROMPT_ENV = {"GIT_TERMINAL_PROMPT": "0"}

# How often a blocked invocation wakes up to look at its context.
POLL_INTERVAL = 0.1

IS_UNIX = sys.platform != "win32"


@dataclass(frozen=True)
class GitResult:
    """
    Outcome of one git invocation.

    Attributes:
        command: Full argv, including the git binary
        exit_code: Process exit status
        stdout: Captured stdout ("" when not captured)
        stderr: Captured stderr
    """

    command: list[str]
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class GitRunner:
    """
    Runs git commands with a fixed environment and an injected logger.

    Example:
        >>> runner = GitRunner(env={"GIT_SSH_COMMAND": "ssh -i key"})
        >>> result = runner.run(Context.with_timeout(10), ["rev-parse", "HEAD"],
        ...                     cwd=path, capture_output=True)
        >>> result.stdout.strip()
    """

    def __init__(
        self,
        env: Mapping[str, str] | None = None,
        logger: logging.Logger | None = None,
        git_binary: str = "git",
    ) -> None:
        """
        Args:
            env: Extra environment (typically credentials) for every call.
            logger: Logger receiving one debug line per invocation.
            git_binary: Name or path of the git executable.
        """
        self.env = dict(env or {})
        self.logger = logger or logging.getLogger(__name__)
        self.git_binary = git_binary

    def environment(self) -> dict[str, str]:
        """Process environment for a git invocation."""
        merged = dict(os.environ)
        merged.update(self.env)
        merged.update(PROMPT_ENV)
        return merged

    def run(
        self,
        ctx: Context,
        args: list[str],
        *,
        cwd: Path | str | None = None,
        capture_output: bool = False,
        check: bool = True,
        input: str | None = None,
    ) -> GitResult:
        """
        Run `git <args>` and wait for it, honouring the context.

        Args:
            ctx: Bounding context; checked before the process starts and
                 while it runs.
            args: Git arguments (without the "git" prefix).
            cwd: Working directory; None or "" uses the process default.
            capture_output: Whether to keep stdout.
            check: Whether to raise GitError on a non-zero exit code.
            input: Optional data written to git's stdin.

        Returns:
            GitResult for the finished process.

        Raises:
            DeadlineExceededError: If the context deadline passed.
            ContextCancelledError: If the context was cancelled.
            GitError: If the command failed and check=True, or could not be
                      started.
        """
        cmd = [self.git_binary, *args]
        ctx.check(cmd)

        if cwd and not Path(cwd).is_dir():
            raise GitError(f"working directory does not exist: {cwd}", command=cmd)

        self.logger.debug("Running git command: %s", " ".join(cmd))

        try:
            proc = subprocess.Popen(
                cmd,
                cwd=str(cwd) if cwd else None,
                env=self.environment(),
                stdin=subprocess.DEVNULL if input is None else subprocess.PIPE,
                stdout=subprocess.PIPE if capture_output else subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                # Own process group, so transports (ssh, git-remote-*) die with git.
                start_new_session=IS_UNIX,
            )
        except FileNotFoundError as e:
            raise GitError(f"{self.git_binary} not found in PATH", command=cmd) from e
        except OSError as e:
            raise GitError(f"failed to start {self.git_binary}: {e}", command=cmd) from e

        stdout, stderr = self._wait(ctx, proc, cmd, input)

        # The context verdict wins even if git also failed.
        ctx.check(cmd)

        result = GitResult(
            command=cmd,
            exit_code=proc.returncode,
            stdout=stdout or "",
            stderr=stderr or "",
        )
        if check and not result.ok:
            raise self.error_for(result)
        return result

    def _wait(
        self,
        ctx: Context,
        proc: subprocess.Popen[str],
        cmd: list[str],
        input: str | None = None,
    ) -> tuple[str, str]:
        while True:
            remaining = ctx.remaining()
            timeout = POLL_INTERVAL if remaining is None else min(remaining, POLL_INTERVAL)
            try:
                return proc.communicate(input, timeout=timeout)
            except subprocess.TimeoutExpired:
                # stdin is written on the first call only
                input = None
                if ctx.done:
                    self.logger.debug("Killing git command: %s", " ".join(cmd))
                    self._kill(proc)
                    proc.communicate()
                    ctx.check(cmd)

    def _kill(self, proc: subprocess.Popen[str]) -> None:
        """Kill git together with every process it started."""
        if IS_UNIX:
            try:
                os.killpg(os.getpgid(proc.pid), signal.SIGKILL)
                return
            except (ProcessLookupError, OSError) as e:
                self.logger.debug("Process group kill failed (process may be dead): %s", e)
        proc.kill()

    @staticmethod
    def error_for(result: GitResult) -> GitError:
        """Build the GitError describing a failed invocation."""
        message = find_error_message(result.stderr)
        if not message:
            message = (
                f"Git command failed: {' '.join(result.command)} "
                f"(exit status {result.exit_code})"
            )
        return GitError(
            message,
            command=result.command,
            stderr=result.stderr.strip(),
            kind=classify_stderr(result.stderr),
        )
