"""
Standardized error handling and exit codes for the gitsync CLI.
"""

from enum import IntEnum

from rich.console import Console
from rich.markup import escape

from gitsync.core.git import ContextError, GitError, PushError

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for gitsync CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Git or other operational failure."""

    USER_ERROR = 2
    """User configuration or input error (actionable by user)."""

    TIMEOUT = 124
    """The --timeout deadline passed or the operation was cancelled."""

    SIGINT = 130
    """Terminated by SIGINT (Ctrl+C) - Unix standard."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def print_missing_url_error() -> None:
    """Print error when no repository URL was given or configured."""
    print_error(
        "No repository URL",
        reason="Pass the URL as an argument or configure sync.git_url",
        solution="export GITSYNC_GIT_URL=git@example.com:org/env.git",
    )


def exit_code_for(error: GitError) -> ExitCode:
    """Report a git failure and pick the exit code for it."""
    if isinstance(error, ContextError):
        print_error(escape(str(error)), solution="raise --timeout")
        return ExitCode.TIMEOUT
    if isinstance(error, PushError):
        print_error(
            escape(str(error)),
            reason="The remote rejected the push or could not be reached",
            solution="re-run to start from a fresh clone",
        )
        return ExitCode.GENERAL_ERROR
    print_error(f"Git error: {escape(str(error))}", reason=escape(error.stderr) or None)
    return ExitCode.GENERAL_ERROR
