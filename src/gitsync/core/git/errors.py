"""
Exceptions raised by the git layer, and stderr classification.

Git reports failures as free text on stderr. The matching rules that turn
that text into something callers can branch on live here, as pure
functions, so they can be tested without running git.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of failure kinds recognized in git's stderr."""

    FATAL = "fatal"
    GENERIC = "generic"
    NOT_FOUND = "not_found"
    UNKNOWN_REVISION = "unknown_revision"
    NO_NOTE = "no_note"
    MISSING_REMOTE_REF = "missing_remote_ref"
    UNKNOWN = "unknown"


class GitError(Exception):
    """Exception raised when a git operation fails."""

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        stderr: str = "",
        kind: ErrorKind = ErrorKind.UNKNOWN,
    ):
        super().__init__(message)
        self.command = command
        self.stderr = stderr
        self.kind = kind


class ContextError(GitError):
    """Base for failures caused by the bounding context rather than git."""

    pass


class DeadlineExceededError(ContextError):
    """Raised when the context deadline passed before or during a git call."""

    pass


class ContextCancelledError(ContextError):
    """Raised when the context was cancelled before or during a git call."""

    pass


class PushError(GitError):
    """Raised when pushing to the upstream repository fails."""

    def __init__(self, url: str, cause: GitError):
        super().__init__(
            f"failed to push to {url}: {cause}",
            command=cause.command,
            stderr=cause.stderr,
            kind=cause.kind,
        )
        self.url = url


class NoChangesError(GitError):
    """Raised by commit_and_push when there is nothing to commit."""

    def __init__(self, message: str = "no changes made in repo"):
        super().__init__(message)


class InvalidPathError(GitError, ValueError):
    """Raised for subdirectory arguments git cannot diff against."""

    pass


# Marker -> kind, checked in order against each stderr line.
_LINE_PREFIXES: tuple[tuple[str, ErrorKind], ...] = (
    ("fatal: ", ErrorKind.FATAL),
    ("ERROR fatal: ", ErrorKind.FATAL),  # seen on ubuntu systems
    ("error:", ErrorKind.GENERIC),
)

# Substring (lowercase) -> kind, checked against the whole of stderr.
_MESSAGE_PATTERNS: tuple[tuple[str, ErrorKind], ...] = (
    ("couldn't find remote ref", ErrorKind.MISSING_REMOTE_REF),
    ("unknown revision", ErrorKind.UNKNOWN_REVISION),
    ("no note found for object", ErrorKind.NO_NOTE),
    ("repository not found", ErrorKind.NOT_FOUND),
    ("does not appear to be a git repository", ErrorKind.NOT_FOUND),
    ("does not exist", ErrorKind.NOT_FOUND),
)


def find_error_message(stderr: str) -> str:
    """
    Return the first recognized error line in git's stderr.

    Lines starting with a fatal marker are returned whole; lines starting
    with "error:" are returned without the marker.

    Returns:
        The extracted message, or "" if no line carries a marker.
    """
    for line in stderr.splitlines():
        for prefix, kind in _LINE_PREFIXES:
            if line.startswith(prefix):
                if kind is ErrorKind.GENERIC:
                    return line[len(prefix) :].strip()
                return line
    return ""


def classify_stderr(stderr: str) -> ErrorKind:
    """
    Map git's stderr to an ErrorKind.

    Specific conditions (missing remote ref, unknown revision, missing note,
    missing repository) win over the generic fatal/error prefixes.
    """
    lowered = stderr.lower()
    for pattern, kind in _MESSAGE_PATTERNS:
        if pattern in lowered:
            return kind

    for line in stderr.splitlines():
        for prefix, kind in _LINE_PREFIXES:
            if line.startswith(prefix):
                return kind
    return ErrorKind.UNKNOWN
