"""
Git-backed desired-state synchronization.

The upstream repository is treated as an append-only log of manifest
state. A Repo hands out Checkouts (fresh working clones); a Checkout finds
what changed since the last reconciled commit, commits and pushes derived
changes with a JSON note attached, and moves the sync tag.

Example:
    >>> from gitsync.core.git import CommitAction, Context, Repo
    >>> repo = Repo("git@example.com:org/env.git")
    >>> ctx = Context.with_timeout(60)
    >>> with repo.clone(ctx, config) as checkout:
    ...     _, changed = checkout.changed_files(ctx, checkout.sync_revision(ctx))
    ...     checkout.commit_and_push(ctx, CommitAction("Bump image"), {"job": "42"})
    ...     checkout.move_sync_tag_and_push(ctx, "HEAD", "Sync pointer")
"""

from gitsync.core.git.checkout import Checkout
from gitsync.core.git.context import Context
from gitsync.core.git.errors import (
    ContextCancelledError,
    ContextError,
    DeadlineExceededError,
    ErrorKind,
    GitError,
    InvalidPathError,
    NoChangesError,
    PushError,
    classify_stderr,
    find_error_message,
)
from gitsync.core.git.models import Commit, CommitAction, Remote
from gitsync.core.git.repo import Repo, ssh_command_env
from gitsync.core.git.runner import GitResult, GitRunner

__all__ = [
    "Checkout",
    "Commit",
    "CommitAction",
    "Context",
    "ContextCancelledError",
    "ContextError",
    "DeadlineExceededError",
    "ErrorKind",
    "GitError",
    "GitResult",
    "GitRunner",
    "InvalidPathError",
    "NoChangesError",
    "PushError",
    "Remote",
    "Repo",
    "classify_stderr",
    "find_error_message",
    "ssh_command_env",
]
