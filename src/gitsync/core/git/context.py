"""
Bounding context for git invocations.

A Context carries an optional absolute deadline and a cancellation flag.
Every network-touching operation takes one so that callers decide how long
they are willing to wait, and can tell "we gave up waiting" apart from
"the git command failed".

Example:
    >>> ctx = Context.with_timeout(30)
    >>> checkout = repo.clone(ctx, config)
    >>> ctx.cancel()  # from another thread, aborts the running git process
"""

from __future__ import annotations

import threading
import time

from gitsync.core.git.errors import ContextCancelledError, DeadlineExceededError


class Context:
    """
    Deadline and cancellation state shared by one unit of work.

    A Context may be shared between threads: cancel() is safe to call from
    any thread while another thread is blocked in a git invocation.
    """

    def __init__(self, deadline: float | None = None) -> None:
        """
        Args:
            deadline: Absolute deadline on the time.monotonic() clock,
                      or None for no deadline.
        """
        self.deadline = deadline
        self._cancelled = threading.Event()

    @classmethod
    def background(cls) -> Context:
        """A context that never expires unless cancelled."""
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float) -> Context:
        """A context expiring `seconds` from now."""
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    @property
    def done(self) -> bool:
        return self.cancelled or self.expired

    def remaining(self) -> float | None:
        """Seconds left before the deadline, None when there is no deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self, command: list[str] | None = None) -> None:
        """
        Raise the matching context error if this context is done.

        Cancellation takes precedence over the deadline.

        Raises:
            ContextCancelledError: If cancel() was called.
            DeadlineExceededError: If the deadline has passed.
        """
        if self.cancelled:
            raise ContextCancelledError(
                f"context was cancelled when running git command: {_describe(command)}",
                command=command,
            )
        if self.expired:
            raise DeadlineExceededError(
                f"context deadline exceeded running git command: {_describe(command)}",
                command=command,
            )


def _describe(command: list[str] | None) -> str:
    return " ".join(command) if command else "git"
