"""
Working clones of an upstream repository.

A Checkout is a local clone used for one reconciliation transaction:
read what changed, optionally commit and push derived changes with a
note, advance the sync tag, then clean() it away. Checkouts share nothing
but the remote, so independent checkouts can be used from different
threads. A single Checkout has no locking and must stay on one thread.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING, Any, TypeVar

from gitsync.core.config.models import SyncConfig
from gitsync.core.git import operations as ops
from gitsync.core.git.context import Context
from gitsync.core.git.errors import ContextError, GitError, NoChangesError, PushError
from gitsync.core.git.models import Commit, CommitAction, Remote
from gitsync.core.git.runner import GitRunner

if TYPE_CHECKING:
    from gitsync.core.git.repo import Repo

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Checkout:
    """
    Ephemeral single-owner clone bound to one SyncConfig.

    Lifecycle: created by Checkout.clone() (or Repo.clone()), mutated by
    commit_and_push() / move_sync_tag_and_push(), released by clean().
    Usable as a context manager, in which case clean() runs on exit.

    Example:
        >>> with repo.clone(ctx, config) as checkout:
        ...     absolute, relative = checkout.changed_files(ctx, checkout.sync_revision(ctx))
        ...     checkout.move_sync_tag_and_push(ctx, "HEAD", "Sync pointer")
    """

    def __init__(
        self,
        dir: Path,
        config: SyncConfig,
        upstream: Remote,
        real_notes_ref: str,
        runner: GitRunner,
    ) -> None:
        self._dir: Path | None = dir
        self.config = config
        self.upstream = upstream
        # Canonical form, e.g. refs/notes/gitsync; pushing needs the exact ref.
        self.real_notes_ref = real_notes_ref
        self.runner = runner

    @classmethod
    def clone(cls, ctx: Context, repo: Repo, config: SyncConfig) -> Checkout:
        """
        Clone `repo` into a fresh temporary directory.

        Applies the commit identity, resolves the notes ref and fetches the
        upstream notes. On any failure the directory is removed before the
        error propagates.

        Raises:
            GitError: If any step fails.
        """
        runner = repo.runner()
        upstream = repo.origin
        repo_dir = Path(tempfile.mkdtemp(prefix="gitsync-working-", dir=repo.working_root))

        try:
            ops.clone(runner, ctx, repo_dir, upstream.url, config.branch)
            ops.config(runner, ctx, repo_dir, config.user_name, config.user_email)
            real_notes_ref = ops.get_notes_ref(runner, ctx, repo_dir, config.notes_ref)
            ops.fetch(
                runner, ctx, repo_dir, upstream.url, f"+{real_notes_ref}:{real_notes_ref}"
            )
        except BaseException:
            shutil.rmtree(repo_dir, ignore_errors=True)
            raise

        logger.info(
            "Cloned %s (branch %s) into %s", upstream.url, config.branch or "HEAD", repo_dir
        )
        return cls(
            dir=repo_dir,
            config=config,
            upstream=upstream,
            real_notes_ref=real_notes_ref,
            runner=runner,
        )

    def __enter__(self) -> Checkout:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.clean()

    @property
    def dir(self) -> Path:
        """Path to the clone."""
        if self._dir is None:
            raise GitError("checkout has been cleaned")
        return self._dir

    @property
    def manifest_dir(self) -> Path:
        """
        Directory holding the manifests we care about.

        Raises:
            InvalidPathError: If config.path is absolute or leaves the clone.
        """
        ops.check_subdir(self.config.path)
        return self.dir / self.config.path

    @property
    def cleaned(self) -> bool:
        return self._dir is None

    def clean(self) -> None:
        """Remove the clone. Safe to call more than once."""
        if self._dir is None:
            return
        shutil.rmtree(self._dir, ignore_errors=True)
        logger.debug("Removed working clone %s", self._dir)
        self._dir = None

    def commit_and_push(
        self, ctx: Context, action: CommitAction, note: Any | None = None
    ) -> None:
        """
        Commit local changes, attach `note` to the commit, and push.

        The configured skip message is appended to the commit message so
        our own commits can be recognized later. The branch and, when it
        exists, the notes ref are pushed in one call.

        Raises:
            NoChangesError: If nothing under config.path differs from HEAD.
            PushError: If the push is rejected or fails.
            GitError: If committing or writing the note fails.
        """
        if not ops.has_changes(self.runner, ctx, self.dir, self.config.path):
            raise NoChangesError()

        action = CommitAction(
            message=action.message + self.config.skip_message,
            author=action.author,
        )
        ops.commit(self.runner, ctx, self.dir, action)

        if note is not None:
            rev = ops.ref_revision(self.runner, ctx, self.dir, "HEAD")
            ops.add_note(self.runner, ctx, self.dir, rev, self.config.notes_ref, note)

        refs = [self.config.branch]
        if ops.ref_exists(self.runner, ctx, self.dir, self.real_notes_ref):
            refs.append(self.real_notes_ref)

        try:
            ops.push(self.runner, ctx, self.dir, self.upstream.url, refs)
        except ContextError:
            raise
        except GitError as e:
            raise PushError(self.upstream.url, e) from e

        logger.info("Pushed %s to %s", ", ".join(refs), self.upstream.url)

    def get_note(
        self, ctx: Context, rev: str, note_type: type[T] | None = None
    ) -> tuple[bool, T | Any]:
        """
        Note attached to `rev`.

        Returns:
            (found, note); (False, None) when `rev` has no note.
        """
        return ops.get_note(self.runner, ctx, self.dir, self.real_notes_ref, rev, note_type)

    def note_rev_list(self, ctx: Context) -> set[str]:
        """Revisions carrying a note (unordered)."""
        return ops.note_rev_list(self.runner, ctx, self.dir, self.real_notes_ref)

    def head_revision(self, ctx: Context) -> str:
        return ops.ref_revision(self.runner, ctx, self.dir, "HEAD")

    def sync_revision(self, ctx: Context) -> str:
        return ops.ref_revision(self.runner, ctx, self.dir, self.config.sync_tag)

    def devops_sync_revision(self, ctx: Context) -> str:
        return ops.ref_revision(self.runner, ctx, self.dir, self.config.devops_tag)

    def move_sync_tag_and_push(self, ctx: Context, ref: str, message: str) -> None:
        """Record `ref` as the last reconciled commit, locally and upstream."""
        ops.move_tag_and_push(
            self.runner, ctx, self.dir, self.config.sync_tag, ref, message, self.upstream.url
        )
        logger.info("Moved tag %s to %s", self.config.sync_tag, ref)

    def changed_files(self, ctx: Context, ref: str) -> tuple[list[Path], list[str]]:
        """
        Files under config.path changed since `ref`.

        Returns:
            (absolute paths, paths relative to the repository root)

        Raises:
            InvalidPathError: If config.path starts with "/".
        """
        relative = ops.changed_files(self.runner, ctx, self.dir, self.config.path, ref)
        return [self.dir / file for file in relative], relative

    def file_last_commit(self, ctx: Context, file: str) -> str:
        return ops.file_last_commit(self.runner, ctx, self.dir, file)

    def fetch(self, ctx: Context, *refspecs: str) -> None:
        """Fetch tags and `refspecs` from upstream."""
        ops.fetch(self.runner, ctx, self.dir, self.upstream.url, *refspecs)

    def ref_exists(self, ctx: Context, ref: str) -> bool:
        return ops.ref_exists(self.runner, ctx, self.dir, ref)

    def commit_log(self, ctx: Context, refspec: str) -> list[Commit]:
        """One-line log of `refspec`, limited to config.path."""
        return ops.one_line_log(self.runner, ctx, self.dir, refspec, self.config.path)

    def rev_list(self, ctx: Context, ref: str) -> list[str]:
        return ops.rev_list(self.runner, ctx, self.dir, ref)

