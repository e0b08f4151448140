"""
Git operations used by checkouts and repos.

Each function is a thin composition of GitRunner.run() calls. Failures
propagate as GitError unless the function documents that a particular
failure means "absent" rather than "broken":

- fetch() ignores a refspec the remote does not have
- ref_exists() returns False for an unknown revision
- get_note() returns (False, None) when the revision has no note
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, TypeVar

from gitsync.core.git.context import Context
from gitsync.core.git.errors import ErrorKind, GitError, InvalidPathError
from gitsync.core.git.models import Commit, CommitAction, decode_note, encode_note
from gitsync.core.git.runner import GitRunner

T = TypeVar("T")

# Throwaway tag used to prove we can write to the upstream.
CHECK_PUSH_TAG = "gitsync-write-check"


def config(
    runner: GitRunner, ctx: Context, working_dir: Path, user: str, email: str
) -> None:
    """Set the commit identity of a clone. The first failing setting aborts."""
    for key, value in (("user.name", user), ("user.email", email)):
        runner.run(ctx, ["config", key, value], cwd=working_dir)


def clone(
    runner: GitRunner,
    ctx: Context,
    working_dir: Path,
    repo_url: str,
    branch: str = "",
) -> Path:
    """
    Clone `repo_url` into `working_dir` (which may exist but must be empty).

    Args:
        branch: Branch (or tag) to check out; the remote HEAD when empty.

    Returns:
        The clone's path.
    """
    args = ["clone"]
    if branch:
        args.extend(["--branch", branch])
    args.extend([repo_url, str(working_dir)])
    runner.run(ctx, args, cwd=working_dir)
    return working_dir


def mirror(runner: GitRunner, ctx: Context, working_dir: Path, repo_url: str) -> Path:
    """Create a bare mirror of `repo_url` in `working_dir`."""
    runner.run(ctx, ["clone", "--mirror", repo_url, str(working_dir)], cwd=working_dir)
    return working_dir


def check_push(runner: GitRunner, ctx: Context, working_dir: Path, upstream: str) -> None:
    """
    Verify we can write to `upstream` without touching real history.

    Creates a throwaway tag, pushes it, then deletes it remotely. A failure
    on the final delete is reported like any other.
    """
    # --force in case the tag was fetched from upstream when cloning
    runner.run(ctx, ["tag", "--force", CHECK_PUSH_TAG], cwd=working_dir)
    runner.run(ctx, ["push", "--force", upstream, "tag", CHECK_PUSH_TAG], cwd=working_dir)
    runner.run(ctx, ["push", "--delete", upstream, "tag", CHECK_PUSH_TAG], cwd=working_dir)


def commit(runner: GitRunner, ctx: Context, working_dir: Path, action: CommitAction) -> None:
    """Commit all tracked changes, optionally overriding the author."""
    args = ["commit", "--no-verify", "-a"]
    if action.author:
        args.extend(["--author", action.author])
    args.extend(["-m", action.message])
    runner.run(ctx, args, cwd=working_dir)


def push(
    runner: GitRunner, ctx: Context, working_dir: Path, upstream: str, refs: list[str]
) -> None:
    """Push `refs` to `upstream` in a single call."""
    runner.run(ctx, ["push", upstream, *refs], cwd=working_dir)


def fetch(
    runner: GitRunner, ctx: Context, working_dir: Path, upstream: str, *refspecs: str
) -> None:
    """Fetch tags plus `refspecs`; refspecs missing on the remote are ignored."""
    try:
        runner.run(ctx, ["fetch", "--tags", upstream, *refspecs], cwd=working_dir)
    except GitError as e:
        if e.kind is not ErrorKind.MISSING_REMOTE_REF:
            raise


def ref_exists(runner: GitRunner, ctx: Context, working_dir: Path, ref: str) -> bool:
    try:
        runner.run(ctx, ["rev-list", "--max-count", "1", ref], cwd=working_dir)
    except GitError as e:
        if e.kind is ErrorKind.UNKNOWN_REVISION:
            return False
        raise
    return True


def get_notes_ref(runner: GitRunner, ctx: Context, working_dir: Path, ref: str) -> str:
    """Expand a shorthand notes ref (e.g. "gitsync") to "refs/notes/gitsync"."""
    result = runner.run(
        ctx, ["notes", "--ref", ref, "get-ref"], cwd=working_dir, capture_output=True
    )
    return result.stdout.strip()


def add_note(
    runner: GitRunner,
    ctx: Context,
    working_dir: Path,
    rev: str,
    notes_ref: str,
    note: Any,
) -> None:
    """Attach `note`, serialized as JSON, to revision `rev`."""
    runner.run(
        ctx,
        ["notes", "--ref", notes_ref, "add", "-F", "-", rev],
        cwd=working_dir,
        input=encode_note(note),
    )


def get_note(
    runner: GitRunner,
    ctx: Context,
    working_dir: Path,
    notes_ref: str,
    rev: str,
    note_type: type[T] | None = None,
) -> tuple[bool, T | Any]:
    """
    Read the note attached to `rev`.

    Returns:
        (True, decoded note) if there is one, (False, None) otherwise.
    """
    try:
        result = runner.run(
            ctx,
            ["notes", "--ref", notes_ref, "show", rev],
            cwd=working_dir,
            capture_output=True,
        )
    except GitError as e:
        if e.kind is ErrorKind.NO_NOTE:
            return False, None
        raise
    return True, decode_note(result.stdout, note_type)


def note_rev_list(
    runner: GitRunner, ctx: Context, working_dir: Path, notes_ref: str
) -> set[str]:
    """
    Revisions that carry a note.

    git lists them by note object id, not by time, so a set is returned.
    """
    result = runner.run(
        ctx, ["notes", "--ref", notes_ref, "list"], cwd=working_dir, capture_output=True
    )
    revisions: set[str] = set()
    for line in split_list(result.stdout):
        fields = line.split()
        # "<note object> <annotated object>"
        if len(fields) > 1:
            revisions.add(fields[1])
    return revisions


def ref_revision(runner: GitRunner, ctx: Context, working_dir: Path, ref: str) -> str:
    """Commit id `ref` points at."""
    result = runner.run(
        ctx, ["rev-list", "--max-count", "1", ref], cwd=working_dir, capture_output=True
    )
    return result.stdout.strip()


def rev_list(runner: GitRunner, ctx: Context, working_dir: Path, ref: str) -> list[str]:
    """All commit ids reachable from `ref`, newest first."""
    result = runner.run(ctx, ["rev-list", ref], cwd=working_dir, capture_output=True)
    return split_list(result.stdout)


def one_line_log(
    runner: GitRunner,
    ctx: Context,
    working_dir: Path,
    refspec: str,
    subdir: str = "",
) -> list[Commit]:
    """
    Revisions and subjects for `refspec`, optionally limited to `subdir`.
    """
    args = ["log", "--oneline", "--no-abbrev-commit", "--no-decorate", refspec]
    # An empty pathspec is not "everything" to git; leave it out entirely.
    if subdir:
        args.extend(["--", subdir])
    result = runner.run(ctx, args, cwd=working_dir, capture_output=True)
    return split_log(result.stdout)


def move_tag_and_push(
    runner: GitRunner,
    ctx: Context,
    working_dir: Path,
    tag: str,
    ref: str,
    message: str,
    upstream: str,
) -> None:
    """Force-move annotated `tag` to `ref`, then force-push it."""
    runner.run(ctx, ["tag", "--force", "-a", "-m", message, tag, ref], cwd=working_dir)
    runner.run(ctx, ["push", "--force", upstream, "tag", tag], cwd=working_dir)


def changed_files(
    runner: GitRunner, ctx: Context, working_dir: Path, sub_path: str, ref: str
) -> list[str]:
    """
    Files under `sub_path` that differ between `ref` and the working tree.

    Only added, copied, modified, renamed and type-changed files are listed:
    anything deleted since `ref` no longer exists to be read.

    Returns:
        Paths relative to the repository root.

    Raises:
        InvalidPathError: If `sub_path` starts with "/" or climbs out with "..".
    """
    check_subdir(sub_path)

    args = ["diff", "--name-only", "--diff-filter=ACMRT", ref, "--"]
    if sub_path:
        args.append(sub_path)
    result = runner.run(ctx, args, cwd=working_dir, capture_output=True)
    return split_list(result.stdout)


def file_last_commit(runner: GitRunner, ctx: Context, working_dir: Path, file: str) -> str:
    """Most recent commit touching `file`."""
    result = runner.run(
        ctx,
        ["log", "-n", "1", "--pretty=format:%H", "--", file],
        cwd=working_dir,
        capture_output=True,
    )
    return result.stdout.strip()


def has_changes(runner: GitRunner, ctx: Context, working_dir: Path, subdir: str = "") -> bool:
    """Whether tracked files under `subdir` differ from HEAD."""
    args = ["diff", "--quiet"]
    if subdir:
        args.extend(["--", subdir])
    result = runner.run(ctx, args, cwd=working_dir, check=False)
    # --quiet exits 1 when there are differences
    if result.exit_code == 1:
        return True
    if not result.ok:
        raise runner.error_for(result)
    return False


def check_subdir(sub_path: str) -> None:
    """
    Reject subdirectories that would point outside the clone.

    Raises:
        InvalidPathError: If `sub_path` starts with "/" or climbs out with "..".
    """
    if sub_path.startswith("/"):
        raise InvalidPathError("git subdirectory should not have leading forward slash")
    if ".." in Path(sub_path).parts:
        raise InvalidPathError(f"git subdirectory must stay inside the repository: {sub_path}")


def split_list(output: str) -> list[str]:
    output = output.strip()
    if not output:
        return []
    return output.split("\n")


def split_log(output: str) -> list[Commit]:
    commits = []
    for line in split_list(output):
        revision, _, message = line.partition(" ")
        commits.append(Commit(revision=revision, message=message))
    return commits
