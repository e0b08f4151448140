"""
gitsync CLI - inspect and advance the sync state of a repository.

Every command works on a fresh working clone that is removed before the
command returns.
"""

import typer
from rich.console import Console
from rich.table import Table

from gitsync.cli.errors import ExitCode, exit_code_for, print_error, print_missing_url_error
from gitsync.core.config import SyncConfig, load_config
from gitsync.core.crds import crd_manifests, crd_names
from gitsync.core.git import Checkout, Context, GitError, InvalidPathError, Repo

console = Console()

URL_ARGUMENT = typer.Argument(None, help="Repository URL (defaults to sync.git_url)")
BRANCH_OPTION = typer.Option(None, "--branch", "-b", help="Branch to clone")
PATH_OPTION = typer.Option(None, "--path", "-p", help="Manifest subdirectory")
TIMEOUT_OPTION = typer.Option(120.0, "--timeout", "-t", help="Seconds before giving up")


def _resolve(url: str | None, branch: str | None, path: str | None) -> tuple[Repo, SyncConfig]:
    config = load_config().sync
    overrides = {
        key: value
        for key, value in (("git_url", url), ("branch", branch), ("path", path))
        if value is not None
    }
    if overrides:
        config = config.model_copy(update=overrides)
    if not config.git_url:
        print_missing_url_error()
        raise typer.Exit(ExitCode.USER_ERROR)
    return Repo(config.git_url), config


def _clone(ctx: Context, repo: Repo, config: SyncConfig) -> Checkout:
    with console.status(f"Cloning {repo.url}..."):
        return repo.clone(ctx, config)


def check_push(
    url: str | None = URL_ARGUMENT,
    timeout: float = TIMEOUT_OPTION,
) -> None:
    """
    Verify the repository can be cloned and pushed to.

    Pushes and deletes a throwaway tag; real history is not touched.

    Examples:
        gitsync check-push git@example.com:org/env.git
    """
    repo, _ = _resolve(url, None, None)
    try:
        repo.check_push(Context.with_timeout(timeout))
    except GitError as e:
        raise typer.Exit(exit_code_for(e))
    console.print(f"[green]✓[/green] Read/write access to {repo.url}")


def changed_files(
    url: str | None = URL_ARGUMENT,
    ref: str | None = typer.Option(
        None, "--ref", "-r", help="Compare against this ref (defaults to the sync tag)"
    ),
    branch: str | None = BRANCH_OPTION,
    path: str | None = PATH_OPTION,
    absolute: bool = typer.Option(False, "--absolute", help="Print absolute paths"),
    timeout: float = TIMEOUT_OPTION,
) -> None:
    """
    List manifest files changed since a ref.

    Deleted files are not listed.

    Examples:
        gitsync changed-files                  # since the sync tag
        gitsync changed-files --ref HEAD~3     # since an explicit ref
    """
    repo, config = _resolve(url, branch, path)
    ctx = Context.with_timeout(timeout)
    try:
        with _clone(ctx, repo, config) as checkout:
            absolute_paths, relative_paths = checkout.changed_files(ctx, ref or config.sync_tag)
    except InvalidPathError as e:
        print_error(str(e), solution=f"--path {config.path.lstrip('/')}")
        raise typer.Exit(ExitCode.USER_ERROR)
    except GitError as e:
        raise typer.Exit(exit_code_for(e))

    if not relative_paths:
        console.print("[blue]No changed files[/blue]")
        return
    for file in absolute_paths if absolute else relative_paths:
        console.print(str(file), markup=False, highlight=False)


def status(
    url: str | None = URL_ARGUMENT,
    branch: str | None = BRANCH_OPTION,
    timeout: float = TIMEOUT_OPTION,
) -> None:
    """
    Show HEAD, the sync tags and the number of annotated commits.

    Examples:
        gitsync status git@example.com:org/env.git -b main
    """
    repo, config = _resolve(url, branch, None)
    ctx = Context.with_timeout(timeout)
    try:
        with _clone(ctx, repo, config) as checkout:
            head = checkout.head_revision(ctx)
            sync = None
            if checkout.ref_exists(ctx, config.sync_tag):
                sync = checkout.sync_revision(ctx)
            devops = None
            if checkout.ref_exists(ctx, config.devops_tag):
                devops = checkout.devops_sync_revision(ctx)
            noted = checkout.note_rev_list(ctx)
    except GitError as e:
        raise typer.Exit(exit_code_for(e))

    table = Table(title=f"Sync status of {repo.url}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Branch", config.branch)
    table.add_row("HEAD", head)
    table.add_row(f"Sync tag ({config.sync_tag})", sync or "[dim]not set[/dim]")
    table.add_row(f"DevOps tag ({config.devops_tag})", devops or "[dim]not set[/dim]")
    table.add_row(f"Notes ({config.notes_ref})", str(len(noted)))
    console.print(table)

    if sync == head:
        console.print("[green]✓[/green] Up to date")
    elif sync:
        console.print("[yellow]↓[/yellow] Commits since last sync")


def log(
    url: str | None = URL_ARGUMENT,
    refspec: str = typer.Option("HEAD", "--ref", "-r", help="Revision range to show"),
    branch: str | None = BRANCH_OPTION,
    path: str | None = PATH_OPTION,
    timeout: float = TIMEOUT_OPTION,
) -> None:
    """
    One-line log of commits touching the manifest directory.

    Examples:
        gitsync log --ref gitsync-sync..HEAD
    """
    repo, config = _resolve(url, branch, path)
    ctx = Context.with_timeout(timeout)
    try:
        with _clone(ctx, repo, config) as checkout:
            commits = checkout.commit_log(ctx, refspec)
            noted = checkout.note_rev_list(ctx)
    except GitError as e:
        raise typer.Exit(exit_code_for(e))

    table = Table(title=f"{refspec} ({config.path or '/'})")
    table.add_column("Revision", style="cyan", no_wrap=True)
    table.add_column("Note")
    table.add_column("Message")
    for commit in commits:
        noted_mark = "✓" if commit.revision in noted else ""
        table.add_row(commit.revision[:12], noted_mark, commit.message)
    console.print(table)


def tag(
    ref: str = typer.Argument("HEAD", help="Commit the sync tag should point at"),
    url: str | None = typer.Option(None, "--url", "-u", help="Repository URL"),
    branch: str | None = BRANCH_OPTION,
    message: str = typer.Option("Sync pointer", "--message", "-m", help="Tag message"),
    timeout: float = TIMEOUT_OPTION,
) -> None:
    """
    Move the sync tag to a ref and push it.

    Examples:
        gitsync tag                # mark HEAD as reconciled
        gitsync tag abc1234 -m "Rolled back"
    """
    repo, config = _resolve(url, branch, None)
    ctx = Context.with_timeout(timeout)
    try:
        with _clone(ctx, repo, config) as checkout:
            checkout.move_sync_tag_and_push(ctx, ref, message)
            revision = checkout.sync_revision(ctx)
    except GitError as e:
        raise typer.Exit(exit_code_for(e))
    console.print(f"[green]✓[/green] {config.sync_tag} → {revision[:12]}")


def crds(
    show: bool = typer.Option(False, "--show", help="Print the full manifests"),
) -> None:
    """List the custom resource definitions the agent installs."""
    if show:
        console.print("---\n".join(crd_manifests()), highlight=False)
        return
    for name in crd_names():
        console.print(name)
