"""
gitsync CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
import sys

import typer
from rich.console import Console

from gitsync import __version__
from gitsync.cli import sync
from gitsync.core.config import load_layered_env

PANEL_SYNC = "Sync State"
PANEL_SETUP = "Setup"

app = typer.Typer(
    name="gitsync",
    help="Track and advance the desired state of an environment kept in git",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def configure_logging(debug: bool) -> None:
    """
    Configure logging for all commands.

    Args:
        debug: If True, log every git invocation at DEBUG level
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with every git command logged",
    ),
) -> None:
    """
    gitsync - git-backed desired-state synchronization.

    Common Workflows:
        gitsync check-push URL            # verify read/write access
        gitsync status URL -b main        # HEAD vs. sync tag
        gitsync changed-files URL         # manifests changed since sync
        gitsync tag --url URL             # mark HEAD as reconciled
    """
    # Precedence: OS env > project .env > user .env
    load_layered_env()
    configure_logging(debug)
    ctx.obj = {"debug": debug}


app.command(name="check-push", rich_help_panel=PANEL_SETUP)(sync.check_push)
app.command(name="crds", rich_help_panel=PANEL_SETUP)(sync.crds)
app.command(name="status", rich_help_panel=PANEL_SYNC)(sync.status)
app.command(name="changed-files", rich_help_panel=PANEL_SYNC)(sync.changed_files)
app.command(name="log", rich_help_panel=PANEL_SYNC)(sync.log)
app.command(name="tag", rich_help_panel=PANEL_SYNC)(sync.tag)


@app.command(rich_help_panel=PANEL_SETUP)
def version() -> None:
    """Show gitsync version and exit."""
    console.print(f"gitsync version {__version__}")
    raise typer.Exit(0)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
