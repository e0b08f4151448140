"""
gitsync - git-backed desired-state synchronization for cluster agents.

Clones an environment repository, finds what changed since the last
reconciled commit, commits derived changes with JSON notes attached and
advances a sync tag.
"""

__version__ = "0.4.0.dev0"

# Re-export core types for convenience
from gitsync.core.config.models import AgentConfig, SyncConfig
from gitsync.core.git import Checkout, CommitAction, Context, Repo

__all__ = [
    "AgentConfig",
    "Checkout",
    "CommitAction",
    "Context",
    "Repo",
    "SyncConfig",
    "__version__",
]
