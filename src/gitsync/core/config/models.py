"""
Configuration data models for gitsync.

These models define the structure of .gitsync.json and
~/.config/gitsync/config.json files, with validation via Pydantic.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SyncConfig(BaseModel):
    """
    Reconciliation parameters bound to one working clone.

    Tells a checkout which branch to track, which subdirectory holds the
    manifests, which tags mark reconciliation progress and how to sign
    the commits it makes.
    """
    model_config = ConfigDict(frozen=True)

    branch: str = Field(
        default="master",
        description="Branch to clone, commit to and push"
    )
    path: str = Field(
        default="",
        description="Subdirectory holding the manifests (repository root when empty)"
    )
    sync_tag: str = Field(
        default="gitsync-sync",
        description="Annotated tag marking the last reconciled commit"
    )
    devops_tag: str = Field(
        default="gitsync-devops-sync",
        description="Secondary marker tag for the devops checkpoint"
    )
    notes_ref: str = Field(
        default="gitsync",
        description="Notes namespace for per-commit metadata (shorthand or full ref)"
    )
    user_name: str = Field(
        default="gitsync",
        description="Committer name for commits made by the agent"
    )
    user_email: str = Field(
        default="support@gitsync.local",
        description="Committer email for commits made by the agent"
    )
    skip_message: str = Field(
        default="\n\n[ci skip]",
        description="Suffix appended to every agent commit so it can be recognized later"
    )
    git_url: str = Field(
        default="",
        description="Upstream repository URL"
    )
    poll_interval: float = Field(
        default=300.0,
        gt=0,
        description="Seconds between reconciliation polls (used by the sync loop)"
    )


class EnvParams(BaseModel):
    """
    One environment managed by the agent: a namespace backed by a repo.
    """
    namespace: str = Field(description="Kubernetes namespace the environment deploys to")
    env_id: int = Field(default=0, description="Environment id assigned by the platform")
    git_url: str = Field(description="Upstream repository holding the environment manifests")
    git_ssh_key_path: Optional[str] = Field(
        default=None,
        description="Private key used for SSH remotes"
    )
    releases: list[str] = Field(
        default_factory=list,
        description="Release (instance) names deployed in this environment"
    )


class AgentConfig(BaseModel):
    """
    Top-level gitsync configuration.

    Example:
        >>> config = AgentConfig(
        ...     agent_name="cluster-a",
        ...     envs=[EnvParams(namespace="dev", git_url="git@example.com:org/dev.git")],
        ... )
    """
    agent_name: str = Field(default="", description="Name reported by this agent")
    git_host: str = Field(default="", description="Git host the environments live on")
    sync: SyncConfig = Field(
        default_factory=SyncConfig,
        description="Default reconciliation parameters"
    )
    envs: list[EnvParams] = Field(
        default_factory=list,
        description="Environments managed by this agent"
    )

    model_config = ConfigDict(
        extra="ignore",
    )

    def sync_config_for(self, env: EnvParams) -> SyncConfig:
        """Default sync parameters pointed at one environment's repository."""
        return self.sync.model_copy(update={"git_url": env.git_url})
