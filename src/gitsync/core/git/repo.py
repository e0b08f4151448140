"""
Handle on an upstream repository.

A Repo is an immutable description of a remote (URL plus the environment
git needs to authenticate against it). It hands out fresh Checkouts and
can sanity-check read and write access.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from gitsync.core.config.models import EnvParams, SyncConfig
from gitsync.core.git import operations as ops
from gitsync.core.git.checkout import Checkout
from gitsync.core.git.context import Context
from gitsync.core.git.models import Remote
from gitsync.core.git.runner import GitRunner

logger = logging.getLogger(__name__)


def ssh_command_env(
    key_path: Path | str, strict_host_key_checking: bool = False
) -> dict[str, str]:
    """
    Environment making git use `key_path` for SSH remotes.

    Example:
        >>> Repo("git@example.com:org/env.git", env=ssh_command_env("/keys/env-1"))
    """
    command = ["ssh", "-i", str(key_path), "-o", "IdentitiesOnly=yes"]
    if not strict_host_key_checking:
        command.extend(["-o", "StrictHostKeyChecking=no"])
    return {"GIT_SSH_COMMAND": shlex.join(command)}


@dataclass(frozen=True)
class Repo:
    """
    Remote repository descriptor.

    Attributes:
        url: Upstream URL (any form git accepts, including local paths)
        env: Extra environment for every git call, typically credentials
        working_root: Parent directory for working clones (system temp dir
                      when None)
        logger: Logger handed to the git runner
    """

    url: str
    env: Mapping[str, str] = field(default_factory=dict, hash=False)
    working_root: Path | None = None
    logger: logging.Logger | None = field(default=None, compare=False, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "env", MappingProxyType(dict(self.env)))

    @classmethod
    def from_env_params(
        cls,
        params: EnvParams,
        working_root: Path | None = None,
        logger: logging.Logger | None = None,
    ) -> Repo:
        """Repo for one configured environment."""
        env = ssh_command_env(params.git_ssh_key_path) if params.git_ssh_key_path else {}
        return cls(url=params.git_url, env=env, working_root=working_root, logger=logger)

    @property
    def origin(self) -> Remote:
        return Remote(url=self.url)

    def runner(self) -> GitRunner:
        """A GitRunner carrying this repo's environment."""
        return GitRunner(env=self.env, logger=self.logger)

    def clone(self, ctx: Context, config: SyncConfig) -> Checkout:
        """Fresh working clone bound to `config`. Callers must clean() it."""
        return Checkout.clone(ctx, self, config)

    def mirror(self, ctx: Context, dest: Path) -> Path:
        """
        Bare mirror of the upstream at `dest`.

        `dest` must not exist or be an empty directory. A `dest` created
        here is removed again if mirroring fails.
        """
        created = not dest.exists()
        dest.mkdir(parents=True, exist_ok=True)
        try:
            return ops.mirror(self.runner(), ctx, dest, self.url)
        except BaseException:
            if created:
                shutil.rmtree(dest, ignore_errors=True)
            raise

    def check_push(self, ctx: Context) -> None:
        """
        Verify the upstream is readable and writable.

        Clones into a scratch directory, pushes and deletes a throwaway tag,
        then removes the scratch directory whatever the outcome.

        Raises:
            GitError: If cloning or any step of the write check fails.
        """
        runner = self.runner()
        scratch = Path(tempfile.mkdtemp(prefix="gitsync-check-", dir=self.working_root))
        try:
            ops.clone(runner, ctx, scratch, self.url)
            ops.check_push(runner, ctx, scratch, self.url)
        finally:
            shutil.rmtree(scratch, ignore_errors=True)
        logger.info("Write access to %s confirmed", self.url)
