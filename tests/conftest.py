"""
Pytest configuration and shared fixtures.

Provides an upstream bare repository with a small manifest history, a
Repo pointing at it, and sync configuration matching that history.
"""

import subprocess
from pathlib import Path

import pytest

from gitsync.core.config import SyncConfig, clear_cache
from gitsync.core.git import Context, Repo


def git(cwd: Path, *args: str) -> str:
    """Run a git command for test setup and return its stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep user config, .env files and the config cache out of tests."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for name in (
        "GITSYNC_BRANCH",
        "GITSYNC_PATH",
        "GITSYNC_SYNC_TAG",
        "GITSYNC_DEVOPS_TAG",
        "GITSYNC_NOTES_REF",
        "GITSYNC_GIT_URL",
        "GITSYNC_USER_NAME",
        "GITSYNC_USER_EMAIL",
        "GITSYNC_POLL_INTERVAL",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Repository Fixtures
# ==============================================================================


@pytest.fixture
def upstream(tmp_path) -> Path:
    """
    Bare upstream repository on branch main with two commits:

    1. "Initial commit": README.md, manifests/base.yaml
    2. "Add app":        manifests/app.yaml
    """
    bare = tmp_path / "upstream.git"
    git(tmp_path, "init", "--bare", str(bare))
    git(bare, "symbolic-ref", "HEAD", "refs/heads/main")

    seed = tmp_path / "seed"
    seed.mkdir()
    git(seed, "init")
    git(seed, "symbolic-ref", "HEAD", "refs/heads/main")
    git(seed, "config", "user.email", "test@example.com")
    git(seed, "config", "user.name", "Test User")
    git(seed, "config", "commit.gpgsign", "false")

    (seed / "README.md").write_text("# Environment\n")
    (seed / "manifests").mkdir()
    (seed / "manifests" / "base.yaml").write_text(
        "apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: base\n"
    )
    git(seed, "add", ".")
    git(seed, "commit", "-m", "Initial commit")

    (seed / "manifests" / "app.yaml").write_text(
        "apiVersion: apps/v1\n"
        "kind: Deployment\n"
        "metadata:\n"
        "  name: app\n"
        "  namespace: dev\n"
        "spec:\n"
        "  template:\n"
        "    spec:\n"
        "      containers:\n"
        "      - name: app\n"
        "        image: registry.example.com/app:1.0.0\n"
    )
    git(seed, "add", ".")
    git(seed, "commit", "-m", "Add app")

    git(seed, "push", str(bare), "main")
    return bare


@pytest.fixture
def work_root(tmp_path) -> Path:
    """Parent directory for working clones, so leaks are easy to see."""
    root = tmp_path / "work"
    root.mkdir()
    return root


@pytest.fixture
def repo(upstream, work_root) -> Repo:
    return Repo(str(upstream), working_root=work_root)


@pytest.fixture
def sync_config(upstream) -> SyncConfig:
    return SyncConfig(
        branch="main",
        path="manifests",
        sync_tag="sync",
        devops_tag="devops-sync",
        notes_ref="choerodon",
        user_name="Sync Agent",
        user_email="agent@example.com",
        skip_message="\n\n[ci skip]",
        git_url=str(upstream),
    )


@pytest.fixture
def ctx() -> Context:
    return Context.with_timeout(60)


@pytest.fixture
def checkout(repo, sync_config, ctx):
    """A working clone, cleaned after the test."""
    checkout = repo.clone(ctx, sync_config)
    yield checkout
    checkout.clean()
