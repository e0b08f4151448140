"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import AgentConfig

logger = logging.getLogger(__name__)

# Global cache to avoid reloading config multiple times per process
_config_cache: AgentConfig | None = None

# Environment variable -> key in the "sync" section
SYNC_ENV_VARS: dict[str, str] = {
    "GITSYNC_BRANCH": "branch",
    "GITSYNC_PATH": "path",
    "GITSYNC_SYNC_TAG": "sync_tag",
    "GITSYNC_DEVOPS_TAG": "devops_tag",
    "GITSYNC_NOTES_REF": "notes_ref",
    "GITSYNC_GIT_URL": "git_url",
    "GITSYNC_USER_NAME": "user_name",
    "GITSYNC_USER_EMAIL": "user_email",
}


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """Path to ~/.config/gitsync/config.json (or XDG equivalent)."""
    return get_xdg_config_home() / "gitsync" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """Path to .gitsync.json in the project directory."""
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".gitsync.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`; nested
    dicts are merged, not replaced.

    Example:
        >>> deep_merge({"a": 1, "b": {"x": 10}}, {"b": {"y": 30}})
        {"a": 1, "b": {"x": 10, "y": 30}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            return None
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply GITSYNC_* environment variable overrides.

    Env vars have the highest precedence and override all config files.
    String settings map one-to-one onto the "sync" section (see
    SYNC_ENV_VARS); GITSYNC_POLL_INTERVAL must be a positive number of
    seconds and is ignored otherwise.
    """
    result = config_dict.copy()
    sync = dict(result.get("sync") or {})

    for env_var, key in SYNC_ENV_VARS.items():
        value = os.environ.get(env_var)
        if value is not None:
            sync[key] = value

    if interval_str := os.environ.get("GITSYNC_POLL_INTERVAL"):
        try:
            interval = float(interval_str)
            if interval <= 0:
                logger.warning("GITSYNC_POLL_INTERVAL must be > 0, got %s, ignoring", interval)
            else:
                sync["poll_interval"] = interval
        except ValueError:
            logger.warning("Invalid GITSYNC_POLL_INTERVAL value '%s', ignoring", interval_str)

    if sync:
        result["sync"] = sync
    return result


def get_default_config() -> dict[str, Any]:
    """Hardcoded defaults (the model defaults fill in everything else)."""
    return {"sync": {}, "envs": []}


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> AgentConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (GITSYNC_*)
        2. Project config (.gitsync.json)
        3. User config (~/.config/gitsync/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Directory to load .gitsync.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = AgentConfig(**merged)
    _config_cache = config
    return config


def clear_cache() -> None:
    """Clear the cached configuration."""
    global _config_cache
    _config_cache = None
