"""Filesystem locations used by git-switch."""

import os
from pathlib import Path

from platformdirs import user_config_dir

APP_NAME = "git-switch"
HOME_ENV = "GIT_SWITCH_HOME"
SSH_CONFIG_ENV = "GIT_SWITCH_SSH_CONFIG"

PROFILES_FILENAME = "profiles.json"
LOG_FILENAME = "git-switch.log"


def get_config_dir() -> Path:
    """Get the per-user configuration directory.

    ``GIT_SWITCH_HOME`` takes precedence over the platform default.
    """
    override = os.environ.get(HOME_ENV)
    if override:
        return Path(override).expanduser()
    return Path(user_config_dir(APP_NAME))


def get_profiles_file() -> Path:
    return get_config_dir() / PROFILES_FILENAME


def get_log_file() -> Path:
    return get_config_dir() / LOG_FILENAME


def get_backup_dir() -> Path:
    return get_config_dir() / "backups"


def get_ssh_dir() -> Path:
    return Path.home() / ".ssh"


def get_ssh_config_path() -> Path:
    """Get the SSH client configuration file managed by git-switch."""
    override = os.environ.get(SSH_CONFIG_ENV)
    if override:
        return Path(override).expanduser()
    return get_ssh_dir() / "config"


def get_global_git_config_path() -> Path:
    """Get the file git uses for ``--global`` writes."""
    override = os.environ.get("GIT_CONFIG_GLOBAL")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".gitconfig"


def expand_path(path: str | Path) -> Path:
    """Expand ``~`` and environment variables in a user supplied path."""
    return Path(os.path.expandvars(str(path))).expanduser()
