"""Git configuration management."""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Optional

import git

from .exceptions import ConfigIOError, GitNotFoundError
from .profile import AppliedScope, Profile

logger = logging.getLogger(__name__)

IDENTITY_KEYS = ("user.name", "user.email", "user.signingkey")


class ScopeKind(Enum):
    """Where Git identity is written."""
    GLOBAL = auto()
    LOCAL = auto()


@dataclass(frozen=True)
class GitScope:
    """A Git configuration target: user-wide, or a single repository."""
    kind: ScopeKind
    repo_path: Optional[Path] = None

    @classmethod
    def global_scope(cls) -> "GitScope":
        return cls(ScopeKind.GLOBAL)

    @classmethod
    def local(cls, repo_path: Path | str | None = None) -> "GitScope":
        return cls(ScopeKind.LOCAL, Path(repo_path) if repo_path else Path.cwd())

    @classmethod
    def from_name(cls, name: str, repo_path: Path | str | None = None) -> "GitScope":
        """Build a scope from ``global`` or ``local``."""
        if name == "global":
            return cls.global_scope()
        if name == "local":
            return cls.local(repo_path)
        raise ValueError(f"Unknown git scope: {name}")

    @classmethod
    def from_applied(cls, applied: AppliedScope) -> "GitScope":
        """Rebuild the scope recorded by a previous switch."""
        return cls.from_name(applied.scope, applied.repo_path)

    @property
    def name(self) -> str:
        return "global" if self.kind is ScopeKind.GLOBAL else "local"

    @property
    def flag(self) -> str:
        return "--global" if self.kind is ScopeKind.GLOBAL else "--local"

    def to_applied(self) -> AppliedScope:
        repo = str(Path(self.repo_path).resolve()) if self.repo_path else None
        return AppliedScope(scope=self.name, repo_path=repo)

    def __str__(self) -> str:
        if self.kind is ScopeKind.GLOBAL:
            return "global"
        return f"local ({self.repo_path})"


@dataclass
class GitSnapshot:
    """Identity values in a scope before a change; ``None`` means unset."""
    scope: GitScope
    values: dict[str, Optional[str]]


class GitConfigSynchronizer:
    """Writes a profile's identity to Git configuration through the git executable."""

    def _open_repo(self, path: Path) -> git.Repo:
        try:
            return git.Repo(path, search_parent_directories=True)
        except (git.InvalidGitRepositoryError, git.NoSuchPathError) as e:
            raise ConfigIOError(f"Not a Git repository: {path}") from e

    def _git(self, scope: GitScope) -> git.Git:
        if scope.kind is ScopeKind.LOCAL:
            return self._open_repo(scope.repo_path or Path.cwd()).git
        return git.Git()

    def _config(self, scope: GitScope, *args: str) -> str:
        try:
            return self._git(scope).config(scope.flag, *args)
        except git.GitCommandNotFound as e:
            raise GitNotFoundError(
                "Git is not installed or not on PATH",
                details="Install Git to use this tool",
            ) from e

    def get(self, scope: GitScope, key: str) -> Optional[str]:
        """Get a single value, or ``None`` if it isn't set in ``scope``."""
        try:
            return self._config(scope, "--get", key)
        except git.GitCommandError as e:
            if e.status == 1:
                return None
            raise ConfigIOError(
                f"Failed to read {key} from {scope} Git config",
                details=str(e.stderr).strip(),
            ) from e

    def read(self, scope: GitScope) -> dict[str, Optional[str]]:
        """Get the identity values of a scope."""
        return {key: self.get(scope, key) for key in IDENTITY_KEYS}

    def _write_values(self, scope: GitScope, values: dict[str, Optional[str]]) -> None:
        current = self.read(scope)
        for key, value in values.items():
            if current.get(key) == value:
                continue
            try:
                if value is None:
                    self._config(scope, "--unset-all", key)
                    logger.debug(f"Unset {key} in {scope} config")
                else:
                    self._config(scope, "--replace-all", key, value)
                    logger.debug(f"Set {key}={value} in {scope} config")
            except git.GitCommandError as e:
                raise ConfigIOError(
                    f"Failed to write {key} to {scope} Git config",
                    details=str(e.stderr).strip(),
                ) from e

    def apply(self, profile: Profile, scope: GitScope) -> None:
        """Set user.name, user.email and user.signingkey for the profile.

        A profile without a signing key unsets ``user.signingkey`` so the
        identity never mixes values from two profiles.
        """
        self._write_values(
            scope,
            {
                "user.name": profile.git_user_name,
                "user.email": profile.git_user_email,
                "user.signingkey": profile.signing_key,
            },
        )
        logger.info(f"Applied Git identity of {profile.name} to {scope} config")

    def snapshot(self, scope: GitScope) -> GitSnapshot:
        return GitSnapshot(scope=scope, values=self.read(scope))

    def restore(self, snapshot: GitSnapshot) -> None:
        self._write_values(snapshot.scope, snapshot.values)
        logger.info(f"Restored {snapshot.scope} Git identity")

    def update_remote(
        self,
        profile: Profile,
        repo_path: Path,
        repo_name: str,
        owner: str | None = None,
        remote_name: str = "origin",
    ) -> str:
        """Point a repository remote at the profile's SSH host alias.

        Args:
            profile: Profile whose host alias is used
            repo_path: Path inside the repository to update
            repo_name: ``repo``, ``repo.git`` or ``owner/repo``
            owner: Account owning the remote repository; defaults to the
                owner in ``repo_name`` or the profile's Git user name
            remote_name: Remote to create or update

        Returns:
            The new remote URL
        """
        parts = [p for p in repo_name.strip().strip("/").split("/") if p]
        if not parts:
            raise ConfigIOError("Repository name cannot be empty")
        name = parts[-1].removesuffix(".git")
        if owner is None:
            owner = parts[-2] if len(parts) > 1 else profile.git_user_name
        url = f"git@{profile.ssh_host_alias}:{owner}/{name}.git"

        repo = self._open_repo(repo_path)
        try:
            if remote_name in [r.name for r in repo.remotes]:
                repo.remote(remote_name).set_url(url)
            else:
                repo.create_remote(remote_name, url)
        except git.GitCommandNotFound as e:
            raise GitNotFoundError("Git is not installed or not on PATH") from e
        except git.GitCommandError as e:
            raise ConfigIOError(
                f"Failed to update remote '{remote_name}'",
                details=str(e.stderr).strip(),
            ) from e

        logger.info(f"Remote {remote_name} of {repo.working_dir} now points to {url}")
        return url
