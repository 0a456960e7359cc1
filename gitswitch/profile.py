"""Profile management module for git-switch."""

import copy
import json
import logging
import re
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Optional

from .exceptions import (
    DuplicateNameError,
    InvalidProfileError,
    PersistenceError,
    ProfileNotFoundError,
)
from .fileutil import atomic_write_text
from .paths import expand_path, get_profiles_file

logger = logging.getLogger(__name__)

STORE_VERSION = 1
DEFAULT_SSH_HOSTNAME = "github.com"
GIT_SCOPES = ("global", "local")

_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def default_host_alias(name: str) -> str:
    """Get the SSH host alias used when a profile doesn't set one."""
    return f"github-{name.lower()}"


@dataclass
class Profile:
    """A named Git identity."""
    name: str
    ssh_key_path: str
    git_user_name: str
    git_user_email: str
    ssh_host_alias: str = ""
    ssh_hostname: str = DEFAULT_SSH_HOSTNAME
    signing_key: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.ssh_host_alias:
            self.ssh_host_alias = default_host_alias(self.name)

    @property
    def key_path(self) -> Path:
        """The private key path with ``~`` expanded."""
        return expand_path(self.ssh_key_path)

    def validate(self) -> None:
        """Check the fields that don't depend on the filesystem."""
        if not self.name or not _NAME_RE.match(self.name):
            raise InvalidProfileError(
                f"Invalid profile name: '{self.name}'",
                profile_name=self.name,
                details="Use letters, digits, '.', '_' or '-', starting with a letter or digit",
            )
        for label, value in (
            ("SSH key path", self.ssh_key_path),
            ("Git user name", self.git_user_name),
            ("Git user email", self.git_user_email),
        ):
            if not value or not value.strip():
                raise InvalidProfileError(f"{label} cannot be empty", profile_name=self.name)
        if any(c.isspace() for c in self.ssh_host_alias):
            raise InvalidProfileError(
                f"SSH host alias cannot contain whitespace: '{self.ssh_host_alias}'",
                profile_name=self.name,
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert profile to dictionary for serialization."""
        return {
            "name": self.name,
            "ssh_key_path": self.ssh_key_path,
            "ssh_host_alias": self.ssh_host_alias,
            "ssh_hostname": self.ssh_hostname,
            "git_user_name": self.git_user_name,
            "git_user_email": self.git_user_email,
            "signing_key": self.signing_key,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Profile":
        """Create profile from dictionary."""
        return cls(
            name=data["name"],
            ssh_key_path=data["ssh_key_path"],
            git_user_name=data["git_user_name"],
            git_user_email=data["git_user_email"],
            ssh_host_alias=data.get("ssh_host_alias", ""),
            ssh_hostname=data.get("ssh_hostname", DEFAULT_SSH_HOSTNAME),
            signing_key=data.get("signing_key"),
        )


@dataclass
class Settings:
    """User preferences stored alongside the profiles."""
    git_scope: str = "global"

    def to_dict(self) -> dict[str, Any]:
        return {"git_scope": self.git_scope}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        scope = data.get("git_scope", "global")
        if scope not in GIT_SCOPES:
            logger.warning(f"Ignoring unknown git scope '{scope}' in settings")
            scope = "global"
        return cls(git_scope=scope)


@dataclass
class AppliedScope:
    """Git config scope written by the last successful switch."""
    scope: str = "global"
    repo_path: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"scope": self.scope, "repo_path": self.repo_path}

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> Optional["AppliedScope"]:
        if not data:
            return None
        scope = data.get("scope")
        if scope not in GIT_SCOPES:
            logger.warning(f"Ignoring unknown applied scope '{scope}'")
            return None
        return cls(scope=scope, repo_path=data.get("repo_path"))


@dataclass
class _State:
    profiles: dict[str, Profile] = field(default_factory=dict)
    active: Optional[str] = None
    active_scope: Optional[AppliedScope] = None
    settings: Settings = field(default_factory=Settings)


class ProfileStore:
    """Durable record of profiles and the active profile.

    Every mutating call writes the whole store to disk before returning.
    When the write fails, :class:`PersistenceError` is raised and the
    in-memory state stays as it was before the call.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or get_profiles_file()
        self._state = self._load()

    @property
    def active(self) -> Optional[str]:
        return self._state.active

    @property
    def active_scope(self) -> Optional[AppliedScope]:
        return self._state.active_scope

    @property
    def settings(self) -> Settings:
        return self._state.settings

    def _load(self) -> _State:
        """Load the store from disk."""
        if not self.path.exists():
            logger.debug(f"No profile store at {self.path}, starting empty")
            return _State()

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            version = data.get("version", STORE_VERSION)
            if version > STORE_VERSION:
                raise PersistenceError(
                    f"Profile store {self.path} was written by a newer git-switch (format {version})",
                    details=f"This version of git-switch reads format {STORE_VERSION}; upgrade git-switch",
                )
            profiles: dict[str, Profile] = {}
            for entry in data.get("profiles", []):
                profile = Profile.from_dict(entry)
                if profile.name in profiles:
                    logger.warning(f"Duplicate profile '{profile.name}' in store, keeping the first")
                    continue
                profiles[profile.name] = profile
            active = data.get("active")
            active_scope = AppliedScope.from_dict(data.get("active_scope"))
            settings = Settings.from_dict(data.get("settings", {}))
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise PersistenceError(
                f"Failed to load profiles from {self.path}",
                details=str(e),
            ) from e

        if active is not None and active not in profiles:
            logger.warning(f"Active profile '{active}' no longer exists, clearing it")
            active = None
        if active is None:
            active_scope = None

        return _State(profiles=profiles, active=active, active_scope=active_scope, settings=settings)

    def _serialize(self, state: _State) -> str:
        data = {
            "version": STORE_VERSION,
            "active": state.active,
            "active_scope": state.active_scope.to_dict() if state.active_scope else None,
            "settings": state.settings.to_dict(),
            "profiles": [p.to_dict() for p in state.profiles.values()],
        }
        return json.dumps(data, indent=2) + "\n"

    def _commit(self, state: _State) -> None:
        """Persist ``state`` and make it current only if the write succeeded."""
        try:
            atomic_write_text(self.path, self._serialize(state), mode=0o600)
        except OSError as e:
            raise PersistenceError(
                f"Failed to save profiles to {self.path}",
                details=str(e),
            ) from e
        self._state = state

    def _copy_state(self) -> _State:
        return copy.deepcopy(self._state)

    def add(self, profile: Profile) -> Profile:
        """Add a new profile."""
        profile.validate()
        if profile.name in self._state.profiles:
            raise DuplicateNameError(
                f"Profile '{profile.name}' already exists",
                profile_name=profile.name,
            )

        state = self._copy_state()
        state.profiles[profile.name] = copy.deepcopy(profile)
        self._commit(state)
        logger.info(f"Added profile {profile.name}")
        return profile

    def remove(self, name: str) -> Profile:
        """Remove a profile, clearing ``active`` if it pointed at it."""
        profile = self.get(name)

        state = self._copy_state()
        del state.profiles[name]
        if state.active == name:
            state.active = None
            state.active_scope = None
        self._commit(state)
        logger.info(f"Removed profile {name}")
        return profile

    def get(self, name: str) -> Profile:
        """Get a profile by name."""
        try:
            return self._state.profiles[name]
        except KeyError:
            raise ProfileNotFoundError(f"Profile not found: {name}", profile_name=name) from None

    def list(self) -> list[Profile]:
        """Get all profiles in insertion order."""
        return list(self._state.profiles.values())

    def __contains__(self, name: object) -> bool:
        return name in self._state.profiles

    def __len__(self) -> int:
        return len(self._state.profiles)

    def set_active(self, name: str, scope: Optional[AppliedScope] = None) -> None:
        """Record ``name`` as the active profile and the Git scope it was applied to."""
        self.get(name)
        state = self._copy_state()
        state.active = name
        state.active_scope = scope
        self._commit(state)
        logger.info(f"Active profile is now {name}")

    def active_profile(self) -> Optional[Profile]:
        """Get the currently active profile, if any."""
        if self._state.active is None:
            return None
        return self._state.profiles.get(self._state.active)

    def resolve(self, name_or_user: str) -> Profile:
        """Find a profile by name, falling back to a unique Git user name match."""
        if name_or_user in self._state.profiles:
            return self._state.profiles[name_or_user]

        matches = [p for p in self._state.profiles.values() if p.git_user_name == name_or_user]
        if len(matches) == 1:
            return matches[0]
        if len(matches) > 1:
            names = ", ".join(p.name for p in matches)
            raise ProfileNotFoundError(
                f"Git user name '{name_or_user}' matches several profiles: {names}",
                profile_name=name_or_user,
            )
        raise ProfileNotFoundError(f"Profile not found: {name_or_user}", profile_name=name_or_user)

    def update(self, name: str, /, **changes: Any) -> Profile:
        """Change fields of an existing profile; ``name`` itself can't change."""
        current = self.get(name)
        if "name" in changes:
            raise InvalidProfileError("Profile names can't be changed", profile_name=name)
        allowed = {f.name for f in fields(Profile)} - {"name"}
        unknown = set(changes) - allowed
        if unknown:
            raise InvalidProfileError(
                f"Unknown profile field(s): {', '.join(sorted(unknown))}",
                profile_name=name,
            )

        updated = replace(current, **changes)
        updated.validate()
        state = self._copy_state()
        state.profiles[name] = updated
        self._commit(state)
        logger.info(f"Updated profile {name}")
        return updated

    def set_git_scope(self, scope: str) -> None:
        """Set the default Git configuration scope for switches."""
        if scope not in GIT_SCOPES:
            raise InvalidProfileError(f"Unknown git scope: {scope}")
        state = self._copy_state()
        state.settings.git_scope = scope
        self._commit(state)
