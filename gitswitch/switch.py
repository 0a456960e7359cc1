"""Switching the active profile across SSH and Git configuration."""

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Optional

from .exceptions import GitSwitchError
from .git_config import GitConfigSynchronizer, GitScope
from .profile import Profile, ProfileStore
from .ssh_config import SshConfigSynchronizer

logger = logging.getLogger(__name__)


class SwitchState(Enum):
    """Progress of a single switch."""
    IDLE = auto()
    VALIDATING = auto()
    APPLYING = auto()
    COMMITTED = auto()
    ROLLED_BACK = auto()


@dataclass
class SwitchResult:
    """Outcome of a successful switch."""
    profile: Profile
    scope: GitScope
    previous: Optional[str]
    applied: list[str] = field(default_factory=list)


class SwitchEngine:
    """Applies a profile to SSH and Git configuration as one unit.

    SSH is applied before Git because key problems are the likelier
    failure. If any step fails, whatever was already applied is restored
    from the snapshots taken before the first write and the active profile
    is left unchanged.
    """

    def __init__(
        self,
        store: ProfileStore,
        ssh_sync: SshConfigSynchronizer | None = None,
        git_sync: GitConfigSynchronizer | None = None,
    ) -> None:
        self.store = store
        self.ssh_sync = ssh_sync or SshConfigSynchronizer()
        self.git_sync = git_sync or GitConfigSynchronizer()
        self.state = SwitchState.IDLE

    def _transition(self, state: SwitchState) -> None:
        logger.debug(f"Switch state {self.state.name} -> {state.name}")
        self.state = state

    def default_scope(self) -> GitScope:
        """Scope taken from the store settings."""
        return GitScope.from_name(self.store.settings.git_scope)

    def switch_to(self, name: str, scope: GitScope | None = None) -> SwitchResult:
        """Make ``name`` the active profile.

        Raises:
            ProfileNotFoundError: no such profile; nothing was changed
            KeyNotFoundError, KeyPermissionError: the key is unusable;
                nothing was changed
            GitNotFoundError, ConfigIOError, PersistenceError: applying
                failed and any partial change was rolled back
        """
        scope = scope or self.default_scope()
        previous = self.store.active
        self.state = SwitchState.IDLE

        self._transition(SwitchState.VALIDATING)
        try:
            profile = self.store.get(name)
            self.ssh_sync.validate(profile)
            ssh_snapshot = self.ssh_sync.snapshot()
            git_snapshot = self.git_sync.snapshot(scope)
        except GitSwitchError:
            self._transition(SwitchState.IDLE)
            raise

        self._transition(SwitchState.APPLYING)
        # Registered before each apply: a step can fail after writing part of its change
        undo: list[tuple[str, Callable[[], Any]]] = []
        try:
            undo.append(("ssh", lambda: self.ssh_sync.restore(ssh_snapshot)))
            self.ssh_sync.apply(profile)
            undo.append(("git", lambda: self.git_sync.restore(git_snapshot)))
            self.git_sync.apply(profile, scope)
            self.store.set_active(profile.name, scope.to_applied())
        except GitSwitchError as e:
            logger.warning(f"Switch to {name} failed ({e.kind}), rolling back")
            self._rollback(undo, e)
            self._transition(SwitchState.ROLLED_BACK)
            raise

        self._transition(SwitchState.COMMITTED)
        logger.info(f"Switched to profile {profile.name} ({scope})")
        return SwitchResult(
            profile=profile,
            scope=scope,
            previous=previous,
            applied=[label for label, _ in undo],
        )

    def _rollback(self, undo: list[tuple[str, Callable[[], Any]]], error: GitSwitchError) -> None:
        failures = []
        for label, restore in reversed(undo):
            try:
                restore()
            except GitSwitchError as rollback_error:
                logger.error(f"Failed to restore {label} configuration: {rollback_error}")
                failures.append(f"{label}: {rollback_error}")

        if failures:
            note = "Rollback incomplete: " + "; ".join(failures)
            error.details = f"{error.details}\n{note}" if error.details else note
