"""Tests for the switch engine."""

from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from conftest import requires_git
from gitswitch.exceptions import (
    ConfigIOError,
    GitNotFoundError,
    KeyNotFoundError,
    PersistenceError,
    ProfileNotFoundError,
)
from gitswitch.git_config import GitConfigSynchronizer, GitScope
from gitswitch.profile import AppliedScope, Profile, ProfileStore
from gitswitch.ssh_config import SshConfigSynchronizer
from gitswitch.switch import SwitchEngine, SwitchState

USER_CONFIG = "Host example\n    HostName example.com\n"


@pytest.fixture
def ssh_sync(ssh_config_path: Path, temp_home: Path) -> SshConfigSynchronizer:
    ssh_config_path.parent.mkdir(parents=True, exist_ok=True)
    ssh_config_path.write_text(USER_CONFIG)
    return SshConfigSynchronizer(ssh_config_path, backup_dir=temp_home / "backups")


@pytest.fixture
def failing_git() -> Mock:
    """A Git synchronizer whose apply always fails."""
    sync = Mock(spec=GitConfigSynchronizer)
    sync.snapshot.return_value = Mock()
    sync.apply.side_effect = GitNotFoundError("Git is not installed or not on PATH")
    return sync


@pytest.fixture
def populated_store(store: ProfileStore, work_profile: Profile, personal_profile: Profile) -> ProfileStore:
    store.add(work_profile)
    store.add(personal_profile)
    return store


def test_rollback_when_git_fails(
    populated_store: ProfileStore, ssh_sync: SshConfigSynchronizer, failing_git: Mock
) -> None:
    """Test a Git failure after SSH succeeded restores the SSH config."""
    engine = SwitchEngine(populated_store, ssh_sync, failing_git)

    with pytest.raises(GitNotFoundError):
        engine.switch_to("work", GitScope.global_scope())

    assert ssh_sync.config_path.read_text() == USER_CONFIG
    assert engine.state is SwitchState.ROLLED_BACK
    assert populated_store.active is None
    assert populated_store.active_scope is None
    assert ProfileStore().active is None
    failing_git.restore.assert_called_once_with(failing_git.snapshot.return_value)


def test_rollback_keeps_previous_active(
    populated_store: ProfileStore, ssh_sync: SshConfigSynchronizer, failing_git: Mock
) -> None:
    """Test a failed switch leaves the previously active profile and its SSH block."""
    good_git = Mock(spec=GitConfigSynchronizer)
    SwitchEngine(populated_store, ssh_sync, good_git).switch_to("work", GitScope.global_scope())
    before = ssh_sync.config_path.read_text()

    with pytest.raises(GitNotFoundError):
        SwitchEngine(populated_store, ssh_sync, failing_git).switch_to("personal", GitScope.global_scope())

    assert populated_store.active == "work"
    assert ssh_sync.config_path.read_text() == before
    assert "Host github-work" in before


def test_missing_profile_has_no_side_effects(
    populated_store: ProfileStore, ssh_sync: SshConfigSynchronizer
) -> None:
    """Test switching to an unknown profile changes nothing."""
    git_sync = Mock(spec=GitConfigSynchronizer)
    engine = SwitchEngine(populated_store, ssh_sync, git_sync)

    with pytest.raises(ProfileNotFoundError):
        engine.switch_to("missing", GitScope.global_scope())

    assert engine.state is SwitchState.IDLE
    assert ssh_sync.config_path.read_text() == USER_CONFIG
    git_sync.snapshot.assert_not_called()
    git_sync.apply.assert_not_called()


def test_missing_key_has_no_side_effects(
    store: ProfileStore, ssh_sync: SshConfigSynchronizer, temp_home: Path
) -> None:
    """Test a missing key aborts before Git is touched."""
    store.add(Profile("work", str(temp_home / ".ssh" / "work"), "Alice", "alice@example.com"))
    git_sync = Mock(spec=GitConfigSynchronizer)
    engine = SwitchEngine(store, ssh_sync, git_sync)

    with pytest.raises(KeyNotFoundError):
        engine.switch_to("work", GitScope.global_scope())

    git_sync.apply.assert_not_called()
    assert ssh_sync.config_path.read_text() == USER_CONFIG
    assert store.active is None


def test_persistence_failure_rolls_back(
    populated_store: ProfileStore, ssh_sync: SshConfigSynchronizer
) -> None:
    """Test both synchronizers are undone when the active pointer can't be saved."""
    git_sync = Mock(spec=GitConfigSynchronizer)
    engine = SwitchEngine(populated_store, ssh_sync, git_sync)

    with patch("gitswitch.profile.atomic_write_text", side_effect=OSError("read-only")):
        with pytest.raises(PersistenceError):
            engine.switch_to("work", GitScope.global_scope())

    assert ssh_sync.config_path.read_text() == USER_CONFIG
    git_sync.restore.assert_called_once_with(git_sync.snapshot.return_value)
    assert engine.state is SwitchState.ROLLED_BACK


def test_rollback_failure_is_reported(
    populated_store: ProfileStore, ssh_sync: SshConfigSynchronizer, failing_git: Mock
) -> None:
    """Test a failed restore is attached to the original error."""
    failing_git.restore.side_effect = ConfigIOError("cannot write")
    engine = SwitchEngine(populated_store, ssh_sync, failing_git)

    with pytest.raises(GitNotFoundError) as exc_info:
        engine.switch_to("work", GitScope.global_scope())

    assert "Rollback incomplete" in exc_info.value.details
    assert ssh_sync.config_path.read_text() == USER_CONFIG


def test_default_scope_comes_from_settings(
    populated_store: ProfileStore, ssh_sync: SshConfigSynchronizer, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Test the scope falls back to the stored setting."""
    monkeypatch.chdir(tmp_path)
    populated_store.set_git_scope("local")
    git_sync = Mock(spec=GitConfigSynchronizer)

    result = SwitchEngine(populated_store, ssh_sync, git_sync).switch_to("work")

    assert result.scope == GitScope.local(Path.cwd())
    git_sync.apply.assert_called_once_with(populated_store.get("work"), GitScope.local(Path.cwd()))
    assert ProfileStore().active_scope == AppliedScope(scope="local", repo_path=str(Path.cwd().resolve()))


@requires_git
def test_switch_scenario(populated_store: ProfileStore, ssh_sync: SshConfigSynchronizer) -> None:
    """Test switching between two real profiles end to end."""
    git_sync = GitConfigSynchronizer()
    engine = SwitchEngine(populated_store, ssh_sync, git_sync)
    scope = GitScope.global_scope()

    result = engine.switch_to("work", scope)

    assert result.profile.name == "work"
    assert result.previous is None
    assert engine.state is SwitchState.COMMITTED
    assert populated_store.active == "work"
    assert git_sync.get(scope, "user.name") == "Alice"

    with pytest.raises(ProfileNotFoundError):
        engine.switch_to("missing", scope)
    assert ProfileStore().active == "work"
    assert git_sync.get(scope, "user.name") == "Alice"

    result = engine.switch_to("personal", scope)
    assert result.previous == "work"
    assert git_sync.read(scope)["user.email"] == "bob@example.com"
    text = ssh_sync.config_path.read_text()
    assert "Host github-personal" in text
    assert "Host github-work" not in text
    assert text.startswith(USER_CONFIG)


@requires_git
def test_switch_idempotent(populated_store: ProfileStore, ssh_sync: SshConfigSynchronizer, temp_home: Path) -> None:
    """Test switching to the same profile twice changes nothing the second time."""
    engine = SwitchEngine(populated_store, ssh_sync, GitConfigSynchronizer())
    engine.switch_to("personal", GitScope.global_scope())
    ssh_before = ssh_sync.config_path.read_bytes()
    git_before = (temp_home / ".gitconfig").read_bytes()

    engine.switch_to("personal", GitScope.global_scope())

    assert ssh_sync.config_path.read_bytes() == ssh_before
    assert (temp_home / ".gitconfig").read_bytes() == git_before


@requires_git
def test_missing_key_leaves_git_config(store: ProfileStore, ssh_sync: SshConfigSynchronizer, temp_home: Path) -> None:
    """Test a missing key fails with KeyNotFound and Git identity stays as it was."""
    git_sync = GitConfigSynchronizer()
    scope = GitScope.global_scope()
    store.add(Profile("old", "~/.ssh/old", "Old", "old@example.com"))
    git_sync.apply(store.get("old"), scope)
    store.add(Profile("work", "~/.ssh/work", "Alice", "alice@example.com"))

    with pytest.raises(KeyNotFoundError):
        SwitchEngine(store, ssh_sync, git_sync).switch_to("work", scope)

    assert git_sync.read(scope) == {"user.name": "Old", "user.email": "old@example.com", "user.signingkey": None}
