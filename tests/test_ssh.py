"""Tests for SSH key helpers."""

import os
import subprocess
from collections.abc import Callable
from pathlib import Path

import pytest

from gitswitch.exceptions import KeyNotFoundError, KeyPermissionError, SSHError
from gitswitch.ssh import (
    add_to_ssh_agent,
    check_private_key,
    default_key_path,
    delete_key_files,
    generate_ssh_key,
    read_public_key,
)


@pytest.fixture
def mock_keygen(monkeypatch: pytest.MonkeyPatch) -> list[list[str]]:
    """Mock ssh-keygen by writing placeholder key files."""
    calls: list[list[str]] = []

    def mock_run(cmd, *args, **kwargs):
        calls.append(cmd)
        key = Path(cmd[cmd.index("-f") + 1])
        key.write_text("private")
        key.with_name(key.name + ".pub").write_text(f"ssh-{cmd[2]} AAAA {cmd[cmd.index('-C') + 1]}\n")
        return subprocess.CompletedProcess(cmd, returncode=0, stdout="", stderr="")

    monkeypatch.setattr("subprocess.run", mock_run)
    return calls


def test_default_key_path(temp_home: Path) -> None:
    """Test the default key name includes the key type and profile name."""
    assert default_key_path("Work Laptop") == str(temp_home / ".ssh" / "id_ed25519_work_laptop")
    assert default_key_path("work", "rsa").endswith("id_rsa_work")


def test_check_private_key(make_key: Callable[..., Path]) -> None:
    """Test a private key with 0600 permissions passes."""
    key = make_key("work")
    assert check_private_key(str(key)) == key


def test_check_private_key_missing(temp_home: Path) -> None:
    """Test a missing key is reported."""
    with pytest.raises(KeyNotFoundError, match="not found"):
        check_private_key("~/.ssh/missing")


@pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
def test_check_private_key_open_permissions(make_key: Callable[..., Path]) -> None:
    """Test a group-readable key is rejected with a chmod hint."""
    key = make_key("open", mode=0o640)

    with pytest.raises(KeyPermissionError) as exc_info:
        check_private_key(key)
    assert "chmod 600" in exc_info.value.details


def test_generate_ssh_key(mock_keygen: list[list[str]], temp_home: Path) -> None:
    """Test generating an ed25519 key."""
    path = generate_ssh_key("~/.ssh/id_ed25519_work", comment="alice@work.example")

    assert path == temp_home / ".ssh" / "id_ed25519_work"
    assert mock_keygen[0][:3] == ["ssh-keygen", "-t", "ed25519"]
    assert "-b" not in mock_keygen[0]
    if os.name == "posix":
        assert path.stat().st_mode & 0o777 == 0o600
    assert read_public_key(path).endswith("alice@work.example")


def test_generate_rsa_key(mock_keygen: list[list[str]], temp_home: Path) -> None:
    """Test RSA keys get an explicit size."""
    generate_ssh_key(temp_home / ".ssh" / "id_rsa_work", comment="a@example.com", key_type="rsa")

    assert mock_keygen[0][-2:] == ["-b", "4096"]


def test_generate_ssh_key_existing(make_key: Callable[..., Path]) -> None:
    """Test an existing key is never overwritten."""
    key = make_key("work")

    with pytest.raises(SSHError, match="already exists"):
        generate_ssh_key(key, comment="a@example.com")


def test_generate_ssh_key_failure(monkeypatch: pytest.MonkeyPatch, temp_home: Path) -> None:
    """Test ssh-keygen errors are wrapped."""
    def mock_run(cmd, *args, **kwargs):
        raise subprocess.CalledProcessError(1, cmd, stderr="bad key type\n")

    monkeypatch.setattr("subprocess.run", mock_run)

    with pytest.raises(SSHError, match="bad key type"):
        generate_ssh_key(temp_home / ".ssh" / "id_work", comment="a@example.com")


def test_read_public_key_missing(temp_home: Path) -> None:
    """Test reading a public key that doesn't exist."""
    with pytest.raises(KeyNotFoundError, match="Public key not found"):
        read_public_key(temp_home / ".ssh" / "nothing")


def test_delete_key_files(make_key: Callable[..., Path]) -> None:
    """Test both halves of a key pair are deleted."""
    key = make_key("work")
    pub = key.with_name("work.pub")

    assert delete_key_files(key) == [key, pub]
    assert not key.exists()
    assert not pub.exists()
    assert delete_key_files(key) == []


def test_add_to_ssh_agent_not_running(monkeypatch: pytest.MonkeyPatch, make_key: Callable[..., Path]) -> None:
    """Test ssh-add failures are reported with a hint."""
    def mock_run(cmd, *args, **kwargs):
        raise subprocess.CalledProcessError(2, cmd, stderr="Could not open a connection to your authentication agent.\n")

    monkeypatch.setattr("subprocess.run", mock_run)
    monkeypatch.setenv("SSH_AUTH_SOCK", "/tmp/agent.sock")

    with pytest.raises(SSHError, match="authentication agent") as exc_info:
        add_to_ssh_agent(make_key("work"))
    assert "ssh-agent" in exc_info.value.details
