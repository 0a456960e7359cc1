"""SSH key management module for git-switch."""

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Literal

from .exceptions import KeyNotFoundError, KeyPermissionError, SSHError
from .paths import expand_path, get_ssh_dir

logger = logging.getLogger(__name__)

SSHKeyType = Literal["ed25519", "rsa"]
DEFAULT_KEY_TYPE: SSHKeyType = "ed25519"
DEFAULT_RSA_BITS = 4096


def default_key_path(profile_name: str, key_type: SSHKeyType = DEFAULT_KEY_TYPE) -> str:
    """Get the key path used when a profile doesn't name one."""
    slug = profile_name.replace(" ", "_").lower()
    return str(get_ssh_dir() / f"id_{key_type}_{slug}")


def public_key_path(key_path: Path) -> Path:
    return key_path.with_name(key_path.name + ".pub")


def check_private_key(key_path: str | Path) -> Path:
    """Check that a private key exists, is readable and is private.

    Returns:
        The expanded key path

    Raises:
        KeyNotFoundError: the key is missing or unreadable
        KeyPermissionError: group or others have any access to the key
    """
    path = expand_path(key_path)
    if not path.is_file():
        raise KeyNotFoundError(f"SSH key not found: {path}")
    if not os.access(path, os.R_OK):
        raise KeyNotFoundError(f"SSH key is not readable: {path}")

    # Windows doesn't expose POSIX permission bits
    if os.name == "posix":
        mode = path.stat().st_mode & 0o777
        if mode & 0o077:
            raise KeyPermissionError(
                f"Permissions {mode:04o} for '{path}' are too open",
                details=f"SSH ignores private keys readable by others. Run: chmod 600 {path}",
            )
    return path


def generate_ssh_key(
    key_path: str | Path,
    comment: str,
    key_type: SSHKeyType = DEFAULT_KEY_TYPE,
    bits: int | None = None,
) -> Path:
    """Generate a new SSH key pair without a passphrase.

    Args:
        key_path: Where to write the private key
        comment: Key comment, usually the Git email
        key_type: ``ed25519`` or ``rsa``
        bits: Key size for RSA keys

    Returns:
        The expanded private key path
    """
    path = expand_path(key_path)
    if path.exists():
        raise SSHError(f"SSH key already exists: {path}")

    try:
        path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    except OSError as e:
        raise SSHError(f"Failed to create SSH directory: {e}") from e

    cmd = ["ssh-keygen", "-t", key_type, "-C", comment, "-f", str(path), "-N", ""]
    if key_type == "rsa":
        cmd.extend(["-b", str(bits or DEFAULT_RSA_BITS)])

    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        subprocess.run(cmd, check=True, capture_output=True, text=True)
    except FileNotFoundError as e:
        raise SSHError("ssh-keygen is not installed", details="Install OpenSSH to generate keys") from e
    except subprocess.CalledProcessError as e:
        raise SSHError(f"Failed to generate SSH key: {e.stderr.strip()}") from e

    try:
        path.chmod(0o600)
        public_key_path(path).chmod(0o644)
    except OSError as e:
        raise SSHError(f"Failed to set key permissions: {e}") from e

    logger.info(f"Generated {key_type} key {path}")
    return path


def read_public_key(key_path: str | Path) -> str:
    """Get the contents of the public key next to a private key."""
    pub = public_key_path(expand_path(key_path))
    try:
        return pub.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        raise KeyNotFoundError(f"Public key not found: {pub}") from None
    except OSError as e:
        raise KeyNotFoundError(f"Failed to read public key {pub}: {e}") from e


def delete_key_files(key_path: str | Path) -> list[Path]:
    """Delete a private key and its public key.

    Returns:
        The files that were removed
    """
    path = expand_path(key_path)
    removed = []
    for candidate in (path, public_key_path(path)):
        try:
            candidate.unlink()
        except FileNotFoundError:
            continue
        except OSError as e:
            raise SSHError(f"Failed to delete {candidate}: {e}") from e
        removed.append(candidate)
    logger.info(f"Deleted key files: {', '.join(str(p) for p in removed) or 'none'}")
    return removed


def add_to_ssh_agent(key_path: str | Path) -> None:
    """Add a private key to the running SSH agent."""
    path = expand_path(key_path)
    if sys.platform == "win32" and "SSH_AUTH_SOCK" not in os.environ:
        raise SSHError(
            "SSH agent is not available",
            details="Start the OpenSSH Authentication Agent service first",
        )

    try:
        subprocess.run(
            ["ssh-add", str(path)],
            check=True,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as e:
        raise SSHError("ssh-add is not installed") from e
    except subprocess.CalledProcessError as e:
        raise SSHError(
            f"Failed to add key to SSH agent: {e.stderr.strip()}",
            details='Make sure an agent is running, e.g. eval "$(ssh-agent -s)"',
        ) from e
    logger.info(f"Added {path} to SSH agent")
