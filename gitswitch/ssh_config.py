"""SSH client configuration management.

git-switch owns exactly one region of the SSH client config, delimited by a
pair of marker comments. The file is parsed into segments, the managed
segment is regenerated for the active profile, and the whole file is written
back through a temporary file and a rename. Everything outside the markers is
carried over unchanged.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .backup import create_backup
from .exceptions import ConfigIOError
from .fileutil import atomic_write_text
from .paths import get_backup_dir, get_ssh_config_path
from .profile import Profile
from .ssh import check_private_key

logger = logging.getLogger(__name__)

BEGIN_MARKER = "# >>> git-switch managed block >>>"
END_MARKER = "# <<< git-switch managed block <<<"


@dataclass
class Segment:
    """A run of lines in the SSH config."""
    text: str
    managed: bool = False


@dataclass
class SshSnapshot:
    """Contents of the SSH config before a change; ``None`` if it didn't exist."""
    path: Path
    text: Optional[str]


def parse_segments(text: str) -> list[Segment]:
    """Split SSH config text into user-authored and managed segments."""
    segments: list[Segment] = []
    buffer: list[str] = []
    in_block = False

    for lineno, line in enumerate(text.splitlines(keepends=True), start=1):
        stripped = line.strip()
        if stripped == BEGIN_MARKER:
            if in_block:
                raise ConfigIOError(
                    f"Nested git-switch marker at line {lineno} of the SSH config",
                    details="Remove the duplicate marker and try again",
                )
            if buffer:
                segments.append(Segment("".join(buffer)))
            buffer = [line]
            in_block = True
        elif stripped == END_MARKER and in_block:
            buffer.append(line if line.endswith("\n") else line + "\n")
            segments.append(Segment("".join(buffer), managed=True))
            buffer = []
            in_block = False
        else:
            buffer.append(line)

    if in_block:
        raise ConfigIOError(
            "Unterminated git-switch block in the SSH config",
            details=f"Add '{END_MARKER}' after the block or remove '{BEGIN_MARKER}'",
        )
    if buffer:
        segments.append(Segment("".join(buffer)))
    return segments


def _quote(value: str) -> str:
    return f'"{value}"' if any(c.isspace() for c in value) else value


def render_block(profile: Profile, key_path: Path) -> str:
    """Render the managed block for a profile."""
    lines = [
        BEGIN_MARKER,
        "# Managed by git-switch. Changes inside this block are overwritten.",
        f"# Active profile: {profile.name}",
        f"Host {profile.ssh_host_alias}",
        f"    HostName {profile.ssh_hostname}",
        "    User git",
        f"    IdentityFile {_quote(str(key_path))}",
        "    IdentitiesOnly yes",
        "    AddKeysToAgent yes",
        END_MARKER,
    ]
    return "\n".join(lines) + "\n"


def replace_block(segments: list[Segment], block: Optional[str]) -> str:
    """Serialize segments with the managed block replaced.

    The first managed segment is replaced by ``block`` and any further
    managed segments are dropped. Without a managed segment, ``block`` is
    appended at the end, separated by a blank line. ``None`` removes it.
    """
    out: list[str] = []
    placed = False
    for segment in segments:
        if not segment.managed:
            out.append(segment.text)
        elif not placed and block is not None:
            out.append(block)
            placed = True

    text = "".join(out)
    if block is None or placed:
        return text

    if text:
        if not text.endswith("\n"):
            text += "\n"
        if not text.endswith("\n\n"):
            text += "\n"
    return text + block


class SshConfigSynchronizer:
    """Keeps the managed block of the SSH config in line with a profile."""

    def __init__(self, config_path: Path | None = None, backup_dir: Path | None = None) -> None:
        self.config_path = config_path or get_ssh_config_path()
        self.backup_dir = backup_dir

    def _read(self) -> Optional[str]:
        try:
            return self.config_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigIOError(f"Failed to read SSH config {self.config_path}: {e}") from e

    def _write(self, text: str, created: bool) -> None:
        try:
            if created:
                self.config_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            atomic_write_text(self.config_path, text, mode=0o600 if created else None)
        except OSError as e:
            raise ConfigIOError(f"Failed to write SSH config {self.config_path}: {e}") from e

    def current_block(self) -> Optional[str]:
        """Get the managed block currently in the SSH config."""
        text = self._read()
        if text is None:
            return None
        for segment in parse_segments(text):
            if segment.managed:
                return segment.text
        return None

    def snapshot(self) -> SshSnapshot:
        return SshSnapshot(path=self.config_path, text=self._read())

    def restore(self, snapshot: SshSnapshot) -> None:
        """Put the SSH config back the way it was when ``snapshot`` was taken."""
        if self._read() == snapshot.text:
            return
        if snapshot.text is None:
            try:
                snapshot.path.resolve().unlink(missing_ok=True)
            except OSError as e:
                raise ConfigIOError(f"Failed to remove SSH config {snapshot.path}: {e}") from e
        else:
            self._write(snapshot.text, created=not snapshot.path.exists())
        logger.info(f"Restored SSH config {snapshot.path}")

    def validate(self, profile: Profile) -> Path:
        """Check the profile's private key; see :func:`check_private_key`."""
        return check_private_key(profile.ssh_key_path)

    def apply(self, profile: Profile) -> None:
        """Point the managed host alias at the profile's key."""
        key_path = self.validate(profile)
        current = self._read()
        segments = parse_segments(current or "")
        updated = replace_block(segments, render_block(profile, key_path))

        if current == updated:
            logger.debug("SSH config already up to date")
            return

        if current and not any(s.managed for s in segments):
            # First time we touch a hand-written config
            create_backup({"ssh_config": self.config_path}, backup_dir=self.backup_dir or get_backup_dir())

        self._write(updated, created=current is None)
        logger.info(f"Updated SSH config for profile {profile.name}")

    def clear(self) -> bool:
        """Remove the managed block. Returns whether anything changed."""
        current = self._read()
        if current is None:
            return False

        segments = parse_segments(current)
        if not any(s.managed for s in segments):
            return False

        updated = replace_block(segments, None)
        if segments[-1].managed and updated.endswith("\n\n"):
            updated = updated[:-1]
        self._write(updated, created=False)
        logger.info("Removed git-switch block from SSH config")
        return True
