"""Backup and restore of SSH and Git configuration files."""

import json
import logging
import shutil
from datetime import datetime
from pathlib import Path

from .exceptions import BackupError
from .paths import get_backup_dir, get_global_git_config_path, get_ssh_config_path

logger = logging.getLogger(__name__)

METADATA_FILE = "metadata.json"


def create_backup(configs: dict[str, Path], backup_dir: Path | None = None) -> Path:
    """Copy configuration files into a new timestamped backup directory.

    Args:
        configs: Mapping of label to file; missing files are skipped
        backup_dir: Parent directory for backups

    Returns:
        Path to the new backup directory
    """
    backup_root = backup_dir or get_backup_dir()
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    backup_path = backup_root / f"backup_{timestamp}"

    try:
        backup_path.mkdir(parents=True, exist_ok=False)
        saved: dict[str, dict[str, str]] = {}
        for label, source in configs.items():
            if not source.is_file():
                logger.debug(f"Skipping missing {label}: {source}")
                continue
            target = backup_path / label
            shutil.copy2(source, target)
            saved[label] = {"source": str(source), "file": label}

        metadata = {"timestamp": timestamp, "configs": saved}
        (backup_path / METADATA_FILE).write_text(json.dumps(metadata, indent=2), encoding="utf-8")
    except OSError as e:
        raise BackupError(f"Failed to create backup: {e}") from e

    logger.info(f"Backed up {', '.join(saved) or 'nothing'} to {backup_path}")
    return backup_path


def backup_configs(backup_dir: Path | None = None) -> Path:
    """Back up the SSH client config and the global Git config."""
    return create_backup(
        {
            "ssh_config": get_ssh_config_path(),
            "gitconfig": get_global_git_config_path(),
        },
        backup_dir=backup_dir,
    )


def restore_backup(backup_path: Path) -> list[Path]:
    """Copy the files of a backup back to where they came from.

    Returns:
        The restored destinations
    """
    try:
        metadata = json.loads((backup_path / METADATA_FILE).read_text(encoding="utf-8"))
        restored = []
        for label, entry in metadata["configs"].items():
            source = backup_path / entry["file"]
            destination = Path(entry["source"])
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, destination)
            restored.append(destination)
            logger.info(f"Restored {label} to {destination}")
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise BackupError(f"Failed to restore backup: {e}") from e
    return restored


def list_backups(backup_dir: Path | None = None) -> list[Path]:
    """List backup directories, newest first."""
    backup_root = backup_dir or get_backup_dir()
    if not backup_root.is_dir():
        return []
    return sorted(
        (p for p in backup_root.iterdir() if (p / METADATA_FILE).is_file()),
        reverse=True,
    )
