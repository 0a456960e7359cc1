"""Custom exceptions for git-switch."""


class GitSwitchError(Exception):
    """Base exception for git-switch."""

    kind = "Error"

    def __init__(self, message: str, details: str | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class ProfileError(GitSwitchError):
    """Profile-related errors."""

    def __init__(
        self,
        message: str,
        profile_name: str | None = None,
        details: str | None = None,
    ) -> None:
        self.profile_name = profile_name
        super().__init__(message, details=details)


class DuplicateNameError(ProfileError):
    """A profile with the same name already exists."""

    kind = "DuplicateName"


class ProfileNotFoundError(ProfileError):
    """No profile with the requested name."""

    kind = "NotFound"


class InvalidProfileError(ProfileError):
    """Profile fields failed validation."""

    kind = "InvalidProfile"


class KeyNotFoundError(GitSwitchError):
    """SSH private key is missing or unreadable."""

    kind = "KeyNotFound"


class KeyPermissionError(GitSwitchError):
    """SSH private key is accessible by group or others."""

    kind = "KeyPermissionError"


class GitNotFoundError(GitSwitchError):
    """The git executable is not available."""

    kind = "GitNotFound"


class ConfigIOError(GitSwitchError):
    """Reading or writing an SSH or Git configuration failed."""

    kind = "IoError"


class PersistenceError(GitSwitchError):
    """The profile store could not be loaded or saved."""

    kind = "PersistenceError"


class SSHError(GitSwitchError):
    """Errors related to SSH key generation and the SSH agent."""

    kind = "SSHError"


class BackupError(GitSwitchError):
    """Backup-related errors."""

    kind = "BackupError"
