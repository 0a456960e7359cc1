"""git-switch - Manage and switch between multiple Git identities."""

from gitswitch.profile import Profile, ProfileStore
from gitswitch.version import __version__

__all__ = ["Profile", "ProfileStore", "__version__"]
