"""Main entry point for direct module execution."""

import logging
import os
import sys

# GitPython refuses to import without a git executable unless refresh is quiet;
# a missing git is then reported per command as GitNotFound
os.environ.setdefault("GIT_PYTHON_REFRESH", "quiet")

from .cli import cli  # noqa: E402
from .exceptions import GitSwitchError  # noqa: E402
from .ui_common import print_error  # noqa: E402

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point."""
    try:
        cli(prog_name="git-switch")
    except GitSwitchError as e:
        print_error(str(e), kind=e.kind, details=e.details)
        sys.exit(1)


if __name__ == "__main__":
    main()
