"""Atomic file writes."""

import contextlib
import logging
import os
import tempfile
from collections.abc import Iterator
from pathlib import Path
from typing import IO

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def atomic_open(path: Path, mode: int | None = None) -> Iterator[IO[str]]:
    """Open a temporary file next to ``path`` and move it into place on exit.

    The temporary file lives in the same directory so the final
    ``os.replace`` never crosses filesystems. A symlinked ``path`` is followed,
    so the link stays in place and its target receives the new contents. If
    the body raises, the temporary file is removed and ``path`` is left
    untouched.
    """
    path = path.resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            yield handle
            handle.flush()
            os.fsync(handle.fileno())
        if mode is not None:
            os.chmod(tmp_path, mode)
        elif path.exists():
            os.chmod(tmp_path, path.stat().st_mode & 0o777)
        os.replace(tmp_path, path)
        logger.debug(f"Wrote {path}")
    except BaseException:
        with contextlib.suppress(OSError):
            tmp_path.unlink()
        raise


def atomic_write_text(path: Path, text: str, mode: int | None = None) -> None:
    """Replace ``path`` with ``text`` using a temp-file-then-rename sequence."""
    with atomic_open(path, mode=mode) as handle:
        handle.write(text)
