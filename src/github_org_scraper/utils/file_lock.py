"""Exclusive locking and atomic writes for the data directory."""

import contextlib
import fcntl
import json
import logging
import os
from pathlib import Path
from typing import IO, Any, Optional

logger = logging.getLogger(__name__)


class DirectoryLock:
    """Context manager holding an exclusive ``flock`` on a lock file.

    Usage:
        with DirectoryLock(data_dir / "github_activity.json.lock"):
            data = load()
            merge(data)
            save(data)

    Overlapping invocations against the same data directory block here, so
    every load-merge-write sequence sees the previous one's result.
    """

    def __init__(self, lock_file: Path):
        self.lock_file = lock_file
        self._fd: Optional[IO[str]] = None

    def __enter__(self) -> "DirectoryLock":
        self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        self._fd = open(self.lock_file, "w")
        logger.debug("Waiting for lock %s", self.lock_file)
        fcntl.flock(self._fd.fileno(), fcntl.LOCK_EX)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if self._fd:
            fcntl.flock(self._fd.fileno(), fcntl.LOCK_UN)
            self._fd.close()
            self._fd = None
        return False


def atomic_write_json(path: Path, data: Any) -> None:
    """Write ``data`` as JSON to ``path`` via a temp file and ``os.replace``.

    The temp file is removed if the write fails, leaving ``path`` untouched.
    """
    tmp = path.with_name(path.name + ".tmp")
    try:
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink(missing_ok=True)
        raise
