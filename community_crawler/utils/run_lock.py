"""
One crawl per data directory.

The lock file holds the owner as JSON (``{"pid": 1234, "startedAt": ISO}``)
so a second crawl can say who it collided with. The ``flock`` is what
actually excludes; the JSON is informational and may be stale.
"""

from __future__ import annotations

import fcntl
import json
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from loguru import logger

from community_crawler.utils.time import iso_utc


class RunLockError(RuntimeError):
    """Another crawl already holds the data directory."""

    def __init__(self, lock_path: Path, holder: Optional[dict] = None):
        holder = holder or {}
        self.lock_path = lock_path
        self.holder_pid = holder.get("pid")
        self.holder_started_at = holder.get("startedAt")
        owner = f"pid {self.holder_pid}" if self.holder_pid else "an unknown process"
        since = f" since {self.holder_started_at}" if self.holder_started_at else ""
        super().__init__(f"Another crawl is already running ({owner}{since}). Lock file: {lock_path}")


def read_lock_holder(lock_path: Path) -> Optional[dict]:
    """Owner recorded in the lock file, or None when absent or unreadable."""
    try:
        data = json.loads(lock_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None


@contextmanager
def exclusive_run_lock(lock_path: Path) -> Iterator[dict]:
    """Hold the crawl lock for the duration of the block; fail fast if taken."""
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    handle = os.fdopen(os.open(lock_path, os.O_RDWR | os.O_CREAT, 0o644), "r+", encoding="utf-8")
    try:
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        handle.close()
        raise RunLockError(lock_path, read_lock_holder(lock_path)) from None

    owner = {"pid": os.getpid(), "startedAt": iso_utc()}
    try:
        handle.seek(0)
        handle.truncate()
        handle.write(json.dumps(owner))
        handle.flush()
        logger.debug(f"Acquired run lock {lock_path} (pid {owner['pid']})")
        yield owner
    finally:
        handle.seek(0)
        handle.truncate()
        handle.flush()
        fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        handle.close()
