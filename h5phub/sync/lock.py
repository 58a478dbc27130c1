from __future__ import annotations

import json
import logging
import os
import time
from datetime import datetime, timezone
from pathlib import Path
from types import TracebackType
from typing import Optional, Type

LOGGER = logging.getLogger(__name__)

DEFAULT_STALE_AFTER = 6 * 60 * 60


class PassLock:
    """Advisory lock file that keeps two sync passes from overlapping.

    A stale lock is only ever removed by the process holding the
    ``<lock>.reclaim`` sentinel, which re-checks staleness first. Plain
    acquirers never delete the lock, so a fresh lock cannot be unlinked by a
    competing reclaim.
    """

    def __init__(self, lock_path: Path | str, *, stale_after: float = DEFAULT_STALE_AFTER) -> None:
        self.lock_path = Path(lock_path).expanduser()
        self.reclaim_path = self.lock_path.with_name(self.lock_path.name + ".reclaim")
        self.stale_after = stale_after
        self.held = False

    def acquire(self) -> bool:
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        if self._create():
            return True
        if not self._is_stale(self.lock_path):
            return False
        return self._reclaim()

    def release(self) -> None:
        if not self.held:
            return
        self._remove(self.lock_path)
        self.held = False

    def __enter__(self) -> bool:
        return self.acquire()

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.release()

    # ------------------------------------------------------------------ Helpers
    def _reclaim(self) -> bool:
        if not _create_exclusive(self.reclaim_path):
            if self._is_stale(self.reclaim_path):
                # Left behind by a reclaimer that died mid-way.
                LOGGER.warning("Removing abandoned reclaim marker %s", self.reclaim_path)
                self._remove(self.reclaim_path)
            return False
        try:
            if not self._is_stale(self.lock_path):
                return False
            LOGGER.warning("Reclaiming stale sync lock %s", self.lock_path)
            self._remove(self.lock_path)
            return self._create()
        finally:
            self._remove(self.reclaim_path)

    def _create(self) -> bool:
        if not _create_exclusive(self.lock_path):
            return False
        self.held = True
        return True

    def _is_stale(self, path: Path) -> bool:
        try:
            age = time.time() - path.stat().st_mtime
        except FileNotFoundError:
            return True
        return age > self.stale_after

    @staticmethod
    def _remove(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            return


def _create_exclusive(path: Path) -> bool:
    try:
        fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
    except FileExistsError:
        return False
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(
            json.dumps(
                {
                    "pid": os.getpid(),
                    "started_at": datetime.now(timezone.utc).isoformat(),
                },
                sort_keys=True,
            )
        )
    return True


__all__ = ["DEFAULT_STALE_AFTER", "PassLock"]
