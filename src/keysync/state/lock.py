"""Advisory lock so two sync runs never overlap."""

from __future__ import annotations

import fcntl
import os
from pathlib import Path
from typing import IO, Optional, Union


class LockError(Exception):
    """Raised when another run holds the lock or the lock file is unusable."""


class RunLock:
    """Exclusive, non-blocking ``flock`` on a lock file.

    Usage::

        with RunLock("keysync.lock"):
            reconciler.run()
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._fh: Optional[IO[str]] = None

    def acquire(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fh = open(self.path, "a+", encoding="utf-8")
        except OSError as exc:
            raise LockError(f"Cannot open lock file {self.path}: {exc}") from exc
        try:
            fcntl.flock(fh, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as exc:
            fh.close()
            raise LockError(f"Another keysync run holds {self.path}") from exc
        fh.seek(0)
        fh.truncate()
        fh.write(str(os.getpid()))
        fh.flush()
        self._fh = fh

    def release(self) -> None:
        if self._fh is None:
            return
        fcntl.flock(self._fh, fcntl.LOCK_UN)
        self._fh.close()
        self._fh = None

    @property
    def held(self) -> bool:
        return self._fh is not None

    def __enter__(self) -> "RunLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()
