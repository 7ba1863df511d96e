"""Checkpoint store — the last commit a run fully processed."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional, Union


class CheckpointError(Exception):
    """Raised when the checkpoint cannot be read or written."""


class CheckpointStore:
    """Plain-text commit id on local disk.

    A missing or blank file means no checkpoint. Writes go through a temp
    file in the same directory and ``os.replace`` so a failed save never
    leaves a truncated value behind.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def load(self) -> Optional[str]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CheckpointError(f"Cannot read checkpoint {self.path}: {exc}") from exc
        value = text.strip()
        return value or None

    def save(self, commit: str) -> None:
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=".checkpoint-", dir=directory)
        except OSError as exc:
            raise CheckpointError(f"Cannot write checkpoint {self.path}: {exc}") from exc

        try:
            try:
                os.write(fd, commit.encode("utf-8"))
                os.fsync(fd)
            finally:
                os.close(fd)
            os.replace(tmp, self.path)
        except OSError as exc:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            raise CheckpointError(f"Cannot write checkpoint {self.path}: {exc}") from exc

    def clear(self) -> bool:
        """Remove the checkpoint. Returns True if one existed."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise CheckpointError(f"Cannot remove checkpoint {self.path}: {exc}") from exc
        return True
