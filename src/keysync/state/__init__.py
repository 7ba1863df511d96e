"""Local persisted state — checkpoint and run lock."""

from keysync.state.checkpoint import CheckpointError, CheckpointStore
from keysync.state.lock import LockError, RunLock

__all__ = [
    "CheckpointError",
    "CheckpointStore",
    "LockError",
    "RunLock",
]
