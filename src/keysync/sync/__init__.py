"""Reconciliation — driver and run results."""

from keysync.sync.engine import Reconciler, SyncError
from keysync.sync.models import (
    OutcomeStatus,
    RecordOutcome,
    SyncMode,
    SyncResult,
    SyncState,
)

__all__ = [
    "OutcomeStatus",
    "Reconciler",
    "RecordOutcome",
    "SyncError",
    "SyncMode",
    "SyncResult",
    "SyncState",
]
