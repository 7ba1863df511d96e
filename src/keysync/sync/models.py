"""Reconciliation run result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from keysync.git.models import ChangeRecord


class SyncState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INCREMENTAL = "incremental"
    DONE = "done"
    FAILED = "failed"


class SyncMode(str, Enum):
    FULL = "full"
    INCREMENTAL = "incremental"


class OutcomeStatus(str, Enum):
    APPLIED = "applied"
    NOOP = "noop"  # kind has no identity operation, or nothing changed
    FAILED = "failed"  # identity operation raised; not retried
    SKIPPED_HOST = "skipped_host"
    MISSING = "missing"  # no username at the resolved ref
    PLANNED = "planned"  # dry run


@dataclass
class RecordOutcome:
    """What happened to a single change record."""

    record: ChangeRecord
    status: OutcomeStatus
    action: str = ""  # add_to_group | remove_from_group | delete_user | ""
    username: Optional[str] = None
    detail: str = ""


@dataclass
class SyncResult:
    """Complete result of a reconciliation run."""

    mode: SyncMode
    state: SyncState = SyncState.UNINITIALIZED
    base: Optional[str] = None
    head: Optional[str] = None
    outcomes: List[RecordOutcome] = field(default_factory=list)
    checkpoint_saved: bool = False
    dry_run: bool = False
    error: Optional[str] = None
    duration_ms: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.state == SyncState.DONE

    def with_status(self, status: OutcomeStatus) -> List[RecordOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def applied(self) -> List[RecordOutcome]:
        return self.with_status(OutcomeStatus.APPLIED)

    @property
    def failed(self) -> List[RecordOutcome]:
        return self.with_status(OutcomeStatus.FAILED)

    @property
    def total_records(self) -> int:
        return len(self.outcomes)
