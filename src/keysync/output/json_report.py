"""JSON reporter for schedulers and log shippers."""

from __future__ import annotations

import json
from typing import Any, Dict, List

from keysync.sync.models import OutcomeStatus, SyncResult


def to_dict(result: SyncResult) -> Dict[str, Any]:
    """Convert SyncResult to a JSON-serialisable dict."""
    records: List[Dict[str, Any]] = []
    for o in result.outcomes:
        records.append({
            "project": o.record.project,
            "provider": o.record.provider,
            "hash": o.record.hash,
            "kind": o.record.kind.value,
            "status": o.status.value,
            **({"action": o.action} if o.action else {}),
            **({"user": o.username} if o.username else {}),
            **({"detail": o.detail} if o.detail else {}),
        })

    counts = {status.value: len(result.with_status(status)) for status in OutcomeStatus}

    return {
        "version": "1.0",
        "mode": result.mode.value,
        "state": result.state.value,
        "base": result.base,
        "head": result.head,
        "dry_run": result.dry_run,
        "checkpoint_saved": result.checkpoint_saved,
        "total_records": result.total_records,
        "counts": counts,
        "records": records,
        **({"error": result.error} if result.error else {}),
        "duration_ms": result.duration_ms,
    }


def render(result: SyncResult) -> str:
    """Return formatted JSON string."""
    return json.dumps(to_dict(result), indent=2)
