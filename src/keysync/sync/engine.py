"""Reconciliation driver — full resync or incremental sync, then checkpoint.

A run is atomic with respect to the checkpoint only: it is written once,
after every record has been handled, and never when a transport, decode or
checkpoint error aborts the run. Identity changes already applied are not
rolled back. A record whose identity operation fails is logged, reported
and not retried (the checkpoint still moves past it).
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterator, List, Optional, Protocol

from keysync.git.adapter import RemoteError, RemoteStore
from keysync.git.content import ContentFetcher, DecodeError
from keysync.git.diff_parser import DiffParser
from keysync.git.models import ChangeKind, ChangeRecord, CommitRange
from keysync.git.refs import DEFAULT_BRANCH
from keysync.identity.accounts import IdentityError
from keysync.state.checkpoint import CheckpointError, CheckpointStore
from keysync.sync.models import (
    OutcomeStatus,
    RecordOutcome,
    SyncMode,
    SyncResult,
    SyncState,
)

ACCESS_DIR = "access"

_ACTIONS: Dict[ChangeKind, str] = {
    ChangeKind.ADDED: "add_to_group",
    ChangeKind.DELETED: "remove_from_group",
    ChangeKind.DELETED_USER: "delete_user",
}

_log = logging.getLogger(__name__)


class SyncError(Exception):
    """Raised by run_or_raise() when a run ends in the failed state."""

    def __init__(self, message: str, result: SyncResult) -> None:
        super().__init__(message)
        self.result = result


class Accounts(Protocol):
    def add_user_to_group(self, user: str, group: str) -> bool: ...

    def remove_user_from_group(self, user: str, group: str) -> bool: ...

    def delete_user(self, user: str) -> None: ...


class Reconciler:
    """Drive one reconciliation run against the declared-state repository."""

    def __init__(
        self,
        store: RemoteStore,
        checkpoint: CheckpointStore,
        accounts: Accounts,
        host: str,
        *,
        branch: str = DEFAULT_BRANCH,
        fetcher: Optional[ContentFetcher] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.store = store
        self.checkpoint = checkpoint
        self.accounts = accounts
        self.host = host
        self.branch = branch
        self._log = logger or _log
        self.fetcher = fetcher or ContentFetcher(store, branch, logger=self._log)

    # --- entry points ---

    def run(self, *, dry_run: bool = False) -> SyncResult:
        """Execute a run. Failures are reported in the result, not raised."""
        start = time.perf_counter()
        try:
            base = self.checkpoint.load()
        except CheckpointError as exc:
            self._log.error("Cannot read checkpoint: %s", exc)
            return SyncResult(
                mode=SyncMode.INCREMENTAL, state=SyncState.FAILED, dry_run=dry_run, error=str(exc),
            )

        if base is None:
            result = SyncResult(mode=SyncMode.FULL, state=SyncState.UNINITIALIZED, dry_run=dry_run)
        else:
            result = SyncResult(
                mode=SyncMode.INCREMENTAL, state=SyncState.INCREMENTAL, base=base, dry_run=dry_run,
            )

        try:
            if base is None:
                self._log.info("No valid last commit found, updating all users...")
                self._full_resync(result)
            else:
                self._incremental(result, base)

            if dry_run:
                self._log.info("Dry run: checkpoint left at %s", base)
            else:
                self.checkpoint.save(result.head)
                result.checkpoint_saved = True
                self._log.info("Checkpoint advanced to %s", result.head)
            result.state = SyncState.DONE
        except (RemoteError, DecodeError, CheckpointError) as exc:
            result.state = SyncState.FAILED
            result.error = str(exc)
            self._log.error("Sync run failed, checkpoint unchanged: %s", exc)
        finally:
            result.duration_ms = (time.perf_counter() - start) * 1000

        return result

    def run_or_raise(self, *, dry_run: bool = False) -> SyncResult:
        result = self.run(dry_run=dry_run)
        if result.state == SyncState.FAILED:
            raise SyncError(result.error or "sync failed", result)
        return result

    # --- full resync ---

    def _full_resync(self, result: SyncResult) -> None:
        for record in self._walk_access_tree():
            self._process(record, "", result, filter_host=False)

        result.head = self.store.latest_commit(self.branch)
        self._log.info("Full resync complete at %s", result.head)

    def _walk_access_tree(self) -> Iterator[ChangeRecord]:
        """Yield an ``added`` record for every grant under ``access/``."""
        for project in self._dirs(self._require_listing(ACCESS_DIR)):
            project_path = f"{ACCESS_DIR}/{project}"
            for provider in self._dirs(self._require_listing(project_path)):
                grant_path = f"{project_path}/{provider}"
                entries = self.store.list_dir(grant_path, self.branch)
                if entries is None:
                    self._log.error("Failed to fetch content for %s", grant_path)
                    continue
                for entry in entries:
                    name = entry.get("name")
                    if not name or entry.get("type", "file") != "file":
                        continue
                    yield ChangeRecord(
                        provider=provider, project=project, hash=name, kind=ChangeKind.ADDED,
                    )

    def _require_listing(self, path: str) -> List[Dict[str, Any]]:
        entries = self.store.list_dir(path, self.branch)
        if entries is None:
            raise RemoteError(f"Failed to list {path} at {self.branch}")
        return entries

    @staticmethod
    def _dirs(entries: List[Dict[str, Any]]) -> Iterator[str]:
        for entry in entries:
            name = entry.get("name")
            if name and entry.get("type", "dir") == "dir":
                yield name

    # --- incremental sync ---

    def _incremental(self, result: SyncResult, base: str) -> None:
        head = self.store.recent_commit(self.branch)
        self._log.info("Fetched latest commit: %s", head)
        result.head = head
        commits = CommitRange(base=base, head=head)

        if commits.base == commits.head:
            self._log.info("Already at %s, nothing to sync", head)
            return

        diff = self.store.compare(commits.base, commits.head)
        self._log.info("Fetched diff between %s and %s", commits.base, commits.head)

        records = DiffParser(diff, logger=self._log).parse()
        if not records:
            self._log.info("No access or names changes in range")
        for record in records:
            self._log.info(
                "Parsed diff - Project: %s, Cloud Provider: %s, Hash: %s, Status: %s",
                record.project, record.provider, record.hash, record.kind.value,
            )
            self._process(record, commits.base, result)

        self._log.info("Processed diff successfully.")

    # --- per record ---

    def _process(
        self,
        record: ChangeRecord,
        base_commit: str,
        result: SyncResult,
        *,
        filter_host: bool = True,
    ) -> None:
        if filter_host and not record.is_names and record.provider != self.host:
            self._log.info("%s/%s addressed to %s, not this server, skipping",
                           record.project, record.hash, record.provider)
            result.outcomes.append(RecordOutcome(record, OutcomeStatus.SKIPPED_HOST))
            return

        username = self.fetcher.fetch(record.hash, record.kind, base_commit)
        if not username:
            result.outcomes.append(RecordOutcome(
                record, OutcomeStatus.MISSING, detail="no username at resolved ref",
            ))
            return

        action = _ACTIONS.get(record.kind, "")
        if not action:
            result.outcomes.append(RecordOutcome(record, OutcomeStatus.NOOP, username=username))
            return
        if result.dry_run:
            result.outcomes.append(RecordOutcome(
                record, OutcomeStatus.PLANNED, action=action, username=username,
            ))
            return

        try:
            changed = self._apply(action, username, record)
        except IdentityError as exc:
            self._log.error("Failed to %s for %s: %s", action.replace("_", " "), username, exc)
            result.outcomes.append(RecordOutcome(
                record, OutcomeStatus.FAILED, action=action, username=username, detail=str(exc),
            ))
            return

        status = OutcomeStatus.APPLIED if changed else OutcomeStatus.NOOP
        result.outcomes.append(RecordOutcome(record, status, action=action, username=username))

    def _apply(self, action: str, username: str, record: ChangeRecord) -> bool:
        if action == "add_to_group":
            self._log.info("Adding user %s to group %s...", username, record.project)
            return self.accounts.add_user_to_group(username, record.project)
        if action == "remove_from_group":
            self._log.info("Removing user %s from group %s...", username, record.project)
            return self.accounts.remove_user_from_group(username, record.project)
        self._log.info("Deleting user %s...", username)
        self.accounts.delete_user(username)
        return True
