"""Data models for declared-state changes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

NAMES_PROVIDER = "names"


class ChangeKind(str, Enum):
    ADDED = "added"
    DELETED = "deleted"
    MODIFIED = "modified"
    ADDED_USER = "added_user"
    DELETED_USER = "deleted_user"
    MODIFIED_USER = "modified_user"

    @property
    def is_deletion(self) -> bool:
        return self in (ChangeKind.DELETED, ChangeKind.DELETED_USER)


@dataclass(frozen=True, slots=True)
class ChangeRecord:
    """One normalised change to the declared state.

    Access-tree grants carry project and provider; names-tree entries use
    ``project=""`` and ``provider="names"``.
    """

    provider: str
    project: str
    hash: str
    kind: ChangeKind

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.project, self.provider, self.hash)

    @property
    def is_names(self) -> bool:
        return self.provider == NAMES_PROVIDER and not self.project


@dataclass(frozen=True)
class CommitRange:
    """Commit pair a diff is taken over."""

    base: str
    head: str
