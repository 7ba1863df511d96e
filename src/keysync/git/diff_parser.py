"""Unified diff parser — turns a commit-range diff into change records.

Only two path shapes matter: ``access/<project>/<provider>/<hash>`` and
``names/<hash>``. Everything else in the diff is ignored.

Classification is diff-global: a path counts as added when the *whole* diff
contains a ``new file mode`` line, not just that path's own header block.
A diff that both adds and deletes access files therefore reports every
access path in it as added. Callers rely on this behaviour; it is kept as is.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Tuple

from keysync.git.models import NAMES_PROVIDER, ChangeKind, ChangeRecord

# --- Regex patterns for diff parsing ---

_ACCESS_RE = re.compile(r"diff --git a/(access/([^/\s]+)/([^/\s]+)/(\w+))")
_NAMES_RE = re.compile(r"diff --git a/(names/(\w+))")

NEW_FILE_MARKER = "new file mode"
DELETED_FILE_MARKER = "deleted file mode"

_log = logging.getLogger(__name__)


class DiffParser:
    """Parse unified diff text into deduplicated ChangeRecord objects.

    Usage::

        records = DiffParser(diff_text).parse()
    """

    def __init__(self, diff_text: str, logger: Optional[logging.Logger] = None) -> None:
        self._text = diff_text
        self._lines = diff_text.splitlines()
        self._log = logger or _log
        self._has_new = NEW_FILE_MARKER in diff_text
        self._has_deleted = DELETED_FILE_MARKER in diff_text

    def parse(self) -> List[ChangeRecord]:
        """Return one record per distinct key; first classification wins."""
        records: Dict[Tuple[str, str, str], ChangeRecord] = {}

        for line in self._lines:
            record = self._match_line(line)
            if record is None:
                continue
            if record.key in records:
                continue
            records[record.key] = record

        return list(records.values())

    def _match_line(self, line: str) -> Optional[ChangeRecord]:
        m = _ACCESS_RE.search(line)
        if m:
            full_path, project, provider, hash_ = m.groups()
            kind = self._classify_access(line, full_path)
            self._log.debug(
                "Access file change detected: %s/%s/%s, status: %s",
                project, provider, hash_, kind.value,
            )
            return ChangeRecord(provider=provider, project=project, hash=hash_, kind=kind)

        m = _NAMES_RE.search(line)
        if m:
            full_path, hash_ = m.groups()
            kind = self._classify_names(line, full_path)
            self._log.debug("Name file change detected: %s, status: %s", hash_, kind.value)
            return ChangeRecord(provider=NAMES_PROVIDER, project="", hash=hash_, kind=kind)

        return None

    def _classify_access(self, line: str, full_path: str) -> ChangeKind:
        if self._has_new and full_path in line:
            return ChangeKind.ADDED
        if self._has_deleted and full_path in line:
            return ChangeKind.DELETED
        return ChangeKind.MODIFIED

    def _classify_names(self, line: str, full_path: str) -> ChangeKind:
        # deletion wins over a new-file marker for names entries
        if self._has_deleted and full_path in line:
            return ChangeKind.DELETED_USER
        if self._has_new and full_path in line:
            return ChangeKind.ADDED_USER
        return ChangeKind.MODIFIED_USER


def extract_changes(diff_text: str, logger: Optional[logging.Logger] = None) -> List[ChangeRecord]:
    """Shorthand for ``DiffParser(diff_text, logger).parse()``."""
    return DiffParser(diff_text, logger).parse()
