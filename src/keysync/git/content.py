"""Resolve a change record's username at the right revision."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Optional

from keysync.git.adapter import RemoteStore
from keysync.git.models import ChangeKind
from keysync.git.refs import DEFAULT_BRANCH, resolve_ref

NAMES_DIR = "names"

_log = logging.getLogger(__name__)


class DecodeError(Exception):
    """Raised when file content is not valid base64 / UTF-8."""


def decode_content(payload: str) -> str:
    """Decode a base64 content payload, ignoring the API's line wrapping."""
    clean = payload.replace("\n", "")
    try:
        raw = base64.b64decode(clean, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"invalid base64 content: {exc}") from exc
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"content is not UTF-8: {exc}") from exc


class ContentFetcher:
    """Read ``names/<hash>`` at the ref a change kind calls for.

    A missing file is a skip, not a failure: non-success responses and
    payloads without ``content`` yield None with a warning.
    """

    def __init__(
        self,
        store: RemoteStore,
        branch: str = DEFAULT_BRANCH,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._store = store
        self._branch = branch
        self._log = logger or _log

    def ref_for(self, kind: ChangeKind, base_commit: str) -> str:
        return resolve_ref(kind, base_commit, self._branch)

    def fetch(self, hash_: str, kind: ChangeKind, base_commit: str) -> Optional[str]:
        ref = self.ref_for(kind, base_commit)
        response = self._store.get_file(f"{NAMES_DIR}/{hash_}", ref)
        if not response.is_success:
            self._log.warning(
                "API returned error for file at hash %s: %s", hash_, response.status_code
            )
            return None

        try:
            data = response.json()
        except ValueError as exc:
            raise DecodeError(f"unreadable response body for file hash {hash_}: {exc}") from exc

        payload = data.get("content") if isinstance(data, dict) else None
        if not isinstance(payload, str):
            self._log.warning("No 'content' field found for file hash %s", hash_)
            return None

        decoded = decode_content(payload).strip()
        self._log.info("Decoded file for hash %s", hash_)
        return decoded
