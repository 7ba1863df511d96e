"""Declared-state layer — API adapter, diff parsing, content resolution, models."""

from keysync.git.adapter import RemoteError, RemoteStore
from keysync.git.content import ContentFetcher, DecodeError, decode_content
from keysync.git.diff_parser import DiffParser, extract_changes
from keysync.git.models import ChangeKind, ChangeRecord, CommitRange
from keysync.git.refs import resolve_ref

__all__ = [
    "ChangeKind",
    "ChangeRecord",
    "CommitRange",
    "ContentFetcher",
    "DecodeError",
    "DiffParser",
    "RemoteError",
    "RemoteStore",
    "decode_content",
    "extract_changes",
    "resolve_ref",
]
