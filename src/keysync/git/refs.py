"""Pick the ref a change's content is read from."""

from __future__ import annotations

from keysync.git.models import ChangeKind

DEFAULT_BRANCH = "build"


def resolve_ref(kind: ChangeKind, base_commit: str, branch: str = DEFAULT_BRANCH) -> str:
    """Return the ref to read content at for a change of *kind*.

    Deleted files no longer exist at the branch head, so the username has to
    be read at *base_commit*, the state before the change. Everything else is
    read at the tracked branch pointer.
    """
    if kind.is_deletion:
        return base_commit
    return branch
