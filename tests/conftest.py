"""Shared test fixtures — sample diffs, a fake declared-state API, fake accounts."""

from __future__ import annotations

import base64
import logging
import textwrap
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import httpx
import pytest

from keysync.config.schema import IdentityConfig
from keysync.git.adapter import RemoteStore
from keysync.identity.accounts import CommandResult, HostAccounts, IdentityError

BASE_URL = "https://api.test/repos/acme/keyhouse/contents"
REPO_PATH = "/repos/acme/keyhouse"
CONTENTS_PATH = f"{REPO_PATH}/contents"


def encode_name(username: str) -> str:
    """Base64 the way the contents API does: wrapped with newlines."""
    return base64.encodebytes(username.encode("utf-8")).decode("ascii")


class FakeApi:
    """httpx.MockTransport handler standing in for the contents/commits/compare API."""

    def __init__(self) -> None:
        self.files: Dict[Tuple[str, str], str] = {}  # (path, ref) -> username
        self.raw: Dict[Tuple[str, str], dict] = {}  # (path, ref) -> JSON body
        self.dirs: Dict[str, List[dict]] = {}
        self.recent: Optional[str] = "head222"
        self.latest: Optional[str] = "head222"
        self.diffs: Dict[str, str] = {}
        self.broken: Set[str] = set()  # path prefixes that fail at transport level
        self.bodies: Dict[str, str] = {}  # url path -> raw 200 body, served as is
        self.requests: List[httpx.Request] = []

    def add_name(self, hash_: str, username: str, ref: str = "build") -> None:
        self.files[(f"names/{hash_}", ref)] = username

    def add_grant_tree(self, tree: Dict[str, Dict[str, List[str]]]) -> None:
        """Register ``{project: {provider: [hash, ...]}}`` under access/."""
        self.dirs["access"] = [{"name": p, "type": "dir"} for p in tree]
        for project, providers in tree.items():
            self.dirs[f"access/{project}"] = [{"name": p, "type": "dir"} for p in providers]
            for provider, hashes in providers.items():
                self.dirs[f"access/{project}/{provider}"] = [
                    {"name": h, "type": "file"} for h in hashes
                ]

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        for prefix in self.broken:
            if path.startswith(prefix):
                raise httpx.ConnectError("connection refused", request=request)
        if path in self.bodies:
            return httpx.Response(200, text=self.bodies[path])

        if path.startswith(CONTENTS_PATH + "/"):
            rel = path[len(CONTENTS_PATH) + 1:]
            ref = request.url.params.get("ref", "")
            if rel in self.dirs:
                return httpx.Response(200, json=self.dirs[rel])
            if (rel, ref) in self.raw:
                return httpx.Response(200, json=self.raw[(rel, ref)])
            if (rel, ref) in self.files:
                return httpx.Response(200, json={"content": encode_name(self.files[(rel, ref)])})
            return httpx.Response(404, json={"message": "Not Found"})

        if path == f"{REPO_PATH}/commits":
            return httpx.Response(200, json=[{"sha": self.recent}] if self.recent else [])

        if path.startswith(f"{REPO_PATH}/commits/"):
            if self.latest is None:
                return httpx.Response(404, json={"message": "No commit found"})
            return httpx.Response(200, json={"sha": self.latest})

        if path.startswith(f"{REPO_PATH}/compare/"):
            key = path[len(f"{REPO_PATH}/compare/"):]
            if key not in self.diffs:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(200, text=self.diffs[key])

        return httpx.Response(404, json={"message": "Not Found"})


class FakeAccounts:
    """Records identity calls; raises IdentityError for operations in *fail_on*."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, ...]] = []
        self.fail_on: Set[str] = set()

    def _record(self, op: str, *args: str) -> None:
        self.calls.append((op, *args))
        if op in self.fail_on:
            raise IdentityError(f"{op} failed for {args}")

    def add_user_to_group(self, user: str, group: str) -> bool:
        self._record("add_user_to_group", user, group)
        return True

    def remove_user_from_group(self, user: str, group: str) -> bool:
        self._record("remove_user_from_group", user, group)
        return True

    def delete_user(self, user: str) -> None:
        self._record("delete_user", user)


class FakeRunner:
    """Command runner for HostAccounts: records argv, answers from a script."""

    def __init__(self) -> None:
        self.commands: List[List[str]] = []
        self.existing_users: Set[str] = set()
        self.memberships: Dict[str, Set[str]] = {}
        self.failing: Set[str] = set()  # command names that exit non-zero

    def names(self) -> List[str]:
        return [c[1] if c[0] == "sudo" else c[0] for c in self.commands]

    def __call__(self, args: List[str]) -> CommandResult:
        self.commands.append(list(args))
        argv = args[1:] if args[0] == "sudo" else args
        name = argv[0]
        if name in self.failing:
            return CommandResult(1, "", f"{name}: simulated failure")
        if name == "id":
            if argv[1] == "-nG":
                user = argv[2]
                if user not in self.existing_users:
                    return CommandResult(1, "", "no such user")
                groups = {user} | self.memberships.get(user, set())
                return CommandResult(0, " ".join(sorted(groups)) + "\n", "")
            return CommandResult(0 if argv[1] in self.existing_users else 1, "", "")
        if name == "useradd":
            self.existing_users.add(argv[-1])
        elif name == "usermod":
            self.memberships.setdefault(argv[-1], set()).add(argv[2])
        elif name == "gpasswd":
            self.memberships.get(argv[2], set()).discard(argv[3])
        elif name == "userdel":
            self.existing_users.discard(argv[-1])
        return CommandResult(0, "", "")


# ── fixtures ──────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _reset_keysync_logger():
    """Undo setup_logging so handlers and levels never leak between tests."""
    yield
    logger = logging.getLogger("keysync")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def remote_store(fake_api: FakeApi):
    store = RemoteStore(BASE_URL, "t0ken", transport=httpx.MockTransport(fake_api))
    yield store
    store.close()


@pytest.fixture
def fake_accounts() -> FakeAccounts:
    return FakeAccounts()


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def group_file(tmp_path: Path) -> Path:
    path = tmp_path / "group"
    path.write_text(
        "root:x:0:\n"
        "wheel:x:10:alice\n"
        "devs:x:1001:\n"
        "ops:x:1002:bob\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def host_accounts(tmp_path: Path, group_file: Path, fake_runner: FakeRunner) -> HostAccounts:
    home_root = tmp_path / "users"
    home_root.mkdir()
    cfg = IdentityConfig(home_root=str(home_root), group_file=str(group_file))
    return HostAccounts(cfg, runner=fake_runner)


@pytest.fixture
def sample_diff_added() -> str:
    """A diff adding one access grant for host1."""
    return textwrap.dedent("""\
        diff --git a/access/devs/host1/abc123 b/access/devs/host1/abc123
        new file mode 100644
        index 0000000..e69de29
    """)


@pytest.fixture
def sample_diff_deleted() -> str:
    """A diff removing one access grant for host1."""
    return textwrap.dedent("""\
        diff --git a/access/devs/host1/abc123 b/access/devs/host1/abc123
        deleted file mode 100644
        index e69de29..0000000
    """)


@pytest.fixture
def sample_diff_modified() -> str:
    """A diff touching an access grant without adding or deleting it."""
    return textwrap.dedent("""\
        diff --git a/access/devs/host1/abc123 b/access/devs/host1/abc123
        old mode 100644
        new mode 100755
    """)


@pytest.fixture
def sample_diff_user_deleted() -> str:
    """A diff removing a names entry."""
    return textwrap.dedent("""\
        diff --git a/names/abc123 b/names/abc123
        deleted file mode 100644
        index 3b18e51..0000000
        --- a/names/abc123
        +++ /dev/null
        @@ -1 +0,0 @@
        -alice
    """)


@pytest.fixture
def sample_diff_unrelated() -> str:
    """A diff with no access or names paths at all."""
    return textwrap.dedent("""\
        diff --git a/README.md b/README.md
        index 1234567..abcdef0 100644
        --- a/README.md
        +++ b/README.md
        @@ -1,0 +2,1 @@
        +More docs
        diff --git a/access/README b/access/README
        new file mode 100644
        index 0000000..e69de29
    """)
