"""Local account management — useradd / usermod / gpasswd / userdel wrappers.

Every mutating command can be prefixed with ``sudo``. Group membership
changes are idempotent: adding a member that is already in the group, or
removing one that is not, runs no command.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Set

from keysync.config.schema import IdentityConfig

GROUP_RC_LOADER = """
# Load group-specific config if present
for group in $(id -nG "$USER"); do
    group_bashrc="/home/$group/.bashrc"
    [ -f "$group_bashrc" ] && source "$group_bashrc"
done
"""

_log = logging.getLogger(__name__)


class IdentityError(Exception):
    """Raised when a host account operation cannot be completed."""


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


Runner = Callable[[List[str]], CommandResult]


def run_command(args: List[str], timeout: int = 60) -> CommandResult:
    """Run a command and capture its output. Raises IdentityError if it cannot start."""
    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            timeout=timeout,
            encoding="utf-8",
            errors="replace",
        )
    except FileNotFoundError as exc:
        raise IdentityError(f"{args[0]} is not installed or not on PATH") from exc
    except subprocess.TimeoutExpired as exc:
        raise IdentityError(f"command timed out after {timeout}s: {' '.join(args)}") from exc
    return CommandResult(result.returncode, result.stdout, result.stderr)


class HostAccounts:
    """Users and groups on the machine keysync runs on."""

    def __init__(
        self,
        cfg: Optional[IdentityConfig] = None,
        *,
        runner: Runner = run_command,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cfg = cfg or IdentityConfig()
        self._run = runner
        self._log = logger or _log

    def _privileged(self, *args: str) -> List[str]:
        return ["sudo", *args] if self.cfg.use_sudo else list(args)

    # --- queries ---

    def user_exists(self, user: str) -> bool:
        return self._run(["id", user]).ok

    def group_exists(self, group: str) -> bool:
        try:
            contents = Path(self.cfg.group_file).read_text(encoding="utf-8")
        except OSError:
            return False
        prefix = f"{group}:"
        return any(line.startswith(prefix) for line in contents.splitlines())

    def user_groups(self, user: str) -> Set[str]:
        result = self._run(["id", "-nG", user])
        if not result.ok:
            return set()
        return set(result.stdout.split())

    def home_dir(self, user: str) -> Path:
        return Path(self.cfg.home_root) / user

    # --- mutations ---

    def create_user(self, user: str) -> None:
        home = self.home_dir(user)
        result = self._run(self._privileged(
            "useradd", "-m", "-d", str(home), "--skel", self.cfg.skel, user,
        ))
        if not result.ok:
            self._log.error("Failed to create user '%s': %s", user, result.stderr.strip())
            raise IdentityError(f"Failed to create user '{user}'")
        self._log.info("Created user '%s' with home %s", user, home)

        if self.cfg.group_rc_loader:
            try:
                self.append_group_rc_loader(user)
            except OSError as exc:
                self._log.error("Failed to update user %s bashrc: %s", user, exc)

    def append_group_rc_loader(self, user: str) -> Path:
        """Append the per-group .bashrc loader to the user's own .bashrc."""
        bashrc = self.home_dir(user) / ".bashrc"
        with open(bashrc, "a", encoding="utf-8") as f:
            f.write(GROUP_RC_LOADER)
        self._log.info("Appended group-config loader to '%s'", bashrc)
        return bashrc

    def resolve_group(self, group: str) -> str:
        """Map *group* to the name to use on this host.

        The admin group falls back to ``admin_fallback`` (``wheel``) on hosts
        without it. Raises IdentityError when nothing suitable exists.
        """
        if group == self.cfg.admin_group:
            if self.group_exists(group):
                return group
            if self.group_exists(self.cfg.admin_fallback):
                return self.cfg.admin_fallback
            self._log.error(
                "Neither '%s' nor '%s' group exists.", group, self.cfg.admin_fallback
            )
            raise IdentityError(
                f"No admin group ('{group}' or '{self.cfg.admin_fallback}') found"
            )
        if self.group_exists(group):
            return group
        self._log.error("Group '%s' does not exist.", group)
        raise IdentityError(f"Group '{group}' not found")

    def _removal_group(self, group: str) -> str:
        if (
            group == self.cfg.admin_group
            and not self.group_exists(group)
            and self.group_exists(self.cfg.admin_fallback)
        ):
            return self.cfg.admin_fallback
        return group

    def add_user_to_group(self, user: str, group: str) -> bool:
        """Ensure *user* exists and is in *group*. Returns False if nothing changed."""
        if not self.user_exists(user):
            self._log.info("User '%s' does not exist. Creating user...", user)
            self.create_user(user)

        target = self.resolve_group(group)
        if target in self.user_groups(user):
            self._log.debug("User '%s' already in group '%s'; no change", user, target)
            return False

        result = self._run(self._privileged("usermod", "-aG", target, user))
        if not result.ok:
            self._log.error(
                "Failed to add user '%s' to group '%s': %s",
                user, target, result.stderr.strip(),
            )
            raise IdentityError(f"Failed to add user '{user}' to group '{target}'")
        self._log.info("User '%s' added to group '%s'.", user, target)
        return True

    def remove_user_from_group(self, user: str, group: str) -> bool:
        """Take *user* out of *group*. Returns False if it was not a member.

        The admin group maps to ``admin_fallback`` the same way it does on
        add; a group that does not exist is not an error here.
        """
        group = self._removal_group(group)
        if group not in self.user_groups(user):
            self._log.debug("User '%s' not in group '%s'; no change", user, group)
            return False

        result = self._run(self._privileged("gpasswd", "-d", user, group))
        if not result.ok:
            self._log.error(
                "Failed to remove user '%s' from group '%s': %s",
                user, group, result.stderr.strip(),
            )
            raise IdentityError(f"Failed to remove user '{user}' from group '{group}'")
        self._log.info("User '%s' removed from group '%s'.", user, group)
        return True

    def delete_user(self, user: str) -> None:
        result = self._run(self._privileged("userdel", "-r", user))
        if not result.ok:
            self._log.error("Failed to delete user '%s': %s", user, result.stderr.strip())
            raise IdentityError(f"Failed to delete user '{user}'")
        self._log.info("User '%s' deleted successfully.", user)
