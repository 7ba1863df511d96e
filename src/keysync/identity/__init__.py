"""Host identity layer — users and group membership."""

from keysync.identity.accounts import CommandResult, HostAccounts, IdentityError, run_command

__all__ = [
    "CommandResult",
    "HostAccounts",
    "IdentityError",
    "run_command",
]
