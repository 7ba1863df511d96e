"""Configuration schema — dataclasses for every config section."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

OutputFormat = Literal["terminal", "json"]

LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class RemoteConfig:
    base_url: str = ""  # .../repos/<owner>/<repo>/contents
    token: str = ""
    branch: str = "build"  # tracked branch pointer
    user_agent: str = "keysync"
    timeout: Optional[float] = None  # seconds; None = wait indefinitely


@dataclass
class HostConfig:
    identity: str = ""  # empty = socket.gethostname()


@dataclass
class StateConfig:
    checkpoint: str = "base_commit.txt"
    lock_file: str = "keysync.lock"


@dataclass
class IdentityConfig:
    use_sudo: bool = True
    home_root: str = "/opt/watchdog/users"
    skel: str = "/etc/skel"
    group_file: str = "/etc/group"
    admin_group: str = "sudo"
    admin_fallback: str = "wheel"
    group_rc_loader: bool = True  # append the group .bashrc loader for new users


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: str = ""  # empty = stderr only
    target: str = "update"  # run logger name suffix


@dataclass
class OutputConfig:
    format: OutputFormat = "terminal"
    show_summary: bool = True


@dataclass
class KeysyncConfig:
    version: str = "1.0"
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    host: HostConfig = field(default_factory=HostConfig)
    state: StateConfig = field(default_factory=StateConfig)
    identity: IdentityConfig = field(default_factory=IdentityConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
