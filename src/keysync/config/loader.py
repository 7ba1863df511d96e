"""Load and merge configuration from .keysync.toml and env vars."""

from __future__ import annotations

import dataclasses
import os
import socket
import sys
from pathlib import Path
from typing import Any, Dict, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from keysync.config.schema import (
    LOG_LEVELS,
    HostConfig,
    IdentityConfig,
    KeysyncConfig,
    LoggingConfig,
    OutputConfig,
    RemoteConfig,
    StateConfig,
)

CONFIG_FILENAME = ".keysync.toml"
SYSTEM_CONFIG = Path("/etc/keysync/keysync.toml")


class ConfigError(Exception):
    """Raised when config is malformed, unreadable or incomplete."""


def find_config_file(
    cwd: Path,
    override: Optional[str] = None,
    system_path: Path = SYSTEM_CONFIG,
) -> Optional[Path]:
    """Locate the config file. *override* takes precedence, then cwd, then /etc."""
    if override:
        p = Path(override)
        if not p.is_file():
            raise ConfigError(f"Config file not found: {override}")
        return p
    candidate = cwd / CONFIG_FILENAME
    if candidate.is_file():
        return candidate
    return system_path if system_path.is_file() else None


def _parse_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc


def _merge_env_overrides(cfg: KeysyncConfig) -> None:
    """Apply KEYSYNC_* environment variable overrides."""
    if val := os.environ.get("KEYSYNC_BASE_URL"):
        cfg.remote.base_url = val
    if val := os.environ.get("KEYSYNC_TOKEN"):
        cfg.remote.token = val
    if val := os.environ.get("KEYSYNC_BRANCH"):
        cfg.remote.branch = val
    if val := os.environ.get("KEYSYNC_HOST"):
        cfg.host.identity = val
    if val := os.environ.get("KEYSYNC_CHECKPOINT"):
        cfg.state.checkpoint = val
    if val := os.environ.get("KEYSYNC_LOG_LEVEL"):
        if val.upper() in LOG_LEVELS:
            cfg.logging.level = val.upper()
    if val := os.environ.get("KEYSYNC_FORMAT"):
        if val in ("terminal", "json"):
            cfg.output.format = val  # type: ignore[assignment]
    if val := os.environ.get("KEYSYNC_TIMEOUT"):
        try:
            cfg.remote.timeout = float(val)
        except ValueError:
            pass


def _build_section(data: Dict[str, Any], cls: type, section: str):
    """Build a dataclass from a TOML section dict, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(cls)}
    filtered = {k: v for k, v in data.get(section, {}).items() if k in valid_fields}
    return cls(**filtered)


def load_config(
    cwd: Optional[Path] = None,
    config_override: Optional[str] = None,
    *,
    system_path: Path = SYSTEM_CONFIG,
) -> KeysyncConfig:
    """Load and return a KeysyncConfig. Does not check completeness; see validate()."""
    config_path = find_config_file(cwd or Path.cwd(), config_override, system_path)

    if config_path is None:
        cfg = KeysyncConfig()
    else:
        raw = _parse_toml(config_path)
        try:
            cfg = KeysyncConfig(
                version=raw.get("version", "1.0"),
                remote=_build_section(raw, RemoteConfig, "remote"),
                host=_build_section(raw, HostConfig, "host"),
                state=_build_section(raw, StateConfig, "state"),
                identity=_build_section(raw, IdentityConfig, "identity"),
                logging=_build_section(raw, LoggingConfig, "logging"),
                output=_build_section(raw, OutputConfig, "output"),
            )
        except (AttributeError, TypeError) as exc:
            raise ConfigError(f"Invalid section in {config_path}: {exc}") from exc

    _merge_env_overrides(cfg)
    if not cfg.host.identity:
        cfg.host.identity = socket.gethostname()
    return cfg


def validate(cfg: KeysyncConfig) -> None:
    """Raise ConfigError if the settings a sync run needs are missing."""
    missing = []
    if not cfg.remote.base_url:
        missing.append("remote.base_url (KEYSYNC_BASE_URL)")
    if not cfg.remote.token:
        missing.append("remote.token (KEYSYNC_TOKEN)")
    if not cfg.remote.branch:
        missing.append("remote.branch")
    if missing:
        raise ConfigError("Missing required settings: " + ", ".join(missing))
    if cfg.logging.level.upper() not in LOG_LEVELS:
        raise ConfigError(f"Invalid logging.level: {cfg.logging.level}")
