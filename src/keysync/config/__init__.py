"""Configuration loading, schema, and defaults."""

from keysync.config.loader import ConfigError, load_config, validate
from keysync.config.schema import KeysyncConfig

__all__ = [
    "ConfigError",
    "KeysyncConfig",
    "load_config",
    "validate",
]
