"""Tests for config loading, validation, and env var overrides."""

from pathlib import Path

import pytest

from keysync.config.loader import ConfigError, load_config, validate
from keysync.config.schema import KeysyncConfig

NO_SYSTEM = Path("/nonexistent/keysync.toml")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "KEYSYNC_BASE_URL", "KEYSYNC_TOKEN", "KEYSYNC_BRANCH", "KEYSYNC_HOST",
        "KEYSYNC_CHECKPOINT", "KEYSYNC_LOG_LEVEL", "KEYSYNC_FORMAT", "KEYSYNC_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)


class TestConfigLoading:
    def test_default_config(self, tmp_path: Path):
        cfg = load_config(tmp_path, system_path=NO_SYSTEM)
        assert cfg.remote.branch == "build"
        assert cfg.remote.timeout is None
        assert cfg.state.checkpoint == "base_commit.txt"
        assert cfg.identity.admin_fallback == "wheel"
        assert cfg.host.identity  # falls back to the hostname

    def test_custom_toml(self, tmp_path: Path):
        (tmp_path / ".keysync.toml").write_text(
            'version = "1.0"\n'
            '[remote]\n'
            'base_url = "https://api.test/repos/a/b/contents"\n'
            'branch = "main"\n'
            '[host]\n'
            'identity = "aws"\n'
            '[identity]\n'
            'use_sudo = false\n'
        )
        cfg = load_config(tmp_path, system_path=NO_SYSTEM)
        assert cfg.remote.base_url.endswith("/contents")
        assert cfg.remote.branch == "main"
        assert cfg.host.identity == "aws"
        assert cfg.identity.use_sudo is False

    def test_unknown_keys_ignored(self, tmp_path: Path):
        (tmp_path / ".keysync.toml").write_text('[remote]\nbogus = 1\nbranch = "x"\n')
        cfg = load_config(tmp_path, system_path=NO_SYSTEM)
        assert cfg.remote.branch == "x"

    def test_config_override_path(self, tmp_path: Path):
        custom = tmp_path / "custom.toml"
        custom.write_text('[state]\ncheckpoint = "/var/lib/keysync/commit"\n')
        cfg = load_config(tmp_path, config_override=str(custom), system_path=NO_SYSTEM)
        assert cfg.state.checkpoint == "/var/lib/keysync/commit"

    def test_system_config_used_as_fallback(self, tmp_path: Path):
        system = tmp_path / "etc.toml"
        system.write_text('[remote]\nbranch = "release"\n')
        workdir = tmp_path / "work"
        workdir.mkdir()
        cfg = load_config(workdir, system_path=system)
        assert cfg.remote.branch == "release"

    def test_missing_override_raises(self, tmp_path: Path):
        with pytest.raises(ConfigError):
            load_config(tmp_path, config_override="/nonexistent/config.toml")

    def test_invalid_toml_raises(self, tmp_path: Path):
        (tmp_path / ".keysync.toml").write_text("this is not valid [toml")
        with pytest.raises(ConfigError):
            load_config(tmp_path, system_path=NO_SYSTEM)

    def test_section_not_a_table_raises(self, tmp_path: Path):
        (tmp_path / ".keysync.toml").write_text('remote = "oops"\n')
        with pytest.raises(ConfigError):
            load_config(tmp_path, system_path=NO_SYSTEM)


class TestEnvVarOverrides:
    def test_remote_overrides(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("KEYSYNC_BASE_URL", "https://env.test/contents")
        monkeypatch.setenv("KEYSYNC_TOKEN", "secret")
        monkeypatch.setenv("KEYSYNC_BRANCH", "main")
        cfg = load_config(tmp_path, system_path=NO_SYSTEM)
        assert cfg.remote.base_url == "https://env.test/contents"
        assert cfg.remote.token == "secret"
        assert cfg.remote.branch == "main"

    def test_host_override(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("KEYSYNC_HOST", "gcp")
        assert load_config(tmp_path, system_path=NO_SYSTEM).host.identity == "gcp"

    def test_timeout_override(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("KEYSYNC_TIMEOUT", "12.5")
        assert load_config(tmp_path, system_path=NO_SYSTEM).remote.timeout == 12.5

    def test_invalid_env_ignored(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("KEYSYNC_TIMEOUT", "soon")
        monkeypatch.setenv("KEYSYNC_LOG_LEVEL", "chatty")
        monkeypatch.setenv("KEYSYNC_FORMAT", "xml")
        cfg = load_config(tmp_path, system_path=NO_SYSTEM)
        assert cfg.remote.timeout is None
        assert cfg.logging.level == "INFO"
        assert cfg.output.format == "terminal"


class TestValidate:
    def test_missing_remote_settings(self):
        with pytest.raises(ConfigError, match="base_url"):
            validate(KeysyncConfig())

    def test_complete_config(self):
        cfg = KeysyncConfig()
        cfg.remote.base_url = "https://api.test/repos/a/b/contents"
        cfg.remote.token = "t"
        validate(cfg)

    def test_bad_log_level(self):
        cfg = KeysyncConfig()
        cfg.remote.base_url = "https://api.test/repos/a/b/contents"
        cfg.remote.token = "t"
        cfg.logging.level = "LOUD"
        with pytest.raises(ConfigError, match="logging.level"):
            validate(cfg)
