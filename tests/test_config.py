"""Tests for configuration file management."""

import stat
from pathlib import Path

import pytest

from billig.config import (
    create_default_config,
    get_config_path,
    get_default_file,
    get_log_json,
    load_config,
    save_config,
)


class TestConfigPath:
    """Tests for get_config_path."""

    def test_uses_xdg_config_home(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should honor XDG_CONFIG_HOME."""
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

        assert get_config_path() == tmp_path / "billig" / "config.toml"

    def test_falls_back_to_dot_config(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should use ~/.config without XDG_CONFIG_HOME."""
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))

        assert get_config_path() == tmp_path / ".config" / "billig" / "config.toml"


class TestConfigFile:
    """Tests for reading and writing the config file."""

    def test_default_config(self, tmp_path: Path) -> None:
        """Should create a private config without a default file."""
        config_path = tmp_path / "billig" / "config.toml"

        create_default_config(config_path)

        assert load_config(config_path) == {"log_json": False}
        assert stat.S_IMODE(config_path.stat().st_mode) == 0o600
        assert get_default_file(config_path) is None

    def test_default_file(self, tmp_path: Path) -> None:
        """Should return the configured root ledger."""
        config_path = tmp_path / "config.toml"
        save_config({"default_file": "/data/main.bil", "log_json": True}, config_path)

        assert get_default_file(config_path) == Path("/data/main.bil")
        assert get_log_json(config_path) is True

    def test_missing_config(self, tmp_path: Path) -> None:
        """Should fall back to defaults without a config file."""
        config_path = tmp_path / "missing.toml"

        assert get_default_file(config_path) is None
        assert get_log_json(config_path) is False
        with pytest.raises(FileNotFoundError):
            load_config(config_path)
