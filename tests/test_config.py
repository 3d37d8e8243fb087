"""Tests for devc's own settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

import devc.config as config_mod
from devc.config import (
    ContainerDefaults,
    LoggingConfig,
    Settings,
    ShellConfig,
    get_settings,
    reset_settings,
)


@pytest.fixture
def toml_path(tmp_path, monkeypatch):
    """Point the TOML source at a throwaway path."""
    path = tmp_path / "config.toml"
    monkeypatch.setattr(Settings, "model_config", {**Settings.model_config, "toml_file": path})
    return path


class TestDefaults:
    def test_defaults(self, toml_path):
        s = Settings()
        assert s.container.default_session == "default"
        assert s.container.workspace_mount == "/workspace"
        assert s.container.detach_keys == "ctrl-@"
        assert s.container.stop_timeout == 10
        assert s.shell.command == ["/bin/bash", "-i", "-l"]
        assert s.ssh_agent.forward is True
        assert s.runtime.name is None
        assert s.logging.level is None


class TestSources:
    def test_toml_file(self, toml_path):
        toml_path.write_text(
            '[container]\ndefault_session = "work"\n\n[shell]\ncommand = ["/bin/zsh", "-l"]\n'
        )
        s = Settings()
        assert s.container.default_session == "work"
        assert s.shell.command == ["/bin/zsh", "-l"]

    def test_env_overrides_toml(self, toml_path, monkeypatch):
        toml_path.write_text('[container]\ndefault_session = "work"\n')
        monkeypatch.setenv("DEVC_CONTAINER__DEFAULT_SESSION", "feature")
        assert Settings().container.default_session == "feature"

    def test_unknown_nested_key_rejected(self, toml_path):
        toml_path.write_text("[container]\ndefualt_session = 'typo'\n")
        with pytest.raises(ValidationError):
            Settings()


class TestValidators:
    def test_extra_forbidden(self):
        with pytest.raises(ValidationError):
            ContainerDefaults(bogus=1)

    def test_stop_timeout_clamped(self):
        assert ContainerDefaults(stop_timeout=-5).stop_timeout == 0

    def test_empty_shell_rejected(self):
        with pytest.raises(ValidationError, match="cannot be empty"):
            ShellConfig(command=[])

    def test_log_level_uppercased(self):
        assert LoggingConfig(level="debug").level == "DEBUG"
        assert LoggingConfig(level="").level is None


class TestSingleton:
    def test_cached_until_reset(self, toml_path):
        reset_settings()
        first = get_settings()
        assert get_settings() is first
        reset_settings()
        assert config_mod._settings is None
        assert get_settings() is not first
