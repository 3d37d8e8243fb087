"""Tests for runtime provider detection and plugin registration."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from conftest import make_settings

from devc.config import RuntimeConfig
from devc.errors import RuntimeUnavailable
from devc.runtime import detect_provider, get_runtime_client


class FakeProvider:
    def __init__(self, name: str, available: bool = True) -> None:
        self.name = name
        self.available = available
        self.client = MagicMock(name=f"{name}-client")

    def is_available(self) -> bool:
        return self.available

    def connect(self):
        return self.client


def _plugin_manager(*providers):
    pm = MagicMock()
    pm.hook.devc_container_runtime.return_value = list(providers)
    return pm


def _detect(*providers):
    with patch("devc.plugin.get_plugin_manager", return_value=_plugin_manager(*providers)):
        return detect_provider()


class TestDetectProvider:
    def test_docker_preferred(self):
        podman = FakeProvider("podman")
        docker = FakeProvider("docker")
        assert _detect(podman, docker) is docker

    def test_falls_back_when_docker_unavailable(self):
        podman = FakeProvider("podman")
        assert _detect(FakeProvider("docker", available=False), podman) is podman

    def test_nothing_available(self):
        with pytest.raises(RuntimeUnavailable, match="tried: docker, podman"):
            _detect(FakeProvider("docker", available=False), FakeProvider("podman", False))

    def test_no_providers(self):
        with pytest.raises(RuntimeUnavailable, match="no container runtime provider"):
            _detect()

    def test_settings_override(self, monkeypatch):
        monkeypatch.setattr(
            "devc.config._settings", make_settings(runtime=RuntimeConfig(name="Podman"))
        )
        podman = FakeProvider("podman")
        assert _detect(FakeProvider("docker"), podman) is podman

    def test_unknown_override_falls_back(self, monkeypatch):
        monkeypatch.setattr(
            "devc.config._settings", make_settings(runtime=RuntimeConfig(name="lxc"))
        )
        docker = FakeProvider("docker")
        assert _detect(docker) is docker

    def test_invalid_and_none_entries_ignored(self):
        docker = FakeProvider("docker")
        assert _detect(None, object(), docker) is docker

    def test_duplicate_name_first_wins(self):
        first = FakeProvider("docker")
        second = FakeProvider("docker")
        assert _detect(first, second) is first

    def test_get_runtime_client_connects(self):
        docker = FakeProvider("docker")
        with patch("devc.plugin.get_plugin_manager", return_value=_plugin_manager(docker)):
            assert get_runtime_client() is docker.client


class TestPluginManager:
    def test_builtin_docker_registered(self):
        from devc.plugin import get_plugin_manager
        from devc.runtime.plugins.docker_runtime.client import DockerRuntime

        pm = get_plugin_manager()

        assert pm.get_plugin("builtin-docker-runtime") is not None
        providers = pm.hook.devc_container_runtime()
        assert any(isinstance(p, DockerRuntime) for p in providers)

    def test_class_objects_unregistered(self):
        from devc.plugin import get_plugin_manager

        class NotAnInstance:
            pass

        def load(pm_self, group):
            pm_self.register(NotAnInstance, name="bogus")
            return 1

        with patch("pluggy.PluginManager.load_setuptools_entrypoints", load):
            pm = get_plugin_manager()

        assert pm.get_plugin("bogus") is None
