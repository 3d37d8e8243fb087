"""Shared test fixtures for devc."""

from __future__ import annotations

import json
import threading
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

import pytest

from devc.errors import AttachFailed, ContainerNotFound, ExecCreateFailed
from devc.types import ContainerInfo, ContainerSpec, ExecConfig

# ---------------------------------------------------------------------------
# Shared helpers (plain functions importable by test files)
# ---------------------------------------------------------------------------


def make_settings(**overrides):
    """Create a Settings object from pure defaults (no config.toml, no env).

    Usage::

        s = make_settings(shell=ShellConfig(command=["/bin/zsh"]))
    """
    from devc.config import (
        ContainerDefaults,
        LoggingConfig,
        RuntimeConfig,
        Settings,
        ShellConfig,
        SshAgentConfig,
    )

    defaults = {
        "logging": LoggingConfig(),
        "container": ContainerDefaults(),
        "shell": ShellConfig(),
        "ssh_agent": SshAgentConfig(),
        "runtime": RuntimeConfig(),
    }
    defaults.update(overrides)
    return Settings.model_construct(**defaults)


def write_devcontainer(root: Path, data: Mapping[str, Any], *, nested: bool = True) -> Path:
    """Write devcontainer.json under *root* and return its path."""
    if nested:
        path = root / ".devcontainer" / "devcontainer.json"
        path.parent.mkdir(parents=True, exist_ok=True)
    else:
        path = root / ".devcontainer.json"
    path.write_text(json.dumps(dict(data)))
    return path


# ---------------------------------------------------------------------------
# Fake runtime
# ---------------------------------------------------------------------------


class FakeExecStream:
    """In-memory ExecStream.  ``frames`` may be a list or a callable returning an iterable."""

    def __init__(self, frames: Iterable[tuple[int, bytes]] | Callable[[], Iterable] = ()) -> None:
        self._frames = frames
        self.written = bytearray()
        self.write_closed = threading.Event()
        self.closed = False

    def frames(self):
        source = self._frames() if callable(self._frames) else self._frames
        yield from source

    def write(self, data: bytes) -> None:
        self.written += data

    def close_write(self) -> None:
        self.write_closed.set()

    def close(self) -> None:
        self.closed = True


class FakeRuntimeClient:
    """ContainerRuntimeClient double that records every call in order.

    ``exec_handler(config)`` decides what an exec prints and returns:
    it returns ``(frames, exit_code)``.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.containers: dict[str, ContainerInfo] = {}
        self.images: set[str] = set()
        self.created: list[ContainerSpec] = []
        self.execs: dict[str, ExecConfig] = {}
        self.streams: dict[str, FakeExecStream] = {}
        self.exit_codes: dict[str, int | None] = {}
        self.exec_handler: Callable[[ExecConfig], tuple[Any, int | None]] = lambda config: ([], 0)
        self.stream_factory: Callable[[Any], FakeExecStream] = FakeExecStream

        self.create_error: Exception | None = None
        self.on_create: Callable[[ContainerSpec], None] | None = None
        self.pull_error: Exception | None = None
        self.exec_create_error: Exception | None = None
        self.attach_error: Exception | None = None
        self.start_error: Exception | None = None
        self._exec_counter = 0

    # --- Helpers ---

    def add_container(
        self,
        name: str,
        *,
        running: bool = True,
        env: dict[str, str] | None = None,
        labels: dict[str, str] | None = None,
        image: str = "img:latest",
    ) -> ContainerInfo:
        info = ContainerInfo(
            id=f"id-{name}",
            name=name,
            state="running" if running else "exited",
            image=image,
            created="2024-05-01T10:00:00Z",
            labels=dict(labels or {}),
            env=dict(env or {}),
        )
        self.containers[name] = info
        return info

    @property
    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def _by_id(self, container_id: str) -> ContainerInfo | None:
        for info in self.containers.values():
            if info.id == container_id:
                return info
        return None

    # --- Containers ---

    async def exists(self, name):
        self.calls.append(("exists", name))
        return name in self.containers

    async def is_running(self, name):
        self.calls.append(("is_running", name))
        info = self.containers.get(name)
        return info is not None and info.running

    async def get_container(self, name):
        self.calls.append(("get_container", name))
        return self.containers.get(name)

    async def list_containers(self, labels, **kwargs):
        include_stopped = kwargs.get("all", True)
        self.calls.append(("list_containers", dict(labels), include_stopped))
        return [
            info
            for info in self.containers.values()
            if all(info.labels.get(k) == v for k, v in labels.items())
            and (info.running or include_stopped)
        ]

    async def start(self, name):
        self.calls.append(("start", name))
        if name not in self.containers:
            raise ContainerNotFound(name)
        self.containers[name].state = "running"

    async def create(self, spec):
        self.calls.append(("create", spec.name))
        if self.on_create is not None:
            self.on_create(spec)
        if self.create_error is not None:
            raise self.create_error
        self.created.append(spec)
        info = self.add_container(
            spec.name, running=False, env=spec.env, labels=spec.labels, image=spec.image
        )
        info.state = "created"
        return info.id

    async def stop(self, name, *, timeout=10):
        self.calls.append(("stop", name, timeout))
        if name not in self.containers:
            raise ContainerNotFound(name)
        self.containers[name].state = "exited"

    async def remove(self, name):
        self.calls.append(("remove", name))
        if self.containers.pop(name, None) is None:
            raise ContainerNotFound(name)

    # --- Images ---

    async def image_exists(self, ref):
        self.calls.append(("image_exists", ref))
        return ref in self.images

    async def pull_image(self, ref):
        self.calls.append(("pull_image", ref))
        if self.pull_error is not None:
            raise self.pull_error
        self.images.add(ref)

    # --- Exec ---

    async def exec_create(self, container_id, config):
        self.calls.append(("exec_create", container_id))
        if self.exec_create_error is not None:
            raise ExecCreateFailed(str(self.exec_create_error))
        self._exec_counter += 1
        exec_id = f"exec-{self._exec_counter:04d}-0000000000"
        self.execs[exec_id] = config
        return exec_id

    async def exec_attach(self, exec_id, *, tty):
        self.calls.append(("exec_attach", exec_id, tty))
        if self.attach_error is not None:
            raise AttachFailed(str(self.attach_error))
        frames, code = self.exec_handler(self.execs[exec_id])
        self.exit_codes[exec_id] = code
        stream = self.stream_factory(frames)
        self.streams[exec_id] = stream
        return stream

    async def exec_start(self, exec_id, *, tty):
        self.calls.append(("exec_start", exec_id, tty))
        if self.start_error is not None:
            raise self.start_error

    async def exec_resize(self, exec_id, *, height, width):
        self.calls.append(("exec_resize", exec_id, height, width))

    async def exec_exit_code(self, exec_id):
        self.calls.append(("exec_exit_code", exec_id))
        return self.exit_codes.get(exec_id)

    async def close(self):
        self.calls.append(("close",))


# ---------------------------------------------------------------------------
# Autouse fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch):
    """Each test starts from default Settings; the user's config.toml is never read."""
    monkeypatch.setattr("devc.config._settings", make_settings())


@pytest.fixture(autouse=True)
def _no_ssh_agent(monkeypatch):
    monkeypatch.delenv("SSH_AUTH_SOCK", raising=False)


# ---------------------------------------------------------------------------
# Reusable fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_client():
    return FakeRuntimeClient()
