"""Container runtime port with plugin-extensible providers.

The orchestration and session code never talks to Docker directly; it goes
through :class:`ContainerRuntimeClient`.  Docker is built in (as a plugin
under ``devc.runtime.plugins.docker_runtime``).  Additional runtimes can be
provided by plugins via ``devc_container_runtime``.

All client methods are async so they don't block the event loop.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any, Protocol, runtime_checkable

from devc.config import get_settings
from devc.errors import RuntimeUnavailable
from devc.logger import logger
from devc.types import ContainerInfo, ContainerSpec, ExecConfig

STDOUT = 1
STDERR = 2


@runtime_checkable
class ExecStream(Protocol):
    """Bidirectional byte stream to an attached exec.

    ``frames()`` blocks; callers run it off the event loop.
    """

    def frames(self) -> Iterator[tuple[int, bytes]]: ...
    def write(self, data: bytes) -> None: ...
    def close_write(self) -> None: ...
    def close(self) -> None: ...


@runtime_checkable
class ContainerRuntimeClient(Protocol):
    """Runtime client contract implemented by built-ins and plugins."""

    async def exists(self, name: str) -> bool: ...
    async def is_running(self, name: str) -> bool: ...
    async def get_container(self, name: str) -> ContainerInfo | None: ...
    async def list_containers(
        self, labels: Mapping[str, str], *, all: bool = True
    ) -> list[ContainerInfo]: ...
    async def start(self, name: str) -> None: ...
    async def create(self, spec: ContainerSpec) -> str: ...
    async def stop(self, name: str, *, timeout: int = 10) -> None: ...
    async def remove(self, name: str) -> None: ...
    async def image_exists(self, ref: str) -> bool: ...
    async def pull_image(self, ref: str) -> None: ...
    async def exec_create(self, container_id: str, config: ExecConfig) -> str: ...
    async def exec_attach(self, exec_id: str, *, tty: bool) -> ExecStream: ...
    async def exec_start(self, exec_id: str, *, tty: bool) -> None: ...
    async def exec_resize(self, exec_id: str, *, height: int, width: int) -> None: ...
    async def exec_exit_code(self, exec_id: str) -> int | None: ...
    async def close(self) -> None: ...


@runtime_checkable
class RuntimeProvider(Protocol):
    """What a runtime plugin hands back from ``devc_container_runtime``."""

    name: str

    def is_available(self) -> bool: ...
    def connect(self) -> ContainerRuntimeClient: ...


def _is_valid_provider(candidate: Any) -> bool:
    return all(
        [
            hasattr(candidate, "name"),
            callable(getattr(candidate, "is_available", None)),
            callable(getattr(candidate, "connect", None)),
        ]
    )


def _iter_providers() -> list[RuntimeProvider]:
    from devc.plugin import get_plugin_manager

    provided = get_plugin_manager().hook.devc_container_runtime()
    providers: list[RuntimeProvider] = []
    for provider in provided:
        if provider is None:
            continue
        if not _is_valid_provider(provider):
            logger.warning(
                "Ignoring invalid plugin runtime object",
                runtime_type=type(provider).__name__,
            )
            continue
        providers.append(provider)
    return providers


def detect_provider() -> RuntimeProvider:
    """Pick the runtime provider to use.

    Priority:
    1) settings.runtime.name override (if a provider by that name exists)
    2) docker, when available
    3) first other available provider
    """
    candidates: dict[str, RuntimeProvider] = {}
    for provider in _iter_providers():
        name = str(provider.name).lower().strip()
        if not name:
            continue
        if name in candidates:
            logger.warning("Duplicate runtime provider ignored", runtime=name)
            continue
        candidates[name] = provider

    if not candidates:
        raise RuntimeUnavailable("no container runtime provider is installed")

    override = (get_settings().runtime.name or "").lower()
    if override:
        selected = candidates.get(override)
        if selected is not None:
            return selected
        logger.warning("Unknown runtime override; falling back to auto-detection", runtime=override)

    docker = candidates.get("docker")
    if docker is not None and docker.is_available():
        return docker
    for name, provider in candidates.items():
        if name != "docker" and provider.is_available():
            return provider

    raise RuntimeUnavailable(
        f"no container runtime is available (tried: {', '.join(sorted(candidates))})"
    )


def get_runtime_client() -> ContainerRuntimeClient:
    """Connect to the detected runtime.  Raises RuntimeUnavailable."""
    provider = detect_provider()
    logger.debug("Container runtime detected", name=provider.name)
    return provider.connect()
