"""Docker Engine runtime provider for devc.

Talks to the daemon through the Docker SDK's low-level API.  The SDK is
synchronous, so every call is pushed onto a worker thread with
``asyncio.to_thread``.

Exec attach/start: the Engine API hijacks the connection on
``POST /exec/{id}/start``, so attaching and starting are the same request.
``exec_attach`` issues that request and hands back the hijacked stream;
``exec_start`` then waits for the process to exit by polling
``exec_inspect``.  Callers still see the attach-before-start ordering.
"""

from __future__ import annotations

import asyncio
import socket
from collections.abc import Iterator, Mapping
from typing import Any

import docker
from docker.errors import APIError, DockerException, ImageNotFound, NotFound
from docker.utils import parse_repository_tag
from docker.utils.socket import frames_iter

from devc.errors import (
    AttachFailed,
    ContainerCreateFailed,
    ContainerExistsError,
    ContainerNotFound,
    ExecCreateFailed,
    ImagePullFailed,
    RuntimeRequestFailed,
    RuntimeUnavailable,
)
from devc.logger import logger
from devc.types import ContainerInfo, ContainerSpec, ExecConfig

_EXEC_POLL_INTERVAL = 0.1


class DockerRuntime:
    """Runtime provider for the local Docker daemon."""

    name = "docker"

    def is_available(self) -> bool:
        try:
            client = docker.from_env()
        except DockerException:
            return False
        try:
            return bool(client.ping())
        except DockerException:
            return False
        finally:
            client.close()

    def connect(self) -> DockerRuntimeClient:
        try:
            client = docker.from_env()
        except DockerException as exc:
            raise RuntimeUnavailable(f"failed to create Docker client: {exc}") from exc
        return DockerRuntimeClient(client)


class DockerExecStream:
    """Hijacked exec connection.

    Reads are demultiplexed with the SDK's frame parser: with a TTY the
    stream is raw and every chunk is reported as stdout.
    """

    def __init__(self, sock: Any, *, tty: bool) -> None:
        self._sock = sock
        self._tty = tty
        # SocketIO wraps the real socket; writes and shutdown need the latter.
        self._raw = getattr(sock, "_sock", sock)

    def frames(self) -> Iterator[tuple[int, bytes]]:
        return frames_iter(self._sock, self._tty)

    def write(self, data: bytes) -> None:
        self._raw.sendall(data)

    def close_write(self) -> None:
        try:
            self._raw.shutdown(socket.SHUT_WR)
        except OSError:
            logger.debug("Exec stream already closed for writing")

    def close(self) -> None:
        self._sock.close()


def _request_failed(action: str, exc: APIError) -> RuntimeRequestFailed:
    return RuntimeRequestFailed(action, exc.explanation or str(exc))


def _container_info(container: Any) -> ContainerInfo:
    attrs = container.attrs or {}
    config = attrs.get("Config") or {}
    env: dict[str, str] = {}
    for entry in config.get("Env") or []:
        key, _, value = entry.partition("=")
        env[key] = value
    state = attrs.get("State") or {}
    return ContainerInfo(
        id=container.id,
        name=container.name,
        state=container.status,
        status=state.get("Status", container.status) if isinstance(state, dict) else str(state),
        image=config.get("Image", ""),
        created=attrs.get("Created", ""),
        labels=dict(config.get("Labels") or {}),
        env=env,
    )


class DockerRuntimeClient:
    """ContainerRuntimeClient backed by ``docker.DockerClient``."""

    def __init__(self, client: docker.DockerClient) -> None:
        self._client = client

    async def _call(self, fn: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except (NotFound, APIError):
            raise
        except DockerException as exc:
            raise RuntimeUnavailable(str(exc)) from exc

    # --- Containers ---

    async def get_container(self, name: str) -> ContainerInfo | None:
        try:
            container = await self._call(self._client.containers.get, name)
        except NotFound:
            return None
        except APIError as exc:
            raise _request_failed(f"inspecting container '{name}'", exc) from exc
        return _container_info(container)

    async def exists(self, name: str) -> bool:
        return await self.get_container(name) is not None

    async def is_running(self, name: str) -> bool:
        info = await self.get_container(name)
        return info is not None and info.running

    async def list_containers(
        self, labels: Mapping[str, str], *, all: bool = True
    ) -> list[ContainerInfo]:
        label_filter = [f"{k}={v}" for k, v in labels.items()]
        try:
            containers = await self._call(
                self._client.containers.list, all=all, filters={"label": label_filter}
            )
        except APIError as exc:
            raise _request_failed("listing containers", exc) from exc
        return [_container_info(c) for c in containers]

    async def start(self, name: str) -> None:
        try:
            await self._call(self._client.api.start, name)
        except NotFound as exc:
            raise ContainerNotFound(name) from exc
        except APIError as exc:
            reason = exc.explanation or str(exc)
            raise ContainerCreateFailed(name, f"failed to start container: {reason}") from exc

    async def create(self, spec: ContainerSpec) -> str:
        volumes = [f"{spec.workspace_source}:{spec.workspace_target}", *spec.binds]
        logger.debug("Creating container", name=spec.name, image=spec.image, volumes=volumes)
        try:
            container = await self._call(
                self._client.containers.create,
                spec.image,
                command=list(spec.command),
                name=spec.name,
                environment=dict(spec.env),
                labels=dict(spec.labels),
                volumes=volumes,
                working_dir=spec.workspace_target,
            )
        except APIError as exc:
            if exc.status_code == 409:
                raise ContainerExistsError(spec.name) from exc
            raise ContainerCreateFailed(spec.name, exc.explanation or str(exc)) from exc
        return container.id

    async def stop(self, name: str, *, timeout: int = 10) -> None:
        try:
            await self._call(self._client.api.stop, name, timeout=timeout)
        except NotFound as exc:
            raise ContainerNotFound(name) from exc
        except APIError as exc:
            raise _request_failed(f"stopping container '{name}'", exc) from exc

    async def remove(self, name: str) -> None:
        try:
            await self._call(self._client.api.remove_container, name)
        except NotFound as exc:
            raise ContainerNotFound(name) from exc
        except APIError as exc:
            raise _request_failed(f"removing container '{name}'", exc) from exc

    # --- Images ---

    async def image_exists(self, ref: str) -> bool:
        try:
            await self._call(self._client.images.get, ref)
        except ImageNotFound:
            return False
        except APIError as exc:
            raise _request_failed(f"inspecting image '{ref}'", exc) from exc
        return True

    async def pull_image(self, ref: str) -> None:
        repository, tag = parse_repository_tag(ref)
        try:
            await self._call(self._client.images.pull, repository, tag=tag or "latest")
        except APIError as exc:
            raise ImagePullFailed(ref, exc.explanation or str(exc)) from exc

    # --- Exec ---

    async def exec_create(self, container_id: str, config: ExecConfig) -> str:
        try:
            result = await self._call(
                self._client.api.exec_create,
                container_id,
                list(config.cmd),
                stdout=True,
                stderr=True,
                stdin=config.stdin,
                tty=config.tty,
                user=config.user,
                environment=dict(config.env),
                workdir=config.workdir,
                detach_keys=config.detach_keys,
            )
        except (NotFound, APIError) as exc:
            raise ExecCreateFailed(str(exc)) from exc
        return result["Id"]

    async def exec_attach(self, exec_id: str, *, tty: bool) -> DockerExecStream:
        try:
            sock = await self._call(self._client.api.exec_start, exec_id, tty=tty, socket=True)
        except (NotFound, APIError) as exc:
            raise AttachFailed(str(exc)) from exc
        return DockerExecStream(sock, tty=tty)

    async def exec_start(self, exec_id: str, *, tty: bool) -> None:
        # The process was launched by exec_attach; block until it exits.
        while True:
            details = await self._inspect_exec(exec_id)
            if not details.get("Running"):
                return
            await asyncio.sleep(_EXEC_POLL_INTERVAL)

    async def exec_resize(self, exec_id: str, *, height: int, width: int) -> None:
        try:
            await self._call(self._client.api.exec_resize, exec_id, height=height, width=width)
        except (NotFound, APIError) as exc:
            # The exec may already have exited.
            logger.debug("Exec resize failed", exec_id=exec_id[:12], error=str(exc))

    async def exec_exit_code(self, exec_id: str) -> int | None:
        details = await self._inspect_exec(exec_id)
        return details.get("ExitCode")

    async def _inspect_exec(self, exec_id: str) -> dict[str, Any]:
        try:
            return await self._call(self._client.api.exec_inspect, exec_id)
        except APIError as exc:
            raise _request_failed(f"inspecting exec {exec_id[:12]}", exc) from exc

    async def close(self) -> None:
        await asyncio.to_thread(self._client.close)
