"""Per-invocation context shared by the command handlers.

CLI flags are captured once into an immutable :class:`CliOptions` and
passed down explicitly; nothing reads ambient global flag state.
"""

from __future__ import annotations

import contextlib
import dataclasses
import os
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path

from devc.config import get_settings
from devc.devcontainer import DevContainer, determine_workspace_folder, find_config, parse
from devc.errors import ConfigurationError
from devc.identity import compose_container_name, resolve_identity
from devc.runtime import ContainerRuntimeClient, get_runtime_client
from devc.types import ContainerIdentity


@dataclass(frozen=True)
class CliOptions:
    workspace_folder: str | None = None
    config: str | None = None
    name: str | None = None
    image_name: str | None = None
    session: str | None = None
    pull: bool = False
    push: bool = False
    force_build: bool = False
    verbose: bool = False


@dataclass(frozen=True)
class ProjectContext:
    options: CliOptions
    config_path: Path
    devcontainer: DevContainer
    workspace_dir: str
    identity: ContainerIdentity

    @property
    def container_name(self) -> str:
        return self.identity.name

    @property
    def workspace_target(self) -> str:
        """Workspace path inside the container."""
        return self.devcontainer.get_workspace_folder(get_settings().container.workspace_mount)

    @property
    def container_user(self) -> str:
        return self.devcontainer.get_container_user(get_settings().container.default_user)

    @classmethod
    def load(cls, options: CliOptions, *, cwd: Path | None = None) -> ProjectContext:
        """Find and parse devcontainer.json, then resolve the container identity."""
        config_path = find_config(options.config, cwd)
        devcontainer = parse(config_path)
        workspace_dir = determine_workspace_folder(config_path, options.workspace_folder)
        if not os.path.isdir(workspace_dir):
            raise ConfigurationError(f"workspace folder does not exist: {workspace_dir}")

        identity = resolve_identity(
            workspace_dir,
            explicit_name=options.name,
            configured_name=devcontainer.name,
            session_label=options.session or get_settings().container.default_session,
        )
        if devcontainer.has_compose() and devcontainer.service and not options.name:
            identity = dataclasses.replace(
                identity, name=compose_container_name(workspace_dir, devcontainer.service)
            )

        return cls(
            options=options,
            config_path=config_path,
            devcontainer=devcontainer,
            workspace_dir=workspace_dir,
            identity=identity,
        )


@contextlib.asynccontextmanager
async def runtime_client() -> AsyncIterator[ContainerRuntimeClient]:
    """Connect to the container runtime for the duration of one command."""
    client = get_runtime_client()
    try:
        yield client
    finally:
        await client.close()
