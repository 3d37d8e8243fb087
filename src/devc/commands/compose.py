"""Docker Compose passthrough for configurations that set ``dockerComposeFile``."""

from __future__ import annotations

import asyncio
import os
import subprocess

from devc.commands._context import ProjectContext
from devc.errors import ConfigurationError, ContainerCreateFailed
from devc.identity import compose_project_name
from devc.logger import logger


def compose_base_args(ctx: ProjectContext) -> list[str]:
    """``compose -p <project> -f <file>...`` with files relative to devcontainer.json."""
    config_dir = ctx.config_path.parent.absolute()
    args = ["compose", "-p", compose_project_name(ctx.workspace_dir)]
    for file in ctx.devcontainer.compose_files():
        path = file if os.path.isabs(file) else str(config_dir / file)
        args += ["-f", path]
    return args


def _run_compose_sync(args: list[str], cwd: str, capture: bool) -> subprocess.CompletedProcess[str]:
    return subprocess.run(["docker", *args], cwd=cwd, capture_output=capture, text=True)


async def _run_compose(ctx: ProjectContext, *args: str, capture: bool = False):
    full = [*compose_base_args(ctx), *args]
    logger.debug("Running docker compose", args=full)
    try:
        return await asyncio.to_thread(_run_compose_sync, full, ctx.workspace_dir, capture)
    except FileNotFoundError as exc:
        raise ContainerCreateFailed(ctx.container_name, "docker CLI not found on PATH") from exc


async def compose_up(ctx: ProjectContext) -> bool:
    """Bring up the compose services.  Returns False when already running."""
    dc = ctx.devcontainer
    if not dc.service:
        raise ConfigurationError("service name is required when using docker compose")

    check = await _run_compose(ctx, "ps", "-q", dc.service, capture=True)
    if check.returncode == 0 and check.stdout.strip():
        print(f"Service '{dc.service}' is already running")
        return False

    services = dc.run_services or [dc.service]
    print(f"Starting docker compose services: {', '.join(services)}")
    result = await _run_compose(ctx, "up", "-d", *services)
    if result.returncode != 0:
        raise ContainerCreateFailed(ctx.container_name, "docker compose up failed")
    print("Docker compose services started successfully")
    return True


async def compose_down(ctx: ProjectContext) -> None:
    result = await _run_compose(ctx, "down")
    if result.returncode != 0:
        logger.warning("docker compose down failed", code=result.returncode)
