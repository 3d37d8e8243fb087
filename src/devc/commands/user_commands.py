"""``devc run-user-commands``: replay the lifecycle hooks on a running container."""

from __future__ import annotations

import os

from devc.commands._context import CliOptions, ProjectContext, runtime_client
from devc.commands.up import drain_background, run_lifecycle
from devc.errors import ContainerNotRunning
from devc.labels import WORKSPACE_LABEL, managed_filter
from devc.runtime import ContainerRuntimeClient


async def find_running_container(
    client: ContainerRuntimeClient, workspace_dir: str
) -> str | None:
    """Name of the running managed container for *workspace_dir*.

    Prefers a container whose workspace label matches; otherwise the first
    running managed container.
    """
    running = await client.list_containers(managed_filter(), all=False)
    if not running:
        return None
    for info in running:
        if info.labels.get(WORKSPACE_LABEL) == workspace_dir:
            return info.name
    return running[0].name


async def run_user_commands(options: CliOptions) -> int:
    ctx = ProjectContext.load(options)

    async with runtime_client() as client:
        if await client.is_running(ctx.container_name):
            name = ctx.container_name
        else:
            name = await find_running_container(client, os.path.abspath(ctx.workspace_dir))
            if name is None:
                raise ContainerNotRunning(ctx.container_name)
        background = await run_lifecycle(client, ctx, name)
        await drain_background(background)
    return 0
