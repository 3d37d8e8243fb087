"""``devc stop``, ``devc down`` and ``devc list``."""

from __future__ import annotations

from collections.abc import Sequence

from devc.commands._context import CliOptions, ProjectContext, runtime_client
from devc.commands.compose import compose_down
from devc.config import get_settings
from devc.labels import SESSION_LABEL, WORKSPACE_LABEL, managed_filter
from devc.types import ContainerInfo

_COLUMNS = ("NAME", "SESSION", "STATUS", "IMAGE", "CREATED", "WORKSPACE")
_UNKNOWN = "<unknown>"


async def stop(options: CliOptions) -> int:
    ctx = ProjectContext.load(options)
    name = ctx.container_name

    async with runtime_client() as client:
        if not await client.is_running(name):
            print(f"Container '{name}' is not running")
            return 0
        print(f"Stopping container '{name}'...")
        await client.stop(name, timeout=get_settings().container.stop_timeout)
        print(f"Container '{name}' stopped")
    return 0


async def down(options: CliOptions) -> int:
    ctx = ProjectContext.load(options)
    name = ctx.container_name

    if ctx.devcontainer.has_compose():
        await compose_down(ctx)
        return 0

    async with runtime_client() as client:
        info = await client.get_container(name)
        if info is None:
            print(f"Container '{name}' does not exist")
            return 0
        if info.running:
            print(f"Stopping container '{name}'...")
            await client.stop(name, timeout=get_settings().container.stop_timeout)
        await client.remove(name)
        print(f"Container '{name}' removed")
    return 0


def format_table(containers: Sequence[ContainerInfo]) -> str:
    """Left-aligned columns separated by two spaces, with a dashed rule."""
    rows = [list(_COLUMNS), ["-" * len(c) for c in _COLUMNS]]
    for c in containers:
        rows.append(
            [
                c.name or "<none>",
                c.labels.get(SESSION_LABEL, _UNKNOWN),
                c.status or c.state,
                c.image,
                c.created[:10],
                c.labels.get(WORKSPACE_LABEL, _UNKNOWN),
            ]
        )
    widths = [max(len(row[i]) for row in rows) for i in range(len(_COLUMNS))]
    lines = ["  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip() for row in rows]
    return "\n".join(lines)


async def list_containers(options: CliOptions) -> int:
    async with runtime_client() as client:
        containers = await client.list_containers(managed_filter(), all=True)
    if not containers:
        print("No devc containers found")
        return 0
    print(format_table(containers))
    return 0
