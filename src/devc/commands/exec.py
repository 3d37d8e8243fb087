"""``devc shell`` and ``devc exec``: sessions against the running container."""

from __future__ import annotations

from collections.abc import Sequence

from devc.commands._context import CliOptions, ProjectContext, runtime_client
from devc.config import get_settings
from devc.errors import ContainerNotFound, ContainerNotRunning
from devc.runtime import ContainerRuntimeClient
from devc.session import InteractiveSession
from devc.types import ExecConfig


async def _session_env(client: ContainerRuntimeClient, ctx: ProjectContext) -> dict[str, str]:
    info = await client.get_container(ctx.container_name)
    if info is None:
        raise ContainerNotFound(ctx.container_name)
    if not info.running:
        raise ContainerNotRunning(ctx.container_name)
    return ctx.devcontainer.get_container_env(base_env=info.env)


async def shell(options: CliOptions) -> int:
    ctx = ProjectContext.load(options)
    settings = get_settings()

    async with runtime_client() as client:
        env = {"TERM": settings.container.term, **await _session_env(client, ctx)}
        config = ExecConfig(
            cmd=list(settings.shell.command),
            user=ctx.container_user,
            workdir=ctx.workspace_target,
            env=env,
            tty=True,
            stdin=True,
            detach_keys=settings.container.detach_keys,
        )
        return await InteractiveSession(client, ctx.container_name, config).run()


async def exec_command(options: CliOptions, argv: Sequence[str]) -> int:
    """Run *argv* without a TTY; the remote exit status is returned."""
    ctx = ProjectContext.load(options)

    async with runtime_client() as client:
        env = await _session_env(client, ctx)
        config = ExecConfig(
            cmd=list(argv),
            user=ctx.container_user,
            workdir=ctx.workspace_target,
            env=env,
            tty=False,
            stdin=True,
        )
        return await InteractiveSession(client, ctx.container_name, config).run()
