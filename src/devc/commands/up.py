"""``devc up``: create or start the dev container and run its lifecycle hooks."""

from __future__ import annotations

import os
import sys

from devc import sshagent
from devc.commands._context import CliOptions, ProjectContext, runtime_client
from devc.commands.build import build_image, image_tag
from devc.commands.compose import compose_up
from devc.config import get_settings
from devc.errors import ConfigurationError, DevcError
from devc.gate import ensure_container, start_existing
from devc.labels import managed_labels
from devc.lifecycle import BackgroundPhases, ContainerPhaseRunner, LifecycleOrchestrator
from devc.logger import logger
from devc.runtime import ContainerRuntimeClient
from devc.session import InteractiveSession
from devc.types import ContainerSpec, EnsureOutcome, ExecConfig


async def resolve_image(client: ContainerRuntimeClient, ctx: ProjectContext) -> tuple[str, bool]:
    """Return ``(image, built_locally)``, building from ``build`` when needed."""
    dc = ctx.devcontainer
    if dc.has_build() and (ctx.options.force_build or not dc.has_image()):
        tag = image_tag(ctx)
        if ctx.options.force_build or not await client.image_exists(tag):
            print("No image specified, building from Dockerfile...")
            await build_image(ctx, push=ctx.options.push)
        return tag, True
    if dc.has_image():
        assert dc.image is not None
        return dc.image, False
    raise ConfigurationError(
        "devcontainer must specify an image, build configuration, or docker compose configuration"
    )


def build_container_spec(ctx: ProjectContext, image: str) -> ContainerSpec:
    dc = ctx.devcontainer
    env = dc.get_container_env()
    binds: list[str] = []
    if get_settings().ssh_agent.forward:
        socket_path = sshagent.host_socket()
        if socket_path is not None:
            binds.append(sshagent.agent_bind(socket_path))
            env.update(sshagent.container_env())
            print(f"SSH agent forwarding enabled: {socket_path} -> {sshagent.CONTAINER_SOCKET}")
    return ContainerSpec(
        name=ctx.container_name,
        image=image,
        workspace_source=ctx.workspace_dir,
        workspace_target=ctx.workspace_target,
        env=env,
        labels=managed_labels(ctx.workspace_dir, ctx.identity.session_label),
        binds=binds,
    )


async def sync_remote_user_uid(client: ContainerRuntimeClient, ctx: ProjectContext) -> None:
    """Align the container user's UID/GID with the host user (Linux only).

    Best effort: every failure is reported as a warning.
    """
    dc = ctx.devcontainer
    if not sys.platform.startswith("linux") or not dc.update_remote_user_uid:
        return
    if dc.has_compose():
        return
    user = dc.get_target_user()
    if not user or user == "root":
        return

    uid, gid = os.getuid(), os.getgid()
    print(f"Updating container user '{user}' UID/GID to match host ({uid}:{gid})")
    scripts = [
        f"usermod -u {uid} {user} 2>/dev/null || true",
        f"groupmod -g {gid} {user} 2>/dev/null || true",
        f"chown -R {uid}:{gid} /home/{user} 2>/dev/null || true",
    ]
    for script in scripts:
        config = ExecConfig(cmd=["/bin/sh", "-c", script], user="root", workdir=ctx.workspace_target)
        session = InteractiveSession(client, ctx.container_name, config, handle_signals=False)
        try:
            code = await session.run()
        except DevcError as exc:
            logger.warning("Failed to update remote user UID/GID", error=str(exc))
            return
        if code != 0:
            logger.warning("UID/GID update command failed", command=script, code=code)


async def run_lifecycle(
    client: ContainerRuntimeClient, ctx: ProjectContext, container_name: str
) -> BackgroundPhases:
    """Full hook pass against *container_name*; returns once the barrier is done."""
    dc = ctx.devcontainer
    info = await client.get_container(container_name)
    env = dc.get_container_env(base_env=info.env if info is not None else None)
    runner = ContainerPhaseRunner(
        client,
        container_name,
        host_workspace=ctx.workspace_dir,
        user=ctx.container_user,
        workdir=ctx.workspace_target,
        env=env,
    )
    orchestrator = LifecycleOrchestrator(runner, dc.lifecycle_commands(), dc.wait_barrier())
    background = await orchestrator.bring_up()
    print(f"Container is ready for use (waitFor: {orchestrator.barrier.config_key} completed)")
    return background


async def drain_background(background: BackgroundPhases) -> None:
    failures = await background.wait()
    for failure in failures:
        print(f"Background {failure.phase.config_key} failed: {failure.reason}", file=sys.stderr)


async def up(options: CliOptions) -> int:
    ctx = ProjectContext.load(options)
    dc = ctx.devcontainer
    name = ctx.container_name

    async with runtime_client() as client:
        if dc.has_compose():
            await compose_up(ctx)
        else:
            # Refuse or restart before any image build.
            if await client.exists(name):
                outcome = await start_existing(client, name)
            else:
                image, built = await resolve_image(client, ctx)
                spec = build_container_spec(ctx, image)
                outcome = await ensure_container(
                    client, ctx.identity, spec, always_pull=options.pull and not built
                )
                if outcome is EnsureOutcome.CREATED:
                    print(f"Container '{name}' created and started with image '{image}'")
            if outcome is EnsureOutcome.STARTED:
                print(f"Container '{name}' exists but was stopped; started it")
                return 0

        await sync_remote_user_uid(client, ctx)
        background = await run_lifecycle(client, ctx, name)
        await drain_background(background)
    return 0
