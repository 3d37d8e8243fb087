"""Create-vs-start gate.

Decides, for one container identity, whether ``up`` is a first boot
(create, start, then the full lifecycle), a restart of a stopped container
(start only, no hooks), or a refusal because the container is already up.
"""

from __future__ import annotations

from devc.errors import (
    AlreadyRunningError,
    ContainerCreateFailed,
    ContainerExistsError,
    DevcError,
)
from devc.logger import logger
from devc.runtime import ContainerRuntimeClient
from devc.types import ContainerIdentity, ContainerSpec, EnsureOutcome


async def ensure_image(client: ContainerRuntimeClient, ref: str, *, always_pull: bool) -> None:
    """Pull *ref* when it is missing locally or when *always_pull* is set.

    Raises ImagePullFailed.
    """
    if not always_pull and await client.image_exists(ref):
        logger.debug("Image present locally", image=ref)
        return
    print(f"Pulling image {ref}...")
    await client.pull_image(ref)
    logger.info("Image pulled", image=ref)


async def start_existing(client: ContainerRuntimeClient, name: str) -> EnsureOutcome:
    """Start a container known to exist; AlreadyRunningError if it is up."""
    if await client.is_running(name):
        raise AlreadyRunningError(name)
    logger.info("Starting existing container", container=name)
    await client.start(name)
    return EnsureOutcome.STARTED


async def ensure_container(
    client: ContainerRuntimeClient,
    identity: ContainerIdentity,
    spec: ContainerSpec,
    *,
    always_pull: bool = False,
) -> EnsureOutcome:
    """Make sure the container for *identity* exists and is running.

    Returns CREATED when a fresh container was made (the caller runs the
    lifecycle hooks) or STARTED when a stopped one was started in place
    (hooks are not re-run).  Raises AlreadyRunningError if it was already
    running, without touching it.
    """
    name = identity.name
    if await client.exists(name):
        return await start_existing(client, name)

    await ensure_image(client, spec.image, always_pull=always_pull)

    try:
        container_id = await client.create(spec)
    except ContainerExistsError:
        # A concurrent `up` created it between our check and our create.
        logger.info("Container appeared concurrently, re-checking", container=name)
        return await start_existing(client, name)

    logger.info("Container created", container=name, id=container_id[:12])
    try:
        await client.start(name)
    except DevcError:
        raise
    except Exception as exc:
        raise ContainerCreateFailed(name, f"failed to start container: {exc}") from exc
    return EnsureOutcome.CREATED
