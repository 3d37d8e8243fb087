"""Lifecycle hook orchestration.

A bring-up runs the six hook phases in their fixed order.  Phases up to and
including the wait barrier are awaited one by one; the first failure aborts
the bring-up.  Everything after the barrier runs in a single background task
that logs failures and keeps going, and always finishes with
``postAttachCommand``::

    INITIALIZE  ON_CREATE  UPDATE_CONTENT | POST_CREATE  POST_START  POST_ATTACH
    <------- awaited (barrier) ---------> | <------- background task -------->

There is no memory of earlier runs: every bring-up is a full hook pass.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from devc.errors import DevcError, PhaseCommandFailed
from devc.logger import logger
from devc.runtime import ContainerRuntimeClient
from devc.session import InteractiveSession
from devc.types import (
    DEFAULT_WAIT_BARRIER,
    ExecConfig,
    LifecycleCommand,
    LifecyclePhase,
)
from devc.utils import create_background_task, run_host_command

# Runs one phase's argv; raises on failure.
PhaseRunner: TypeAlias = "Callable[[LifecyclePhase, tuple[str, ...]], Awaitable[None]]"


def should_run_synchronously(phase: LifecyclePhase, barrier: LifecyclePhase) -> bool:
    """True iff *phase* must finish before the container counts as ready."""
    if phase is LifecyclePhase.POST_ATTACH:
        return False
    return phase <= barrier


@dataclass
class BackgroundPhases:
    """Handle on the post-barrier task.

    ``up`` drains it before the process exits; nothing else needs to.
    """

    task: asyncio.Task[Any] | None = None
    failures: list[PhaseCommandFailed] = field(default_factory=list)

    @property
    def done(self) -> bool:
        return self.task is None or self.task.done()

    async def wait(self) -> list[PhaseCommandFailed]:
        if self.task is not None:
            await self.task
        return self.failures


class LifecycleOrchestrator:
    def __init__(
        self,
        runner: PhaseRunner,
        commands: Mapping[LifecyclePhase, LifecycleCommand],
        barrier: LifecyclePhase = DEFAULT_WAIT_BARRIER,
    ) -> None:
        if barrier is LifecyclePhase.POST_ATTACH:
            raise ValueError("postAttachCommand cannot be the wait barrier")
        self._runner = runner
        self._commands = commands
        self.barrier = barrier

    def _argv(self, phase: LifecyclePhase) -> tuple[str, ...]:
        command = self._commands.get(phase)
        return command.argv if command is not None else ()

    async def _run_phase(self, phase: LifecyclePhase) -> None:
        argv = self._argv(phase)
        if not argv:
            return
        print(f"Running {phase.config_key}: {' '.join(argv)}")
        logger.debug("Lifecycle command starting", phase=phase.config_key, argv=list(argv))
        try:
            await self._runner(phase, argv)
        except PhaseCommandFailed:
            raise
        except (DevcError, OSError) as exc:
            raise PhaseCommandFailed(phase, str(exc)) from exc
        print(f"Finished {phase.config_key}")

    async def bring_up(self) -> BackgroundPhases:
        """Run the synchronous phases, then hand off the rest.

        Returns once every phase up to the barrier has completed.  Raises
        PhaseCommandFailed (and starts nothing further) if one of them fails.
        """
        for phase in LifecyclePhase:
            if should_run_synchronously(phase, self.barrier):
                await self._run_phase(phase)

        background = BackgroundPhases()
        background.task = create_background_task(
            self._run_background(background.failures),
            name="lifecycle-background",
        )
        return background

    async def _run_background(self, failures: list[PhaseCommandFailed]) -> None:
        remaining = [
            phase
            for phase in LifecyclePhase
            if phase is not LifecyclePhase.POST_ATTACH
            and not should_run_synchronously(phase, self.barrier)
        ]
        for phase in [*remaining, LifecyclePhase.POST_ATTACH]:
            try:
                await self._run_phase(phase)
            except PhaseCommandFailed as exc:
                failures.append(exc)
                logger.warning("Lifecycle command failed", phase=phase.config_key, error=exc.reason)
            except Exception as exc:
                failures.append(PhaseCommandFailed(phase, str(exc)))
                logger.exception("Lifecycle command crashed", phase=phase.config_key)


# ---------------------------------------------------------------------------
# Phase dispatch
# ---------------------------------------------------------------------------


class ContainerPhaseRunner:
    """Runs ``initializeCommand`` on the host and every other hook in the container.

    In-container hooks go through a non-interactive exec session (no TTY, no
    stdin) so their output streams to the local terminal as it arrives.
    """

    def __init__(
        self,
        client: ContainerRuntimeClient,
        container_name: str,
        *,
        host_workspace: str,
        user: str = "",
        workdir: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._client = client
        self._container_name = container_name
        self._host_workspace = host_workspace
        self._user = user
        self._workdir = workdir
        self._env = dict(env or {})

    async def __call__(self, phase: LifecyclePhase, argv: tuple[str, ...]) -> None:
        if phase is LifecyclePhase.INITIALIZE:
            code = await run_host_command(argv, cwd=self._host_workspace)
        else:
            code = await self._exec_in_container(argv)
        if code != 0:
            raise PhaseCommandFailed(phase, f"command exited with status {code}")

    async def _exec_in_container(self, argv: tuple[str, ...]) -> int:
        config = ExecConfig(
            cmd=list(argv),
            user=self._user,
            workdir=self._workdir,
            env=self._env,
            tty=False,
            stdin=False,
        )
        session = InteractiveSession(
            self._client,
            self._container_name,
            config,
            handle_signals=False,
        )
        return await session.run()
