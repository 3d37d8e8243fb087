"""Shared utility functions."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine, Sequence
from typing import Any

from devc.logger import logger


def create_background_task(
    coro: Coroutine[Any, Any, Any],
    *,
    name: str | None = None,
) -> asyncio.Task[Any]:
    """Create an asyncio task that logs exceptions instead of swallowing them.

    A drop-in replacement for ``asyncio.create_task`` for work we don't
    await right away (background lifecycle phases, exec start) but whose
    failures must still appear in logs.
    """
    task = asyncio.create_task(coro, name=name)
    task.add_done_callback(_log_task_exception)
    return task


def _log_task_exception(task: asyncio.Task[Any]) -> None:
    """Callback attached to background tasks: logs unhandled exceptions."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        # Done-callback, not an except block: pass exc_info explicitly.
        logger.error(
            "Background task failed",
            task_name=task.get_name(),
            exc_info=exc,
        )


async def run_host_command(argv: Sequence[str], *, cwd: str) -> int:
    """Run *argv* on the host with inherited stdio and return its exit code.

    Raises OSError when the program cannot be started.
    """
    process = await asyncio.create_subprocess_exec(*argv, cwd=cwd)
    return await process.wait()
