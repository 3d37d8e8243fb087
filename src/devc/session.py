"""Interactive exec/attach sessions.

One :class:`InteractiveSession` drives a single exec against a running
container through ``IDLE -> EXEC_CREATED -> ATTACHED -> STARTED -> RUNNING
-> CLOSED``:

1. create the exec;
2. attach to it (the runtime only delivers output to an attached consumer,
   so attaching after start could drop early output);
3. start it in a background task, because start blocks until the remote
   process exits;
4. relay local stdin to the remote side from a daemon thread (best effort,
   never awaited) and copy remote output to the local streams until EOF.

When the session uses a TTY and local stdin is a terminal, the terminal is
put in raw mode for the duration.  :class:`RawTerminal` guarantees the saved
state is restored exactly once, whether the session ends normally, with an
error, or through SIGINT/SIGTERM.
"""

from __future__ import annotations

import asyncio
import functools
import os
import signal
import sys
import termios
import threading
import tty
from collections.abc import Callable
from typing import Any, BinaryIO

from devc.errors import ContainerNotFound, ContainerNotRunning, TerminalModeError
from devc.logger import logger
from devc.runtime import STDERR, ContainerRuntimeClient, ExecStream
from devc.types import ExecConfig, ExecSession, SessionState
from devc.utils import create_background_task

_STDIN_CHUNK = 4096
_EXIT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class RawTerminal:
    """Raw-mode acquisition for one terminal file descriptor."""

    def __init__(self, fd: int | None = None) -> None:
        self.fd = sys.stdin.fileno() if fd is None else fd
        self._saved: list[Any] | None = None
        self._lock = threading.Lock()

    def isatty(self) -> bool:
        try:
            return os.isatty(self.fd)
        except OSError:
            return False

    def size(self) -> tuple[int, int] | None:
        """(rows, columns), or None when unknown."""
        try:
            columns, rows = os.get_terminal_size(self.fd)
        except OSError:
            return None
        return rows, columns

    @property
    def is_raw(self) -> bool:
        return self._saved is not None

    def enter_raw(self) -> list[Any]:
        """Switch to raw mode and return the previous attributes."""
        try:
            saved = termios.tcgetattr(self.fd)
            tty.setraw(self.fd)
        except termios.error as exc:
            raise TerminalModeError(str(exc)) from exc
        with self._lock:
            self._saved = saved
        return saved

    def restore(self) -> bool:
        """Put the saved attributes back.

        Safe to call any number of times from any thread; only the first
        call after ``enter_raw`` touches the terminal.  Returns whether this
        call did the restore.
        """
        with self._lock:
            saved, self._saved = self._saved, None
            if saved is None:
                return False
            try:
                termios.tcsetattr(self.fd, termios.TCSADRAIN, saved)
            except termios.error as exc:
                logger.warning("Failed to restore terminal state", error=str(exc))
            return True


class InteractiveSession:
    def __init__(
        self,
        client: ContainerRuntimeClient,
        container_name: str,
        config: ExecConfig,
        *,
        stdin: BinaryIO | None = None,
        stdout: BinaryIO | None = None,
        stderr: BinaryIO | None = None,
        terminal: RawTerminal | None = None,
        handle_signals: bool = True,
        exit_fn: Callable[[int], Any] = os._exit,
    ) -> None:
        self._client = client
        self.container_name = container_name
        self.config = config
        self._stdin = stdin
        self._stdout = stdout
        self._stderr = stderr
        self.terminal = terminal
        self._handle_signals = handle_signals
        self._exit = exit_fn
        self.state = SessionState.IDLE
        self.exec: ExecSession | None = None

    # --- Streams (resolved lazily) ---

    def _stdin_reader(self) -> Callable[[int], bytes]:
        if self._stdin is not None:
            return getattr(self._stdin, "read1", self._stdin.read)
        # Plain os.read: a thread parked in BufferedReader.read1 holds the
        # reader lock and interpreter shutdown aborts on it.
        return functools.partial(os.read, sys.stdin.fileno())

    def _output(self, stream_id: int) -> BinaryIO:
        if stream_id == STDERR:
            return self._stderr if self._stderr is not None else sys.stderr.buffer
        return self._stdout if self._stdout is not None else sys.stdout.buffer

    def _wants_raw_mode(self) -> bool:
        if not self.config.tty:
            return False
        if self.terminal is None:
            self.terminal = RawTerminal()
        return self.terminal.isatty()

    # --- Main path ---

    async def run(self) -> int:
        """Run the exec to completion and return its exit code."""
        info = await self._client.get_container(self.container_name)
        if info is None:
            raise ContainerNotFound(self.container_name)
        if not info.running:
            raise ContainerNotRunning(self.container_name)

        exec_id = await self._client.exec_create(info.id, self.config)
        self.exec = ExecSession(container_id=info.id, exec_id=exec_id, tty=self.config.tty)
        self.state = SessionState.EXEC_CREATED
        logger.debug("Exec created", container=self.container_name, exec_id=exec_id[:12])

        stream = await self._client.exec_attach(exec_id, tty=self.config.tty)
        self.state = SessionState.ATTACHED

        loop = asyncio.get_running_loop()
        installed: list[int] = []
        try:
            if self._handle_signals:
                for sig in _EXIT_SIGNALS:
                    loop.add_signal_handler(sig, self._on_signal, sig)
                    installed.append(sig)

            size = None
            if self._wants_raw_mode():
                assert self.terminal is not None
                size = self.terminal.size()
                self.exec.saved_terminal_state = self.terminal.enter_raw()

            start_task = create_background_task(
                self._client.exec_start(exec_id, tty=self.config.tty),
                name=f"exec-start-{exec_id[:12]}",
            )
            self.state = SessionState.STARTED

            if size is not None:
                rows, columns = size
                await self._client.exec_resize(exec_id, height=rows, width=columns)

            if self.config.stdin:
                threading.Thread(
                    target=self._relay_stdin,
                    args=(stream,),
                    name="devc-stdin-relay",
                    daemon=True,
                ).start()

            self.state = SessionState.RUNNING
            await asyncio.to_thread(self._copy_output, stream)

            # Start failures are logged by the task callback; don't re-raise.
            await asyncio.wait([start_task])
            code = await self._client.exec_exit_code(exec_id)
            return code if code is not None else 0
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)
            if self.terminal is not None:
                self.terminal.restore()
            try:
                stream.close()
            except OSError:
                logger.debug("Exec stream already closed")
            self.state = SessionState.CLOSED

    def _on_signal(self, signum: int) -> None:
        logger.debug("Received termination signal", signal=signal.Signals(signum).name)
        if self.terminal is not None:
            self.terminal.restore()
        self._exit(128 + signum)

    # --- I/O relay ---

    def _copy_output(self, stream: ExecStream) -> None:
        for stream_id, data in stream.frames():
            if not data:
                continue
            out = self._output(stream_id)
            out.write(data)
            out.flush()

    def _relay_stdin(self, stream: ExecStream) -> None:
        read = self._stdin_reader()
        try:
            while True:
                data = read(_STDIN_CHUNK)
                if not data:
                    break
                stream.write(data)
            stream.close_write()
        except (OSError, ValueError) as exc:
            # Remote side closed first, or stdin went away.
            logger.debug("Stdin relay stopped", error=str(exc))
