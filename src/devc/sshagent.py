"""Forward the host's SSH agent into dev containers."""

from __future__ import annotations

import os
import stat
from collections.abc import Mapping

SSH_AUTH_SOCK = "SSH_AUTH_SOCK"
CONTAINER_SOCKET = "/ssh-agent"


def host_socket(environ: Mapping[str, str] | None = None) -> str | None:
    """Path of the host agent socket, or None if there is no usable agent."""
    env = os.environ if environ is None else environ
    path = env.get(SSH_AUTH_SOCK, "")
    if not path:
        return None
    try:
        mode = os.stat(path).st_mode
    except OSError:
        return None
    if not stat.S_ISSOCK(mode):
        return None
    return path


def agent_bind(socket_path: str) -> str:
    return f"{socket_path}:{CONTAINER_SOCKET}"


def container_env() -> dict[str, str]:
    return {SSH_AUTH_SOCK: CONTAINER_SOCKET}
