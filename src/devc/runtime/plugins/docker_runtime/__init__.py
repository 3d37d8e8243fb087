"""Docker container runtime plugin."""

from __future__ import annotations

from typing import Any

import pluggy

from .client import DockerRuntime

hookimpl = pluggy.HookimplMarker("devc")


class DockerRuntimePlugin:
    """Plugin providing the Docker Engine runtime."""

    @hookimpl
    def devc_container_runtime(self) -> Any | None:
        return DockerRuntime()
