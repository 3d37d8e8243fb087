"""Pluggy hook specifications for devc plugins.

All hooks use the "devc" namespace and are validated by pluggy at
registration time.
"""

from __future__ import annotations

from typing import Any

import pluggy

hookspec = pluggy.HookspecMarker("devc")


class DevcSpec:
    """Hook specifications for devc plugins."""

    @hookspec
    def devc_container_runtime(self) -> Any | None:
        """Provide a container runtime implementation.

        Runtime plugins can return an object with:
            - name (str): runtime identifier (e.g., "docker")
            - is_available() -> bool
            - connect() -> ContainerRuntimeClient

        Returns:
            Runtime provider object, or None if this plugin doesn't provide one.
        """
