"""Exception taxonomy for devc.

Every failure the CLI reports cleanly derives from :class:`DevcError`; the
entry point prints ``Error: <message>`` and exits 1 for these instead of
dumping a traceback.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from devc.types import LifecyclePhase


class DevcError(Exception):
    """Base class for expected, user-facing failures."""


class ConfigurationError(DevcError):
    """devcontainer.json is missing, unreadable, or invalid."""


class RuntimeUnavailable(DevcError):
    """The container runtime cannot be reached."""


class ContainerNotFound(DevcError):
    """The target container does not exist."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"container '{name}' does not exist. Use 'devc up' to create it first")


class ContainerNotRunning(DevcError):
    """The target container exists but is not running."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"container '{name}' is not running. Use 'devc up' to start it first")


class AlreadyRunningError(DevcError):
    """``up`` refused to touch a container that is already running."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"container '{name}' is already running")


class ImagePullFailed(DevcError):
    def __init__(self, image: str, reason: str) -> None:
        self.image = image
        super().__init__(f"failed to pull image '{image}': {reason}")


class ContainerCreateFailed(DevcError):
    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        super().__init__(f"failed to create container '{name}': {reason}")


class ContainerExistsError(DevcError):
    """Raised by runtime clients when ``create`` hits a name that is taken."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"container name '{name}' is already in use")


class PhaseCommandFailed(DevcError):
    """A lifecycle hook command failed."""

    def __init__(self, phase: LifecyclePhase, reason: str) -> None:
        self.phase = phase
        self.reason = reason
        super().__init__(f"failed to execute {phase.config_key}: {reason}")


class ExecCreateFailed(DevcError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"failed to create exec instance: {reason}")


class AttachFailed(DevcError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"failed to attach to exec instance: {reason}")


class TerminalModeError(DevcError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"failed to set terminal to raw mode: {reason}")


class BuildFailed(DevcError):
    """``docker build`` or ``docker push`` exited non-zero."""


class RuntimeRequestFailed(DevcError):
    """The runtime answered a request with an error."""

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        super().__init__(f"{action} failed: {reason}")
