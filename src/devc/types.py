"""Data models for devc."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum


class LifecyclePhase(IntEnum):
    """Lifecycle hooks in their fixed execution order.

    The integer value is the ordinal; configuration never reorders phases.
    """

    INITIALIZE = 0
    ON_CREATE = 1
    UPDATE_CONTENT = 2
    POST_CREATE = 3
    POST_START = 4
    POST_ATTACH = 5

    @property
    def config_key(self) -> str:
        """Key used for this hook in devcontainer.json."""
        return _PHASE_CONFIG_KEYS[self]

    @classmethod
    def from_config_key(cls, key: str) -> LifecyclePhase:
        for phase, name in _PHASE_CONFIG_KEYS.items():
            if name == key:
                return phase
        raise ValueError(f"unknown lifecycle command: {key!r}")


_PHASE_CONFIG_KEYS: dict[LifecyclePhase, str] = {
    LifecyclePhase.INITIALIZE: "initializeCommand",
    LifecyclePhase.ON_CREATE: "onCreateCommand",
    LifecyclePhase.UPDATE_CONTENT: "updateContentCommand",
    LifecyclePhase.POST_CREATE: "postCreateCommand",
    LifecyclePhase.POST_START: "postStartCommand",
    LifecyclePhase.POST_ATTACH: "postAttachCommand",
}

# Every phase but POST_ATTACH may act as the wait barrier.
BARRIER_PHASES: tuple[LifecyclePhase, ...] = tuple(
    p for p in LifecyclePhase if p is not LifecyclePhase.POST_ATTACH
)
DEFAULT_WAIT_BARRIER = LifecyclePhase.UPDATE_CONTENT


@dataclass(frozen=True)
class LifecycleCommand:
    phase: LifecyclePhase
    argv: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.argv


@dataclass(frozen=True)
class ContainerIdentity:
    """Resolved container name plus the inputs it was derived from.

    Computed once per command invocation and never persisted.
    """

    workspace_path: str
    session_label: str
    path_fingerprint: str
    name: str
    explicit_name: str | None = None
    configured_name: str | None = None


@dataclass
class ContainerSpec:
    """Everything the runtime needs to create a dev container."""

    name: str
    image: str
    workspace_source: str  # host path
    workspace_target: str  # path inside the container
    env: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    binds: list[str] = field(default_factory=list)  # extra "host:container" mounts
    command: tuple[str, ...] = ("sleep", "infinity")


@dataclass
class ContainerInfo:
    """Runtime-agnostic view of an existing container."""

    id: str
    name: str
    state: str  # "running", "exited", "created", ...
    status: str = ""  # human readable, e.g. "Up 2 hours"
    image: str = ""
    created: str = ""  # ISO timestamp as reported by the runtime
    labels: dict[str, str] = field(default_factory=dict)
    env: dict[str, str] = field(default_factory=dict)

    @property
    def running(self) -> bool:
        return self.state == "running"


@dataclass
class ExecConfig:
    cmd: list[str]
    user: str = ""
    workdir: str | None = None
    env: dict[str, str] = field(default_factory=dict)
    tty: bool = False
    stdin: bool = False
    detach_keys: str | None = None


class EnsureOutcome(Enum):
    CREATED = "created"
    STARTED = "started"


class SessionState(Enum):
    IDLE = "idle"
    EXEC_CREATED = "exec_created"
    ATTACHED = "attached"
    STARTED = "started"
    RUNNING = "running"
    CLOSED = "closed"


@dataclass
class ExecSession:
    """One exec/attach cycle against a running container."""

    container_id: str
    exec_id: str
    tty: bool
    saved_terminal_state: list | None = None  # termios attributes, iff stdin is a tty
