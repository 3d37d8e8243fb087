"""devcontainer.json model, discovery, and typed accessors.

The raw JSON is validated into :class:`DevContainer`.  Lifecycle hook
commands accept the two devcontainer.json spellings::

    "postCreateCommand": "npm install"              # shell form
    "postCreateCommand": ["npm", "install"]         # argv form

Both are normalized once, when the model is built, into a tagged
:data:`HookCommand` (``ShellCommand | ArgvCommand``) so callers only ever
see a canonical argv.  Unknown keys are kept so ``read-configuration`` can
echo the file back faithfully.
"""

from __future__ import annotations

import json
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError, field_validator

from devc.errors import ConfigurationError
from devc.logger import logger
from devc.types import (
    BARRIER_PHASES,
    DEFAULT_WAIT_BARRIER,
    LifecycleCommand,
    LifecyclePhase,
)

DEFAULT_WORKSPACE_FOLDER = "/workspace"
DEFAULT_CONTAINER_USER = "root"
SHELL = "/bin/sh"

# ---------------------------------------------------------------------------
# Hook command normalization
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ShellCommand:
    """``"npm install"``: run through ``/bin/sh -c``."""

    script: str

    @property
    def argv(self) -> tuple[str, ...]:
        if not self.script.strip():
            return ()
        return (SHELL, "-c", self.script)


@dataclass(frozen=True)
class ArgvCommand:
    """``["npm", "install"]``: exec'd as-is."""

    args: tuple[str, ...]

    @property
    def argv(self) -> tuple[str, ...]:
        return self.args


HookCommand: TypeAlias = "ShellCommand | ArgvCommand"


def normalize_command(raw: Any, *, key: str = "") -> HookCommand | None:
    """Resolve the polymorphic JSON value of a hook into a tagged command.

    Non-string list elements are dropped.  Other shapes (such as the
    object form for parallel commands) are not supported and are ignored
    with a warning.
    """
    if raw is None:
        return None
    if isinstance(raw, str):
        return ShellCommand(raw)
    if isinstance(raw, list):
        return ArgvCommand(tuple(item for item in raw if isinstance(item, str)))
    logger.warning(
        "Unsupported lifecycle command form, ignoring",
        command=key,
        type=type(raw).__name__,
    )
    return None


# ---------------------------------------------------------------------------
# Environment variable expansion
# ---------------------------------------------------------------------------

_VARIABLE_RE = re.compile(r"\$\{(localEnv|containerEnv):([^}:]+)(?::([^}]*))?\}")


def expand_variables(
    value: str,
    *,
    local_env: Mapping[str, str],
    container_env: Mapping[str, str],
) -> str:
    """Expand ``${localEnv:VAR}`` / ``${containerEnv:VAR[:default]}`` references."""

    def _sub(match: re.Match[str]) -> str:
        scope, name, default = match.group(1), match.group(2), match.group(3)
        source = local_env if scope == "localEnv" else container_env
        return source.get(name, default or "")

    return _VARIABLE_RE.sub(_sub, value)


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


class _JsonModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class BuildConfig(_JsonModel):
    dockerfile: str | None = None
    context: str | None = None
    args: dict[str, Any] = {}
    target: str | None = None
    cache_from: list[str] = Field(default_factory=list, alias="cacheFrom")
    options: list[str] = []

    @field_validator("cache_from", mode="before")
    @classmethod
    def _cache_from_list(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [v]
        return v


class PortAttributes(_JsonModel):
    label: str | None = None
    on_auto_forward: str | None = Field(None, alias="onAutoForward")


_BARRIER_KEYS = {p.config_key for p in BARRIER_PHASES}


class DevContainer(_JsonModel):
    name: str | None = None
    image: str | None = None
    build: BuildConfig | None = None
    docker_compose_file: str | list[str] | None = Field(None, alias="dockerComposeFile")
    service: str | None = None
    run_services: list[str] = Field(default_factory=list, alias="runServices")
    workspace_folder: str | None = Field(None, alias="workspaceFolder")
    container_user: str | None = Field(None, alias="containerUser")
    remote_user: str | None = Field(None, alias="remoteUser")
    container_env: dict[str, str] = Field(default_factory=dict, alias="containerEnv")
    forward_ports: list[Any] = Field(default_factory=list, alias="forwardPorts")
    ports_attributes: dict[str, PortAttributes] = Field(
        default_factory=dict, alias="portsAttributes"
    )
    update_remote_user_uid: bool = Field(True, alias="updateRemoteUserUID")
    wait_for: str | None = Field(None, alias="waitFor")

    initialize_command: Any = Field(None, alias="initializeCommand")
    on_create_command: Any = Field(None, alias="onCreateCommand")
    update_content_command: Any = Field(None, alias="updateContentCommand")
    post_create_command: Any = Field(None, alias="postCreateCommand")
    post_start_command: Any = Field(None, alias="postStartCommand")
    post_attach_command: Any = Field(None, alias="postAttachCommand")

    _commands: dict[LifecyclePhase, HookCommand | None] = PrivateAttr(default_factory=dict)

    @field_validator("wait_for")
    @classmethod
    def _valid_barrier(cls, v: str | None) -> str | None:
        if v is None:
            return v
        if v == LifecyclePhase.POST_ATTACH.config_key:
            raise ValueError("postAttachCommand cannot be used as waitFor")
        if v not in _BARRIER_KEYS:
            raise ValueError(f"waitFor must be one of {sorted(_BARRIER_KEYS)}, got {v!r}")
        return v

    def model_post_init(self, __context: Any) -> None:
        raw = {
            LifecyclePhase.INITIALIZE: self.initialize_command,
            LifecyclePhase.ON_CREATE: self.on_create_command,
            LifecyclePhase.UPDATE_CONTENT: self.update_content_command,
            LifecyclePhase.POST_CREATE: self.post_create_command,
            LifecyclePhase.POST_START: self.post_start_command,
            LifecyclePhase.POST_ATTACH: self.post_attach_command,
        }
        self._commands = {
            phase: normalize_command(value, key=phase.config_key) for phase, value in raw.items()
        }

    # --- Accessors ---

    def has_image(self) -> bool:
        return bool(self.image)

    def has_build(self) -> bool:
        return self.build is not None and bool(self.build.dockerfile)

    def has_compose(self) -> bool:
        return bool(self.compose_files())

    def compose_files(self) -> list[str]:
        if self.docker_compose_file is None:
            return []
        if isinstance(self.docker_compose_file, str):
            return [self.docker_compose_file] if self.docker_compose_file else []
        return [f for f in self.docker_compose_file if f]

    def get_workspace_folder(self, default: str = DEFAULT_WORKSPACE_FOLDER) -> str:
        return self.workspace_folder or default

    def get_container_user(self, default: str = DEFAULT_CONTAINER_USER) -> str:
        return self.container_user or default

    def get_target_user(self) -> str:
        """User whose UID/GID should track the host: remoteUser, else containerUser."""
        return self.remote_user or self.container_user or ""

    def wait_barrier(self) -> LifecyclePhase:
        if self.wait_for is None:
            return DEFAULT_WAIT_BARRIER
        return LifecyclePhase.from_config_key(self.wait_for)

    def lifecycle_command(self, phase: LifecyclePhase) -> LifecycleCommand:
        command = self._commands.get(phase)
        return LifecycleCommand(phase=phase, argv=command.argv if command else ())

    def lifecycle_commands(self) -> dict[LifecyclePhase, LifecycleCommand]:
        return {phase: self.lifecycle_command(phase) for phase in LifecyclePhase}

    def get_container_env(
        self,
        base_env: Mapping[str, str] | None = None,
        local_env: Mapping[str, str] | None = None,
    ) -> dict[str, str]:
        """containerEnv with ``${localEnv:*}`` and ``${containerEnv:*}`` expanded.

        *base_env* is the environment of the running container (empty before
        creation); *local_env* defaults to the host environment.
        """
        base = dict(base_env or {})
        local = os.environ if local_env is None else local_env
        return {
            key: expand_variables(value, local_env=local, container_env=base)
            for key, value in self.container_env.items()
        }

    def to_json(self) -> str:
        """Serialize back to devcontainer.json spelling (only keys that were set)."""
        return json.dumps(
            self.model_dump(mode="json", by_alias=True, exclude_unset=True),
            indent=2,
        )


# ---------------------------------------------------------------------------
# Loading and discovery
# ---------------------------------------------------------------------------


def parse(path: str | Path) -> DevContainer:
    """Read and validate a devcontainer.json file."""
    try:
        text = Path(path).read_text()
    except OSError as exc:
        raise ConfigurationError(f"failed to read devcontainer file: {exc}") from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"failed to parse devcontainer.json: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError("failed to parse devcontainer.json: top level must be an object")
    try:
        return DevContainer.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"failed to parse devcontainer.json: {exc}") from exc


def find_config(config_path: str | None = None, start: Path | None = None) -> Path:
    """Locate devcontainer.json.

    An explicit *config_path* wins.  Otherwise walk from *start* (the cwd)
    up to the filesystem root, checking ``.devcontainer/devcontainer.json``
    and then ``.devcontainer.json`` in each directory.
    """
    if config_path:
        return Path(config_path)

    directory = (start or Path.cwd()).absolute()
    for candidate_dir in (directory, *directory.parents):
        logger.debug("Checking directory", directory=str(candidate_dir))
        for candidate in (
            candidate_dir / ".devcontainer" / "devcontainer.json",
            candidate_dir / ".devcontainer.json",
        ):
            if candidate.is_file():
                return candidate

    raise ConfigurationError(
        "no devcontainer.json found in current directory or parent directories"
    )


def determine_workspace_folder(config_path: Path, override: str | None = None) -> str:
    """Absolute host workspace: ``--workspace-folder`` or the config's project dir."""
    if override:
        return os.path.abspath(override)
    config_dir = Path(os.path.abspath(config_path)).parent
    if config_dir.name == ".devcontainer":
        return str(config_dir.parent)
    return str(config_dir)
