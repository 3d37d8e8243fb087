"""Centralized tool configuration: Pydantic BaseSettings with a TOML source.

This is devc's *own* configuration (defaults for sessions, shells, logging).
The per-project container description lives in devcontainer.json and is
modelled in :mod:`devc.devcontainer`.

Settings live in ``~/.config/devc/config.toml``. Environment variables
override the file using the ``DEVC_`` prefix and ``__`` as the nested
delimiter (e.g. ``DEVC_SHELL__COMMAND='["/bin/zsh","-l"]'``).

Priority (highest wins): init args > env vars > config.toml

Usage::

    from devc.config import get_settings

    s = get_settings()
    print(s.container.default_session)
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

CONFIG_PATH = Path.home() / ".config" / "devc" / "config.toml"


class _StrictModel(BaseModel):
    """Base for config sub-models; unknown keys are rejected."""

    model_config = {"extra": "forbid"}


class LoggingConfig(_StrictModel):
    level: str | None = None  # None keeps LOG_LEVEL / the WARNING default

    @field_validator("level")
    @classmethod
    def normalize_level(cls, v: str | None) -> str | None:
        return v.upper() if v else None


class ContainerDefaults(_StrictModel):
    default_session: str = "default"
    workspace_mount: str = "/workspace"  # used when devcontainer.json sets none
    default_user: str = "root"
    term: str = "xterm-256color"
    # docker's own default is ctrl-p,ctrl-q
    detach_keys: str = "ctrl-@"
    stop_timeout: int = 10

    @field_validator("stop_timeout")
    @classmethod
    def clamp_stop_timeout(cls, v: int) -> int:
        return max(0, v)


class ShellConfig(_StrictModel):
    command: list[str] = ["/bin/bash", "-i", "-l"]

    @field_validator("command")
    @classmethod
    def non_empty(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("shell command cannot be empty")
        return v


class SshAgentConfig(_StrictModel):
    forward: bool = True


class RuntimeConfig(_StrictModel):
    name: str | None = None  # "docker" | plugin runtime name | None (auto)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DEVC_",
        env_nested_delimiter="__",
        toml_file=CONFIG_PATH,
        extra="ignore",
    )

    logging: LoggingConfig = LoggingConfig()
    container: ContainerDefaults = ContainerDefaults()
    shell: ShellConfig = ShellConfig()
    ssh_agent: SshAgentConfig = SshAgentConfig()
    runtime: RuntimeConfig = RuntimeConfig()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Priority: init > env vars > config.toml."""
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls),
        )


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_settings: Settings | None = None


def get_settings() -> Settings:
    """Lazy cached singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Clear the cached singleton (for tests)."""
    global _settings
    _settings = None
