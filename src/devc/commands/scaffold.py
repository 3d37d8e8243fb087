"""``devc init`` and ``devc read-configuration``."""

from __future__ import annotations

import json
import os
import subprocess
from pathlib import Path
from typing import Any

from devc.commands._context import CliOptions
from devc.devcontainer import find_config, parse
from devc.errors import ConfigurationError
from devc.logger import logger

DEFAULT_IMAGE = "ghcr.io/garaemon/ubuntu-noble:latest"


def default_template() -> dict[str, Any]:
    return {
        "name": "Development Container",
        "image": DEFAULT_IMAGE,
        "features": {},
        "customizations": {"vscode": {"extensions": []}},
        "forwardPorts": [],
        "postCreateCommand": "",
    }


def find_git_root(cwd: str | None = None) -> str | None:
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=cwd,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError:
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def init_target(directory: str | None) -> Path:
    """Explicit directory (must exist), else the git root, else the cwd."""
    if directory:
        path = Path(directory).absolute()
        if not path.exists():
            raise ConfigurationError(f"directory does not exist: {path}")
        if not path.is_dir():
            raise ConfigurationError(f"not a directory: {path}")
        return path
    root = find_git_root()
    if root is None:
        logger.debug("Not in a git repository, using current directory")
        return Path.cwd()
    return Path(root)


def init(directory: str | None = None) -> int:
    target = init_target(directory)
    devcontainer_dir = target / ".devcontainer"
    path = devcontainer_dir / "devcontainer.json"
    if path.exists():
        raise ConfigurationError(f"devcontainer.json already exists at {path}")

    devcontainer_dir.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(default_template(), indent=2) + os.linesep)
    print(f"Created devcontainer.json at {path}")
    return 0


def read_configuration(options: CliOptions) -> int:
    print(parse(find_config(options.config)).to_json())
    return 0
