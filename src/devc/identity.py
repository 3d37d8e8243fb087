"""Container identity resolution.

A dev container's name is derived from the workspace it serves so that
repeated invocations against the same checkout find the same container,
while two checkouts that share a basename never collide:

    <name or workspace basename>-<session>-<8 hex chars of sha256(path)>

Everything here is a pure function of its arguments.
"""

from __future__ import annotations

import hashlib
import os.path

from devc.labels import DEFAULT_SESSION
from devc.types import ContainerIdentity

FINGERPRINT_LENGTH = 8


def path_fingerprint(path: str) -> str:
    """Return the first 8 hex chars of the SHA-256 of *path*.

    Used for namespacing only, not integrity.
    """
    return hashlib.sha256(path.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def sanitize_name(name: str) -> str:
    """Fold *name* into the lowercase, space-free form container names need."""
    return name.lower().replace(" ", "_")


def resolve_identity(
    workspace_path: str,
    explicit_name: str | None = None,
    configured_name: str | None = None,
    session_label: str | None = None,
) -> ContainerIdentity:
    """Derive the container identity for a workspace.

    Args:
        workspace_path: Absolute host path of the workspace.
        explicit_name: ``--name`` override; used verbatim when set.
        configured_name: ``name`` from devcontainer.json.
        session_label: ``--session``; defaults to ``"default"``.

    The configured name and the workspace basename are both passed through
    :func:`sanitize_name`, so a checkout under ``/ws/My Proj`` still yields a
    valid container name.  The ``--name`` override is never rewritten.
    """
    if not os.path.isabs(workspace_path):
        raise ValueError(f"workspace path must be absolute: {workspace_path!r}")

    session = session_label or DEFAULT_SESSION
    fingerprint = path_fingerprint(workspace_path)

    if explicit_name:
        name = explicit_name
    else:
        base = configured_name or os.path.basename(workspace_path.rstrip("/"))
        name = f"{sanitize_name(base)}-{session}-{fingerprint}"

    return ContainerIdentity(
        workspace_path=workspace_path,
        session_label=session,
        path_fingerprint=fingerprint,
        name=name,
        explicit_name=explicit_name or None,
        configured_name=configured_name or None,
    )


def compose_project_name(workspace_path: str) -> str:
    """Compose project (``-p``) used for a workspace: fingerprint plus basename."""
    project = sanitize_name(os.path.basename(workspace_path.rstrip("/")))
    return f"{path_fingerprint(workspace_path)}-{project}"


def compose_container_name(workspace_path: str, service: str) -> str:
    """Name docker compose gives the first replica of *service*."""
    return f"{compose_project_name(workspace_path)}-{service}-1"
