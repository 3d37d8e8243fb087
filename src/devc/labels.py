"""Labels attached to every container devc creates."""

from __future__ import annotations

MANAGED_LABEL = "devc.managed"
MANAGED_VALUE = "true"
WORKSPACE_LABEL = "devc.workspace"
SESSION_LABEL = "devc.session"

DEFAULT_SESSION = "default"


def managed_labels(workspace_path: str, session: str) -> dict[str, str]:
    return {
        MANAGED_LABEL: MANAGED_VALUE,
        WORKSPACE_LABEL: workspace_path,
        SESSION_LABEL: session,
    }


def managed_filter() -> dict[str, str]:
    """Label selector matching only devc-managed containers."""
    return {MANAGED_LABEL: MANAGED_VALUE}
