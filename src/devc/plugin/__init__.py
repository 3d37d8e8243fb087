"""Plugin system for devc.

Plugins extend devc with additional container runtimes.  Built on pluggy.

Usage:
    from devc.plugin import get_plugin_manager

    pm = get_plugin_manager()
    providers = pm.hook.devc_container_runtime()
"""

from __future__ import annotations

import importlib

import pluggy

from devc.logger import logger
from devc.plugin.hookspecs import DevcSpec

__all__ = [
    "get_plugin_manager",
]

# Static registry of built-in plugins.
# Each entry: (module_path, class_name, registration_name)
_BUILTIN_PLUGIN_SPECS: list[tuple[str, str, str]] = [
    ("devc.runtime.plugins.docker_runtime", "DockerRuntimePlugin", "docker-runtime"),
]


def get_plugin_manager() -> pluggy.PluginManager:
    """Create and configure the plugin manager.

    Registers the built-in plugins, then third-party plugins advertised
    under the "devc" entry point group.
    """
    pm = pluggy.PluginManager("devc")
    pm.add_hookspecs(DevcSpec)

    for module_path, class_name, key in _BUILTIN_PLUGIN_SPECS:
        try:
            mod = importlib.import_module(module_path)
            cls = getattr(mod, class_name)
            pm.register(cls(), name=f"builtin-{key}")
            logger.debug("Registered built-in plugin", name=key)
        except ImportError:
            logger.debug("Plugin skipped (optional dependency missing)", plugin=key)

    discovered = pm.load_setuptools_entrypoints("devc")
    if discovered:
        logger.debug("Discovered third-party plugins", count=discovered)

    # Entrypoint loaders can hand back classes instead of instances.
    for plugin in list(pm.get_plugins()):
        if isinstance(plugin, type):
            plugin_name = pm.get_name(plugin) or plugin.__name__
            pm.unregister(plugin=plugin)
            logger.warning("Unregistered invalid class-based plugin object", plugin=plugin_name)

    return pm
