"""Thin wrapper over :class:`pluggy.PluginManager` for soltrctl hooks.

Third-party plugins are packages exposing an entry point in the
``soltrctl.plugins`` group; the built-in desktop refresher is registered
directly by :class:`~soltrctl.infrastructure.host.Host`.
"""

from __future__ import annotations

import inspect
import logging

import pluggy

from soltrctl.plugins.hookspecs import SoltrctlHookSpec

PROJECT_NAME = "soltrctl"
ENTRYPOINT_GROUP = "soltrctl.plugins"

# pluggy tags every @hookimpl function with "<project>_impl".
_IMPL_ATTR = f"{PROJECT_NAME}_impl"

logger = logging.getLogger(__name__)


def _declares_hooks(candidate: type) -> bool:
    return any(
        callable(member) and getattr(member, _IMPL_ATTR, None) is not None
        for name, member in inspect.getmembers(candidate)
        if not name.startswith("_")
    )


class PluginManager:
    """Registry of hook implementations for one soltrctl run."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(SoltrctlHookSpec)

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        name = name or type(plugin).__name__
        self._pm.register(plugin, name=name)
        logger.debug("Registered plugin %s", name)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    def get_plugins(self) -> list[object]:
        return list(self._pm.get_plugins())

    def list_plugin_names(self) -> list[str]:
        return [self._pm.get_name(p) or type(p).__name__ for p in self._pm.get_plugins()]

    def discover_and_load(self) -> list[str]:
        """Load the ``soltrctl.plugins`` entry points and return plugin names.

        Import errors are logged as warnings; a broken third-party plugin
        must not stop package or policy operations.
        """
        try:
            self._pm.load_setuptools_entrypoints(ENTRYPOINT_GROUP)
        except Exception:
            logger.warning("Failed to load entry-point plugins", exc_info=True)
        for plugin in self.get_plugins():
            if inspect.isclass(plugin) and _declares_hooks(plugin):
                self._instantiate(plugin)
        return self.list_plugin_names()

    def _instantiate(self, plugin_cls: type) -> None:
        # Hooks on an unbound class would be called without ``self``.
        name = self._pm.get_name(plugin_cls) or plugin_cls.__name__
        self._pm.unregister(plugin_cls)
        try:
            instance = plugin_cls()
        except Exception:
            logger.warning("Failed to instantiate entry-point plugin %s", name, exc_info=True)
            return
        self._pm.register(instance, name=name)
        logger.debug("Instantiated entry-point plugin %s", name)
