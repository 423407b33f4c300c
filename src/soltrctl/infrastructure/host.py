"""Host — the single dependency injected into every service.

Bundles the frozen settings, the command runner, the capability set
discovered at startup, the process environment, and the plugin manager.
Tests build a Host around a fake runner and a fixed capability set.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from soltrctl.infrastructure.capabilities import Capabilities
from soltrctl.infrastructure.runner import CommandRunner

if TYPE_CHECKING:
    from soltrctl.config.settings import SoltrSettings
    from soltrctl.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


class Host:
    """The machine soltrctl is maintaining."""

    def __init__(
        self,
        settings: SoltrSettings,
        *,
        runner: CommandRunner | None = None,
        capabilities: Capabilities | None = None,
        env: Mapping[str, str] | None = None,
        is_root: bool | None = None,
    ) -> None:
        self._settings = settings
        self._runner = runner or CommandRunner()
        self._capabilities = capabilities or Capabilities.discover()
        self._env: Mapping[str, str] = dict(os.environ) if env is None else env
        self._is_root = os.geteuid() == 0 if is_root is None else is_root
        self._plugin_manager: PluginManager | None = None

    @property
    def settings(self) -> SoltrSettings:
        return self._settings

    @property
    def runner(self) -> CommandRunner:
        return self._runner

    @property
    def capabilities(self) -> Capabilities:
        return self._capabilities

    @property
    def env(self) -> Mapping[str, str]:
        return self._env

    @property
    def plugin_manager(self) -> PluginManager | None:
        """Plugin manager, or None until :meth:`init_plugins` runs."""
        return self._plugin_manager

    def init_plugins(self, *, discover: bool = True) -> None:
        """Create the PluginManager and register built-in plugins.

        Called by AppContext when the host is first accessed.
        """
        from soltrctl.plugins.builtins.desktop import DesktopRefreshPlugin
        from soltrctl.plugins.manager import PluginManager

        pm = PluginManager()
        if discover:
            pm.discover_and_load()
        if self._settings.desktop.refresh:
            pm.register_plugin(DesktopRefreshPlugin(self), name="desktop-builtin")
        self._plugin_manager = pm

    def privileged(self, argv: Sequence[str]) -> list[str]:
        """Prefix *argv* with ``sudo`` when not root and sudo is enabled."""
        if self._is_root or not self._settings.system.use_sudo:
            return list(argv)
        return ["sudo", *argv]
