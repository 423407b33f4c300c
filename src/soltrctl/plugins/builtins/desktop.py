"""Built-in desktop refresh plugin.

Runs the DesktopRefresher whenever the Nix profile changes so newly
installed applications show up in menus and launchers without logging
out. Registered by the Host when ``[desktop] refresh`` is enabled.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import pluggy

if TYPE_CHECKING:
    from soltrctl.infrastructure.host import Host

hookimpl = pluggy.HookimplMarker("soltrctl")

logger = logging.getLogger(__name__)


class DesktopRefreshPlugin:
    """Refresh desktop caches after profile changes."""

    def __init__(self, host: Host) -> None:
        self._host = host

    @hookimpl
    def post_profile_change(self, op: str, target: str | None) -> dict[str, Any] | None:
        from soltrctl.services.refresh import DesktopRefresher

        logger.debug("Refreshing desktop integration after %s %s", op, target or "")
        report = DesktopRefresher(self._host).refresh()
        return report.data
