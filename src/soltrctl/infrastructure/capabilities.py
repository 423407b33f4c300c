"""One-shot discovery of optional external tools."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Every binary soltrctl may shell out to.
KNOWN_TOOLS: frozenset[str] = frozenset(
    {
        "nix",
        "nix-collect-garbage",
        "bootc",
        "rpm-ostree",
        "flatpak",
        "distrobox",
        "toolbox",
        "journalctl",
        "restorecon",
        "sudo",
        "update-desktop-database",
        "update-mime-database",
        "gtk-update-icon-cache",
        "kbuildsycoca6",
        "kbuildsycoca5",
        "qdbus",
        "glib-compile-schemas",
        "xdg-desktop-menu",
        "systemctl",
        "pkill",
    }
)


@dataclass(frozen=True)
class Capabilities:
    """Immutable set of tools found on PATH at startup."""

    tools: frozenset[str]

    def has(self, name: str) -> bool:
        return name in self.tools

    def first(self, *names: str) -> str | None:
        """Return the first available tool among *names*."""
        for name in names:
            if name in self.tools:
                return name
        return None

    @classmethod
    def discover(
        cls,
        names: Iterable[str] = KNOWN_TOOLS,
        *,
        path: str | None = None,
    ) -> Capabilities:
        """Probe PATH (or *path*) once for each of *names*."""
        found = frozenset(name for name in names if shutil.which(name, path=path))
        logger.debug("Discovered tools: %s", ", ".join(sorted(found)) or "(none)")
        return cls(tools=found)
