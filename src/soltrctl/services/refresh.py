"""DesktopRefresher — make (un)installed applications visible without logout.

Every step is independent and best-effort: a missing tool or directory
skips the step, a failing tool is logged at debug level, and the refresh
as a whole always succeeds.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from soltrctl.domain.desktop import DesktopKind, classify_desktop
from soltrctl.services.base import BaseService
from soltrctl.services.result import ServiceResult
from soltrctl.services.telemetry import traced

logger = logging.getLogger(__name__)

STEP_OK = "ok"
STEP_FAILED = "failed"
STEP_SKIPPED = "skipped"


class DesktopRefresher(BaseService):
    """Rebuilds desktop-entry, MIME, icon, and session caches."""

    @traced
    def refresh(self) -> ServiceResult:
        """Run every refresh step. Never fails."""
        steps: list[dict[str, Any]] = []
        profile_share = self._settings.nix.profile_path / "share"
        local_share = self._settings.desktop.local_share

        self._per_directory(
            steps,
            "update-desktop-database",
            [profile_share / "applications", local_share / "applications"],
        )
        self._per_directory(
            steps,
            "update-mime-database",
            [profile_share / "mime", local_share / "mime"],
        )
        self._per_directory(
            steps,
            "gtk-update-icon-cache",
            [profile_share / "icons" / "hicolor", local_share / "icons" / "hicolor"],
            flags=["-f", "-t"],
        )

        desktop = classify_desktop(self._host.env)
        logger.debug("Detected desktop environment: %s", desktop)
        if desktop is DesktopKind.KDE:
            self._refresh_kde(steps)
        elif desktop is DesktopKind.GNOME:
            self._per_directory(
                steps,
                "glib-compile-schemas",
                [profile_share / "glib-2.0" / "schemas"],
            )

        self._attempt(steps, "xdg-desktop-menu", ["xdg-desktop-menu", "forceupdate"])
        self._attempt(steps, "systemctl", ["systemctl", "--user", "daemon-reload"])
        for name in self._settings.desktop.signal_processes:
            # pkill exits 1 when nothing matched; that is not a failure.
            self._attempt(steps, "pkill", ["pkill", "-HUP", "-f", name], any_status=True)

        return ServiceResult(
            ok=True,
            op="refresh_desktop",
            data={"desktop": desktop.value, "steps": steps},
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _refresh_kde(self, steps: list[dict[str, Any]]) -> None:
        sycoca = self._host.capabilities.first("kbuildsycoca6", "kbuildsycoca5")
        if sycoca is None:
            steps.append({"step": "kbuildsycoca", "status": STEP_SKIPPED})
        else:
            self._attempt(steps, sycoca, [sycoca, "--noincremental"])
        self._attempt(
            steps,
            "qdbus",
            ["qdbus", "org.kde.KLauncher", "/KLauncher", "reparseConfiguration"],
        )

    def _per_directory(
        self,
        steps: list[dict[str, Any]],
        tool: str,
        directories: Sequence[Path],
        *,
        flags: Sequence[str] = (),
    ) -> None:
        """Run *tool* once per existing directory."""
        if not self._host.capabilities.has(tool):
            logger.debug("Command '%s' not found, skipping", tool)
            steps.append({"step": tool, "status": STEP_SKIPPED})
            return
        for directory in directories:
            if not directory.is_dir():
                continue
            self._attempt(steps, tool, [tool, *flags, str(directory)], target=str(directory))

    def _attempt(
        self,
        steps: list[dict[str, Any]],
        name: str,
        argv: Sequence[str],
        *,
        target: str | None = None,
        any_status: bool = False,
    ) -> None:
        """Run one guarded step, recording ok / failed / skipped."""
        record: dict[str, Any] = {"step": name}
        if target is not None:
            record["target"] = target

        if not self._host.capabilities.has(argv[0]):
            logger.debug("Command '%s' not found, skipping", argv[0])
            steps.append({**record, "status": STEP_SKIPPED})
            return

        try:
            self._run(argv, capture=True, check=not any_status)
        except (OSError, subprocess.CalledProcessError) as exc:
            logger.debug("Refresh step %s failed: %s", name, exc)
            steps.append({**record, "status": STEP_FAILED})
            return
        steps.append({**record, "status": STEP_OK})
