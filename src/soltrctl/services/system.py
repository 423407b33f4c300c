"""SystemService — whole-system maintenance for SoltrOS hosts.

``update`` and ``clean`` are sequences of best-effort steps: a failing
step becomes a warning and the next step still runs. ``rebase`` is
all-or-nothing up to the image switch.
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from soltrctl.domain.images import Channel, ImageTarget, normalize_desktop, render_os_release
from soltrctl.domain.policy import PolicyMode
from soltrctl.services._helpers import describe_failure
from soltrctl.services.base import BaseService
from soltrctl.services.packages import PackageService
from soltrctl.services.policy import PolicyWriteError, TrustPolicyWriter
from soltrctl.services.result import (
    EXTERNAL_COMMAND_FAILED,
    MISSING_TOOL,
    VALIDATION_ERROR,
    ServiceResult,
)
from soltrctl.services.telemetry import traced

logger = logging.getLogger(__name__)

CONTAINER_TOOLS = ("distrobox", "toolbox")


class _Steps:
    """Accumulates ``{name, ok, skipped}`` records and their warnings."""

    def __init__(self) -> None:
        self.records: list[dict[str, Any]] = []
        self.warnings: list[str] = []

    def skipped(self, name: str, reason: str) -> None:
        logger.debug("Skipping %s: %s", name, reason)
        self.records.append({"name": name, "ok": True, "skipped": True})

    def passed(self, name: str) -> None:
        self.records.append({"name": name, "ok": True, "skipped": False})

    def failed(self, name: str, message: str) -> None:
        self.records.append({"name": name, "ok": False, "skipped": False})
        self.warnings.append(f"{name}: {message}")


class SystemService(BaseService):
    """``soltrctl system`` operations."""

    # ------------------------------------------------------------------
    # update / clean
    # ------------------------------------------------------------------

    @traced
    def update(self) -> ServiceResult:
        """Update the image, Flatpaks, Distrobox containers, and the Nix profile."""
        steps = _Steps()
        self._upgrade_image(steps)
        self._attempt(steps, "flatpak", "flatpak", ["flatpak", "update", "-y"])
        self._attempt(steps, "distrobox", "distrobox", ["distrobox", "upgrade", "--all"])
        self._update_nix(steps)
        return self._report("system_update", steps)

    @traced
    def clean(self) -> ServiceResult:
        """Drop staged deployments, unused Flatpak runtimes, and old journal entries."""
        steps = _Steps()
        privileged = self._host.privileged
        retention = self._settings.system.journal_retention
        self._attempt(
            steps, "rpm-ostree", "rpm-ostree", privileged(["rpm-ostree", "cleanup", "-p"])
        )
        self._attempt(
            steps, "flatpak", "flatpak", ["flatpak", "uninstall", "--unused", "-y"]
        )
        self._attempt(
            steps,
            "journal",
            "journalctl",
            privileged(["journalctl", f"--vacuum-time={retention}"]),
        )
        return self._report("system_clean", steps)

    def _upgrade_image(self, steps: _Steps) -> None:
        if not self._host.capabilities.has("bootc"):
            steps.skipped("bootc", "bootc not installed")
            return

        argv = self._host.privileged(["bootc", "upgrade"])
        writer = TrustPolicyWriter(self._settings.policy)
        if not writer.marker_path.exists():
            self._attempt(steps, "bootc", "bootc", argv)
            return

        # Trust is relaxed: verify signatures for this pull, then put the
        # relaxed document back. Never pull unverified instead.
        if not writer.writable():
            steps.failed(
                "bootc",
                f"trust policy is relaxed and {writer.path} is not writable; "
                "run 'sudo soltrctl system update' to upgrade with signature checks",
            )
            return
        logger.info("Trust marker present, upgrading under the restrictive policy")
        try:
            with writer.scoped(PolicyMode.RESTRICTIVE, restore="always") as outcome:
                steps.warnings.extend(outcome.warnings)
                self._attempt(steps, "bootc", "bootc", argv)
        except PolicyWriteError as exc:
            steps.failed("bootc", str(exc))

    def _update_nix(self, steps: _Steps) -> None:
        if not self._host.capabilities.has("nix"):
            steps.skipped("nix", "nix not installed")
            return
        packages = PackageService(self._host)
        if self._settings.nix.flake_path.is_dir():
            flake = packages.update()
            if flake.ok:
                steps.passed("nix-flake")
            else:
                steps.failed("nix-flake", flake.error.message if flake.error else "failed")
        else:
            steps.skipped("nix-flake", f"{self._settings.nix.flake_path} not found")

        upgraded = packages.upgrade()
        if upgraded.ok:
            steps.passed("nix-profile")
        else:
            steps.failed("nix-profile", upgraded.error.message if upgraded.error else "failed")

    def _attempt(self, steps: _Steps, name: str, tool: str, argv: Sequence[str]) -> None:
        if not self._host.capabilities.has(tool):
            steps.skipped(name, f"{tool} not installed")
            return
        try:
            self._run(argv)
        except (OSError, subprocess.CalledProcessError) as exc:
            logger.debug("Step %s failed", name, exc_info=True)
            steps.failed(name, describe_failure(argv, exc))
            return
        steps.passed(name)

    @staticmethod
    def _report(op: str, steps: _Steps) -> ServiceResult:
        return ServiceResult(
            ok=True,
            op=op,
            data={"steps": steps.records},
            warnings=steps.warnings,
        )

    # ------------------------------------------------------------------
    # rebase
    # ------------------------------------------------------------------

    @traced
    def rebase(self, channel: Channel, desktop: str) -> ServiceResult:
        """Switch to *channel*'s image for *desktop* and rewrite os-release.

        A failed switch is an error. A failed os-release rewrite after a
        successful switch is a warning; the new deployment is already staged.
        """
        op = "system_rebase"
        try:
            variant = normalize_desktop(desktop)
        except ValueError as exc:
            return ServiceResult.failure(op, VALIDATION_ERROR, str(exc))

        if not self._host.capabilities.has("bootc"):
            return ServiceResult.failure(op, MISSING_TOOL, "bootc is not installed")

        target = ImageTarget(channel, variant, self._settings.policy.registry)
        argv = self._host.privileged(["bootc", "switch", target.reference])
        try:
            self._run(argv)
        except (OSError, subprocess.CalledProcessError) as exc:
            return ServiceResult.failure(
                op,
                EXTERNAL_COMMAND_FAILED,
                describe_failure(argv, exc),
                hint="Check your network connection and retry",
            )

        warnings: list[str] = []
        os_release = self._settings.system.os_release_path
        try:
            self._install_os_release(os_release, render_os_release(target))
        except (OSError, subprocess.CalledProcessError) as exc:
            logger.debug("os-release rewrite failed", exc_info=True)
            warnings.append(f"Could not update {os_release}: {exc}")

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "image": target.reference,
                "label": target.label,
                "variant": variant.value,
                "os_release": str(os_release),
                "reboot_required": True,
            },
            warnings=warnings,
        )

    def _install_os_release(self, path: Path, text: str) -> None:
        """Replace *path* with *text*, owned by root with mode 0644.

        A symlinked os-release becomes a real file; the first rewrite keeps
        a ``.bak`` copy of the original.
        """
        privileged = self._host.privileged
        if path.is_symlink():
            self._run(privileged(["rm", "-f", str(path)]))

        backup = path.with_name(f"{path.name}.bak")
        if path.exists() and not backup.exists():
            try:
                self._run(privileged(["cp", "-p", str(path), str(backup)]))
            except (OSError, subprocess.CalledProcessError) as exc:
                logger.debug("os-release backup failed: %s", exc)

        fd, tmp_name = tempfile.mkstemp(prefix="os-release.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
            self._run(
                privileged(
                    ["install", "-o", "root", "-g", "root", "-m", "0644", tmp_name, str(path)]
                )
            )
        finally:
            Path(tmp_name).unlink(missing_ok=True)

        if self._host.capabilities.has("restorecon"):
            self._run(privileged(["restorecon", str(path)]))

    # ------------------------------------------------------------------
    # containers
    # ------------------------------------------------------------------

    @traced
    def containers(self, tool: str = "distrobox") -> ServiceResult:
        op = "system_containers"
        if tool not in CONTAINER_TOOLS:
            return ServiceResult.failure(
                op,
                VALIDATION_ERROR,
                f"Unknown container tool '{tool}'. Use: {'|'.join(CONTAINER_TOOLS)}",
            )
        if not self._host.capabilities.has(tool):
            return ServiceResult.failure(op, MISSING_TOOL, f"{tool} is not installed")

        argv = [tool, "list"]
        try:
            proc = self._run(argv, capture=True)
        except (OSError, subprocess.CalledProcessError) as exc:
            return ServiceResult.failure(op, EXTERNAL_COMMAND_FAILED, describe_failure(argv, exc))
        return ServiceResult(ok=True, op=op, data={"tool": tool, "output": proc.stdout})
