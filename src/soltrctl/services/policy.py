"""Trust Policy Writer — transitions the container trust policy safely.

Every write follows one pipeline::

    BACKUP → RENDER+VALIDATE → ATOMIC WRITE → VERIFY (→ RESTORE) → REPORT

INVARIANT: the live document is never missing and never half-written.
A document that does not parse is never installed; a document that fails
verification after install is replaced by the backup taken in the same run.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from soltrctl.domain.policy import PolicyMode, build_policy, detect_mode, parse_policy
from soltrctl.infrastructure.filesystem import (
    atomic_write_text,
    backup_file,
    list_backups,
    restore_file,
)
from soltrctl.services._helpers import describe_failure, now_compact
from soltrctl.services.base import BaseService
from soltrctl.services.result import MISSING_TOOL, POLICY_WRITE_FAILED, ServiceResult
from soltrctl.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from soltrctl.config.models import PolicyConfig

logger = logging.getLogger(__name__)

RestoreWhen = Literal["always", "on_error"]


def render_policy(mode: PolicyMode, config: PolicyConfig) -> str:
    """Serialize the complete document for *mode*."""
    document = build_policy(
        mode,
        registry=config.registry,
        repositories=config.signed_repositories,
        key_path=config.key_path,
        reject_unlisted=config.reject_unlisted,
    )
    return document.to_json()


class PolicyWriteError(Exception):
    """A policy write was refused or rolled back."""

    def __init__(
        self,
        message: str,
        *,
        backup_path: Path | None = None,
        warnings: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.backup_path = backup_path
        self.warnings = warnings or []


@dataclass(frozen=True)
class WriteOutcome:
    """What a successful write did."""

    mode: PolicyMode
    backup_path: Path | None
    warnings: list[str] = field(default_factory=list)


class TrustPolicyWriter:
    """Owns the live policy file, its backups, and the trust marker."""

    def __init__(self, config: PolicyConfig) -> None:
        self._config = config

    @property
    def path(self) -> Path:
        return self._config.path

    @property
    def marker_path(self) -> Path:
        return self._config.marker_path

    # -- inspection -------------------------------------------------------

    def current_mode(self) -> str:
        """``permissive`` / ``restrictive`` / ``unknown`` / ``missing``."""
        if not self.path.exists():
            return "missing"
        try:
            document = parse_policy(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.debug("Cannot classify %s: %s", self.path, exc)
            return "unknown"
        mode = detect_mode(document)
        return mode.value if mode is not None else "unknown"

    def backups(self) -> list[Path]:
        return list_backups(self.path)

    def writable(self) -> bool:
        """Whether this process may replace the policy and its marker."""
        return os.access(self.path.parent, os.W_OK)

    # -- writing ----------------------------------------------------------

    def write(self, mode: PolicyMode, *, require_backup: bool = False) -> WriteOutcome:
        """Install the document for *mode*.

        With *require_backup*, an existing document that cannot be backed
        up is left untouched.

        Raises:
            PolicyWriteError: backup (when required), rendering, writing, or
                verification failed. The live document is the pre-run one
                when this is raised.
        """
        warnings: list[str] = []
        existed = self.path.exists()

        # 1. BACKUP (before any mutation)
        backup_path = self._backup(warnings) if existed else None
        if require_backup and existed and backup_path is None:
            msg = f"Refusing to change {self.path}: no backup could be taken"
            raise PolicyWriteError(msg, warnings=warnings)

        # 2. RENDER + VALIDATE, before touching the live path
        with trace_span("render"):
            try:
                text = render_policy(mode, self._config)
                parse_policy(text)
            except ValueError as exc:
                msg = f"Refusing to install invalid {mode} policy: {exc}"
                raise PolicyWriteError(msg, backup_path=backup_path, warnings=warnings) from exc

        # 3. ATOMIC WRITE + 4. VERIFY
        with trace_span("write"):
            try:
                atomic_write_text(self.path, text)
                parse_policy(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.error("Policy write to %s failed: %s", self.path, exc)
                self._rollback(backup_path, existed=existed)
                msg = f"Failed to install {mode} policy at {self.path}: {exc}"
                raise PolicyWriteError(msg, backup_path=backup_path, warnings=warnings) from exc

        self._sync_marker(mode, warnings)
        logger.info("Installed %s trust policy at %s", mode, self.path)
        return WriteOutcome(mode=mode, backup_path=backup_path, warnings=warnings)

    @contextmanager
    def scoped(self, mode: PolicyMode, *, restore: RestoreWhen = "always") -> Iterator[WriteOutcome]:
        """Hold *mode* for the duration of a block.

        With ``restore="always"`` the prior document (and marker state) comes
        back on every exit path; with ``restore="on_error"`` only when the
        block raises. The scope is not entered unless the prior document
        was backed up.

        Raises:
            PolicyWriteError: entering or restoring failed.
        """
        existed = self.path.exists()
        marker_existed = self.marker_path.exists()
        outcome = self.write(mode, require_backup=True)
        try:
            yield outcome
        except BaseException:
            try:
                self._restore_prior(outcome.backup_path, existed=existed, marker=marker_existed)
            except PolicyWriteError as exc:
                logger.error("%s", exc)
            raise
        if restore == "always":
            self._restore_prior(outcome.backup_path, existed=existed, marker=marker_existed)

    # -- internals --------------------------------------------------------

    def _backup(self, warnings: list[str]) -> Path | None:
        try:
            backup_path = backup_file(self.path, now_compact())
        except OSError as exc:
            logger.warning("Could not back up %s: %s", self.path, exc)
            warnings.append(f"Could not back up {self.path}: {exc}")
            return None
        logger.info("Backed up %s to %s", self.path, backup_path)
        return backup_path

    def _rollback(self, backup_path: Path | None, *, existed: bool) -> None:
        """Put the pre-run document back after a failed install."""
        try:
            if backup_path is not None:
                restore_file(backup_path, self.path)
                logger.info("Restored %s from %s", self.path, backup_path)
            elif not existed:
                self.path.unlink(missing_ok=True)
            else:
                logger.error("No backup of %s available to restore", self.path)
        except (OSError, ValueError) as exc:
            logger.error("Restore of %s failed: %s", self.path, exc)

    def _restore_prior(self, backup_path: Path | None, *, existed: bool, marker: bool) -> None:
        if backup_path is None and existed:
            msg = f"Cannot restore {self.path}: no backup was taken"
            raise PolicyWriteError(msg)
        try:
            if backup_path is not None:
                restore_file(backup_path, self.path)
            else:
                self.path.unlink(missing_ok=True)
            if marker:
                self.marker_path.touch()
            else:
                self.marker_path.unlink(missing_ok=True)
        except (OSError, ValueError) as exc:
            msg = f"Failed to restore {self.path}: {exc}"
            raise PolicyWriteError(msg, backup_path=backup_path) from exc
        logger.info("Restored prior trust policy at %s", self.path)

    def _sync_marker(self, mode: PolicyMode, warnings: list[str]) -> None:
        try:
            if mode is PolicyMode.PERMISSIVE:
                self.marker_path.touch()
            else:
                self.marker_path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not update trust marker %s: %s", self.marker_path, exc)
            warnings.append(f"Could not update trust marker {self.marker_path}: {exc}")


class PolicyService(BaseService):
    """``soltrctl policy`` operations."""

    @property
    def writer(self) -> TrustPolicyWriter:
        return TrustPolicyWriter(self._settings.policy)

    @traced
    def status(self) -> ServiceResult:
        writer = self.writer
        backups = writer.backups()
        return ServiceResult(
            ok=True,
            op="policy_status",
            data={
                "path": str(writer.path),
                "mode": writer.current_mode(),
                "marker": writer.marker_path.exists(),
                "marker_path": str(writer.marker_path),
                "backups": len(backups),
                "latest_backup": str(backups[-1]) if backups else None,
            },
        )

    @traced
    def relax(self) -> ServiceResult:
        return self._transition("policy_relax", PolicyMode.PERMISSIVE)

    @traced
    def restrict(self) -> ServiceResult:
        return self._transition("policy_restrict", PolicyMode.RESTRICTIVE)

    @traced
    def emergency_fix(self) -> ServiceResult:
        """Relax, upgrade the image, then lock the policy back down.

        A failed upgrade restores the pre-run document.
        """
        op = "policy_emergency_fix"
        if not self._host.capabilities.has("bootc"):
            return ServiceResult.failure(op, MISSING_TOOL, "bootc is not installed")

        writer = self.writer
        if not writer.writable():
            return _not_writable(op, writer)
        argv = self._host.privileged(["bootc", "upgrade"])
        prior_mode = writer.current_mode()
        warnings: list[str] = []
        backup_path: Path | None = None
        try:
            with writer.scoped(PolicyMode.PERMISSIVE, restore="on_error") as relaxed:
                backup_path = relaxed.backup_path
                warnings.extend(relaxed.warnings)
                self._run(argv)
        except PolicyWriteError as exc:
            return self._write_failure(op, exc, warnings=warnings)
        except (OSError, subprocess.CalledProcessError) as exc:
            message = describe_failure(argv, exc)
            if writer.current_mode() == prior_mode:
                message += "; trust policy restored from backup"
            else:
                message += self._lock_down(writer, warnings)
            return ServiceResult.failure(
                op,
                POLICY_WRITE_FAILED,
                message,
                warnings=warnings,
                **_backup_detail(backup_path),
            )

        try:
            locked = writer.write(PolicyMode.RESTRICTIVE)
        except PolicyWriteError as exc:
            return self._write_failure(op, exc, warnings=warnings)
        warnings.extend(locked.warnings)

        self._dispatch_event(
            "post_policy_change",
            mode=PolicyMode.RESTRICTIVE.value,
            backup_path=str(backup_path) if backup_path else None,
        )
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "path": str(writer.path),
                "mode": PolicyMode.RESTRICTIVE.value,
                "backup_path": str(backup_path) if backup_path else None,
                "upgraded": True,
            },
            warnings=warnings,
        )

    # ------------------------------------------------------------------

    @staticmethod
    def _lock_down(writer: TrustPolicyWriter, warnings: list[str]) -> str:
        """Leave the restrictive document behind when the restore did not happen."""
        try:
            locked = writer.write(PolicyMode.RESTRICTIVE)
        except PolicyWriteError as exc:
            logger.error("Could not lock down %s: %s", writer.path, exc)
            return f"; restore failed and the restrictive policy could not be written: {exc}"
        warnings.extend(locked.warnings)
        return "; restore failed, restrictive policy written instead"

    def _transition(self, op: str, mode: PolicyMode) -> ServiceResult:
        writer = self.writer
        if not writer.writable():
            return _not_writable(op, writer)
        try:
            outcome = writer.write(mode)
        except PolicyWriteError as exc:
            return self._write_failure(op, exc)

        backup = str(outcome.backup_path) if outcome.backup_path else None
        self._dispatch_event("post_policy_change", mode=mode.value, backup_path=backup)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "path": str(writer.path),
                "mode": mode.value,
                "backup_path": backup,
                "marker": writer.marker_path.exists(),
            },
            warnings=list(outcome.warnings),
        )

    @staticmethod
    def _write_failure(
        op: str, exc: PolicyWriteError, *, warnings: list[str] | None = None
    ) -> ServiceResult:
        return ServiceResult.failure(
            op,
            POLICY_WRITE_FAILED,
            str(exc),
            warnings=[*(warnings or []), *exc.warnings],
            **_backup_detail(exc.backup_path),
        )


def _backup_detail(backup_path: Path | None) -> dict[str, Any]:
    return {"backup_path": str(backup_path)} if backup_path is not None else {}


def _not_writable(op: str, writer: TrustPolicyWriter) -> ServiceResult:
    return ServiceResult.failure(
        op,
        POLICY_WRITE_FAILED,
        f"Cannot write {writer.path}: permission denied",
        hint="Run this command with sudo",
    )
