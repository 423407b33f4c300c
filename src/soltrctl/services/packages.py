"""PackageService — the ``soltrctl nix`` verbs over ``nix profile``.

Each operation runs exactly one external command (``info`` may run a
second, unstructured lookup). State-changing operations dispatch the
``post_profile_change`` hook on success; the hook can never change the
reported outcome.
"""

from __future__ import annotations

import json
import logging
import shlex
import subprocess
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from soltrctl.domain.packages import flake_reference
from soltrctl.services._helpers import describe_failure
from soltrctl.services.base import BaseService
from soltrctl.services.result import (
    EXTERNAL_COMMAND_FAILED,
    VALIDATION_ERROR,
    ServiceResult,
)
from soltrctl.services.telemetry import traced

if TYPE_CHECKING:
    from soltrctl.infrastructure.host import Host

logger = logging.getLogger(__name__)

DEFAULT_PROG = "soltrctl nix"


class PackageService(BaseService):
    """Validated front end over the Nix profile of the invoking user."""

    def __init__(self, host: Host, *, prog: str = DEFAULT_PROG) -> None:
        super().__init__(host)
        self._prog = prog

    # ------------------------------------------------------------------
    # State-changing verbs
    # ------------------------------------------------------------------

    @traced
    def install(self, name: str) -> ServiceResult:
        """Install ``<flake_path>#<name>`` into the profile.

        The name is validated before any process is started.
        """
        flake_path = str(self._settings.nix.flake_path)
        try:
            ref = flake_reference(flake_path, name)
        except ValueError as exc:
            return ServiceResult.failure(
                "install",
                VALIDATION_ERROR,
                str(exc),
                usage=f"Usage: {self._prog} install <package>",
            )

        result = self._external(
            "install",
            ["nix", "profile", "install", ref],
            hint=f"Use '{self._prog} search {name}' to find available packages",
            package=name,
            reference=ref,
        )
        return self._after_profile_change(result, target=name)

    @traced
    def remove(self, identifier: str) -> ServiceResult:
        """Remove a profile element by name, numeric index, or store path."""
        if not identifier:
            return ServiceResult.failure(
                "remove",
                VALIDATION_ERROR,
                "Package identifier (name, index, or path) is required",
                usage=f"Usage: {self._prog} remove <identifier>",
            )
        result = self._external(
            "remove",
            ["nix", "profile", "remove", identifier],
            hint=f"Use '{self._prog} list' to see installed packages",
            identifier=identifier,
        )
        return self._after_profile_change(result, target=identifier)

    @traced
    def upgrade(self) -> ServiceResult:
        pattern = self._settings.nix.upgrade_pattern
        result = self._external(
            "upgrade",
            ["nix", "profile", "upgrade", pattern],
            pattern=pattern,
        )
        return self._after_profile_change(result, target=None)

    @traced
    def rollback(self, generation: str | None = None) -> ServiceResult:
        """Roll back one generation, or to *generation* when given."""
        argv = ["nix", "profile", "rollback"]
        if generation:
            argv += ["--to", generation]
        result = self._external(
            "rollback",
            argv,
            hint=f"Use '{self._prog} history' to see available generations",
            generation=generation,
        )
        return self._after_profile_change(result, target=generation)

    @traced
    def update(self) -> ServiceResult:
        """Refresh the flake lock file.

        Falls back to a pathless ``nix flake update`` (with a warning) when
        the configured flake directory does not exist.
        """
        flake_path = self._settings.nix.flake_path
        warnings: list[str] = []
        if flake_path.is_dir():
            argv = ["nix", "flake", "update", "--flake", str(flake_path)]
        else:
            warnings.append(
                f"Flake directory {flake_path} not found, updating without a flake path"
            )
            argv = ["nix", "flake", "update"]

        result = self._external("update", argv, flake_path=str(flake_path))
        if warnings:
            result = result.model_copy(update={"warnings": [*warnings, *result.warnings]})
        return result

    @traced
    def clean(self) -> ServiceResult:
        return self._external("clean", ["nix-collect-garbage", "-d"])

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @traced
    def list_packages(self) -> ServiceResult:
        return self._external("list", ["nix", "profile", "list"], capture=True)

    @traced
    def history(self) -> ServiceResult:
        return self._external("history", ["nix", "profile", "history"], capture=True)

    @traced
    def search(self, query: str) -> ServiceResult:
        if not query:
            return ServiceResult.failure(
                "search",
                VALIDATION_ERROR,
                "Search query is required",
                usage=f"Usage: {self._prog} search <query>",
            )
        return self._external(
            "search",
            ["nix", "search", self._settings.nix.nixpkgs_ref, query],
            capture=True,
            env=self._search_env(),
            query=query,
        )

    @traced
    def info(self, name: str) -> ServiceResult:
        """Describe *name*: structured lookup first, plain search as fallback.

        Structured lookup problems (non-zero exit, bad JSON, no match) are
        logged at debug level only. Only a failing fallback is an error.
        """
        if not name:
            return ServiceResult.failure(
                "info",
                VALIDATION_ERROR,
                "Package name is required",
                usage=f"Usage: {self._prog} info <package>",
            )

        ref = self._settings.nix.nixpkgs_ref
        env = self._search_env()
        argv = ["nix", "search", ref, f"^{name}$", "--json"]
        try:
            proc = self._run(argv, capture=True, env=env)
            entries = json.loads(proc.stdout or "")
        except (OSError, subprocess.CalledProcessError, json.JSONDecodeError) as exc:
            logger.debug("Structured lookup for %s failed: %s", name, exc)
            entries = None

        if isinstance(entries, dict) and entries:
            return ServiceResult(
                ok=True,
                op="info",
                data={
                    "name": name,
                    "command": shlex.join(argv),
                    "packages": _summarize_entries(entries),
                },
            )
        if entries is not None:
            logger.debug("Structured lookup for %s returned no usable entries", name)

        return self._external(
            "info",
            ["nix", "search", ref, name],
            capture=True,
            env=env,
            name=name,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _search_env(self) -> dict[str, str] | None:
        if self._settings.nix.allow_unfree:
            return {"NIXPKGS_ALLOW_UNFREE": "1"}
        return None

    def _external(
        self,
        op: str,
        argv: Sequence[str],
        *,
        capture: bool = False,
        env: Mapping[str, str] | None = None,
        hint: str | None = None,
        **data: Any,
    ) -> ServiceResult:
        """Run *argv* once and translate the outcome into a ServiceResult."""
        try:
            proc = self._run(argv, capture=capture, env=env)
        except (OSError, subprocess.CalledProcessError) as exc:
            detail: dict[str, Any] = {}
            if hint:
                detail["hint"] = hint
            stderr = getattr(exc, "stderr", None)
            if stderr:
                detail["stderr"] = stderr
            return ServiceResult.failure(
                op, EXTERNAL_COMMAND_FAILED, describe_failure(argv, exc), **detail
            )

        payload: dict[str, Any] = {"command": shlex.join(argv), **data}
        if capture:
            payload["output"] = proc.stdout
        return ServiceResult(ok=True, op=op, data=payload)

    def _after_profile_change(self, result: ServiceResult, *, target: str | None) -> ServiceResult:
        """Dispatch ``post_profile_change`` after a successful state change."""
        if not result.ok:
            return result
        reports = self._dispatch_event("post_profile_change", op=result.op, target=target)
        reports = [r for r in reports if r is not None]
        if not reports:
            return result
        return result.model_copy(update={"meta": {**(result.meta or {}), "refresh": reports}})


def _summarize_entries(entries: dict[str, Any]) -> list[dict[str, str]]:
    """Flatten ``nix search --json`` output into table rows."""
    rows: list[dict[str, str]] = []
    for attr, entry in sorted(entries.items()):
        if not isinstance(entry, dict):
            entry = {}
        rows.append(
            {
                "attr": attr,
                "pname": str(entry.get("pname", "")),
                "version": str(entry.get("version", "")),
                "description": str(entry.get("description", "")),
            }
        )
    return rows
