"""Pluggy hook specifications for soltrctl lifecycle events.

Events are dispatched synchronously, after the operation has already
succeeded. A hook implementation can never change the reported outcome.
"""

from __future__ import annotations

from typing import Any

import pluggy

hookspec = pluggy.HookspecMarker("soltrctl")


class SoltrctlHookSpec:
    """Hook specifications for the soltrctl plugin system."""

    @hookspec
    def post_profile_change(self, op: str, target: str | None) -> dict[str, Any] | None:
        """Called after install / remove / upgrade / rollback changed the Nix profile.

        May return a report dict; reports are attached to the result's meta.
        """

    @hookspec
    def post_policy_change(self, mode: str, backup_path: str | None) -> None:
        """Called after the container trust policy was rewritten."""
