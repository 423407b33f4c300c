"""Command group: container trust policy (soltrctl policy)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from soltrctl.commands._base import SoltrGroup

if TYPE_CHECKING:
    from soltrctl.commands._context import AppContext

_POLICY_EXAMPLES = """\
  soltrctl policy status
  sudo soltrctl policy relax
  sudo soltrctl policy restrict
  sudo soltrctl policy emergency-fix"""


@click.group(cls=SoltrGroup, examples=_POLICY_EXAMPLES)
def policy() -> None:
    """Inspect and switch the container image trust policy."""


@policy.command(
    examples="""\
  soltrctl policy status
  soltrctl -v policy status"""
)
@click.pass_obj
def status(app: AppContext) -> None:
    """Show the live policy mode, trust marker, and backup count."""
    from soltrctl.services.policy import PolicyService

    app.emit(PolicyService(app.host).status())


@policy.command(
    examples="""\
  sudo soltrctl policy relax"""
)
@click.pass_obj
def relax(app: AppContext) -> None:
    """Install the permissive policy (accept unsigned SoltrOS images)."""
    from soltrctl.services.policy import PolicyService

    app.emit(PolicyService(app.host).relax())


@policy.command(
    examples="""\
  sudo soltrctl policy restrict"""
)
@click.pass_obj
def restrict(app: AppContext) -> None:
    """Install the restrictive policy (require sigstore signatures)."""
    from soltrctl.services.policy import PolicyService

    app.emit(PolicyService(app.host).restrict())


@policy.command(
    "emergency-fix",
    examples="""\
  sudo soltrctl policy emergency-fix""",
)
@click.pass_obj
def emergency_fix(app: AppContext) -> None:
    """Relax trust, upgrade the system image, then restore signature checks.

    Use when signature verification blocks ``bootc upgrade``. If the
    upgrade fails the original policy is put back.
    """
    from soltrctl.services.policy import PolicyService

    app.emit(PolicyService(app.host).emergency_fix())
