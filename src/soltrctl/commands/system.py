"""Command group: whole-system maintenance (soltrctl system)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from soltrctl.commands._base import SoltrGroup
from soltrctl.domain.images import DESKTOP_LABELS, Channel, Desktop

if TYPE_CHECKING:
    from soltrctl.commands._context import AppContext

_SYSTEM_EXAMPLES = """\
  soltrctl system update
  soltrctl system clean
  soltrctl system rebase stable kde
  soltrctl system containers --tool toolbox"""

_CANCEL = "cancel"


@click.group(cls=SoltrGroup, examples=_SYSTEM_EXAMPLES)
def system() -> None:
    """Update, clean, and rebase the SoltrOS system."""


@system.command(
    examples="""\
  soltrctl system update
  soltrctl -v system update"""
)
@click.pass_obj
def update(app: AppContext) -> None:
    """Update the OS image, Flatpaks, Distrobox containers, and Nix packages."""
    from soltrctl.services.system import SystemService

    app.emit(SystemService(app.host).update())


@system.command(
    examples="""\
  soltrctl system clean"""
)
@click.pass_obj
def clean(app: AppContext) -> None:
    """Remove old deployments, unused Flatpak runtimes, and old journal logs."""
    from soltrctl.services.system import SystemService

    app.emit(SystemService(app.host).clean())


@system.command(
    examples="""\
  soltrctl system rebase stable
  soltrctl system rebase unstable cosmic
  soltrctl --no-interact system rebase stable plasma""",
)
@click.argument("channel", type=click.Choice([c.value for c in Channel]))
@click.argument("desktop", required=False)
@click.pass_obj
def rebase(app: AppContext, channel: str, desktop: str | None) -> None:
    """Switch to the CHANNEL image (stable = LTS) for DESKTOP.

    DESKTOP is one of kde (plasma), cosmic, gnome, or hyprvibe. Without it
    you are prompted; with --no-interact KDE Plasma is used.
    """
    from soltrctl.services.system import SystemService

    target_channel = Channel(channel)
    if desktop is None:
        desktop = _prompt_desktop(app, target_channel)
    app.emit(SystemService(app.host).rebase(target_channel, desktop))


def _prompt_desktop(app: AppContext, channel: Channel) -> str:
    """Ask which desktop variant to switch to."""
    if app.settings.no_interact:
        return Desktop.KDE.value
    choices = [d.value for d in Desktop]
    label = "LTS" if channel is Channel.STABLE else "Unstable"
    click.echo(f"Select SoltrOS {label} desktop:")
    for value in choices:
        click.echo(f"  {value:<9} {DESKTOP_LABELS[Desktop(value)]}")
    selected = click.prompt(
        "Desktop",
        type=click.Choice([*choices, _CANCEL]),
        default=Desktop.KDE.value,
        show_choices=False,
    )
    if selected == _CANCEL:
        click.echo("Canceled.")
        raise SystemExit(1)
    return str(selected)


@system.command(
    examples="""\
  soltrctl system containers
  soltrctl system containers --tool toolbox""",
)
@click.option(
    "--tool",
    type=click.Choice(["distrobox", "toolbox"]),
    default="distrobox",
    show_default=True,
    help="Container tool to query.",
)
@click.pass_obj
def containers(app: AppContext, tool: str) -> None:
    """List Distrobox or Toolbox containers."""
    from soltrctl.services.system import SystemService

    app.emit(SystemService(app.host).containers(tool))
