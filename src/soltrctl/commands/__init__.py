"""Subcommand modules for soltrctl.

Provides register_commands() which uses deferred imports to keep
``soltrctl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the command groups on the root CLI group."""
    from soltrctl.commands.nix import nix
    from soltrctl.commands.policy import policy
    from soltrctl.commands.system import system

    cli.add_command(nix)
    cli.add_command(policy)
    cli.add_command(system)
