"""Root CLI group for soltrctl with global flags and command registration."""

from __future__ import annotations

import click

from soltrctl import __version__
from soltrctl.commands import register_commands
from soltrctl.commands._context import AppContext
from soltrctl.config.settings import SoltrSettings


@click.group(name="soltrctl", invoke_without_command=True)
@click.version_option(version=__version__, prog_name="soltrctl")
@click.option("-q", "--quiet", is_flag=True, envvar="QUIET", help="Errors only.")
@click.option(
    "-v", "--verbose", is_flag=True, envvar="VERBOSE", help="Detailed output with debug info."
)
@click.option(
    "--flake-path",
    default=None,
    envvar="NIX_FLAKE_PATH",
    help="Nix flake to install packages from.",
)
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("--no-interact", is_flag=True, help="Non-interactive mode (no prompts).")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.pass_context
def cli(
    ctx: click.Context,
    quiet: bool,
    verbose: bool,
    flake_path: str | None,
    log_json: bool,
    no_interact: bool,
    config_path: str | None,
) -> None:
    """soltrctl — SoltrOS maintenance helper."""
    ctx.ensure_object(dict)
    settings = SoltrSettings.from_cli(
        config_path=config_path,
        flake_path=flake_path,
        quiet=quiet or None,
        verbose=verbose or None,
        log_json=log_json or None,
        no_interact=no_interact or None,
    )
    ctx.obj = AppContext(settings, command=ctx.invoked_subcommand)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
