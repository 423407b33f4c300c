"""Command group: Nix profile package management (soltrctl nix)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from soltrctl.commands._base import VerbGroup
from soltrctl.domain.packages import (
    VERB_SPECS,
    Invocation,
    MissingArgumentError,
    Verb,
    bind_arguments,
)

if TYPE_CHECKING:
    from soltrctl.commands._context import AppContext
    from soltrctl.services.packages import PackageService

_NIX_EXAMPLES = """\
  soltrctl nix install firefox
  soltrctl nix search editor
  soltrctl nix remove 3
  soltrctl nix rollback
  soltrctl --flake-path ~/src/my-flake nix update"""

# Verbs take free-form positionals; arity is enforced by bind_arguments.
_VERB_SETTINGS = {"ignore_unknown_options": True}


@click.group(cls=VerbGroup, examples=_NIX_EXAMPLES, invoke_without_command=True)
@click.pass_context
def nix(ctx: click.Context) -> None:
    """Manage packages in your Nix profile."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help(), err=True)
        ctx.exit(1)


def _bind(ctx: click.Context, verb: Verb, args: tuple[str, ...]) -> Invocation:
    """Apply the verb's arity policy, emitting usage or a surplus warning."""
    from soltrctl.services.result import VALIDATION_ERROR, ServiceResult

    app: AppContext = ctx.obj
    try:
        invocation = bind_arguments(verb, args)
    except MissingArgumentError as exc:
        app.emit(
            ServiceResult.failure(
                verb.value,
                VALIDATION_ERROR,
                str(exc),
                usage=exc.spec.usage(_prog(ctx)),
            )
        )
        raise SystemExit(1) from exc
    if invocation.surplus_warning:
        app.warn(invocation.surplus_warning)
    return invocation


def _prog(ctx: click.Context) -> str:
    return ctx.parent.command_path if ctx.parent else "soltrctl nix"


def _service(ctx: click.Context) -> PackageService:
    """Build the service, failing early when nix itself is missing."""
    from soltrctl.services.packages import PackageService
    from soltrctl.services.result import MISSING_TOOL, ServiceResult

    app: AppContext = ctx.obj
    if not app.host.capabilities.has("nix"):
        app.emit(
            ServiceResult.failure(
                "nix",
                MISSING_TOOL,
                "Nix is not installed or not in PATH",
                hint="Install Nix, then open a new shell",
            )
        )
    return PackageService(app.host, prog=_prog(ctx))


@nix.command(
    help=VERB_SPECS[Verb.INSTALL].summary,
    context_settings=_VERB_SETTINGS,
    examples="""\
  soltrctl nix install firefox
  soltrctl nix install nodejs_22""",
)
@click.argument("args", nargs=-1, metavar="<package>")
@click.pass_context
def install(ctx: click.Context, args: tuple[str, ...]) -> None:
    invocation = _bind(ctx, Verb.INSTALL, args)
    ctx.obj.emit(_service(ctx).install(invocation.argument or ""))


@nix.command(
    help=VERB_SPECS[Verb.REMOVE].summary,
    context_settings=_VERB_SETTINGS,
    examples="""\
  soltrctl nix remove firefox
  soltrctl nix remove 3
  soltrctl nix remove /nix/store/...-firefox""",
)
@click.argument("args", nargs=-1, metavar="<identifier>")
@click.pass_context
def remove(ctx: click.Context, args: tuple[str, ...]) -> None:
    invocation = _bind(ctx, Verb.REMOVE, args)
    ctx.obj.emit(_service(ctx).remove(invocation.argument or ""))


@nix.command(
    "list",
    help=VERB_SPECS[Verb.LIST].summary,
    context_settings=_VERB_SETTINGS,
    examples="""\
  soltrctl nix list
  soltrctl -q nix list""",
)
@click.argument("args", nargs=-1)
@click.pass_context
def list_cmd(ctx: click.Context, args: tuple[str, ...]) -> None:
    _bind(ctx, Verb.LIST, args)
    ctx.obj.emit(_service(ctx).list_packages())


@nix.command(
    help=VERB_SPECS[Verb.SEARCH].summary,
    context_settings=_VERB_SETTINGS,
    examples="""\
  soltrctl nix search firefox
  soltrctl nix search 'python3.*requests'""",
)
@click.argument("args", nargs=-1, metavar="<query>")
@click.pass_context
def search(ctx: click.Context, args: tuple[str, ...]) -> None:
    invocation = _bind(ctx, Verb.SEARCH, args)
    ctx.obj.emit(_service(ctx).search(invocation.argument or ""))


@nix.command(
    help=VERB_SPECS[Verb.INFO].summary,
    context_settings=_VERB_SETTINGS,
    examples="""\
  soltrctl nix info firefox""",
)
@click.argument("args", nargs=-1, metavar="<package>")
@click.pass_context
def info(ctx: click.Context, args: tuple[str, ...]) -> None:
    invocation = _bind(ctx, Verb.INFO, args)
    ctx.obj.emit(_service(ctx).info(invocation.argument or ""))


@nix.command(
    help=VERB_SPECS[Verb.UPGRADE].summary,
    context_settings=_VERB_SETTINGS,
    examples="""\
  soltrctl nix upgrade""",
)
@click.argument("args", nargs=-1)
@click.pass_context
def upgrade(ctx: click.Context, args: tuple[str, ...]) -> None:
    _bind(ctx, Verb.UPGRADE, args)
    ctx.obj.emit(_service(ctx).upgrade())


@nix.command(
    help=VERB_SPECS[Verb.UPDATE].summary,
    context_settings=_VERB_SETTINGS,
    examples="""\
  soltrctl nix update
  NIX_FLAKE_PATH=~/src/my-flake soltrctl nix update""",
)
@click.argument("args", nargs=-1)
@click.pass_context
def update(ctx: click.Context, args: tuple[str, ...]) -> None:
    _bind(ctx, Verb.UPDATE, args)
    ctx.obj.emit(_service(ctx).update())


@nix.command(
    help=VERB_SPECS[Verb.HISTORY].summary,
    context_settings=_VERB_SETTINGS,
    examples="""\
  soltrctl nix history""",
)
@click.argument("args", nargs=-1)
@click.pass_context
def history(ctx: click.Context, args: tuple[str, ...]) -> None:
    _bind(ctx, Verb.HISTORY, args)
    ctx.obj.emit(_service(ctx).history())


@nix.command(
    help=VERB_SPECS[Verb.ROLLBACK].summary,
    context_settings=_VERB_SETTINGS,
    examples="""\
  soltrctl nix rollback
  soltrctl nix rollback 42""",
)
@click.argument("args", nargs=-1, metavar="[generation]")
@click.pass_context
def rollback(ctx: click.Context, args: tuple[str, ...]) -> None:
    invocation = _bind(ctx, Verb.ROLLBACK, args)
    ctx.obj.emit(_service(ctx).rollback(invocation.argument))


@nix.command(
    help=VERB_SPECS[Verb.CLEAN].summary,
    context_settings=_VERB_SETTINGS,
    examples="""\
  soltrctl nix clean""",
)
@click.argument("args", nargs=-1)
@click.pass_context
def clean(ctx: click.Context, args: tuple[str, ...]) -> None:
    _bind(ctx, Verb.CLEAN, args)
    ctx.obj.emit(_service(ctx).clean())


@nix.command("help", context_settings=_VERB_SETTINGS)
@click.argument("args", nargs=-1)
@click.pass_context
def help_cmd(ctx: click.Context, args: tuple[str, ...]) -> None:
    """Show this help message."""
    assert ctx.parent is not None
    click.echo(ctx.parent.get_help())
