"""Custom Click base classes with --examples support.

Provides SoltrCommand and SoltrGroup that accept an ``examples`` parameter.
When ``--examples`` is passed, the command prints usage examples and exits.
This keeps ``--help`` concise while making examples available on demand.

VerbGroup additionally reports an unknown verb as a regular soltrctl
error (exit 1) instead of Click's usage error (exit 2).
"""

from __future__ import annotations

from typing import Any

import click


def _add_examples_option(cmd: click.Command | click.Group, examples: str) -> None:
    """Attach an eager ``--examples`` flag to a Click command or group."""

    def show_examples(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(examples)
        ctx.exit(0)

    cmd.params.append(
        click.Option(
            ["--examples"],
            is_flag=True,
            expose_value=False,
            is_eager=True,
            callback=show_examples,
            help="Show usage examples.",
        )
    )


class SoltrCommand(click.Command):
    """Click Command subclass that supports an ``--examples`` flag."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)


class SoltrGroup(click.Group):
    """Click Group subclass that supports an ``--examples`` flag.

    Sets ``command_class = SoltrCommand`` so all subcommands automatically
    accept the ``examples`` parameter without explicit ``cls=`` each time.
    """

    command_class = SoltrCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)


class VerbGroup(SoltrGroup):
    """A group whose unknown subcommands fail like any other soltrctl error."""

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[str | None, click.Command | None, list[str]]:
        name = args[0] if args else ""
        if (
            name
            and not name.startswith("-")
            and self.get_command(ctx, name) is None
            and not ctx.resilient_parsing
        ):
            from soltrctl.commands._context import AppContext
            from soltrctl.services.result import VALIDATION_ERROR, ServiceResult

            app = ctx.find_object(AppContext)
            assert app is not None
            app.emit(
                ServiceResult.failure(
                    self.name or "command",
                    VALIDATION_ERROR,
                    f"Unknown command '{name}'",
                    usage=f"Usage: {ctx.command_path} <command> [ARGS]...",
                    hint=f"Run '{ctx.command_path} help' to list commands",
                )
            )
        return super().resolve_command(ctx, args)
