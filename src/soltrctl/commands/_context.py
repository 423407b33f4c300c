"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``.  Provides lazy Host initialization and centralized
result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from soltrctl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from soltrctl.config.settings import SoltrSettings
    from soltrctl.infrastructure.host import Host
    from soltrctl.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    Subcommands access it via ``@click.pass_obj``.  The host is lazily
    initialized on first use so ``--help`` and ``--version`` never inspect
    PATH or load plugins.
    """

    def __init__(
        self,
        settings: SoltrSettings,
        *,
        host: Host | None = None,
        command: str | None = None,
    ) -> None:
        self.settings = settings
        self._host = host

        from soltrctl.config.logging import bind_invocation, configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)
        bind_invocation(command=command)

        if settings.verbose:
            from soltrctl.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def host(self) -> Host:
        """The host instance (created lazily on first access)."""
        if self._host is None:
            from soltrctl.infrastructure.host import Host

            self._host = Host(self.settings)
            self._host.init_plugins()
        return self._host

    def warn(self, message: str) -> None:
        """Print a warning to stderr unless ``--quiet`` is set."""
        if not self.settings.quiet:
            click.echo(f"WARNING: {message}", err=True)

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(quiet=self.settings.quiet, verbose=self.settings.verbose)
        output = format_result(result, settings=settings)
        if result.ok:
            if output:
                click.echo(output)
            for warning in result.warnings:
                self.warn(warning)
        else:
            for warning in result.warnings:
                self.warn(warning)
            click.echo(output, err=True)
            raise SystemExit(1)
