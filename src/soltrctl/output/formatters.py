"""Output mode selection.

The CLI renders ServiceResult for humans only: the default Rich view,
a terse ``--quiet`` view, or a ``--verbose`` view with diagnostics.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from soltrctl.output.renderers import render_quiet, render_result

if TYPE_CHECKING:
    from soltrctl.services.result import ServiceResult


@dataclass(frozen=True)
class OutputSettings:
    """How a result should be rendered."""

    quiet: bool = False
    verbose: bool = False


def format_result(result: ServiceResult, *, settings: OutputSettings | None = None) -> str:
    """Format a ServiceResult for display."""
    settings = settings or OutputSettings()
    if settings.quiet:
        return render_quiet(result)
    return render_result(result, verbose=settings.verbose)
