"""Buffered Rich consoles.

Renderers draw into an in-memory console and hand the text back to
``AppContext.emit``, which decides between stdout and stderr. Captured
tool output (``nix profile list``, ``distrobox list``...) bypasses Rich
entirely through :func:`write_raw` so it reaches the user byte for byte.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

SOLTR_THEME = Theme(
    {
        "soltr.ok": "bold green",
        "soltr.error": "bold red",
        "soltr.warning": "bold yellow",
        "soltr.op": "bold cyan",
        "soltr.key": "dim",
        "soltr.path": "dim",
        "soltr.command": "italic",
        "soltr.hint": "yellow",
        "soltr.skipped": "dim",
    }
)

DEFAULT_WIDTH = 120


def _buffer(console: Console) -> StringIO:
    buffer = console.file
    assert isinstance(buffer, StringIO), "console was not made by create_console()"
    return buffer


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """New console drawing into a fresh buffer; color follows Rich's TTY detection."""
    return Console(
        file=StringIO(),
        theme=SOLTR_THEME,
        width=width or DEFAULT_WIDTH,
        no_color=no_color,
        highlight=False,
    )


def get_output(console: Console) -> str:
    return _buffer(console).getvalue()


def write_raw(console: Console, text: str) -> None:
    """Append *text* verbatim, newline-terminated; no markup, no wrapping."""
    if text:
        _buffer(console).write(text if text.endswith("\n") else text + "\n")
