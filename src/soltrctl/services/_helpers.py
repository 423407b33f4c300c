"""Shared service-layer helper functions."""

from __future__ import annotations

import shlex
import subprocess
from collections.abc import Sequence
from datetime import UTC, datetime


def now_compact() -> str:
    """Current UTC time as compact ISO (YYYYMMDDTHHmmss, for backup filenames)."""
    return datetime.now(UTC).strftime("%Y%m%dT%H%M%S")


def describe_failure(argv: Sequence[str], exc: Exception) -> str:
    """One-line description of why *argv* failed.

    Examples:
        >>> describe_failure(["nix", "profile", "list"], FileNotFoundError(2, "nope"))
        'nix profile list: [Errno 2] nope'
    """
    if isinstance(exc, subprocess.CalledProcessError):
        return f"{shlex.join(argv)} exited with status {exc.returncode}"
    return f"{shlex.join(argv)}: {exc}"
