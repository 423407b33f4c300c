"""Synchronous external command execution.

Every call blocks until the child exits. There is no timeout: a hung
upgrade or network fetch blocks until interrupted.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from collections.abc import Mapping, Sequence

logger = logging.getLogger(__name__)


class CommandRunner:
    """Thin wrapper over :func:`subprocess.run`.

    ``capture=False`` streams the child's stdout/stderr straight to the
    terminal (installs, upgrades); ``capture=True`` collects text output
    for the caller to print or parse.
    """

    def run(
        self,
        argv: Sequence[str],
        *,
        capture: bool = False,
        env: Mapping[str, str] | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Run *argv* and wait for it.

        Raises:
            subprocess.CalledProcessError: non-zero exit and *check* is True.
            OSError: the executable could not be started.
        """
        logger.debug("Running: %s", shlex.join(argv))
        merged_env = {**os.environ, **env} if env else None
        return subprocess.run(
            list(argv),
            capture_output=capture,
            text=True,
            env=merged_env,
            check=check,
        )
