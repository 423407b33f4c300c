"""BaseService — abstract foundation for all soltrctl services.

Every service receives a :class:`Host` at construction time. The Host
provides settings, the command runner, discovered capabilities, and the
plugin hook relay.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from soltrctl.services.telemetry import command_span

if TYPE_CHECKING:
    from soltrctl.config.settings import SoltrSettings
    from soltrctl.infrastructure.host import Host

logger = logging.getLogger(__name__)


class BaseService:
    """Abstract base for all service-layer classes.

    Usage::

        class PackageService(BaseService):
            def list_packages(self) -> ServiceResult:
                proc = self._run(["nix", "profile", "list"], capture=True)
                ...
    """

    def __init__(self, host: Host) -> None:
        self._host = host

    @property
    def _settings(self) -> SoltrSettings:
        return self._host.settings

    def _run(
        self,
        argv: Sequence[str],
        *,
        capture: bool = False,
        env: Mapping[str, str] | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Run an external command under a telemetry span.

        Raises whatever the runner raises (``CalledProcessError``, ``OSError``).
        """
        with command_span(argv) as span:
            proc = self._host.runner.run(argv, capture=capture, env=env, check=check)
            if span is not None:
                span.annotate("returncode", proc.returncode)
            return proc

    def _dispatch_event(self, hook_name: str, **payload: Any) -> list[Any]:
        """Call a lifecycle hook synchronously and return the plugin results.

        No-op (empty list) if plugins aren't initialized.

        INVARIANT: Plugin failures are debug logs, never errors or warnings.
        """
        pm = self._host.plugin_manager
        if pm is None:
            return []
        try:
            return list(getattr(pm.hook, hook_name)(**payload))
        except Exception:
            logger.debug("Hook %s failed", hook_name, exc_info=True)
            return []
