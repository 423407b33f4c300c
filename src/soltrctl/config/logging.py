"""Diagnostic logging: structlog rendering on top of stdlib ``logging``.

Modules log through ``logging.getLogger(__name__)``. A single stderr
handler renders every record, so diagnostics never interleave with the
command output soltrctl prints on stdout. ``--log-json`` switches the
renderer to one JSON object per line.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

PACKAGE_LOGGER = "soltrctl"


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]


def _final_chain(log_json: bool) -> list[Processor]:
    if log_json:
        # JSON consumers get tracebacks as a string field.
        return [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
        structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
    ]


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Route all logging to stderr.

    The ``soltrctl`` logger shows DEBUG with ``verbose`` and WARNING
    otherwise; other libraries stay at WARNING either way.
    """
    pre_chain = _pre_chain()
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=_final_chain(log_json),
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.WARNING)
    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG if verbose else logging.WARNING)


def bind_invocation(**fields: Any) -> None:
    """Tag every later log line of this run with *fields* (e.g. the group)."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**{k: v for k, v in fields.items() if v is not None})
