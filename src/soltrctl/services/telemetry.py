"""Telemetry for verbose runs: one span per service call, one per command.

Nothing is recorded unless ``-v`` switched it on. A traced service call
opens the root span; every external command it runs becomes a child span
named after the shell-quoted argv and tagged with the exit status. The
finished tree lands in ``ServiceResult.meta["telemetry"]``.
"""

from __future__ import annotations

import functools
import shlex
import subprocess
import time
from collections.abc import Callable, Generator, Sequence
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from soltrctl.services.result import ServiceResult

_tracing: ContextVar[bool] = ContextVar("soltrctl_tracing", default=False)
_active: ContextVar[Span | None] = ContextVar("soltrctl_active_span", default=None)

_log = structlog.get_logger("soltrctl.telemetry")


@dataclass
class Span:
    """A timed step; children are the steps it ran."""

    name: str
    children: list[Span] = field(default_factory=list)
    started: float = field(default_factory=time.perf_counter)
    finished: float | None = None
    annotations: dict[str, Any] = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        if self.finished is None:
            return 0.0
        return (self.finished - self.started) * 1000

    def close(self) -> None:
        if self.finished is None:
            self.finished = time.perf_counter()

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def to_dict(self) -> dict[str, Any]:
        node: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.annotations:
            node["annotations"] = dict(self.annotations)
        if self.children:
            node["children"] = [child.to_dict() for child in self.children]
        return node


@contextmanager
def trace_span(name: str) -> Generator[Span | None]:
    """Open a child of the active span; yields None outside a traced call."""
    parent = _active.get() if _tracing.get() else None
    if parent is None:
        yield None
        return

    span = Span(name=name)
    parent.children.append(span)
    token = _active.set(span)
    try:
        yield span
    finally:
        span.close()
        _active.reset(token)


@contextmanager
def command_span(argv: Sequence[str]) -> Generator[Span | None]:
    """Child span for one external command.

    A ``CalledProcessError`` escaping the block still tags the span with
    the child's exit status; an ``OSError`` tags it with the error text.
    """
    with trace_span(shlex.join(argv)) as span:
        try:
            yield span
        except subprocess.CalledProcessError as exc:
            if span is not None:
                span.annotate("returncode", exc.returncode)
            raise
        except OSError as exc:
            if span is not None:
                span.annotate("error", exc.strerror or str(exc))
            raise


_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Time a service method as a root span and attach the tree to its result."""

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _tracing.get():
            return func(*args, **kwargs)

        span = Span(name=func.__qualname__)
        token = _active.set(span)
        try:
            result = func(*args, **kwargs)
        except Exception:
            span.annotate("ok", False)
            raise
        finally:
            span.close()
            _active.reset(token)
            _log.debug(
                "span.complete",
                span_name=span.name,
                duration_ms=round(span.duration_ms, 2),
                commands=len(span.children),
            )

        if isinstance(result, ServiceResult):
            if result.error is not None:
                span.annotate("error", result.error.code)
            meta = {**(result.meta or {}), "telemetry": span.to_dict()}
            return result.model_copy(update={"meta": meta})  # type: ignore[return-value]
        return result

    return wrapper


def enable_telemetry() -> None:
    """Start recording spans (``-v``)."""
    _tracing.set(True)


def disable_telemetry() -> None:
    _tracing.set(False)
