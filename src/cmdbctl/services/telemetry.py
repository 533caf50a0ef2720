"""Telemetry primitives — Span, @traced, trace_span, annotate.

Tracing is off unless ``--verbose`` is given; the disabled path is a
single ContextVar lookup. When on, every ``@traced`` service call builds
a span tree (pipeline stages as children) and attaches it to
``ServiceResult.meta["telemetry"]``. The root span records the result's
``op`` and how many warnings it carried, so a graph mirror that silently
fell behind shows up in the trace.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from cmdbctl.services.result import ServiceResult

_tracing: ContextVar[bool] = ContextVar("_tracing", default=False)
_active_span: ContextVar[Span | None] = ContextVar("_active_span", default=None)

log = structlog.get_logger("cmdbctl.telemetry")


@dataclass
class Span:
    """One timed stage of a service call."""

    name: str
    parent: Span | None = None
    children: list[Span] = field(default_factory=list)
    started: float = field(default_factory=time.perf_counter)
    finished: float | None = None
    annotations: dict[str, Any] = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        if self.finished is None:
            return 0.0
        return (self.finished - self.started) * 1000

    def end(self) -> None:
        self.finished = time.perf_counter()

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def child(self, name: str) -> Span:
        span = Span(name=name, parent=self)
        self.children.append(span)
        return span

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.annotations:
            out["annotations"] = dict(self.annotations)
        if self.children:
            out["children"] = [c.to_dict() for c in self.children]
        return out


@contextmanager
def trace_span(name: str, **annotations: Any) -> Generator[Span | None]:
    """Time a pipeline stage as a child of the active span.

    Yields None when tracing is off or no ``@traced`` call is running.
    """
    parent = _active_span.get() if _tracing.get() else None
    if parent is None:
        yield None
        return

    span = parent.child(name)
    span.annotations.update(annotations)
    token = _active_span.set(span)
    try:
        yield span
    finally:
        span.end()
        _active_span.reset(token)


def annotate(**values: Any) -> None:
    """Attach values to the active span; does nothing when tracing is off."""
    if not _tracing.get():
        return
    span = _active_span.get()
    if span is not None:
        span.annotations.update(values)


_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Trace a service method and attach its span tree to the returned result."""

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _tracing.get():
            return func(*args, **kwargs)

        root = Span(name=func.__qualname__)
        token = _active_span.set(root)
        try:
            result = func(*args, **kwargs)
        except Exception:
            log.debug("service.span", span_name=root.name, ok=False, raised=True)
            raise
        finally:
            root.end()
            _active_span.reset(token)

        if not isinstance(result, ServiceResult):
            return result

        root.annotate("op", result.op)
        if result.warnings:
            root.annotate("warnings", len(result.warnings))
        log.debug(
            "service.span",
            span_name=root.name,
            op=result.op,
            ok=result.ok,
            duration_ms=round(root.duration_ms, 2),
            warnings=len(result.warnings),
        )
        meta = {**(result.meta or {}), "telemetry": root.to_dict()}
        return result.model_copy(update={"meta": meta})  # type: ignore[return-value]

    return wrapper


def enable_telemetry() -> None:
    """Turn tracing on for this context (``--verbose``)."""
    _tracing.set(True)


def disable_telemetry() -> None:
    _tracing.set(False)
