"""Observability – SpanModel: start/annotate/end spans and synthesise error spans."""
from __future__ import annotations

import asyncio
import contextlib
import json
import random
from typing import Any, AsyncIterator, Awaitable, Callable, Sequence, TypeVar

from mp_chaos.kernel.errors import (
    FaultError,
    NotFoundError,
    SpanStateError,
    UnprocessableError,
    ValidationError,
)
from mp_chaos.kernel.time import Clock, SystemClock
from mp_chaos.observability.correlation import CorrelationContext, random_hex
from mp_chaos.observability.logging import get_logger
from mp_chaos.observability.tracing.attributes import MA
from mp_chaos.observability.tracing.ports import ExceptionRecord, SpanExporter, SpanKind, SpanStatus
from mp_chaos.observability.tracing.span import SimSpan, Trace

logger = get_logger(__name__)

T = TypeVar("T")
Sleeper = Callable[[float], Awaitable[Any]]

_ERROR_SPAN_NAMES: tuple[tuple[type[BaseException], str], ...] = (
    (ValidationError, "marketplace.error.validation"),
    (NotFoundError, "marketplace.error.not_found"),
    (UnprocessableError, "marketplace.error.business_rule"),
    (asyncio.TimeoutError, "marketplace.error.timeout"),
)

_TIMEOUT_ATTRIBUTES = {
    "upstream_service": MA.TIMEOUT_UPSTREAM_SERVICE,
    "operation": MA.TIMEOUT_OPERATION,
    "timeout_threshold_ms": MA.TIMEOUT_THRESHOLD_MS,
    "waited_ms": MA.TIMEOUT_WAITED_MS,
}


def error_span_name(exc: BaseException) -> str:
    if isinstance(exc, FaultError):
        return exc.record.error_span_name
    for exc_type, name in _ERROR_SPAN_NAMES:
        if isinstance(exc, exc_type):
            return name
    return "marketplace.error.unknown"


class SpanModel:
    """Build span trees for requests.

    Parentage is always passed explicitly: a span without ``parent`` starts a
    new :class:`Trace`, otherwise it joins the parent's trace. When a root span
    ends, the finished trace is handed to every registered exporter.
    """

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        rng: random.Random | None = None,
        sleeper: Sleeper | None = None,
        exporters: Sequence[SpanExporter] = (),
        error_span_ms: tuple[float, float] = (3.0, 15.0),
    ) -> None:
        self._clock = clock or SystemClock()
        self._rng = rng or random.Random()
        self._sleep = sleeper or asyncio.sleep
        self._exporters = list(exporters)
        self._error_span_ms = error_span_ms

    def add_exporter(self, exporter: SpanExporter) -> None:
        self._exporters.append(exporter)

    # ------------------------------------------------------------------
    # Primitive operations
    # ------------------------------------------------------------------

    def start_span(
        self,
        name: str,
        service: str,
        attributes: dict[str, Any] | None = None,
        *,
        parent: SimSpan | None = None,
        kind: SpanKind = SpanKind.INTERNAL,
    ) -> SimSpan:
        trace = parent.trace if parent is not None else Trace(random_hex(self._rng, 32))
        span = SimSpan(
            span_id=random_hex(self._rng, 16),
            trace=trace,
            name=name,
            service_tag=str(getattr(service, "value", service)),
            started_at=self._clock.now(),
            parent_id=parent.span_id if parent is not None else None,
            kind=kind,
            attributes=dict(attributes or {}),
        )
        span.attributes.setdefault(MA.SERVICE_NAME, span.service_tag)
        trace.add(span)
        return span

    def set_attribute(self, span: SimSpan, key: str, value: Any) -> None:
        span.set_attribute(key, value)

    def set_service(self, span: SimSpan, tag: str) -> None:
        span.set_service(tag)

    def end(self, span: SimSpan, status: SpanStatus, error: BaseException | None = None) -> None:
        """Finish *span* exactly once with a terminal *status*."""
        if span.is_ended:
            raise SpanStateError(f"span {span.name!r} already ended", context={"span_id": span.span_id})
        if status is SpanStatus.UNSET:
            raise SpanStateError(f"span {span.name!r} must end with a terminal status")
        if span.status is not SpanStatus.UNSET and span.status is not status:
            raise SpanStateError(
                f"span {span.name!r} already has status {span.status.value}",
                context={"span_id": span.span_id},
            )
        still_open = [c for c in span.trace.children(span) if not c.is_ended]
        if still_open:
            raise SpanStateError(
                f"span {span.name!r} has {len(still_open)} open children",
                context={"children": [c.name for c in still_open]},
            )
        if status is SpanStatus.ERROR:
            if error is not None:
                span.mark_error(error)
            else:
                span.status = SpanStatus.ERROR
        else:
            span.status = SpanStatus.OK
        span.ended_at = self._clock.now()
        if span.is_root:
            self._export(span.trace)

    def close_dangling(self, span: SimSpan, reason: str) -> list[SimSpan]:
        """Force-end every open descendant of *span* with ``ERROR`` status, deepest first."""
        closed: list[SimSpan] = []
        for child in reversed(span.trace.descendants(span)):
            if child.is_ended:
                continue
            child.status = SpanStatus.ERROR
            child.status_message = child.status_message or reason
            child.ended_at = self._clock.now()
            closed.append(child)
        if closed:
            logger.warning("trace.dangling_spans_closed", span=span.name, count=len(closed), reason=reason)
        return closed

    # ------------------------------------------------------------------
    # Composite operations
    # ------------------------------------------------------------------

    @contextlib.asynccontextmanager
    async def span(
        self,
        name: str,
        service: str,
        attributes: dict[str, Any] | None = None,
        *,
        parent: SimSpan | None = None,
        kind: SpanKind = SpanKind.INTERNAL,
    ) -> AsyncIterator[SimSpan]:
        """Scope a span: ``ok`` on success; on failure record, add an error span, re-raise."""
        span = self.start_span(name, service, attributes, parent=parent, kind=kind)
        status = SpanStatus.ERROR
        error: BaseException | None = None
        try:
            yield span
            if span.status is SpanStatus.UNSET:
                status = SpanStatus.OK
        except asyncio.CancelledError as exc:
            error = exc
            raise
        except Exception as exc:
            error = exc
            await self.record_error_span(span, exc)
            raise
        finally:
            self.close_dangling(span, "cancelled" if isinstance(error, asyncio.CancelledError) else "parent span ended")
            self.end(span, status, error)

    @contextlib.asynccontextmanager
    async def trace(
        self,
        name: str,
        service: str,
        attributes: dict[str, Any] | None = None,
    ) -> AsyncIterator[SimSpan]:
        """Request boundary: a root ``SERVER`` span whose trace is exported on exit.

        The trace id is bound to the active request context so log lines
        emitted while the request runs carry ``trace_id``.
        """
        async with self.span(name, service, attributes, kind=SpanKind.SERVER) as root:
            CorrelationContext.bind_trace(root.trace_id)
            yield root

    async def run_with_span(
        self,
        name: str,
        service: str,
        work: Callable[[SimSpan], Awaitable[T]],
        *,
        parent: SimSpan | None,
        attributes: dict[str, Any] | None = None,
        kind: SpanKind = SpanKind.INTERNAL,
    ) -> T:
        async with self.span(name, service, attributes, parent=parent, kind=kind) as span:
            return await work(span)

    async def record_error_span(self, parent: SimSpan, exc: BaseException) -> SimSpan | None:
        """Add a dedicated error child span under *parent* for *exc*.

        Each exception gets one error span per trace, created where it is
        first observed; enclosing spans only record the status.
        """
        if not parent.trace.claim_error(exc):
            return None
        record = ExceptionRecord.from_exception(exc)
        processing_ms = round(self._rng.uniform(*self._error_span_ms))
        attributes: dict[str, Any] = {
            MA.ERROR: True,
            MA.ERROR_PROCESSING_MS: processing_ms,
            MA.ERROR_MESSAGE: record.message,
            MA.ERROR_TYPE: record.type,
            MA.ERROR_ORIGIN_SPAN: parent.name,
            MA.ERROR_STACK_TRACE: record.stacktrace,
        }
        if record.code:
            attributes[MA.ERROR_CODE] = record.code
        if record.status_code:
            attributes[MA.ERROR_STATUS_CODE] = record.status_code
        if record.context:
            attributes[MA.ERROR_CONTEXT] = json.dumps(record.context, default=str)
            if isinstance(exc, FaultError):
                attributes[MA.BUSYBOX_FAULT_TYPE] = exc.kind.value
                attributes[MA.BUSYBOX_INJECTED] = exc.is_injected
        for key, attr in _TIMEOUT_ATTRIBUTES.items():
            if key in record.context:
                attributes[attr] = record.context[key]

        error_span = self.start_span(error_span_name(exc), parent.service_tag, attributes, parent=parent)
        try:
            await self._sleep(processing_ms / 1000)
        finally:
            self.end(error_span, SpanStatus.ERROR, exc)
        return error_span

    def _export(self, trace: Trace) -> None:
        for exporter in self._exporters:
            try:
                exporter.export(trace)
            except Exception:  # noqa: BLE001 – a broken sink must not fail the request
                logger.exception("trace.export_failed", trace_id=trace.trace_id, exporter=type(exporter).__name__)


__all__ = ["SpanModel", "Sleeper", "error_span_name"]
