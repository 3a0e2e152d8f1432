"""OpenTelemetry adapter – OtelSpanExporter."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from mp_chaos.observability.logging import get_logger
from mp_chaos.observability.tracing import SimSpan, SpanExporter, SpanKind, SpanStatus, Trace

logger = get_logger(__name__)


def _require_otel() -> None:
    try:
        import opentelemetry  # noqa: F401
    except ImportError as exc:
        raise ImportError("Install 'mp-chaos[otel]' to use the OpenTelemetry adapter") from exc


_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def _ns(moment: datetime) -> int:
    return (moment - _EPOCH) // timedelta(microseconds=1) * 1000


def _attribute_value(value: Any) -> Any:
    if isinstance(value, (bool, str, int, float)):
        return value
    if isinstance(value, (list, tuple)) and all(isinstance(v, (bool, str, int, float)) for v in value):
        return list(value)
    return str(value)


class OtelSpanExporter(SpanExporter):
    """Replay finished simulated traces as real OpenTelemetry spans.

    Each service tag gets its own tracer. Parentage is passed as an explicit
    context built from the already-replayed parent, never taken from the
    ambient current span, and the simulated start/end timestamps are kept.
    """

    def __init__(self, tracer_provider: Any = None) -> None:
        _require_otel()
        self._provider = tracer_provider
        self._tracers: dict[str, Any] = {}

    def _tracer_for(self, service_tag: str) -> Any:
        tracer = self._tracers.get(service_tag)
        if tracer is None:
            from opentelemetry import trace  # type: ignore[import-untyped]

            provider = self._provider or trace.get_tracer_provider()
            tracer = provider.get_tracer(service_tag)
            self._tracers[service_tag] = tracer
        return tracer

    def export(self, trace: Trace) -> None:
        from opentelemetry import trace as otel_trace  # type: ignore[import-untyped]
        from opentelemetry.context import Context  # type: ignore[import-untyped]
        from opentelemetry.trace import SpanKind as OtelKind  # type: ignore[import-untyped]

        kind_map = {
            SpanKind.INTERNAL: OtelKind.INTERNAL,
            SpanKind.SERVER: OtelKind.SERVER,
            SpanKind.CLIENT: OtelKind.CLIENT,
        }
        replayed: dict[str, Any] = {}
        # spans are stored parents-first, so every parent is replayed before its children
        for span in trace:
            if span.parent_id is None:
                parent_ctx = Context()
            else:
                parent_ctx = otel_trace.set_span_in_context(replayed[span.parent_id], Context())
            replayed[span.span_id] = self._tracer_for(span.service_tag).start_span(
                span.name,
                context=parent_ctx,
                kind=kind_map.get(span.kind, OtelKind.INTERNAL),
                attributes={k: _attribute_value(v) for k, v in span.attributes.items() if v is not None},
                start_time=_ns(span.started_at),
            )
        for span in reversed(trace.spans):
            self._finish(replayed[span.span_id], span)
        logger.debug("trace.exported_to_otel", trace_id=trace.trace_id, spans=len(replayed))

    def _finish(self, otel_span: Any, span: SimSpan) -> None:
        from opentelemetry.trace import Status, StatusCode  # type: ignore[import-untyped]

        end_time = _ns(span.ended_at) if span.ended_at is not None else None
        if span.status is SpanStatus.ERROR:
            if span.error is not None:
                otel_span.add_event(
                    "exception",
                    {
                        "exception.type": span.error.type,
                        "exception.message": span.error.message,
                        "exception.stacktrace": span.error.stacktrace,
                    },
                    timestamp=end_time,
                )
            otel_span.set_status(Status(StatusCode.ERROR, span.status_message))
        elif span.status is SpanStatus.OK:
            otel_span.set_status(Status(StatusCode.OK))
        otel_span.end(end_time=end_time)


__all__ = ["OtelSpanExporter"]
