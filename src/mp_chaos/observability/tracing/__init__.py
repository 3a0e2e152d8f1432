"""Observability – simulated distributed tracing."""
from mp_chaos.observability.tracing.attributes import MA, MarketplaceAttributes
from mp_chaos.observability.tracing.exporters import InMemorySpanExporter
from mp_chaos.observability.tracing.model import SpanModel, error_span_name
from mp_chaos.observability.tracing.ports import ExceptionRecord, SpanExporter, SpanKind, SpanStatus
from mp_chaos.observability.tracing.services import ServiceTag
from mp_chaos.observability.tracing.span import SimSpan, Trace

__all__ = [
    "MA",
    "ExceptionRecord",
    "InMemorySpanExporter",
    "MarketplaceAttributes",
    "ServiceTag",
    "SimSpan",
    "SpanExporter",
    "SpanKind",
    "SpanModel",
    "SpanStatus",
    "Trace",
    "error_span_name",
]
