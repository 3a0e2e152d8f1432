"""Observability – InMemorySpanExporter."""
from __future__ import annotations

from mp_chaos.observability.tracing.ports import SpanExporter
from mp_chaos.observability.tracing.span import Trace


class InMemorySpanExporter(SpanExporter):
    """Keep finished traces in memory (tests and the local debug endpoint)."""

    def __init__(self, max_traces: int = 200) -> None:
        self._max = max_traces
        self._traces: list[Trace] = []

    def export(self, trace: Trace) -> None:
        self._traces.append(trace)
        if len(self._traces) > self._max:
            del self._traces[: len(self._traces) - self._max]

    @property
    def traces(self) -> list[Trace]:
        return list(self._traces)

    def clear(self) -> None:
        self._traces.clear()


__all__ = ["InMemorySpanExporter"]
