"""Observability – SimSpan and Trace.

A :class:`Trace` is the tree of spans created for one inbound request. Spans
link to their parent by id; the trace owns the id → span index so parentage is
an explicit, inspectable value rather than ambient "current span" state.
"""
from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Any, Iterator

from mp_chaos.kernel.errors import SpanStateError
from mp_chaos.observability.tracing.attributes import MA
from mp_chaos.observability.tracing.ports import ExceptionRecord, SpanKind, SpanStatus


@dataclasses.dataclass(eq=False)
class SimSpan:
    """One unit of traced work."""

    span_id: str
    trace: "Trace" = dataclasses.field(repr=False)
    name: str
    service_tag: str
    started_at: datetime
    parent_id: str | None = None
    kind: SpanKind = SpanKind.INTERNAL
    attributes: dict[str, Any] = dataclasses.field(default_factory=dict)
    status: SpanStatus = SpanStatus.UNSET
    status_message: str | None = None
    error: ExceptionRecord | None = None
    ended_at: datetime | None = None

    @property
    def trace_id(self) -> str:
        return self.trace.trace_id

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def is_ended(self) -> bool:
        return self.ended_at is not None

    @property
    def duration_ms(self) -> float | None:
        if self.ended_at is None:
            return None
        return (self.ended_at - self.started_at).total_seconds() * 1000

    def set_attribute(self, key: str, value: Any) -> None:
        self._require_open("set attribute on")
        self.attributes[key] = value

    def set_service(self, tag: str) -> None:
        self._require_open("retag")
        self.service_tag = str(getattr(tag, "value", tag))
        self.attributes[MA.SERVICE_NAME] = self.service_tag

    def mark_error(self, exc: BaseException, message: str | None = None) -> None:
        """Move to the terminal ``ERROR`` status without ending the span."""
        self._require_open("record exception on")
        if self.status is SpanStatus.OK:
            raise SpanStateError(f"span {self.name!r} already has status ok")
        self.status = SpanStatus.ERROR
        if self.error is None:
            self.error = ExceptionRecord.from_exception(exc)
            self.status_message = message or f"{self.error.code or self.error.type}: {self.error.message}"

    def _require_open(self, action: str) -> None:
        if self.ended_at is not None:
            raise SpanStateError(f"cannot {action} ended span {self.name!r}", context={"span_id": self.span_id})

    def to_dict(self) -> dict[str, Any]:
        return {
            "traceId": self.trace_id,
            "spanId": self.span_id,
            "parentId": self.parent_id,
            "name": self.name,
            "serviceTag": self.service_tag,
            "kind": self.kind.value,
            "attributes": dict(self.attributes),
            "status": self.status.value,
            "statusMessage": self.status_message,
            "error": self.error.to_dict() if self.error else None,
            "startedAt": self.started_at.isoformat(),
            "endedAt": self.ended_at.isoformat() if self.ended_at else None,
            "durationMs": self.duration_ms,
        }


class Trace:
    """All spans sharing one root."""

    def __init__(self, trace_id: str) -> None:
        self.trace_id = trace_id
        self._spans: dict[str, SimSpan] = {}
        self._observed_errors: list[BaseException] = []

    def __iter__(self) -> Iterator[SimSpan]:
        return iter(self._spans.values())

    def __len__(self) -> int:
        return len(self._spans)

    @property
    def spans(self) -> list[SimSpan]:
        return list(self._spans.values())

    @property
    def root(self) -> SimSpan | None:
        return next((s for s in self._spans.values() if s.parent_id is None), None)

    def add(self, span: SimSpan) -> None:
        if span.span_id in self._spans:
            raise SpanStateError(f"duplicate span id {span.span_id}")
        if span.parent_id is None:
            if self.root is not None:
                raise SpanStateError("trace already has a root span")
        else:
            parent = self._spans.get(span.parent_id)
            if parent is None:
                raise SpanStateError(f"parent {span.parent_id} is not part of trace {self.trace_id}")
            if parent.is_ended:
                raise SpanStateError(f"cannot start child of ended span {parent.name!r}")
        self._spans[span.span_id] = span

    def get(self, span_id: str) -> SimSpan:
        return self._spans[span_id]

    def children(self, span: SimSpan) -> list[SimSpan]:
        return [s for s in self._spans.values() if s.parent_id == span.span_id]

    def descendants(self, span: SimSpan) -> list[SimSpan]:
        """Depth-first, parents before children."""
        found: list[SimSpan] = []
        for child in self.children(span):
            found.append(child)
            found.extend(self.descendants(child))
        return found

    def open_spans(self) -> list[SimSpan]:
        return [s for s in self._spans.values() if not s.is_ended]

    def find(self, name: str) -> list[SimSpan]:
        return [s for s in self._spans.values() if s.name == name]

    def claim_error(self, exc: BaseException) -> bool:
        """Return ``True`` the first time *exc* is seen in this trace."""
        if any(seen is exc for seen in self._observed_errors):
            return False
        self._observed_errors.append(exc)
        return True

    @property
    def is_complete(self) -> bool:
        return bool(self._spans) and all(
            s.is_ended and s.status is not SpanStatus.UNSET for s in self._spans.values()
        )

    def is_well_formed(self) -> bool:
        """Single root, every parent inside the trace, no cycles, all spans ended."""
        roots = [s for s in self._spans.values() if s.parent_id is None]
        if len(roots) != 1:
            return False
        for span in self._spans.values():
            seen: set[str] = set()
            current: SimSpan | None = span
            while current is not None and current.parent_id is not None:
                if current.span_id in seen:
                    return False
                seen.add(current.span_id)
                current = self._spans.get(current.parent_id)
                if current is None:
                    return False
            if span.is_ended and span.parent_id is not None:
                parent = self._spans[span.parent_id]
                if parent.ended_at is not None and span.ended_at is not None and parent.ended_at < span.ended_at:
                    return False
        return self.is_complete

    def to_dict(self) -> dict[str, Any]:
        return {"traceId": self.trace_id, "spans": [s.to_dict() for s in self._spans.values()]}


__all__ = ["SimSpan", "Trace"]
