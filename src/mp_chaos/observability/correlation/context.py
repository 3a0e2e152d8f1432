"""Observability – RequestContext, CorrelationContext."""
from __future__ import annotations

import dataclasses
from contextvars import ContextVar


@dataclasses.dataclass(frozen=True)
class RequestContext:
    """Ambient context for a single inbound request."""
    correlation_id: str
    edge_region: str | None = None
    trace_id: str | None = None


_CTX_VAR: ContextVar[RequestContext | None] = ContextVar("_mp_chaos_request_ctx", default=None)


class CorrelationContext:
    """Ambient correlation context stored in a ``ContextVar``."""

    @staticmethod
    def set(ctx: RequestContext) -> None:
        _CTX_VAR.set(ctx)

    @staticmethod
    def get() -> RequestContext | None:
        return _CTX_VAR.get()

    @staticmethod
    def clear() -> None:
        _CTX_VAR.set(None)

    @staticmethod
    def bind_trace(trace_id: str) -> None:
        """Attach *trace_id* to the active request; no-op outside a request."""
        ctx = _CTX_VAR.get()
        if ctx is not None:
            _CTX_VAR.set(dataclasses.replace(ctx, trace_id=trace_id))


__all__ = ["CorrelationContext", "RequestContext"]
