"""Observability – structlog processors and get_logger helper."""
from __future__ import annotations

from typing import Any

import structlog


class CorrelationProcessor:
    """structlog processor that injects context from :class:`CorrelationContext`.

    Injects ``correlation_id`` and, when present, ``edge_region`` and
    ``trace_id`` of the active :class:`RequestContext`.

    Usage::

        import structlog
        from mp_chaos.observability.logging.processors import CorrelationProcessor

        structlog.configure(processors=[CorrelationProcessor(), ...])
    """

    def __call__(
        self,
        logger: Any,           # noqa: ARG002
        method_name: str,      # noqa: ARG002
        event_dict: dict[str, Any],
    ) -> dict[str, Any]:
        from mp_chaos.observability.correlation import CorrelationContext

        ctx = CorrelationContext.get()
        if ctx is not None:
            event_dict.setdefault("correlation_id", ctx.correlation_id)
            if ctx.edge_region is not None:
                event_dict.setdefault("edge_region", ctx.edge_region)
            if ctx.trace_id is not None:
                event_dict.setdefault("trace_id", ctx.trace_id)
        return event_dict


def get_logger(name: str | None = None, **initial_values: Any) -> Any:
    """Return a bound structlog logger.

    Parameters
    ----------
    name:
        Logger name (typically ``__name__`` of the calling module).
    **initial_values:
        Key-value pairs to bind on the returned logger.
    """
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger


__all__ = ["CorrelationProcessor", "get_logger"]
