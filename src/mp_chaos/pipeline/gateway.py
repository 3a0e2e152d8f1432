"""Pipeline – GatewayLayer: faults evaluated once a request reaches application code."""
from __future__ import annotations

from typing import Any

from mp_chaos.faults.engine import FaultDecisionEngine
from mp_chaos.faults.taxonomy import FaultKind, FaultTier
from mp_chaos.observability.tracing import MA, SimSpan
from mp_chaos.pipeline.rules import require_tier

DEFAULT_GATEWAY_KINDS: tuple[FaultKind, ...] = (
    FaultKind.INTERNAL,
    FaultKind.BAD_GATEWAY,
    FaultKind.SERVICE_UNAVAILABLE,
    FaultKind.RATE_LIMITED,
)


class GatewayLayer:
    """Evaluate the gateway fault menu against the shared config.

    Each kind is an independent draw; the first one that fires raises its
    :class:`~mp_chaos.kernel.errors.FaultError`, which propagates unmodified to
    the route boundary.
    """

    def __init__(
        self,
        engine: FaultDecisionEngine,
        kinds: tuple[FaultKind, ...] = DEFAULT_GATEWAY_KINDS,
    ) -> None:
        require_tier(kinds, FaultTier.GATEWAY)
        self._engine = engine
        self._kinds = kinds

    @property
    def kinds(self) -> tuple[FaultKind, ...]:
        return self._kinds

    def check(
        self,
        route: str,
        *,
        span: SimSpan | None = None,
        kinds: tuple[FaultKind, ...] | None = None,
        **context: Any,
    ) -> None:
        """Run the menu (or a route-specific subset of it) in order."""
        if span is not None:
            config = self._engine.store.get()
            span.set_attribute(MA.BUSYBOX_ENABLED, config.enabled)
            span.set_attribute(MA.BUSYBOX_FIRE_RATE, config.fire_rate)
        if kinds is not None:
            require_tier(kinds, FaultTier.GATEWAY)
        for kind in self._kinds if kinds is None else kinds:
            self._engine.inject_if_due(kind, {"route": route, **context})

    def check_unprocessable(self, route: str, **context: Any) -> None:
        """Business-operation check (e.g. a swap quote failing on liquidity)."""
        self._engine.inject_if_due(FaultKind.UNPROCESSABLE, {"route": route, **context})


__all__ = ["DEFAULT_GATEWAY_KINDS", "GatewayLayer"]
