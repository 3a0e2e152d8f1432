"""Faults – LatencySimulator."""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from mp_chaos.faults.engine import FaultDecisionEngine
from mp_chaos.faults.taxonomy import FaultKind
from mp_chaos.faults.timeouts import TimeoutPolicy
from mp_chaos.observability.logging import get_logger
from mp_chaos.observability.tracing import MA, SimSpan, SpanModel

logger = get_logger(__name__)


class LatencySimulator:
    """Inject a randomized, traced delay into every operation.

    When the ``timeout`` fault fires the delay is drawn from the amplified
    range instead, modelling a hung dependency: the call still completes,
    only slowly. With ``timeout_raises`` the amplified wait is bounded by a
    :class:`TimeoutPolicy` and surfaces as the 504 ``timeout`` fault.
    """

    def __init__(
        self,
        engine: FaultDecisionEngine,
        model: SpanModel,
        *,
        amplified_range_ms: tuple[float, float] = (3000.0, 8000.0),
        timeout_raises: bool = False,
        timeout_threshold_ms: float = 2500.0,
        sleeper: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        self._engine = engine
        self._model = model
        self._amplified = amplified_range_ms
        self._timeout_raises = timeout_raises
        self._threshold_ms = timeout_threshold_ms
        self._sleep = sleeper or asyncio.sleep

    async def delay(
        self,
        min_ms: float = 20.0,
        max_ms: float = 80.0,
        *,
        parent: SimSpan,
        operation: str = "latency_simulation",
        upstream_service: str | None = None,
    ) -> float:
        """Suspend the calling task for the chosen delay and return it in ms."""
        decision = self._engine.decide(FaultKind.TIMEOUT)
        low, high = self._amplified if decision.fired else (min_ms, max_ms)
        delay_ms = round(self._engine.rng.uniform(low, high))
        attributes = {
            MA.INFRA_LATENCY_MIN_MS: min_ms,
            MA.INFRA_LATENCY_MAX_MS: max_ms,
            MA.INFRA_LATENCY_MS: delay_ms,
            MA.INFRA_LATENCY_AMPLIFIED: decision.fired,
        }
        if decision.fired:
            logger.warning(
                "busybox.latency_amplified",
                operation=operation,
                delay_ms=delay_ms,
                raises=self._timeout_raises,
            )

        parent.set_attribute(MA.INFRA_LATENCY_MS, delay_ms)
        async with self._model.span(
            "marketplace.infra.latency_simulation", parent.service_tag, attributes, parent=parent
        ):
            if decision.fired and self._timeout_raises:
                policy = TimeoutPolicy(
                    self._threshold_ms,
                    upstream_service=upstream_service or parent.service_tag,
                    operation=operation,
                    context={
                        "busybox": True,
                        "fireRate": decision.config.fire_rate,
                        "simulated_wait_ms": delay_ms,
                    },
                )
                await policy.execute(lambda: self._sleep(delay_ms / 1000))
            else:
                await self._sleep(delay_ms / 1000)
        return delay_ms


__all__ = ["LatencySimulator"]
