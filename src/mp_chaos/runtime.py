"""ChaosRuntime – one wired set of chaos components for a process or a test."""
from __future__ import annotations

import asyncio
import dataclasses
import random
from typing import Any, Awaitable, Callable

from mp_chaos.config import ChaosSettings
from mp_chaos.faults import FaultConfig, FaultConfigStore, FaultDecisionEngine, LatencySimulator
from mp_chaos.kernel.time import Clock, SystemClock
from mp_chaos.observability.correlation import RequestIdGenerator
from mp_chaos.observability.tracing import InMemorySpanExporter, SpanModel
from mp_chaos.pipeline import EdgeLayer, GatewayLayer, SubfunctionLayer


@dataclasses.dataclass
class ChaosRuntime:
    """Explicitly wired components; nothing here is a module-level singleton.

    Build one per process with :meth:`from_settings`; tests build their own
    with a seeded random source and an instant sleeper.
    """

    settings: ChaosSettings
    store: FaultConfigStore
    engine: FaultDecisionEngine
    model: SpanModel
    latency: LatencySimulator
    edge: EdgeLayer
    gateway: GatewayLayer
    subfunction: SubfunctionLayer
    request_ids: RequestIdGenerator
    exporter: InMemorySpanExporter

    @classmethod
    def from_settings(
        cls,
        settings: ChaosSettings | None = None,
        *,
        rng: random.Random | None = None,
        clock: Clock | None = None,
        sleeper: Callable[[float], Awaitable[Any]] | None = None,
    ) -> "ChaosRuntime":
        settings = settings or ChaosSettings()
        rng = rng or random.Random()
        clock = clock or SystemClock()
        sleeper = sleeper or asyncio.sleep

        store = FaultConfigStore(FaultConfig(enabled=settings.enabled, fire_rate=settings.fire_rate))
        engine = FaultDecisionEngine(store, rng)
        exporter = InMemorySpanExporter()
        model = SpanModel(
            clock=clock,
            rng=rng,
            sleeper=sleeper,
            exporters=[exporter],
            error_span_ms=(settings.error_span_min_ms, settings.error_span_max_ms),
        )
        return cls(
            settings=settings,
            store=store,
            engine=engine,
            model=model,
            latency=LatencySimulator(
                engine,
                model,
                amplified_range_ms=(settings.timeout_min_ms, settings.timeout_max_ms),
                timeout_raises=settings.timeout_raises,
                timeout_threshold_ms=settings.timeout_threshold_ms,
                sleeper=sleeper,
            ),
            edge=EdgeLayer(
                engine,
                settings,
                request_ids=RequestIdGenerator(prefix="edge"),
                clock=clock,
                sleeper=sleeper,
            ),
            gateway=GatewayLayer(engine),
            subfunction=SubfunctionLayer(engine),
            request_ids=RequestIdGenerator(prefix="req"),
            exporter=exporter,
        )


__all__ = ["ChaosRuntime"]
