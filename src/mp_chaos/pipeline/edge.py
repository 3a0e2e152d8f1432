"""Pipeline – EdgeLayer: CDN / edge-network faults evaluated before any gateway logic.

Rules run in a fixed order and the first one that fires short-circuits the
rest. Faults that model a slow failure wait before answering, but always
answer with a well-formed rejection.
"""
from __future__ import annotations

import asyncio
import dataclasses
from typing import Any, Awaitable, Callable, Sequence

from mp_chaos.config import ChaosSettings
from mp_chaos.faults.engine import FaultDecisionEngine
from mp_chaos.faults.taxonomy import FaultKind, FaultTier, record_for
from mp_chaos.kernel.errors import FaultError
from mp_chaos.kernel.time import Clock, SystemClock
from mp_chaos.observability.correlation import RequestIdGenerator
from mp_chaos.observability.logging import get_logger
from mp_chaos.observability.tracing import MA, SimSpan
from mp_chaos.pipeline.rules import InjectionRule, require_tier

logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True)
class EdgeRequest:
    method: str
    path: str
    content_length: int | None = None
    region: str | None = None


@dataclasses.dataclass(frozen=True)
class EdgeContext:
    """What a rule sees: the request plus the region it landed in."""
    request: EdgeRequest
    region: str
    request_id: str


@dataclasses.dataclass(frozen=True)
class EdgeOutcome:
    request_id: str
    region: str
    started_at_ms: int
    chaos_enabled: bool
    fault: FaultError | None = None
    waited_ms: int = 0

    @property
    def rejected(self) -> bool:
        return self.fault is not None

    def forward_headers(self) -> dict[str, str]:
        """Metadata attached to a request that passed through the edge."""
        return {
            "x-edge-request-id": self.request_id,
            "x-edge-region": self.region,
            "x-edge-start-time": str(self.started_at_ms),
            "x-edge-chaos": "true" if self.chaos_enabled else "false",
        }


def default_edge_rules(settings: ChaosSettings) -> tuple[InjectionRule, ...]:
    blocked = frozenset(settings.geo_blocked_regions)
    ceiling = settings.payload_ceiling_bytes

    def too_large(ctx: EdgeContext) -> bool:
        return ctx.request.content_length is not None and ctx.request.content_length > ceiling

    return (
        InjectionRule(
            FaultKind.EDGE_RATE_LIMITED,
            settings.edge_rate_limit_rate,
            context=lambda ctx: {"reason": "edge_rate_limit_exceeded", "layer": "edge-waf"},
        ),
        InjectionRule(
            FaultKind.GEO_BLOCKED,
            settings.edge_geo_block_rate,
            applies=lambda ctx: ctx.region in blocked,
            context=lambda ctx: {"blockedRegion": ctx.region},
        ),
        InjectionRule(
            FaultKind.PAYLOAD_TOO_LARGE,
            deterministic=True,
            applies=too_large,
            context=lambda ctx: {"content_length": ctx.request.content_length, "max_allowed": ceiling},
        ),
        InjectionRule(
            FaultKind.EDGE_TIMEOUT,
            settings.edge_timeout_rate,
            wait_range_ms=(settings.edge_timeout_wait_min_ms, settings.edge_timeout_wait_max_ms),
            context=lambda ctx: {"threshold": settings.edge_timeout_threshold_ms, "reason": "origin_response_timeout"},
        ),
        InjectionRule(
            FaultKind.EDGE_BAD_GATEWAY,
            settings.edge_bad_gateway_rate,
            wait_range_ms=(settings.edge_bad_gateway_wait_min_ms, settings.edge_bad_gateway_wait_max_ms),
            context=lambda ctx: {"vercelError": "ROUTER_EXTERNAL_TARGET_ERROR"},
        ),
        InjectionRule(
            FaultKind.COMPUTE_EXCEEDED,
            settings.edge_compute_exceeded_rate,
            context=lambda ctx: {"cpuTimeLimit": "50ms", "layer": "edge-isolate"},
        ),
        InjectionRule(
            FaultKind.TLS_HANDSHAKE_FAILED,
            settings.edge_tls_failure_rate,
            wait_range_ms=(settings.edge_tls_wait_min_ms, settings.edge_tls_wait_max_ms),
            context=lambda ctx: {"layer": "edge-tls"},
        ),
    )


class EdgeLayer:
    """Evaluate the edge fault menu for one inbound request."""

    def __init__(
        self,
        engine: FaultDecisionEngine,
        settings: ChaosSettings | None = None,
        *,
        rules: Sequence[InjectionRule] | None = None,
        request_ids: RequestIdGenerator | None = None,
        clock: Clock | None = None,
        sleeper: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        self._settings = settings or ChaosSettings()
        self._rules = tuple(rules) if rules is not None else default_edge_rules(self._settings)
        require_tier(tuple(r.kind for r in self._rules), FaultTier.EDGE)
        self._engine = engine
        self._request_ids = request_ids or RequestIdGenerator(prefix="edge")
        self._clock = clock or SystemClock()
        self._sleep = sleeper or asyncio.sleep

    @property
    def rules(self) -> tuple[InjectionRule, ...]:
        return self._rules

    def pick_region(self) -> str:
        regions = self._settings.edge_regions
        return regions[int(self._engine.rng.random() * len(regions)) % len(regions)]

    async def handle(self, request: EdgeRequest, span: SimSpan | None = None) -> EdgeOutcome:
        started_at_ms = int(self._clock.timestamp() * 1000)
        request_id = self._request_ids.next_id()
        region = request.region or self.pick_region()
        chaos_enabled = self._engine.store.get().enabled
        ctx = EdgeContext(request=request, region=region, request_id=request_id)
        log = logger.bind(method=request.method, path=request.path, region=region, request_id=request_id)
        log.info("edge.request_received", chaos=chaos_enabled or None)

        if span is not None:
            span.set_attribute(MA.EDGE_REGION, region)
            span.set_attribute(MA.EDGE_REQUEST_ID, request_id)
            span.set_attribute(MA.EDGE_START_TIME, started_at_ms)

        for rule in self._rules:
            if not self._fires(rule, ctx):
                continue
            waited_ms = 0
            if rule.wait_range_ms is not None:
                waited_ms = round(self._engine.rng.uniform(*rule.wait_range_ms))
                await self._sleep(waited_ms / 1000)
            fault = self._build(rule, ctx, waited_ms)
            log.warning(
                "edge.fault_returned",
                kind=rule.kind.value,
                status=fault.status_code,
                waited_ms=waited_ms or None,
            )
            if span is not None:
                span.set_attribute(MA.EDGE_FAULT, rule.kind.value)
                if waited_ms:
                    span.set_attribute(MA.EDGE_WAITED_MS, waited_ms)
            return EdgeOutcome(request_id, region, started_at_ms, chaos_enabled, fault=fault, waited_ms=waited_ms)

        log.info("edge.request_forwarded")
        return EdgeOutcome(request_id, region, started_at_ms, chaos_enabled)

    def _fires(self, rule: InjectionRule, ctx: EdgeContext) -> bool:
        if not rule.is_applicable(ctx):
            return False
        if rule.deterministic:
            return True
        return self._engine.decide(rule.kind, weight=rule.probability).fired

    def _build(self, rule: InjectionRule, ctx: EdgeContext, waited_ms: int) -> FaultError:
        context: dict[str, Any] = {"region": ctx.region, "requestId": ctx.request_id, **rule.build_context(ctx)}
        if waited_ms:
            context["waited_ms"] = waited_ms
        if rule.deterministic:
            record = record_for(rule.kind)
            context["kind"] = record.kind.value
            return FaultError(record, record.format_message(context), context=context)
        return self._engine.build_fault(rule.kind, context)


__all__ = ["EdgeContext", "EdgeLayer", "EdgeOutcome", "EdgeRequest", "default_edge_rules"]
