"""Faults – FaultDecisionEngine."""
from __future__ import annotations

import dataclasses
import random
from typing import Any, Mapping, Protocol

from mp_chaos.faults.config import FaultConfig, FaultConfigStore
from mp_chaos.faults.taxonomy import FaultKind, record_for
from mp_chaos.kernel.errors import FaultError
from mp_chaos.observability.logging import get_logger

logger = get_logger(__name__)


class RandomSource(Protocol):
    """Port: uniform random draws (``random.Random`` satisfies it)."""

    def random(self) -> float: ...
    def uniform(self, a: float, b: float) -> float: ...


@dataclasses.dataclass(frozen=True)
class FaultDecision:
    """Outcome of one check-then-decide against a single config snapshot."""
    kind: FaultKind
    fired: bool
    threshold: float
    config: FaultConfig
    draw: float | None = None


class FaultDecisionEngine:
    """Decide whether a fault fires and build the matching :class:`FaultError`.

    Every decision reads the store exactly once, so the master switch, the
    per-kind flag and the fire rate used for one draw always come from the
    same snapshot. Draws are independent; nothing is shared between calls
    except the random source.
    """

    def __init__(self, store: FaultConfigStore, rng: RandomSource | None = None) -> None:
        self._store = store
        self._rng: RandomSource = rng or random.Random()

    @property
    def store(self) -> FaultConfigStore:
        return self._store

    @property
    def rng(self) -> RandomSource:
        return self._rng

    def decide(self, kind: FaultKind, weight: float = 1.0) -> FaultDecision:
        """Draw once for *kind*; fires when ``draw < fire_rate * weight``."""
        config = self._store.get()
        threshold = config.fire_rate * weight
        if not config.enabled or not config.is_kind_enabled(kind):
            return FaultDecision(kind=kind, fired=False, threshold=threshold, config=config)
        draw = self._rng.random()
        return FaultDecision(kind=kind, fired=draw < threshold, threshold=threshold, config=config, draw=draw)

    def should_fire(self, kind: FaultKind) -> bool:
        return self.decide(kind).fired

    def build_fault(
        self,
        kind: FaultKind,
        context: Mapping[str, Any] | None = None,
        config: FaultConfig | None = None,
    ) -> FaultError:
        """Construct the taxonomy-conforming error for *kind*."""
        record = record_for(kind)
        snapshot = config or self._store.get()
        fault_context: dict[str, Any] = {
            **(context or {}),
            "busybox": True,
            "kind": record.kind.value,
            "fireRate": snapshot.fire_rate,
        }
        return FaultError(record, record.format_message(fault_context), context=fault_context)

    def inject_if_due(self, kind: FaultKind, context: Mapping[str, Any] | None = None) -> None:
        """Raise the fault for *kind* if the decision fires, else return."""
        decision = self.decide(kind)
        if not decision.fired:
            logger.debug("busybox.fault_skipped", kind=kind.value, draw=decision.draw)
            return
        context = dict(context or {})
        logger.warning(
            "busybox.fault_injected",
            kind=kind.value,
            route=context.get("route"),
            fire_rate=f"{round(decision.config.fire_rate * 100)}%",
        )
        raise self.build_fault(kind, context, decision.config)


__all__ = ["FaultDecision", "FaultDecisionEngine", "RandomSource"]
