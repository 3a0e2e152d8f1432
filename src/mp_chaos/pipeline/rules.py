"""Pipeline – InjectionRule: one ``(kind, probability, response)`` entry of a layer."""
from __future__ import annotations

import dataclasses
from typing import Any, Callable

from mp_chaos.faults.taxonomy import FaultKind, FaultTier, record_for

Predicate = Callable[[Any], bool]
ContextBuilder = Callable[[Any], dict[str, Any]]


@dataclasses.dataclass(frozen=True)
class InjectionRule:
    """An ordered entry of a layer's fault menu.

    ``probability`` is the rule's weight at ``fire_rate == 1.0``. A
    ``deterministic`` rule ignores the chaos switch and fires whenever
    ``applies`` holds. ``wait_range_ms`` is slept before the error is returned.
    """

    kind: FaultKind
    probability: float = 1.0
    wait_range_ms: tuple[float, float] | None = None
    deterministic: bool = False
    applies: Predicate | None = None
    context: ContextBuilder | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.probability <= 1.0:
            raise ValueError("probability must be between 0.0 and 1.0")
        if self.deterministic and self.applies is None:
            raise ValueError("a deterministic rule needs an 'applies' predicate")

    @property
    def tier(self) -> FaultTier:
        return record_for(self.kind).tier

    def is_applicable(self, subject: Any) -> bool:
        return self.applies is None or self.applies(subject)

    def build_context(self, subject: Any) -> dict[str, Any]:
        return dict(self.context(subject)) if self.context is not None else {}


def require_tier(kinds: tuple[FaultKind, ...], tier: FaultTier) -> None:
    """Reject a fault menu that borrows kinds from another tier."""
    foreign = [k.value for k in kinds if record_for(k).tier is not tier]
    if foreign:
        raise ValueError(f"kinds {foreign} do not belong to the {tier.value} tier")


__all__ = ["InjectionRule", "require_tier"]
