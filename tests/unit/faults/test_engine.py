"""Unit tests for FaultDecisionEngine."""
from __future__ import annotations

import random

import pytest

from mp_chaos.faults import FaultConfig, FaultConfigStore, FaultDecisionEngine, FaultKind
from mp_chaos.kernel.errors import FaultError
from mp_chaos.testing import SequenceRandom


def make_engine(
    *,
    enabled: bool = True,
    fire_rate: float = 0.3,
    kinds: dict[FaultKind, bool] | None = None,
    rng: random.Random | None = None,
) -> FaultDecisionEngine:
    store = FaultConfigStore(FaultConfig(enabled=enabled, fire_rate=fire_rate, enabled_kinds=kinds or {}))
    return FaultDecisionEngine(store, rng or random.Random(1234))


# ---------------------------------------------------------------------------
# decide / should_fire
# ---------------------------------------------------------------------------


class TestShouldFire:
    def test_empirical_rate_converges(self) -> None:
        only_internal = {k: k is FaultKind.INTERNAL for k in FaultKind}
        engine = make_engine(fire_rate=0.3, kinds=only_internal, rng=random.Random(20240601))
        fired = sum(engine.should_fire(FaultKind.INTERNAL) for _ in range(10_000))
        assert abs(fired / 10_000 - 0.3) < 0.03

    def test_disabled_never_fires(self) -> None:
        engine = make_engine(enabled=False, fire_rate=1.0)
        results = [engine.should_fire(kind) for _ in range(1000 // len(FaultKind) + 1) for kind in FaultKind]
        assert len(results) >= 1000
        assert not any(results)

    def test_disabled_does_not_draw(self) -> None:
        rng = SequenceRandom()
        engine = make_engine(enabled=False, rng=rng)
        engine.should_fire(FaultKind.INTERNAL)
        assert rng.draws == 0

    def test_disabled_kind_never_fires_at_full_rate(self) -> None:
        engine = make_engine(fire_rate=1.0, kinds={FaultKind.BAD_GATEWAY: False})
        assert not any(engine.should_fire(FaultKind.BAD_GATEWAY) for _ in range(500))
        assert engine.should_fire(FaultKind.INTERNAL)

    def test_scripted_draws(self) -> None:
        engine = make_engine(fire_rate=0.3, rng=SequenceRandom([0.29, 0.31, 0.0]))
        assert engine.should_fire(FaultKind.INTERNAL) is True
        assert engine.should_fire(FaultKind.INTERNAL) is False
        assert engine.should_fire(FaultKind.INTERNAL) is True

    def test_zero_rate_never_fires(self) -> None:
        engine = make_engine(fire_rate=0.0, rng=SequenceRandom([0.0]))
        assert engine.should_fire(FaultKind.INTERNAL) is False

    def test_weight_scales_threshold(self) -> None:
        engine = make_engine(fire_rate=0.5, rng=SequenceRandom([0.2, 0.3]))
        first = engine.decide(FaultKind.EDGE_RATE_LIMITED, weight=0.5)
        second = engine.decide(FaultKind.EDGE_RATE_LIMITED, weight=0.5)
        assert first.threshold == pytest.approx(0.25)
        assert first.fired is True
        assert second.fired is False

    def test_decision_reports_snapshot(self) -> None:
        engine = make_engine(fire_rate=0.4, rng=SequenceRandom([0.1]))
        decision = engine.decide(FaultKind.TIMEOUT)
        assert decision.config is engine.store.get()
        assert decision.draw == 0.1


# ---------------------------------------------------------------------------
# build_fault / inject_if_due
# ---------------------------------------------------------------------------


class TestInjectIfDue:
    def test_internal_scenario(self) -> None:
        engine = make_engine(fire_rate=1.0, kinds={FaultKind.INTERNAL: True})
        with pytest.raises(FaultError) as exc_info:
            engine.inject_if_due(FaultKind.INTERNAL, {"route": "/x"})
        err = exc_info.value
        assert err.status_code == 500
        assert err.code.startswith("BUSYBOX_INTERNAL")
        assert err.context["route"] == "/x"
        assert err.is_injected is True

    def test_returns_when_not_firing(self) -> None:
        engine = make_engine(fire_rate=0.3, rng=SequenceRandom([0.9]))
        assert engine.inject_if_due(FaultKind.INTERNAL, {"route": "/x"}) is None

    def test_rate_limited_carries_retry_after(self) -> None:
        engine = make_engine(fire_rate=1.0)
        with pytest.raises(FaultError) as exc_info:
            engine.inject_if_due(FaultKind.RATE_LIMITED)
        assert exc_info.value.status_code == 429
        assert exc_info.value.retry_after_seconds == 30

    def test_build_fault_context(self) -> None:
        engine = make_engine(fire_rate=0.25)
        err = engine.build_fault(FaultKind.SUBFUNCTION_CRASH, {"function": "get_sparkline_data"})
        assert err.kind is FaultKind.SUBFUNCTION_CRASH
        assert err.context == {
            "function": "get_sparkline_data",
            "busybox": True,
            "kind": "subfunction_crash",
            "fireRate": 0.25,
        }
        assert "get_sparkline_data" in err.message

    def test_caller_context_not_mutated(self) -> None:
        engine = make_engine(fire_rate=1.0)
        context = {"route": "/x"}
        with pytest.raises(FaultError):
            engine.inject_if_due(FaultKind.SERVICE_UNAVAILABLE, context)
        assert context == {"route": "/x"}
