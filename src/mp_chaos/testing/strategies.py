"""Testing – Hypothesis strategies for the chaos control plane.

Requires the ``hypothesis`` package:

    pip install "mp-chaos[test]"
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mp_chaos.faults.taxonomy import FaultKind

if TYPE_CHECKING:
    from hypothesis.strategies import SearchStrategy  # type: ignore[import-untyped]


def _require_hypothesis() -> Any:
    """Lazy import guard – raises a clear error when hypothesis is absent."""
    try:
        import hypothesis.strategies as st  # type: ignore[import-untyped]
        return st
    except ImportError as exc:
        raise ImportError(
            "Install 'hypothesis' to use property-based testing strategies: "
            "pip install hypothesis"
        ) from exc


def fault_kind_strategy() -> "SearchStrategy[FaultKind]":
    st = _require_hypothesis()
    return st.sampled_from(list(FaultKind))


def config_patch_strategy(*, min_rate: float = -1.0, max_rate: float = 2.0) -> "SearchStrategy[dict[str, Any]]":
    """Admin wire bodies: any subset of ``enabled``, ``fireRate``/``errorRate`` and ``enabledKinds``.

    Rates deliberately fall outside ``[0, 1]`` so clamping is exercised, and
    ``enabledKinds`` may carry names that are not fault kinds.

    Example::

        @given(config_patch_strategy())
        def test_rate_stays_bounded(patch):
            assert 0.0 <= FaultConfigStore().merge(patch).fire_rate <= 1.0
    """
    st = _require_hypothesis()
    rate = st.floats(min_value=min_rate, max_value=max_rate, allow_nan=False)
    kind_names = st.one_of(st.sampled_from([k.value for k in FaultKind]), st.sampled_from(["bogus", "crash"]))
    return st.fixed_dictionaries(
        {},
        optional={
            "enabled": st.booleans(),
            "fireRate": rate,
            "errorRate": rate,
            "enabledKinds": st.dictionaries(kind_names, st.booleans(), max_size=4),
        },
    )


__all__ = ["config_patch_strategy", "fault_kind_strategy"]
