"""Faults – taxonomy, configuration store, decision engine and latency simulation."""
from mp_chaos.faults.config import (
    FaultConfig,
    FaultConfigPatch,
    FaultConfigStore,
    InvalidConfigPatchError,
    clamp_rate,
)
from mp_chaos.faults.engine import FaultDecision, FaultDecisionEngine, RandomSource
from mp_chaos.faults.latency import LatencySimulator
from mp_chaos.faults.taxonomy import TAXONOMY, FaultKind, FaultRecord, FaultTier, kinds_for_tier, record_for
from mp_chaos.faults.timeouts import TimeoutPolicy

__all__ = [
    "TAXONOMY",
    "FaultConfig",
    "FaultConfigPatch",
    "FaultConfigStore",
    "FaultDecision",
    "FaultDecisionEngine",
    "FaultKind",
    "FaultRecord",
    "FaultTier",
    "InvalidConfigPatchError",
    "LatencySimulator",
    "RandomSource",
    "TimeoutPolicy",
    "clamp_rate",
    "kinds_for_tier",
    "record_for",
]
