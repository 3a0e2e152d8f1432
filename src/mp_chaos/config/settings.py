"""Config settings – Settings base class and ChaosSettings."""
from __future__ import annotations

import dataclasses
from typing import ClassVar

from mp_chaos.config.errors import InvalidSettingValueError


@dataclasses.dataclass
class Settings:
    """Base class for 12-factor settings."""

    _prefix: ClassVar[str] = ""

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        """Override to add cross-field validation."""


_RATE_FIELDS = (
    "fire_rate",
    "edge_rate_limit_rate",
    "edge_geo_block_rate",
    "edge_timeout_rate",
    "edge_bad_gateway_rate",
    "edge_compute_exceeded_rate",
    "edge_tls_failure_rate",
)

_RANGE_FIELDS = (
    ("timeout_min_ms", "timeout_max_ms"),
    ("edge_timeout_wait_min_ms", "edge_timeout_wait_max_ms"),
    ("edge_bad_gateway_wait_min_ms", "edge_bad_gateway_wait_max_ms"),
    ("edge_tls_wait_min_ms", "edge_tls_wait_max_ms"),
    ("error_span_min_ms", "error_span_max_ms"),
)


@dataclasses.dataclass
class ChaosSettings(Settings):
    """Tuning of the chaos engine, loaded from ``CHAOS_*`` environment variables.

    Edge rates are the probabilities applied at ``fire_rate == 1.0``; the
    effective per-request probability is ``rate * fire_rate``.
    """

    _prefix: ClassVar[str] = "CHAOS"

    enabled: bool = False
    fire_rate: float = 0.3

    edge_rate_limit_rate: float = 0.12
    edge_geo_block_rate: float = 0.6
    geo_blocked_regions: list[str] = dataclasses.field(default_factory=lambda: ["nrt1", "sin1"])
    edge_regions: list[str] = dataclasses.field(
        default_factory=lambda: ["iad1", "sfo1", "cdg1", "nrt1", "sin1", "gru1", "syd1", "lhr1", "hnd1", "dub1"]
    )
    payload_ceiling_bytes: int = 4 * 1024 * 1024
    edge_timeout_rate: float = 0.06
    edge_timeout_wait_min_ms: int = 3000
    edge_timeout_wait_max_ms: int = 8000
    edge_timeout_threshold_ms: int = 25000
    edge_bad_gateway_rate: float = 0.08
    edge_bad_gateway_wait_min_ms: int = 500
    edge_bad_gateway_wait_max_ms: int = 2000
    edge_compute_exceeded_rate: float = 0.04
    edge_tls_failure_rate: float = 0.03
    edge_tls_wait_min_ms: int = 200
    edge_tls_wait_max_ms: int = 1000

    timeout_min_ms: int = 3000
    timeout_max_ms: int = 8000
    timeout_raises: bool = False
    timeout_threshold_ms: int = 2500

    error_span_min_ms: int = 3
    error_span_max_ms: int = 15

    def _validate(self) -> None:
        for name in _RATE_FIELDS:
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise InvalidSettingValueError(name, value, "must be between 0.0 and 1.0")
        for low, high in _RANGE_FIELDS:
            if getattr(self, low) < 0 or getattr(self, low) > getattr(self, high):
                raise InvalidSettingValueError(low, getattr(self, low), f"must be >= 0 and <= {high}")
        if self.payload_ceiling_bytes <= 0:
            raise InvalidSettingValueError("payload_ceiling_bytes", self.payload_ceiling_bytes, "must be positive")
        if self.timeout_threshold_ms <= 0:
            raise InvalidSettingValueError("timeout_threshold_ms", self.timeout_threshold_ms, "must be positive")
        if not self.edge_regions:
            raise InvalidSettingValueError("edge_regions", self.edge_regions, "must not be empty")


__all__ = ["ChaosSettings", "Settings"]
