"""Faults – FaultKind, FaultTier, FaultRecord and the static taxonomy table.

Every fault kind maps to exactly one :class:`FaultRecord`; the record is the
only place that knows which HTTP status and machine-readable code a kind
converts to.
"""
from __future__ import annotations

import dataclasses
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class FaultKind(str, Enum):
    INTERNAL = "internal"
    BAD_GATEWAY = "bad_gateway"
    SERVICE_UNAVAILABLE = "service_unavailable"
    RATE_LIMITED = "rate_limited"
    UNPROCESSABLE = "unprocessable"
    SUBFUNCTION_CRASH = "subfunction_crash"
    TIMEOUT = "timeout"
    EDGE_RATE_LIMITED = "edge_rate_limited"
    GEO_BLOCKED = "geo_blocked"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    EDGE_TIMEOUT = "edge_timeout"
    EDGE_BAD_GATEWAY = "edge_bad_gateway"
    COMPUTE_EXCEEDED = "compute_exceeded"
    TLS_HANDSHAKE_FAILED = "tls_handshake_failed"


class FaultTier(str, Enum):
    """Simulated network hop a fault kind belongs to."""

    EDGE = "edge"
    GATEWAY = "gateway"
    SUBFUNCTION = "subfunction"
    LATENCY = "latency"


@dataclasses.dataclass(frozen=True)
class FaultRecord:
    """Taxonomy entry: the external contract of one fault kind."""

    kind: FaultKind
    http_status: int
    error_code: str
    message_template: str
    tier: FaultTier
    retry_after_seconds: int | None = None

    @property
    def error_span_name(self) -> str:
        return f"marketplace.error.{self.kind.value}"

    def format_message(self, context: Mapping[str, Any]) -> str:
        """Render :attr:`message_template`; unknown placeholders are kept verbatim."""
        return self.message_template.format_map(_KeepMissing(context))


class _KeepMissing(dict):  # type: ignore[type-arg]
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


_RECORDS: tuple[FaultRecord, ...] = (
    FaultRecord(
        FaultKind.INTERNAL, 500, "BUSYBOX_INTERNAL_ERROR",
        "Simulated internal server error (busybox chaos injection)",
        FaultTier.GATEWAY,
    ),
    FaultRecord(
        FaultKind.BAD_GATEWAY, 502, "BUSYBOX_BAD_GATEWAY",
        "Simulated bad gateway: upstream service returned invalid response "
        "(busybox chaos injection, ROUTER_EXTERNAL_TARGET_ERROR)",
        FaultTier.GATEWAY,
    ),
    FaultRecord(
        FaultKind.SERVICE_UNAVAILABLE, 503, "BUSYBOX_SERVICE_UNAVAILABLE",
        "Simulated service unavailable (busybox chaos injection)",
        FaultTier.GATEWAY,
    ),
    FaultRecord(
        FaultKind.RATE_LIMITED, 429, "BUSYBOX_RATE_LIMITED",
        "Simulated rate limit exceeded (busybox chaos injection)",
        FaultTier.GATEWAY,
        retry_after_seconds=30,
    ),
    FaultRecord(
        FaultKind.UNPROCESSABLE, 422, "BUSYBOX_UNPROCESSABLE",
        "Simulated unprocessable entity (busybox chaos injection)",
        FaultTier.GATEWAY,
    ),
    FaultRecord(
        FaultKind.SUBFUNCTION_CRASH, 500, "BUSYBOX_SUBFUNCTION_CRASH",
        "Simulated subfunction crash in {function} (busybox chaos injection)",
        FaultTier.SUBFUNCTION,
    ),
    FaultRecord(
        FaultKind.TIMEOUT, 504, "BUSYBOX_TIMEOUT",
        "Simulated request timeout: {upstream_service} did not answer {operation} "
        "within {timeout_threshold_ms}ms (busybox chaos injection)",
        FaultTier.LATENCY,
    ),
    FaultRecord(
        FaultKind.EDGE_RATE_LIMITED, 429, "EDGE_RATE_LIMITED",
        "Rate limit exceeded at edge. Too many requests from your IP. "
        "Please retry after 60 seconds.",
        FaultTier.EDGE,
        retry_after_seconds=60,
    ),
    FaultRecord(
        FaultKind.GEO_BLOCKED, 403, "EDGE_GEO_BLOCKED",
        "Access denied from region {region}. Geographic restrictions apply per OFAC compliance.",
        FaultTier.EDGE,
    ),
    FaultRecord(
        FaultKind.PAYLOAD_TOO_LARGE, 413, "EDGE_PAYLOAD_TOO_LARGE",
        "Request body of {content_length} bytes exceeds the {max_allowed} byte edge function limit.",
        FaultTier.EDGE,
    ),
    FaultRecord(
        FaultKind.EDGE_TIMEOUT, 504, "EDGE_GATEWAY_TIMEOUT",
        "Edge timed out waiting for origin server response after {waited_ms}ms.",
        FaultTier.EDGE,
    ),
    FaultRecord(
        FaultKind.EDGE_BAD_GATEWAY, 502, "EDGE_BAD_GATEWAY",
        "Edge could not reach origin server (ROUTER_EXTERNAL_TARGET_ERROR).",
        FaultTier.EDGE,
    ),
    FaultRecord(
        FaultKind.COMPUTE_EXCEEDED, 503, "EDGE_COMPUTE_EXCEEDED",
        "Edge function exceeded the 50ms CPU time limit.",
        FaultTier.EDGE,
    ),
    FaultRecord(
        FaultKind.TLS_HANDSHAKE_FAILED, 525, "EDGE_TLS_HANDSHAKE_FAILED",
        "SSL/TLS handshake failed between edge and origin.",
        FaultTier.EDGE,
    ),
)

TAXONOMY: Mapping[FaultKind, FaultRecord] = MappingProxyType({r.kind: r for r in _RECORDS})


def record_for(kind: FaultKind | str) -> FaultRecord:
    """Return the taxonomy entry for *kind* (accepts the enum or its value)."""
    return TAXONOMY[FaultKind(kind)]


def kinds_for_tier(tier: FaultTier) -> tuple[FaultKind, ...]:
    return tuple(r.kind for r in _RECORDS if r.tier is tier)


__all__ = ["TAXONOMY", "FaultKind", "FaultRecord", "FaultTier", "kinds_for_tier", "record_for"]
