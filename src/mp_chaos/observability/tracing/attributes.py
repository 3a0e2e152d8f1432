"""Observability – span attribute keys in the ``marketplace.*`` namespace."""
from __future__ import annotations


class MarketplaceAttributes:
    SERVICE_NAME = "service.name"

    HTTP_METHOD = "marketplace.http.method"
    HTTP_ROUTE = "marketplace.http.route"
    HTTP_STATUS_CODE = "marketplace.http.status_code"
    RESPONSE_ITEMS = "marketplace.response.items"

    CHAIN = "marketplace.chain"
    TOKEN_ADDRESS = "marketplace.token.address"
    TOKEN_SYMBOL = "marketplace.token.symbol"
    TOKEN_PRICE_USD = "marketplace.token.price_usd"
    SWAP_FROM_TOKEN = "marketplace.swap.from_token"
    SWAP_FROM_AMOUNT = "marketplace.swap.from_amount"
    SWAP_TO_AMOUNT = "marketplace.swap.to_amount"
    SWAP_PRICE_IMPACT_PCT = "marketplace.swap.price_impact_pct"
    SPARKLINE_POINTS_REQUESTED = "marketplace.sparkline.points_requested"
    SPARKLINE_POINTS_RETURNED = "marketplace.sparkline.points_returned"

    EDGE_REGION = "marketplace.edge.region"
    EDGE_REQUEST_ID = "marketplace.edge.request_id"
    EDGE_START_TIME = "marketplace.edge.start_time"
    EDGE_FAULT = "marketplace.edge.fault"
    EDGE_WAITED_MS = "marketplace.edge.waited_ms"

    INFRA_LATENCY_MS = "marketplace.infra.latency_ms"
    INFRA_LATENCY_MIN_MS = "marketplace.infra.latency_min_ms"
    INFRA_LATENCY_MAX_MS = "marketplace.infra.latency_max_ms"
    INFRA_LATENCY_AMPLIFIED = "marketplace.infra.latency_amplified"

    ERROR = "error"
    ERROR_CODE = "marketplace.error.code"
    ERROR_STATUS_CODE = "marketplace.error.status_code"
    ERROR_TYPE = "marketplace.error.type"
    ERROR_REQUEST_ID = "marketplace.error.request_id"
    ERROR_ORIGIN_SPAN = "marketplace.error.origin_span"
    ERROR_STACK_TRACE = "marketplace.error.stack_trace"
    ERROR_MESSAGE = "marketplace.error.message"
    ERROR_PROCESSING_MS = "marketplace.error.processing_ms"
    ERROR_CONTEXT = "marketplace.error.context"

    TIMEOUT_UPSTREAM_SERVICE = "marketplace.timeout.upstream_service"
    TIMEOUT_OPERATION = "marketplace.timeout.operation"
    TIMEOUT_THRESHOLD_MS = "marketplace.timeout.threshold_ms"
    TIMEOUT_WAITED_MS = "marketplace.timeout.waited_ms"

    BUSYBOX_ENABLED = "marketplace.busybox.enabled"
    BUSYBOX_FIRE_RATE = "marketplace.busybox.fire_rate"
    BUSYBOX_FAULT_TYPE = "marketplace.busybox.fault_type"
    BUSYBOX_INJECTED = "marketplace.busybox.injected"


MA = MarketplaceAttributes

__all__ = ["MA", "MarketplaceAttributes"]
