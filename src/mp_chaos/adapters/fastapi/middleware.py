"""FastAPI adapter – EdgeChaosMiddleware.

Runs the edge tier in front of every route: a rejected request is answered
here and never reaches application code; a forwarded request carries the
``x-edge-*`` metadata headers inward and ``X-Edge-*`` headers back out.
"""
from __future__ import annotations

import json
import time
from typing import TYPE_CHECKING, Any

from mp_chaos.adapters.fastapi.exception_mapper import _require_fastapi, error_payload
from mp_chaos.observability.correlation import CorrelationContext, RequestContext
from mp_chaos.pipeline import EdgeLayer, EdgeOutcome, EdgeRequest

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Receive, Scope, Send


def _content_length(headers: dict[bytes, bytes]) -> int | None:
    raw = headers.get(b"content-length", b"").decode().strip()
    return int(raw) if raw.isdigit() else None


class EdgeChaosMiddleware:
    """ASGI middleware wrapping :class:`~mp_chaos.pipeline.EdgeLayer`.

    Parameters
    ----------
    app:
        The inner ASGI application.
    edge:
        The edge layer to evaluate for each request.
    exempt_prefixes:
        Path prefixes that bypass the edge entirely. The admin surface must
        stay reachable to turn chaos off.
    """

    def __init__(
        self,
        app: "ASGIApp",
        edge: EdgeLayer,
        exempt_prefixes: tuple[str, ...] = ("/api/admin",),
    ) -> None:
        _require_fastapi()
        self.app = app
        self._edge = edge
        self._exempt = exempt_prefixes

    async def __call__(self, scope: "Scope", receive: "Receive", send: "Send") -> None:
        import structlog

        if scope["type"] != "http" or scope["path"].startswith(self._exempt):
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        headers = dict(scope.get("headers", []))
        outcome = await self._edge.handle(
            EdgeRequest(
                method=scope["method"],
                path=scope["path"],
                content_length=_content_length(headers),
            )
        )
        CorrelationContext.set(RequestContext(correlation_id=outcome.request_id, edge_region=outcome.region))
        structlog.contextvars.bind_contextvars(correlation_id=outcome.request_id, edge_region=outcome.region)

        if outcome.rejected:
            await self._reject(outcome, send, start)
            return

        forwarded = {k.encode(): v.encode() for k, v in outcome.forward_headers().items()}
        inner_headers = [(k, v) for k, v in scope.get("headers", []) if k not in forwarded]
        inner_headers.extend(forwarded.items())
        scope = {**scope, "headers": inner_headers}

        async def send_with_edge_headers(message: Any) -> None:
            if message["type"] == "http.response.start":
                headers_list: list[tuple[bytes, bytes]] = list(message.get("headers", []))
                headers_list.extend(_edge_response_headers(outcome, start))
                message = {**message, "headers": headers_list}
            await send(message)

        await self.app(scope, receive, send_with_edge_headers)

    async def _reject(self, outcome: EdgeOutcome, send: "Send", start: float) -> None:
        fault = outcome.fault
        assert fault is not None
        status, body, extra_headers = error_payload(fault, outcome.request_id)
        body["error"]["region"] = outcome.region
        body["error"]["runtime"] = "edge"
        payload = json.dumps(body).encode()

        headers = [
            (b"content-type", b"application/json"),
            (b"content-length", str(len(payload)).encode()),
            *_edge_response_headers(outcome, start),
        ]
        headers.extend((k.lower().encode(), v.encode()) for k, v in extra_headers.items())
        if status == 429:
            headers.append((b"x-ratelimit-remaining", b"0"))
        await send({"type": "http.response.start", "status": status, "headers": headers})
        await send({"type": "http.response.body", "body": payload})


def _edge_response_headers(outcome: EdgeOutcome, start: float) -> list[tuple[bytes, bytes]]:
    latency_ms = round((time.perf_counter() - start) * 1000)
    return [
        (b"x-edge-region", outcome.region.encode()),
        (b"x-edge-request-id", outcome.request_id.encode()),
        (b"x-edge-latency", f"{latency_ms}ms".encode()),
    ]


__all__ = ["EdgeChaosMiddleware"]
