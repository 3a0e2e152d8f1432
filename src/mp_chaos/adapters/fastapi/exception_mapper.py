"""FastAPI adapter – error body contract, RouteErrorHandler and FastAPIExceptionMapper."""
from __future__ import annotations

from typing import Any

from mp_chaos.kernel.errors import BaseError, FaultError
from mp_chaos.kernel.time import utc_now
from mp_chaos.observability.correlation import CorrelationContext, RequestIdGenerator
from mp_chaos.observability.logging import get_logger
from mp_chaos.observability.tracing import MA, SimSpan, SpanModel

logger = get_logger(__name__)


def _require_fastapi() -> None:
    try:
        import fastapi  # noqa: F401
    except ImportError as exc:
        raise ImportError(
            "Install 'mp-chaos[fastapi]' to use the FastAPI adapter"
        ) from exc


def error_payload(exc: BaseException, request_id: str) -> tuple[int, dict[str, Any], dict[str, str]]:
    """Convert *exc* into ``(status, body, headers)`` of the wire error contract.

    Body schema::

        {"error": {"code", "message", "statusCode", "timestamp", "requestId", "context"?}}

    Errors outside the :class:`BaseError` hierarchy become ``500 INTERNAL_ERROR``
    with the raw message and no chaos marker.
    """
    headers: dict[str, str] = {}
    if isinstance(exc, BaseError):
        error = {
            "code": exc.code,
            "message": exc.message,
            "statusCode": exc.status_code,
            "timestamp": exc.timestamp,
            "requestId": request_id,
        }
        if exc.context:
            error["context"] = dict(exc.context)
        status = exc.status_code
        if isinstance(exc, FaultError) and exc.retry_after_seconds is not None:
            headers["Retry-After"] = str(exc.retry_after_seconds)
    else:
        status = 500
        error = {
            "code": "INTERNAL_ERROR",
            "message": str(exc) or type(exc).__name__,
            "statusCode": status,
            "timestamp": utc_now().isoformat(),
            "requestId": request_id,
        }
    return status, {"error": error}, headers


class RouteErrorHandler:
    """Single conversion point from a route's exception to its HTTP response.

    Adds the error span for *exc* under the root span (a no-op when a child
    span already recorded it), moves the root span to ``error`` and returns
    the wire response.
    """

    def __init__(self, model: SpanModel, request_ids: RequestIdGenerator) -> None:
        _require_fastapi()
        self._model = model
        self._request_ids = request_ids

    async def handle(self, exc: Exception, root: SimSpan) -> Any:
        from fastapi.responses import JSONResponse  # type: ignore[import-untyped]

        request_id = self._request_ids.next_id()
        status, body, headers = error_payload(exc, request_id)

        await self._model.record_error_span(root, exc)
        root.set_attribute(MA.HTTP_STATUS_CODE, status)
        root.set_attribute(MA.ERROR_REQUEST_ID, request_id)
        root.mark_error(exc)

        log = logger.bind(span=root.name, status=status, code=body["error"]["code"], request_id=request_id)
        if status >= 500:
            log.error("route.request_failed", message=body["error"]["message"])
        else:
            log.warning("route.request_rejected", message=body["error"]["message"])
        return JSONResponse(status_code=status, content=body, headers=headers)


class FastAPIExceptionMapper:
    """Register the error contract for exceptions that escape a route untraced."""

    def __init__(self, request_ids: RequestIdGenerator) -> None:
        _require_fastapi()
        self._request_ids = request_ids

    def register(self, app: Any) -> None:
        """Register handlers on a ``FastAPI`` or ``Starlette`` app."""
        from fastapi.responses import JSONResponse  # type: ignore[import-untyped]

        def handler(request: Any, exc: Exception) -> Any:  # noqa: ARG001
            ctx = CorrelationContext.get()
            request_id = ctx.correlation_id if ctx is not None else self._request_ids.next_id()
            status, body, headers = error_payload(exc, request_id)
            logger.error("route.unhandled_error", status=status, code=body["error"]["code"], request_id=request_id)
            return JSONResponse(status_code=status, content=body, headers=headers)

        app.add_exception_handler(BaseError, handler)
        app.add_exception_handler(Exception, handler)


__all__ = ["FastAPIExceptionMapper", "RouteErrorHandler", "error_payload"]
