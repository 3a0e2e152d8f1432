"""FastAPI adapter – chaos admin and health routers."""
import json
from typing import Any

from mp_chaos.adapters.fastapi.exception_mapper import _require_fastapi
from mp_chaos.faults import FaultConfigPatch, FaultConfigStore, InvalidConfigPatchError
from mp_chaos.kernel.time import utc_now
from mp_chaos.observability.logging import get_logger
from mp_chaos.observability.tracing import MA, ServiceTag, SpanModel

logger = get_logger(__name__)

HEALTH_VERSION = "1.0.0"


def BusyboxAdminRouter(
    store: FaultConfigStore,
    model: SpanModel,
    path: str = "/api/admin/busybox",
    tags: list[str] | None = None,
) -> Any:
    """Return the router that reads and patches the chaos configuration.

    The admin surface is never fault-injected, so chaos can always be turned
    off. ``POST`` merges a partial update; a body that is not JSON, or whose
    fields have the wrong type, is answered with ``400`` and leaves the
    configuration untouched.
    """
    _require_fastapi()
    from fastapi import APIRouter, Request  # type: ignore[import-untyped]
    from fastapi.responses import JSONResponse  # type: ignore[import-untyped]

    router = APIRouter(tags=tags or ["admin"])

    @router.get(path)
    async def get_busybox() -> dict[str, Any]:
        async with model.trace("marketplace.admin.busybox.get", ServiceTag.ADMIN) as span:
            config = store.get()
            span.set_attribute(MA.BUSYBOX_ENABLED, config.enabled)
            span.set_attribute(MA.BUSYBOX_FIRE_RATE, config.fire_rate)
            return config.to_wire()

    @router.post(path)
    async def set_busybox(request: Request) -> Any:
        async with model.trace("marketplace.admin.busybox.set", ServiceTag.ADMIN) as span:
            try:
                payload = json.loads(await request.body())
            except ValueError:
                return JSONResponse(status_code=400, content={"error": "Invalid JSON body"})
            try:
                patch = FaultConfigPatch.from_wire(payload)
            except InvalidConfigPatchError as exc:
                logger.warning("busybox.patch_rejected", reason=exc.message)
                return JSONResponse(status_code=400, content={"error": exc.message})
            updated = store.merge(patch)
            span.set_attribute(MA.BUSYBOX_ENABLED, updated.enabled)
            span.set_attribute(MA.BUSYBOX_FIRE_RATE, updated.fire_rate)
            return updated.to_wire()

    return router


def HealthRouter(path: str = "/api/health", tags: list[str] | None = None) -> Any:
    """Return the health route; it reports the edge region the request landed in."""
    _require_fastapi()
    from fastapi import APIRouter, Request  # type: ignore[import-untyped]
    from fastapi.responses import JSONResponse  # type: ignore[import-untyped]

    router = APIRouter(tags=tags or ["ops"])

    @router.get(path)
    async def health(request: Request) -> Any:
        region = request.headers.get("x-edge-region", "unknown")
        request_id = request.headers.get("x-edge-request-id", "unknown")
        logger.info("health_check_ok", region=region, request_id=request_id)
        return JSONResponse(
            status_code=200,
            content={
                "status": "ok",
                "region": region,
                "requestId": request_id,
                "timestamp": utc_now().isoformat(),
                "runtime": "edge",
                "version": HEALTH_VERSION,
                "chaos": request.headers.get("x-edge-chaos") == "true",
            },
            headers={"Cache-Control": "no-cache, no-store"},
        )

    return router


__all__ = ["BusyboxAdminRouter", "HEALTH_VERSION", "HealthRouter"]
