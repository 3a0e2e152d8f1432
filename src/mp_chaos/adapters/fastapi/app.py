"""FastAPI adapter – create_app application factory."""
from __future__ import annotations

import logging
from typing import Any

from mp_chaos.adapters.fastapi.exception_mapper import FastAPIExceptionMapper, _require_fastapi
from mp_chaos.adapters.fastapi.marketplace import MarketplaceRouter
from mp_chaos.adapters.fastapi.middleware import EdgeChaosMiddleware
from mp_chaos.adapters.fastapi.routers import BusyboxAdminRouter, HealthRouter
from mp_chaos.config import ChaosSettings, EnvSettingsLoader
from mp_chaos.observability.logging import JsonLoggerFactory, get_logger
from mp_chaos.runtime import ChaosRuntime

logger = get_logger(__name__)


def create_app(
    settings: ChaosSettings | None = None,
    runtime: ChaosRuntime | None = None,
    *,
    configure_logging: bool = False,
    log_level: int = logging.INFO,
) -> Any:
    """Build the FastAPI app: edge middleware, admin, health and demo routes.

    Settings default to ``CHAOS_*`` environment variables. Pass a prebuilt
    *runtime* to control randomness and sleeping (tests).
    """
    _require_fastapi()
    from fastapi import FastAPI  # type: ignore[import-untyped]

    if configure_logging:
        JsonLoggerFactory.configure(log_level)
    if runtime is None:
        runtime = ChaosRuntime.from_settings(settings or EnvSettingsLoader().load(ChaosSettings))

    app = FastAPI(title="mp-chaos")
    app.state.chaos = runtime
    app.add_middleware(EdgeChaosMiddleware, edge=runtime.edge)
    app.include_router(BusyboxAdminRouter(runtime.store, runtime.model))
    app.include_router(HealthRouter())
    app.include_router(MarketplaceRouter(runtime))
    FastAPIExceptionMapper(runtime.request_ids).register(app)

    config = runtime.store.get()
    logger.info("chaos.app_created", enabled=config.enabled, fire_rate=config.fire_rate)
    return app


__all__ = ["create_app"]
