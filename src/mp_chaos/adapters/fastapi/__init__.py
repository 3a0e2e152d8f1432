"""FastAPI adapter – edge middleware, error mapping, admin/health/demo routers, app factory."""
from mp_chaos.adapters.fastapi.app import create_app
from mp_chaos.adapters.fastapi.exception_mapper import FastAPIExceptionMapper, RouteErrorHandler, error_payload
from mp_chaos.adapters.fastapi.marketplace import MarketplaceRouter
from mp_chaos.adapters.fastapi.middleware import EdgeChaosMiddleware
from mp_chaos.adapters.fastapi.routers import BusyboxAdminRouter, HealthRouter

__all__ = [
    "BusyboxAdminRouter",
    "EdgeChaosMiddleware",
    "FastAPIExceptionMapper",
    "HealthRouter",
    "MarketplaceRouter",
    "RouteErrorHandler",
    "create_app",
    "error_payload",
]
