"""FastAPI server for the cache admin dashboard and monitoring.

Provides HTTP endpoints for:
- /api/admin/cache-stats - Cache performance, savings and projections
- /api/admin/cache-history - Trailing hour/day/week windows for trend charts
- /api/admin/test-redis - Set/get/delete round trip against the store
- /health - Full health check with all dependencies
- /ready - Readiness probe for Kubernetes
- /live - Liveness probe for Kubernetes
- /metrics - Prometheus metrics in text format

Admin endpoints are guarded by an injectable verifier. The default one
accepts ``Authorization: Bearer <token>`` or ``X-Admin-Token`` matching
``server.admin_token``; with no token configured every admin call is
rejected.

Usage:
    from llm_cache.health.server import create_app
    app = create_app(config)
"""

import secrets
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog
from fastapi import Depends, FastAPI, Query, Request, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse

from llm_cache import __version__
from llm_cache.health.checks import HealthChecker, HealthStatus
from llm_cache.models.cache import WindowGranularity
from llm_cache.models.config import AppConfig
from llm_cache.observability.context import request_id_context
from llm_cache.observability.metrics import get_metrics_content_type, get_metrics_text
from llm_cache.services.factory import CacheComponents, build_components
from llm_cache.utils.exceptions import ProjectionInputInvalid

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"

# Returns True when the request carries admin privileges
AdminVerifier = Callable[[Request], Awaitable[bool]]


class AdminUnauthorized(Exception):
    """Raised by the admin dependency; rendered as a 401 payload."""


def token_verifier(admin_token: Optional[str]) -> AdminVerifier:
    """Build a verifier comparing a shared admin token."""

    async def verify(request: Request) -> bool:
        if not admin_token:
            return False
        supplied = request.headers.get("X-Admin-Token")
        auth = request.headers.get("Authorization", "")
        if auth.lower().startswith("bearer "):
            supplied = auth[7:].strip()
        if not supplied:
            return False
        return secrets.compare_digest(supplied.encode(), admin_token.encode())

    return verify


async def require_admin(request: Request) -> None:
    verifier: AdminVerifier = request.app.state.admin_verifier
    if not await verifier(request):
        logger.warning("admin_request_rejected", path=request.url.path)
        raise AdminUnauthorized()


def get_components(request: Request) -> CacheComponents:
    return request.app.state.components


def create_app(
    config: Optional[AppConfig] = None,
    components: Optional[CacheComponents] = None,
    admin_verifier: Optional[AdminVerifier] = None,
    title: str = "LLM Cache Admin API",
) -> FastAPI:
    """Create FastAPI application with admin and health endpoints.

    Args:
        config: Application configuration (defaults if omitted)
        components: Pre-built services; built from config if omitted
        admin_verifier: Privilege check for admin endpoints
        title: API title

    Returns:
        Configured FastAPI application
    """
    if components is None:
        components = build_components(config or AppConfig())
    config = components.config
    checker = HealthChecker(components.store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):  # pragma: no cover
        logger.info("server_starting", store_configured=components.store.configured)
        yield
        await components.close()
        logger.info("server_stopping")

    app = FastAPI(
        title=title,
        version=__version__,
        description="Cache statistics, store diagnostics and health endpoints",
        lifespan=lifespan,
    )
    app.state.components = components
    app.state.health_checker = checker
    app.state.admin_verifier = admin_verifier or token_verifier(
        config.server.admin_token
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        with request_id_context(request.headers.get(REQUEST_ID_HEADER)) as request_id:
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @app.exception_handler(AdminUnauthorized)
    async def unauthorized_handler(request: Request, exc: AdminUnauthorized) -> Response:
        return JSONResponse(
            content={"error": "Unauthorized"},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    @app.get(
        "/api/admin/cache-stats",
        response_model=None,
        summary="Cache statistics",
        dependencies=[Depends(require_admin)],
        responses={
            401: {"description": "Admin privileges required"},
            500: {"description": "Statistics could not be computed"},
        },
    )
    async def cache_stats(
        services: CacheComponents = Depends(get_components),
    ) -> Response:
        """Hit rates, savings per window and endpoint, and projections."""
        try:
            report = await services.stats.build_report()
        except ProjectionInputInvalid as e:
            logger.error("cache_stats_failed", error=str(e))
            return JSONResponse(
                content={
                    "error": "Failed to fetch cache statistics",
                    "message": str(e),
                },
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return JSONResponse(content=report, status_code=status.HTTP_200_OK)

    @app.get(
        "/api/admin/cache-history",
        response_model=None,
        summary="Cache statistics history",
        dependencies=[Depends(require_admin)],
        responses={401: {"description": "Admin privileges required"}},
    )
    async def cache_history(
        granularity: WindowGranularity = WindowGranularity.HOUR,
        periods: int = Query(24, ge=1),
        services: CacheComponents = Depends(get_components),
    ) -> Response:
        """Trailing windows, oldest first, capped at the retention."""
        history = await services.stats.build_history(granularity, periods)
        return JSONResponse(content=history, status_code=status.HTTP_200_OK)

    @app.get(
        "/api/admin/test-redis",
        response_model=None,
        summary="Store round trip test",
        dependencies=[Depends(require_admin)],
        responses={
            401: {"description": "Admin privileges required"},
            500: {"description": "Store test failed"},
        },
    )
    async def test_store(
        services: CacheComponents = Depends(get_components),
    ) -> Response:
        result = await services.stats.run_store_test()
        status_code = (
            status.HTTP_200_OK
            if result["success"]
            else status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        return JSONResponse(content=result, status_code=status_code)

    @app.get(
        "/health",
        response_model=None,
        summary="Full health check",
        responses={
            200: {"description": "Healthy or degraded"},
            503: {"description": "Unhealthy"},
        },
    )
    async def health_check() -> Response:
        """Returns 200 if healthy/degraded, 503 if unhealthy."""
        report = await checker.check_all()

        status_code = (
            status.HTTP_200_OK
            if report.status != HealthStatus.UNHEALTHY
            else status.HTTP_503_SERVICE_UNAVAILABLE
        )

        return JSONResponse(content=report.to_dict(), status_code=status_code)

    @app.get("/ready", response_model=None, summary="Readiness probe")
    async def readiness_probe() -> Response:
        if await checker.is_ready():
            return JSONResponse(
                content={"ready": True, "message": "Service is ready"},
                status_code=status.HTTP_200_OK,
            )
        return JSONResponse(
            content={"ready": False, "message": "Service is not ready"},
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    @app.get("/live", response_model=None, summary="Liveness probe")
    async def liveness_probe() -> Response:
        is_alive = await checker.is_alive()
        return JSONResponse(
            content={"alive": is_alive, "message": "Service is alive"},
            status_code=status.HTTP_200_OK,
        )

    @app.get(
        "/metrics",
        response_class=PlainTextResponse,
        summary="Prometheus metrics",
    )
    async def prometheus_metrics() -> Response:
        return Response(
            content=get_metrics_text(),
            media_type=get_metrics_content_type(),
        )

    @app.get("/", response_model=None, summary="Root endpoint")
    async def root() -> Dict[str, Any]:
        return {
            "name": title,
            "version": __version__,
            "endpoints": {
                "cache_stats": "/api/admin/cache-stats",
                "cache_history": "/api/admin/cache-history",
                "test_store": "/api/admin/test-redis",
                "health": "/health",
                "ready": "/ready",
                "live": "/live",
                "metrics": "/metrics",
            },
        }

    return app


def run_server(  # pragma: no cover
    config: AppConfig,
    host: Optional[str] = None,
    port: Optional[int] = None,
    log_level: str = "info",
) -> None:
    """Run the server (blocking).

    Args:
        config: Application configuration
        host: Host to bind to (config value if omitted)
        port: Port to bind to (config value if omitted)
        log_level: Uvicorn logging level
    """
    import uvicorn

    app = create_app(config)
    host = host or config.server.host
    port = port or config.server.port
    logger.info("server_starting", host=host, port=port)
    uvicorn.run(app, host=host, port=port, log_level=log_level)
