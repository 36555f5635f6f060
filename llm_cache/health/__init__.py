"""Admin and health HTTP surface.

Provides:
- Health check implementations for the cache store
- FastAPI endpoints (/api/admin/cache-stats, /api/admin/test-redis,
  /health, /ready, /live, /metrics)

Usage:
    from llm_cache.health import create_app

    app = create_app(config)
    uvicorn.run(app, host="0.0.0.0", port=8000)
"""

from llm_cache.health.checks import (
    HealthChecker,
    HealthStatus,
    CheckResult,
    CheckStatus,
    HealthReport,
)
from llm_cache.health.server import create_app, run_server, token_verifier

__all__ = [
    "HealthChecker",
    "HealthStatus",
    "CheckResult",
    "CheckStatus",
    "HealthReport",
    "create_app",
    "run_server",
    "token_verifier",
]
