"""
Cache statistics report for the admin dashboard.

Combines the store probe, window stats, projections and formatting into the
payload served by ``GET /api/admin/cache-stats``. Trailing windows for
trend charts are served by ``GET /api/admin/cache-history``. Every figure
is given both formatted (``hitRate``, ``costSaved``) and raw
(``hitRateRaw``, ``costSavedRaw``).
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, Optional

import structlog

from llm_cache.models.cache import (
    EndpointStats,
    Projection,
    WindowGranularity,
    WindowStats,
    utcnow,
)
from llm_cache.services.projection import ProjectionEngine
from llm_cache.services.store import RedisStoreAdapter
from llm_cache.services.window_aggregator import WindowAggregator
from llm_cache.utils.formatting import format_cost, format_hit_rate

logger = structlog.get_logger()

STORE_TEST_KEY = "test:connection"
STORE_TEST_TTL_SECONDS = 60


def window_payload(stats: WindowStats) -> Dict[str, Any]:
    return {
        "hitRate": format_hit_rate(stats.hit_rate),
        "hitRateRaw": stats.hit_rate,
        "totalRequests": stats.total_requests,
        "cacheHits": stats.cache_hits,
        "cacheMisses": stats.cache_misses,
        "tokensSaved": stats.tokens_saved,
        "costSaved": format_cost(stats.cost_saved),
        "costSavedRaw": float(stats.cost_saved),
    }


def endpoint_payload(stats: EndpointStats) -> Dict[str, Any]:
    return {
        "endpoint": stats.endpoint,
        "hits": stats.hits,
        "misses": stats.misses,
        "totalRequests": stats.total_requests,
        "hitRate": format_hit_rate(stats.hit_rate),
        "hitRateRaw": stats.hit_rate,
    }


def projection_payload(projection: Projection) -> Dict[str, Any]:
    return {
        "currentDailySavings": format_cost(projection.current_daily_savings),
        "projectedMonthlySavings": format_cost(projection.projected_monthly_savings),
        "projectedYearlySavings": format_cost(projection.projected_yearly_savings),
        "currentDailySavingsRaw": float(projection.current_daily_savings),
        "projectedMonthlySavingsRaw": float(projection.projected_monthly_savings),
        "projectedYearlySavingsRaw": float(projection.projected_yearly_savings),
    }


class CacheStatsService:
    """Builds admin-facing cache reports.

    Args:
        store: Store adapter (probed for connectivity)
        aggregator: Window aggregator over the usage counters
        projections: Projection engine (default instance if omitted)
    """

    def __init__(
        self,
        store: RedisStoreAdapter,
        aggregator: WindowAggregator,
        projections: Optional[ProjectionEngine] = None,
    ):
        self.store = store
        self.aggregator = aggregator
        self.projections = projections or ProjectionEngine()

    async def build_report(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Build the full cache-stats payload.

        Raises:
            ProjectionInputInvalid: If the daily cost figure is invalid
        """
        probe, dashboard = await asyncio.gather(
            self.store.probe(),
            self.aggregator.get_dashboard_stats(now),
        )
        projection = self.projections.project(dashboard.daily.cost_saved)

        logger.debug(
            "cache_report_built",
            connected=probe.connected,
            daily_requests=dashboard.daily.total_requests,
        )

        return {
            "redis": {
                "connected": probe.connected,
                "latency": probe.latency_ms,
                "error": probe.error,
            },
            "performance": {
                "hourly": window_payload(dashboard.hourly),
                "daily": window_payload(dashboard.daily),
                "weekly": window_payload(dashboard.weekly),
            },
            "endpoints": [endpoint_payload(e) for e in dashboard.endpoints],
            "projections": projection_payload(projection),
            "summary": {
                "overallHitRate": format_hit_rate(dashboard.daily.hit_rate),
                "totalRequestsToday": dashboard.daily.total_requests,
                "tokensSavedToday": dashboard.daily.tokens_saved,
                "costSavedToday": format_cost(dashboard.daily.cost_saved),
                "estimatedMonthlySavings": format_cost(
                    projection.projected_monthly_savings
                ),
            },
            "timestamp": (now or utcnow()).isoformat(),
        }

    async def build_history(
        self,
        granularity: WindowGranularity = WindowGranularity.HOUR,
        periods: int = 24,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Trailing windows for trend charts, oldest first.

        ``periods`` is capped at the retention for the granularity.
        """
        history = await self.aggregator.get_history(granularity, periods, now)
        return {
            "granularity": granularity.value,
            "windows": [
                {"window": stats.window_key, **window_payload(stats)}
                for stats in history
            ],
            "timestamp": (now or utcnow()).isoformat(),
        }

    async def run_store_test(self) -> Dict[str, Any]:
        """Exercise set, get and delete on a test key.

        Returns:
            Payload with per-step results; ``success`` is False when the
            store is unreachable or any step failed.
        """
        probe = await self.store.probe()
        if not probe.connected:
            return {"success": False, "error": probe.error or "Store connection failed"}

        test_value = {
            "timestamp": utcnow().isoformat(),
            "message": "Store is working",
        }
        set_ok = await self.store.set(STORE_TEST_KEY, test_value, STORE_TEST_TTL_SECONDS)
        retrieved = await self.store.get(STORE_TEST_KEY)
        delete_ok = await self.store.delete(STORE_TEST_KEY)

        steps = {"set": set_ok, "get": retrieved is not None, "delete": delete_ok}
        return {
            "success": all(steps.values()),
            "message": "Store round trip completed",
            "test": steps,
            "retrievedValue": retrieved,
            "latencyMs": probe.latency_ms,
        }
