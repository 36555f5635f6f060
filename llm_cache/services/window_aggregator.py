"""
Rolling window statistics for the cache dashboard.

Reads the hour, day and week counters written by UsageRecorder. Every event
increments all three granularities, so the daily figure always includes
the current hour. The per-endpoint breakdown uses the daily horizon.

Reads never mutate state and may observe writes from concurrent instances
partially applied; the figures feed a monitoring display.
"""

from datetime import datetime
from typing import Dict, List, Mapping, Optional

import structlog

from llm_cache.models.cache import (
    DashboardStats,
    EndpointStats,
    WindowGranularity,
    WindowStats,
)
from llm_cache.models.config import AnalyticsSettings
from llm_cache.services.store import RedisStoreAdapter
from llm_cache.services.windows import (
    FIELD_COST_SAVED_MICROS,
    FIELD_HITS,
    FIELD_MISSES,
    FIELD_TOKENS_SAVED,
    Bucket,
    WindowKeys,
    as_utc,
    bucket_for,
    micros_to_usd,
    parse_int,
)

logger = structlog.get_logger()

ENDPOINT_HORIZON = WindowGranularity.DAY


def _window_stats(bucket: Bucket, raw: Mapping[str, str]) -> WindowStats:
    return WindowStats(
        granularity=bucket.granularity,
        window_key=bucket.bucket_id,
        cache_hits=parse_int(raw, FIELD_HITS),
        cache_misses=parse_int(raw, FIELD_MISSES),
        tokens_saved=parse_int(raw, FIELD_TOKENS_SAVED),
        cost_saved=micros_to_usd(parse_int(raw, FIELD_COST_SAVED_MICROS)),
    )


class WindowAggregator:
    """Answers dashboard queries from the shared counters.

    Args:
        store: Store adapter holding the counters
        settings: Analytics settings (key prefix, retention, tracked endpoints)
    """

    def __init__(self, store: RedisStoreAdapter, settings: AnalyticsSettings):
        self.store = store
        self.settings = settings
        self.keys = WindowKeys(settings)

    async def get_dashboard_stats(self, now: Optional[datetime] = None) -> DashboardStats:
        """Current hourly, daily and weekly stats plus the daily endpoint breakdown."""
        now = as_utc(now)
        buckets = [bucket_for(granularity, now) for granularity in WindowGranularity]
        stats = await self._read_windows(buckets)
        by_granularity = {s.granularity: s for s in stats}

        return DashboardStats(
            hourly=by_granularity[WindowGranularity.HOUR],
            daily=by_granularity[WindowGranularity.DAY],
            weekly=by_granularity[WindowGranularity.WEEK],
            endpoints=await self.get_endpoint_breakdown(now),
        )

    async def get_window_stats(
        self,
        granularity: WindowGranularity,
        now: Optional[datetime] = None,
    ) -> WindowStats:
        """Stats for the bucket of ``granularity`` containing ``now``."""
        bucket = bucket_for(granularity, as_utc(now))
        return (await self._read_windows([bucket]))[0]

    async def get_history(
        self,
        granularity: WindowGranularity,
        periods: int,
        now: Optional[datetime] = None,
    ) -> List[WindowStats]:
        """Trailing buckets ending with the current one, oldest first.

        ``periods`` is capped at the retention for the granularity.
        """
        buckets = self.keys.trailing_buckets(granularity, as_utc(now), periods)
        return await self._read_windows(buckets)

    async def get_endpoint_stats(
        self,
        endpoint: str,
        granularity: WindowGranularity = ENDPOINT_HORIZON,
        now: Optional[datetime] = None,
    ) -> EndpointStats:
        bucket = bucket_for(granularity, as_utc(now))
        result = await self.store.read_hashes([self.keys.endpoint_key(bucket, endpoint)])
        raw: Mapping[str, str] = result.value[0] if result.ok else {}
        return EndpointStats(
            endpoint=endpoint,
            hits=parse_int(raw, FIELD_HITS),
            misses=parse_int(raw, FIELD_MISSES),
        )

    async def get_endpoint_breakdown(
        self, now: Optional[datetime] = None
    ) -> List[EndpointStats]:
        """Per-endpoint stats for today.

        Lists the configured endpoints plus any endpoint that recorded
        activity today, sorted by name.
        """
        bucket = bucket_for(ENDPOINT_HORIZON, as_utc(now))

        members = await self.store.read_members(self.keys.endpoint_set_key(bucket))
        names = set(self.settings.tracked_endpoints)
        if members.ok:
            names.update(members.value)
        endpoints = sorted(names)
        if not endpoints:
            return []

        result = await self.store.read_hashes(
            [self.keys.endpoint_key(bucket, name) for name in endpoints]
        )
        rows: List[Mapping[str, str]] = (
            result.value if result.ok else [{} for _ in endpoints]
        )

        return [
            EndpointStats(
                endpoint=name,
                hits=parse_int(raw or {}, FIELD_HITS),
                misses=parse_int(raw or {}, FIELD_MISSES),
            )
            for name, raw in zip(endpoints, rows)
        ]

    async def _read_windows(self, buckets: List[Bucket]) -> List[WindowStats]:
        """Read aggregate hashes for buckets; a failed read yields zeros."""
        result = await self.store.read_hashes(
            [self.keys.aggregate_key(bucket) for bucket in buckets]
        )
        if not result.ok:
            logger.warning(
                "window_stats_unavailable",
                buckets=[bucket.bucket_id for bucket in buckets],
                kind=result.error_kind.value if result.error_kind else None,
            )
            rows: List[Dict[str, str]] = [{} for _ in buckets]
        else:
            rows = result.value

        return [_window_stats(bucket, raw or {}) for bucket, raw in zip(buckets, rows)]
