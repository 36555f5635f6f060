"""Wiring of the cache layer services from configuration."""

from dataclasses import dataclass
from typing import Optional

from llm_cache.models.config import AppConfig
from llm_cache.services.llm_cache_service import LLMCacheService
from llm_cache.services.projection import ProjectionEngine
from llm_cache.services.stats_service import CacheStatsService
from llm_cache.services.store import RedisStoreAdapter
from llm_cache.services.usage_recorder import UsageRecorder
from llm_cache.services.window_aggregator import WindowAggregator


@dataclass
class CacheComponents:
    """All services sharing one store adapter."""

    config: AppConfig
    store: RedisStoreAdapter
    recorder: UsageRecorder
    aggregator: WindowAggregator
    cache: LLMCacheService
    stats: CacheStatsService

    async def close(self) -> None:
        await self.store.close()


def build_components(
    config: AppConfig, store: Optional[RedisStoreAdapter] = None
) -> CacheComponents:
    """Build the service graph.

    Args:
        config: Application configuration
        store: Pre-built store adapter (tests); created from config if omitted
    """
    store = store or RedisStoreAdapter.from_settings(config.store)
    recorder = UsageRecorder(store, config.analytics)
    aggregator = WindowAggregator(store, config.analytics)
    return CacheComponents(
        config=config,
        store=store,
        recorder=recorder,
        aggregator=aggregator,
        cache=LLMCacheService(store, recorder, config.ttl),
        stats=CacheStatsService(store, aggregator, ProjectionEngine()),
    )
