"""
Hit/miss usage recorder.

Each cacheable request produces one usage event. The event is applied as
atomic increments to the current hour, day and week buckets (aggregate and
per-endpoint) in the shared store, so every running instance contributes
to the same totals. Events are never stored individually.

Recording never fails the surrounding request: a failed write is logged,
counted, and dropped.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple, Union

import structlog
from pydantic import ValidationError

from llm_cache.models.cache import CacheOutcome, UsageEvent, WindowGranularity
from llm_cache.models.config import AnalyticsSettings
from llm_cache.observability.logging import safe_log
from llm_cache.observability.metrics import (
    CACHE_LOOKUPS,
    COST_SAVED_USD_TOTAL,
    TOKENS_SAVED_TOTAL,
    USAGE_RECORD_FAILURES,
)
from llm_cache.services.pricing import estimate_cost
from llm_cache.services.store import HashIncrement, RedisStoreAdapter
from llm_cache.services.windows import (
    FIELD_COST_SAVED_MICROS,
    FIELD_HITS,
    FIELD_MISSES,
    FIELD_TOKENS_SAVED,
    WindowKeys,
    as_utc,
    bucket_for,
    usd_to_micros,
)
from llm_cache.utils.formatting import to_decimal

logger = structlog.get_logger()

Amount = Union[int, float, Decimal]


class UsageRecorder:
    """Records cache outcomes into time-bucketed counters.

    Args:
        store: Store adapter holding the counters
        settings: Analytics settings (key prefix, retention, pricing model)
    """

    def __init__(self, store: RedisStoreAdapter, settings: AnalyticsSettings):
        self.store = store
        self.settings = settings
        self.keys = WindowKeys(settings)

    async def record(
        self,
        endpoint: str,
        outcome: Union[CacheOutcome, str],
        tokens_saved: int = 0,
        cost_saved: Amount = 0,
        timestamp: Optional[datetime] = None,
    ) -> bool:
        """Record one hit or miss.

        Savings only apply to hits; a miss always records zero savings.

        Args:
            endpoint: Feature endpoint name (e.g. "translate")
            outcome: "hit" or "miss"
            tokens_saved: Tokens the cached response avoided spending
            cost_saved: Estimated USD avoided
            timestamp: Event time (defaults to now, UTC)

        Returns:
            True if the counters were updated, False if the event was dropped
        """
        event = self._build_event(endpoint, outcome, tokens_saved, cost_saved, timestamp)
        if event is None:
            return False

        CACHE_LOOKUPS.labels(endpoint=event.endpoint, outcome=event.outcome.value).inc()
        if event.tokens_saved:
            TOKENS_SAVED_TOTAL.labels(endpoint=event.endpoint).inc(event.tokens_saved)
        if event.cost_saved:
            COST_SAVED_USD_TOTAL.labels(endpoint=event.endpoint).inc(
                float(event.cost_saved)
            )

        increments, members, expire_at = self._plan_writes(event)
        result = await self.store.increment(increments, members, expire_at)

        if not result.ok:
            USAGE_RECORD_FAILURES.inc()
            safe_log(
                logger.warning,
                "usage_record_dropped",
                endpoint=event.endpoint,
                outcome=event.outcome.value,
                kind=result.error_kind.value if result.error_kind else None,
            )
            return False

        safe_log(
            logger.debug,
            "usage_recorded",
            endpoint=event.endpoint,
            outcome=event.outcome.value,
            tokens_saved=event.tokens_saved,
            cost_saved=str(event.cost_saved),
        )
        return True

    async def record_hit(
        self,
        endpoint: str,
        tokens_saved: int = 0,
        model: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> bool:
        """Record a hit, estimating the cost saved from the token count."""
        cost = estimate_cost(tokens_saved, model or self.settings.default_model)
        return await self.record(
            endpoint, CacheOutcome.HIT, tokens_saved, cost, timestamp
        )

    async def record_miss(
        self, endpoint: str, timestamp: Optional[datetime] = None
    ) -> bool:
        return await self.record(endpoint, CacheOutcome.MISS, timestamp=timestamp)

    def _build_event(
        self,
        endpoint: str,
        outcome: Union[CacheOutcome, str],
        tokens_saved: int,
        cost_saved: Amount,
        timestamp: Optional[datetime],
    ) -> Optional[UsageEvent]:
        """Validate inputs into a UsageEvent, or None if unusable."""
        try:
            outcome = CacheOutcome(outcome)
        except ValueError:
            safe_log(
                logger.warning, "usage_event_invalid", endpoint=endpoint, outcome=outcome
            )
            return None

        try:
            cost = to_decimal(cost_saved)
            # Must also fit the micro-dollar counters
            usd_to_micros(cost)
        except ValueError:
            safe_log(logger.warning, "usage_cost_not_finite", endpoint=endpoint)
            cost = Decimal("0")

        if tokens_saved < 0 or cost < 0:
            safe_log(
                logger.warning,
                "usage_savings_negative",
                endpoint=endpoint,
                tokens_saved=tokens_saved,
                cost_saved=str(cost),
            )
        tokens_saved = max(0, tokens_saved)
        cost = max(Decimal("0"), cost)

        if outcome == CacheOutcome.MISS:
            tokens_saved = 0
            cost = Decimal("0")

        try:
            return UsageEvent(
                endpoint=endpoint.strip(),
                outcome=outcome,
                tokens_saved=tokens_saved,
                cost_saved=cost,
                timestamp=as_utc(timestamp),
            )
        except ValidationError as e:
            safe_log(
                logger.warning, "usage_event_invalid", endpoint=endpoint, error=str(e)
            )
            return None

    def _plan_writes(
        self, event: UsageEvent
    ) -> Tuple[List[HashIncrement], List[Tuple[str, str]], Dict[str, int]]:
        """Compute the increments, set members and expiries for one event."""
        counter_field = FIELD_HITS if event.outcome == CacheOutcome.HIT else FIELD_MISSES
        cost_micros = usd_to_micros(event.cost_saved)

        increments: List[HashIncrement] = []
        members: List[Tuple[str, str]] = []
        expire_at: Dict[str, int] = {}

        for granularity in WindowGranularity:
            bucket = bucket_for(granularity, event.timestamp)
            aggregate_key = self.keys.aggregate_key(bucket)
            endpoint_key = self.keys.endpoint_key(bucket, event.endpoint)
            set_key = self.keys.endpoint_set_key(bucket)

            for key in (aggregate_key, endpoint_key):
                increments.append((key, counter_field, 1))
                if event.tokens_saved:
                    increments.append((key, FIELD_TOKENS_SAVED, event.tokens_saved))
                if cost_micros:
                    increments.append((key, FIELD_COST_SAVED_MICROS, cost_micros))

            members.append((set_key, event.endpoint))

            deadline = self.keys.expire_at(bucket)
            for key in (aggregate_key, endpoint_key, set_key):
                expire_at[key] = deadline

        return increments, members, expire_at
