"""Time bucket arithmetic and key layout for usage counters.

Bucket ids (UTC):
- hour: ``2024-06-02T14``
- day:  ``2024-06-02``
- week: ``2024-W22`` (ISO week, Monday start)

Key layout under the configured prefix (default ``analytics``):
- ``analytics:hour:2024-06-02T14``                     aggregate hash
- ``analytics:day:2024-06-02:endpoint:translate``      per-endpoint hash
- ``analytics:day:2024-06-02:endpoints``               set of endpoint names

Hash fields are ``hits``, ``misses``, ``tokens_saved`` and
``cost_saved_micros`` (integer micro-dollars).

Every bucket key gets an absolute expiry of ``bucket end + retention``.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Mapping, Optional

from llm_cache.models.cache import WindowGranularity, utcnow
from llm_cache.models.config import AnalyticsSettings
from llm_cache.utils.formatting import quantize_half_up, to_decimal

FIELD_HITS = "hits"
FIELD_MISSES = "misses"
FIELD_TOKENS_SAVED = "tokens_saved"
FIELD_COST_SAVED_MICROS = "cost_saved_micros"

MICROS_PER_USD = Decimal("1000000")

BUCKET_SIZES: Dict[WindowGranularity, timedelta] = {
    WindowGranularity.HOUR: timedelta(hours=1),
    WindowGranularity.DAY: timedelta(days=1),
    WindowGranularity.WEEK: timedelta(weeks=1),
}


def as_utc(timestamp: Optional[datetime]) -> datetime:
    """Normalize to an aware UTC datetime; naive values are taken as UTC."""
    if timestamp is None:
        return utcnow()
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


def usd_to_micros(amount: Decimal) -> int:
    """Convert USD to whole micro-dollars, rounding half up.

    Raises:
        ValueError: If the amount is not finite or too large to convert.
    """
    return int(quantize_half_up(to_decimal(amount) * MICROS_PER_USD, Decimal("1")))


def micros_to_usd(micros: int) -> Decimal:
    return Decimal(micros) / MICROS_PER_USD


def parse_int(raw: Mapping[str, str], field: str) -> int:
    """Read an integer hash field, treating missing or garbage values as 0."""
    try:
        return max(0, int(raw.get(field) or 0))
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class Bucket:
    """One time bucket of a given granularity"""

    granularity: WindowGranularity
    bucket_id: str
    start: datetime

    @property
    def end(self) -> datetime:
        return self.start + BUCKET_SIZES[self.granularity]


def bucket_for(granularity: WindowGranularity, timestamp: datetime) -> Bucket:
    """Return the bucket containing ``timestamp``."""
    ts = as_utc(timestamp)

    if granularity == WindowGranularity.HOUR:
        start = ts.replace(minute=0, second=0, microsecond=0)
        return Bucket(granularity, start.strftime("%Y-%m-%dT%H"), start)

    if granularity == WindowGranularity.DAY:
        start = ts.replace(hour=0, minute=0, second=0, microsecond=0)
        return Bucket(granularity, start.strftime("%Y-%m-%d"), start)

    day_start = ts.replace(hour=0, minute=0, second=0, microsecond=0)
    start = day_start - timedelta(days=ts.isoweekday() - 1)
    iso_year, iso_week, _ = ts.isocalendar()
    return Bucket(granularity, f"{iso_year}-W{iso_week:02d}", start)


class WindowKeys:
    """Key names and retention for usage buckets."""

    def __init__(self, settings: AnalyticsSettings):
        self.prefix = settings.key_prefix
        self.retention: Dict[WindowGranularity, timedelta] = {
            WindowGranularity.HOUR: timedelta(hours=settings.hourly_retention_hours),
            WindowGranularity.DAY: timedelta(days=settings.daily_retention_days),
            WindowGranularity.WEEK: timedelta(weeks=settings.weekly_retention_weeks),
        }

    def aggregate_key(self, bucket: Bucket) -> str:
        return f"{self.prefix}:{bucket.granularity.value}:{bucket.bucket_id}"

    def endpoint_key(self, bucket: Bucket, endpoint: str) -> str:
        return f"{self.aggregate_key(bucket)}:endpoint:{endpoint}"

    def endpoint_set_key(self, bucket: Bucket) -> str:
        return f"{self.aggregate_key(bucket)}:endpoints"

    def expire_at(self, bucket: Bucket) -> int:
        """Unix time after which the bucket falls outside retention."""
        return int((bucket.end + self.retention[bucket.granularity]).timestamp())

    def max_periods(self, granularity: WindowGranularity) -> int:
        """Number of buckets kept for a granularity."""
        return int(self.retention[granularity] / BUCKET_SIZES[granularity])

    def trailing_buckets(
        self,
        granularity: WindowGranularity,
        now: datetime,
        periods: int,
    ) -> List[Bucket]:
        """Buckets ending with the current one, oldest first, capped by retention."""
        periods = max(1, min(periods, self.max_periods(granularity)))
        step = BUCKET_SIZES[granularity]
        current = bucket_for(granularity, now)
        return [
            bucket_for(granularity, current.start - step * offset)
            for offset in range(periods - 1, -1, -1)
        ]
