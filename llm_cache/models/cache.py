"""
Data models for the caching and usage-analytics system.

Defines cache entries, usage events, window statistics, projections and
the internal result model used by the store adapter.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheOutcome(str, Enum):
    """Outcome of a cacheable request"""

    HIT = "hit"
    MISS = "miss"


class WindowGranularity(str, Enum):
    """Time bucket granularity for usage counters"""

    HOUR = "hour"
    DAY = "day"
    WEEK = "week"


class StoreErrorKind(str, Enum):
    """Failure kinds reported by the store adapter"""

    STORE_UNAVAILABLE = "store_unavailable"
    STORE_TIMEOUT = "store_timeout"
    SERIALIZATION_ERROR = "serialization_error"


class CacheEntry(BaseModel):
    """A value held by the backing store.

    Only used to describe what is written; the adapter never keeps entries
    in process memory.
    """

    key: str = Field(..., min_length=1)
    value: str
    ttl_seconds: int = Field(..., gt=0)
    created_at: datetime = Field(default_factory=utcnow)


class UsageEvent(BaseModel):
    """One hit/miss outcome for a cacheable request.

    Converted straight into counter increments and never stored
    individually.
    """

    endpoint: str = Field(..., min_length=1)
    outcome: CacheOutcome
    tokens_saved: int = Field(0, ge=0)
    cost_saved: Decimal = Field(Decimal("0"), ge=0)
    timestamp: datetime = Field(default_factory=utcnow)


class WindowStats(BaseModel):
    """Aggregated counters for one time window"""

    model_config = ConfigDict(frozen=True)

    granularity: WindowGranularity
    window_key: str
    cache_hits: int = Field(0, ge=0)
    cache_misses: int = Field(0, ge=0)
    tokens_saved: int = Field(0, ge=0)
    cost_saved: Decimal = Field(Decimal("0"), ge=0)

    @property
    def total_requests(self) -> int:
        return self.cache_hits + self.cache_misses

    @property
    def hit_rate(self) -> float:
        """Fraction of requests served from cache, 0.0 when idle"""
        total = self.total_requests
        if total == 0:
            return 0.0
        return self.cache_hits / total


class EndpointStats(BaseModel):
    """Hit/miss breakdown for one endpoint over the daily horizon"""

    model_config = ConfigDict(frozen=True)

    endpoint: str
    hits: int = Field(0, ge=0)
    misses: int = Field(0, ge=0)

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        total = self.total_requests
        if total == 0:
            return 0.0
        return self.hits / total


class DashboardStats(BaseModel):
    """Snapshot answered by the window aggregator"""

    hourly: WindowStats
    daily: WindowStats
    weekly: WindowStats
    endpoints: List[EndpointStats] = Field(default_factory=list)


class Projection(BaseModel):
    """Savings extrapolated from the current daily run rate"""

    model_config = ConfigDict(frozen=True)

    current_daily_savings: Decimal
    projected_monthly_savings: Decimal
    projected_yearly_savings: Decimal


class ProbeResult(BaseModel):
    """Outcome of a store health probe"""

    connected: bool
    latency_ms: Optional[float] = None
    error: Optional[str] = None


class StoreResult(BaseModel):
    """Result of a single store operation.

    The adapter returns this internally instead of letting store
    exceptions reach feature code.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    ok: bool
    value: Any = None
    error_kind: Optional[StoreErrorKind] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Any = None) -> "StoreResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, kind: StoreErrorKind, error: str) -> "StoreResult":
        return cls(ok=False, error_kind=kind, error=error)


# ==================== Cached feature payloads ====================


class CachedTranslation(BaseModel):
    """Cached translation response"""

    translation: str
    source_lang: str
    target_lang: str
    tokens_used: int = Field(0, ge=0)
    cached_at: datetime = Field(default_factory=utcnow)


class CachedExplanation(BaseModel):
    """Cached tutor explanation for a topic"""

    explanation: str
    examples: List[str] = Field(default_factory=list)
    analogies: List[str] = Field(default_factory=list)
    related_topics: List[str] = Field(default_factory=list)
    tokens_used: int = Field(0, ge=0)
    cached_at: datetime = Field(default_factory=utcnow)


class AnswerSource(BaseModel):
    """Book chunk used to ground a tutor answer"""

    chunk_id: str
    score: float
    text: str
    page_number: Optional[int] = None


class CachedAnswer(BaseModel):
    """Cached tutor Q&A response"""

    model_config = ConfigDict(protected_namespaces=())

    original_answer: str
    translated_answer: str
    sources: List[AnswerSource] = Field(default_factory=list)
    tokens_used: int = Field(0, ge=0)
    model: str = "gpt-4o-mini"
    cached_at: datetime = Field(default_factory=utcnow)


class CachedQuiz(BaseModel):
    """Cached generated quiz for a set of chapters"""

    model_config = ConfigDict(protected_namespaces=())

    questions: List[Any] = Field(default_factory=list)
    difficulty: str
    chapter_ids: List[str] = Field(default_factory=list)
    count: int = Field(..., ge=1)
    tokens_used: int = Field(0, ge=0)
    model: str = "gpt-4o-mini"
    cached_at: datetime = Field(default_factory=utcnow)


class CachedSpeech(BaseModel):
    """Cached synthesized speech.

    Audio is kept base64-encoded so the payload stays JSON. ``tokens_used``
    holds the billed character count, since speech models charge per
    character.
    """

    model_config = ConfigDict(protected_namespaces=())

    audio: str
    format: str = "mp3"
    voice: str
    tokens_used: int = Field(0, ge=0)
    model: str = "tts-1"
    cached_at: datetime = Field(default_factory=utcnow)
