"""
Fail-open adapter over the shared Redis store.

The store is a performance optimization, never a correctness dependency:
- Reads that fail (network, auth, timeout, undecodable value) are misses.
- Writes that fail are logged and reported as False, never raised.
- Only probe() reports a failure explicitly, for the admin dashboard.

Every call is bounded by a per-operation timeout and guarded by a circuit
breaker, so an outage costs at most one timeout per cooldown period.
"""

import asyncio
import json
import time
import uuid
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Set,
    Tuple,
    Type,
    TypeVar,
)

import redis.asyncio as redis
import structlog
from pydantic import BaseModel, ValidationError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from llm_cache.models.cache import ProbeResult, StoreErrorKind, StoreResult
from llm_cache.models.config import StoreSettings
from llm_cache.observability.logging import safe_log
from llm_cache.observability.metrics import STORE_ERRORS, STORE_OPERATION_DURATION
from llm_cache.utils.circuit_breaker import CircuitBreaker
from llm_cache.utils.exceptions import (
    SerializationError,
    StoreError,
    StoreTimeout,
    StoreUnavailable,
)

logger = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)

# (hash key, field, amount)
HashIncrement = Tuple[str, str, int]

PROBE_KEY_PREFIX = "health:probe"
PROBE_TTL_SECONDS = 60


def _error_kind(error: StoreError) -> StoreErrorKind:
    if isinstance(error, StoreTimeout):
        return StoreErrorKind.STORE_TIMEOUT
    if isinstance(error, SerializationError):
        return StoreErrorKind.SERIALIZATION_ERROR
    return StoreErrorKind.STORE_UNAVAILABLE


def _encode(value: Any) -> str:
    try:
        return json.dumps(value, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Value is not JSON serializable: {e}") from e


def _decode(raw: Any) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Stored value is not valid JSON: {e}") from e


def _short_key(key: str) -> str:
    """Namespace plus the first hash characters, enough to correlate logs."""
    return key[:24]


class RedisStoreAdapter:
    """Fail-open key-value operations with JSON values.

    Args:
        client: redis.asyncio client, or None when the store is not configured
        timeout_seconds: Upper bound for each store call
        breaker: Optional circuit breaker shared by all calls
        default_ttl_seconds: TTL used by set() when the caller passes none
    """

    def __init__(
        self,
        client: Optional[Any],
        timeout_seconds: float = 1.5,
        breaker: Optional[CircuitBreaker] = None,
        default_ttl_seconds: int = 300,
    ):
        self._client = client
        self.timeout_seconds = timeout_seconds
        self.breaker = breaker
        self.default_ttl_seconds = default_ttl_seconds

    @classmethod
    def from_settings(cls, settings: StoreSettings) -> "RedisStoreAdapter":
        """Create an adapter connected to the configured store URL.

        A missing URL is not an error: the adapter is created without a
        client and every operation degrades to a miss.
        """
        breaker = CircuitBreaker("store", settings.circuit_breaker)

        if settings.url is None:
            logger.warning("store_not_configured")
            return cls(
                None,
                settings.operation_timeout_seconds,
                breaker,
                settings.default_ttl_seconds,
            )

        options: Dict[str, Any] = {
            "decode_responses": True,
            "socket_timeout": settings.operation_timeout_seconds,
            "socket_connect_timeout": settings.operation_timeout_seconds,
        }
        if settings.token is not None:
            options["password"] = settings.token

        client = redis.Redis.from_url(settings.url, **options)
        logger.info(
            "store_adapter_initialized",
            timeout_seconds=settings.operation_timeout_seconds,
            circuit_breaker=settings.circuit_breaker.enabled,
        )
        return cls(
            client,
            settings.operation_timeout_seconds,
            breaker,
            settings.default_ttl_seconds,
        )

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    # ==================== Core execution ====================

    async def _call(self, factory: Callable[[], Awaitable[Any]]) -> Any:
        """Run one store call with the timeout, translating client errors.

        Raises:
            StoreUnavailable: Client missing, connection or auth failure
            StoreTimeout: Call exceeded timeout_seconds
        """
        if self._client is None:
            raise StoreUnavailable("Store is not configured")

        try:
            return await asyncio.wait_for(factory(), timeout=self.timeout_seconds)
        except (asyncio.TimeoutError, RedisTimeoutError) as e:
            raise StoreTimeout(
                f"Store call exceeded {self.timeout_seconds}s"
            ) from e
        except (RedisError, OSError) as e:
            raise StoreUnavailable(str(e) or type(e).__name__) from e

    async def _execute(
        self,
        operation: str,
        factory: Callable[[], Awaitable[Any]],
        key: Optional[str] = None,
    ) -> StoreResult:
        """Run a store call and convert any failure into a StoreResult."""
        if self.breaker is not None and not self.breaker.allow_request():
            STORE_ERRORS.labels(
                operation=operation, kind=StoreErrorKind.STORE_UNAVAILABLE.value
            ).inc()
            return StoreResult.failure(
                StoreErrorKind.STORE_UNAVAILABLE, "Store circuit is open"
            )

        start = time.perf_counter()
        try:
            value = await self._call(factory)
        except StoreError as e:
            kind = _error_kind(e)
            if self.breaker is not None:
                self.breaker.record_failure()
            STORE_ERRORS.labels(operation=operation, kind=kind.value).inc()
            safe_log(
                logger.warning,
                "store_operation_failed",
                operation=operation,
                key=_short_key(key) if key else None,
                kind=kind.value,
                error=str(e),
            )
            return StoreResult.failure(kind, str(e))
        finally:
            STORE_OPERATION_DURATION.labels(operation=operation).observe(
                time.perf_counter() - start
            )

        if self.breaker is not None:
            self.breaker.record_success()
        return StoreResult.success(value)

    # ==================== Key-value operations ====================

    async def get(self, key: str) -> Optional[Any]:
        """Get a JSON value, or None on miss or any failure.

        Never extends the key's TTL.
        """
        result = await self._execute("get", lambda: self._client.get(key), key)
        if not result.ok or result.value is None:
            return None

        try:
            return _decode(result.value)
        except SerializationError as e:
            self._serialization_failed("get", key, e)
            return None

    async def get_model(self, key: str, model: Type[ModelT]) -> Optional[ModelT]:
        """Get a value and validate it against a pydantic model.

        A stored value of the wrong shape is treated as a miss.
        """
        data = await self.get(key)
        if data is None:
            return None

        try:
            return model.model_validate(data)
        except ValidationError as e:
            self._serialization_failed(
                "get", key, SerializationError(f"{model.__name__}: {e}")
            )
            return None

    async def set(
        self, key: str, value: Any, ttl_seconds: Optional[int] = None
    ) -> bool:
        """Store a JSON value with a TTL (always refreshed).

        A non-positive TTL is a caller bug; the write is dropped like any
        other failed write rather than raised.

        Args:
            key: Cache key
            value: JSON-serializable value or pydantic model
            ttl_seconds: Expiry in seconds (default_ttl_seconds if omitted)

        Returns:
            True if written, False if the write was dropped
        """
        if ttl_seconds is None:
            ttl_seconds = self.default_ttl_seconds
        if ttl_seconds <= 0:
            safe_log(
                logger.warning,
                "cache_set_rejected",
                key=_short_key(key),
                ttl_seconds=ttl_seconds,
            )
            return False

        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json")

        try:
            payload = _encode(value)
        except SerializationError as e:
            self._serialization_failed("set", key, e)
            return False

        result = await self._execute(
            "set", lambda: self._client.set(key, payload, ex=ttl_seconds), key
        )
        if result.ok:
            safe_log(
                logger.debug, "cache_set", key=_short_key(key), ttl_seconds=ttl_seconds
            )
        return result.ok

    async def delete(self, key: str) -> bool:
        result = await self._execute("delete", lambda: self._client.delete(key), key)
        return result.ok

    async def probe(self) -> ProbeResult:
        """Round-trip a sentinel key (write, read, delete) and time it.

        Bypasses the circuit breaker and never touches analytics keys.
        """
        sentinel = f"{PROBE_KEY_PREFIX}:{uuid.uuid4().hex}"
        expected = uuid.uuid4().hex

        async def round_trip() -> Any:
            await self._client.set(sentinel, expected, ex=PROBE_TTL_SECONDS)
            value = await self._client.get(sentinel)
            await self._client.delete(sentinel)
            return value

        start = time.perf_counter()
        try:
            value = await self._call(round_trip)
        except StoreError as e:
            safe_log(logger.warning, "store_probe_failed", error=str(e))
            return ProbeResult(connected=False, error=str(e))

        latency_ms = round((time.perf_counter() - start) * 1000, 2)
        if value != expected:
            return ProbeResult(
                connected=False,
                latency_ms=latency_ms,
                error="Probe value mismatch",
            )
        return ProbeResult(connected=True, latency_ms=latency_ms)

    # ==================== Counter operations ====================

    async def increment(
        self,
        increments: Iterable[HashIncrement],
        members: Iterable[Tuple[str, str]] = (),
        expire_at: Optional[Dict[str, int]] = None,
    ) -> StoreResult:
        """Apply atomic hash increments in one pipelined round trip.

        Each HINCRBY is atomic in the store, so concurrent writers never
        lose updates. No transaction is used.

        Args:
            increments: (hash key, field, amount) triples
            members: (set key, member) pairs to add
            expire_at: Absolute unix expiry per key
        """
        increments = list(increments)
        members = list(members)
        expire_at = expire_at or {}

        async def run() -> List[Any]:
            async with self._client.pipeline(transaction=False) as pipe:
                for key, field, amount in increments:
                    pipe.hincrby(key, field, amount)
                for key, member in members:
                    pipe.sadd(key, member)
                for key, when in expire_at.items():
                    pipe.expireat(key, when)
                return await pipe.execute()

        return await self._execute("increment", run)

    async def read_hashes(self, keys: List[str]) -> StoreResult:
        """Read several hashes in one round trip; value is a list of dicts."""

        async def run() -> List[Dict[str, str]]:
            async with self._client.pipeline(transaction=False) as pipe:
                for key in keys:
                    pipe.hgetall(key)
                return await pipe.execute()

        return await self._execute("read", run)

    async def read_members(self, key: str) -> StoreResult:
        """Read a set; value is a set of strings."""
        result = await self._execute("read", lambda: self._client.smembers(key), key)
        if result.ok:
            members: Set[str] = set(result.value or ())
            return StoreResult.success(members)
        return result

    def _serialization_failed(
        self, operation: str, key: str, error: SerializationError
    ) -> None:
        kind = StoreErrorKind.SERIALIZATION_ERROR
        STORE_ERRORS.labels(operation=operation, kind=kind.value).inc()
        safe_log(
            logger.warning,
            "store_serialization_failed",
            operation=operation,
            key=_short_key(key),
            error=str(error),
        )
