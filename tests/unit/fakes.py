"""In-memory stand-ins for the async Redis client used in unit tests.

FakeRedis implements the subset of ``redis.asyncio.Redis`` the store
adapter calls, with absolute expiries evaluated against an injectable
clock so retention can be tested without waiting.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from redis.exceptions import ConnectionError as RedisConnectionError

# 2024-06-02 is a Sunday in ISO week 22
NOW = datetime(2024, 6, 2, 14, 30, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced unix clock."""

    def __init__(self, now: float = NOW.timestamp()):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePipeline:
    """Buffers commands and applies them on execute()."""

    def __init__(self, redis: "FakeRedis"):
        self._redis = redis
        self._commands: List[tuple] = []

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self._commands.clear()

    def hincrby(self, key: str, field: str, amount: int = 1) -> "FakePipeline":
        self._commands.append(("hincrby", key, field, amount))
        return self

    def hgetall(self, key: str) -> "FakePipeline":
        self._commands.append(("hgetall", key))
        return self

    def sadd(self, key: str, *members: str) -> "FakePipeline":
        self._commands.append(("sadd", key) + members)
        return self

    def expireat(self, key: str, when: int) -> "FakePipeline":
        self._commands.append(("expireat", key, when))
        return self

    async def execute(self) -> List[Any]:
        if self._redis.fail_with is not None:
            raise self._redis.fail_with
        results = []
        for name, *args in self._commands:
            results.append(getattr(self._redis, f"_{name}")(*args))
            # Yield so concurrent pipelines interleave
            await asyncio.sleep(0)
        self._commands.clear()
        return results


class FakeRedis:
    """Dict-backed async Redis subset with absolute expiries."""

    def __init__(self, clock: Optional[FakeClock] = None):
        self.clock = clock or FakeClock()
        self.strings: Dict[str, str] = {}
        self.hashes: Dict[str, Dict[str, str]] = {}
        self.sets: Dict[str, Set[str]] = {}
        self.expiries: Dict[str, float] = {}
        self.fail_with: Optional[Exception] = None
        self.delay: float = 0.0
        self.closed = False

    # ----- expiry -----

    def _purge(self, key: str) -> None:
        deadline = self.expiries.get(key)
        if deadline is not None and deadline <= self.clock():
            self._remove(key)

    def _remove(self, key: str) -> int:
        removed = 0
        for space in (self.strings, self.hashes, self.sets):
            if key in space:
                del space[key]
                removed = 1
        self.expiries.pop(key, None)
        return removed

    def ttl_of(self, key: str) -> Optional[float]:
        deadline = self.expiries.get(key)
        return None if deadline is None else deadline - self.clock()

    async def _enter(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        if self.delay:
            await asyncio.sleep(self.delay)

    # ----- key/value -----

    async def get(self, key: str) -> Optional[str]:
        await self._enter()
        self._purge(key)
        return self.strings.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        await self._enter()
        self._remove(key)
        self.strings[key] = value
        if ex is not None:
            self.expiries[key] = self.clock() + ex
        return True

    async def delete(self, *keys: str) -> int:
        await self._enter()
        removed = 0
        for key in keys:
            self._purge(key)
            removed += self._remove(key)
        return removed

    async def smembers(self, key: str) -> Set[str]:
        await self._enter()
        self._purge(key)
        return set(self.sets.get(key, set()))

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    async def aclose(self) -> None:
        self.closed = True

    # ----- pipelined commands -----

    def _hincrby(self, key: str, field: str, amount: int) -> int:
        self._purge(key)
        bucket = self.hashes.setdefault(key, {})
        value = int(bucket.get(field, 0)) + amount
        bucket[field] = str(value)
        return value

    def _hgetall(self, key: str) -> Dict[str, str]:
        self._purge(key)
        return dict(self.hashes.get(key, {}))

    def _sadd(self, key: str, *members: str) -> int:
        self._purge(key)
        target = self.sets.setdefault(key, set())
        added = len(set(members) - target)
        target.update(members)
        return added

    def _expireat(self, key: str, when: int) -> bool:
        exists = key in self.strings or key in self.hashes or key in self.sets
        if not exists:
            return False
        if when <= self.clock():
            self._remove(key)
        else:
            self.expiries[key] = when
        return True


def unreachable_redis(clock: Optional[FakeClock] = None) -> FakeRedis:
    """A client whose every call fails like a refused connection."""
    redis = FakeRedis(clock)
    redis.fail_with = RedisConnectionError("Connection refused")
    return redis
