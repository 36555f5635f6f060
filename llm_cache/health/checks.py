"""Health checks for the cache layer.

The cache is an optimization, so an unreachable store makes the service
DEGRADED, never UNHEALTHY: requests still succeed without it.

Usage:
    checker = HealthChecker(store)
    report = await checker.check_all()
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List

import structlog

from llm_cache.services.store import RedisStoreAdapter

logger = structlog.get_logger()


class HealthStatus(str, Enum):
    """Overall health status."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class CheckStatus(str, Enum):
    """Individual check status."""

    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CheckResult:
    """Result of a single health check."""

    name: str
    status: CheckStatus
    message: str
    duration_ms: float = 0.0
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "duration_ms": round(self.duration_ms, 2),
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class HealthReport:
    """Complete health report with all check results."""

    status: HealthStatus
    checks: List[CheckResult]
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "checks": [c.to_dict() for c in self.checks],
            "timestamp": self.timestamp.isoformat(),
        }


class HealthChecker:
    """Runs dependency checks for the cache service.

    Args:
        store: Store adapter to probe
    """

    def __init__(self, store: RedisStoreAdapter):
        self.store = store

    async def check_all(self) -> HealthReport:
        results = await asyncio.gather(
            self.check_store(),
            self.check_circuit(),
            return_exceptions=True,
        )

        checks: List[CheckResult] = []
        for result in results:
            if isinstance(result, BaseException):
                logger.error("health_check_crashed", error=str(result))
                checks.append(
                    CheckResult(
                        name="unknown",
                        status=CheckStatus.FAIL,
                        message=f"Check failed: {result}",
                    )
                )
            else:
                checks.append(result)

        return HealthReport(status=self._determine_overall_status(checks), checks=checks)

    def _determine_overall_status(self, checks: List[CheckResult]) -> HealthStatus:
        """FAIL on any check degrades the service; the cache is never fatal."""
        if any(c.status in (CheckStatus.FAIL, CheckStatus.WARN) for c in checks):
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY

    async def check_store(self) -> CheckResult:
        name = "cache_store"

        if not self.store.configured:
            return CheckResult(
                name=name,
                status=CheckStatus.WARN,
                message="Cache store not configured, caching disabled",
            )

        probe = await self.store.probe()
        if probe.connected:
            return CheckResult(
                name=name,
                status=CheckStatus.PASS,
                message="Cache store reachable",
                duration_ms=probe.latency_ms or 0.0,
                details={"latency_ms": probe.latency_ms},
            )
        return CheckResult(
            name=name,
            status=CheckStatus.FAIL,
            message=f"Cache store unreachable: {probe.error}",
            duration_ms=probe.latency_ms or 0.0,
        )

    async def check_circuit(self) -> CheckResult:
        name = "store_circuit"

        if self.store.breaker is None:
            return CheckResult(
                name=name, status=CheckStatus.PASS, message="No circuit breaker"
            )

        stats = self.store.breaker.get_stats()
        if stats["state"] == "open":
            return CheckResult(
                name=name,
                status=CheckStatus.WARN,
                message="Store circuit open, cache calls skipped",
                details=stats,
            )
        return CheckResult(
            name=name,
            status=CheckStatus.PASS,
            message=f"Store circuit {stats['state']}",
            details=stats,
        )

    async def is_alive(self) -> bool:
        return True

    async def is_ready(self) -> bool:
        """Ready whenever the process is up; the cache is not a hard dependency."""
        return True
