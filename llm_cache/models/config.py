"""Configuration models for the cache and analytics layer."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class CircuitBreakerConfig(BaseModel):
    """Store circuit breaker settings"""

    enabled: bool = Field(True, description="Short-circuit calls while the store is down")
    failure_threshold: int = Field(
        5, ge=1, description="Consecutive failures before the circuit opens"
    )
    success_threshold: int = Field(
        1, ge=1, description="Successes in half-open state before closing"
    )
    cooldown_seconds: float = Field(
        30.0, gt=0, description="Seconds to stay open before probing again"
    )


class StoreSettings(BaseModel):
    """Connection settings for the shared key-value store"""

    url: Optional[str] = Field(
        None, description="Redis URL, e.g. rediss://host:6379/0"
    )
    token: Optional[str] = Field(None, description="Store password / access token")
    operation_timeout_seconds: float = Field(
        1.5, gt=0, le=10, description="Upper bound for any single store call"
    )
    default_ttl_seconds: int = Field(
        300, gt=0, description="TTL for writes that do not name a feature lifetime"
    )
    circuit_breaker: CircuitBreakerConfig = Field(
        default_factory=CircuitBreakerConfig
    )

    @field_validator("url", "token", mode="before")
    @classmethod
    def unresolved_placeholder_is_unset(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank values and ${VAR} left by substitution as unset."""
        if v is None:
            return None
        v = str(v).strip()
        if not v or (v.startswith("${") and v.endswith("}")):
            return None
        return v

    @field_validator("url")
    @classmethod
    def validate_scheme(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("Store URL must use redis://, rediss:// or unix://")
        return v


class FeatureTTLSettings(BaseModel):
    """Cache lifetimes per feature, in seconds"""

    translation: int = Field(30 * 24 * 3600, gt=0)
    explanation: int = Field(14 * 24 * 3600, gt=0)
    answer: int = Field(7 * 24 * 3600, gt=0)
    quiz: int = Field(30 * 24 * 3600, gt=0)
    speech: int = Field(30 * 24 * 3600, gt=0)


class AnalyticsSettings(BaseModel):
    """Usage analytics settings"""

    key_prefix: str = Field("analytics", min_length=1)
    hourly_retention_hours: int = Field(48, ge=24, le=168)
    daily_retention_days: int = Field(35, ge=7, le=400)
    weekly_retention_weeks: int = Field(8, ge=2, le=104)
    tracked_endpoints: List[str] = Field(
        default_factory=lambda: ["translate", "query", "explain", "quiz", "speech"],
        description="Endpoints always listed in the daily breakdown",
    )
    default_model: str = Field("gpt-4o-mini", description="Model used for cost estimates")


class ServerSettings(BaseModel):
    """HTTP server settings"""

    host: str = "0.0.0.0"
    port: int = Field(8000, ge=1, le=65535)
    admin_token: Optional[str] = Field(
        None, description="Bearer token accepted by the default admin verifier"
    )

    @field_validator("admin_token", mode="before")
    @classmethod
    def unresolved_token_is_unset(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        if not v or (v.startswith("${") and v.endswith("}")):
            return None
        return v


class LoggingSettings(BaseModel):
    """Structured logging settings"""

    level: str = Field("INFO", pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    json_output: bool = True


class AppConfig(BaseModel):
    """Root configuration"""

    store: StoreSettings = Field(default_factory=StoreSettings)
    ttl: FeatureTTLSettings = Field(default_factory=FeatureTTLSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
