"""Tests for cache and configuration models."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from llm_cache.models.cache import (
    CacheEntry,
    CachedAnswer,
    CachedQuiz,
    CachedSpeech,
    CacheOutcome,
    EndpointStats,
    StoreErrorKind,
    StoreResult,
    UsageEvent,
)
from llm_cache.models.config import (
    AnalyticsSettings,
    FeatureTTLSettings,
    ServerSettings,
    StoreSettings,
)


class TestUsageEvent:
    def test_valid_event(self):
        event = UsageEvent(endpoint="translate", outcome="hit", tokens_saved=5)

        assert event.outcome == CacheOutcome.HIT
        assert event.cost_saved == Decimal("0")
        assert event.timestamp.tzinfo is not None

    @pytest.mark.parametrize(
        "fields",
        [
            {"tokens_saved": -1},
            {"cost_saved": Decimal("-0.01")},
            {"endpoint": ""},
        ],
    )
    def test_rejects_invalid_fields(self, fields):
        data = {"endpoint": "translate", "outcome": "hit", **fields}
        with pytest.raises(ValidationError):
            UsageEvent(**data)


class TestCacheEntry:
    def test_requires_positive_ttl(self):
        with pytest.raises(ValidationError):
            CacheEntry(key="k", value="v", ttl_seconds=0)


class TestEndpointStats:
    def test_idle_endpoint(self):
        stats = EndpointStats(endpoint="speech")

        assert stats.total_requests == 0
        assert stats.hit_rate == 0.0

    def test_frozen(self):
        stats = EndpointStats(endpoint="speech", hits=1)
        with pytest.raises(ValidationError):
            stats.hits = 2


class TestStoreResult:
    def test_success(self):
        result = StoreResult.success({"a": 1})

        assert result.ok is True
        assert result.error_kind is None

    def test_failure(self):
        result = StoreResult.failure(StoreErrorKind.STORE_TIMEOUT, "slow")

        assert result.ok is False
        assert result.error == "slow"


class TestCachedAnswer:
    def test_defaults_model(self):
        answer = CachedAnswer(original_answer="a", translated_answer="b")

        assert answer.model == "gpt-4o-mini"
        assert answer.sources == []


class TestCachedQuiz:
    def test_round_trips_through_json(self):
        quiz = CachedQuiz(
            questions=[{"question": "2+2?", "options": ["3", "4"], "answer": 1}],
            difficulty="easy",
            chapter_ids=["ch-1"],
            count=1,
            tokens_used=250,
        )

        restored = CachedQuiz.model_validate(quiz.model_dump(mode="json"))

        assert restored.questions == quiz.questions
        assert restored.model == "gpt-4o-mini"

    def test_count_must_be_positive(self):
        with pytest.raises(ValidationError):
            CachedQuiz(difficulty="easy", count=0)


class TestCachedSpeech:
    def test_defaults(self):
        speech = CachedSpeech(audio="SUQz", voice="alloy")

        assert (speech.model, speech.format, speech.tokens_used) == ("tts-1", "mp3", 0)


class TestSettings:
    @pytest.mark.parametrize("placeholder", ["${REDIS_URL}", "", "   "])
    def test_placeholder_url_is_unset(self, placeholder):
        assert StoreSettings(url=placeholder).url is None

    def test_placeholder_admin_token_is_unset(self):
        assert ServerSettings(admin_token="${ADMIN_API_TOKEN}").admin_token is None

    def test_default_ttl_must_be_positive(self):
        with pytest.raises(ValidationError):
            StoreSettings(default_ttl_seconds=0)

    def test_feature_ttls_cover_quiz_and_speech(self):
        ttl = FeatureTTLSettings()

        assert ttl.quiz == ttl.speech == 30 * 24 * 3600

    def test_retention_bounds(self):
        with pytest.raises(ValidationError):
            AnalyticsSettings(weekly_retention_weeks=1)
