"""Tests for the cache-aside LLM service."""

import base64
from unittest.mock import AsyncMock

import pytest

from fakes import unreachable_redis
from llm_cache.models.cache import (
    AnswerSource,
    CachedAnswer,
    CachedExplanation,
    CachedQuiz,
    WindowGranularity,
)
from llm_cache.models.config import AnalyticsSettings, FeatureTTLSettings
from llm_cache.services.llm_cache_service import LLMCacheService
from llm_cache.services.store import RedisStoreAdapter
from llm_cache.services.usage_recorder import UsageRecorder
from llm_cache.utils.hash import quiz_key, speech_key, translation_key


@pytest.fixture
def service(store, recorder):
    return LLMCacheService(store, recorder, FeatureTTLSettings(translation=3600))


@pytest.fixture
def translator():
    return AsyncMock(return_value=("Hola mundo", 42))


class TestTranslate:
    """Tests for LLMCacheService.translate."""

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, service, translator, aggregator):
        first = await service.translate("Hello world", "en", "es", translator)
        second = await service.translate("  hello   WORLD ", "en", "es", translator)

        assert first.translation == second.translation == "Hola mundo"
        translator.assert_awaited_once_with("Hello world", "en", "es")

        daily = await aggregator.get_window_stats(WindowGranularity.DAY)
        assert (daily.cache_hits, daily.cache_misses) == (1, 1)
        assert daily.tokens_saved == 42

    @pytest.mark.asyncio
    async def test_stored_with_feature_ttl(self, service, translator, fake_redis):
        await service.translate("Hello", "en", "es", translator)

        assert fake_redis.ttl_of(translation_key("Hello", "en", "es")) == 3600

    @pytest.mark.asyncio
    async def test_upstream_error_propagates_and_is_not_recorded(
        self, service, aggregator
    ):
        failing = AsyncMock(side_effect=RuntimeError("upstream down"))

        with pytest.raises(RuntimeError):
            await service.translate("Hello", "en", "es", failing)

        daily = await aggregator.get_window_stats(WindowGranularity.DAY)
        assert daily.total_requests == 0

    @pytest.mark.asyncio
    async def test_store_outage_still_serves(self, clock, translator):
        store = RedisStoreAdapter(unreachable_redis(clock))
        service = LLMCacheService(store, UsageRecorder(store, AnalyticsSettings()))

        first = await service.translate("Hello", "en", "es", translator)
        second = await service.translate("Hello", "en", "es", translator)

        assert first.translation == second.translation == "Hola mundo"
        assert translator.await_count == 2

    @pytest.mark.asyncio
    async def test_set_and_get_translation(self, service):
        assert await service.set_translation("Hi", "en", "fr", "Salut", 5) is True

        cached = await service.get_translation(" hi ", "EN", "fr")

        assert cached.translation == "Salut"
        assert cached.tokens_used == 5

    @pytest.mark.asyncio
    async def test_invalidate(self, service, translator):
        await service.translate("Hello", "en", "es", translator)

        assert await service.invalidate(translation_key("Hello", "en", "es")) is True
        assert await service.get_translation("Hello", "en", "es") is None


class TestTutor:
    """Tests for explanations and answers."""

    @pytest.mark.asyncio
    async def test_explain_caches_per_book_and_topic(self, service):
        explainer = AsyncMock(
            return_value=CachedExplanation(
                explanation="Plants turn light into sugar.",
                examples=["Leaves"],
                tokens_used=300,
            )
        )

        await service.explain("book-1", "Photosynthesis", explainer)
        cached = await service.explain("book-1", "photosynthesis ", explainer)
        await service.explain("book-2", "Photosynthesis", explainer)

        assert cached.examples == ["Leaves"]
        assert explainer.await_count == 2

    @pytest.mark.asyncio
    async def test_answer_hit_priced_by_cached_model(self, service, fake_redis):
        answerer = AsyncMock(
            return_value=CachedAnswer(
                original_answer="Cell division.",
                translated_answer="Cell division.",
                sources=[AnswerSource(chunk_id="c1", score=0.9, text="Mitosis is...")],
                tokens_used=1000,
                model="gpt-4o",
            )
        )

        await service.answer("book-1", "What is mitosis?", answerer)
        cached = await service.answer("book-1", "What is mitosis?", answerer)

        assert cached.sources[0].chunk_id == "c1"
        answerer.assert_awaited_once_with("book-1", "What is mitosis?", "en")
        # Events are stamped with the wall clock, so match buckets by suffix
        endpoint_keys = [k for k in fake_redis.hashes if k.endswith(":endpoint:query")]
        assert endpoint_keys
        cost_fields = {fake_redis.hashes[k].get("cost_saved_micros") for k in endpoint_keys}
        assert cost_fields == {"4750"}


def _quiz(**overrides):
    fields = dict(
        questions=[{"question": "What do plants make?", "answer": "Sugar"}],
        difficulty="medium",
        chapter_ids=["ch-1", "ch-2"],
        count=5,
        tokens_used=800,
    )
    fields.update(overrides)
    return CachedQuiz(**fields)


class TestQuiz:
    """Tests for LLMCacheService.generate_quiz."""

    @pytest.mark.asyncio
    async def test_chapter_order_shares_one_entry(self, service, aggregator):
        generator = AsyncMock(return_value=_quiz())

        await service.generate_quiz("book-1", ["ch-2", "ch-1"], "medium", 5, generator)
        cached = await service.generate_quiz(
            "book-1", ("ch-1", "ch-2"), "medium", 5, generator
        )

        assert cached.questions[0]["answer"] == "Sugar"
        generator.assert_awaited_once_with("book-1", ["ch-2", "ch-1"], "medium", 5)
        stats = await aggregator.get_endpoint_stats("quiz")
        assert (stats.hits, stats.misses) == (1, 1)

    @pytest.mark.asyncio
    async def test_difficulty_and_count_are_separate_entries(self, service):
        generator = AsyncMock(return_value=_quiz())

        await service.generate_quiz("book-1", ["ch-1"], "medium", 5, generator)
        await service.generate_quiz("book-1", ["ch-1"], "hard", 5, generator)
        await service.generate_quiz("book-1", ["ch-1"], "medium", 10, generator)

        assert generator.await_count == 3

    @pytest.mark.asyncio
    async def test_stored_with_quiz_ttl(self, service, fake_redis):
        generator = AsyncMock(return_value=_quiz())

        await service.generate_quiz("book-1", ["ch-1"], "easy", 3, generator)

        key = quiz_key("book-1", ["ch-1"], "easy", 3)
        assert fake_redis.ttl_of(key) == FeatureTTLSettings().quiz


class TestSpeech:
    """Tests for LLMCacheService.synthesize_speech."""

    @pytest.mark.asyncio
    async def test_audio_cached_as_base64(self, service):
        synthesizer = AsyncMock(return_value=b"ID3-audio-bytes")

        first = await service.synthesize_speech("Hello class", "nova", synthesizer)
        second = await service.synthesize_speech("Hello  class ", "nova", synthesizer)

        synthesizer.assert_awaited_once_with("Hello class", "nova", "mp3", "tts-1")
        assert base64.b64decode(second.audio) == b"ID3-audio-bytes"
        assert first.tokens_used == second.tokens_used == len("Hello class")
        assert second.model == "tts-1"

    @pytest.mark.asyncio
    async def test_hit_priced_per_character(self, service, fake_redis):
        synthesizer = AsyncMock(return_value=b"audio")

        await service.synthesize_speech("Hello class", "nova", synthesizer)
        await service.synthesize_speech("Hello class", "nova", synthesizer)

        endpoint_keys = [k for k in fake_redis.hashes if k.endswith(":endpoint:speech")]
        assert endpoint_keys
        # 11 characters at $0.015 per 1K
        cost_fields = {fake_redis.hashes[k].get("cost_saved_micros") for k in endpoint_keys}
        assert cost_fields == {"165"}

    @pytest.mark.asyncio
    async def test_text_case_and_voice_are_separate_entries(self, service, fake_redis):
        synthesizer = AsyncMock(return_value=b"audio")

        await service.synthesize_speech("US", "alloy", synthesizer)
        await service.synthesize_speech("us", "alloy", synthesizer)
        await service.synthesize_speech("US", "nova", synthesizer)

        assert synthesizer.await_count == 3
        assert fake_redis.ttl_of(speech_key("US", "alloy")) == FeatureTTLSettings().speech
