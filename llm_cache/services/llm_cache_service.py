"""
Cache-aside wrapper for expensive LLM calls.

Flow for every cacheable request:
1. Build a content-addressed key from the normalized request.
2. On hit: record a hit with the tokens the cached call used, return it.
3. On miss: call upstream, store the result with the feature TTL,
   record a miss, return it.

A store outage only removes the optimization: lookups miss, writes are
dropped, and the upstream call still happens. Upstream errors are the
feature's own and propagate unchanged; nothing is cached or recorded then.
"""

import base64
from typing import (
    Awaitable,
    Callable,
    List,
    Optional,
    Sequence,
    Tuple,
    Type,
    TypeVar,
)

import structlog

from llm_cache.models.cache import (
    CachedAnswer,
    CachedExplanation,
    CachedQuiz,
    CachedSpeech,
    CachedTranslation,
)
from llm_cache.models.config import FeatureTTLSettings
from llm_cache.observability.logging import safe_log
from llm_cache.services.store import RedisStoreAdapter
from llm_cache.services.usage_recorder import UsageRecorder
from llm_cache.utils.hash import (
    answer_key,
    explanation_key,
    quiz_key,
    speech_key,
    translation_key,
)

logger = structlog.get_logger()

CachedT = TypeVar(
    "CachedT",
    CachedTranslation,
    CachedExplanation,
    CachedAnswer,
    CachedQuiz,
    CachedSpeech,
)

TRANSLATE_ENDPOINT = "translate"
EXPLAIN_ENDPOINT = "explain"
QUERY_ENDPOINT = "query"
QUIZ_ENDPOINT = "quiz"
SPEECH_ENDPOINT = "speech"

# (text, source_lang, target_lang) -> (translation, tokens_used)
Translator = Callable[[str, str, str], Awaitable[Tuple[str, int]]]

# (book_id, chapter_ids, difficulty, count) -> quiz
QuizGenerator = Callable[[str, List[str], str, int], Awaitable[CachedQuiz]]

# (text, voice, format, model) -> audio bytes
SpeechSynthesizer = Callable[[str, str, str, str], Awaitable[bytes]]


class LLMCacheService:
    """Cache-aside access to translation, tutoring, quiz and speech responses.

    Args:
        store: Store adapter for cached responses
        recorder: Usage recorder for hit/miss analytics
        ttl: Cache lifetimes per feature
    """

    def __init__(
        self,
        store: RedisStoreAdapter,
        recorder: UsageRecorder,
        ttl: Optional[FeatureTTLSettings] = None,
    ):
        self.store = store
        self.recorder = recorder
        self.ttl = ttl or FeatureTTLSettings()

    async def get_or_compute(
        self,
        endpoint: str,
        key: str,
        model_cls: Type[CachedT],
        compute: Callable[[], Awaitable[CachedT]],
        ttl_seconds: int,
    ) -> CachedT:
        """Return the cached value for ``key`` or compute, store and return it.

        Args:
            endpoint: Endpoint name recorded in analytics
            key: Cache key
            model_cls: Pydantic model of the cached payload
            compute: Upstream call producing a fresh value
            ttl_seconds: Lifetime of a newly stored value

        Returns:
            Cached or freshly computed value
        """
        cached = await self.store.get_model(key, model_cls)
        if cached is not None:
            await self.recorder.record_hit(
                endpoint,
                tokens_saved=cached.tokens_used,
                model=getattr(cached, "model", None),
            )
            safe_log(
                logger.info,
                "llm_cache_hit",
                endpoint=endpoint,
                key=key[:24],
                tokens_saved=cached.tokens_used,
            )
            return cached

        value = await compute()
        stored = await self.store.set(key, value, ttl_seconds)
        await self.recorder.record_miss(endpoint)
        safe_log(
            logger.info,
            "llm_cache_miss",
            endpoint=endpoint,
            key=key[:24],
            stored=stored,
            ttl_seconds=ttl_seconds,
        )
        return value

    async def invalidate(self, key: str) -> bool:
        return await self.store.delete(key)

    # ==================== Translation ====================

    async def get_translation(
        self, text: str, source_lang: str, target_lang: str
    ) -> Optional[CachedTranslation]:
        """Look up a cached translation without recording analytics."""
        return await self.store.get_model(
            translation_key(text, source_lang, target_lang), CachedTranslation
        )

    async def set_translation(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
        translation: str,
        tokens_used: int = 0,
    ) -> bool:
        entry = CachedTranslation(
            translation=translation,
            source_lang=source_lang,
            target_lang=target_lang,
            tokens_used=tokens_used,
        )
        return await self.store.set(
            translation_key(text, source_lang, target_lang),
            entry,
            self.ttl.translation,
        )

    async def translate(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
        translator: Translator,
    ) -> CachedTranslation:
        """Translate through the cache.

        Args:
            text: Text to translate
            source_lang: Source language code
            target_lang: Target language code
            translator: Upstream call returning (translation, tokens_used)
        """

        async def compute() -> CachedTranslation:
            translation, tokens_used = await translator(text, source_lang, target_lang)
            return CachedTranslation(
                translation=translation,
                source_lang=source_lang,
                target_lang=target_lang,
                tokens_used=tokens_used,
            )

        return await self.get_or_compute(
            TRANSLATE_ENDPOINT,
            translation_key(text, source_lang, target_lang),
            CachedTranslation,
            compute,
            self.ttl.translation,
        )

    # ==================== Tutor explanations ====================

    async def explain(
        self,
        book_id: str,
        topic: str,
        explainer: Callable[[str, str], Awaitable[CachedExplanation]],
    ) -> CachedExplanation:
        return await self.get_or_compute(
            EXPLAIN_ENDPOINT,
            explanation_key(book_id, topic),
            CachedExplanation,
            lambda: explainer(book_id, topic),
            self.ttl.explanation,
        )

    # ==================== Tutor Q&A ====================

    async def answer(
        self,
        book_id: str,
        question: str,
        answerer: Callable[[str, str, str], Awaitable[CachedAnswer]],
        language: str = "en",
    ) -> CachedAnswer:
        """Answer a question about a book through the cache.

        The cached answer keeps the model that produced it, so savings on
        later hits are priced for that model.
        """
        return await self.get_or_compute(
            QUERY_ENDPOINT,
            answer_key(book_id, question, language),
            CachedAnswer,
            lambda: answerer(book_id, question, language),
            self.ttl.answer,
        )

    # ==================== Quizzes ====================

    async def generate_quiz(
        self,
        book_id: str,
        chapter_ids: Sequence[str],
        difficulty: str,
        count: int,
        generator: QuizGenerator,
    ) -> CachedQuiz:
        """Generate a quiz through the cache.

        Requests for the same chapters in a different order share one entry.
        """
        chapters = list(chapter_ids)
        return await self.get_or_compute(
            QUIZ_ENDPOINT,
            quiz_key(book_id, chapters, difficulty, count),
            CachedQuiz,
            lambda: generator(book_id, chapters, difficulty, count),
            self.ttl.quiz,
        )

    # ==================== Speech ====================

    async def synthesize_speech(
        self,
        text: str,
        voice: str,
        synthesizer: SpeechSynthesizer,
        audio_format: str = "mp3",
        model: str = "tts-1",
    ) -> CachedSpeech:
        """Synthesize speech through the cache.

        Speech is billed per character, so the stripped text length is
        recorded as the usage of the call.

        Args:
            text: Text to read aloud
            voice: Voice name
            synthesizer: Upstream call returning raw audio bytes
            audio_format: Audio container (mp3, opus, ...)
            model: Speech model
        """

        async def compute() -> CachedSpeech:
            audio = await synthesizer(text, voice, audio_format, model)
            return CachedSpeech(
                audio=base64.b64encode(audio).decode("ascii"),
                format=audio_format,
                voice=voice,
                tokens_used=len(text.strip()),
                model=model,
            )

        return await self.get_or_compute(
            SPEECH_ENDPOINT,
            speech_key(text, voice, audio_format, model),
            CachedSpeech,
            compute,
            self.ttl.speech,
        )
