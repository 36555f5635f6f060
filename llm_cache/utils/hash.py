"""Content-addressed cache keys.

Normalization defines cache-hit semantics, so it is fixed here:

1. Strip leading/trailing whitespace.
2. Collapse every internal whitespace run to a single space.
3. Casefold, only for namespaces that treat case as insignificant
   (translation does, speech does not).

Language codes are always stripped and lowercased. The normalized parts are
serialized as compact JSON and hashed with SHA-256, so keys are rendered as
``"<namespace>:<64 hex chars>"``.
"""

import hashlib
import json
import re
from typing import List, Sequence, Union

TRANSLATION_NAMESPACE = "translation"
EXPLANATION_NAMESPACE = "explain"
ANSWER_NAMESPACE = "qa"
QUIZ_NAMESPACE = "quiz"
SPEECH_NAMESPACE = "speech"

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str, case_sensitive: bool = False) -> str:
    """Canonicalize free text for key derivation.

    Args:
        text: Raw text (may be empty).
        case_sensitive: Keep letter case when True.

    Returns:
        Normalized text.
    """
    normalized = _WHITESPACE_RE.sub(" ", text).strip()
    if not case_sensitive:
        normalized = normalized.casefold()
    return normalized


def normalize_lang(lang: str) -> str:
    return lang.strip().lower()


class CacheKeyBuilder:
    """Builds deterministic cache keys for one feature namespace.

    Example:
        builder = CacheKeyBuilder("translation")
        key = builder.build("Hello  World ", "en", "fr")
        # "translation:3f1c..."
    """

    def __init__(self, namespace: str, case_sensitive: bool = False):
        if not namespace or ":" in namespace:
            raise ValueError(f"Invalid cache key namespace: {namespace!r}")
        self.namespace = namespace
        self.case_sensitive = case_sensitive

    def build(self, raw_text: str, source_lang: str, target_lang: str) -> str:
        """Build the key for a (text, source language, target language) request.

        Args:
            raw_text: Request text.
            source_lang: Source language code.
            target_lang: Target language code.

        Returns:
            Namespaced SHA-256 key.
        """
        return self._digest(
            [
                normalize_text(raw_text, self.case_sensitive),
                normalize_lang(source_lang),
                normalize_lang(target_lang),
            ]
        )

    def build_parts(self, *parts: Union[str, int, List[str]]) -> str:
        """Build a key from arbitrary request parts.

        String parts go through the text normalization, lists are normalized
        element-wise and kept as JSON arrays, other values are rendered with
        str().
        """
        return self._digest([self._normalize_part(part) for part in parts])

    def _normalize_part(self, part: Union[str, int, List[str]]) -> Union[str, list]:
        if isinstance(part, str):
            return normalize_text(part, self.case_sensitive)
        if isinstance(part, (list, tuple)):
            return [self._normalize_part(item) for item in part]
        return str(part)

    def _digest(self, parts: list) -> str:
        payload = json.dumps(parts, ensure_ascii=False, separators=(",", ":"))
        digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
        return f"{self.namespace}:{digest}"


_translation_keys = CacheKeyBuilder(TRANSLATION_NAMESPACE)
_explanation_keys = CacheKeyBuilder(EXPLANATION_NAMESPACE)
_answer_keys = CacheKeyBuilder(ANSWER_NAMESPACE)
_quiz_keys = CacheKeyBuilder(QUIZ_NAMESPACE)
_speech_keys = CacheKeyBuilder(SPEECH_NAMESPACE, case_sensitive=True)


def translation_key(text: str, source_lang: str, target_lang: str) -> str:
    return _translation_keys.build(text, source_lang, target_lang)


def explanation_key(book_id: str, topic: str) -> str:
    """Key for a tutor explanation of ``topic`` within one book."""
    return _explanation_keys.build_parts(book_id, topic)


def answer_key(book_id: str, question: str, language: str = "en") -> str:
    return _answer_keys.build_parts(book_id, question, normalize_lang(language))


def quiz_key(
    book_id: str, chapter_ids: Sequence[str], difficulty: str, count: int
) -> str:
    """Key for a generated quiz.

    Chapter order does not matter: the same chapters requested in any order
    share one entry.
    """
    chapters = sorted(normalize_text(chapter_id) for chapter_id in chapter_ids)
    return _quiz_keys.build_parts(book_id, chapters, difficulty, count)


def speech_key(
    text: str, voice: str, audio_format: str = "mp3", model: str = "tts-1"
) -> str:
    """Key for synthesized speech; text case is kept since it affects delivery."""
    return _speech_keys.build_parts(
        text, voice.strip().lower(), audio_format.strip().lower(), model.strip()
    )
