"""Cache key command: print the key a request would be cached under."""

from typing import Optional

import typer

from llm_cache.cli.utils import display_error, handle_errors
from llm_cache.utils.hash import (
    ANSWER_NAMESPACE,
    EXPLANATION_NAMESPACE,
    SPEECH_NAMESPACE,
    TRANSLATION_NAMESPACE,
    answer_key,
    explanation_key,
    speech_key,
    translation_key,
)


@handle_errors
def cache_key_command(
    feature: str = typer.Argument(
        ...,
        help=(
            f"One of: {TRANSLATION_NAMESPACE}, {EXPLANATION_NAMESPACE}, "
            f"{ANSWER_NAMESPACE}, {SPEECH_NAMESPACE}"
        ),
    ),
    text: str = typer.Argument(..., help="Text, topic or question"),
    source: str = typer.Option("en", "--source", "-s", help="Source language"),
    target: str = typer.Option("es", "--target", "-t", help="Target language"),
    book_id: Optional[str] = typer.Option(None, "--book-id", "-b", help="Book id"),
    language: str = typer.Option("en", "--language", "-l", help="Answer language"),
    voice: str = typer.Option("alloy", "--voice", help="Speech voice"),
    audio_format: str = typer.Option("mp3", "--format", help="Speech audio format"),
    model: str = typer.Option("tts-1", "--model", help="Speech model"),
):
    """Print the cache key for a translation, explanation, answer or speech."""
    if feature == TRANSLATION_NAMESPACE:
        typer.echo(translation_key(text, source, target))
        return

    if feature == SPEECH_NAMESPACE:
        typer.echo(speech_key(text, voice, audio_format, model))
        return

    if feature not in (EXPLANATION_NAMESPACE, ANSWER_NAMESPACE):
        display_error(f"Unknown feature: {feature}")
        raise typer.Exit(code=1)

    if not book_id:
        display_error("--book-id is required for this feature")
        raise typer.Exit(code=1)

    if feature == EXPLANATION_NAMESPACE:
        typer.echo(explanation_key(book_id, text))
    else:
        typer.echo(answer_key(book_id, text, language))
