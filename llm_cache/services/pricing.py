"""Estimated upstream cost of LLM calls.

Prices are USD per 1K tokens. A cached response saves the whole call, so
the saving is estimated from the tokens the original call used, split 70%
input / 30% output.
"""

from decimal import Decimal
from typing import Dict

import structlog

logger = structlog.get_logger()

DEFAULT_MODEL = "gpt-4o-mini"

INPUT_SHARE = Decimal("0.7")
OUTPUT_SHARE = Decimal("0.3")

# USD per 1K tokens
MODEL_PRICING: Dict[str, Dict[str, Decimal]] = {
    "gpt-4o-mini": {"input": Decimal("0.00015"), "output": Decimal("0.0006")},
    "gpt-4o": {"input": Decimal("0.0025"), "output": Decimal("0.01")},
    "text-embedding-3-large": {"input": Decimal("0.00013"), "output": Decimal("0")},
}

# USD per 1K characters; speech usage is recorded as a character count
CHARACTER_PRICING: Dict[str, Decimal] = {
    "tts-1": Decimal("0.015"),
    "tts-1-hd": Decimal("0.03"),
}


def estimate_cost(tokens: int, model: str = DEFAULT_MODEL) -> Decimal:
    """Estimate the USD cost of a call that used ``tokens`` tokens.

    Unknown models are priced as the default model. Speech models are
    priced per character, with ``tokens`` holding the character count.

    Args:
        tokens: Total tokens used by the call
        model: Model identifier

    Returns:
        Estimated cost in USD (0 for non-positive token counts)
    """
    if tokens <= 0:
        return Decimal("0")

    thousands = Decimal(tokens) / Decimal(1000)
    if model in CHARACTER_PRICING:
        return thousands * CHARACTER_PRICING[model]

    pricing = MODEL_PRICING.get(model)
    if pricing is None:
        logger.debug("unknown_model_pricing", model=model, fallback=DEFAULT_MODEL)
        pricing = MODEL_PRICING[DEFAULT_MODEL]

    return thousands * (
        INPUT_SHARE * pricing["input"] + OUTPUT_SHARE * pricing["output"]
    )
