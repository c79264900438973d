"""
Recover structured payloads from raw LLM text.

Providers wrap JSON in prose, markdown fences or stray characters. The
strategies below run in a fixed order and each one is isolated: a parse
failure in one never aborts the sequence. Nothing here raises on bad input.
"""

import json
import logging
import re
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)

# Provider self-reported inability (free-text artifacts only)
FAILURE_PHRASES = (
    "unable to generate",
    "cannot create",
    "can't create",
    "unable to create",
)


def _non_empty_list(value: Any) -> Optional[List[Any]]:
    if isinstance(value, list) and len(value) > 0:
        return value
    return None


def _parse_whole(text: str) -> Optional[List[Any]]:
    """Strategy 1: the entire trimmed text is JSON."""
    return _non_empty_list(json.loads(text))


def _parse_fenced_block(text: str) -> Optional[List[Any]]:
    """Strategy 2: the first fenced code block, optionally tagged json."""
    match = _FENCED_BLOCK.search(text)
    if not match:
        return None
    return _non_empty_list(json.loads(match.group(1)))


def _parse_bracketed(text: str) -> Optional[List[Any]]:
    """
    Strategy 3: the first [...] substring that decodes as a complete value.
    Decoding starts at each '[' in turn and stops at the matching close, so
    arrays nested inside objects (quiz options) do not cut the match short.
    """
    decoder = json.JSONDecoder()
    start = text.find("[")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            value = None
        result = _non_empty_list(value)
        if result is not None:
            return result
        start = text.find("[", start + 1)
    return None


def _parse_cleaned(text: str) -> Optional[List[Any]]:
    """
    Strategy 4: strip everything before the first '{' and after the last '}'
    plus fence markers, then parse. A bare comma-separated object list is
    retried wrapped in brackets.
    """
    cleaned = re.sub(r"^[^{]*", "", text)
    cleaned = re.sub(r"[^}]*$", "", cleaned)
    cleaned = cleaned.replace("```", "").strip()
    if not cleaned:
        return None
    try:
        return _non_empty_list(json.loads(cleaned))
    except json.JSONDecodeError:
        return _non_empty_list(json.loads(f"[{cleaned}]"))


EXTRACTION_STRATEGIES: List[Callable[[str], Optional[List[Any]]]] = [
    _parse_whole,
    _parse_fenced_block,
    _parse_bracketed,
    _parse_cleaned,
]


def extract_json_array(raw_text: Optional[str]) -> Optional[List[Any]]:
    """
    Recover a non-empty JSON array from provider text.

    Returns None (never raises) when no strategy yields a non-empty list,
    signalling the caller to retry or fail.
    """
    if not raw_text:
        return None
    text = raw_text.strip()
    if not text:
        return None

    for strategy in EXTRACTION_STRATEGIES:
        try:
            result = strategy(text)
        except (json.JSONDecodeError, ValueError, TypeError, RecursionError):
            result = None
        if result is not None:
            logger.info(f"Extracted JSON array of {len(result)} items via {strategy.__name__}")
            return result
        logger.debug(f"Extraction strategy {strategy.__name__} found nothing")

    logger.warning(f"Could not extract JSON array from: {text[:300]}")
    return None


def is_failure_phrase(text: Optional[str]) -> bool:
    """Case-insensitive check for a provider saying it could not do the task."""
    if not text:
        return False
    lowered = text.lower()
    return any(phrase in lowered for phrase in FAILURE_PHRASES)
