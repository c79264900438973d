"""
Podcast section planning. Deterministic, no external calls.

One section per podcast: the whole chunk body, a three-line description and
a declared duration estimated at 150 words/minute. The duration is computed
from the text the synthesizer will actually receive (the body truncated to
SYNTHESIS_CHAR_LIMIT), so the declared length matches producible audio.
"""

import logging
from typing import List, Optional

from models.content_models import PodcastSectionPlan, SourceChunk
from prompts.content_prompts import join_chunks

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 150
MAX_DECLARED_SECONDS = 600
SYNTHESIS_CHAR_LIMIT = 4000
DESCRIPTION_LINES = 3


def word_count(text: str) -> int:
    return len(text.split())


def estimate_duration_seconds(text: str, floor: float = 0, cap: float = MAX_DECLARED_SECONDS) -> float:
    """Speech duration at WORDS_PER_MINUTE, clamped to [floor, cap]."""
    seconds = word_count(text) / WORDS_PER_MINUTE * 60
    return min(max(seconds, floor), cap)


def format_duration(seconds: float) -> str:
    """Format seconds as m:ss"""
    seconds = max(0, seconds)
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{mins}:{secs:02d}"


def truncate_for_synthesis(text: str, limit: int = SYNTHESIS_CHAR_LIMIT) -> str:
    return text[:limit]


def plan_section(chunks: List[SourceChunk], file_name: str, content: Optional[str] = None) -> PodcastSectionPlan:
    """
    Build the single podcast section for a file.

    Args:
        chunks: Source chunks in any order; they are joined in ingestion order.
        file_name: Display name of the source file.
        content: Pre-joined body (used when chunks are empty and the body came
            from the file's origin URL instead).
    """
    body = (content if content is not None else join_chunks(chunks)).strip()
    spoken = truncate_for_synthesis(body)
    seconds = estimate_duration_seconds(spoken)

    if len(spoken) < len(body):
        logger.info(
            f"Podcast body for '{file_name}' is {len(body)} chars; duration declared for the first "
            f"{SYNTHESIS_CHAR_LIMIT} that will be synthesized"
        )

    plan = PodcastSectionPlan(
        title=f"{file_name} - Full Podcast Version",
        description="\n".join(body.split("\n")[:DESCRIPTION_LINES]),
        content=body,
        duration=format_duration(seconds),
        duration_seconds=seconds,
    )
    logger.info(f"Planned podcast section '{plan.title}' ({plan.duration}, {word_count(spoken)} words)")
    return plan
