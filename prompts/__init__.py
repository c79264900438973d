# Prompts module initialization

# Study content generation prompts
from .content_prompts import (
    build_quiz_prompt,
    build_flashcards_prompt,
    build_transcript_prompt,
    join_chunks,
    CONTENT_PROMPTS
)

__all__ = [
    'build_quiz_prompt',
    'build_flashcards_prompt',
    'build_transcript_prompt',
    'join_chunks',
    'CONTENT_PROMPTS'
]
