"""
Structural validators per artifact kind.

Quiz and flashcards use filter-then-require-nonempty: invalid items are
dropped silently and the artifact is accepted iff at least one survives.
The transcript has no structure to filter, so it is pass/fail as a whole.
"""

import logging
from typing import Any, Dict, List, Union

from models.content_models import ArtifactKind, Flashcard, QuizQuestion
from utils.exceptions import ContentValidationError
from utils.response_parsing import is_failure_phrase

logger = logging.getLogger(__name__)

ANSWER_LETTERS = ("A", "B", "C", "D")
MIN_FLASHCARD_QUESTION_CHARS = 10
MIN_FLASHCARD_ANSWER_CHARS = 5


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def normalize_quiz_question(item: Any) -> Union[QuizQuestion, None]:
    """Return a QuizQuestion if the candidate is valid, else None."""
    if not isinstance(item, dict):
        return None

    question = _text(item.get("question"))
    options = item.get("options")
    answer = _text(item.get("answer")).upper()

    if not question:
        return None
    if not isinstance(options, list) or len(options) != 4:
        return None
    if answer not in ANSWER_LETTERS:
        return None

    return QuizQuestion(
        question=question,
        options=[str(opt).strip() for opt in options],
        answer=answer,
    )


def validate_quiz_questions(items: List[Any]) -> List[QuizQuestion]:
    """
    Keep questions with non-empty text, exactly 4 options and an answer
    letter in A-D. Raises ContentValidationError if none survive.
    """
    valid = [q for q in (normalize_quiz_question(item) for item in items or []) if q is not None]
    dropped = len(items or []) - len(valid)
    if dropped:
        logger.info(f"Dropped {dropped} invalid quiz question(s), kept {len(valid)}")
    if not valid:
        raise ContentValidationError(
            "Generated questions are not in the correct format. Please try again.",
            context={"candidates": len(items or [])},
        )
    return valid


def validate_flashcards(items: List[Any]) -> List[Flashcard]:
    """
    Keep cards whose trimmed question is longer than 10 characters and
    trimmed answer longer than 5. Raises ContentValidationError if none survive.
    """
    valid = []
    for item in items or []:
        if not isinstance(item, dict):
            continue
        question = _text(item.get("question"))
        answer = _text(item.get("answer"))
        if len(question) > MIN_FLASHCARD_QUESTION_CHARS and len(answer) > MIN_FLASHCARD_ANSWER_CHARS:
            valid.append(Flashcard(question=question, answer=answer))

    dropped = len(items or []) - len(valid)
    if dropped:
        logger.info(f"Dropped {dropped} invalid flashcard(s), kept {len(valid)}")
    if not valid:
        raise ContentValidationError(
            "Generated flashcards are not in the correct format. Please try again.",
            context={"candidates": len(items or [])},
        )
    return valid


def validate_transcript(text: Any) -> str:
    """Non-empty after trim and not a provider-declared failure."""
    content = _text(text)
    if not content:
        raise ContentValidationError("Transcript is empty")
    if is_failure_phrase(content):
        raise ContentValidationError(
            "Provider indicated it cannot generate a transcript",
            context={"preview": content[:120]},
        )
    return content


def validate_payload(kind: ArtifactKind, data: Any) -> Union[List[QuizQuestion], List[Flashcard], str]:
    """Dispatch to the validator for one artifact kind."""
    if kind == ArtifactKind.QUIZ:
        return validate_quiz_questions(data)
    if kind == ArtifactKind.FLASHCARDS:
        return validate_flashcards(data)
    if kind == ArtifactKind.TRANSCRIPT:
        return validate_transcript(data)
    raise ValueError(f"Unknown artifact kind: {kind}")


def payload_size(kind: ArtifactKind, payload: Any) -> Dict[str, int]:
    """Small summary used in logs."""
    if kind == ArtifactKind.TRANSCRIPT:
        return {"chars": len(payload)}
    return {"items": len(payload)}
