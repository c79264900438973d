"""
Bounded-attempt generation loop.

Per attempt: gateway call -> extraction -> kind validator. Any of the three
failing consumes the attempt and sleeps a fixed backoff before the next
one; the first validated payload returns immediately. After max_attempts
(or the overall deadline) the loop raises GenerationExhaustedError.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from models.content_models import ArtifactKind
from services.content_validators import payload_size, validate_payload
from utils.exceptions import (
    ContentValidationError,
    ExtractionError,
    GenerationExhaustedError,
    UpstreamError,
)
from utils.response_parsing import extract_json_array

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (UpstreamError, ExtractionError, ContentValidationError)


class RetryingGenerator:
    """Wraps a TextCompletionGateway with extraction, validation and retries."""

    def __init__(
        self,
        gateway,
        max_attempts: int = 5,
        backoff_seconds: float = 2.0,
        deadline_seconds: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.gateway = gateway
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.deadline_seconds = deadline_seconds
        self._sleep = sleep

    async def generate(
        self,
        kind: ArtifactKind,
        prompt: str,
        system_prompt: str,
        params: Dict[str, Any],
    ) -> Any:
        """
        Produce a validated payload for one artifact kind.

        Returns:
            List[QuizQuestion] | List[Flashcard] | str depending on kind.
        Raises:
            GenerationExhaustedError: all attempts failed or the deadline passed.
        """
        progress = {"attempts": 0, "last_error": None}
        try:
            if self.deadline_seconds:
                return await asyncio.wait_for(
                    self._attempt_loop(kind, prompt, system_prompt, params, progress),
                    timeout=self.deadline_seconds,
                )
            return await self._attempt_loop(kind, prompt, system_prompt, params, progress)
        except asyncio.TimeoutError:
            logger.error(
                f"{kind.value} generation hit the {self.deadline_seconds}s deadline after "
                f"{progress['attempts']} attempt(s)"
            )
            raise GenerationExhaustedError(
                kind.value,
                progress["attempts"],
                context={"reason": "deadline", "deadline_seconds": self.deadline_seconds},
            )

    async def _attempt_loop(
        self,
        kind: ArtifactKind,
        prompt: str,
        system_prompt: str,
        params: Dict[str, Any],
        progress: Dict[str, Any],
    ) -> Any:
        for attempt in range(1, self.max_attempts + 1):
            progress["attempts"] = attempt
            logger.info(f"Attempt {attempt}/{self.max_attempts} to generate {kind.value}")
            try:
                raw = await self.gateway.complete(system_prompt, prompt, **params)
                payload = validate_payload(kind, self._extract(kind, raw))
                logger.info(f"{kind.value} generated on attempt {attempt}: {payload_size(kind, payload)}")
                return payload
            except RETRYABLE_ERRORS as e:
                progress["last_error"] = e
                logger.warning(f"{kind.value} attempt {attempt}/{self.max_attempts} failed ({e.error_code}): {e.message}")

            if attempt < self.max_attempts:
                await self._sleep(self.backoff_seconds)

        last_error = progress["last_error"]
        logger.error(f"{kind.value} generation failed completely after {self.max_attempts} attempts")
        raise GenerationExhaustedError(
            kind.value,
            self.max_attempts,
            context={"last_error": last_error.error_code if last_error else None},
        )

    @staticmethod
    def _extract(kind: ArtifactKind, raw: str) -> Any:
        if kind == ArtifactKind.TRANSCRIPT:
            return raw
        data = extract_json_array(raw)
        if data is None:
            raise ExtractionError(
                f"Could not parse a JSON array for {kind.value}",
                context={"preview": raw[:200]},
            )
        return data
