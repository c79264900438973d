"""
Text completion gateway.

Issues exactly one chat-completion request per call against the provider
named in the model config (OpenAI or Groq). No retry lives here; the
RetryingGenerator owns that.
"""

import logging
from typing import Any, Dict, Optional

from groq import AsyncGroq
from openai import AsyncOpenAI

from utils.exceptions import UpstreamError
from utils.model_config import EXTRACTION_TEMPERATURE, ModelProvider
from utils.settings import Settings

logger = logging.getLogger(__name__)


class TextCompletionGateway:
    """Wraps the remote text-generation providers behind one `complete` call."""

    def __init__(self, openai_client: Optional[Any] = None, groq_client: Optional[Any] = None):
        self.clients: Dict[ModelProvider, Any] = {}
        if openai_client is not None:
            self.clients[ModelProvider.OPENAI] = openai_client
        if groq_client is not None:
            self.clients[ModelProvider.GROQ] = groq_client

    @classmethod
    def from_settings(cls, settings: Settings) -> "TextCompletionGateway":
        openai_client = None
        if settings.openai_api_key:
            openai_client = AsyncOpenAI(api_key=settings.openai_api_key, base_url=settings.openai_base_url)
        groq_client = AsyncGroq(api_key=settings.groq_api_key) if settings.groq_api_key else None
        if openai_client is None and groq_client is None:
            logger.warning("No text generation credentials configured; every completion will fail")
        return cls(openai_client=openai_client, groq_client=groq_client)

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str,
        provider: ModelProvider = ModelProvider.OPENAI,
        temperature: float = EXTRACTION_TEMPERATURE,
        max_tokens: int = 3000,
    ) -> str:
        """
        Send one completion request and return the trimmed text.

        Raises:
            UpstreamError: no client for the provider, network/HTTP failure,
                or empty content.
        """
        client = self.clients.get(ModelProvider(provider))
        if client is None:
            raise UpstreamError(
                f"No client configured for provider '{provider}'",
                error_code="PROVIDER_NOT_CONFIGURED",
                context={"provider": str(provider)},
            )

        try:
            response = await client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            raise UpstreamError(
                f"{provider} completion request failed: {e}",
                context={"provider": str(provider), "model": model},
            ) from e

        choices = getattr(response, "choices", None) or []
        content = choices[0].message.content if choices else None
        text = (content or "").strip()
        if not text:
            raise UpstreamError("Empty response from LLM", context={"provider": str(provider), "model": model})

        if getattr(choices[0], "finish_reason", None) == "length":
            logger.warning(f"{provider} response truncated at {max_tokens} tokens ({len(text)} chars)")

        return text
