"""
ElevenLabs text-to-speech client (neural synthesis tier).
Requests raw PCM so the caller can wrap it in a WAV container.
"""

import logging
import re
from typing import Optional

import httpx

from utils.exceptions import UpstreamError
from utils.settings import Settings

logger = logging.getLogger(__name__)

ELEVEN_LABS_API_URL = "https://api.elevenlabs.io/v1"
DEFAULT_VOICE_SETTINGS = {"stability": 0.5, "similarity_boost": 0.5}


class ElevenLabsClient:
    def __init__(
        self,
        api_key: Optional[str],
        voice_id: str = "21m00Tcm4TlvDq8ikWAM",
        model_id: str = "eleven_monolingual_v1",
        output_format: str = "pcm_22050",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.voice_id = voice_id
        self.model_id = model_id
        self.output_format = output_format
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "ElevenLabsClient":
        return cls(
            api_key=settings.eleven_labs_api_key,
            voice_id=settings.eleven_labs_voice_id,
            model_id=settings.eleven_labs_model_id,
            output_format=settings.eleven_labs_output_format,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @property
    def sample_rate(self) -> int:
        """Sample rate encoded in the output format, e.g. pcm_22050 -> 22050."""
        match = re.match(r"pcm_(\d+)$", self.output_format)
        if not match:
            raise ValueError(f"Unsupported output format for WAV wrapping: {self.output_format}")
        return int(match.group(1))

    async def text_to_speech(self, text: str) -> bytes:
        """
        Synthesize text and return 16-bit mono PCM at self.sample_rate.

        Raises:
            UpstreamError: missing credential, HTTP error status, network failure or empty body.
        """
        if not self.configured:
            raise UpstreamError("ELEVEN_LABS_API_KEY not set", error_code="PROVIDER_NOT_CONFIGURED")

        url = f"{ELEVEN_LABS_API_URL}/text-to-speech/{self.voice_id}"
        payload = {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": DEFAULT_VOICE_SETTINGS,
        }
        headers = {
            "Accept": "audio/pcm",
            "Content-Type": "application/json",
            "xi-api-key": self.api_key,
        }

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(
                    url,
                    params={"output_format": self.output_format},
                    json=payload,
                    headers=headers,
                )
        except httpx.HTTPError as e:
            raise UpstreamError(f"ElevenLabs request failed: {e}") from e

        if response.status_code != 200:
            logger.error(f"ElevenLabs API error: {response.status_code} - {response.text[:200]}")
            raise UpstreamError(
                f"ElevenLabs API error: {response.status_code}",
                context={"status_code": response.status_code},
            )
        if not response.content:
            raise UpstreamError("ElevenLabs returned an empty audio body")

        logger.info(f"ElevenLabs returned {len(response.content)} bytes of PCM")
        return response.content
