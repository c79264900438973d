"""
Speech synthesis with tiered fallback: neural TTS first, procedural voice second.

synthesize() never returns an empty buffer. The procedural tier has no
failure mode on non-empty input, so the only error that escapes is
SynthesisError for empty text.
"""

import asyncio
import logging
from dataclasses import dataclass

from clients.elevenlabs_client import ElevenLabsClient
from services.podcast_planner import SYNTHESIS_CHAR_LIMIT
from utils.exceptions import SynthesisError, UpstreamError
from utils.waveform import pcm_to_wav, render_procedural_pcm, wav_duration_seconds

logger = logging.getLogger(__name__)

NEURAL_TIER = "neural"
PROCEDURAL_TIER = "procedural"


@dataclass
class SynthesisResult:
    audio: bytes
    tier: str
    duration_seconds: float
    text: str


class SpeechSynthesisPipeline:
    def __init__(self, tts_client: ElevenLabsClient, char_limit: int = SYNTHESIS_CHAR_LIMIT):
        self.tts_client = tts_client
        self.char_limit = char_limit

    async def synthesize(self, text: str) -> SynthesisResult:
        text = (text or "").strip()
        if not text:
            raise SynthesisError("No text provided for audio generation")

        if len(text) > self.char_limit:
            logger.warning(f"Truncating synthesis input from {len(text)} to {self.char_limit} characters")
            text = text[:self.char_limit]

        result = await self._neural(text)
        if result is not None:
            return result
        return await self._procedural(text)

    async def _neural(self, text: str):
        if not self.tts_client.configured:
            logger.info("No TTS credential configured, skipping neural tier")
            return None
        try:
            pcm = await self.tts_client.text_to_speech(text)
            audio = pcm_to_wav(pcm, sample_rate=self.tts_client.sample_rate)
        except (UpstreamError, ValueError) as e:
            logger.warning(f"Neural TTS tier failed, falling back to procedural voice: {e}")
            return None
        duration = wav_duration_seconds(audio)
        logger.info(f"Neural TTS produced {duration:.1f}s of audio")
        return SynthesisResult(audio=audio, tier=NEURAL_TIER, duration_seconds=duration, text=text)

    async def _procedural(self, text: str) -> SynthesisResult:
        # CPU-bound; keep it off the event loop
        pcm, duration = await asyncio.to_thread(render_procedural_pcm, text)
        audio = pcm_to_wav(pcm)
        logger.info(f"Procedural tier produced {duration:.1f}s of audio ({len(audio)} bytes)")
        return SynthesisResult(audio=audio, tier=PROCEDURAL_TIER, duration_seconds=duration, text=text)
