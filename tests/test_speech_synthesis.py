import io
import json
import struct
import unittest
import wave

import httpx

from clients.elevenlabs_client import ElevenLabsClient
from services.speech_synthesis import NEURAL_TIER, PROCEDURAL_TIER, SpeechSynthesisPipeline
from tests.fakes import FailingTTSClient
from utils.exceptions import SynthesisError, UpstreamError
from utils.waveform import (
    MAX_SECONDS,
    MIN_SECONDS,
    SAMPLE_RATE,
    WAV_HEADER_SIZE,
    pcm_to_wav,
    procedural_duration_seconds,
    render_procedural_pcm,
)


def _assert_wav_contract(test, audio):
    test.assertGreater(len(audio), WAV_HEADER_SIZE)
    test.assertEqual(audio[0:4], b"RIFF")
    test.assertEqual(audio[8:12], b"WAVE")
    test.assertEqual(audio[36:40], b"data")
    data_size = struct.unpack("<I", audio[40:44])[0]
    test.assertEqual(data_size, len(audio) - WAV_HEADER_SIZE)


class TestProceduralWaveform(unittest.TestCase):
    def test_duration_clamp_and_monotonicity(self):
        previous = 0.0
        for words in (1, 10, 25, 100, 500, 1499, 1500, 1501, 5000):
            duration = procedural_duration_seconds(" ".join(["word"] * words))
            self.assertGreaterEqual(duration, previous)
            self.assertGreaterEqual(duration, MIN_SECONDS)
            self.assertLessEqual(duration, MAX_SECONDS)
            previous = duration
        self.assertEqual(procedural_duration_seconds("word " * 5000), MAX_SECONDS)

    def test_render_produces_bounded_deterministic_pcm(self):
        pcm, duration = render_procedural_pcm("Hello, world. This is a test!")
        self.assertEqual(duration, MIN_SECONDS)
        self.assertEqual(len(pcm), int(SAMPLE_RATE * MIN_SECONDS) * 2)
        samples = struct.unpack(f"<{len(pcm) // 2}h", pcm)
        self.assertTrue(any(samples))
        # 0.2 headroom keeps the peak far below full scale
        self.assertLess(max(abs(s) for s in samples), 32767 * 0.2 * 1.2)
        self.assertEqual(render_procedural_pcm("Hello, world. This is a test!")[0], pcm)

    def test_render_rejects_empty_text(self):
        with self.assertRaises(ValueError):
            render_procedural_pcm("   ")

    def test_wav_header(self):
        audio = pcm_to_wav(b"\x00\x01" * 100, sample_rate=22050)
        self.assertEqual(len(audio), WAV_HEADER_SIZE + 200)
        _assert_wav_contract(self, audio)
        with wave.open(io.BytesIO(audio), "rb") as wav:
            self.assertEqual(wav.getnchannels(), 1)
            self.assertEqual(wav.getsampwidth(), 2)
            self.assertEqual(wav.getframerate(), 22050)


class TestElevenLabsClient(unittest.IsolatedAsyncioTestCase):
    async def test_posts_voice_settings_and_returns_pcm(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["key"] = request.headers["xi-api-key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=b"\x01\x00" * 50)

        client = ElevenLabsClient("secret", transport=httpx.MockTransport(handler))
        pcm = await client.text_to_speech("Hello there")

        self.assertEqual(pcm, b"\x01\x00" * 50)
        self.assertIn("/v1/text-to-speech/21m00Tcm4TlvDq8ikWAM", seen["url"])
        self.assertIn("output_format=pcm_22050", seen["url"])
        self.assertEqual(seen["key"], "secret")
        self.assertEqual(seen["body"]["model_id"], "eleven_monolingual_v1")
        self.assertEqual(seen["body"]["voice_settings"], {"stability": 0.5, "similarity_boost": 0.5})

    async def test_quota_error_raises_upstream(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(401, json={"detail": "quota_exceeded"}))
        with self.assertRaises(UpstreamError):
            await ElevenLabsClient("secret", transport=transport).text_to_speech("Hello")

    async def test_missing_key_never_sends(self):
        def handler(request):
            raise AssertionError("request should not be sent")

        client = ElevenLabsClient(None, transport=httpx.MockTransport(handler))
        self.assertFalse(client.configured)
        with self.assertRaises(UpstreamError):
            await client.text_to_speech("Hello")


class TestSpeechSynthesisPipeline(unittest.IsolatedAsyncioTestCase):
    async def test_falls_back_to_procedural_without_credential(self):
        result = await SpeechSynthesisPipeline(ElevenLabsClient(api_key=None)).synthesize("A short sentence to speak.")
        self.assertEqual(result.tier, PROCEDURAL_TIER)
        _assert_wav_contract(self, result.audio)

    async def test_falls_back_when_neural_tier_fails(self):
        tts = FailingTTSClient()
        result = await SpeechSynthesisPipeline(tts).synthesize("Quota has run out.")
        self.assertEqual(tts.requests, 1)
        self.assertEqual(result.tier, PROCEDURAL_TIER)
        _assert_wav_contract(self, result.audio)

    async def test_neural_tier_wraps_pcm(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"\x00\x10" * 22050))
        pipeline = SpeechSynthesisPipeline(ElevenLabsClient("secret", transport=transport))
        result = await pipeline.synthesize("Real speech please.")
        self.assertEqual(result.tier, NEURAL_TIER)
        self.assertAlmostEqual(result.duration_seconds, 1.0)
        _assert_wav_contract(self, result.audio)

    async def test_truncates_long_input(self):
        seen = {}

        def handler(request):
            seen["text"] = json.loads(request.content)["text"]
            return httpx.Response(200, content=b"\x00\x00" * 10)

        pipeline = SpeechSynthesisPipeline(ElevenLabsClient("secret", transport=httpx.MockTransport(handler)))
        result = await pipeline.synthesize("x" * 5000)
        self.assertEqual(len(seen["text"]), 4000)
        self.assertEqual(len(result.text), 4000)

    async def test_empty_text_raises(self):
        with self.assertRaises(SynthesisError):
            await SpeechSynthesisPipeline(ElevenLabsClient(api_key=None)).synthesize("  \n ")


if __name__ == "__main__":
    unittest.main()
