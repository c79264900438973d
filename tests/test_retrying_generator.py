import asyncio
import unittest

from models.content_models import ArtifactKind, Flashcard, QuizQuestion
from services.retrying_generator import RetryingGenerator
from tests.fakes import FLASHCARDS_JSON, QUIZ_JSON, FakeGateway, RecordingSleep
from utils.exceptions import GenerationExhaustedError, UpstreamError

PARAMS = {"model": "gpt-4", "temperature": 0.1, "max_tokens": 3000}


class TestRetryingGenerator(unittest.IsolatedAsyncioTestCase):
    def _generator(self, gateway, **kwargs):
        self.sleep = RecordingSleep()
        return RetryingGenerator(gateway, sleep=self.sleep, **kwargs)

    async def test_first_valid_response_returns_immediately(self):
        gateway = FakeGateway([QUIZ_JSON])
        payload = await self._generator(gateway).generate(ArtifactKind.QUIZ, "prompt", "system", PARAMS)

        self.assertEqual(len(payload), 5)
        self.assertIsInstance(payload[0], QuizQuestion)
        self.assertEqual(len(gateway.calls), 1)
        self.assertEqual(self.sleep.delays, [])

    async def test_forwards_params_to_gateway(self):
        gateway = FakeGateway([QUIZ_JSON])
        await self._generator(gateway).generate(ArtifactKind.QUIZ, "user prompt", "system prompt", PARAMS)
        call = gateway.calls[0]
        self.assertEqual(call["system_prompt"], "system prompt")
        self.assertEqual(call["user_prompt"], "user prompt")
        self.assertEqual(call["temperature"], 0.1)
        self.assertEqual(call["max_tokens"], 3000)

    async def test_fenced_response_consumes_one_call(self):
        gateway = FakeGateway(["Here you go!\n```json\n" + FLASHCARDS_JSON + "\n```"])
        payload = await self._generator(gateway).generate(ArtifactKind.FLASHCARDS, "p", "s", PARAMS)
        self.assertEqual(len(payload), 3)
        self.assertIsInstance(payload[0], Flashcard)
        self.assertEqual(len(gateway.calls), 1)

    async def test_recovers_after_failures(self):
        gateway = FakeGateway([
            UpstreamError("connection reset"),
            "no json here",
            '[{"question": "Q?", "options": ["a", "b", "c"], "answer": "A"}]',
            QUIZ_JSON,
        ])
        payload = await self._generator(gateway).generate(ArtifactKind.QUIZ, "p", "s", PARAMS)
        self.assertEqual(len(payload), 5)
        self.assertEqual(len(gateway.calls), 4)
        self.assertEqual(self.sleep.delays, [2.0, 2.0, 2.0])

    async def test_exhausts_after_max_attempts(self):
        gateway = FakeGateway([], default="Just some prose, no data.")
        generator = self._generator(gateway, max_attempts=5, backoff_seconds=2.0)

        with self.assertRaises(GenerationExhaustedError) as ctx:
            await generator.generate(ArtifactKind.QUIZ, "p", "s", PARAMS)

        self.assertEqual(len(gateway.calls), 5)
        # no sleep after the final attempt
        self.assertEqual(self.sleep.delays, [2.0] * 4)
        self.assertEqual(ctx.exception.attempts, 5)
        self.assertEqual(ctx.exception.error_code, "GENERATION_EXHAUSTED")
        self.assertIn("quiz", ctx.exception.message)

    async def test_transcript_failure_phrase_is_retried(self):
        gateway = FakeGateway(["Unable to generate transcript from provided content.", "Section 1\n\nReal text."])
        payload = await self._generator(gateway).generate(ArtifactKind.TRANSCRIPT, "p", "s", PARAMS)
        self.assertEqual(payload, "Section 1\n\nReal text.")
        self.assertEqual(len(gateway.calls), 2)

    async def test_deadline_ends_in_exhaustion(self):
        class SlowGateway:
            async def complete(self, *args, **kwargs):
                await asyncio.sleep(10)

        generator = RetryingGenerator(SlowGateway(), deadline_seconds=0.05)
        with self.assertRaises(GenerationExhaustedError) as ctx:
            await generator.generate(ArtifactKind.TRANSCRIPT, "p", "s", PARAMS)
        self.assertEqual(ctx.exception.context["reason"], "deadline")

    async def test_unexpected_errors_propagate(self):
        gateway = FakeGateway([RuntimeError("bug")])
        with self.assertRaises(RuntimeError):
            await self._generator(gateway).generate(ArtifactKind.QUIZ, "p", "s", PARAMS)
        self.assertEqual(len(gateway.calls), 1)

    def test_rejects_zero_attempts(self):
        with self.assertRaises(ValueError):
            RetryingGenerator(FakeGateway([]), max_attempts=0)


if __name__ == "__main__":
    unittest.main()
