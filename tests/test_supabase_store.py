import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock

from clients.supabase_client import SupabaseRecordStore
from models.content_models import ArtifactKind, PodcastSectionPlan, QuizQuestion
from utils.exceptions import DuplicateRecordError, PersistenceError


def _query(data=None, error=None):
    """Chainable PostgREST builder mock whose execute() returns data or raises error."""
    query = MagicMock()
    for method in ("select", "eq", "order", "limit", "insert", "update", "delete"):
        getattr(query, method).return_value = query
    if error is not None:
        query.execute.side_effect = error
    else:
        query.execute.return_value = SimpleNamespace(data=data or [])
    return query


class PostgrestLikeError(Exception):
    def __init__(self, message, code):
        super().__init__(message)
        self.code = code


QUIZ_ROW = {
    "id": "quiz-1",
    "file_id": "file-1",
    "title": "Generated Quiz",
    "created_at": "2024-05-01T10:00:00+00:00",
    "quiz_questions": [
        {"id": "q2", "quiz_id": "quiz-1", "question": "Second?", "options": ["a", "b", "c", "d"], "answer": "B", "position": 1},
        {"id": "q1", "quiz_id": "quiz-1", "question": "First?", "options": ["a", "b", "c", "d"], "answer": "A", "position": 0},
    ],
}


class TestSupabaseRecordStore(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.store = SupabaseRecordStore(self.client)

    def test_get_quiz_orders_questions(self):
        self.client.table.return_value = _query([QUIZ_ROW])
        quiz = self.store.get_quiz("file-1")
        self.client.table.assert_called_with("quizzes")
        self.assertEqual([q.question for q in quiz.questions], ["First?", "Second?"])

    def test_get_missing_returns_none(self):
        self.client.table.return_value = _query([])
        self.assertIsNone(self.store.get_artifact(ArtifactKind.TRANSCRIPT, "file-1"))

    def test_create_quiz_uses_rpc(self):
        self.client.rpc.return_value = _query([])
        self.client.table.return_value = _query([QUIZ_ROW])
        questions = [QuizQuestion(question="First?", options=["a", "b", "c", "d"], answer="A")]

        record = self.store.create_quiz("file-1", questions, "Generated Quiz")

        fn, payload = self.client.rpc.call_args[0]
        self.assertEqual(fn, "create_quiz")
        self.assertEqual(payload["p_file_id"], "file-1")
        self.assertEqual(payload["p_questions"][0]["answer"], "A")
        self.assertEqual(record.id, "quiz-1")

    def test_unique_violation_maps_to_duplicate(self):
        self.client.rpc.return_value = _query(error=PostgrestLikeError("duplicate key value", "23505"))
        with self.assertRaises(DuplicateRecordError):
            self.store.create_artifact(ArtifactKind.QUIZ, "file-1", [])

    def test_other_errors_map_to_persistence_error(self):
        self.client.table.return_value = _query(error=PostgrestLikeError("connection refused", "08006"))
        with self.assertRaises(PersistenceError) as ctx:
            self.store.get_transcript("file-1")
        self.assertNotIsInstance(ctx.exception, DuplicateRecordError)

    def test_create_transcript_inserts_row(self):
        row = {"id": "t-1", "file_id": "file-1", "title": "Generated Transcript",
               "created_at": "2024-05-01T10:00:00+00:00", "content": "Body"}
        query = _query([row])
        self.client.table.return_value = query
        record = self.store.create_transcript("file-1", "Body", "Generated Transcript")
        query.insert.assert_called_once_with({"file_id": "file-1", "title": "Generated Transcript", "content": "Body"})
        self.assertEqual(record.content, "Body")

    def test_replace_podcast_sends_sections(self):
        self.client.rpc.return_value = _query([])
        self.client.table.return_value = _query([{
            "id": "pod-1", "file_id": "file-1", "user_id": "user-1", "title": "T", "description": "D",
            "total_duration": "0:10", "created_at": "2024-05-01T10:00:00+00:00",
            "podcast_sections": [{
                "id": "sec-1", "podcast_id": "pod-1", "title": "S", "description": "d", "content": "c",
                "duration": "0:10", "audio_url": None, "position": 0,
            }],
        }])
        plan = PodcastSectionPlan(title="S", description="d", content="c", duration="0:10", duration_seconds=10)

        podcast = self.store.replace_podcast("file-1", "user-1", "T", "D", "0:10", [plan])

        fn, payload = self.client.rpc.call_args[0]
        self.assertEqual(fn, "replace_podcast")
        self.assertEqual(payload["p_sections"][0]["title"], "S")
        self.assertEqual(podcast.sections[0].id, "sec-1")

    def test_update_section_audio(self):
        query = _query([])
        self.client.table.return_value = query
        self.store.update_section_audio("sec-1", "/api/v1/audio/abcd1234.wav")
        self.client.table.assert_called_with("podcast_sections")
        query.update.assert_called_once_with({"audio_url": "/api/v1/audio/abcd1234.wav"})
        query.eq.assert_called_with("id", "sec-1")


if __name__ == "__main__":
    unittest.main()
