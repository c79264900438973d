import os
import shutil
import tempfile
import unittest
from datetime import timedelta

from clients.sqlite_store import SQLiteRecordStore
from models.content_models import ArtifactKind, Flashcard, PodcastSectionPlan, QuizQuestion, TranscriptRecord
from utils.exceptions import DuplicateRecordError


def _questions(n=2):
    return [QuizQuestion(question=f"Q{i}?", options=["a", "b", "c", "d"], answer="C") for i in range(n)]


def _plan(title="Doc - Full Podcast Version"):
    return PodcastSectionPlan(title=title, description="line", content="body text", duration="0:01", duration_seconds=1.0)


class TestSQLiteRecordStore(unittest.TestCase):
    def setUp(self):
        self.workdir = tempfile.mkdtemp()
        self.store = SQLiteRecordStore(os.path.join(self.workdir, "store.db"))
        self.file = self.store.insert_file("notes.pdf", user_id="user-1", url="https://files.example/notes.pdf")

    def tearDown(self):
        shutil.rmtree(self.workdir, ignore_errors=True)

    def test_file_ownership(self):
        self.assertEqual(self.store.get_file(self.file.id).name, "notes.pdf")
        self.assertIsNotNone(self.store.get_file_for_user(self.file.id, "user-1"))
        self.assertIsNone(self.store.get_file_for_user(self.file.id, "someone-else"))
        self.assertIsNone(self.store.get_file("missing"))

    def test_chunks_in_ingestion_order_with_limit(self):
        self.store.insert_chunks(self.file.id, ["first", "second", "third"])
        chunks = self.store.list_chunks(self.file.id)
        self.assertEqual([c.text for c in chunks], ["first", "second", "third"])
        self.assertEqual(len(self.store.list_chunks(self.file.id, limit=2)), 2)

    def test_quiz_round_trip_keeps_question_order(self):
        created = self.store.create_quiz(self.file.id, _questions(3), "Generated Quiz")
        fetched = self.store.get_quiz(self.file.id)
        self.assertEqual(created.id, fetched.id)
        self.assertEqual([q.question for q in fetched.questions], ["Q0?", "Q1?", "Q2?"])
        self.assertEqual(fetched.questions[0].options, ["a", "b", "c", "d"])
        self.assertTrue(fetched.persisted)

    def test_second_create_violates_uniqueness(self):
        self.store.create_quiz(self.file.id, _questions(), "Generated Quiz")
        with self.assertRaises(DuplicateRecordError):
            self.store.create_quiz(self.file.id, _questions(), "Generated Quiz")
        # the failed create left nothing half-written
        self.assertEqual(len(self.store.get_quiz(self.file.id).questions), 2)

    def test_replace_swaps_artifact(self):
        first = self.store.create_flashcards(self.file.id, [Flashcard(question="Old question?", answer="old answer")], "Cards")
        second = self.store.replace_flashcards(
            self.file.id,
            [Flashcard(question="New question one?", answer="answer one"), Flashcard(question="New question two?", answer="answer two")],
            "Cards",
        )
        self.assertNotEqual(first.id, second.id)
        self.assertEqual(len(self.store.get_flashcards(self.file.id).cards), 2)

    def test_transcript_dispatch(self):
        self.assertIsNone(self.store.get_artifact(ArtifactKind.TRANSCRIPT, self.file.id))
        record = self.store.create_artifact(ArtifactKind.TRANSCRIPT, self.file.id, "Body")
        self.assertEqual(record.title, "Generated Transcript")
        replaced = self.store.replace_artifact(ArtifactKind.TRANSCRIPT, self.file.id, "New body")
        self.assertEqual(self.store.get_transcript(self.file.id).content, "New body")
        self.assertNotEqual(record.id, replaced.id)

    def test_replace_podcast_drops_previous_sections(self):
        first = self.store.replace_podcast(self.file.id, "user-1", "T", "D", "0:01", [_plan("one")])
        second = self.store.replace_podcast(self.file.id, "user-1", "T", "D", "0:01", [_plan("two")])
        self.assertNotEqual(first.id, second.id)
        podcast = self.store.get_podcast(self.file.id)
        self.assertEqual(podcast.id, second.id)
        self.assertEqual([s.title for s in podcast.sections], ["two"])
        self.assertIsNone(podcast.sections[0].audio_url)

    def test_section_audio_and_duration_updates(self):
        podcast = self.store.replace_podcast(self.file.id, "user-1", "T", "D", "0:00", [_plan()])
        self.store.update_section_audio(podcast.sections[0].id, "/api/v1/audio/abcd1234.wav")
        self.store.update_podcast_duration(podcast.id, "1:30")
        podcast = self.store.get_podcast(self.file.id)
        self.assertEqual(podcast.sections[0].audio_url, "/api/v1/audio/abcd1234.wav")
        self.assertEqual(podcast.total_duration, "1:30")

    def test_timestamps_are_utc_aware(self):
        quiz = self.store.create_quiz(self.file.id, _questions(), "Quiz")
        self.assertEqual(quiz.created_at.utcoffset(), timedelta(0))

        unsaved = TranscriptRecord(id="unsaved-1", file_id=self.file.id, title="T", content="body", persisted=False)
        self.assertEqual(unsaved.created_at.utcoffset(), timedelta(0))


if __name__ == "__main__":
    unittest.main()
