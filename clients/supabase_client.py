"""
Supabase-backed record store.

Single-table reads and writes go through the PostgREST table API. Writes
that touch a parent and its children (quiz + questions, flashcard set +
cards, podcast + sections) and every delete-then-create replace go through
Postgres functions called with .rpc(), so each runs in one database
transaction. DDL for the tables and functions lives in
supabase/migrations/0001_content_tables.sql.
"""

from typing import Any, Dict, List, Optional
from supabase import create_client, Client
import logging

from clients.record_store import RecordStore
from models.content_models import (
    Flashcard,
    FlashcardRecord,
    FlashcardSetRecord,
    PodcastRecord,
    PodcastSectionPlan,
    PodcastSectionRecord,
    QuizQuestion,
    QuizQuestionRecord,
    QuizRecord,
    SourceChunk,
    SourceFile,
    TranscriptRecord,
)
from utils.exceptions import DuplicateRecordError, PersistenceError
from utils.settings import Settings

logger = logging.getLogger(__name__)

# Postgres unique_violation
UNIQUE_VIOLATION = "23505"


def create_supabase_client(settings: Settings) -> Client:
    if not settings.supabase_url or not settings.supabase_key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")
    return create_client(settings.supabase_url, settings.supabase_key)


def _translate_error(e: Exception, action: str) -> PersistenceError:
    if getattr(e, "code", None) == UNIQUE_VIOLATION or "duplicate key" in str(e).lower():
        return DuplicateRecordError(f"Record already exists ({action}): {e}")
    return PersistenceError(f"Supabase {action} failed: {e}")


class SupabaseRecordStore(RecordStore):
    def __init__(self, client: Client):
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseRecordStore":
        return cls(create_supabase_client(settings))

    def _execute(self, query, action: str):
        try:
            return query.execute()
        except Exception as e:
            raise _translate_error(e, action) from e

    def _first(self, query, action: str) -> Optional[Dict[str, Any]]:
        response = self._execute(query, action)
        if not response.data or len(response.data) == 0:
            return None
        return response.data[0]

    # Source material
    def get_file(self, file_id: str) -> Optional[SourceFile]:
        row = self._first(
            self.client.table("files").select("id, user_id, name, url").eq("id", file_id).limit(1),
            "get file",
        )
        return SourceFile(**row) if row else None

    def get_file_for_user(self, file_id: str, user_id: str) -> Optional[SourceFile]:
        row = self._first(
            self.client.table("files").select("id, user_id, name, url").eq("id", file_id).eq("user_id", user_id).limit(1),
            "get file for user",
        )
        return SourceFile(**row) if row else None

    def list_chunks(self, file_id: str, limit: Optional[int] = None) -> List[SourceChunk]:
        query = self.client.table("chunks")\
            .select("id, file_id, ordinal, text, created_at")\
            .eq("file_id", file_id)\
            .order("ordinal")\
            .order("created_at")
        if limit:
            query = query.limit(limit)
        response = self._execute(query, "list chunks")
        return [SourceChunk(**row) for row in response.data or []]

    # Quiz
    def get_quiz(self, file_id: str) -> Optional[QuizRecord]:
        row = self._first(
            self.client.table("quizzes").select("*, quiz_questions(*)").eq("file_id", file_id).limit(1),
            "get quiz",
        )
        if not row:
            return None
        questions = sorted(row.get("quiz_questions") or [], key=lambda q: q.get("position", 0))
        return QuizRecord(
            id=row["id"],
            file_id=row["file_id"],
            title=row["title"],
            created_at=row["created_at"],
            questions=[
                QuizQuestionRecord(
                    id=q["id"], quiz_id=q["quiz_id"], question=q["question"],
                    options=q["options"], answer=q["answer"], order=q.get("position", 0),
                )
                for q in questions
            ],
        )

    def _write_quiz(self, fn: str, file_id: str, questions: List[QuizQuestion], title: str) -> QuizRecord:
        self._execute(
            self.client.rpc(fn, {
                "p_file_id": file_id,
                "p_title": title,
                "p_questions": [q.model_dump() for q in questions],
            }),
            fn,
        )
        record = self.get_quiz(file_id)
        if record is None:
            raise PersistenceError(f"{fn} returned no quiz for file {file_id}")
        return record

    def create_quiz(self, file_id: str, questions: List[QuizQuestion], title: str) -> QuizRecord:
        return self._write_quiz("create_quiz", file_id, questions, title)

    def replace_quiz(self, file_id: str, questions: List[QuizQuestion], title: str) -> QuizRecord:
        return self._write_quiz("replace_quiz", file_id, questions, title)

    # Flashcards
    def get_flashcards(self, file_id: str) -> Optional[FlashcardSetRecord]:
        row = self._first(
            self.client.table("flashcard_sets").select("*, flashcards(*)").eq("file_id", file_id).limit(1),
            "get flashcards",
        )
        if not row:
            return None
        return FlashcardSetRecord(
            id=row["id"],
            file_id=row["file_id"],
            title=row["title"],
            created_at=row["created_at"],
            cards=[
                FlashcardRecord(id=c["id"], flashcards_id=c["flashcards_id"], question=c["question"], answer=c["answer"])
                for c in sorted(row.get("flashcards") or [], key=lambda c: c.get("position", 0))
            ],
        )

    def _write_flashcards(self, fn: str, file_id: str, cards: List[Flashcard], title: str) -> FlashcardSetRecord:
        self._execute(
            self.client.rpc(fn, {
                "p_file_id": file_id,
                "p_title": title,
                "p_cards": [c.model_dump() for c in cards],
            }),
            fn,
        )
        record = self.get_flashcards(file_id)
        if record is None:
            raise PersistenceError(f"{fn} returned no flashcards for file {file_id}")
        return record

    def create_flashcards(self, file_id: str, cards: List[Flashcard], title: str) -> FlashcardSetRecord:
        return self._write_flashcards("create_flashcards", file_id, cards, title)

    def replace_flashcards(self, file_id: str, cards: List[Flashcard], title: str) -> FlashcardSetRecord:
        return self._write_flashcards("replace_flashcards", file_id, cards, title)

    # Transcript
    def get_transcript(self, file_id: str) -> Optional[TranscriptRecord]:
        row = self._first(
            self.client.table("transcripts").select("*").eq("file_id", file_id).limit(1),
            "get transcript",
        )
        return TranscriptRecord(**row) if row else None

    def create_transcript(self, file_id: str, content: str, title: str) -> TranscriptRecord:
        response = self._execute(
            self.client.table("transcripts").insert({"file_id": file_id, "title": title, "content": content}),
            "create transcript",
        )
        if not response.data or "id" not in response.data[0]:
            raise PersistenceError(f"Transcript insertion failed: {response}")
        return TranscriptRecord(**response.data[0])

    def replace_transcript(self, file_id: str, content: str, title: str) -> TranscriptRecord:
        self._execute(
            self.client.rpc("replace_transcript", {"p_file_id": file_id, "p_title": title, "p_content": content}),
            "replace_transcript",
        )
        record = self.get_transcript(file_id)
        if record is None:
            raise PersistenceError(f"replace_transcript returned no transcript for file {file_id}")
        return record

    # Podcasts
    def get_podcast(self, file_id: str) -> Optional[PodcastRecord]:
        row = self._first(
            self.client.table("podcasts").select("*, podcast_sections(*)").eq("file_id", file_id).limit(1),
            "get podcast",
        )
        if not row:
            return None
        sections = sorted(row.get("podcast_sections") or [], key=lambda s: s.get("position", 0))
        return PodcastRecord(
            id=row["id"],
            file_id=row["file_id"],
            user_id=row.get("user_id"),
            title=row["title"],
            description=row["description"],
            total_duration=row["total_duration"],
            created_at=row["created_at"],
            sections=[
                PodcastSectionRecord(
                    id=s["id"], podcast_id=s["podcast_id"], title=s["title"], description=s["description"],
                    content=s["content"], duration=s["duration"], audio_url=s.get("audio_url"),
                    order=s.get("position", 0),
                )
                for s in sections
            ],
        )

    def replace_podcast(
        self,
        file_id: str,
        user_id: Optional[str],
        title: str,
        description: str,
        total_duration: str,
        sections: List[PodcastSectionPlan],
    ) -> PodcastRecord:
        self._execute(
            self.client.rpc("replace_podcast", {
                "p_file_id": file_id,
                "p_user_id": user_id,
                "p_title": title,
                "p_description": description,
                "p_total_duration": total_duration,
                "p_sections": [
                    {
                        "title": s.title,
                        "description": s.description,
                        "content": s.content,
                        "duration": s.duration,
                    }
                    for s in sections
                ],
            }),
            "replace_podcast",
        )
        record = self.get_podcast(file_id)
        if record is None:
            raise PersistenceError(f"replace_podcast returned no podcast for file {file_id}")
        return record

    def update_section_audio(self, section_id: str, audio_url: Optional[str]) -> None:
        self._execute(
            self.client.table("podcast_sections").update({"audio_url": audio_url}).eq("id", section_id),
            "update section audio",
        )

    def update_podcast_duration(self, podcast_id: str, total_duration: str) -> None:
        self._execute(
            self.client.table("podcasts").update({"total_duration": total_duration}).eq("id", podcast_id),
            "update podcast duration",
        )
