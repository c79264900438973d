"""
SQLite-backed record store for local development and tests.

Every public call opens its own connection (safe under asyncio.to_thread).
Multi-row writes run inside `with conn:` so they commit or roll back as one
unit; UNIQUE(file_id) on each artifact table is the race arbiter.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from clients.record_store import RecordStore, generate_uuid, utc_now
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

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS files (
    id TEXT PRIMARY KEY,
    user_id TEXT,
    name TEXT NOT NULL,
    url TEXT,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS chunks (
    id TEXT PRIMARY KEY,
    file_id TEXT NOT NULL,
    ordinal INTEGER NOT NULL DEFAULT 0,
    text TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_chunks_file ON chunks (file_id, ordinal);
CREATE TABLE IF NOT EXISTS quizzes (
    id TEXT PRIMARY KEY,
    file_id TEXT NOT NULL UNIQUE,
    title TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS quiz_questions (
    id TEXT PRIMARY KEY,
    quiz_id TEXT NOT NULL REFERENCES quizzes (id) ON DELETE CASCADE,
    question TEXT NOT NULL,
    options TEXT NOT NULL,
    answer TEXT NOT NULL,
    position INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS flashcard_sets (
    id TEXT PRIMARY KEY,
    file_id TEXT NOT NULL UNIQUE,
    title TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS flashcards (
    id TEXT PRIMARY KEY,
    flashcards_id TEXT NOT NULL REFERENCES flashcard_sets (id) ON DELETE CASCADE,
    question TEXT NOT NULL,
    answer TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS transcripts (
    id TEXT PRIMARY KEY,
    file_id TEXT NOT NULL UNIQUE,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS podcasts (
    id TEXT PRIMARY KEY,
    file_id TEXT NOT NULL UNIQUE,
    user_id TEXT,
    title TEXT NOT NULL,
    description TEXT NOT NULL,
    total_duration TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS podcast_sections (
    id TEXT PRIMARY KEY,
    podcast_id TEXT NOT NULL REFERENCES podcasts (id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    description TEXT NOT NULL,
    content TEXT NOT NULL,
    duration TEXT NOT NULL,
    audio_url TEXT,
    position INTEGER NOT NULL
);
"""


class SQLiteRecordStore(RecordStore):
    def __init__(self, db_path: str = "studycast.db", timeout: float = 10.0):
        self.db_path = db_path
        self.timeout = timeout
        self._init_db()

    def _init_db(self):
        """Create the schema if it doesn't exist."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        with self._connection() as conn:
            conn.executescript(SCHEMA)
        logger.info(f"SQLite record store ready at {self.db_path}")

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """One connection, one transaction: commit on success, rollback on error."""
        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            with conn:
                yield conn
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e).upper():
                raise DuplicateRecordError(f"Record already exists: {e}") from e
            raise PersistenceError(f"SQLite integrity error: {e}") from e
        except sqlite3.Error as e:
            raise PersistenceError(f"SQLite error: {e}") from e
        finally:
            conn.close()

    # Source material (written by ingestion; exposed for local seeding)
    def insert_file(self, name: str, user_id: Optional[str] = None, url: Optional[str] = None,
                    file_id: Optional[str] = None) -> SourceFile:
        record = SourceFile(id=file_id or generate_uuid(), user_id=user_id, name=name, url=url)
        with self._connection() as conn:
            conn.execute(
                "INSERT INTO files (id, user_id, name, url, created_at) VALUES (?, ?, ?, ?, ?)",
                (record.id, record.user_id, record.name, record.url, utc_now()),
            )
        return record

    def insert_chunks(self, file_id: str, texts: List[str]) -> List[SourceChunk]:
        chunks = [
            SourceChunk(id=generate_uuid(), file_id=file_id, ordinal=i, text=text)
            for i, text in enumerate(texts)
        ]
        with self._connection() as conn:
            conn.executemany(
                "INSERT INTO chunks (id, file_id, ordinal, text, created_at) VALUES (?, ?, ?, ?, ?)",
                [(c.id, c.file_id, c.ordinal, c.text, utc_now()) for c in chunks],
            )
        return chunks

    def get_file(self, file_id: str) -> Optional[SourceFile]:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM files WHERE id = ?", (file_id,)).fetchone()
        return SourceFile(id=row["id"], user_id=row["user_id"], name=row["name"], url=row["url"]) if row else None

    def get_file_for_user(self, file_id: str, user_id: str) -> Optional[SourceFile]:
        record = self.get_file(file_id)
        if record and record.user_id == user_id:
            return record
        return None

    def list_chunks(self, file_id: str, limit: Optional[int] = None) -> List[SourceChunk]:
        query = "SELECT * FROM chunks WHERE file_id = ? ORDER BY ordinal ASC, created_at ASC"
        params: tuple = (file_id,)
        if limit:
            query += " LIMIT ?"
            params = (file_id, limit)
        with self._connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            SourceChunk(id=r["id"], file_id=r["file_id"], ordinal=r["ordinal"], text=r["text"], created_at=r["created_at"])
            for r in rows
        ]

    # Quiz
    def get_quiz(self, file_id: str) -> Optional[QuizRecord]:
        with self._connection() as conn:
            quiz = conn.execute("SELECT * FROM quizzes WHERE file_id = ?", (file_id,)).fetchone()
            if not quiz:
                return None
            rows = conn.execute(
                "SELECT * FROM quiz_questions WHERE quiz_id = ? ORDER BY position", (quiz["id"],)
            ).fetchall()
        return QuizRecord(
            id=quiz["id"],
            file_id=quiz["file_id"],
            title=quiz["title"],
            created_at=quiz["created_at"],
            questions=[
                QuizQuestionRecord(
                    id=r["id"], quiz_id=r["quiz_id"], question=r["question"],
                    options=json.loads(r["options"]), answer=r["answer"], order=r["position"],
                )
                for r in rows
            ],
        )

    def _insert_quiz(self, conn: sqlite3.Connection, file_id: str, questions: List[QuizQuestion], title: str) -> str:
        quiz_id = generate_uuid()
        conn.execute(
            "INSERT INTO quizzes (id, file_id, title, created_at) VALUES (?, ?, ?, ?)",
            (quiz_id, file_id, title, utc_now()),
        )
        conn.executemany(
            "INSERT INTO quiz_questions (id, quiz_id, question, options, answer, position) VALUES (?, ?, ?, ?, ?, ?)",
            [
                (generate_uuid(), quiz_id, q.question, json.dumps(q.options), q.answer, i)
                for i, q in enumerate(questions)
            ],
        )
        return quiz_id

    def create_quiz(self, file_id: str, questions: List[QuizQuestion], title: str) -> QuizRecord:
        with self._connection() as conn:
            self._insert_quiz(conn, file_id, questions, title)
        return self.get_quiz(file_id)

    def replace_quiz(self, file_id: str, questions: List[QuizQuestion], title: str) -> QuizRecord:
        with self._connection() as conn:
            conn.execute("DELETE FROM quizzes WHERE file_id = ?", (file_id,))
            self._insert_quiz(conn, file_id, questions, title)
        return self.get_quiz(file_id)

    # Flashcards
    def get_flashcards(self, file_id: str) -> Optional[FlashcardSetRecord]:
        with self._connection() as conn:
            card_set = conn.execute("SELECT * FROM flashcard_sets WHERE file_id = ?", (file_id,)).fetchone()
            if not card_set:
                return None
            rows = conn.execute(
                "SELECT * FROM flashcards WHERE flashcards_id = ? ORDER BY rowid", (card_set["id"],)
            ).fetchall()
        return FlashcardSetRecord(
            id=card_set["id"],
            file_id=card_set["file_id"],
            title=card_set["title"],
            created_at=card_set["created_at"],
            cards=[
                FlashcardRecord(id=r["id"], flashcards_id=r["flashcards_id"], question=r["question"], answer=r["answer"])
                for r in rows
            ],
        )

    def _insert_flashcards(self, conn: sqlite3.Connection, file_id: str, cards: List[Flashcard], title: str) -> str:
        set_id = generate_uuid()
        conn.execute(
            "INSERT INTO flashcard_sets (id, file_id, title, created_at) VALUES (?, ?, ?, ?)",
            (set_id, file_id, title, utc_now()),
        )
        conn.executemany(
            "INSERT INTO flashcards (id, flashcards_id, question, answer) VALUES (?, ?, ?, ?)",
            [(generate_uuid(), set_id, c.question, c.answer) for c in cards],
        )
        return set_id

    def create_flashcards(self, file_id: str, cards: List[Flashcard], title: str) -> FlashcardSetRecord:
        with self._connection() as conn:
            self._insert_flashcards(conn, file_id, cards, title)
        return self.get_flashcards(file_id)

    def replace_flashcards(self, file_id: str, cards: List[Flashcard], title: str) -> FlashcardSetRecord:
        with self._connection() as conn:
            conn.execute("DELETE FROM flashcard_sets WHERE file_id = ?", (file_id,))
            self._insert_flashcards(conn, file_id, cards, title)
        return self.get_flashcards(file_id)

    # Transcript
    def get_transcript(self, file_id: str) -> Optional[TranscriptRecord]:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM transcripts WHERE file_id = ?", (file_id,)).fetchone()
        if not row:
            return None
        return TranscriptRecord(
            id=row["id"], file_id=row["file_id"], title=row["title"],
            created_at=row["created_at"], content=row["content"],
        )

    def create_transcript(self, file_id: str, content: str, title: str) -> TranscriptRecord:
        with self._connection() as conn:
            conn.execute(
                "INSERT INTO transcripts (id, file_id, title, content, created_at) VALUES (?, ?, ?, ?, ?)",
                (generate_uuid(), file_id, title, content, utc_now()),
            )
        return self.get_transcript(file_id)

    def replace_transcript(self, file_id: str, content: str, title: str) -> TranscriptRecord:
        with self._connection() as conn:
            conn.execute("DELETE FROM transcripts WHERE file_id = ?", (file_id,))
            conn.execute(
                "INSERT INTO transcripts (id, file_id, title, content, created_at) VALUES (?, ?, ?, ?, ?)",
                (generate_uuid(), file_id, title, content, utc_now()),
            )
        return self.get_transcript(file_id)

    # Podcasts
    def get_podcast(self, file_id: str) -> Optional[PodcastRecord]:
        with self._connection() as conn:
            podcast = conn.execute("SELECT * FROM podcasts WHERE file_id = ?", (file_id,)).fetchone()
            if not podcast:
                return None
            rows = conn.execute(
                "SELECT * FROM podcast_sections WHERE podcast_id = ? ORDER BY position", (podcast["id"],)
            ).fetchall()
        return PodcastRecord(
            id=podcast["id"],
            file_id=podcast["file_id"],
            user_id=podcast["user_id"],
            title=podcast["title"],
            description=podcast["description"],
            total_duration=podcast["total_duration"],
            created_at=podcast["created_at"],
            sections=[
                PodcastSectionRecord(
                    id=r["id"], podcast_id=r["podcast_id"], title=r["title"], description=r["description"],
                    content=r["content"], duration=r["duration"], audio_url=r["audio_url"], order=r["position"],
                )
                for r in rows
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
        podcast_id = generate_uuid()
        with self._connection() as conn:
            deleted = conn.execute("DELETE FROM podcasts WHERE file_id = ?", (file_id,)).rowcount
            if deleted:
                logger.info(f"Replacing existing podcast for file {file_id}")
            conn.execute(
                "INSERT INTO podcasts (id, file_id, user_id, title, description, total_duration, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (podcast_id, file_id, user_id, title, description, total_duration, utc_now()),
            )
            conn.executemany(
                "INSERT INTO podcast_sections (id, podcast_id, title, description, content, duration, audio_url, position) "
                "VALUES (?, ?, ?, ?, ?, ?, NULL, ?)",
                [
                    (generate_uuid(), podcast_id, s.title, s.description, s.content, s.duration, i)
                    for i, s in enumerate(sections)
                ],
            )
        return self.get_podcast(file_id)

    def update_section_audio(self, section_id: str, audio_url: Optional[str]) -> None:
        with self._connection() as conn:
            conn.execute("UPDATE podcast_sections SET audio_url = ? WHERE id = ?", (audio_url, section_id))

    def update_podcast_duration(self, podcast_id: str, total_duration: str) -> None:
        with self._connection() as conn:
            conn.execute("UPDATE podcasts SET total_duration = ? WHERE id = ?", (total_duration, podcast_id))
