"""
Record store interface shared by the SQLite and Supabase backends.

Methods are synchronous (both backing clients are blocking); services call
them through asyncio.to_thread. Per-kind artifact methods are reached via
the generic get/create/replace_artifact dispatchers.

Uniqueness (one artifact of each kind per file, one podcast per file) is
enforced by the backing store itself. A create that loses that race raises
DuplicateRecordError; replace_* runs delete + create in one transaction.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, List, Optional

from models.content_models import (
    ArtifactKind,
    Flashcard,
    FlashcardSetRecord,
    PodcastRecord,
    PodcastSectionPlan,
    QuizQuestion,
    QuizRecord,
    SourceChunk,
    SourceFile,
    TranscriptRecord,
)

DEFAULT_TITLES = {
    ArtifactKind.QUIZ: "Generated Quiz",
    ArtifactKind.FLASHCARDS: "Generated Flashcards",
    ArtifactKind.TRANSCRIPT: "Generated Transcript",
}


def generate_uuid() -> str:
    """Generate unique ID for stored records"""
    return str(uuid.uuid4())


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class RecordStore(ABC):
    """Transactional record store for source material and derived artifacts."""

    # Source material
    @abstractmethod
    def get_file(self, file_id: str) -> Optional[SourceFile]: ...

    @abstractmethod
    def get_file_for_user(self, file_id: str, user_id: str) -> Optional[SourceFile]: ...

    @abstractmethod
    def list_chunks(self, file_id: str, limit: Optional[int] = None) -> List[SourceChunk]: ...

    # Quiz
    @abstractmethod
    def get_quiz(self, file_id: str) -> Optional[QuizRecord]: ...

    @abstractmethod
    def create_quiz(self, file_id: str, questions: List[QuizQuestion], title: str) -> QuizRecord: ...

    @abstractmethod
    def replace_quiz(self, file_id: str, questions: List[QuizQuestion], title: str) -> QuizRecord: ...

    # Flashcards
    @abstractmethod
    def get_flashcards(self, file_id: str) -> Optional[FlashcardSetRecord]: ...

    @abstractmethod
    def create_flashcards(self, file_id: str, cards: List[Flashcard], title: str) -> FlashcardSetRecord: ...

    @abstractmethod
    def replace_flashcards(self, file_id: str, cards: List[Flashcard], title: str) -> FlashcardSetRecord: ...

    # Transcript
    @abstractmethod
    def get_transcript(self, file_id: str) -> Optional[TranscriptRecord]: ...

    @abstractmethod
    def create_transcript(self, file_id: str, content: str, title: str) -> TranscriptRecord: ...

    @abstractmethod
    def replace_transcript(self, file_id: str, content: str, title: str) -> TranscriptRecord: ...

    # Podcasts
    @abstractmethod
    def get_podcast(self, file_id: str) -> Optional[PodcastRecord]: ...

    @abstractmethod
    def replace_podcast(
        self,
        file_id: str,
        user_id: Optional[str],
        title: str,
        description: str,
        total_duration: str,
        sections: List[PodcastSectionPlan],
    ) -> PodcastRecord:
        """Delete any podcast (and sections) for the file and create this one, atomically."""

    @abstractmethod
    def update_section_audio(self, section_id: str, audio_url: Optional[str]) -> None: ...

    @abstractmethod
    def update_podcast_duration(self, podcast_id: str, total_duration: str) -> None: ...

    # Generic dispatch
    def get_artifact(self, kind: ArtifactKind, file_id: str) -> Optional[Any]:
        return getattr(self, f"get_{ArtifactKind(kind).value}")(file_id)

    def create_artifact(self, kind: ArtifactKind, file_id: str, payload: Any, title: Optional[str] = None) -> Any:
        kind = ArtifactKind(kind)
        return getattr(self, f"create_{kind.value}")(file_id, payload, title or DEFAULT_TITLES[kind])

    def replace_artifact(self, kind: ArtifactKind, file_id: str, payload: Any, title: Optional[str] = None) -> Any:
        kind = ArtifactKind(kind)
        return getattr(self, f"replace_{kind.value}")(file_id, payload, title or DEFAULT_TITLES[kind])
