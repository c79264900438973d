"""
Pydantic models for generated study content and podcasts.
Following KISS principle - simple, clear models with validation.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Literal
from datetime import datetime, timezone
from enum import Enum


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ArtifactKind(str, Enum):
    QUIZ = "quiz"
    FLASHCARDS = "flashcards"
    TRANSCRIPT = "transcript"


# Source material (produced by ingestion, read-only here)
class SourceFile(BaseModel):
    id: str
    user_id: Optional[str] = None
    name: str
    url: Optional[str] = None


class SourceChunk(BaseModel):
    id: str
    file_id: str
    ordinal: int = 0
    text: str
    created_at: Optional[datetime] = None


# Validated generation payloads
class QuizQuestion(BaseModel):
    question: str
    options: List[str] = Field(..., min_length=4, max_length=4)
    answer: Literal["A", "B", "C", "D"]


class Flashcard(BaseModel):
    question: str
    answer: str


# Stored artifacts
class QuizQuestionRecord(QuizQuestion):
    id: str
    quiz_id: str
    order: int = 0


class QuizRecord(BaseModel):
    id: str
    file_id: str
    title: str = "Generated Quiz"
    created_at: datetime = Field(default_factory=utc_now)
    questions: List[QuizQuestionRecord] = []
    persisted: bool = True


class FlashcardRecord(Flashcard):
    id: str
    flashcards_id: str


class FlashcardSetRecord(BaseModel):
    id: str
    file_id: str
    title: str = "Generated Flashcards"
    created_at: datetime = Field(default_factory=utc_now)
    cards: List[FlashcardRecord] = []
    persisted: bool = True


class TranscriptRecord(BaseModel):
    id: str
    file_id: str
    title: str = "Generated Transcript"
    created_at: datetime = Field(default_factory=utc_now)
    content: str
    persisted: bool = True


class PodcastSectionRecord(BaseModel):
    id: str
    podcast_id: str
    title: str
    description: str
    content: str
    duration: str
    audio_url: Optional[str] = None
    order: int = 0


class PodcastRecord(BaseModel):
    id: str
    file_id: str
    user_id: Optional[str] = None
    title: str
    description: str
    total_duration: str = "0:00"
    created_at: datetime = Field(default_factory=utc_now)
    sections: List[PodcastSectionRecord] = []
    persisted: bool = True


class PodcastSectionPlan(BaseModel):
    """One planned section, before it has an id or audio"""
    title: str
    description: str
    content: str
    duration: str
    duration_seconds: float


# Request models
class FileContentRequest(BaseModel):
    file_id: str = Field(..., min_length=1)


class RegenerateContentRequest(BaseModel):
    file_id: str = Field(..., min_length=1)
    kind: ArtifactKind


class PodcastRequest(BaseModel):
    file_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
