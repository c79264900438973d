"""
FastAPI routes for study content and podcast generation.
Every endpoint is a thin wrapper over ContentService; domain errors are
rendered by the StudycastError handler in main.py.
"""

import logging

from fastapi import APIRouter, Depends

from models.content_models import (
    ArtifactKind,
    FileContentRequest,
    PodcastRequest,
    RegenerateContentRequest,
)
from routes.dependencies import get_content_service
from services.content_service import ContentService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["content"])


def _artifact_response(kind: ArtifactKind, record) -> dict:
    return {
        kind.value: record.model_dump(mode="json"),
        "persisted": record.persisted,
    }


# Study content

@router.post("/create-quiz")
async def create_quiz(request: FileContentRequest, service: ContentService = Depends(get_content_service)):
    """Generate (or return the stored) 5-question multiple-choice quiz for a file."""
    quiz = await service.generate_quiz(request.file_id)
    return _artifact_response(ArtifactKind.QUIZ, quiz)


@router.post("/create-flashcards")
async def create_flashcards(request: FileContentRequest, service: ContentService = Depends(get_content_service)):
    """Generate (or return the stored) flashcard set for a file."""
    flashcards = await service.generate_flashcards(request.file_id)
    return _artifact_response(ArtifactKind.FLASHCARDS, flashcards)


@router.post("/create-transcript")
async def create_transcript(request: FileContentRequest, service: ContentService = Depends(get_content_service)):
    """Generate (or return the stored) cleaned-up transcript for a file."""
    transcript = await service.generate_transcript(request.file_id)
    return _artifact_response(ArtifactKind.TRANSCRIPT, transcript)


@router.post("/create-all-content")
async def create_all_content(request: FileContentRequest, service: ContentService = Depends(get_content_service)):
    """
    Quiz, flashcards and transcript in one call.

    Existing artifacts are returned as-is; missing ones are generated
    concurrently. Any single failure fails the whole request.
    """
    content = await service.generate_all_content(request.file_id)
    return {
        "success": True,
        "message": "All content generated successfully",
        **{kind: record.model_dump(mode="json") for kind, record in content.items()},
        "persisted": all(record.persisted for record in content.values()),
    }


@router.post("/regenerate-content")
async def regenerate_content(request: RegenerateContentRequest, service: ContentService = Depends(get_content_service)):
    """Replace the stored artifact of one kind with a freshly generated one."""
    record = await service.regenerate(request.file_id, request.kind)
    return _artifact_response(request.kind, record)


# Podcasts

@router.post("/create-podcast")
async def create_podcast(request: PodcastRequest, service: ContentService = Depends(get_content_service)):
    """
    Build the single-section audio version of a file the user owns.

    Replaces any existing podcast for the file. When audio could not be
    produced the podcast is still returned, with audio_generated false.
    """
    outcome = await service.create_podcast(request.file_id, request.user_id)
    return {
        "message": "Podcast created successfully",
        "podcast": outcome.podcast.model_dump(mode="json"),
        "audio_generated": outcome.audio_generated,
        "tier": outcome.tier,
        "persisted": outcome.podcast.persisted,
    }


@router.post("/fix-audio-urls")
async def fix_audio_urls(request: PodcastRequest, service: ContentService = Depends(get_content_service)):
    """Re-point podcast sections at the audio files actually present on disk."""
    podcast, fixed = await service.fix_audio_urls(request.file_id, request.user_id)
    return {
        "success": True,
        "message": f"Audio URLs fixed successfully! {fixed}/{len(podcast.sections)} sections have audio",
        "podcast": podcast.model_dump(mode="json"),
    }
