"""
FastAPI routes for stored podcast audio.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from routes.dependencies import get_content_service
from services.content_service import ContentService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["audio"])

# Files are addressed by content-derived names and never rewritten in place
AUDIO_CACHE_HEADERS = {
    "Cache-Control": "public, max-age=31536000",
    "Accept-Ranges": "bytes",
}


@router.api_route("/audio/{filename}", methods=["GET", "HEAD"])
async def get_audio(filename: str, service: ContentService = Depends(get_content_service)):
    """Serve one stored audio file by exact name (404 when absent)."""
    data, content_type = await service.get_audio_file(filename)
    logger.info(f"Serving {filename} ({len(data)} bytes, {content_type})")
    return Response(content=data, media_type=content_type, headers=AUDIO_CACHE_HEADERS)


@router.get("/audio-files")
async def list_audio_files(service: ContentService = Depends(get_content_service)):
    """Diagnostic listing of the audio storage directory."""
    return service.list_audio_files()


@router.post("/migrate-audio")
async def migrate_audio(service: ContentService = Depends(get_content_service)):
    """Rename legacy-named audio files to the hash scheme."""
    report = await service.migrate_audio()
    return {
        "success": report.success,
        "failed": report.failed,
        "skipped": report.skipped,
        "details": report.details,
    }
