"""
Content orchestration: quiz, flashcards, transcript and podcast generation
for one source file.

Each artifact kind follows the same pipeline:
  chunks -> prompt -> RetryingGenerator (gateway, extraction, validation)
  -> ArtifactPersistence
Creation is idempotent per (file, kind); regeneration replaces in one store
transaction. A store failure after a successful generation returns the
generated artifact unsaved (persisted=False) instead of discarding it.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import httpx

from clients.completion_gateway import TextCompletionGateway
from clients.elevenlabs_client import ElevenLabsClient
from clients.record_store import RecordStore
from models.content_models import ArtifactKind, PodcastRecord, PodcastSectionPlan, SourceChunk, SourceFile
from prompts.content_prompts import CONTENT_PROMPTS, join_chunks
from services.artifact_persistence import ArtifactPersistence
from services.audio_storage import (
    AudioArtifactStore,
    AudioLocator,
    MigrationReport,
    content_type_for,
    hashed_filename,
    http_head_probe,
)
from services.podcast_planner import format_duration, plan_section
from services.retrying_generator import RetryingGenerator
from services.speech_synthesis import SpeechSynthesisPipeline
from utils.exceptions import (
    DuplicateRecordError,
    NotFoundError,
    PersistenceError,
    PreconditionError,
    StorageError,
    SynthesisError,
)
from utils.model_config import ModelConfig
from utils.settings import Settings

logger = logging.getLogger(__name__)

NO_CONTENT_MESSAGE = "No content found for this file. Please ensure the PDF was processed successfully."
ORIGIN_FALLBACK_CHARS = 5000


@dataclass
class PodcastOutcome:
    podcast: PodcastRecord
    audio_generated: bool
    tier: Optional[str] = None


def build_record_store(settings: Settings) -> RecordStore:
    if settings.store_backend == "supabase":
        from clients.supabase_client import SupabaseRecordStore
        return SupabaseRecordStore.from_settings(settings)
    if settings.store_backend == "sqlite":
        from clients.sqlite_store import SQLiteRecordStore
        return SQLiteRecordStore(settings.sqlite_db_path)
    raise ValueError(f"Unknown STORE_BACKEND: {settings.store_backend}")


class ContentService:
    def __init__(
        self,
        store: RecordStore,
        generator: RetryingGenerator,
        synthesizer: SpeechSynthesisPipeline,
        audio_store: AudioArtifactStore,
        locator: AudioLocator,
        model_key: Optional[str] = None,
        chunk_limit: int = 30,
        podcast_chunk_limit: int = 20,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.store = store
        self.persistence = ArtifactPersistence(store)
        self.generator = generator
        self.synthesizer = synthesizer
        self.audio_store = audio_store
        self.locator = locator
        self.model_key = model_key
        self.chunk_limit = chunk_limit
        self.podcast_chunk_limit = podcast_chunk_limit
        self._http_transport = http_transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "ContentService":
        """Wire every provider client and store from process configuration."""
        gateway = TextCompletionGateway.from_settings(settings)
        generator = RetryingGenerator(
            gateway,
            max_attempts=settings.generation_max_attempts,
            backoff_seconds=settings.generation_backoff_seconds,
            deadline_seconds=settings.generation_deadline_seconds,
        )
        audio_store = AudioArtifactStore(settings.audio_storage_dir, settings.audio_url_prefix)
        return cls(
            store=build_record_store(settings),
            generator=generator,
            synthesizer=SpeechSynthesisPipeline(ElevenLabsClient.from_settings(settings)),
            audio_store=audio_store,
            locator=AudioLocator(audio_store, http_head_probe(settings.public_base_url)),
            model_key=settings.generation_model,
            chunk_limit=settings.generation_chunk_limit,
            podcast_chunk_limit=settings.podcast_chunk_limit,
        )

    # ------------------------------------------------------------------
    # Study content
    # ------------------------------------------------------------------

    async def generate_quiz(self, file_id: str):
        return await self._ensure(file_id, ArtifactKind.QUIZ)

    async def generate_flashcards(self, file_id: str):
        return await self._ensure(file_id, ArtifactKind.FLASHCARDS)

    async def generate_transcript(self, file_id: str):
        return await self._ensure(file_id, ArtifactKind.TRANSCRIPT)

    async def regenerate(self, file_id: str, kind: ArtifactKind):
        """
        Generate a fresh artifact and swap it in for the stored one.

        Generation runs first, so a failed generation leaves the existing
        artifact untouched; the swap itself is one store transaction.
        """
        kind = ArtifactKind(kind)
        logger.info(f"Regenerating {kind.value} for file {file_id}")
        chunks = await self._load_chunks(file_id, self.chunk_limit)
        payload = await self._generate_payload(kind, chunks)
        try:
            return await self.persistence.replace_artifact(file_id, kind, payload)
        except PersistenceError as e:
            logger.error(f"Failed to store regenerated {kind.value} for file {file_id}: {e.message}", exc_info=True)
            return self.persistence.ephemeral_record(file_id, kind, payload)

    async def generate_all_content(self, file_id: str) -> Dict[str, Any]:
        """
        Quiz, flashcards and transcript for a file.

        Returns existing artifacts when all three are stored. Otherwise the
        missing kinds are generated concurrently; if any of them fails the
        whole call fails and nothing new is stored.
        """
        kinds = list(ArtifactKind)
        existing = await asyncio.gather(*(self.persistence.get_artifact(file_id, k) for k in kinds))
        results: Dict[ArtifactKind, Any] = {k: record for k, record in zip(kinds, existing) if record is not None}

        missing = [k for k in kinds if k not in results]
        if not missing:
            logger.info(f"All content already exists for file {file_id}")
            return {k.value: results[k] for k in kinds}

        chunks = await self._load_chunks(file_id, self.chunk_limit)
        logger.info(f"Generating {[k.value for k in missing]} concurrently for file {file_id}")
        payloads = await asyncio.gather(
            *(self._generate_payload(k, chunks) for k in missing),
            return_exceptions=True,
        )

        failures = [(k, p) for k, p in zip(missing, payloads) if isinstance(p, BaseException)]
        if failures:
            for k, err in failures:
                logger.error(f"{k.value} generation failed for file {file_id}: {err}")
            raise failures[0][1]

        for k, payload in zip(missing, payloads):
            results[k] = await self._persist(file_id, k, payload)
        return {k.value: results[k] for k in kinds}

    async def _ensure(self, file_id: str, kind: ArtifactKind):
        existing = await self.persistence.get_artifact(file_id, kind)
        if existing is not None:
            logger.info(f"{kind.value} already exists for file {file_id}")
            return existing

        chunks = await self._load_chunks(file_id, self.chunk_limit)
        payload = await self._generate_payload(kind, chunks)
        return await self._persist(file_id, kind, payload)

    async def _persist(self, file_id: str, kind: ArtifactKind, payload: Any):
        try:
            return await self.persistence.ensure_artifact(file_id, kind, payload)
        except PersistenceError as e:
            logger.error(
                f"Generated {kind.value} for file {file_id} could not be stored, returning it unsaved: {e.message}",
                exc_info=True,
            )
            return self.persistence.ephemeral_record(file_id, kind, payload)

    async def _load_chunks(self, file_id: str, limit: int) -> List[SourceChunk]:
        chunks = await asyncio.to_thread(self.store.list_chunks, file_id, limit)
        if not chunks:
            raise PreconditionError(NO_CONTENT_MESSAGE, context={"file_id": file_id})
        logger.info(f"Loaded {len(chunks)} chunks for file {file_id}")
        return chunks

    async def _generate_payload(self, kind: ArtifactKind, chunks: List[SourceChunk]) -> Any:
        prompt_spec = CONTENT_PROMPTS[kind]
        prompt = prompt_spec["builder"](join_chunks(chunks))
        params = ModelConfig.generation_params(self.model_key, prompt_spec["max_tokens"])
        return await self.generator.generate(kind, prompt, prompt_spec["system_prompt"], params)

    # ------------------------------------------------------------------
    # Podcasts
    # ------------------------------------------------------------------

    async def create_podcast(self, file_id: str, user_id: str) -> PodcastOutcome:
        """
        Build (or rebuild) the single-section podcast for a file the user owns.

        Any existing podcast is replaced in one store transaction. A synthesis
        or storage failure still returns the podcast, with a best-effort audio
        URL and audio_generated=False. If the audio URL cannot be recorded
        the podcast comes back with persisted=False.
        """
        source = await self._owned_file(file_id, user_id)

        chunks = await asyncio.to_thread(self.store.list_chunks, file_id, self.podcast_chunk_limit)
        content = None
        if not chunks:
            logger.warning(f"No chunks found for file {file_id}, falling back to its origin URL")
            content = await self._fetch_origin_text(source)

        plan = plan_section(chunks, source.name, content=content)
        podcast = await self._replace_podcast(source, user_id, plan)
        section = podcast.sections[0]

        tier = None
        try:
            result = await self.synthesizer.synthesize(section.content)
            audio_url = await self.audio_store.store(result.audio, hashed_filename(podcast.id, section.id))
            tier = result.tier
            total_duration = format_duration(result.duration_seconds)
        except (SynthesisError, StorageError) as e:
            logger.error(f"Audio generation failed for section {section.id}: {e.message}", exc_info=True)
            audio_url = await self.locator.get_audio_url(podcast.id, section.id)
            total_duration = plan.duration
            logger.warning(f"Using fallback URL {audio_url} (no audio file written)")

        persisted = True
        try:
            await asyncio.to_thread(self.store.update_section_audio, section.id, audio_url)
            await asyncio.to_thread(self.store.update_podcast_duration, podcast.id, total_duration)
        except PersistenceError as e:
            logger.error(f"Could not record audio for podcast {podcast.id}, returning it unsaved: {e.message}")
            persisted = False

        podcast = podcast.model_copy(update={
            "total_duration": total_duration,
            "persisted": persisted,
            "sections": [section.model_copy(update={"audio_url": audio_url})],
        })
        logger.info(f"Podcast {podcast.id} ready for file {file_id} ({total_duration}, tier={tier})")
        return PodcastOutcome(podcast=podcast, audio_generated=tier is not None, tier=tier)

    async def fix_audio_urls(self, file_id: str, user_id: str) -> Tuple[PodcastRecord, int]:
        """Re-point each section of the file's podcast at the audio file actually on disk."""
        await self._owned_file(file_id, user_id)
        podcast = await asyncio.to_thread(self.store.get_podcast, file_id)
        if podcast is None:
            raise NotFoundError("Podcast not found", error_code="PODCAST_NOT_FOUND", context={"file_id": file_id})

        urls = await asyncio.to_thread(self.locator.fix_audio_urls, podcast)
        for section_id, url in urls.items():
            if url:
                await asyncio.to_thread(self.store.update_section_audio, section_id, url)

        fixed = sum(1 for url in urls.values() if url)
        logger.info(f"Audio URL fix complete: {fixed}/{len(podcast.sections)} sections have audio")
        sections = [s.model_copy(update={"audio_url": urls.get(s.id)}) for s in podcast.sections]
        return podcast.model_copy(update={"sections": sections}), fixed

    async def _replace_podcast(self, source: SourceFile, user_id: str, plan: PodcastSectionPlan) -> PodcastRecord:
        """
        Swap in a fresh single-section podcast for the file.

        A concurrent replace can commit its row between our delete and
        insert; the retry's delete then sees that row and replaces it.
        """
        args = (
            source.id,
            user_id,
            f"{source.name} - Audio Version",
            f"Audio version of {source.name}",
            plan.duration,
            [plan],
        )
        try:
            return await asyncio.to_thread(self.store.replace_podcast, *args)
        except DuplicateRecordError:
            logger.warning(f"Concurrent podcast replace for file {source.id}, retrying once")
            return await asyncio.to_thread(self.store.replace_podcast, *args)

    async def _owned_file(self, file_id: str, user_id: str) -> SourceFile:
        source = await asyncio.to_thread(self.store.get_file_for_user, file_id, user_id)
        if source is None:
            raise NotFoundError("File not found", context={"file_id": file_id})
        return source

    async def _fetch_origin_text(self, source: SourceFile) -> str:
        """First ORIGIN_FALLBACK_CHARS characters of the file's origin content."""
        if not source.url:
            raise PreconditionError(NO_CONTENT_MESSAGE, context={"file_id": source.id})
        try:
            async with httpx.AsyncClient(transport=self._http_transport, timeout=30.0) as client:
                response = await client.get(source.url, headers={"Range": f"bytes=0-{ORIGIN_FALLBACK_CHARS - 1}"})
        except httpx.HTTPError as e:
            logger.error(f"Error fetching file content from {source.url}: {e}")
            raise PreconditionError(NO_CONTENT_MESSAGE, context={"file_id": source.id}) from e

        if response.status_code not in (200, 206):
            logger.error(f"Failed to fetch file content from URL: {response.status_code}")
            raise PreconditionError(NO_CONTENT_MESSAGE, context={"file_id": source.id})

        text = response.text[:ORIGIN_FALLBACK_CHARS]
        if not text.strip():
            raise PreconditionError(NO_CONTENT_MESSAGE, context={"file_id": source.id})
        logger.info(f"Extracted {len(text)} chars from file URL for {source.id}")
        return text

    # ------------------------------------------------------------------
    # Audio files
    # ------------------------------------------------------------------

    async def get_audio_file(self, filename: str) -> Tuple[bytes, str]:
        data = await self.audio_store.read(filename)
        return data, content_type_for(filename)

    def list_audio_files(self) -> Dict[str, Any]:
        return self.audio_store.directory_report()

    async def migrate_audio(self) -> MigrationReport:
        return await asyncio.to_thread(self.locator.migrate_legacy_files)
