"""
Idempotent artifact persistence on top of a RecordStore.

ensure_artifact returns whatever the store already holds for (file, kind)
and only writes when nothing is there. The store's uniqueness constraint is
the source of truth: a create that loses a race surfaces as
DuplicateRecordError and is answered by re-reading the winner's record.
"""

import asyncio
import logging
from typing import Any, Optional

from clients.record_store import DEFAULT_TITLES, RecordStore, generate_uuid
from models.content_models import (
    ArtifactKind,
    FlashcardRecord,
    FlashcardSetRecord,
    QuizQuestionRecord,
    QuizRecord,
    TranscriptRecord,
)
from utils.exceptions import DuplicateRecordError, PersistenceError

logger = logging.getLogger(__name__)

EPHEMERAL_PREFIX = "unsaved-"


def ephemeral_id() -> str:
    return f"{EPHEMERAL_PREFIX}{generate_uuid()}"


class ArtifactPersistence:
    def __init__(self, store: RecordStore):
        self.store = store

    async def get_artifact(self, file_id: str, kind: ArtifactKind) -> Optional[Any]:
        return await asyncio.to_thread(self.store.get_artifact, kind, file_id)

    async def ensure_artifact(self, file_id: str, kind: ArtifactKind, data: Any) -> Any:
        """
        Return the stored artifact for (file_id, kind), creating it from data if absent.

        A second call with different data is a no-op returning the first record.
        """
        existing = await self.get_artifact(file_id, kind)
        if existing is not None:
            logger.info(f"{kind.value} already exists for file {file_id}, returning stored record {existing.id}")
            return existing

        try:
            record = await asyncio.to_thread(self.store.create_artifact, kind, file_id, data)
            logger.info(f"Stored {kind.value} {record.id} for file {file_id}")
            return record
        except DuplicateRecordError:
            logger.info(f"Concurrent writer stored {kind.value} for file {file_id} first, re-reading")
            winner = await self.get_artifact(file_id, kind)
            if winner is None:
                raise PersistenceError(
                    f"{kind.value} for file {file_id} reported as duplicate but could not be read back",
                    context={"file_id": file_id, "kind": kind.value},
                )
            return winner

    async def replace_artifact(self, file_id: str, kind: ArtifactKind, data: Any) -> Any:
        """Delete any stored artifact of this kind and store data, in one store transaction."""
        record = await asyncio.to_thread(self.store.replace_artifact, kind, file_id, data)
        logger.info(f"Replaced {kind.value} for file {file_id} with {record.id}")
        return record

    @staticmethod
    def ephemeral_record(file_id: str, kind: ArtifactKind, data: Any) -> Any:
        """
        Build the unsaved result returned when the store write fails after a
        successful generation. Ids carry the unsaved- prefix and persisted is False.
        """
        kind = ArtifactKind(kind)
        title = DEFAULT_TITLES[kind]
        parent_id = ephemeral_id()

        if kind == ArtifactKind.QUIZ:
            return QuizRecord(
                id=parent_id,
                file_id=file_id,
                title=title,
                questions=[
                    QuizQuestionRecord(id=ephemeral_id(), quiz_id=parent_id, order=i, **q.model_dump())
                    for i, q in enumerate(data)
                ],
                persisted=False,
            )
        if kind == ArtifactKind.FLASHCARDS:
            return FlashcardSetRecord(
                id=parent_id,
                file_id=file_id,
                title=title,
                cards=[
                    FlashcardRecord(id=ephemeral_id(), flashcards_id=parent_id, **c.model_dump())
                    for c in data
                ],
                persisted=False,
            )
        return TranscriptRecord(id=parent_id, file_id=file_id, title=title, content=data, persisted=False)
