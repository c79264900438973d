"""
Durable audio storage and filename resolution.

Files live flat under one root directory and are served by exact basename.
Two naming schemes coexist:
- hash scheme: first 8 hex chars of md5("{podcast_id}-{section_id}") + ".wav"
- legacy scheme: "{podcast_id}-{section_id}.wav"
AudioLocator resolves a section's URL by trying the hash name first (HEAD
probe) and falling back to the legacy name. migrate_legacy_files renames
legacy files to the hash scheme and is safe to run repeatedly.
"""

import asyncio
import hashlib
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

import httpx

from models.content_models import PodcastRecord
from utils.exceptions import NotFoundError, StorageError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".wav"
HASH_LENGTH = 8
UUID_LENGTH = 36
AUDIO_EXTENSIONS = (".wav", ".mp3", ".m4a", ".ogg")
CONTENT_TYPES = {
    ".wav": "audio/wav",
    ".mp3": "audio/mpeg",
    ".m4a": "audio/mp4",
    ".ogg": "audio/ogg",
}
_EXTENSION_RE = re.compile(r"\.(wav|mp3|m4a)$")

Probe = Callable[[str], Awaitable[bool]]


def content_type_for(filename: str) -> str:
    return CONTENT_TYPES.get(os.path.splitext(filename)[1].lower(), "audio/wav")


class AudioArtifactStore:
    def __init__(self, root: str, url_prefix: str = "/api/v1/audio"):
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    def url_for(self, filename: str) -> str:
        return f"{self.url_prefix}/{filename}"

    def path_for(self, filename: str) -> Optional[Path]:
        """Path for an exact basename under the root, or None for anything else."""
        if not filename or filename in (".", "..") or os.path.basename(filename) != filename:
            return None
        return self.root / filename

    def exists(self, filename: str) -> bool:
        path = self.path_for(filename)
        return path is not None and path.is_file()

    async def store(self, buffer: bytes, filename: str) -> str:
        """Write buffer under filename (".wav" appended when it has no extension) and return its URL."""
        if "." not in filename:
            filename = filename + DEFAULT_EXTENSION
        path = self.path_for(filename)
        if path is None:
            raise StorageError(f"Invalid audio filename: {filename!r}", context={"filename": filename})

        def _write():
            self.root.mkdir(parents=True, exist_ok=True)
            path.write_bytes(buffer)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            raise StorageError(f"Failed to write audio file {filename}: {e}", context={"filename": filename}) from e

        logger.info(f"Audio file saved to {path} ({len(buffer)} bytes)")
        return self.url_for(filename)

    async def read(self, filename: str) -> bytes:
        path = self.path_for(filename)
        if path is None or not path.is_file():
            raise NotFoundError(
                "Audio file not found",
                error_code="AUDIO_NOT_FOUND",
                context={"filename": filename},
            )
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise StorageError(f"Failed to read audio file {filename}: {e}", context={"filename": filename}) from e

    def list_files(self) -> List[str]:
        if not self.root.is_dir():
            return []
        return sorted(p.name for p in self.root.iterdir() if p.is_file())

    def list_audio_files(self) -> List[str]:
        return [f for f in self.list_files() if f.lower().endswith(AUDIO_EXTENSIONS)]

    def directory_report(self) -> Dict:
        """Diagnostic listing of the storage root."""
        if not self.root.is_dir():
            return {"exists": False, "path": str(self.root), "error": "Audio directory does not exist"}
        audio_files = self.list_audio_files()
        return {
            "exists": True,
            "path": str(self.root),
            "total_files": len(self.list_files()),
            "audio_files": audio_files,
            "audio_urls": [self.url_for(f) for f in audio_files],
        }


# Filename schemes

def hashed_filename(podcast_id: str, section_id: str) -> str:
    digest = hashlib.md5(f"{podcast_id}-{section_id}".encode("utf-8")).hexdigest()
    return f"{digest[:HASH_LENGTH]}{DEFAULT_EXTENSION}"


def legacy_filename(podcast_id: str, section_id: str) -> str:
    return f"{podcast_id}-{section_id}{DEFAULT_EXTENSION}"


def is_hash_based_filename(filename: str) -> bool:
    return len(_EXTENSION_RE.sub("", filename)) == HASH_LENGTH


def extract_ids_from_filename(filename: str) -> Optional[Tuple[str, str]]:
    """
    Recover (podcast_id, section_id) from a legacy filename.

    Two hyphenated UUIDs joined by "-" are split at the UUID boundary;
    anything else splits at the first hyphen. Hash-scheme names and names
    without a hyphen return None.
    """
    name = _EXTENSION_RE.sub("", filename)
    if len(name) == HASH_LENGTH:
        return None

    if len(name) == 2 * UUID_LENGTH + 1 and name[UUID_LENGTH] == "-":
        podcast_id, section_id = name[:UUID_LENGTH], name[UUID_LENGTH + 1:]
    else:
        podcast_id, _, section_id = name.partition("-")

    if not podcast_id or not section_id:
        return None
    return podcast_id, section_id


def http_head_probe(base_url: str, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 5.0) -> Probe:
    """Probe that HEADs base_url + path and reports whether it answered 2xx."""

    async def probe(path: str) -> bool:
        try:
            async with httpx.AsyncClient(transport=transport, timeout=timeout) as client:
                response = await client.head(f"{base_url.rstrip('/')}{path}")
            return response.is_success
        except httpx.HTTPError as e:
            logger.info(f"HEAD probe for {path} failed: {e}")
            return False

    return probe


@dataclass
class MigrationReport:
    success: int = 0
    failed: int = 0
    skipped: int = 0
    details: List[Dict[str, str]] = field(default_factory=list)


class AudioLocator:
    def __init__(self, store: AudioArtifactStore, probe: Probe):
        self.store = store
        self.probe = probe

    async def get_audio_url(self, podcast_id: str, section_id: str) -> str:
        """Hash-scheme URL if the probe finds it, else the legacy URL. Never raises."""
        new_url = self.store.url_for(hashed_filename(podcast_id, section_id))
        try:
            if await self.probe(new_url):
                return new_url
        except Exception as e:
            logger.warning(f"Audio probe raised for {new_url}, using legacy name: {e}")
        return self.store.url_for(legacy_filename(podcast_id, section_id))

    def resolve_existing_filename(self, podcast_id: str, section_id: str) -> Optional[str]:
        """Name of a stored file for this section: hash scheme, then legacy, then any file naming both ids."""
        for candidate in (hashed_filename(podcast_id, section_id), legacy_filename(podcast_id, section_id)):
            if self.store.exists(candidate):
                return candidate
        for name in self.store.list_audio_files():
            if podcast_id in name and section_id in name:
                return name
        return None

    def fix_audio_urls(self, podcast: PodcastRecord) -> Dict[str, Optional[str]]:
        """Map each section id to the URL of its file on disk, or None when nothing matches."""
        urls: Dict[str, Optional[str]] = {}
        for section in podcast.sections:
            filename = self.resolve_existing_filename(podcast.id, section.id)
            urls[section.id] = self.store.url_for(filename) if filename else None
            if filename:
                logger.info(f"Section {section.id} -> {filename}")
            else:
                logger.warning(f"No audio file found for section {section.id}")
        return urls

    def needs_migration(self) -> bool:
        return any(
            f.endswith(DEFAULT_EXTENSION) and len(f) > HASH_LENGTH + len(DEFAULT_EXTENSION)
            for f in self.store.list_files()
        )

    def migrate_legacy_files(self) -> MigrationReport:
        """Rename legacy-scheme .wav files to the hash scheme, reporting per file."""
        report = MigrationReport()
        for name in self.store.list_files():
            if not name.endswith(DEFAULT_EXTENSION):
                continue
            if is_hash_based_filename(name):
                report.skipped += 1
                report.details.append({"file": name, "status": "skipped"})
                continue

            ids = extract_ids_from_filename(name)
            if ids is None:
                logger.warning(f"Could not extract IDs from {name}, leaving it in place")
                report.failed += 1
                report.details.append({"file": name, "status": "failed", "reason": "unparseable name"})
                continue

            target = hashed_filename(*ids)
            target_path = self.store.root / target
            if target_path.exists():
                report.failed += 1
                report.details.append({"file": name, "status": "failed", "reason": f"{target} already exists"})
                continue
            try:
                (self.store.root / name).rename(target_path)
            except OSError as e:
                logger.error(f"Failed to migrate {name}: {e}")
                report.failed += 1
                report.details.append({"file": name, "status": "failed", "reason": str(e)})
                continue

            logger.info(f"Migrated {name} -> {target}")
            report.success += 1
            report.details.append({"file": name, "status": "migrated", "target": target})

        logger.info(f"Audio migration finished: {report.success} migrated, {report.failed} failed, {report.skipped} skipped")
        return report
