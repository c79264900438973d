"""
One-shot migration of legacy audio filenames ("{podcast_id}-{section_id}.wav")
to the hash scheme. Safe to re-run: already-migrated files are skipped.
"""

import logging
import sys

from services.audio_storage import AudioArtifactStore, AudioLocator, http_head_probe
from utils.settings import get_settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def run_migration() -> int:
    settings = get_settings()
    audio_store = AudioArtifactStore(settings.audio_storage_dir, settings.audio_url_prefix)
    locator = AudioLocator(audio_store, http_head_probe(settings.public_base_url))

    logger.info(f"Checking if migration is needed in {audio_store.root}...")
    if not locator.needs_migration():
        logger.info("No migration needed - all files are already in the new format")
        return 0

    logger.info("Starting audio file migration...")
    report = locator.migrate_legacy_files()
    for detail in report.details:
        if detail["status"] == "failed":
            logger.warning(f"{detail['file']}: {detail.get('reason')}")

    logger.info(f"Migration completed: {report.success} successful, {report.failed} failed, {report.skipped} skipped")
    return 1 if report.failed else 0


if __name__ == "__main__":
    logger.info("=" * 60)
    logger.info("Audio filename migration")
    logger.info("=" * 60)
    sys.exit(run_migration())
