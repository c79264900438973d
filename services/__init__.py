from services.content_service import ContentService, PodcastOutcome
from services.speech_synthesis import SpeechSynthesisPipeline, SynthesisResult
from services.audio_storage import AudioArtifactStore, AudioLocator, MigrationReport

__all__ = [
    'ContentService',
    'PodcastOutcome',
    'SpeechSynthesisPipeline',
    'SynthesisResult',
    'AudioArtifactStore',
    'AudioLocator',
    'MigrationReport'
]
