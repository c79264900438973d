"""
Process-wide configuration, resolved once at startup from the environment.

Provider clients, the record store and the audio store are built from a
Settings instance and injected; nothing else reads credentials at call time.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

BASE_DIR = Path(__file__).parent.parent


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


def _float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


@dataclass
class Settings:
    # Text generation
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    groq_api_key: Optional[str] = None
    generation_model: str = "gpt-4"
    generation_max_attempts: int = 5
    generation_backoff_seconds: float = 2.0
    generation_deadline_seconds: float = 180.0
    generation_chunk_limit: int = 30

    # Speech synthesis
    eleven_labs_api_key: Optional[str] = None
    eleven_labs_voice_id: str = "21m00Tcm4TlvDq8ikWAM"  # Rachel
    eleven_labs_model_id: str = "eleven_monolingual_v1"
    eleven_labs_output_format: str = "pcm_22050"

    # Record store
    store_backend: str = "sqlite"
    sqlite_db_path: str = str(BASE_DIR / "studycast.db")
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None

    # Audio storage
    audio_storage_dir: str = str(BASE_DIR / "public" / "uploads" / "audio")
    audio_url_prefix: str = "/api/v1/audio"
    public_base_url: str = "http://localhost:8080"
    podcast_chunk_limit: int = 20

    cors_origins: list = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the environment (and a .env file if present)."""
        load_dotenv()
        defaults = cls()
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
            groq_api_key=os.getenv("GROQ_API_KEY"),
            generation_model=os.getenv("GENERATION_MODEL", defaults.generation_model),
            generation_max_attempts=_int_env("GENERATION_MAX_ATTEMPTS", defaults.generation_max_attempts),
            generation_backoff_seconds=_float_env("GENERATION_BACKOFF_SECONDS", defaults.generation_backoff_seconds),
            generation_deadline_seconds=_float_env("GENERATION_DEADLINE_SECONDS", defaults.generation_deadline_seconds),
            generation_chunk_limit=_int_env("GENERATION_CHUNK_LIMIT", defaults.generation_chunk_limit),
            eleven_labs_api_key=os.getenv("ELEVEN_LABS_API_KEY") or None,
            eleven_labs_voice_id=os.getenv("ELEVEN_LABS_VOICE_ID", defaults.eleven_labs_voice_id),
            eleven_labs_model_id=os.getenv("ELEVEN_LABS_MODEL_ID", defaults.eleven_labs_model_id),
            eleven_labs_output_format=os.getenv("ELEVEN_LABS_OUTPUT_FORMAT", defaults.eleven_labs_output_format),
            store_backend=os.getenv("STORE_BACKEND", defaults.store_backend).lower(),
            sqlite_db_path=os.getenv("SQLITE_DB_PATH", defaults.sqlite_db_path),
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_key=os.getenv("SUPABASE_KEY"),
            audio_storage_dir=os.getenv("AUDIO_STORAGE_DIR", defaults.audio_storage_dir),
            audio_url_prefix=os.getenv("AUDIO_URL_PREFIX", defaults.audio_url_prefix).rstrip("/"),
            public_base_url=os.getenv("PUBLIC_BASE_URL", defaults.public_base_url).rstrip("/"),
            podcast_chunk_limit=_int_env("PODCAST_CHUNK_LIMIT", defaults.podcast_chunk_limit),
            cors_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()],
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
