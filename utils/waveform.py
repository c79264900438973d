"""
Procedural speech-like waveform and WAV container helpers.

The procedural voice is a deterministic stand-in for real speech: three
formant partials per sample picked by the class (vowel, consonant, other)
of the text character under the cursor, plus breath noise, slow amplitude
variation and a consonant transient, shaped by an ADSR envelope and
word-boundary gating. Samples are generated with numpy one second at a time.
"""

import io
import logging
import wave
from typing import Tuple

import numpy as np

logger = logging.getLogger(__name__)

SAMPLE_RATE = 44100
SAMPLE_WIDTH = 2  # 16-bit
WAV_HEADER_SIZE = 44

WORDS_PER_MINUTE = 150
MIN_SECONDS = 10.0
MAX_SECONDS = 600.0
CHARS_PER_SECOND = 8
HEADROOM = 0.2

VOWELS = set("aeiouAEIOU")
CONSONANTS = set("bcdfghjklmnpqrstvwxyzBCDFGHJKLMNPQRSTVWXYZ")
WORD_BOUNDARIES = set(" .,")
EMPHASIS_MARKS = set(".!?")

# Rows: vowel, consonant, neutral. Columns: f1, f2, f3.
FORMANT_BASE = np.array([[300.0, 800.0, 1800.0], [500.0, 1500.0, 2500.0], [400.0, 1000.0, 2000.0]])
FORMANT_RATE = np.array([[0.3, 0.5, 0.7], [0.4, 0.6, 0.8], [0.35, 0.55, 0.75]])
FORMANT_DEPTH = np.array([[80.0, 120.0, 150.0], [150.0, 200.0, 250.0], [100.0, 140.0, 180.0]])
FORMANT_CHAR_SPREAD = np.array([[30.0, 60.0, 90.0], [70.0, 100.0, 150.0], [40.0, 70.0, 110.0]])
VOWEL_AMPLITUDES = np.array([0.12, 0.06, 0.03])
OTHER_AMPLITUDES = np.array([0.06, 0.03, 0.015])

VOWEL, CONSONANT, NEUTRAL = 0, 1, 2

# ADSR
ATTACK_SECONDS = 0.03
DECAY_SECONDS = 0.1
SUSTAIN_LEVEL = 0.85
RELEASE_SECONDS = 0.05


def procedural_duration_seconds(text: str) -> float:
    """Duration for the procedural voice: 150 wpm clamped to [10, 600] seconds."""
    words = len(text.split())
    return min(max(words / WORDS_PER_MINUTE * 60, MIN_SECONDS), MAX_SECONDS)


def _classify(text: str) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Per-character class index, char variation, boundary gate and emphasis."""
    classes = np.array(
        [VOWEL if c in VOWELS else CONSONANT if c in CONSONANTS else NEUTRAL for c in text],
        dtype=np.int64,
    )
    char_variation = np.array([ord(c) * 0.005 for c in text])
    pause = np.array([0.5 if c in WORD_BOUNDARIES else 1.0 for c in text])
    emphasis = np.array([1.1 if c in EMPHASIS_MARKS else 1.0 for c in text])
    return classes, char_variation, pause, emphasis


def _envelope(t: np.ndarray, duration: float) -> np.ndarray:
    attack = np.minimum(t / ATTACK_SECONDS, 1.0)
    decay_progress = np.clip((t - ATTACK_SECONDS) / DECAY_SECONDS, 0.0, 1.0)
    decay = 1.0 - (1.0 - SUSTAIN_LEVEL) * decay_progress
    release = np.clip((duration - t) / RELEASE_SECONDS, 0.0, 1.0)
    return attack * decay * release


def _render_block(
    t: np.ndarray,
    duration: float,
    classes: np.ndarray,
    char_variation: np.ndarray,
    pause: np.ndarray,
    emphasis: np.ndarray,
) -> np.ndarray:
    idx = np.floor(t * CHARS_PER_SECOND).astype(np.int64) % len(classes)
    cls = classes[idx]
    var = char_variation[idx][:, None]
    base_time = (t * 0.2)[:, None]

    formants = (
        FORMANT_BASE[cls]
        + np.sin(base_time * FORMANT_RATE[cls]) * FORMANT_DEPTH[cls]
        + var * FORMANT_CHAR_SPREAD[cls]
    )
    is_vowel = cls == VOWEL
    amplitudes = np.where(is_vowel[:, None], VOWEL_AMPLITUDES, OTHER_AMPLITUDES)
    partials = np.sin(2 * np.pi * formants * t[:, None]) * amplitudes

    breath = np.sin(2 * np.pi * 80 * t) * 0.015
    variation = np.sin(2 * np.pi * 1.5 * t) * 0.008
    transient = np.where(cls == CONSONANT, np.sin(2 * np.pi * 3000 * t) * 0.02 * np.sin(t * 12), 0.0)

    combined = partials.sum(axis=1) + breath + variation + transient
    rhythm = np.sin(t) * 0.08 + 0.92
    return combined * _envelope(t, duration) * rhythm * pause[idx] * emphasis[idx] * HEADROOM


def render_procedural_pcm(text: str, sample_rate: int = SAMPLE_RATE) -> Tuple[bytes, float]:
    """
    Render text to 16-bit little-endian mono PCM.

    Returns:
        (pcm_bytes, duration_seconds)
    """
    if not text or not text.strip():
        raise ValueError("No text provided for audio generation")

    duration = procedural_duration_seconds(text)
    total_samples = int(sample_rate * duration)
    classes, char_variation, pause, emphasis = _classify(text)

    blocks = []
    for start in range(0, total_samples, sample_rate):
        n = min(sample_rate, total_samples - start)
        t = (start + np.arange(n)) / sample_rate
        samples = _render_block(t, duration, classes, char_variation, pause, emphasis)
        pcm = np.clip(np.round(samples * 32767), -32768, 32767).astype("<i2")
        blocks.append(pcm.tobytes())

    logger.info(f"Rendered {duration:.1f}s of procedural audio ({total_samples} samples)")
    return b"".join(blocks), duration


def pcm_to_wav(pcm: bytes, sample_rate: int = SAMPLE_RATE, channels: int = 1, sample_width: int = SAMPLE_WIDTH) -> bytes:
    """Wrap raw PCM frames in a canonical 44-byte RIFF/WAVE header."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(sample_width)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    return buffer.getvalue()


def wav_duration_seconds(data: bytes) -> float:
    with wave.open(io.BytesIO(data), "rb") as wav:
        return wav.getnframes() / float(wav.getframerate())
