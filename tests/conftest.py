"""Shared pytest fixtures and configuration."""

from pathlib import Path
from typing import Optional

import pytest

from scriptreel.core.config import Settings
from scriptreel.core.logging_config import get_logger
from scriptreel.models.schemas import AudioFormat, FootageClip, ScriptSection, VoiceSettings
from scriptreel.services.interfaces import FootageCatalog, SpeechSynthesizer
from scriptreel.services.wav_container import SilenceSynthesizer


class FakeSynthesizer(SpeechSynthesizer):
    """Returns silent WAV buffers sized per text; optionally fails on chosen texts."""

    def __init__(self, durations: Optional[dict[str, float]] = None, default_seconds: float = 1.0, fail_on=()):
        self.durations = durations or {}
        self.default_seconds = default_seconds
        self.fail_on = set(fail_on)
        self.calls: list[tuple[str, VoiceSettings]] = []
        self.silence = SilenceSynthesizer(AudioFormat())

    def synthesize(self, text, voice_settings, voice_id=None, model_id=None):
        self.calls.append((text, voice_settings))
        if text in self.fail_on:
            raise RuntimeError("TTS provider returned status 500")
        return self.silence.synthesize(self.durations.get(text, self.default_seconds))


class FakeCatalog(FootageCatalog):
    """Returns the same clips for every search and records the queries."""

    def __init__(self, clips: list[FootageClip]):
        self.clips = clips
        self.searches: list[tuple[list[str], float]] = []

    def search(self, query_terms, min_duration_hint=0.0):
        self.searches.append((list(query_terms), min_duration_hint))
        return list(self.clips)

    def fetch(self, clip, destination):
        return Path(clip.source_uri)


@pytest.fixture
def settings(tmp_path):
    """Create test settings instance (no .env, stub TTS, temp storage)."""
    return Settings(
        _env_file=None,
        elevenlabs_api_key=None,
        pexels_api_key="test-pexels-key",
        storage_path=str(tmp_path / "storage"),
        log_file=None,
    )


@pytest.fixture
def logger():
    """Create test logger instance."""
    return get_logger(__name__)


@pytest.fixture
def make_clip():
    """Factory for footage clips."""

    def _make(clip_id: str, duration: float, uri: Optional[str] = None) -> FootageClip:
        return FootageClip(
            id=clip_id,
            duration_seconds=duration,
            source_uri=uri or f"https://videos.example.com/{clip_id}.mp4",
            tags=["test"],
        )

    return _make


@pytest.fixture
def make_catalog():
    """Factory for fake footage catalogs."""
    return FakeCatalog


@pytest.fixture
def make_synthesizer():
    """Factory for fake speech synthesizers."""
    return FakeSynthesizer


@pytest.fixture
def three_sections():
    """Sections narrated for 10s, 20s and 10s by the fake synthesizer (given out of order)."""
    return [
        ScriptSection(order_index=2, title="Outro", content="outro text", estimated_duration="10 seconds"),
        ScriptSection(order_index=0, title="Intro", content="intro text", estimated_duration="10 seconds"),
        ScriptSection(order_index=1, title="Main Story", content="main text", estimated_duration="20 seconds"),
    ]


@pytest.fixture
def three_section_durations():
    """Fake synthesizer durations keyed by section content."""
    return {"intro text": 10.0, "main text": 20.0, "outro text": 10.0}
