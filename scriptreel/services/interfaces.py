"""
Port interfaces for the pipeline's external collaborators.

The services depend only on these abstractions; concrete adapters (ElevenLabs,
Pexels, local disk) and test fakes implement them.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from scriptreel.models.schemas import FootageClip, StoredArtifact, VoiceSettings


class SpeechSynthesizer(ABC):
    """Converts one text block into a WAV buffer in the narration format."""

    @abstractmethod
    def synthesize(
        self,
        text: str,
        voice_settings: VoiceSettings,
        voice_id: Optional[str] = None,
        model_id: Optional[str] = None,
    ) -> bytes:
        """Synthesize text; return WAV bytes."""
        pass


class FootageCatalog(ABC):
    """Searches stock footage by semantic terms."""

    @abstractmethod
    def search(self, query_terms: list[str], min_duration_hint: float = 0.0) -> list[FootageClip]:
        """Return candidate clips for the terms (unordered, may contain duplicates)."""
        pass

    @abstractmethod
    def fetch(self, clip: FootageClip, destination: Path) -> Path:
        """Make the clip available on local disk; return its path."""
        pass


class ArtifactStorage(ABC):
    """Stores finished buffers and returns a retrievable URL."""

    @abstractmethod
    def save(
        self,
        buffer: bytes,
        folder: str,
        identifier: str,
        extension: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> StoredArtifact:
        """Persist buffer under folder/identifier; return where it went."""
        pass
