"""TTS (Text-to-Speech) client producing narration in the shared WAV format."""

from typing import Any, Optional

import numpy as np
import requests
from pydub import AudioSegment

from scriptreel.core.config import Settings
from scriptreel.core.errors import InvalidInput, SynthesisFailure
from scriptreel.models.schemas import AudioFormat, VoiceSettings
from scriptreel.services.interfaces import SpeechSynthesizer
from scriptreel.services.wav_container import SilenceSynthesizer, conform, export_wav, wrap_pcm
from scriptreel.utils.rate_limiter import get_elevenlabs_limiter
from scriptreel.utils.text_utils import estimate_spoken_duration

ELEVENLABS_API_URL = "https://api.elevenlabs.io/v1/text-to-speech"

# Sample rates ElevenLabs can return as raw 16-bit mono PCM
ELEVENLABS_PCM_RATES = (16000, 22050, 24000, 44100)

# Kokoro yields float32 mono at this rate
KOKORO_SAMPLE_RATE = 24000

TTS_PROVIDERS = ("elevenlabs", "kokoro", "stub")


def resolve_tts_provider(settings: Settings) -> str:
    """
    Use the configured provider, or detect one from available credentials.

    Raises:
        InvalidInput: If the configured provider is unknown or lacks its API key
    """
    if settings.tts_provider:
        provider = settings.tts_provider.strip().lower()
        if provider not in TTS_PROVIDERS:
            raise InvalidInput(
                f"Unknown TTS provider '{settings.tts_provider}' (expected one of {', '.join(TTS_PROVIDERS)})"
            )
        if provider == "elevenlabs" and not settings.elevenlabs_api_key:
            raise InvalidInput("TTS_PROVIDER=elevenlabs requires ELEVENLABS_API_KEY")
        return provider
    if settings.elevenlabs_api_key:
        return "elevenlabs"
    return "stub"


class TTSClient(SpeechSynthesizer):
    """Speech synthesizer supporting ElevenLabs, local Kokoro and an offline stub."""

    def __init__(self, settings: Settings, logger: Any, audio_format: Optional[AudioFormat] = None):
        """
        Initialize TTS client.

        Args:
            settings: Application settings
            logger: Logger instance
            audio_format: Narration container layout (defaults to the configured one)
        """
        self.settings = settings
        self.logger = logger
        self.audio_format = audio_format or AudioFormat(
            sample_rate=settings.narration_sample_rate,
            channels=settings.narration_channels,
            bits_per_sample=settings.narration_bits_per_sample,
        )
        self.provider = resolve_tts_provider(settings)
        self._kokoro_pipeline: Any = None

    def synthesize(
        self,
        text: str,
        voice_settings: VoiceSettings,
        voice_id: Optional[str] = None,
        model_id: Optional[str] = None,
    ) -> bytes:
        """
        Synthesize text into a WAV buffer.

        Args:
            text: Text to convert to speech
            voice_settings: Voice parameters (must be the same for every call in a run)
            voice_id: Optional voice ID (provider default when unset)
            model_id: Optional model ID (provider default when unset)

        Returns:
            WAV bytes in the narration format

        Raises:
            SynthesisFailure: If the provider call fails
        """
        if not text or not text.strip():
            raise SynthesisFailure("Text cannot be empty")

        self.logger.info(f"Generating speech using {self.provider} provider for {len(text)} characters...")

        if self.provider == "elevenlabs":
            buffer = self._generate_elevenlabs(text, voice_settings, voice_id, model_id)
        elif self.provider == "kokoro":
            buffer = self._generate_kokoro(text, voice_id)
        else:
            buffer = self._generate_stub(text)

        self.logger.debug(f"Speech generated: {len(buffer)} bytes")
        return buffer

    def _generate_elevenlabs(
        self,
        text: str,
        voice_settings: VoiceSettings,
        voice_id: Optional[str],
        model_id: Optional[str],
    ) -> bytes:
        """Generate speech using the ElevenLabs API as raw PCM, then wrap it."""
        fmt = self.audio_format
        if fmt.channels != 1 or fmt.bits_per_sample != 16 or fmt.sample_rate not in ELEVENLABS_PCM_RATES:
            raise SynthesisFailure(
                f"ElevenLabs PCM output is 16-bit mono at {ELEVENLABS_PCM_RATES} Hz; "
                f"narration format is {fmt.sample_rate}Hz/{fmt.bits_per_sample}-bit/{fmt.channels}ch"
            )

        voice_id = voice_id or self.settings.elevenlabs_voice_id
        url = f"{ELEVENLABS_API_URL}/{voice_id}"

        headers = {
            "Accept": "audio/pcm",
            "Content-Type": "application/json",
            "xi-api-key": self.settings.elevenlabs_api_key,
        }

        data = {
            "text": text,
            "model_id": model_id or self.settings.elevenlabs_model_id,
            "voice_settings": {
                "stability": voice_settings.stability,
                "similarity_boost": voice_settings.similarity_boost,
                "style": voice_settings.style,
                "use_speaker_boost": voice_settings.use_speaker_boost,
            },
        }

        limiter = get_elevenlabs_limiter(max_calls=self.settings.elevenlabs_rate_limit)
        limiter.wait_if_needed("text-to-speech")

        try:
            response = requests.post(
                url,
                params={"output_format": f"pcm_{fmt.sample_rate}"},
                json=data,
                headers=headers,
                timeout=self.settings.tts_timeout_seconds,
            )
        except requests.exceptions.Timeout as e:
            raise SynthesisFailure(f"ElevenLabs request timed out after {self.settings.tts_timeout_seconds}s") from e
        except requests.exceptions.RequestException as e:
            raise SynthesisFailure(f"Network error calling ElevenLabs API: {e}") from e

        if response.status_code != 200:
            raise SynthesisFailure(f"ElevenLabs API returned status {response.status_code}: {response.text[:200]}")

        pcm = response.content
        if not pcm:
            raise SynthesisFailure("ElevenLabs API returned an empty audio body")
        if len(pcm) % fmt.block_align:
            # Drop a trailing partial frame so the sample count stays whole
            pcm = pcm[: len(pcm) - len(pcm) % fmt.block_align]

        return wrap_pcm(pcm, fmt)

    def _generate_stub(self, text: str) -> bytes:
        """
        Generate stub narration (silence sized to the text).

        Keeps the pipeline runnable when no TTS provider is configured.
        Duration assumes the configured speaking rate, minimum one second.
        """
        self.logger.warning("Using stub TTS - generating silent narration placeholder")
        duration_seconds = max(1.0, estimate_spoken_duration(text, self.settings.stub_words_per_minute))
        return SilenceSynthesizer(self.audio_format).synthesize(duration_seconds)

    def _load_kokoro(self) -> Any:
        """Create the Kokoro pipeline once per client."""
        if self._kokoro_pipeline is None:
            try:
                from kokoro import KPipeline
            except ImportError as e:
                raise SynthesisFailure(
                    "Kokoro TTS is not installed. Install it with: pip install 'scriptreel[local-tts]'"
                ) from e

            self.logger.info(f"Loading Kokoro pipeline (lang_code={self.settings.kokoro_lang_code})")
            self._kokoro_pipeline = KPipeline(lang_code=self.settings.kokoro_lang_code)
        return self._kokoro_pipeline

    def _generate_kokoro(self, text: str, voice_id: Optional[str]) -> bytes:
        """
        Generate speech locally with Kokoro.

        Kokoro yields float audio per text chunk. The chunks are joined,
        quantized to 16-bit and converted to the narration format.
        """
        pipeline = self._load_kokoro()
        voice = voice_id or self.settings.kokoro_voice

        try:
            chunks = [
                np.asarray(audio, dtype=np.float32).reshape(-1)
                for _, _, audio in pipeline(text, voice=voice)
                if audio is not None
            ]
        except Exception as e:
            raise SynthesisFailure(f"Kokoro synthesis failed: {e}") from e

        if not chunks:
            raise SynthesisFailure("Kokoro returned no audio")

        samples = np.clip(np.concatenate(chunks), -1.0, 1.0)
        pcm = (samples * 32767).astype("<i2").tobytes()
        segment = AudioSegment(data=pcm, sample_width=2, frame_rate=KOKORO_SAMPLE_RATE, channels=1)
        return export_wav(conform(segment, self.audio_format))
