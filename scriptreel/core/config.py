"""Application configuration using pydantic-settings."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via environment variables or a .env file.
    See .env.example for a template.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================================================
    # Application Settings
    # ========================================================================
    app_name: str = Field(default="Scriptreel", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    log_file: Optional[str] = Field(default=None, description="Optional log file path (rotated, zipped)")
    log_json: bool = Field(default=False, description="Write the log file as JSON lines instead of text")

    # ========================================================================
    # TTS (Text-to-Speech) Settings
    # ========================================================================
    tts_provider: Optional[str] = Field(
        default=None,
        description="TTS provider: elevenlabs, kokoro or stub (auto: elevenlabs when a key is set, otherwise stub)",
    )
    elevenlabs_api_key: Optional[str] = Field(default=None, description="ElevenLabs API key (stub silent narration when unset)")
    elevenlabs_voice_id: str = Field(default="21m00Tcm4TlvDq8ikWAM", description="ElevenLabs voice ID (default: Rachel)")
    elevenlabs_model_id: str = Field(default="eleven_multilingual_v2", description="ElevenLabs model ID")
    elevenlabs_rate_limit: int = Field(default=100, description="ElevenLabs API calls per minute (default: 100)")
    tts_timeout_seconds: float = Field(default=60.0, description="Per-call timeout for speech synthesis requests")
    stub_words_per_minute: int = Field(
        default=150, description="Speaking rate used to size stub narration when no TTS provider is configured"
    )
    kokoro_voice: str = Field(default="af_heart", description="Kokoro voice name for local synthesis")
    kokoro_lang_code: str = Field(default="a", description="Kokoro language code (a = American English)")

    # ========================================================================
    # Narration Container Settings
    # ========================================================================
    narration_sample_rate: int = Field(default=44100, description="Narration PCM sample rate in Hz")
    narration_channels: int = Field(default=1, description="Narration channel count (1 = mono)")
    narration_bits_per_sample: int = Field(default=16, description="Narration PCM bit depth")
    add_pause_between_sections: bool = Field(default=True, description="Insert silence between script sections")
    pause_duration_seconds: float = Field(default=0.5, description="Silence inserted between sections, in seconds")

    # ========================================================================
    # Footage Catalog Settings
    # ========================================================================
    pexels_api_key: Optional[str] = Field(default=None, description="Pexels API key (required for stock footage search)")
    pexels_api_url: str = Field(default="https://api.pexels.com", description="Pexels API base URL")
    pexels_rate_limit: int = Field(default=200, description="Pexels API calls per minute (default: 200)")
    catalog_timeout_seconds: float = Field(default=20.0, description="Per-call timeout for footage search requests")
    download_timeout_seconds: float = Field(default=120.0, description="Per-call timeout for clip downloads")
    footage_orientation: str = Field(default="landscape", description="Footage orientation: landscape, portrait or square")
    footage_size: str = Field(default="medium", description="Pexels size filter: large, medium or small")
    footage_per_page: int = Field(default=20, description="Results requested per keyword search")
    max_keywords_per_section: int = Field(default=6, description="Keywords searched per script section")
    max_clips_per_keyword: int = Field(default=4, description="Clips kept per keyword search")
    min_clip_seconds: float = Field(default=3.0, description="Shortest clip accepted from the catalog")
    max_clip_seconds: float = Field(default=45.0, description="Longest clip accepted from the catalog")
    generic_query_terms: list[str] = Field(
        default=["business", "technology", "nature", "lifestyle", "modern", "abstract", "city", "office"],
        description="Fallback search terms used when section keywords do not yield enough footage",
    )

    # ========================================================================
    # Coverage Policy
    # ========================================================================
    min_coverage_ratio: float = Field(
        default=0.6,
        description="Footage/narration ratio below which selection fails (default: 0.6)",
    )
    full_coverage_ratio: float = Field(
        default=1.0,
        description="Footage/narration ratio at or above which no looping is expected (default: 1.0)",
    )
    target_coverage_buffer: float = Field(
        default=1.15,
        description="Candidate pool target as a multiple of narration duration before generic terms are tried",
    )

    # ========================================================================
    # Video Rendering Settings
    # ========================================================================
    video_fps: int = Field(default=30, description="Video output frame rate (default: 30)")
    default_quality: str = Field(default="medium", description="Default quality tier: low, medium or high")
    audio_bitrate: str = Field(default="128k", description="AAC audio bitrate for the final render")
    render_threads: int = Field(default=4, description="ffmpeg encoder threads")

    # ========================================================================
    # Subtitle Video Settings
    # ========================================================================
    subtitle_fps: int = Field(default=6, description="Frame rate for subtitle videos")
    subtitle_font_size: int = Field(default=48, description="Subtitle font size in pixels at 1080p (scaled per tier)")
    subtitle_font_path: Optional[str] = Field(default=None, description="TrueType font for subtitles (DejaVu Sans, then Pillow default)")
    subtitle_max_sentences: int = Field(default=2, description="Sentences shown per subtitle card")
    subtitle_background_color: str = Field(default="#000000", description="Subtitle card background color")
    subtitle_text_color: str = Field(default="#FFFFFF", description="Subtitle text color")

    # ========================================================================
    # Storage Settings
    # ========================================================================
    storage_path: str = Field(default="storage/artifacts", description="Root directory for stored artifacts")
    public_base_url: Optional[str] = Field(
        default=None,
        description="Base URL that serves storage_path (e.g. https://cdn.example.com/media). file:// URIs when unset",
    )


# Global settings instance
settings = Settings()
