"""Pydantic models and schemas for the media assembly pipeline."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ============================================================================
# Enums
# ============================================================================


class SegmentKind(str, Enum):
    """What an audio segment contains."""

    AUDIO = "audio"
    SILENCE = "silence"


class QualityTier(str, Enum):
    """Encoding quality tier for the final render."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ============================================================================
# Script Input Models
# ============================================================================


class ScriptSection(BaseModel):
    """One section of a script. Ordering is authoritative via order_index."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    order_index: int = Field(..., alias="orderIndex", description="Position of the section in the script")
    title: str = Field(..., description="Section title")
    content: str = Field(..., description="Narration text for the section")
    estimated_duration: str = Field(
        default="30 seconds",
        alias="estimatedDuration",
        description="Free-form duration estimate (e.g. '45 seconds', '2 minutes', '1:30')",
    )


class Script(BaseModel):
    """A titled script made of ordered sections."""

    title: str = Field(default="Untitled script", description="Script title")
    sections: list[ScriptSection] = Field(..., description="Script sections (sorted by order_index before use)")


# ============================================================================
# Audio Models
# ============================================================================


class VoiceSettings(BaseModel):
    """Voice parameters held constant across every section of a run."""

    model_config = ConfigDict(frozen=True)

    stability: float = Field(default=0.75, ge=0.0, le=1.0, description="Consistency vs. expressiveness")
    similarity_boost: float = Field(default=0.85, ge=0.0, le=1.0, description="Timbre fidelity to the reference voice")
    style: float = Field(default=0.0, ge=0.0, le=1.0, description="Stylistic variance (0 keeps sections consistent)")
    use_speaker_boost: bool = Field(default=True, description="Clarity and volume enhancement")


# Varying these between sections causes audible drift inside one video.
CONSISTENT_VOICE_SETTINGS = VoiceSettings()


class AudioFormat(BaseModel):
    """Raw PCM layout shared by every narration and silence buffer."""

    model_config = ConfigDict(frozen=True)

    sample_rate: int = Field(default=44100, gt=0, description="Samples per second")
    channels: int = Field(default=1, gt=0, description="Channel count")
    bits_per_sample: int = Field(default=16, gt=0, description="Bit depth")

    @property
    def block_align(self) -> int:
        return self.channels * self.bits_per_sample // 8

    @property
    def byte_rate(self) -> int:
        return self.sample_rate * self.block_align


class AudioGenerationOptions(BaseModel):
    """Options for building a narration track."""

    voice_id: Optional[str] = Field(default=None, description="TTS voice ID (provider default when unset)")
    model_id: Optional[str] = Field(default=None, description="TTS model ID (provider default when unset)")
    voice_settings: VoiceSettings = Field(default=CONSISTENT_VOICE_SETTINGS, description="Voice parameters for every section")
    add_pause_between_sections: bool = Field(default=True, description="Insert silence between sections")
    pause_duration: float = Field(default=0.5, ge=0.0, description="Pause length in seconds")


class AudioSegment(BaseModel):
    """A synthesized narration or silence buffer tagged with its section."""

    buffer: bytes = Field(..., repr=False, description="WAV buffer in the shared narration format")
    section_index: float = Field(..., description="Section position; pauses use the half-index between sections")
    section_title: str = Field(..., description="Section title, or 'Pause after <title>' for silence")
    kind: SegmentKind = Field(..., description="Narration audio or inserted silence")
    duration_seconds: Optional[float] = Field(default=None, ge=0.0, description="Segment duration in seconds")


class NarrationTrack(BaseModel):
    """The concatenated narration for one script."""

    buffer: bytes = Field(..., repr=False, description="Single WAV buffer containing every segment in order")
    duration_seconds: float = Field(..., ge=0.0, description="Sum of segment durations")
    audio_format: AudioFormat = Field(default_factory=AudioFormat, description="Container layout of the buffer")
    segment_count: int = Field(..., ge=0, description="Number of joined segments")


# ============================================================================
# Footage Models
# ============================================================================


class FootageClip(BaseModel):
    """A stock clip reference returned by the footage catalog."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Catalog clip identifier")
    duration_seconds: float = Field(..., description="Reported clip duration in seconds")
    source_uri: str = Field(..., description="Download URL or local file path")
    tags: list[str] = Field(default_factory=list, description="Catalog tags")
    width: Optional[int] = Field(default=None, description="Selected file width in pixels")
    height: Optional[int] = Field(default=None, description="Selected file height in pixels")
    fps: Optional[float] = Field(default=None, description="Selected file frame rate")
    quality: Optional[str] = Field(default=None, description="Catalog quality label (hd, sd, ...)")


class SectionBudget(BaseModel):
    """A script section with the footage time it should receive."""

    section: ScriptSection = Field(..., description="The section being covered")
    section_index: int = Field(..., ge=0, description="Position after sorting by order_index")
    budget_seconds: float = Field(..., ge=0.0, description="Footage time allotted to the section")
    start_seconds: float = Field(default=0.0, ge=0.0, description="Where the section starts on the timeline")


class VideoSegmentPlan(BaseModel):
    """An instruction to use a time slice of a clip for one section."""

    clip: FootageClip = Field(..., description="Clip to cut from")
    section_index: int = Field(..., ge=0, description="Section the slice belongs to")
    start_offset_seconds: float = Field(default=0.0, ge=0.0, description="Offset into the clip")
    use_seconds: float = Field(..., gt=0.0, description="Length of the slice")

    @model_validator(mode="after")
    def _slice_within_clip(self) -> "VideoSegmentPlan":
        if self.start_offset_seconds + self.use_seconds > self.clip.duration_seconds + 1e-6:
            raise ValueError(
                f"Slice {self.start_offset_seconds:.2f}+{self.use_seconds:.2f}s exceeds "
                f"clip {self.clip.id} duration {self.clip.duration_seconds:.2f}s"
            )
        return self


class TimelineEntry(BaseModel):
    """One span of the rendered video track."""

    clip: FootageClip = Field(..., description="Clip played in this span")
    section_index: int = Field(..., ge=0, description="Section the span belongs to")
    source_start_seconds: float = Field(..., ge=0.0, description="Offset of the source slice in the clip")
    source_seconds: float = Field(..., gt=0.0, description="Length of the source slice")
    duration_seconds: float = Field(..., gt=0.0, description="Timeline length (longer than source_seconds when looped)")
    looped: bool = Field(default=False, description="True when the source slice repeats to fill a gap")


class SubtitleCue(BaseModel):
    """One caption card on the subtitle timeline (empty text during pauses)."""

    index: int = Field(..., ge=0, description="Position on the timeline")
    text: str = Field(default="", description="Caption text")
    section_index: int = Field(..., ge=0, description="Section the caption belongs to")
    section_title: str = Field(..., description="Section or pause title")
    start_seconds: float = Field(..., ge=0.0, description="Caption start on the narration timeline")
    end_seconds: float = Field(..., ge=0.0, description="Caption end on the narration timeline")

    @property
    def duration_seconds(self) -> float:
        return self.end_seconds - self.start_seconds


class QualityPreset(BaseModel):
    """Encoder settings for one quality tier."""

    model_config = ConfigDict(frozen=True)

    preset: str = Field(..., description="x264 speed preset")
    crf: int = Field(..., description="x264 constant rate factor (lower is better)")
    bitrate: str = Field(..., description="Target and maximum video bitrate")
    width: int = Field(..., gt=0, description="Output frame width in pixels")
    height: int = Field(..., gt=0, description="Output frame height in pixels")


class CoverageReport(BaseModel):
    """How well a set of plans covers the narration."""

    available_seconds: float = Field(..., description="Total duration of all selected clips")
    planned_seconds: float = Field(..., description="Sum of planned use_seconds")
    required_seconds: float = Field(..., description="Narration duration")
    coverage_ratio: float = Field(..., description="available_seconds / required_seconds")
    needs_looping: bool = Field(..., description="True when planned footage is short of the narration")


# ============================================================================
# Output Models
# ============================================================================


class RenderedArtifact(BaseModel):
    """The finished audio+video buffer and its render metadata."""

    buffer: bytes = Field(..., repr=False, description="Encoded MP4 bytes")
    duration_seconds: float = Field(..., description="Final duration (equals narration duration)")
    segment_count: int = Field(..., description="Number of timeline entries rendered")
    quality: QualityTier = Field(..., description="Quality tier used for encoding")
    mode: str = Field(default="footage", description="footage (stock clips) or subtitles (caption cards)")
    coverage_ratio: Optional[float] = Field(default=None, description="Selected footage / narration duration")
    looped_seconds: float = Field(default=0.0, description="Timeline seconds filled by looping a clip")
    looping_applied: bool = Field(default=False, description="True when any gap was closed by looping")

    def metadata(self) -> dict[str, Any]:
        """Render metadata without the buffer."""
        return self.model_dump(exclude={"buffer"}, mode="json")


class StoredArtifact(BaseModel):
    """Where the storage collaborator put an artifact."""

    url: str = Field(..., description="Retrievable URL")
    path: str = Field(..., description="Local filesystem path")
    size_bytes: int = Field(..., description="Stored size in bytes")
    folder: str = Field(..., description="Logical folder")
    identifier: str = Field(..., description="Logical identifier (file stem)")


# ============================================================================
# API Request/Response Models
# ============================================================================


class GenerateAudioRequest(BaseModel):
    """Request body for narration-only generation."""

    script: Script = Field(..., description="Script to narrate")
    add_pause_between_sections: bool = Field(default=True, description="Insert silence between sections")
    pause_duration: float = Field(default=0.5, ge=0.0, description="Pause length in seconds")


class GenerateAudioResponse(BaseModel):
    """Response for narration-only generation."""

    audio_url: str = Field(..., description="URL of the stored narration WAV")
    duration_seconds: float = Field(..., description="Narration duration")
    total_sections: int = Field(..., description="Sections narrated")
    audio_segments: int = Field(..., description="Segments joined (narration + pauses)")


class GenerateVideoRequest(BaseModel):
    """Request body for the full pipeline."""

    script: Script = Field(..., description="Script to render")
    quality: QualityTier = Field(default=QualityTier.MEDIUM, description="Encoding quality tier")


class GenerateVideoResponse(BaseModel):
    """Response for the full pipeline."""

    video_url: str = Field(..., description="URL of the stored MP4")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Render metadata")
