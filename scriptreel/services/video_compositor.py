"""Video Compositor - renders planned footage or caption cards against the narration track."""

import tempfile
from pathlib import Path
from typing import Any, Optional, Union

import numpy as np
from moviepy.editor import AudioFileClip, ImageClip, VideoFileClip, concatenate_videoclips
from PIL import Image

# Compatibility shim for Pillow 10.0.0+ (ANTIALIAS was removed)
if not hasattr(Image, "ANTIALIAS"):
    Image.ANTIALIAS = Image.Resampling.LANCZOS

from scriptreel.core.config import Settings
from scriptreel.core.errors import EncodingFailure, InvalidInput
from scriptreel.models.schemas import (
    AudioSegment,
    NarrationTrack,
    QualityPreset,
    QualityTier,
    RenderedArtifact,
    ScriptSection,
    SectionBudget,
    SubtitleCue,
    TimelineEntry,
    VideoSegmentPlan,
)
from scriptreel.services.footage_catalog import local_path_for
from scriptreel.services.interfaces import FootageCatalog
from scriptreel.services.subtitle_cards import REFERENCE_HEIGHT, draw_caption_card, load_caption_font, subtitle_cues

EPSILON = 1e-6

QUALITY_PRESETS: dict[QualityTier, QualityPreset] = {
    QualityTier.LOW: QualityPreset(preset="fast", crf=30, bitrate="1M", width=1280, height=720),
    QualityTier.MEDIUM: QualityPreset(preset="medium", crf=26, bitrate="2M", width=1920, height=1080),
    QualityTier.HIGH: QualityPreset(preset="slow", crf=23, bitrate="4M", width=1920, height=1080),
}


def quality_preset(quality: Union[QualityTier, str]) -> QualityPreset:
    """
    Look up encoder settings and output frame size for a quality tier.

    Raises:
        InvalidInput: If quality is not low, medium or high
    """
    try:
        return QUALITY_PRESETS[QualityTier(quality)]
    except ValueError as e:
        raise InvalidInput(f"Unknown quality tier '{quality}' (expected low, medium or high)") from e


def _section_slices(
    plans: list[VideoSegmentPlan],
    budgets: Optional[list[SectionBudget]],
    narration_duration: float,
) -> dict[int, float]:
    """Timeline seconds per section; without budgets the narration gap goes to the last section."""
    if budgets:
        return {b.section_index: b.budget_seconds for b in sorted(budgets, key=lambda b: b.section_index)}

    slices: dict[int, float] = {}
    for plan in plans:
        slices[plan.section_index] = slices.get(plan.section_index, 0.0) + plan.use_seconds
    last = max(slices)
    slices[last] += max(0.0, narration_duration - sum(slices.values()))
    return slices


def _loop_entry(source: TimelineEntry, section_index: int, duration: float) -> TimelineEntry:
    return TimelineEntry(
        clip=source.clip,
        section_index=section_index,
        source_start_seconds=source.source_start_seconds,
        source_seconds=source.source_seconds,
        duration_seconds=duration,
        looped=True,
    )


def _plan_entry(plan: VideoSegmentPlan, section_index: int, duration: float) -> TimelineEntry:
    return TimelineEntry(
        clip=plan.clip,
        section_index=section_index,
        source_start_seconds=plan.start_offset_seconds,
        source_seconds=plan.use_seconds,
        duration_seconds=duration,
    )


def build_timeline(
    plans: list[VideoSegmentPlan],
    budgets: Optional[list[SectionBudget]],
    narration_duration: float,
) -> tuple[list[TimelineEntry], float]:
    """
    Lay plans out on a timeline exactly as long as the narration.

    Sections play in order, each trimmed to its time slice. A section short
    of its slice loops its last clip for the remainder; a section with no
    footage loops the most recent earlier clip, or the next section's first
    clip when it is the opening section.

    Args:
        plans: Selected segment plans
        budgets: Per-section time slices (plans' own lengths when None)
        narration_duration: Length the video must match

    Returns:
        Tuple of (timeline entries, seconds filled by looping)

    Raises:
        InvalidInput: If narration_duration is not positive
        EncodingFailure: If there is no footage at all
    """
    if narration_duration <= 0:
        raise InvalidInput(f"Narration duration must be positive, got {narration_duration}")
    if not plans:
        raise EncodingFailure("No video segments to render")

    slices = _section_slices(plans, budgets, narration_duration)
    entries: list[TimelineEntry] = []

    for section_index, slice_seconds in slices.items():
        filled = 0.0
        for plan in (p for p in plans if p.section_index == section_index):
            length = min(plan.use_seconds, slice_seconds - filled)
            if length <= EPSILON:
                break
            entries.append(_plan_entry(plan, section_index, length))
            filled += length

        gap = slice_seconds - filled
        if gap <= EPSILON:
            continue

        if entries:
            source = entries[-1]
        else:
            later = next((p for p in plans if p.section_index > section_index), plans[0])
            source = _plan_entry(later, section_index, later.use_seconds)
        entries.append(_loop_entry(source, section_index, gap))

    total = sum(e.duration_seconds for e in entries)
    if total < narration_duration - EPSILON:
        gap = narration_duration - total
        entries.append(_loop_entry(entries[-1], entries[-1].section_index, gap))
    elif total > narration_duration + EPSILON:
        excess = total - narration_duration
        while excess > EPSILON:
            last = entries[-1]
            if last.duration_seconds <= excess + EPSILON:
                entries.pop()
                excess -= last.duration_seconds
            else:
                keep = last.duration_seconds - excess
                entries[-1] = last.model_copy(
                    update={"duration_seconds": keep, "source_seconds": min(last.source_seconds, keep)}
                )
                excess = 0.0

    looped_seconds = sum(e.duration_seconds for e in entries if e.looped)
    return entries, looped_seconds


class VideoCompositor:
    """Renders a timeline of stock footage muxed with the narration track."""

    def __init__(self, settings: Settings, logger: Any, catalog: Optional[FootageCatalog] = None):
        """
        Initialize the compositor.

        Args:
            settings: Application settings (fps, audio bitrate, subtitle styling)
            logger: Logger instance
            catalog: Catalog used to fetch remote clips (local paths work without one)
        """
        self.settings = settings
        self.logger = logger
        self.catalog = catalog

    def render(
        self,
        plans: list[VideoSegmentPlan],
        narration: NarrationTrack,
        quality: Union[QualityTier, str] = QualityTier.MEDIUM,
        budgets: Optional[list[SectionBudget]] = None,
    ) -> RenderedArtifact:
        """
        Main entrypoint: render plans and narration into one MP4.

        Args:
            plans: Segment plans in section order
            narration: Narration track (authoritative for duration)
            quality: Quality tier selecting encoder settings
            budgets: Per-section time slices used to place footage

        Returns:
            RenderedArtifact with the MP4 bytes and render metadata

        Raises:
            EncodingFailure: If any clip cannot be loaded or the encode fails
        """
        preset = quality_preset(quality)
        tier = QualityTier(quality)
        entries, looped_seconds = build_timeline(plans, budgets, narration.duration_seconds)

        self.logger.info("=" * 60)
        self.logger.info("Starting video composition")
        self.logger.info(f"Timeline: {len(entries)} entries, {narration.duration_seconds:.2f}s")
        self.logger.info(f"Quality: {tier.value} ({preset.width}x{preset.height}, preset={preset.preset}, crf={preset.crf}, bitrate={preset.bitrate})")
        if looped_seconds > 0:
            self.logger.warning(f"Looping footage to close {looped_seconds:.2f}s of gaps")
        self.logger.info("=" * 60)

        with tempfile.TemporaryDirectory(prefix="scriptreel_render_") as tmp:
            try:
                buffer = self._encode(entries, narration, preset, Path(tmp))
            except EncodingFailure:
                raise
            except Exception as e:
                raise EncodingFailure(f"Failed to render video: {e}") from e

        distinct = {plan.clip.id: plan.clip.duration_seconds for plan in plans}
        coverage_ratio = sum(distinct.values()) / narration.duration_seconds

        self.logger.info(f"Video rendered: {len(buffer)} bytes")
        return RenderedArtifact(
            buffer=buffer,
            duration_seconds=narration.duration_seconds,
            segment_count=len(entries),
            quality=tier,
            coverage_ratio=coverage_ratio,
            looped_seconds=looped_seconds,
            looping_applied=looped_seconds > EPSILON,
        )

    def _resolve_clip(self, entry: TimelineEntry, clips_dir: Path) -> Path:
        """Local path for an entry's clip, downloading through the catalog if needed."""
        if self.catalog is not None:
            return self.catalog.fetch(entry.clip, clips_dir)
        local = local_path_for(entry.clip.source_uri)
        if local is None:
            raise EncodingFailure(f"Clip {entry.clip.id} is remote but no footage catalog was given to fetch it")
        if not local.exists():
            raise EncodingFailure(f"Clip {entry.clip.id} not found at {local}")
        return local

    def _encode(self, entries: list[TimelineEntry], narration: NarrationTrack, preset: QualityPreset, work_dir: Path) -> bytes:
        """Load, trim, loop and fit each entry, mux with narration, and encode."""
        audio_path = work_dir / "narration.wav"
        audio_path.write_bytes(narration.buffer)
        clips_dir = work_dir / "clips"
        output_path = work_dir / "output.mp4"

        sources: dict[str, VideoFileClip] = {}
        audio_clip = None
        final_video = None
        try:
            segments = []
            for entry in entries:
                source = sources.get(entry.clip.id)
                if source is None:
                    path = self._resolve_clip(entry, clips_dir)
                    source = VideoFileClip(str(path), audio=False)
                    sources[entry.clip.id] = source
                segments.append(self._fit_frame(self._cut(source, entry), preset.width, preset.height))

            video = concatenate_videoclips(segments, method="chain")
            audio_clip = AudioFileClip(str(audio_path))

            duration = narration.duration_seconds
            if video.duration > duration:
                video = video.subclip(0, duration)
            elif video.duration < duration - EPSILON:
                video = video.loop(duration=duration)

            final_video = video.set_audio(audio_clip.subclip(0, min(duration, audio_clip.duration)))
            final_video = final_video.set_fps(self.settings.video_fps)

            self._write(final_video, output_path, preset, self.settings.video_fps, work_dir)
            return output_path.read_bytes()
        finally:
            # Clean up MoviePy clips to release ffmpeg readers
            for clip in [final_video, audio_clip, *sources.values()]:
                if clip is not None:
                    try:
                        clip.close()
                    except Exception as e:
                        self.logger.warning(f"Error closing clip: {e}")

    def _cut(self, source: VideoFileClip, entry: TimelineEntry) -> Any:
        """Trim a source clip to the entry's slice, looping it when the entry is longer."""
        start = entry.source_start_seconds if entry.source_start_seconds < source.duration else 0.0
        end = min(start + entry.source_seconds, source.duration)
        segment = source.subclip(start, end)
        if segment.duration < entry.duration_seconds - EPSILON:
            return segment.loop(duration=entry.duration_seconds)
        return segment.subclip(0, entry.duration_seconds)

    def _fit_frame(self, segment: Any, width: int, height: int) -> Any:
        """Scale to cover the output frame, then centre-crop to it."""
        w, h = segment.size
        if (w, h) == (width, height):
            return segment
        scale = max(width / w, height / h)
        resized = segment.resize(scale)
        return resized.crop(x_center=resized.w / 2, y_center=resized.h / 2, width=width, height=height)

    def _write(self, video: Any, output_path: Path, preset: QualityPreset, fps: int, work_dir: Path) -> None:
        """Encode a muxed clip to H.264/AAC MP4 with the tier's encoder settings."""
        self.logger.info(f"Encoding video to: {output_path}...")
        video.write_videofile(
            str(output_path),
            codec="libx264",
            audio_codec="aac",
            audio_bitrate=self.settings.audio_bitrate,
            fps=fps,
            preset=preset.preset,
            bitrate=preset.bitrate,
            threads=self.settings.render_threads,
            temp_audiofile=str(work_dir / "temp_audio.m4a"),
            ffmpeg_params=[
                "-crf", str(preset.crf),
                "-maxrate", preset.bitrate,
                "-bufsize", "2M",
                "-pix_fmt", "yuv420p",
                "-movflags", "+faststart",
            ],
            logger=None,  # Suppress MoviePy verbose logging
        )

    def render_subtitles(
        self,
        sections: list[ScriptSection],
        segments: list[AudioSegment],
        narration: NarrationTrack,
        quality: Union[QualityTier, str] = QualityTier.MEDIUM,
    ) -> RenderedArtifact:
        """
        Render the narration over caption cards instead of stock footage.

        Args:
            sections: Script sections the narration was built from
            segments: Narration and pause segments with measured durations
            narration: Narration track (authoritative for duration)
            quality: Quality tier selecting encoder settings and frame size

        Returns:
            RenderedArtifact with the MP4 bytes (no footage coverage)

        Raises:
            InvalidInput: If the narration is empty
            EncodingFailure: If the encode fails
        """
        preset = quality_preset(quality)
        tier = QualityTier(quality)
        if narration.duration_seconds <= 0:
            raise InvalidInput(f"Narration duration must be positive, got {narration.duration_seconds}")

        cues = subtitle_cues(sections, segments, self.settings.subtitle_max_sentences)

        self.logger.info("=" * 60)
        self.logger.info("Starting subtitle video composition")
        self.logger.info(f"Cues: {len(cues)}, {narration.duration_seconds:.2f}s at {self.settings.subtitle_fps} fps")
        self.logger.info(f"Quality: {tier.value} ({preset.width}x{preset.height}, preset={preset.preset}, crf={preset.crf})")
        self.logger.info("=" * 60)

        with tempfile.TemporaryDirectory(prefix="scriptreel_subtitles_") as tmp:
            try:
                buffer = self._encode_subtitles(cues, narration, preset, Path(tmp))
            except EncodingFailure:
                raise
            except Exception as e:
                raise EncodingFailure(f"Failed to render subtitle video: {e}") from e

        self.logger.info(f"Subtitle video rendered: {len(buffer)} bytes")
        return RenderedArtifact(
            buffer=buffer,
            duration_seconds=narration.duration_seconds,
            segment_count=len(cues),
            quality=tier,
            mode="subtitles",
        )

    def _encode_subtitles(
        self, cues: list[SubtitleCue], narration: NarrationTrack, preset: QualityPreset, work_dir: Path
    ) -> bytes:
        """Draw one still per cue, chain them, mux with narration, and encode."""
        audio_path = work_dir / "narration.wav"
        audio_path.write_bytes(narration.buffer)
        output_path = work_dir / "output.mp4"

        font_size = max(12, round(self.settings.subtitle_font_size * preset.height / REFERENCE_HEIGHT))
        font = load_caption_font(font_size, self.settings.subtitle_font_path, self.logger)

        audio_clip = None
        final_video = None
        try:
            cards = []
            for cue in cues:
                if cue.duration_seconds <= EPSILON:
                    continue
                image = draw_caption_card(
                    cue.text,
                    preset.width,
                    preset.height,
                    font,
                    self.settings.subtitle_background_color,
                    self.settings.subtitle_text_color,
                )
                cards.append(ImageClip(np.array(image)).set_duration(cue.duration_seconds))
            if not cards:
                raise EncodingFailure("No subtitle cues to render")

            video = concatenate_videoclips(cards, method="chain")
            audio_clip = AudioFileClip(str(audio_path))

            duration = narration.duration_seconds
            final_video = video.set_audio(audio_clip.subclip(0, min(duration, audio_clip.duration)))
            final_video = final_video.set_fps(self.settings.subtitle_fps)

            self._write(final_video, output_path, preset, self.settings.subtitle_fps, work_dir)
            return output_path.read_bytes()
        finally:
            for clip in [final_video, audio_clip]:
                if clip is not None:
                    try:
                        clip.close()
                    except Exception as e:
                        self.logger.warning(f"Error closing clip: {e}")
