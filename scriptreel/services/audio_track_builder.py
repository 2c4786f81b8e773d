"""Audio Track Builder - turns ordered script sections into one narration track."""

from typing import Any, Optional

from scriptreel.core.config import Settings
from scriptreel.core.errors import InvalidInput, SynthesisFailure
from scriptreel.models.schemas import (
    AudioFormat,
    AudioGenerationOptions,
    AudioSegment,
    NarrationTrack,
    ScriptSection,
    SegmentKind,
)
from scriptreel.services.interfaces import SpeechSynthesizer
from scriptreel.services.wav_container import SilenceSynthesizer, concatenate_wav, describe_format, format_of, load_wav


class AudioTrackBuilder:
    """Sequences speech and silence synthesis per section and joins the result."""

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        synthesizer: SpeechSynthesizer,
        silence: Optional[SilenceSynthesizer] = None,
    ):
        """
        Initialize the audio track builder.

        Args:
            settings: Application settings
            logger: Logger instance
            synthesizer: Speech synthesizer producing WAV buffers in the narration format
            silence: Silence synthesizer (built from the narration format when omitted)
        """
        self.settings = settings
        self.logger = logger
        self.synthesizer = synthesizer
        self.audio_format = AudioFormat(
            sample_rate=settings.narration_sample_rate,
            channels=settings.narration_channels,
            bits_per_sample=settings.narration_bits_per_sample,
        )
        self.silence = silence or SilenceSynthesizer(self.audio_format, logger)

    def default_options(self) -> AudioGenerationOptions:
        """Options derived from settings; voice and model IDs are left to the provider's defaults."""
        return AudioGenerationOptions(
            add_pause_between_sections=self.settings.add_pause_between_sections,
            pause_duration=self.settings.pause_duration_seconds,
        )

    def build(
        self,
        sections: list[ScriptSection],
        options: Optional[AudioGenerationOptions] = None,
    ) -> tuple[NarrationTrack, list[AudioSegment]]:
        """
        Build the narration track for a script.

        Sections are sorted by order_index and synthesized one at a time. The
        first failing section aborts the build; nothing partial is returned.

        Args:
            sections: Script sections in any order
            options: Voice and pause options (settings defaults when omitted)

        Returns:
            Tuple of (NarrationTrack, list of AudioSegments in playback order)

        Raises:
            InvalidInput: If sections is empty or the pause duration is negative
            SynthesisFailure: If any section fails to synthesize or join
        """
        if not sections:
            raise InvalidInput("Script has no sections to narrate")

        options = options or self.default_options()
        if options.add_pause_between_sections and options.pause_duration < 0:
            raise InvalidInput(f"Pause duration must be non-negative, got {options.pause_duration}")

        ordered = sorted(sections, key=lambda s: s.order_index)
        self.logger.info(f"Building narration for {len(ordered)} sections")

        segments: list[AudioSegment] = []
        for i, section in enumerate(ordered):
            segments.append(self._narrate_section(section, i, options))

            is_last = i == len(ordered) - 1
            if options.add_pause_between_sections and not is_last:
                segments.append(self._pause_after(section, i, options.pause_duration))

        buffer = concatenate_wav(
            [segment.buffer for segment in segments],
            self.audio_format,
            labels=[segment.section_title for segment in segments],
        )
        total_duration = sum(segment.duration_seconds or 0.0 for segment in segments)

        self.logger.info(
            f"Narration track ready: {len(segments)} segments, {total_duration:.2f}s, {len(buffer)} bytes"
        )

        track = NarrationTrack(
            buffer=buffer,
            duration_seconds=total_duration,
            audio_format=self.audio_format,
            segment_count=len(segments),
        )
        return track, segments

    def _narrate_section(self, section: ScriptSection, index: int, options: AudioGenerationOptions) -> AudioSegment:
        """Synthesize one section; any failure is re-raised naming the section."""
        self.logger.info(f"Narrating section {index + 1}: {section.title}")
        try:
            buffer = self.synthesizer.synthesize(
                section.content,
                options.voice_settings,
                voice_id=options.voice_id,
                model_id=options.model_id,
            )
            duration = self._measure(buffer)
        except Exception as e:
            raise SynthesisFailure(f'Failed to process section "{section.title}": {e}', section_title=section.title) from e

        self.logger.debug(f"Section '{section.title}' narrated: {duration:.2f}s")
        return AudioSegment(
            buffer=buffer,
            section_index=index,
            section_title=section.title,
            kind=SegmentKind.AUDIO,
            duration_seconds=duration,
        )

    def _pause_after(self, section: ScriptSection, index: int, pause_duration: float) -> AudioSegment:
        buffer = self.silence.synthesize(pause_duration)
        return AudioSegment(
            buffer=buffer,
            section_index=index + 0.5,
            section_title=f"Pause after {section.title}",
            kind=SegmentKind.SILENCE,
            duration_seconds=pause_duration,
        )

    def _measure(self, buffer: bytes) -> float:
        """Duration of a synthesized buffer, checked against the track format."""
        segment = load_wav(buffer)
        segment_format = format_of(segment)
        if segment_format != self.audio_format:
            raise ValueError(
                f"synthesizer returned {describe_format(segment_format)} audio, "
                f"narration track is {describe_format(self.audio_format)}"
            )
        return segment.duration_seconds

    @staticmethod
    def section_durations(segments: list[AudioSegment]) -> dict[int, float]:
        """
        Narration seconds per section, with each pause credited to the section it follows.

        Args:
            segments: Segments returned by build()

        Returns:
            Mapping of section position to seconds of track time
        """
        durations: dict[int, float] = {}
        for segment in segments:
            position = int(segment.section_index)
            durations[position] = durations.get(position, 0.0) + (segment.duration_seconds or 0.0)
        return durations
