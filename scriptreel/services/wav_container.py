"""WAV helpers - the shared PCM layout every narration buffer uses.

Narration and silence are pydub ``AudioSegment`` objects exported as WAV
buffers with identical frame rate, channel count and sample width, so the
track can be joined without any resampling step.
"""

from io import BytesIO
from typing import Any, Iterable, Optional

from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

from scriptreel.core.errors import AudioFormatMismatch
from scriptreel.models.schemas import AudioFormat


def format_of(segment: AudioSegment) -> AudioFormat:
    """The AudioFormat a pydub segment is stored in."""
    return AudioFormat(
        sample_rate=segment.frame_rate,
        channels=segment.channels,
        bits_per_sample=segment.sample_width * 8,
    )


def conform(segment: AudioSegment, audio_format: AudioFormat) -> AudioSegment:
    """Resample, remix and requantize a segment into audio_format."""
    return (
        segment.set_frame_rate(audio_format.sample_rate)
        .set_channels(audio_format.channels)
        .set_sample_width(audio_format.bits_per_sample // 8)
    )


def load_wav(buffer: bytes) -> AudioSegment:
    """
    Decode a WAV buffer.

    Raises:
        ValueError: If the buffer is not a PCM WAV file
    """
    try:
        return AudioSegment(data=buffer)
    except CouldntDecodeError as e:
        raise ValueError(f"Buffer is not a PCM WAV file: {e}") from e


def export_wav(segment: AudioSegment) -> bytes:
    """Encode a segment as a WAV buffer."""
    out = BytesIO()
    segment.export(out, format="wav")
    return out.getvalue()


def wrap_pcm(pcm: bytes, audio_format: AudioFormat) -> bytes:
    """Wrap raw little-endian PCM samples in a WAV container."""
    segment = AudioSegment(
        data=pcm,
        sample_width=audio_format.bits_per_sample // 8,
        frame_rate=audio_format.sample_rate,
        channels=audio_format.channels,
    )
    return export_wav(segment)


def parse_wav(buffer: bytes) -> tuple[AudioFormat, bytes]:
    """
    Parse a WAV buffer into its format and PCM payload.

    Raises:
        ValueError: If the buffer is not a PCM WAV file
    """
    segment = load_wav(buffer)
    return format_of(segment), segment.raw_data


def wav_duration(buffer: bytes) -> float:
    """Duration of a WAV buffer, from its frame count."""
    return load_wav(buffer).duration_seconds


def describe_format(audio_format: AudioFormat) -> str:
    channels = "mono" if audio_format.channels == 1 else f"{audio_format.channels}ch"
    return f"{audio_format.sample_rate}Hz/{audio_format.bits_per_sample}-bit/{channels}"


def concatenate_wav(buffers: Iterable[bytes], audio_format: AudioFormat, labels: Optional[list[str]] = None) -> bytes:
    """
    Join WAV buffers into one track.

    Args:
        buffers: WAV buffers in playback order
        audio_format: Layout every buffer must share
        labels: Optional names for error messages, parallel to buffers

    Returns:
        One WAV buffer holding every segment back to back

    Raises:
        AudioFormatMismatch: If any buffer cannot be decoded or its layout differs from audio_format
    """
    track: Optional[AudioSegment] = None
    for idx, buffer in enumerate(buffers):
        label = labels[idx] if labels and idx < len(labels) else f"segment {idx}"
        try:
            segment = load_wav(buffer)
        except ValueError as e:
            raise AudioFormatMismatch(f"Cannot join {label}: {e}", section_title=label) from e

        segment_format = format_of(segment)
        if segment_format != audio_format:
            raise AudioFormatMismatch(
                f"Cannot join {label}: format {describe_format(segment_format)} "
                f"differs from track format {describe_format(audio_format)}",
                section_title=label,
            )
        # No crossfade: segments are appended sample for sample
        track = segment if track is None else track + segment

    if track is None:
        return SilenceSynthesizer(audio_format).synthesize(0.0)
    return export_wav(track)


class SilenceSynthesizer:
    """Produces silent WAV buffers in the narration container format."""

    def __init__(self, audio_format: AudioFormat, logger: Any = None):
        """
        Initialize silence synthesizer.

        Args:
            audio_format: PCM layout shared with the narration encoder
            logger: Optional logger instance
        """
        self.audio_format = audio_format
        self.logger = logger

    def segment(self, duration_seconds: float) -> AudioSegment:
        """
        Silence as a pydub segment.

        The frame count is rounded to the nearest sample, so joining N pauses
        of d seconds stays within half a sample of N*d per pause.
        """
        if duration_seconds < 0:
            raise ValueError(f"Silence duration must be non-negative, got {duration_seconds}")
        frames = round(self.audio_format.sample_rate * duration_seconds)
        if self.logger:
            self.logger.debug(f"Synthesizing {duration_seconds:.3f}s of silence ({frames} samples)")
        # AudioSegment.silent() works in whole milliseconds and floors the frame count
        return AudioSegment(
            data=bytes(frames * self.audio_format.block_align),
            sample_width=self.audio_format.bits_per_sample // 8,
            frame_rate=self.audio_format.sample_rate,
            channels=self.audio_format.channels,
        )

    def synthesize(self, duration_seconds: float) -> bytes:
        """Create duration_seconds of silence as a WAV buffer."""
        return export_wav(self.segment(duration_seconds))
