"""Tests for Audio Track Builder service."""

import pytest

from scriptreel.core.errors import InvalidInput, SynthesisFailure
from scriptreel.models.schemas import (
    CONSISTENT_VOICE_SETTINGS,
    AudioFormat,
    AudioGenerationOptions,
    ScriptSection,
    SegmentKind,
)
from scriptreel.services.audio_track_builder import AudioTrackBuilder
from scriptreel.services.wav_container import SilenceSynthesizer, wav_duration


@pytest.fixture
def builder_factory(settings, logger):
    def _make(synthesizer):
        return AudioTrackBuilder(settings, logger, synthesizer)

    return _make


def test_three_sections_with_pauses(builder_factory, make_synthesizer, three_sections, three_section_durations):
    """Test 10s/20s/10s narration with 0.5s pauses gives a 41s track."""
    builder = builder_factory(make_synthesizer(three_section_durations))

    track, segments = builder.build(three_sections)

    assert track.duration_seconds == pytest.approx(41.0)
    assert wav_duration(track.buffer) == pytest.approx(41.0)
    assert len(segments) == 5
    assert track.segment_count == 5


def test_segments_follow_order_index(builder_factory, make_synthesizer, three_sections, three_section_durations):
    """Test that sections are narrated by order_index with half-index pauses between them."""
    synthesizer = make_synthesizer(three_section_durations)

    _, segments = builder_factory(synthesizer).build(three_sections)

    assert [s.section_title for s in segments] == [
        "Intro",
        "Pause after Intro",
        "Main Story",
        "Pause after Main Story",
        "Outro",
    ]
    assert [s.section_index for s in segments] == [0, 0.5, 1, 1.5, 2]
    assert [s.kind for s in segments] == [
        SegmentKind.AUDIO,
        SegmentKind.SILENCE,
        SegmentKind.AUDIO,
        SegmentKind.SILENCE,
        SegmentKind.AUDIO,
    ]
    assert [text for text, _ in synthesizer.calls] == ["intro text", "main text", "outro text"]


@pytest.mark.parametrize("count", [1, 2, 3, 6])
def test_segment_count_with_and_without_pauses(builder_factory, make_synthesizer, count):
    """Test 2n-1 segments with pauses and n without."""
    sections = [ScriptSection(order_index=i, title=f"S{i}", content=f"text {i}") for i in range(count)]

    _, with_pauses = builder_factory(make_synthesizer()).build(sections)
    _, without = builder_factory(make_synthesizer()).build(
        sections, AudioGenerationOptions(add_pause_between_sections=False)
    )

    assert len(with_pauses) == 2 * count - 1
    assert len(without) == count
    assert all(s.kind == SegmentKind.AUDIO for s in without)


def test_voice_settings_constant_across_sections(builder_factory, make_synthesizer, three_sections):
    """Test that every section is synthesized with the same voice settings."""
    synthesizer = make_synthesizer()

    builder_factory(synthesizer).build(three_sections)

    assert {voice for _, voice in synthesizer.calls} == {CONSISTENT_VOICE_SETTINGS}
    assert CONSISTENT_VOICE_SETTINGS.stability == 0.75
    assert CONSISTENT_VOICE_SETTINGS.similarity_boost == 0.85
    assert CONSISTENT_VOICE_SETTINGS.style == 0.0
    assert CONSISTENT_VOICE_SETTINGS.use_speaker_boost is True


def test_custom_pause_duration(builder_factory, make_synthesizer, three_sections, three_section_durations):
    """Test that the pause length option is honoured."""
    builder = builder_factory(make_synthesizer(three_section_durations))

    track, _ = builder.build(three_sections, AudioGenerationOptions(pause_duration=1.5))

    assert track.duration_seconds == pytest.approx(43.0)


def test_section_failure_names_section(builder_factory, make_synthesizer, three_sections, three_section_durations):
    """Test that a failing section aborts the build and names the section."""
    synthesizer = make_synthesizer(three_section_durations, fail_on={"main text"})

    with pytest.raises(SynthesisFailure) as exc_info:
        builder_factory(synthesizer).build(three_sections)

    assert exc_info.value.section_title == "Main Story"
    assert 'Failed to process section "Main Story"' in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, RuntimeError)
    # Later sections are never attempted
    assert [text for text, _ in synthesizer.calls] == ["intro text", "main text"]


def test_synthesizer_format_mismatch_is_section_failure(builder_factory, three_sections):
    """Test that a synthesizer returning another sample rate fails naming the section."""

    class WrongRateSynthesizer:
        def synthesize(self, text, voice_settings, voice_id=None, model_id=None):
            return SilenceSynthesizer(AudioFormat(sample_rate=24000)).synthesize(1.0)

    with pytest.raises(SynthesisFailure) as exc_info:
        builder_factory(WrongRateSynthesizer()).build(three_sections)

    assert exc_info.value.section_title == "Intro"
    assert "24000Hz" in str(exc_info.value)


def test_empty_sections_rejected(builder_factory, make_synthesizer):
    """Test that an empty script is invalid input."""
    with pytest.raises(InvalidInput):
        builder_factory(make_synthesizer()).build([])


def test_section_durations_credit_pauses(builder_factory, make_synthesizer, three_sections, three_section_durations):
    """Test per-section durations include the pause that follows each section."""
    _, segments = builder_factory(make_synthesizer(three_section_durations)).build(three_sections)

    durations = AudioTrackBuilder.section_durations(segments)

    assert durations == pytest.approx({0: 10.5, 1: 20.5, 2: 10.0})
