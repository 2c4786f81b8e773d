"""Tests for Video Compositor service."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from scriptreel.core.errors import EncodingFailure, InvalidInput
from scriptreel.models.schemas import (
    AudioFormat,
    AudioSegment,
    NarrationTrack,
    QualityTier,
    ScriptSection,
    SectionBudget,
    SegmentKind,
    VideoSegmentPlan,
)
from scriptreel.services.video_compositor import VideoCompositor, build_timeline, quality_preset
from scriptreel.services.wav_container import SilenceSynthesizer


def _budgets(*seconds):
    budgets = []
    start = 0.0
    for i, budget in enumerate(seconds):
        section = ScriptSection(order_index=i, title=f"S{i}", content="text")
        budgets.append(SectionBudget(section=section, section_index=i, budget_seconds=budget, start_seconds=start))
        start += budget
    return budgets


def _plan(clip, section_index, use, offset=0.0):
    return VideoSegmentPlan(clip=clip, section_index=section_index, start_offset_seconds=offset, use_seconds=use)


def _narration(seconds):
    buffer = SilenceSynthesizer(AudioFormat()).synthesize(seconds)
    return NarrationTrack(buffer=buffer, duration_seconds=seconds, segment_count=1)


@pytest.fixture
def compositor(settings, logger):
    return VideoCompositor(settings, logger)


@pytest.mark.parametrize(
    "quality,preset,crf,bitrate,size",
    [
        ("low", "fast", 30, "1M", (1280, 720)),
        ("medium", "medium", 26, "2M", (1920, 1080)),
        ("high", "slow", 23, "4M", (1920, 1080)),
    ],
)
def test_quality_presets(quality, preset, crf, bitrate, size):
    """Test each tier maps to its encoder settings and frame size."""
    result = quality_preset(QualityTier(quality))

    assert (result.preset, result.crf, result.bitrate) == (preset, crf, bitrate)
    assert (result.width, result.height) == size
    assert quality_preset(quality) == result


def test_unknown_quality_rejected():
    """Test that an unknown tier is invalid input."""
    with pytest.raises(InvalidInput):
        quality_preset("ultra")


def test_timeline_exact_coverage_has_no_loops(make_clip):
    """Test that plans filling every slice are laid out without looping."""
    a, b = make_clip("a", 30.0), make_clip("b", 15.0)
    plans = [_plan(a, 0, 10.0), _plan(a, 1, 20.0, offset=10.0), _plan(b, 2, 10.0)]

    entries, looped = build_timeline(plans, _budgets(10.0, 20.0, 10.0), 40.0)

    assert looped == 0.0
    assert [(e.clip.id, e.section_index, e.duration_seconds) for e in entries] == [
        ("a", 0, 10.0),
        ("a", 1, 20.0),
        ("b", 2, 10.0),
    ]
    assert not any(e.looped for e in entries)


def test_timeline_loops_to_close_partial_coverage(make_clip):
    """Test 25s of plans against 40s of narration loops 15s."""
    a, b = make_clip("a", 15.0), make_clip("b", 10.0)
    plans = [_plan(a, 0, 10.0), _plan(b, 1, 10.0), _plan(a, 1, 5.0, offset=10.0)]

    entries, looped = build_timeline(plans, _budgets(10.0, 20.0, 10.0), 40.0)

    assert looped == pytest.approx(15.0)
    assert sum(e.duration_seconds for e in entries) == pytest.approx(40.0)

    section_1_loop = [e for e in entries if e.section_index == 1 and e.looped]
    assert len(section_1_loop) == 1
    assert section_1_loop[0].clip.id == "a"  # last clip of the section
    assert section_1_loop[0].duration_seconds == pytest.approx(5.0)

    section_2 = [e for e in entries if e.section_index == 2]
    assert len(section_2) == 1 and section_2[0].looped
    assert section_2[0].duration_seconds == pytest.approx(10.0)


def test_timeline_first_section_without_footage_borrows_next(make_clip):
    """Test an opening section with no plans loops the next section's first clip."""
    b = make_clip("b", 20.0)

    entries, looped = build_timeline([_plan(b, 1, 20.0)], _budgets(5.0, 20.0), 25.0)

    assert entries[0].clip.id == "b"
    assert entries[0].looped is True
    assert looped == pytest.approx(5.0)


def test_timeline_trims_to_narration(make_clip):
    """Test that footage longer than the narration is cut, never the audio extended."""
    a = make_clip("a", 30.0)

    entries, looped = build_timeline([_plan(a, 0, 30.0)], None, 12.5)

    assert sum(e.duration_seconds for e in entries) == pytest.approx(12.5)
    assert looped == 0.0


def test_timeline_without_budgets_loops_tail(make_clip):
    """Test that without budgets the narration gap is looped at the end."""
    a, b = make_clip("a", 10.0), make_clip("b", 8.0)

    entries, looped = build_timeline([_plan(a, 0, 10.0), _plan(b, 1, 8.0)], None, 24.0)

    assert looped == pytest.approx(6.0)
    assert entries[-1].clip.id == "b" and entries[-1].looped


def test_timeline_requires_footage_and_duration(make_clip):
    """Test empty plans and non-positive narration are rejected."""
    with pytest.raises(EncodingFailure):
        build_timeline([], None, 10.0)
    with pytest.raises(InvalidInput):
        build_timeline([_plan(make_clip("a", 5.0), 0, 5.0)], None, 0.0)


def test_render_missing_clip_is_encoding_failure(compositor, make_clip, tmp_path):
    """Test that an unreadable clip fails the render."""
    clip = make_clip("gone", 10.0, uri=str(tmp_path / "missing.mp4"))

    with pytest.raises(EncodingFailure, match="not found"):
        compositor.render([_plan(clip, 0, 10.0)], _narration(10.0), QualityTier.LOW)


def test_render_remote_clip_without_catalog(compositor, make_clip):
    """Test that remote clips need a catalog to fetch them."""
    clip = make_clip("remote", 10.0)

    with pytest.raises(EncodingFailure, match="no footage catalog"):
        compositor.render([_plan(clip, 0, 10.0)], _narration(10.0))


def test_render_wraps_encoder_errors(compositor, make_clip):
    """Test that unexpected encoder errors become EncodingFailure."""
    clip = make_clip("a", 10.0)
    with patch.object(VideoCompositor, "_encode", side_effect=OSError("ffmpeg exited with code 1")):
        with pytest.raises(EncodingFailure, match="ffmpeg") as exc_info:
            compositor.render([_plan(clip, 0, 10.0)], _narration(10.0))

    assert isinstance(exc_info.value.__cause__, OSError)


def test_render_metadata_reports_looping(compositor, make_clip):
    """Test artifact metadata carries duration, quality and looping."""
    a = make_clip("a", 15.0)
    plans = [_plan(a, 0, 15.0)]

    with patch.object(VideoCompositor, "_encode", return_value=b"mp4-bytes"):
        artifact = compositor.render(plans, _narration(20.0), QualityTier.HIGH, _budgets(20.0))

    assert artifact.buffer == b"mp4-bytes"
    assert artifact.duration_seconds == 20.0
    assert artifact.looping_applied is True
    assert artifact.looped_seconds == pytest.approx(5.0)
    assert artifact.coverage_ratio == pytest.approx(0.75)

    metadata = artifact.metadata()
    assert "buffer" not in metadata
    assert metadata["quality"] == "high"
    assert metadata["segment_count"] == 2


def _fake_clip(duration, size=(1280, 720)):
    clip = MagicMock()
    clip.duration = duration
    clip.size = size
    clip.w, clip.h = size
    clip.subclip.return_value = clip
    clip.loop.return_value = clip
    clip.resize.return_value = clip
    clip.crop.return_value = clip
    return clip


@patch("scriptreel.services.video_compositor.AudioFileClip")
@patch("scriptreel.services.video_compositor.concatenate_videoclips")
@patch("scriptreel.services.video_compositor.VideoFileClip")
def test_encode_passes_quality_and_output_settings(
    mock_video_file, mock_concat, mock_audio_file, compositor, make_clip, tmp_path
):
    """Test the moviepy encode call: codecs, preset, crf, bitrate, pixel format and faststart."""
    source_path = tmp_path / "a.mp4"
    source_path.write_bytes(b"fake")
    source = _fake_clip(30.0)
    mock_video_file.return_value = source

    video = _fake_clip(10.0, size=(1920, 1080))
    mock_concat.return_value = video
    final = video.set_audio.return_value
    final.set_fps.return_value = final

    def fake_write(path, **kwargs):
        Path(path).write_bytes(b"encoded")

    final.write_videofile.side_effect = fake_write
    mock_audio_file.return_value.duration = 10.0

    clip = make_clip("a", 30.0, uri=str(source_path))
    artifact = compositor.render([_plan(clip, 0, 10.0)], _narration(10.0), QualityTier.MEDIUM)

    assert artifact.buffer == b"encoded"
    mock_video_file.assert_called_once_with(str(source_path), audio=False)
    source.resize.assert_called_once_with(1.5)
    source.crop.assert_called_once()

    _, kwargs = final.write_videofile.call_args
    assert kwargs["codec"] == "libx264"
    assert kwargs["audio_codec"] == "aac"
    assert kwargs["audio_bitrate"] == "128k"
    assert kwargs["fps"] == 30
    assert kwargs["preset"] == "medium"
    assert kwargs["bitrate"] == "2M"
    params = kwargs["ffmpeg_params"]
    assert params[params.index("-crf") + 1] == "26"
    assert params[params.index("-pix_fmt") + 1] == "yuv420p"
    assert "+faststart" in params
    source.close.assert_called()


@patch("scriptreel.services.video_compositor.AudioFileClip")
@patch("scriptreel.services.video_compositor.concatenate_videoclips")
@patch("scriptreel.services.video_compositor.VideoFileClip")
def test_encode_low_tier_keeps_matching_frame(mock_video_file, mock_concat, mock_audio_file, compositor, make_clip, tmp_path):
    """Test a 1280x720 source already fits the low tier and is not rescaled."""
    source_path = tmp_path / "a.mp4"
    source_path.write_bytes(b"fake")
    source = _fake_clip(30.0, size=(1280, 720))
    mock_video_file.return_value = source

    final = mock_concat.return_value.set_audio.return_value
    final.set_fps.return_value = final
    final.write_videofile.side_effect = lambda path, **kwargs: Path(path).write_bytes(b"encoded")
    mock_concat.return_value.duration = 10.0
    mock_audio_file.return_value.duration = 10.0

    clip = make_clip("a", 30.0, uri=str(source_path))
    compositor.render([_plan(clip, 0, 10.0)], _narration(10.0), QualityTier.LOW)

    source.resize.assert_not_called()
    source.crop.assert_not_called()
    assert final.write_videofile.call_args.kwargs["preset"] == "fast"


def _subtitle_inputs():
    sections = [
        ScriptSection(order_index=1, title="End", content="Goodbye now."),
        ScriptSection(order_index=0, title="Start", content="One. Two. Three."),
    ]
    silence = SilenceSynthesizer(AudioFormat())
    segments = [
        AudioSegment(buffer=b"", section_index=0, section_title="Start", kind=SegmentKind.AUDIO, duration_seconds=4.0),
        AudioSegment(
            buffer=b"", section_index=0.5, section_title="Pause after Start", kind=SegmentKind.SILENCE, duration_seconds=1.0
        ),
        AudioSegment(buffer=b"", section_index=1, section_title="End", kind=SegmentKind.AUDIO, duration_seconds=2.0),
    ]
    narration = NarrationTrack(buffer=silence.synthesize(7.0), duration_seconds=7.0, segment_count=3)
    return sections, segments, narration


@patch("scriptreel.services.video_compositor.AudioFileClip")
@patch("scriptreel.services.video_compositor.concatenate_videoclips")
@patch("scriptreel.services.video_compositor.ImageClip")
def test_render_subtitles_encodes_caption_cards(mock_image_clip, mock_concat, mock_audio_file, compositor):
    """Test one card per cue at the tier's frame size, muxed and encoded at the subtitle frame rate."""
    sections, segments, narration = _subtitle_inputs()
    mock_image_clip.return_value.set_duration.side_effect = lambda d: ("card", d)
    final = mock_concat.return_value.set_audio.return_value
    final.set_fps.return_value = final
    final.write_videofile.side_effect = lambda path, **kwargs: Path(path).write_bytes(b"subtitled")
    mock_audio_file.return_value.duration = 7.0

    artifact = compositor.render_subtitles(sections, segments, narration, QualityTier.LOW)

    assert artifact.buffer == b"subtitled"
    assert artifact.duration_seconds == 7.0
    assert artifact.segment_count == 4
    assert artifact.coverage_ratio is None
    assert artifact.quality == QualityTier.LOW
    assert artifact.mode == "subtitles"

    frames = [call.args[0] for call in mock_image_clip.call_args_list]
    assert all(frame.shape == (720, 1280, 3) for frame in frames)
    cards = mock_concat.call_args.args[0]
    assert [d for _, d in cards] == pytest.approx([2.0, 2.0, 1.0, 2.0])

    kwargs = final.write_videofile.call_args.kwargs
    assert kwargs["fps"] == 6
    assert kwargs["preset"] == "fast"
    final.set_fps.assert_called_once_with(6)
    mock_audio_file.return_value.close.assert_called()


def test_render_subtitles_wraps_encoder_errors(compositor):
    """Test moviepy failures surface as encoding failures."""
    sections, segments, narration = _subtitle_inputs()

    with patch("scriptreel.services.video_compositor.AudioFileClip", side_effect=RuntimeError("ffmpeg missing")):
        with pytest.raises(EncodingFailure, match="ffmpeg missing"):
            compositor.render_subtitles(sections, segments, narration)
