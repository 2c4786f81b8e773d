"""Subtitle cards - caption timing and still frames for narration-only videos."""

from typing import Any, Optional

from PIL import Image, ImageDraw, ImageFont

from scriptreel.core.errors import InvalidInput
from scriptreel.models.schemas import AudioSegment, ScriptSection, SegmentKind, SubtitleCue
from scriptreel.utils.text_utils import split_caption_chunks

# Font sizes in settings are given for a 1080-line frame
REFERENCE_HEIGHT = 1080

FALLBACK_FONTS = ("DejaVuSans-Bold.ttf", "DejaVuSans.ttf", "Arial.ttf")

# Share of the frame width a caption line may use
TEXT_WIDTH_RATIO = 0.85
LINE_SPACING = 1.3


def subtitle_cues(
    sections: list[ScriptSection],
    segments: list[AudioSegment],
    max_sentences: int = 2,
) -> list[SubtitleCue]:
    """
    Time captions against the measured narration segments.

    Each narrated section's span is shared equally among its captions. Pauses
    get an empty cue, so cue ends line up with the narration track.

    Args:
        sections: Script sections (any order)
        segments: Narration and pause segments in playback order, with durations
        max_sentences: Sentences per caption

    Returns:
        Cues covering the whole narration, in order

    Raises:
        InvalidInput: If a segment has no measured duration
    """
    ordered = sorted(sections, key=lambda s: s.order_index)
    cues: list[SubtitleCue] = []
    cursor = 0.0

    for segment in segments:
        if segment.duration_seconds is None:
            raise InvalidInput(f"Segment '{segment.section_title}' has no measured duration")
        duration = segment.duration_seconds
        section_index = int(segment.section_index)

        if segment.kind == SegmentKind.AUDIO:
            chunks = split_caption_chunks(ordered[section_index].content, max_sentences) or [""]
            step = duration / len(chunks)
            for i, chunk in enumerate(chunks):
                start = cursor + i * step
                end = cursor + duration if i == len(chunks) - 1 else start + step
                cues.append(
                    SubtitleCue(
                        index=len(cues),
                        text=chunk,
                        section_index=section_index,
                        section_title=segment.section_title,
                        start_seconds=start,
                        end_seconds=end,
                    )
                )
        elif duration > 0:
            cues.append(
                SubtitleCue(
                    index=len(cues),
                    section_index=section_index,
                    section_title=segment.section_title,
                    start_seconds=cursor,
                    end_seconds=cursor + duration,
                )
            )
        cursor += duration

    return cues


def load_caption_font(size: int, font_path: Optional[str] = None, logger: Any = None) -> Any:
    """Load the configured TrueType font, then common fallbacks, then Pillow's bitmap default."""
    candidates = ([font_path] if font_path else []) + list(FALLBACK_FONTS)
    for candidate in candidates:
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            if logger and candidate == font_path:
                logger.warning(f"Could not load subtitle font {font_path}, trying fallbacks")
    return ImageFont.load_default()


def wrap_caption(draw: ImageDraw.ImageDraw, text: str, font: Any, max_width: int) -> list[str]:
    """Greedy word wrap to a pixel width; a single long word keeps its own line."""
    lines: list[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}".strip()
        if current and draw.textlength(candidate, font=font) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


def draw_caption_card(
    text: str,
    width: int,
    height: int,
    font: Any,
    background_color: str = "#000000",
    text_color: str = "#FFFFFF",
) -> Image.Image:
    """Render caption text centred on a solid frame."""
    image = Image.new("RGB", (width, height), color=background_color)
    if not text.strip():
        return image

    draw = ImageDraw.Draw(image)
    lines = wrap_caption(draw, text, font, int(width * TEXT_WIDTH_RATIO))

    bbox = draw.textbbox((0, 0), "Ag", font=font)
    line_height = int((bbox[3] - bbox[1]) * LINE_SPACING)
    y_pos = (height - line_height * len(lines)) // 2

    for line in lines:
        bbox = draw.textbbox((0, 0), line, font=font)
        x_pos = (width - (bbox[2] - bbox[0])) // 2
        draw.text((x_pos, y_pos), line, fill=text_color, font=font)
        y_pos += line_height

    return image
