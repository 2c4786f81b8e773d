"""Tests for text and I/O utilities."""

import re

import pytest

from scriptreel.utils.io_utils import slugify, timestamped_identifier
from scriptreel.utils.text_utils import (
    DEFAULT_SECTION_SECONDS,
    estimate_spoken_duration,
    extract_keywords,
    parse_duration,
    split_caption_chunks,
)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("45 seconds", 45.0),
        ("2 minutes", 120.0),
        ("1 minute", 60.0),
        ("1.5 minutes", 90.0),
        ("2:30", 150.0),
        ("0:45", 45.0),
        ("90", 90.0),
        ("1:02:03", 3723.0),
        ("1-2 minutes", 120.0),
        ("2 to 3 minutes", 180.0),
        ("30\u201345 seconds", 45.0),
        ("1 minute 30 seconds", 90.0),
        ("1h30m", 5400.0),
        ("1 hour", 3600.0),
        ("5 mins", 300.0),
        ("0 seconds", 0.0),
        ("0", 0.0),
        ("about a while", DEFAULT_SECTION_SECONDS),
        ("", DEFAULT_SECTION_SECONDS),
    ],
)
def test_parse_duration(text, expected):
    """Test duration parsing across the supported formats."""
    assert parse_duration(text) == pytest.approx(expected)


def test_split_caption_chunks_groups_sentences():
    """Test captions hold at most two sentences and keep trailing text."""
    chunks = split_caption_chunks("One. Two! Three? Four. Five and more")

    assert chunks == ["One. Two!", "Three? Four.", "Five and more"]


def test_split_caption_chunks_falls_back_to_words():
    """Test unpunctuated text is cut into ten-word captions."""
    text = " ".join(f"w{i}" for i in range(23))

    chunks = split_caption_chunks(text)

    assert [len(c.split()) for c in chunks] == [10, 10, 3]
    assert split_caption_chunks("   ") == []


def test_estimate_spoken_duration():
    """Test words-per-minute duration estimate."""
    assert estimate_spoken_duration("one two three", words_per_minute=60) == pytest.approx(3.0)
    assert estimate_spoken_duration("") == 0.0


def test_extract_keywords():
    """Test stop words and short words are dropped and longer words come first."""
    keywords = extract_keywords("The history of the Roman Empire, and the empire's fall: Rome!")

    assert keywords[0] == "history"
    assert "the" not in keywords and "of" not in keywords
    assert "rome" in keywords
    assert keywords.count("empire") == 1
    assert [len(k) for k in keywords] == sorted((len(k) for k in keywords), reverse=True)


def test_extract_keywords_limit():
    """Test the keyword limit."""
    text = " ".join(f"keyword{i}" for i in range(20))

    assert len(extract_keywords(text)) == 10
    assert len(extract_keywords(text, limit=3)) == 3


def test_slugify():
    """Test filesystem-safe slugs."""
    assert slugify("Hello, World! Intro") == "hello-world-intro"
    assert slugify("  --spaced--  ") == "spaced"
    assert len(slugify("x" * 300)) == 100


def test_timestamped_identifier():
    """Test identifiers end in a sortable timestamp."""
    identifier = timestamped_identifier("Script Video: Test")

    assert re.fullmatch(r"script-video-test-\d{8}_\d{6}", identifier)
    assert timestamped_identifier("!!!").startswith("untitled-")
