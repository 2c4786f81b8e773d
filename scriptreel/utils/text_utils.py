"""Text utility functions for script processing."""

import re

DEFAULT_SECTION_SECONDS = 300.0

CLOCK_PATTERN = re.compile(r"(\d+):(\d{1,2})(?::(\d{1,2}))?")
RANGE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(?:-|\u2013|to)\s*(\d+(?:\.\d+)?)")
QUANTITY_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(hours?|hrs?|minutes?|mins?|seconds?|secs?|h|m|s)(?![a-z])")
NUMBER_PATTERN = re.compile(r"\d+(?:\.\d+)?")
SENTENCE_PATTERN = re.compile(r"[^.!?]+(?:[.!?]+|$)")

UNIT_SECONDS = {"h": 3600.0, "m": 60.0, "s": 1.0}

STOP_WORDS = frozenset(
    [
        "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
        "from", "up", "about", "into", "through", "during", "before", "after", "above",
        "below", "between", "among", "is", "are", "was", "were", "be", "been", "being",
        "have", "has", "had", "do", "does", "did", "will", "would", "could", "should",
        "may", "might", "must", "can", "this", "that", "these", "those", "a", "an",
    ]
)


def estimate_spoken_duration(text: str, words_per_minute: int = 150) -> float:
    """
    Estimate the spoken duration of text in seconds.

    Args:
        text: Text to estimate duration for.
        words_per_minute: Average speaking rate (default 150 WPM).

    Returns:
        Estimated duration in seconds.
    """
    word_count = len(text.split())
    return word_count / words_per_minute * 60


def parse_duration(duration_str: str) -> float:
    """
    Parse a free-form duration estimate into seconds.

    Handles clock times ("2:30", "1:02:03"), unit quantities that are summed
    ("1 minute 30 seconds", "1h30m"), ranges resolved to their upper bound
    ("1-2 minutes", "2 to 3 minutes") and bare numbers (seconds).
    Input without any number falls back to five minutes.

    Args:
        duration_str: Duration text from a script section.

    Returns:
        Duration in seconds.
    """
    clean = (duration_str or "").lower().strip()

    clock = CLOCK_PATTERN.search(clean)
    if clock:
        parts = [int(p) for p in clock.groups() if p is not None]
        seconds = 0
        for part in parts:
            seconds = seconds * 60 + part
        return float(seconds)

    clean = RANGE_PATTERN.sub(lambda m: m.group(2), clean)

    quantities = QUANTITY_PATTERN.findall(clean)
    if quantities:
        return sum(float(number) * UNIT_SECONDS[unit[0]] for number, unit in quantities)

    number = NUMBER_PATTERN.search(clean)
    if number:
        return float(number.group(0))
    return DEFAULT_SECTION_SECONDS


def split_caption_chunks(text: str, max_sentences: int = 2, max_words: int = 10) -> list[str]:
    """
    Split narration text into short on-screen captions.

    Groups up to max_sentences sentences per caption. Text with no sentence
    punctuation is cut into runs of max_words words instead.
    """
    sentences = [s.strip() for s in SENTENCE_PATTERN.findall(text) if s.strip()]
    if any(s[-1] in ".!?" for s in sentences):
        return [" ".join(sentences[i : i + max_sentences]) for i in range(0, len(sentences), max_sentences)]

    words = text.split()
    return [" ".join(words[i : i + max_words]) for i in range(0, len(words), max_words)]


def extract_keywords(content: str, limit: int = 10) -> list[str]:
    """
    Extract search keywords from script text.

    Drops stop words and words of three characters or fewer, keeps the first
    occurrence of each word, and orders longer words first.

    Args:
        content: Section title and body.
        limit: Maximum number of keywords.

    Returns:
        Keywords, longest first (ties keep text order).
    """
    words = re.sub(r"[^\w\s]", " ", content.lower()).split()
    unique = list(dict.fromkeys(w for w in words if len(w) > 3 and w not in STOP_WORDS))
    return sorted(unique, key=len, reverse=True)[:limit]
