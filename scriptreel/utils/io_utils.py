"""I/O utility functions for file and directory operations."""

import re
from datetime import datetime


def slugify(text: str) -> str:
    """
    Convert text to a filesystem-safe slug.

    Args:
        text: Input text to slugify.

    Returns:
        Filesystem-safe slug string.
    """
    text = text.lower()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[-\s]+", "-", text)
    text = text.strip("-")
    if len(text) > 100:
        text = text[:100].rstrip("-")
    return text


def timestamped_identifier(prefix: str) -> str:
    """Build an identifier like ``script-video-my-title-20240101_120000``."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slugify(prefix) or "untitled"
    return f"{slug}-{timestamp}"
