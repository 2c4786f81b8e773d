"""Utility functions for Scriptreel."""

from scriptreel.utils.io_utils import slugify, timestamped_identifier
from scriptreel.utils.text_utils import estimate_spoken_duration, extract_keywords, parse_duration, split_caption_chunks

__all__ = [
    "slugify",
    "timestamped_identifier",
    "estimate_spoken_duration",
    "extract_keywords",
    "parse_duration",
    "split_caption_chunks",
]
