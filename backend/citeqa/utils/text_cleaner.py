"""Text cleaning and normalization utilities."""
import re
from typing import Optional, Tuple


def clean_text(text: str) -> str:
    """
    Clean and normalize extracted text.

    Runs of spaces and tabs collapse to one space and blank-line paragraph
    breaks are kept, since chunking and section splitting depend on them.

    Args:
        text: Raw text to clean

    Returns:
        Cleaned text with normalized whitespace
    """
    # Normalize line breaks
    text = text.replace("\r\n", "\n").replace("\r", "\n")

    # Remove special control characters but keep newlines and tabs
    text = re.sub(r"[\x00-\x08\x0b-\x0c\x0e-\x1f\x7f]", "", text)

    # Collapse horizontal whitespace
    text = re.sub(r"[^\S\n]+", " ", text)

    # Trim spaces around newlines
    text = re.sub(r" *\n *", "\n", text)

    # Remove excessive newlines (more than 2 consecutive)
    text = re.sub(r"\n{3,}", "\n\n", text)

    return text.strip()


def strip_span(text: str, start: int, end: int) -> Optional[Tuple[int, int]]:
    """
    Shrink the range [start, end) of text to its non-whitespace content.

    Returns:
        (start, end) of the stripped content, or None if the range is blank
    """
    segment = text[start:end]
    stripped = segment.strip()
    if not stripped:
        return None
    leading = len(segment) - len(segment.lstrip())
    return start + leading, start + leading + len(stripped)
