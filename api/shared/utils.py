"""Common text helpers."""
import re
import unicodedata
from typing import Optional

DEFAULT_TITLE = "New Conversation"
TITLE_MAX_CODE_POINTS = 50
TRUNCATION_SUFFIX = "..."

_WHITESPACE_RUN = re.compile(r"\s+")


def sanitize_text(text: str) -> str:
    """Replace control characters (except tab) with spaces and collapse whitespace."""
    cleaned = "".join(
        " " if ch != "\t" and unicodedata.category(ch) == "Cc" else ch for ch in text
    )
    return _WHITESPACE_RUN.sub(" ", cleaned).strip()


def truncate_text(
    text: str, max_length: int, suffix: str = TRUNCATION_SUFFIX
) -> str:
    """Cut text to max_length code points and mark the cut with suffix."""
    if len(text) <= max_length:
        return text
    return text[:max_length].rstrip() + suffix


def derive_title(content: Optional[str]) -> str:
    """Build a conversation title from the content of its first message.

    Python strings index by code point, so emoji and other astral-plane
    characters count as one and are never split.
    """
    if content is None or not content.strip():
        return DEFAULT_TITLE

    sanitized = sanitize_text(content)
    if not sanitized:
        return DEFAULT_TITLE

    return truncate_text(sanitized, TITLE_MAX_CODE_POINTS)
