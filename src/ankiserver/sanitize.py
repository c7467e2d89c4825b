"""Strip card HTML down to plain text for text-only consumers."""

import re
from enum import Enum

_STYLE_BLOCK = re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE)
_BLOCK_TAG = re.compile(r"<(?:div|p|br|li|tr|h[1-6])\b[^>]*>", re.IGNORECASE)
_ANY_TAG = re.compile(r"<[^>]+>")
_PLAY_TAG = re.compile(r"\[(?:anki:)?play:[^\]]+\]")
_WHITESPACE = re.compile(r"\s+")

_ENTITIES = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
)


class SanitizeMode(Enum):
    """How line structure is treated.

    LINES keeps block-level breaks as newlines (one trimmed line per block).
    COLLAPSE folds everything onto a single line.
    """

    LINES = "lines"
    COLLAPSE = "collapse"


def sanitize(html: str | None, mode: SanitizeMode = SanitizeMode.LINES) -> str:
    """Convert rendered card HTML to plain text.

    Args:
        html: Rendered question/answer HTML (None is treated as empty).
        mode: Whether to keep block structure as newlines.

    Returns:
        Plain text; never raises.
    """
    if not html:
        return ""

    text = _STYLE_BLOCK.sub("", html)
    if mode is SanitizeMode.LINES:
        text = _BLOCK_TAG.sub("\n", text)
    text = _ANY_TAG.sub(" ", text)
    text = _PLAY_TAG.sub("", text)
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)

    if mode is SanitizeMode.COLLAPSE:
        return _WHITESPACE.sub(" ", text).strip()

    lines = (line.strip() for line in text.split("\n"))
    return "\n".join(line for line in lines if line)


def preview(html: str | None, width: int = 60) -> str:
    """Single-line preview, truncated to `width` characters."""
    text = sanitize(html, SanitizeMode.COLLAPSE)
    return text[:width] + "..." if len(text) > width else text
