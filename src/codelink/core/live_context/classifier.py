"""Inline vs. oversized delivery decision."""
from enum import Enum

INLINE_MAX_CHARS = 10 * 1024
INLINE_MAX_LINES = 250


class Delivery(str, Enum):
    INLINE = "inline"
    OVERSIZED = "oversized"


def line_count(content: str) -> int:
    return content.count("\n") + 1


def classify(
    content: str,
    max_chars: int = INLINE_MAX_CHARS,
    max_lines: int = INLINE_MAX_LINES,
) -> Delivery:
    """Oversized when either limit is exceeded; each is sufficient on its own.

    Size is measured in characters of the decoded text, not encoded bytes.
    """
    if len(content) > max_chars or line_count(content) > max_lines:
        return Delivery.OVERSIZED
    return Delivery.INLINE
