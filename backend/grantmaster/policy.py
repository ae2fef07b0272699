from __future__ import annotations

import math
import re

# Approximate characters per page for an 11pt document with 0.5in margins.
CHARS_PER_PAGE = 3000

_WHITESPACE_PATTERN = re.compile(r"\s+")


def estimate_page_count(text: str | None) -> int:
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_PAGE)


def word_count(text: str | None) -> int:
    trimmed = (text or "").strip()
    if not trimmed:
        return 0
    return len(_WHITESPACE_PATTERN.split(trimmed))


def is_blank(text: str | None) -> bool:
    return not text or not text.strip()


def missing_headings(text: str | None, headings: list[str] | tuple[str, ...]) -> list[str]:
    """Return the headings that do not occur anywhere in ``text``.

    This is a case-insensitive substring check, not a structural parse: "approach"
    inside a sentence satisfies the "Approach" heading.
    """
    lowered = (text or "").lower()
    return [heading for heading in headings if heading.lower() not in lowered]


def sanitize_filename_stem(title: str, *, max_length: int = 50) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", title)[:max_length]


def underscore_whitespace(title: str) -> str:
    return _WHITESPACE_PATTERN.sub("_", title)
