"""Utility helpers for text normalization and identifier handling."""

from __future__ import annotations

import re
from urllib.parse import unquote, urlparse

WORD_PATTERN = re.compile(r"\S+")


def title_case(value: str) -> str:
    """Upper-case the first letter of every word and lower-case the rest."""

    def _word(match: re.Match[str]) -> str:
        word = match.group(0).lower()
        for index, char in enumerate(word):
            if char.isalpha():
                return word[:index] + char.upper() + word[index + 1 :]
        return word

    return WORD_PATTERN.sub(_word, value)


def normalize_isbn(value: str | None) -> str | None:
    """Drop trailing qualifier text such as ``(pbk.)`` from an ISBN field."""
    if value is None:
        return None
    parts = value.strip().split(None, 1)
    return parts[0] if parts else None


def last_path_segment(url: str) -> str | None:
    """Return the trailing path segment of a URL."""
    path = urlparse(url.strip()).path.rstrip("/")
    if not path:
        return None
    segment = unquote(path.rsplit("/", 1)[-1])
    return segment or None
