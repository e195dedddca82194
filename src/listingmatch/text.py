"""Text normalization shared by every matching component."""

from __future__ import annotations

import re
import unicodedata

from bs4 import BeautifulSoup

from .config import settings

_PUNCT_RE = re.compile(r"[\W_]+")
_SPACE_RE = re.compile(r"\s+")


def normalize(text: object) -> str:
    """Normalize text: NFKC → lowercase → punctuation to spaces → truncate.

    Total function: ``None`` and non-strings give ``""``.  The result is
    capped at ``settings.normalize_max_length`` characters and
    ``normalize(normalize(t)) == normalize(t)``.
    """
    if not isinstance(text, str) or not text:
        return ""
    text = unicodedata.normalize("NFKC", text)
    text = text.lower()
    text = _PUNCT_RE.sub(" ", text)
    text = _SPACE_RE.sub(" ", text).strip()
    # Cutting can leave a trailing space behind
    return text[: settings.normalize_max_length].rstrip()


def clean_text(text: object) -> str:
    """Strip HTML tags and collapse whitespace, keeping case and punctuation."""
    if text is None:
        return ""
    if not isinstance(text, str):
        text = str(text)
    if "<" in text:
        text = BeautifulSoup(text, "lxml").get_text(" ")
    return _SPACE_RE.sub(" ", text).strip()


def words(text: str) -> list[str]:
    """Split normalized text into words."""
    return [w for w in text.split(" ") if w]
