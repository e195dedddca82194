"""Language detection for listing names.

The statistical identifier (langdetect) gives us a tag but no usable
confidence for short product titles, so confidence is a heuristic:

  base                      → 0.8
  normalized text < 10 chars → x0.6
  normalized text < 20 chars → x0.8
  Portuguese diacritics      → x1.2 (capped at 1.0)

A listing needs translation when it is not Portuguese or the confidence is
below ``settings.language_min_confidence``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable

from langdetect import DetectorFactory, detect
from langdetect.lang_detect_exception import LangDetectException

from .config import settings
from .text import normalize

logger = logging.getLogger(__name__)

# langdetect is randomized unless seeded
DetectorFactory.seed = 0

ACCEPTED_LANGUAGES = frozenset({"por", "pt", "portuguese"})

UNKNOWN = "unknown"

_MIN_TEXT_LENGTH = 3

_PT_DIACRITICS_RE = re.compile(r"[áéíóúâêôãõç]", re.IGNORECASE)


@dataclass
class LanguageDetection:
    """Detected language of a listing name."""

    language: str
    confidence: float       # 0.0 – 1.0
    is_portuguese: bool
    needs_translation: bool
    reason: str


def _unknown(reason: str) -> LanguageDetection:
    return LanguageDetection(
        language=UNKNOWN,
        confidence=0.0,
        is_portuguese=False,
        needs_translation=True,
        reason=reason,
    )


def _estimate_confidence(text: str) -> float:
    confidence = settings.language_base_confidence
    if len(text) < 10:
        confidence *= 0.6
    elif len(text) < 20:
        confidence *= 0.8
    if _PT_DIACRITICS_RE.search(text):
        confidence = min(confidence * 1.2, 1.0)
    return confidence


def detect_language(
    text: object,
    identify: Callable[[str], str] | None = None,
) -> LanguageDetection:
    """Classify the language of ``text``.

    ``identify`` maps text to a language tag; defaults to langdetect.
    Never raises: identifier failures come back as an unknown language.
    """
    if not isinstance(text, str) or len(text.strip()) < _MIN_TEXT_LENGTH:
        return _unknown("text too short or invalid")

    cleaned = normalize(text)
    if len(cleaned) < _MIN_TEXT_LENGTH:
        return _unknown("text too short after normalization")

    identify = identify or detect
    try:
        language = identify(cleaned).lower()
    except LangDetectException as e:
        logger.debug("Language identification failed for %r: %s", cleaned[:50], e)
        return _unknown(f"detection failed: {e}")
    except Exception as e:
        logger.warning("Language identifier error: %s", e)
        return _unknown(f"detection failed: {e}")

    is_portuguese = language in ACCEPTED_LANGUAGES
    confidence = _estimate_confidence(cleaned)
    needs_translation = not is_portuguese or confidence < settings.language_min_confidence

    if is_portuguese:
        reason = "detected as Portuguese"
    else:
        reason = f"detected as {language}, translation required"

    logger.debug("Language detected: %s (confidence %.1f%%)", language, confidence * 100)

    return LanguageDetection(
        language=language,
        confidence=confidence,
        is_portuguese=is_portuguese,
        needs_translation=needs_translation,
        reason=reason,
    )
