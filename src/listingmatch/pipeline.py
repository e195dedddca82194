"""Process a foreign listing name for matching against the Portuguese catalog.

Steps:
  1. Detect the language of the raw name.
  2. Translate to Portuguese when needed (simulated when no backend).
  3. Generate search terms from the Portuguese name.
  4. Optionally rank catalog candidates against the Portuguese name.

Every step degrades instead of raising, so a batch never aborts because one
listing could not be translated or embedded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Sequence

from .embedding.backend import EmbeddingBackend
from .language import UNKNOWN, LanguageDetection, detect_language
from .matcher import RankingResult, rank_candidates
from .search_terms import SearchTermSet, degraded_search_terms, generate_search_terms
from .translator.service import TranslationResult, Translator, get_translator

logger = logging.getLogger(__name__)


@dataclass
class ListingProcessing:
    """Everything derived from one listing name."""

    original_name: str
    language: LanguageDetection
    translation: TranslationResult | None
    portuguese_name: str
    search_terms: SearchTermSet
    ranking: RankingResult | None = None
    processed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: str | None = None

    @property
    def needed_translation(self) -> bool:
        return self.translation is not None

    @property
    def translation_succeeded(self) -> bool:
        if self.error:
            return False
        return self.translation is None or self.translation.error is None

    @property
    def final_term(self) -> str:
        return self.search_terms.primary


def _invalid(raw_name: object) -> ListingProcessing:
    original = raw_name if isinstance(raw_name, str) else ("" if raw_name is None else str(raw_name))
    return ListingProcessing(
        original_name=original,
        language=LanguageDetection(
            language=UNKNOWN,
            confidence=0.0,
            is_portuguese=False,
            needs_translation=True,
            reason="product name is required",
        ),
        translation=None,
        portuguese_name=original,
        search_terms=degraded_search_terms(original, "product name is required"),
        error="product name is required",
    )


async def process_listing_name(
    raw_name: object,
    candidates: Sequence[str] | None = None,
    *,
    translator: Translator | None = None,
    backend: EmbeddingBackend | None = None,
) -> ListingProcessing:
    """Detect, translate, extract search terms and (optionally) rank candidates."""
    if not isinstance(raw_name, str) or not raw_name.strip():
        logger.warning("Skipping listing with empty or invalid name: %r", raw_name)
        return _invalid(raw_name)

    logger.info("Processing listing name: %r", raw_name[:80])

    language = detect_language(raw_name)

    translation: TranslationResult | None = None
    portuguese_name = raw_name
    if language.needs_translation:
        logger.debug("Translation needed (%s)", language.reason)
        hint = language.language if language.language != UNKNOWN else None
        translation = await (translator or get_translator()).translate(raw_name, hint)
        portuguese_name = translation.translated_text
        if translation.error:
            logger.warning("Translation degraded for %r: %s", raw_name[:50], translation.error)
    else:
        logger.debug("Already Portuguese (%s)", language.reason)

    search_terms = generate_search_terms(portuguese_name)

    ranking: RankingResult | None = None
    if candidates is not None:
        ranking = await rank_candidates(portuguese_name, candidates, backend=backend)

    logger.info(
        "Processed %r → %r (search term %r)",
        raw_name[:50], portuguese_name[:50], search_terms.primary,
    )

    return ListingProcessing(
        original_name=raw_name,
        language=language,
        translation=translation,
        portuguese_name=portuguese_name,
        search_terms=search_terms,
        ranking=ranking,
    )


async def get_search_term(raw_name: object, translator: Translator | None = None) -> str:
    """Primary search term for a listing name, or the raw name when none."""
    processed = await process_listing_name(raw_name, translator=translator)
    return processed.final_term or processed.original_name
