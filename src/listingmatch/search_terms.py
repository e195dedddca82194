"""Search-term generation: reduce a product name to ranked search phrases.

Pipeline: normalize → slugify (ASCII folding) → split on "-" → filter
(short words, blacklist, bare 1-2 digit numbers) → truncate to 6/4/3 words.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from slugify import slugify

from .config import settings
from .text import clean_text, normalize

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Blacklist, stored ASCII-folded because it is matched against slug words
# ("grátis" → "gratis", "promoção" → "promocao").
# ---------------------------------------------------------------------------

SEARCH_TERM_BLACKLIST = frozenset({
    # Listing filler
    "frete", "gratis", "novo", "nova", "oferta", "produto", "original",
    "promocao", "envio", "loja",
    # Portuguese connectors
    "para", "de", "com", "sem", "da", "do", "das", "dos",
    "em", "na", "no", "nas", "nos", "por", "pelo", "pela", "pelos", "pelas",
    # Years
    "2023", "2024", "2025", "2026",
    # Marketing
    "hot", "sale", "deal", "best", "top", "super", "mega", "ultra",
    "premium", "deluxe", "professional", "pro", "plus", "max",
    "new", "free", "shipping",
    # Generic e-commerce nouns
    "kit", "set", "pack", "peca", "pecas", "unidade", "unidades",
    "modelo", "versao", "tipo", "style", "design", "item", "product", "store",
    # English connectors
    "and", "or", "with", "without", "for", "to", "from", "in", "on", "at",
})

_DIGITS_RE = re.compile(r"^\d+$")
_MIN_NUMBER_LENGTH = 3  # keep "128", drop "24"; "5g"/"4k" are not pure digits


@dataclass
class SearchTermSet:
    """Ranked search phrases derived from one product name."""

    original_text: str
    slug: str
    words: list[str] = field(default_factory=list)
    primary: str = ""
    reduced: str = ""
    essential: str = ""
    words_before: int = 0
    words_after: int = 0
    error: str | None = None

    @property
    def words_removed(self) -> int:
        return max(0, self.words_before - self.words_after)

    @property
    def variants(self) -> list[str]:
        """Non-empty variants, most specific first, without duplicates."""
        seen: list[str] = []
        for term in (self.primary, self.reduced, self.essential):
            if term and term not in seen:
                seen.append(term)
        return seen


def _keep_word(word: str) -> bool:
    if len(word) < settings.search_min_word_length:
        return False
    if word in SEARCH_TERM_BLACKLIST:
        return False
    if _DIGITS_RE.match(word) and len(word) < _MIN_NUMBER_LENGTH:
        return False
    return True


def degraded_search_terms(text: object, error: str) -> SearchTermSet:
    """Original text as every variant, with ``error`` set."""
    original = text if isinstance(text, str) else ("" if text is None else str(text))
    return SearchTermSet(
        original_text=original,
        slug="",
        primary=original,
        reduced=original,
        essential=original,
        error=error,
    )


def generate_search_terms(name: object) -> SearchTermSet:
    """Generate primary/reduced/essential search phrases for ``name``.

    Never raises: invalid input or an internal error returns the original
    text as every variant with ``error`` set.
    """
    if not isinstance(name, str) or not name.strip():
        return degraded_search_terms(name, "invalid product name")

    try:
        cleaned = clean_text(name)
        slug = slugify(normalize(name), separator="-", lowercase=True)
        words = [w for w in slug.split("-") if _keep_word(w)]
        words = words[: settings.search_max_words]

        result = SearchTermSet(
            original_text=name,
            slug=slug,
            words=words,
            primary=" ".join(words),
            reduced=" ".join(words[: settings.search_reduced_words]),
            essential=" ".join(words[: settings.search_essential_words]),
            words_before=len(cleaned.split()),
            words_after=len(words),
        )
    except Exception as e:
        logger.warning("Search-term generation failed for %r: %s", name[:50], e)
        return degraded_search_terms(name, str(e) or type(e).__name__)

    logger.debug(
        "Search terms for %r: %r (%d → %d words)",
        name[:50], result.primary, result.words_before, result.words_after,
    )
    return result


def term_coverage(reference: str, candidate: str) -> float:
    """Fraction of the reference's search words also present in the candidate's.

    Returns 0.0 when the reference yields no search words.
    """
    return word_coverage(generate_search_terms(reference).words, candidate)


def word_coverage(reference_words: list[str], candidate: str) -> float:
    """Like ``term_coverage`` with the reference already reduced to search words."""
    if not reference_words:
        return 0.0
    cand_words = set(generate_search_terms(candidate).words)
    shared = [w for w in reference_words if w in cand_words]
    return len(shared) / len(reference_words)
