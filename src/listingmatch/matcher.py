"""Semantic product matching between a foreign listing and catalog listings.

Two tiers:

  1. Semantic: multilingual sentence-embedding model, per-token vectors
     mean-pooled into one vector per name, cosine similarity.
     Compatible when score >= 70.
  2. Lexical fallback, used whenever the model cannot be loaded or run.
     Cross-language synonyms are canonicalized ("sem fio" = "wireless",
     "fone de ouvido" = "earbuds" = earphone), then Jaccard similarity of
     words longer than 2 characters.  Compatible when score >= 60.

A comparison never fails because the ML backend is missing; the worst case
is a lexical score.
"""

from __future__ import annotations

import enum
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from .config import settings
from .embedding import EmbeddingUnavailableError
from .embedding.backend import EmbeddingBackend, ModelState, get_embedding_backend
from .search_terms import generate_search_terms, word_coverage
from .text import normalize, words

logger = logging.getLogger(__name__)


class MatchMethod(str, enum.Enum):
    SEMANTIC = "semantic"
    LEXICAL_FALLBACK = "lexical_fallback"


def threshold_for(method: MatchMethod) -> int:
    if method is MatchMethod.SEMANTIC:
        return settings.semantic_threshold
    return settings.lexical_threshold


@dataclass(frozen=True)
class SimilarityResult:
    """Similarity of two product names."""

    score: int              # 0 – 100
    method: MatchMethod
    rationale: str
    similarity: float = 0.0  # raw cosine / Jaccard value

    @property
    def is_compatible(self) -> bool:
        return self.score >= threshold_for(self.method)


# ---------------------------------------------------------------------------
# Cross-language synonyms (normalized phrase → canonical token)
# ---------------------------------------------------------------------------

_CROSS_LANGUAGE_SYNONYMS: dict[str, str] = {
    # Audio
    "fone de ouvido": "earphone", "fones de ouvido": "earphone",
    "earbuds": "earphone", "earbud": "earphone",
    "earphones": "earphone", "earphone": "earphone",
    "headphones": "headphone", "headphone": "headphone", "headset": "headphone",
    "caixa de som": "speaker", "speakers": "speaker", "speaker": "speaker",
    # Connectivity
    "sem fio": "wireless", "true wireless": "wireless", "tws": "wireless",
    "wireless": "wireless",
    "chip duplo": "dualsim", "dual sim": "dualsim",
    # Power / cables
    "carregador": "charger", "charger": "charger",
    "carregamento rápido": "fastcharge", "carregamento rapido": "fastcharge",
    "fast charging": "fastcharge", "fast charge": "fastcharge",
    "cabo": "cable", "cable": "cable",
    "controle remoto": "remote", "remote control": "remote",
    # Devices
    "celular": "smartphone", "smartphone": "smartphone",
    "relógio inteligente": "smartwatch", "relogio inteligente": "smartwatch",
    "smart watch": "smartwatch", "smartwatch": "smartwatch",
    "relógio": "watch", "relogio": "watch", "watch": "watch",
    "teclado": "keyboard", "keyboard": "keyboard",
    "capinha": "case", "capa": "case", "case": "case",
    "fita led": "ledstrip", "led strip": "ledstrip",
    # Kitchen
    "faca": "knife", "facas": "knife", "knife": "knife", "knives": "knife",
    "aço inoxidável": "stainless", "aco inoxidavel": "stainless",
    "stainless steel": "stainless", "stainless": "stainless",
    # Apparel
    "jaqueta": "jacket", "jacket": "jacket",
    "impermeável": "waterproof", "impermeavel": "waterproof", "waterproof": "waterproof",
    "térmica": "thermal", "térmico": "thermal", "termica": "thermal",
    "termico": "thermal", "thermal": "thermal",
    "inverno": "winter", "winter": "winter",
}

# Longest phrase first so "relógio inteligente" wins over "relógio"
_SYNONYM_RE = re.compile(
    r"\b(?:"
    + "|".join(re.escape(p) for p in sorted(_CROSS_LANGUAGE_SYNONYMS, key=len, reverse=True))
    + r")\b"
)

_MIN_LEXICAL_WORD_LENGTH = 3  # words longer than 2 characters


def canonicalize(text: str) -> str:
    """Replace known cross-language product phrases in normalized text."""
    return _SYNONYM_RE.sub(lambda m: _CROSS_LANGUAGE_SYNONYMS[m.group(0)], text)


def _word_set(text: str) -> set[str]:
    return {w for w in words(canonicalize(text)) if len(w) >= _MIN_LEXICAL_WORD_LENGTH}


def _to_score(similarity: float) -> int:
    """Percentage rounded half-up, clamped to 0-100."""
    return max(0, min(100, math.floor(similarity * 100 + 0.5)))


# ---------------------------------------------------------------------------
# Vector math
# ---------------------------------------------------------------------------


def mean_pool(token_embeddings: np.ndarray) -> np.ndarray:
    """Average per-token vectors into one vector: pooled[j] = mean_i emb[i][j]."""
    matrix = np.asarray(token_embeddings, dtype=np.float64)
    if matrix.ndim == 1:
        return matrix
    return matrix.mean(axis=0)


def cosine_similarity(vec_a: np.ndarray, vec_b: np.ndarray) -> float:
    """Cosine similarity; 0.0 for zero-norm or mismatched vectors."""
    a = np.asarray(vec_a, dtype=np.float64).ravel()
    b = np.asarray(vec_b, dtype=np.float64).ravel()
    if a.shape != b.shape or a.size == 0:
        return 0.0
    norm_a = float(np.linalg.norm(a))
    norm_b = float(np.linalg.norm(b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------


def lexical_similarity(name_a: object, name_b: object) -> SimilarityResult:
    """Jaccard similarity of canonicalized word sets."""
    text_a = normalize(name_a)
    text_b = normalize(name_b)
    set_a = _word_set(text_a)
    set_b = _word_set(text_b)

    union = set_a | set_b
    if union:
        jaccard = len(set_a & set_b) / len(union)
    elif text_a and text_a == text_b:
        # Only short words on both sides, but the names are identical
        jaccard = 1.0
    else:
        jaccard = 0.0

    score = _to_score(jaccard)
    return SimilarityResult(
        score=score,
        method=MatchMethod.LEXICAL_FALLBACK,
        rationale=f"lexical overlap (fallback): {score}%",
        similarity=jaccard,
    )


def _empty_result(backend: EmbeddingBackend) -> SimilarityResult:
    method = (
        MatchMethod.LEXICAL_FALLBACK
        if backend.state is ModelState.UNAVAILABLE
        else MatchMethod.SEMANTIC
    )
    return SimilarityResult(0, method, "empty after normalization", 0.0)


def _fallback(name_a: object, name_b: object, error: Exception) -> SimilarityResult:
    if not isinstance(error, EmbeddingUnavailableError):
        logger.warning("Semantic comparison failed, using lexical fallback: %s", error)
    return lexical_similarity(name_a, name_b)


async def _pool(backend: EmbeddingBackend, text: str) -> np.ndarray:
    return mean_pool(await backend.embed_tokens(text))


async def _compare_pooled(
    pooled_a: np.ndarray,
    name_a: object,
    text_b: str,
    name_b: object,
    backend: EmbeddingBackend,
) -> SimilarityResult:
    try:
        pooled_b = await _pool(backend, text_b)
    except Exception as e:
        return _fallback(name_a, name_b, e)
    return _semantic_result(cosine_similarity(pooled_a, pooled_b))


async def compare_semantic(
    name_a: object,
    name_b: object,
    backend: EmbeddingBackend | None = None,
) -> SimilarityResult:
    """Compare two product names. Never raises."""
    backend = backend or get_embedding_backend()
    text_a = normalize(name_a)
    text_b = normalize(name_b)

    if not text_a or not text_b:
        return _empty_result(backend)

    try:
        pooled_a = await _pool(backend, text_a)
    except Exception as e:
        return _fallback(name_a, name_b, e)
    return await _compare_pooled(pooled_a, name_a, text_b, name_b, backend)


def _semantic_result(similarity: float) -> SimilarityResult:
    score = _to_score(similarity)
    if score >= settings.semantic_threshold:
        rationale = f"high semantic similarity: {score}%"
    else:
        rationale = f"low semantic similarity: {score}%"

    return SimilarityResult(
        score=score,
        method=MatchMethod.SEMANTIC,
        rationale=rationale,
        similarity=similarity,
    )


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------


@dataclass
class RankedCandidate:
    name: str
    result: SimilarityResult
    term_coverage: float = 0.0  # share of the reference's search words found


@dataclass
class RankingResult:
    """Candidates ranked by similarity to one reference name."""

    reference: str
    ranked: list[RankedCandidate] = field(default_factory=list)

    @property
    def best(self) -> str | None:
        return self.ranked[0].name if self.ranked else None

    @property
    def best_result(self) -> SimilarityResult | None:
        return self.ranked[0].result if self.ranked else None

    @property
    def best_score(self) -> int:
        return self.ranked[0].result.score if self.ranked else 0

    @property
    def method(self) -> MatchMethod | None:
        """Method that produced the winning score."""
        return self.ranked[0].result.method if self.ranked else None

    @property
    def compatible(self) -> list[RankedCandidate]:
        return [c for c in self.ranked if c.result.is_compatible]


async def rank_candidates(
    reference: str,
    candidates: Sequence[str],
    backend: EmbeddingBackend | None = None,
) -> RankingResult:
    """Compare ``reference`` with each candidate and sort by score (descending).

    Comparisons run one after another; ties keep the input order.  The
    reference is embedded once, on the first non-empty candidate.
    """
    backend = backend or get_embedding_backend()
    ref_text = normalize(reference)
    ref_words = generate_search_terms(reference).words
    pooled_ref: np.ndarray | None = None
    ref_error: Exception | None = None

    ranked: list[RankedCandidate] = []
    for candidate in candidates:
        cand_text = normalize(candidate)
        if not ref_text or not cand_text:
            result = _empty_result(backend)
        else:
            if pooled_ref is None and ref_error is None:
                try:
                    pooled_ref = await _pool(backend, ref_text)
                except Exception as e:
                    ref_error = e
                    if not isinstance(e, EmbeddingUnavailableError):
                        logger.warning("Reference embedding failed, using lexical fallback: %s", e)
            if ref_error is not None:
                result = lexical_similarity(reference, candidate)
            else:
                result = await _compare_pooled(pooled_ref, reference, cand_text, candidate, backend)
        ranked.append(RankedCandidate(
            name=candidate,
            result=result,
            term_coverage=word_coverage(ref_words, candidate),
        ))

    ranked.sort(key=lambda c: c.result.score, reverse=True)

    if ranked:
        top = ranked[0]
        logger.info(
            "Best match for %r: %r (%d%%, %s)",
            str(reference)[:50], str(top.name)[:50], top.result.score, top.result.method.value,
        )
    return RankingResult(reference=reference, ranked=ranked)
