"""Cross-language product listing matching."""

from .matcher import MatchMethod, SimilarityResult, compare_semantic, rank_candidates
from .pipeline import ListingProcessing, get_search_term, process_listing_name
from .pricing import PriceStats, classify_deviation, compute_deviation, compute_price_stats

__all__ = [
    "ListingProcessing",
    "MatchMethod",
    "PriceStats",
    "SimilarityResult",
    "classify_deviation",
    "compare_semantic",
    "compute_deviation",
    "compute_price_stats",
    "get_search_term",
    "process_listing_name",
    "rank_candidates",
]
