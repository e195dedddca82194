"""Price statistics and price deviation between two listings.

All functions are pure and never raise: unparseable or non-positive prices
are dropped, a missing base price gives a deviation of 0.
"""

from __future__ import annotations

import enum
import math
import re
from dataclasses import dataclass, field
from typing import Iterable

from .config import settings

_CURRENCY_RE = re.compile(r"[^\d,.\-]")
_THOUSANDS_ONLY_RE = re.compile(r"^-?\d{1,3}(?:\.\d{3})+$")  # "1.234", "12.345.678"


def _round2(value: float) -> float:
    """Round half-up to 2 decimals."""
    return math.floor(value * 100 + 0.5) / 100


def parse_price(value: object) -> float | None:
    """Parse a price from a number or a string such as "R$ 1.234,56".

    Returns None for anything that is not a finite number.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        price = float(value)
        return price if math.isfinite(price) else None
    if not isinstance(value, str):
        return None

    text = _CURRENCY_RE.sub("", value)
    if not text:
        return None
    if "," in text and text.rfind(",") > text.rfind("."):
        # Brazilian format: "." groups thousands, "," marks decimals
        text = text.replace(".", "").replace(",", ".")
    elif _THOUSANDS_ONLY_RE.match(text):
        text = text.replace(".", "")
    else:
        text = text.replace(",", "")
    try:
        price = float(text)
    except ValueError:
        return None
    return price if math.isfinite(price) else None


@dataclass
class PriceStats:
    mean: float = 0.0
    min: float = 0.0
    max: float = 0.0
    count: int = 0
    prices: list[float] = field(default_factory=list)


def compute_price_stats(prices: Iterable[object]) -> PriceStats:
    """Mean (2 decimals), min, max and count over the positive prices."""
    valid = [p for p in (parse_price(v) for v in prices or []) if p is not None and p > 0]
    if not valid:
        return PriceStats()
    low, high = min(valid), max(valid)
    # Rounding may push the mean just outside the observed range
    mean = min(max(_round2(sum(valid) / len(valid)), low), high)
    return PriceStats(
        mean=mean,
        min=low,
        max=high,
        count=len(valid),
        prices=valid,
    )


def compute_deviation(target_price: object, base_price: object) -> float:
    """Signed % difference of ``target_price`` relative to ``base_price``.

    Example: target 150, base 50 → 200.0 (200% markup).
    Returns 0.0 when the base price is missing or <= 0.
    """
    base = parse_price(base_price)
    if base is None or base <= 0:
        return 0.0
    target = parse_price(target_price)
    if target is None:
        return 0.0
    return _round2((target - base) / base * 100)


class DeviationBand(str, enum.Enum):
    LOSS = "loss"
    LOW_MARGIN = "low_margin"
    OPPORTUNITY = "opportunity"
    SUSPICIOUS = "suspicious"  # markup so high the pair is probably a mismatch


def classify_deviation(deviation: float) -> DeviationBand:
    """Bucket a deviation using ``settings.deviation_min_pct``/``deviation_max_pct``."""
    if deviation < 0:
        return DeviationBand.LOSS
    if deviation < settings.deviation_min_pct:
        return DeviationBand.LOW_MARGIN
    if deviation <= settings.deviation_max_pct:
        return DeviationBand.OPPORTUNITY
    return DeviationBand.SUSPICIOUS
