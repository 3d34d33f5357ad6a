"""
benchmark/classification.py

Bucketing and comparison helpers for cross-tenant benchmarks.

The percentile returned here is a coarse band of the percent difference
from the bucket average.  It is an approximation for "how you compare"
copy, not a statistical percentile rank: the bucket only stores running
means, never the distribution.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Final

from app.domain.commerce import Product

GENERAL_NICHE: Final[str] = "general"

# First match wins; keywords are matched as lowercase substrings.
_NICHE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("fitness", ("fitness", "workout", "health")),
    ("trading", ("trading", "stock", "crypto")),
    ("education", ("education", "course", "learn")),
    ("gaming", ("gaming", "game")),
    ("creator", ("creator", "content")),
)

# (exclusive upper bound, label); MRR at or above the last bound is "100k+".
_REVENUE_RANGES: tuple[tuple[Decimal, str], ...] = (
    (Decimal("5000"), "0-5k"),
    (Decimal("20000"), "5k-20k"),
    (Decimal("50000"), "20k-50k"),
    (Decimal("100000"), "50k-100k"),
)
_TOP_RANGE: Final[str] = "100k+"

# (minimum percent difference, band) for higher-is-better metrics.
_PERCENTILE_BANDS: tuple[tuple[float, int], ...] = (
    (20.0, 90),
    (10.0, 75),
    (0.0, 60),
    (-10.0, 40),
    (-20.0, 25),
)
_BOTTOM_BAND: Final[int] = 10
_NO_BASELINE_BAND: Final[int] = 50
_STATUS_TOLERANCE: Final[float] = 0.1


def determine_niche(products: Sequence[Product]) -> str:
    """Classify by the first non-app product's name; ``general`` if nothing matches."""
    candidates = [p for p in products if not p.is_app]
    if not candidates:
        return GENERAL_NICHE
    name = (candidates[0].name or "").lower()
    for niche, keywords in _NICHE_KEYWORDS:
        if any(keyword in name for keyword in keywords):
            return niche
    return GENERAL_NICHE


def revenue_range(mrr: Decimal | float) -> str:
    value = Decimal(str(mrr))
    for upper, label in _REVENUE_RANGES:
        if value < upper:
            return label
    return _TOP_RANGE


def percentile_band(yours: float, average: float, lower_is_better: bool = False) -> int:
    """Approximate percentile from the percent gap to the bucket average."""
    if average == 0:
        return _NO_BASELINE_BAND
    percent_diff = (yours - average) / average * 100
    if lower_is_better:
        percent_diff = -percent_diff
    for minimum, band in _PERCENTILE_BANDS:
        if percent_diff >= minimum:
            return band
    return _BOTTOM_BAND


def comparison_status(yours: float, average: float, lower_is_better: bool = False) -> str:
    """``above`` / ``below`` / ``average`` with a ±10 % of average dead zone."""
    diff = yours - average
    threshold = abs(average) * _STATUS_TOLERANCE
    if lower_is_better:
        diff = -diff
    if diff > threshold:
        return "above"
    if diff < -threshold:
        return "below"
    return "average"
