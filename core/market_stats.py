"""
Market Statistics Aggregator

Descriptive statistics over the current result set for the market insights
overlay. Everything here is derived and read-only; the input listings are
never modified.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .models import QUICK_FILTER_TAGS, Listing


# =============================================================================
# Configuration Constants
# =============================================================================

HIGH_EQUITY_THRESHOLD_PCT = 30.0

# (label, lower inclusive, upper exclusive); None means unbounded
PRICE_BANDS = (
    ("Under $100K", 0.0, 100_000.0),
    ("$100K-$200K", 100_000.0, 200_000.0),
    ("$200K-$300K", 200_000.0, 300_000.0),
    ("$300K-$500K", 300_000.0, 500_000.0),
    ("$500K+", 500_000.0, None),
)

UNKNOWN_PROPERTY_TYPE = "unknown"


# =============================================================================
# Helpers
# =============================================================================


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; raises ValueError on an empty sequence."""
    if not values:
        raise ValueError("mean() of empty sequence")
    return sum(values) / len(values)


def median(values: Sequence[float]) -> float:
    """
    Median with the even/odd rule.

    median([100, 200, 300]) == 200
    median([100, 200, 300, 400]) == 250
    """
    if not values:
        raise ValueError("median() of empty sequence")
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


# =============================================================================
# Models
# =============================================================================


@dataclass(frozen=True)
class Summary:
    """avg/median/min/max over one numeric column."""

    avg: float
    median: float
    min: float
    max: float

    @classmethod
    def of(cls, values: Sequence[float]) -> Optional["Summary"]:
        if not values:
            return None
        return cls(avg=mean(values), median=median(values), min=min(values), max=max(values))

    def to_dict(self) -> dict[str, float]:
        return {"avg": self.avg, "median": self.median, "min": self.min, "max": self.max}


@dataclass(frozen=True)
class EquitySummary:
    avg: float
    median: float
    high_count: int

    def to_dict(self) -> dict[str, float]:
        return {"avg": self.avg, "median": self.median, "high_count": self.high_count}


@dataclass(frozen=True)
class BedroomBucket:
    count: int
    avg_price: float


@dataclass(frozen=True)
class PriceBand:
    label: str
    min: float
    max: Optional[float]
    count: int


@dataclass(frozen=True)
class MarketStats:
    """Aggregates over a non-empty result set."""

    count: int
    price: Summary
    sqft_avg: float
    sqft_median: float
    price_per_sqft: Optional[Summary] = None
    days_on_market: Optional[Summary] = None
    equity: Optional[EquitySummary] = None
    property_types: Dict[str, int] = field(default_factory=dict)
    bedrooms: Dict[int, BedroomBucket] = field(default_factory=dict)
    days_on_market_by_bedroom: Dict[int, float] = field(default_factory=dict)
    tags: Dict[str, int] = field(default_factory=dict)
    price_bands: List[PriceBand] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "count": self.count,
            "price": self.price.to_dict(),
            "sqft": {"avg": self.sqft_avg, "median": self.sqft_median},
            "price_per_sqft": self.price_per_sqft.to_dict() if self.price_per_sqft else None,
            "days_on_market": self.days_on_market.to_dict() if self.days_on_market else None,
            "equity": self.equity.to_dict() if self.equity else None,
            "property_types": dict(self.property_types),
            "bedrooms": {
                str(beds): {"count": b.count, "avg_price": b.avg_price}
                for beds, b in sorted(self.bedrooms.items())
            },
            "days_on_market_by_bedroom": {
                str(beds): avg for beds, avg in sorted(self.days_on_market_by_bedroom.items())
            },
            "tags": dict(self.tags),
            "price_bands": [
                {"label": b.label, "min": b.min, "max": b.max, "count": b.count}
                for b in self.price_bands
            ],
        }


# =============================================================================
# Aggregation
# =============================================================================


def compute_market_stats(listings: Iterable[Listing]) -> Optional[MarketStats]:
    """
    Compute market statistics for a result set.

    Args:
        listings: Current result set

    Returns:
        MarketStats, or None for an empty result set
    """
    items = list(listings)
    if not items:
        return None

    prices = [l.price for l in items]
    sqfts = [l.sqft for l in items]
    prices_per_sqft = [l.price / l.sqft for l in items if l.sqft and l.sqft > 0]
    dom = [l.days_on_market for l in items if l.days_on_market is not None]
    equities = [l.equity_pct for l in items if l.equity_pct is not None]

    property_types: Dict[str, int] = {}
    for l in items:
        key = l.property_type.value if l.property_type else UNKNOWN_PROPERTY_TYPE
        property_types[key] = property_types.get(key, 0) + 1

    prices_by_beds: Dict[int, List[float]] = {}
    dom_by_beds: Dict[int, List[int]] = {}
    for l in items:
        prices_by_beds.setdefault(l.beds, []).append(l.price)
        if l.days_on_market is not None:
            dom_by_beds.setdefault(l.beds, []).append(l.days_on_market)

    tags = {tag: 0 for tag in QUICK_FILTER_TAGS}
    for l in items:
        for tag in tags:
            if l.has_tag(tag):
                tags[tag] += 1

    bands = [
        PriceBand(
            label=label,
            min=low,
            max=high,
            count=sum(1 for p in prices if p >= low and (high is None or p < high)),
        )
        for label, low, high in PRICE_BANDS
    ]

    equity = None
    if equities:
        equity = EquitySummary(
            avg=mean(equities),
            median=median(equities),
            high_count=sum(1 for e in equities if e >= HIGH_EQUITY_THRESHOLD_PCT),
        )

    return MarketStats(
        count=len(items),
        price=Summary.of(prices),
        sqft_avg=mean(sqfts),
        sqft_median=median(sqfts),
        price_per_sqft=Summary.of(prices_per_sqft),
        days_on_market=Summary.of(dom),
        equity=equity,
        property_types=property_types,
        bedrooms={
            beds: BedroomBucket(count=len(p), avg_price=mean(p))
            for beds, p in prices_by_beds.items()
        },
        days_on_market_by_bedroom={beds: mean(d) for beds, d in dom_by_beds.items()},
        tags=tags,
        price_bands=bands,
    )
