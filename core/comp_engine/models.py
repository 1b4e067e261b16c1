"""
Data models for the Comparable-Sales Engine

A comp is a sold Listing plus its great-circle distance from the subject.
ARV (after-repair value) is derived from the comps' sold price per sqft.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ..models import Listing, ListingStatus


# =============================================================================
# Configuration Constants
# =============================================================================

DEFAULT_RADIUS_MILES = 0.5
DEFAULT_SQFT_TOLERANCE = 0.20
DEFAULT_COMP_LIMIT = 15

# Remote candidates fetched per requested comp; the bounding box is looser
# than the radius so some candidates are dropped after exact distance.
CANDIDATE_OVERFETCH = 4


@dataclass(frozen=True)
class CompSearchParams:
    """
    Comp search configuration.

    radius_miles: maximum great-circle distance from the subject
    sqft_tolerance: allowed +/- fraction of the subject's square footage
    limit: maximum number of comps returned
    """
    radius_miles: float = DEFAULT_RADIUS_MILES
    sqft_tolerance: float = DEFAULT_SQFT_TOLERANCE
    limit: int = DEFAULT_COMP_LIMIT

    def __post_init__(self):
        """Validate parameters after initialization."""
        if self.radius_miles <= 0:
            raise ValueError("radius_miles must be positive")
        if not 0 <= self.sqft_tolerance < 1:
            raise ValueError("sqft_tolerance must be in [0, 1)")
        if self.limit < 1:
            raise ValueError("limit must be at least 1")

    def to_dict(self) -> dict:
        return {
            "radius_miles": self.radius_miles,
            "sqft_tolerance": self.sqft_tolerance,
            "limit": self.limit,
        }


@dataclass(frozen=True)
class CompQuery:
    """
    Remote fetch description for sold candidates around a subject.

    Coordinates and sqft bounds are inclusive. sqft bounds are None when
    the subject has no usable square footage.
    """
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float
    min_sqft: Optional[float] = None
    max_sqft: Optional[float] = None
    limit: int = DEFAULT_COMP_LIMIT * CANDIDATE_OVERFETCH
    exclude_id: Optional[str] = None

    def to_params(self) -> List[tuple]:
        """Render PostgREST query-string pairs, newest sales first."""
        params = [
            ("select", "*"),
            ("status", f"eq.{ListingStatus.SOLD.value}"),
            ("lat", f"gte.{self.min_lat}"),
            ("lat", f"lte.{self.max_lat}"),
            ("lng", f"gte.{self.min_lng}"),
            ("lng", f"lte.{self.max_lng}"),
        ]
        if self.min_sqft is not None:
            params.append(("sqft", f"gte.{self.min_sqft}"))
        if self.max_sqft is not None:
            params.append(("sqft", f"lte.{self.max_sqft}"))
        if self.exclude_id:
            params.append(("id", f"neq.{self.exclude_id}"))
        params.append(("order", "sold_date.desc"))
        params.append(("limit", str(self.limit)))
        return params

    def matches(self, listing: Listing) -> bool:
        """Evaluate this query locally (used by in-memory sources)."""
        if listing.status != ListingStatus.SOLD or not listing.has_coordinates:
            return False
        if self.exclude_id and listing.id == self.exclude_id:
            return False
        if not (self.min_lat <= listing.lat <= self.max_lat):
            return False
        if not (self.min_lng <= listing.lng <= self.max_lng):
            return False
        if self.min_sqft is not None and listing.sqft < self.min_sqft:
            return False
        if self.max_sqft is not None and listing.sqft > self.max_sqft:
            return False
        return True


@dataclass(frozen=True)
class Comp:
    """A sold listing used as a market reference for a subject."""
    listing: Listing
    distance_miles: float

    @property
    def price_per_sqft(self) -> Optional[float]:
        """Sold price / sqft; None without a sold price or positive sqft."""
        if not self.listing.sold_price or not self.listing.sqft or self.listing.sqft <= 0:
            return None
        return float(self.listing.sold_price) / float(self.listing.sqft)

    def to_dict(self) -> dict:
        payload = self.listing.to_dict()
        payload["distance_miles"] = self.distance_miles
        payload["sold_price_per_sqft"] = self.price_per_sqft
        return payload


@dataclass(frozen=True)
class ARVEstimate:
    """
    After-repair value derived from comps.

    estimated_arv = subject sqft x mean comp $/sqft. low/high use the
    cheapest and dearest comp $/sqft.
    """
    avg_price_per_sqft: float
    median_price_per_sqft: float
    estimated_arv: float
    low_arv: float
    high_arv: float
    comp_count: int

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "avg_price_per_sqft": self.avg_price_per_sqft,
            "median_price_per_sqft": self.median_price_per_sqft,
            "estimated_arv": self.estimated_arv,
            "low_arv": self.low_arv,
            "high_arv": self.high_arv,
            "comp_count": self.comp_count,
        }


@dataclass
class CompReport:
    """
    Complete comps result for a subject.

    arv is None when the comps carry no usable $/sqft (insufficient data,
    not a zero value).
    """
    subject: Listing
    params: CompSearchParams
    comps: List[Comp] = field(default_factory=list)
    arv: Optional[ARVEstimate] = None

    @property
    def comp_count(self) -> int:
        return len(self.comps)

    @property
    def has_estimate(self) -> bool:
        return self.arv is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "subject_id": self.subject.id,
            "params": self.params.to_dict(),
            "comps": [c.to_dict() for c in self.comps],
            "arv": self.arv.to_dict() if self.arv else None,
        }
