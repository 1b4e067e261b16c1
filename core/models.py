"""
Data models for the property search pipeline.

Listings are immutable snapshots of remote-store rows. Client-local
annotations (favorites, saved searches) live in core.local_store and never
mutate a Listing.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional


# =============================================================================
# Enums
# =============================================================================


class PropertyType(Enum):
    """Property classification used by the remote store."""

    HOUSE = "house"
    CONDO = "condo"
    TOWNHOUSE = "townhouse"
    LAND = "land"
    MULTI_FAMILY = "multi-family"

    @classmethod
    def from_string(cls, value: Optional[str]) -> Optional["PropertyType"]:
        """Convert string to PropertyType, case-insensitive."""
        if not value:
            return None
        normalised = str(value).lower().strip().replace("_", "-").replace(" ", "-")
        for member in cls:
            if member.value == normalised:
                return member
        return None


class ListingStatus(Enum):
    """Lifecycle status of a listing."""

    ACTIVE = "active"
    PENDING = "pending"
    SOLD = "sold"

    @classmethod
    def from_string(cls, value: Optional[str]) -> "ListingStatus":
        """Convert string to ListingStatus; unknown values are treated as active."""
        normalised = (value or "").lower().strip()
        for member in cls:
            if member.value == normalised:
                return member
        return cls.ACTIVE


class SortOption(Enum):
    """Result ordering. Values match the browser client's sort keys."""

    PRICE_DESC = "price-desc"
    PRICE_ASC = "price-asc"
    BEDS_DESC = "beds-desc"
    SQFT_DESC = "sqft-desc"
    EQUITY_DESC = "equity-desc"
    NEWEST = "newest"
    PPSQFT_ASC = "ppsqft-asc"


# =============================================================================
# Tags
# =============================================================================

TAG_ABSENTEE = "absentee"
TAG_HIGH_EQUITY = "highEquity"
TAG_VACANT = "vacant"

QUICK_FILTER_TAGS = (TAG_ABSENTEE, TAG_HIGH_EQUITY, TAG_VACANT)

# Folded spelling -> canonical tag
_CANONICAL_TAGS = {
    "absentee": TAG_ABSENTEE,
    "absenteeowner": TAG_ABSENTEE,
    "highequity": TAG_HIGH_EQUITY,
    "vacant": TAG_VACANT,
}


def _fold_tag(value: str) -> str:
    return "".join(ch for ch in value.casefold() if ch not in " -_")


def normalize_tag(value: Optional[str]) -> str:
    """
    Map a tag to its canonical spelling.

    "High Equity", "high-equity" and "highEquity" all become "highEquity".
    Tags that are not quick-filter tags are returned trimmed.
    """
    if value is None:
        return ""
    text = str(value).strip()
    return _CANONICAL_TAGS.get(_fold_tag(text), text)


def normalize_tags(values: Optional[Iterable[Any]]) -> tuple[str, ...]:
    """
    Normalise a tag collection, dropping blanks and duplicates (first wins).

    A string is split on "|" (or ","). Any other value that is not a list,
    tuple or set yields no tags.
    """
    if not values:
        return ()
    if isinstance(values, str):
        values = values.split("|") if "|" in values else values.split(",")
    elif not isinstance(values, (list, tuple, set, frozenset)):
        return ()
    seen: list[str] = []
    for raw in values:
        tag = normalize_tag(raw)
        if tag and tag not in seen:
            seen.append(tag)
    return tuple(seen)


# =============================================================================
# Coercion helpers
# =============================================================================


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _to_int(value: Any) -> Optional[int]:
    number = _to_float(value)
    return int(number) if number is not None else None


def is_valid_coordinate(lat: Any, lng: Any) -> bool:
    """True when both values are finite numbers."""
    if isinstance(lat, bool) or isinstance(lng, bool):
        return False
    if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
        return False
    return math.isfinite(lat) and math.isfinite(lng)


# =============================================================================
# Listing
# =============================================================================


@dataclass(frozen=True)
class Listing:
    """
    A single property record from the remote store.

    Optional numerics are None when the store does not report them.
    """

    id: str
    address: str
    city: str
    state: str
    zip: str

    price: float
    beds: int
    baths: float
    sqft: float

    lat: Optional[float] = None
    lng: Optional[float] = None

    property_type: Optional[PropertyType] = None
    tags: tuple[str, ...] = ()
    equity_pct: Optional[float] = None
    year_built: Optional[int] = None
    lot_size: Optional[float] = None
    price_per_sqft: Optional[float] = None
    days_on_market: Optional[int] = None
    image: Optional[str] = None

    status: ListingStatus = ListingStatus.ACTIVE
    sold_date: Optional[str] = None
    sold_price: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        """Whether lat/lng are finite numbers usable for maps and distances."""
        return is_valid_coordinate(self.lat, self.lng)

    @property
    def full_address(self) -> str:
        """Address, city, state and zip on one line."""
        locality = " ".join(p for p in (self.state, self.zip) if p)
        return ", ".join(p for p in (self.address, self.city, locality) if p)

    @property
    def is_sold(self) -> bool:
        return self.status == ListingStatus.SOLD

    def has_tag(self, tag: str) -> bool:
        """Case- and spelling-insensitive tag membership."""
        wanted = normalize_tag(tag)
        return any(normalize_tag(t) == wanted for t in self.tags)

    def computed_price_per_sqft(self) -> Optional[float]:
        """Provided $/sqft, else price / sqft when sqft is positive."""
        if self.price_per_sqft is not None:
            return float(self.price_per_sqft)
        if not self.sqft or self.sqft <= 0:
            return None
        return float(self.price) / float(self.sqft)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Listing":
        """
        Build a Listing from a snake_case remote-store row.

        This is the ingestion boundary: tags are normalised to canonical
        spelling and non-numeric coordinates become None.
        """
        lat = _to_float(row.get("lat"))
        lng = _to_float(row.get("lng"))
        return cls(
            id=str(row.get("id", "")),
            address=str(row.get("address") or ""),
            city=str(row.get("city") or ""),
            state=str(row.get("state") or ""),
            zip=str(row.get("zip") or ""),
            price=_to_float(row.get("price")) or 0.0,
            beds=_to_int(row.get("beds")) or 0,
            baths=_to_float(row.get("baths")) or 0.0,
            sqft=_to_float(row.get("sqft")) or 0.0,
            lat=lat,
            lng=lng,
            property_type=PropertyType.from_string(row.get("property_type")),
            tags=normalize_tags(row.get("tags")),
            equity_pct=_to_float(row.get("equity_pct")),
            year_built=_to_int(row.get("year_built")),
            lot_size=_to_float(row.get("lot_size")),
            price_per_sqft=_to_float(row.get("price_per_sqft")),
            days_on_market=_to_int(row.get("days_on_market")),
            image=row.get("image") or None,
            status=ListingStatus.from_string(row.get("status")),
            sold_date=row.get("sold_date") or None,
            sold_price=_to_float(row.get("sold_price")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a snake_case dictionary (the inverse of from_row)."""
        return {
            "id": self.id,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
            "price": self.price,
            "beds": self.beds,
            "baths": self.baths,
            "sqft": self.sqft,
            "lat": self.lat,
            "lng": self.lng,
            "property_type": self.property_type.value if self.property_type else None,
            "tags": list(self.tags),
            "equity_pct": self.equity_pct,
            "year_built": self.year_built,
            "lot_size": self.lot_size,
            "price_per_sqft": self.price_per_sqft,
            "days_on_market": self.days_on_market,
            "image": self.image,
            "status": self.status.value,
            "sold_date": self.sold_date,
            "sold_price": self.sold_price,
        }


# =============================================================================
# Filter Criteria
# =============================================================================


@dataclass(frozen=True)
class FilterCriteria:
    """
    Structured search constraints, combined conjunctively.

    A field left as None (or False for quick filters) applies no constraint.
    """

    min_beds: Optional[int] = None
    max_price: Optional[float] = None
    min_sqft: Optional[float] = None
    city: Optional[str] = None
    property_type: Optional[PropertyType] = None

    # Quick filters
    absentee: bool = False
    high_equity: bool = False
    vacant: bool = False

    def __post_init__(self):
        """Validate criteria after initialization."""
        if self.min_beds is not None and self.min_beds < 0:
            raise ValueError("min_beds must be non-negative")
        if self.max_price is not None and self.max_price < 0:
            raise ValueError("max_price must be non-negative")
        if self.min_sqft is not None and self.min_sqft < 0:
            raise ValueError("min_sqft must be non-negative")

    @property
    def required_tags(self) -> tuple[str, ...]:
        """Canonical tags required by the enabled quick filters."""
        tags = []
        if self.absentee:
            tags.append(TAG_ABSENTEE)
        if self.high_equity:
            tags.append(TAG_HIGH_EQUITY)
        if self.vacant:
            tags.append(TAG_VACANT)
        return tuple(tags)

    def active_count(self) -> int:
        """Number of constraints currently set."""
        return sum(
            1
            for value in (
                self.absentee,
                self.high_equity,
                self.vacant,
                (self.city or "").strip(),
                self.min_beds is not None,
                self.max_price is not None,
                self.property_type,
                self.min_sqft is not None,
            )
            if value
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise with the browser client's camelCase keys."""
        payload: dict[str, Any] = {
            "absentee": self.absentee,
            "highEquity": self.high_equity,
            "vacant": self.vacant,
        }
        if self.city:
            payload["city"] = self.city
        if self.min_beds is not None:
            payload["minBeds"] = self.min_beds
        if self.max_price is not None:
            payload["maxPrice"] = self.max_price
        if self.min_sqft is not None:
            payload["minSqft"] = self.min_sqft
        if self.property_type is not None:
            payload["propertyType"] = self.property_type.value
        return payload

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "FilterCriteria":
        """Parse persisted criteria; empty strings and bad numbers are treated as absent."""
        if not isinstance(data, dict):
            return cls()
        min_beds = _to_int(data.get("minBeds"))
        max_price = _to_float(data.get("maxPrice"))
        min_sqft = _to_float(data.get("minSqft"))
        city = data.get("city")
        return cls(
            min_beds=min_beds if min_beds is not None and min_beds >= 0 else None,
            max_price=max_price if max_price is not None and max_price >= 0 else None,
            min_sqft=min_sqft if min_sqft is not None and min_sqft >= 0 else None,
            city=str(city).strip() or None if city else None,
            property_type=PropertyType.from_string(data.get("propertyType")),
            absentee=data.get("absentee") is True,
            high_equity=data.get("highEquity") is True,
            vacant=data.get("vacant") is True,
        )


# =============================================================================
# Geography
# =============================================================================


@dataclass(frozen=True)
class Bounds:
    """A lat/lng bounding box."""

    north: float
    south: float
    east: float
    west: float

    def contains(self, lat: Optional[float], lng: Optional[float]) -> bool:
        if not is_valid_coordinate(lat, lng):
            return False
        return self.south <= lat <= self.north and self.west <= lng <= self.east

    @property
    def center(self) -> tuple[float, float]:
        return ((self.north + self.south) / 2, (self.east + self.west) / 2)

    @classmethod
    def from_points(cls, points: Iterable[tuple[float, float]]) -> Optional["Bounds"]:
        """Smallest box containing every (lat, lng) point; None when empty."""
        pts = [p for p in points if is_valid_coordinate(p[0], p[1])]
        if not pts:
            return None
        lats = [p[0] for p in pts]
        lngs = [p[1] for p in pts]
        return cls(north=max(lats), south=min(lats), east=max(lngs), west=min(lngs))

    def to_dict(self) -> dict[str, float]:
        return {"north": self.north, "south": self.south, "east": self.east, "west": self.west}

