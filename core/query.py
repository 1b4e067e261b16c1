"""
Query Builder

Turns a free-text query plus FilterCriteria into either an in-memory
predicate or a side-effect-free description of a remote filtered fetch.

Both renderings share the same semantics:
- empty text matches everything
- unset criteria apply no constraint
- numeric bounds are inclusive (min_beds: actual >= n, max_price: actual <= n)
- quick filters require a tag, compared in canonical spelling
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Optional

from .models import Bounds, FilterCriteria, Listing, ListingStatus


Predicate = Callable[[Listing], bool]

DEFAULT_REMOTE_LIMIT = 500

# Characters with meaning inside PostgREST filter expressions
_POSTGREST_RESERVED = re.compile(r"[,().*%]")


def normalize_text(value: Optional[str]) -> str:
    """Trim and case-fold; None becomes an empty string."""
    if value is None:
        return ""
    return str(value).strip().casefold()


def searchable_text(listing: Listing) -> str:
    """The address-like haystack a free-text query is matched against."""
    return normalize_text(
        " ".join(p for p in (listing.address, listing.city, listing.state, listing.zip) if p)
    )


# =============================================================================
# Client-side predicate
# =============================================================================


def build_predicate(query: str = "", criteria: Optional[FilterCriteria] = None) -> Predicate:
    """
    Build a predicate over listings.

    Args:
        query: Free text matched as a substring of address, city, state and zip
        criteria: Structured constraints (None means no constraint)

    Returns:
        Pure function returning True when a listing satisfies every constraint
    """
    text = normalize_text(query)
    criteria = criteria or FilterCriteria()
    city = normalize_text(criteria.city)
    required_tags = criteria.required_tags

    def predicate(listing: Listing) -> bool:
        if city and city not in normalize_text(listing.city):
            return False
        if criteria.min_beds is not None and listing.beds < criteria.min_beds:
            return False
        if criteria.max_price is not None and listing.price > criteria.max_price:
            return False
        if criteria.min_sqft is not None and listing.sqft < criteria.min_sqft:
            return False
        if criteria.property_type is not None and listing.property_type != criteria.property_type:
            return False
        for tag in required_tags:
            if not listing.has_tag(tag):
                return False
        if text and text not in searchable_text(listing):
            return False
        return True

    return predicate


# =============================================================================
# Remote query description
# =============================================================================


def _clean_remote_text(value: str) -> str:
    return _POSTGREST_RESERVED.sub("", value).strip()


_TEXT_COLUMNS = ("city", "zip", "address", "state")


def _text_in_any_column(text: str, listing: Listing) -> bool:
    needle = normalize_text(_clean_remote_text(text))
    if not needle:
        return True
    return any(needle in normalize_text(getattr(listing, c)) for c in _TEXT_COLUMNS)


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


@dataclass(frozen=True)
class RemoteQuery:
    """
    Description of a filtered fetch against the remote listing store.

    Rendering is PostgREST-flavoured; adapters for other stores can read the
    structured fields directly.
    """

    text: str = ""
    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    bounds: Optional[Bounds] = None
    status: ListingStatus = ListingStatus.ACTIVE
    limit: int = DEFAULT_REMOTE_LIMIT

    def to_params(self) -> list[tuple[str, str]]:
        """
        Render as query-string pairs.

        A list of pairs rather than a dict: the same column may be
        constrained twice (e.g. lat >= south and lat <= north).
        """
        params: list[tuple[str, str]] = [("select", "*"), ("status", f"eq.{self.status.value}")]

        text = _clean_remote_text(self.text.lower())
        if text:
            params.append(("or", "(" + ",".join(f"{c}.ilike.*{text}*" for c in _TEXT_COLUMNS) + ")"))

        c = self.criteria
        city = _clean_remote_text(c.city or "")
        if city:
            params.append(("city", f"ilike.*{city}*"))
        if c.min_beds is not None:
            params.append(("beds", f"gte.{c.min_beds}"))
        if c.max_price is not None:
            params.append(("price", f"lte.{_format_number(c.max_price)}"))
        if c.property_type is not None:
            params.append(("property_type", f"eq.{c.property_type.value}"))
        if c.min_sqft is not None:
            params.append(("sqft", f"gte.{_format_number(c.min_sqft)}"))
        for tag in c.required_tags:
            params.append(("tags", "cs.{" + tag + "}"))

        if self.bounds is not None:
            params.extend([
                ("lat", f"gte.{self.bounds.south}"),
                ("lat", f"lte.{self.bounds.north}"),
                ("lng", f"gte.{self.bounds.west}"),
                ("lng", f"lte.{self.bounds.east}"),
            ])

        params.append(("limit", str(self.limit)))
        return params

    def matches(self, listing: Listing) -> bool:
        """
        Evaluate this query locally (used by in-memory sources).

        Free text is matched per column, as the rendered "or" filter does, so
        "main st houston" matches nothing here or remotely.
        """
        if listing.status != self.status:
            return False
        if self.bounds is not None and not self.bounds.contains(listing.lat, listing.lng):
            return False
        if not _text_in_any_column(self.text, listing):
            return False
        return build_predicate("", self.criteria)(listing)


def build_remote_query(
    query: str = "",
    criteria: Optional[FilterCriteria] = None,
    bounds: Optional[Bounds] = None,
    limit: int = DEFAULT_REMOTE_LIMIT,
) -> RemoteQuery:
    """
    Describe a remote fetch for a query and criteria.

    Criteria render with the same semantics as build_predicate. Free text
    differs: remotely it must appear within a single column (address, city,
    state or zip), while build_predicate also matches across columns. The
    fetched rows are therefore a subset of what build_predicate accepts.
    """
    if limit < 1:
        raise ValueError("limit must be at least 1")
    return RemoteQuery(
        text=(query or "").strip(),
        criteria=criteria or FilterCriteria(),
        bounds=bounds,
        limit=limit,
    )
