"""
Result Set Evaluator

Applies a Query Builder predicate to a listing snapshot and orders the
survivors. Evaluation is pure: the same snapshot, criteria and sort always
yield the same sequence, with ties kept in snapshot order.

SearchSession wraps the evaluator around the remote fetch. It keeps only the
freshest response: a slower, older request that completes after a newer one
is discarded instead of overwriting the newer results.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional

from .errors import ListingFetchError
from .models import Bounds, FilterCriteria, Listing, SortOption
from .query import DEFAULT_REMOTE_LIMIT, build_predicate, build_remote_query

if TYPE_CHECKING:
    from datasource.base import ListingSource


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Constants
# =============================================================================

# Listings without days-on-market sort after every real value under "newest"
MISSING_DAYS_ON_MARKET = 10**9

FETCH_FAILED_NOTICE = "Unable to load listings. Please try again."


# =============================================================================
# Sorting
# =============================================================================


def _sort_value(listing: Listing, sort: SortOption) -> Optional[float]:
    if sort in (SortOption.PRICE_DESC, SortOption.PRICE_ASC):
        return listing.price
    if sort == SortOption.BEDS_DESC:
        return listing.beds
    if sort == SortOption.SQFT_DESC:
        return listing.sqft
    if sort == SortOption.EQUITY_DESC:
        return listing.equity_pct
    if sort == SortOption.NEWEST:
        if listing.days_on_market is None:
            return MISSING_DAYS_ON_MARKET
        return listing.days_on_market
    if sort == SortOption.PPSQFT_ASC:
        return listing.computed_price_per_sqft()
    raise ValueError(f"Unsupported sort option: {sort}")


_DESCENDING = {
    SortOption.PRICE_DESC,
    SortOption.BEDS_DESC,
    SortOption.SQFT_DESC,
    SortOption.EQUITY_DESC,
}


def sort_listings(listings: Iterable[Listing], sort: Optional[SortOption]) -> list[Listing]:
    """
    Stable sort by the given option.

    Listings with no value for the key (no equity, no computable $/sqft)
    come last in their original relative order. None keeps input order.
    """
    items = list(listings)
    if sort is None:
        return items

    sign = -1 if sort in _DESCENDING else 1

    def key(listing: Listing) -> tuple[int, float]:
        value = _sort_value(listing, sort)
        if value is None:
            return (1, 0.0)
        return (0, sign * float(value))

    return sorted(items, key=key)


def evaluate(
    listings: Iterable[Listing],
    query: str = "",
    criteria: Optional[FilterCriteria] = None,
    sort: Optional[SortOption] = None,
) -> list[Listing]:
    """
    Filter then sort a listing snapshot.

    The output is always a subset of the input.
    """
    predicate = build_predicate(query, criteria)
    return sort_listings((l for l in listings if predicate(l)), sort)


# =============================================================================
# Search Session
# =============================================================================


@dataclass(frozen=True)
class SearchOutcome:
    """Result of one search request."""

    listings: tuple[Listing, ...] = ()
    error: Optional[str] = None
    request_id: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def count(self) -> int:
        return len(self.listings)


@dataclass
class SearchSession:
    """
    Owns the current snapshot for one client.

    Every explicit search increments fit_trigger so the map re-fits once to
    the new result set; local refinements do not.
    """

    source: "ListingSource"
    limit: int = DEFAULT_REMOTE_LIMIT
    on_outcome: Optional[Callable[[SearchOutcome], Any]] = None

    current: SearchOutcome = field(default_factory=SearchOutcome, init=False)
    snapshot: tuple[Listing, ...] = field(default=(), init=False)
    fit_trigger: int = field(default=0, init=False)
    _latest_request: int = field(default=0, init=False, repr=False)

    async def search(
        self,
        query: str = "",
        criteria: Optional[FilterCriteria] = None,
        sort: Optional[SortOption] = None,
        bounds: Optional[Bounds] = None,
    ) -> Optional[SearchOutcome]:
        """
        Fetch, evaluate and install a new result set.

        Returns:
            The installed SearchOutcome, or None when a newer search was
            started while this one was in flight.
        """
        self._latest_request += 1
        request_id = self._latest_request
        self.fit_trigger += 1

        remote = build_remote_query(query, criteria, bounds=bounds, limit=self.limit)
        try:
            fetched = await self.source.fetch_listings(remote)
        except ListingFetchError as e:
            if request_id != self._latest_request:
                logger.debug("Dropping failed superseded search %s", request_id)
                return None
            logger.warning("Listing fetch failed for request %s: %s", request_id, e)
            return self._install(SearchOutcome(error=FETCH_FAILED_NOTICE, request_id=request_id), ())

        if request_id != self._latest_request:
            logger.debug(
                "Dropping superseded search %s (latest is %s)",
                request_id,
                self._latest_request,
            )
            return None

        snapshot = tuple(fetched)
        listings = evaluate(snapshot, query, criteria, sort)
        return self._install(SearchOutcome(listings=tuple(listings), request_id=request_id), snapshot)

    def refine(
        self,
        query: str = "",
        criteria: Optional[FilterCriteria] = None,
        sort: Optional[SortOption] = None,
    ) -> SearchOutcome:
        """Re-evaluate the current snapshot locally without fetching."""
        listings = evaluate(self.snapshot, query, criteria, sort)
        outcome = SearchOutcome(
            listings=tuple(listings),
            error=self.current.error,
            request_id=self.current.request_id,
        )
        self.current = outcome
        return outcome

    def _install(self, outcome: SearchOutcome, snapshot: tuple[Listing, ...]) -> SearchOutcome:
        self.current = outcome
        self.snapshot = snapshot
        if self.on_outcome is not None:
            self.on_outcome(outcome)
        return outcome
