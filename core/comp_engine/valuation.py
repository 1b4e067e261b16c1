"""
Valuation Engine for comparable sales

Implements:
- Comp selection (delegated to CompEligibilityFilter)
- Price per sqft for each comp with a sold price and positive sqft
- Mean and median $/sqft
- ARV = subject sqft x mean $/sqft
"""

import logging
from typing import List, Optional, TYPE_CHECKING

from ..market_stats import mean, median
from ..models import Listing
from .filters import CompEligibilityFilter
from .models import ARVEstimate, Comp, CompReport, CompSearchParams

if TYPE_CHECKING:
    from datasource.base import ListingSource


logger = logging.getLogger(__name__)


def estimate_arv(subject_sqft: Optional[float], comps: List[Comp]) -> Optional[ARVEstimate]:
    """
    Estimate after-repair value from comps.

    Only comps with a sold price and positive sqft contribute.

    Args:
        subject_sqft: Square footage of the subject
        comps: Selected comps

    Returns:
        ARVEstimate, or None when no comp has usable $/sqft or the subject
        has no positive sqft (insufficient data, not zero value)
    """
    if not subject_sqft or subject_sqft <= 0:
        return None

    prices_per_sqft = [c.price_per_sqft for c in comps if c.price_per_sqft is not None]
    if not prices_per_sqft:
        return None

    avg_ppsf = mean(prices_per_sqft)
    return ARVEstimate(
        avg_price_per_sqft=avg_ppsf,
        median_price_per_sqft=median(prices_per_sqft),
        estimated_arv=subject_sqft * avg_ppsf,
        low_arv=subject_sqft * min(prices_per_sqft),
        high_arv=subject_sqft * max(prices_per_sqft),
        comp_count=len(prices_per_sqft),
    )


class CompValuationEngine:
    """
    Comparable-sales pipeline for a subject listing.

    Pipeline order:
    1. FETCH - Sold candidates inside the bounding box and sqft band
    2. FILTER - Exact distance within radius, nearest first, truncated
    3. VALUATE - ARV from mean $/sqft
    """

    def __init__(self, source: Optional["ListingSource"] = None):
        """
        Initialize valuation engine.

        Args:
            source: Remote listing store used by find_comps (optional for
                    callers that already hold candidates)
        """
        self._source = source
        self._filter = CompEligibilityFilter()

    def select(
        self,
        subject: Listing,
        candidates: List[Listing],
        params: Optional[CompSearchParams] = None,
    ) -> List[Comp]:
        """Select comps from an in-hand candidate list."""
        return self._filter.filter_comps(candidates, subject, params or CompSearchParams())

    def valuate(
        self,
        subject: Listing,
        comps: List[Comp],
        params: Optional[CompSearchParams] = None,
    ) -> CompReport:
        """Build a CompReport (comps plus ARV) for already-selected comps."""
        return CompReport(
            subject=subject,
            params=params or CompSearchParams(),
            comps=list(comps),
            arv=estimate_arv(subject.sqft, comps),
        )

    async def find_comps(
        self,
        subject: Listing,
        params: Optional[CompSearchParams] = None,
    ) -> CompReport:
        """
        Fetch candidates from the remote store and produce a CompReport.

        Raises:
            MissingCoordinatesError: If the subject has no valid coordinates
            ListingFetchError: If the remote store fails
        """
        if self._source is None:
            raise RuntimeError("CompValuationEngine has no listing source")

        params = params or CompSearchParams()
        query = self._filter.build_query(subject, params)
        candidates = await self._source.fetch_sold(query)
        comps = self._filter.filter_comps(candidates, subject, params)

        logger.debug(
            "Comps for %s: %d candidates, %d selected",
            subject.id,
            len(candidates),
            len(comps),
        )
        return self.valuate(subject, comps, params)
