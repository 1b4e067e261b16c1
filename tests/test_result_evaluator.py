"""
Tests for the Result Set Evaluator and SearchSession

Verifies:
- Output is always a subset of the input
- Every sort is stable and idempotent; missing values sort last
- Superseded responses never overwrite newer results
- Fetch failures become an empty result set plus a notice
"""

import asyncio
import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.models import FilterCriteria, Listing, SortOption
from core.query import RemoteQuery
from core.search import (
    FETCH_FAILED_NOTICE,
    SearchSession,
    evaluate,
    sort_listings,
)
from datasource.memory import InMemoryListingSource


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def create_listing():
    """Factory fixture for listings."""
    def _create(
        listing_id: str,
        price: float = 200000,
        beds: int = 3,
        sqft: float = 1000,
        equity_pct=None,
        days_on_market=None,
        city: str = "Houston",
        tags=(),
    ) -> Listing:
        return Listing(
            id=listing_id,
            address=f"{listing_id} Main St",
            city=city,
            state="TX",
            zip="77002",
            price=price,
            beds=beds,
            baths=2,
            sqft=sqft,
            lat=29.76,
            lng=-95.37,
            equity_pct=equity_pct,
            days_on_market=days_on_market,
            tags=tuple(tags),
        )
    return _create


@pytest.fixture
def listings(create_listing):
    return [
        create_listing("a", price=300000, beds=3, sqft=1500, equity_pct=40, days_on_market=10),
        create_listing("b", price=150000, beds=2, sqft=900, equity_pct=None, days_on_market=None),
        create_listing("c", price=300000, beds=4, sqft=0, equity_pct=10, days_on_market=3, tags=["vacant"]),
        create_listing("d", price=220000, beds=3, sqft=1100, equity_pct=40, days_on_market=30, city="Katy"),
    ]


def ids(items):
    return [l.id for l in items]


# =============================================================================
# Test: Sorting
# =============================================================================

class TestSorting:
    """Sort orders and tie handling."""

    def test_price_desc_stable_on_ties(self, listings):
        assert ids(sort_listings(listings, SortOption.PRICE_DESC)) == ["a", "c", "d", "b"]

    def test_price_asc(self, listings):
        assert ids(sort_listings(listings, SortOption.PRICE_ASC)) == ["b", "d", "a", "c"]

    def test_beds_desc(self, listings):
        assert ids(sort_listings(listings, SortOption.BEDS_DESC)) == ["c", "a", "d", "b"]

    def test_sqft_desc(self, listings):
        assert ids(sort_listings(listings, SortOption.SQFT_DESC)) == ["a", "d", "b", "c"]

    def test_equity_desc_missing_last(self, listings):
        assert ids(sort_listings(listings, SortOption.EQUITY_DESC)) == ["a", "d", "c", "b"]

    def test_newest_missing_days_last(self, listings):
        assert ids(sort_listings(listings, SortOption.NEWEST)) == ["c", "a", "d", "b"]

    def test_price_per_sqft_asc_uncomputable_last(self, listings):
        # a=200, b=166.7, d=200 (tie keeps input order), c has no sqft
        assert ids(sort_listings(listings, SortOption.PPSQFT_ASC)) == ["b", "a", "d", "c"]

    def test_no_sort_keeps_order(self, listings):
        assert ids(sort_listings(listings, None)) == ["a", "b", "c", "d"]

    @pytest.mark.parametrize("sort", list(SortOption))
    def test_sort_is_idempotent(self, listings, sort):
        once = sort_listings(listings, sort)

        assert sort_listings(once, sort) == once


# =============================================================================
# Test: Evaluation
# =============================================================================

class TestEvaluate:
    """Filter then sort."""

    @pytest.mark.parametrize("criteria", [
        FilterCriteria(),
        FilterCriteria(min_beds=3),
        FilterCriteria(max_price=200000),
        FilterCriteria(city="katy"),
        FilterCriteria(vacant=True, min_beds=4),
        FilterCriteria(high_equity=True),
    ])
    def test_output_is_subset(self, listings, criteria):
        result = evaluate(listings, "", criteria, SortOption.PRICE_DESC)

        assert set(ids(result)) <= set(ids(listings))

    def test_same_input_same_output(self, listings):
        first = evaluate(listings, "main", FilterCriteria(min_beds=3), SortOption.EQUITY_DESC)
        second = evaluate(listings, "main", FilterCriteria(min_beds=3), SortOption.EQUITY_DESC)

        assert first == second

    def test_filter_and_sort(self, listings):
        result = evaluate(listings, "houston", FilterCriteria(min_beds=3), SortOption.BEDS_DESC)

        assert ids(result) == ["c", "a"]

    def test_input_not_mutated(self, listings):
        snapshot = list(listings)

        evaluate(listings, "", None, SortOption.PRICE_ASC)

        assert listings == snapshot


# =============================================================================
# Test: Search Session
# =============================================================================

class GatedSource(InMemoryListingSource):
    """Holds each fetch until its query text is released."""

    def __init__(self, listings):
        super().__init__(listings)
        self.gates = {}

    def gate(self, text: str) -> asyncio.Event:
        return self.gates.setdefault(text, asyncio.Event())

    async def fetch_listings(self, query: RemoteQuery):
        await self.gate(query.text).wait()
        return await super().fetch_listings(query)


class TestSearchSession:
    """Fetch, evaluate and install the freshest outcome."""

    def test_search_installs_outcome(self, listings):
        outcomes = []
        session = SearchSession(InMemoryListingSource(listings), on_outcome=outcomes.append)

        outcome = asyncio.run(session.search("", FilterCriteria(min_beds=3), SortOption.PRICE_ASC))

        assert outcome.ok
        assert ids(outcome.listings) == ["d", "a", "c"]
        assert session.current is outcome
        assert outcomes == [outcome]
        assert session.fit_trigger == 1

    def test_fetch_failure_gives_empty_result_and_notice(self):
        session = SearchSession(InMemoryListingSource(fail=True))

        outcome = asyncio.run(session.search("houston"))

        assert not outcome.ok
        assert outcome.error == FETCH_FAILED_NOTICE
        assert outcome.listings == ()
        assert session.snapshot == ()

    def test_superseded_response_is_dropped(self, listings):
        async def scenario():
            source = GatedSource(listings)
            session = SearchSession(source)

            older = asyncio.create_task(session.search("houston"))
            await asyncio.sleep(0)
            newer = asyncio.create_task(session.search("katy"))
            await asyncio.sleep(0)

            source.gate("katy").set()
            newer_outcome = await newer
            source.gate("houston").set()
            older_outcome = await older
            return session, older_outcome, newer_outcome

        session, older_outcome, newer_outcome = asyncio.run(scenario())

        assert older_outcome is None
        assert ids(newer_outcome.listings) == ["d"]
        assert session.current is newer_outcome
        assert newer_outcome.request_id == 2

    def test_refine_uses_snapshot_without_fetching(self, listings):
        source = InMemoryListingSource(listings)
        session = SearchSession(source)
        asyncio.run(session.search())
        source.fail = True

        refined = session.refine("", FilterCriteria(vacant=True))

        assert ids(refined.listings) == ["c"]
        assert session.fit_trigger == 1

    def test_each_search_bumps_fit_trigger(self, listings):
        session = SearchSession(InMemoryListingSource(listings))

        asyncio.run(session.search())
        asyncio.run(session.search("katy"))

        assert session.fit_trigger == 2
