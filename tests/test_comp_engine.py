"""
Tests for the Comparable-Sales Engine

Verifies:
- Only sold listings inside the radius and sqft band are comps
- Bounding-box corners outside the radius are discarded
- Nearest first, ties by id, truncated to the limit
- Subject without coordinates is refused
- ARV uses mean $/sqft; absent (not zero) when data is insufficient
"""

import asyncio
import math
import pytest
from dataclasses import replace
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.comp_engine import (
    ARVEstimate,
    Comp,
    CompEligibilityFilter,
    CompSearchParams,
    CompValuationEngine,
    estimate_arv,
)
from core.comp_engine.filters import MILES_PER_DEGREE_LAT
from core.errors import ListingFetchError, MissingCoordinatesError
from core.models import Listing, ListingStatus
from datasource.memory import InMemoryListingSource


SUBJECT_LAT = 29.7604
SUBJECT_LNG = -95.3698


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def subject():
    """Active subject listing in Houston, 1000 sqft."""
    return Listing(
        id="subject",
        address="100 Main St",
        city="Houston",
        state="TX",
        zip="77002",
        price=250000,
        beds=3,
        baths=2,
        sqft=1000,
        lat=SUBJECT_LAT,
        lng=SUBJECT_LNG,
    )


@pytest.fixture
def create_sold():
    """Factory fixture for sold listings placed by offset in miles."""
    def _create(
        listing_id: str,
        north_miles: float = 0.0,
        east_miles: float = 0.0,
        sqft: float = 1000,
        sold_price: float = 200000,
        status: ListingStatus = ListingStatus.SOLD,
        sold_date: str = "2024-05-01",
    ) -> Listing:
        lat = SUBJECT_LAT + north_miles / MILES_PER_DEGREE_LAT
        lng = SUBJECT_LNG + east_miles / (MILES_PER_DEGREE_LAT * math.cos(math.radians(SUBJECT_LAT)))
        return Listing(
            id=listing_id,
            address=f"{listing_id} Comp Ave",
            city="Houston",
            state="TX",
            zip="77002",
            price=sold_price,
            beds=3,
            baths=2,
            sqft=sqft,
            lat=lat,
            lng=lng,
            status=status,
            sold_date=sold_date,
            sold_price=sold_price,
        )
    return _create


@pytest.fixture
def comp_filter():
    return CompEligibilityFilter()


@pytest.fixture
def engine():
    return CompValuationEngine()


# =============================================================================
# Test: Parameters
# =============================================================================

class TestCompSearchParams:
    """Defaults and validation."""

    def test_defaults_match_map_client(self):
        params = CompSearchParams()

        assert params.radius_miles == 0.5
        assert params.sqft_tolerance == 0.2
        assert params.limit == 15

    @pytest.mark.parametrize("kwargs", [
        {"radius_miles": 0},
        {"radius_miles": -1},
        {"sqft_tolerance": -0.1},
        {"sqft_tolerance": 1.0},
        {"limit": 0},
    ])
    def test_invalid_params_rejected(self, kwargs):
        with pytest.raises(ValueError):
            CompSearchParams(**kwargs)


# =============================================================================
# Test: Geometry
# =============================================================================

class TestGeometry:
    """Haversine distance and bounding box."""

    def test_one_degree_latitude_is_about_69_miles(self):
        distance = CompEligibilityFilter.haversine_distance(29.0, -95.0, 30.0, -95.0)

        assert distance == pytest.approx(69.1, rel=1e-3)

    def test_same_point_is_zero(self):
        assert CompEligibilityFilter.haversine_distance(29.76, -95.37, 29.76, -95.37) == 0.0

    def test_bounding_box_widens_longitude_with_latitude(self, subject):
        min_lat, max_lat, min_lng, max_lng = CompEligibilityFilter.bounding_box(subject, 0.5)

        lat_delta = (max_lat - min_lat) / 2
        lng_delta = (max_lng - min_lng) / 2
        assert lat_delta == pytest.approx(0.5 / 69)
        assert lng_delta == pytest.approx(0.5 / (69 * math.cos(math.radians(SUBJECT_LAT))))
        assert lng_delta > lat_delta

    def test_sqft_range_is_tolerance_band(self, subject):
        assert CompEligibilityFilter.sqft_range(subject, 0.2) == pytest.approx((800, 1200))

    def test_sqft_range_absent_without_sqft(self, subject):
        no_sqft = replace(subject, sqft=0)

        assert CompEligibilityFilter.sqft_range(no_sqft, 0.2) is None


# =============================================================================
# Test: Eligibility
# =============================================================================

class TestEligibility:
    """Which candidates qualify as comps."""

    def test_only_sold_listings_qualify(self, comp_filter, subject, create_sold):
        candidates = [
            create_sold("sold", north_miles=0.1),
            create_sold("active", north_miles=0.1, status=ListingStatus.ACTIVE),
            create_sold("pending", north_miles=0.1, status=ListingStatus.PENDING),
        ]

        comps = comp_filter.filter_comps(candidates, subject, CompSearchParams())

        assert [c.listing.id for c in comps] == ["sold"]

    def test_outside_radius_excluded(self, comp_filter, subject, create_sold):
        candidates = [
            create_sold("near", north_miles=0.3),
            create_sold("far", north_miles=0.8),
        ]

        comps = comp_filter.filter_comps(candidates, subject, CompSearchParams())

        assert [c.listing.id for c in comps] == ["near"]

    def test_box_corner_outside_radius_excluded(self, comp_filter, subject, create_sold):
        """Inside the bounding box but ~0.64 mi away diagonally."""
        corner = create_sold("corner", north_miles=0.45, east_miles=0.45)
        query = comp_filter.build_query(subject, CompSearchParams())

        assert query.matches(corner)
        assert comp_filter.filter_comps([corner], subject, CompSearchParams()) == []

    def test_sqft_band_is_inclusive(self, comp_filter, subject, create_sold):
        candidates = [
            create_sold("low-edge", north_miles=0.1, sqft=800),
            create_sold("high-edge", north_miles=0.2, sqft=1200),
            create_sold("too-small", north_miles=0.1, sqft=799),
            create_sold("too-big", north_miles=0.1, sqft=1201),
        ]

        comps = comp_filter.filter_comps(candidates, subject, CompSearchParams())

        assert {c.listing.id for c in comps} == {"low-edge", "high-edge"}

    def test_one_mile_radius_twenty_percent_band(self, comp_filter, subject, create_sold):
        larger = replace(subject, sqft=1500)
        params = CompSearchParams(radius_miles=1.0, sqft_tolerance=0.2)
        candidates = [
            create_sold("in-band", north_miles=0.3, sqft=1700),
            create_sold("over-band", north_miles=0.05, sqft=2000),
        ]

        comps = comp_filter.filter_comps(candidates, larger, params)

        assert [c.listing.id for c in comps] == ["in-band"]

    def test_missing_coordinates_candidate_skipped(self, comp_filter, subject, create_sold):
        no_coords = replace(create_sold("nocoords"), lat=None, lng=None)

        comps = comp_filter.filter_comps([no_coords], subject, CompSearchParams())

        assert comps == []

    def test_subject_is_never_its_own_comp(self, comp_filter, subject):
        sold_subject = replace(subject, status=ListingStatus.SOLD, sold_price=250000)

        comps = comp_filter.filter_comps([sold_subject], subject, CompSearchParams())

        assert comps == []

    def test_sorted_by_distance_ties_by_id(self, comp_filter, subject, create_sold):
        candidates = [
            create_sold("c", north_miles=0.3),
            create_sold("b", north_miles=0.1),
            create_sold("a", north_miles=0.1),
        ]

        comps = comp_filter.filter_comps(candidates, subject, CompSearchParams())

        assert [c.listing.id for c in comps] == ["a", "b", "c"]
        assert comps[0].distance_miles <= comps[-1].distance_miles

    def test_truncated_to_limit(self, comp_filter, subject, create_sold):
        candidates = [create_sold(f"c{i:02d}", north_miles=0.01 * i) for i in range(20)]

        comps = comp_filter.filter_comps(candidates, subject, CompSearchParams(limit=5))

        assert [c.listing.id for c in comps] == ["c00", "c01", "c02", "c03", "c04"]

    def test_subject_without_coordinates_refused(self, comp_filter, subject, create_sold):
        no_coords = replace(subject, lat=None, lng=None)

        with pytest.raises(MissingCoordinatesError):
            comp_filter.filter_comps([create_sold("a")], no_coords, CompSearchParams())

    def test_missing_coordinates_error_is_value_error(self):
        assert issubclass(MissingCoordinatesError, ValueError)

    def test_subject_without_sqft_skips_band(self, comp_filter, subject, create_sold):
        no_sqft = replace(subject, sqft=0)
        candidates = [create_sold("tiny", north_miles=0.1, sqft=300)]

        comps = comp_filter.filter_comps(candidates, no_sqft, CompSearchParams())

        assert [c.listing.id for c in comps] == ["tiny"]


# =============================================================================
# Test: ARV
# =============================================================================

class TestARVEstimate:
    """ARV = subject sqft x mean comp $/sqft."""

    def _comp(self, create_sold, listing_id, sold_price, sqft):
        return Comp(listing=create_sold(listing_id, sqft=sqft, sold_price=sold_price), distance_miles=0.1)

    def test_arv_uses_mean_price_per_sqft(self, create_sold):
        comps = [
            self._comp(create_sold, "a", 200000, 1000),
            self._comp(create_sold, "b", 220000, 1100),
        ]

        arv = estimate_arv(1200, comps)

        assert isinstance(arv, ARVEstimate)
        assert arv.avg_price_per_sqft == pytest.approx(200)
        assert arv.median_price_per_sqft == pytest.approx(200)
        assert arv.estimated_arv == pytest.approx(240000)
        assert arv.comp_count == 2

    def test_low_and_high_from_extreme_comps(self, create_sold):
        comps = [
            self._comp(create_sold, "a", 150000, 1000),
            self._comp(create_sold, "b", 200000, 1000),
            self._comp(create_sold, "c", 250000, 1000),
        ]

        arv = estimate_arv(1000, comps)

        assert arv.low_arv == pytest.approx(150000)
        assert arv.high_arv == pytest.approx(250000)
        assert arv.median_price_per_sqft == pytest.approx(200)

    def test_no_comps_is_absent_not_zero(self):
        assert estimate_arv(1200, []) is None

    def test_comps_without_sold_price_ignored(self, create_sold):
        unpriced = replace(create_sold("x"), sold_price=None)
        comps = [Comp(listing=unpriced, distance_miles=0.1)]

        assert comps[0].price_per_sqft is None
        assert estimate_arv(1200, comps) is None

    def test_subject_without_sqft_has_no_arv(self, create_sold):
        comps = [self._comp(create_sold, "a", 200000, 1000)]

        assert estimate_arv(0, comps) is None
        assert estimate_arv(None, comps) is None


# =============================================================================
# Test: Valuation Engine
# =============================================================================

class TestValuationEngine:
    """End-to-end comps through a listing source."""

    def test_valuate_builds_report(self, engine, subject, create_sold):
        comps = engine.select(subject, [create_sold("a", north_miles=0.1, sold_price=210000)])

        report = engine.valuate(subject, comps)

        assert report.comp_count == 1
        assert report.has_estimate
        assert report.arv.estimated_arv == pytest.approx(210000)
        assert report.to_dict()["subject_id"] == "subject"

    def test_find_comps_through_source(self, subject, create_sold):
        source = InMemoryListingSource([
            subject,
            create_sold("near", north_miles=0.1),
            create_sold("far", north_miles=2.0),
            create_sold("active", north_miles=0.1, status=ListingStatus.ACTIVE),
        ])
        engine = CompValuationEngine(source)

        report = asyncio.run(engine.find_comps(subject))

        assert [c.listing.id for c in report.comps] == ["near"]
        assert report.arv.estimated_arv == pytest.approx(200000)

    def test_find_comps_empty_is_valid(self, subject):
        engine = CompValuationEngine(InMemoryListingSource([subject]))

        report = asyncio.run(engine.find_comps(subject))

        assert report.comps == []
        assert report.arv is None

    def test_find_comps_propagates_fetch_failure(self, subject):
        engine = CompValuationEngine(InMemoryListingSource(fail=True))

        with pytest.raises(ListingFetchError):
            asyncio.run(engine.find_comps(subject))

    def test_remote_query_params(self, comp_filter, subject):
        query = comp_filter.build_query(subject, CompSearchParams(limit=15))
        params = query.to_params()

        assert ("status", "eq.sold") in params
        assert ("order", "sold_date.desc") in params
        assert ("limit", "60") in params
        assert ("id", "neq.subject") in params
        assert [name for name, _ in params].count("lat") == 2
