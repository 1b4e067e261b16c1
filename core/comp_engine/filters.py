"""
Comp Eligibility Filters

Selects comparable sales for a subject:
- Sale status (sold only)
- Valid coordinates
- Bounding box pre-filter (1 degree latitude ~ 69 miles)
- Square footage band (subject sqft +/- tolerance, inclusive)
- Exact great-circle distance within the radius
"""

import math
from typing import List, Optional, Tuple

from ..errors import MissingCoordinatesError
from ..models import Listing
from .models import CANDIDATE_OVERFETCH, Comp, CompQuery, CompSearchParams


# =============================================================================
# Configuration Constants
# =============================================================================

# Earth radius in miles
EARTH_RADIUS_MILES = 3959.0

MILES_PER_DEGREE_LAT = 69.0


class CompEligibilityFilter:
    """
    Applies hard filters to select eligible comparable sales.

    A candidate must pass ALL filters to qualify as a comp.
    """

    @staticmethod
    def require_coordinates(subject: Listing) -> None:
        """Refuse subjects whose bounding box would be meaningless."""
        if not subject.has_coordinates:
            raise MissingCoordinatesError(subject.id)

    @staticmethod
    def bounding_box(subject: Listing, radius_miles: float) -> Tuple[float, float, float, float]:
        """
        Lat/lng box around the subject.

        The longitude delta is widened by 1 / cos(latitude) to correct for
        meridian convergence.

        Returns:
            (min_lat, max_lat, min_lng, max_lng)
        """
        CompEligibilityFilter.require_coordinates(subject)
        lat_delta = radius_miles / MILES_PER_DEGREE_LAT
        cos_lat = math.cos(math.radians(subject.lat))
        # Near the poles every longitude is within reach
        lng_delta = 180.0 if cos_lat < 1e-9 else radius_miles / (MILES_PER_DEGREE_LAT * cos_lat)
        return (
            subject.lat - lat_delta,
            subject.lat + lat_delta,
            subject.lng - lng_delta,
            subject.lng + lng_delta,
        )

    @staticmethod
    def sqft_range(subject: Listing, tolerance: float) -> Optional[Tuple[float, float]]:
        """Inclusive sqft band, or None when the subject has no positive sqft."""
        if not subject.sqft or subject.sqft <= 0:
            return None
        return (subject.sqft * (1 - tolerance), subject.sqft * (1 + tolerance))

    def build_query(self, subject: Listing, params: CompSearchParams) -> CompQuery:
        """Describe the remote candidate fetch for a subject."""
        min_lat, max_lat, min_lng, max_lng = self.bounding_box(subject, params.radius_miles)
        band = self.sqft_range(subject, params.sqft_tolerance)
        return CompQuery(
            min_lat=min_lat,
            max_lat=max_lat,
            min_lng=min_lng,
            max_lng=max_lng,
            min_sqft=band[0] if band else None,
            max_sqft=band[1] if band else None,
            limit=params.limit * CANDIDATE_OVERFETCH,
            exclude_id=subject.id,
        )

    def filter_comps(
        self,
        candidates: List[Listing],
        subject: Listing,
        params: CompSearchParams,
    ) -> List[Comp]:
        """
        Filter candidates to eligible comps, nearest first.

        Args:
            candidates: Potential comparable sales
            subject: The listing being valued
            params: Radius, sqft tolerance and limit

        Returns:
            Up to params.limit comps sorted by distance (ties by id)

        Raises:
            MissingCoordinatesError: If the subject has no valid coordinates
        """
        query = self.build_query(subject, params)

        comps = []
        for candidate in candidates:
            # Box, status, coordinates and sqft band
            if not query.matches(candidate):
                continue

            distance = self.haversine_distance(
                subject.lat, subject.lng,
                candidate.lat, candidate.lng,
            )

            # Box corners lie outside the radius
            if distance > params.radius_miles:
                continue

            comps.append(Comp(listing=candidate, distance_miles=distance))

        comps.sort(key=lambda c: (c.distance_miles, c.listing.id))
        return comps[: params.limit]

    @staticmethod
    def haversine_distance(
        lat1: float, lon1: float,
        lat2: float, lon2: float,
    ) -> float:
        """
        Calculate distance between two points in miles using Haversine formula.

        Args:
            lat1, lon1: First point coordinates (degrees)
            lat2, lon2: Second point coordinates (degrees)

        Returns:
            Distance in miles
        """
        # Convert to radians
        lat1_rad = math.radians(lat1)
        lat2_rad = math.radians(lat2)
        dlat = math.radians(lat2 - lat1)
        dlon = math.radians(lon2 - lon1)

        # Haversine formula
        a = (
            math.sin(dlat / 2) ** 2
            + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
        )
        c = 2 * math.asin(math.sqrt(a))

        return EARTH_RADIUS_MILES * c

    def distance_between(self, subject: Listing, other: Listing) -> float:
        """Distance in miles between two listings with valid coordinates."""
        self.require_coordinates(subject)
        self.require_coordinates(other)
        return self.haversine_distance(subject.lat, subject.lng, other.lat, other.lng)
