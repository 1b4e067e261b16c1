"""
Base listing source interface.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from core.comp_engine.models import CompQuery
from core.models import Listing
from core.query import RemoteQuery


# Suggestions need at least this many characters
MIN_SUGGESTION_CHARS = 2
MAX_CITY_SUGGESTIONS = 8


class ListingSource(ABC):
    """Abstract base class for remote listing stores."""

    name: str = "base"

    @abstractmethod
    async def fetch_listings(self, query: RemoteQuery) -> List[Listing]:
        """
        Fetch listings matching a remote query.

        Args:
            query: Text, criteria, bounds, status and limit.

        Returns:
            Up to query.limit Listing objects.

        Raises:
            ListingFetchError: If the store cannot be reached or replies badly.
        """
        pass

    @abstractmethod
    async def fetch_sold(self, query: CompQuery) -> List[Listing]:
        """
        Fetch sold candidates for comparable-sales selection.

        Args:
            query: Bounding box, sqft band and limit, newest sales first.

        Returns:
            Up to query.limit sold Listing objects.
        """
        pass

    @abstractmethod
    async def get_listing(self, listing_id: str) -> Optional[Listing]:
        """
        Fetch a single listing.

        Args:
            listing_id: Unique identifier for the listing.

        Returns:
            Listing, or None if not found.
        """
        pass

    @abstractmethod
    async def suggest_cities(self, prefix: str) -> List[str]:
        """
        Autocomplete "City, ST" labels for a typed prefix.

        Fewer than MIN_SUGGESTION_CHARS characters yields no suggestions;
        at most MAX_CITY_SUGGESTIONS unique labels are returned.
        """
        pass


def city_label(city: str, state: str) -> str:
    return f"{city}, {state}" if state else city


def unique_city_labels(rows, limit: int = MAX_CITY_SUGGESTIONS) -> List[str]:
    """Unique "City, ST" labels from (city, state) pairs, in first-seen order."""
    labels: List[str] = []
    for city, state in rows:
        if not city:
            continue
        label = city_label(city, state)
        if label not in labels:
            labels.append(label)
        if len(labels) >= limit:
            break
    return labels
