"""
In-memory listing source for development and testing.
Evaluates remote queries locally against a fixed set of rows, optionally
loaded from a JSON file.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from core.comp_engine.models import CompQuery
from core.errors import ListingFetchError
from core.models import Listing, ListingStatus
from core.query import RemoteQuery, normalize_text

from .base import MIN_SUGGESTION_CHARS, ListingSource, unique_city_labels


logger = logging.getLogger(__name__)


class InMemoryListingSource(ListingSource):
    """Listing source over a list of Listings held in memory."""

    name = "memory"

    def __init__(self, listings: Iterable[Listing] = (), fail: bool = False):
        """
        Initialize in-memory source.

        Args:
            listings: Listings to serve.
            fail: Raise ListingFetchError on every fetch (for exercising
                  failure paths).
        """
        self._listings: List[Listing] = list(listings)
        self.fail = fail

    @classmethod
    def from_rows(cls, rows: Iterable[dict], **kwargs) -> "InMemoryListingSource":
        return cls([Listing.from_row(row) for row in rows], **kwargs)

    @classmethod
    def from_json_file(cls, path: Union[str, Path], **kwargs) -> "InMemoryListingSource":
        """
        Load rows from a JSON file holding a list of snake_case rows.

        Raises:
            ListingFetchError: If the file cannot be read or is not a list.
        """
        path = Path(path)
        try:
            rows = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ListingFetchError(f"Could not load listings from {path}: {e}", source=cls.name) from e
        if not isinstance(rows, list):
            raise ListingFetchError(f"Expected a list of rows in {path}", source=cls.name)
        logger.info("Loaded %d listings from %s", len(rows), path)
        return cls.from_rows(rows, **kwargs)

    @property
    def listings(self) -> List[Listing]:
        return list(self._listings)

    def add(self, listing: Listing) -> None:
        self._listings.append(listing)

    def _check_available(self) -> None:
        if self.fail:
            raise ListingFetchError("In-memory source configured to fail", source=self.name)

    async def fetch_listings(self, query: RemoteQuery) -> List[Listing]:
        self._check_available()
        return [l for l in self._listings if query.matches(l)][: query.limit]

    async def fetch_sold(self, query: CompQuery) -> List[Listing]:
        self._check_available()
        matches = [l for l in self._listings if query.matches(l)]
        # Newest sales first; missing dates last
        matches.sort(key=lambda l: l.sold_date or "", reverse=True)
        return matches[: query.limit]

    async def get_listing(self, listing_id: str) -> Optional[Listing]:
        self._check_available()
        return next((l for l in self._listings if l.id == listing_id), None)

    async def suggest_cities(self, prefix: str) -> List[str]:
        text = normalize_text(prefix)
        if len(text) < MIN_SUGGESTION_CHARS:
            return []
        self._check_available()
        rows = (
            (l.city, l.state)
            for l in self._listings
            if l.status == ListingStatus.ACTIVE and normalize_text(l.city).startswith(text)
        )
        return unique_city_labels(rows)
