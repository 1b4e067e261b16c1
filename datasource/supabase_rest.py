"""
Supabase listing source.

Queries the `properties` table through Supabase's PostgREST endpoint
(`{SUPABASE_URL}/rest/v1/properties`) with the anon key. Only row data is
fetched; authentication and row-level security are the project's concern.

Every transport or payload problem surfaces as ListingFetchError so callers
can degrade to an empty result set with a notice.
"""

import asyncio
import logging
from typing import Any, List, Optional, Sequence, Tuple

import requests

from core.comp_engine.models import CompQuery
from core.errors import ListingFetchError
from core.models import Listing, ListingStatus
from core.query import RemoteQuery, normalize_text

from .base import MIN_SUGGESTION_CHARS, ListingSource, unique_city_labels


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

TABLE = "properties"
USER_AGENT = "ProperSearch/1.0"
REQUEST_TIMEOUT_SECONDS = 30

# Rows scanned for city autocomplete before de-duplication
SUGGESTION_SCAN_LIMIT = 100


class SupabaseListingSource(ListingSource):
    """
    Listing source backed by a Supabase project.

    Features:
    - One shared requests.Session with apikey/Authorization headers
    - Request timeout on every call
    - Blocking HTTP runs in a worker thread so the event loop stays free
    """

    name = "supabase"

    def __init__(
        self,
        url: str,
        anon_key: str,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        if not url or not anon_key:
            raise ValueError("Supabase url and anon key are required")
        self._endpoint = f"{url.rstrip('/')}/rest/v1/{TABLE}"
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
            "apikey": anon_key,
            "Authorization": f"Bearer {anon_key}",
        })

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def _get_rows(self, params: Sequence[Tuple[str, str]]) -> List[dict]:
        """
        GET the table with PostgREST params.

        Raises:
            ListingFetchError: On network errors, non-2xx replies or a body
                               that is not a JSON list.
        """
        try:
            response = self._session.get(self._endpoint, params=list(params), timeout=self._timeout)
            response.raise_for_status()
            payload: Any = response.json()
        except requests.RequestException as e:
            raise ListingFetchError(f"Supabase request failed: {e}", source=self.name) from e
        except ValueError as e:
            raise ListingFetchError(f"Supabase returned invalid JSON: {e}", source=self.name) from e

        if not isinstance(payload, list):
            raise ListingFetchError("Supabase returned an unexpected payload", source=self.name)
        return [row for row in payload if isinstance(row, dict)]

    async def _fetch(self, params: Sequence[Tuple[str, str]]) -> List[dict]:
        rows = await asyncio.to_thread(self._get_rows, params)
        logger.debug("Fetched %d rows from %s", len(rows), self._endpoint)
        return rows

    async def fetch_listings(self, query: RemoteQuery) -> List[Listing]:
        rows = await self._fetch(query.to_params())
        return [Listing.from_row(row) for row in rows]

    async def fetch_sold(self, query: CompQuery) -> List[Listing]:
        rows = await self._fetch(query.to_params())
        return [Listing.from_row(row) for row in rows]

    async def get_listing(self, listing_id: str) -> Optional[Listing]:
        rows = await self._fetch([("select", "*"), ("id", f"eq.{listing_id}"), ("limit", "1")])
        return Listing.from_row(rows[0]) if rows else None

    async def suggest_cities(self, prefix: str) -> List[str]:
        text = normalize_text(prefix)
        if len(text) < MIN_SUGGESTION_CHARS:
            return []
        rows = await self._fetch([
            ("select", "city,state"),
            ("city", f"ilike.{prefix.strip()}*"),
            ("status", f"eq.{ListingStatus.ACTIVE.value}"),
            ("limit", str(SUGGESTION_SCAN_LIMIT)),
        ])
        return unique_city_labels((row.get("city") or "", row.get("state") or "") for row in rows)

    def close(self) -> None:
        self._session.close()
