"""
FastAPI application for the property search map.

JSON API over the core pipeline. Recoverable failures never surface as a
stack trace: a remote-store outage yields an empty result set plus a
one-line notice, unknown listings are 404 and unusable comps subjects 422.
"""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from core.comp_engine import CompSearchParams, CompValuationEngine
from core.errors import ListingFetchError, MissingCoordinatesError
from core.export import export_listings_csv
from core.local_store import (
    FavoritesRepository,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
    SavedSearchRepository,
)
from core.market_stats import compute_market_stats
from core.models import Listing
from core.mortgage import MortgageEstimate
from core.query import build_remote_query
from core.search import FETCH_FAILED_NOTICE, evaluate
from datasource import InMemoryListingSource, ListingSource, SupabaseListingSource
from utils.config import Config
from utils.formatting import format_currency, format_percent, format_short_price
from web.library_routes import router as library_router
from web.schemas import CompsRequest, ExportRequest, SearchRequest


logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"

COMPS_FAILED_NOTICE = "Unable to load comparable sales. Please try again."
CITIES_FAILED_NOTICE = "Unable to load city suggestions."


# =============================================================================
# Wiring
# =============================================================================


def build_source(config: Config) -> ListingSource:
    """Supabase when configured, else a local JSON file, else an empty store."""
    if config.has_supabase:
        return SupabaseListingSource(
            config.supabase_url,
            config.supabase_anon_key,
            timeout=config.request_timeout,
        )
    if config.listings_path:
        return InMemoryListingSource.from_json_file(config.listings_path)
    logger.warning("No SUPABASE_URL or LISTINGS_PATH configured; serving an empty listing store")
    return InMemoryListingSource()


def build_store(config: Config) -> KeyValueStore:
    if config.store_path:
        return JsonFileKeyValueStore(config.store_path)
    return InMemoryKeyValueStore()


def listing_payload(listing: Listing) -> dict:
    """Listing as JSON plus display labels."""
    payload = listing.to_dict()
    payload["full_address"] = listing.full_address
    payload["price_label"] = format_short_price(listing.price)
    payload["price_per_sqft"] = listing.computed_price_per_sqft()
    return payload


# =============================================================================
# Application
# =============================================================================


def create_app(
    source: Optional[ListingSource] = None,
    store: Optional[KeyValueStore] = None,
    config: Optional[Config] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or Config.load()
    source = source or build_source(config)
    store = store or build_store(config)

    app = FastAPI(
        title="Proper Search",
        description="Map-centric property search, comps and market insights",
        version=APP_VERSION,
        debug=config.debug,
    )

    app.state.config = config
    app.state.source = source
    app.state.saved_searches = SavedSearchRepository(store)
    app.state.favorites = FavoritesRepository(store)

    comp_engine = CompValuationEngine(source)

    # Healthcheck endpoints perform no IO
    @app.get("/", include_in_schema=False)
    def root():
        return {"status": "ok"}

    @app.get("/health", include_in_schema=False)
    def health():
        return {"status": "healthy"}

    if config.debug:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
            allow_headers=["*"],
        )

    app.include_router(library_router)

    @app.get("/api/health")
    async def api_health():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": APP_VERSION,
            "source": source.name,
        }

    @app.get("/api/config")
    async def client_config():
        """Non-secret settings the client needs (debounce, comp defaults)."""
        return config.to_dict()

    @app.post("/api/search")
    async def search(request: SearchRequest):
        """
        Fetch, filter and sort listings.

        Returns listings, count, market stats and an error notice (None on
        success). A fetch failure is an empty result set, not an HTTP error.
        """
        criteria = request.filters.to_criteria()
        remote = build_remote_query(
            request.query,
            criteria,
            bounds=request.bounds.to_bounds() if request.bounds else None,
            limit=request.limit or config.search_limit,
        )

        try:
            fetched = await source.fetch_listings(remote)
        except ListingFetchError as e:
            logger.warning("Search fetch failed: %s", e)
            return {"listings": [], "count": 0, "stats": None, "error": FETCH_FAILED_NOTICE}

        listings = evaluate(fetched, request.query, criteria, request.sort)
        stats = compute_market_stats(listings) if request.include_stats else None
        return {
            "listings": [listing_payload(l) for l in listings],
            "count": len(listings),
            "stats": stats.to_dict() if stats else None,
            "error": None,
        }

    @app.get("/api/cities")
    async def cities(q: str = ""):
        try:
            suggestions = await source.suggest_cities(q)
        except ListingFetchError as e:
            logger.warning("City suggestions failed: %s", e)
            return {"cities": [], "error": CITIES_FAILED_NOTICE}
        return {"cities": suggestions, "error": None}

    async def _require_listing(listing_id: str) -> Listing:
        try:
            listing = await source.get_listing(listing_id)
        except ListingFetchError as e:
            logger.warning("Listing lookup failed for %s: %s", listing_id, e)
            raise HTTPException(status_code=503, detail=FETCH_FAILED_NOTICE)
        if listing is None:
            raise HTTPException(status_code=404, detail=f"Listing {listing_id} not found")
        return listing

    @app.get("/api/listings/{listing_id}")
    async def get_listing(listing_id: str):
        listing = await _require_listing(listing_id)
        payload = listing_payload(listing)
        payload["is_favorite"] = app.state.favorites.is_favorite(listing_id)
        return payload

    @app.post("/api/comps")
    async def comps(request: CompsRequest):
        """
        Comparable sales and ARV for a listing.

        arv is None when the comps carry no usable price per sqft.
        """
        subject = await _require_listing(request.listing_id)
        params = CompSearchParams(
            radius_miles=request.radius_miles or config.comp_radius_miles,
            sqft_tolerance=(
                request.sqft_tolerance
                if request.sqft_tolerance is not None
                else config.comp_sqft_tolerance
            ),
            limit=request.limit or config.comp_limit,
        )

        try:
            report = await comp_engine.find_comps(subject, params)
        except MissingCoordinatesError as e:
            raise HTTPException(status_code=422, detail=str(e))
        except ListingFetchError as e:
            logger.warning("Comps fetch failed for %s: %s", subject.id, e)
            return {
                "subject_id": subject.id,
                "params": params.to_dict(),
                "comps": [],
                "arv": None,
                "error": COMPS_FAILED_NOTICE,
            }

        payload = report.to_dict()
        payload["error"] = None
        if report.arv is not None:
            payload["arv"]["estimated_arv_label"] = format_currency(report.arv.estimated_arv)
        return payload

    @app.post("/api/export")
    async def export(request: ExportRequest):
        """CSV attachment for the selected listings; unknown ids are skipped."""
        listings = []
        for listing_id in request.listing_ids:
            try:
                listing = await source.get_listing(listing_id)
            except ListingFetchError as e:
                logger.warning("Export lookup failed for %s: %s", listing_id, e)
                raise HTTPException(status_code=503, detail=FETCH_FAILED_NOTICE)
            if listing is not None:
                listings.append(listing)

        return Response(
            content=export_listings_csv(listings),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{request.filename}"'},
        )

    @app.get("/api/mortgage")
    async def mortgage(
        price: float = Query(..., ge=0),
        down_payment_pct: float = Query(20.0, ge=0, le=100),
        rate: float = Query(7.0, ge=0),
        years: int = Query(30, ge=1, le=50),
    ):
        estimate = MortgageEstimate.from_price(
            price,
            down_payment_pct=down_payment_pct,
            annual_rate_pct=rate,
            years=years,
        )
        payload = estimate.to_dict()
        payload["monthly_payment_label"] = format_currency(estimate.monthly_payment)
        payload["rate_label"] = format_percent(rate, decimals=2)
        return payload

    return app


# Create app instance for uvicorn
app = create_app()
