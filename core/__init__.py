"""
Proper Search - Core Pipeline

This module provides the search pipeline behind the map UI:
1. Query Builder (text + FilterCriteria -> predicate / remote query)
2. Result Set Evaluator (filter + stable sort, stale-response guard)
3. Comparable-Sales Engine (radius + sqft band comps, ARV)
4. Market Statistics Aggregator (dashboard aggregates)
5. View State Synchronizer (fit-to-results vs pan-to-active)
"""

from .errors import ListingFetchError, MissingCoordinatesError, ProperSearchError
from .models import (
    Bounds,
    FilterCriteria,
    Listing,
    ListingStatus,
    PropertyType,
    SortOption,
    QUICK_FILTER_TAGS,
    normalize_tag,
    normalize_tags,
)
from .query import RemoteQuery, build_predicate, build_remote_query
from .search import SearchOutcome, SearchSession, evaluate, sort_listings
from .debounce import QueryDebouncer

# Comparable-Sales Engine
from .comp_engine import (
    ARVEstimate,
    Comp,
    CompEligibilityFilter,
    CompQuery,
    CompReport,
    CompSearchParams,
    CompValuationEngine,
    estimate_arv,
)

from .market_stats import MarketStats, compute_market_stats, mean, median
from .view_sync import (
    ActiveChanged,
    FitBounds,
    FitRequested,
    PanTo,
    ViewportMoved,
    ViewState,
    Viewport,
    reduce,
    synchronize,
)

# Local persistence and export
from .local_store import (
    FavoritesRepository,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    SavedSearchRepository,
)
from .export import CSV_COLUMNS, export_listings_csv, write_listings_csv
from .mortgage import MortgageEstimate, monthly_payment

__all__ = [
    # Errors
    "ProperSearchError",
    "ListingFetchError",
    "MissingCoordinatesError",
    # Models
    "Bounds",
    "FilterCriteria",
    "Listing",
    "ListingStatus",
    "PropertyType",
    "SortOption",
    "QUICK_FILTER_TAGS",
    "normalize_tag",
    "normalize_tags",
    # Query Builder / Result Set Evaluator
    "RemoteQuery",
    "build_predicate",
    "build_remote_query",
    "SearchOutcome",
    "SearchSession",
    "evaluate",
    "sort_listings",
    "QueryDebouncer",
    # Comparable-Sales Engine
    "ARVEstimate",
    "Comp",
    "CompEligibilityFilter",
    "CompQuery",
    "CompReport",
    "CompSearchParams",
    "CompValuationEngine",
    "estimate_arv",
    # Market Statistics
    "MarketStats",
    "compute_market_stats",
    "mean",
    "median",
    # View State Synchronizer
    "ActiveChanged",
    "FitBounds",
    "FitRequested",
    "PanTo",
    "ViewportMoved",
    "ViewState",
    "Viewport",
    "reduce",
    "synchronize",
    # Local store / export
    "FavoritesRepository",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "SavedSearchRepository",
    "CSV_COLUMNS",
    "export_listings_csv",
    "write_listings_csv",
    "MortgageEstimate",
    "monthly_payment",
]
