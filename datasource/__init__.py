"""
Data source module for fetching property listings.

Available sources:
- InMemoryListingSource: Development/testing from a JSON file or a list of rows
- SupabaseListingSource: Live listings from a Supabase (PostgREST) `properties` table
"""

from .base import ListingSource
from .memory import InMemoryListingSource
from .supabase_rest import SupabaseListingSource

__all__ = [
    "ListingSource",
    "InMemoryListingSource",
    "SupabaseListingSource",
]
