"""
Error types for the property search pipeline.

Nothing raised here is fatal to the process: callers degrade to an empty
result set or an absent value plus a user-visible notice.
"""


class ProperSearchError(Exception):
    """Base exception for the property search pipeline."""

    pass


class ListingFetchError(ProperSearchError):
    """Raised when the remote listing store cannot be queried."""

    def __init__(self, message: str, *, source: str = ""):
        self.source = source
        super().__init__(f"{source}: {message}" if source else message)


class MissingCoordinatesError(ProperSearchError, ValueError):
    """Raised when a distance computation is requested for a listing without valid lat/lng."""

    def __init__(self, listing_id: str):
        self.listing_id = listing_id
        super().__init__(f"Listing {listing_id} has no valid coordinates")
