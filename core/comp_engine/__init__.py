"""
Comparable-Sales Engine

Finds sold listings near a subject within a square-footage tolerance,
ranks them by great-circle distance and derives an ARV (after-repair value)
from their price per square foot.
"""

from .models import (
    ARVEstimate,
    Comp,
    CompQuery,
    CompReport,
    CompSearchParams,
    DEFAULT_COMP_LIMIT,
    DEFAULT_RADIUS_MILES,
    DEFAULT_SQFT_TOLERANCE,
)
from .filters import CompEligibilityFilter, EARTH_RADIUS_MILES
from .valuation import CompValuationEngine, estimate_arv

__all__ = [
    # Models
    "ARVEstimate",
    "Comp",
    "CompQuery",
    "CompReport",
    "CompSearchParams",
    "DEFAULT_COMP_LIMIT",
    "DEFAULT_RADIUS_MILES",
    "DEFAULT_SQFT_TOLERANCE",
    # Engine
    "CompEligibilityFilter",
    "CompValuationEngine",
    "EARTH_RADIUS_MILES",
    "estimate_arv",
]
