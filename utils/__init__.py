"""
Utility modules for proper search.
"""

from .formatting import format_currency, format_percent, format_short_price
from .config import Config, configure_logging

__all__ = ["format_currency", "format_percent", "format_short_price", "Config", "configure_logging"]
