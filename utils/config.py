"""
Configuration management.
"""

import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Optional


def _env_float(name: str, default: str) -> float:
    return float(os.getenv(name, default))


@dataclass
class Config:
    """
    Application configuration.

    Loads from environment variables with sensible defaults.
    """

    # Server
    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    # Remote listing store
    supabase_url: Optional[str] = field(default_factory=lambda: os.getenv("SUPABASE_URL") or None)
    supabase_anon_key: Optional[str] = field(
        default_factory=lambda: os.getenv("SUPABASE_ANON_KEY") or None
    )
    request_timeout: int = field(default_factory=lambda: int(os.getenv("REQUEST_TIMEOUT", "30")))

    # Local data
    listings_path: Optional[str] = field(default_factory=lambda: os.getenv("LISTINGS_PATH") or None)
    store_path: Optional[str] = field(default_factory=lambda: os.getenv("STORE_PATH") or None)

    # Search
    search_limit: int = field(default_factory=lambda: int(os.getenv("SEARCH_LIMIT", "500")))
    debounce_ms: int = field(default_factory=lambda: int(os.getenv("DEBOUNCE_MS", "175")))

    # Comps
    comp_radius_miles: float = field(default_factory=lambda: _env_float("COMP_RADIUS_MILES", "0.5"))
    comp_sqft_tolerance: float = field(
        default_factory=lambda: _env_float("COMP_SQFT_TOLERANCE", "0.2")
    )
    comp_limit: int = field(default_factory=lambda: int(os.getenv("COMP_LIMIT", "15")))

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()

    @property
    def has_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    def to_dict(self) -> dict:
        """Convert config to dictionary. The anon key is never included."""
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "log_level": self.log_level,
            "supabase_url": self.supabase_url,
            "supabase_configured": self.has_supabase,
            "request_timeout": self.request_timeout,
            "listings_path": self.listings_path,
            "store_path": self.store_path,
            "search_limit": self.search_limit,
            "debounce_ms": self.debounce_ms,
            "comp_radius_miles": self.comp_radius_miles,
            "comp_sqft_tolerance": self.comp_sqft_tolerance,
            "comp_limit": self.comp_limit,
        }


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the server process."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    root_logger.addHandler(handler)

    # Suppress noisy third-party loggers
    logging.getLogger("urllib3").setLevel(logging.WARNING)
