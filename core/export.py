"""
CSV export of selected listings.

One header row, then one row per listing in the order given. Values with
commas, quotes or newlines are quoted by the csv module; missing values are
empty cells and tags are pipe-joined.
"""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Any, Iterable

from .models import Listing


CSV_COLUMNS = [
    "id",
    "address",
    "city",
    "state",
    "zip",
    "price",
    "beds",
    "baths",
    "sqft",
    "equity_pct",
    "property_type",
    "year_built",
    "lat",
    "lng",
    "tags",
]

TAG_SEPARATOR = "|"


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def listing_row(listing: Listing) -> dict[str, str]:
    """Flatten a listing into CSV_COLUMNS cells."""
    return {
        "id": listing.id,
        "address": listing.address,
        "city": listing.city,
        "state": listing.state,
        "zip": listing.zip,
        "price": _cell(listing.price),
        "beds": _cell(listing.beds),
        "baths": _cell(listing.baths),
        "sqft": _cell(listing.sqft),
        "equity_pct": _cell(listing.equity_pct),
        "property_type": listing.property_type.value if listing.property_type else "",
        "year_built": _cell(listing.year_built),
        "lat": _cell(listing.lat),
        "lng": _cell(listing.lng),
        "tags": TAG_SEPARATOR.join(listing.tags),
    }


def _write(listings: Iterable[Listing], handle) -> None:
    writer = csv.DictWriter(handle, fieldnames=CSV_COLUMNS)
    writer.writeheader()
    for listing in listings:
        writer.writerow(listing_row(listing))


def export_listings_csv(listings: Iterable[Listing]) -> str:
    """Render listings as CSV text (\\r\\n line endings)."""
    buffer = io.StringIO()
    _write(listings, buffer)
    return buffer.getvalue()


def write_listings_csv(listings: Iterable[Listing], path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as handle:
        _write(listings, handle)
    return path
