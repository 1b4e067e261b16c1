"""
Request models for the JSON API.

Filter fields accept the browser client's camelCase keys (minBeds,
maxPrice, ...) as well as snake_case names.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.models import Bounds, FilterCriteria, PropertyType, SortOption


class FiltersInput(BaseModel):
    """Structured search constraints."""

    model_config = ConfigDict(populate_by_name=True)

    city: Optional[str] = None
    min_beds: Optional[int] = Field(None, alias="minBeds", ge=0)
    max_price: Optional[float] = Field(None, alias="maxPrice", ge=0)
    min_sqft: Optional[float] = Field(None, alias="minSqft", ge=0)
    property_type: Optional[PropertyType] = Field(None, alias="propertyType")
    absentee: bool = False
    high_equity: bool = Field(False, alias="highEquity")
    vacant: bool = False

    def to_criteria(self) -> FilterCriteria:
        return FilterCriteria(
            min_beds=self.min_beds,
            max_price=self.max_price,
            min_sqft=self.min_sqft,
            city=(self.city or "").strip() or None,
            property_type=self.property_type,
            absentee=self.absentee,
            high_equity=self.high_equity,
            vacant=self.vacant,
        )


class BoundsInput(BaseModel):
    north: float = Field(..., ge=-90, le=90)
    south: float = Field(..., ge=-90, le=90)
    east: float = Field(..., ge=-180, le=180)
    west: float = Field(..., ge=-180, le=180)

    def to_bounds(self) -> Bounds:
        return Bounds(north=self.north, south=self.south, east=self.east, west=self.west)


class SearchRequest(BaseModel):
    query: str = ""
    filters: FiltersInput = Field(default_factory=FiltersInput)
    sort: Optional[SortOption] = None
    bounds: Optional[BoundsInput] = None
    limit: Optional[int] = Field(None, ge=1, le=5000)
    include_stats: bool = True


class CompsRequest(BaseModel):
    """Subject is looked up by id. Unset parameters fall back to configuration."""

    listing_id: str
    radius_miles: Optional[float] = Field(None, gt=0)
    sqft_tolerance: Optional[float] = Field(None, ge=0, lt=1)
    limit: Optional[int] = Field(None, ge=1, le=100)


class ExportRequest(BaseModel):
    listing_ids: List[str] = Field(..., min_length=1)
    filename: str = "properties.csv"


class SaveSearchRequest(BaseModel):
    name: str = ""
    query: str = ""
    filters: FiltersInput = Field(default_factory=FiltersInput)
    selected_id: Optional[str] = None


class FavoriteRequest(BaseModel):
    tags: List[str] = Field(default_factory=list)
