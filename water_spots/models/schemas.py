"""
Pydantic Models for Water Spot Discovery
Filter criteria, user location and result envelopes
"""

from collections.abc import Mapping
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from water_spots.errors import UsageError
from water_spots.models.spot import ALL, Category, Coordinates, Ward, WaterSpot

# "No filter" sentinels of the legacy web UI
LEGACY_ALL_WARDS = '全区'
LEGACY_ALL_CATEGORIES = '全て'


class FilterCriteria(BaseModel):
    """
    Closed filter structure for list queries; unknown keys are rejected
    """
    ward: Union[Ward, Literal['all']] = Field(ALL, description="Ward or 'all'")
    category: Union[Category, Literal['all']] = Field(ALL, description="Category or 'all'")
    open_only: bool = Field(False, alias='openOnly', description="Only spots open right now")

    model_config = ConfigDict(
        frozen=True,
        extra='forbid',
        populate_by_name=True,
        json_schema_extra={
            "examples": [{
                "ward": "川崎区",
                "category": "all",
                "open_only": False
            }]
        },
    )

    @field_validator('ward', mode='before')
    @classmethod
    def normalize_ward(cls, v):
        if v is None or v == '' or v == LEGACY_ALL_WARDS:
            return ALL
        return v

    @field_validator('category', mode='before')
    @classmethod
    def normalize_category(cls, v):
        if v is None or v == '' or v == LEGACY_ALL_CATEGORIES:
            return ALL
        return v

    @property
    def all_wards(self) -> bool:
        return self.ward == ALL

    @property
    def all_categories(self) -> bool:
        return self.category == ALL

    @property
    def ward_key(self) -> str:
        return ALL if self.all_wards else self.ward.value


class UserLocation(Coordinates):
    """
    Position of the caller, used for distance ranking
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "examples": [{
                "latitude": 35.5308,
                "longitude": 139.7029
            }]
        },
    )


class DiscoveryResult(BaseModel):
    """
    Filtered, sorted list of water spots
    """
    results: List[WaterSpot] = Field(default_factory=list, description="Matching spots")
    total: int = Field(0, description="Number of results")
    filters: Optional[FilterCriteria] = Field(None, description="Applied filter criteria")

    model_config = ConfigDict(frozen=True)


class SearchResult(BaseModel):
    """
    Free-text search result
    """
    results: List[WaterSpot] = Field(default_factory=list)
    total: int = 0
    search_term: str = Field(..., description="Normalized search term")

    model_config = ConfigDict(frozen=True)


class NearbyResult(BaseModel):
    """
    Spots within a radius of the caller, nearest first
    """
    results: List[WaterSpot] = Field(default_factory=list)
    total: int = 0
    user_location: UserLocation
    radius_km: float

    model_config = ConfigDict(frozen=True)


# ============================================
# BOUNDARY PARSING
# ============================================

def _describe(error: PydanticValidationError) -> str:
    return '; '.join(
        f"{'.'.join(str(part) for part in err['loc']) or 'value'}: {err['msg']}"
        for err in error.errors()
    )


def parse_filter_criteria(params: Any = None) -> FilterCriteria:
    """
    Build FilterCriteria from caller input

    Args:
        params: FilterCriteria, mapping of filter fields, or None for no filter

    Returns:
        FilterCriteria

    Raises:
        UsageError: On unknown keys or values outside the ward/category sets
    """
    if isinstance(params, FilterCriteria):
        return params
    if params is None:
        return FilterCriteria()
    if not isinstance(params, Mapping):
        raise UsageError('Filter criteria must be a mapping')

    try:
        return FilterCriteria.model_validate(dict(params))
    except PydanticValidationError as e:
        raise UsageError(f"Invalid filter criteria ({_describe(e)})") from e


def parse_user_location(value: Any) -> Optional[UserLocation]:
    """
    Build UserLocation from caller input

    Accepts {"latitude", "longitude"} or the short {"lat", "lon"} form.

    Raises:
        UsageError: If coordinates are missing, non-numeric or out of range
    """
    if value is None or isinstance(value, UserLocation):
        return value
    if isinstance(value, Coordinates):
        return UserLocation(latitude=value.latitude, longitude=value.longitude)
    if not isinstance(value, Mapping):
        raise UsageError('User location must be a mapping with latitude and longitude')

    data = {
        'latitude': value.get('latitude', value.get('lat')),
        'longitude': value.get('longitude', value.get('lon')),
    }
    try:
        return UserLocation.model_validate(data)
    except PydanticValidationError as e:
        raise UsageError(f"Invalid user location ({_describe(e)})") from e
