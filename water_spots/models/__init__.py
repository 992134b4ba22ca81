"""
Models Module - Entities and Pydantic Schemas
Data validation and type safety
"""
from .spot import (
    # Enumerations
    ALL,
    Ward,
    Category,
    CATEGORY_ICONS,

    # Entity
    Coordinates,
    OperatingHours,
    WaterSpot,
    SpotBatch,
    create_spot,
    create_spots,
)

from .schemas import (
    # Requests
    FilterCriteria,
    UserLocation,
    parse_filter_criteria,
    parse_user_location,

    # Responses
    DiscoveryResult,
    SearchResult,
    NearbyResult,
)

__all__ = [
    # Enumerations
    'ALL',
    'Ward',
    'Category',
    'CATEGORY_ICONS',

    # Entity
    'Coordinates',
    'OperatingHours',
    'WaterSpot',
    'SpotBatch',
    'create_spot',
    'create_spots',

    # Requests
    'FilterCriteria',
    'UserLocation',
    'parse_filter_criteria',
    'parse_user_location',

    # Responses
    'DiscoveryResult',
    'SearchResult',
    'NearbyResult',
]
