"""
Utilities Module - Helper Functions
"""
from .text import (
    shorten,
    clean_text,
    normalize_search_term,
    contains_term,
    collation_key,
)

from .geo import (
    distance_km,
    format_distance,
    calculate_bounding_box,
    within_bounding_box,
)

from .hours import (
    select_day_hours,
    parse_time_range,
    is_open,
    hours_summary,
    format_operating_hours,
)

from .caching import CacheEntry, TTLCache

__all__ = [
    # Text utilities
    'shorten',
    'clean_text',
    'normalize_search_term',
    'contains_term',
    'collation_key',

    # Geo utilities
    'distance_km',
    'format_distance',
    'calculate_bounding_box',
    'within_bounding_box',

    # Hours utilities
    'select_day_hours',
    'parse_time_range',
    'is_open',
    'hours_summary',
    'format_operating_hours',

    # Caching
    'CacheEntry',
    'TTLCache',
]
