"""
Configuration Module for the Water Spot Discovery Engine
"""
from .settings import (
    # Data source
    DATA_DIR,
    WARD_DATA_FILES,

    # Timezone
    TIMEZONE,
    JST_TZ,
    get_jst_now,

    # Cache
    CACHE_ENABLED,
    DEFAULT_CACHE_TTL_SECONDS,
    LIST_CACHE_TTL_SECONDS,
    DETAIL_CACHE_TTL_SECONDS,

    # Search Parameters
    DEFAULT_NEARBY_RADIUS_KM,
    MIN_SEARCH_TERM_LENGTH,

    # Tracing
    PHOENIX_PROJECT_NAME,
    PHOENIX_API_KEY,
)

from .logging_config import (
    setup_logging,
    reset_logging,
    get_logger,
)

__all__ = [
    # Data source
    'DATA_DIR',
    'WARD_DATA_FILES',

    # Timezone
    'TIMEZONE',
    'JST_TZ',
    'get_jst_now',

    # Cache
    'CACHE_ENABLED',
    'DEFAULT_CACHE_TTL_SECONDS',
    'LIST_CACHE_TTL_SECONDS',
    'DETAIL_CACHE_TTL_SECONDS',

    # Search Parameters
    'DEFAULT_NEARBY_RADIUS_KM',
    'MIN_SEARCH_TERM_LENGTH',

    # Tracing
    'PHOENIX_PROJECT_NAME',
    'PHOENIX_API_KEY',

    # Logging
    'setup_logging',
    'reset_logging',
    'get_logger',
]
