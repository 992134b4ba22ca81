"""
Main Entry Point for Water Spot Discovery
Wires loader, repository, cache and use-case together explicitly
"""
from pathlib import Path
from typing import Optional, Union

from water_spots.api import Tools, get_discovery_tools
from water_spots.config import CACHE_ENABLED, DATA_DIR, DEFAULT_CACHE_TTL_SECONDS, get_logger, setup_logging
from water_spots.core import DiscoveryService, JsonWardDataLoader, SpotRepository
from water_spots.utils import TTLCache

logger = get_logger(__name__)

# ============================================
# INITIALIZATION FUNCTIONS
# ============================================


def build_discovery_service(data_dir: Optional[Union[str, Path]] = None,
                            cache_enabled: Optional[bool] = None,
                            configure_logs: bool = True) -> DiscoveryService:
    """
    Build a ready-to-use DiscoveryService

    Args:
        data_dir: Directory holding the ward JSON files (default DATA_DIR)
        cache_enabled: Override CACHE_ENABLED
        configure_logs: Install the engine's log handlers (off when the
            host application configures logging itself)

    Returns:
        DiscoveryService instance
    """
    if configure_logs:
        setup_logging()
    if cache_enabled is None:
        cache_enabled = CACHE_ENABLED

    loader = JsonWardDataLoader(data_dir if data_dir is not None else DATA_DIR)
    repository = SpotRepository(loader)
    cache = TTLCache(default_ttl=DEFAULT_CACHE_TTL_SECONDS) if cache_enabled else None

    logger.info("Water spot discovery ready (data: %s, cache: %s)",
                loader.data_dir, "on" if cache is not None else "off")

    return DiscoveryService(repository, cache=cache)


def get_tools(service: DiscoveryService) -> Tools:
    """Get configured tools for the function calling interface"""
    return get_discovery_tools(service)


def shutdown(service: DiscoveryService):
    """Cancel pending cache timers and drop cached entries"""
    if service.cache is not None:
        service.cache.close()


# ============================================
# EXPORTS
# ============================================

__all__ = [
    'build_discovery_service',
    'get_tools',
    'shutdown',
]
