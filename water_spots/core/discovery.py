"""
DiscoveryService Class
Combines repository, cache, distance and opening hours into the list,
detail, search and nearby queries
"""

import json
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from opentelemetry.trace import Status, StatusCode

from water_spots.config import (
    DEFAULT_NEARBY_RADIUS_KM,
    DETAIL_CACHE_TTL_SECONDS,
    LIST_CACHE_TTL_SECONDS,
    get_jst_now,
)
from water_spots.core.repository import SpotRepository
from water_spots.errors import DiscoveryError, NotFoundError, UpstreamError, UsageError, ValidationError
from water_spots.models import (
    ALL,
    DiscoveryResult,
    FilterCriteria,
    NearbyResult,
    SearchResult,
    UserLocation,
    Ward,
    WaterSpot,
    create_spot,
    create_spots,
    parse_filter_criteria,
    parse_user_location,
)
from water_spots.tracing import tracer
from water_spots.utils import TTLCache, collation_key, distance_km, normalize_search_term

logger = logging.getLogger(__name__)

LIST_CACHE_PREFIX = 'water-spots:list:'
DETAIL_CACHE_PREFIX = 'water-spot:detail:'


def make_list_cache_key(criteria: FilterCriteria) -> str:
    """
    Cache key for a list page

    The ward leads the key so one ward's pages can be invalidated by prefix;
    the criteria are serialized with sorted keys so logically identical
    criteria always produce the same key.
    """
    payload = json.dumps(
        criteria.model_dump(mode='json'),
        sort_keys=True,
        ensure_ascii=False,
        separators=(',', ':'),
    )
    return f"{LIST_CACHE_PREFIX}{criteria.ward_key}:{payload}"


def make_detail_cache_key(spot_id: str) -> str:
    return f"{DETAIL_CACHE_PREFIX}{spot_id}"


def attach_distances(spots: List[WaterSpot], location: UserLocation) -> List[WaterSpot]:
    """Copies of spots carrying their distance from location"""
    return [
        spot.with_distance(distance_km(
            location.latitude, location.longitude,
            spot.location.latitude, spot.location.longitude
        ))
        for spot in spots
    ]


def sort_spots(spots: List[WaterSpot], by_distance: bool) -> List[WaterSpot]:
    """
    Order results

    By distance ascending (spots without distance last), otherwise by
    ward, category and name under the Japanese collation key.
    """
    if by_distance:
        return sorted(spots, key=lambda s: (s.distance_km is None, s.distance_km or 0.0))

    return sorted(spots, key=lambda s: (
        collation_key(s.ward.value),
        collation_key(s.category.value),
        collation_key(s.name),
    ))


class DiscoveryService:
    """
    Water spot discovery use-cases

    Collaborators are injected; pass cache=None to run without caching.
    Every call either returns a complete result or raises a DiscoveryError.
    """

    def __init__(self, repository: SpotRepository, cache: Optional[TTLCache] = None,
                 now: Callable[[], datetime] = get_jst_now,
                 list_ttl: float = LIST_CACHE_TTL_SECONDS,
                 detail_ttl: float = DETAIL_CACHE_TTL_SECONDS):
        self.repository = repository
        self.cache = cache
        self.now = now
        self.list_ttl = list_ttl
        self.detail_ttl = detail_ttl

    # ========================================
    # QUERIES
    # ========================================

    async def discover(self, criteria: Any = None, user_location: Any = None) -> DiscoveryResult:
        """
        List water spots matching the criteria

        Args:
            criteria: FilterCriteria or mapping {ward, category, open_only}
            user_location: Optional {latitude, longitude}; enables distance
                           ranking

        Returns:
            DiscoveryResult with sorted results and their count
        """
        criteria = parse_filter_criteria(criteria)
        location = parse_user_location(user_location)

        with tracer.start_as_current_span("discover", openinference_span_kind="chain") as span:
            span.set_attribute("discovery.criteria", json.dumps(criteria.model_dump(mode='json'), ensure_ascii=False))
            span.set_attribute("discovery.has_user_location", location is not None)

            with self._failures_as("get water spots", span):
                spots, cache_hit = await self._list_spots(criteria)

            if location is not None:
                spots = attach_distances(spots, location)

            if criteria.open_only:
                at = self.now()
                # Unknown status is never treated as open
                spots = [spot for spot in spots if spot.is_currently_open(at) is True]

            spots = sort_spots(spots, by_distance=location is not None)

            span.set_attribute("discovery.cache_hit", cache_hit)
            span.set_attribute("discovery.result_count", len(spots))

            return DiscoveryResult(results=spots, total=len(spots), filters=criteria)

    async def get_by_id(self, spot_id: str, user_location: Any = None) -> WaterSpot:
        """
        Get one water spot

        Raises:
            UsageError: If spot_id is empty
            NotFoundError: If no spot has this id
        """
        if not isinstance(spot_id, str) or not spot_id.strip():
            raise UsageError('Spot ID is required')
        spot_id = spot_id.strip()
        location = parse_user_location(user_location)

        with tracer.start_as_current_span("get_water_spot", openinference_span_kind="retriever") as span:
            span.set_attribute("discovery.spot_id", spot_id)

            key = make_detail_cache_key(spot_id)
            spot = self._cached_spot(key)
            span.set_attribute("discovery.cache_hit", spot is not None)

            if spot is None:
                with self._failures_as("get water spot details", span):
                    spot = await self.repository.get_by_id(spot_id)

                if spot is None:
                    raise NotFoundError(f"Water spot not found: {spot_id}")

                self._cache_set(key, spot.to_record(), self.detail_ttl)

            if location is not None:
                spot = attach_distances([spot], location)[0]

            return spot

    async def search(self, term: str, user_location: Any = None) -> SearchResult:
        """
        Free-text search

        Raises:
            UsageError: If the term is shorter than 2 characters
        """
        location = parse_user_location(user_location)

        with tracer.start_as_current_span("search_water_spots", openinference_span_kind="retriever") as span:
            span.set_attribute("input.query", term if isinstance(term, str) else "")

            with self._failures_as("search water spots", span):
                spots = await self.repository.search(term)

            if location is not None:
                spots = attach_distances(spots, location)
            spots = sort_spots(spots, by_distance=location is not None)

            span.set_attribute("discovery.result_count", len(spots))
            return SearchResult(results=spots, total=len(spots), search_term=normalize_search_term(term))

    async def nearby(self, user_location: Any, radius_km: float = DEFAULT_NEARBY_RADIUS_KM) -> NearbyResult:
        """
        Spots within radius_km of the user, nearest first

        Raises:
            UsageError: If the location is missing or the radius is not positive
        """
        location = parse_user_location(user_location)
        if location is None:
            raise UsageError('User location is required')

        with tracer.start_as_current_span("find_nearby_water_spots", openinference_span_kind="retriever") as span:
            span.set_attribute("geo.user_lat", location.latitude)
            span.set_attribute("geo.user_lon", location.longitude)
            span.set_attribute("geo.radius_km", float(radius_km) if isinstance(radius_km, (int, float)) else 0.0)

            with self._failures_as("get nearby water spots", span):
                spots = await self.repository.nearby(location.latitude, location.longitude, radius_km)

            span.set_attribute("retrieval.documents.count", len(spots))
            return NearbyResult(
                results=spots,
                total=len(spots),
                user_location=location,
                radius_km=radius_km,
            )

    async def filter_options(self) -> Dict[str, List[str]]:
        """Values a caller may use in FilterCriteria"""
        return {
            'wards': [ALL] + self.repository.available_wards(),
            'categories': [ALL] + self.repository.available_categories(),
        }

    async def statistics(self) -> Dict:
        with tracer.start_as_current_span("water_spot_statistics") as span:
            with self._failures_as("get water spot statistics", span):
                return await self.repository.statistics()

    # ========================================
    # CACHE INVALIDATION
    # ========================================

    def invalidate_ward(self, ward: Any) -> int:
        """
        Drop cached list pages for one ward and the all-ward pages

        Returns:
            Number of removed cache entries
        """
        if self.cache is None:
            return 0
        try:
            ward = Ward(ward)
        except ValueError as e:
            raise UsageError(f"Invalid ward: {ward}") from e

        return (self.cache.delete_by_prefix(f"{LIST_CACHE_PREFIX}{ward.value}:")
                + self.cache.delete_by_prefix(f"{LIST_CACHE_PREFIX}{ALL}:"))

    def invalidate_all(self) -> int:
        if self.cache is None:
            return 0
        return (self.cache.delete_by_prefix(LIST_CACHE_PREFIX)
                + self.cache.delete_by_prefix(DETAIL_CACHE_PREFIX))

    # ========================================
    # HELPERS
    # ========================================

    async def _list_spots(self, criteria: FilterCriteria) -> Tuple[List[WaterSpot], bool]:
        key = make_list_cache_key(criteria)

        cached = self._cache_get(key)
        if isinstance(cached, list):
            logger.debug("Serving %s from cache", key)
            return create_spots(cached).spots, True

        spots = await self.repository.list(criteria)
        # Distances are request-specific and never part of the cached value
        self._cache_set(key, [spot.to_record() for spot in spots], self.list_ttl)
        return spots, False

    def _cached_spot(self, key: str) -> Optional[WaterSpot]:
        cached = self._cache_get(key)
        if not isinstance(cached, dict):
            return None
        try:
            return create_spot(cached)
        except ValidationError as e:
            logger.warning("Discarding unusable cache entry %s: %s", key, e.message)
            self.cache.delete(key)
            return None

    def _cache_get(self, key: str):
        if self.cache is None:
            return None
        return self.cache.get(key)

    def _cache_set(self, key: str, value, ttl: float):
        if self.cache is not None:
            self.cache.set(key, value, ttl)

    @contextmanager
    def _failures_as(self, action: str, span):
        """Re-raise DiscoveryErrors as-is, wrap anything else as UpstreamError"""
        try:
            yield
        except DiscoveryError as e:
            span.set_status(Status(StatusCode.ERROR, e.message))
            raise
        except Exception as e:
            logger.error("Failed to %s: %s", action, e)
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise UpstreamError(f"Failed to {action}: {e}") from e
