"""
Water Spot Repository
Merges the ward partitions into one queryable collection
"""

import asyncio
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Union

import pandas as pd

from water_spots.config import MIN_SEARCH_TERM_LENGTH
from water_spots.core.data_loader import WardDataLoader, WardPartition
from water_spots.errors import UsageError, ValidationError
from water_spots.models import (
    ALL,
    Category,
    FilterCriteria,
    SpotBatch,
    Ward,
    WaterSpot,
    create_spot,
    create_spots,
    parse_filter_criteria,
    parse_user_location,
)
from water_spots.utils import (
    calculate_bounding_box,
    contains_term,
    distance_km,
    normalize_search_term,
    shorten,
    within_bounding_box,
)

logger = logging.getLogger(__name__)


class SpotRepository:
    """
    Read-only access to water spots across all ward partitions

    Entities are rebuilt from the loader on every read; nothing is kept
    between calls.
    """

    def __init__(self, loader: WardDataLoader):
        self.loader = loader

    # ========================================
    # LOADING
    # ========================================

    async def _load_partitions(self, wards: Iterable[Ward]) -> List[WardPartition]:
        return list(await asyncio.gather(
            *(self.loader.load_partition(ward) for ward in wards)
        ))

    async def load(self, wards: Optional[Iterable[Ward]] = None) -> SpotBatch:
        """
        Build entities from the given ward partitions

        Args:
            wards: Wards to load, all wards when None

        Returns:
            SpotBatch with the valid spots and the number of skipped records
        """
        partitions = await self._load_partitions(list(Ward) if wards is None else wards)

        spots = []
        skipped = 0
        for partition in partitions:
            batch = create_spots(partition.spots)
            spots.extend(batch.spots)
            skipped += batch.skipped

        if skipped:
            logger.warning("Skipped %d invalid water spot records", skipped)

        return SpotBatch(spots=spots, skipped=skipped)

    async def _load_all(self) -> List[WaterSpot]:
        return (await self.load()).spots

    # ========================================
    # QUERIES
    # ========================================

    async def list(self, criteria: Union[FilterCriteria, dict, None] = None) -> List[WaterSpot]:
        """
        List spots for a ward (or all wards) filtered by category

        Args:
            criteria: Filter criteria; open_only is applied by the use-case

        Returns:
            List of WaterSpot in partition order
        """
        criteria = parse_filter_criteria(criteria)

        wards = list(Ward) if criteria.all_wards else [criteria.ward]
        spots = (await self.load(wards)).spots

        if not criteria.all_wards:
            spots = [spot for spot in spots if spot.ward == criteria.ward]

        if not criteria.all_categories:
            spots = [spot for spot in spots if spot.category == criteria.category]

        logger.debug("Listed %d spots (ward=%s, category=%s)",
                     len(spots), criteria.ward_key,
                     ALL if criteria.all_categories else criteria.category.value)
        return spots

    async def get_by_id(self, spot_id: str) -> Optional[WaterSpot]:
        """
        Find a spot by id, scanning partitions in ward order

        Returns:
            First valid matching WaterSpot, or None
        """
        for ward in Ward:
            partition = await self.loader.load_partition(ward)
            for raw in partition.spots:
                if not isinstance(raw, dict) or raw.get('id') != spot_id:
                    continue
                try:
                    return create_spot(raw)
                except ValidationError as e:
                    logger.warning("Skipping invalid water spot record: %s", e.message)
        return None

    async def search(self, term: str) -> List[WaterSpot]:
        """
        Case-insensitive substring search over name, address, category,
        ward and description

        Raises:
            UsageError: If the term is shorter than 2 characters
        """
        normalized = normalize_search_term(term)
        if len(normalized) < MIN_SEARCH_TERM_LENGTH:
            raise UsageError(f"Search term must be at least {MIN_SEARCH_TERM_LENGTH} characters")

        spots = await self._load_all()
        matched = [
            spot for spot in spots
            if contains_term(normalized, (
                spot.name,
                spot.address,
                spot.category.value,
                spot.ward.value,
                spot.description,
            ))
        ]

        logger.info("Search '%s' matched %d spots", shorten(normalized), len(matched))
        return matched

    async def nearby(self, latitude: float, longitude: float, radius_km: float) -> List[WaterSpot]:
        """
        Spots within radius_km (inclusive) of a point, nearest first

        Each returned spot carries its distance.

        Raises:
            UsageError: On invalid coordinates or a non-positive radius
        """
        center = parse_user_location({'latitude': latitude, 'longitude': longitude})
        if isinstance(radius_km, bool) or not isinstance(radius_km, (int, float)) or not radius_km > 0:
            raise UsageError('Radius must be a positive number of kilometers')

        box = calculate_bounding_box(center.latitude, center.longitude, radius_km)
        spots = await self._load_all()

        nearby_spots = []
        for spot in spots:
            if not within_bounding_box(spot.location.latitude, spot.location.longitude, box):
                continue

            distance = distance_km(
                center.latitude, center.longitude,
                spot.location.latitude, spot.location.longitude
            )
            if distance <= radius_km:
                nearby_spots.append(spot.with_distance(distance))

        nearby_spots.sort(key=lambda s: s.distance_km)
        return nearby_spots

    async def list_by_ward(self, ward: Union[Ward, str]) -> List[WaterSpot]:
        try:
            ward = Ward(ward)
        except ValueError as e:
            raise UsageError(f"Invalid ward: {ward}") from e
        return await self.list(FilterCriteria(ward=ward))

    async def list_by_category(self, category: Union[Category, str]) -> List[WaterSpot]:
        try:
            category = Category(category)
        except ValueError as e:
            raise UsageError(f"Invalid category: {category}") from e
        return await self.list(FilterCriteria(category=category))

    async def currently_open(self, at: Optional[datetime] = None) -> List[WaterSpot]:
        """Spots whose status is known to be open at `at`"""
        spots = await self._load_all()
        return [spot for spot in spots if spot.is_currently_open(at) is True]

    # ========================================
    # METADATA
    # ========================================

    def available_wards(self) -> List[str]:
        return [ward.value for ward in Ward]

    def available_categories(self) -> List[str]:
        return [category.value for category in Category]

    async def last_updated(self) -> Optional[str]:
        """
        Latest update date across all partitions

        Returns:
            ISO date string, or None if no partition carries one
        """
        partitions = await self._load_partitions(list(Ward))
        return _latest_update(partitions)

    async def statistics(self) -> Dict:
        """
        Aggregate counts over the whole dataset

        Returns:
            Dictionary with totals per ward and per category
        """
        partitions = await self._load_partitions(list(Ward))

        spots = []
        for partition in partitions:
            spots.extend(create_spots(partition.spots).spots)

        df = pd.DataFrame(
            [{'ward': spot.ward.value, 'category': spot.category.value} for spot in spots],
            columns=['ward', 'category'],
        )

        return {
            'total_spots': len(df),
            'spots_by_ward': {k: int(v) for k, v in df['ward'].value_counts().items()},
            'spots_by_category': {k: int(v) for k, v in df['category'].value_counts().items()},
            'average_spots_per_ward': round(len(df) / len(Ward), 1),
            'last_updated': _latest_update(partitions),
        }


def _latest_update(partitions: List[WardPartition]) -> Optional[str]:
    dates = pd.to_datetime(
        pd.Series([p.updated for p in partitions], dtype='object'),
        errors='coerce',
    ).dropna()
    if dates.empty:
        return None
    return dates.max().date().isoformat()
