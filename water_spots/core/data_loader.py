"""
Ward Partition Loading
Reads the static per-ward water spot documents that back the repository
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Union

from water_spots.config import DATA_DIR, WARD_DATA_FILES
from water_spots.errors import UpstreamError
from water_spots.models import Ward

logger = logging.getLogger(__name__)


class WardPartition(NamedTuple):
    """Raw records of one ward plus the dataset's update date"""
    ward: Ward
    spots: List[dict]
    updated: Optional[str]


class WardDataLoader:
    """
    Source of raw ward partitions

    Implementations perform the I/O; the repository only awaits them.
    """

    async def load_partition(self, ward: Ward) -> WardPartition:
        raise NotImplementedError('load_partition must be implemented')


class JsonWardDataLoader(WardDataLoader):
    """
    Loads one JSON document per ward: {"updated": "YYYY-MM-DD", "spots": [...]}

    Files are read in a worker thread so the event loop is never blocked.
    """

    def __init__(self, data_dir: Union[str, Path] = DATA_DIR,
                 files: Optional[Dict[str, str]] = None):
        self.data_dir = Path(data_dir)
        self.files = dict(files or WARD_DATA_FILES)

    def path_for(self, ward: Ward) -> Path:
        file_name = self.files.get(ward.value)
        if not file_name:
            raise UpstreamError(f"No data file configured for ward {ward.value}")
        return self.data_dir / file_name

    async def load_partition(self, ward: Ward) -> WardPartition:
        """
        Load and shape-check one ward document

        Raises:
            UpstreamError: If the file is missing, unreadable, not JSON, or
                           does not hold a "spots" list
        """
        path = self.path_for(ward)

        try:
            text = await asyncio.to_thread(path.read_text, encoding='utf-8')
        except FileNotFoundError as e:
            logger.error("Ward data file not found: %s", path)
            raise UpstreamError(f"Data for ward {ward.value} not found at {path}") from e
        except OSError as e:
            logger.error("Could not read ward data file %s: %s", path, e)
            raise UpstreamError(f"Data for ward {ward.value} is unreadable: {e}") from e

        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error("Corrupt ward data file %s: %s", path, e)
            raise UpstreamError(f"Data for ward {ward.value} is not valid JSON: {e}") from e

        return partition_from_document(ward, document, source=str(path))


def partition_from_document(ward: Ward, document, source: str = '<memory>') -> WardPartition:
    """
    Validate the shape of a decoded ward document

    Args:
        ward: Ward the document belongs to
        document: Decoded JSON
        source: Where the document came from (for error messages)

    Returns:
        WardPartition
    """
    if not isinstance(document, dict):
        raise UpstreamError(f"Data for ward {ward.value} must be an object ({source})")

    spots = document.get('spots', [])
    if not isinstance(spots, list):
        raise UpstreamError(f"Data for ward {ward.value} has no 'spots' list ({source})")

    updated = document.get('updated')
    return WardPartition(
        ward=ward,
        spots=spots,
        updated=str(updated) if updated else None,
    )
