"""
Core Module - Data Loading, Repository and Discovery Use-Case
"""
from .data_loader import WardPartition, WardDataLoader, JsonWardDataLoader, partition_from_document
from .repository import SpotRepository
from .discovery import DiscoveryService, make_list_cache_key, make_detail_cache_key

__all__ = [
    # Data loading
    'WardPartition',
    'WardDataLoader',
    'JsonWardDataLoader',
    'partition_from_document',

    # Repository
    'SpotRepository',

    # Use-case
    'DiscoveryService',
    'make_list_cache_key',
    'make_detail_cache_key',
]
