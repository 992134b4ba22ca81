"""
API Module - Tool Definitions and Schemas
Function calling interface for water spot discovery
"""
from .tools import (
    # Main classes
    Tools,
    DiscoveryToolset,

    # Schemas
    list_water_spots_schema,
    get_water_spot_schema,
    search_water_spots_schema,
    find_nearby_schema,

    # Helper functions
    get_discovery_tools,
    create_tool_call_response,
    parse_tool_arguments,
)

__all__ = [
    # Main classes
    'Tools',
    'DiscoveryToolset',

    # Schemas
    'list_water_spots_schema',
    'get_water_spot_schema',
    'search_water_spots_schema',
    'find_nearby_schema',

    # Helper functions
    'get_discovery_tools',
    'create_tool_call_response',
    'parse_tool_arguments',
]
