"""
Tool Definitions and Tool Container
Handles tool schemas and function call execution for water spot discovery
"""

import json
import logging
from typing import Any, Callable, Dict, Optional

from water_spots.config import DEFAULT_NEARBY_RADIUS_KM
from water_spots.errors import UsageError, error_status_code
from water_spots.models import ALL, Category, Ward
from water_spots.tracing import tracer

logger = logging.getLogger(__name__)

# ============================================
# TOOL SCHEMA DEFINITIONS
# ============================================

_location_properties = {
    "user_lat": {
        "type": "number",
        "description": "Latitude of the user, enables distance ranking"
    },
    "user_lon": {
        "type": "number",
        "description": "Longitude of the user, enables distance ranking"
    },
}

list_water_spots_schema = {
    "type": "function",
    "name": "list_water_spots",
    "description": (
        "List drinking water spots in Kawasaki City, filtered by ward and facility category. "
        "Results are sorted by distance when the user location is given, "
        "otherwise by ward, category and name."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "ward": {
                "type": "string",
                "enum": [ALL] + [ward.value for ward in Ward],
                "description": "Ward to list, or 'all'"
            },
            "category": {
                "type": "string",
                "enum": [ALL] + [category.value for category in Category],
                "description": "Facility category, or 'all'"
            },
            "open_only": {
                "type": "boolean",
                "description": "Only return spots that are open right now"
            },
            **_location_properties,
            "light": {
                "type": "boolean",
                "description": "Return the reduced list projection (default true)"
            },
        },
        "required": [],
        "additionalProperties": False
    }
}

get_water_spot_schema = {
    "type": "function",
    "name": "get_water_spot",
    "description": "Get full details of one water spot, including operating hours and current open status.",
    "parameters": {
        "type": "object",
        "properties": {
            "spot_id": {
                "type": "string",
                "description": "Identifier of the water spot"
            },
            **_location_properties,
        },
        "required": ["spot_id"],
        "additionalProperties": False
    }
}

search_water_spots_schema = {
    "type": "function",
    "name": "search_water_spots",
    "description": (
        "Free-text search over water spot name, address, category, ward and description. "
        "The query must be at least 2 characters."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "query": {
                "type": "string",
                "description": "Search term, e.g. 図書館 or 武蔵小杉"
            },
            **_location_properties,
            "light": {
                "type": "boolean",
                "description": "Return the reduced list projection (default true)"
            },
        },
        "required": ["query"],
        "additionalProperties": False
    }
}

find_nearby_schema = {
    "type": "function",
    "name": "find_nearby_water_spots",
    "description": "Find water spots within a radius of the user, nearest first.",
    "parameters": {
        "type": "object",
        "properties": {
            **_location_properties,
            "radius_km": {
                "type": "number",
                "description": f"Search radius in kilometers (default {DEFAULT_NEARBY_RADIUS_KM:g})"
            },
            "light": {
                "type": "boolean",
                "description": "Return the reduced list projection (default true)"
            },
        },
        "required": ["user_lat", "user_lon"],
        "additionalProperties": False
    }
}

# ============================================
# TOOLS CONTAINER CLASS
# ============================================


class Tools:
    """
    Container for managing tools and function calls

    Handles:
    - Tool registration
    - Function execution
    - Response formatting
    """

    def __init__(self):
        """Initialize empty tools container"""
        self.tools = {}
        self.functions = {}

    def add_tool(self, function: Callable, schema: Dict[str, Any]):
        """
        Register a tool with its schema

        Args:
            function: Async callable to execute
            schema: Tool schema definition; its name is the dispatch key
        """
        name = schema.get("name") or function.__name__
        self.tools[name] = schema
        self.functions[name] = function

    def get_tools(self):
        """
        Get all registered tool schemas

        Returns:
            List of tool schemas
        """
        return list(self.tools.values())

    async def function_call(self, tool_call_response):
        """
        Execute a function call

        Args:
            tool_call_response: Tool call object with:
                - name: Function name
                - arguments: JSON string of arguments
                - call_id: Unique call identifier

        Returns:
            Dict with function call output:
            {
                "type": "function_call_output",
                "call_id": str,
                "output": JSON string of {"success": true, "data": ...}
                          or {"success": false, "error": str, "status": int}
            }
        """
        fn_name = tool_call_response.name

        try:
            args = parse_tool_arguments(tool_call_response.arguments)
            fn = self.functions.get(fn_name)
            if fn is None:
                raise UsageError(f"Tool '{fn_name}' not registered")

            try:
                data = await fn(**args)
            except TypeError as e:
                raise UsageError(f"Invalid arguments for {fn_name}: {e}") from e

            output = {"success": True, "data": data}

        except Exception as e:
            status = error_status_code(e)
            if status >= 500:
                logger.exception("Tool %s failed", fn_name)
            else:
                logger.info("Tool %s rejected call: %s", fn_name, e)
            output = {"success": False, "error": str(e), "status": status}

        return create_tool_call_response(tool_call_response.call_id, output)

    def list_functions(self):
        return list(self.functions.keys())

    def has_function(self, name: str) -> bool:
        return name in self.functions

    def get_schema(self, name: str) -> Dict[str, Any]:
        """
        Get schema for a specific tool

        Raises:
            KeyError: If function not registered
        """
        if name not in self.tools:
            raise KeyError(f"Tool '{name}' not registered")
        return self.tools[name]


# ============================================
# DISCOVERY TOOLSET
# ============================================


def _user_location(user_lat: Optional[float], user_lon: Optional[float]) -> Optional[Dict[str, Any]]:
    if user_lat is None and user_lon is None:
        return None
    return {"latitude": user_lat, "longitude": user_lon}


def _project(spot, light: bool, at=None) -> Dict[str, Any]:
    return spot.to_light() if light else spot.to_detailed(at)


class DiscoveryToolset:
    """
    Tool functions over a DiscoveryService

    Each function returns JSON-safe data; errors propagate to
    Tools.function_call which turns them into error outputs.
    """

    def __init__(self, service):
        self.service = service

    @tracer.tool(name="list_water_spots", description="List water spots by ward and category")
    async def list_water_spots(self, ward: str = ALL, category: str = ALL, open_only: bool = False,
                               user_lat: Optional[float] = None, user_lon: Optional[float] = None,
                               light: bool = True) -> Dict[str, Any]:
        result = await self.service.discover(
            {"ward": ward, "category": category, "open_only": open_only},
            _user_location(user_lat, user_lon),
        )
        at = self.service.now()
        return {
            "results": [_project(spot, light, at) for spot in result.results],
            "total": result.total,
            "filters": result.filters.model_dump(mode='json'),
        }

    @tracer.tool(name="get_water_spot", description="Get water spot details")
    async def get_water_spot(self, spot_id: str, user_lat: Optional[float] = None,
                             user_lon: Optional[float] = None) -> Dict[str, Any]:
        spot = await self.service.get_by_id(spot_id, _user_location(user_lat, user_lon))
        return spot.to_detailed(self.service.now())

    @tracer.tool(name="search_water_spots", description="Free-text water spot search")
    async def search_water_spots(self, query: str, user_lat: Optional[float] = None,
                                 user_lon: Optional[float] = None, light: bool = True) -> Dict[str, Any]:
        result = await self.service.search(query, _user_location(user_lat, user_lon))
        at = self.service.now()
        return {
            "results": [_project(spot, light, at) for spot in result.results],
            "total": result.total,
            "search_term": result.search_term,
        }

    @tracer.tool(name="find_nearby_water_spots", description="Water spots near the user")
    async def find_nearby_water_spots(self, user_lat: float, user_lon: float,
                                      radius_km: float = DEFAULT_NEARBY_RADIUS_KM,
                                      light: bool = True) -> Dict[str, Any]:
        result = await self.service.nearby(_user_location(user_lat, user_lon), radius_km)
        at = self.service.now()
        return {
            "results": [_project(spot, light, at) for spot in result.results],
            "total": result.total,
            "user_location": result.user_location.model_dump(),
            "radius_km": result.radius_km,
        }


# ============================================
# HELPER FUNCTIONS
# ============================================

def get_discovery_tools(service) -> Tools:
    """
    Create and configure a Tools instance for water spot discovery

    Args:
        service: DiscoveryService the tools run against

    Returns:
        Configured Tools instance

    Example:
        >>> tools = get_discovery_tools(service)
        >>> output = await tools.function_call(tool_call)
    """
    toolset = DiscoveryToolset(service)

    tools = Tools()
    tools.add_tool(toolset.list_water_spots, list_water_spots_schema)
    tools.add_tool(toolset.get_water_spot, get_water_spot_schema)
    tools.add_tool(toolset.search_water_spots, search_water_spots_schema)
    tools.add_tool(toolset.find_nearby_water_spots, find_nearby_schema)
    return tools


def create_tool_call_response(call_id: str, output: Any) -> Dict[str, str]:
    """
    Create formatted tool call response

    Args:
        call_id: Tool call identifier
        output: Function output (will be JSON serialized)

    Returns:
        Formatted response dictionary
    """
    return {
        "type": "function_call_output",
        "call_id": call_id,
        "output": json.dumps(output, ensure_ascii=False) if not isinstance(output, str) else output,
    }


def parse_tool_arguments(arguments) -> Dict[str, Any]:
    """
    Parse tool call arguments

    Args:
        arguments: JSON string of arguments (empty means no arguments)

    Returns:
        Parsed arguments dictionary

    Raises:
        UsageError: If arguments are not a JSON object
    """
    if arguments is None or arguments == "":
        return {}
    if isinstance(arguments, dict):
        return arguments

    try:
        parsed = json.loads(arguments)
    except (TypeError, json.JSONDecodeError) as e:
        raise UsageError(f"Tool arguments are not valid JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise UsageError("Tool arguments must be a JSON object")
    return parsed
