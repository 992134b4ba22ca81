"""Tests for the function calling surface and service wiring."""

import json
import logging
from types import SimpleNamespace

import pytest

from water_spots.api import Tools, get_discovery_tools, parse_tool_arguments
from water_spots.config import reset_logging
from water_spots.core import DiscoveryService
from water_spots.errors import UsageError
from water_spots.tools import build_discovery_service, get_tools, shutdown

from tests.conftest import WEDNESDAY_NOON


def tool_call(name, arguments=None, call_id="call_1"):
    return SimpleNamespace(
        name=name,
        arguments=json.dumps(arguments or {}, ensure_ascii=False),
        call_id=call_id,
    )


async def run(tools, name, arguments=None):
    response = await tools.function_call(tool_call(name, arguments))
    assert response["type"] == "function_call_output"
    assert response["call_id"] == "call_1"
    return json.loads(response["output"])


@pytest.fixture
def tools(repository):
    return get_discovery_tools(DiscoveryService(repository, now=lambda: WEDNESDAY_NOON))


class TestToolsContainer:

    def test_registered_schemas(self, tools):
        assert tools.list_functions() == [
            "list_water_spots",
            "get_water_spot",
            "search_water_spots",
            "find_nearby_water_spots",
        ]
        assert all(schema["type"] == "function" for schema in tools.get_tools())
        assert tools.get_schema("search_water_spots")["parameters"]["required"] == ["query"]
        assert tools.has_function("get_water_spot")

    def test_ward_enum_in_schema(self, tools):
        ward_schema = tools.get_schema("list_water_spots")["parameters"]["properties"]["ward"]

        assert ward_schema["enum"][0] == "all"
        assert "麻生区" in ward_schema["enum"]

    def test_unknown_schema(self):
        with pytest.raises(KeyError):
            Tools().get_schema("nope")


class TestFunctionCall:

    @pytest.mark.asyncio
    async def test_list_uses_light_projection(self, tools):
        output = await run(tools, "list_water_spots", {"ward": "川崎区"})

        assert output["success"] is True
        assert output["data"]["total"] == 3
        assert output["data"]["filters"] == {"ward": "川崎区", "category": "all", "open_only": False}
        first = output["data"]["results"][0]
        assert first["id"] == "k-office"
        assert first["hours_summary"] == "平日 08:30-17:00"
        assert "is_currently_open" not in first

    @pytest.mark.asyncio
    async def test_list_detailed_projection(self, tools):
        output = await run(tools, "list_water_spots", {"ward": "中原区", "light": False})

        assert output["data"]["results"][0]["is_currently_open"] is True

    @pytest.mark.asyncio
    async def test_get_spot_details(self, tools):
        output = await run(tools, "get_water_spot", {"spot_id": "k-lib", "user_lat": 35.5313, "user_lon": 139.6969})

        assert output["success"] is True
        assert output["data"]["name"] == "川崎図書館"
        assert output["data"]["is_currently_open"] is True
        assert output["data"]["formatted_distance"].endswith("m")
        assert output["data"]["distance"] < 1

    @pytest.mark.asyncio
    async def test_search(self, tools):
        output = await run(tools, "search_water_spots", {"query": "図書"})

        assert output["data"]["search_term"] == "図書"
        assert output["data"]["total"] == 3

    @pytest.mark.asyncio
    async def test_nearby(self, tools):
        output = await run(tools, "find_nearby_water_spots", {"user_lat": 35.53, "user_lon": 139.70, "radius_km": 1})

        assert output["data"]["radius_km"] == 1
        assert output["data"]["user_location"] == {"latitude": 35.53, "longitude": 139.70}
        assert [r["distance"] for r in output["data"]["results"]] == sorted(
            r["distance"] for r in output["data"]["results"]
        )

    @pytest.mark.asyncio
    async def test_usage_error_output(self, tools):
        output = await run(tools, "search_water_spots", {"query": "a"})

        assert output == {
            "success": False,
            "error": "Search term must be at least 2 characters",
            "status": 400,
        }

    @pytest.mark.asyncio
    async def test_not_found_output(self, tools):
        output = await run(tools, "get_water_spot", {"spot_id": "missing"})

        assert output["success"] is False
        assert output["status"] == 404

    @pytest.mark.asyncio
    async def test_unknown_tool(self, tools):
        output = await run(tools, "delete_everything")

        assert output["success"] is False
        assert output["status"] == 400

    @pytest.mark.asyncio
    async def test_unexpected_argument(self, tools):
        output = await run(tools, "search_water_spots", {"query": "図書", "limit": 3})

        assert output["success"] is False
        assert output["status"] == 400

    @pytest.mark.asyncio
    async def test_invalid_json_arguments(self, tools):
        response = await tools.function_call(SimpleNamespace(
            name="search_water_spots", arguments="{broken", call_id="call_2",
        ))

        output = json.loads(response["output"])
        assert response["call_id"] == "call_2"
        assert output["success"] is False
        assert output["status"] == 400


class TestParseToolArguments:

    def test_empty(self):
        assert parse_tool_arguments("") == {}
        assert parse_tool_arguments(None) == {}

    def test_must_be_object(self):
        with pytest.raises(UsageError):
            parse_tool_arguments("[1, 2]")


class TestWiring:

    @pytest.mark.asyncio
    async def test_build_service_from_data_dir(self, data_dir):
        service = build_discovery_service(data_dir, cache_enabled=True, configure_logs=False)

        result = await service.discover({"ward": "川崎区"})
        tools = get_tools(service)

        assert result.total == 3
        assert len(service.cache) == 1
        assert tools.has_function("find_nearby_water_spots")

        shutdown(service)
        assert len(service.cache) == 0

    def test_build_service_without_cache(self, data_dir):
        service = build_discovery_service(data_dir, cache_enabled=False, configure_logs=False)

        assert service.cache is None
        shutdown(service)

    def test_build_service_installs_engine_log_handlers(self, data_dir):
        package_logger = logging.getLogger("water_spots")
        try:
            build_discovery_service(data_dir, cache_enabled=False)
            build_discovery_service(data_dir, cache_enabled=False)

            owned = [h for h in package_logger.handlers if getattr(h, "_water_spots", False)]
            assert len(owned) == 1
        finally:
            reset_logging()
