"""Tests for the DiscoveryService use-case."""

import pytest

from water_spots.core import DiscoveryService, SpotRepository, make_detail_cache_key, make_list_cache_key
from water_spots.core.discovery import sort_spots
from water_spots.errors import NotFoundError, UpstreamError, UsageError
from water_spots.models import FilterCriteria, Ward, create_spot
from water_spots.utils import TTLCache

from tests.conftest import WEDNESDAY_NOON, FakeLoader, make_record

KAWASAKI_STATION = {"latitude": 35.5313, "longitude": 139.6969}
MUSASHI_KOSUGI = {"latitude": 35.5766, "longitude": 139.6595}


@pytest.fixture
def cache(manual_clock):
    return TTLCache(clock=manual_clock)


@pytest.fixture
def service(repository, cache):
    return DiscoveryService(repository, cache=cache, now=lambda: WEDNESDAY_NOON)


class TestCacheKeys:

    def test_key_is_independent_of_attribute_order(self):
        a = FilterCriteria.model_validate({"ward": "川崎区", "category": "all", "open_only": True})
        b = FilterCriteria.model_validate({"openOnly": True, "category": "全て", "ward": "川崎区"})

        assert make_list_cache_key(a) == make_list_cache_key(b)
        assert make_list_cache_key(a).startswith("water-spots:list:川崎区:")

    def test_different_criteria_differ(self):
        assert make_list_cache_key(FilterCriteria()) != make_list_cache_key(FilterCriteria(open_only=True))

    def test_detail_key(self):
        assert make_detail_cache_key("k-lib") == "water-spot:detail:k-lib"


class TestDiscover:

    @pytest.mark.asyncio
    async def test_sorted_by_ward_category_name(self, service):
        result = await service.discover({"ward": "川崎区", "category": "all", "openOnly": False})

        assert result.total == 3
        assert [spot.id for spot in result.results] == ["k-office", "k-hall", "k-lib"]
        assert result.filters.ward is Ward.KAWASAKI

    @pytest.mark.asyncio
    async def test_all_wards_sorted_by_ward_first(self, service):
        result = await service.discover()

        assert [spot.ward.value for spot in result.results] == ["川崎区", "川崎区", "川崎区", "多摩区", "中原区"]

    @pytest.mark.asyncio
    async def test_second_call_is_served_from_cache(self, service, fake_loader):
        first = await service.discover({"ward": "川崎区"})
        calls_after_first = len(fake_loader.calls)

        second = await service.discover({"ward": "川崎区"})

        assert len(fake_loader.calls) == calls_after_first
        assert second.results == first.results
        assert [spot.id for spot in second.results] == [spot.id for spot in first.results]

    @pytest.mark.asyncio
    async def test_cache_expires_after_list_ttl(self, service, fake_loader, manual_clock):
        await service.discover({"ward": "川崎区"})
        manual_clock.advance(service.list_ttl)

        await service.discover({"ward": "川崎区"})

        assert fake_loader.calls == [Ward.KAWASAKI, Ward.KAWASAKI]

    @pytest.mark.asyncio
    async def test_without_cache(self, repository):
        uncached = DiscoveryService(repository, cache=None, now=lambda: WEDNESDAY_NOON)

        result = await uncached.discover({"ward": "川崎区"})

        assert [spot.id for spot in result.results] == ["k-office", "k-hall", "k-lib"]

    @pytest.mark.asyncio
    async def test_user_location_sorts_by_distance(self, service, cache):
        result = await service.discover(None, MUSASHI_KOSUGI)

        assert result.results[0].id == "n-lib"
        distances = [spot.distance_km for spot in result.results]
        assert None not in distances
        assert distances == sorted(distances)

        cached = cache.get(make_list_cache_key(FilterCriteria()))
        assert all("distance_km" not in record for record in cached)

    @pytest.mark.asyncio
    async def test_distance_is_per_request(self, service):
        near = await service.discover(None, KAWASAKI_STATION)
        plain = await service.discover()

        assert near.results[0].ward is Ward.KAWASAKI
        assert all(spot.distance_km is None for spot in plain.results)

    @pytest.mark.asyncio
    async def test_open_only_excludes_unknown_and_closed(self, service):
        result = await service.discover({"open_only": True})

        assert {spot.id for spot in result.results} == {"k-lib", "k-office", "n-lib"}

    @pytest.mark.asyncio
    async def test_open_only_uses_injected_clock(self, repository):
        late = DiscoveryService(repository, now=lambda: WEDNESDAY_NOON.replace(hour=20))

        result = await late.discover({"open_only": True})

        assert [spot.id for spot in result.results] == ["n-lib"]

    @pytest.mark.asyncio
    async def test_invalid_criteria(self, service):
        with pytest.raises(UsageError):
            await service.discover({"ward": "横浜区"})

    @pytest.mark.asyncio
    async def test_invalid_user_location(self, service):
        with pytest.raises(UsageError):
            await service.discover(None, {"latitude": "35", "longitude": 139.7})

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_wrapped(self):
        failing = DiscoveryService(SpotRepository(FakeLoader(fail_with=RuntimeError("boom"))))

        with pytest.raises(UpstreamError) as exc_info:
            await failing.discover()

        assert exc_info.value.message == "Failed to get water spots: boom"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_typed_failure_passes_through_and_nothing_is_cached(self, cache):
        error = UpstreamError("Data for ward 川崎区 is not valid JSON")
        failing = DiscoveryService(SpotRepository(FakeLoader(fail_with=error)), cache=cache)

        with pytest.raises(UpstreamError) as exc_info:
            await failing.discover({"ward": "川崎区"})

        assert exc_info.value is error
        assert len(cache) == 0


class TestGetById:

    @pytest.mark.asyncio
    async def test_found_and_cached(self, service, fake_loader, cache):
        spot = await service.get_by_id("n-lib")
        calls = len(fake_loader.calls)

        again = await service.get_by_id("n-lib")

        assert again == spot
        assert len(fake_loader.calls) == calls
        assert cache.get(make_detail_cache_key("n-lib"))["name"] == "中原図書館"

    @pytest.mark.asyncio
    async def test_with_user_location(self, service):
        spot = await service.get_by_id("k-lib", KAWASAKI_STATION)

        assert spot.distance_km < 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("spot_id", ["", "   ", None])
    async def test_empty_id(self, service, spot_id):
        with pytest.raises(UsageError):
            await service.get_by_id(spot_id)

    @pytest.mark.asyncio
    async def test_not_found(self, service, cache):
        with pytest.raises(NotFoundError) as exc_info:
            await service.get_by_id("missing")

        assert exc_info.value.status_code == 404
        assert len(cache) == 0


class TestSearch:

    @pytest.mark.asyncio
    async def test_search(self, service):
        result = await service.search("  図書 ")

        assert result.search_term == "図書"
        assert result.total == 3
        assert [spot.id for spot in result.results] == ["k-lib", "t-museum", "n-lib"]

    @pytest.mark.asyncio
    async def test_search_with_location(self, service):
        result = await service.search("図書", KAWASAKI_STATION)

        assert [spot.id for spot in result.results] == ["k-lib", "n-lib", "t-museum"]

    @pytest.mark.asyncio
    async def test_short_term(self, service):
        with pytest.raises(UsageError):
            await service.search("a")


class TestNearby:

    @pytest.mark.asyncio
    async def test_requires_location(self, service):
        with pytest.raises(UsageError):
            await service.nearby(None)

    @pytest.mark.asyncio
    async def test_default_radius(self, service):
        result = await service.nearby({"lat": 35.53, "lon": 139.70})

        assert result.radius_km == 5.0
        assert {spot.id for spot in result.results} == {"k-lib", "k-office", "k-hall"}
        assert result.user_location.latitude == 35.53

    @pytest.mark.asyncio
    async def test_wider_radius(self, service):
        result = await service.nearby(MUSASHI_KOSUGI, 8)

        assert result.results[0].id == "n-lib"
        assert result.total == 4

    @pytest.mark.asyncio
    async def test_invalid_radius(self, service):
        with pytest.raises(UsageError):
            await service.nearby(MUSASHI_KOSUGI, 0)


class TestMetadataAndInvalidation:

    @pytest.mark.asyncio
    async def test_filter_options(self, service):
        options = await service.filter_options()

        assert options["wards"][0] == "all"
        assert "川崎区" in options["wards"]
        assert options["categories"][0] == "all"
        assert len(options["categories"]) == 18

    @pytest.mark.asyncio
    async def test_statistics(self, service):
        stats = await service.statistics()

        assert stats["total_spots"] == 5

    @pytest.mark.asyncio
    async def test_invalidate_ward(self, service, cache):
        await service.discover({"ward": "川崎区"})
        await service.discover({"ward": "川崎区", "open_only": True})
        await service.discover({"ward": "中原区"})
        await service.discover()

        assert service.invalidate_ward("川崎区") == 3
        assert cache.keys_by_prefix("water-spots:list:中原区:")
        assert not cache.keys_by_prefix("water-spots:list:川崎区:")
        assert not cache.keys_by_prefix("water-spots:list:all:")

    @pytest.mark.asyncio
    async def test_invalidate_all(self, service, cache):
        await service.discover()
        await service.get_by_id("k-lib")

        assert service.invalidate_all() == 2
        assert len(cache) == 0

    def test_invalidate_unknown_ward(self, service):
        with pytest.raises(UsageError):
            service.invalidate_ward("横浜区")

    def test_invalidate_without_cache(self, repository):
        assert DiscoveryService(repository).invalidate_all() == 0


class TestSortOrder:

    def test_wards_follow_japanese_collation(self):
        spots = [create_spot(make_record(f"spot-{ward.name}", ward=ward.value)) for ward in Ward]

        ordered = sort_spots(spots, by_distance=False)

        assert [spot.ward.value for spot in ordered] == [
            "宮前区", "幸区", "高津区", "川崎区", "多摩区", "中原区", "麻生区",
        ]

    def test_distance_order_puts_unknown_last(self):
        near = create_spot(make_record("near")).with_distance(0.5)
        far = create_spot(make_record("far")).with_distance(2.0)
        unknown = create_spot(make_record("unknown"))

        assert [s.id for s in sort_spots([unknown, far, near], by_distance=True)] == ["near", "far", "unknown"]
