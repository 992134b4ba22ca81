"""Pytest fixtures for water spot discovery tests."""

import json
from datetime import datetime

import pytest

from water_spots.config import WARD_DATA_FILES
from water_spots.core import SpotRepository, WardDataLoader, WardPartition
from water_spots.models import Ward

# 2024-04-03 is a Wednesday
WEDNESDAY_NOON = datetime(2024, 4, 3, 12, 0)
WEDNESDAY_NIGHT = datetime(2024, 4, 3, 22, 0)
SATURDAY_MORNING = datetime(2024, 4, 6, 10, 0)
SUNDAY_MORNING = datetime(2024, 4, 7, 10, 0)


def make_record(spot_id="spot-1", **overrides):
    """Raw record in the ward document shape"""
    record = {
        "id": spot_id,
        "name": "川崎図書館",
        "category": "市立図書館",
        "ward": "川崎区",
        "address": "川崎市川崎区駅前本町12-1",
        "location": {"latitude": 35.5326, "longitude": 139.6996},
        "hours": {"mon_fri": "09:00-17:00"},
    }
    record.update(overrides)
    return record


class ManualClock:
    """Monotonic clock advanced by hand"""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeLoader(WardDataLoader):
    """In-memory loader that counts partition loads"""

    def __init__(self, spots_by_ward=None, updated_by_ward=None, fail_with=None):
        self.spots_by_ward = spots_by_ward or {}
        self.updated_by_ward = updated_by_ward or {}
        self.fail_with = fail_with
        self.calls = []

    async def load_partition(self, ward):
        self.calls.append(ward)
        if self.fail_with is not None:
            raise self.fail_with
        return WardPartition(
            ward=ward,
            spots=list(self.spots_by_ward.get(ward, [])),
            updated=self.updated_by_ward.get(ward),
        )


@pytest.fixture
def sample_records():
    """A few spots across three wards, including one invalid record"""
    return {
        Ward.KAWASAKI: [
            make_record("k-lib", name="川崎図書館", category="市立図書館",
                        location={"latitude": 35.5326, "longitude": 139.6996}),
            make_record("k-office", name="川崎区役所", category="区役所",
                        address="川崎市川崎区東田町8",
                        location={"latitude": 35.5306, "longitude": 139.7038},
                        hours={"mon_fri": "08:30-17:00", "sat": "08:30-12:30"}),
            make_record("k-hall", name="川崎市役所本庁舎", category="市庁舎",
                        address="川崎市川崎区宮本町1",
                        location={"latitude": 35.5308, "longitude": 139.7029},
                        hours=None),
            make_record("k-broken", name="", category="市立図書館"),
        ],
        Ward.NAKAHARA: [
            make_record("n-lib", name="中原図書館", category="市立図書館", ward="中原区",
                        address="川崎市中原区小杉町3-1301",
                        location={"latitude": 35.5775, "longitude": 139.6590},
                        hours={"mon_sun": "09:30-21:00"}),
        ],
        Ward.TAMA: [
            make_record("t-museum", name="岡本太郎美術館", category="博物館", ward="多摩区",
                        address="川崎市多摩区枡形7-1-5",
                        description="芸術と図書の資料室あり",
                        location={"latitude": 35.6088, "longitude": 139.5637},
                        hours={"type": "要確認"}),
        ],
    }


@pytest.fixture
def fake_loader(sample_records):
    return FakeLoader(sample_records, updated_by_ward={
        Ward.KAWASAKI: "2024-04-01",
        Ward.NAKAHARA: "2024-03-28",
        Ward.TAMA: "not a date",
    })


@pytest.fixture
def repository(fake_loader):
    return SpotRepository(fake_loader)


@pytest.fixture
def data_dir(tmp_path, sample_records):
    """Ward JSON documents written to a temporary directory"""
    for ward in Ward:
        document = {
            "updated": "2024-04-01",
            "spots": sample_records.get(ward, []),
        }
        path = tmp_path / WARD_DATA_FILES[ward.value]
        path.write_text(json.dumps(document, ensure_ascii=False), encoding="utf-8")
    return tmp_path


@pytest.fixture
def manual_clock():
    return ManualClock()
