import json

import pytest

TZ = "Asia/Tokyo"

# 2024-05-01 03:00:00 in Asia/Tokyo
T0 = 1714500000000
MIN = 60_000


@pytest.fixture
def close_normal_usage():
    # First two records round to the same minute; the third is 30.5 minutes later
    return [
        {"generatedTime": 1714500000000, "value": 10},
        {"generatedTime": 1714500029000, "value": 10},
        {"generatedTime": 1714501830000, "value": 25},
    ]


@pytest.fixture
def half_hourly_normal():
    # Four kept samples at T0, +30, +60, +90 minutes
    return [{"generatedTime": T0 + i * 30 * MIN, "value": 100 + 10 * i} for i in range(4)]


@pytest.fixture
def make_doc():
    def _make(normal=None, reverse=None, instance=None, **extra):
        data = {}
        if normal is not None:
            data["normalUsage"] = normal
        if reverse is not None:
            data["reverseUsage"] = reverse
        if instance is not None:
            data["instanceElectricity"] = instance
        return {"data": data, **extra}

    return _make


@pytest.fixture
def write_json(tmp_path):
    def _write(name, content):
        path = tmp_path / name
        path.write_text(json.dumps(content), encoding="utf-8")
        return path

    return _write
