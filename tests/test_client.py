"""Tests for the vendor API client using a fake HTTP session."""

import json

import pytest
import requests

import solarusage as su
from solarusage.client import (
    ClientSettings,
    JsonRequestLogStore,
    MemoryRequestLogStore,
    RequestLog,
    TelemetryClient,
    UsageQuery,
)

SETTINGS = ClientSettings(endpoint_url="https://api.example.test/usage", api_key="secret-token")


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        r = self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r


def _query(**kw):
    return UsageQuery(deviceUuid="dev-1", startTime=1, endTime=2, **kw)


def test_query_body_defaults():
    body = _query().to_body()
    assert body == {
        "deviceUuid": "dev-1",
        "scopes": ["normalUsage", "reverseUsage", "instanceElectricity"],
        "startTime": 1,
        "endTime": 2,
    }
    assert _query(next=5).to_body()["next"] == 5


def test_post_sends_token_and_logs_masked_header():
    store = MemoryRequestLogStore()
    session = FakeSession([FakeResponse(200, {"data": {}, "next": None})])
    client = TelemetryClient(SETTINGS, store=store, session=session)

    data = client.fetch(_query())
    assert data == {"data": {}, "next": None}
    assert session.calls[0]["headers"]["X-ND-TOKEN"] == "secret-token"

    (log,) = store.all()
    assert log.headers["X-ND-TOKEN"] == "********"
    assert log.status == 200
    assert log.response == data
    assert log.error is None


def test_post_non_2xx_raises_and_records_error():
    store = MemoryRequestLogStore()
    client = TelemetryClient(SETTINGS, store=store, session=FakeSession([FakeResponse(500)]))
    with pytest.raises(su.exceptions.ClientError, match="status 500"):
        client.fetch(_query())
    (log,) = store.all()
    assert log.status == 500
    assert log.error == "API request failed with status 500"


def test_post_network_error_raises_client_error():
    session = FakeSession([requests.exceptions.ConnectionError("down")])
    client = TelemetryClient(SETTINGS, session=session)
    with pytest.raises(su.exceptions.ClientError):
        client.fetch(_query())


def test_iter_pages_follows_next_cursor():
    session = FakeSession(
        [
            FakeResponse(200, {"data": {"normalUsage": [1]}, "next": "abc"}),
            FakeResponse(200, {"data": {"normalUsage": [2]}, "next": None}),
        ]
    )
    client = TelemetryClient(SETTINGS, session=session)
    pages = list(client.iter_pages(_query(), delay=0))

    assert len(pages) == 2
    first, second = (c["json"] for c in session.calls)
    assert "next" not in first
    assert second["next"] == "abc"
    assert (second["startTime"], second["endTime"]) == (1, 2)


def test_download_pages_numbers_files(tmp_path):
    session = FakeSession(
        [FakeResponse(200, {"next": 1}), FakeResponse(200, {"next": 2}), FakeResponse(200, {})]
    )
    client = TelemetryClient(SETTINGS, session=session)
    paths = client.download_pages(_query(), tmp_path, start_seq=9, delay=0)

    assert [p.name for p in paths] == ["dev-1___009.json", "dev-1___010.json", "dev-1___011.json"]
    assert json.loads(paths[0].read_text(encoding="utf-8")) == {"next": 1}
    # downloaded pages sort back into retrieval order
    assert [su.utils.extract_sequence(p.name) for p in paths] == [9, 10, 11]


def test_json_request_log_store(tmp_path):
    store = JsonRequestLogStore(tmp_path / "logs" / "requests.jsonl")
    assert store.all() == []
    store.append(RequestLog(timestamp=1, url="u", headers={"a": "b"}, body={"x": 1}, status=200))
    store.append(RequestLog(timestamp=2, url="u", headers={}, error="boom"))
    logs = store.all()
    assert [l.timestamp for l in logs] == [1, 2]
    assert logs[0].body == {"x": 1}
    store.clear()
    assert store.all() == []


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("SOLARUSAGE_ENDPOINT_URL", "https://api.example.test")
    monkeypatch.setenv("SOLARUSAGE_API_KEY", "k")
    s = su.client.settings_from_env()
    assert s.endpoint_url == "https://api.example.test"
    assert s.api_key == "k"


def test_settings_from_env_missing(monkeypatch):
    monkeypatch.setattr(su.client, "load_dotenv", lambda *a, **k: False)
    monkeypatch.delenv("SOLARUSAGE_ENDPOINT_URL", raising=False)
    monkeypatch.delenv("SOLARUSAGE_API_KEY", raising=False)
    with pytest.raises(su.exceptions.ConfigError):
        su.client.settings_from_env()
