import json
import time

import pytest

from ofproviders.gofeatureflag.collector import DataCollector, FeatureEvent, collector_url
from ofproviders.gofeatureflag.transport import HTTPResponse

URL = "https://gofeatureflag.org/v1/data/collector"


class RecordingClient:
    def __init__(self, status=200):
        self.status = status
        self.requests = []

    def do(self, request):
        self.requests.append(request)
        return HTTPResponse(self.status, b"")


def make_event(key="flag"):
    return FeatureEvent(user_key="user-1", key=key, value=True, variation="True", default=False)


def test_collector_url():
    assert collector_url("https://gofeatureflag.org/") == URL


def test_feature_event_to_dict():
    event = make_event("my_flag")
    data = event.to_dict()
    assert data["kind"] == "feature"
    assert data["key"] == "my_flag"
    assert data["userKey"] == "user-1"
    assert data["source"] == "PROVIDER_CACHE"
    assert data["default"] is False
    assert set(data) == {
        "kind", "contextKind", "userKey", "creationDate", "key",
        "variation", "value", "default", "version", "source",
    }


def test_flush_sends_buffered_events():
    client = RecordingClient()
    collector = DataCollector(URL, 60, 500, client, api_key="placeholder")
    collector.add_event(make_event("a"))
    collector.add_event(make_event("b"))
    assert client.requests == []
    assert collector.flush() == 2
    assert len(client.requests) == 1
    request = client.requests[0]
    assert request.method == "POST"
    assert request.url == URL
    assert request.headers["Authorization"] == "Bearer placeholder"
    body = json.loads(request.body)
    assert body["meta"] == {"provider": "go", "openfeature": "true"}
    assert [event["key"] for event in body["events"]] == ["a", "b"]


def test_flush_without_events_sends_nothing():
    client = RecordingClient()
    collector = DataCollector(URL, 60, 500, client)
    assert collector.flush() == 0
    assert client.requests == []


def test_no_authorization_without_api_key():
    client = RecordingClient()
    collector = DataCollector(URL, 60, 500, client)
    collector.add_event(make_event())
    collector.flush()
    assert "Authorization" not in client.requests[0].headers


def test_full_buffer_flushes():
    client = RecordingClient()
    collector = DataCollector(URL, 60, 2, client)
    collector.add_event(make_event())
    assert client.requests == []
    collector.add_event(make_event())
    assert len(client.requests) == 1
    assert collector.flush() == 0


def test_failed_send_raises_and_drops_events():
    client = RecordingClient(status=500)
    collector = DataCollector(URL, 60, 500, client)
    collector.add_event(make_event())
    with pytest.raises(RuntimeError):
        collector.flush()
    assert collector.flush() == 0


def test_add_event_swallows_send_errors():
    client = RecordingClient(status=500)
    collector = DataCollector(URL, 60, 1, client)
    collector.add_event(make_event())
    assert len(client.requests) == 1
    assert collector.flush() == 0


def test_background_flush():
    client = RecordingClient()
    collector = DataCollector(URL, 0.05, 500, client)
    collector.start()
    try:
        collector.add_event(make_event())
        deadline = time.monotonic() + 2
        while not client.requests and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        collector.close()
    assert len(client.requests) == 1


def test_close_flushes_pending_events():
    client = RecordingClient()
    collector = DataCollector(URL, 60, 500, client)
    collector.start()
    collector.add_event(make_event("pending"))
    collector.close()
    assert len(client.requests) == 1
    assert json.loads(client.requests[0].body)["events"][0]["key"] == "pending"