"""Collection of flag-usage events, sent in batches to the relay proxy."""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any

from ofproviders.gofeatureflag.transport import HTTPClient, HTTPRequest, join_url

logger = logging.getLogger(__name__)

_META = {"provider": "go", "openfeature": "true"}


@dataclass
class FeatureEvent:
    """One use of a flag value."""

    user_key: str
    key: str
    value: Any
    variation: str
    default: bool
    version: str = ""
    source: str = "PROVIDER_CACHE"
    kind: str = "feature"
    context_kind: str = "user"
    creation_date: int = field(default_factory=lambda: int(time.time()))

    def to_dict(self) -> dict[str, Any]:
        """The JSON-ready form of the event."""
        return {
            "kind": self.kind,
            "contextKind": self.context_kind,
            "userKey": self.user_key,
            "creationDate": self.creation_date,
            "key": self.key,
            "variation": self.variation,
            "value": self.value,
            "default": self.default,
            "version": self.version,
            "source": self.source,
        }


def collector_url(endpoint: str) -> str:
    """The data-collector URL of a relay proxy endpoint."""
    return join_url(endpoint, "v1", "data", "collector")


class DataCollector:
    """Buffers events and posts them when the buffer fills or the interval elapses."""

    def __init__(
        self,
        endpoint_url: str,
        flush_interval: float,
        max_events: int,
        http_client: HTTPClient,
        api_key: str = "",
    ) -> None:
        self.endpoint_url = endpoint_url
        self.flush_interval = flush_interval
        self.max_events = max_events
        self._http_client = http_client
        self._api_key = api_key
        self._events: list[FeatureEvent] = []
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def add_event(self, event: FeatureEvent) -> None:
        """Buffer an event, flushing when the buffer is full; send errors are logged."""
        with self._lock:
            self._events.append(event)
            full = len(self._events) >= self.max_events
        if full:
            self._safe_flush()

    def flush(self) -> int:
        """Send buffered events and return how many; raise on a failed send."""
        with self._lock:
            events, self._events = self._events, []
        if not events:
            return 0
        body = json.dumps(
            {"meta": dict(_META), "events": [event.to_dict() for event in events]},
            default=repr,
        ).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        response = self._http_client.do(HTTPRequest("POST", self.endpoint_url, headers, body))
        if response.status_code >= 400:
            raise RuntimeError(f"error while calling the webhook, HTTP Code: {response.status_code}")
        return len(events)

    def start(self) -> None:
        """Start flushing in the background every ``flush_interval`` seconds."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="data-collector", daemon=True)
        self._thread.start()

    def close(self) -> None:
        """Stop the background flushing and send what is left."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        self._safe_flush()

    def _run(self) -> None:
        while not self._stop.wait(self.flush_interval):
            self._safe_flush()

    def _safe_flush(self) -> None:
        try:
            self.flush()
        except (OSError, RuntimeError) as exc:
            logger.error("impossible to send collected data: %s", exc)