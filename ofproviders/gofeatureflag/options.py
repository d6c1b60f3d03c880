"""Settings for the relay-proxy provider."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from ofproviders.gofeatureflag.transport import HTTPClient, UrllibHTTPClient

DEFAULT_CACHE_SIZE = 10000
DEFAULT_CACHE_TTL = 60.0
DEFAULT_DATA_MAX_EVENT_IN_MEMORY = 500
DEFAULT_DATA_FLUSH_INTERVAL = 60.0


@dataclass
class ProviderOptions:
    """Provider settings; durations are in seconds, a cache TTL of -1 never expires."""

    endpoint: str = ""
    http_client: HTTPClient | None = None
    api_key: str = field(default="", repr=False)
    disable_cache: bool = False
    flag_cache_size: int = 0
    flag_cache_ttl: float = 0
    data_flush_interval: float = 0
    data_max_event_in_memory: int = 0

    def with_defaults(self) -> "ProviderOptions":
        """A copy with every unset option filled in; raise ValueError without an endpoint."""
        if not self.endpoint:
            raise ValueError("invalid provider options, empty endpoint value")
        return replace(
            self,
            http_client=self.http_client if self.http_client is not None else UrllibHTTPClient(),
            flag_cache_size=self.flag_cache_size or DEFAULT_CACHE_SIZE,
            flag_cache_ttl=self.flag_cache_ttl or DEFAULT_CACHE_TTL,
            data_flush_interval=self.data_flush_interval or DEFAULT_DATA_FLUSH_INTERVAL,
            data_max_event_in_memory=self.data_max_event_in_memory or DEFAULT_DATA_MAX_EVENT_IN_MEMORY,
        )