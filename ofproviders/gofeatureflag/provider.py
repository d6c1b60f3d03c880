"""Feature-flag provider that evaluates flags through a relay proxy."""

from __future__ import annotations

import json
import threading
import time
from collections import OrderedDict
from dataclasses import replace
from enum import Enum
from typing import Any, Mapping

from ofproviders.gofeatureflag.collector import DataCollector, FeatureEvent, collector_url
from ofproviders.gofeatureflag.model import EvalResponse, new_eval_flag_request
from ofproviders.gofeatureflag.options import ProviderOptions
from ofproviders.gofeatureflag.transport import HTTPRequest, join_url
from ofproviders.openfeature import ErrorCode, Metadata, Reason, ResolutionDetail, ResolutionError


class FlagCache:
    """A thread-safe LRU cache whose entries may expire."""

    def __init__(self, size: int) -> None:
        if size <= 0:
            raise ValueError("cache size must be positive")
        self.size = size
        self._entries: OrderedDict[str, tuple[Any, float | None]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Any:
        """Return the value stored under ``key``; raise KeyError if absent or expired."""
        with self._lock:
            value, expires_at = self._entries[key]
            if expires_at is not None and time.monotonic() >= expires_at:
                del self._entries[key]
                raise KeyError(key)
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store a value; a ``ttl`` of None or below zero never expires."""
        expires_at = None if ttl is None or ttl < 0 else time.monotonic() + ttl
        with self._lock:
            self._entries[key] = (value, expires_at)
            self._entries.move_to_end(key)
            while len(self._entries) > self.size:
                self._entries.popitem(last=False)

    def remove(self, key: str) -> bool:
        """Drop an entry; return whether it was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class _FlagType(Enum):
    BOOLEAN = "boolean"
    STRING = "string"
    FLOAT = "float"
    INTEGER = "integer"
    OBJECT = "object"


_ZERO: dict[_FlagType, Any] = {
    _FlagType.BOOLEAN: False,
    _FlagType.STRING: "",
    _FlagType.FLOAT: 0.0,
    _FlagType.INTEGER: 0,
    _FlagType.OBJECT: None,
}


def _coerce(flag_type: _FlagType, value: Any) -> Any:
    """Return ``value`` as ``flag_type``; raise TypeError when it does not fit."""
    if value is None:
        return _ZERO[flag_type]
    if flag_type is _FlagType.OBJECT:
        return value
    if flag_type is _FlagType.BOOLEAN and isinstance(value, bool):
        return value
    if flag_type is _FlagType.STRING and isinstance(value, str):
        return value
    if not isinstance(value, bool):
        if flag_type is _FlagType.FLOAT and isinstance(value, (int, float)):
            return float(value)
        if flag_type is _FlagType.INTEGER and isinstance(value, int):
            return value
    raise TypeError(f"{type(value).__name__} is not a {flag_type.value}")


def _general(default_value: Any, message: str) -> ResolutionDetail:
    return ResolutionDetail.failed(default_value, ErrorCode.GENERAL, message)


def _type_mismatch(default_value: Any, flag: str) -> ResolutionDetail:
    return ResolutionDetail.failed(default_value, ErrorCode.TYPE_MISMATCH, f"unexpected type for flag {flag}")


class GoFeatureFlagProvider:
    """Evaluates flags by calling a relay proxy, caching cacheable answers."""

    def __init__(self, options: ProviderOptions) -> None:
        options = options.with_defaults()
        self._endpoint = options.endpoint
        self._api_key = options.api_key
        self._http_client = options.http_client
        self._cache_ttl = options.flag_cache_ttl
        self._cache_disabled = options.disable_cache
        self._cache = FlagCache(options.flag_cache_size)
        self._collector: DataCollector | None = None
        if not options.disable_cache:
            self._collector = DataCollector(
                collector_url(options.endpoint),
                options.data_flush_interval,
                options.data_max_event_in_memory,
                options.http_client,
                options.api_key,
            )
            self._collector.start()

    def __enter__(self) -> "GoFeatureFlagProvider":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def metadata(self) -> Metadata:
        return Metadata(name="GO Feature Flag")

    def hooks(self) -> list:
        return []

    def shutdown(self) -> None:
        """Stop collecting data and send what was collected."""
        if self._collector is not None:
            self._collector.close()
            self._collector = None

    def boolean_evaluation(self, flag: str, default_value: bool, eval_ctx: Mapping[str, Any] | None) -> ResolutionDetail:
        return self._evaluate(flag, default_value, eval_ctx, _FlagType.BOOLEAN)

    def string_evaluation(self, flag: str, default_value: str, eval_ctx: Mapping[str, Any] | None) -> ResolutionDetail:
        return self._evaluate(flag, default_value, eval_ctx, _FlagType.STRING)

    def float_evaluation(self, flag: str, default_value: float, eval_ctx: Mapping[str, Any] | None) -> ResolutionDetail:
        return self._evaluate(flag, default_value, eval_ctx, _FlagType.FLOAT)

    def int_evaluation(self, flag: str, default_value: int, eval_ctx: Mapping[str, Any] | None) -> ResolutionDetail:
        return self._evaluate(flag, default_value, eval_ctx, _FlagType.INTEGER)

    def object_evaluation(self, flag: str, default_value: Any, eval_ctx: Mapping[str, Any] | None) -> ResolutionDetail:
        return self._evaluate(flag, default_value, eval_ctx, _FlagType.OBJECT)

    def _from_cache(self, cache_key: str, flag_type: _FlagType, flag: str, user_key: str) -> ResolutionDetail | None:
        try:
            cached_type, detail = self._cache.get(cache_key)
        except KeyError:
            return None
        if cached_type is not flag_type:
            self._cache.remove(cache_key)
            return None
        if self._collector is not None:
            self._collector.add_event(
                FeatureEvent(
                    user_key=user_key,
                    key=flag,
                    value=detail.value,
                    variation=detail.variant,
                    default=detail.reason == Reason.ERROR,
                    source="PROVIDER_CACHE",
                )
            )
        return replace(detail, reason=Reason.CACHED)

    def _evaluate(
        self, flag: str, default_value: Any, eval_ctx: Mapping[str, Any] | None, flag_type: _FlagType
    ) -> ResolutionDetail:
        try:
            request = new_eval_flag_request(eval_ctx, default_value)
        except ResolutionError as exc:
            return ResolutionDetail(value=default_value, reason=Reason.ERROR, error=exc)

        context = request.evaluation_context
        cache_key = f"{flag}-{context.cache_key()}"
        if not self._cache_disabled:
            cached = self._from_cache(cache_key, flag_type, flag, context.key)
            if cached is not None:
                return cached

        try:
            body = json.dumps(request.to_dict()).encode("utf-8")
        except (TypeError, ValueError):
            return _general(default_value, "impossible to marshal GO Feature Flag request")

        try:
            url = join_url(self._endpoint, "v1", "feature", flag, "eval")
        except ValueError:
            return _general(default_value, "impossible to parse GO Feature Flag endpoint option")

        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        try:
            response = self._http_client.do(HTTPRequest("POST", url, headers, body))
        except OSError:
            return _general(default_value, "impossible to contact GO Feature Flag relay proxy instance")

        if response.status_code == 401:
            return _general(default_value, "invalid token used to contact GO Feature Flag relay proxy instance")
        if response.status_code >= 400:
            return _general(default_value, "unexpected answer from the relay proxy")

        text = response.body.decode("utf-8", errors="replace")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            if exc.pos >= len(text.rstrip()):
                return ResolutionDetail.failed(
                    default_value,
                    ErrorCode.PARSE_ERROR,
                    f"impossible to parse response for flag {flag}: {text}",
                )
            return _type_mismatch(default_value, flag)

        try:
            eval_response = EvalResponse.from_dict(data)
            value = _coerce(flag_type, eval_response.value)
        except TypeError:
            return _type_mismatch(default_value, flag)

        if eval_response.error_code == ErrorCode.FLAG_NOT_FOUND.value:
            return ResolutionDetail.failed(
                default_value, ErrorCode.FLAG_NOT_FOUND, f"flag {flag} was not found in GO Feature Flag"
            )

        if eval_response.reason == Reason.DISABLED.value:
            return ResolutionDetail(value=default_value, reason=Reason.DISABLED, variant="SdkDefault")

        detail = ResolutionDetail(value=value, reason=eval_response.reason, variant=eval_response.variation_type)
        if not self._cache_disabled and eval_response.cacheable:
            ttl = None if self._cache_ttl == -1 else self._cache_ttl
            self._cache.set(cache_key, (flag_type, detail), ttl)
        return detail