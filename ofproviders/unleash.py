"""Feature-flag provider backed by an Unleash client."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Protocol

from ofproviders.openfeature import (
    ErrorCode,
    Metadata,
    ProviderState,
    ResolutionDetail,
    context_value_to_str,
)

PROVIDER_NOT_READY = "Provider not ready"
GENERAL_ERROR = "general error"
DISABLED_VARIANT_NAME = "disabled"

_CONTEXT_FIELDS = {
    "AppName": "app_name",
    "CurrentTime": "current_time",
    "Environment": "environment",
    "RemoteAddress": "remote_address",
    "SessionId": "session_id",
    "UserId": "user_id",
}


@dataclass
class UnleashContext:
    """The context Unleash evaluates toggles against."""

    user_id: str = ""
    session_id: str = ""
    remote_address: str = ""
    environment: str = ""
    app_name: str = ""
    current_time: str = ""
    properties: dict[str, str] = field(default_factory=dict)


@dataclass
class UnleashVariant:
    """A variant returned by Unleash."""

    name: str
    enabled: bool = False
    payload: Any = None


class _UnleashClient(Protocol):
    def initialize(self) -> None: ...

    def close(self) -> None: ...

    def is_enabled(self, name: str, context: UnleashContext, fallback: bool) -> bool: ...

    def get_variant(self, name: str, context: UnleashContext) -> UnleashVariant: ...


@dataclass
class UnleashConfig:
    """Provider configuration.

    ``client`` must offer ``initialize()``, ``close()``,
    ``is_enabled(name, context, fallback)`` and ``get_variant(name, context)``.
    """

    client: _UnleashClient


def to_unleash_context(eval_ctx: Mapping[str, Any] | None) -> UnleashContext:
    """Map a flattened context onto an UnleashContext; raise TypeError for non-scalar values."""
    context = UnleashContext()
    for key, raw in (eval_ctx or {}).items():
        try:
            value = context_value_to_str(raw)
        except TypeError:
            raise TypeError(f"key `{key}` can not be converted to string") from None
        attr = _CONTEXT_FIELDS.get(key)
        if attr is not None:
            setattr(context, attr, value)
        else:
            context.properties[key] = value
    return context


def _sprint(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class UnleashProvider:
    """Resolves flags through an Unleash client."""

    def __init__(self, config: UnleashConfig) -> None:
        self._config = config
        self._state = ProviderState.NOT_READY

    def init(self, evaluation_context: Mapping[str, Any] | None = None) -> None:
        """Start the client; on failure the provider enters the error state and the error propagates."""
        try:
            self._config.client.initialize()
        except Exception:
            self._state = ProviderState.ERROR
            raise
        self._state = ProviderState.READY

    def status(self) -> ProviderState:
        return self._state

    def shutdown(self) -> None:
        self._config.client.close()
        self._state = ProviderState.NOT_READY

    def hooks(self) -> list:
        return []

    def metadata(self) -> Metadata:
        return Metadata(name="Unleash")

    def _unavailable(self, default_value: Any) -> ResolutionDetail | None:
        if self._state is ProviderState.READY:
            return None
        if self._state is ProviderState.NOT_READY:
            return ResolutionDetail.failed(default_value, ErrorCode.PROVIDER_NOT_READY, PROVIDER_NOT_READY)
        return ResolutionDetail.failed(default_value, ErrorCode.GENERAL, GENERAL_ERROR)

    def boolean_evaluation(self, flag: str, default_value: bool, eval_ctx: Mapping[str, Any] | None) -> ResolutionDetail:
        unavailable = self._unavailable(default_value)
        if unavailable is not None:
            return unavailable
        try:
            context = to_unleash_context(eval_ctx)
        except TypeError as exc:
            return ResolutionDetail.failed(default_value, ErrorCode.INVALID_CONTEXT, str(exc))
        enabled = self._config.client.is_enabled(flag, context, default_value)
        return ResolutionDetail(value=enabled, flag_metadata={"enabled": enabled})

    def float_evaluation(self, flag: str, default_value: float, eval_ctx: Mapping[str, Any] | None) -> ResolutionDetail:
        """Resolve a float; raise TypeError if the variant payload is not numeric."""
        result = self.object_evaluation(flag, default_value, eval_ctx)
        value = result.value
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"flag {flag} resolved to {type(value).__name__}, expected float")
        return replace(result, value=float(value))

    def int_evaluation(self, flag: str, default_value: int, eval_ctx: Mapping[str, Any] | None) -> ResolutionDetail:
        """Resolve an integer; raise TypeError if the variant payload is not an integer."""
        result = self.object_evaluation(flag, default_value, eval_ctx)
        if isinstance(result.value, bool) or not isinstance(result.value, int):
            raise TypeError(f"flag {flag} resolved to {type(result.value).__name__}, expected int")
        return result

    def string_evaluation(self, flag: str, default_value: str, eval_ctx: Mapping[str, Any] | None) -> ResolutionDetail:
        result = self.object_evaluation(flag, default_value, eval_ctx)
        return replace(result, value=_sprint(result.value))

    def object_evaluation(self, flag: str, default_value: Any, eval_ctx: Mapping[str, Any] | None) -> ResolutionDetail:
        unavailable = self._unavailable(default_value)
        if unavailable is not None:
            return unavailable
        try:
            context = to_unleash_context(eval_ctx)
        except TypeError as exc:
            return ResolutionDetail.failed(default_value, ErrorCode.GENERAL, str(exc))
        variant = self._config.client.get_variant(flag, context)
        metadata = {"enabled": variant.enabled}
        if variant.name == DISABLED_VARIANT_NAME:
            return ResolutionDetail(value=default_value, variant="", flag_metadata=metadata)
        return ResolutionDetail(value=variant.payload, variant=variant.name, flag_metadata=metadata)