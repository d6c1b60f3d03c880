"""Feature-flag provider backed by a Harness feature-flag client."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Protocol

from ofproviders.openfeature import (
    TARGETING_KEY,
    ErrorCode,
    Metadata,
    ProviderState,
    ResolutionDetail,
    context_value_to_str,
)

PROVIDER_NOT_READY = "Provider not ready"
GENERAL_ERROR = "general error"
JSON_DEFAULT_ERROR = "Could not get defaultValue as JSON map"


@dataclass
class HarnessTarget:
    """The target a Harness client evaluates flags for.

    ``attributes`` is None for an empty evaluation context.
    """

    identifier: str = ""
    name: str = ""
    attributes: dict[str, str] | None = None


class _HarnessClient(Protocol):
    def close(self) -> None: ...

    def bool_variation(self, flag: str, target: HarnessTarget, default: bool) -> bool: ...

    def number_variation(self, flag: str, target: HarnessTarget, default: float) -> float: ...

    def int_variation(self, flag: str, target: HarnessTarget, default: int) -> int: ...

    def string_variation(self, flag: str, target: HarnessTarget, default: str) -> str: ...

    def json_variation(self, flag: str, target: HarnessTarget, default: dict) -> dict: ...


@dataclass
class HarnessConfig:
    """Provider configuration.

    ``client_factory`` is called with ``sdk_key`` when the provider is
    initialised and must return a client offering ``close()`` and the
    ``bool_variation``, ``number_variation``, ``int_variation``,
    ``string_variation`` and ``json_variation`` methods, each taking
    ``(flag, target, default)``.
    """

    sdk_key: str = field(repr=False)
    client_factory: Callable[[str], _HarnessClient]


def to_harness_target(eval_ctx: Mapping[str, Any] | None) -> HarnessTarget:
    """Map a flattened context onto a HarnessTarget; raise TypeError for non-scalar values."""
    if not eval_ctx:
        return HarnessTarget()
    target = HarnessTarget(attributes={})
    for key, raw in eval_ctx.items():
        try:
            value = context_value_to_str(raw)
        except TypeError:
            raise TypeError(f"key `{key}` can not be converted to string") from None
        if key == TARGETING_KEY:
            target.identifier = value
        elif key == "Name":
            target.name = value
        else:
            target.attributes[key] = value
    return target


class HarnessProvider:
    """Resolves flags through a Harness client."""

    def __init__(self, config: HarnessConfig) -> None:
        self._config = config
        self._client: _HarnessClient | None = None
        self._state = ProviderState.NOT_READY

    def init(self, evaluation_context: Mapping[str, Any] | None = None) -> None:
        """Create the client; on failure the provider enters the error state and the error propagates."""
        try:
            client = self._config.client_factory(self._config.sdk_key)
        except Exception:
            self._state = ProviderState.ERROR
            raise
        self._client = client
        self._state = ProviderState.READY

    def status(self) -> ProviderState:
        return self._state

    def shutdown(self) -> None:
        if self._client is not None:
            self._client.close()
        self._state = ProviderState.NOT_READY

    def hooks(self) -> list:
        return []

    def metadata(self) -> Metadata:
        return Metadata(name="harness")

    def _unavailable(self, default_value: Any) -> ResolutionDetail | None:
        if self._state is ProviderState.READY:
            return None
        if self._state is ProviderState.NOT_READY:
            return ResolutionDetail.failed(default_value, ErrorCode.PROVIDER_NOT_READY, PROVIDER_NOT_READY)
        return ResolutionDetail.failed(default_value, ErrorCode.GENERAL, GENERAL_ERROR)

    def _evaluate(
        self,
        variation: Callable[[str, HarnessTarget, Any], Any],
        flag: str,
        default_value: Any,
        eval_ctx: Mapping[str, Any] | None,
    ) -> ResolutionDetail:
        unavailable = self._unavailable(default_value)
        if unavailable is not None:
            return unavailable
        try:
            target = to_harness_target(eval_ctx)
        except TypeError as exc:
            return ResolutionDetail.failed(default_value, ErrorCode.INVALID_CONTEXT, str(exc))
        return ResolutionDetail(value=variation(flag, target, default_value))

    def boolean_evaluation(self, flag: str, default_value: bool, eval_ctx: Mapping[str, Any] | None) -> ResolutionDetail:
        return self._evaluate(self._call("bool_variation"), flag, default_value, eval_ctx)

    def float_evaluation(self, flag: str, default_value: float, eval_ctx: Mapping[str, Any] | None) -> ResolutionDetail:
        return self._evaluate(self._call("number_variation"), flag, default_value, eval_ctx)

    def int_evaluation(self, flag: str, default_value: int, eval_ctx: Mapping[str, Any] | None) -> ResolutionDetail:
        return self._evaluate(self._call("int_variation"), flag, default_value, eval_ctx)

    def string_evaluation(self, flag: str, default_value: str, eval_ctx: Mapping[str, Any] | None) -> ResolutionDetail:
        return self._evaluate(self._call("string_variation"), flag, default_value, eval_ctx)

    def object_evaluation(self, flag: str, default_value: Any, eval_ctx: Mapping[str, Any] | None) -> ResolutionDetail:
        unavailable = self._unavailable(default_value)
        if unavailable is not None:
            return unavailable
        try:
            target = to_harness_target(eval_ctx)
        except TypeError as exc:
            return ResolutionDetail.failed(default_value, ErrorCode.INVALID_CONTEXT, str(exc))
        if not isinstance(default_value, dict):
            return ResolutionDetail.failed(default_value, ErrorCode.INVALID_CONTEXT, JSON_DEFAULT_ERROR)
        return ResolutionDetail(value=self._call("json_variation")(flag, target, default_value))

    def _call(self, method: str) -> Callable[[str, HarnessTarget, Any], Any]:
        """A variation lookup that falls back to the default when the client fails."""

        def variation(flag: str, target: HarnessTarget, default_value: Any) -> Any:
            try:
                return getattr(self._client, method)(flag, target, default_value)
            except Exception:
                return default_value

        return variation