"""Feature-flag provider backed by a LaunchDarkly client."""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Protocol

from ofproviders.launchdarkly.logger import Logger, NoOpLogger
from ofproviders.openfeature import (
    TARGETING_KEY,
    ErrorCode,
    Metadata,
    Reason,
    ResolutionDetail,
    ResolutionError,
)

DEFAULT_KIND = "user"
MULTI_KIND = "multi"
KEY_MISSING_MESSAGE = "key and targetingKey attributes are missing, at least 1 required"
CONTEXT_CANCELED = "context canceled"


class _KeyMissingError(ValueError):
    def __init__(self) -> None:
        super().__init__(KEY_MISSING_MESSAGE)


@dataclass
class LDContext:
    """A single-kind LaunchDarkly evaluation context."""

    key: str
    kind: str = DEFAULT_KIND
    anonymous: bool = False
    private: list[str] = field(default_factory=list)
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass
class LDMultiContext:
    """A LaunchDarkly context made of several single-kind contexts, keyed by kind."""

    contexts: dict[str, LDContext] = field(default_factory=dict)

    @property
    def kind(self) -> str:
        return MULTI_KIND


@dataclass(frozen=True)
class EvalReason:
    """Why LaunchDarkly produced a value."""

    kind: str
    error_kind: str = ""
    rule_index: int = 0
    rule_id: str = ""
    prerequisite_key: str = ""

    def __str__(self) -> str:
        if self.kind == "ERROR":
            return f"ERROR({self.error_kind})"
        if self.kind == "RULE_MATCH":
            return f"RULE_MATCH({self.rule_index},{self.rule_id})"
        if self.kind == "PREREQUISITE_FAILED":
            return f"PREREQUISITE_FAILED({self.prerequisite_key})"
        return self.kind


@dataclass(frozen=True)
class EvaluationDetail:
    """A value returned by LaunchDarkly with its variation index and reason."""

    value: Any
    variation_index: int | None
    reason: EvalReason


class _LDClient(Protocol):
    def bool_variation_detail(self, key: str, context: Any, default: bool) -> EvaluationDetail: ...

    def string_variation_detail(self, key: str, context: Any, default: str) -> EvaluationDetail: ...

    def float_variation_detail(self, key: str, context: Any, default: float) -> EvaluationDetail: ...

    def int_variation_detail(self, key: str, context: Any, default: int) -> EvaluationDetail: ...

    def json_variation_detail(self, key: str, context: Any, default: Any) -> EvaluationDetail: ...


_REASONS = {
    "OFF": Reason.DISABLED,
    "TARGET_MATCH": Reason.TARGETING_MATCH,
    "ERROR": Reason.ERROR,
}

_ERROR_CODES = {
    "CLIENT_NOT_READY": ErrorCode.PROVIDER_NOT_READY,
    "FLAG_NOT_FOUND": ErrorCode.FLAG_NOT_FOUND,
    "MALFORMED_FLAG": ErrorCode.PARSE_ERROR,
    "USER_NOT_SPECIFIED": ErrorCode.TARGETING_KEY_MISSING,
    "WRONG_TYPE": ErrorCode.TYPE_MISMATCH,
}


def to_reason(reason_kind: str) -> Reason | str:
    """Map a LaunchDarkly reason kind onto an evaluation reason."""
    return _REASONS.get(reason_kind, reason_kind)


def to_resolution_error(error_kind: str, reason: str) -> ResolutionError:
    """Map a LaunchDarkly error kind onto a resolution error."""
    return ResolutionError(_ERROR_CODES.get(error_kind, ErrorCode.GENERAL), reason)


class LaunchDarklyProvider:
    """Resolves flags through a LaunchDarkly client.

    ``client`` must offer ``bool_variation_detail``, ``string_variation_detail``,
    ``float_variation_detail``, ``int_variation_detail`` and
    ``json_variation_detail``, each taking ``(key, context, default)`` and
    returning an EvaluationDetail.
    """

    def __init__(self, client: _LDClient, logger: Logger | None = None, kind_attr: str = "kind") -> None:
        self._client = client
        self._logger: Logger = logger if logger is not None else NoOpLogger()
        self.kind_attr = kind_attr

    def metadata(self) -> Metadata:
        return Metadata(name="LaunchDarkly")

    def hooks(self) -> list:
        return []

    def to_ld_context(self, eval_ctx: Mapping[str, Any] | None) -> LDContext | LDMultiContext:
        """Build a LaunchDarkly context; raise ValueError when no key is available."""
        flat = dict(eval_ctx or {})
        kind = DEFAULT_KIND
        declared = flat.get(self.kind_attr)
        if isinstance(declared, str) and declared.strip(" "):
            kind = declared
        else:
            self._logger.warn("no context kind set, setting %r by default", kind)

        if kind == MULTI_KIND:
            self._logger.debug("multi context detected")
            return self._to_multi_context(flat)

        self._logger.debug("single context detected")
        return self._map_context(kind, flat)

    def _to_multi_context(self, flat: Mapping[str, Any]) -> LDMultiContext:
        multi = LDMultiContext()
        for key, attrs in flat.items():
            if key == self.kind_attr:
                continue
            self._logger.debug("mapping %r context kind", key)
            if isinstance(attrs, Mapping):
                multi.contexts[key] = self._map_context(key, attrs)
            else:
                self._logger.warn("multi-context: unexpected type in top-level attribute: %s", key)
        return multi

    def _map_context(self, kind: str, flat: Mapping[str, Any]) -> LDContext:
        key = flat.get(TARGETING_KEY)
        if not isinstance(key, str):
            ld_key = flat.get("key")
            if not isinstance(ld_key, str) or not ld_key.strip(" "):
                raise _KeyMissingError()
            key = ld_key

        context = LDContext(key=key, kind=kind)
        anonymous = flat.get("anonymous")
        if isinstance(anonymous, bool):
            context.anonymous = anonymous

        private = flat.get("privateAttributes")
        if isinstance(private, (list, tuple)) and all(isinstance(name, str) for name in private):
            context.private = list(private)

        skip = {TARGETING_KEY, self.kind_attr, "key", "privateAttributes", "anonymous"}
        context.attributes = {
            name: copy.deepcopy(value) for name, value in flat.items() if name not in skip
        }
        return context

    def to_provider_resolution_detail(self, detail: EvaluationDetail) -> ResolutionDetail:
        """Translate a LaunchDarkly evaluation detail into a resolution detail."""
        self._logger.debug("launchdarkly evaluation detail: %s", detail)
        result = ResolutionDetail(value=detail.value, reason=to_reason(detail.reason.kind))
        if detail.reason.error_kind:
            result.error = to_resolution_error(
                detail.reason.error_kind, f"LaunchDarkly returned {detail.reason}"
            )
        if detail.variation_index is not None:
            result.variant = str(detail.variation_index)
        return result

    def _transform_context(
        self, eval_ctx: Mapping[str, Any] | None, default_value: Any, cancel: threading.Event | None
    ) -> tuple[LDContext | LDMultiContext | None, ResolutionDetail | None]:
        try:
            context = self.to_ld_context(eval_ctx)
        except _KeyMissingError as exc:
            return None, ResolutionDetail.failed(default_value, ErrorCode.TARGETING_KEY_MISSING, str(exc))
        except ValueError as exc:
            return None, ResolutionDetail.failed(default_value, ErrorCode.INVALID_CONTEXT, str(exc))
        if cancel is not None and cancel.is_set():
            return None, ResolutionDetail.failed(default_value, ErrorCode.GENERAL, CONTEXT_CANCELED)
        return context, None

    def _evaluate(
        self,
        label: str,
        variation: Callable[[str, Any, Any], EvaluationDetail],
        flag_key: str,
        default_value: Any,
        eval_ctx: Mapping[str, Any] | None,
        cancel: threading.Event | None,
    ) -> ResolutionDetail:
        context, failure = self._transform_context(eval_ctx, default_value, cancel)
        if failure is not None:
            return failure
        detail = variation(flag_key, context, default_value)
        if detail.reason.kind == "ERROR":
            self._logger.error("%s evaluation: %s", label, detail.reason)
        return self.to_provider_resolution_detail(detail)

    def boolean_evaluation(
        self, flag_key: str, default_value: bool, eval_ctx: Mapping[str, Any] | None, cancel: threading.Event | None = None
    ) -> ResolutionDetail:
        return self._evaluate(
            "boolean", self._client.bool_variation_detail, flag_key, default_value, eval_ctx, cancel
        )

    def string_evaluation(
        self, flag_key: str, default_value: str, eval_ctx: Mapping[str, Any] | None, cancel: threading.Event | None = None
    ) -> ResolutionDetail:
        return self._evaluate(
            "string", self._client.string_variation_detail, flag_key, default_value, eval_ctx, cancel
        )

    def float_evaluation(
        self, flag_key: str, default_value: float, eval_ctx: Mapping[str, Any] | None, cancel: threading.Event | None = None
    ) -> ResolutionDetail:
        return self._evaluate(
            "float", self._client.float_variation_detail, flag_key, default_value, eval_ctx, cancel
        )

    def int_evaluation(
        self, flag_key: str, default_value: int, eval_ctx: Mapping[str, Any] | None, cancel: threading.Event | None = None
    ) -> ResolutionDetail:
        result = self._evaluate(
            "int", self._client.int_variation_detail, flag_key, default_value, eval_ctx, cancel
        )
        if isinstance(result.value, (int, float)) and not isinstance(result.value, bool):
            result.value = int(result.value)
        return result

    def object_evaluation(
        self, flag_key: str, default_value: Any, eval_ctx: Mapping[str, Any] | None, cancel: threading.Event | None = None
    ) -> ResolutionDetail:
        def variation(key: str, context: Any, default: Any) -> EvaluationDetail:
            return self._client.json_variation_detail(key, context, copy.deepcopy(default))

        return self._evaluate("object", variation, flag_key, default_value, eval_ctx, cancel)