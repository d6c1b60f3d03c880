"""Request and response bodies exchanged with the relay proxy."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Mapping

from ofproviders.openfeature import TARGETING_KEY, ErrorCode, ResolutionError


@dataclass
class UserRequest:
    """A user as understood by older relay proxies."""

    key: str
    anonymous: bool
    custom: dict[str, Any] = field(default_factory=dict)


@dataclass
class EvaluationContextRequest:
    """The evaluation context sent with a flag request."""

    key: str
    custom: dict[str, Any] = field(default_factory=dict)

    def cache_key(self) -> str:
        """A deterministic string identifying this context."""
        custom = json.dumps(self.custom, sort_keys=True, default=repr, separators=(",", ":"))
        return f"{self.key}-{custom}"


@dataclass
class EvalFlagRequest:
    """Body of a flag evaluation request."""

    user: UserRequest | None
    evaluation_context: EvaluationContextRequest | None
    default_value: Any = None

    def to_dict(self) -> dict[str, Any]:
        """The JSON-ready form of the request."""
        body: dict[str, Any] = {"user": asdict(self.user) if self.user is not None else None}
        if self.evaluation_context is not None:
            body["evaluationContext"] = asdict(self.evaluation_context)
        body["defaultValue"] = self.default_value
        return body


def new_eval_flag_request(flat_ctx: Mapping[str, Any] | None, default_value: Any) -> EvalFlagRequest:
    """Build a request from a flattened context; raise ResolutionError without a usable key."""
    flat = dict(flat_ctx or {})
    if TARGETING_KEY not in flat:
        raise ResolutionError(
            ErrorCode.TARGETING_KEY_MISSING, "no targetingKey provided in the evaluation context"
        )
    targeting_key = flat[TARGETING_KEY]
    if not isinstance(targeting_key, str):
        raise ResolutionError(ErrorCode.TARGETING_KEY_MISSING, "targetingKey field MUST be a string")

    anonymous = flat.get("anonymous")
    if not isinstance(anonymous, bool):
        anonymous = True

    return EvalFlagRequest(
        user=UserRequest(key=targeting_key, anonymous=anonymous, custom=flat),
        evaluation_context=EvaluationContextRequest(key=targeting_key, custom=flat),
        default_value=default_value,
    )


_RESPONSE_FIELDS: dict[str, tuple[str, type]] = {
    "trackEvents": ("track_events", bool),
    "variationType": ("variation_type", str),
    "failed": ("failed", bool),
    "version": ("version", str),
    "reason": ("reason", str),
    "errorCode": ("error_code", str),
    "cacheable": ("cacheable", bool),
}


@dataclass
class EvalResponse:
    """Body of a flag evaluation response."""

    track_events: bool = False
    variation_type: str = ""
    failed: bool = False
    version: str = ""
    reason: str = ""
    error_code: str = ""
    value: Any = None
    cacheable: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "EvalResponse":
        """Read a decoded JSON object; raise TypeError on a malformed one."""
        if not isinstance(data, Mapping):
            raise TypeError("evaluation response must be a JSON object")
        fields: dict[str, Any] = {}
        for json_name, (attr, kind) in _RESPONSE_FIELDS.items():
            raw = data.get(json_name)
            if raw is None:
                continue
            if not isinstance(raw, kind):
                raise TypeError(f"field {json_name} must be of type {kind.__name__}")
            fields[attr] = raw
        fields["value"] = data.get("value")
        return cls(**fields)