"""Core evaluation types shared by the feature-flag providers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

TARGETING_KEY = "targetingKey"


class Reason(str, Enum):
    """Why a flag resolved to the value it did."""

    STATIC = "STATIC"
    DEFAULT = "DEFAULT"
    TARGETING_MATCH = "TARGETING_MATCH"
    SPLIT = "SPLIT"
    CACHED = "CACHED"
    DISABLED = "DISABLED"
    UNKNOWN = "UNKNOWN"
    ERROR = "ERROR"

    def __str__(self) -> str:
        return self.value


class ErrorCode(str, Enum):
    """Categories of resolution failure."""

    PROVIDER_NOT_READY = "PROVIDER_NOT_READY"
    FLAG_NOT_FOUND = "FLAG_NOT_FOUND"
    PARSE_ERROR = "PARSE_ERROR"
    TYPE_MISMATCH = "TYPE_MISMATCH"
    TARGETING_KEY_MISSING = "TARGETING_KEY_MISSING"
    INVALID_CONTEXT = "INVALID_CONTEXT"
    GENERAL = "GENERAL"

    def __str__(self) -> str:
        return self.value


class ProviderState(str, Enum):
    """Lifecycle state of a provider."""

    NOT_READY = "NOT_READY"
    READY = "READY"
    ERROR = "ERROR"
    STALE = "STALE"

    def __str__(self) -> str:
        return self.value


class ResolutionError(Exception):
    """A flag could not be resolved; carries an error code and a message."""

    def __init__(self, code: ErrorCode | str, message: str) -> None:
        self.code = ErrorCode(code)
        self.message = message
        super().__init__(f"{self.code.value}: {message}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResolutionError):
            return NotImplemented
        return (self.code, self.message) == (other.code, other.message)

    def __hash__(self) -> int:
        return hash((self.code, self.message))

    def __repr__(self) -> str:
        return f"ResolutionError({self.code.value!r}, {self.message!r})"


@dataclass
class ResolutionDetail:
    """The outcome of one flag evaluation."""

    value: Any = None
    reason: str = ""
    variant: str = ""
    error: ResolutionError | None = None
    flag_metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failed(cls, value: Any, code: ErrorCode | str, message: str) -> "ResolutionDetail":
        """A detail that falls back to ``value`` with an error attached."""
        return cls(value=value, reason=Reason.ERROR, error=ResolutionError(code, message))


@dataclass(frozen=True)
class Metadata:
    """Describes a provider."""

    name: str


def flatten_context(targeting_key: str, attributes: Mapping[str, Any] | None) -> dict[str, Any]:
    """Merge a targeting key and attributes into one flat mapping."""
    flat = dict(attributes or {})
    if targeting_key:
        flat[TARGETING_KEY] = targeting_key
    return flat


def context_value_to_str(value: Any) -> str:
    """Render a scalar context value as text; raise TypeError for anything else."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return f"{value:.6f}"
    raise TypeError(f"cannot convert {type(value).__name__} to string")