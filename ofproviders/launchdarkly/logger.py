"""Minimal logging interface used by the LaunchDarkly provider."""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

_discard = logging.getLogger(__name__ + ".discard")
_discard.addHandler(logging.NullHandler())
_discard.propagate = False


@runtime_checkable
class Logger(Protocol):
    """Anything able to record debug, error and warning messages.

    Messages use ``%``-style placeholders filled from ``args``.
    """

    def debug(self, msg: str, *args: Any) -> None: ...

    def error(self, msg: str, *args: Any) -> None: ...

    def warn(self, msg: str, *args: Any) -> None: ...


class NoOpLogger:
    """A logger that discards every message.

    Messages go to a standard-library logger that has only a null handler
    and does not propagate, so nothing is ever emitted.
    """

    def debug(self, msg: str, *args: Any) -> None:
        """Discard a debug message."""
        _discard.debug(msg, *args)

    def info(self, msg: str, *args: Any) -> None:
        """Discard an informational message."""
        _discard.info(msg, *args)

    def error(self, msg: str, *args: Any) -> None:
        """Discard an error message."""
        _discard.error(msg, *args)

    def warn(self, msg: str, *args: Any) -> None:
        """Discard a warning."""
        _discard.warning(msg, *args)