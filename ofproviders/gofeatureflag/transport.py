"""A small HTTP abstraction used to reach the relay proxy."""

from __future__ import annotations

import posixpath
import re
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Protocol
from urllib.parse import urlsplit, urlunsplit


@dataclass
class HTTPRequest:
    """An outgoing HTTP request."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""


@dataclass
class HTTPResponse:
    """A received HTTP response."""

    status_code: int
    body: bytes = b""


class HTTPClient(Protocol):
    """Anything able to send an HTTPRequest."""

    def do(self, request: HTTPRequest) -> HTTPResponse:
        """Send the request; raise OSError when the server cannot be reached."""
        ...


class UrllibHTTPClient:
    """HTTP client built on urllib, with a ten-second timeout by default."""

    def __init__(self, timeout: float = 10.0) -> None:
        self.timeout = timeout

    def do(self, request: HTTPRequest) -> HTTPResponse:
        """Send the request; error statuses are returned, not raised."""
        outgoing = urllib.request.Request(
            request.url,
            data=request.body or None,
            headers=dict(request.headers),
            method=request.method,
        )
        try:
            with urllib.request.urlopen(outgoing, timeout=self.timeout) as response:
                return HTTPResponse(response.status, response.read())
        except urllib.error.HTTPError as exc:
            try:
                body = exc.read() if exc.fp is not None else b""
            finally:
                exc.close()
            return HTTPResponse(exc.code, body)


def _clean_path(path: str) -> str:
    return posixpath.normpath(re.sub(r"/+", "/", path))


def join_url(endpoint: str, *args: str) -> str:
    """Append path segments to an endpoint URL, cleaning redundant slashes."""
    parts = urlsplit(endpoint)
    elements = [segment for segment in (parts.path, *args) if segment]
    path = _clean_path("/".join(elements)) if elements else ""
    if parts.netloc and path and not path.startswith("/"):
        path = "/" + path
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))