"""
Exception types raised by the RapidAPI Connect SDK.

Library errors (httpx, websockets, json) are converted into this
hierarchy at the transport boundary, so callers only ever need to
catch :class:`ConnectError`.
"""

from __future__ import annotations

from typing import Any


class ConnectError(Exception):
    """Base class for all SDK errors."""


class TransportError(ConnectError):
    """The underlying HTTP or socket call failed outright."""


class ProtocolError(ConnectError):
    """The server answered, but not with what the protocol expects."""

    def __init__(self, message: str, status_code: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ParseError(ConnectError):
    """A response body could not be decoded as JSON."""

    def __init__(self, message: str, body: str | None = None) -> None:
        super().__init__(message)
        self.body = body


class InvalidArgument(ConnectError, TypeError):
    """A caller passed an argument of the wrong type or shape."""

    def __init__(self, argument: str, message: str) -> None:
        super().__init__(f"Invalid {argument}: {message}")
        self.argument = argument
