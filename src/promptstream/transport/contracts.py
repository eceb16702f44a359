"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Typed contracts between backends and the transports that carry their requests.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from typing import Protocol

from ..errors import PromptStreamError


@dataclass(frozen=True, slots=True)
class HTTPRequest:
    """Fully serialized streaming request produced by a backend."""
    url: str
    body: str
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SSEEvent:
    """One server-sent event frame; `data` is the raw payload text."""
    data: str
    event: str | None = None
    id: str | None = None


class TransportError(PromptStreamError):
    """Connection-level failure raised by a transport."""


class TransportPayloadError(TransportError):
    """The response bytes could not be decoded into SSE frames."""

    def __init__(self, message: str, raw: bytes) -> None:
        super().__init__(message)
        self.raw = raw


class TransportHTTPStatusError(TransportError):
    """The server answered the request with a non-success status."""

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"HTTP {status}")
        self.status = status
        self.body = body


class Transport(Protocol):
    """
    Carrier for one streamed request.

    `frames()` opens the connection on first iteration and yields SSE frames
    in arrival order. `close()` releases the connection; it must be safe to
    call more than once and concurrently with a pending `frames()` read.
    """

    def frames(self) -> AsyncIterator[SSEEvent]: ...

    async def close(self) -> None: ...


TransportFactory = Callable[[HTTPRequest], Transport]
