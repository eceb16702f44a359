"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Transports carrying backend requests and yielding SSE frames.
"""

from .contracts import (
    HTTPRequest,
    SSEEvent,
    Transport,
    TransportError,
    TransportFactory,
    TransportHTTPStatusError,
    TransportPayloadError,
)
from .http import HttpxSSETransport
from .openai_sdk import OpenAISDKTransport
from .sse import SSEDecoder

__all__ = [
    "HTTPRequest",
    "SSEEvent",
    "Transport",
    "TransportFactory",
    "TransportError",
    "TransportHTTPStatusError",
    "TransportPayloadError",
    "HttpxSSETransport",
    "OpenAISDKTransport",
    "SSEDecoder",
]
