"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Shared state machine for provider stream adapters.

An adapter consumes SSE frames one at a time and returns the chunks each frame
produces. Its state is one of:

- `idle`: no tool call is open.
- `in_tool_call`: at least one tool call is open; open calls are keyed by
  `call_id`, so several may be in flight at once.
- `errored`: a frame was rejected; the adapter accepts nothing further.
- `done`: `End` was produced; the adapter accepts nothing further.

Provider subclasses implement `_handle` and use the `_start_call`,
`_call_argument`, `_end_call` and `_end_stream` helpers, which enforce the
tool-call ordering rules and raise `StreamMalformedPayloadError` on violations.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Literal

from ..chunks import Chunk, ChunkEmitter, End, ToolCallArgument, ToolCallEnd, ToolCallStart
from ..errors import (
    ChunkSequenceError,
    StreamError,
    StreamMalformedPayloadError,
    StreamProviderError,
    StreamTransportError,
)
from ..transport.contracts import SSEEvent

logger = logging.getLogger("promptstream.adapters")

AdapterState = Literal["idle", "in_tool_call", "errored", "done"]


class StreamAdapter(ABC):
    """Base class for per-provider wire-format parsers."""

    provider_id: str = ""

    def __init__(self) -> None:
        self._emitter = ChunkEmitter()
        self._open_calls: dict[str, str] = {}
        self._finished_calls: set[str] = set()
        self._status: Literal["streaming", "errored", "done"] = "streaming"

    @property
    def state(self) -> AdapterState:
        if self._status != "streaming":
            return self._status
        return "in_tool_call" if self._open_calls else "idle"

    @property
    def open_calls(self) -> tuple[str, ...]:
        """Ids of tool calls started but not yet ended, in start order."""
        return tuple(self._open_calls)

    @property
    def terminated(self) -> bool:
        return self._status != "streaming"

    def feed(self, frame: SSEEvent) -> list[Chunk]:
        """
        Consume one frame and return the chunks it produces.

        Raises a `StreamError` subclass when the frame is malformed or carries
        a provider error; the adapter is then `errored`.
        """
        if self._status != "streaming":
            raise ChunkSequenceError(
                f"{type(self).__name__} cannot consume frames once {self._status}"
            )
        try:
            return self._handle(frame)
        except StreamError as e:
            self._fail(e)
            raise

    def finish(self) -> list[Chunk]:
        """Signal that the transport reached end-of-file."""
        if self._status == "streaming":
            error = StreamTransportError(
                "connection closed before end of stream", provider=self.provider_id
            )
            self._fail(error)
            raise error
        return []

    def error_from_status(self, status: int, body: str) -> StreamProviderError:
        """Convert a non-success HTTP answer into a provider error."""
        message = body.strip() or f"HTTP {status}"
        code: str | None = None
        try:
            payload = json.loads(body)
        except ValueError:
            payload = None
        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            message, code = self._error_fields(payload["error"], default=message)
        return StreamProviderError(
            message, code=code, status=status, provider=self.provider_id
        )

    @abstractmethod
    def _handle(self, frame: SSEEvent) -> list[Chunk]:
        """Provider-specific frame handling."""

    # ''''''''''''''''''''''''
    # Helpers for subclasses
    # ''''''''''''''''''''''''

    def _fail(self, error: StreamError) -> None:
        self._status = "errored"
        self._emitter.terminate()
        if isinstance(error, StreamMalformedPayloadError):
            logger.warning("%s stream rejected frame: %s", self.provider_id, error)

    def _malformed(self, frame: SSEEvent, reason: str) -> StreamMalformedPayloadError:
        return StreamMalformedPayloadError(
            reason, raw=frame.data, provider=self.provider_id
        )

    def _decode(self, frame: SSEEvent) -> dict[str, Any]:
        try:
            payload = json.loads(frame.data)
        except ValueError as e:
            raise self._malformed(frame, f"frame is not valid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise self._malformed(frame, "frame payload is not a JSON object")
        return payload

    def _object(self, frame: SSEEvent, value: Any, what: str) -> dict[str, Any]:
        if not isinstance(value, dict):
            raise self._malformed(frame, f"{what} is not an object")
        return value

    def _error_fields(
        self, error: dict[str, Any], *, default: str
    ) -> tuple[str, str | None]:
        message = error.get("message")
        code = error.get("code") or error.get("type")
        return (
            message if isinstance(message, str) and message else default,
            str(code) if code is not None else None,
        )

    def _provider_error(self, error: Any, frame: SSEEvent) -> StreamProviderError:
        if not isinstance(error, dict):
            return StreamProviderError(str(error), provider=self.provider_id)
        message, code = self._error_fields(error, default=frame.data)
        return StreamProviderError(message, code=code, provider=self.provider_id)

    def _start_call(self, frame: SSEEvent, call_id: Any, tool_name: Any) -> ToolCallStart:
        if not isinstance(call_id, str) or not call_id:
            raise self._malformed(frame, "tool call start without a call id")
        if not isinstance(tool_name, str) or not tool_name:
            raise self._malformed(frame, f"tool call {call_id} has no tool name")
        if call_id in self._open_calls or call_id in self._finished_calls:
            raise self._malformed(frame, f"tool call {call_id} started twice")
        self._open_calls[call_id] = tool_name
        return self._emitter.tool_call_start(call_id, tool_name)

    def _call_argument(self, frame: SSEEvent, call_id: str, fragment: Any) -> ToolCallArgument:
        if call_id not in self._open_calls:
            raise self._malformed(frame, f"argument fragment for tool call {call_id} which is not open")
        if not isinstance(fragment, str):
            raise self._malformed(frame, f"argument fragment for {call_id} is not a string")
        return self._emitter.tool_call_argument(call_id, fragment)

    def _end_call(self, frame: SSEEvent, call_id: str) -> ToolCallEnd:
        if call_id not in self._open_calls:
            raise self._malformed(frame, f"end of tool call {call_id} which is not open")
        del self._open_calls[call_id]
        self._finished_calls.add(call_id)
        return self._emitter.tool_call_end(call_id)

    def _end_open_calls(self, frame: SSEEvent) -> list[Chunk]:
        return [self._end_call(frame, call_id) for call_id in list(self._open_calls)]

    def _end_stream(self, frame: SSEEvent, stop_reason: str | None) -> End:
        if self._open_calls:
            raise self._malformed(
                frame,
                f"stream ended with open tool calls: {', '.join(self._open_calls)}",
            )
        self._status = "done"
        return self._emitter.end(stop_reason)
