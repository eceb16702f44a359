"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Stream adapter for the Anthropic Messages API event stream.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..chunks import Chunk
from ..transport.contracts import SSEEvent
from .base import StreamAdapter

_BLOCK_TYPES = ("text", "thinking", "redacted_thinking", "tool_use")
_IGNORED_EVENTS = ("ping", "message_start")


@dataclass(slots=True)
class _Block:
    kind: str
    call_id: str | None = None


class AnthropicStreamAdapter(StreamAdapter):
    """
    Parses `message_start` / `content_block_*` / `message_delta` /
    `message_stop` / `error` events.

    Content blocks are addressed by their `index`; a `tool_use` block's index
    resolves to the call id announced in its `content_block_start`.
    """

    provider_id = "anthropic"

    def __init__(self) -> None:
        super().__init__()
        self._blocks: dict[int, _Block] = {}
        self._stop_reason: str | None = None

    def _handle(self, frame: SSEEvent) -> list[Chunk]:
        payload = self._decode(frame)
        kind = frame.event or payload.get("type")

        if kind in _IGNORED_EVENTS:
            return []
        if kind == "content_block_start":
            return self._block_start(frame, payload)
        if kind == "content_block_delta":
            return self._block_delta(frame, payload)
        if kind == "content_block_stop":
            return self._block_stop(frame, payload)
        if kind == "message_delta":
            delta = self._object(frame, payload.get("delta", {}), "message delta")
            stop_reason = delta.get("stop_reason")
            if isinstance(stop_reason, str):
                self._stop_reason = stop_reason
            return []
        if kind == "message_stop":
            return [self._end_stream(frame, self._stop_reason)]
        if kind == "error":
            raise self._provider_error(payload.get("error"), frame)
        raise self._malformed(frame, f"unexpected event '{kind}'")

    def _index(self, frame: SSEEvent, payload: dict[str, Any]) -> int:
        index = payload.get("index")
        if not isinstance(index, int) or isinstance(index, bool):
            raise self._malformed(frame, "content block event without an integer index")
        return index

    def _block_start(self, frame: SSEEvent, payload: dict[str, Any]) -> list[Chunk]:
        index = self._index(frame, payload)
        if index in self._blocks:
            raise self._malformed(frame, f"content block {index} started twice")
        block = self._object(frame, payload.get("content_block"), "content_block")
        kind = block.get("type")
        if kind not in _BLOCK_TYPES:
            raise self._malformed(frame, f"unsupported content block type '{kind}'")

        if kind == "tool_use":
            start = self._start_call(frame, block.get("id"), block.get("name"))
            self._blocks[index] = _Block(kind, start.call_id)
            return [start]

        self._blocks[index] = _Block(kind)
        initial = block.get(kind)
        if not isinstance(initial, str) or not initial:
            return []
        if kind == "text":
            return [self._emitter.token(initial)]
        if kind == "thinking":
            return [self._emitter.thinking(initial)]
        return []

    def _block_delta(self, frame: SSEEvent, payload: dict[str, Any]) -> list[Chunk]:
        index = self._index(frame, payload)
        block = self._blocks.get(index)
        if block is None:
            raise self._malformed(frame, f"delta for content block {index} which is not open")
        delta = self._object(frame, payload.get("delta"), "delta")
        kind = delta.get("type")

        if kind == "text_delta" and block.kind == "text":
            text = delta.get("text")
            if not isinstance(text, str):
                raise self._malformed(frame, "text delta without text")
            return [self._emitter.token(text)] if text else []
        if kind == "thinking_delta" and block.kind == "thinking":
            text = delta.get("thinking")
            if not isinstance(text, str):
                raise self._malformed(frame, "thinking delta without text")
            return [self._emitter.thinking(text)] if text else []
        if kind == "signature_delta" and block.kind == "thinking":
            return []
        if kind == "input_json_delta" and block.call_id is not None:
            fragment = delta.get("partial_json")
            argument = self._call_argument(frame, block.call_id, fragment)
            return [argument] if fragment else []
        raise self._malformed(
            frame, f"delta type '{kind}' does not fit a '{block.kind}' block"
        )

    def _block_stop(self, frame: SSEEvent, payload: dict[str, Any]) -> list[Chunk]:
        index = self._index(frame, payload)
        block = self._blocks.pop(index, None)
        if block is None:
            raise self._malformed(frame, f"stop for content block {index} which is not open")
        if block.call_id is not None:
            return [self._end_call(frame, block.call_id)]
        return []
