"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Stream adapter for OpenAI chat-completions chunks.
"""

from __future__ import annotations

from typing import Any

from ..chunks import Chunk
from ..transport.contracts import SSEEvent
from .base import StreamAdapter

DONE_SENTINEL = "[DONE]"


class OpenAIStreamAdapter(StreamAdapter):
    """
    Parses `chat.completion.chunk` payloads terminated by `data: [DONE]`.

    Tool calls are announced by the first fragment carrying a new
    `tool_calls[].index` together with the call id and function name; later
    fragments for that index only carry argument text. The wire has no
    per-call end marker, so every open call is ended, in start order, when a
    finish reason or `[DONE]` arrives.
    """

    provider_id = "openai"

    def __init__(self) -> None:
        super().__init__()
        self._calls_by_index: dict[int, str] = {}
        self._stop_reason: str | None = None

    def _handle(self, frame: SSEEvent) -> list[Chunk]:
        if frame.data.strip() == DONE_SENTINEL:
            chunks = self._end_open_calls(frame)
            chunks.append(self._end_stream(frame, self._stop_reason))
            return chunks

        payload = self._decode(frame)
        if payload.get("error"):
            raise self._provider_error(payload["error"], frame)

        choices = payload.get("choices") or []
        if not isinstance(choices, list):
            raise self._malformed(frame, "choices is not a list")

        chunks: list[Chunk] = []
        for choice in choices:
            choice = self._object(frame, choice, "choice")
            if choice.get("index", 0) != 0:
                raise self._malformed(frame, "only single-choice streams are supported")
            delta = choice.get("delta") or {}
            chunks.extend(self._delta(frame, self._object(frame, delta, "delta")))

            finish_reason = choice.get("finish_reason")
            if isinstance(finish_reason, str) and finish_reason:
                self._stop_reason = finish_reason
                chunks.extend(self._end_open_calls(frame))
        return chunks

    def _reasoning_text(self, delta: dict[str, Any]) -> str | None:
        """Reasoning text carried by a delta, for providers that stream it."""
        return None

    def _delta(self, frame: SSEEvent, delta: dict[str, Any]) -> list[Chunk]:
        chunks: list[Chunk] = []

        reasoning = self._reasoning_text(delta)
        if reasoning:
            chunks.append(self._emitter.thinking(reasoning))

        content = delta.get("content")
        if content is not None and not isinstance(content, str):
            raise self._malformed(frame, "delta content is not a string")
        if content:
            chunks.append(self._emitter.token(content))

        tool_calls = delta.get("tool_calls") or []
        if not isinstance(tool_calls, list):
            raise self._malformed(frame, "delta tool_calls is not a list")
        for item in tool_calls:
            chunks.extend(self._tool_call_fragment(frame, self._object(frame, item, "tool call")))
        return chunks

    def _tool_call_fragment(self, frame: SSEEvent, item: dict[str, Any]) -> list[Chunk]:
        index = item.get("index", 0)
        if not isinstance(index, int) or isinstance(index, bool):
            raise self._malformed(frame, "tool call index is not an integer")
        function = self._object(frame, item.get("function") or {}, "tool call function")

        chunks: list[Chunk] = []
        call_id = self._calls_by_index.get(index)
        if call_id is None:
            start = self._start_call(frame, item.get("id"), function.get("name"))
            call_id = start.call_id
            self._calls_by_index[index] = call_id
            chunks.append(start)
        elif item.get("id") not in (None, "", call_id):
            raise self._malformed(
                frame, f"tool call index {index} switched from {call_id} to {item['id']}"
            )

        arguments = function.get("arguments")
        if arguments is not None:
            argument = self._call_argument(frame, call_id, arguments)
            if arguments:
                chunks.append(argument)
        return chunks
