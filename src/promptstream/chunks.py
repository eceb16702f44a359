"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Provider-agnostic vocabulary of streamed response chunks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, TypeAlias

from .errors import ChunkSequenceError


@dataclass(frozen=True, slots=True)
class Token:
    """Fragment of assistant text. Consecutive tokens concatenate."""
    text: str
    type: Literal["token"] = "token"


@dataclass(frozen=True, slots=True)
class Thinking:
    """Fragment of model reasoning text, kept apart from `Token` text."""
    text: str
    type: Literal["thinking"] = "thinking"


@dataclass(frozen=True, slots=True)
class ToolCallStart:
    """A new tool invocation begins."""
    call_id: str
    tool_name: str
    type: Literal["tool_call_start"] = "tool_call_start"

    def __post_init__(self) -> None:
        if not self.call_id:
            raise ValueError("ToolCallStart requires a non-empty call_id")


@dataclass(frozen=True, slots=True)
class ToolCallArgument:
    """Fragment of the argument document of an open tool call."""
    call_id: str
    fragment: str
    type: Literal["tool_call_argument"] = "tool_call_argument"


@dataclass(frozen=True, slots=True)
class ToolCallEnd:
    """The argument document of `call_id` is complete."""
    call_id: str
    type: Literal["tool_call_end"] = "tool_call_end"


@dataclass(frozen=True, slots=True)
class End:
    """Terminal marker; nothing follows it."""
    stop_reason: str | None = None
    type: Literal["end"] = "end"


Chunk: TypeAlias = Token | Thinking | ToolCallStart | ToolCallArgument | ToolCallEnd | End


class ChunkEmitter:
    """
    Chunk builder owned by one stream adapter.

    Refuses to build anything once `end()` has been produced, so an adapter
    bug surfaces as `ChunkSequenceError` instead of a chunk after `End`.
    """

    def __init__(self) -> None:
        self._terminated = False

    @property
    def terminated(self) -> bool:
        return self._terminated

    def _check(self, kind: str) -> None:
        if self._terminated:
            raise ChunkSequenceError(f"Cannot emit {kind} after the end of the stream")

    def token(self, text: str) -> Token:
        self._check("token")
        return Token(text)

    def thinking(self, text: str) -> Thinking:
        self._check("thinking")
        return Thinking(text)

    def tool_call_start(self, call_id: str, tool_name: str) -> ToolCallStart:
        self._check("tool_call_start")
        return ToolCallStart(call_id, tool_name)

    def tool_call_argument(self, call_id: str, fragment: str) -> ToolCallArgument:
        self._check("tool_call_argument")
        return ToolCallArgument(call_id, fragment)

    def tool_call_end(self, call_id: str) -> ToolCallEnd:
        self._check("tool_call_end")
        return ToolCallEnd(call_id)

    def end(self, stop_reason: str | None = None) -> End:
        self._check("end")
        self._terminated = True
        return End(stop_reason)

    def terminate(self) -> None:
        """Mark the emitter terminated without producing `End` (error path)."""
        self._terminated = True
