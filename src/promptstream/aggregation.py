"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Helpers that drain token streams and fold chunk sequences into results.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, Iterable

from .chunks import Chunk, End, Thinking, Token, ToolCallArgument, ToolCallEnd, ToolCallStart
from .errors import ChunkSequenceError
from .streaming import TokenStream
from .types import AssembledToolCall, Message


async def all_chunks(stream: AsyncIterable[Chunk]) -> list[Chunk]:
    """Drain `stream`; raises the first stream error instead of partial output."""
    if isinstance(stream, TokenStream):
        return await stream.all_chunks()
    return [chunk async for chunk in stream]


async def all_text(stream: AsyncIterable[Chunk]) -> str:
    """Drain `stream` and concatenate its `Token` text."""
    chunks = await all_chunks(stream)
    return "".join(chunk.text for chunk in chunks if isinstance(chunk, Token))


class ToolCallAssembler:
    """
    Rebuilds completed tool calls from tool-call chunks, keyed by `call_id`.

    Violations of the chunk ordering rules raise `ChunkSequenceError`.
    """

    def __init__(self) -> None:
        self._names: dict[str, str] = {}
        self._fragments: dict[str, list[str]] = {}
        self._completed: set[str] = set()

    @property
    def pending(self) -> tuple[str, ...]:
        return tuple(self._fragments)

    def feed(self, chunk: Chunk) -> AssembledToolCall | None:
        """Consume one chunk; returns the call completed by a `ToolCallEnd`."""
        if isinstance(chunk, ToolCallStart):
            if chunk.call_id in self._fragments or chunk.call_id in self._completed:
                raise ChunkSequenceError(f"Tool call {chunk.call_id} started twice")
            self._names[chunk.call_id] = chunk.tool_name
            self._fragments[chunk.call_id] = []
            return None
        if isinstance(chunk, ToolCallArgument):
            self._open(chunk.call_id).append(chunk.fragment)
            return None
        if isinstance(chunk, ToolCallEnd):
            fragments = self._open(chunk.call_id)
            del self._fragments[chunk.call_id]
            self._completed.add(chunk.call_id)
            return AssembledToolCall(
                call_id=chunk.call_id,
                tool_name=self._names.pop(chunk.call_id),
                arguments="".join(fragments),
            )
        return None

    def _open(self, call_id: str) -> list[str]:
        try:
            return self._fragments[call_id]
        except KeyError:
            raise ChunkSequenceError(f"Tool call {call_id} is not open") from None

    def assemble(self, chunks: Iterable[Chunk]) -> list[AssembledToolCall]:
        """Completed calls in `chunks`, in completion order."""
        calls = []
        for chunk in chunks:
            call = self.feed(chunk)
            if call is not None:
                calls.append(call)
        return calls


def merge_chunks(chunks: Iterable[Chunk]) -> list[Token | Thinking | AssembledToolCall | End]:
    """
    Coalesce adjacent `Token`/`Thinking` chunks and fold tool-call fragments.

    Each tool call appears where its `ToolCallEnd` arrived.
    """
    assembler = ToolCallAssembler()
    merged: list[Token | Thinking | AssembledToolCall | End] = []
    for chunk in chunks:
        if isinstance(chunk, (Token, Thinking)):
            last = merged[-1] if merged else None
            if type(last) is type(chunk):
                merged[-1] = type(chunk)(last.text + chunk.text)  # type: ignore[union-attr]
            else:
                merged.append(chunk)
        elif isinstance(chunk, End):
            merged.append(chunk)
        else:
            call = assembler.feed(chunk)
            if call is not None:
                merged.append(call)
    return merged


def assistant_message(chunks: Iterable[Chunk]) -> Message:
    """The assistant turn described by `chunks`, ready to replay to a backend."""
    text: list[str] = []
    calls: list[AssembledToolCall] = []
    assembler = ToolCallAssembler()
    for chunk in chunks:
        if isinstance(chunk, Token):
            text.append(chunk.text)
            continue
        call = assembler.feed(chunk)
        if call is not None:
            calls.append(call)
    return Message.assistant("".join(text), tool_calls=calls)
